from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Sequence, Tuple

from privacy_footprint.app.run import clamp_limit, run_discovery
from privacy_footprint.errors import MailboxError
from privacy_footprint.models import EmailSignal
from privacy_footprint.storage.accounts import JsonAccountStore

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeMailbox:
    def __init__(self, messages: Dict[str, EmailSignal], broken: Sequence[str] = ()):
        self.messages = messages
        self.broken = set(broken)
        self.queries: List[str] = []

    def search(self, queries: Sequence[str], limit: int) -> List[str]:
        self.queries = list(queries)
        ids = list(self.messages) + list(self.broken)
        return ids[:limit]

    def fetch_metadata(self, message_id: str) -> EmailSignal:
        if message_id in self.broken:
            raise MailboxError("gone", message_id=message_id)
        return self.messages[message_id]


def _messages() -> Dict[str, EmailSignal]:
    rows = [
        ("m1", "hello@acme.com", "[ACME] 회원가입을 환영합니다", "Tue, 10 Jan 2023 10:00:00 +0000", None),
        ("m2", "news@acme.com", "ACME June update", "Thu, 01 Jun 2023 10:00:00 +0000", None),
        ("m3", "Shop", "영수증: 주문 완료", "Wed, 01 Mar 2023 08:00:00 +0000", "<https://shop.com/unsub>"),
        ("m4", "noise@junk.com", "Welcome", "yesterday-ish", None),
        ("m5", "Nobody", "Welcome", "Wed, 01 Mar 2023 08:00:00 +0000", None),
    ]
    return {
        mid: EmailSignal(message_id=mid, from_address=frm, subject=subj, date_sent=date, unsubscribe_header=unsub)
        for mid, frm, subj, date, unsub in rows
    }


def test_run_discovery_summarizes_and_persists() -> None:
    store = JsonAccountStore()
    mailbox = FakeMailbox(_messages(), broken=["gone-1"])
    events: List[Tuple[str, dict]] = []

    summary = run_discovery(
        "u1",
        mailbox,
        store,
        now=NOW,
        progress_cb=lambda step, payload: events.append((step, payload)),
    )

    assert summary["fetched"] == 6
    assert summary["fetch_errors"] == 1
    assert summary["signals"] == 5
    assert summary["skipped_bad_date"] == 1
    assert summary["skipped_no_domain"] == 1
    assert summary["discovered_count"] == 2
    assert summary["created"] == 2
    assert summary["store_errors"] == 0
    assert [a["service_domain"] for a in summary["accounts"]] == ["acme.com", "shop.com"]

    acme = store.find_by_user_and_domain("u1", "acme.com")
    assert acme.service_name == "ACME"
    assert acme.first_seen_date == datetime(2023, 1, 10, 10, 0, tzinfo=timezone.utc)
    assert acme.last_activity_date == datetime(2023, 6, 1, 10, 0, tzinfo=timezone.utc)
    assert acme.evidence_title == "ACME June update"

    assert len(mailbox.queries) == 3
    assert all("newer_than:" in q for q in mailbox.queries)
    assert events[-1][0] == "done"
    assert any(step == "error" for step, _ in events)


def test_run_discovery_twice_is_idempotent() -> None:
    store = JsonAccountStore()
    mailbox = FakeMailbox(_messages())

    first = run_discovery("u1", mailbox, store, now=NOW)
    second = run_discovery("u1", mailbox, store, now=NOW)

    assert first["accounts"] == second["accounts"]
    assert second["created"] == 0
    assert second["updated"] == 2


def test_run_discovery_respects_limit_and_custom_queries() -> None:
    store = JsonAccountStore()
    mailbox = FakeMailbox(_messages())

    summary = run_discovery("u1", mailbox, store, queries=["from:acme.com"], limit=2, now=NOW)

    assert mailbox.queries == ["from:acme.com"]
    assert summary["fetched"] == 2
    assert summary["discovered_count"] == 1


def test_clamp_limit() -> None:
    assert clamp_limit(None) == 100
    assert clamp_limit(0) == 100
    assert clamp_limit(50) == 50
    assert clamp_limit(1000) == 200


class TimeoutMailbox(FakeMailbox):
    def fetch_metadata(self, message_id: str) -> EmailSignal:
        if message_id == "m1":
            raise TimeoutError("socket timed out")
        return super().fetch_metadata(message_id)


def test_untyped_fetch_failure_does_not_abort_the_batch() -> None:
    store = JsonAccountStore()
    mailbox = TimeoutMailbox(_messages())
    events: List[Tuple[str, dict]] = []

    summary = run_discovery(
        "u1",
        mailbox,
        store,
        limit=2,
        now=NOW,
        progress_cb=lambda step, payload: events.append((step, payload)),
    )

    assert summary["fetch_errors"] == 1
    assert summary["discovered_count"] == 1
    acme = store.find_by_user_and_domain("u1", "acme.com")
    assert acme.first_seen_date == datetime(2023, 6, 1, 10, 0, tzinfo=timezone.utc)
    errors = [payload for step, payload in events if step == "error"]
    assert errors[0]["error"]["message_id"] == "m1"
    assert "TimeoutError" in errors[0]["error"]["error"]
