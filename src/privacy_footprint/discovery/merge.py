from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from privacy_footprint.discovery.inactivity import as_utc, inactivity_days
from privacy_footprint.errors import AccountStoreError
from privacy_footprint.interfaces import AccountStore
from privacy_footprint.models import DiscoveredDomain
from privacy_footprint.observability.logging import get_logger
from privacy_footprint.storage.accounts import Account

logger = get_logger(__name__)


@dataclass
class MergeOutcome:
    accounts: List[Account] = field(default_factory=list)
    created: int = 0
    updated: int = 0
    store_errors: int = 0
    failed_domains: List[str] = field(default_factory=list)


def _earliest(existing: Optional[datetime], incoming: datetime) -> datetime:
    if existing is None:
        return incoming
    return min(as_utc(existing), incoming)


def _latest(existing: Optional[datetime], incoming: datetime) -> datetime:
    if existing is None:
        return incoming
    return max(as_utc(existing), incoming)


def merge_account(
    existing: Optional[Account],
    aggregate: DiscoveredDomain,
    *,
    user_id: str,
    now: datetime,
) -> Account:
    """
    Fold one in-batch aggregate into the stored account (or seed a new one).

    The seen range only widens. Name and category are filled when empty and
    otherwise left alone. Evidence always follows the latest scan. `now` is
    used for inactivity_days and created_at only, never for the seen range.
    """
    if existing is None:
        return Account(
            user_id=user_id,
            service_domain=aggregate.domain,
            service_name=aggregate.service_name,
            category=aggregate.category,
            first_seen_date=aggregate.first_seen,
            last_activity_date=aggregate.last_activity,
            inactivity_days=inactivity_days(aggregate.last_activity, now),
            evidence_title=aggregate.evidence_title,
            evidence_source=aggregate.evidence_source,
            created_at=now,
        )

    last_activity = _latest(existing.last_activity_date, aggregate.last_activity)
    updates = {
        "first_seen_date": _earliest(existing.first_seen_date, aggregate.first_seen),
        "last_activity_date": last_activity,
        "evidence_title": aggregate.evidence_title,
        "evidence_source": aggregate.evidence_source,
        "inactivity_days": inactivity_days(last_activity, now),
    }
    if not existing.service_name:
        updates["service_name"] = aggregate.service_name
    if existing.category is None:
        updates["category"] = aggregate.category

    return existing.model_copy(update=updates)


def merge_into_store(
    user_id: str,
    aggregates: Sequence[DiscoveredDomain],
    store: AccountStore,
    *,
    now: Optional[datetime] = None,
    max_workers: int = 1,
) -> MergeOutcome:
    """
    Lookup-then-upsert every aggregate against the account store.

    Domains are independent, so they may be merged on a thread pool; each
    domain is handled by exactly one worker. A store failure for one domain is
    counted and the rest of the batch continues.
    """
    now = as_utc(now or datetime.now(timezone.utc))

    def merge_one(aggregate: DiscoveredDomain) -> Tuple[DiscoveredDomain, Optional[Account], bool]:
        try:
            existing = store.find_by_user_and_domain(user_id, aggregate.domain)
            merged = merge_account(existing, aggregate, user_id=user_id, now=now)
            return aggregate, store.upsert(merged), existing is None
        except AccountStoreError as exc:
            logger.warning("store failure user=%s domain=%s: %s", user_id, aggregate.domain, exc)
            return aggregate, None, False

    if max_workers > 1 and len(aggregates) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            results = list(pool.map(merge_one, aggregates))
    else:
        results = [merge_one(a) for a in aggregates]

    outcome = MergeOutcome()
    for aggregate, saved, created in results:
        if saved is None:
            outcome.store_errors += 1
            outcome.failed_domains.append(aggregate.domain)
            continue
        outcome.accounts.append(saved)
        if created:
            outcome.created += 1
        else:
            outcome.updated += 1

    logger.info(
        "merged user=%s domains=%d created=%d updated=%d store_errors=%d",
        user_id,
        len(aggregates),
        outcome.created,
        outcome.updated,
        outcome.store_errors,
    )
    return outcome
