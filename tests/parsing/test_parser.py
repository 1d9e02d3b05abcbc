from __future__ import annotations

from datetime import datetime, timezone

from privacy_footprint.parsing.parser import parse_mail_date, parse_message_metadata


def test_parse_message_metadata_reads_headers_case_insensitively() -> None:
    message = {
        "id": "m-1",
        "payload": {
            "headers": [
                {"name": "FROM", "value": "ACME <hello@acme.com>"},
                {"name": "subject", "value": "[ACME] Welcome"},
                {"name": "Date", "value": "Tue, 10 Jan 2023 09:30:00 +0900"},
                {"name": "List-Unsubscribe", "value": "<https://acme.com/unsub>"},
                {"name": "X-Ignored", "value": "whatever"},
            ]
        },
    }

    signal = parse_message_metadata(message)

    assert signal.message_id == "m-1"
    assert signal.from_address == "ACME <hello@acme.com>"
    assert signal.subject == "[ACME] Welcome"
    assert signal.date_sent == "Tue, 10 Jan 2023 09:30:00 +0900"
    assert signal.unsubscribe_header == "<https://acme.com/unsub>"


def test_parse_message_metadata_tolerates_missing_headers() -> None:
    signal = parse_message_metadata({"id": "m-2", "payload": {}})

    assert signal.from_address is None
    assert signal.subject is None
    assert signal.date_sent is None


def test_parse_mail_date_converts_to_utc() -> None:
    parsed = parse_mail_date("Tue, 10 Jan 2023 09:30:00 +0900")

    assert parsed == datetime(2023, 1, 10, 0, 30, tzinfo=timezone.utc)
    assert parsed.tzinfo == timezone.utc


def test_parse_mail_date_accepts_iso_dates() -> None:
    assert parse_mail_date("2023-06-01") == datetime(2023, 6, 1, tzinfo=timezone.utc)


def test_parse_mail_date_returns_none_for_garbage() -> None:
    assert parse_mail_date("not a date") is None
    assert parse_mail_date("") is None
    assert parse_mail_date(None) is None
