from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from privacy_footprint.extractors.signals import (
    categorize,
    domain_from_address,
    resolve_domain,
    service_name_from_subject,
)
from privacy_footprint.models import DiscoveredDomain, EmailSignal
from privacy_footprint.observability.logging import get_logger
from privacy_footprint.parsing.parser import parse_mail_date

logger = get_logger(__name__)

EVIDENCE_TITLE_MAX_CHARS = 100


@dataclass
class Aggregation:
    """Result of one in-batch aggregation pass."""
    domains: List[DiscoveredDomain] = field(default_factory=list)
    signals: int = 0
    skipped_no_domain: int = 0
    skipped_bad_date: int = 0


def _evidence_title(subject: str | None) -> str:
    return (subject or "")[:EVIDENCE_TITLE_MAX_CHARS]


def _evidence_source(signal: EmailSignal, domain: str) -> str:
    # Only the sender's domain is kept, never the full address.
    return domain_from_address(signal.from_address) or domain


def aggregate_signals(signals: Iterable[EmailSignal]) -> Aggregation:
    """
    Fold a batch of per-message signals into one DiscoveredDomain per domain.

    The date range widens with every message of a domain regardless of arrival
    order. Evidence follows the newest message; name and category stay with the
    message that first introduced the domain. Messages without a domain or with
    an unparsable date are skipped.
    """
    result = Aggregation()
    by_domain: Dict[str, DiscoveredDomain] = {}

    for signal in signals:
        result.signals += 1

        domain = resolve_domain(signal)
        if not domain:
            result.skipped_no_domain += 1
            logger.debug("skip message_id=%s: no domain", signal.message_id)
            continue

        mail_date = parse_mail_date(signal.date_sent)
        if mail_date is None:
            result.skipped_bad_date += 1
            logger.debug("skip message_id=%s: unparsable date %r", signal.message_id, signal.date_sent)
            continue

        current = by_domain.get(domain)
        if current is None:
            current = DiscoveredDomain(
                domain=domain,
                service_name=service_name_from_subject(signal.subject) or domain,
                category=categorize(signal.subject, domain),
                first_seen=mail_date,
                last_activity=mail_date,
                evidence_title=_evidence_title(signal.subject),
                evidence_source=_evidence_source(signal, domain),
            )
            by_domain[domain] = current
            result.domains.append(current)
            continue

        if mail_date < current.first_seen:
            current.first_seen = mail_date
        if mail_date > current.last_activity:
            current.last_activity = mail_date
            current.evidence_title = _evidence_title(signal.subject)
            current.evidence_source = _evidence_source(signal, domain)

    logger.debug(
        "aggregated signals=%d domains=%d skipped_no_domain=%d skipped_bad_date=%d",
        result.signals,
        len(result.domains),
        result.skipped_no_domain,
        result.skipped_bad_date,
    )
    return result
