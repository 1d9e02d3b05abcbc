from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class AccountCategory(str, Enum):
    SIGNUP = "signup"
    RECEIPT = "receipt"
    AUTHENTICATION = "authentication"
    OTHER = "other"


class AccountStatus(str, Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"
    DELETED = "deleted"


class RiskCategory(str, Enum):
    THIRD_PARTY_SHARING = "third_party_sharing"
    INTERNATIONAL_TRANSFER = "international_transfer"
    SENSITIVE_DATA = "sensitive_data"
    LONG_RETENTION = "long_retention"
    MARKETING_CONSENT = "marketing_consent"
    PURPOSE_CHANGE = "purpose_change"
    SUBCONTRACTING = "subcontracting"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class EmailSignal:
    """Header metadata of one mailbox message; never persisted as-is."""
    message_id: str
    from_address: Optional[str]
    subject: Optional[str]
    date_sent: Optional[str]
    unsubscribe_header: Optional[str] = None


@dataclass
class DiscoveredDomain:
    """In-batch aggregate for one domain (not yet persisted)."""
    domain: str
    service_name: str
    category: AccountCategory
    first_seen: datetime
    last_activity: datetime
    evidence_title: str
    evidence_source: str


@dataclass(frozen=True)
class EvidenceCandidate:
    sentence_index: int
    text: str
    score: int
