from __future__ import annotations

from typing import Optional


class PrivacyFootprintError(Exception):
    """Base class for failures surfaced to callers."""


class MailboxError(PrivacyFootprintError):
    """Mailbox search or fetch failed."""

    def __init__(self, message: str, *, message_id: Optional[str] = None):
        super().__init__(message)
        self.message_id = message_id


class AccountStoreError(PrivacyFootprintError):
    """Account store unavailable, corrupt, or handed an invalid record."""


class AnalysisStoreError(PrivacyFootprintError):
    """Analysis store unavailable, corrupt, or handed an invalid record."""


class PolicySourceError(PrivacyFootprintError):
    """Policy document could not be fetched."""


class ClassifierError(PrivacyFootprintError):
    """Risk classifier call failed or returned unparsable output."""


class ClassificationContractError(PrivacyFootprintError):
    """Classifier output does not honour the candidate contract."""
