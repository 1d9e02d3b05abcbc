from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from privacy_footprint.models import AccountCategory
from privacy_footprint.rules.core import MailItem


class BaseRule(ABC):
    """
    Base class for subject category rules.

    A rule owns one AccountCategory and decides whether a mail belongs to it.
    Evaluation order is driven by `priority`; the first matching rule wins.
    """

    name: str = "base_rule"

    # Higher runs earlier.
    priority: int = 0

    category: AccountCategory = AccountCategory.OTHER

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, priority={self.priority})"

    # --- Helpers (None-safe, case-insensitive) ---

    def norm(self, s: str | None) -> str:
        """Normalize text for matching (None-safe, lowercased)."""
        return (s or "").lower()

    def subject(self, mail: MailItem) -> str:
        return self.norm(mail.subject)

    def first_needle(self, text: str | None, needles: Sequence[str]) -> str | None:
        """Return the first needle found as a substring of text, if any."""
        t = self.norm(text)
        for n in needles:
            if n.lower() in t:
                return n
        return None

    # --- Rule API ---

    @abstractmethod
    def match(self, mail: MailItem) -> tuple[bool, str]:
        """Return (matched, reason)."""
        raise NotImplementedError


class SubjectKeywordRule(BaseRule):
    """Matches when the subject contains any of `keywords`."""

    keywords: Sequence[str] = ()

    def match(self, mail: MailItem) -> tuple[bool, str]:
        hit = self.first_needle(self.subject(mail), self.keywords)
        if hit is None:
            return False, ""
        return True, f"subject contains {hit!r}"
