from __future__ import annotations
from dataclasses import dataclass
from typing import Protocol, Optional

from privacy_footprint.models import AccountCategory


@dataclass(frozen=True)
class MailItem:
    subject: str
    domain: Optional[str] = None


@dataclass(frozen=True)
class CategoryMatch:
    category: AccountCategory
    rule_name: str
    reason: str = ""


class Rule(Protocol):
    name: str
    priority: int
    category: AccountCategory

    def match(self, mail: MailItem) -> tuple[bool, str]: ...
