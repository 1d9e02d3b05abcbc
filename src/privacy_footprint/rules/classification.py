from __future__ import annotations

from typing import Optional, Sequence

from privacy_footprint.models import AccountCategory
from privacy_footprint.rules.BaseRule import BaseRule
from privacy_footprint.rules.core import CategoryMatch, MailItem, Rule
from privacy_footprint.rules.rules import AuthenticationRule, ReceiptRule, SignupRule

# Signup beats receipt beats authentication: a subject matching both
# "회원가입" and "영수증" is a signup.
DEFAULT_RULES: tuple[BaseRule, ...] = tuple(
    sorted(
        (SignupRule(), ReceiptRule(), AuthenticationRule()),
        key=lambda r: r.priority,
        reverse=True,
    )
)


def classify_subject(
    subject: Optional[str],
    domain: Optional[str] = None,
    rules: Sequence[Rule] = DEFAULT_RULES,
) -> CategoryMatch:
    """
    Run the category rules in priority order; the first match wins.
    No match yields AccountCategory.OTHER.
    """
    mail = MailItem(subject=subject or "", domain=domain)

    for rule in rules:
        matched, reason = rule.match(mail)
        if matched:
            return CategoryMatch(category=rule.category, rule_name=rule.name, reason=reason)

    return CategoryMatch(category=AccountCategory.OTHER, rule_name="no_fit", reason="No rule matched")
