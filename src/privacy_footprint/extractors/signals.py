from __future__ import annotations

import re
from email.utils import parseaddr
from typing import Optional

from privacy_footprint.models import AccountCategory, EmailSignal
from privacy_footprint.rules.classification import classify_subject

_HTTP_UNSUB_RE = re.compile(r"<\s*https?://([^/?#>:\s]+)", re.IGNORECASE)
_MAILTO_UNSUB_RE = re.compile(r"<\s*mailto:([^>?\s]+@[^>?\s]+)", re.IGNORECASE)
_HOSTNAME_RE = re.compile(r"^[a-z0-9](?:[a-z0-9-]*[a-z0-9])?(?:\.[a-z0-9](?:[a-z0-9-]*[a-z0-9])?)*$")

_BRACKET_NAME_RE = re.compile(r"\[([^\]]+)\]")
_WELCOME_NAME_RE = re.compile(r"welcome to\s+([^,.\n!?]+)", re.IGNORECASE)
# "토스 회원가입을 환영합니다" -> "토스"
_SIGNUP_NAME_RE = re.compile(r"([^\s,.\n\[\]]+)\s+(?:회원가입|가입)")


def _clean_host(value: str) -> Optional[str]:
    host = value.strip().strip(">").strip().rstrip(".").lower()
    if not host:
        return None
    # Internationalized names are kept in their punycode (ASCII) form.
    try:
        host = host.encode("idna").decode("ascii")
    except UnicodeError:
        return None
    if not _HOSTNAME_RE.match(host):
        return None
    return host


def domain_from_address(address: Optional[str]) -> Optional[str]:
    """
    Domain part of an e-mail address, lower-cased.
    Accepts display-name forms ("Name <a@b.com>"). None if malformed.
    """
    if not address or "@" not in address:
        return None
    # parseaddr handles display names; fall back to the raw value for odd inputs.
    addr = parseaddr(address)[1] or address
    if "@" not in addr:
        return None
    return _clean_host(addr.rsplit("@", 1)[1])


def domain_from_unsubscribe_header(header: Optional[str]) -> Optional[str]:
    """
    Domain from a List-Unsubscribe header. An HTTP(S) URL wins over mailto:.
    """
    if not header:
        return None

    http_match = _HTTP_UNSUB_RE.search(header)
    if http_match:
        host = _clean_host(http_match.group(1))
        if host:
            return host

    mailto_match = _MAILTO_UNSUB_RE.search(header)
    if mailto_match:
        return domain_from_address(mailto_match.group(1))

    return None


def resolve_domain(signal: EmailSignal) -> Optional[str]:
    """Sender domain first; the unsubscribe header only when the sender yields nothing."""
    return domain_from_address(signal.from_address) or domain_from_unsubscribe_header(
        signal.unsubscribe_header
    )


def service_name_from_subject(subject: Optional[str]) -> Optional[str]:
    """
    Service name from a subject line: "[Name]" first, then
    "Welcome to Name" / "Name 가입" / "Name 회원가입". None if nothing fits.
    """
    if not subject:
        return None

    for pattern in (_BRACKET_NAME_RE, _WELCOME_NAME_RE, _SIGNUP_NAME_RE):
        match = pattern.search(subject)
        if match:
            name = match.group(1).strip()
            if name:
                return name

    return None


def categorize(subject: Optional[str], domain: Optional[str] = None) -> AccountCategory:
    return classify_subject(subject, domain).category
