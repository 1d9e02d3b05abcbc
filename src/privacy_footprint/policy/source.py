from __future__ import annotations

import requests

from privacy_footprint.config.paths import POLICY_FETCH_TIMEOUT
from privacy_footprint.errors import PolicySourceError
from privacy_footprint.observability.logging import get_logger
from privacy_footprint.parsing.text import strip_markup

logger = get_logger(__name__)

USER_AGENT = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7)"


class HttpPolicySource:
    """Fetches a policy page over HTTP(S) and returns its text content."""

    def __init__(self, timeout: int = POLICY_FETCH_TIMEOUT, session: requests.Session | None = None):
        self.timeout = timeout
        self._session = session or requests.Session()

    def fetch_text(self, url: str) -> str:
        if not url.lower().startswith(("http://", "https://")):
            raise PolicySourceError(f"Unsupported policy URL: {url}")
        try:
            response = self._session.get(url, timeout=self.timeout, headers={"User-Agent": USER_AGENT})
            response.raise_for_status()
        except requests.RequestException as exc:
            raise PolicySourceError(f"Cannot fetch policy from {url}: {exc}") from exc

        text = strip_markup(response.text)
        logger.info("fetched policy url=%s chars=%d", url, len(text))
        return text
