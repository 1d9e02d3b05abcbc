from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from google.auth.exceptions import TransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from privacy_footprint.config.paths import MAIL_SEARCH_PERIOD_MONTHS
from privacy_footprint.errors import MailboxError
from privacy_footprint.models import EmailSignal
from privacy_footprint.observability.logging import get_logger
from privacy_footprint.parsing.parser import parse_message_metadata

logger = get_logger(__name__)

# Discovery only ever reads header metadata.
SCOPES = ["https://www.googleapis.com/auth/gmail.readonly"]

METADATA_HEADERS = ["From", "Subject", "Date", "List-Unsubscribe"]

_BASE_QUERIES = (
    "subject:(가입 OR 회원가입 OR verify OR welcome OR confirmation)",
    "subject:(영수증 OR 결제 OR 주문 OR invoice OR receipt OR order)",
    "subject:(인증 OR 비밀번호 OR password OR code OR verify)",
)


def default_search_queries(months: int = MAIL_SEARCH_PERIOD_MONTHS) -> List[str]:
    """Signup, receipt and authentication subject queries limited to the last `months`."""
    return [f"{q} newer_than:{months}m" for q in _BASE_QUERIES]


@dataclass(frozen=True)
class GmailClientConfig:
    # Path to OAuth client credentials downloaded from Google Cloud Console.
    credentials_path: Path
    # Token cache will be created here after first login.
    token_path: Path
    # Gmail userId, "me" refers to the authenticated user.
    user_id: str = "me"


class GmailClient:
    def __init__(self, cfg: GmailClientConfig):
        self._cfg = cfg
        self._creds: Optional[Credentials] = None
        self._service = None

    def connect(self) -> None:
        """Create an authenticated Gmail API service client."""
        creds = None

        if self._cfg.token_path.exists():
            creds = Credentials.from_authorized_user_file(str(self._cfg.token_path), SCOPES)

        # If there are no (valid) credentials available, let the user log in.
        if not creds or not creds.valid:
            if creds and creds.expired and creds.refresh_token:
                creds.refresh(Request())
            else:
                flow = InstalledAppFlow.from_client_secrets_file(
                    str(self._cfg.credentials_path),
                    SCOPES,
                )
                creds = flow.run_local_server(port=0)

            # Save the credentials for the next run.
            self._cfg.token_path.parent.mkdir(parents=True, exist_ok=True)
            self._cfg.token_path.write_text(creds.to_json(), encoding="utf-8")

        self._creds = creds
        self._service = build("gmail", "v1", credentials=creds)

    @property
    def service(self):
        if self._service is None:
            raise RuntimeError("GmailClient is not connected. Call connect() first.")
        return self._service

    def list_messages(self, query: str = "", max_results: int = 10) -> List[str]:
        """
        List message IDs matching a Gmail search query.
        Example query: 'subject:(welcome) newer_than:24m'
        """
        resp = (
            self.service.users()
            .messages()
            .list(userId=self._cfg.user_id, q=query, maxResults=max_results, fields="messages(id)")
            .execute()
        )
        msgs = resp.get("messages", [])
        return [m["id"] for m in msgs]

    def get_message_metadata(self, message_id: str) -> Dict[str, Any]:
        """Fetch only the headers discovery needs."""
        return (
            self.service.users()
            .messages()
            .get(
                userId=self._cfg.user_id,
                id=message_id,
                format="metadata",
                metadataHeaders=METADATA_HEADERS,
            )
            .execute()
        )


class GmailMailbox:
    """Mailbox collaborator on top of a connected GmailClient."""

    def __init__(self, client: GmailClient):
        self._client = client

    def search(self, queries: Sequence[str], limit: int) -> List[str]:
        """Run every query, keep each id once in first-seen order, cap at `limit`."""
        seen: Dict[str, None] = {}
        for query in queries:
            try:
                ids = self._client.list_messages(query=query, max_results=limit)
            except (HttpError, TransportError, OSError) as exc:
                raise MailboxError(f"Gmail search failed for {query!r}: {exc}") from exc
            for message_id in ids:
                seen.setdefault(message_id, None)
        return list(seen)[:limit]

    def fetch_metadata(self, message_id: str) -> EmailSignal:
        try:
            message = self._client.get_message_metadata(message_id)
        except (HttpError, TransportError, OSError) as exc:
            raise MailboxError(f"Message fetch failed: {exc}", message_id=message_id) from exc
        try:
            return parse_message_metadata(message)
        except (AttributeError, KeyError, TypeError) as exc:
            raise MailboxError(f"Malformed message payload: {exc!r}", message_id=message_id) from exc
