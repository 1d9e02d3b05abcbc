from __future__ import annotations

import json
import os
from datetime import datetime
from pathlib import Path
from threading import RLock
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from privacy_footprint.errors import AccountStoreError
from privacy_footprint.models import AccountCategory, AccountStatus
from privacy_footprint.observability.logging import get_logger

logger = get_logger(__name__)


class Checklist(BaseModel):
    model_config = ConfigDict(extra="forbid")

    password_changed: bool = False
    two_factor_enabled: bool = False
    account_deleted: bool = False
    reviewed_terms: bool = False


class Account(BaseModel):
    """A service account discovered for one user, keyed by (user_id, service_domain)."""

    model_config = ConfigDict(extra="forbid")

    user_id: str
    service_domain: str
    service_name: str = ""
    category: Optional[AccountCategory] = None
    # Observed mail dates only, never wall-clock time.
    first_seen_date: Optional[datetime] = None
    last_activity_date: Optional[datetime] = None
    inactivity_days: Optional[int] = Field(default=None, ge=0)
    evidence_title: str = ""
    evidence_source: str = ""
    user_confirmed: bool = False
    checklist: Checklist = Field(default_factory=Checklist)
    status: AccountStatus = AccountStatus.ACTIVE
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("service_domain")
    @classmethod
    def _lowercase_domain(cls, value: str) -> str:
        value = value.strip().lower()
        if not value:
            raise ValueError("service_domain must not be empty")
        return value

    @model_validator(mode="after")
    def _seen_range(self) -> "Account":
        if (
            self.first_seen_date is not None
            and self.last_activity_date is not None
            and self.first_seen_date > self.last_activity_date
        ):
            raise ValueError("first_seen_date must not be after last_activity_date")
        return self

    @property
    def key(self) -> Tuple[str, str]:
        return (self.user_id, self.service_domain)


AccountLike = Union[Account, Mapping[str, Any]]


class JsonAccountStore:
    """
    Account store backed by one JSON file (or memory when path is None).

    (user_id, service_domain) is the primary key, so concurrent upserts for the
    same pair collapse into one record. All access goes through one lock.
    """

    def __init__(self, path: Optional[Path] = None):
        self._path = path
        self._lock = RLock()
        self._accounts: Dict[Tuple[str, str], Account] = self._load()

    # --- persistence ---

    def _load(self) -> Dict[Tuple[str, str], Account]:
        if self._path is None or not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise AccountStoreError(f"Cannot read account store {self._path}: {exc}") from exc

        accounts: Dict[Tuple[str, str], Account] = {}
        for item in data.get("accounts") or []:
            try:
                account = Account.model_validate(item)
            except ValidationError as exc:
                raise AccountStoreError(f"Invalid account record in {self._path}: {exc}") from exc
            accounts[account.key] = account
        return accounts

    def _save(self) -> None:
        if self._path is None:
            return
        payload = {
            "accounts": [
                self._accounts[key].model_dump(mode="json") for key in sorted(self._accounts)
            ]
        }
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError as exc:
            raise AccountStoreError(f"Cannot write account store {self._path}: {exc}") from exc

    @staticmethod
    def _validate(account: AccountLike) -> Account:
        raw = account.model_dump() if isinstance(account, Account) else dict(account)
        try:
            return Account.model_validate(raw)
        except ValidationError as exc:
            raise AccountStoreError(f"Rejected account record: {exc}") from exc

    # --- collaborator interface ---

    def find_by_user_and_domain(self, user_id: str, domain: str) -> Optional[Account]:
        with self._lock:
            found = self._accounts.get((user_id, domain.strip().lower()))
            return found.model_copy(deep=True) if found else None

    def upsert(self, account: AccountLike) -> Account:
        validated = self._validate(account)
        with self._lock:
            previous = self._accounts.get(validated.key)
            self._accounts[validated.key] = validated
            try:
                self._save()
            except AccountStoreError:
                # Keep memory consistent with what is on disk.
                if previous is None:
                    del self._accounts[validated.key]
                else:
                    self._accounts[validated.key] = previous
                raise
        return validated.model_copy(deep=True)

    # --- explicit user actions ---

    def list_accounts(self, user_id: str, status: Optional[AccountStatus] = None) -> List[Account]:
        with self._lock:
            found = [
                a.model_copy(deep=True)
                for key, a in sorted(self._accounts.items())
                if key[0] == user_id and (status is None or a.status == status)
            ]
        return found

    def _require(self, user_id: str, domain: str) -> Account:
        account = self.find_by_user_and_domain(user_id, domain)
        if account is None:
            raise KeyError(f"Account not found: {domain}")
        return account

    def confirm(self, user_id: str, domain: str) -> Account:
        with self._lock:
            account = self._require(user_id, domain)
            return self.upsert(account.model_copy(update={"user_confirmed": True}))

    def update_checklist(self, user_id: str, domain: str, **flags: Optional[bool]) -> Account:
        """Set the given checklist flags; flags passed as None stay unchanged."""
        unknown = set(flags) - set(Checklist.model_fields)
        if unknown:
            raise AccountStoreError(f"Unknown checklist fields: {sorted(unknown)}")
        with self._lock:
            account = self._require(user_id, domain)
            changes = {k: v for k, v in flags.items() if v is not None}
            checklist = account.checklist.model_copy(update=changes)
            return self.upsert(account.model_copy(update={"checklist": checklist}))

    def set_status(self, user_id: str, domain: str, status: AccountStatus) -> Account:
        status = AccountStatus(status)
        with self._lock:
            account = self._require(user_id, domain)
            logger.info("account status user=%s domain=%s %s -> %s", user_id, domain, account.status.value, status.value)
            return self.upsert(account.model_copy(update={"status": status}))
