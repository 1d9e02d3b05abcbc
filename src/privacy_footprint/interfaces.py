from __future__ import annotations

from typing import TYPE_CHECKING, List, Mapping, Optional, Protocol, Sequence

from privacy_footprint.models import EmailSignal, EvidenceCandidate, RiskCategory

if TYPE_CHECKING:
    from privacy_footprint.risk.classifier import ClassifierOutput
    from privacy_footprint.storage.accounts import Account
    from privacy_footprint.storage.analyses import PolicyAnalysis


class Mailbox(Protocol):
    def search(self, queries: Sequence[str], limit: int) -> List[str]: ...
    def fetch_metadata(self, message_id: str) -> EmailSignal: ...


class AccountStore(Protocol):
    def find_by_user_and_domain(self, user_id: str, domain: str) -> Optional["Account"]: ...
    def upsert(self, account: "Account") -> "Account": ...


class AnalysisStore(Protocol):
    def create(self, analysis: "PolicyAnalysis") -> "PolicyAnalysis": ...
    def find_by_hash(self, user_id: str, policy_hash: str) -> Optional["PolicyAnalysis"]: ...


class PolicySource(Protocol):
    def fetch_text(self, url: str) -> str: ...


class RiskClassifier(Protocol):
    model: str

    def classify(
        self,
        service_name: str,
        candidates: Mapping[RiskCategory, Sequence[EvidenceCandidate]],
    ) -> "ClassifierOutput": ...
