from __future__ import annotations

import hashlib
import json
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from threading import RLock
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from privacy_footprint.errors import AnalysisStoreError
from privacy_footprint.models import RiskCategory, RiskLevel


def hash_policy_text(text: str) -> str:
    """Content hash used to spot repeated analyses of the same policy."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class RiskEvidence(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    flag: RiskCategory
    sentences: List[str]
    confidence: int = Field(ge=0, le=100)


class QAAnswer(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    question: str
    answer: str


class AnalysisMeta(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    model: Optional[str] = None
    prompt_version: str = "1.0"
    processing_time_ms: int = 0


class UserFeedback(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    helpful: Optional[bool] = None
    notes: Optional[str] = None


class PolicyAnalysis(BaseModel):
    """Immutable once written; only the feedback sub-record may be attached later."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: Optional[str] = None
    user_id: str
    service_name: str
    service_url: Optional[str] = None
    policy_source: Literal["url", "text"]
    policy_hash: str
    summary: str = ""
    risk_flags: List[RiskCategory] = Field(default_factory=list)
    evidence: List[RiskEvidence] = Field(default_factory=list)
    qa_answers: List[QAAnswer] = Field(default_factory=list)
    risk_level: RiskLevel = RiskLevel.LOW
    analysis_meta: AnalysisMeta = Field(default_factory=AnalysisMeta)
    user_feedback: Optional[UserFeedback] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def with_feedback(self, helpful: Optional[bool], notes: Optional[str] = None) -> "PolicyAnalysis":
        return self.model_copy(update={"user_feedback": UserFeedback(helpful=helpful, notes=notes)})


class JsonAnalysisStore:
    """PolicyAnalysis records in one JSON file (or memory when path is None)."""

    def __init__(self, path: Optional[Path] = None):
        self._path = path
        self._lock = RLock()
        self._analyses: Dict[str, PolicyAnalysis] = self._load()

    def _load(self) -> Dict[str, PolicyAnalysis]:
        if self._path is None or not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            items = [PolicyAnalysis.model_validate(item) for item in data.get("analyses") or []]
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            raise AnalysisStoreError(f"Cannot load analysis store {self._path}: {exc}") from exc
        return {a.id: a for a in items if a.id}

    def _save(self) -> None:
        if self._path is None:
            return
        payload = {"analyses": [a.model_dump(mode="json") for a in self._analyses.values()]}
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError as exc:
            raise AnalysisStoreError(f"Cannot write analysis store {self._path}: {exc}") from exc

    def create(self, analysis: PolicyAnalysis) -> PolicyAnalysis:
        stored = analysis.model_copy(update={"id": uuid.uuid4().hex})
        with self._lock:
            self._analyses[stored.id] = stored
            try:
                self._save()
            except AnalysisStoreError:
                del self._analyses[stored.id]
                raise
        return stored

    def get(self, user_id: str, analysis_id: str) -> Optional[PolicyAnalysis]:
        with self._lock:
            found = self._analyses.get(analysis_id)
        if found is None or found.user_id != user_id:
            return None
        return found

    def find_by_hash(self, user_id: str, policy_hash: str) -> Optional[PolicyAnalysis]:
        matches = [
            a for a in self.history(user_id, limit=None) if a.policy_hash == policy_hash
        ]
        return matches[0] if matches else None

    def history(self, user_id: str, limit: Optional[int] = 20) -> List[PolicyAnalysis]:
        """Analyses of one user, newest first."""
        with self._lock:
            owned = [a for a in self._analyses.values() if a.user_id == user_id]
        owned.sort(key=lambda a: a.created_at, reverse=True)
        return owned if limit is None else owned[:limit]

    def attach_feedback(
        self, user_id: str, analysis_id: str, helpful: Optional[bool], notes: Optional[str] = None
    ) -> PolicyAnalysis:
        with self._lock:
            current = self.get(user_id, analysis_id)
            if current is None:
                raise KeyError(f"Analysis not found: {analysis_id}")
            updated = current.with_feedback(helpful, notes)
            self._analyses[analysis_id] = updated
            try:
                self._save()
            except AnalysisStoreError:
                self._analyses[analysis_id] = current
                raise
        return updated
