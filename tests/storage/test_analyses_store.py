from __future__ import annotations

import shutil
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from pydantic import ValidationError

from privacy_footprint.errors import AnalysisStoreError
from privacy_footprint.models import RiskCategory, RiskLevel
from privacy_footprint.storage.analyses import (
    JsonAnalysisStore,
    PolicyAnalysis,
    RiskEvidence,
    hash_policy_text,
)

BASE = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _analysis(user_id: str = "u1", text: str = "policy text", minutes: int = 0) -> PolicyAnalysis:
    return PolicyAnalysis(
        user_id=user_id,
        service_name="ACME",
        policy_source="text",
        policy_hash=hash_policy_text(text),
        risk_flags=[RiskCategory.THIRD_PARTY_SHARING],
        evidence=[
            RiskEvidence(flag=RiskCategory.THIRD_PARTY_SHARING, sentences=["제3자에게 제공합니다."], confidence=80)
        ],
        risk_level=RiskLevel.MEDIUM,
        created_at=BASE + timedelta(minutes=minutes),
    )


def test_hash_policy_text_is_stable() -> None:
    assert hash_policy_text("abc") == hash_policy_text("abc")
    assert hash_policy_text("abc") != hash_policy_text("abd")
    assert len(hash_policy_text("abc")) == 64


def test_create_assigns_id_and_persists(tmp_path: Path) -> None:
    path = tmp_path / "analyses.json"
    created = JsonAnalysisStore(path).create(_analysis())

    reloaded = JsonAnalysisStore(path).get("u1", created.id)

    assert created.id
    assert reloaded == created


def test_get_is_scoped_to_owner() -> None:
    store = JsonAnalysisStore()
    created = store.create(_analysis())

    assert store.get("someone-else", created.id) is None


def test_history_is_newest_first_and_limited() -> None:
    store = JsonAnalysisStore()
    for minutes in (0, 10, 5):
        store.create(_analysis(text=f"text {minutes}", minutes=minutes))
    store.create(_analysis(user_id="u2"))

    history = store.history("u1", limit=2)

    assert [a.created_at for a in history] == [BASE + timedelta(minutes=10), BASE + timedelta(minutes=5)]


def test_find_by_hash_detects_duplicates() -> None:
    store = JsonAnalysisStore()
    created = store.create(_analysis(text="same policy"))

    assert store.find_by_hash("u1", hash_policy_text("same policy")) == created
    assert store.find_by_hash("u2", hash_policy_text("same policy")) is None
    assert store.find_by_hash("u1", hash_policy_text("other policy")) is None


def test_analysis_is_immutable_except_feedback() -> None:
    store = JsonAnalysisStore()
    created = store.create(_analysis())

    with pytest.raises(ValidationError):
        created.summary = "rewritten"

    updated = store.attach_feedback("u1", created.id, helpful=True, notes="clear")

    assert updated.user_feedback.helpful is True
    assert updated.user_feedback.notes == "clear"
    assert updated.evidence == created.evidence
    assert store.get("u1", created.id).user_feedback.helpful is True


def test_attach_feedback_to_missing_analysis_raises() -> None:
    with pytest.raises(KeyError):
        JsonAnalysisStore().attach_feedback("u1", "missing", helpful=False)


def test_analysis_rejects_unknown_fields() -> None:
    raw = _analysis().model_dump()
    raw["free_text_quote"] = "made up"

    with pytest.raises(ValidationError):
        PolicyAnalysis.model_validate(raw)


def test_evidence_confidence_is_bounded() -> None:
    with pytest.raises(ValidationError):
        RiskEvidence(flag=RiskCategory.SUBCONTRACTING, sentences=[], confidence=140)


def test_failed_create_leaves_no_record(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    store = JsonAnalysisStore(blocker / "analyses.json")
    analysis = _analysis(text="unsaved policy")

    with pytest.raises(AnalysisStoreError):
        store.create(analysis)

    assert store.find_by_hash("u1", analysis.policy_hash) is None
    assert store.history("u1") == []


def test_failed_feedback_keeps_previous_record(tmp_path: Path) -> None:
    state_dir = tmp_path / "state"
    store = JsonAnalysisStore(state_dir / "analyses.json")
    created = store.create(_analysis())

    shutil.rmtree(state_dir)
    state_dir.write_text("not a directory", encoding="utf-8")

    with pytest.raises(AnalysisStoreError):
        store.attach_feedback("u1", created.id, helpful=True)

    assert store.get("u1", created.id).user_feedback is None
