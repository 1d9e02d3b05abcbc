from __future__ import annotations

import time
from typing import List, Mapping, Optional, Sequence, Tuple

from privacy_footprint.errors import ClassificationContractError
from privacy_footprint.interfaces import AnalysisStore, PolicySource, RiskClassifier
from privacy_footprint.models import EvidenceCandidate, RiskCategory, RiskLevel
from privacy_footprint.observability.logging import get_logger
from privacy_footprint.parsing.text import split_sentences, strip_markup
from privacy_footprint.risk.candidates import build_candidates
from privacy_footprint.risk.classifier import (
    MAX_EVIDENCE_SENTENCES,
    MIN_EVIDENCE_SENTENCES,
    PROMPT_VERSION,
    QA_QUESTIONS,
    ClassifierOutput,
)
from privacy_footprint.storage.analyses import (
    AnalysisMeta,
    PolicyAnalysis,
    QAAnswer,
    RiskEvidence,
    hash_policy_text,
)

logger = get_logger(__name__)

MIN_POLICY_CHARS = 100
NO_SIGNAL_SUMMARY = "No privacy risk signal found in the policy text."

CandidateMap = Mapping[RiskCategory, Sequence[EvidenceCandidate]]


def validate_classification(
    output: ClassifierOutput,
    candidates: CandidateMap,
) -> Tuple[List[RiskEvidence], List[QAAnswer]]:
    """
    Check classifier output against the offered candidates and turn chosen
    indexes back into the exact candidate sentences.

    Raises ClassificationContractError when a finding cites a sentence that was
    not offered for its category, cites too few or too many sentences, repeats
    a category, or when the Q&A does not answer exactly the fixed questions.
    """
    evidence_by_flag = {}
    for finding in output.findings:
        if finding.flag in evidence_by_flag:
            raise ClassificationContractError(f"Duplicate finding for {finding.flag.value}")

        offered = {c.sentence_index: c.text for c in candidates.get(finding.flag) or []}
        if not offered:
            raise ClassificationContractError(f"No candidates were offered for {finding.flag.value}")

        indexes = list(dict.fromkeys(finding.sentence_indexes))
        foreign = [i for i in indexes if i not in offered]
        if foreign:
            raise ClassificationContractError(
                f"{finding.flag.value} cites sentences outside its candidates: {foreign}"
            )

        minimum = min(MIN_EVIDENCE_SENTENCES, len(offered))
        if not minimum <= len(indexes) <= MAX_EVIDENCE_SENTENCES:
            raise ClassificationContractError(
                f"{finding.flag.value} cites {len(indexes)} sentences, "
                f"expected {minimum}..{MAX_EVIDENCE_SENTENCES}"
            )

        evidence_by_flag[finding.flag] = RiskEvidence(
            flag=finding.flag,
            sentences=[offered[i] for i in indexes],
            confidence=finding.confidence,
        )

    answers = {qa.question: qa for qa in output.qa_answers}
    if len(output.qa_answers) != len(QA_QUESTIONS) or set(answers) != set(QA_QUESTIONS):
        raise ClassificationContractError("Q&A must answer exactly the fixed questions")

    evidence = [evidence_by_flag[c] for c in RiskCategory if c in evidence_by_flag]
    return evidence, [answers[q] for q in QA_QUESTIONS]


def analyze_policy_text(
    user_id: str,
    text: str,
    *,
    classifier: RiskClassifier,
    service_name: Optional[str] = None,
    service_url: Optional[str] = None,
    policy_source: str = "text",
    store: Optional[AnalysisStore] = None,
    reuse_existing: bool = True,
) -> PolicyAnalysis:
    """
    Run one policy analysis: split the text into sentences, build the
    candidate map, let the classifier choose among the candidates, validate
    its choice and persist the result.

    A policy without any candidate sentence is a valid "no risk signal"
    analysis; the classifier is not called for it.
    """
    text = (text or "").strip()
    if len(text) < MIN_POLICY_CHARS:
        raise ValueError(f"Policy text required (min {MIN_POLICY_CHARS} characters)")

    started = time.monotonic()
    policy_hash = hash_policy_text(text)

    if store is not None and reuse_existing:
        existing = store.find_by_hash(user_id, policy_hash)
        if existing is not None:
            logger.info("reusing analysis id=%s for policy_hash=%s", existing.id, policy_hash[:12])
            return existing

    service_name = service_name or service_url or "Unnamed Service"
    sentences = split_sentences(strip_markup(text))
    candidates = build_candidates(sentences)
    logger.info(
        "policy sentences=%d candidate_categories=%d service=%r",
        len(sentences),
        len(candidates),
        service_name,
    )

    if candidates:
        output = classifier.classify(service_name, candidates)
        evidence, qa_answers = validate_classification(output, candidates)
        summary = output.summary
        risk_level = output.risk_level
        model = classifier.model
    else:
        evidence, qa_answers = [], []
        summary = NO_SIGNAL_SUMMARY
        risk_level = RiskLevel.LOW
        model = None

    analysis = PolicyAnalysis(
        user_id=user_id,
        service_name=service_name,
        service_url=service_url,
        policy_source=policy_source,
        policy_hash=policy_hash,
        summary=summary,
        risk_flags=[e.flag for e in evidence],
        evidence=evidence,
        qa_answers=qa_answers,
        risk_level=risk_level,
        analysis_meta=AnalysisMeta(
            model=model,
            prompt_version=PROMPT_VERSION,
            processing_time_ms=int((time.monotonic() - started) * 1000),
        ),
    )

    if store is not None:
        analysis = store.create(analysis)
    return analysis


def analyze_policy_url(
    user_id: str,
    url: str,
    *,
    source: PolicySource,
    classifier: RiskClassifier,
    service_name: Optional[str] = None,
    store: Optional[AnalysisStore] = None,
    reuse_existing: bool = True,
) -> PolicyAnalysis:
    text = source.fetch_text(url)
    return analyze_policy_text(
        user_id,
        text,
        classifier=classifier,
        service_name=service_name,
        service_url=url,
        policy_source="url",
        store=store,
        reuse_existing=reuse_existing,
    )
