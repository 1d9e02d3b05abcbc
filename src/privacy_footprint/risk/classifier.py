from __future__ import annotations

import json
import os
from typing import Any, Dict, List, Mapping, Optional, Sequence

from openai import OpenAI, OpenAIError
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from privacy_footprint.config.paths import OPENAI_MODEL
from privacy_footprint.errors import ClassifierError
from privacy_footprint.models import EvidenceCandidate, RiskCategory, RiskLevel
from privacy_footprint.observability.logging import get_logger
from privacy_footprint.storage.analyses import QAAnswer

logger = get_logger(__name__)

PROMPT_VERSION = "2.0"

QA_QUESTIONS = (
    "이 약관을 동의하면 내 정보가 어디로 갈 수 있어?",
    "탈퇴하면 언제 삭제돼?",
    "마케팅 수신 거부할 수 있어?",
)

MIN_EVIDENCE_SENTENCES = 2
MAX_EVIDENCE_SENTENCES = 5


class ClassifiedFinding(BaseModel):
    model_config = ConfigDict(extra="forbid")

    flag: RiskCategory
    sentence_indexes: List[int]
    confidence: int = Field(ge=0, le=100)


class ClassifierOutput(BaseModel):
    """What a risk classifier returns: evidence as candidate indexes, never as free text."""

    model_config = ConfigDict(extra="forbid")

    summary: str
    risk_level: RiskLevel
    findings: List[ClassifiedFinding]
    qa_answers: List[QAAnswer]


# Structured Outputs (JSON Schema) so parsing is reliable
OUTPUT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "summary": {"type": "string"},
        "risk_level": {"type": "string", "enum": [level.value for level in RiskLevel]},
        "findings": {
            "type": "array",
            "items": {
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    "flag": {"type": "string", "enum": [c.value for c in RiskCategory]},
                    "sentence_indexes": {"type": "array", "items": {"type": "integer"}},
                    "confidence": {"type": "integer"},
                },
                "required": ["flag", "sentence_indexes", "confidence"],
            },
        },
        "qa_answers": {
            "type": "array",
            "items": {
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    "question": {"type": "string", "enum": list(QA_QUESTIONS)},
                    "answer": {"type": "string"},
                },
                "required": ["question", "answer"],
            },
        },
    },
    "required": ["summary", "risk_level", "findings", "qa_answers"],
}

SYSTEM_PROMPT = (
    "당신은 개인정보 보호 법률 전문가입니다. "
    "약관에서 미리 추출된 후보 문장만 보고 개인정보 처리 위험을 판단합니다. "
    "근거는 반드시 후보 문장의 번호로만 고르고, 문장을 새로 쓰거나 바꾸지 마세요. "
    f"해당하는 위험 신호마다 {MIN_EVIDENCE_SENTENCES}~{MAX_EVIDENCE_SENTENCES}개의 번호와 "
    "0~100 사이의 확신도를 주고, 근거가 부족한 신호는 빼세요. "
    "요약은 60자 이내 한국어 한 줄, 전체 위험도는 low, medium, high 중 하나입니다. "
    "다음 세 질문에 모두 쉬운 한국어로 답하세요: " + " / ".join(QA_QUESTIONS)
)


def build_user_prompt(
    service_name: str,
    candidates: Mapping[RiskCategory, Sequence[EvidenceCandidate]],
) -> str:
    lines = [f"서비스: {service_name or '서비스'}", "", "위험 신호별 후보 문장 ([번호] 문장):"]
    for category in RiskCategory:
        offered = candidates.get(category) or []
        if not offered:
            continue
        lines.append("")
        lines.append(f"## {category.value}")
        for candidate in offered:
            lines.append(f"[{candidate.sentence_index}] {candidate.text}")
    return "\n".join(lines)


class OpenAIRiskClassifier:
    """Risk classifier backed by the OpenAI Responses API."""

    def __init__(self, model: str = OPENAI_MODEL, client: Optional[OpenAI] = None):
        self.model = model
        self._client = client

    @staticmethod
    def is_enabled() -> bool:
        return bool(os.getenv("OPENAI_API_KEY"))

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            if not self.is_enabled():
                raise ClassifierError("OpenAI API key not configured")
            self._client = OpenAI()
        return self._client

    def classify(
        self,
        service_name: str,
        candidates: Mapping[RiskCategory, Sequence[EvidenceCandidate]],
    ) -> ClassifierOutput:
        try:
            resp = self.client.responses.create(
                model=self.model,
                input=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_user_prompt(service_name, candidates)},
                ],
                text={
                    "format": {
                        "type": "json_schema",
                        "name": "policy_risk_classification",
                        "strict": True,
                        "schema": OUTPUT_SCHEMA,
                    }
                },
                temperature=0.3,
            )
        except OpenAIError as exc:
            raise ClassifierError(f"Risk classification failed: {exc}") from exc

        try:
            data = json.loads(resp.output_text)
            output = ClassifierOutput.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as exc:
            raise ClassifierError(f"Unparsable classifier output: {exc}") from exc

        logger.info(
            "classified service=%r model=%s flags=%d risk_level=%s",
            service_name,
            self.model,
            len(output.findings),
            output.risk_level.value,
        )
        return output
