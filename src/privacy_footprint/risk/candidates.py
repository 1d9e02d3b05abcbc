from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from privacy_footprint.models import EvidenceCandidate, RiskCategory
from privacy_footprint.parsing.text import normalize_text
from privacy_footprint.risk.taxonomy import RiskTaxonomy, default_taxonomy

MAX_CANDIDATES_PER_CATEGORY = 30


def score_sentence(sentence: str, cues: Sequence[str]) -> int:
    """
    Number of distinct cues occurring in the sentence.

    Matching runs on the normalized form; the candidate keeps the sentence
    verbatim so evidence quotes the policy exactly.
    """
    text = normalize_text(sentence)
    return sum(1 for cue in set(cues) if cue in text)


def build_candidates(
    sentences: Sequence[str],
    taxonomy: Optional[RiskTaxonomy] = None,
    limit: int = MAX_CANDIDATES_PER_CATEGORY,
) -> Dict[RiskCategory, List[EvidenceCandidate]]:
    """
    Rank input sentences per risk category by distinct cue hits.

    Only sentences with at least one hit are kept, highest score first, ties in
    original order, at most `limit` per category. Categories without any hit
    are left out. Candidate text is the input sentence verbatim.
    """
    taxonomy = taxonomy or default_taxonomy()
    result: Dict[RiskCategory, List[EvidenceCandidate]] = {}

    for category in RiskCategory:
        cues = taxonomy.cues_for(category)
        if not cues:
            continue

        scored: List[EvidenceCandidate] = []
        for index, sentence in enumerate(sentences):
            score = score_sentence(sentence, cues)
            if score > 0:
                scored.append(EvidenceCandidate(sentence_index=index, text=sentence, score=score))
        if not scored:
            continue

        # sorted() is stable, so equal scores keep sentence order.
        scored = sorted(scored, key=lambda c: c.score, reverse=True)
        result[category] = scored[:limit]

    return result
