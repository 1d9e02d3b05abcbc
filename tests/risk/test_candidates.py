from __future__ import annotations

from privacy_footprint.models import RiskCategory
from privacy_footprint.risk.candidates import MAX_CANDIDATES_PER_CATEGORY, build_candidates, score_sentence
from privacy_footprint.risk.taxonomy import parse_taxonomy


def _taxonomy(cues: list[str]):
    return parse_taxonomy({"categories": {"third_party_sharing": {"cues": cues}}})


def test_build_candidates_examples() -> None:
    sentences = ["A사는 제3자에게 정보를 제공한다.", "보관 기간은 영구적이다."]

    result = build_candidates(sentences)

    sharing = result[RiskCategory.THIRD_PARTY_SHARING]
    assert sharing[0].text == "A사는 제3자에게 정보를 제공한다."
    assert sharing[0].sentence_index == 0
    assert sharing[0].score >= 1
    assert [c.text for c in result[RiskCategory.LONG_RETENTION]] == ["보관 기간은 영구적이다."]


def test_build_candidates_never_returns_sentences_without_cues() -> None:
    sentences = ["회사는 서비스 화면을 개선합니다.", "개인정보를 제3자에게 제공합니다."]

    result = build_candidates(sentences)

    for candidates in result.values():
        for candidate in candidates:
            assert candidate.score > 0
            assert candidate.text != "회사는 서비스 화면을 개선합니다."


def test_score_counts_distinct_cues_only() -> None:
    cues = ("share", "partner")

    assert score_sentence("We share, share and share again.", cues) == 1
    assert score_sentence("We SHARE data with each partner.", cues) == 2
    assert score_sentence("Nothing relevant here.", cues) == 0


def test_build_candidates_sorts_by_score_with_stable_ties() -> None:
    taxonomy = _taxonomy(["share", "partner", "sell"])
    sentences = [
        "We share data.",                           # 1
        "We share data with partner firms.",        # 2
        "Unrelated sentence.",                      # 0
        "We may sell it.",                          # 1
        "We share and sell data to partners.",      # 3
    ]

    ranked = build_candidates(sentences, taxonomy=taxonomy)[RiskCategory.THIRD_PARTY_SHARING]

    assert [(c.sentence_index, c.score) for c in ranked] == [(4, 3), (1, 2), (0, 1), (3, 1)]


def test_build_candidates_caps_each_category() -> None:
    taxonomy = _taxonomy(["share"])
    sentences = [f"Sentence {i} mentions share." for i in range(45)]

    ranked = build_candidates(sentences, taxonomy=taxonomy)[RiskCategory.THIRD_PARTY_SHARING]

    assert len(ranked) == MAX_CANDIDATES_PER_CATEGORY == 30
    assert [c.sentence_index for c in ranked] == list(range(30))


def test_build_candidates_without_cues_or_hits_is_empty() -> None:
    assert build_candidates(["We share data."], taxonomy=parse_taxonomy({})) == {}
    assert build_candidates([]) == {}


def test_build_candidates_is_deterministic() -> None:
    sentences = ["개인정보는 해외 서버로 이전됩니다.", "마케팅 정보 수신에 동의합니다.", "위탁 업체 목록을 안내합니다."]

    assert build_candidates(sentences) == build_candidates(sentences)


def test_score_sentence_matches_across_whitespace_runs() -> None:
    assert score_sentence("Data goes to a Third \n  Party processor.", ["third party"]) == 1
