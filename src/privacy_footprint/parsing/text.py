from __future__ import annotations

import re
from typing import List

from bs4 import BeautifulSoup

_WS_RE = re.compile(r"\s+")
# Greedy scan: a run ending in terminal punctuation, or a trailing fragment without one.
_SENTENCE_RE = re.compile(r"[^.!?]*[.!?]+|[^.!?]+$")

# Never part of the readable policy text.
_NON_CONTENT_TAGS = ["script", "style", "head", "noscript", "template"]

MIN_SENTENCE_CHARS = 10


def strip_markup(raw: str) -> str:
    """
    Visible text of an HTML document, whitespace collapsed.

    script/style/head are dropped, attributes never leak into the text and
    adjacent block elements are separated by a space. Plain text passes
    through unchanged apart from whitespace.
    """
    if not raw:
        return ""
    soup = BeautifulSoup(raw, "html.parser")
    for tag in soup(_NON_CONTENT_TAGS):
        tag.decompose()
    text = soup.get_text(separator=" ")
    return _WS_RE.sub(" ", text).strip()


def normalize_text(raw: str) -> str:
    """Lower-case, collapse whitespace runs to a single space, trim."""
    return _WS_RE.sub(" ", (raw or "").lower()).strip()


def split_sentences(text: str) -> List[str]:
    """
    Split on '.', '!' and '?'. A trailing fragment without terminal
    punctuation is its own sentence. Sentences of MIN_SENTENCE_CHARS or
    fewer characters (after trimming) are dropped as noise.
    """
    if not text:
        return []
    sentences = (m.strip() for m in _SENTENCE_RE.findall(text))
    return [s for s in sentences if len(s) > MIN_SENTENCE_CHARS]
