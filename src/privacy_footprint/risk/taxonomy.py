from __future__ import annotations

import json
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from privacy_footprint.config.paths import RISK_TAXONOMY_PATH
from privacy_footprint.models import RiskCategory
from privacy_footprint.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RiskGuidance:
    title: str
    description: str
    action: str


@dataclass(frozen=True)
class RiskTaxonomy:
    """Read-only cue table and guidance for every RiskCategory."""
    cues: Mapping[RiskCategory, Tuple[str, ...]]
    guidance: Mapping[RiskCategory, RiskGuidance]

    def cues_for(self, category: RiskCategory) -> Tuple[str, ...]:
        return self.cues.get(category, ())


def parse_taxonomy(data: dict) -> RiskTaxonomy:
    """
    Build a RiskTaxonomy from the JSON document shape. Unknown category keys
    are ignored; a category missing from the document gets no cues.
    """
    raw_categories = data.get("categories") or {}
    cues = {}
    guidance = {}

    for category in RiskCategory:
        entry = raw_categories.get(category.value) or {}
        # Cue order is kept; duplicates would double count, so drop them.
        seen = []
        for cue in entry.get("cues") or []:
            cue = str(cue).strip().lower()
            if cue and cue not in seen:
                seen.append(cue)
        cues[category] = tuple(seen)
        if entry.get("title"):
            guidance[category] = RiskGuidance(
                title=entry["title"],
                description=entry.get("description", ""),
                action=entry.get("action", ""),
            )

    known = {c.value for c in RiskCategory}
    for key in raw_categories:
        if key not in known:
            logger.warning("ignoring unknown risk category in taxonomy: %s", key)

    return RiskTaxonomy(cues=MappingProxyType(cues), guidance=MappingProxyType(guidance))


def load_taxonomy(path: Path) -> RiskTaxonomy:
    if not path.exists():
        logger.warning("risk taxonomy not found at %s; no cues configured", path)
        return parse_taxonomy({})
    return parse_taxonomy(json.loads(path.read_text(encoding="utf-8")))


@lru_cache(maxsize=1)
def default_taxonomy() -> RiskTaxonomy:
    """Process-wide taxonomy, parsed on first use."""
    return load_taxonomy(RISK_TAXONOMY_PATH)


def risk_guidance(category: RiskCategory | str) -> Optional[RiskGuidance]:
    try:
        category = RiskCategory(category)
    except ValueError:
        return None
    return default_taxonomy().guidance.get(category)
