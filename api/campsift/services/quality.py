from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Mapping, Sequence

from campsift.services.parsing import round_half_up

QualityTier = Literal["high", "medium", "low"]

HIGH_TIER_MIN_SCORE = 80
MEDIUM_TIER_MIN_SCORE = 50


@dataclass(slots=True, frozen=True)
class SourceQuality:
    score: int
    tier: QualityTier


def calculate_source_quality(sessions: Sequence[Mapping[str, Any]]) -> SourceQuality:
    if not sessions:
        return SourceQuality(score=0, tier="low")
    total = sum(_score_of(session) for session in sessions)
    score = round_half_up(total / len(sessions))
    return SourceQuality(score=score, tier=quality_tier(score))


def quality_tier(score: int) -> QualityTier:
    if score >= HIGH_TIER_MIN_SCORE:
        return "high"
    if score >= MEDIUM_TIER_MIN_SCORE:
        return "medium"
    return "low"


def _score_of(session: Mapping[str, Any]) -> int:
    value = session.get("completeness_score")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return int(value)
