"""
Certification tiers derived from the risk score.

TIER_TABLE is the single source of truth for the cut points: an ordered,
contiguous, non-overlapping partition of [0, 100] from best tier to worst.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from backend_guard.analysis_engine.scorer import MAX_SCORE, MIN_SCORE
from backend_guard.core.exceptions import ValidationError, ValidationKind


class CertificationLevel(str, Enum):
    PLATINUM = "platinum"
    GOLD = "gold"
    SILVER = "silver"
    BRONZE = "bronze"
    GRAY = "gray"


@dataclass(frozen=True)
class TierInfo:
    level: CertificationLevel
    name: str
    min_score: int
    max_score: int
    description: str

    @property
    def eligible(self) -> bool:
        """Gray means the contract did not earn a certification."""
        return self.level is not CertificationLevel.GRAY

    def contains(self, score: int) -> bool:
        return self.min_score <= score <= self.max_score

    def to_dict(self) -> dict[str, object]:
        return {
            "level": self.level.value,
            "name": self.name,
            "minScore": self.min_score,
            "maxScore": self.max_score,
            "description": self.description,
            "eligible": self.eligible,
        }


TIER_TABLE: tuple[TierInfo, ...] = (
    TierInfo(
        CertificationLevel.PLATINUM, "Platinum Certification", 0, 4,
        "Outstanding security, minimal risk - Highest certification level",
    ),
    TierInfo(
        CertificationLevel.GOLD, "Gold Certification", 5, 14,
        "Excellent security practices, very low risk",
    ),
    TierInfo(
        CertificationLevel.SILVER, "Silver Certification", 15, 24,
        "Very good security practices, low risk",
    ),
    TierInfo(
        CertificationLevel.BRONZE, "Bronze Certification", 25, 39,
        "Good security practices, low-moderate risk",
    ),
    TierInfo(
        CertificationLevel.GRAY, "Not Certified", 40, 100,
        "Contract does not meet certification requirements",
    ),
)

_BY_LEVEL = {tier.level: tier for tier in TIER_TABLE}


def _check_score(score: int) -> int:
    if isinstance(score, bool) or not isinstance(score, int):
        raise ValidationError(ValidationKind.SCORE_OUT_OF_RANGE, "Risk score must be an integer")
    if score < MIN_SCORE or score > MAX_SCORE:
        raise ValidationError(ValidationKind.SCORE_OUT_OF_RANGE, "Risk score must be between 0 and 100")
    return score


def resolve(score: int) -> CertificationLevel:
    """Tier for a score in [0, 100]; raises ValidationError outside the range."""
    return tier_for_score(score).level


def tier_for_score(score: int) -> TierInfo:
    _check_score(score)
    for tier in TIER_TABLE:
        if tier.contains(score):
            return tier
    # unreachable while TIER_TABLE covers [0, 100]
    raise AssertionError(f"no certification tier covers score {score}")


def tier_info(level: CertificationLevel) -> TierInfo:
    return _BY_LEVEL[level]


def is_eligible(score: int) -> bool:
    return tier_for_score(score).eligible


def next_tier(score: int) -> TierInfo | None:
    """The next better tier a lower score would reach; None at platinum."""
    current = tier_for_score(score)
    idx = TIER_TABLE.index(current)
    if idx == 0:
        return None
    return TIER_TABLE[idx - 1]
