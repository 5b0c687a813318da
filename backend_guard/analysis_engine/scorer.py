"""
Risk score computation from analyzer findings.

Fixed weight per severity, summed and clamped into [0, 100]. The score is a
function of severity counts only, so the same finding set always yields the
same score regardless of titles, descriptions or order. No I/O, no clock.
"""

from __future__ import annotations

from collections import Counter
from types import MappingProxyType
from typing import Iterable, Mapping

from backend_guard.analysis_engine.models import Severity, VulnerabilityFinding

MIN_SCORE = 0
MAX_SCORE = 100

SEVERITY_WEIGHTS: Mapping[Severity, int] = MappingProxyType({
    Severity.CRITICAL: 25,
    Severity.HIGH: 15,
    Severity.MEDIUM: 8,
    Severity.LOW: 3,
    Severity.INFORMATIONAL: 0,
})

RISK_CRITICAL = "critical"
RISK_HIGH = "high"
RISK_MEDIUM = "medium"
RISK_LOW = "low"
RISK_MINIMAL = "minimal"

# (lower bound inclusive, label), checked top-down
RISK_LEVEL_BOUNDS: tuple[tuple[int, str], ...] = (
    (80, RISK_CRITICAL),
    (60, RISK_HIGH),
    (40, RISK_MEDIUM),
    (20, RISK_LOW),
    (0, RISK_MINIMAL),
)


def severity_counts(findings: Iterable[VulnerabilityFinding]) -> dict[Severity, int]:
    """Count of findings per severity; every severity present (0 when absent)."""
    counts = Counter(f.severity for f in findings)
    return {sev: counts.get(sev, 0) for sev in Severity}


def clamp_score(value: float) -> int:
    return int(max(MIN_SCORE, min(MAX_SCORE, value)))


def normalize(findings: Iterable[VulnerabilityFinding]) -> int:
    """
    Map findings to a risk score in [0, 100].

    No findings -> 0 ("no detected risk"). Saturates at 100.
    """
    total = 0
    for severity, count in severity_counts(findings).items():
        total += SEVERITY_WEIGHTS[severity] * count
        if total >= MAX_SCORE:
            return MAX_SCORE
    return clamp_score(total)


def risk_level(score: int) -> str:
    """Human label for a risk score: minimal | low | medium | high | critical."""
    for lower, label in RISK_LEVEL_BOUNDS:
        if score >= lower:
            return label
    return RISK_MINIMAL
