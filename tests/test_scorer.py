"""
Tests for the risk score normalizer and risk-level labels.
"""

from __future__ import annotations

import itertools

import pytest

from backend_guard.analysis_engine.models import Severity
from backend_guard.analysis_engine.scorer import (
    SEVERITY_WEIGHTS,
    normalize,
    risk_level,
    severity_counts,
)
from conftest import finding


def test_no_findings_scores_zero():
    """Empty finding set means no detected risk."""
    assert normalize([]) == 0


def test_weights_are_summed():
    """One high + one medium + one low = 15 + 8 + 3."""
    findings = [finding(Severity.HIGH), finding(Severity.MEDIUM), finding(Severity.LOW)]
    assert normalize(findings) == 26


def test_informational_does_not_add_risk():
    assert normalize([finding(Severity.INFORMATIONAL)] * 10) == 0


def test_saturates_at_100():
    """Five criticals exceed the cap; the score stays at 100."""
    assert normalize([finding(Severity.CRITICAL)] * 5) == 100
    assert normalize([finding(Severity.CRITICAL)] * 4) == 100


def test_order_and_text_do_not_matter():
    """Same severities in any order (and with other titles) give the same score."""
    base = [finding(Severity.CRITICAL), finding(Severity.LOW), finding(Severity.MEDIUM)]
    expected = normalize(base)
    for perm in itertools.permutations(base):
        assert normalize(list(perm)) == expected
    renamed = [finding(f.severity, title="Other", line=None) for f in base]
    assert normalize(renamed) == expected


@pytest.mark.parametrize("count", range(0, 12))
def test_score_always_in_range(count):
    """Every combination of up to count findings per severity stays in [0, 100]."""
    for sev in Severity:
        score = normalize([finding(sev)] * count)
        assert 0 <= score <= 100
        assert isinstance(score, int)


def test_severity_counts_lists_every_severity():
    counts = severity_counts([finding(Severity.HIGH), finding(Severity.HIGH)])
    assert counts[Severity.HIGH] == 2
    assert set(counts) == set(Severity)
    assert counts[Severity.CRITICAL] == 0


def test_weights_are_read_only():
    with pytest.raises(TypeError):
        SEVERITY_WEIGHTS[Severity.LOW] = 100  # type: ignore[index]


@pytest.mark.parametrize(
    "score,label",
    [(0, "minimal"), (19, "minimal"), (20, "low"), (40, "medium"), (60, "high"), (79, "high"), (80, "critical"), (100, "critical")],
)
def test_risk_level(score, label):
    assert risk_level(score) == label
