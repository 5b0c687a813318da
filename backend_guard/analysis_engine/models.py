"""
Audit data model: request, findings, report.

All types are frozen dataclasses; findings are tuples so the analyzer's
order is preserved and cannot be re-sorted in place downstream.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFORMATIONAL = "informational"

    @classmethod
    def parse(cls, raw: Any) -> "Severity":
        """Case-insensitive parse ("Critical" -> CRITICAL); "info" aliases INFORMATIONAL."""
        if isinstance(raw, Severity):
            return raw
        value = str(raw or "").strip().lower()
        if value in ("info", "informational", "information"):
            return cls.INFORMATIONAL
        return cls(value)


@dataclass(frozen=True)
class SourceLocation:
    """1-based source line range; end_line None means a single line."""

    start_line: int
    end_line: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"startLine": self.start_line, "endLine": self.end_line}


@dataclass(frozen=True)
class VulnerabilityFinding:
    """Single reported issue, as produced by an analyzer adapter."""

    title: str
    severity: Severity
    description: str
    location: SourceLocation | None = None
    suggested_fix: str | None = None
    exploit_scenario: str | None = None
    similar_exploits: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "severity": self.severity.value,
            "description": self.description,
            "location": self.location.to_dict() if self.location else None,
            "suggestedFix": self.suggested_fix,
            "exploitScenario": self.exploit_scenario,
            "similarExploits": list(self.similar_exploits),
        }


@dataclass(frozen=True)
class AnalysisRequest:
    """One incoming audit request. Discarded after the pipeline run."""

    code: str
    chain_hint: str | None = None
    contract_address: str | None = None


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AuditReport:
    """
    Analyzer output plus the normalized risk score.

    ``risk_score`` is only authoritative after ScoreNormalizer has run (the
    orchestrator replaces it via ``with_risk_score``). ``analyzer_score`` keeps
    whatever the model claimed, for provenance only.
    """

    findings: tuple[VulnerabilityFinding, ...]
    risk_score: int
    summary: str
    model_used: str
    generated_at: datetime = field(default_factory=utc_now)
    gas_optimizations: tuple[str, ...] = ()
    best_practices: tuple[str, ...] = ()
    analyzer_score: int | None = None

    def with_risk_score(self, score: int) -> "AuditReport":
        return replace(self, risk_score=score)

    def to_dict(self) -> dict[str, Any]:
        return {
            "findings": [f.to_dict() for f in self.findings],
            "riskScore": self.risk_score,
            "summary": self.summary,
            "modelUsed": self.model_used,
            "generatedAt": self.generated_at.isoformat(),
            "gasOptimizations": list(self.gas_optimizations),
            "bestPractices": list(self.best_practices),
        }
