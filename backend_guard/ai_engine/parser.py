"""
Analyzer prompt and strict response parsing.

The model is asked for one JSON object with a fixed schema. Replies are often
wrapped in markdown fences or surrounded by prose, so the fences are stripped
and the outermost {...} block is taken before validation. Anything that does
not validate is AnalysisError(MalformedResponse).
"""

from __future__ import annotations

import json
import math
import re
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from backend_guard.analysis_engine.models import (
    AuditReport,
    Severity,
    SourceLocation,
    VulnerabilityFinding,
    utc_now,
)
from backend_guard.analysis_engine.scorer import clamp_score
from backend_guard.core.exceptions import AnalysisError, AnalysisKind

_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_LINE_RANGE_RE = re.compile(r"^\s*L?(\d+)\s*(?:[-:–]\s*L?(\d+))?\s*$")

PROMPT_TEMPLATE = """You are an expert smart contract security auditor. Analyze this Solidity code for vulnerabilities.

IMPORTANT: Respond ONLY with valid JSON. No markdown, no code blocks, no explanations outside JSON.
{chain_line}
```solidity
{code}
```

Provide a detailed security analysis in this EXACT JSON format:

{{
  "vulnerabilities": [
    {{
      "type": "Reentrancy" | "Integer Overflow" | etc.,
      "severity": "Critical" | "High" | "Medium" | "Low" | "Informational",
      "line": line_number,
      "description": "detailed explanation of the vulnerability",
      "exploitScenario": "step-by-step how this can be exploited",
      "fix": "recommended code fix",
      "similarExploits": ["DAO Hack 2016", "Other similar real-world exploits"]
    }}
  ],
  "riskScore": number_0_to_100,
  "gasOptimizations": ["suggestion 1", "suggestion 2"],
  "bestPractices": ["recommendation 1", "recommendation 2"],
  "summary": "Overall security assessment of the contract"
}}

Find ALL vulnerabilities including:
- Reentrancy attacks
- Integer overflow/underflow
- Unchecked external calls
- Access control issues
- DOS vulnerabilities
- Front-running risks
- Timestamp manipulation
- Uninitialized storage
- Delegatecall dangers
- tx.origin authentication"""


def build_prompt(code: str, chain_hint: str | None = None) -> str:
    chain_line = f"\nTarget chain: {chain_hint.strip()}\n" if chain_hint and chain_hint.strip() else ""
    return PROMPT_TEMPLATE.format(code=code, chain_line=chain_line)


def parse_location(v: Any) -> SourceLocation | None:
    """Accept 12, "12", "L12", "12-15"; anything else (or <= 0) is treated as unknown."""
    if v is None or isinstance(v, bool):
        return None
    if isinstance(v, (int, float)):
        if not math.isfinite(v) or int(v) <= 0:
            return None
        return SourceLocation(int(v))
    m = _LINE_RANGE_RE.match(str(v))
    if not m:
        return None
    start = int(m.group(1))
    end = int(m.group(2)) if m.group(2) else None
    if start <= 0:
        return None
    if end is not None and end <= start:
        end = None
    return SourceLocation(start, end)


class RawVulnerability(BaseModel):
    """One entry of the analyzer's "vulnerabilities" array."""

    model_config = ConfigDict(extra="ignore")

    type: str = Field(..., min_length=1)
    severity: Severity
    line: Any = None
    description: str = ""
    exploitScenario: str | None = None
    fix: str | None = None
    similarExploits: list[str] = Field(default_factory=list)

    @field_validator("severity", mode="before")
    @classmethod
    def _parse_severity(cls, v: Any) -> Severity:
        try:
            return Severity.parse(v)
        except ValueError as e:
            raise ValueError(f"unknown severity {v!r}") from e

    @field_validator("similarExploits", mode="before")
    @classmethod
    def _none_to_list(cls, v: Any) -> Any:
        return [] if v is None else v

    def to_finding(self) -> VulnerabilityFinding:
        return VulnerabilityFinding(
            title=self.type.strip(),
            severity=self.severity,
            description=self.description.strip(),
            location=parse_location(self.line),
            suggested_fix=(self.fix or "").strip() or None,
            exploit_scenario=(self.exploitScenario or "").strip() or None,
            similar_exploits=tuple(s.strip() for s in self.similarExploits if s and s.strip()),
        )


class RawAnalysis(BaseModel):
    """Top-level analyzer reply."""

    model_config = ConfigDict(extra="ignore")

    vulnerabilities: list[RawVulnerability]
    riskScore: float | None = None
    summary: str
    gasOptimizations: list[str] = Field(default_factory=list)
    bestPractices: list[str] = Field(default_factory=list)

    @field_validator("gasOptimizations", "bestPractices", mode="before")
    @classmethod
    def _none_to_list(cls, v: Any) -> Any:
        return [] if v is None else v


def extract_json_text(text: str) -> str:
    """Strip markdown fences and return the outermost {...} block (or the cleaned text)."""
    cleaned = _FENCE_RE.sub("", text or "").replace("```", "").strip()
    match = _OBJECT_RE.search(cleaned)
    return match.group(0) if match else cleaned


def parse_analysis(
    text: str,
    model_used: str,
    *,
    generated_at: datetime | None = None,
) -> AuditReport:
    """
    Parse an analyzer reply into an AuditReport.

    ``risk_score`` is the analyzer's claim clamped into range; it is provisional
    and replaced by ScoreNormalizer downstream. ``analyzer_score`` keeps the raw claim.
    """
    try:
        data = json.loads(extract_json_text(text))
    except (json.JSONDecodeError, TypeError) as e:
        raise AnalysisError(
            AnalysisKind.MALFORMED_RESPONSE, f"Analyzer response is not valid JSON: {e}", model=model_used
        ) from e
    if not isinstance(data, dict):
        raise AnalysisError(
            AnalysisKind.MALFORMED_RESPONSE, "Analyzer response must be a JSON object", model=model_used
        )
    try:
        raw = RawAnalysis.model_validate(data)
    except PydanticValidationError as e:
        raise AnalysisError(
            AnalysisKind.MALFORMED_RESPONSE,
            f"Analyzer response does not match schema ({e.error_count()} errors)",
            model=model_used,
        ) from e

    analyzer_score: int | None = None
    if raw.riskScore is not None and math.isfinite(raw.riskScore):
        analyzer_score = int(round(raw.riskScore))

    return AuditReport(
        findings=tuple(v.to_finding() for v in raw.vulnerabilities),
        risk_score=clamp_score(analyzer_score or 0),
        summary=raw.summary.strip(),
        model_used=model_used,
        generated_at=generated_at or utc_now(),
        gas_optimizations=tuple(s.strip() for s in raw.gasOptimizations if s and s.strip()),
        best_practices=tuple(s.strip() for s in raw.bestPractices if s and s.strip()),
        analyzer_score=analyzer_score,
    )
