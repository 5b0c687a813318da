"""
Analyzer capability interface.

The AI analyzer is an external, non-deterministic dependency. The orchestrator
only sees ``AnalysisAdapter.analyze``; tests substitute a deterministic stub
that returns fixed AuditReport fixtures.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from backend_guard.analysis_engine.models import AuditReport

DEFAULT_TEMPERATURE = 0.2
DEFAULT_MAX_OUTPUT_TOKENS = 8192


@dataclass(frozen=True)
class AnalysisOptions:
    """Per-call generation options passed to the analyzer."""

    temperature: float = DEFAULT_TEMPERATURE
    max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS
    model_preference: str | None = None
    chain_hint: str | None = None


@runtime_checkable
class AnalysisAdapter(Protocol):
    """
    Send contract source to an analyzer and return a structured report.

    Implementations raise AnalysisError (Timeout, ProviderUnavailable,
    QuotaExceeded, MalformedResponse) and never retry on their own. ``code``
    is guaranteed non-empty by the caller.
    """

    async def analyze(self, code: str, options: AnalysisOptions) -> AuditReport:
        ...
