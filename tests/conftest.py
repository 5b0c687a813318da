"""
Pytest fixtures for Backend Guard tests.

The AI analyzer is always replaced by ScriptedAdapter (no network); explorer
calls go through httpx.MockTransport.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable

import pytest

from backend_guard.ai_engine.adapter import AnalysisOptions
from backend_guard.analysis_engine.models import (
    AuditReport,
    Severity,
    SourceLocation,
    VulnerabilityFinding,
)
from backend_guard.config.env import DEFAULT_AUDIT_REGISTRY_ADDRESS
from backend_guard.config.settings import Settings

CONTRACT = "0x" + "ab" * 20
FIXED_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)

VAULT_SOURCE = """pragma solidity ^0.8.0;
contract Vault {
    mapping(address => uint256) public balances;
    function withdraw() external {
        (bool ok, ) = msg.sender.call{value: balances[msg.sender]}("");
        require(ok);
        balances[msg.sender] = 0;
    }
}
"""


class ScriptedAdapter:
    """
    AnalysisAdapter stub. Each call consumes the next outcome (the last one
    repeats); exceptions are raised, reports are returned.
    """

    def __init__(self, *outcomes: Any) -> None:
        self.outcomes = list(outcomes)
        self.calls: list[tuple[str, AnalysisOptions]] = []

    async def analyze(self, code: str, options: AnalysisOptions) -> AuditReport:
        self.calls.append((code, options))
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def finding(
    severity: Severity = Severity.HIGH,
    title: str = "Reentrancy",
    line: int | None = 5,
) -> VulnerabilityFinding:
    return VulnerabilityFinding(
        title=title,
        severity=severity,
        description=f"{title} in withdraw()",
        location=SourceLocation(line) if line else None,
        suggested_fix="Update state before the external call",
    )


@pytest.fixture
def make_report() -> Callable[..., AuditReport]:
    """Factory: AuditReport with the given findings and a fixed timestamp."""

    def _make(*findings: VulnerabilityFinding, **overrides: Any) -> AuditReport:
        fields: dict[str, Any] = {
            "findings": tuple(findings),
            "risk_score": 0,
            "summary": "Test summary",
            "model_used": "stub-model",
            "generated_at": FIXED_TIME,
        }
        fields.update(overrides)
        return AuditReport(**fields)

    return _make


@pytest.fixture
def settings() -> Settings:
    """Settings for tests: no provider key, default registry, zero backoff."""
    return Settings(
        gemini_api_key="",
        registry_address=DEFAULT_AUDIT_REGISTRY_ADDRESS,
        chain_network="base-sepolia",
        chain_id=84532,
        explorer_api_url="https://explorer.test/api",
        analyzer_timeout_sec=5.0,
        analyzer_max_retries=2,
        analyzer_backoff_sec=0.0,
    )


@pytest.fixture
def make_client(settings):
    """Factory: FastAPI TestClient around create_app with injected adapter/explorer."""
    from fastapi.testclient import TestClient

    from backend_guard.api_server.server import create_app

    def _make(adapter: Any = None, explorer: Any = None, **client_kwargs: Any) -> TestClient:
        return TestClient(create_app(settings, adapter=adapter, explorer=explorer), **client_kwargs)

    return _make
