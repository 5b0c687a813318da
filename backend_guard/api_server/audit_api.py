"""
FastAPI router: POST /analyze, POST /prepare-audit-tx, GET /certification-levels.

/analyze runs the full audit pipeline; /prepare-audit-tx only encodes the
registry call for a result the client already holds. Neither signs nor sends.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field

from backend_guard.analysis_engine import certification
from backend_guard.analysis_engine.models import AnalysisRequest
from backend_guard.analysis_engine.scorer import SEVERITY_WEIGHTS
from backend_guard.core.exceptions import InternalError, InternalKind
from backend_guard.guard_logging import get_logger
from backend_guard.oracle.transaction_preparer import TransactionPreparer
from backend_guard.pipeline.orchestrator import AuditOrchestrator, AuditOutcome

logger = get_logger(__name__)

router = APIRouter(tags=["audit"])

TX_PREPARED_MESSAGE = "Transaction prepared. Sign in wallet to complete."


class AnalyzeRequest(BaseModel):
    """POST /analyze body. Fields are optional here so emptiness is reported by the pipeline."""

    model_config = ConfigDict(populate_by_name=True)

    code: str | None = Field(None, description="Solidity source to audit")
    contract_address: str | None = Field(None, alias="contractAddress", description="Audited contract (0x...)")
    chain_hint: str | None = Field(None, alias="chainHint", max_length=64, description="Target chain name")


class PrepareAuditTxRequest(BaseModel):
    """POST /prepare-audit-tx body."""

    model_config = ConfigDict(populate_by_name=True)

    contract_address: str | None = Field(None, alias="contractAddress")
    # raw JSON value; type and range are checked by validate_score
    risk_score: Any = Field(None, alias="riskScore")
    report_hash: str | None = Field(None, alias="reportHash")


def get_orchestrator(request: Request) -> AuditOrchestrator:
    """Dependency: orchestrator built by create_app; missing when no AI provider key is configured."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise InternalError(
            "GEMINI_API_KEY is not set; analyzer unavailable", kind=InternalKind.NOT_CONFIGURED
        )
    return orchestrator


def get_preparer(request: Request) -> TransactionPreparer:
    return request.app.state.preparer


def outcome_to_response(outcome: AuditOutcome) -> dict[str, Any]:
    report = outcome.report
    upgrade = certification.next_tier(report.risk_score)
    return {
        "success": True,
        "requestId": outcome.request_id,
        "findings": [f.to_dict() for f in report.findings],
        "riskScore": report.risk_score,
        "riskLevel": outcome.risk_level,
        "summary": report.summary,
        "modelUsed": report.model_used,
        "generatedAt": report.generated_at.isoformat(),
        "certificationLevel": outcome.certification.level.value,
        "certification": outcome.certification.to_dict(),
        "nextCertification": upgrade.to_dict() if upgrade else None,
        "reportHash": outcome.report_hash,
        "gasOptimizations": list(report.gas_optimizations),
        "bestPractices": list(report.best_practices),
        "transaction": outcome.intent.to_transaction() if outcome.intent else None,
    }


@router.post("/analyze")
async def analyze(
    body: AnalyzeRequest,
    request: Request,
    orchestrator: AuditOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    """
    Audit contract source: analyze, score, tier, hash, and (when contractAddress
    is given) prepare the recordAudit transaction.

    400 on missing/oversized code, 500 on analyzer or internal failure.
    """
    audit_request = AnalysisRequest(
        code=body.code or "",
        chain_hint=body.chain_hint,
        contract_address=body.contract_address,
    )
    request_id = getattr(request.state, "request_id", None)
    outcome = await orchestrator.run(audit_request, request_id=request_id)
    return outcome_to_response(outcome)


@router.post("/prepare-audit-tx")
async def prepare_audit_tx(
    body: PrepareAuditTxRequest,
    preparer: TransactionPreparer = Depends(get_preparer),
) -> dict[str, Any]:
    """
    Encode recordAudit(contractAddress, riskScore, reportHash) for the wallet to sign.

    400 on missing fields, out-of-range score or malformed address.
    """
    intent = preparer.prepare(body.contract_address, body.risk_score, body.report_hash)
    return {
        "success": True,
        "message": TX_PREPARED_MESSAGE,
        "transaction": intent.to_transaction(),
    }


@router.get("/certification-levels")
async def certification_levels() -> dict[str, Any]:
    """Tier table and severity weights, for display and client-side previews."""
    return {
        "levels": [tier.to_dict() for tier in certification.TIER_TABLE],
        "severityWeights": {sev.value: weight for sev, weight in SEVERITY_WEIGHTS.items()},
    }
