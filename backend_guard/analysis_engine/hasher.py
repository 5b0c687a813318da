"""
Canonical report digest used as the on-chain pointer to an off-chain report.

The canonical form is a JSON array with a fixed field order (never an object,
whose key order would be an implementation detail):

    ["guard-audit-report/v1", address, risk_score,
     [[title, severity, description, start_line, end_line, suggested_fix], ...]]

Wall-clock and provenance fields (generated_at, model_used, summary,
analyzer_score, advisory lists) are excluded, so re-hashing the same audit
content always yields the same digest on any machine.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

from backend_guard.analysis_engine.models import AuditReport, VulnerabilityFinding
from backend_guard.analysis_engine.scorer import MAX_SCORE, MIN_SCORE
from backend_guard.core.exceptions import InternalError

CANONICAL_VERSION = "guard-audit-report/v1"
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
REPORT_HASH_HEX_LEN = 64


def _canonical_finding(finding: VulnerabilityFinding) -> list[Any]:
    loc = finding.location
    return [
        finding.title,
        finding.severity.value,
        finding.description,
        loc.start_line if loc else None,
        loc.end_line if loc else None,
        finding.suggested_fix,
    ]


def canonical_bytes(report: AuditReport, source_contract_address: str) -> bytes:
    """Serialize the audit-relevant fields of a report, in fixed order, to UTF-8 bytes."""
    address = (source_contract_address or "").strip().lower()
    if not address:
        raise InternalError("report hash requires a source contract address")
    score = report.risk_score
    if isinstance(score, bool) or not isinstance(score, int) or not MIN_SCORE <= score <= MAX_SCORE:
        raise InternalError(f"report risk_score not normalized: {score!r}")
    payload = [
        CANONICAL_VERSION,
        address,
        score,
        [_canonical_finding(f) for f in report.findings],
    ]
    return json.dumps(payload, ensure_ascii=True, separators=(",", ":"), allow_nan=False).encode("utf-8")


def hash_report(report: AuditReport, source_contract_address: str) -> str:
    """SHA-256 of the canonical form as 0x-prefixed lowercase hex."""
    return "0x" + hashlib.sha256(canonical_bytes(report, source_contract_address)).hexdigest()
