"""
Analysis engine: pure, deterministic audit stages.

Modules: models (data types), scorer (findings -> risk score), certification
(risk score -> tier), hasher (report -> canonical digest).
"""

from backend_guard.analysis_engine.certification import CertificationLevel, resolve
from backend_guard.analysis_engine.hasher import hash_report
from backend_guard.analysis_engine.models import (
    AnalysisRequest,
    AuditReport,
    Severity,
    SourceLocation,
    VulnerabilityFinding,
)
from backend_guard.analysis_engine.scorer import normalize, risk_level

__all__ = [
    "AnalysisRequest",
    "AuditReport",
    "CertificationLevel",
    "Severity",
    "SourceLocation",
    "VulnerabilityFinding",
    "hash_report",
    "normalize",
    "resolve",
    "risk_level",
]
