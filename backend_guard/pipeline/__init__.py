"""
Pipeline package: end-to-end audit orchestration.
"""

from backend_guard.pipeline.orchestrator import AuditOrchestrator, AuditOutcome, AuditStage

__all__ = ["AuditOrchestrator", "AuditOutcome", "AuditStage"]
