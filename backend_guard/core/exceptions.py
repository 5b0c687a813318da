"""
Application-level exceptions.

Every failure that can leave the audit pipeline is a GuardError with a stable
``kind`` and a human-readable message. The API layer maps ``http_status`` to the
response code; the orchestrator decides retry vs. fail using ``retryable``.
"""

from __future__ import annotations

from enum import Enum


class ValidationKind(str, Enum):
    EMPTY_INPUT = "EmptyInput"
    INPUT_TOO_LARGE = "InputTooLarge"
    MISSING_FIELD = "MissingField"
    MALFORMED_FIELD = "MalformedField"
    SCORE_OUT_OF_RANGE = "ScoreOutOfRange"


class AnalysisKind(str, Enum):
    TIMEOUT = "Timeout"
    PROVIDER_UNAVAILABLE = "ProviderUnavailable"
    QUOTA_EXCEEDED = "QuotaExceeded"
    MALFORMED_RESPONSE = "MalformedResponse"


class InternalKind(str, Enum):
    INTERNAL = "Internal"
    NOT_CONFIGURED = "NotConfigured"


RETRYABLE_ANALYSIS_KINDS = frozenset({AnalysisKind.TIMEOUT, AnalysisKind.PROVIDER_UNAVAILABLE})

GENERIC_INTERNAL_MESSAGE = "Internal error while processing the audit"


class GuardError(Exception):
    """Base for all typed failures."""

    http_status = 500

    def __init__(self, kind: Enum, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    @property
    def public_message(self) -> str:
        """Message safe to return to API callers."""
        return self.message

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind.value, "error": self.public_message}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r})"


class ValidationError(GuardError):
    """Caller-supplied data failed a precondition. Never retried."""

    http_status = 400

    def __init__(self, kind: ValidationKind, message: str) -> None:
        super().__init__(kind, message)


class AnalysisError(GuardError):
    """The external AI analyzer failed."""

    def __init__(self, kind: AnalysisKind, message: str, *, model: str | None = None) -> None:
        super().__init__(kind, message)
        self.model = model

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_ANALYSIS_KINDS


class InternalError(GuardError):
    """Invariant violation or missing configuration; detail is logged, never returned."""

    def __init__(self, message: str, kind: InternalKind = InternalKind.INTERNAL) -> None:
        super().__init__(kind, message)

    @property
    def public_message(self) -> str:
        if self.kind is InternalKind.NOT_CONFIGURED:
            return "AI analyzer is not configured"
        return GENERIC_INTERNAL_MESSAGE


class ExplorerError(GuardError):
    """Block-explorer read-through failed (transport or unexpected payload)."""

    def __init__(self, message: str) -> None:
        super().__init__(InternalKind.INTERNAL, message)

    @property
    def public_message(self) -> str:
        return "Failed to fetch transactions"


class AuditFailed(Exception):
    """
    Terminal Failed{stage, reason} state of one orchestrator run.

    ``cause`` is the typed GuardError that ended the run; ``stage`` is the
    pipeline stage that was active when it happened.
    """

    def __init__(self, stage: str, cause: GuardError, attempts: int = 1) -> None:
        super().__init__(f"audit failed at {stage}: {cause.message}")
        self.stage = stage
        self.cause = cause
        self.attempts = attempts
