"""
Audit pipeline orchestrator.

One run per request, stages strictly in sequence:

    RECEIVED -> VALIDATING -> ANALYZING -> SCORING -> HASHING -> PREPARING_TX -> COMPLETED

Any failure moves the run to FAILED(stage, reason) and raises AuditFailed; a
caller never sees a partially filled outcome. The orchestrator is the only
place that decides retry vs. fail: Timeout and ProviderUnavailable from the
analyzer are retried with bounded exponential backoff, everything else fails
fast. Caller cancellation propagates into the in-flight analyzer call.

The orchestrator keeps no per-request state on the instance, so one instance
serves concurrent requests.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, NoReturn

from eth_utils import is_address
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt, wait_exponential

from backend_guard.ai_engine.adapter import AnalysisAdapter, AnalysisOptions
from backend_guard.analysis_engine import certification, scorer
from backend_guard.analysis_engine.certification import TierInfo
from backend_guard.analysis_engine.hasher import ZERO_ADDRESS, hash_report
from backend_guard.analysis_engine.models import AnalysisRequest, AuditReport
from backend_guard.config.settings import (
    DEFAULT_ANALYZER_BACKOFF_SEC,
    DEFAULT_ANALYZER_MAX_RETRIES,
    DEFAULT_ANALYZER_TIMEOUT_SEC,
    DEFAULT_MAX_CODE_LENGTH,
    Settings,
)
from backend_guard.core.exceptions import (
    AnalysisError,
    AnalysisKind,
    AuditFailed,
    GuardError,
    InternalError,
    ValidationError,
    ValidationKind,
)
from backend_guard.guard_logging import bind_request
from backend_guard.oracle.transaction_preparer import AuditTransactionIntent, TransactionPreparer

DEFAULT_BACKOFF_MAX_SEC = 8.0

EMPTY_CODE_MESSAGE = "Contract code is required"
CODE_TOO_LARGE_MESSAGE = "Contract code is too large. Maximum size is 100KB."


class AuditStage(str, Enum):
    RECEIVED = "Received"
    VALIDATING = "Validating"
    ANALYZING = "Analyzing"
    SCORING = "Scoring"
    HASHING = "Hashing"
    PREPARING_TX = "PreparingTx"
    COMPLETED = "Completed"
    FAILED = "Failed"


@dataclass
class AuditRun:
    """Stage history of one pipeline run. Lives only for the duration of run()."""

    request_id: str
    stage: AuditStage = AuditStage.RECEIVED
    stages: list[AuditStage] = field(default_factory=lambda: [AuditStage.RECEIVED])
    attempts: int = 0


@dataclass(frozen=True)
class AuditOutcome:
    """Completed run: the full report, its hash, tier, and (when a contract was named) the tx intent."""

    request_id: str
    report: AuditReport
    report_hash: str
    certification: TierInfo
    risk_level: str
    intent: AuditTransactionIntent | None
    stages: tuple[AuditStage, ...]
    attempts: int


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, AnalysisError) and exc.retryable


class AuditOrchestrator:
    """Composes adapter, normalizer, tier resolver, hasher and preparer into one pipeline."""

    def __init__(
        self,
        adapter: AnalysisAdapter,
        preparer: TransactionPreparer,
        *,
        timeout_sec: float = DEFAULT_ANALYZER_TIMEOUT_SEC,
        max_retries: int = DEFAULT_ANALYZER_MAX_RETRIES,
        backoff_sec: float = DEFAULT_ANALYZER_BACKOFF_SEC,
        backoff_max_sec: float = DEFAULT_BACKOFF_MAX_SEC,
        max_code_length: int = DEFAULT_MAX_CODE_LENGTH,
        options: AnalysisOptions | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._adapter = adapter
        self._preparer = preparer
        self._timeout_sec = timeout_sec
        self._max_retries = max(0, int(max_retries))
        self._backoff_sec = max(0.0, backoff_sec)
        self._backoff_max_sec = backoff_max_sec
        self._max_code_length = max_code_length
        self._options = options or AnalysisOptions()
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        adapter: AnalysisAdapter,
        preparer: TransactionPreparer | None = None,
    ) -> "AuditOrchestrator":
        return cls(
            adapter,
            preparer or TransactionPreparer(settings.registry_address, settings.chain_id),
            timeout_sec=settings.analyzer_timeout_sec,
            max_retries=settings.analyzer_max_retries,
            backoff_sec=settings.analyzer_backoff_sec,
            max_code_length=settings.max_code_length,
        )

    @property
    def max_retries(self) -> int:
        return self._max_retries

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _validate(self, request: AnalysisRequest) -> None:
        code = request.code
        if not isinstance(code, str) or not code.strip():
            raise ValidationError(ValidationKind.EMPTY_INPUT, EMPTY_CODE_MESSAGE)
        if len(code) > self._max_code_length:
            raise ValidationError(ValidationKind.INPUT_TOO_LARGE, CODE_TOO_LARGE_MESSAGE)
        address = request.contract_address
        if address is not None and address.strip() and not is_address(address.strip()):
            raise ValidationError(ValidationKind.MALFORMED_FIELD, "Invalid contract address")

    async def _analyze_once(self, code: str, options: AnalysisOptions) -> AuditReport:
        try:
            return await asyncio.wait_for(self._adapter.analyze(code, options), timeout=self._timeout_sec)
        except asyncio.TimeoutError as e:
            raise AnalysisError(
                AnalysisKind.TIMEOUT, f"Analyzer did not answer within {self._timeout_sec:g}s"
            ) from e

    async def _analyze(self, run: AuditRun, request: AnalysisRequest, log: Any) -> AuditReport:
        options = AnalysisOptions(
            temperature=self._options.temperature,
            max_output_tokens=self._options.max_output_tokens,
            model_preference=self._options.model_preference,
            chain_hint=request.chain_hint or self._options.chain_hint,
        )

        def _before_sleep(state: RetryCallState) -> None:
            exc = state.outcome.exception() if state.outcome else None
            log.warning(
                "audit_analyzer_retry",
                attempt=state.attempt_number,
                max_attempts=self._max_retries + 1,
                kind=getattr(getattr(exc, "kind", None), "value", None),
                error=str(exc),
                wait_sec=round(state.next_action.sleep, 3) if state.next_action else None,
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_retries + 1),
            wait=wait_exponential(multiplier=self._backoff_sec, max=self._backoff_max_sec),
            retry=retry_if_exception(_is_retryable),
            before_sleep=_before_sleep,
            sleep=self._sleep,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                run.attempts += 1
                return await self._analyze_once(request.code, options)
        # AsyncRetrying with reraise=True either returns above or raises
        raise InternalError("analyzer retry loop exited without a result")

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(self, request: AnalysisRequest, *, request_id: str | None = None) -> AuditOutcome:
        """
        Execute the full pipeline for one request.

        Raises AuditFailed(stage, cause) on any failure; asyncio.CancelledError
        is never swallowed.
        """
        run = AuditRun(request_id=request_id or uuid.uuid4().hex)
        log = bind_request(run.request_id, __name__)
        log.info(
            "audit_received",
            code_length=len(request.code) if isinstance(request.code, str) else 0,
            chain_hint=request.chain_hint,
            contract=request.contract_address,
        )

        def advance(stage: AuditStage) -> None:
            run.stage = stage
            run.stages.append(stage)
            log.debug("audit_stage", stage=stage.value)

        try:
            advance(AuditStage.VALIDATING)
            self._validate(request)

            advance(AuditStage.ANALYZING)
            raw_report = await self._analyze(run, request, log)

            advance(AuditStage.SCORING)
            score = scorer.normalize(raw_report.findings)
            if raw_report.analyzer_score is not None and raw_report.analyzer_score != score:
                log.info("audit_score_corrected", analyzer_score=raw_report.analyzer_score, risk_score=score)
            report = raw_report.with_risk_score(score)
            tier = certification.tier_for_score(score)

            advance(AuditStage.HASHING)
            contract = (request.contract_address or "").strip()
            report_hash = hash_report(report, contract or ZERO_ADDRESS)

            advance(AuditStage.PREPARING_TX)
            intent = self._preparer.prepare(contract, score, report_hash) if contract else None
        except GuardError as e:
            self._fail(run, e, log)
        except asyncio.CancelledError:
            log.warning("audit_cancelled", stage=run.stage.value, attempts=run.attempts)
            raise
        except Exception as e:
            log.exception("audit_internal_error", stage=run.stage.value, error=str(e))
            self._fail(run, InternalError(f"{type(e).__name__}: {e}"), log)

        advance(AuditStage.COMPLETED)
        log.info(
            "audit_completed",
            model_used=report.model_used,
            findings=len(report.findings),
            risk_score=score,
            tier=tier.level.value,
            report_hash=report_hash,
            attempts=run.attempts,
            intent_prepared=intent is not None,
        )
        return AuditOutcome(
            request_id=run.request_id,
            report=report,
            report_hash=report_hash,
            certification=tier,
            risk_level=scorer.risk_level(score),
            intent=intent,
            stages=tuple(run.stages),
            attempts=run.attempts,
        )

    def _fail(self, run: AuditRun, error: GuardError, log: Any) -> NoReturn:
        failed_at = run.stage
        run.stage = AuditStage.FAILED
        run.stages.append(AuditStage.FAILED)
        log.warning(
            "audit_failed",
            stage=failed_at.value,
            kind=error.kind.value,
            error=error.message,
            attempts=run.attempts,
        )
        raise AuditFailed(failed_at.value, error, attempts=run.attempts) from error
