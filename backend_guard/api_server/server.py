"""
FastAPI server: HTTP boundary for the audit core.

create_app() wires explicitly constructed dependencies (settings, analyzer
adapter, transaction preparer, explorer client) into app.state; nothing is a
process-wide singleton, so tests and alternative configurations build their
own app. Typed GuardErrors become {success: false, error, kind} responses.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from backend_guard import __version__
from backend_guard.ai_engine.adapter import AnalysisAdapter
from backend_guard.ai_engine.gemini import GeminiAnalyzer
from backend_guard.api_server.audit_api import router as audit_router
from backend_guard.api_server.middleware import register_middleware
from backend_guard.api_server.transactions_api import router as transactions_router
from backend_guard.config.settings import Settings, get_settings
from backend_guard.core.exceptions import AuditFailed, GuardError, InternalError, ValidationKind
from backend_guard.guard_logging import get_logger
from backend_guard.oracle.explorer import ExplorerClient
from backend_guard.oracle.transaction_preparer import TransactionPreparer
from backend_guard.pipeline.orchestrator import AuditOrchestrator

logger = get_logger(__name__)


def _error_response(error: GuardError, **extra: Any) -> JSONResponse:
    content: dict[str, Any] = {"success": False, **error.to_dict(), **extra}
    return JSONResponse(status_code=error.http_status, content=content)


def _log_server_error(error: GuardError, path: str, **extra: Any) -> None:
    if error.http_status >= 500:
        logger.error(
            "api_request_failed",
            path=path,
            kind=error.kind.value,
            error=error.message,
            **extra,
        )


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AuditFailed)
    async def audit_failed_handler(request: Request, exc: AuditFailed) -> JSONResponse:
        _log_server_error(exc.cause, request.url.path, stage=exc.stage, attempts=exc.attempts)
        return _error_response(exc.cause, stage=exc.stage)

    @app.exception_handler(GuardError)
    async def guard_error_handler(request: Request, exc: GuardError) -> JSONResponse:
        _log_server_error(exc, request.url.path)
        return _error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.info("api_request_invalid", path=request.url.path, errors=len(exc.errors()))
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "kind": ValidationKind.MALFORMED_FIELD.value,
                "error": "Invalid request body or parameters",
            },
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        """Consistent JSON error response for HTTPException."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.detail},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "api_unhandled_exception",
            path=request.url.path,
            error_type=type(exc).__name__,
            error=str(exc),
            exc_info=exc,
        )
        return _error_response(InternalError(f"{type(exc).__name__}: {exc}"))


def create_app(
    settings: Settings | None = None,
    *,
    adapter: AnalysisAdapter | None = None,
    explorer: ExplorerClient | None = None,
    orchestrator: AuditOrchestrator | None = None,
) -> FastAPI:
    """
    Build the ASGI app.

    Without an injected adapter, a GeminiAnalyzer is created when GEMINI_API_KEY
    is set; otherwise /analyze answers 500 NotConfigured and the other endpoints
    keep working.
    """
    settings = settings or get_settings()
    preparer = TransactionPreparer(settings.registry_address, settings.chain_id)

    owned: list[Any] = []
    if adapter is None and orchestrator is None and settings.analyzer_configured:
        adapter = GeminiAnalyzer(settings.gemini_api_key, models=settings.gemini_models or None)
        owned.append(adapter)
    if orchestrator is None and adapter is not None:
        orchestrator = AuditOrchestrator.from_settings(settings, adapter, preparer)
    if explorer is None:
        explorer = ExplorerClient(
            settings.explorer_api_url,
            settings.explorer_api_key,
            timeout_sec=settings.explorer_timeout_sec,
        )
        owned.append(explorer)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Log effective configuration on startup; close owned HTTP clients on shutdown."""
        logger.info("api_starting", version=__version__, **settings.masked())
        if orchestrator is None:
            logger.warning("api_analyzer_not_configured", hint="set GEMINI_API_KEY")
        yield
        for resource in owned:
            await resource.aclose()
        logger.info("api_stopped")

    app = FastAPI(
        title="Backend Guard API",
        description="AI smart-contract audit: findings, risk score, certification tier, "
        "report hash and unsigned AuditRegistry transaction.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.preparer = preparer
    app.state.orchestrator = orchestrator
    app.state.explorer = explorer

    register_middleware(app)
    register_exception_handlers(app)
    app.include_router(audit_router)
    app.include_router(transactions_router)

    @app.get("/health")
    def health() -> dict[str, Any]:
        """Liveness probe: API is up."""
        return {
            "status": "ok",
            "analyzer": "configured" if app.state.orchestrator is not None else "not_configured",
            "chainId": settings.chain_id,
        }

    return app
