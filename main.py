"""
Main entrypoint: Backend Guard API server.

Env: GEMINI_API_KEY, AUDIT_REGISTRY_ADDRESS, CHAIN_NETWORK, BASESCAN_API_KEY, API_HOST, API_PORT, etc.

Equivalent: uvicorn backend_guard.api_server.app:app --host 0.0.0.0 --port 8000
"""

# Configure structured JSON logging before other imports that may log
from backend_guard.guard_logging import get_logger

logger = get_logger("main")


def main() -> None:
    """Build settings once, create the app with them, and serve it."""
    from backend_guard.api_server.server import create_app
    from backend_guard.config import get_settings
    import uvicorn

    settings = get_settings()
    if not settings.analyzer_configured:
        logger.warning(
            "main_config_warning",
            message="GEMINI_API_KEY is not set: /analyze will answer 500 until it is configured",
        )
    app = create_app(settings)
    logger.info("main_server_starting", host=settings.api_host, port=settings.api_port)
    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_level=settings.log_level)


if __name__ == "__main__":
    main()
