"""
Test the process entrypoint. uvicorn.run and get_settings are mocked; nothing is served.
"""

from __future__ import annotations

from unittest.mock import patch

from fastapi import FastAPI


def test_main_serves_app_with_settings(settings):
    """main() builds the app from one Settings snapshot and hands it to uvicorn."""
    import main

    with patch("backend_guard.config.get_settings", return_value=settings), patch("uvicorn.run") as run:
        main.main()

    run.assert_called_once()
    app = run.call_args.args[0]
    assert isinstance(app, FastAPI)
    assert app.state.settings is settings
    assert run.call_args.kwargs == {"host": "0.0.0.0", "port": 8000, "log_level": "info"}
