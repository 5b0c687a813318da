"""
Structured logging for Backend Guard.

JSON logs with timestamp, event_type, request_id and pipeline stage.
Use get_logger() in all modules for aggregation-friendly output.
"""

from backend_guard.guard_logging.logger import bind_request, get_logger

__all__ = ["bind_request", "get_logger"]
