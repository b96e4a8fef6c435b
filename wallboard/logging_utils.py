import logging
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from pythonjsonlogger import jsonlogger

from wallboard.metrics import record_http_request


request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

request_logger = logging.getLogger("wallboard.requests")

UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter adding an ISO-8601 `ts`, the level and the request_id."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        if not log_record.get('ts'):
            log_record['ts'] = datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%f')[:-3] + 'Z'
        log_record['level'] = record.levelname

        req_id = request_id_ctx.get()
        if req_id:
            log_record.setdefault('request_id', req_id)


def setup_logging(log_level: str = "INFO", sql_debug: bool = False):
    """
    Send every log line to stdout as JSON, uvicorn's included.

    With sql_debug, SQLAlchemy's statement log is let through as well.
    """
    json_handler = logging.StreamHandler(sys.stdout)
    json_handler.setFormatter(CustomJsonFormatter('%(ts)s %(level)s %(name)s %(message)s'))

    root = logging.getLogger()
    root.setLevel(log_level.upper())
    root.handlers = [json_handler]

    for logger_name in UVICORN_LOGGERS:
        uvicorn_logger = logging.getLogger(logger_name)
        uvicorn_logger.handlers = [json_handler]
        uvicorn_logger.propagate = False

    # RequestLoggingMiddleware writes the access log
    logging.getLogger("uvicorn.access").disabled = True

    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if sql_debug else logging.WARNING)

    return root


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    One JSON access line per request, tagged with a fresh X-Request-ID.

    Wall routes add wall_id and result through log_wall_data().
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        token = request_id_ctx.set(request_id)
        start_time = time.time()

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            latency_seconds = time.time() - start_time

            if request.url.path != "/metrics":
                record_http_request(request.method, request.url.path, response.status_code, latency_seconds)

            log_data = {
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "latency_ms": round(latency_seconds * 1000, 2),
                **getattr(request.state, "wall_log_data", {}),
            }

            if response.status_code >= 500:
                level = logging.ERROR
            elif response.status_code >= 400:
                level = logging.WARNING
            else:
                level = logging.INFO
            request_logger.log(level, "Request completed", extra=log_data)

            return response
        finally:
            request_id_ctx.reset(token)


def log_wall_data(request: Request, wall_id: Optional[int] = None, result: Optional[str] = None):
    """Remember which wall a request touched and how it ended, for the access line."""
    wall_data = {}
    if wall_id is not None:
        wall_data["wall_id"] = wall_id
    if result is not None:
        wall_data["result"] = result
    request.state.wall_log_data = wall_data
