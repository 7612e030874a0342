"""Application, audit and access logging setup.

This module centralizes logging configuration for the service:

- A JSON formatter (opt-in via LOG_JSON) that carries the structured fields
  passed through ``extra=`` (the "Deleting contact" audit entry and cascade
  failures rely on them), or a human-readable formatter that appends them.
- Timed rotation of ``app.log`` (logger ``app``) and ``access.log`` (logger
  ``uvicorn.access``), honoring retention and timezone options.
- An HTTP middleware writing one scrubbed JSON access line per request and
  echoing an ``X-Request-Id`` header.

Environment variables: LOG_DIR, LOG_LEVEL, LOG_JSON, LOG_REQUEST_BODIES,
LOG_RETENTION_DAYS, LOG_ROTATE_UTC.
"""

from __future__ import annotations

import json
import logging
import os
import time
from logging.handlers import TimedRotatingFileHandler
from typing import Any, cast
from uuid import uuid4

from fastapi import FastAPI, Request

# Attributes every LogRecord has; anything else came in through ``extra=``.
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}

SENSITIVE_FIELDS = {
    "authorization",
    "cookie",
    "set-cookie",
    "apikey",
    "password",
    "token",
    "access_token",
    "refresh_token",
}

SKIP_PATHS = {"/api/health", "/api/metrics"}


def record_extras(record: logging.LogRecord) -> dict[str, Any]:
    """Return the structured fields attached to ``record`` via ``extra=``."""

    return {k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS}


class JsonFormatter(logging.Formatter):
    """One JSON object per line, including structured extras."""

    def format(self, record: logging.LogRecord) -> str:
        log_record: dict[str, Any] = {
            "level": record.levelname,
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_record.update(record_extras(record))
        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(log_record, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable lines with extras appended as ``key=value`` pairs."""

    def __init__(self) -> None:
        super().__init__("[%(asctime)s] %(levelname)s in %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = record_extras(record)
        if not extras:
            return line
        fields = " ".join(f"{k}={v!r}" for k, v in sorted(extras.items()))
        return f"{line} [{fields}]"


def _get_formatter(log_json: bool) -> logging.Formatter:
    if log_json:
        return JsonFormatter()
    return TextFormatter()


def _scrub(data: object) -> object:
    """Recursively mask sensitive keys in dictionaries and lists."""

    if isinstance(data, dict):
        return {
            k: ("***" if str(k).lower() in SENSITIVE_FIELDS else _scrub(v))
            for k, v in data.items()
        }
    if isinstance(data, list):
        return [_scrub(v) for v in data]
    return data


def _install_access_logging(app: FastAPI) -> None:
    """Install the access logging middleware on ``app``."""

    log_request_bodies = os.getenv("LOG_REQUEST_BODIES", "false").lower() == "true"
    access_logger = logging.getLogger("uvicorn.access")

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        if request.url.path in SKIP_PATHS:
            return await call_next(request)

        request_id = request.headers.get("X-Request-Id") or uuid4().hex
        request.state.request_id = request_id
        start = time.perf_counter()

        body_content = None
        if log_request_bodies:
            body_bytes = await request.body()

            async def receive() -> dict:  # pragma: no cover - internal
                return {"type": "http.request", "body": body_bytes, "more_body": False}

            request._receive = receive  # type: ignore[attr-defined]

            if body_bytes:
                try:
                    body_content = _scrub(json.loads(body_bytes))
                except ValueError:
                    body_content = body_bytes.decode("utf-8", errors="replace")

        response = await call_next(request)

        client_ip = request.headers.get("X-Forwarded-For")
        if not client_ip and request.client is not None:
            client_ip = request.client.host

        log_data: dict[str, Any] = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "latency_ms": round((time.perf_counter() - start) * 1000, 2),
            "client_ip": client_ip,
            "headers": _scrub(dict(request.headers)),
        }
        if body_content is not None:
            log_data["body"] = body_content

        response.headers["X-Request-Id"] = request_id
        access_logger.info(json.dumps(log_data, default=str))
        return response


def _rotating_handler(
    log_dir: str, filename: str, retention_days: int, rotate_utc: bool
) -> TimedRotatingFileHandler:
    return TimedRotatingFileHandler(
        os.path.join(log_dir, filename),
        when="midnight",
        backupCount=retention_days,
        utc=rotate_utc,
    )


def init_logging(app: FastAPI | None = None) -> None:
    """Initialise the application and access loggers."""

    log_dir = os.getenv("LOG_DIR", "logs")
    log_level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
    log_json = os.getenv("LOG_JSON", "false").lower() == "true"
    retention_days = int(os.getenv("LOG_RETENTION_DAYS", "7"))
    rotate_utc = os.getenv("LOG_ROTATE_UTC", "false").lower() == "true"

    os.makedirs(log_dir, exist_ok=True)
    formatter = _get_formatter(log_json)

    app_logger = logging.getLogger("app")
    if not app_logger.handlers:
        handler = _rotating_handler(log_dir, "app.log", retention_days, rotate_utc)
        handler.setFormatter(formatter)
        app_logger.addHandler(handler)
    app_logger.setLevel(log_level)

    access_logger = logging.getLogger("uvicorn.access")
    access_logger.handlers.clear()
    handler = _rotating_handler(log_dir, "access.log", retention_days, rotate_utc)
    handler.setFormatter(formatter)
    access_logger.addHandler(handler)
    access_logger.setLevel(log_level)

    if app is not None:
        cast(Any, app).logger = app_logger
        _install_access_logging(app)
