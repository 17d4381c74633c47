"""Structured logging, Prometheus metrics and the health payload."""

import json
import logging
import sys
import time
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest

from . import __version__
from .config import get_settings

_settings = get_settings()
NAMESPACE = _settings.metrics_namespace

http_requests_total = Counter(
    "http_requests_total",
    "HTTP requests served, by route template",
    ["method", "endpoint", "status"],
    namespace=NAMESPACE,
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "Time spent serving HTTP requests",
    ["method", "endpoint"],
    namespace=NAMESPACE,
)

complaints_created_total = Counter(
    "complaints_created_total",
    "Complaints raised, by category and by who filed them",
    ["category", "source"],
    namespace=NAMESPACE,
)

complaint_transitions_total = Counter(
    "complaint_transitions_total",
    "Lifecycle operations applied, by resulting status",
    ["operation", "status"],
    namespace=NAMESPACE,
)

priority_classifications_total = Counter(
    "priority_classifications_total",
    "Priority classifier calls by outcome",
    ["outcome"],
    namespace=NAMESPACE,
)

active_websocket_connections = Gauge(
    "websocket_connections_active",
    "Open dashboard push connections",
    ["role"],
    namespace=NAMESPACE,
)

# Attributes every LogRecord carries; anything else came in through ``extra=``
_RESERVED = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """One JSON object per line, with ``extra=`` fields merged in."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "environment": _settings.environment,
        }
        for key, value in vars(record).items():
            if key not in _RESERVED and not key.startswith("_"):
                entry[key] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def setup_logging(level: int = logging.INFO) -> None:
    """Send JSON lines to stdout for the whole process."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    logging.basicConfig(level=level, handlers=[handler])

    for existing in logging.getLogger().handlers:
        existing.setFormatter(JSONFormatter())

    logging.getLogger("resident_resolve").setLevel(level)
    logging.getLogger(__name__).info("Structured JSON logging configured")


def setup_metrics_middleware(app) -> None:
    """Count and time every HTTP request."""

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started

        # Route template, so complaint ids don't become label values
        route = request.scope.get("route")
        endpoint = getattr(route, "path", "unmatched")

        http_requests_total.labels(request.method, endpoint, response.status_code).inc()
        http_request_duration_seconds.labels(request.method, endpoint).observe(elapsed)
        return response


def metrics_response() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


def get_health_check() -> Dict[str, Any]:
    """Liveness payload with the number of open dashboard connections."""
    from .websocket_manager import manager

    return {
        "status": "healthy",
        "version": __version__,
        "environment": _settings.environment,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "websocket_connections": manager.get_connection_count(),
        "websocket_by_role": manager.get_connections_by_role(),
    }
