"""
Centralized logging configuration for Huddle services.

Every module logs through ``get_logger(__name__)`` with key=value fields.
``setup_service_logging`` wires structlog onto the stdlib root logger once per
process and the request middleware stamps each request with an id that is
echoed back in ``X-Request-Id``.

Usage:
    from services.common.logging_config import setup_service_logging

    setup_service_logging(service_name="meetings", log_level="INFO", log_format="json")
"""

import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Any, Callable, Dict, Optional

import structlog
from fastapi import Request, Response

request_id_var: ContextVar[str] = ContextVar("request_id", default="uninitialized")

# Event keys whose values must never reach a log sink
SECRET_KEYS = frozenset(
    {
        "password",
        "new_password",
        "password_hash",
        "access_token",
        "join_token",
        "jwt_secret",
        "authorization",
    }
)
REDACTED = "[redacted]"

_TEXT_SKIP_KEYS = ("timestamp", "level", "logger", "event", "service", "request_id")


def add_request_context(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: structlog.types.EventDict,
) -> structlog.types.EventDict:
    request_id = request_id_var.get()
    if request_id != "uninitialized":
        event_dict.setdefault("request_id", request_id)
    return event_dict


def add_service_context(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: structlog.types.EventDict,
) -> structlog.types.EventDict:
    """Derive ``service`` from the logger name, e.g. services.meetings.api -> meetings."""
    parts = event_dict.get("logger", "").split(".")
    if len(parts) >= 2 and parts[0] == "services":
        event_dict["service"] = parts[1]
    return event_dict


def redact_secrets(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: structlog.types.EventDict,
) -> structlog.types.EventDict:
    for key in event_dict:
        if key.lower() in SECRET_KEYS:
            event_dict[key] = REDACTED
    return event_dict


class TextRenderer:
    """One-line renderer for local development."""

    def __init__(self, service_name: str):
        self.service_name = service_name

    def __call__(
        self,
        logger: structlog.types.WrappedLogger,
        method_name: str,
        event_dict: structlog.types.EventDict,
    ) -> str:
        service = event_dict.get("service", self.service_name)
        level = event_dict.get("level", "info").upper()
        logger_name = event_dict.get("logger", "").removeprefix("services.")

        # Last 4 chars of the request id are enough to correlate locally
        request_id = event_dict.get("request_id", "")
        request_tag = f"[{request_id[-4:]}]" if request_id else ""

        line = " ".join(
            filter(
                None,
                [
                    event_dict.get("timestamp", ""),
                    f"[{service}]",
                    f"[{level}]",
                    request_tag,
                    logger_name,
                    f"- {event_dict.get('event', '')}",
                ],
            )
        )

        extra = [
            f"{key}={value}" if isinstance(value, (str, int, float, bool)) else
            f"{key}={str(value)[:150]}"
            for key, value in event_dict.items()
            if key not in _TEXT_SKIP_KEYS
        ]
        if extra:
            line += f" | {', '.join(extra)}"
        return line


def setup_service_logging(
    service_name: str,
    log_level: str = "INFO",
    log_format: str = "json",
) -> None:
    """
    Configure structlog and the stdlib root logger for a service.

    Args:
        service_name: Name of the service (e.g., "meetings")
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: "json" for deployments, "text" for local development
    """
    processors: list = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        add_request_context,
        add_service_context,
        redact_secrets,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(TextRenderer(service_name))

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # structlog has already rendered the message
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        handlers=[handler],
        force=True,
    )

    # SQL echo and client chatter stay out of service logs
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    get_logger(__name__).info(
        "Logging configured",
        service=service_name,
        log_level=log_level,
        log_format=log_format,
    )


def create_request_logging_middleware() -> Callable:
    """HTTP middleware that logs each request and echoes ``X-Request-Id``."""

    async def log_requests(request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        request_id_var.set(request_id)

        start_time = time.perf_counter()
        logger = get_logger("http.requests")
        logger.debug(
            "Request started",
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else "unknown",
        )

        response = await call_next(request)

        duration_ms = round((time.perf_counter() - start_time) * 1000, 1)
        log_level = logging.ERROR if response.status_code >= 500 else logging.INFO
        logger.log(
            log_level,
            "Request finished",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=duration_ms,
        )
        response.headers["X-Request-Id"] = request_id
        return response

    return log_requests


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def log_service_startup(service_name: str, **kwargs: Any) -> None:
    get_logger("startup").info(f"Starting {service_name}", service=service_name, **kwargs)


def log_service_shutdown(service_name: str) -> None:
    get_logger("startup").info(f"Service {service_name} shutting down")


def log_http_error(
    error_type: str,
    message: str,
    status_code: int,
    request_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    **kwargs: Any,
) -> None:
    """Log an error response; 5xx at ERROR, 4xx at WARNING."""
    logger = get_logger(__name__)

    log_context: Dict[str, Any] = {
        "error_type": error_type,
        "status_code": status_code,
        **kwargs,
    }
    if request_id:
        log_context["error_request_id"] = request_id
    if details:
        log_context["details"] = details

    if status_code >= 500:
        logger.error(f"HTTP {status_code} {error_type}: {message}", **log_context)
    else:
        logger.warning(f"HTTP {status_code} {error_type}: {message}", **log_context)
