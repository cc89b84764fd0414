"""Observability helpers: structured logging, CloudWatch Embedded Metrics and X-Ray tracing.

Call `init_observability(app)` once, right after the FastAPI app is created.
Candidate contact details never reach the log stream: any event key listed in
``REDACTED_KEYS`` is masked before rendering.
"""
from __future__ import annotations

import logging
import os
from typing import Any, Optional

from aws_embedded_metrics import metric_scope
import structlog

# X-Ray is an optional extra; skip tracing when it is not installed
try:
    from aws_xray_sdk.core import xray_recorder, patch_all  # type: ignore
    from aws_xray_sdk.ext.fastapi.middleware import XRayMiddleware  # type: ignore
except ImportError:  # pragma: no cover
    xray_recorder = None  # type: ignore
    patch_all = None  # type: ignore
    XRayMiddleware = None  # type: ignore

__all__ = [
    "init_observability",
    "metric_scope",
    "redact_contact_details",
]

SERVICE_NAME = "talent-match"
SEGMENT_NAME = "TalentMatch"
REDACTED = "[redacted]"
REDACTED_KEYS = frozenset(
    {
        "contact_email",
        "contact_phone",
        "linkedin_url",
        "website_url",
        "email",
        "phone",
        "authorization",
    }
)


def redact_contact_details(logger: Any, method_name: str, event_dict: dict) -> dict:
    """structlog processor masking candidate contact fields and credentials."""
    for key in REDACTED_KEYS.intersection(event_dict):
        if event_dict[key] is not None:
            event_dict[key] = REDACTED
    return event_dict


def add_service_name(logger: Any, method_name: str, event_dict: dict) -> dict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _setup_logging() -> None:
    """Configure structlog on top of stdlib logging (JSON or console)."""

    log_format = os.getenv("LOG_FORMAT", "json").lower()
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        add_service_name,
        redact_contact_details,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        final_processor = structlog.processors.JSONRenderer()
    else:
        final_processor = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=shared_processors + [final_processor],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    if not root_logger.handlers:
        root_logger.addHandler(logging.StreamHandler())
    root_logger.setLevel(log_level)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def _setup_tracing(app: Optional["FastAPI"]) -> bool:  # noqa: F821
    """Attach AWS X-Ray middleware when ENABLE_XRAY=1 and the SDK is installed."""

    if app is None or os.getenv("ENABLE_XRAY", "0") != "1":
        return False

    if xray_recorder is None:
        structlog.get_logger(__name__).warning("aws_xray_sdk not installed; skipping X-Ray setup")
        return False

    # Traces the SQL and analyzer HTTP calls made while matching
    patch_all()
    xray_recorder.configure(service=SEGMENT_NAME)
    app.add_middleware(XRayMiddleware, recorder=xray_recorder, segment_name=SEGMENT_NAME)
    return True


def init_observability(app: Optional["FastAPI"] = None) -> None:  # noqa: F821
    """Setup logging & tracing. Call once at process start."""

    _setup_logging()
    tracing = _setup_tracing(app)

    structlog.get_logger(__name__).info("Observability initialized", service=SERVICE_NAME, tracing=tracing)
