"""Typed errors raised by the matching engine.

Every error carries a stable machine-readable ``kind`` and the HTTP status it
maps to. ``main.py`` renders them as ``{"error": kind, "detail": message}``.
"""
from __future__ import annotations

from typing import Any, Optional


class MatchingError(Exception):
    kind = "internal_error"
    status_code = 500
    default_message = "Internal error"

    def __init__(self, message: Optional[str] = None, **details: Any) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.kind, "detail": self.message}
        if self.details:
            body.update(self.details)
        return body


class NotFound(MatchingError):
    kind = "not_found"
    status_code = 404
    default_message = "Not found"


class Unauthorized(MatchingError):
    kind = "unauthorized"
    status_code = 401
    default_message = "Authentication required"


class Forbidden(MatchingError):
    kind = "forbidden"
    status_code = 403
    default_message = "Recruiter matching access required"


class InsufficientCredits(MatchingError):
    kind = "insufficient_credits"
    status_code = 402
    default_message = "Insufficient credits"


class ValidationError(MatchingError):
    kind = "validation_error"
    status_code = 422
    default_message = "Invalid request parameters"


class JobArchived(MatchingError):
    kind = "job_archived"
    status_code = 409
    default_message = "Job posting is archived"
