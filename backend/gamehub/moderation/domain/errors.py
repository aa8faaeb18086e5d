"""Failure taxonomy shared by every moderation operation.

Each error carries a stable snake_case ``code``; the HTTP layer maps the
class to a status and echoes the code as ``detail``.
"""

from __future__ import annotations

from typing import Any


class ModerationWorkflowError(Exception):
    """Base class for moderation workflow failures."""

    default_code = "moderation_error"

    def __init__(self, code: str | None = None, message: str | None = None, **context: Any) -> None:
        self.code = code or self.default_code
        self.message = message or self.code
        self.context = context
        super().__init__(self.code)


class ValidationError(ModerationWorkflowError):
    default_code = "validation_error"


class ForbiddenError(ModerationWorkflowError):
    default_code = "forbidden"


class NotFoundError(ModerationWorkflowError):
    default_code = "not_found"


class ConflictError(ModerationWorkflowError):
    default_code = "conflict"


class InternalError(ModerationWorkflowError):
    default_code = "internal_error"
