"""Global error handlers ensuring request_id is included in JSON responses."""

from __future__ import annotations

from typing import Any, Mapping

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from gamehub.moderation.domain import errors
from gamehub.obs.logging import current_request_id

STATUS_BY_ERROR: tuple[tuple[type[errors.ModerationWorkflowError], int], ...] = (
    (errors.ValidationError, 400),
    (errors.ForbiddenError, 403),
    (errors.NotFoundError, 404),
    (errors.ConflictError, 409),
    (errors.InternalError, 503),
)


class WorkflowHTTPException(HTTPException):
    """HTTPException that also carries a readable message and extra fields."""

    def __init__(self, status_code: int, code: str, message: str | None = None, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(status_code=status_code, detail=code)
        self.message = message or code
        self.context = dict(context or {})


def to_http(exc: errors.ModerationWorkflowError) -> WorkflowHTTPException:
    status_code = 500
    for error_type, mapped in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status_code = mapped
            break
    return WorkflowHTTPException(status_code, exc.code, exc.message, exc.context)


def get_request_id(default: str = "unknown") -> str:
    return current_request_id() or default


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
        payload: dict[str, Any] = {"detail": exc.detail, "request_id": get_request_id()}
        if isinstance(exc, WorkflowHTTPException):
            payload["message"] = exc.message
            payload.update(jsonable_encoder(exc.context))
        return JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
        payload = {"detail": "validation_error", "errors": jsonable_encoder(exc.errors()), "request_id": get_request_id()}
        return JSONResponse(status_code=422, content=payload)

    @app.exception_handler(errors.ModerationWorkflowError)
    async def workflow_exc_handler(request: Request, exc: errors.ModerationWorkflowError):  # type: ignore[override]
        return await http_exc_handler(request, to_http(exc))
