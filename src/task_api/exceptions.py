"""
Error taxonomy for the task service and its HTTP mapping.

Every error carries an HTTP status, a short kind used as the "error" key of
the JSON body, and a human readable message. Handlers registered by
register_exception_handlers turn them into consistent JSON responses.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError


class TaskError(Exception):
    """Base class for all task service errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "TaskError"
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None, *, detail: Optional[List[Dict[str, Any]]] = None) -> None:
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.error, "message": self.message}
        if self.detail:
            body["detail"] = self.detail
        return body


# PUBLIC_INTERFACE
class ValidationError(TaskError):
    """Malformed or missing input. Detail lists the offending fields."""

    status_code = status.HTTP_400_BAD_REQUEST
    error = "ValidationError"
    default_message = "Request validation failed"

    @classmethod
    def from_pydantic(cls, exc: PydanticValidationError) -> "ValidationError":
        """Build from a pydantic validation error, keeping one entry per field."""
        return cls(detail=_field_errors(exc.errors(), skip_location_root=False))


# PUBLIC_INTERFACE
class NotFound(TaskError):
    """The referenced task id does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    error = "NotFound"
    default_message = "Task not found"


# PUBLIC_INTERFACE
class StoreError(TaskError):
    """
    The underlying store failed. The message stays generic; the cause is
    chained on the exception and logged, never returned to callers.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "StoreError"
    default_message = "Storage error"


def _field_errors(errors: Any, *, skip_location_root: bool) -> List[Dict[str, Any]]:
    details = []
    for err in errors:
        loc = tuple(err.get("loc", ()))
        # FastAPI prefixes locations with "body"/"query"
        if skip_location_root and len(loc) > 1:
            loc = loc[1:]
        details.append(
            {
                "field": ".".join(str(part) for part in loc),
                "message": err.get("msg", "Invalid value"),
            }
        )
    return details


async def task_error_handler(request: Request, exc: TaskError) -> JSONResponse:
    """Return the error's JSON body with its status code."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Report FastAPI request validation failures as ValidationError (400).

    Response format:
        {
            "error": "ValidationError",
            "message": "Request validation failed",
            "detail": [{"field": "title", "message": "..."}]
        }
    """
    error = ValidationError(detail=_field_errors(exc.errors(), skip_location_root=True))
    return JSONResponse(status_code=error.status_code, content=error.to_body())


# PUBLIC_INTERFACE
def register_exception_handlers(app: FastAPI) -> None:
    """Register the handlers that map service errors onto JSON responses."""
    app.add_exception_handler(TaskError, task_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]
