"""
Application error types.

Handlers and services raise these; ``medbook.main`` renders them as
``{"message": ..., "errors": ..., ...}`` JSON bodies with the matching status.
"""
from typing import Any, Dict, Iterable, Optional, Union

from pydantic import ValidationError

from .config import settings

ErrorDetails = Union[Dict[str, str], list, None]

# Location prefixes FastAPI adds to request validation errors
_REQUEST_LOCATIONS = ("body", "query", "path", "header", "cookie")


def field_messages(errors: Iterable[Dict[str, Any]], prefix: str = "") -> Dict[str, str]:
    """Flatten pydantic error dicts into a ``{field: message}`` map."""
    messages: Dict[str, str] = {}
    for error in errors:
        loc = list(error.get("loc", ()))
        if loc and loc[0] in _REQUEST_LOCATIONS:
            loc = loc[1:]
        field = ".".join(str(part) for part in loc) or "body"
        if prefix:
            field = f"{prefix}.{field}" if field != "body" else prefix
        messages.setdefault(field, error.get("msg", "Invalid value"))
    return messages


class APIError(Exception):
    def __init__(
        self,
        message: str,
        http_status: int = 400,
        errors: ErrorDetails = None,
        extra: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.http_status = http_status
        self.errors = errors
        self.extra = extra or {}

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"message": self.message}
        if self.errors:
            body["errors"] = self.errors
        body.update(self.extra)
        return body


class BadRequestError(APIError):
    def __init__(self, message: str, errors: ErrorDetails = None):
        super().__init__(message, 400, errors)


class SchemaValidationError(APIError):
    """Submitted data failed schema validation."""

    def __init__(self, errors: Dict[str, str], message: str = "Validation error"):
        super().__init__(message, 400, errors)

    @classmethod
    def from_pydantic(cls, exc: ValidationError, prefix: str = "") -> "SchemaValidationError":
        return cls(field_messages(exc.errors(), prefix=prefix))


class NotFoundError(APIError):
    def __init__(self, message: str, **extra: Any):
        super().__init__(message, 404, extra=extra)


class ConflictError(APIError):
    def __init__(self, message: str):
        super().__init__(message, 409)


class ServerError(APIError):
    """Unexpected failure. The cause is only echoed to clients in development."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message, 500)
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        if settings.is_development and self.cause is not None:
            body["error"] = str(self.cause)
        return body
