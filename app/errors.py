"""Application error taxonomy, mapped to HTTP responses in app.main."""
from typing import Optional


def _code_prefix(entity: str) -> str:
    return entity.upper().replace(" ", "_")


class AppError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500
    error: str = "Internal Server Error"
    code: Optional[str] = None

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[list[str]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details

    def to_dict(self) -> dict:
        """Error envelope returned to the caller."""
        body = {"error": self.error, "message": self.message}
        if self.code:
            body["code"] = self.code
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(AppError):
    """User input violates a field or cross-field rule."""

    status_code = 400
    error = "Validation Error"
    code = "VALIDATION_FAILED"

    def __init__(self, messages: list[str] | str, code: Optional[str] = None):
        if isinstance(messages, str):
            messages = [messages]
        super().__init__("; ".join(messages), code=code, details=list(messages))
        self.messages = list(messages)


class NotFoundError(AppError):
    """Entity ID is absent."""

    status_code = 404
    error = "Not Found"

    def __init__(self, entity: str, entity_id: Optional[str] = None, message: Optional[str] = None):
        if message is None:
            message = (
                f'{entity} with id "{entity_id}" not found' if entity_id else f"{entity} not found"
            )
        super().__init__(message, code=f"{_code_prefix(entity)}_NOT_FOUND")
        self.entity = entity
        self.entity_id = entity_id


class GoneError(AppError):
    """Entity has been soft-deleted."""

    status_code = 410
    error = "Gone"

    def __init__(self, entity: str, message: Optional[str] = None, code: Optional[str] = None):
        super().__init__(
            message or f"{entity} has been deleted",
            code=code or f"{_code_prefix(entity)}_DELETED",
        )
        self.entity = entity


class InternalError(AppError):
    """Unexpected failure; callers only see a generic message."""

    status_code = 500
    error = "Internal Server Error"
