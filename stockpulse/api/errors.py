"""Error envelope for the public API."""

from typing import Any

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Error response model."""

    error: str = Field(..., description="Short error title")
    message: str | None = Field(default=None, description="Human-readable explanation")


class ApiError(Exception):
    """Raised by routes to return a {error, message} response.

    Attributes:
        status_code: HTTP status code.
        error: Short error title.
        message: Optional explanation.
        extra: Additional top-level fields for the response body.
    """

    def __init__(
        self,
        status_code: int,
        error: str,
        message: str | None = None,
        **extra: Any,
    ) -> None:
        self.status_code = status_code
        self.error = error
        self.message = message
        self.extra = extra
        super().__init__(f"{status_code} {error}: {message}")

    def to_dict(self) -> dict[str, Any]:
        """Build the response body."""
        body = ErrorResponse(error=self.error, message=self.message).model_dump(exclude_none=True)
        body.update(self.extra)
        return body
