from enum import Enum
from typing import Any


class FailureKind(str, Enum):
    TRANSPORT = "transport"
    HTTP_STATUS = "http_status"
    VALIDATION = "validation"
    DECODE = "decode"


class SideshiftError(Exception):
    """Uniform error surfaced to callers regardless of where the failure happened.

    Attributes:
        status: HTTP status code, or None for failures without a response
        status_text: HTTP reason phrase, or None
        url: the URL the request targeted
        options: the request options used (method, headers, body)
        error: best-effort error payload (parsed JSON, raw text or a fallback marker)
    """

    kind: FailureKind

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        status_text: str | None = None,
        url: str | None = None,
        options: dict[str, Any] | None = None,
        error: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.status_text = status_text
        self.url = url
        self.options = options
        self.error = error

    def detail(self) -> str:
        """Prefer the payload's own message over ours."""
        if isinstance(self.error, dict) and self.error.get("message"):
            return str(self.error["message"])
        return self.message

    def wrap(self, prefix: str) -> "SideshiftError":
        """Return a copy of this error (same kind) with a descriptive prefix."""
        return type(self)(
            f"{prefix}: {self.detail()}",
            status=self.status,
            status_text=self.status_text,
            url=self.url,
            options=self.options,
            error=self.error,
        )


class TransportError(SideshiftError):
    """Network failure, timeout or aborted transport call."""

    kind = FailureKind.TRANSPORT


class HttpStatusError(SideshiftError):
    """The remote service answered with a non-success status."""

    kind = FailureKind.HTTP_STATUS


class ValidationError(SideshiftError, ValueError):
    kind = FailureKind.VALIDATION


class DecodeError(SideshiftError):
    kind = FailureKind.DECODE
