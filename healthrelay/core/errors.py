"""Error taxonomy for the relay.

Every error raised on the request path carries its HTTP status and knows how
to render itself as the ``{"error", "detail"?}`` envelope. Unparseable model
output is not an error: it degrades to a ``{"raw": ...}`` result instead.
"""

from __future__ import annotations

from typing import Any, Optional


class RelayError(Exception):
    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, detail: Optional[str] = None):
        self.message = message or self.message
        self.detail = detail
        super().__init__(self.message)

    def to_envelope(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message}
        if self.detail is not None:
            body["detail"] = self.detail
        return body


class ConfigurationError(RelayError):
    status_code = 500
    message = "Server not configured"


class UpstreamError(RelayError):
    status_code = 502
    message = "Gemini upstream error"

    def __init__(
        self,
        detail: str = "",
        status: Optional[int] = None,
        max_detail_chars: int = 1000,
    ):
        super().__init__(detail=(detail or "")[:max_detail_chars])
        self.status = status

    def to_envelope(self) -> dict[str, Any]:
        body = super().to_envelope()
        if self.status is not None:
            body["status"] = self.status
        return body


class RateLimitError(RelayError):
    status_code = 429
    message = "Too many requests. Try again later."

    def __init__(self, retry_after: float = 0.0):
        super().__init__()
        self.retry_after = retry_after


class RequestError(RelayError):
    status_code = 400
    message = "Invalid request body"


class MethodNotAllowedError(RelayError):
    status_code = 405
    message = "Method not allowed"


class PayloadTooLargeError(RelayError):
    status_code = 413
    message = "Request body too large"


def unexpected_error_envelope(exc: BaseException) -> dict[str, Any]:
    return {"error": f"{type(exc).__name__}: {exc}"}
