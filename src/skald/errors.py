"""
Exception types for Skald.

Only failures that end a turn are exceptions. Tool failures are data
(``FunctionCallResult.response["success"] is False``) and never raise.
"""


class SkaldError(Exception):
    """Base class for Skald errors."""

    pass


class GeminiAPIError(SkaldError):
    """Raised when the model endpoint answers with a non-success status."""

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"Gemini API error: {status_code} - {body[:200]}")


class ClientUnavailableError(SkaldError):
    """Raised when a stream is requested from a client with no credentials."""

    pass


class TurnTimeoutError(SkaldError):
    """Raised when a turn exceeds its deadline."""

    def __init__(self, timeout_ms: int) -> None:
        self.timeout_ms = timeout_ms
        super().__init__(f"timed out after {timeout_ms}ms")
