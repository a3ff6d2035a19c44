"""
Application error taxonomy.

Every error carries the HTTP status it maps to and a generic, non-leaking
message that is safe to send to the client. Details stay in server logs.
"""
from typing import Optional


class AppError(Exception):
    """Base class for all errors raised by the service layer."""

    status_code: int = 500
    public_message: str = "Internal server error"

    def __init__(self, detail: Optional[str] = None, *, public_message: Optional[str] = None):
        super().__init__(detail or self.public_message)
        self.detail = detail or self.public_message
        if public_message is not None:
            self.public_message = public_message

    def to_body(self) -> dict:
        return {"error": self.public_message}


class AuthError(AppError):
    """Invalid/expired credential or missing session."""

    status_code = 401
    public_message = "Unauthorized"


class ValidationError(AppError):
    status_code = 400
    public_message = "Invalid request"


class NotFoundError(AppError):
    status_code = 404
    public_message = "Not found"


class QuotaError(AppError):
    """
    Call-seconds quota error.

    kind:
      - "exhausted": balance could not cover the request (balance is clamped to 0)
      - "unconfigured": the user has no call-seconds quota at all
    """

    EXHAUSTED = "exhausted"
    UNCONFIGURED = "unconfigured"

    status_code = 403

    def __init__(self, kind: str, remaining: Optional[int] = None, detail: Optional[str] = None):
        if kind == self.EXHAUSTED:
            message = "callSeconds quota exhausted"
        else:
            message = "No callSeconds quota available"
        super().__init__(detail, public_message=message)
        self.kind = kind
        self.remaining = remaining

    def to_body(self) -> dict:
        body = {"error": self.public_message}
        if self.kind == self.EXHAUSTED:
            body["remaining"] = 0
        return body


class UpstreamError(AppError):
    """Summarizer or voice-agent failure."""

    status_code = 502
    public_message = "Upstream service error"


class UpstreamTimeout(UpstreamError):
    status_code = 504
    public_message = "Upstream service timed out"


class PersistenceError(AppError):
    status_code = 500
    public_message = "Failed to save"
