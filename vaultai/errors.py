"""Error taxonomy shared by the sync and query flows."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .text import Messages


class ErrorKind(str, Enum):
    NOT_SYNCED = "not_synced"
    UPLOAD_TIMEOUT = "upload_timeout"
    UPLOAD_REJECTED = "upload_rejected"
    RATE_LIMITED = "rate_limited"
    AUTH_FAILED = "auth_failed"
    BACKEND_UNAVAILABLE = "backend_unavailable"
    CONTENT_BLOCKED = "content_blocked"
    MALFORMED_METADATA = "malformed_metadata"
    INVALID_REQUEST = "invalid_request"
    UNKNOWN = "unknown"


class VaultAIError(RuntimeError):
    """Base class for errors raised by VaultAI."""

    kind: ErrorKind = ErrorKind.UNKNOWN
    default_message: str = Messages.ERROR_UNKNOWN

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class NotSyncedError(VaultAIError):
    kind = ErrorKind.NOT_SYNCED
    default_message = Messages.ERROR_NOT_SYNCED


class UploadTimeoutError(VaultAIError):
    kind = ErrorKind.UPLOAD_TIMEOUT


class UploadRejectedError(VaultAIError):
    kind = ErrorKind.UPLOAD_REJECTED


class RateLimitedError(VaultAIError):
    kind = ErrorKind.RATE_LIMITED
    default_message = Messages.ERROR_RATE_LIMITED


class AuthFailedError(VaultAIError):
    kind = ErrorKind.AUTH_FAILED
    default_message = Messages.ERROR_API_KEY_INVALID


class BackendUnavailableError(VaultAIError):
    kind = ErrorKind.BACKEND_UNAVAILABLE
    default_message = Messages.ERROR_BACKEND_UNAVAILABLE


class ContentBlockedError(VaultAIError):
    kind = ErrorKind.CONTENT_BLOCKED
    default_message = Messages.ERROR_CONTENT_BLOCKED


class StoreError(VaultAIError):
    """Raised when a File Search store lifecycle call fails."""


class SyncInProgressError(VaultAIError):
    default_message = Messages.ERROR_SYNC_RUNNING


@dataclass(frozen=True, slots=True)
class QueryError:
    kind: ErrorKind
    message: str


_AUTH_STATUS_CODES = {401, 403}
_UNAVAILABLE_STATUS_CODES = {500, 502, 503, 504}
_RATE_LIMIT_TOKENS = (
    "rate limit",
    "too many requests",
    "resource_exhausted",
    "resource exhausted",
    "quota",
)
_AUTH_TOKENS = (
    "api key",
    "api_key_invalid",
    "permission_denied",
    "unauthenticated",
    "credential",
)
_UNAVAILABLE_TOKENS = (
    "service unavailable",
    "temporarily unavailable",
    "overloaded",
    "internal error",
    "deadline exceeded",
)
_BLOCKED_TOKENS = ("safety", "blocked", "prohibited_content", "blocklist")


def extract_status_code(exc: BaseException) -> int | None:
    for attr in ("code", "status_code", "status", "http_status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str) and value.isdigit():
            return int(value)
    response = getattr(exc, "response", None)
    if response is not None:
        value = getattr(response, "status_code", None)
        if isinstance(value, int):
            return value
    return None


def classify_error(exc: BaseException) -> ErrorKind:
    """Map a backend exception onto the closed error taxonomy."""

    if isinstance(exc, VaultAIError):
        return exc.kind
    status = extract_status_code(exc)
    message = f"{exc} {getattr(exc, 'message', None) or ''}".lower()
    if status == 429 or "429" in message:
        return ErrorKind.RATE_LIMITED
    if status in _AUTH_STATUS_CODES or any(token in message for token in _AUTH_TOKENS):
        return ErrorKind.AUTH_FAILED
    if any(token in message for token in _BLOCKED_TOKENS):
        return ErrorKind.CONTENT_BLOCKED
    if any(token in message for token in _RATE_LIMIT_TOKENS):
        return ErrorKind.RATE_LIMITED
    if status is not None and status >= 500:
        return ErrorKind.BACKEND_UNAVAILABLE
    if any(token in message for token in _UNAVAILABLE_TOKENS):
        return ErrorKind.BACKEND_UNAVAILABLE
    if status is not None and 400 <= status < 500:
        return ErrorKind.INVALID_REQUEST
    return ErrorKind.UNKNOWN


def user_message(kind: ErrorKind, exc: BaseException | None = None) -> str:
    """Return the single user-visible message for *kind*."""

    if isinstance(exc, VaultAIError) and exc.kind == kind:
        return exc.message
    if kind == ErrorKind.NOT_SYNCED:
        return Messages.ERROR_NOT_SYNCED
    if kind == ErrorKind.RATE_LIMITED:
        return Messages.ERROR_RATE_LIMITED
    if kind == ErrorKind.AUTH_FAILED:
        return Messages.ERROR_API_KEY_INVALID
    if kind == ErrorKind.BACKEND_UNAVAILABLE:
        return Messages.ERROR_BACKEND_UNAVAILABLE
    if kind == ErrorKind.CONTENT_BLOCKED:
        return Messages.ERROR_CONTENT_BLOCKED
    if kind == ErrorKind.INVALID_REQUEST and exc is not None:
        reason = getattr(exc, "message", None) or str(exc)
        return Messages.ERROR_INVALID_REQUEST.format(reason=reason)
    return Messages.ERROR_UNKNOWN


def query_error_from_exception(exc: BaseException) -> QueryError:
    kind = classify_error(exc)
    return QueryError(kind=kind, message=user_message(kind, exc))
