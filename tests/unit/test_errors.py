from types import SimpleNamespace

import pytest

from vaultai.errors import (
    ContentBlockedError,
    ErrorKind,
    NotSyncedError,
    StoreError,
    SyncInProgressError,
    UploadTimeoutError,
    classify_error,
    extract_status_code,
    query_error_from_exception,
    user_message,
)
from vaultai.text import Messages


def _error(message: str = "boom", /, **attrs) -> Exception:
    exc = RuntimeError(message)
    for key, value in attrs.items():
        setattr(exc, key, value)
    return exc


@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (_error(code=429), ErrorKind.RATE_LIMITED),
        (_error("429 RESOURCE_EXHAUSTED"), ErrorKind.RATE_LIMITED),
        (_error("Quota exceeded for project"), ErrorKind.RATE_LIMITED),
        (_error(status_code=401), ErrorKind.AUTH_FAILED),
        (_error(code=403), ErrorKind.AUTH_FAILED),
        (_error("API key not valid"), ErrorKind.AUTH_FAILED),
        (_error("Response was blocked due to SAFETY"), ErrorKind.CONTENT_BLOCKED),
        (_error(code=503), ErrorKind.BACKEND_UNAVAILABLE),
        (_error(response=SimpleNamespace(status_code=502)), ErrorKind.BACKEND_UNAVAILABLE),
        (_error("The model is overloaded"), ErrorKind.BACKEND_UNAVAILABLE),
        (_error(code=400), ErrorKind.INVALID_REQUEST),
        (_error("something odd"), ErrorKind.UNKNOWN),
    ],
)
def test_classify_error(exc, expected):
    assert classify_error(exc) == expected


def test_classify_error_keeps_own_kind():
    assert classify_error(NotSyncedError()) == ErrorKind.NOT_SYNCED
    assert classify_error(UploadTimeoutError("slow")) == ErrorKind.UPLOAD_TIMEOUT
    assert classify_error(ContentBlockedError()) == ErrorKind.CONTENT_BLOCKED


def test_classify_error_reads_message_attribute():
    exc = _error("400 Bad Request", code=400, message="API key expired")

    assert classify_error(exc) == ErrorKind.AUTH_FAILED


def test_extract_status_code_accepts_numeric_strings():
    assert extract_status_code(_error(status="503")) == 503
    assert extract_status_code(_error(code=True)) is None
    assert extract_status_code(_error()) is None


def test_user_message_per_kind():
    assert user_message(ErrorKind.RATE_LIMITED) == Messages.ERROR_RATE_LIMITED
    assert user_message(ErrorKind.BACKEND_UNAVAILABLE) == Messages.ERROR_BACKEND_UNAVAILABLE
    assert user_message(ErrorKind.UNKNOWN) == Messages.ERROR_UNKNOWN
    assert user_message(ErrorKind.INVALID_REQUEST, _error("bad field")) == (
        Messages.ERROR_INVALID_REQUEST.format(reason="bad field")
    )


def test_query_error_from_exception_uses_custom_message():
    error = query_error_from_exception(StoreError("store gone"))

    assert error.kind == ErrorKind.UNKNOWN
    assert error.message == "store gone"


def test_vaultai_errors_have_default_messages():
    assert SyncInProgressError().message == Messages.ERROR_SYNC_RUNNING
    assert str(NotSyncedError()) == Messages.ERROR_NOT_SYNCED
