"""Error types and the transcription failure classification.

Every failure of the external speech-to-text call is classified exactly once,
at the orchestrator boundary, by ``classify_error``. The mapping below is the
single place that decides whether a failure is worth retrying.

Terminal (retrying will not help):
    - ServiceNotConfiguredError: missing API key or model
    - ImportError: the client library is not installed
    - NotImplementedError / HTTP 501: the provider does not support the call
    - HTTP 400, 401, 403, 404, 413, 415, 422: malformed request, bad
      credentials, unknown model, payload too large
    - ValueError, TypeError, FileNotFoundError: unusable audio reference

Retryable (transient):
    - TimeoutError, ConnectionError
    - HTTP 408, 409, 425, 429 and every other 5xx
    - anything else, unless the service attached ``retryable=False``
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    RETRYABLE = "retryable"
    TERMINAL = "terminal"


class TranscriptionError(Exception):
    """A classified transcription failure.

    Attributes:
        kind: RETRYABLE or TERMINAL.
        code: Machine-readable code (NOT_CONFIGURED, RATE_LIMITED, TIMEOUT, ...).
        message: Human-readable message for display.
        cause: The original exception, if any.
    """

    def __init__(
        self,
        kind: ErrorKind,
        code: str,
        message: str,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.code = code
        self.message = message
        self.cause = cause

    @property
    def retryable(self) -> bool:
        return self.kind is ErrorKind.RETRYABLE

    def __repr__(self) -> str:
        return f"TranscriptionError(kind={self.kind.value}, code={self.code!r}, message={self.message!r})"


class TranscriptionServiceError(Exception):
    """Raw error reported by a speech-to-text service adapter.

    Carries whatever the service told us: an error code, an HTTP status, and an
    optional retryable hint. Classification happens in ``classify_error``.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        status_code: int | None = None,
        retryable: bool | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.status_code = status_code
        self.retryable = retryable


class ServiceNotConfiguredError(TranscriptionServiceError):
    """The speech-to-text service is missing its model or credentials."""

    def __init__(self, message: str):
        super().__init__(message, code="NOT_CONFIGURED", retryable=False)


class NoSubtitlesError(Exception):
    """Raised by a native subtitle source when the video has no subtitles."""


class NotAvailableType:
    """Sentinel type for 'no native subtitles for this video'."""

    _instance: NotAvailableType | None = None

    def __new__(cls) -> NotAvailableType:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NOT_AVAILABLE"

    def __bool__(self) -> bool:
        return False


NOT_AVAILABLE = NotAvailableType()


class HighlightStorageError(Exception):
    """Highlight marks could not be persisted."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code  # STORAGE_UNAVAILABLE or QUOTA_EXCEEDED


_TERMINAL_STATUS = {
    400: "INVALID_REQUEST",
    401: "NOT_CONFIGURED",
    403: "NOT_CONFIGURED",
    404: "INVALID_REQUEST",
    413: "AUDIO_TOO_LARGE",
    415: "INVALID_REQUEST",
    422: "INVALID_REQUEST",
    501: "NOT_IMPLEMENTED",
}

_RETRYABLE_STATUS = {
    408: "TIMEOUT",
    409: "SERVER_BUSY",
    425: "SERVER_BUSY",
    429: "RATE_LIMITED",
}


def _status_code(exc: BaseException) -> int | None:
    """Read an HTTP status from an exception (LiteLLM/OpenAI style or ours)."""
    for attr in ("status_code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def classify_error(exc: BaseException) -> TranscriptionError:
    """Classify a transcription failure as retryable or terminal.

    Args:
        exc: Whatever the service adapter raised.

    Returns:
        A TranscriptionError wrapping ``exc``. Already-classified errors are
        returned unchanged.
    """
    if isinstance(exc, TranscriptionError):
        return exc

    message = str(exc) or exc.__class__.__name__

    def terminal(code: str) -> TranscriptionError:
        return TranscriptionError(ErrorKind.TERMINAL, code, message, cause=exc)

    def retryable(code: str) -> TranscriptionError:
        return TranscriptionError(ErrorKind.RETRYABLE, code, message, cause=exc)

    if isinstance(exc, ServiceNotConfiguredError):
        return terminal("NOT_CONFIGURED")
    if isinstance(exc, NotImplementedError):
        return terminal("NOT_IMPLEMENTED")
    if isinstance(exc, ImportError):
        return terminal("NOT_CONFIGURED")

    status = _status_code(exc)
    if status is not None:
        if status in _TERMINAL_STATUS:
            return terminal(_TERMINAL_STATUS[status])
        if status in _RETRYABLE_STATUS:
            return retryable(_RETRYABLE_STATUS[status])
        if status >= 500:
            return retryable("SERVER_ERROR")

    # TimeoutError before OSError: both are OSError subclasses
    if isinstance(exc, TimeoutError):
        return retryable("TIMEOUT")
    if isinstance(exc, ConnectionError):
        return retryable("NETWORK")
    if isinstance(exc, FileNotFoundError):
        return terminal("AUDIO_NOT_FOUND")
    if isinstance(exc, (ValueError, TypeError)):
        return terminal("INVALID_REQUEST")

    hint = getattr(exc, "retryable", None)
    code = getattr(exc, "code", None)
    code = code if isinstance(code, str) and code else "TRANSCRIPTION_FAILED"
    if hint is False:
        return terminal(code)
    return retryable(code)
