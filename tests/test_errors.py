"""Tests for transcription error classification."""

import pytest

from subtrack.core.errors import (
    NOT_AVAILABLE,
    ErrorKind,
    NotAvailableType,
    ServiceNotConfiguredError,
    TranscriptionError,
    TranscriptionServiceError,
    classify_error,
)


class FakeAPIError(Exception):
    """Shaped like an HTTP client error: carries ``status_code``."""

    def __init__(self, message, status_code):
        super().__init__(message)
        self.status_code = status_code


@pytest.mark.parametrize(
    "status, code",
    [
        (400, "INVALID_REQUEST"),
        (401, "NOT_CONFIGURED"),
        (403, "NOT_CONFIGURED"),
        (404, "INVALID_REQUEST"),
        (413, "AUDIO_TOO_LARGE"),
        (501, "NOT_IMPLEMENTED"),
    ],
)
def test_terminal_status_codes(status, code):
    error = classify_error(FakeAPIError("boom", status))
    assert error.kind is ErrorKind.TERMINAL
    assert error.code == code


@pytest.mark.parametrize(
    "status, code",
    [(408, "TIMEOUT"), (429, "RATE_LIMITED"), (500, "SERVER_ERROR"), (503, "SERVER_ERROR")],
)
def test_retryable_status_codes(status, code):
    error = classify_error(FakeAPIError("boom", status))
    assert error.kind is ErrorKind.RETRYABLE
    assert error.code == code


def test_not_configured_is_terminal():
    error = classify_error(ServiceNotConfiguredError("OPENAI_API_KEY is not set"))
    assert error.kind is ErrorKind.TERMINAL
    assert error.code == "NOT_CONFIGURED"
    assert error.message == "OPENAI_API_KEY is not set"


def test_missing_client_library_is_terminal():
    error = classify_error(ImportError("litellm is not installed"))
    assert error.code == "NOT_CONFIGURED"
    assert not error.retryable


def test_network_errors_are_retryable():
    assert classify_error(TimeoutError()).code == "TIMEOUT"
    assert classify_error(ConnectionResetError("reset")).code == "NETWORK"
    assert classify_error(ConnectionError("down")).retryable


def test_bad_audio_is_terminal():
    assert classify_error(FileNotFoundError("gone")).code == "AUDIO_NOT_FOUND"
    assert classify_error(ValueError("Audio file is 40.0 MB")).code == "INVALID_REQUEST"
    assert not classify_error(ValueError("x")).retryable


def test_unknown_errors_assumed_transient():
    error = classify_error(RuntimeError("something odd"))
    assert error.kind is ErrorKind.RETRYABLE
    assert error.code == "TRANSCRIPTION_FAILED"


def test_service_hint_respected():
    error = classify_error(TranscriptionServiceError("quota", code="QUOTA_EXCEEDED", retryable=False))
    assert error.kind is ErrorKind.TERMINAL
    assert error.code == "QUOTA_EXCEEDED"

    error = classify_error(TranscriptionServiceError("busy", code="BUSY", retryable=True))
    assert error.kind is ErrorKind.RETRYABLE
    assert error.code == "BUSY"


def test_status_wins_over_hint():
    error = classify_error(TranscriptionServiceError("limited", status_code=429, retryable=False))
    assert error.code == "RATE_LIMITED"
    assert error.retryable


def test_classified_error_passes_through():
    original = TranscriptionError(ErrorKind.TERMINAL, "X", "already classified")
    assert classify_error(original) is original


def test_cause_and_message_preserved():
    cause = FakeAPIError("Invalid file format", 400)
    error = classify_error(cause)
    assert error.cause is cause
    assert str(error) == "Invalid file format"


def test_empty_message_falls_back_to_type_name():
    assert classify_error(RuntimeError()).message == "RuntimeError"


def test_not_available_sentinel():
    assert not NOT_AVAILABLE
    assert NotAvailableType() is NOT_AVAILABLE
    assert repr(NOT_AVAILABLE) == "NOT_AVAILABLE"
