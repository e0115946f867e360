"""Custom exceptions for the stack watcher."""

from __future__ import annotations

from typing import Any


class AppException(Exception):
    """Base watcher exception with a structured error payload."""

    error_code: str = "INTERNAL_ERROR"
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message or self.message
        self.error_code = error_code or self.error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.error_code,
            "message": self.message,
            **({"details": self.details} if self.details else {}),
        }


class ConfigurationError(AppException):
    """Invalid or missing watcher configuration."""

    error_code = "CONFIGURATION_ERROR"
    message = "Invalid configuration"


class TransportError(AppException):
    """A docker command could not be executed or exited non-zero."""

    error_code = "TRANSPORT_ERROR"
    message = "Command execution failed"

    def __init__(
        self,
        message: str | None = None,
        stderr: list[str] | None = None,
        returncode: int | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.stderr = list(stderr or [])
        self.returncode = returncode
        details = dict(details or {})
        if self.stderr:
            details["stderr"] = self.stderr
        if returncode is not None:
            details["returncode"] = returncode
        super().__init__(message=message, error_code=error_code, details=details)


class DecodeError(AppException):
    """A line of command output did not have the expected JSON shape."""

    error_code = "DECODE_ERROR"
    message = "Unexpected command output"

    def __init__(
        self,
        message: str | None = None,
        line: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.line = line
        details = dict(details or {})
        if line is not None:
            details["line"] = line
        super().__init__(message=message, error_code=error_code, details=details)
