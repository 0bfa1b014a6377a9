"""Exception types raised by the synchronization pipeline."""

from __future__ import annotations


class SyncError(Exception):
    """Base class for errors raised by i18n-openai-sync."""


class MalformedInputError(SyncError, ValueError):
    """Raised when text is not valid JSON or a value is not a JSON tree."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class ProviderFailure(SyncError):
    """Translation provider error with optional code and details."""

    def __init__(self, message: str, code: str | None = None, details: dict | None = None):
        super().__init__(message)
        self.code = code
        self.details = details or {}
