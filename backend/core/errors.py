"""
Domain errors shared by the reconciler, the PLU registry and the storage layer.
HTTP mapping happens in app.py only.
"""
from typing import Optional


class ValidationError(ValueError):
    """Malformed input: confidence out of range, missing field, bad PLU shape."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class PLUNotFoundError(LookupError):
    """Code has a valid shape but is not in the static PLU table."""

    def __init__(self, code: str):
        super().__init__(f"PLU code not found: {code}")
        self.code = code


class AuthenticationError(Exception):
    pass


class ClassifierUnavailableError(Exception):
    """External classifier unreachable or returned an unusable response."""


class RecordStoreError(Exception):
    """Records file exists but cannot be read; writing would destroy it."""
