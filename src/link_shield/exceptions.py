"""
Exception classes for the link safety engine.

All exceptions inherit from LinkShieldError and carry a machine-readable
code, a message and optional details. They are raised inside components and
converted to result objects at the public boundary, so callers of the review
pipeline never see them.
"""

from typing import Optional


class LinkShieldError(Exception):
    """Base exception for all link safety errors."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class InputError(LinkShieldError):
    """Raised when a URL or hostname cannot be parsed."""

    pass


class TransportError(LinkShieldError):
    """Raised when an external lookup fails (timeout, non-2xx, malformed payload)."""

    pass


class ConfigError(LinkShieldError):
    """Raised when configuration is missing or invalid."""

    pass


class StateError(LinkShieldError):
    """Raised when persisted state cannot be read or written."""

    pass


class TamperingError(StateError):
    """Raised when HMAC validation fails, indicating data tampering."""

    pass
