"""
Exception classes for the profile switcher.

All exceptions inherit from ProfileSwitcherError and carry a machine-readable
code, a human-readable message and optional structured details.
"""

from typing import Optional


class ProfileSwitcherError(Exception):
    """Base exception for all profile switcher errors."""

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


class AuthenticationError(ProfileSwitcherError):
    """Raised when the appliance still answers 401 after the digest retry."""

    pass


class ConnectivityError(ProfileSwitcherError):
    """Raised on transport failures (refused, unresolved host, DNS, timeout)."""

    pass


class ProtocolError(ProfileSwitcherError):
    """Raised when the form fetch or submit returns a non-success HTTP status."""

    pass


class ResolutionError(ProfileSwitcherError):
    """Raised when no usable profile exists to resolve against."""

    pass


class ValidationError(ProfileSwitcherError):
    """Raised on missing credentials or an unusable requested profile."""

    pass


class PersistenceError(ProfileSwitcherError):
    """Raised when settings persistence fails (file I/O, parse errors)."""

    pass


class TamperingError(PersistenceError):
    """Raised when HMAC validation of the settings file fails."""

    pass
