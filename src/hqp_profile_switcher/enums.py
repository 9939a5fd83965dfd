"""
Enumeration types for the profile switcher.

These enums provide type-safe constants for endpoint states, error codes
and configuration options throughout the package.
"""

from enum import Enum


class EndpointStatus(Enum):
    """State of a single control endpoint."""

    SELECTED = "selected"
    DESELECTED = "deselected"
    INDETERMINATE = "indeterminate"


class LogLevel(Enum):
    """Logging severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class DigestAlgorithm(Enum):
    """Digest algorithms understood by the session."""

    MD5 = "MD5"
    MD5_SESS = "MD5-SESS"
    SHA256 = "SHA-256"
    SHA256_SESS = "SHA-256-SESS"


class ConnectivityErrorCode(Enum):
    """Error codes for transport-level failures."""

    CONNECTION_REFUSED = "connection_refused"
    HOST_UNRESOLVED = "host_unresolved"
    DNS_FAILURE = "dns_failure"
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"


class ValidationErrorCode(Enum):
    """Error codes for validation failures."""

    MISSING_CREDENTIALS = "missing_credentials"
    EMPTY_PROFILE = "empty_profile"
    UNKNOWN_PROFILE = "unknown_profile"
    UNKNOWN_ENDPOINT = "unknown_endpoint"
