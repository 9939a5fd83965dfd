"""
HQPlayer Profile Switcher - list and switch HQPlayer configuration profiles.

This package talks to the HQPlayer web interface over Digest-authenticated
HTTP, scrapes its profile form, and keeps a set of on/off control endpoints
(one per profile) in step with the profile that is actually active.
"""

__version__ = "0.1.0"
__author__ = "HQPlayer Profile Switcher Team"

from hqp_profile_switcher.exceptions import (
    ProfileSwitcherError,
    AuthenticationError,
    ConnectivityError,
    ProtocolError,
    ResolutionError,
    ValidationError,
    PersistenceError,
    TamperingError,
)
from hqp_profile_switcher.enums import (
    EndpointStatus,
    LogLevel,
    DigestAlgorithm,
    ConnectivityErrorCode,
    ValidationErrorCode,
)
from hqp_profile_switcher.models import (
    Profile,
    ScrapedForm,
    HTTPResult,
    ControlEndpoint,
    StatusReport,
)
from hqp_profile_switcher.config import (
    ConnectionConfig,
    SynchronizerConfig,
    PersistenceConfig,
    LoggingConfig,
    SystemConfig,
    apply_environment,
    create_default_config,
    load_config_from_file,
    save_config_to_file,
)
from hqp_profile_switcher.digest_session import (
    DigestChallenge,
    DigestSession,
    compute_digest_response,
    parse_challenge,
)
from hqp_profile_switcher.form_scraper import scrape
from hqp_profile_switcher.profile_resolver import (
    find_profile,
    resolve,
    usable_profiles,
)
from hqp_profile_switcher.profile_client import ProfileClient
from hqp_profile_switcher.synchronizer import ControlSurfaceSynchronizer
from hqp_profile_switcher.poller import StatusPoller
from hqp_profile_switcher.settings_store import SettingsStore
from hqp_profile_switcher.audit_logger import AuditLogger, LogEntry
from hqp_profile_switcher.i18n import (
    get_message,
    describe_error,
    TRANSLATIONS,
    SUPPORTED_LANGUAGES,
    DEFAULT_LANGUAGE,
)
from hqp_profile_switcher.cli import main as cli_main, create_parser

__all__ = [
    # Version
    "__version__",
    # Exceptions
    "ProfileSwitcherError",
    "AuthenticationError",
    "ConnectivityError",
    "ProtocolError",
    "ResolutionError",
    "ValidationError",
    "PersistenceError",
    "TamperingError",
    # Enums
    "EndpointStatus",
    "LogLevel",
    "DigestAlgorithm",
    "ConnectivityErrorCode",
    "ValidationErrorCode",
    # Models
    "Profile",
    "ScrapedForm",
    "HTTPResult",
    "ControlEndpoint",
    "StatusReport",
    # Config
    "ConnectionConfig",
    "SynchronizerConfig",
    "PersistenceConfig",
    "LoggingConfig",
    "SystemConfig",
    "apply_environment",
    "create_default_config",
    "load_config_from_file",
    "save_config_to_file",
    # Digest Session
    "DigestChallenge",
    "DigestSession",
    "compute_digest_response",
    "parse_challenge",
    # Form Scraper
    "scrape",
    # Profile Resolver
    "find_profile",
    "resolve",
    "usable_profiles",
    # Profile Client
    "ProfileClient",
    # Synchronizer
    "ControlSurfaceSynchronizer",
    "StatusPoller",
    # Settings Store
    "SettingsStore",
    # Audit Logger
    "AuditLogger",
    "LogEntry",
    # I18n
    "get_message",
    "describe_error",
    "TRANSLATIONS",
    "SUPPORTED_LANGUAGES",
    "DEFAULT_LANGUAGE",
    # CLI
    "cli_main",
    "create_parser",
]
