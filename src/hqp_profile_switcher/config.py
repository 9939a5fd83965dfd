"""
Configuration dataclasses for the profile switcher.

This module defines the connection settings for the appliance, the
synchronizer's timing parameters, persistence and logging configuration,
plus helpers to load them from JSON files and the environment.
"""

import json
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_PORT = 8088
DEFAULT_CONFIG_PATH = Path.home() / ".hqp_profile_switcher" / "config.json"
DEFAULT_SETTINGS_PATH = Path.home() / ".hqp_profile_switcher" / "settings.json"


@dataclass
class ConnectionConfig:
    """Connection parameters for one appliance."""

    host: str = ""
    port: int = DEFAULT_PORT
    username: str = ""
    password: str = ""
    profile: str = ""  # Last selected profile identifier

    def has_credentials(self) -> bool:
        """True when host, username and password are all present."""
        return bool(self.host and self.username and self.password)

    def same_endpoint(self, other: "ConnectionConfig") -> bool:
        """True when both configs address the same appliance with the same login."""
        return (
            self.host == other.host
            and self.port == other.port
            and self.username == other.username
            and self.password == other.password
        )


@dataclass
class SynchronizerConfig:
    """Timing behavior of the control surface synchronizer."""

    restart_grace_seconds: float = 10.0
    request_timeout_seconds: float = 10.0
    poll_interval_seconds: float = 15.0


@dataclass
class PersistenceConfig:
    """Settings file location and integrity secret."""

    settings_file_path: Path = DEFAULT_SETTINGS_PATH
    hmac_secret: str = "default-secret-change-me"


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "info"
    output_format: str = "text"  # 'json', 'text', 'both'


@dataclass
class SystemConfig:
    """Main configuration combining all sub-configurations."""

    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    synchronizer: SynchronizerConfig = field(default_factory=SynchronizerConfig)
    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    language: str = "en"  # 'de' or 'en'


def create_default_config(
    language: str = "en",
    settings_file: Optional[Path] = None,
) -> SystemConfig:
    """
    Create a default configuration.

    Args:
        language: Output language ('de' or 'en')
        settings_file: Path to the settings file for persistence

    Returns:
        SystemConfig with default settings
    """
    persistence = PersistenceConfig()
    if settings_file is not None:
        persistence.settings_file_path = settings_file
    return SystemConfig(persistence=persistence, language=language)


def _parse_port(value, default: int = DEFAULT_PORT) -> int:
    try:
        port = int(value)
    except (TypeError, ValueError):
        return default
    if not 1 <= port <= 65535:
        return default
    return port


def config_from_dict(data: dict) -> SystemConfig:
    """Build a SystemConfig from a parsed JSON document, ignoring unknown keys."""
    connection_data = data.get("connection") or {}
    connection = ConnectionConfig(
        host=str(connection_data.get("host", "") or "").strip(),
        port=_parse_port(connection_data.get("port", DEFAULT_PORT)),
        username=str(connection_data.get("username", "") or ""),
        password=str(connection_data.get("password", "") or ""),
        profile=str(connection_data.get("profile", "") or "").strip(),
    )

    sync_data = data.get("synchronizer") or {}
    synchronizer = SynchronizerConfig(
        restart_grace_seconds=float(sync_data.get("restart_grace_seconds", 10.0)),
        request_timeout_seconds=float(sync_data.get("request_timeout_seconds", 10.0)),
        poll_interval_seconds=float(sync_data.get("poll_interval_seconds", 15.0)),
    )

    persistence_data = data.get("persistence") or {}
    settings_file_path = persistence_data.get("settings_file_path")
    persistence = PersistenceConfig(
        settings_file_path=Path(settings_file_path) if settings_file_path else DEFAULT_SETTINGS_PATH,
        hmac_secret=persistence_data.get("hmac_secret", "default-secret-change-me"),
    )

    logging_data = data.get("logging") or {}
    logging_config = LoggingConfig(
        level=logging_data.get("level", "info"),
        output_format=logging_data.get("output_format", "text"),
    )

    return SystemConfig(
        connection=connection,
        synchronizer=synchronizer,
        persistence=persistence,
        logging=logging_config,
        language=data.get("language", "en"),
    )


def config_to_dict(config: SystemConfig) -> dict:
    """Serialize a SystemConfig into a JSON-compatible dictionary."""
    return {
        "connection": {
            "host": config.connection.host,
            "port": config.connection.port,
            "username": config.connection.username,
            "password": config.connection.password,
            "profile": config.connection.profile,
        },
        "synchronizer": {
            "restart_grace_seconds": config.synchronizer.restart_grace_seconds,
            "request_timeout_seconds": config.synchronizer.request_timeout_seconds,
            "poll_interval_seconds": config.synchronizer.poll_interval_seconds,
        },
        "persistence": {
            "settings_file_path": str(config.persistence.settings_file_path),
            "hmac_secret": config.persistence.hmac_secret,
        },
        "logging": {
            "level": config.logging.level,
            "output_format": config.logging.output_format,
        },
        "language": config.language,
    }


def load_config_from_file(config_path: Path) -> Optional[SystemConfig]:
    """
    Load configuration from a JSON file.

    Args:
        config_path: Path to the configuration file

    Returns:
        SystemConfig if successful, None otherwise
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise TypeError("configuration root must be an object")
        return config_from_dict(data)
    except (json.JSONDecodeError, AttributeError, KeyError, TypeError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return None
    except FileNotFoundError:
        return None


def save_config_to_file(config: SystemConfig, config_path: Path) -> bool:
    """
    Save configuration to a JSON file.

    Returns:
        True if successful, False otherwise
    """
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(config_to_dict(config), f, indent=2, ensure_ascii=False)
        return True
    except (OSError, TypeError) as e:
        print(f"Error saving config: {e}", file=sys.stderr)
        return False


def apply_environment(config: SystemConfig, dotenv_path: Optional[Path] = None) -> SystemConfig:
    """
    Overlay HQP_* environment variables (and a .env file) onto a configuration.

    Recognized variables: HQP_HOST, HQP_PORT, HQP_USER, HQP_PASS,
    HQP_PROFILE, HQP_LANG. Unset or empty variables leave the value untouched.
    """
    load_dotenv(dotenv_path=dotenv_path)

    connection = config.connection
    host = os.getenv("HQP_HOST", "").strip()
    if host:
        connection.host = host
    port = os.getenv("HQP_PORT", "").strip()
    if port:
        connection.port = _parse_port(port, connection.port)
    username = os.getenv("HQP_USER", "")
    if username:
        connection.username = username
    password = os.getenv("HQP_PASS", "")
    if password:
        connection.password = password
    profile = os.getenv("HQP_PROFILE", "").strip()
    if profile:
        connection.profile = profile
    language = (os.getenv("HQP_LANG", "") or "").strip().lower()
    if language in ("de", "en"):
        config.language = language
    return config
