"""
Settings Store module for the persisted connection settings.

Stores host, port, credentials and the last selected profile as JSON with an
HMAC over the content, so a hand-edited or corrupted file is detected.
"""

import hashlib
import hmac
import json
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .config import DEFAULT_PORT, ConnectionConfig
from .exceptions import PersistenceError, TamperingError


class SettingsStore:
    """
    Persistent connection settings with HMAC protection.

    The CLI wires ``remember_profile`` as the synchronizer's commit callback
    so the selection survives restarts.
    """

    VERSION = 1

    def __init__(self, file_path: Path, hmac_secret: str) -> None:
        """
        Initialize the settings store.

        Args:
            file_path: Path to the settings file (JSON format)
            hmac_secret: Secret key for HMAC computation
        """
        self._file_path = Path(file_path)
        self._hmac_secret = hmac_secret.encode("utf-8")
        self._connection: Optional[ConnectionConfig] = None
        self._last_updated = ""

    def load(self) -> Optional[ConnectionConfig]:
        """
        Load settings from file and validate the HMAC.

        Returns:
            ConnectionConfig if the file exists and is valid, None if it doesn't exist

        Raises:
            TamperingError: If HMAC validation fails
            PersistenceError: If the file cannot be read or parsed
        """
        if not self._file_path.exists():
            return None

        try:
            with open(self._file_path, "r", encoding="utf-8") as f:
                raw_data = json.load(f)
        except json.JSONDecodeError as e:
            raise PersistenceError(
                code="parse_error",
                message=f"Failed to parse settings file: {e}",
                details={"file_path": str(self._file_path)},
            )
        except OSError as e:
            raise PersistenceError(
                code="io_error",
                message=f"Failed to read settings file: {e}",
                details={"file_path": str(self._file_path)},
            )

        if not isinstance(raw_data, dict):
            raise PersistenceError(
                code="parse_error",
                message="Settings file root must be an object",
                details={"file_path": str(self._file_path)},
            )

        stored_hmac = raw_data.get("hmac", "")
        data_for_hmac = {
            "version": raw_data.get("version"),
            "connection": raw_data.get("connection", {}),
            "last_updated": raw_data.get("last_updated"),
        }
        computed_hmac = self.compute_hmac(data_for_hmac)

        if not self.validate_hmac(stored_hmac, computed_hmac):
            raise TamperingError(
                code="hmac_mismatch",
                message="HMAC validation failed - settings may have been tampered with",
                details={"file_path": str(self._file_path)},
            )

        connection_data = raw_data.get("connection", {})
        self._connection = ConnectionConfig(
            host=connection_data.get("host", ""),
            port=int(connection_data.get("port", DEFAULT_PORT) or DEFAULT_PORT),
            username=connection_data.get("username", ""),
            password=connection_data.get("password", ""),
            profile=connection_data.get("profile", ""),
        )
        self._last_updated = raw_data.get("last_updated", "")
        return self._connection

    def save(self, connection: Optional[ConnectionConfig] = None) -> None:
        """
        Save settings to file with HMAC protection.

        Args:
            connection: Settings to save. If None, saves the current settings.

        Raises:
            PersistenceError: If there is nothing to save or the file cannot be written
        """
        if connection is not None:
            self._connection = connection

        if self._connection is None:
            raise PersistenceError(
                code="no_settings",
                message="No settings to save",
            )

        now = datetime.now(timezone.utc).isoformat()
        connection_dict = {
            "host": self._connection.host,
            "port": self._connection.port,
            "username": self._connection.username,
            "password": self._connection.password,
            "profile": self._connection.profile,
        }
        data_for_hmac = {
            "version": self.VERSION,
            "connection": connection_dict,
            "last_updated": now,
        }
        output_data = {**data_for_hmac, "hmac": self.compute_hmac(data_for_hmac)}

        try:
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._file_path, "w", encoding="utf-8") as f:
                json.dump(output_data, f, indent=2, sort_keys=True)
        except OSError as e:
            raise PersistenceError(
                code="io_error",
                message=f"Failed to write settings file: {e}",
                details={"file_path": str(self._file_path)},
            )

        self._last_updated = now

    def remember_profile(self, identifier: str, connection: Optional[ConnectionConfig] = None) -> None:
        """
        Persist the last selected profile identifier.

        Args:
            identifier: Identifier of the committed profile
            connection: Optional settings to store alongside, replacing the current ones
        """
        if connection is not None:
            self._connection = replace(connection)
        elif self._connection is None:
            self._connection = ConnectionConfig()
        self._connection.profile = identifier
        self.save()

    def compute_hmac(self, data: dict) -> str:
        """Compute HMAC-SHA256 over canonically serialized data."""
        serialized = json.dumps(data, sort_keys=True, separators=(",", ":"))
        return hmac.new(
            self._hmac_secret,
            serialized.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()

    def validate_hmac(self, stored_hmac: str, computed_hmac: str) -> bool:
        """Validate HMAC using constant-time comparison."""
        return hmac.compare_digest(str(stored_hmac), computed_hmac)

    @property
    def connection(self) -> Optional[ConnectionConfig]:
        """Get the current settings."""
        return self._connection

    @property
    def last_updated(self) -> str:
        return self._last_updated

    @property
    def file_path(self) -> Path:
        """Get the settings file path."""
        return self._file_path
