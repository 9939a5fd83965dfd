"""
Control Surface Synchronizer.

Owns the authoritative "current profile", the set of external control
endpoints (one per usable profile) and the restart-grace window that follows
a profile switch. All state-mutating operations run under one asyncio lock,
so a status poll, a user selection and a credential save never interleave
their updates.

Endpoint statuses are always derived from the authoritative value:
- missing credentials: every endpoint is indeterminate
- otherwise: the endpoint bound to the current profile is selected and all
  others are deselected (none selected when no profile is active)
"""

import asyncio
import time
from dataclasses import dataclass, replace
from typing import Callable, Optional

import httpx

from .audit_logger import AuditLogger
from .config import ConnectionConfig, SynchronizerConfig
from .enums import EndpointStatus, LogLevel, ValidationErrorCode
from .exceptions import (
    ConnectivityError,
    ProfileSwitcherError,
    ProtocolError,
    ResolutionError,
    ValidationError,
)
from .i18n import describe_error, get_message
from .models import ControlEndpoint, Profile, StatusReport
from .profile_client import ProfileClient
from .profile_resolver import find_profile, normalize_request, resolve, slugify, usable_profiles

# Errors expected while the appliance restarts after a profile switch
RESTART_TOLERATED_ERRORS = (ConnectivityError, ProtocolError)


@dataclass
class SelectionSnapshot:
    """State captured before an optimistic selection, restored on failure."""

    current: Optional[Profile]
    standby: bool
    configured_profile: str
    statuses: dict[str, EndpointStatus]


class ControlSurfaceSynchronizer:
    """
    Keeps the control endpoints in step with the appliance's active profile.

    Public operations:
    - refresh / fetch_profiles: fetch, scrape and reconcile endpoints
    - select / load_profile: optimistic selection with rollback on failure
    - deselect: clear the active profile without touching the appliance
    - check_status / current_status: status for pollers and UIs
    - update_connection / apply_settings: credential-save events
    """

    def __init__(
        self,
        connection: ConnectionConfig,
        config: Optional[SynchronizerConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        client_factory: Optional[Callable[[ConnectionConfig], ProfileClient]] = None,
        on_profile_committed: Optional[Callable[[str], None]] = None,
        clock: Callable[[], float] = time.monotonic,
        language: str = "en",
        logger: Optional[AuditLogger] = None,
    ) -> None:
        """
        Initialize the synchronizer.

        Args:
            connection: Host, port, credentials and configured profile
            config: Grace window, timeout and poll interval settings
            transport: Optional httpx transport handed to the default client
            client_factory: Optional factory building a ProfileClient per connection
            on_profile_committed: Called with the identifier after a successful load
            clock: Monotonic clock in seconds (tests inject a fake)
            language: Language for status messages ('de' or 'en')
            logger: Optional audit logger
        """
        self._connection = replace(connection)
        self._config = config or SynchronizerConfig()
        self._transport = transport
        self._client_factory = client_factory
        self._on_profile_committed = on_profile_committed
        self._clock = clock
        self._language = language
        self._logger = logger

        self._client: Optional[ProfileClient] = None
        self._profiles: list[Profile] = []
        self._current: Optional[Profile] = None
        self._standby = False
        self._endpoints: dict[str, ControlEndpoint] = {}
        self._keys_by_identifier: dict[str, str] = {}
        self._grace_until = 0.0
        self._lock = asyncio.Lock()

        if self.has_credentials():
            self._status = StatusReport(get_message("status.ready", language))
        else:
            self._status = self._missing_credentials_status()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def connection(self) -> ConnectionConfig:
        return replace(self._connection)

    @property
    def profiles(self) -> list[Profile]:
        """Last successfully fetched usable profiles, in server order."""
        return list(self._profiles)

    @property
    def current_profile(self) -> Optional[Profile]:
        return self._current

    @property
    def grace_until(self) -> float:
        return self._grace_until

    def has_credentials(self) -> bool:
        return self._connection.has_credentials()

    def is_expecting_restart(self) -> bool:
        """True while the restart-grace window after a load is open."""
        return self._clock() < self._grace_until

    def current_status(self) -> StatusReport:
        if not self.has_credentials():
            return self._missing_credentials_status()
        return replace(self._status)

    def list_endpoints(self) -> list[ControlEndpoint]:
        """Snapshot of the endpoints in server order."""
        return [replace(endpoint) for endpoint in self._endpoints.values()]

    def get_endpoint(self, key: str) -> Optional[ControlEndpoint]:
        endpoint = self._endpoints.get(key)
        return replace(endpoint) if endpoint else None

    def endpoint_key_for(self, identifier: str) -> Optional[str]:
        return self._keys_by_identifier.get(identifier.strip().lower())

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    async def refresh(self) -> list[Profile]:
        """
        Fetch the profile form and reconcile the endpoints.

        Inside the restart-grace window, connectivity and protocol errors
        yield the cached profile list and a "waiting for restart" status.

        Raises:
            ValidationError: If credentials are missing
            AuthenticationError, ConnectivityError, ProtocolError: On failure
        """
        async with self._lock:
            return await self._refresh_locked()

    async def fetch_profiles(self) -> list[Profile]:
        """Refresh and return the usable profiles."""
        return await self.refresh()

    async def check_status(self) -> StatusReport:
        """Refresh for a status poll; failures are recorded in the status."""
        try:
            await self.refresh()
        except ProfileSwitcherError:
            pass
        return self.current_status()

    async def _refresh_locked(self) -> list[Profile]:
        self._require_credentials()

        try:
            discovered = await self._get_client().fetch_profiles()
        except RESTART_TOLERATED_ERRORS as e:
            if self.is_expecting_restart():
                self._status = StatusReport(
                    get_message("status.waiting_for_restart", self._language),
                    restarting=True,
                )
                self._log(LogLevel.INFO, "Appliance restarting, serving cached profiles", {
                    "error_code": e.code,
                    "cached_profiles": len(self._profiles),
                })
                return list(self._profiles)
            self._record_error(e)
            raise
        except ProfileSwitcherError as e:
            self._record_error(e)
            raise

        usable = usable_profiles(discovered)
        self._profiles = usable
        self._reconcile_endpoints(usable)

        if not usable:
            self._current = None
            self._apply_statuses()
            self._record_error(ResolutionError(
                code="no_usable_profiles",
                message="No profiles are available to load.",
                details={"discovered": len(discovered)},
            ))
            return []

        if self._standby:
            self._current = None
        else:
            preferred = self._current.identifier if self._current else self._connection.profile
            self._current = resolve(usable, preferred)
            if self._current.identifier != self._connection.profile:
                self._connection.profile = self._current.identifier
                self._persist_profile(self._current.identifier)
        self._apply_statuses()

        if self._status.is_error or self._status.restarting:
            self._status = StatusReport(get_message("status.ready", self._language))

        self._log(LogLevel.INFO, "Refreshed profiles", {
            "profiles": [profile.identifier for profile in usable],
            "current": self._current.identifier if self._current else None,
        })
        return list(usable)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    async def select(self, identifier: Optional[str]) -> Profile:
        """
        Activate a profile on the appliance.

        The endpoints switch optimistically before the load request is sent;
        if the request fails the previous state is restored before the error
        propagates. A successful load opens the restart-grace window.

        Raises:
            ValidationError: If credentials are missing or the profile is unknown
            AuthenticationError, ConnectivityError, ProtocolError: If the load fails
        """
        async with self._lock:
            return await self._select_locked(identifier)

    async def _select_locked(self, identifier: Optional[str]) -> Profile:
        self._require_credentials()

        requested = normalize_request(identifier)
        if requested is None:
            raise ValidationError(
                code=ValidationErrorCode.EMPTY_PROFILE.value,
                message="Profile value required.",
            )

        if not self._profiles:
            await self._refresh_locked()

        target = find_profile(self._profiles, requested)
        if target is None:
            raise ValidationError(
                code=ValidationErrorCode.UNKNOWN_PROFILE.value,
                message=f"Unknown profile: {requested}",
                details={"profile": requested},
            )

        snapshot = self._snapshot()
        self._current = target
        self._standby = False
        self._apply_statuses()
        self._status = StatusReport(get_message("status.loading", self._language))

        committed = False
        try:
            await self._get_client().load_profile(target.identifier)
            committed = True
        except ProfileSwitcherError as e:
            self._record_error(e)
            raise
        finally:
            if not committed:
                self._restore(snapshot)
                self._log(LogLevel.WARN, "Rolled back profile selection", {
                    "requested": target.identifier,
                    "restored": snapshot.current.identifier if snapshot.current else None,
                })

        self._connection.profile = target.identifier
        self._grace_until = self._clock() + self._config.restart_grace_seconds
        self._status = StatusReport(
            get_message("status.loaded_profile", self._language, title=target.display_title)
        )
        self._log(LogLevel.INFO, "Loaded profile", {
            "profile": target.identifier,
            "grace_seconds": self._config.restart_grace_seconds,
        })
        self._persist_profile(target.identifier)
        return target

    async def load_profile(self, identifier: Optional[str]) -> Profile:
        """Alias of select for the engine-facing query surface."""
        return await self.select(identifier)

    async def deselect(self, key: str) -> bool:
        """
        Put one endpoint into standby.

        Clears the authoritative profile when the endpoint represents it.
        No request is sent to the appliance.

        Returns:
            True if the active profile was cleared, False otherwise

        Raises:
            ValidationError: If the endpoint key is unknown
        """
        async with self._lock:
            if not self.has_credentials():
                self._apply_statuses()
                return False

            endpoint = self._endpoints.get(key)
            if endpoint is None:
                raise ValidationError(
                    code=ValidationErrorCode.UNKNOWN_ENDPOINT.value,
                    message=f"Unknown control endpoint: {key}",
                    details={"key": key},
                )

            if self._current is None or self.endpoint_key_for(self._current.identifier) != key:
                return False

            self._current = None
            self._standby = True
            self._apply_statuses()
            self._status = StatusReport(get_message("status.profile_deselected", self._language))
            self._log(LogLevel.INFO, "Profile deselected", {"endpoint": key})
            return True

    # ------------------------------------------------------------------
    # Connection changes
    # ------------------------------------------------------------------

    async def update_connection(self, connection: ConnectionConfig) -> None:
        """
        Replace the connection parameters.

        A different host, port or login discards the session and the cached
        profiles; the endpoints are reconciled on the next refresh.
        """
        async with self._lock:
            await self._update_connection_locked(connection)

    async def _update_connection_locked(self, connection: ConnectionConfig) -> None:
        if not connection.same_endpoint(self._connection):
            await self._discard_client()
            self._profiles = []
            self._grace_until = 0.0
            self._log(LogLevel.INFO, "Connection parameters changed", {
                "host": connection.host,
                "port": connection.port,
            })
        self._connection = replace(connection)
        self._apply_statuses()
        if not self.has_credentials():
            self._status = self._missing_credentials_status()
        else:
            self._status = StatusReport(get_message("status.connection_updated", self._language))

    async def apply_settings(self, connection: ConnectionConfig, load: bool = True) -> Optional[Profile]:
        """
        Handle a credential-save event.

        Applies the new connection, refreshes and, when ``load`` is set,
        loads the configured profile (falling back to the default profile).
        On failure the previous connection is restored and the error raised.
        """
        async with self._lock:
            previous = replace(self._connection)
            try:
                await self._update_connection_locked(connection)
                profiles = await self._refresh_locked()
                if not load:
                    return self._current
                target = resolve(profiles, connection.profile)
                return await self._select_locked(target.identifier)
            except ProfileSwitcherError as e:
                await self._update_connection_locked(previous)
                self._record_error(e)
                raise

    async def close(self) -> None:
        async with self._lock:
            await self._discard_client()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get_client(self) -> ProfileClient:
        if self._client is None:
            if self._client_factory is not None:
                self._client = self._client_factory(replace(self._connection))
            else:
                self._client = ProfileClient(
                    self._connection,
                    timeout=self._config.request_timeout_seconds,
                    transport=self._transport,
                    logger=self._logger,
                )
        return self._client

    async def _discard_client(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    def _require_credentials(self) -> None:
        if self.has_credentials():
            return
        self._apply_statuses()
        self._status = self._missing_credentials_status()
        raise ValidationError(
            code=ValidationErrorCode.MISSING_CREDENTIALS.value,
            message="Host, username and password are required.",
        )

    def _missing_credentials_status(self) -> StatusReport:
        return StatusReport(
            get_message("status.missing_credentials", self._language),
            error_code=ValidationErrorCode.MISSING_CREDENTIALS.value,
        )

    def _reconcile_endpoints(self, usable: list[Profile]) -> None:
        ordered: list[tuple[str, Profile]] = []
        seen: set[str] = set()
        for profile in usable:
            identifier = profile.identifier.strip().lower()
            if identifier not in seen:
                seen.add(identifier)
                ordered.append((identifier, profile))

        keys: dict[str, str] = {}
        for identifier, _ in ordered:
            key = self._keys_by_identifier.get(identifier)
            if key is not None and key in self._endpoints:
                keys[identifier] = key

        taken = set(keys.values())
        for identifier, profile in ordered:
            if identifier in keys:
                continue
            key = base = slugify(profile.identifier)
            suffix = 2
            while key in taken:
                key = f"{base}-{suffix}"
                suffix += 1
            taken.add(key)
            keys[identifier] = key

        endpoints: dict[str, ControlEndpoint] = {}
        for identifier, profile in ordered:
            key = keys[identifier]
            endpoint = self._endpoints.get(key)
            if endpoint is None:
                endpoint = ControlEndpoint(key=key, profile=profile)
                self._log(LogLevel.DEBUG, "Created control endpoint", {"endpoint": key})
            else:
                endpoint.profile = profile
            endpoints[key] = endpoint

        for key in self._endpoints.keys() - endpoints.keys():
            self._log(LogLevel.DEBUG, "Removed control endpoint", {"endpoint": key})

        self._endpoints = endpoints
        self._keys_by_identifier = keys

    def _apply_statuses(self) -> None:
        if not self.has_credentials():
            for endpoint in self._endpoints.values():
                endpoint.status = EndpointStatus.INDETERMINATE
            return

        selected_key = None
        if self._current is not None:
            selected_key = self.endpoint_key_for(self._current.identifier)
        for key, endpoint in self._endpoints.items():
            endpoint.status = (
                EndpointStatus.SELECTED if key == selected_key else EndpointStatus.DESELECTED
            )

    def _snapshot(self) -> SelectionSnapshot:
        return SelectionSnapshot(
            current=self._current,
            standby=self._standby,
            configured_profile=self._connection.profile,
            statuses={key: endpoint.status for key, endpoint in self._endpoints.items()},
        )

    def _restore(self, snapshot: SelectionSnapshot) -> None:
        self._current = snapshot.current
        self._standby = snapshot.standby
        self._connection.profile = snapshot.configured_profile
        for key, status in snapshot.statuses.items():
            endpoint = self._endpoints.get(key)
            if endpoint is not None:
                endpoint.status = status

    def _record_error(self, error: ProfileSwitcherError) -> None:
        self._status = StatusReport(
            describe_error(error, self._language),
            is_error=True,
            error_code=error.code,
        )
        if self._logger:
            self._logger.log_error("Synchronizer", error.message, error=error)

    def _persist_profile(self, identifier: str) -> None:
        if self._on_profile_committed is None:
            return
        try:
            self._on_profile_committed(identifier)
        except ProfileSwitcherError as e:
            if self._logger:
                self._logger.log_error("Synchronizer", "Failed to persist profile", error=e)

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, "Synchronizer", message, data)
