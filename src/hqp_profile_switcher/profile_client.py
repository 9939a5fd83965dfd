"""
Profile client for the appliance's profile form.

Binds a DigestSession to the profile form path: fetches and scrapes the form,
caches the hidden fields that must be replayed, and submits load requests.
"""

from typing import Optional
from urllib.parse import urlencode

import httpx

from .audit_logger import AuditLogger
from .config import ConnectionConfig
from .digest_session import DigestSession
from .enums import LogLevel, ValidationErrorCode
from .exceptions import ProtocolError, ValidationError
from .form_scraper import scrape
from .models import Profile, ScrapedForm

PROFILE_PATH = "/config/profile/load"


class ProfileClient:
    """
    Client for listing and loading appliance profiles.

    Hidden fields are captured by the first form fetch and replayed on every
    submission until a new fetch replaces them or a failed submission
    invalidates them.
    """

    def __init__(
        self,
        connection: ConnectionConfig,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        session: Optional[DigestSession] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        """
        Initialize the profile client.

        Args:
            connection: Host, port and credentials of the appliance
            timeout: Transport timeout in seconds
            transport: Optional httpx transport for the session
            session: Optional pre-built session (takes precedence over transport)
            logger: Optional audit logger

        Raises:
            ValidationError: If host, username or password is missing
        """
        self._session = session or DigestSession(
            host=connection.host,
            port=connection.port,
            username=connection.username,
            password=connection.password,
            timeout=timeout,
            transport=transport,
            logger=logger,
        )
        self._logger = logger
        self.last_hidden_fields: dict[str, str] = {}
        self.last_profiles: list[Profile] = []

    async def __aenter__(self) -> "ProfileClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def session(self) -> DigestSession:
        return self._session

    async def fetch_profile_form(self) -> ScrapedForm:
        """
        Fetch and scrape the profile form.

        Raises:
            ProtocolError: If the appliance answers with an error status
            AuthenticationError: If the credentials are rejected
            ConnectivityError: If the appliance cannot be reached
        """
        response = await self._session.request("GET", PROFILE_PATH)
        if response.status_code >= 400:
            raise ProtocolError(
                code="form_fetch_failed",
                message=f"Failed to load profile form ({response.status_code}).",
                details={"status_code": response.status_code, "path": PROFILE_PATH},
            )

        form = scrape(response.body)
        self.last_hidden_fields = dict(form.hidden_fields)
        self.last_profiles = list(form.profiles)

        self._log_info(
            "Fetched profile form",
            {"profiles": len(form.profiles), "hidden_fields": sorted(form.hidden_fields)},
        )
        return form

    async def fetch_profiles(self) -> list[Profile]:
        """Fetch the form and return every profile option in server order."""
        form = await self.fetch_profile_form()
        return form.profiles

    async def load_profile(self, identifier: str) -> None:
        """
        Submit the profile form with the given identifier.

        Raises:
            ValidationError: If the identifier is empty
            ProtocolError: If the appliance rejects the submission
        """
        if identifier is None or not str(identifier).strip():
            raise ValidationError(
                code=ValidationErrorCode.EMPTY_PROFILE.value,
                message="Profile value is required.",
            )

        if not self.last_profiles or not self.last_hidden_fields:
            await self.fetch_profile_form()

        payload = {**self.last_hidden_fields, "profile": identifier}
        origin = self._session.origin
        response = await self._session.request(
            "POST",
            PROFILE_PATH,
            body=urlencode(payload),
            headers={
                "Content-Type": "application/x-www-form-urlencoded",
                "Origin": origin,
                "Referer": f"{origin}{PROFILE_PATH}",
            },
        )

        if response.status_code >= 400:
            self.invalidate_form()
            raise ProtocolError(
                code="profile_load_failed",
                message=f"Profile load request failed ({response.status_code}).",
                details={"status_code": response.status_code, "profile": identifier},
            )

        self._log_info("Submitted profile load", {"profile": identifier})

    def invalidate_form(self) -> None:
        """Drop cached hidden fields and profiles so the next load refetches them."""
        self.last_hidden_fields = {}
        self.last_profiles = []

    async def close(self) -> None:
        await self._session.close()

    def _log_info(self, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(LogLevel.INFO, "ProfileClient", message, data)
