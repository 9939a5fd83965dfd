"""
Data models for the profile switcher.

This module defines the value objects passed between the digest session,
the form scraper, the profile resolver and the control surface synchronizer.
"""

from dataclasses import dataclass, field
from typing import Optional

from .enums import EndpointStatus

PLACEHOLDER_TITLE = "[default]"


@dataclass(frozen=True)
class Profile:
    """A selectable appliance profile discovered from the profile form."""

    identifier: str  # Appliance-defined, compared case-insensitively
    title: str = ""  # Display title as rendered by the appliance

    @property
    def display_title(self) -> str:
        """Title for display, falling back to the identifier, then a placeholder."""
        return self.title or self.identifier or PLACEHOLDER_TITLE

    def to_dict(self) -> dict:
        return {"identifier": self.identifier, "title": self.display_title}


@dataclass
class ScrapedForm:
    """Result of scraping the appliance's profile form page."""

    hidden_fields: dict[str, str] = field(default_factory=dict)
    profiles: list[Profile] = field(default_factory=list)


@dataclass
class HTTPResult:
    """A completed HTTP exchange with the appliance."""

    status_code: int
    headers: dict[str, str]
    body: str


@dataclass
class ControlEndpoint:
    """An externally addressable on/off representation of one profile."""

    key: str  # Stable slug derived from the profile identifier
    profile: Profile
    status: EndpointStatus = EndpointStatus.INDETERMINATE

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "profile": self.profile.to_dict(),
            "status": self.status.value,
        }


@dataclass
class StatusReport:
    """User-facing status of the synchronizer."""

    message: str
    is_error: bool = False
    restarting: bool = False
    error_code: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "is_error": self.is_error,
            "restarting": self.restarting,
            "error_code": self.error_code,
        }
