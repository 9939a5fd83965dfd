"""
Profile resolution rules.

Placeholder entries ("Default", empty values) are never selectable. A
requested identifier is matched case-insensitively against the usable
profiles, identifier before title, in the appliance's own order; without a
match the fixed default label and then the first usable profile are used.
"""

import re
from typing import Optional, Sequence

from .exceptions import ResolutionError
from .models import Profile

DEFAULT_PROFILE_LABEL = "sda"
PLACEHOLDER_IDENTIFIER = "default"

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def normalize_identifier(value: Optional[str]) -> str:
    """Lowercase and collapse non-alphanumeric runs to single spaces."""
    if value is None:
        return ""
    return _NON_ALNUM.sub(" ", str(value).lower()).strip()


def slugify(value: str) -> str:
    """Stable endpoint key for a profile identifier."""
    slug = normalize_identifier(value).replace(" ", "-")
    return slug or "profile"


def normalize_request(requested: Optional[str]) -> Optional[str]:
    """Trim a requested identifier; empty or whitespace-only means absent."""
    if requested is None:
        return None
    trimmed = str(requested).strip()
    return trimmed or None


def is_placeholder(profile: Profile) -> bool:
    normalized = normalize_identifier(profile.identifier)
    return not normalized or normalized == PLACEHOLDER_IDENTIFIER


def usable_profiles(profiles: Sequence[Profile]) -> list[Profile]:
    """Profiles that can be shown and selected, in server order."""
    return [profile for profile in profiles if not is_placeholder(profile)]


def find_profile(profiles: Sequence[Profile], requested: Optional[str]) -> Optional[Profile]:
    """
    Strict lookup of a requested identifier among the usable profiles.

    An identifier match anywhere in the list beats a title match; within
    each kind the first profile in server order wins.
    """
    target = normalize_request(requested)
    if target is None:
        return None
    lowered = target.lower()
    usable = usable_profiles(profiles)

    for profile in usable:
        if profile.identifier.strip().lower() == lowered:
            return profile
    for profile in usable:
        if profile.title and profile.title.strip().lower() == lowered:
            return profile
    return None


def resolve(profiles: Sequence[Profile], requested: Optional[str] = None) -> Profile:
    """
    Choose the profile to activate.

    Raises:
        ResolutionError: If no usable profile exists
    """
    usable = usable_profiles(profiles)
    if not usable:
        raise ResolutionError(
            code="no_usable_profiles",
            message="No profiles are available to load.",
            details={"requested": requested, "discovered": len(profiles)},
        )

    match = find_profile(usable, requested)
    if match is not None:
        return match

    for profile in usable:
        if profile.identifier.strip().lower() == DEFAULT_PROFILE_LABEL:
            return profile
    return usable[0]
