"""
Form scraper for the appliance's profile page.

A narrow pattern scan over the rendered HTML: it extracts the hidden inputs
that must be replayed on submission and the options of the profile select.
Callers only depend on ``scrape``.
"""

import re
from html import unescape
from typing import Optional

from .models import PLACEHOLDER_TITLE, Profile, ScrapedForm

# Input names treated as anti-forgery tokens even when not type=hidden
ANTI_FORGERY_FIELDS = frozenset({
    "_xsrf",
    "_csrf",
    "csrf_token",
    "csrfmiddlewaretoken",
    "authenticity_token",
})

PROFILE_SELECT_NAME = "profile"

_INPUT_TAG = re.compile(r"<input\b[^>]*>", re.IGNORECASE)
_SELECT_BLOCK = re.compile(
    r"<select\b([^>]*)>(.*?)</select\s*>",
    re.IGNORECASE | re.DOTALL,
)
_OPTION_BLOCK = re.compile(
    r"<option\b([^>]*)>(.*?)(?:</option\s*>|(?=<option\b)|\Z)",
    re.IGNORECASE | re.DOTALL,
)
_ATTRIBUTE = re.compile(
    r"""([^\s=/>"']+)(?:\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s>]+)))?"""
)
_TAG = re.compile(r"<[^>]*>")
_WHITESPACE = re.compile(r"\s+")


def get_attribute(tag: str, attribute: str) -> Optional[str]:
    """
    Read an attribute from a start tag.

    Double-quoted, single-quoted and unquoted values are accepted. Returns
    None when the attribute is absent and "" for a valueless attribute.
    """
    return parse_attributes(tag).get(attribute.lower())


def parse_attributes(tag: str) -> dict[str, str]:
    """Parse every attribute of a start tag; the first occurrence of a name wins."""
    # Skip the element name itself (e.g. <option value=...>)
    body = re.sub(r"^<\s*[\w-]+", "", tag.strip()).rstrip(">").rstrip("/")
    attributes: dict[str, str] = {}
    for match in _ATTRIBUTE.finditer(body):
        name = match.group(1).lower()
        if name in attributes:
            continue
        value = next((g for g in match.groups()[1:] if g is not None), "")
        attributes[name] = unescape(value)
    return attributes


def _inner_text(fragment: str) -> str:
    text = unescape(_TAG.sub(" ", fragment))
    return _WHITESPACE.sub(" ", text).strip()


def parse_hidden_fields(html: str) -> dict[str, str]:
    """Collect hidden and anti-forgery inputs as name -> value."""
    fields: dict[str, str] = {}
    for match in _INPUT_TAG.finditer(html):
        tag = match.group(0)
        name = get_attribute(tag, "name")
        if not name:
            continue
        input_type = (get_attribute(tag, "type") or "").lower()
        if input_type == "hidden" or name in ANTI_FORGERY_FIELDS:
            fields[name] = get_attribute(tag, "value") or ""
    return fields


def _find_profile_select(html: str) -> Optional[str]:
    for match in _SELECT_BLOCK.finditer(html):
        name = get_attribute(f"<select{match.group(1)}>", "name")
        if name is not None and name.strip().lower() == PROFILE_SELECT_NAME:
            return match.group(2)
    return None


def parse_profiles(html: str) -> list[Profile]:
    """
    Collect the options of the first ``<select name="profile">`` in page order.

    Placeholder options are kept; filtering them is the resolver's job.
    """
    content = _find_profile_select(html)
    if content is None:
        return []

    profiles = []
    for match in _OPTION_BLOCK.finditer(content):
        text = _inner_text(match.group(2))
        value = get_attribute(f"<option{match.group(1)}>", "value")
        identifier = value if value else text
        profiles.append(Profile(
            identifier=identifier,
            title=text or identifier or PLACEHOLDER_TITLE,
        ))
    return profiles


def scrape(html: str) -> ScrapedForm:
    """Scrape the profile page into its hidden fields and profile options."""
    html = html or ""
    return ScrapedForm(
        hidden_fields=parse_hidden_fields(html),
        profiles=parse_profiles(html),
    )
