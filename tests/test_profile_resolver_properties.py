"""
Property-based tests for the Profile Resolver module.

Uses Hypothesis for property-based testing of placeholder filtering,
case-insensitive matching and the default fallback order.
"""

import pytest
from hypothesis import assume, given, settings
from hypothesis import strategies as st

from hqp_profile_switcher.exceptions import ResolutionError
from hqp_profile_switcher.models import Profile
from hqp_profile_switcher.profile_resolver import (
    find_profile,
    normalize_identifier,
    resolve,
    slugify,
    usable_profiles,
)

CLASSICAL = Profile(identifier="classical", title="Classical")
SDA = Profile(identifier="sda", title="SDA")
ZEN = Profile(identifier="zen", title="Zen Mode")


# Strategies for generating test data

identifier_strategy = st.text(
    alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyz0123456789"),
    min_size=1,
    max_size=12,
).filter(lambda value: value not in ("default", "sda"))


@st.composite
def usable_list_strategy(draw) -> list[Profile]:
    identifiers = draw(st.lists(identifier_strategy, min_size=1, max_size=8, unique=True))
    return [Profile(identifier=identifier, title=identifier.upper()) for identifier in identifiers]


def random_case(draw, value: str) -> str:
    flips = draw(st.lists(st.booleans(), min_size=len(value), max_size=len(value)))
    return "".join(c.upper() if flip else c for c, flip in zip(value, flips))


class TestUsableProfiles:
    """Properties of placeholder filtering."""

    @pytest.mark.parametrize("identifier", ["", "   ", "default", "DEFAULT", " Default ", "--"])
    def test_placeholders_are_dropped(self, identifier):
        assert usable_profiles([Profile(identifier=identifier, title="Default"), ZEN]) == [ZEN]

    @given(profiles=usable_list_strategy())
    @settings(max_examples=100)
    def test_order_is_preserved(self, profiles):
        mixed = [Profile(identifier="", title="[default]")] + profiles
        assert usable_profiles(mixed) == profiles


class TestResolve:
    """Properties of profile resolution."""

    def test_case_insensitive_identifier(self):
        assert resolve([ZEN], "ZEN") == ZEN

    def test_sda_fallback_without_request(self):
        assert resolve([CLASSICAL, SDA, ZEN], None) == SDA

    def test_sda_fallback_for_unknown_request(self):
        assert resolve([CLASSICAL, SDA, ZEN], "missing") == SDA

    def test_first_profile_without_sda(self):
        assert resolve([CLASSICAL, ZEN]) == CLASSICAL

    def test_whitespace_request_counts_as_absent(self):
        assert resolve([CLASSICAL, SDA, ZEN], "   ") == SDA

    def test_empty_list_raises(self):
        with pytest.raises(ResolutionError) as exc_info:
            resolve([], "zen")
        assert exc_info.value.code == "no_usable_profiles"

    def test_only_placeholders_raises(self):
        with pytest.raises(ResolutionError):
            resolve([Profile(identifier="default", title="Default")])

    def test_title_match(self):
        assert resolve([CLASSICAL, SDA, ZEN], "zen mode") == ZEN

    def test_identifier_match_beats_earlier_title_match(self):
        tricky = Profile(identifier="night", title="zen")
        assert resolve([tricky, ZEN], "Zen") == ZEN

    @given(profiles=usable_list_strategy(), data=st.data())
    @settings(max_examples=100)
    def test_any_case_variant_resolves_to_itself(self, profiles, data):
        target = data.draw(st.sampled_from(profiles))
        requested = random_case(data.draw, target.identifier)
        assert resolve(profiles, f"  {requested} ") == target

    @given(profiles=usable_list_strategy(), requested=identifier_strategy)
    @settings(max_examples=100)
    def test_unmatched_request_falls_back_to_first(self, profiles, requested):
        assume(all(
            requested != p.identifier and requested.upper() != p.title.upper()
            for p in profiles
        ))
        assert resolve(profiles, requested) == profiles[0]

    @given(profiles=usable_list_strategy())
    @settings(max_examples=50)
    def test_result_is_always_usable(self, profiles):
        mixed = [Profile(identifier="default", title="Default")] + profiles
        assert resolve(mixed) in usable_profiles(mixed)


class TestFindProfile:
    """Properties of strict lookup."""

    def test_no_fallback(self):
        assert find_profile([CLASSICAL, SDA, ZEN], "missing") is None
        assert find_profile([CLASSICAL, SDA, ZEN], None) is None

    def test_placeholder_is_never_found(self):
        assert find_profile([Profile(identifier="default", title="Default")], "default") is None


class TestNormalization:
    """Properties of identifier normalization and endpoint slugs."""

    @pytest.mark.parametrize("raw,expected", [
        ("Zen Mode", "zen mode"),
        ("  SDA--HQ  ", "sda hq"),
        ("Rock&Roll", "rock roll"),
        (None, ""),
        ("", ""),
    ])
    def test_normalize_identifier(self, raw, expected):
        assert normalize_identifier(raw) == expected

    @given(value=st.text(max_size=30))
    @settings(max_examples=200)
    def test_slug_is_url_safe(self, value):
        slug = slugify(value)
        assert slug
        assert all(c in "abcdefghijklmnopqrstuvwxyz0123456789-" for c in slug)
        assert not slug.startswith("-") and not slug.endswith("-")
