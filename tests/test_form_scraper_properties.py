"""
Property-based tests for the Form Scraper module.

Uses Hypothesis for property-based testing of hidden field and profile
option extraction from rendered profile pages.
"""

from html import escape

from hypothesis import given, settings
from hypothesis import strategies as st

from appliance_fakes import render_profile_page
from hqp_profile_switcher.form_scraper import (
    get_attribute,
    parse_hidden_fields,
    parse_profiles,
    scrape,
)
from hqp_profile_switcher.models import Profile
from hqp_profile_switcher.profile_resolver import usable_profiles


# Strategies for generating test data

identifier_strategy = st.text(
    alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyz0123456789-_"),
    min_size=1,
    max_size=20,
).filter(lambda value: value != "default")

title_strategy = st.text(
    alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789 &<>'"),
    min_size=1,
    max_size=30,
).map(str.strip).filter(bool)


@st.composite
def profile_list_strategy(draw) -> list[tuple[str, str]]:
    identifiers = draw(st.lists(identifier_strategy, min_size=0, max_size=8, unique=True))
    return [(identifier, draw(title_strategy)) for identifier in identifiers]


class TestProfileOptions:
    """Properties of profile option extraction."""

    def test_placeholder_and_zen(self):
        html = (
            '<select name="profile"><option value="">Default</option>'
            '<option value="zen">Zen Mode</option></select>'
        )
        profiles = parse_profiles(html)

        assert usable_profiles(profiles) == [Profile(identifier="zen", title="Zen Mode")]

    def test_whitespace_value_is_kept_and_unusable(self):
        html = (
            '<select name="profile"><option value=" ">Bogus</option>'
            '<option value="zen">Zen</option></select>'
        )
        profiles = parse_profiles(html)

        assert profiles[0] == Profile(identifier=" ", title="Bogus")
        assert [p.identifier for p in usable_profiles(profiles)] == ["zen"]

    @given(entries=profile_list_strategy())
    @settings(max_examples=100)
    def test_options_survive_rendering(self, entries):
        """Every rendered option comes back in page order with its title."""
        html = render_profile_page(
            [(identifier, escape(title)) for identifier, title in entries]
        )
        profiles = scrape(html).profiles

        assert [p.identifier for p in profiles] == [identifier for identifier, _ in entries]
        assert [p.title for p in profiles] == [" ".join(title.split()) for _, title in entries]

    def test_value_falls_back_to_text(self):
        profiles = parse_profiles('<select name="profile"><option>  Room EQ </option></select>')
        assert profiles == [Profile(identifier="Room EQ", title="Room EQ")]

    def test_title_falls_back_to_identifier(self):
        profiles = parse_profiles('<select name="profile"><option value="night"></option></select>')
        assert profiles == [Profile(identifier="night", title="night")]

    def test_empty_option_gets_placeholder_title(self):
        profiles = parse_profiles('<select name="profile"><option value=""></option></select>')
        assert profiles == [Profile(identifier="", title="[default]")]

    def test_quoting_variants(self):
        html = (
            "<SELECT NAME='profile'>"
            "<option value='single'>Single</option>"
            '<option value="double">Double</option>'
            "<option value=bare>Bare</option>"
            "<option selected value=\"flag\">Flag</option>"
            "</SELECT>"
        )
        identifiers = [p.identifier for p in parse_profiles(html)]
        assert identifiers == ["single", "double", "bare", "flag"]

    def test_unclosed_options(self):
        html = '<select name="profile"><option value="a">Alpha<option value="b">Beta</select>'
        assert parse_profiles(html) == [
            Profile(identifier="a", title="Alpha"),
            Profile(identifier="b", title="Beta"),
        ]

    def test_markup_and_entities_in_titles(self):
        html = (
            '<select name="profile">'
            '<option value="rock&amp;roll"><b>Rock</b>\n &amp;   Roll</option>'
            "</select>"
        )
        assert parse_profiles(html) == [Profile(identifier="rock&roll", title="Rock & Roll")]

    def test_only_profile_select_is_read(self):
        html = (
            '<select name="mode"><option value="pcm">PCM</option></select>'
            '<select id="x" name="profile"><option value="zen">Zen</option></select>'
            '<select name="profile"><option value="late">Late</option></select>'
        )
        assert [p.identifier for p in parse_profiles(html)] == ["zen"]

    def test_page_without_select(self):
        assert scrape("<html><body>Login required</body></html>").profiles == []
        assert scrape("").profiles == []


class TestHiddenFields:
    """Properties of hidden field extraction."""

    def test_rendered_page_token(self):
        form = scrape(render_profile_page([("zen", "Zen")], token="abc123"))
        assert form.hidden_fields == {"_xsrf": "abc123"}

    @given(
        name=st.text(alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyz_"), min_size=1, max_size=12),
        value=st.text(alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyz0123456789&<>\" "), max_size=20),
    )
    @settings(max_examples=100)
    def test_hidden_values_are_unescaped(self, name, value):
        html = f'<input type="hidden" name="{name}" value="{escape(value)}">'
        assert parse_hidden_fields(html) == {name: value}

    def test_anti_forgery_names_without_hidden_type(self):
        html = (
            '<input name="csrf_token" value="t1">'
            "<input type=text name=_xsrf value=t2>"
            '<input type="text" name="username" value="admin">'
        )
        assert parse_hidden_fields(html) == {"csrf_token": "t1", "_xsrf": "t2"}

    def test_missing_value_is_empty(self):
        assert parse_hidden_fields('<input type="HIDDEN" name="nonce">') == {"nonce": ""}

    def test_nameless_inputs_are_skipped(self):
        assert parse_hidden_fields('<input type="hidden" value="orphan">') == {}

    def test_attribute_names_inside_values_are_not_matched(self):
        tag = '<input title="name=bogus" name="real" type="hidden" value="first name">'
        assert get_attribute(tag, "name") == "real"
        assert get_attribute(tag, "value") == "first name"
        assert get_attribute(tag, "missing") is None
