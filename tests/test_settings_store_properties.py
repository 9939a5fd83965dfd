"""
Property-based tests for the Settings Store module.

Uses Hypothesis for property-based testing of HMAC protection and the
round trip of persisted connection settings.
"""

import json
import tempfile
from pathlib import Path

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from hqp_profile_switcher.config import ConnectionConfig
from hqp_profile_switcher.exceptions import PersistenceError, TamperingError
from hqp_profile_switcher.settings_store import SettingsStore


# Strategies for generating test data

plain_text = st.text(
    alphabet=st.characters(blacklist_categories=("Cs",)),
    max_size=40,
)


@st.composite
def connection_strategy(draw) -> ConnectionConfig:
    """Generate connection settings."""
    return ConnectionConfig(
        host=draw(plain_text),
        port=draw(st.integers(min_value=1, max_value=65535)),
        username=draw(plain_text),
        password=draw(plain_text),
        profile=draw(plain_text),
    )


@st.composite
def hmac_secret_strategy(draw) -> str:
    """Generate valid HMAC secrets."""
    return draw(st.text(min_size=16, max_size=64))


class TestSettingsRoundTripProperty:
    """Saved settings load back unchanged."""

    @given(connection=connection_strategy(), secret=hmac_secret_strategy())
    @settings(max_examples=100)
    def test_round_trip_preserves_settings(self, connection, secret):
        with tempfile.TemporaryDirectory() as tmpdir:
            file_path = Path(tmpdir) / "settings.json"
            SettingsStore(file_path, secret).save(connection)

            store = SettingsStore(file_path, secret)
            loaded = store.load()

        assert loaded == connection
        assert store.last_updated

    def test_missing_file_loads_none(self, tmp_path):
        assert SettingsStore(tmp_path / "absent.json", "x" * 16).load() is None

    def test_save_without_settings_fails(self, tmp_path):
        with pytest.raises(PersistenceError) as exc_info:
            SettingsStore(tmp_path / "settings.json", "x" * 16).save()
        assert exc_info.value.code == "no_settings"

    def test_remember_profile_updates_file(self, tmp_path):
        file_path = tmp_path / "settings.json"
        store = SettingsStore(file_path, "x" * 16)
        store.save(ConnectionConfig(host="hqplayer.local", username="admin", password="secret"))

        store.remember_profile("zen")

        loaded = SettingsStore(file_path, "x" * 16).load()
        assert loaded.profile == "zen"
        assert loaded.host == "hqplayer.local"

    def test_remember_profile_with_connection(self, tmp_path):
        file_path = tmp_path / "settings.json"
        connection = ConnectionConfig(host="hqplayer.local", username="admin", password="secret")

        SettingsStore(file_path, "x" * 16).remember_profile("zen", connection)

        loaded = SettingsStore(file_path, "x" * 16).load()
        assert loaded == ConnectionConfig(
            host="hqplayer.local", username="admin", password="secret", profile="zen"
        )
        assert connection.profile == ""

    def test_remember_profile_without_settings(self, tmp_path):
        store = SettingsStore(tmp_path / "settings.json", "x" * 16)
        store.remember_profile("sda")
        assert store.connection == ConnectionConfig(profile="sda")


class TestHMACProtectionProperty:
    """Modified or foreign files are rejected."""

    @given(connection=connection_strategy(), secret=hmac_secret_strategy())
    @settings(max_examples=50)
    def test_modified_data_is_rejected(self, connection, secret):
        with tempfile.TemporaryDirectory() as tmpdir:
            file_path = Path(tmpdir) / "settings.json"
            SettingsStore(file_path, secret).save(connection)

            raw_data = json.loads(file_path.read_text(encoding="utf-8"))
            raw_data["connection"]["port"] = connection.port % 65535 + 1
            file_path.write_text(json.dumps(raw_data), encoding="utf-8")

            with pytest.raises(TamperingError) as exc_info:
                SettingsStore(file_path, secret).load()

        assert exc_info.value.code == "hmac_mismatch"

    def test_wrong_secret_is_rejected(self, tmp_path):
        file_path = tmp_path / "settings.json"
        SettingsStore(file_path, "a" * 16).save(ConnectionConfig(host="h"))

        with pytest.raises(TamperingError):
            SettingsStore(file_path, "b" * 16).load()

    @pytest.mark.parametrize("content", ["{broken", "[]"])
    def test_unparseable_file(self, tmp_path, content):
        file_path = tmp_path / "settings.json"
        file_path.write_text(content, encoding="utf-8")

        with pytest.raises(PersistenceError) as exc_info:
            SettingsStore(file_path, "x" * 16).load()

        assert exc_info.value.code == "parse_error"
        assert not isinstance(exc_info.value, TamperingError)
