"""
Internationalization (i18n) module for the profile switcher.

Provides translations for all user-facing status, error and CLI messages in
English (en) and German (de).
"""

from typing import Optional

from .enums import ConnectivityErrorCode
from .exceptions import (
    AuthenticationError,
    ConnectivityError,
    PersistenceError,
    ProtocolError,
    ResolutionError,
    ValidationError,
)


# Supported languages
SUPPORTED_LANGUAGES = frozenset({"de", "en"})
DEFAULT_LANGUAGE = "en"


# Structure: {message_key: {language_code: translated_message}}
TRANSLATIONS: dict[str, dict[str, str]] = {
    # Status messages
    "status.ready": {
        "de": "Bereit.",
        "en": "Ready.",
    },
    "status.missing_credentials": {
        "de": "Warte auf HQPlayer-Zugangsdaten. Host, Benutzername und Passwort eingeben und speichern.",
        "en": "Awaiting HQPlayer credentials. Enter host, username, and password, then press Save to connect.",
    },
    "status.loading": {
        "de": "HQPlayer-Profil wird geladen...",
        "en": "Updating HQPlayer profile...",
    },
    "status.loaded_profile": {
        "de": "Profil {title} geladen",
        "en": "Loaded profile {title}",
    },
    "status.waiting_for_restart": {
        "de": "Warte auf Neustart von HQPlayer...",
        "en": "Waiting for HQPlayer to restart...",
    },
    "status.profile_deselected": {
        "de": "Kein Profil aktiv.",
        "en": "No profile active.",
    },
    "status.connection_updated": {
        "de": "HQPlayer-Verbindung aktualisiert.",
        "en": "Updated HQPlayer connection.",
    },

    # Error messages
    "error.authentication": {
        "de": "Anmeldung bei HQPlayer fehlgeschlagen. Benutzername und Passwort prüfen.",
        "en": "HQPlayer rejected the credentials. Check username and password.",
    },
    "error.connection_refused": {
        "de": "HQPlayer unter {host}:{port} verweigert die Verbindung.",
        "en": "HQPlayer at {host}:{port} refused the connection.",
    },
    "error.host_unresolved": {
        "de": "Host {host} konnte nicht aufgelöst werden.",
        "en": "Unable to resolve host {host}.",
    },
    "error.dns_failure": {
        "de": "DNS-Auflösung für {host} vorübergehend fehlgeschlagen.",
        "en": "DNS lookup for {host} failed temporarily.",
    },
    "error.timeout": {
        "de": "Zeitüberschreitung bei der Verbindung zu {host}:{port}.",
        "en": "Timed out connecting to {host}:{port}.",
    },
    "error.network": {
        "de": "HQPlayer unter {host}:{port} ist nicht erreichbar.",
        "en": "Unable to reach HQPlayer at {host}:{port}.",
    },
    "error.protocol": {
        "de": "HQPlayer meldet einen Fehler: {detail}",
        "en": "HQPlayer returned an error: {detail}",
    },
    "error.resolution": {
        "de": "Keine ladbaren Profile vorhanden.",
        "en": "No profiles are available to load.",
    },
    "error.unknown_profile": {
        "de": "Unbekanntes Profil: {profile}",
        "en": "Unknown profile: {profile}",
    },
    "error.empty_profile": {
        "de": "Profilwert erforderlich.",
        "en": "Profile value required.",
    },
    "error.persistence": {
        "de": "Einstellungen konnten nicht gespeichert werden: {detail}",
        "en": "Unable to store settings: {detail}",
    },
    "error.unexpected": {
        "de": "Unerwarteter Fehler: {detail}",
        "en": "Unexpected error: {detail}",
    },

    # CLI messages
    "cli.available_profiles": {
        "de": "Verfügbare Profile:",
        "en": "Available profiles:",
    },
    "cli.none": {
        "de": "(keine)",
        "en": "(none)",
    },
    "cli.profile_loaded": {
        "de": "Profil \"{title}\" geladen.",
        "en": "Profile \"{title}\" loaded.",
    },
    "cli.load_failed": {
        "de": "Profilwechsel fehlgeschlagen: {detail}",
        "en": "Failed to switch profile: {detail}",
    },
    "cli.missing_connection": {
        "de": "Verbindungsdaten fehlen. Host, Benutzer und Passwort per Argument oder HQP_HOST/HQP_USER/HQP_PASS angeben.",
        "en": "Missing connection details. Provide host, username, and password via arguments or HQP_HOST/HQP_USER/HQP_PASS.",
    },
    "cli.status": {
        "de": "Status: {message}",
        "en": "Status: {message}",
    },
    "cli.endpoints": {
        "de": "Steuerpunkte:",
        "en": "Control endpoints:",
    },
    "cli.watching": {
        "de": "Überwache {host}:{port} alle {interval}s (Strg+C zum Beenden)",
        "en": "Watching {host}:{port} every {interval}s (Ctrl+C to stop)",
    },
}


def get_message(key: str, language: str = DEFAULT_LANGUAGE, **kwargs) -> str:
    """
    Get a translated message by key.

    Falls back to the default language, then to the key itself.

    Args:
        key: The message key (e.g., "status.ready")
        language: The language code ("de" or "en")
        **kwargs: Format arguments for the message

    Returns:
        The translated and formatted message string.
    """
    translations = TRANSLATIONS.get(key)
    if translations is None:
        return key

    message = translations.get(language)
    if message is None:
        message = translations.get(DEFAULT_LANGUAGE)
    if message is None:
        return key

    if kwargs:
        try:
            message = message.format(**kwargs)
        except KeyError:
            pass

    return message


def describe_error(error: Exception, language: str = DEFAULT_LANGUAGE) -> str:
    """Turn a classified error into a user-facing message."""
    details = getattr(error, "details", {}) or {}
    detail = getattr(error, "message", None) or str(error) or type(error).__name__

    if isinstance(error, AuthenticationError):
        return get_message("error.authentication", language)
    if isinstance(error, ConnectivityError):
        host = details.get("host", "?")
        port = details.get("port", "?")
        key = {
            ConnectivityErrorCode.CONNECTION_REFUSED.value: "error.connection_refused",
            ConnectivityErrorCode.HOST_UNRESOLVED.value: "error.host_unresolved",
            ConnectivityErrorCode.DNS_FAILURE.value: "error.dns_failure",
            ConnectivityErrorCode.TIMEOUT.value: "error.timeout",
        }.get(error.code, "error.network")
        return get_message(key, language, host=host, port=port)
    if isinstance(error, ProtocolError):
        return get_message("error.protocol", language, detail=detail)
    if isinstance(error, ResolutionError):
        return get_message("error.resolution", language)
    if isinstance(error, ValidationError):
        if error.code == "missing_credentials":
            return get_message("status.missing_credentials", language)
        if error.code == "empty_profile":
            return get_message("error.empty_profile", language)
        if error.code == "unknown_profile":
            return get_message("error.unknown_profile", language, profile=details.get("profile", ""))
        return detail
    if isinstance(error, PersistenceError):
        return get_message("error.persistence", language, detail=detail)
    return get_message("error.unexpected", language, detail=detail)


def get_all_message_keys() -> set[str]:
    """Get all available message keys."""
    return set(TRANSLATIONS.keys())


def has_translation(key: str, language: str) -> bool:
    """Check if a translation exists for a key and language."""
    translations = TRANSLATIONS.get(key)
    if translations is None:
        return False
    return language in translations


def get_missing_translations(language: str) -> set[str]:
    """Get all message keys that are missing translations for a language."""
    return {
        key for key, translations in TRANSLATIONS.items()
        if language not in translations
    }


def validate_translations(languages: Optional[frozenset] = None) -> dict[str, set[str]]:
    """
    Validate that all languages have all translations.

    Returns:
        Dictionary mapping language codes to sets of missing message keys.
    """
    return {
        language: get_missing_translations(language)
        for language in (languages or SUPPORTED_LANGUAGES)
    }
