"""
Command-line interface for the profile switcher.

This module provides the main CLI entry point with commands for:
- list: List the usable profiles on the appliance
- load: Load a profile (falls back to the default profile)
- status: Show the synchronizer status and control endpoints
- watch: Poll the appliance and print status changes
- config: Configuration management
"""

import argparse
import asyncio
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

from . import __version__
from .audit_logger import AuditLogger
from .config import (
    DEFAULT_CONFIG_PATH,
    ConnectionConfig,
    SystemConfig,
    apply_environment,
    create_default_config,
    load_config_from_file,
    save_config_to_file,
)
from .enums import EndpointStatus
from .exceptions import PersistenceError, ProfileSwitcherError
from .i18n import describe_error, get_message
from .models import StatusReport
from .poller import StatusPoller
from .profile_resolver import resolve
from .settings_store import SettingsStore
from .synchronizer import ControlSurfaceSynchronizer

_STATUS_MARKERS = {
    EndpointStatus.SELECTED: "[x]",
    EndpointStatus.DESELECTED: "[ ]",
    EndpointStatus.INDETERMINATE: "[?]",
}


def resolve_config(args: argparse.Namespace) -> Optional[SystemConfig]:
    """
    Build the effective configuration.

    Precedence, lowest first: config file, stored settings, environment
    (including a .env file), command line arguments.

    Returns:
        SystemConfig, or None if an explicitly given config file is unusable
    """
    config = None
    if args.config:
        config = load_config_from_file(Path(args.config))
        if config is None:
            print(f"Error: Could not load config from {args.config}", file=sys.stderr)
            return None
    elif DEFAULT_CONFIG_PATH.exists():
        config = load_config_from_file(DEFAULT_CONFIG_PATH)

    if config is None:
        config = create_default_config()

    store = create_settings_store(config)
    try:
        stored = store.load()
    except PersistenceError as e:
        stored = None
        if args.verbose:
            print(f"Warning: Could not load settings: {e.message}", file=sys.stderr)
    if stored is not None:
        config.connection = merge_connection(config.connection, stored)

    apply_environment(config)

    if args.host:
        config.connection.host = args.host.strip()
    if args.port:
        config.connection.port = args.port
    if args.user:
        config.connection.username = args.user
    if args.password:
        config.connection.password = args.password
    if args.language:
        config.language = args.language
    return config


def merge_connection(base: ConnectionConfig, overlay: ConnectionConfig) -> ConnectionConfig:
    """Non-empty overlay fields win over the base."""
    return ConnectionConfig(
        host=overlay.host or base.host,
        port=overlay.port or base.port,
        username=overlay.username or base.username,
        password=overlay.password or base.password,
        profile=overlay.profile or base.profile,
    )


def create_settings_store(config: SystemConfig) -> SettingsStore:
    return SettingsStore(
        file_path=config.persistence.settings_file_path,
        hmac_secret=config.persistence.hmac_secret,
    )


def create_logger(config: SystemConfig, verbose: bool) -> Optional[AuditLogger]:
    if not verbose:
        return None
    return AuditLogger(output_format=config.logging.output_format, level="debug")


def create_synchronizer(
    config: SystemConfig,
    logger: Optional[AuditLogger] = None,
    store: Optional[SettingsStore] = None,
) -> ControlSurfaceSynchronizer:
    """Wire a synchronizer whose committed selections are written to the settings store."""
    on_profile_committed = None
    if store is not None:
        settings = replace(config.connection)

        def on_profile_committed(identifier: str) -> None:
            store.remember_profile(identifier, settings)

    return ControlSurfaceSynchronizer(
        connection=config.connection,
        config=config.synchronizer,
        on_profile_committed=on_profile_committed,
        language=config.language,
        logger=logger,
    )


def print_profiles(synchronizer: ControlSurfaceSynchronizer, language: str) -> None:
    print(get_message("cli.available_profiles", language))
    profiles = synchronizer.profiles
    if not profiles:
        print(get_message("cli.none", language))
        return
    for profile in profiles:
        print(f"- {profile.display_title} ({profile.identifier})")


def print_status(status: StatusReport, language: str) -> None:
    stream = sys.stderr if status.is_error else sys.stdout
    print(get_message("cli.status", language, message=status.message), file=stream)


def print_endpoints(synchronizer: ControlSurfaceSynchronizer, language: str) -> None:
    print(get_message("cli.endpoints", language))
    endpoints = synchronizer.list_endpoints()
    if not endpoints:
        print(get_message("cli.none", language))
        return
    for endpoint in endpoints:
        marker = _STATUS_MARKERS[endpoint.status]
        print(f"  {marker} {endpoint.key}: {endpoint.profile.display_title}")


async def list_profiles(config: SystemConfig, verbose: bool = False) -> int:
    """
    Print the usable profiles.

    Returns:
        Exit code (0 on success, 1 on error)
    """
    language = config.language
    logger = create_logger(config, verbose)
    synchronizer = create_synchronizer(config, logger)
    try:
        await synchronizer.refresh()
    except ProfileSwitcherError as e:
        print(describe_error(e, language), file=sys.stderr)
        return 1
    finally:
        await synchronizer.close()

    print_profiles(synchronizer, language)
    return 0


async def load_profile(
    config: SystemConfig,
    requested: Optional[str],
    verbose: bool = False,
) -> int:
    """
    Load the requested profile, falling back to the default profile.

    Returns:
        Exit code (0 on success, 1 on error)
    """
    language = config.language
    logger = create_logger(config, verbose)
    store = create_settings_store(config)
    synchronizer = create_synchronizer(config, logger, store)
    try:
        profiles = await synchronizer.refresh()
        target = resolve(profiles, requested)
        loaded = await synchronizer.select(target.identifier)
    except ProfileSwitcherError as e:
        print(
            get_message("cli.load_failed", language, detail=describe_error(e, language)),
            file=sys.stderr,
        )
        return 1
    finally:
        await synchronizer.close()

    print(get_message("cli.profile_loaded", language, title=loaded.display_title))
    return 0


async def show_status(config: SystemConfig, verbose: bool = False) -> int:
    """
    Refresh once and print the status, profiles and endpoints.

    Returns:
        Exit code (0 unless the status is an error)
    """
    language = config.language
    logger = create_logger(config, verbose)
    synchronizer = create_synchronizer(config, logger)
    try:
        status = await synchronizer.check_status()
    finally:
        await synchronizer.close()

    print_status(status, language)
    if not status.is_error:
        print_profiles(synchronizer, language)
        print_endpoints(synchronizer, language)
    return 1 if status.is_error else 0


async def watch_status(
    config: SystemConfig,
    verbose: bool = False,
    stop_event: Optional[asyncio.Event] = None,
    max_ticks: Optional[int] = None,
) -> int:
    """Poll until interrupted, printing each status that differs from the last."""
    language = config.language
    logger = create_logger(config, verbose)
    synchronizer = create_synchronizer(config, logger)
    last: list[Optional[StatusReport]] = [None]

    async def on_status(status: StatusReport) -> None:
        if status != last[0]:
            print_status(status, language)
            print_endpoints(synchronizer, language)
            last[0] = status

    poller = StatusPoller(
        synchronizer,
        interval_seconds=config.synchronizer.poll_interval_seconds,
        on_status=on_status,
        logger=logger,
    )

    print(get_message(
        "cli.watching",
        language,
        host=config.connection.host,
        port=config.connection.port,
        interval=config.synchronizer.poll_interval_seconds,
    ))
    try:
        await poller.run(stop_event=stop_event, max_ticks=max_ticks)
    finally:
        await synchronizer.close()
    return 0


def _require_connection(config: SystemConfig) -> bool:
    if config.connection.has_credentials():
        return True
    print(get_message("cli.missing_connection", config.language), file=sys.stderr)
    return False


def cmd_list(args: argparse.Namespace) -> int:
    """Handle the 'list' command."""
    config = resolve_config(args)
    if config is None or not _require_connection(config):
        return 1
    return asyncio.run(list_profiles(config, verbose=args.verbose))


def cmd_load(args: argparse.Namespace) -> int:
    """Handle the 'load' command."""
    config = resolve_config(args)
    if config is None or not _require_connection(config):
        return 1
    requested = args.profile if args.profile is not None else config.connection.profile
    return asyncio.run(load_profile(config, requested, verbose=args.verbose))


def cmd_status(args: argparse.Namespace) -> int:
    """Handle the 'status' command."""
    config = resolve_config(args)
    if config is None or not _require_connection(config):
        return 1
    return asyncio.run(show_status(config, verbose=args.verbose))


def cmd_watch(args: argparse.Namespace) -> int:
    """Handle the 'watch' command."""
    config = resolve_config(args)
    if config is None or not _require_connection(config):
        return 1
    if args.interval:
        config.synchronizer.poll_interval_seconds = args.interval
    try:
        return asyncio.run(watch_status(config, verbose=args.verbose))
    except KeyboardInterrupt:
        return 0


def cmd_config(args: argparse.Namespace) -> int:
    """Handle the 'config' command."""
    config_path = Path(args.path) if args.path else DEFAULT_CONFIG_PATH

    if args.action == "show":
        config = load_config_from_file(config_path)
        if config is None:
            print(f"No configuration found at: {config_path}")
            print("Use 'config init' to create a default configuration.")
            return 1

        print(f"Configuration from: {config_path}")
        print(f"  Host: {config.connection.host or '-'}")
        print(f"  Port: {config.connection.port}")
        print(f"  Username: {config.connection.username or '-'}")
        print(f"  Password: {'***' if config.connection.password else '-'}")
        print(f"  Profile: {config.connection.profile or '-'}")
        print(f"  Language: {config.language}")
        print(f"  Restart grace: {config.synchronizer.restart_grace_seconds}s")
        print(f"  Poll interval: {config.synchronizer.poll_interval_seconds}s")
        print(f"  Settings file: {config.persistence.settings_file_path}")
        print(f"  Log level: {config.logging.level}")
        return 0

    elif args.action == "init":
        if config_path.exists() and not args.force:
            print(f"Configuration already exists at: {config_path}")
            print("Use --force to overwrite.")
            return 1

        config = create_default_config(language=args.language or "en")
        if save_config_to_file(config, config_path):
            print(f"Configuration created at: {config_path}")
            return 0
        return 1

    return 1


def _add_connection_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--host", help="HQPlayer host (env: HQP_HOST)")
    parser.add_argument("--port", type=int, help="HQPlayer web port (env: HQP_PORT, default: 8088)")
    parser.add_argument("--user", help="HQPlayer web username (env: HQP_USER)")
    parser.add_argument("--password", help="HQPlayer web password (env: HQP_PASS)")
    parser.add_argument(
        "--config", "-c",
        help="Path to configuration file",
    )
    parser.add_argument(
        "--language", "-l",
        choices=["de", "en"],
        help="Output language (default: en)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="hqp-profile",
        description="List and switch HQPlayer configuration profiles",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # 'list' command
    list_parser = subparsers.add_parser(
        "list",
        help="List the profiles available on the appliance",
    )
    _add_connection_arguments(list_parser)
    list_parser.set_defaults(func=cmd_list)

    # 'load' command
    load_parser = subparsers.add_parser(
        "load",
        help="Load a profile (defaults to the stored or 'sda' profile)",
    )
    load_parser.add_argument(
        "profile",
        nargs="?",
        help="Profile identifier or title",
    )
    _add_connection_arguments(load_parser)
    load_parser.set_defaults(func=cmd_load)

    # 'status' command
    status_parser = subparsers.add_parser(
        "status",
        help="Show status, profiles and control endpoints",
    )
    _add_connection_arguments(status_parser)
    status_parser.set_defaults(func=cmd_status)

    # 'watch' command
    watch_parser = subparsers.add_parser(
        "watch",
        help="Poll the appliance and print status changes",
    )
    watch_parser.add_argument(
        "--interval", "-i",
        type=float,
        help="Poll interval in seconds (default: from configuration)",
    )
    _add_connection_arguments(watch_parser)
    watch_parser.set_defaults(func=cmd_watch)

    # 'config' command
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
    )
    config_parser.add_argument(
        "action",
        choices=["show", "init"],
        help="Configuration action",
    )
    config_parser.add_argument(
        "--path", "-p",
        help="Path to configuration file",
    )
    config_parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Force overwrite existing configuration",
    )
    config_parser.add_argument(
        "--language", "-l",
        choices=["de", "en"],
        help="Default language for new configuration",
    )
    config_parser.set_defaults(func=cmd_config)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
