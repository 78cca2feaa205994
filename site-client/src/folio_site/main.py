"""Entry point for the portfolio site operator CLI."""

import argparse
import logging
import sys
import time
from pathlib import Path

import firebase_admin  # type: ignore[import-untyped]
from firebase_admin import credentials  # type: ignore[import-untyped]

from .app import PortfolioApp
from .config import Config, load_config
from .dashboard import completed_count, format_relative_time, inbox, recent_visits, visitor_stats
from .database import RealtimeStore

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool, log_file: Path | None = None) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO
    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
    )


def init_firebase(config: Config) -> firebase_admin.App:
    """Initialize the Firebase Admin SDK against the site's database."""
    cred = credentials.Certificate(str(config.firebase_credentials_path))
    return firebase_admin.initialize_app(cred, {"databaseURL": config.database_url})


def _open_app(args: argparse.Namespace) -> PortfolioApp:
    setup_logging(args.verbose, args.log_file)

    config_path: Path = args.config
    if not config_path.exists():
        logger.error("Configuration file not found: %s", config_path)
        sys.exit(1)

    config = load_config(config_path)
    logger.info("Loaded configuration for %s", config.database_url)

    firebase_app = init_firebase(config)
    logger.info("Firebase initialized")

    return PortfolioApp(RealtimeStore(firebase_app), config)


def _load(app: PortfolioApp) -> None:
    app.start()
    if not app.wait_loaded():
        logger.warning("Timed out waiting for data, showing what has arrived")


def cmd_watch(args: argparse.Namespace) -> None:
    """Keep all paths synchronized and log every change."""
    app = _open_app(args)

    for channel in app.state.channels():
        channel.watch(
            lambda value, name=channel.name: logger.info(
                "%s: %s", name, len(value) if isinstance(value, tuple) else "updated"
            )
        )

    app.start()
    logger.info("Watching for changes, Ctrl-C to stop")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        app.stop()


def cmd_stats(args: argparse.Namespace) -> None:
    """Print visitor statistics and recent page views."""
    app = _open_app(args)
    try:
        _load(app)
        analytics = app.state.analytics.read()
        stats = visitor_stats(analytics)
        print(f"Active now:     {stats.active_now}")
        print(f"Last 24 hours:  {stats.last_24_hours}")
        print(f"Last 30 days:   {stats.last_30_days}")
        print(f"Total:          {stats.total}")
        print()
        for record in recent_visits(analytics, limit=args.limit):
            print(f"{record.ip:<18} {record.page:<30} {format_relative_time(record.timestamp)}")
    finally:
        app.stop()


def cmd_inbox(args: argparse.Namespace) -> None:
    """Print hire requests and contact messages, newest first."""
    app = _open_app(args)
    try:
        _load(app)
        items = inbox(app.state.hire_requests.read(), app.state.contacts.read())
        print(f"{len(items)} messages, {completed_count(items)} completed")
        for item in items:
            title = item.service_title if item.kind == "hire" else "General inquiry"
            status = "done" if item.is_completed else "open"
            print(f"[{status}] {item.date[:10]} {title}: {item.name} <{item.email}>")
    finally:
        app.stop()


def cmd_track(args: argparse.Namespace) -> None:
    """Record a single page view, as the public site does on navigation."""
    app = _open_app(args)
    try:
        key = app.tracker.track(args.path)
        if key is None:
            logger.warning("No visit recorded for %s", args.path)
        else:
            logger.info("Recorded visit %s", key)
    finally:
        app.stop()


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=Path("config.json"),
        help="Path to configuration file",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write logs to this file",
    )


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Portfolio site data tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  folio                      Watch all content paths for changes
  folio stats                Show visitor statistics
  folio inbox                List hire requests and contact messages
  folio track /services      Record a page view for /services
""",
    )

    subparsers = parser.add_subparsers(dest="command")

    watch_parser = subparsers.add_parser("watch", help="Watch content for changes")
    _add_common_args(watch_parser)
    watch_parser.set_defaults(func=cmd_watch)

    stats_parser = subparsers.add_parser("stats", help="Show visitor statistics")
    _add_common_args(stats_parser)
    stats_parser.add_argument(
        "--limit",
        type=int,
        default=50,
        help="Number of recent page views to list",
    )
    stats_parser.set_defaults(func=cmd_stats)

    inbox_parser = subparsers.add_parser("inbox", help="List incoming requests")
    _add_common_args(inbox_parser)
    inbox_parser.set_defaults(func=cmd_inbox)

    track_parser = subparsers.add_parser("track", help="Record a page view")
    _add_common_args(track_parser)
    track_parser.add_argument("path", help="Page path, e.g. /services")
    track_parser.set_defaults(func=cmd_track)

    # Add common args to main parser for default behavior
    _add_common_args(parser)

    args = parser.parse_args()

    # Default to watch if no subcommand
    if args.command is None:
        cmd_watch(args)
    else:
        args.func(args)


if __name__ == "__main__":
    main()
