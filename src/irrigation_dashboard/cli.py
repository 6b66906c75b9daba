"""Command-line interface for watching and controlling an irrigation controller."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import traceback
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final, Literal, cast, get_args

from dotenv import find_dotenv, load_dotenv
from rich.console import Console

from .chart import ChartSurface
from .client import DashboardClient, DashboardClientDependencies
from .config import (
    DashboardConfig,
    HttpClientConfig,
    MetricName,
    PollingConfig,
    Settings,
)
from .errors import DashboardError, DeviceActionError
from .ui.renderer import render_chart_panel
from .ui.runtime import run_ui
from .ui.telemetry_sink import UiTelemetrySink
from .ui.view_model import build_ui_snapshot, config_rows, status_rows

LOG_LEVELS: Final[dict[str, int]] = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}

type Command = Literal["watch", "snapshot", "set-config", "restart", "update-webui"]

_SNAPSHOT_CHART_HEIGHT = 16


@dataclass(frozen=True, slots=True)
class CliOptions:
    """Parsed command-line options for the irrigation dashboard CLI."""

    command: Command
    base_url: str | None
    dotenv_path: Path | None
    log_level: int
    log_file: Path | None = field(default=None)
    metric: MetricName | None = field(default=None)
    window: int | None = field(default=None)
    timeout: float | None = field(default=None)
    config_updates: tuple[tuple[str, str], ...] = field(default_factory=tuple)


async def run_async(options: CliOptions) -> int:
    """Execute the CLI workflow and return the process exit code."""
    logger = _setup_logging(
        options.log_level, log_file=options.log_file, quiet=options.command == "watch"
    )

    dotenv_file = (
        str(options.dotenv_path) if options.dotenv_path is not None else find_dotenv(usecwd=True)
    )
    if dotenv_file:
        load_dotenv(dotenv_file, override=True)
        logger.info("Loaded environment from %s (override=True)", dotenv_file)
    else:
        logger.debug("No .env file found; relying on process environment only")

    try:
        settings = resolve_settings(options)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    telemetry = UiTelemetrySink()
    client = DashboardClient(
        dependencies=DashboardClientDependencies(settings=settings, telemetry=telemetry)
    )
    try:
        match options.command:
            case "watch":
                await client.start()
                await run_ui(client, telemetry=telemetry, header_text=_header_text(settings))
                logger.info("Dashboard closed; stopping pollers")
                return 0
            case "snapshot":
                return await _print_snapshot(client, telemetry)
            case "set-config":
                outcome = await client.set_config(dict(options.config_updates))
            case "restart":
                outcome = await client.restart()
            case "update-webui":
                outcome = await client.update_webui()
        print(outcome.message)
        if outcome.reload_after:
            print(f"Controller should be reachable again in {outcome.reload_after:.0f}s")
    except DeviceActionError as exc:
        logger.error("Device command failed: %s", exc)
        print(f"Device command failed: {exc}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    except DashboardError as exc:
        logger.error("Controller error: %s", exc)
        print(f"Controller error: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    finally:
        await client.shutdown()
    return 0


def _setup_logging(
    log_level: int, *, log_file: Path | None = None, quiet: bool = False
) -> logging.Logger:
    """Configure logging and return the CLI logger.

    Reduces noise from network libraries at non-DEBUG levels. With ``quiet`` and
    no log file only critical records reach stderr so the full-screen dashboard
    is not overwritten.
    """
    if log_file is not None:
        logging.basicConfig(
            level=log_level,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
            filename=str(log_file),
        )
    else:
        logging.basicConfig(
            level=logging.CRITICAL if quiet else log_level,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
    if log_level > logging.DEBUG:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)
    return logging.getLogger("irrigation_dashboard.cli")


def parse_cli_args(argv: Sequence[str] | None = None) -> CliOptions:
    """Parse command-line arguments into :class:`CliOptions`."""
    parser = argparse.ArgumentParser(
        prog="irrigation-dashboard",
        description="Watch soil, temperature, and CPU telemetry from an irrigation controller.",
    )
    parser.add_argument(
        "--base-url",
        type=str,
        default=None,
        help="Controller URL (default: IRRIGATION_BASE_URL or http://192.168.4.1)",
    )
    parser.add_argument(
        "--dotenv",
        type=Path,
        default=None,
        help="Optional path to a .env file with IRRIGATION_* settings",
    )
    parser.add_argument(
        "--log-level",
        choices=tuple(LOG_LEVELS.keys()),
        default="INFO",
        help="Log level for diagnostic output",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Write log records to this file (recommended with the live dashboard)",
    )
    parser.add_argument(
        "--metric",
        choices=get_args(MetricName),
        default=None,
        help="Metric charted at start-up",
    )
    parser.add_argument(
        "--window",
        type=int,
        default=None,
        help="Initial chart window in seconds (0 shows the whole history)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Per-request timeout in seconds for status and history requests",
    )
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.add_parser("watch", help="Live dashboard (default)")
    subparsers.add_parser("snapshot", help="Fetch status, config, and history once and print")
    set_config = subparsers.add_parser("set-config", help="Update controller settings")
    set_config.add_argument(
        "assignments",
        nargs="+",
        metavar="KEY=VALUE",
        help="Setting to change, e.g. dry_on=2600 or logPeriodMs=5000",
    )
    subparsers.add_parser("restart", help="Restart the controller")
    subparsers.add_parser("update-webui", help="Update the controller web UI and restart")

    namespace = parser.parse_args(argv)
    if namespace.window is not None and namespace.window < 0:
        parser.error("--window must be zero or positive")
    if namespace.timeout is not None and namespace.timeout <= 0:
        parser.error("--timeout must be greater than zero")

    command = cast(Command, namespace.command or "watch")
    updates: list[tuple[str, str]] = []
    for assignment in cast(list[str], getattr(namespace, "assignments", None) or []):
        key, sep, value = assignment.partition("=")
        if not sep or not key.strip():
            parser.error(f"invalid assignment '{assignment}' (expected KEY=VALUE)")
        updates.append((key.strip(), value.strip()))

    return CliOptions(
        command=command,
        base_url=namespace.base_url,
        dotenv_path=namespace.dotenv,
        log_level=LOG_LEVELS[namespace.log_level],
        log_file=namespace.log_file,
        metric=namespace.metric,
        window=namespace.window,
        timeout=namespace.timeout,
        config_updates=tuple(updates),
    )


def resolve_settings(options: CliOptions) -> Settings:
    """Resolve settings from the environment and apply command-line overrides."""
    settings = Settings.from_environment()
    http = settings.http
    if options.base_url is not None:
        http = HttpClientConfig.model_validate(
            http.model_dump() | {"base_url": options.base_url}
        )
    polling = settings.polling
    if options.timeout is not None:
        polling = PollingConfig.model_validate(
            polling.model_dump()
            | {"status_timeout": options.timeout, "history_timeout": options.timeout}
        )
    dashboard_updates: dict[str, object] = {}
    if options.metric is not None:
        dashboard_updates["default_metric"] = options.metric
    if options.window is not None:
        dashboard_updates["default_window_seconds"] = options.window
    dashboard = settings.dashboard
    if dashboard_updates:
        dashboard = DashboardConfig.model_validate(dashboard.model_dump() | dashboard_updates)
    return Settings(http=http, polling=polling, history=settings.history, dashboard=dashboard)


async def _print_snapshot(client: DashboardClient, telemetry: UiTelemetrySink) -> int:
    outcomes = await client.refresh()
    console = Console()
    snapshot = build_ui_snapshot(
        client.session.snapshot(),
        header_text=_header_text(client.settings),
        telemetry=telemetry.snapshot(),
    )
    surface = ChartSurface(console.size.width - 4, _SNAPSHOT_CHART_HEIGHT)
    console.print(snapshot.header_text, style="bold")
    for label, value in (
        *status_rows(snapshot.session.status),
        *config_rows(snapshot.session.config),
    ):
        console.print(f"{label}: {value}", markup=False, highlight=False)
    console.print(render_chart_panel(snapshot, surface=surface))
    for row in snapshot.errors:
        console.print(f"[{row.task}] {row.text}", style="red", markup=False)
    return 0 if all(outcome is not None for outcome in outcomes.values()) else 1


def _header_text(settings: Settings) -> str:
    return f"Controller {settings.http.base_url}"


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for the ``irrigation-dashboard`` console script."""
    options = parse_cli_args(argv)
    try:
        exit_code = asyncio.run(run_async(options))
    except KeyboardInterrupt:
        exit_code = 130
    except Exception:  # noqa: BLE001
        traceback.print_exc(limit=1)
        exit_code = 1
    raise SystemExit(exit_code)
