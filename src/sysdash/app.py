"""sysdash - Main Textual application."""

import argparse
import asyncio
import functools
import json
import logging
from dataclasses import replace

from rich.markup import escape
from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal, VerticalScroll
from textual.widgets import DataTable, Footer, Static

from sysdash.config import AppConfig, load_config
from sysdash.logging_utils import configure_logging, resolve_log_level
from sysdash.models import (
    BatteryReading,
    BluetoothReading,
    CpuReading,
    HostInfo,
    MemoryReading,
    NOT_AVAILABLE,
    PortEntry,
    ProcessEntry,
    Snapshot,
    WifiReading,
)
from sysdash.monitor import RefreshScheduler, collect_snapshot
from sysdash.runner import CommandRunner, make_runner

logger = logging.getLogger(__name__)

BAR_WIDTH = 38
POLL_INTERVAL = 0.25


def percent_color(percent: int) -> str:
    """Pick a color for a usage percentage."""
    if percent < 50:
        return "green"
    if percent < 80:
        return "yellow"
    return "red"


def render_bar(percent: int, color: str = "green", width: int = BAR_WIDTH) -> str:
    """Render a percentage as a markup progress bar."""
    filled = max(0, min(width, round(percent / 100 * width)))
    bar = f"[{color}]" + "█" * filled + f"[/{color}]" + "[dim]░[/dim]" * (width - filled)
    # Use escaped brackets for the bar container
    return f"\\[{bar}]"


def battery_label(battery: BatteryReading) -> str:
    """Charge label; unknown charge shows a placeholder, never a negative number."""
    return f"{battery.percent}%" if battery.known else NOT_AVAILABLE


def memory_markup(memory: MemoryReading) -> str:
    color = percent_color(memory.percent)
    return (
        f"Used: [{color}]{memory.used}[/{color}] / {memory.total}    "
        f"[green]Free: {memory.free}[/green]\n"
        f"{render_bar(memory.percent)} {memory.percent}%"
    )


def cpu_markup(cpu: CpuReading) -> str:
    color = percent_color(cpu.usage)
    return (
        f"Usage: [{color}]{cpu.usage}%[/{color}]    "
        f"User: {cpu.user:.1f}%  Sys: {cpu.system:.1f}%\n"
        f"{render_bar(cpu.usage, color)} {cpu.usage}%"
    )


def wifi_markup(wifi: WifiReading) -> str:
    if wifi.connected:
        return f"[green]●[/green] [green]{escape(wifi.network)}[/green]"
    return "[red]●[/red] [red]Disconnected[/red]"


def bluetooth_markup(bluetooth: BluetoothReading) -> str:
    if bluetooth.enabled:
        lines = ["[green]●[/green] [green]On[/green]"]
    else:
        lines = ["[red]●[/red] [red]Off[/red]"]
    if bluetooth.devices:
        lines.extend(f"  [blue]↳ {escape(device)}[/blue]" for device in bluetooth.devices)
    else:
        lines.append("  [dim]No connected devices[/dim]")
    return "\n".join(lines)


def battery_markup(battery: BatteryReading) -> str:
    color = "green"
    if battery.charging:
        color = "yellow"
    elif battery.known and battery.percent <= 10:
        color = "red"
    elif battery.known and battery.percent <= 30:
        color = "yellow"

    label = battery_label(battery)
    status = "⚡ Charging" if battery.charging else escape(battery.source)
    return (
        f"Charge: [{color}]{label}[/{color}]    {status}\n"
        f"{render_bar(max(0, battery.percent))} {label}"
    )


def host_markup(host: HostInfo) -> str:
    disk = host.disk
    color = percent_color(disk.percent)
    return (
        f"Hostname:   [cyan]{escape(host.hostname)}[/cyan]\n"
        f"OS:         [cyan]{escape(host.os_version)}[/cyan]\n"
        f"Uptime:     [cyan]{escape(host.uptime)}[/cyan]\n"
        f"Disk:       [{color}]{disk.used}[/{color}] / {disk.total} ({disk.available} free)\n"
        f"{render_bar(disk.percent, color)} {disk.percent}% used"
    )


class StatusHeader(Static):
    """Header line showing the last update time and loading state."""

    DEFAULT_CSS = """
    StatusHeader {
        height: auto;
        padding: 0 1;
        border: solid $accent;
    }
    """

    def show_status(self, timestamp: str, loading: bool) -> None:
        """Update the header text."""
        marker = " ⏳" if loading else ""
        self.update(
            f"[b]System Monitor[/b]    Last updated: {timestamp}{marker}\n"
            "[dim]q:quit  r:refresh[/dim]"
        )


class MetricPanel(Static):
    """Bordered panel holding one metric section."""

    DEFAULT_CSS = """
    MetricPanel {
        width: 1fr;
        height: auto;
        padding: 0 1;
        border: solid $primary-background;
    }
    """

    def __init__(self, title: str, *args, **kwargs) -> None:
        """Initialize MetricPanel."""
        super().__init__("Loading...", *args, **kwargs)
        self.border_title = title


class ListingTable(Container):
    """Bordered container for a small data table."""

    DEFAULT_CSS = """
    ListingTable {
        width: 1fr;
        height: auto;
        border: solid $primary-background;
    }

    ListingTable DataTable {
        height: auto;
    }
    """

    def __init__(self, title: str, columns: tuple[str, ...], *args, **kwargs) -> None:
        """Initialize ListingTable."""
        super().__init__(*args, **kwargs)
        self.border_title = title
        self._columns = columns

    def compose(self) -> ComposeResult:
        """Compose the table."""
        yield DataTable(show_cursor=False)

    def on_mount(self) -> None:
        """Add columns when mounted."""
        table = self.query_one(DataTable)
        table.add_columns(*self._columns)

    @property
    def row_count(self) -> int:
        """Number of rows currently shown."""
        return self.query_one(DataTable).row_count

    def set_rows(self, rows: list[tuple[str, ...]]) -> None:
        """Replace all rows, keeping the columns."""
        table = self.query_one(DataTable)
        table.clear()
        for row in rows:
            table.add_row(*row)


def port_rows(ports: tuple[PortEntry, ...]) -> list[tuple[str, ...]]:
    return [(f":{entry.port}", entry.process, entry.pid) for entry in ports]


def process_rows(processes: tuple[ProcessEntry, ...]) -> list[tuple[str, ...]]:
    return [(entry.pid, entry.cpu, entry.mem, entry.name) for entry in processes]


class DashboardApp(App):
    """Main sysdash application."""

    TITLE = "sysdash"
    SUB_TITLE = "Local System Monitor"

    CSS = """
    Screen {
        layout: vertical;
    }

    Horizontal {
        height: auto;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("r", "refresh", "Refresh"),
    ]

    def __init__(self, config: AppConfig | None = None, runner: CommandRunner | None = None) -> None:
        """
        Initialize the DashboardApp.

        Args:
            config: Application settings. Defaults are used when omitted.
            runner: Command runner for the collectors (replaced in tests).
        """
        super().__init__()
        self._config = config or AppConfig()
        settings = self._config.dashboard
        run = runner or make_runner(settings.command_timeout_s)
        self._scheduler = RefreshScheduler(
            functools.partial(collect_snapshot, run, settings.wifi_interface),
            interval=settings.refresh_interval_s,
        )
        self._rendered: Snapshot | None = None
        self._rendered_loading: bool | None = None

    @property
    def scheduler(self) -> RefreshScheduler:
        return self._scheduler

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield StatusHeader(id="status")
        with VerticalScroll():
            with Horizontal():
                yield MetricPanel(" Memory ", id="memory")
                yield MetricPanel(" CPU ", id="cpu")
            with Horizontal():
                yield MetricPanel(" WiFi ", id="wifi")
                yield MetricPanel(" Bluetooth ", id="bluetooth")
                yield MetricPanel(" Battery ", id="battery")
            yield MetricPanel(" System Info ", id="host")
            with Horizontal():
                yield ListingTable(" Listening Ports ", ("PORT", "PROCESS", "PID"), id="ports")
                yield ListingTable(
                    " Top Processes ", ("PID", "CPU%", "MEM%", "COMMAND"), id="processes"
                )
        yield Footer()

    def on_mount(self) -> None:
        """Start refreshing when the app is mounted."""
        self.query_one(StatusHeader).show_status("Loading...", True)
        self._rendered_loading = True
        self._scheduler.start()
        # Poll the scheduler for newly published snapshots
        self.set_interval(POLL_INTERVAL, self._check_for_updates)

    def _check_for_updates(self) -> None:
        """Re-render when the scheduler has published something new."""
        snapshot = self._scheduler.snapshot
        loading = self._scheduler.loading
        if snapshot is not None and snapshot is not self._rendered:
            self._update_ui(snapshot)
            self._rendered = snapshot
        if loading != self._rendered_loading:
            timestamp = snapshot.timestamp if snapshot is not None else "Loading..."
            self.query_one(StatusHeader).show_status(timestamp, loading)
            self._rendered_loading = loading

    def _update_ui(self, snapshot: Snapshot) -> None:
        """Update every section from a snapshot."""
        self.query_one("#memory", MetricPanel).update(memory_markup(snapshot.memory))
        self.query_one("#cpu", MetricPanel).update(cpu_markup(snapshot.cpu))
        self.query_one("#wifi", MetricPanel).update(wifi_markup(snapshot.wifi))
        self.query_one("#bluetooth", MetricPanel).update(bluetooth_markup(snapshot.bluetooth))
        self.query_one("#battery", MetricPanel).update(battery_markup(snapshot.battery))
        self.query_one("#host", MetricPanel).update(host_markup(snapshot.host))
        self.query_one("#ports", ListingTable).set_rows(port_rows(snapshot.ports))
        self.query_one("#processes", ListingTable).set_rows(process_rows(snapshot.processes))
        self.query_one(StatusHeader).show_status(snapshot.timestamp, self._scheduler.loading)
        self._rendered_loading = self._scheduler.loading

    def action_refresh(self) -> None:
        """Handle refresh action - collect a new snapshot now."""
        self._scheduler.refresh()
        timestamp = self._rendered.timestamp if self._rendered else "Loading..."
        self.query_one(StatusHeader).show_status(timestamp, True)
        self._rendered_loading = True

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._scheduler.stop()
        self.exit()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Live local system telemetry dashboard")
    parser.add_argument("--config", help="Path to CFG configuration file")
    parser.add_argument(
        "--interval",
        type=float,
        help="Refresh interval in seconds (overrides the config file)",
    )
    parser.add_argument(
        "--log-level",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Enable debug logging",
    )
    parser.add_argument("--log-file", help="Also write log records to this file")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Collect a single snapshot, print it as JSON and exit",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Entry point for sysdash application."""
    args = build_parser().parse_args(argv)
    config = load_config(args.config)
    if args.interval is not None:
        config = replace(config, dashboard=replace(config.dashboard, refresh_interval_s=args.interval))

    level = resolve_log_level(args.verbose, args.log_level or config.logging.level)
    configure_logging(level, args.log_file or config.logging.file, tui=not args.once)

    if args.once:
        settings = config.dashboard
        snapshot = asyncio.run(
            collect_snapshot(make_runner(settings.command_timeout_s), settings.wifi_interface)
        )
        print(json.dumps(snapshot.to_dict(), indent=2))
        return

    logger.info("Starting dashboard, refreshing every %ss", config.dashboard.refresh_interval_s)
    app = DashboardApp(config)
    app.run()


if __name__ == "__main__":
    main()
