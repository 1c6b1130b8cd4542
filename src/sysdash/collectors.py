"""
Per-metric collectors.

Each collector shells out through a CommandRunner, extracts fields from the
text it gets back and always returns a complete record. Fields that cannot
be determined fall back to their own defaults; any unexpected error turns
the whole record into its unavailable() form.
"""

import asyncio
import functools
import logging
import re
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

from sysdash.extract import Field, clamp_percent, extract_fields, search, search_int
from sysdash.models import (
    NOT_AVAILABLE,
    BatteryReading,
    BluetoothReading,
    CpuReading,
    DiskReading,
    HostInfo,
    MemoryReading,
    PortEntry,
    ProcessEntry,
    WifiReading,
)
from sysdash.runner import CommandRunner, is_unavailable

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

DEFAULT_WIFI_INTERFACE = "en0"
DEFAULT_PAGE_SIZE = 16384
GIGABYTE = 1024**3

MAX_PORT_LINES = 15
MAX_PORTS = 10
MAX_PROCESSES = 6
MAX_NAME_LENGTH = 30

# Rows naming the listing command itself are measurement artifacts.
SELF_MARKERS = ("ps aux", "sort ")

VM_STAT_FIELDS = (
    Field("page_size", r"page size of (\d+) bytes", DEFAULT_PAGE_SIZE, int),
    Field("free", r"Pages free:\s+(\d+)", 0, int),
    Field("inactive", r"Pages inactive:\s+(\d+)", 0, int),
    Field("speculative", r"Pages speculative:\s+(\d+)", 0, int),
)

CPU_FIELDS = (
    Field("user", r"([\d.]+)% user", 0.0, float),
    Field("system", r"([\d.]+)% sys", 0.0, float),
    Field("idle", r"([\d.]+)% idle", 100.0, float),
)

BATTERY_FIELDS = (
    Field("percent", r"(\d+)%", -1, int),
    Field("source", r"Now drawing from '([^']+)'", "Unknown"),
)

UPTIME_PATTERN = r"up\s+(.+?),\s+\d+ users?"
CHARGING_PATTERN = r"AC Power|\bcharging\b|\bcharged\b"
REDACTED_PATTERN = r"redacted|unknown"


def with_fallback(
    default: Callable[[], T],
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """
    Wrap a collector so that any exception yields default() instead.

    Cancellation is not an error and still propagates.
    """

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            try:
                return await func(*args, **kwargs)
            except Exception:
                logger.debug("Collector %s failed; using defaults", func.__name__, exc_info=True)
                return default()

        return wrapper

    return decorator


def format_gigabytes(size: float) -> str:
    """Format bytes as binary gigabytes with one decimal."""
    return f"{size / GIGABYTE:.1f} GB"


def memory_from_output(memsize: str, vm_stat: str) -> MemoryReading:
    """Build a MemoryReading from sysctl hw.memsize and vm_stat output."""
    try:
        total = int(memsize)
    except ValueError:
        return MemoryReading.unavailable()
    if total <= 0:
        return MemoryReading.unavailable()

    pages = extract_fields(vm_stat, VM_STAT_FIELDS)
    free = (pages["free"] + pages["inactive"] + pages["speculative"]) * pages["page_size"]
    used = max(0, total - free)

    return MemoryReading(
        total=format_gigabytes(total),
        used=format_gigabytes(used),
        free=format_gigabytes(free),
        percent=clamp_percent(used / total * 100),
    )


@with_fallback(MemoryReading.unavailable)
async def collect_memory(run: CommandRunner) -> MemoryReading:
    memsize = await run("sysctl -n hw.memsize")
    if is_unavailable(memsize):
        return MemoryReading.unavailable()
    vm_stat = await run("vm_stat")
    if is_unavailable(vm_stat):
        return MemoryReading.unavailable()
    return memory_from_output(memsize, vm_stat)


def cpu_from_output(output: str) -> CpuReading:
    fields = extract_fields(output, CPU_FIELDS)
    return CpuReading(
        user=fields["user"],
        system=fields["system"],
        idle=fields["idle"],
        usage=clamp_percent(fields["user"] + fields["system"]),
    )


@with_fallback(CpuReading.unavailable)
async def collect_cpu(run: CommandRunner) -> CpuReading:
    return cpu_from_output(await run("top -l 1 -n 0 | grep 'CPU usage'"))


def wifi_interface_from_output(output: str, default: str = DEFAULT_WIFI_INTERFACE) -> str:
    """Find the Wi-Fi device name in networksetup -listallhardwareports output."""
    device = search(r"Hardware Port: (?:Wi-Fi|AirPort).*?Device: (\w+)", output, re.I | re.S)
    return device or default


def wifi_from_output(network: str, profiler: str) -> WifiReading:
    """
    Decide the WiFi state from both sources.

    networksetup names the network precisely but is sometimes empty;
    system_profiler knows the connection state but may redact the name.
    """
    if "You are not associated" not in network:
        name = search(r"Current Wi-Fi Network:\s*(.+)", network)
        if name:
            return WifiReading(connected=True, network=name)

    if "Status: Connected" in profiler:
        name = search(r"Current Network Information:\s*\n\s*([^:]+):", profiler)
        if not name or re.search(REDACTED_PATTERN, name, re.I):
            name = "Connected"
        return WifiReading(connected=True, network=name)

    return WifiReading(connected=False, network="Not connected")


@with_fallback(WifiReading.unavailable)
async def collect_wifi(
    run: CommandRunner, default_interface: str = DEFAULT_WIFI_INTERFACE
) -> WifiReading:
    ports = await run("networksetup -listallhardwareports 2>/dev/null")
    device = wifi_interface_from_output(ports, default_interface)
    network, profiler = await asyncio.gather(
        run(f"networksetup -getairportnetwork {device} 2>/dev/null"),
        run("system_profiler SPAirPortDataType 2>/dev/null"),
    )
    return wifi_from_output(network, profiler)


def connected_devices(output: str) -> tuple[str, ...]:
    """
    Return device names listed under the "Connected:" label.

    The block ends at the first blank line or at a line indented no deeper
    than the label. Device names are the block's shallowest "Name:" lines;
    deeper lines are device properties.
    """
    header = re.search(r"^([ \t]*)Connected:[ \t]*$", output, re.M)
    if header is None:
        return ()
    label_indent = len(header.group(1))

    block: list[tuple[int, str]] = []
    for line in output[header.end() :].splitlines()[1:]:
        if not line.strip():
            break
        indent = len(line) - len(line.lstrip())
        if indent <= label_indent:
            break
        block.append((indent, line.strip()))

    if not block:
        return ()
    device_indent = min(indent for indent, _ in block)
    return tuple(
        text[:-1].strip()
        for indent, text in block
        if indent == device_indent and text.endswith(":") and text[:-1].strip()
    )


def bluetooth_from_output(output: str) -> BluetoothReading:
    state = search(r"State:\s*(On|Off)", output, re.I)
    return BluetoothReading(
        enabled=state is not None and state.lower() == "on",
        devices=connected_devices(output),
    )


@with_fallback(BluetoothReading.unavailable)
async def collect_bluetooth(run: CommandRunner) -> BluetoothReading:
    return bluetooth_from_output(await run("system_profiler SPBluetoothDataType 2>/dev/null"))


def battery_from_output(output: str) -> BatteryReading:
    fields = extract_fields(output, BATTERY_FIELDS)
    percent = fields["percent"]
    return BatteryReading(
        percent=-1 if percent < 0 else clamp_percent(percent),
        charging=re.search(CHARGING_PATTERN, output) is not None,
        source=fields["source"],
    )


@with_fallback(BatteryReading.unavailable)
async def collect_battery(run: CommandRunner) -> BatteryReading:
    return battery_from_output(await run("pmset -g batt"))


def ports_from_output(output: str) -> tuple[PortEntry, ...]:
    """Parse lsof LISTEN lines, deduplicated by (port, process)."""
    if is_unavailable(output):
        return ()

    entries: list[PortEntry] = []
    seen: set[tuple[str, str]] = set()
    for line in output.splitlines()[:MAX_PORT_LINES]:
        parts = line.split()
        if len(parts) < 2:
            continue
        process, pid = parts[0], parts[1]
        address = parts[8] if len(parts) > 8 else ""
        port = search(r":(\d+)$", address)
        if port is None or (port, process) in seen:
            continue
        seen.add((port, process))
        entries.append(PortEntry(port=port, process=process, pid=pid))

    return tuple(entries[:MAX_PORTS])


@with_fallback(tuple)
async def collect_ports(run: CommandRunner) -> tuple[PortEntry, ...]:
    return ports_from_output(
        await run(f"lsof -i -P -n 2>/dev/null | grep LISTEN | head -{MAX_PORT_LINES}")
    )


def truncate_name(name: str, limit: int = MAX_NAME_LENGTH) -> str:
    if len(name) <= limit:
        return name
    return name[: limit - 3] + "..."


def processes_from_output(output: str) -> tuple[ProcessEntry, ...]:
    """Parse ps aux rows, skipping the header and the listing command itself."""
    if is_unavailable(output):
        return ()

    entries: list[ProcessEntry] = []
    for line in output.splitlines():
        parts = line.split()
        if len(parts) < 2 or not parts[1].isdigit():
            continue  # header
        name = " ".join(parts[10:]) or "unknown"
        if any(marker in name for marker in SELF_MARKERS):
            continue
        entries.append(
            ProcessEntry(
                pid=parts[1],
                name=truncate_name(name),
                cpu=parts[2] if len(parts) > 2 else "0",
                mem=parts[3] if len(parts) > 3 else "0",
            )
        )

    return tuple(entries[:MAX_PROCESSES])


@with_fallback(tuple)
async def collect_processes(run: CommandRunner) -> tuple[ProcessEntry, ...]:
    return processes_from_output(await run(f"ps aux -r 2>/dev/null | head -{MAX_PROCESSES + 3}"))


def os_version_from_output(output: str) -> str:
    if is_unavailable(output):
        return NOT_AVAILABLE
    lines = output.splitlines()
    name = lines[0].strip() or "macOS"
    version = lines[1].strip() if len(lines) > 1 else ""
    return f"{name} {version}".strip()


def uptime_from_output(output: str) -> str:
    if is_unavailable(output):
        return NOT_AVAILABLE
    return search(UPTIME_PATTERN, output) or output[:40]


def disk_from_output(output: str) -> DiskReading:
    """Parse the root filesystem row of df -h output."""
    lines = output.splitlines()
    if is_unavailable(output) or len(lines) < 2:
        return DiskReading.unavailable()

    # Filesystem Size Used Avail Capacity ...
    parts = lines[1].split() + [NOT_AVAILABLE] * 5
    percent = search_int(r"^(\d+)%$", parts[4])
    return DiskReading(
        total=parts[1],
        used=parts[2],
        available=parts[3],
        percent=clamp_percent(percent) if percent is not None else 0,
    )


@with_fallback(HostInfo.unavailable)
async def collect_host(run: CommandRunner) -> HostInfo:
    hostname, os_version, uptime, df = await asyncio.gather(
        run("hostname -s"),
        run("sw_vers -productName && sw_vers -productVersion"),
        run("uptime"),
        run("df -h /"),
    )
    return HostInfo(
        hostname=NOT_AVAILABLE if is_unavailable(hostname) else hostname,
        os_version=os_version_from_output(os_version),
        uptime=uptime_from_output(uptime),
        disk=disk_from_output(df),
    )
