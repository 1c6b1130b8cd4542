"""Data models for sysdash."""

from dataclasses import asdict, dataclass
from typing import Any

NOT_AVAILABLE = "N/A"


@dataclass(slots=True, frozen=True)
class MemoryReading:
    """Physical memory usage."""

    total: str  # e.g. "16.0 GB"
    used: str
    free: str
    percent: int  # 0 - 100

    @classmethod
    def unavailable(cls) -> "MemoryReading":
        return cls(total=NOT_AVAILABLE, used=NOT_AVAILABLE, free=NOT_AVAILABLE, percent=0)


@dataclass(slots=True, frozen=True)
class CpuReading:
    """Instantaneous CPU usage as reported by top."""

    user: float
    system: float
    idle: float
    usage: int  # round(user + system), 0 - 100

    @classmethod
    def unavailable(cls) -> "CpuReading":
        return cls(user=0.0, system=0.0, idle=100.0, usage=0)


@dataclass(slots=True, frozen=True)
class WifiReading:
    """Wireless connection state."""

    connected: bool
    network: str  # Never empty; a status label when not connected

    @classmethod
    def unavailable(cls) -> "WifiReading":
        return cls(connected=False, network=NOT_AVAILABLE)


@dataclass(slots=True, frozen=True)
class BluetoothReading:
    """Bluetooth controller state and connected devices."""

    enabled: bool
    devices: tuple[str, ...]

    @classmethod
    def unavailable(cls) -> "BluetoothReading":
        return cls(enabled=False, devices=())


@dataclass(slots=True, frozen=True)
class BatteryReading:
    """Battery charge and power source."""

    percent: int  # -1 when unknown
    charging: bool
    source: str

    @classmethod
    def unavailable(cls) -> "BatteryReading":
        return cls(percent=-1, charging=False, source=NOT_AVAILABLE)

    @property
    def known(self) -> bool:
        """Whether the charge level could be determined."""
        return self.percent >= 0


@dataclass(slots=True, frozen=True)
class PortEntry:
    """A listening socket and the process owning it."""

    port: str
    process: str
    pid: str


@dataclass(slots=True, frozen=True)
class ProcessEntry:
    """One row of the top-processes listing."""

    pid: str
    name: str  # At most 30 characters
    cpu: str
    mem: str


@dataclass(slots=True, frozen=True)
class DiskReading:
    """Root filesystem usage."""

    total: str
    used: str
    available: str
    percent: int

    @classmethod
    def unavailable(cls) -> "DiskReading":
        return cls(total=NOT_AVAILABLE, used=NOT_AVAILABLE, available=NOT_AVAILABLE, percent=0)


@dataclass(slots=True, frozen=True)
class HostInfo:
    """Host identity, uptime and disk usage."""

    hostname: str
    os_version: str
    uptime: str
    disk: DiskReading

    @classmethod
    def unavailable(cls) -> "HostInfo":
        return cls(
            hostname=NOT_AVAILABLE,
            os_version=NOT_AVAILABLE,
            uptime=NOT_AVAILABLE,
            disk=DiskReading.unavailable(),
        )


@dataclass(slots=True, frozen=True)
class Snapshot:
    """Immutable result of one collection cycle."""

    memory: MemoryReading
    cpu: CpuReading
    wifi: WifiReading
    bluetooth: BluetoothReading
    battery: BatteryReading
    ports: tuple[PortEntry, ...]
    processes: tuple[ProcessEntry, ...]
    host: HostInfo
    timestamp: str

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready representation of the snapshot."""
        data = asdict(self)
        data["bluetooth"]["devices"] = list(self.bluetooth.devices)
        data["ports"] = [asdict(entry) for entry in self.ports]
        data["processes"] = [asdict(entry) for entry in self.processes]
        return data
