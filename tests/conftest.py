"""Shared fixtures: canned command output from a macOS host."""

import pytest

from sysdash.runner import UNAVAILABLE

MEMSIZE = "17179869184"

VM_STAT = """\
Mach Virtual Memory Statistics: (page size of 16384 bytes)
Pages free:                               20000.
Pages active:                            300000.
Pages inactive:                          250000.
Pages speculative:                        10000.
Pages throttled:                              0.
Pages wired down:                        150000.
"""

TOP_CPU = "CPU usage: 12.34% user, 5.66% sys, 82.0% idle"

HARDWARE_PORTS = """\
Hardware Port: Ethernet
Device: en1
Ethernet Address: aa:bb:cc:dd:ee:01

Hardware Port: Wi-Fi
Device: en0
Ethernet Address: aa:bb:cc:dd:ee:00
"""

AIRPORT_NETWORK = "Current Wi-Fi Network: Home-5G"

AIRPORT_NOT_ASSOCIATED = "You are not associated with an AirPort network."

AIRPORT_PROFILER = """\
Wi-Fi:

      Software Versions:
          CoreWLAN: 16.0 (1657)
      Interfaces:
        en0:
          Card Type: Wi-Fi  (0x14E4, 0x4387)
          Status: Connected
          Current Network Information:
            Home-5G:
              PHY Mode: 802.11ax
              Channel: 149 (5GHz, 80MHz)
"""

AIRPORT_PROFILER_REDACTED = AIRPORT_PROFILER.replace("Home-5G:", "<redacted>:")

BLUETOOTH = """\
Bluetooth:

      Bluetooth Controller:
          Address: AA:BB:CC:DD:EE:FF
          State: On
          Chipset: BCM_4387
      Connected:
          AirPods Pro:
              Address: 11:22:33:44:55:66
              Vendor ID: 0x004C
          MX Master 3:
              Address: 22:33:44:55:66:77
      Not Connected:
          Magic Keyboard:
              Address: 33:44:55:66:77:88
"""

PMSET_BATTERY = """\
Now drawing from 'Battery Power'
 -InternalBattery-0 (id=4653155)\t76%; discharging; 4:12 remaining present: true
"""

PMSET_AC = """\
Now drawing from 'AC Power'
 -InternalBattery-0 (id=4653155)\t100%; charged; 0:00 remaining present: true
"""

LSOF_LISTEN = """\
rapportd    612 alice    9u  IPv4 0x1234      0t0  TCP *:49152 (LISTEN)
rapportd    612 alice   10u  IPv6 0x1235      0t0  TCP *:49152 (LISTEN)
ControlCe   640 alice   11u  IPv4 0x1236      0t0  TCP *:7000 (LISTEN)
ControlCe   641 alice   12u  IPv6 0x1237      0t0  TCP *:7000 (LISTEN)
postgres    901 alice    7u  IPv6 0x1238      0t0  TCP [::1]:5432 (LISTEN)
node       1202 alice   23u  IPv4 0x1239      0t0  TCP 127.0.0.1:3000 (LISTEN)
"""

PS_AUX = """\
USER               PID  %CPU %MEM      VSZ    RSS   TT  STAT STARTED      TIME COMMAND
alice             1202  45.2  2.1 35123456 345678   ??  R    10:01AM   1:23.45 /usr/local/bin/node server.js
_windowserver      151  12.0  1.0 36000000 160000   ??  Ss   Mon09AM  80:01.00 /System/Library/PrivateFrameworks/SkyLight.framework/Resources/WindowServer -daemon
alice             4242   3.0  0.0 34000000   1200 s000  R+   10:05AM   0:00.01 ps aux -r
alice              777   1.5  0.5 34500000  80000   ??  S    09:00AM   0:10.00 /Applications/Safari.app/Contents/MacOS/Safari
root               321   0.9  0.1 34100000  12000   ??  Ss   09:00AM   0:05.00 /usr/libexec/logd
alice              888   0.5  0.3 34200000  50000   ??  S    09:00AM   0:02.00 /Applications/Slack.app/Contents/MacOS/Slack
alice              999   0.2  0.2 34300000  40000   ??  S    09:00AM   0:01.00 /usr/sbin/cfprefsd agent
alice             1000   0.1  0.1 34300000  30000   ??  S    09:00AM   0:00.50 /usr/bin/login
"""

SW_VERS = "macOS\n14.4.1"

UPTIME = "10:05  up 3 days,  4:12, 2 users, load averages: 1.52 1.61 1.70"

DF_ROOT = """\
Filesystem     Size   Used  Avail Capacity iused ifree %iused  Mounted on
/dev/disk3s1s1 460Gi   10Gi  200Gi     5%  404k  2.1G    0%   /
"""

MAC_OUTPUT = {
    "sysctl -n hw.memsize": MEMSIZE,
    "vm_stat": VM_STAT,
    "top -l 1 -n 0 | grep 'CPU usage'": TOP_CPU,
    "networksetup -listallhardwareports 2>/dev/null": HARDWARE_PORTS,
    "networksetup -getairportnetwork en0 2>/dev/null": AIRPORT_NETWORK,
    "system_profiler SPAirPortDataType 2>/dev/null": AIRPORT_PROFILER,
    "system_profiler SPBluetoothDataType 2>/dev/null": BLUETOOTH,
    "pmset -g batt": PMSET_BATTERY,
    "lsof -i -P -n 2>/dev/null | grep LISTEN | head -15": LSOF_LISTEN,
    "ps aux -r 2>/dev/null | head -9": PS_AUX,
    "hostname -s": "studio",
    "sw_vers -productName && sw_vers -productVersion": SW_VERS,
    "uptime": UPTIME,
    "df -h /": DF_ROOT,
}


class FakeRunner:
    """CommandRunner serving canned output; unknown commands are unavailable."""

    def __init__(self, outputs: dict[str, str] | None = None) -> None:
        self.outputs = dict(MAC_OUTPUT if outputs is None else outputs)
        self.calls: list[str] = []

    async def __call__(self, command: str) -> str:
        self.calls.append(command)
        return self.outputs.get(command, UNAVAILABLE).strip()


@pytest.fixture
def fake_runner() -> FakeRunner:
    """A runner replaying output captured on a macOS host."""
    return FakeRunner()


@pytest.fixture
def dead_runner() -> FakeRunner:
    """A runner for which every command is unavailable."""
    return FakeRunner({})
