"""
IPv6 Reachability Check — Platform Detection and Command Sets

Platform: decided once from sys.platform (or --platform).
Commands: per-platform argv templates mapped to the capabilities a run needs.
  1. Enumerate?   → addresses configured on the interface
  2. Query?       → current metadata for a single address
  3. Probe?       → ICMPv6 echo from a given source address
  4. Remove?      → native removal, legacy fallback, privacy-extension cycle
  5. Routes?      → the IPv6 route table, for reporting only

Templates are argv tuples, never shell strings. Placeholders:
{interface} {address} {prefix_length} {source} {target} {count} {tempaddr}
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional
import sys


class Platform(Enum):
    WINDOWS = "windows"                 # netsh + NetTCPIP cmdlets
    LINUX = "linux"                     # iproute2 + net-tools + sysctl
    UNKNOWN = "unknown"


def detect_platform(name: Optional[str] = None) -> Platform:
    """Map sys.platform (or an explicit override) onto a Platform."""
    text = (name or sys.platform).lower()
    if text.startswith("win"):
        return Platform.WINDOWS
    if text.startswith("linux"):
        return Platform.LINUX
    return Platform.UNKNOWN


# ============================================================
# Quoting
# ============================================================

def ps_quote(value: str) -> str:
    """Escape for use inside a single-quoted PowerShell string literal."""
    return str(value).replace("'", "''")


_POWERSHELL = ("powershell", "-NoProfile", "-NonInteractive", "-Command")


# ============================================================
# Command Sets — per platform, per capability
# ============================================================

ECHO_COUNT = 3


@dataclass(frozen=True)
class CommandSet:
    """All commands needed for one discover → probe → remediate run."""

    # 1. Enumerate
    list_addresses: tuple[str, ...]

    # 2. Query one address (empty output = absent)
    query_address: tuple[str, ...]

    # 3. Probe
    ping: tuple[str, ...]

    # 4. Removal strategies, in fallback order
    remove_native: tuple[str, ...]
    remove_legacy: tuple[str, ...]
    privacy_disable: tuple[str, ...]
    privacy_enable: tuple[str, ...]

    # 5. Route table
    show_routes: tuple[str, ...]

    # Current privacy setting, restored by privacy_enable; empty = fixed re-enable
    privacy_query: tuple[str, ...] = ()

    # Parser hint: does list_addresses return JSON?
    list_is_json: bool = False

    def render(self, name: str, **values) -> list[str]:
        """Substitute placeholders into the named template."""
        template: tuple[str, ...] = getattr(self, name)
        if template[:len(_POWERSHELL)] == _POWERSHELL:
            values = {k: ps_quote(v) for k, v in values.items()}
        return [token.format(**values) for token in template]


COMMAND_SETS: dict[Platform, CommandSet] = {

    Platform.WINDOWS: CommandSet(
        list_addresses=(
            "netsh", "interface", "ipv6", "show", "addresses",
            "interface={interface}",
        ),
        query_address=_POWERSHELL + (
            "Get-NetIPAddress -AddressFamily IPv6 -IPAddress '{address}' "
            "-InterfaceAlias '{interface}' "
            "-ErrorAction SilentlyContinue | "
            "Select-Object IPAddress,InterfaceAlias,PrefixLength,"
            "PrefixOrigin,SuffixOrigin,AddressState,Type | "
            "ConvertTo-Json -Compress",
        ),
        ping=("ping", "-6", "-n", "{count}", "-S", "{source}", "{target}"),
        remove_native=_POWERSHELL + (
            "Remove-NetIPAddress -IPAddress '{address}' "
            "-InterfaceAlias '{interface}' -Confirm:$false -ErrorAction Stop",
        ),
        remove_legacy=(
            "netsh", "interface", "ipv6", "delete", "address",
            "interface={interface}", "address={address}",
        ),
        privacy_disable=("netsh", "interface", "ipv6", "set", "privacy", "state=disabled"),
        privacy_enable=("netsh", "interface", "ipv6", "set", "privacy", "state=enabled"),
        show_routes=("netsh", "interface", "ipv6", "show", "route"),
        list_is_json=False,
    ),

    Platform.LINUX: CommandSet(
        list_addresses=("ip", "-6", "-j", "addr", "show", "dev", "{interface}"),
        query_address=(
            "ip", "-6", "-j", "addr", "show", "to", "{address}", "dev", "{interface}",
        ),
        ping=("ping", "-6", "-c", "{count}", "-I", "{source}", "{target}"),
        remove_native=(
            "ip", "-6", "addr", "del", "{address}/{prefix_length}",
            "dev", "{interface}",
        ),
        remove_legacy=(
            "ifconfig", "{interface}", "inet6", "del", "{address}/{prefix_length}",
        ),
        # use_tempaddr: 0 = off, 1 = generate, 2 = generate and prefer.
        # Re-enable restores whatever privacy_query read before the cycle.
        privacy_disable=("sysctl", "-w", "net.ipv6.conf.{interface}.use_tempaddr=0"),
        privacy_enable=(
            "sysctl", "-w", "net.ipv6.conf.{interface}.use_tempaddr={tempaddr}",
        ),
        privacy_query=("sysctl", "-n", "net.ipv6.conf.{interface}.use_tempaddr"),
        show_routes=("ip", "-6", "route", "show"),
        list_is_json=True,
    ),
}


def get_command_set(platform: Platform) -> CommandSet:
    try:
        return COMMAND_SETS[platform]
    except KeyError:
        raise ValueError(f"No command set for platform {platform.value}") from None
