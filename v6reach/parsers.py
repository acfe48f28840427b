"""
IPv6 Reachability Check — Platform Parsers

Raw OS command output → model dataclasses.

Two tiers:
  Tier 1: Native JSON   (iproute2 `ip -j`, PowerShell ConvertTo-Json)
  Tier 2: Regex/tokens  (netsh tables, ping statistics, route tables)

Every parser function:
  - Takes raw command output (str)
  - Returns a model dataclass, a list, or None
  - Never raises; format drift degrades to "nothing found"
  - Pattern-matches on known substrings, not on a strict schema

Parser dispatch:
  get_parser(platform, data_type) → callable
"""

from __future__ import annotations
import json
import re
import logging
from ipaddress import IPv6Address
from typing import Optional, Any

from .models import (
    Address, AddressState, PrefixOrigin, SuffixOrigin, strip_zone,
)
from .commands import Platform

logger = logging.getLogger("v6reach.parsers")


# ============================================================
# Utility — safe extraction helpers
# ============================================================

def _safe_json(raw: str) -> Optional[Any]:
    """Parse JSON from command output, stripping leading/trailing garbage."""
    if not raw or not raw.strip():
        return None

    text = raw.strip()

    # Find the first '{' or '['
    for i, ch in enumerate(text):
        if ch in ('{', '['):
            text = text[i:]
            break
    else:
        return None

    # Trim trailing garbage after the last '}' or ']'
    for i in range(len(text) - 1, -1, -1):
        if text[i] in ('}', ']'):
            text = text[:i + 1]
            break

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return None


def _safe_ipv6(token: str) -> Optional[str]:
    """Return the token (zone stripped) if it is an IPv6 literal, else None."""
    if not token or ":" not in token:
        return None
    text = strip_zone(token)
    try:
        IPv6Address(text)
    except ValueError:
        return None
    return text


def _enum_lookup(enum_cls, value, by_index: dict[int, str], default):
    """
    PowerShell serialises CIM enums as ints on some hosts and as names on
    others. Accept both.
    """
    if value is None:
        return default
    if isinstance(value, int):
        name = by_index.get(value)
    else:
        name = str(value)
    if not name:
        return default
    key = re.sub(r'[^a-z]', '', name.lower())
    for member in enum_cls:
        if re.sub(r'[^a-z]', '', member.value) == key:
            return member
    return default


# MSFT_NetIPAddress enum ordinals
_PREFIX_ORIGIN_INDEX = {
    0: "other", 1: "manual", 2: "well-known", 3: "dhcp", 4: "router-advertisement",
}
_SUFFIX_ORIGIN_INDEX = {
    0: "other", 1: "manual", 2: "well-known", 3: "dhcp", 4: "link", 5: "random",
}
_ADDRESS_STATE_INDEX = {
    0: "invalid", 1: "tentative", 2: "duplicate", 3: "deprecated", 4: "preferred",
}
_ADDRESS_TYPE_INDEX = {1: "unicast", 2: "anycast"}


# ============================================================
# Windows — netsh tables and NetTCPIP JSON
# ============================================================

# netsh "Addr Type" column → (prefix origin, suffix origin)
_NETSH_ADDR_TYPES: dict[str, tuple[PrefixOrigin, SuffixOrigin]] = {
    "public":    (PrefixOrigin.ROUTER_ADVERTISEMENT, SuffixOrigin.LINK),
    "temporary": (PrefixOrigin.ROUTER_ADVERTISEMENT, SuffixOrigin.RANDOM),
    "manual":    (PrefixOrigin.MANUAL, SuffixOrigin.MANUAL),
    "dhcp":      (PrefixOrigin.DHCP, SuffixOrigin.DHCP),
    "other":     (PrefixOrigin.OTHER, SuffixOrigin.OTHER),
    "anycast":   (PrefixOrigin.OTHER, SuffixOrigin.OTHER),
}


class WindowsParser:
    """Parse netsh / PowerShell output into model dataclasses."""

    @staticmethod
    def parse_address_list(raw: str) -> list[Address]:
        """
        Parse: netsh interface ipv6 show addresses interface="Ethernet 2"

        Sample output:
        Addr Type  DAD State   Valid Life Pref. Life Address
        ---------  ----------- ---------- ---------- ------------------------
        Public     Preferred     86400s     14400s 2001:db8:1::5
        Temporary  Preferred     86400s     14400s 2001:db8:1::9c4e:1f2a
        Other      Preferred   infinite   infinite fe80::1c2d:3e4f:5a6b:7c8d%12

        Only lines whose last token is an IPv6 literal count. Everything
        else (headers, rulers, localized banners) is skipped.
        """
        addresses: list[Address] = []
        if not raw:
            return addresses

        for line in raw.splitlines():
            tokens = line.split()
            if not tokens:
                continue
            value = _safe_ipv6(tokens[-1])
            if value is None:
                continue

            prefix_origin, suffix_origin = _NETSH_ADDR_TYPES.get(
                tokens[0].lower(), (PrefixOrigin.UNKNOWN, SuffixOrigin.UNKNOWN)
            )
            state = AddressState.UNKNOWN
            if len(tokens) >= 3:
                state = _enum_lookup(AddressState, tokens[1], {}, AddressState.UNKNOWN)
            address_type = "anycast" if tokens[0].lower() == "anycast" else None

            addresses.append(Address(
                value=value,
                prefix_origin=prefix_origin,
                suffix_origin=suffix_origin,
                state=state,
                address_type=address_type,
            ))

        return addresses

    @staticmethod
    def parse_address_query(raw: str) -> Optional[Address]:
        """
        Parse: Get-NetIPAddress -IPAddress ... | Select-Object ... | ConvertTo-Json

        Sample output (one object, or an array when the address is
        configured on several interfaces, first wins):
        {"IPAddress":"2001:db8:1::5","InterfaceAlias":"Ethernet 2",
         "PrefixLength":64,"PrefixOrigin":4,"SuffixOrigin":4,
         "AddressState":4,"Type":1}
        """
        data = _safe_json(raw)
        if isinstance(data, list):
            data = data[0] if data else None
        if not isinstance(data, dict):
            return None

        value = _safe_ipv6(str(data.get("IPAddress", "")))
        if value is None:
            return None

        prefix_length = data.get("PrefixLength")
        address_type = data.get("Type")
        if isinstance(address_type, int):
            address_type = _ADDRESS_TYPE_INDEX.get(address_type)

        return Address(
            value=value,
            interface=str(data.get("InterfaceAlias") or ""),
            prefix_origin=_enum_lookup(
                PrefixOrigin, data.get("PrefixOrigin"),
                _PREFIX_ORIGIN_INDEX, PrefixOrigin.UNKNOWN),
            suffix_origin=_enum_lookup(
                SuffixOrigin, data.get("SuffixOrigin"),
                _SUFFIX_ORIGIN_INDEX, SuffixOrigin.UNKNOWN),
            state=_enum_lookup(
                AddressState, data.get("AddressState"),
                _ADDRESS_STATE_INDEX, AddressState.UNKNOWN),
            prefix_length=prefix_length if isinstance(prefix_length, int) else None,
            address_type=str(address_type).lower() if address_type else None,
        )


# ============================================================
# Linux — iproute2 JSON
# ============================================================

class LinuxParser:
    """Parse `ip -6 -j addr` output into model dataclasses."""

    @staticmethod
    def _from_addr_info(ifname: str, info: dict) -> Optional[Address]:
        if info.get("family") not in (None, "inet6"):
            return None
        value = _safe_ipv6(str(info.get("local", "")))
        if value is None:
            return None

        if info.get("temporary"):
            prefix_origin, suffix_origin = PrefixOrigin.ROUTER_ADVERTISEMENT, SuffixOrigin.RANDOM
        elif info.get("dynamic"):
            prefix_origin, suffix_origin = PrefixOrigin.ROUTER_ADVERTISEMENT, SuffixOrigin.LINK
        else:
            prefix_origin, suffix_origin = PrefixOrigin.MANUAL, SuffixOrigin.MANUAL

        if info.get("dadfailed"):
            state = AddressState.DUPLICATE
        elif info.get("tentative"):
            state = AddressState.TENTATIVE
        elif info.get("deprecated"):
            state = AddressState.DEPRECATED
        else:
            state = AddressState.PREFERRED

        prefixlen = info.get("prefixlen")
        return Address(
            value=value,
            interface=ifname,
            prefix_origin=prefix_origin,
            suffix_origin=suffix_origin,
            state=state,
            prefix_length=prefixlen if isinstance(prefixlen, int) else None,
            address_type="unicast",
        )

    @staticmethod
    def parse_address_list(raw: str) -> list[Address]:
        """
        Parse: ip -6 -j addr show dev eth0

        Sample output:
        [{"ifindex":2,"ifname":"eth0","addr_info":[
            {"family":"inet6","local":"2001:db8:1::5","prefixlen":64,
             "scope":"global","dynamic":true,"mngtmpaddr":true},
            {"family":"inet6","local":"fe80::1","prefixlen":64,"scope":"link"}]}]
        """
        data = _safe_json(raw)
        if not isinstance(data, list):
            return []

        addresses: list[Address] = []
        for intf in data:
            if not isinstance(intf, dict):
                continue
            ifname = str(intf.get("ifname", ""))
            for info in intf.get("addr_info") or []:
                if not isinstance(info, dict):
                    continue
                addr = LinuxParser._from_addr_info(ifname, info)
                if addr is not None:
                    addresses.append(addr)
        return addresses

    @staticmethod
    def parse_address_query(raw: str) -> Optional[Address]:
        """
        Parse: ip -6 -j addr show to 2001:db8:1::5 dev eth0

        Interfaces without a matching address come back with an empty
        addr_info list; the first real match wins.
        """
        found = LinuxParser.parse_address_list(raw)
        return found[0] if found else None

    @staticmethod
    def parse_tempaddr(raw: str) -> Optional[int]:
        """
        Parse: sysctl -n net.ipv6.conf.eth0.use_tempaddr

        Returns 1 or 2 (privacy extensions on). 0, negative values and
        anything unreadable give None.
        """
        text = (raw or "").strip()
        if not re.fullmatch(r"-?\d+", text):
            return None
        value = int(text)
        return value if value in (1, 2) else None


# ============================================================
# Platform-neutral — ping statistics, route tables
# ============================================================

_PING_STATS_PATTERNS = [
    # Windows: "    Packets: Sent = 3, Received = 3, Lost = 0 (0% loss),"
    re.compile(r"Packets:\s*Sent\s*=\s*\d+.*", re.IGNORECASE),
    # iputils: "3 packets transmitted, 3 received, 0% packet loss, time 2003ms"
    re.compile(r"\d+\s+packets transmitted,.*", re.IGNORECASE),
]


def parse_ping_stats(raw: str) -> Optional[str]:
    """The one-line transmit/receive summary, if the output has one."""
    if not raw:
        return None
    for line in raw.splitlines():
        for pattern in _PING_STATS_PATTERNS:
            m = pattern.search(line)
            if m:
                return m.group(0).strip().rstrip(",")
    return None


def find_route_references(raw: str, address: str) -> list[str]:
    """
    Route-table lines that textually mention the address.

    Matches the address as written and in its compressed form, both
    case-insensitive, on token boundaries so 2001:db8::1 does not match
    inside 2001:db8::10.
    """
    if not raw or not address:
        return []

    forms = {address.lower()}
    canonical = _safe_ipv6(address)
    if canonical:
        forms.add(str(IPv6Address(canonical)).lower())

    patterns = [
        re.compile(rf"(?<![0-9a-f:]){re.escape(form)}(?![0-9a-f:])", re.IGNORECASE)
        for form in forms
    ]

    matches = []
    for line in raw.splitlines():
        if any(p.search(line) for p in patterns):
            matches.append(line.strip())
    return matches


# ============================================================
# Parser Registry — dispatch by platform and data type
# ============================================================

PARSE_ADDRESS_LIST = "address_list"
PARSE_ADDRESS_QUERY = "address_query"
PARSE_TEMPADDR = "tempaddr"

_PARSER_REGISTRY: dict[tuple[Platform, str], callable] = {
    (Platform.WINDOWS, PARSE_ADDRESS_LIST):  WindowsParser.parse_address_list,
    (Platform.WINDOWS, PARSE_ADDRESS_QUERY): WindowsParser.parse_address_query,
    (Platform.LINUX, PARSE_ADDRESS_LIST):    LinuxParser.parse_address_list,
    (Platform.LINUX, PARSE_ADDRESS_QUERY):   LinuxParser.parse_address_query,
    (Platform.LINUX, PARSE_TEMPADDR):        LinuxParser.parse_tempaddr,
}


def get_parser(platform: Platform, data_type: str) -> Optional[callable]:
    """
    Get the parser function for a platform and data type.

    Returns None if no parser is registered; caller should record a
    diagnostic and treat the output as unparseable.
    """
    return _PARSER_REGISTRY.get((platform, data_type))


def get_parser_name(platform: Platform, data_type: str) -> str:
    """Human-readable parser name for diagnostics."""
    if platform == Platform.LINUX:
        return "regex" if data_type == PARSE_TEMPADDR else "json"
    if platform == Platform.WINDOWS:
        return "json" if data_type == PARSE_ADDRESS_QUERY else "regex"
    return "none"
