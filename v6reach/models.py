"""
IPv6 Reachability Check — Core Data Models

One run, one interface, one target:
  Which global addresses are configured? → Can each of them reach out? → What do we do about the ones that can't?
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .diagnostics import CommandRecord


# ============================================================
# Address
# ============================================================

LINK_LOCAL_PREFIX = "fe80:"
LOOPBACK = "::1"


class AddressScope(Enum):
    GLOBAL = "global"
    LINK_LOCAL = "link-local"
    LOOPBACK = "loopback"


class PrefixOrigin(Enum):
    OTHER = "other"
    MANUAL = "manual"
    WELL_KNOWN = "well-known"
    DHCP = "dhcp"
    ROUTER_ADVERTISEMENT = "router-advertisement"
    UNKNOWN = "unknown"


class SuffixOrigin(Enum):
    OTHER = "other"
    MANUAL = "manual"
    WELL_KNOWN = "well-known"
    DHCP = "dhcp"
    LINK = "link"                       # EUI-64 / stable SLAAC suffix
    RANDOM = "random"                   # privacy extension (temporary)
    UNKNOWN = "unknown"


class AddressState(Enum):
    PREFERRED = "preferred"
    DEPRECATED = "deprecated"
    TENTATIVE = "tentative"
    DUPLICATE = "duplicate"
    INVALID = "invalid"
    UNKNOWN = "unknown"


def strip_zone(value: str) -> str:
    """'fe80::1%12' → 'fe80::1'"""
    return value.split("%", 1)[0].strip()


def classify_scope(value: str) -> AddressScope:
    """Textual rule: fe80: prefix is link-local, exactly ::1 is loopback."""
    text = strip_zone(value)
    if text.lower().startswith(LINK_LOCAL_PREFIX):
        return AddressScope.LINK_LOCAL
    if text == LOOPBACK:
        return AddressScope.LOOPBACK
    return AddressScope.GLOBAL


@dataclass
class Address:
    value: str
    interface: str = ""
    prefix_origin: PrefixOrigin = PrefixOrigin.UNKNOWN
    suffix_origin: SuffixOrigin = SuffixOrigin.UNKNOWN
    state: AddressState = AddressState.UNKNOWN
    prefix_length: Optional[int] = None
    address_type: Optional[str] = None  # "unicast", "anycast"
    scope: AddressScope = field(init=False)

    def __post_init__(self):
        self.value = strip_zone(self.value)
        self.scope = classify_scope(self.value)

    @property
    def is_global(self) -> bool:
        return self.scope == AddressScope.GLOBAL

    @property
    def is_privacy(self) -> bool:
        return self.suffix_origin == SuffixOrigin.RANDOM

    def to_dict(self) -> dict:
        return {
            "address": self.value,
            "interface": self.interface,
            "scope": self.scope.value,
            "prefix_origin": self.prefix_origin.value,
            "suffix_origin": self.suffix_origin.value,
            "state": self.state.value,
            "prefix_length": self.prefix_length,
            "type": self.address_type,
        }


# ============================================================
# Probe — one echo run from one source address
# ============================================================

@dataclass(frozen=True)
class ProbeResult:
    address: str
    success: bool
    message: str
    stats: Optional[str] = None         # "Sent = 3, Received = 3, Lost = 0"
    record: Optional[CommandRecord] = field(default=None, compare=False, repr=False)

    def to_dict(self) -> dict:
        return {
            "address": self.address,
            "success": self.success,
            "message": self.message,
            "stats": self.stats,
        }


# ============================================================
# Test Run — the whole session
# ============================================================

@dataclass
class TestRun:
    """
    One discover → probe → remediate session.
    Owned by the orchestrator, discarded at exit.
    """
    __test__ = False                    # not a pytest class

    interface: str
    target: str
    candidates: list[Address] = field(default_factory=list)
    results: list[ProbeResult] = field(default_factory=list)

    @property
    def failed_addresses(self) -> list[str]:
        """Failed addresses in discovery order."""
        failed = {r.address for r in self.results if not r.success}
        return [a.value for a in self.candidates if a.value in failed]

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return self.total - self.succeeded

    def candidate(self, value: str) -> Optional[Address]:
        for addr in self.candidates:
            if addr.value == value:
                return addr
        return None


# ============================================================
# Remediation
# ============================================================

class RemovalMethod(Enum):
    PS_CMDLET = "ps-cmdlet"             # structured/native removal
    LEGACY_TOOL = "legacy-tool"         # netsh / ifconfig fallback
    PRIVACY_CYCLE = "privacy-cycle"     # disable → wait → enable temp addresses
    ALREADY_ABSENT = "already-absent"
    NONE = "none"


class StrategyOutcome(Enum):
    SUCCEEDED = "succeeded"
    NOT_APPLICABLE = "not-applicable"
    FAILED = "failed"


@dataclass
class RemovalOutcome:
    address: str
    method_used: RemovalMethod = RemovalMethod.NONE
    verified: bool = False              # re-query confirmed the address is gone
    still_present: bool = False         # re-query still found it after a "success"
    messages: list[str] = field(default_factory=list)

    @property
    def removed(self) -> bool:
        return self.method_used in (
            RemovalMethod.PS_CMDLET,
            RemovalMethod.LEGACY_TOOL,
            RemovalMethod.ALREADY_ABSENT,
        )

    def to_dict(self) -> dict:
        return {
            "address": self.address,
            "method": self.method_used.value,
            "verified": self.verified,
            "still_present": self.still_present,
            "messages": self.messages,
        }


@dataclass
class RouteMatch:
    """A route-table line that mentions a failed address."""
    address: str
    line: str
