"""
v6reach: which of this interface's IPv6 addresses can actually get out?

Discover global addresses, probe from each one in parallel, clean up the
ones that fail.
"""

__version__ = "0.1.0"

from .models import (
    Address, AddressScope, AddressState, PrefixOrigin, SuffixOrigin,
    ProbeResult, TestRun,
    RemovalMethod, RemovalOutcome, RouteMatch, StrategyOutcome,
)
from .errors import (
    V6ReachError, CommandError, DiscoveryError, ProbeError, RemediationError,
)
from .commands import Platform
from .checker import ReachabilityChecker, CheckConfig
from .diagnostics import CommandRecord, RunDiagnostic
