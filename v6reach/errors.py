"""
Exception taxonomy.

Only DiscoveryError is fatal to a run. ProbeError and RemediationError are
caught per address and turned into reported outcomes.
"""


class V6ReachError(Exception):
    """Base for everything this package raises on purpose."""


class CommandError(V6ReachError):
    """An OS command could not be run at all (spawn failure, timeout)."""

    def __init__(self, command: str, reason: str):
        super().__init__(f"{command}: {reason}")
        self.command = command
        self.reason = reason


class DiscoveryError(V6ReachError):
    """Interface lookup failed, nothing to probe."""


class ProbeError(V6ReachError):
    """A single probe could not be executed."""


class RemediationError(V6ReachError):
    """A single query/removal step failed."""
