"""
Shared event and display types for worker ↔ console communication.

Probe workers emit ProbeEvent through a callback; the console side
renders them. Neither side imports the other; this is the only shared
dependency.

Usage (worker side):
    from .events import ProbeEvent
    callback(ProbeEvent(event="probe_done", address="2001:db8::5", success=True))

Usage (console side):
    from .events import ProbeEvent, DisplayStatus, STATUS_STYLE
    color, icon = STATUS_STYLE[DisplayStatus.OK]
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional


class DisplayStatus(Enum):
    OK = "ok"
    FAILED = "failed"
    REMOVED = "removed"
    STILL_PRESENT = "still_present"
    REGENERATE = "regenerate"           # privacy cycle, weaker than removed
    WARNING = "warning"
    INFO = "info"
    PENDING = "pending"


# Status → (color, icon) for console lines
STATUS_STYLE: dict[DisplayStatus, tuple[str, str]] = {
    DisplayStatus.OK:            ("#00ff88", "✓"),
    DisplayStatus.FAILED:        ("#ff4444", "✗"),
    DisplayStatus.REMOVED:       ("#00ff88", "⊘"),
    DisplayStatus.STILL_PRESENT: ("#ffcc00", "⚠"),
    DisplayStatus.REGENERATE:    ("#00d4ff", "↻"),
    DisplayStatus.WARNING:       ("#ff8800", "⚠"),
    DisplayStatus.INFO:          ("#888888", "·"),
    DisplayStatus.PENDING:       ("#00d4ff", "⟳"),
}


@dataclass(frozen=True)
class ProbeEvent:
    """
    One event from a probe worker.

    Events:
        probe_start: echo process about to be spawned
        probe_done:  result available (success / message filled in)
    """
    event: str                          # "probe_start", "probe_done"
    address: str
    target: str = ""
    success: Optional[bool] = None
    message: str = ""


# Type alias for the event callback
EventCallback = Callable[[ProbeEvent], None]
