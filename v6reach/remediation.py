"""
Best-effort cleanup for addresses that failed their probe.

Address removal, per address, strictly sequential (it mutates interface
state that a parallel run would race on):

    query ── absent ──────────────────────────────> ALREADY_ABSENT
      │ present
      v
    native removal ── ok ─┐
      │ fail              │
      v                   │
    legacy tool ───── ok ─┤
      │ fail              ├──> pause → re-query → confirmed / still present
      v                   │
    privacy cycle ─── ok ─┘   (only for random/temporary suffixes)
      │ fail / n/a
      v
    NONE: likely SLAAC, router-side change needed

Route reporting is read-only: lines of the route table that mention a
failed address are printed. Route deletion is a manual step.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable, Optional
import logging
import time

from rich.console import Console

from .commands import Platform, get_command_set
from .diagnostics import RunDiagnostic
from .discovery import AddressDiscovery
from .errors import CommandError, RemediationError
from .events import DisplayStatus
from .models import (
    Address, RemovalMethod, RemovalOutcome, RouteMatch, StrategyOutcome,
)
from .parsers import PARSE_TEMPADDR, find_route_references, get_parser
from .report import render_removal, render_routes, status_line
from .runner import CommandRunner

logger = logging.getLogger("v6reach.remediation")

# confirm(message) -> bool
Confirmer = Callable[[str], bool]

SLAAC_WARNING = (
    "all removal methods failed; the address is likely autoconfigured "
    "(SLAAC) and may return until the router stops advertising its prefix"
)
ROUTE_DELETION_NOTE = (
    "route removal is not automated; delete the routes above manually if needed"
)

# Linux use_tempaddr written back when the prior value cannot be read
DEFAULT_TEMPADDR = 2


@dataclass
class RemovalStrategy:
    """One removal method. func returns (outcome, human message)."""
    method: RemovalMethod
    func: Callable[[Address], tuple[StrategyOutcome, str]]


@dataclass
class RemediationReport:
    ran: bool = False                   # a flag was set and something failed
    cancelled: bool = False             # user declined the prompt
    outcomes: list[RemovalOutcome] = field(default_factory=list)
    routes: dict[str, list[RouteMatch]] = field(default_factory=dict)


class Remediator:
    """
    Usage:
        remediator = Remediator(runner, Platform.WINDOWS, discovery,
                                interface="Ethernet 2", confirm=ask)
        report = remediator.run(["2001:db8::9"], remove_addresses=True,
                                remove_routes=False, force=False)
    """

    def __init__(
        self,
        runner: CommandRunner,
        platform: Platform,
        discovery: AddressDiscovery,
        interface: str,
        confirm: Confirmer,
        console: Optional[Console] = None,
        verify_delay: float = 2.0,
        privacy_wait: float = 3.0,
        command_timeout: Optional[float] = 30.0,
        sleep: Callable[[float], None] = time.sleep,
        diagnostics: Optional[RunDiagnostic] = None,
    ):
        self.runner = runner
        self.platform = platform
        self.commands = get_command_set(platform)
        self.discovery = discovery
        self.interface = interface
        self.confirm = confirm
        self.console = console or Console()
        self.verify_delay = verify_delay
        self.privacy_wait = privacy_wait
        self.command_timeout = command_timeout
        self.sleep = sleep
        self.diagnostics = diagnostics

        self.strategies: list[RemovalStrategy] = [
            RemovalStrategy(RemovalMethod.PS_CMDLET, self._remove_native),
            RemovalStrategy(RemovalMethod.LEGACY_TOOL, self._remove_legacy),
            RemovalStrategy(RemovalMethod.PRIVACY_CYCLE, self._privacy_cycle),
        ]

    # ────────────────────────────────────────────
    # Entry point
    # ────────────────────────────────────────────

    def run(
        self,
        failed: list[str],
        remove_addresses: bool,
        remove_routes: bool,
        force: bool = False,
        known: Optional[dict[str, Address]] = None,
    ) -> RemediationReport:
        """
        known: discovery-time metadata, used when the fresh query fails.
        """
        report = RemediationReport()
        if not failed or not (remove_addresses or remove_routes):
            return report

        if not force:
            actions = []
            if remove_addresses:
                actions.append("remove")
            if remove_routes:
                actions.append("report routes for")
            prompt = (
                f"{' and '.join(actions).capitalize()} {len(failed)} failed "
                f"address(es) on {self.interface}?"
            )
            if not self.confirm(prompt):
                logger.info("Remediation declined by user")
                self.console.print("Remediation cancelled — no changes made.")
                report.cancelled = True
                return report

        report.ran = True
        self.console.print("\n[bold]Remediation[/]")
        self.console.print("─" * 50)

        if remove_routes:
            report.routes = self.report_routes(failed)

        if remove_addresses:
            for address in failed:
                hint = (known or {}).get(address)
                outcome = self.remove_address(address, hint)
                report.outcomes.append(outcome)
                render_removal(self.console, outcome)

        return report

    # ────────────────────────────────────────────
    # Address removal
    # ────────────────────────────────────────────

    def remove_address(self, address: str, hint: Optional[Address] = None) -> RemovalOutcome:
        """Try each strategy in order. Never raises."""
        outcome = RemovalOutcome(address=address)

        try:
            current = self.discovery.query(address, self.interface)
        except Exception as e:
            logger.warning(f"{address}: metadata query failed: {e}")
            outcome.messages.append(f"metadata query failed: {e}")
            current = hint or Address(value=address, interface=self.interface)
        else:
            if current is None:
                logger.info(f"{address}: already absent")
                outcome.method_used = RemovalMethod.ALREADY_ABSENT
                outcome.verified = True
                return outcome

        # Removal is always scoped to the interface under test
        current.interface = self.interface

        for strategy in self.strategies:
            try:
                result, message = strategy.func(current)
            except Exception as e:
                result, message = StrategyOutcome.FAILED, f"error: {e}"
            logger.info(f"{address}: {strategy.method.value} → {result.value} ({message})")

            if result == StrategyOutcome.NOT_APPLICABLE:
                outcome.messages.append(f"{strategy.method.value}: skipped ({message})")
                continue
            outcome.messages.append(f"{strategy.method.value}: {message}")
            if result == StrategyOutcome.SUCCEEDED:
                outcome.method_used = strategy.method
                break
        else:
            logger.warning(f"{address}: {SLAAC_WARNING}")
            outcome.method_used = RemovalMethod.NONE
            outcome.messages.append(SLAAC_WARNING)
            return outcome

        self._verify(outcome)
        return outcome

    def _verify(self, outcome: RemovalOutcome) -> None:
        if self.verify_delay > 0:
            self.sleep(self.verify_delay)
        try:
            still_there = self.discovery.query(outcome.address, self.interface) is not None
        except Exception as e:
            outcome.messages.append(f"verification query failed: {e}")
            return
        outcome.verified = not still_there
        outcome.still_present = still_there
        if still_there:
            logger.warning(
                f"{outcome.address}: {outcome.method_used.value} succeeded "
                f"but the address is still configured"
            )

    def _exec(self, name: str, **values):
        argv = self.commands.render(name, **values)
        try:
            record = self.runner.run(argv, timeout=self.command_timeout)
        except CommandError as e:
            raise RemediationError(e.reason) from e
        if self.diagnostics is not None:
            self.diagnostics.add(record)
        return record

    def _remove_native(self, addr: Address) -> tuple[StrategyOutcome, str]:
        record = self._exec(
            "remove_native", address=addr.value, interface=addr.interface,
            prefix_length=addr.prefix_length or 128,
        )
        if record.ok:
            return StrategyOutcome.SUCCEEDED, "removed"
        return StrategyOutcome.FAILED, record.error_text()

    def _remove_legacy(self, addr: Address) -> tuple[StrategyOutcome, str]:
        record = self._exec(
            "remove_legacy", address=addr.value, interface=addr.interface,
            prefix_length=addr.prefix_length or 128,
        )
        if record.ok:
            return StrategyOutcome.SUCCEEDED, "removed"
        return StrategyOutcome.FAILED, record.error_text()

    def _current_tempaddr(self, interface: str) -> int:
        """Privacy setting to restore after the cycle."""
        if not self.commands.privacy_query:
            return DEFAULT_TEMPADDR
        try:
            record = self._exec("privacy_query", interface=interface)
        except RemediationError as e:
            logger.warning(f"{interface}: privacy setting unreadable ({e}), "
                           f"will restore {DEFAULT_TEMPADDR}")
            return DEFAULT_TEMPADDR

        parser = get_parser(self.platform, PARSE_TEMPADDR)
        value = parser(record.stdout) if (record.ok and parser) else None
        if value is None:
            detail = record.stdout.strip() if record.ok else record.error_text()
            logger.info(f"{interface}: privacy setting {detail!r} not restorable, "
                        f"will restore {DEFAULT_TEMPADDR}")
            return DEFAULT_TEMPADDR
        return value

    def _privacy_cycle(self, addr: Address) -> tuple[StrategyOutcome, str]:
        if not addr.is_privacy:
            return StrategyOutcome.NOT_APPLICABLE, f"suffix origin is {addr.suffix_origin.value}"

        tempaddr = self._current_tempaddr(addr.interface)

        record = self._exec("privacy_disable", interface=addr.interface)
        if not record.ok:
            return StrategyOutcome.FAILED, f"disable failed: {record.error_text()}"

        if self.privacy_wait > 0:
            self.sleep(self.privacy_wait)

        record = self._exec("privacy_enable", interface=addr.interface, tempaddr=tempaddr)
        if not record.ok:
            return (StrategyOutcome.FAILED,
                    f"re-enable failed, privacy extensions left disabled: "
                    f"{record.error_text()}")
        return StrategyOutcome.SUCCEEDED, "privacy extensions cycled, new temporary address requested"

    # ────────────────────────────────────────────
    # Route reporting
    # ────────────────────────────────────────────

    def report_routes(self, failed: list[str]) -> dict[str, list[RouteMatch]]:
        """Read the route table once, report references per address."""
        routes: dict[str, list[RouteMatch]] = {}
        try:
            record = self._exec("show_routes")
            if not record.ok:
                raise RemediationError(record.error_text())
        except RemediationError as e:
            logger.warning(f"Route table query failed: {e}")
            self.console.print("  " + status_line(
                DisplayStatus.WARNING, f"route table query failed: {e}"))
            return routes

        for address in failed:
            matches = [
                RouteMatch(address=address, line=line)
                for line in find_route_references(record.stdout, address)
            ]
            routes[address] = matches
            render_routes(self.console, address, matches)

        if any(routes.values()):
            self.console.print(f"  [#888888]{ROUTE_DELETION_NOTE}[/]")
        return routes
