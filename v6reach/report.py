"""
Result aggregation and console rendering.

summarize() is pure. The render_* functions only print.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional

from rich.console import Console
from rich.markup import escape

from .events import DisplayStatus, STATUS_STYLE
from .models import ProbeResult, RemovalMethod, RemovalOutcome, RouteMatch, TestRun


@dataclass(frozen=True)
class ProbeSummary:
    total: int
    succeeded: int
    failed: int
    ok_addresses: list[str] = field(default_factory=list)
    failed_addresses: list[str] = field(default_factory=list)


def summarize(results: list[ProbeResult]) -> ProbeSummary:
    """Partition results, keeping the order they were launched in."""
    ok = [r.address for r in results if r.success]
    bad = [r.address for r in results if not r.success]
    return ProbeSummary(
        total=len(results),
        succeeded=len(ok),
        failed=len(bad),
        ok_addresses=ok,
        failed_addresses=bad,
    )


def status_line(status: DisplayStatus, text: str) -> str:
    """Rich markup for one icon-prefixed line. text is escaped."""
    color, icon = STATUS_STYLE.get(status, ("#888888", "?"))
    return f"[{color}]{icon}[/] {escape(text)}"


def render_header(console: Console, interface: str, target: str,
                  candidates: list[str]) -> None:
    console.print(
        f"\n[bold]v6reach[/]: {escape(interface)} → {escape(target)}"
    )
    console.print("─" * 50)
    console.print(f"Found {len(candidates)} global IPv6 address(es):")
    for addr in candidates:
        console.print(f"  {escape(addr)}")
    console.print()


def render_results(console: Console, results: list[ProbeResult]) -> ProbeSummary:
    """Per-address status, then the tally."""
    for r in results:
        status = DisplayStatus.OK if r.success else DisplayStatus.FAILED
        line = f"{r.address:40s} {r.message}"
        console.print("  " + status_line(status, line))
        if r.stats:
            console.print(f"      [#888888]{escape(r.stats)}[/]")

    summary = summarize(results)
    console.print("─" * 50)
    console.print(
        f"Total: {summary.total} │ "
        f"[#00ff88]Succeeded: {summary.succeeded}[/] │ "
        f"[#ff4444]Failed: {summary.failed}[/]"
    )
    return summary


def removal_status(outcome: RemovalOutcome) -> tuple[DisplayStatus, str]:
    """How a removal outcome reads on the console."""
    m = outcome.method_used
    if m == RemovalMethod.ALREADY_ABSENT:
        return DisplayStatus.REMOVED, "already removed"
    if m == RemovalMethod.NONE:
        return DisplayStatus.WARNING, "could not remove"
    if m == RemovalMethod.PRIVACY_CYCLE:
        if outcome.verified:
            return DisplayStatus.REGENERATE, "privacy addresses regenerated, address gone"
        return DisplayStatus.REGENERATE, "privacy addresses regenerated, address may persist"
    if outcome.verified:
        return DisplayStatus.REMOVED, f"confirmed removed via {m.value}"
    if outcome.still_present:
        return DisplayStatus.STILL_PRESENT, f"{m.value} reported success but address is still present"
    return DisplayStatus.REMOVED, f"removed via {m.value} (not verified)"


def render_removal(console: Console, outcome: RemovalOutcome) -> None:
    status, text = removal_status(outcome)
    console.print("  " + status_line(status, f"{outcome.address}: {text}"))
    for msg in outcome.messages:
        console.print(f"      [#888888]{escape(msg)}[/]")


def render_routes(console: Console, address: str, matches: list[RouteMatch]) -> None:
    if not matches:
        console.print("  " + status_line(
            DisplayStatus.INFO, f"{address}: no routes reference this address"))
        return
    console.print("  " + status_line(
        DisplayStatus.INFO, f"{address}: {len(matches)} route(s) reference this address"))
    for m in matches:
        console.print(f"      [#888888]{escape(m.line)}[/]")


def render_final(console: Console, run: TestRun, exit_code: int,
                 note: Optional[str] = None) -> None:
    console.print()
    if run.succeeded > 0:
        console.print(
            f"[#00ff88]✓ OK[/] — {run.succeeded}/{run.total} address(es) "
            f"can reach {escape(run.target)}"
        )
    else:
        console.print(
            f"[#ff4444]✗ FAILED[/] — no address can reach {escape(run.target)}"
        )
    if note:
        console.print(f"[#888888]{escape(note)}[/]")
    console.print(f"[#555555]exit {exit_code}[/]")


def run_to_dict(run: TestRun, outcomes: list[RemovalOutcome],
                routes: dict[str, list[RouteMatch]], exit_code: int) -> dict:
    """--json output."""
    summary = summarize(run.results)
    return {
        "interface": run.interface,
        "target": run.target,
        "candidates": [a.to_dict() for a in run.candidates],
        "results": [r.to_dict() for r in run.results],
        "summary": {
            "total": summary.total,
            "succeeded": summary.succeeded,
            "failed": summary.failed,
        },
        "failed_addresses": run.failed_addresses,
        "removals": [o.to_dict() for o in outcomes],
        "routes": {
            addr: [m.line for m in matches] for addr, matches in routes.items()
        },
        "exit_code": exit_code,
    }
