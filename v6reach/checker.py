"""
Reachability Checker — discover, probe in parallel, report, remediate.

Sequence per run:
    1. List addresses on the interface      (DiscoveryError → exit 1)
    2. Keep global candidates               (none → exit 1, nothing probed)
    3. Probe every candidate concurrently   (join on all, launch order)
    4. Print per-address results + tally
    5. Optional remediation, behind a confirmation prompt unless --force
    6. Exit 0 if any probe succeeded, else 1. Remediation never changes it.
       Declining the prompt exits 0.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional
import json
import logging
import sys
import time

from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt

from .commands import Platform, detect_platform
from .diagnostics import RunDiagnostic, setup_logging
from .discovery import AddressDiscovery
from .errors import DiscoveryError
from .events import DisplayStatus, EventCallback, ProbeEvent
from .models import TestRun
from .prober import Prober
from .remediation import Confirmer, RemediationReport, Remediator
from .report import (
    render_final, render_header, render_results, run_to_dict, status_line,
)
from .runner import CommandRunner

logger = logging.getLogger("v6reach")

EXIT_OK = 0
EXIT_FAILURE = 1

AFFIRMATIVE = ("y", "yes")


# ============================================================
# Checker Configuration
# ============================================================

@dataclass
class CheckConfig:
    interface: str = "Ethernet 2"
    target: str = "google.com"

    # Remediation
    remove_failed_addresses: bool = False
    remove_failed_routes: bool = False
    force: bool = False

    # None means detect from sys.platform
    platform: Optional[str] = None

    # Timing
    verify_delay: float = 2.0           # pause before re-querying a removed address
    privacy_wait: float = 3.0           # pause between privacy disable and enable
    command_timeout: float = 30.0       # management commands only; ping is never cut short

    # Diagnostics
    verbose: bool = False
    debug: bool = False
    log_file: Optional[str] = None
    dump_file: Optional[str] = None
    json_output: bool = False

    # Progress events from probe workers
    event_callback: Optional[EventCallback] = None


def ask_confirmation(message: str) -> bool:
    """
    Default confirmer: interactive y/N on the terminal.

    Only an explicit yes confirms. An empty line, any other answer, a
    closed stdin or Ctrl-C all decline.
    """
    try:
        answer = Prompt.ask(escape(f"{message} [y/N]"), default="", show_default=False)
    except (EOFError, KeyboardInterrupt):
        logger.info("No answer to confirmation prompt, treating as decline")
        return False
    return answer.strip().lower() in AFFIRMATIVE


# ============================================================
# Orchestrator
# ============================================================

class ReachabilityChecker:
    """
    Usage:
        config = CheckConfig(interface="Ethernet 2", target="google.com")
        checker = ReachabilityChecker(config)
        exit_code = checker.run()

        # checker.test_run → candidates, results, failed_addresses
        # checker.remediation → outcomes, routes, cancelled
    """

    def __init__(
        self,
        config: CheckConfig,
        runner: Optional[CommandRunner] = None,
        confirm: Optional[Confirmer] = None,
        console: Optional[Console] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.config = config
        self.runner = runner or CommandRunner()
        self.confirm = confirm or ask_confirmation
        self.console = console or Console(highlight=False)
        self.sleep = sleep or time.sleep

        self.platform = detect_platform(config.platform)
        self._test_run: Optional[TestRun] = None
        self._remediation: Optional[RemediationReport] = None
        self._diagnostics: Optional[RunDiagnostic] = None

    @property
    def test_run(self) -> Optional[TestRun]:
        return self._test_run

    @property
    def remediation(self) -> Optional[RemediationReport]:
        return self._remediation

    @property
    def diagnostics(self) -> Optional[RunDiagnostic]:
        return self._diagnostics

    def _print(self, markup: str) -> None:
        """Console output, suppressed when --json owns stdout."""
        if not self.config.json_output:
            self.console.print(markup)

    def _progress(self, event: ProbeEvent) -> None:
        if event.event == "probe_start":
            self._print("  " + status_line(
                DisplayStatus.PENDING, f"probing from {event.address}"))

    def run(self) -> int:
        """Execute one run. Returns the process exit code."""
        cfg = self.config
        setup_logging(log_file=cfg.log_file, debug=cfg.debug, verbose=cfg.verbose)

        logger.info(f"Starting run: {cfg.interface} → {cfg.target} "
                    f"({self.platform.value})")
        self._diagnostics = RunDiagnostic(
            interface=cfg.interface, target=cfg.target, started_at=datetime.now(),
        )
        self._test_run = TestRun(interface=cfg.interface, target=cfg.target)

        try:
            exit_code = self._run()
        finally:
            self._diagnostics.completed_at = datetime.now()
            if cfg.dump_file:
                self._dump_diagnostics(cfg.dump_file)

        if cfg.json_output:
            outcomes = self._remediation.outcomes if self._remediation else []
            routes = self._remediation.routes if self._remediation else {}
            print(json.dumps(
                run_to_dict(self._test_run, outcomes, routes, exit_code),
                indent=2, default=str,
            ))
        return exit_code

    def _dump_diagnostics(self, path: str) -> None:
        """Write --dump output; an unwritable path never changes the exit code."""
        try:
            self._diagnostics.dump_json(path)
        except OSError as e:
            logger.error(f"Could not write diagnostics to {path}: {e}")
            self._print(status_line(
                DisplayStatus.WARNING, f"could not write diagnostics to {path}: {e}"))
            return
        logger.info(f"Diagnostics written to {path}")

    def _run(self) -> int:
        cfg = self.config
        run = self._test_run

        # ── 1-2. Discovery ──
        discovery = AddressDiscovery(
            self.runner, self.platform,
            command_timeout=cfg.command_timeout,
            diagnostics=self._diagnostics,
        )
        try:
            run.candidates = discovery.discover(cfg.interface)
        except DiscoveryError as e:
            logger.error(str(e))
            self._print(status_line(DisplayStatus.FAILED, f"Error: {e}"))
            return EXIT_FAILURE

        if not run.candidates:
            logger.error(f"No global IPv6 addresses on {cfg.interface}")
            self._print(status_line(
                DisplayStatus.FAILED,
                f"No global IPv6 addresses found on '{cfg.interface}'"))
            return EXIT_FAILURE

        values = [a.value for a in run.candidates]
        if not cfg.json_output:
            render_header(self.console, cfg.interface, cfg.target, values)

        # ── 3. Probe ──
        callback = cfg.event_callback
        if callback is None and cfg.verbose:
            callback = self._progress
        prober = Prober(self.runner, self.platform, event_callback=callback)
        run.results = prober.probe_all(values, cfg.target)
        for result in run.results:
            self._diagnostics.add(result.record)

        # ── 4. Aggregate ──
        if not cfg.json_output:
            render_results(self.console, run.results)

        exit_code = EXIT_OK if run.succeeded > 0 else EXIT_FAILURE

        # ── 5. Remediate ──
        remediator = Remediator(
            self.runner, self.platform, discovery,
            interface=cfg.interface,
            confirm=self.confirm,
            console=self.console if not cfg.json_output else Console(quiet=True),
            verify_delay=cfg.verify_delay,
            privacy_wait=cfg.privacy_wait,
            command_timeout=cfg.command_timeout,
            sleep=self.sleep,
            diagnostics=self._diagnostics,
        )
        self._remediation = remediator.run(
            run.failed_addresses,
            remove_addresses=cfg.remove_failed_addresses,
            remove_routes=cfg.remove_failed_routes,
            force=cfg.force,
            known={a.value: a for a in run.candidates},
        )

        note = None
        if self._remediation.cancelled:
            exit_code = EXIT_OK
            note = "remediation cancelled by user"

        # ── 6. Final status ──
        if not cfg.json_output:
            render_final(self.console, run, exit_code, note)
        logger.info(
            f"Run complete: {run.succeeded}/{run.total} succeeded, exit {exit_code}"
        )
        return exit_code


# ============================================================
# CLI
# ============================================================

def build_argparser():
    import argparse

    parser = argparse.ArgumentParser(
        prog="v6reach",
        description="Test outbound IPv6 reachability from every global address "
                    "on an interface, and optionally clean up the ones that fail.",
        epilog=(
            "Examples:\n"
            "  v6reach\n"
            "  v6reach -i \"Ethernet 2\" -t google.com -v\n"
            "  v6reach -i eth0 --remove-failed-addresses --force\n"
            "  v6reach -i eth0 --remove-failed-routes --json\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("-i", "--interface", default="Ethernet 2",
                        help="Interface to enumerate and probe (default: 'Ethernet 2')")
    parser.add_argument("-t", "--target", default="google.com",
                        help="Echo destination (default: google.com)")

    parser.add_argument("--remove-failed-addresses", action="store_true",
                        help="Try to remove addresses whose probe failed")
    parser.add_argument("--remove-failed-routes", action="store_true",
                        help="Report routes that reference failed addresses")
    parser.add_argument("-f", "--force", action="store_true",
                        help="Skip the confirmation prompt")

    parser.add_argument("--platform", choices=[p.value for p in Platform
                                               if p != Platform.UNKNOWN],
                        default=None, help="Command set (default: detect)")
    parser.add_argument("--verify-delay", type=float, default=2.0,
                        help="Seconds to wait before verifying a removal")
    parser.add_argument("--privacy-wait", type=float, default=3.0,
                        help="Seconds between privacy-extension disable and enable")
    parser.add_argument("--timeout", type=float, default=30.0,
                        help="Per management-command timeout in seconds")

    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Log progress to stderr")
    parser.add_argument("--debug", action="store_true")
    parser.add_argument("--log", default=None,
                        help="Write a debug log to file")
    parser.add_argument("--dump", default=None,
                        help="Write full command diagnostics JSON to file")
    parser.add_argument("--json", action="store_true",
                        help="Output run result as JSON")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    v6reach -i "Ethernet 2" -t google.com --remove-failed-addresses -f
    """
    parser = build_argparser()
    args = parser.parse_args(argv)

    if detect_platform(args.platform) == Platform.UNKNOWN:
        parser.error(f"Unsupported platform '{sys.platform}'; pass --platform")
    if args.json and not args.force and (
            args.remove_failed_addresses or args.remove_failed_routes):
        parser.error("--json with remediation flags requires --force")

    config = CheckConfig(
        interface=args.interface,
        target=args.target,
        remove_failed_addresses=args.remove_failed_addresses,
        remove_failed_routes=args.remove_failed_routes,
        force=args.force,
        platform=args.platform,
        verify_delay=args.verify_delay,
        privacy_wait=args.privacy_wait,
        command_timeout=args.timeout,
        verbose=args.verbose,
        debug=args.debug,
        log_file=args.log,
        dump_file=args.dump,
        json_output=args.json,
    )
    return ReachabilityChecker(config).run()


if __name__ == "__main__":
    sys.exit(main())
