"""
Concurrent reachability probing: one ICMPv6 echo run per source address.

    addresses ──┬─> probe(A) ──┐
                ├─> probe(B) ──┼─> join in launch order ─> [ProbeResult, ...]
                └─> probe(C) ──┘

Each task owns its address, target and result. Nothing mutable crosses
task boundaries; the join waits for every task, there is no early exit
and no timeout beyond what ping itself enforces.
"""

from __future__ import annotations
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional
import logging

from .commands import ECHO_COUNT, Platform, get_command_set
from .errors import CommandError, ProbeError
from .events import EventCallback, ProbeEvent
from .models import ProbeResult
from .parsers import parse_ping_stats
from .runner import CommandRunner

logger = logging.getLogger("v6reach.prober")


class Prober:
    """
    Usage:
        prober = Prober(runner, Platform.LINUX)
        results = prober.probe_all(["2001:db8::5", "2001:db8::9"], "google.com")
        # len(results) == 2, results[i].address == addresses[i]
    """

    def __init__(
        self,
        runner: CommandRunner,
        platform: Platform,
        count: int = ECHO_COUNT,
        event_callback: Optional[EventCallback] = None,
    ):
        self.runner = runner
        self.commands = get_command_set(platform)
        self.count = count
        self.event_callback = event_callback

    def _emit(self, event: ProbeEvent) -> None:
        cb = self.event_callback
        if cb is not None:
            try:
                cb(event)
            except Exception as e:
                logger.debug(f"Event callback error: {e}")

    def _run_echo(self, address: str, target: str):
        argv = self.commands.render(
            "ping", count=self.count, source=address, target=target,
        )
        try:
            return self.runner.run(argv)
        except CommandError as e:
            raise ProbeError(f"ping could not run: {e.reason}") from e

    def probe(self, address: str, target: str) -> ProbeResult:
        """One echo run. Never raises; failures become failed results."""
        self._emit(ProbeEvent(event="probe_start", address=address, target=target))
        try:
            record = self._run_echo(address, target)
        except ProbeError as e:
            result = ProbeResult(address=address, success=False, message=str(e))
        except Exception as e:
            logger.error(f"Probe from {address} raised: {type(e).__name__}: {e}")
            result = ProbeResult(
                address=address, success=False,
                message=f"probe error: {type(e).__name__}: {e}",
            )
        else:
            stats = parse_ping_stats(record.output)
            if record.ok:
                message = f"reached {target}"
            else:
                message = f"cannot reach {target}: {record.error_text()}"
            result = ProbeResult(
                address=address, success=record.ok, message=message,
                stats=stats, record=record,
            )

        logger.info(
            f"probe {address} → {target}: "
            f"{'ok' if result.success else 'FAILED'} ({result.message})"
        )
        self._emit(ProbeEvent(
            event="probe_done", address=address, target=target,
            success=result.success, message=result.message,
        ))
        return result

    def probe_all(self, addresses: list[str], target: str) -> list[ProbeResult]:
        """
        Launch every probe, then join in launch order.

        One worker per address so no probe waits for another to start.
        """
        if not addresses:
            return []

        with ThreadPoolExecutor(
            max_workers=len(addresses), thread_name_prefix="probe",
        ) as pool:
            futures: list[tuple[str, Future]] = [
                (address, pool.submit(self.probe, address, target))
                for address in addresses
            ]
            results = []
            for address, future in futures:
                try:
                    results.append(future.result())
                except Exception as e:
                    results.append(ProbeResult(
                        address=address, success=False,
                        message=f"probe task failed: {e}",
                    ))
        return results
