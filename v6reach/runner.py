"""
OS command execution.

The only place a subprocess is started. Every call produces a
CommandRecord; non-zero exit is data, not an exception. CommandError is
raised only when there is no exit status to report (spawn failure or a
management-command timeout).
"""

from __future__ import annotations
from typing import Optional
import logging
import subprocess
import time

from .diagnostics import CommandRecord, CommandStatus, dump_command_detail
from .errors import CommandError

logger = logging.getLogger("v6reach.runner")


def format_argv(argv: list[str]) -> str:
    """Display form of an argv list; quotes tokens that contain spaces."""
    return " ".join(f'"{a}"' if " " in a else a for a in argv)


class CommandRunner:
    """
    Thin wrapper around subprocess.run.

    Usage:
        runner = CommandRunner()
        record = runner.run(["ip", "-6", "route", "show"], timeout=30)
        if record.ok:
            ...
    """

    def run(self, argv: list[str], timeout: Optional[float] = None) -> CommandRecord:
        command = format_argv(argv)
        logger.debug(f"exec: {command}")
        started = time.monotonic()

        try:
            proc = subprocess.run(
                argv,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                stdin=subprocess.DEVNULL,
                text=True,
                errors="replace",
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            logger.error(f"Command timed out after {timeout}s: {command}")
            raise CommandError(command, f"timed out after {timeout}s")
        except OSError as e:
            logger.error(f"Command could not start: {command}: {e}")
            raise CommandError(command, f"could not start: {e}")

        record = CommandRecord(
            command=command,
            returncode=proc.returncode,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
            duration_ms=(time.monotonic() - started) * 1000.0,
        )
        if proc.returncode != 0:
            record.status = CommandStatus.ERROR
            record.error_message = record.error_text()
        elif not record.stdout.strip():
            record.status = CommandStatus.EMPTY

        logger.debug(dump_command_detail(record))
        return record
