"""
IPv6 Reachability Check — Diagnostic Framework

Every OS command and every parse is traceable.
Three levels:
  1. Run summary (always, to the console)
  2. Per-command INFO lines (--verbose)
  3. Raw capture (--debug / --log / --dump, full command I/O and parser detail)

If a parser returns nothing, we need to know WHY:
  - Was the command output empty?
  - Did the command exit non-zero?
  - Did JSON decode but the shape was unexpected?
  - Did the command never start?
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Any, Callable
import json
import logging


# ============================================================
# Structured Diagnostic Records
# ============================================================

class CommandStatus(Enum):
    SUCCESS = "success"             # exit 0, got output
    EMPTY = "empty"                 # exit 0, no output
    ERROR = "error"                 # non-zero exit
    TIMEOUT = "timeout"             # management command exceeded its deadline
    SPAWN_FAILURE = "spawn-failure"  # executable missing / OS refused


class ParseResult(Enum):
    NOT_PARSED = "not-parsed"       # output not fed to a parser
    OK = "ok"
    NO_MATCH = "no-match"           # nothing recognisable in output
    EMPTY_INPUT = "empty-input"
    JSON_ERROR = "json-error"
    EXCEPTION = "exception"


@dataclass
class CommandRecord:
    """Complete record of a single OS command execution."""
    command: str                        # display form of argv
    timestamp: datetime = field(default_factory=datetime.now)

    status: CommandStatus = CommandStatus.SUCCESS
    returncode: Optional[int] = None
    stdout: str = ""
    stderr: str = ""
    error_message: str = ""
    duration_ms: Optional[float] = None

    parser_used: str = ""               # "json", "regex", "none"
    parse_result: ParseResult = ParseResult.NOT_PARSED
    parse_detail: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """stdout followed by stderr, as a human would have seen it."""
        if self.stderr and self.stdout:
            return f"{self.stdout}\n{self.stderr}"
        return self.stdout or self.stderr

    def error_text(self) -> str:
        """Best one-line explanation of a failed command."""
        if self.error_message:
            return self.error_message
        for text in (self.stderr, self.stdout):
            for line in text.splitlines():
                if line.strip():
                    return line.strip()
        return f"exit code {self.returncode}"

    def to_dict(self) -> dict:
        return {
            "command": self.command,
            "timestamp": self.timestamp.isoformat(),
            "status": self.status.value,
            "returncode": self.returncode,
            "stdout_lines": len(self.stdout.splitlines()),
            "stdout": self.stdout,
            "stderr": self.stderr,
            "error_message": self.error_message,
            "duration_ms": self.duration_ms,
            "parser_used": self.parser_used,
            "parse_result": self.parse_result.value,
            "parse_detail": self.parse_detail,
        }


@dataclass
class RunDiagnostic:
    """Every command issued during one run, in issue order."""
    interface: str
    target: str
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    commands: list[CommandRecord] = field(default_factory=list)

    def add(self, record: Optional[CommandRecord]) -> None:
        if record is not None:
            self.commands.append(record)

    def failed_commands(self) -> list[CommandRecord]:
        return [c for c in self.commands if c.status not in (
            CommandStatus.SUCCESS, CommandStatus.EMPTY
        )]

    def to_dict(self) -> dict:
        return {
            "interface": self.interface,
            "target": self.target,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "summary": {
                "total_commands": len(self.commands),
                "failed_commands": len(self.failed_commands()),
            },
            "commands": [c.to_dict() for c in self.commands],
        }

    def dump_json(self, path: str):
        """Write full diagnostic to JSON file."""
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2, default=str)


# ============================================================
# Logger Setup
# ============================================================
#
#   default         : nothing on stderr (console output only)
#   --verbose / -v  : info-level to stderr
#   --debug         : debug-level to stderr
#   --log FILE      : debug-level to file, independent of the above
#

def setup_logging(
    log_file: Optional[str] = None,
    debug: bool = False,
    verbose: bool = False,
) -> logging.Logger:
    """
    Configure logging for a run.

    - log_file: write debug-level to file
    - debug: debug-level to stderr
    - verbose: info-level to stderr
    """
    logger = logging.getLogger("v6reach")
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()

    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    if log_file:
        fh = logging.FileHandler(log_file, mode="w")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(formatter)
        logger.addHandler(fh)

    if debug or verbose:
        sh = logging.StreamHandler()
        sh.setLevel(logging.DEBUG if debug else logging.INFO)
        sh.setFormatter(formatter)
        logger.addHandler(sh)

    # Null handler if nothing else, prevents "no handler" warnings
    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    return logger


# ============================================================
# Diagnostic-Aware Parse Wrapper
# ============================================================
#
# Every parser call goes through this. The parse outcome is written
# back onto the CommandRecord that produced the output.
#

def parse_with_diagnostics(
    record: CommandRecord,
    parser_func: Callable[[str], Any],
    parser_name: str = "unknown",
    logger: Optional[logging.Logger] = None,
) -> Any:
    """
    Run parser_func over record.stdout and annotate the record.

    Returns whatever the parser returned; None/empty means nothing usable.
    Parsers are expected not to raise, but an exception is still caught
    and recorded rather than propagated.
    """
    raw_output = record.stdout
    record.parser_used = parser_name

    if not raw_output or not raw_output.strip():
        record.parse_result = ParseResult.EMPTY_INPUT
        record.parse_detail = "Empty or whitespace-only output"
        if logger:
            logger.debug(f"Empty output for: {record.command}")
        return None

    try:
        result = parser_func(raw_output)
    except json.JSONDecodeError as e:
        record.parse_result = ParseResult.JSON_ERROR
        record.parse_detail = f"JSON decode error at pos {e.pos}: {e.msg}"
        if logger:
            logger.error(
                f"JSON parse failed: {record.command}\n"
                f"  Error: {e.msg} at position {e.pos}\n"
                f"  Raw output:\n{_indent(raw_output[:500])}"
            )
        return None
    except Exception as e:
        record.parse_result = ParseResult.EXCEPTION
        record.parse_detail = f"{type(e).__name__}: {str(e)}"
        if logger:
            logger.error(
                f"Parser exception: {record.command}\n"
                f"  Parser: {parser_name}\n"
                f"  Exception: {type(e).__name__}: {e}\n"
                f"  Output:\n{_indent(raw_output[:500])}"
            )
        return None

    if result is None or result == []:
        record.parse_result = ParseResult.NO_MATCH
        record.parse_detail = "Parser found no records"
        if logger:
            logger.warning(
                f"Parse found nothing for: {record.command}\n"
                f"  Parser: {parser_name}\n"
                f"  Output ({len(raw_output)} chars):\n"
                f"{_indent(raw_output[:500])}"
            )
    else:
        record.parse_result = ParseResult.OK
        if logger:
            logger.debug(f"Parsed OK: {record.command} → {parser_name}")

    return result


def _indent(text: str, prefix: str = "    ") -> str:
    return "\n".join(prefix + line for line in text.splitlines())


# ============================================================
# Diagnostic Dump Formats
# ============================================================

def dump_command_detail(record: CommandRecord) -> str:
    """Multi-line detail for one command, for debug logs."""
    status_icon = {
        CommandStatus.SUCCESS: "✓",
        CommandStatus.EMPTY: "○",
        CommandStatus.ERROR: "✗",
        CommandStatus.TIMEOUT: "⏱",
        CommandStatus.SPAWN_FAILURE: "✗",
    }.get(record.status, "?")

    time_str = f" ({record.duration_ms:.0f}ms)" if record.duration_ms else ""
    lines = [f"[{status_icon}] {record.command}{time_str} rc={record.returncode}"]
    if record.error_message:
        lines.append(f"    error: {record.error_message}")
    if record.parse_result not in (ParseResult.OK, ParseResult.NOT_PARSED):
        lines.append(f"    parse: {record.parse_result.value} — {record.parse_detail}")
    return "\n".join(lines)
