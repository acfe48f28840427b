# tests/test_runner.py
import subprocess

import pytest

from v6reach.diagnostics import CommandStatus
from v6reach.errors import CommandError
from v6reach.runner import CommandRunner, format_argv


def fake_run(returncode=0, stdout="", stderr="", raises=None):
    seen = {}

    def run(argv, **kwargs):
        seen["argv"] = argv
        seen["kwargs"] = kwargs
        if raises is not None:
            raise raises
        return subprocess.CompletedProcess(argv, returncode, stdout, stderr)

    return run, seen


def test_format_argv_quotes_spaces():
    assert format_argv(["netsh", "interface=Ethernet 2"]) == 'netsh "interface=Ethernet 2"'


def test_success_record(monkeypatch):
    run, seen = fake_run(stdout="3 packets transmitted, 3 received\n")
    monkeypatch.setattr(subprocess, "run", run)

    record = CommandRunner().run(["ping", "-6", "-c", "3", "::1"], timeout=5)

    assert record.ok
    assert record.status == CommandStatus.SUCCESS
    assert record.command == "ping -6 -c 3 ::1"
    assert seen["argv"] == ["ping", "-6", "-c", "3", "::1"]
    assert seen["kwargs"]["timeout"] == 5
    assert seen["kwargs"]["stdin"] == subprocess.DEVNULL


def test_nonzero_exit_is_data(monkeypatch):
    run, _ = fake_run(returncode=1, stderr="Device \"eth9\" does not exist.\n")
    monkeypatch.setattr(subprocess, "run", run)

    record = CommandRunner().run(["ip", "-6", "addr", "show", "dev", "eth9"])

    assert not record.ok
    assert record.status == CommandStatus.ERROR
    assert "does not exist" in record.error_message


def test_empty_output_status(monkeypatch):
    run, _ = fake_run(stdout="  \n")
    monkeypatch.setattr(subprocess, "run", run)
    assert CommandRunner().run(["true"]).status == CommandStatus.EMPTY


def test_spawn_failure_raises(monkeypatch):
    run, _ = fake_run(raises=FileNotFoundError(2, "No such file or directory"))
    monkeypatch.setattr(subprocess, "run", run)

    with pytest.raises(CommandError) as exc:
        CommandRunner().run(["ifconfig", "eth0"])
    assert exc.value.command == "ifconfig eth0"
    assert exc.value.reason.startswith("could not start")


def test_timeout_raises(monkeypatch):
    run, _ = fake_run(raises=subprocess.TimeoutExpired(["sysctl"], 30))
    monkeypatch.setattr(subprocess, "run", run)

    with pytest.raises(CommandError, match="timed out after 30"):
        CommandRunner().run(["sysctl", "-w", "x=1"], timeout=30)
