# tests/test_report.py
from conftest import ADDR_A, ADDR_B, ADDR_T
from v6reach.events import DisplayStatus
from v6reach.models import (
    Address, ProbeResult, RemovalMethod, RemovalOutcome, TestRun,
)
from v6reach.report import removal_status, render_results, run_to_dict, summarize


def _results(*flags):
    addrs = [ADDR_A, ADDR_B, ADDR_T]
    return [
        ProbeResult(address=addrs[i], success=ok, message="reached" if ok else "timed out")
        for i, ok in enumerate(flags)
    ]


def test_summary_counts_add_up():
    for flags in [(), (True,), (False,), (True, False), (False, False, True)]:
        s = summarize(_results(*flags))
        assert s.succeeded + s.failed == s.total == len(flags)


def test_summary_keeps_launch_order():
    s = summarize(_results(False, True, False))
    assert s.ok_addresses == [ADDR_B]
    assert s.failed_addresses == [ADDR_A, ADDR_T]


def test_render_prints_each_address_and_tally(console_buffer):
    console, buf = console_buffer
    results = [
        ProbeResult(address=ADDR_A, success=True, message="reached google.com",
                    stats="3 packets transmitted, 3 received, 0% packet loss"),
        ProbeResult(address=ADDR_B, success=False, message="cannot reach google.com"),
    ]
    summary = render_results(console, results)
    out = buf.getvalue()

    assert summary.total == 2
    assert ADDR_A in out and ADDR_B in out
    assert "3 packets transmitted" in out
    assert "Total: 2" in out
    assert "Succeeded: 1" in out
    assert "Failed: 1" in out


def test_test_run_failed_addresses_follow_discovery_order():
    run = TestRun(interface="eth0", target="google.com",
                  candidates=[Address(value=a) for a in (ADDR_A, ADDR_B, ADDR_T)])
    # results arrive in a different order than discovery
    run.results = list(reversed(_results(False, True, False)))
    assert run.failed_addresses == [ADDR_A, ADDR_T]
    assert (run.total, run.succeeded, run.failed) == (3, 1, 2)


def test_removal_status_wording():
    cases = [
        (RemovalOutcome(ADDR_B, RemovalMethod.ALREADY_ABSENT, verified=True),
         (DisplayStatus.REMOVED, "already removed")),
        (RemovalOutcome(ADDR_B, RemovalMethod.PS_CMDLET, verified=True),
         (DisplayStatus.REMOVED, "confirmed removed via ps-cmdlet")),
        (RemovalOutcome(ADDR_B, RemovalMethod.LEGACY_TOOL, still_present=True),
         (DisplayStatus.STILL_PRESENT,
          "legacy-tool reported success but address is still present")),
        (RemovalOutcome(ADDR_B, RemovalMethod.NONE),
         (DisplayStatus.WARNING, "could not remove")),
    ]
    for outcome, expected in cases:
        assert removal_status(outcome) == expected


def test_privacy_cycle_reads_weaker_than_removal():
    status, text = removal_status(RemovalOutcome(ADDR_T, RemovalMethod.PRIVACY_CYCLE))
    assert status == DisplayStatus.REGENERATE
    assert "removed" not in text


def test_run_to_dict_shape():
    run = TestRun(interface="eth0", target="google.com",
                  candidates=[Address(value=ADDR_A), Address(value=ADDR_B)],
                  results=_results(True, False))
    data = run_to_dict(run, [RemovalOutcome(ADDR_B, RemovalMethod.NONE)], {}, 0)
    assert data["summary"] == {"total": 2, "succeeded": 1, "failed": 1}
    assert data["failed_addresses"] == [ADDR_B]
    assert data["removals"][0]["method"] == "none"
    assert data["exit_code"] == 0
