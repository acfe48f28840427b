# tests/test_discovery.py
import json

import pytest

from conftest import (
    ADDR_A, ADDR_B, ADDR_T, LINK_LOCAL, WINDOWS_NETSH_LISTING,
    linux_listing, linux_query, reply, spawn_failure,
)
from v6reach.commands import Platform
from v6reach.diagnostics import ParseResult, RunDiagnostic
from v6reach.discovery import AddressDiscovery, filter_candidates
from v6reach.errors import DiscoveryError, RemediationError
from v6reach.models import Address, SuffixOrigin


def test_filter_drops_link_local_loopback_and_duplicates():
    listed = [
        Address(value=ADDR_A),
        Address(value="FE80::1"),
        Address(value="::1"),
        Address(value=ADDR_B),
        Address(value=ADDR_A.upper()),
    ]
    kept = filter_candidates(listed)
    assert [a.value for a in kept] == [ADDR_A, ADDR_B]
    for a in kept:
        assert not a.value.lower().startswith("fe80:")
        assert a.value != "::1"


def test_discover_linux(runner):
    runner.on("addr show dev eth0", reply(linux_listing(LINK_LOCAL, ADDR_B, ADDR_A, ADDR_T)))
    discovery = AddressDiscovery(runner, Platform.LINUX)

    found = discovery.discover("eth0")

    assert [a.value for a in found] == [ADDR_B, ADDR_A, ADDR_T]
    assert runner.calls == ["ip -6 -j addr show dev eth0"]


def test_discover_windows_fills_interface(runner):
    runner.on("netsh", "show addresses", reply(WINDOWS_NETSH_LISTING))
    discovery = AddressDiscovery(runner, Platform.WINDOWS)

    found = discovery.discover("Ethernet 2")

    assert [a.value for a in found] == [ADDR_A, ADDR_B]
    assert all(a.interface == "Ethernet 2" for a in found)
    assert runner.calls == ["netsh interface ipv6 show addresses interface=Ethernet 2"]


def test_missing_interface_raises(runner):
    runner.on("addr show dev", reply(stderr='Device "eth9" does not exist.', returncode=1))
    discovery = AddressDiscovery(runner, Platform.LINUX)

    with pytest.raises(DiscoveryError, match="does not exist"):
        discovery.discover("eth9")


def test_spawn_failure_raises_discovery_error(runner):
    runner.on("addr show dev", spawn_failure("ip"))
    with pytest.raises(DiscoveryError, match="could not start"):
        AddressDiscovery(runner, Platform.LINUX).discover("eth0")


def test_unparseable_listing_is_empty_not_error(runner):
    runner.on("addr show dev eth0", reply("Warning: something changed\n"))
    diag = RunDiagnostic(interface="eth0", target="google.com")
    discovery = AddressDiscovery(runner, Platform.LINUX, diagnostics=diag)

    assert discovery.discover("eth0") == []
    assert diag.commands[0].parse_result == ParseResult.NO_MATCH


def test_query_present_and_absent(runner):
    runner.on("show to " + ADDR_T, reply(linux_query(ADDR_T)))
    runner.on("show to " + ADDR_B, reply(linux_query(None)))
    discovery = AddressDiscovery(runner, Platform.LINUX)

    present = discovery.query(ADDR_T, "eth0")
    assert present.suffix_origin == SuffixOrigin.RANDOM
    assert present.interface == "eth0"
    assert discovery.query(ADDR_B, "eth0") is None


def test_windows_query_empty_output_is_absent(runner):
    runner.on("Get-NetIPAddress", reply(""))
    assert AddressDiscovery(runner, Platform.WINDOWS).query(ADDR_B, "Ethernet 2") is None


def test_windows_query_parses_metadata(runner):
    runner.on("Get-NetIPAddress", reply(json.dumps({
        "IPAddress": ADDR_B, "InterfaceAlias": "Ethernet 2",
        "PrefixOrigin": 1, "SuffixOrigin": 1, "AddressState": 4,
    })))
    found = AddressDiscovery(runner, Platform.WINDOWS).query(ADDR_B, "Ethernet 2")
    assert found.interface == "Ethernet 2"
    assert found.suffix_origin == SuffixOrigin.MANUAL


def test_query_failure_raises_remediation_error(runner):
    runner.on("show to", reply(stderr="RTNETLINK answers: Operation not permitted", returncode=2))
    with pytest.raises(RemediationError, match="not permitted"):
        AddressDiscovery(runner, Platform.LINUX).query(ADDR_B, "eth0")


def test_query_on_other_interface_is_absent(runner):
    runner.on("show to", reply(linux_query(ADDR_B, ifname="eth1")))
    discovery = AddressDiscovery(runner, Platform.LINUX)

    assert discovery.query(ADDR_B, "eth0") is None
    assert runner.calls == [f"ip -6 -j addr show to {ADDR_B} dev eth0"]


def test_windows_query_names_the_interface(runner):
    runner.on("Get-NetIPAddress", reply(json.dumps({
        "IPAddress": ADDR_B, "InterfaceAlias": "Wi-Fi", "SuffixOrigin": 1,
    })))
    discovery = AddressDiscovery(runner, Platform.WINDOWS)

    assert discovery.query(ADDR_B, "Ethernet 2") is None
    assert "-InterfaceAlias 'Ethernet 2'" in runner.calls[0]
