# tests/conftest.py
import io
import json
import threading
from collections import deque

import pytest
from rich.console import Console

from v6reach.diagnostics import CommandRecord, CommandStatus
from v6reach.errors import CommandError


def reply(stdout="", returncode=0, stderr=""):
    status = CommandStatus.SUCCESS
    if returncode != 0:
        status = CommandStatus.ERROR
    elif not stdout.strip():
        status = CommandStatus.EMPTY
    return {"stdout": stdout, "stderr": stderr, "returncode": returncode, "status": status}


class FakeRunner:
    """
    Scripted stand-in for CommandRunner.

    runner.on("ping", "2001:db8::a", reply("... 3 received ..."))
    A rule matches when every needle is a substring of the space-joined argv.
    Several replies for one rule are served in order; the last one repeats.
    A reply may be a dict from reply(), an Exception instance to raise, or a
    callable(argv) returning either.
    Unscripted commands fail with exit code 1.
    """

    def __init__(self):
        self.rules = []
        self.calls = []
        self._lock = threading.Lock()

    def on(self, *needles_and_reply):
        *needles, response = needles_and_reply
        responses = response if isinstance(response, list) else [response]
        self.rules.append((tuple(needles), deque(responses)))
        return self

    def called(self, *needles):
        return [c for c in self.calls if all(n in c for n in needles)]

    def run(self, argv, timeout=None):
        command = " ".join(str(a) for a in argv)
        with self._lock:
            self.calls.append(command)
            response = None
            for needles, responses in self.rules:
                if all(n in command for n in needles):
                    response = responses.popleft() if len(responses) > 1 else responses[0]
                    break

        if callable(response):
            response = response(argv)
        if response is None:
            response = reply(stderr=f"unscripted: {command}", returncode=1)
        if isinstance(response, Exception):
            raise response

        record = CommandRecord(command=command, **response)
        if record.returncode != 0:
            record.error_message = record.error_text()
        return record


# ============================================================
# Sample output
# ============================================================

ADDR_A = "2001:db8:1::a"            # SLAAC, stable suffix
ADDR_B = "2001:db8:1::b"            # manual
ADDR_T = "2001:db8:1:0:9c4e:1f2a:3b4c:5d6e"   # temporary (privacy)
LINK_LOCAL = "fe80::1c2d:3e4f:5a6b:7c8d"

LINUX_ADDR_INFO = {
    ADDR_A: {"family": "inet6", "local": ADDR_A, "prefixlen": 64, "scope": "global",
             "dynamic": True, "mngtmpaddr": True,
             "valid_life_time": 86300, "preferred_life_time": 14300},
    ADDR_B: {"family": "inet6", "local": ADDR_B, "prefixlen": 64, "scope": "global",
             "valid_life_time": 4294967295, "preferred_life_time": 4294967295},
    ADDR_T: {"family": "inet6", "local": ADDR_T, "prefixlen": 64, "scope": "global",
             "temporary": True, "dynamic": True},
    LINK_LOCAL: {"family": "inet6", "local": LINK_LOCAL, "prefixlen": 64, "scope": "link"},
}


def linux_listing(*addresses, ifname="eth0"):
    return json.dumps([{
        "ifindex": 2, "ifname": ifname,
        "flags": ["BROADCAST", "MULTICAST", "UP", "LOWER_UP"],
        "mtu": 1500, "operstate": "UP",
        "addr_info": [LINUX_ADDR_INFO[a] for a in addresses],
    }])


def linux_query(address=None, ifname="eth0"):
    """`ip -6 -j addr show to X`: empty addr_info lists when absent."""
    if address is None:
        return json.dumps([{"ifindex": 1, "ifname": "lo", "addr_info": []}])
    return linux_listing(address, ifname=ifname)


LINUX_PING_OK = """\
PING google.com(lhr48s29-in-x0e.1e100.net (2a00:1450:4009:81f::200e)) from {src} : 56 data bytes
64 bytes from 2a00:1450:4009:81f::200e: icmp_seq=1 ttl=117 time=9.21 ms
64 bytes from 2a00:1450:4009:81f::200e: icmp_seq=2 ttl=117 time=9.02 ms
64 bytes from 2a00:1450:4009:81f::200e: icmp_seq=3 ttl=117 time=9.11 ms

--- google.com ping statistics ---
3 packets transmitted, 3 received, 0% packet loss, time 2003ms
rtt min/avg/max/mdev = 9.021/9.113/9.210/0.077 ms
"""

LINUX_PING_FAIL = """\
PING google.com(lhr48s29-in-x0e.1e100.net (2a00:1450:4009:81f::200e)) from {src} : 56 data bytes

--- google.com ping statistics ---
3 packets transmitted, 0 received, 100% packet loss, time 2050ms
"""

WINDOWS_NETSH_LISTING = """\

Addr Type  DAD State   Valid Life Pref. Life Address
---------  ----------- ---------- ---------- ------------------------
Public     Preferred     86400s     14400s 2001:db8:1::a
Manual     Preferred   infinite   infinite 2001:db8:1::b
Other      Preferred   infinite   infinite fe80::1c2d:3e4f:5a6b:7c8d%12

"""

WINDOWS_PING_OK = """\

Pinging google.com [2a00:1450:4009:81f::200e] from 2001:db8:1::a with 32 bytes of data:
Reply from 2a00:1450:4009:81f::200e: time=9ms
Reply from 2a00:1450:4009:81f::200e: time=9ms
Reply from 2a00:1450:4009:81f::200e: time=10ms

Ping statistics for 2a00:1450:4009:81f::200e:
    Packets: Sent = 3, Received = 3, Lost = 0 (0% loss),
Approximate round trip times in milli-seconds:
    Minimum = 9ms, Maximum = 10ms, Average = 9ms
"""

WINDOWS_PING_FAIL = """\

Pinging google.com [2a00:1450:4009:81f::200e] from 2001:db8:1::b with 32 bytes of data:
Request timed out.
Request timed out.
Request timed out.

Ping statistics for 2a00:1450:4009:81f::200e:
    Packets: Sent = 3, Received = 0, Lost = 3 (100% loss),
"""

LINUX_ROUTES = """\
2001:db8:1::/64 dev eth0 proto ra metric 100 pref medium
2001:db8:1::b dev eth0 proto static metric 1024 pref medium
2001:db8:9::/48 via fe80::1 dev eth0 src 2001:db8:1::b metric 1024 pref medium
2001:db8:1::bb dev eth0 proto static metric 1024 pref medium
fe80::/64 dev eth0 proto kernel metric 256 pref medium
default via fe80::1 dev eth0 proto ra metric 100 pref medium
"""


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def console_buffer():
    buf = io.StringIO()
    console = Console(file=buf, width=200, highlight=False, color_system=None)
    return console, buf


def spawn_failure(command="ping"):
    return CommandError(command, "could not start: [Errno 2] No such file or directory")
