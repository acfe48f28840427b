"""
Address discovery: which global IPv6 addresses does the interface carry?
"""

from __future__ import annotations
from typing import Optional
import logging

from .commands import CommandSet, Platform, get_command_set
from .diagnostics import RunDiagnostic, parse_with_diagnostics
from .errors import CommandError, DiscoveryError, RemediationError
from .models import Address
from .parsers import (
    PARSE_ADDRESS_LIST, PARSE_ADDRESS_QUERY, get_parser, get_parser_name,
)
from .runner import CommandRunner

logger = logging.getLogger("v6reach.discovery")


def filter_candidates(addresses: list[Address]) -> list[Address]:
    """
    Keep global-scope addresses only, first occurrence wins, listing
    order preserved.
    """
    seen: set[str] = set()
    candidates: list[Address] = []
    for addr in addresses:
        if not addr.is_global:
            logger.debug(f"Skipping {addr.scope.value} address {addr.value}")
            continue
        key = addr.value.lower()
        if key in seen:
            continue
        seen.add(key)
        candidates.append(addr)
    return candidates


class AddressDiscovery:
    """
    Enumerate and query interface addresses through the OS.

    Usage:
        discovery = AddressDiscovery(runner, Platform.WINDOWS)
        candidates = discovery.discover("Ethernet 2")
        current = discovery.query("2001:db8::5", "Ethernet 2")   # None → not there
    """

    def __init__(
        self,
        runner: CommandRunner,
        platform: Platform,
        command_timeout: Optional[float] = 30.0,
        diagnostics: Optional[RunDiagnostic] = None,
    ):
        self.runner = runner
        self.platform = platform
        self.commands: CommandSet = get_command_set(platform)
        self.command_timeout = command_timeout
        self.diagnostics = diagnostics

    def _record(self, record) -> None:
        if self.diagnostics is not None:
            self.diagnostics.add(record)

    def discover(self, interface: str) -> list[Address]:
        """Ordered, distinct global addresses on the interface."""
        argv = self.commands.render("list_addresses", interface=interface)
        try:
            record = self.runner.run(argv, timeout=self.command_timeout)
        except CommandError as e:
            raise DiscoveryError(
                f"Could not list addresses on '{interface}': {e.reason}"
            ) from e
        self._record(record)

        if not record.ok:
            raise DiscoveryError(
                f"Interface '{interface}' lookup failed: {record.error_text()}"
            )

        parser = get_parser(self.platform, PARSE_ADDRESS_LIST)
        listed = parse_with_diagnostics(
            record, parser,
            parser_name=get_parser_name(self.platform, PARSE_ADDRESS_LIST),
            logger=logger,
        ) or []

        for addr in listed:
            if not addr.interface:
                addr.interface = interface

        candidates = filter_candidates(listed)
        logger.info(
            f"{interface}: {len(listed)} address(es) listed, "
            f"{len(candidates)} global candidate(s)"
        )
        return candidates

    def query(self, address: str, interface: str) -> Optional[Address]:
        """
        Current metadata for one address on one interface, or None if it
        is not configured there. The same address on another interface
        counts as absent.

        Raises RemediationError when the OS query itself fails.
        """
        argv = self.commands.render(
            "query_address", address=address, interface=interface,
        )
        try:
            record = self.runner.run(argv, timeout=self.command_timeout)
        except CommandError as e:
            raise RemediationError(f"Query for {address} failed: {e.reason}") from e
        self._record(record)

        if not record.ok:
            raise RemediationError(
                f"Query for {address} failed: {record.error_text()}"
            )

        parser = get_parser(self.platform, PARSE_ADDRESS_QUERY)
        found = parse_with_diagnostics(
            record, parser,
            parser_name=get_parser_name(self.platform, PARSE_ADDRESS_QUERY),
            logger=None,
        )
        if found is not None and found.interface and (
                found.interface.lower() != interface.lower()):
            logger.debug(
                f"{address}: only found on {found.interface}, not {interface}"
            )
            found = None

        if found is None:
            logger.debug(f"{address}: not present on {interface}")
        else:
            found.interface = interface
            logger.debug(
                f"{address}: present on {found.interface or '?'} "
                f"(prefix {found.prefix_origin.value}, "
                f"suffix {found.suffix_origin.value}, {found.state.value})"
            )
        return found
