"""Probing helpers shared by the normalizer and the disk enumerator.

Fallback order is data: callers pass an ordered tuple of candidate
identifiers to :meth:`DeviceProbe.first_of` instead of nesting try/except
blocks. Index tables are scanned with an explicit :class:`ScanPolicy`.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from enum import Enum
import logging
import re
from typing import Protocol, TypeVar

from fleetwatch.errors import ParseError, UnsupportedIdentifier
from fleetwatch.models import DeviceEndpoint
from fleetwatch.oids import indexed

T = TypeVar("T")
R = TypeVar("R")

_LEADING_NUMBER = re.compile(r"^\s*([-+]?\d+(?:\.\d+)?)")


class ScalarClient(Protocol):
    def get(self, endpoint: DeviceEndpoint, oid: str) -> str: ...


class ScanPolicy(str, Enum):
    # Stop at the first unsupported index: the table is indexed 1..n with no gaps.
    DENSE = "dense"
    # Keep going to the bound: indices may skip values.
    SPARSE = "sparse"


def parse_float(raw: str) -> float:
    try:
        return float(raw.strip())
    except ValueError:
        pass
    match = _LEADING_NUMBER.match(raw)
    if match is None:
        raise ParseError(f"Not a number: {raw!r}")
    return float(match.group(1))


def parse_int(raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError:
        pass
    value = parse_float(raw)
    if not value.is_integer():
        raise ParseError(f"Not an integer: {raw!r}")
    return int(value)


def first_success(candidates: Iterable[T], attempt: Callable[[T], R | None]) -> R | None:
    """Return the first non-None result of ``attempt`` over ``candidates``."""
    for candidate in candidates:
        result = attempt(candidate)
        if result is not None:
            return result
    return None


class DeviceProbe:
    """A client bound to one endpoint for the duration of one collection.

    ``SnmpTimeout`` and ``SnmpProtocolError`` always propagate: losing
    contact with the device is never downgraded to a missing field.
    """

    def __init__(self, client: ScalarClient, endpoint: DeviceEndpoint) -> None:
        self.client = client
        self.endpoint = endpoint
        self.logger = logging.getLogger(self.__class__.__name__)

    def get(self, oid: str) -> str:
        return self.client.get(self.endpoint, oid)

    def optional(self, oid: str) -> str | None:
        try:
            return self.get(oid)
        except UnsupportedIdentifier:
            self.logger.debug("%s: %s not supported", self.endpoint.name, oid)
            return None

    def optional_parsed(self, oid: str, parse: Callable[[str], R]) -> R | None:
        raw = self.optional(oid)
        if raw is None:
            return None
        try:
            return parse(raw)
        except ParseError:
            self.logger.warning("%s: unparseable value for %s: %r", self.endpoint.name, oid, raw)
            return None

    def optional_int(self, oid: str) -> int | None:
        return self.optional_parsed(oid, parse_int)

    def optional_float(self, oid: str) -> float | None:
        return self.optional_parsed(oid, parse_float)

    def first_of(self, oids: Iterable[str], parse: Callable[[str], R]) -> R | None:
        return first_success(oids, lambda oid: self.optional_parsed(oid, parse))

    def scan(self, column: str, limit: int, policy: ScanPolicy) -> Iterator[tuple[int, str]]:
        """Yield ``(index, raw)`` for rows 1..limit of ``column`` that exist."""
        for index in range(1, limit + 1):
            raw = self.optional(indexed(column, index))
            if raw is None:
                if policy is ScanPolicy.DENSE:
                    return
                continue
            yield index, raw
