from __future__ import annotations


class FleetWatchError(Exception):
    """Base class for every error raised by fleetwatch."""


class ConfigError(FleetWatchError):
    pass


class SnmpError(FleetWatchError):
    """A single SNMP GET did not produce a usable value."""

    def __init__(self, message: str, address: str | None = None, oid: str | None = None) -> None:
        super().__init__(message)
        self.address = address
        self.oid = oid


class SnmpTimeout(SnmpError):
    """No reply within the retries x timeout budget."""


class SnmpProtocolError(SnmpError):
    """The agent replied with an error status, or the engine reported a failure."""


class UnsupportedIdentifier(SnmpError):
    """The agent has no such object or instance.

    This is an expected answer: the device or its OS simply does not expose
    that identifier.
    """


class ParseError(FleetWatchError, ValueError):
    """A raw value could not be decoded as a number."""


class MetricUnavailable(FleetWatchError):
    """A metric could not be located on the device within its probe bounds."""


class CollectionError(FleetWatchError):
    """Failure that escaped a per-device collection pipeline."""

    def __init__(self, device_id: str, message: str) -> None:
        super().__init__(message)
        self.device_id = device_id


class DeviceNotFound(FleetWatchError, KeyError):
    def __init__(self, device_id: str) -> None:
        super().__init__(device_id)
        self.device_id = device_id

    def __str__(self) -> str:
        return f"Unknown device: {self.device_id}"
