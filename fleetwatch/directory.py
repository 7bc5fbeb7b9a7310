from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

from fleetwatch.errors import ConfigError, DeviceNotFound
from fleetwatch.models import DeviceEndpoint


class DeviceDirectory(Protocol):
    def list_devices(self) -> list[DeviceEndpoint]: ...


class StaticDirectory:
    """Fixed device list, normally built from the ``[device:*]`` config sections."""

    def __init__(self, endpoints: Iterable[DeviceEndpoint]) -> None:
        self._endpoints: dict[str, DeviceEndpoint] = {}
        for endpoint in endpoints:
            if endpoint.id in self._endpoints:
                raise ConfigError(f"Duplicate device id: {endpoint.id}")
            self._endpoints[endpoint.id] = endpoint

    def list_devices(self) -> list[DeviceEndpoint]:
        return list(self._endpoints.values())

    def get(self, device_id: str) -> DeviceEndpoint:
        try:
            return self._endpoints[device_id]
        except KeyError:
            raise DeviceNotFound(device_id) from None

    def __len__(self) -> int:
        return len(self._endpoints)
