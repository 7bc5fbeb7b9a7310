"""Pytest configuration and shared fixtures."""
from __future__ import annotations

import threading

import pytest

from fleetwatch import oids
from fleetwatch.errors import UnsupportedIdentifier
from fleetwatch.models import DeviceEndpoint


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "windows: mark test as Windows-agent specific"
    )
    config.addinivalue_line(
        "markers", "unix: mark test as Unix-agent (Net-SNMP) specific"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as integration test"
    )


class FakeAgent:
    """In-memory stand-in for SnmpClient.

    ``responses`` maps address -> {oid: value}. A value that is an exception
    instance is raised; a missing oid raises UnsupportedIdentifier.
    """

    def __init__(self, responses: dict[str, dict[str, object]] | None = None) -> None:
        self.responses = responses or {}
        self.calls: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    def get(self, endpoint: DeviceEndpoint, oid: str) -> str:
        with self._lock:
            self.calls.append((endpoint.address, oid))
        table = self.responses.get(endpoint.address, {})
        if oid not in table:
            raise UnsupportedIdentifier(f"{oid} not supported", address=endpoint.address, oid=oid)
        value = table[oid]
        if isinstance(value, BaseException):
            raise value
        return str(value)

    def oids_for(self, address: str) -> list[str]:
        return [oid for called, oid in self.calls if called == address]


def make_endpoint(device_id: str = "srv-1", name: str | None = None, address: str = "10.0.0.1") -> DeviceEndpoint:
    return DeviceEndpoint(id=device_id, name=name or device_id, address=address)


def unix_agent_table(
    load_1min: str = "0.15",
    mem_total_kb: int = 8388608,
    mem_avail_kb: int = 4194304,
    disks: tuple[tuple[str, int, int, int], ...] = (("/", 104857600, 52428800, 52428800),),
) -> dict[str, object]:
    """Net-SNMP style agent; ``disks`` rows are (path, total_kb, avail_kb, used_kb)."""
    table: dict[str, object] = {
        oids.SYS_DESCR: "Linux web01 5.15.0-91-generic #101-Ubuntu SMP x86_64",
        oids.SYS_UPTIME: "9000000",
        oids.SYS_NAME: "web01",
        oids.IF_NUMBER: "3",
        oids.LA_LOAD_1MIN: load_1min,
        oids.LA_LOAD_5MIN: "0.10",
        oids.LA_LOAD_15MIN: "0.05",
        oids.MEM_TOTAL_REAL: str(mem_total_kb),
        oids.MEM_AVAIL_REAL: str(mem_avail_kb),
    }
    for index, (path, total_kb, avail_kb, used_kb) in enumerate(disks, start=1):
        table[oids.indexed(oids.DSK_PATH, index)] = path
        table[oids.indexed(oids.DSK_TOTAL, index)] = str(total_kb)
        table[oids.indexed(oids.DSK_AVAIL, index)] = str(avail_kb)
        table[oids.indexed(oids.DSK_USED, index)] = str(used_kb)
    return table


def windows_agent_table(
    processor_loads: dict[int, int] | None = None,
    storage: dict[int, tuple[str, str, int, int, int]] | None = None,
) -> dict[str, object]:
    """Windows SNMP service; ``storage`` rows are index -> (type, descr, units, size, used)."""
    if processor_loads is None:
        processor_loads = {2: 10, 3: 30}
    if storage is None:
        storage = {
            1: (oids.HR_STORAGE_FIXED_DISK, "C:\\ Label:  Serial Number 1a2b3c4d", 4096, 26214400, 13107200),
            4: (oids.HR_STORAGE_VIRTUAL_MEMORY, "Virtual Memory", 65536, 262144, 65536),
            5: (oids.HR_STORAGE_RAM, "Physical Memory", 65536, 262144, 131072),
        }
    table: dict[str, object] = {
        oids.SYS_DESCR: "Hardware: Intel64 Family 6 - Software: Windows Version 6.3 (Build 17763 Multiprocessor Free)",
        oids.SYS_UPTIME: "12345",
        oids.SYS_NAME: "DC01",
        oids.IF_NUMBER: "12",
    }
    for index, load in processor_loads.items():
        table[oids.indexed(oids.HR_PROCESSOR_LOAD, index)] = str(load)
    for index, (type_oid, descr, units, size, used) in storage.items():
        table[oids.indexed(oids.HR_STORAGE_TYPE, index)] = type_oid
        table[oids.indexed(oids.HR_STORAGE_DESCR, index)] = descr
        table[oids.indexed(oids.HR_STORAGE_UNITS, index)] = str(units)
        table[oids.indexed(oids.HR_STORAGE_SIZE, index)] = str(size)
        table[oids.indexed(oids.HR_STORAGE_USED, index)] = str(used)
    return table


@pytest.fixture
def endpoint():
    return make_endpoint()


@pytest.fixture
def unix_agent(endpoint):
    return FakeAgent({endpoint.address: unix_agent_table()})


@pytest.fixture
def windows_agent(endpoint):
    return FakeAgent({endpoint.address: windows_agent_table()})
