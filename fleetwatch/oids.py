"""Identifier catalog.

Standard identifiers come from MIB-II (RFC 1213) and HOST-RESOURCES-MIB
(RFC 2790); Unix counters come from the Net-SNMP UCD-SNMP-MIB. Windows agents
do not implement UCD, so memory, CPU and volumes are read from the
HOST-RESOURCES tables by index instead.
"""
from __future__ import annotations

# MIB-II system group
SYS_DESCR = "1.3.6.1.2.1.1.1.0"
SYS_UPTIME = "1.3.6.1.2.1.1.3.0"
SYS_CONTACT = "1.3.6.1.2.1.1.4.0"
SYS_NAME = "1.3.6.1.2.1.1.5.0"
SYS_LOCATION = "1.3.6.1.2.1.1.6.0"

# MIB-II interfaces group
IF_NUMBER = "1.3.6.1.2.1.2.1.0"

# HOST-RESOURCES-MIB
HR_MEMORY_SIZE = "1.3.6.1.2.1.25.2.2.0"
HR_STORAGE_TYPE = "1.3.6.1.2.1.25.2.3.1.2"
HR_STORAGE_DESCR = "1.3.6.1.2.1.25.2.3.1.3"
HR_STORAGE_UNITS = "1.3.6.1.2.1.25.2.3.1.4"
HR_STORAGE_SIZE = "1.3.6.1.2.1.25.2.3.1.5"
HR_STORAGE_USED = "1.3.6.1.2.1.25.2.3.1.6"
HR_PROCESSOR_LOAD = "1.3.6.1.2.1.25.3.3.1.2"

# hrStorageType values
HR_STORAGE_OTHER = "1.3.6.1.2.1.25.2.1.1"
HR_STORAGE_RAM = "1.3.6.1.2.1.25.2.1.2"
HR_STORAGE_VIRTUAL_MEMORY = "1.3.6.1.2.1.25.2.1.3"
HR_STORAGE_FIXED_DISK = "1.3.6.1.2.1.25.2.1.4"
HR_STORAGE_REMOVABLE_DISK = "1.3.6.1.2.1.25.2.1.5"
HR_STORAGE_FLOPPY_DISK = "1.3.6.1.2.1.25.2.1.6"
HR_STORAGE_COMPACT_DISC = "1.3.6.1.2.1.25.2.1.7"
HR_STORAGE_RAM_DISK = "1.3.6.1.2.1.25.2.1.8"
HR_STORAGE_FLASH_MEMORY = "1.3.6.1.2.1.25.2.1.9"
HR_STORAGE_NETWORK_DISK = "1.3.6.1.2.1.25.2.1.10"

# Storage types that never describe a real fixed volume.
NON_VOLUME_STORAGE_TYPES = frozenset(
    {
        HR_STORAGE_OTHER,
        HR_STORAGE_RAM,
        HR_STORAGE_VIRTUAL_MEMORY,
        HR_STORAGE_REMOVABLE_DISK,
        HR_STORAGE_FLOPPY_DISK,
        HR_STORAGE_COMPACT_DISC,
        HR_STORAGE_RAM_DISK,
    }
)

# UCD-SNMP-MIB (Net-SNMP) load averages
LA_LOAD_1MIN = "1.3.6.1.4.1.2021.10.1.3.1"
LA_LOAD_5MIN = "1.3.6.1.4.1.2021.10.1.3.2"
LA_LOAD_15MIN = "1.3.6.1.4.1.2021.10.1.3.3"

# UCD-SNMP-MIB systemStats percentages
SS_CPU_USER = "1.3.6.1.4.1.2021.11.9.0"
SS_CPU_SYSTEM = "1.3.6.1.4.1.2021.11.10.0"
SS_CPU_IDLE = "1.3.6.1.4.1.2021.11.11.0"

# UCD-SNMP-MIB memory, in kilobytes
MEM_TOTAL_REAL = "1.3.6.1.4.1.2021.4.5.0"
MEM_AVAIL_REAL = "1.3.6.1.4.1.2021.4.6.0"

# UCD-SNMP-MIB dskTable, sizes in kilobytes
DSK_PATH = "1.3.6.1.4.1.2021.9.1.2"
DSK_TOTAL = "1.3.6.1.4.1.2021.9.1.6"
DSK_AVAIL = "1.3.6.1.4.1.2021.9.1.7"
DSK_USED = "1.3.6.1.4.1.2021.9.1.8"

# Candidate identifiers for the 1-minute CPU figure on Unix agents, in
# preference order.
UNIX_CPU_1MIN_CANDIDATES: tuple[str, ...] = (
    LA_LOAD_1MIN,
    f"{HR_PROCESSOR_LOAD}.1",
)


def normalize_oid(raw: str) -> str:
    return raw.strip().lstrip(".")


def indexed(column: str, index: int) -> str:
    """Return the instance identifier for row ``index`` of a table column."""
    if index < 0:
        raise ValueError(f"Table index must be non-negative, got {index}")
    return f"{column}.{index}"


CATALOG: dict[str, dict[str, str]] = {
    "standard": {
        "System description": SYS_DESCR,
        "System uptime": SYS_UPTIME,
        "System name": SYS_NAME,
        "System contact": SYS_CONTACT,
        "System location": SYS_LOCATION,
        "Interface count": IF_NUMBER,
        "Memory size (KB)": HR_MEMORY_SIZE,
    },
    "unix": {
        "Load average 1min": LA_LOAD_1MIN,
        "Load average 5min": LA_LOAD_5MIN,
        "Load average 15min": LA_LOAD_15MIN,
        "CPU user %": SS_CPU_USER,
        "CPU system %": SS_CPU_SYSTEM,
        "CPU idle %": SS_CPU_IDLE,
        "Memory total (KB)": MEM_TOTAL_REAL,
        "Memory available (KB)": MEM_AVAIL_REAL,
        "Disk 1 path": indexed(DSK_PATH, 1),
        "Disk 1 total (KB)": indexed(DSK_TOTAL, 1),
    },
    "windows": {
        "Processor 1 load %": indexed(HR_PROCESSOR_LOAD, 1),
        "Storage 1 type": indexed(HR_STORAGE_TYPE, 1),
        "Storage 1 description": indexed(HR_STORAGE_DESCR, 1),
        "Storage 1 units": indexed(HR_STORAGE_UNITS, 1),
        "Storage 1 size": indexed(HR_STORAGE_SIZE, 1),
    },
}
