from __future__ import annotations

from collections.abc import Callable
import logging
import re

from fleetwatch import oids
from fleetwatch.config import PollConfig
from fleetwatch.errors import ParseError, UnsupportedIdentifier
from fleetwatch.models import DeviceEndpoint, OsFamily, VolumeInfo
from fleetwatch.oids import indexed
from fleetwatch.probe import DeviceProbe, ScalarClient, ScanPolicy, parse_int

MIN_VOLUME_BYTES = 1024 * 1024

_DRIVE_LETTER = re.compile(r"^([A-Za-z]:)\\")

TYPE_TAGS = {
    oids.HR_STORAGE_FIXED_DISK: "fixed",
    oids.HR_STORAGE_NETWORK_DISK: "network",
    oids.HR_STORAGE_FLASH_MEMORY: "flash",
}


def volume_path(description: str) -> str:
    """``"C:\\ Label:Local"`` -> ``"C:"``; anything else -> its first token."""
    match = _DRIVE_LETTER.match(description)
    if match:
        return match.group(1).upper()
    tokens = description.split()
    return tokens[0] if tokens else description


def is_volume_entry(type_oid: str, description: str) -> bool:
    if type_oid == oids.HR_STORAGE_FIXED_DISK:
        return True
    if type_oid in oids.NON_VOLUME_STORAGE_TYPES:
        return False
    return ":" in description or "/" in description


class DiskEnumerator:
    """Lists a device's volumes in discovery order."""

    def __init__(self, client: ScalarClient, poll: PollConfig | None = None) -> None:
        self.client = client
        self.poll = poll or PollConfig()
        self.logger = logging.getLogger(self.__class__.__name__)
        self._strategies = {
            OsFamily.UNIX: self._enumerate_unix,
            OsFamily.WINDOWS: self._enumerate_windows,
        }

    def enumerate(self, endpoint: DeviceEndpoint, os_family: OsFamily) -> list[VolumeInfo]:
        strategy = self._strategies.get(os_family)
        if strategy is None:
            raise ValueError(f"No disk strategy for OS family {os_family.value!r}")
        volumes = strategy(DeviceProbe(self.client, endpoint))
        self.logger.debug("%s: %d volume(s)", endpoint.name, len(volumes))
        return volumes

    def _enumerate_unix(self, probe: DeviceProbe) -> list[VolumeInfo]:
        volumes: list[VolumeInfo] = []
        for index, path in probe.scan(oids.DSK_PATH, self.poll.disk_probe_limit, ScanPolicy.DENSE):
            try:
                volumes.append(self._ucd_volume(probe, index, path.strip()))
            except (ParseError, UnsupportedIdentifier) as exc:
                self.logger.debug("%s: skipping dskTable row %s (%s)", probe.endpoint.name, index, exc)
        if volumes:
            return volumes
        self.logger.debug("%s: dskTable empty, falling back to hrStorage", probe.endpoint.name)
        return self._enumerate_storage(probe, self._accept_unix_storage)

    def _enumerate_windows(self, probe: DeviceProbe) -> list[VolumeInfo]:
        return self._enumerate_storage(probe, is_volume_entry)

    @staticmethod
    def _accept_unix_storage(type_oid: str, description: str) -> bool:
        if type_oid in (oids.HR_STORAGE_OTHER, oids.HR_STORAGE_RAM, oids.HR_STORAGE_VIRTUAL_MEMORY):
            return False
        return description.startswith("/") or type_oid == oids.HR_STORAGE_FIXED_DISK

    def _ucd_volume(self, probe: DeviceProbe, index: int, path: str) -> VolumeInfo:
        total_kb = parse_int(probe.get(indexed(oids.DSK_TOTAL, index)))
        avail_kb = parse_int(probe.get(indexed(oids.DSK_AVAIL, index)))
        used_kb = parse_int(probe.get(indexed(oids.DSK_USED, index)))
        return VolumeInfo.from_raw(path, total_kb, used_kb, avail_kb, 1024, "fixed", description=path)

    def _enumerate_storage(
        self, probe: DeviceProbe, accept: Callable[[str, str], bool]
    ) -> list[VolumeInfo]:
        volumes: list[VolumeInfo] = []
        for index, raw_type in probe.scan(oids.HR_STORAGE_TYPE, self.poll.disk_probe_limit, ScanPolicy.SPARSE):
            type_oid = oids.normalize_oid(raw_type)
            try:
                description = probe.get(indexed(oids.HR_STORAGE_DESCR, index)).strip()
                if not accept(type_oid, description):
                    continue
                volume = self._storage_volume(probe, index, type_oid, description)
            except (ParseError, UnsupportedIdentifier) as exc:
                self.logger.debug("%s: skipping hrStorage row %s (%s)", probe.endpoint.name, index, exc)
                continue
            if volume is not None:
                volumes.append(volume)
        return volumes

    def _storage_volume(
        self, probe: DeviceProbe, index: int, type_oid: str, description: str
    ) -> VolumeInfo | None:
        units = parse_int(probe.get(indexed(oids.HR_STORAGE_UNITS, index)))
        size = parse_int(probe.get(indexed(oids.HR_STORAGE_SIZE, index)))
        used = parse_int(probe.get(indexed(oids.HR_STORAGE_USED, index)))
        total_bytes = units * size
        if total_bytes < MIN_VOLUME_BYTES:
            return None
        return VolumeInfo.from_raw(
            volume_path(description),
            size,
            used,
            max(size - used, 0),
            units,
            TYPE_TAGS.get(type_oid, "other"),
            description=description,
        )
