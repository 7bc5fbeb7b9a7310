from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

CRITICAL_VOLUME_PCT = 90.0
BYTES_PER_GB = 1024 ** 3


class OsFamily(str, Enum):
    WINDOWS = "windows"
    UNIX = "unix"
    UNKNOWN = "unknown"


class DeviceStatus(str, Enum):
    UNKNOWN = "UNKNOWN"
    OFFLINE = "OFFLINE"
    ONLINE = "ONLINE"
    WARNING = "WARNING"
    ERROR = "ERROR"


@dataclass(frozen=True)
class DeviceEndpoint:
    id: str
    name: str
    address: str
    community: str = "public"
    timeout_s: float = 5.0
    retries: int = 3
    port: int = 161
    os_label: str = "N/A"

    @property
    def budget_s(self) -> float:
        """Worst-case wall time of one GET against this endpoint."""
        return self.timeout_s * (self.retries + 1)


def usage_percent(total: float | None, used: float | None) -> float:
    """Percentage of ``total`` taken by ``used``.

    A missing or non-positive total yields 0.0 instead of raising or
    producing NaN.
    """
    if not total or total <= 0 or used is None:
        return 0.0
    return (float(used) / float(total)) * 100.0


@dataclass(frozen=True)
class VolumeInfo:
    path: str
    total_gb: float
    used_gb: float
    available_gb: float
    type_tag: str
    description: str = ""
    usage_percent: float = field(init=False, default=0.0)

    def __post_init__(self) -> None:
        # Always derived from total/used, never taken from the agent.
        object.__setattr__(self, "usage_percent", usage_percent(self.total_gb, self.used_gb))

    @classmethod
    def from_raw(
        cls,
        path: str,
        total: int,
        used: int,
        available: int,
        unit_bytes: int,
        type_tag: str,
        description: str = "",
    ) -> VolumeInfo:
        """Build from raw agent counts, each worth ``unit_bytes`` bytes.

        The GB fields are rounded for display; usage comes from the raw counts.
        """
        volume = cls(
            path=path,
            total_gb=round(total * unit_bytes / BYTES_PER_GB, 2),
            used_gb=round(used * unit_bytes / BYTES_PER_GB, 2),
            available_gb=round(available * unit_bytes / BYTES_PER_GB, 2),
            type_tag=type_tag,
            description=description,
        )
        object.__setattr__(volume, "usage_percent", usage_percent(total, used))
        return volume

    @property
    def is_critical(self) -> bool:
        return self.usage_percent >= CRITICAL_VOLUME_PCT

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "description": self.description,
            "total_gb": self.total_gb,
            "used_gb": self.used_gb,
            "available_gb": self.available_gb,
            "usage_pct": round(self.usage_percent, 2),
            "type": self.type_tag,
        }


@dataclass(frozen=True)
class HostMetrics:
    """Normalized metrics for one device; every field is optional."""

    hostname: str | None = None
    system_description: str | None = None
    uptime: str | None = None
    uptime_s: int | None = None
    cpu_load_1min: float | None = None
    cpu_load_5min: float | None = None
    cpu_load_15min: float | None = None
    memory_total_mb: int | None = None
    memory_used_mb: int | None = None
    memory_available_mb: int | None = None
    memory_usage_percent: float | None = None
    interface_count: int | None = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class StatusSnapshot:
    """Immutable status record for one device at one collection instant."""

    device_id: str
    name: str
    address: str
    os_label: str = "N/A"
    os_family: OsFamily = OsFamily.UNKNOWN
    online: bool = False
    status: DeviceStatus = DeviceStatus.UNKNOWN
    uptime: str | None = None
    system_description: str | None = None
    hostname: str | None = None
    cpu_load_1min: float | None = None
    cpu_load_5min: float | None = None
    cpu_load_15min: float | None = None
    memory_total_mb: int | None = None
    memory_used_mb: int | None = None
    memory_available_mb: int | None = None
    memory_usage_percent: float | None = None
    disk_total_gb: float | None = None
    disk_used_gb: float | None = None
    disk_available_gb: float | None = None
    disk_usage_percent: float | None = None
    interface_count: int | None = None
    volumes: tuple[VolumeInfo, ...] = ()
    last_check: datetime = field(default_factory=_utcnow)
    last_online: datetime | None = None
    error_message: str | None = None

    @classmethod
    def unknown(cls, endpoint: DeviceEndpoint) -> StatusSnapshot:
        """Initial state of a device that has never been collected."""
        return cls(
            device_id=endpoint.id,
            name=endpoint.name,
            address=endpoint.address,
            os_label=endpoint.os_label,
        )

    @property
    def critical_volumes(self) -> tuple[str, ...]:
        return tuple(volume.path for volume in self.volumes if volume.is_critical)

    def age_s(self, now: datetime | None = None) -> float:
        now = now or _utcnow()
        return (now - self.last_check).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.device_id,
            "name": self.name,
            "address": self.address,
            "os": self.os_label,
            "os_family": self.os_family.value,
            "online": self.online,
            "status": self.status.value,
            "uptime": self.uptime,
            "system_description": self.system_description,
            "hostname": self.hostname,
            "cpu": {
                "load_1m": self.cpu_load_1min,
                "load_5m": self.cpu_load_5min,
                "load_15m": self.cpu_load_15min,
            },
            "memory": {
                "total_mb": self.memory_total_mb,
                "used_mb": self.memory_used_mb,
                "available_mb": self.memory_available_mb,
                "usage_pct": _round(self.memory_usage_percent),
            },
            "disk": {
                "total_gb": self.disk_total_gb,
                "used_gb": self.disk_used_gb,
                "available_gb": self.disk_available_gb,
                "usage_pct": _round(self.disk_usage_percent),
                "critical": list(self.critical_volumes),
            },
            "volumes": [volume.to_dict() for volume in self.volumes],
            "interface_count": self.interface_count,
            "last_check": self.last_check.isoformat(),
            "last_online": self.last_online.isoformat() if self.last_online else None,
            "error": self.error_message,
        }


def _round(value: float | None) -> float | None:
    return None if value is None else round(value, 2)
