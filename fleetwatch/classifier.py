from __future__ import annotations

from fleetwatch.config import ThresholdConfig
from fleetwatch.models import DeviceStatus

DEFAULT_THRESHOLDS = ThresholdConfig()


def warning_reasons(
    cpu_1min: float | None,
    memory_pct: float | None,
    disk_pct: float | None,
    thresholds: ThresholdConfig = DEFAULT_THRESHOLDS,
) -> list[str]:
    """Describe every threshold the readings exceed. Missing readings never fire."""
    reasons = []
    if cpu_1min is not None and cpu_1min > thresholds.cpu_load:
        reasons.append(f"cpu {cpu_1min:.2f} > {thresholds.cpu_load:g}")
    if memory_pct is not None and memory_pct > thresholds.memory_pct:
        reasons.append(f"memory {memory_pct:.1f}% > {thresholds.memory_pct:g}%")
    if disk_pct is not None and disk_pct > thresholds.disk_pct:
        reasons.append(f"disk {disk_pct:.1f}% > {thresholds.disk_pct:g}%")
    return reasons


def classify(
    online: bool,
    cpu_1min: float | None,
    memory_pct: float | None,
    disk_pct: float | None,
    thresholds: ThresholdConfig = DEFAULT_THRESHOLDS,
) -> DeviceStatus:
    if not online:
        return DeviceStatus.OFFLINE
    if warning_reasons(cpu_1min, memory_pct, disk_pct, thresholds):
        return DeviceStatus.WARNING
    return DeviceStatus.ONLINE
