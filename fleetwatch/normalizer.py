from __future__ import annotations

from dataclasses import dataclass
import logging

from fleetwatch import oids
from fleetwatch.config import PollConfig
from fleetwatch.errors import MetricUnavailable, ParseError
from fleetwatch.models import DeviceEndpoint, HostMetrics, OsFamily, usage_percent
from fleetwatch.oids import indexed
from fleetwatch.probe import DeviceProbe, ScalarClient, ScanPolicy, parse_float

KB_PER_MB = 1024
BYTES_PER_MB = 1024 * 1024
SECONDS_PER_DAY = 86400
SECONDS_PER_HOUR = 3600


def format_uptime(hundredths: int) -> str:
    """Render sysUpTime (hundredths of a second) as ``Xd Yh Zm``.

    Days only appear from one day up, hours from one hour up.
    """
    seconds = max(hundredths, 0) // 100
    days, remainder = divmod(seconds, SECONDS_PER_DAY)
    hours, remainder = divmod(remainder, SECONDS_PER_HOUR)
    minutes = remainder // 60
    if days > 0:
        return f"{days}d {hours}h {minutes}m"
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


@dataclass(frozen=True)
class MemoryReading:
    total_mb: int
    used_mb: int | None
    available_mb: int | None
    usage_percent: float | None


@dataclass(frozen=True)
class CpuReading:
    load_1min: float | None = None
    load_5min: float | None = None
    load_15min: float | None = None


class MetricNormalizer:
    """Turns raw SNMP replies into engineering units.

    The OS family is resolved once per device by the caller and selects one
    of two strategies; no per-field OS checks happen here.
    """

    def __init__(self, client: ScalarClient, poll: PollConfig | None = None) -> None:
        self.client = client
        self.poll = poll or PollConfig()
        self.logger = logging.getLogger(self.__class__.__name__)
        self._cpu_strategies = {
            OsFamily.UNIX: self._unix_cpu,
            OsFamily.WINDOWS: self._windows_cpu,
        }
        self._memory_strategies = {
            OsFamily.UNIX: self._unix_memory,
            OsFamily.WINDOWS: self._windows_memory,
        }

    def normalize(
        self,
        endpoint: DeviceEndpoint,
        os_family: OsFamily,
        system_description: str | None = None,
    ) -> HostMetrics:
        if os_family not in self._cpu_strategies:
            raise ValueError(f"No metric strategy for OS family {os_family.value!r}")
        probe = DeviceProbe(self.client, endpoint)

        uptime_ticks = probe.optional_int(oids.SYS_UPTIME)
        hostname = probe.optional(oids.SYS_NAME)
        cpu = self._cpu_strategies[os_family](probe)
        try:
            memory: MemoryReading | None = self._memory_strategies[os_family](probe)
        except MetricUnavailable as exc:
            self.logger.info("%s: memory unavailable (%s)", endpoint.name, exc)
            memory = None

        return HostMetrics(
            hostname=hostname.strip() if hostname else None,
            system_description=system_description,
            uptime=format_uptime(uptime_ticks) if uptime_ticks is not None else None,
            uptime_s=uptime_ticks // 100 if uptime_ticks is not None else None,
            cpu_load_1min=cpu.load_1min,
            cpu_load_5min=cpu.load_5min,
            cpu_load_15min=cpu.load_15min,
            memory_total_mb=memory.total_mb if memory else None,
            memory_used_mb=memory.used_mb if memory else None,
            memory_available_mb=memory.available_mb if memory else None,
            memory_usage_percent=memory.usage_percent if memory else None,
            interface_count=probe.optional_int(oids.IF_NUMBER),
        )

    def _unix_cpu(self, probe: DeviceProbe) -> CpuReading:
        return CpuReading(
            load_1min=probe.first_of(oids.UNIX_CPU_1MIN_CANDIDATES, parse_float),
            load_5min=probe.optional_float(oids.LA_LOAD_5MIN),
            load_15min=probe.optional_float(oids.LA_LOAD_15MIN),
        )

    def _windows_cpu(self, probe: DeviceProbe) -> CpuReading:
        # Windows has no load average; average hrProcessorLoad over all cores.
        loads: list[float] = []
        for index, raw in probe.scan(oids.HR_PROCESSOR_LOAD, self.poll.cpu_probe_limit, ScanPolicy.SPARSE):
            try:
                load = parse_float(raw)
            except ParseError:
                self.logger.debug("%s: bad hrProcessorLoad.%s %r", probe.endpoint.name, index, raw)
                continue
            if 0.0 <= load <= 100.0:
                loads.append(load)
        if not loads:
            return CpuReading()
        return CpuReading(load_1min=sum(loads) / len(loads))

    def _unix_memory(self, probe: DeviceProbe) -> MemoryReading:
        total_kb = probe.optional_int(oids.MEM_TOTAL_REAL)
        if total_kb is None:
            raise MetricUnavailable("memTotalReal not available")
        available_kb = probe.optional_int(oids.MEM_AVAIL_REAL)
        if available_kb is None:
            return MemoryReading(total_kb // KB_PER_MB, None, None, None)
        # UCD has no used-memory scalar.
        used_kb = max(total_kb - available_kb, 0)
        return MemoryReading(
            total_mb=total_kb // KB_PER_MB,
            used_mb=used_kb // KB_PER_MB,
            available_mb=available_kb // KB_PER_MB,
            usage_percent=usage_percent(total_kb, used_kb),
        )

    def _windows_memory(self, probe: DeviceProbe) -> MemoryReading:
        limit = self.poll.memory_probe_limit
        for index, raw_type in probe.scan(oids.HR_STORAGE_TYPE, limit, ScanPolicy.SPARSE):
            if oids.normalize_oid(raw_type) != oids.HR_STORAGE_RAM:
                continue
            units = probe.optional_int(indexed(oids.HR_STORAGE_UNITS, index))
            size = probe.optional_int(indexed(oids.HR_STORAGE_SIZE, index))
            if units is None or size is None:
                continue
            used = probe.optional_int(indexed(oids.HR_STORAGE_USED, index))
            total_bytes = units * size
            if used is None:
                return MemoryReading(total_bytes // BYTES_PER_MB, None, None, None)
            used_bytes = units * used
            available_bytes = max(total_bytes - used_bytes, 0)
            return MemoryReading(
                total_mb=total_bytes // BYTES_PER_MB,
                used_mb=used_bytes // BYTES_PER_MB,
                available_mb=available_bytes // BYTES_PER_MB,
                usage_percent=usage_percent(total_bytes, used_bytes),
            )
        raise MetricUnavailable(f"no physical memory entry in hrStorage 1..{limit}")
