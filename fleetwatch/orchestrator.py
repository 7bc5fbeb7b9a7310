"""Runs collection cycles and owns the status cache's write path.

Each device goes through OS detection, metric normalization, disk
enumeration and classification on a worker thread. Whatever happens, the
outcome is written to the cache as one complete snapshot.
"""
from __future__ import annotations

from concurrent.futures import Executor, Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from datetime import datetime, timezone
import logging
import threading
import time

from fleetwatch.cache import StatusCache
from fleetwatch.classifier import classify, warning_reasons
from fleetwatch.config import PollConfig, ThresholdConfig
from fleetwatch.directory import DeviceDirectory
from fleetwatch.disks import DiskEnumerator
from fleetwatch.errors import CollectionError, DeviceNotFound, SnmpProtocolError, SnmpTimeout
from fleetwatch.models import DeviceEndpoint, DeviceStatus, OsFamily, StatusSnapshot
from fleetwatch.normalizer import MetricNormalizer
from fleetwatch.os_detect import Detection, detect_os
from fleetwatch.probe import ScalarClient


def _sort_key(snapshot: StatusSnapshot) -> str:
    return snapshot.name.casefold()


class CollectionOrchestrator:
    def __init__(
        self,
        client: ScalarClient,
        directory: DeviceDirectory,
        cache: StatusCache | None = None,
        poll: PollConfig | None = None,
        thresholds: ThresholdConfig | None = None,
        executor: Executor | None = None,
    ) -> None:
        self.client = client
        self.directory = directory
        self.cache = cache if cache is not None else StatusCache()
        self.poll = poll or PollConfig()
        self.thresholds = thresholds or ThresholdConfig()
        self.normalizer = MetricNormalizer(client, self.poll)
        self.disks = DiskEnumerator(client, self.poll)
        self.logger = logging.getLogger(self.__class__.__name__)

        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=self.poll.workers, thread_name_prefix="fleetwatch"
        )
        self._inflight: dict[str, Future] = {}
        self._inflight_lock = threading.Lock()
        self._bootstrap_lock = threading.Lock()
        self._bootstrapped = False

    def __enter__(self) -> CollectionOrchestrator:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown(wait=True)

    # -- collection -----------------------------------------------------

    def _collect_device(self, endpoint: DeviceEndpoint) -> StatusSnapshot:
        """Collect one device, store the result and return it. Never raises.

        Not guarded against concurrent runs; go through ``_submit``.
        """
        previous = self.cache.get(endpoint.id)
        detection: Detection | None = None
        started = time.monotonic()
        try:
            detection = detect_os(self.client, endpoint)
            snapshot = self._build_snapshot(endpoint, detection)
        except (SnmpTimeout, SnmpProtocolError) as exc:
            self.logger.info("%s (%s) unreachable: %s", endpoint.name, endpoint.address, exc)
            snapshot = self._failed_snapshot(
                endpoint, detection, previous, DeviceStatus.OFFLINE, f"SNMP error: {exc}"
            )
        except Exception as exc:
            error = CollectionError(endpoint.id, f"Collection error: {exc}")
            self.logger.warning("%s: %s", endpoint.name, error, exc_info=True)
            snapshot = self._failed_snapshot(endpoint, detection, previous, DeviceStatus.ERROR, str(error))
        self.cache.put(snapshot)
        self.logger.debug(
            "%s collected in %.2fs: %s", endpoint.name, time.monotonic() - started, snapshot.status.value
        )
        return snapshot

    def _build_snapshot(self, endpoint: DeviceEndpoint, detection: Detection) -> StatusSnapshot:
        metrics = self.normalizer.normalize(endpoint, detection.os_family, detection.description)
        volumes = tuple(self.disks.enumerate(endpoint, detection.os_family))
        primary = volumes[0] if volumes else None
        disk_pct = primary.usage_percent if primary else None

        reasons = warning_reasons(metrics.cpu_load_1min, metrics.memory_usage_percent, disk_pct, self.thresholds)
        if reasons:
            self.logger.info("%s: %s", endpoint.name, "; ".join(reasons))
        status = classify(True, metrics.cpu_load_1min, metrics.memory_usage_percent, disk_pct, self.thresholds)

        now = datetime.now(timezone.utc)
        return StatusSnapshot(
            device_id=endpoint.id,
            name=endpoint.name,
            address=endpoint.address,
            os_label=endpoint.os_label,
            os_family=detection.os_family,
            online=True,
            status=status,
            uptime=metrics.uptime,
            system_description=metrics.system_description,
            hostname=metrics.hostname,
            cpu_load_1min=metrics.cpu_load_1min,
            cpu_load_5min=metrics.cpu_load_5min,
            cpu_load_15min=metrics.cpu_load_15min,
            memory_total_mb=metrics.memory_total_mb,
            memory_used_mb=metrics.memory_used_mb,
            memory_available_mb=metrics.memory_available_mb,
            memory_usage_percent=metrics.memory_usage_percent,
            disk_total_gb=primary.total_gb if primary else None,
            disk_used_gb=primary.used_gb if primary else None,
            disk_available_gb=primary.available_gb if primary else None,
            disk_usage_percent=disk_pct,
            interface_count=metrics.interface_count,
            volumes=volumes,
            last_check=now,
            last_online=now,
        )

    def _failed_snapshot(
        self,
        endpoint: DeviceEndpoint,
        detection: Detection | None,
        previous: StatusSnapshot | None,
        status: DeviceStatus,
        message: str,
    ) -> StatusSnapshot:
        return StatusSnapshot(
            device_id=endpoint.id,
            name=endpoint.name,
            address=endpoint.address,
            os_label=endpoint.os_label,
            os_family=detection.os_family if detection else OsFamily.UNKNOWN,
            online=False,
            status=status,
            system_description=detection.description if detection else None,
            last_online=previous.last_online if previous else None,
            error_message=message,
        )

    def collect_all(self) -> list[StatusSnapshot]:
        """Run one cycle over every known device. Never raises."""
        try:
            endpoints = self.directory.list_devices()
        except Exception:
            self.logger.exception("Device directory unavailable; serving cached snapshots")
            return sorted(self.cache.values(), key=_sort_key)

        dropped = self.cache.retain(endpoint.id for endpoint in endpoints)
        if dropped:
            self.logger.info("Dropped %d device(s) no longer in the directory: %s", len(dropped), dropped)

        started = time.monotonic()
        pending: list[tuple[DeviceEndpoint, Future | None]] = []
        for endpoint in endpoints:
            try:
                pending.append((endpoint, self._submit(endpoint)))
            except RuntimeError:
                self.logger.error("Worker pool is shut down; skipping %s", endpoint.name)
                pending.append((endpoint, None))

        snapshots = []
        for endpoint, future in pending:
            snapshot = None
            if future is not None:
                try:
                    snapshot = future.result()
                except Exception:
                    self.logger.exception("Collection task for %s failed", endpoint.name)
            if snapshot is None:
                snapshot = self.cache.get(endpoint.id) or StatusSnapshot.unknown(endpoint)
            snapshots.append(snapshot)

        snapshots.sort(key=_sort_key)
        self.logger.info(
            "Cycle finished: %d device(s) in %.2fs, %d online",
            len(snapshots),
            time.monotonic() - started,
            sum(1 for snapshot in snapshots if snapshot.online),
        )
        return snapshots

    def refresh_one(self, device_id: str) -> Future:
        """Collect one device in the background.

        Joins the collection already running for that device, if any.
        """
        return self._submit(self._find(device_id))

    def _find(self, device_id: str) -> DeviceEndpoint:
        for endpoint in self.directory.list_devices():
            if endpoint.id == device_id:
                return endpoint
        raise DeviceNotFound(device_id)

    def _submit(self, endpoint: DeviceEndpoint) -> Future:
        with self._inflight_lock:
            future = self._inflight.get(endpoint.id)
            # A finished future may still be registered until its done-callback runs.
            if future is not None and not future.done():
                self.logger.debug("%s already in flight; joining", endpoint.name)
                return future
            future = self._executor.submit(self._collect_device, endpoint)
            self._inflight[endpoint.id] = future
        future.add_done_callback(lambda done, device_id=endpoint.id: self._release(device_id, done))
        return future

    def _release(self, device_id: str, future: Future) -> None:
        with self._inflight_lock:
            if self._inflight.get(device_id) is future:
                del self._inflight[device_id]

    # -- reads ----------------------------------------------------------

    def _ensure_bootstrapped(self) -> None:
        if len(self.cache):
            return
        with self._bootstrap_lock:
            if self._bootstrapped or len(self.cache):
                return
            self._bootstrapped = True
            self.logger.info("Status cache empty; running bootstrap cycle")
            self.collect_all()

    def get_cached(self, device_id: str) -> StatusSnapshot | None:
        self._ensure_bootstrapped()
        return self.cache.get(device_id)

    def get_all_cached(self) -> list[StatusSnapshot]:
        self._ensure_bootstrapped()
        return sorted(self.cache.values(), key=_sort_key)

    def get_fresh(self, device_id: str, max_age_s: float | None = None) -> StatusSnapshot:
        """Cached snapshot, or a blocking refresh when it is older than ``max_age_s``."""
        max_age = self.poll.stale_after_s if max_age_s is None else max_age_s
        snapshot = self.get_cached(device_id)
        if snapshot is not None and snapshot.age_s() <= max_age:
            return snapshot
        return self.refresh_one(device_id).result()

    # -- lifecycle ------------------------------------------------------

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work; with ``wait`` drain collections in flight.

        An injected executor is left running for its owner to shut down.
        """
        with self._inflight_lock:
            inflight = list(self._inflight.values())
        if wait and inflight:
            wait_futures(inflight)
        if self._owns_executor:
            self._executor.shutdown(wait=wait)
