from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import Future
import logging
import threading
import time

from fleetwatch.models import StatusSnapshot
from fleetwatch.orchestrator import CollectionOrchestrator

CycleCallback = Callable[[list[StatusSnapshot]], None]


class PollScheduler:
    """Runs a full collection cycle every ``interval_s`` seconds.

    Starts are fixed-rate: the next cycle is due one interval after the
    previous one started. A cycle that overruns is followed immediately by the
    next; cycles never overlap.
    """

    def __init__(
        self,
        orchestrator: CollectionOrchestrator,
        interval_s: float,
        on_cycle: CycleCallback | None = None,
    ) -> None:
        if interval_s <= 0:
            raise ValueError(f"interval_s must be positive, got {interval_s}")
        self.orchestrator = orchestrator
        self.interval_s = interval_s
        self.on_cycle = on_cycle
        self.logger = logging.getLogger(self.__class__.__name__)
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="fleetwatch-scheduler", daemon=True)
        self._thread.start()
        self.logger.info("Polling every %gs", self.interval_s)

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        self._thread = None

    def run_once(self) -> list[StatusSnapshot]:
        snapshots = self.orchestrator.collect_all()
        if self.on_cycle is not None:
            try:
                self.on_cycle(snapshots)
            except Exception:
                self.logger.exception("Cycle callback failed")
        return snapshots

    def refresh(self, device_id: str) -> Future:
        return self.orchestrator.refresh_one(device_id)

    def _loop(self) -> None:
        next_start = time.monotonic()
        while not self._stop.is_set():
            self.run_once()
            next_start += self.interval_s
            delay = next_start - time.monotonic()
            if delay <= 0:
                self.logger.warning("Cycle overran the %gs interval by %.1fs", self.interval_s, -delay)
                next_start = time.monotonic()
                continue
            self._stop.wait(delay)
