"""Tests for the periodic poll scheduler."""
from __future__ import annotations

import threading
import time
from unittest.mock import Mock

import pytest

from conftest import make_endpoint
from fleetwatch.models import StatusSnapshot
from fleetwatch.scheduler import PollScheduler


@pytest.fixture
def orchestrator():
    orchestrator = Mock()
    orchestrator.collect_all.return_value = [StatusSnapshot.unknown(make_endpoint())]
    return orchestrator


def test_rejects_non_positive_interval(orchestrator):
    with pytest.raises(ValueError):
        PollScheduler(orchestrator, 0)


def test_run_once_hands_snapshots_to_callback(orchestrator):
    on_cycle = Mock()
    scheduler = PollScheduler(orchestrator, 60, on_cycle=on_cycle)

    snapshots = scheduler.run_once()

    on_cycle.assert_called_once_with(snapshots)
    assert snapshots == orchestrator.collect_all.return_value


def test_callback_failure_is_logged_not_raised(orchestrator, caplog):
    scheduler = PollScheduler(orchestrator, 60, on_cycle=Mock(side_effect=RuntimeError("broker down")))
    scheduler.run_once()
    assert "Cycle callback failed" in caplog.text


def test_refresh_delegates_to_orchestrator(orchestrator):
    scheduler = PollScheduler(orchestrator, 60)
    future = scheduler.refresh("srv-1")
    orchestrator.refresh_one.assert_called_once_with("srv-1")
    assert future is orchestrator.refresh_one.return_value


def test_start_runs_cycles_until_stopped(orchestrator):
    cycles = threading.Semaphore(0)
    scheduler = PollScheduler(orchestrator, 0.05, on_cycle=lambda snapshots: cycles.release())

    scheduler.start()
    try:
        assert scheduler.running
        for _ in range(3):
            assert cycles.acquire(timeout=2)
    finally:
        scheduler.stop(timeout=2)

    assert not scheduler.running
    assert orchestrator.collect_all.call_count >= 3


def test_cycles_never_overlap(orchestrator):
    active = []
    overlaps = []
    lock = threading.Lock()

    def slow_cycle():
        with lock:
            active.append(1)
            if len(active) > 1:
                overlaps.append(True)
        time.sleep(0.05)
        with lock:
            active.pop()
        return []

    orchestrator.collect_all.side_effect = slow_cycle
    scheduler = PollScheduler(orchestrator, 0.01)
    scheduler.start()
    time.sleep(0.3)
    scheduler.stop(timeout=2)

    assert orchestrator.collect_all.call_count >= 2
    assert not overlaps


def test_start_is_idempotent(orchestrator):
    scheduler = PollScheduler(orchestrator, 10)
    scheduler.start()
    thread = scheduler._thread
    scheduler.start()
    assert scheduler._thread is thread
    scheduler.stop(timeout=2)


def test_stop_interrupts_wait(orchestrator):
    scheduler = PollScheduler(orchestrator, 3600)
    scheduler.start()
    time.sleep(0.05)
    started = time.monotonic()
    scheduler.stop(timeout=2)
    assert time.monotonic() - started < 1.5
    assert not scheduler.running
