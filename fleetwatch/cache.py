from __future__ import annotations

from collections.abc import Iterable
import threading

from fleetwatch.models import StatusSnapshot


class StatusCache:
    """Latest snapshot per device.

    Entries are replaced whole, so readers never see a partially written
    snapshot. Reads take no lock; writers serialize on one.
    """

    def __init__(self) -> None:
        self._entries: dict[str, StatusSnapshot] = {}
        self._lock = threading.Lock()

    def get(self, device_id: str) -> StatusSnapshot | None:
        return self._entries.get(device_id)

    def values(self) -> list[StatusSnapshot]:
        return list(self._entries.copy().values())

    def put(self, snapshot: StatusSnapshot) -> None:
        with self._lock:
            self._entries[snapshot.device_id] = snapshot

    def retain(self, device_ids: Iterable[str]) -> list[str]:
        """Drop entries for devices not in ``device_ids``; return the dropped ids."""
        keep = set(device_ids)
        with self._lock:
            dropped = [device_id for device_id in self._entries if device_id not in keep]
            for device_id in dropped:
                del self._entries[device_id]
        return dropped

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, device_id: object) -> bool:
        return device_id in self._entries
