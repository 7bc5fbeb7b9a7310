from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone
from functools import lru_cache
from importlib import resources
import json
from typing import Any

from jsonschema import Draft202012Validator

from fleetwatch.models import StatusSnapshot

SCHEMA_ID = "fleetwatch/fleet-status/v1"
SCHEMA_RESOURCE = "schemas/fleet-status.schema.json"


def load_schema() -> dict[str, Any]:
    schema_path = resources.files("fleetwatch").joinpath(SCHEMA_RESOURCE)
    return json.loads(schema_path.read_text(encoding="utf-8"))


@lru_cache(maxsize=1)
def get_validator() -> Draft202012Validator:
    return Draft202012Validator(schema=load_schema())


def build_fleet_payload(snapshots: Iterable[StatusSnapshot], ts: datetime | None = None) -> dict[str, Any]:
    """Render one cycle's snapshots as the fleet status document."""
    ts = ts or datetime.now(timezone.utc)
    return {
        "schema": SCHEMA_ID,
        "ts": ts.isoformat(),
        "devices": [snapshot.to_dict() for snapshot in snapshots],
    }


def validate_payload(payload: dict[str, Any]) -> list[str]:
    errors = sorted(get_validator().iter_errors(payload), key=lambda e: [str(part) for part in e.path])
    return [f"{'/'.join(str(part) for part in error.path) or '<root>'}: {error.message}" for error in errors]
