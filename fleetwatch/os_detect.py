from __future__ import annotations

from dataclasses import dataclass

from fleetwatch import oids
from fleetwatch.errors import SnmpProtocolError, UnsupportedIdentifier
from fleetwatch.models import DeviceEndpoint, OsFamily
from fleetwatch.probe import ScalarClient


@dataclass(frozen=True)
class Detection:
    os_family: OsFamily
    description: str


def os_family_from_description(description: str) -> OsFamily:
    if "windows" in description.lower():
        return OsFamily.WINDOWS
    return OsFamily.UNIX


def detect_os(client: ScalarClient, endpoint: DeviceEndpoint) -> Detection:
    """Fetch sysDescr once and infer the OS family from it.

    A failed fetch is a reachability failure and propagates; it is never
    reported as an unknown OS.
    """
    try:
        description = client.get(endpoint, oids.SYS_DESCR)
    except UnsupportedIdentifier as exc:
        raise SnmpProtocolError(
            f"{endpoint.address} does not serve sysDescr", address=endpoint.address, oid=oids.SYS_DESCR
        ) from exc
    return Detection(os_family_from_description(description), description.strip())
