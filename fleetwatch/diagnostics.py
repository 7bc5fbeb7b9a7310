from __future__ import annotations

from dataclasses import dataclass
import logging

from fleetwatch.errors import SnmpError, UnsupportedIdentifier
from fleetwatch.models import DeviceEndpoint
from fleetwatch.oids import CATALOG
from fleetwatch.probe import ScalarClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProbeResult:
    group: str
    label: str
    oid: str
    value: str | None = None
    error: str | None = None

    @property
    def supported(self) -> bool:
        return self.value is not None


def diagnose(client: ScalarClient, endpoint: DeviceEndpoint) -> list[ProbeResult]:
    """GET every catalog identifier once and record what the agent answers."""
    results = []
    for group, entries in CATALOG.items():
        for label, oid in entries.items():
            try:
                results.append(ProbeResult(group, label, oid, value=client.get(endpoint, oid)))
            except UnsupportedIdentifier:
                results.append(ProbeResult(group, label, oid, error="unsupported"))
            except SnmpError as exc:
                logger.debug("%s: %s failed: %s", endpoint.name, oid, exc)
                results.append(ProbeResult(group, label, oid, error=str(exc)))
    return results


def render_report(endpoint: DeviceEndpoint, results: list[ProbeResult]) -> str:
    lines = [
        f"SNMP diagnostics for {endpoint.name} ({endpoint.address}:{endpoint.port})",
        f"Community: {endpoint.community}  timeout: {endpoint.timeout_s:g}s  retries: {endpoint.retries}",
    ]
    current_group = None
    for result in results:
        if result.group != current_group:
            current_group = result.group
            lines.append("")
            lines.append(f"[{current_group}]")
        outcome = result.value if result.supported else f"<{result.error}>"
        lines.append(f"  {result.label:<24} {result.oid:<32} {outcome}")
    supported = sum(1 for result in results if result.supported)
    lines.append("")
    lines.append(f"{supported}/{len(results)} identifiers answered")
    return "\n".join(lines)
