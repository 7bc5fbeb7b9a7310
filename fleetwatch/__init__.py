"""fleetwatch SNMP fleet poller."""

from fleetwatch.cache import StatusCache
from fleetwatch.config import AppConfig, load_config
from fleetwatch.directory import StaticDirectory
from fleetwatch.models import DeviceEndpoint, DeviceStatus, OsFamily, StatusSnapshot, VolumeInfo
from fleetwatch.mqtt_client import MqttPublisher
from fleetwatch.orchestrator import CollectionOrchestrator
from fleetwatch.scheduler import PollScheduler
from fleetwatch.schema import validate_payload
from fleetwatch.snmp_client import SnmpClient

__all__ = [
    "AppConfig",
    "CollectionOrchestrator",
    "DeviceEndpoint",
    "DeviceStatus",
    "MqttPublisher",
    "OsFamily",
    "PollScheduler",
    "SnmpClient",
    "StaticDirectory",
    "StatusCache",
    "StatusSnapshot",
    "VolumeInfo",
    "load_config",
    "validate_payload",
]
