from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import configparser

from fleetwatch.errors import ConfigError
from fleetwatch.models import DeviceEndpoint

DEVICE_SECTION_PREFIX = "device:"
SUPPORTED_SNMP_VERSIONS = ("1", "2c")


@dataclass(frozen=True)
class SnmpConfig:
    community: str = "public"
    version: str = "2c"
    port: int = 161
    timeout_s: float = 5.0
    retries: int = 3


@dataclass(frozen=True)
class PollConfig:
    interval_s: int = 120
    workers: int = 10
    memory_probe_limit: int = 10
    disk_probe_limit: int = 20
    cpu_probe_limit: int = 32
    stale_after_s: int = 300


@dataclass(frozen=True)
class ThresholdConfig:
    cpu_load: float = 80.0
    memory_pct: float = 85.0
    disk_pct: float = 90.0


@dataclass(frozen=True)
class MqttConfig:
    enabled: bool
    host: str
    port: int
    base_topic: str
    discovery_topic: str
    client_id: str
    username: str | None
    password: str | None
    qos: int
    retain: bool
    tls_enabled: bool
    ca_cert: str | None
    keepalive: int = 60


@dataclass(frozen=True)
class AppConfig:
    snmp: SnmpConfig
    poll: PollConfig
    thresholds: ThresholdConfig
    mqtt: MqttConfig
    devices: list[DeviceEndpoint] = field(default_factory=list)


def _get_optional(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value if value else None


def _positive(name: str, value: int | float) -> int | float:
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {value}")
    return value


def _load_snmp(parser: configparser.ConfigParser) -> SnmpConfig:
    version = parser.get("snmp", "version", fallback="2c").strip().lower()
    if version in ("v1", "v2c"):
        version = version[1:]
    if version not in SUPPORTED_SNMP_VERSIONS:
        raise ConfigError(
            f"Unsupported SNMP version {version!r}; expected one of {SUPPORTED_SNMP_VERSIONS}"
        )
    retries = parser.getint("snmp", "retries", fallback=3)
    if retries < 0:
        raise ConfigError(f"snmp.retries must not be negative, got {retries}")
    return SnmpConfig(
        community=parser.get("snmp", "community", fallback="public"),
        version=version,
        port=int(_positive("snmp.port", parser.getint("snmp", "port", fallback=161))),
        timeout_s=float(_positive("snmp.timeout_s", parser.getfloat("snmp", "timeout_s", fallback=5.0))),
        retries=retries,
    )


def _load_poll(parser: configparser.ConfigParser) -> PollConfig:
    def get(option: str, default: int) -> int:
        return int(_positive(f"poll.{option}", parser.getint("poll", option, fallback=default)))

    return PollConfig(
        interval_s=get("interval_s", 120),
        workers=get("workers", 10),
        memory_probe_limit=get("memory_probe_limit", 10),
        disk_probe_limit=get("disk_probe_limit", 20),
        cpu_probe_limit=get("cpu_probe_limit", 32),
        stale_after_s=get("stale_after_s", 300),
    )


def _load_thresholds(parser: configparser.ConfigParser) -> ThresholdConfig:
    return ThresholdConfig(
        cpu_load=parser.getfloat("thresholds", "cpu_load", fallback=80.0),
        memory_pct=parser.getfloat("thresholds", "memory_pct", fallback=85.0),
        disk_pct=parser.getfloat("thresholds", "disk_pct", fallback=90.0),
    )


def _load_mqtt(parser: configparser.ConfigParser) -> MqttConfig:
    # Use parser.get with fallback so a config without [mqtt] still loads
    return MqttConfig(
        enabled=parser.getboolean("mqtt", "enabled", fallback=parser.has_section("mqtt")),
        host=parser.get("mqtt", "host", fallback="localhost"),
        port=parser.getint("mqtt", "port", fallback=1883),
        base_topic=parser.get("mqtt", "base_topic", fallback="fleetwatch"),
        discovery_topic=parser.get("mqtt", "discovery_topic", fallback="homeassistant"),
        client_id=parser.get("mqtt", "client_id", fallback="fleetwatch"),
        username=_get_optional(parser.get("mqtt", "username", fallback=None)),
        password=_get_optional(parser.get("mqtt", "password", fallback=None)),
        qos=parser.getint("mqtt", "qos", fallback=0),
        retain=parser.getboolean("mqtt", "retain", fallback=False),
        tls_enabled=parser.getboolean("mqtt", "tls", fallback=False),
        ca_cert=_get_optional(parser.get("mqtt", "ca_cert", fallback=None)),
        keepalive=parser.getint("mqtt", "keepalive", fallback=60),
    )


def _load_devices(parser: configparser.ConfigParser, snmp: SnmpConfig) -> list[DeviceEndpoint]:
    devices: list[DeviceEndpoint] = []
    seen: set[str] = set()
    for section_name in parser.sections():
        if not section_name.startswith(DEVICE_SECTION_PREFIX):
            continue
        name = section_name[len(DEVICE_SECTION_PREFIX):].strip()
        section = parser[section_name]
        address = _get_optional(section.get("address"))
        if not name or address is None:
            raise ConfigError(f"[{section_name}] needs a name and an address")
        device_id = section.get("id", name).strip()
        if device_id in seen:
            raise ConfigError(f"Duplicate device id {device_id!r} in [{section_name}]")
        seen.add(device_id)
        devices.append(
            DeviceEndpoint(
                id=device_id,
                name=name,
                address=address,
                community=section.get("community", snmp.community),
                timeout_s=section.getfloat("timeout_s", snmp.timeout_s),
                retries=section.getint("retries", snmp.retries),
                port=section.getint("port", snmp.port),
                os_label=section.get("os", "N/A"),
            )
        )
    return devices


def load_config(path: str | Path) -> AppConfig:
    parser = configparser.ConfigParser()
    read_files = parser.read(path)
    if not read_files:
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        snmp = _load_snmp(parser)
        return AppConfig(
            snmp=snmp,
            poll=_load_poll(parser),
            thresholds=_load_thresholds(parser),
            mqtt=_load_mqtt(parser),
            devices=_load_devices(parser, snmp),
        )
    except ValueError as exc:
        raise ConfigError(f"Invalid value in {path}: {exc}") from exc
