"""Tests for configuration loading."""
from __future__ import annotations

from pathlib import Path

import pytest

from fleetwatch.config import load_config
from fleetwatch.directory import StaticDirectory
from fleetwatch.errors import ConfigError, DeviceNotFound

EXAMPLE_CONFIG = Path(__file__).resolve().parent.parent / "config" / "example.cfg"


@pytest.fixture
def write_config(tmp_path):
    def write(text: str) -> Path:
        path = tmp_path / "fleetwatch.cfg"
        path.write_text(text, encoding="utf-8")
        return path

    return write


def test_example_config_loads():
    config = load_config(EXAMPLE_CONFIG)

    assert config.snmp.version == "2c"
    assert config.poll.interval_s == 120
    assert config.poll.workers == 10
    assert config.thresholds.cpu_load == 80.0
    assert config.mqtt.enabled
    assert config.mqtt.username is None
    assert [device.id for device in config.devices] == ["web01", "dc01", "fw01"]

    dc01 = config.devices[1]
    assert dc01.community == "monitoring"
    assert dc01.os_label == "Windows Server 2019"
    fw01 = config.devices[2]
    assert fw01.timeout_s == 2.0
    assert fw01.retries == 1


def test_defaults_when_sections_missing(write_config):
    config = load_config(write_config("[device:solo]\naddress = 10.0.0.5\n"))

    assert config.snmp.community == "public"
    assert config.snmp.timeout_s == 5.0
    assert config.snmp.retries == 3
    assert config.poll.memory_probe_limit == 10
    assert config.poll.disk_probe_limit == 20
    assert config.poll.stale_after_s == 300
    assert config.thresholds.memory_pct == 85.0
    assert config.thresholds.disk_pct == 90.0
    assert not config.mqtt.enabled

    device = config.devices[0]
    assert device.id == "solo"
    assert device.name == "solo"
    assert device.port == 161
    assert device.os_label == "N/A"


def test_device_inherits_snmp_section(write_config):
    config = load_config(
        write_config("[snmp]\ncommunity = secret\ntimeout_s = 1.5\n\n[device:a]\naddress = 10.0.0.1\n")
    )
    assert config.devices[0].community == "secret"
    assert config.devices[0].timeout_s == 1.5


def test_v_prefixed_version_is_accepted(write_config):
    assert load_config(write_config("[snmp]\nversion = v1\n")).snmp.version == "1"


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.cfg")


@pytest.mark.parametrize(
    "text",
    [
        "[snmp]\nversion = 3\n",
        "[snmp]\nretries = -1\n",
        "[snmp]\ntimeout_s = 0\n",
        "[poll]\nworkers = 0\n",
        "[poll]\ninterval_s = soon\n",
        "[device:a]\n",
        "[device:a]\naddress = 10.0.0.1\nid = x\n[device:b]\naddress = 10.0.0.2\nid = x\n",
    ],
)
def test_invalid_values(write_config, text):
    with pytest.raises(ConfigError):
        load_config(write_config(text))


def test_static_directory_from_config():
    directory = StaticDirectory(load_config(EXAMPLE_CONFIG).devices)

    assert len(directory) == 3
    assert directory.get("dc01").address == "192.168.1.20"
    with pytest.raises(DeviceNotFound, match="Unknown device: nope"):
        directory.get("nope")
