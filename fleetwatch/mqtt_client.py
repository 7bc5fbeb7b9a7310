from __future__ import annotations

from collections.abc import Iterable
import json
import logging
import ssl
from typing import Any

import paho.mqtt.client as mqtt

from fleetwatch.config import MqttConfig
from fleetwatch.models import StatusSnapshot
from fleetwatch.schema import build_fleet_payload


class MqttPublisher:
    """Publishes fleet status snapshots to an MQTT broker."""

    def __init__(self, config: MqttConfig) -> None:
        self.config = config
        self.client = mqtt.Client(
            mqtt.CallbackAPIVersion.VERSION2,
            client_id=config.client_id,
            protocol=mqtt.MQTTv311,
        )
        self.logger = logging.getLogger(self.__class__.__name__)
        self._connected = False

        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect

        if config.username:
            self.client.username_pw_set(config.username, config.password)
        if config.tls_enabled:
            self.client.tls_set(
                ca_certs=config.ca_cert,
                cert_reqs=ssl.CERT_REQUIRED,
            )

        # Broker marks the poller offline if the connection drops.
        self.client.will_set(
            self.availability_topic,
            payload="offline",
            qos=1,
            retain=True,
        )
        self.client.reconnect_delay_set(min_delay=1, max_delay=120)

    @property
    def availability_topic(self) -> str:
        return f"{self.config.base_topic}/status"

    def device_topic(self, device_id: str) -> str:
        return f"{self.config.base_topic}/devices/{device_id}"

    @property
    def connected(self) -> bool:
        return self._connected

    def _on_connect(self, client: mqtt.Client, userdata: Any, flags: Any, reason_code: Any, properties: Any) -> None:
        if not reason_code.is_failure:
            self._connected = True
            self.logger.info("Connected to MQTT broker %s:%s", self.config.host, self.config.port)
            self.client.publish(self.availability_topic, payload="online", qos=1, retain=True)
        else:
            self._connected = False
            self.logger.error("Failed to connect to MQTT broker: %s", reason_code)

    def _on_disconnect(
        self, client: mqtt.Client, userdata: Any, flags: Any, reason_code: Any, properties: Any
    ) -> None:
        self._connected = False
        if not reason_code.is_failure:
            self.logger.info("Disconnected from MQTT broker (clean)")
        else:
            self.logger.warning(
                "Unexpectedly disconnected from MQTT broker: %s. Will attempt to reconnect.", reason_code
            )

    def connect(self) -> None:
        self.logger.info("Connecting to MQTT broker %s:%s", self.config.host, self.config.port)
        self.client.connect(self.config.host, self.config.port, keepalive=self.config.keepalive)
        self.client.loop_start()

    def disconnect(self) -> None:
        if self._connected:
            self.client.publish(self.availability_topic, payload="offline", qos=1, retain=True)
        self.client.loop_stop()
        self.client.disconnect()
        self.logger.info("Disconnected from MQTT broker")

    def publish_status(self, status: str) -> bool:
        """Publish a custom status (e.g. "sleeping") to the availability topic."""
        self.logger.info("Publishing status '%s' to %s", status, self.availability_topic)
        return self._publish(self.availability_topic, status, qos=1, retain=True)

    def publish_fleet(self, snapshots: Iterable[StatusSnapshot]) -> bool:
        """Publish the fleet document, then one retained message per device."""
        snapshots = list(snapshots)
        if not self._connected:
            self.logger.warning("Not connected to MQTT broker, messages may be queued")
        payload = build_fleet_payload(snapshots)
        ok = self._publish(self.config.base_topic, json.dumps(payload), self.config.qos, self.config.retain)
        for device in payload["devices"]:
            ok = self._publish(self.device_topic(device["id"]), json.dumps(device), self.config.qos, True) and ok
        self.logger.debug("Published %d device snapshot(s) to %s", len(snapshots), self.config.base_topic)
        return ok

    def publish_discovery(self, snapshots: Iterable[StatusSnapshot]) -> None:
        """Announce one Home Assistant sensor per device whose state is its status."""
        for snapshot in snapshots:
            unique_id = f"{self.config.client_id}_{snapshot.device_id}"
            discovery_payload = {
                "name": f"{snapshot.name} status",
                "unique_id": unique_id,
                "state_topic": self.device_topic(snapshot.device_id),
                "value_template": "{{ value_json.status }}",
                "json_attributes_topic": self.device_topic(snapshot.device_id),
                "availability_topic": self.availability_topic,
                "payload_available": "online",
                "payload_not_available": "offline",
                "icon": "mdi:server-network",
                "device": {
                    "identifiers": [unique_id],
                    "name": snapshot.name,
                    "model": snapshot.os_label,
                    "via_device": self.config.client_id,
                },
            }
            topic = f"{self.config.discovery_topic}/sensor/{unique_id}/status/config"
            self.logger.debug("Publishing Home Assistant discovery to %s", topic)
            self._publish(topic, json.dumps(discovery_payload), self.config.qos, True)

    def _publish(self, topic: str, payload: str, qos: int, retain: bool) -> bool:
        result = self.client.publish(topic, payload=payload, qos=qos, retain=retain)
        if result.rc != mqtt.MQTT_ERR_SUCCESS:
            self.logger.error("Failed to publish to %s, error code: %s", topic, result.rc)
            return False
        return True
