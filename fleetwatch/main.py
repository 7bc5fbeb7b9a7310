from __future__ import annotations

import argparse
import json
import logging
import time

from fleetwatch.config import load_config
from fleetwatch.diagnostics import diagnose, render_report
from fleetwatch.directory import StaticDirectory
from fleetwatch.errors import DeviceNotFound
from fleetwatch.logging_utils import configure_logging, resolve_log_level
from fleetwatch.models import StatusSnapshot
from fleetwatch.mqtt_client import MqttPublisher
from fleetwatch.orchestrator import CollectionOrchestrator
from fleetwatch.scheduler import PollScheduler
from fleetwatch.schema import build_fleet_payload, validate_payload
from fleetwatch.snmp_client import SnmpClient


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="fleetwatch SNMP fleet poller")
    parser.add_argument(
        "--config",
        default="config/example.cfg",
        help="Path to CFG configuration file",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (TRACE, DEBUG, INFO, WARNING, ERROR)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Enable debug logging (-v) or trace logging of raw SNMP values (-vv)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log payloads without publishing to MQTT",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single collection cycle, publish it, then exit",
    )
    parser.add_argument(
        "--dump-json",
        help="Write the fleet payload to a file (overwrites on each cycle)",
    )
    parser.add_argument(
        "--device",
        metavar="ID",
        help="Refresh one device, print its snapshot as JSON and exit",
    )
    parser.add_argument(
        "--diagnose",
        metavar="ID",
        help="Query every known identifier on one device, print a report and exit",
    )
    parser.add_argument(
        "--publish-status",
        metavar="STATUS",
        help="Publish a status (e.g., 'sleeping', 'online') to the availability topic and exit. "
             "Useful for system sleep/wake hooks.",
    )
    return parser


class CyclePublisher:
    """Handles each finished cycle: validate, dump, publish."""

    def __init__(
        self,
        publisher: MqttPublisher | None,
        dump_json: str | None = None,
        pretty_print: bool = False,
    ) -> None:
        self.publisher = publisher
        self.dump_json = dump_json
        self.pretty_print = pretty_print
        self.logger = logging.getLogger("fleetwatch")
        self._discovery_sent = False

    def __call__(self, snapshots: list[StatusSnapshot]) -> None:
        payload = build_fleet_payload(snapshots)
        schema_errors = validate_payload(payload)
        if schema_errors:
            self.logger.warning("Schema validation failed with %s errors.", len(schema_errors))
            self.logger.debug("Schema errors: %s", schema_errors)
        else:
            self.logger.debug("Schema validation passed.")
        payload_json = json.dumps(payload, indent=2) if self.pretty_print else json.dumps(payload)
        if self.dump_json:
            with open(self.dump_json, "w", encoding="utf-8") as handle:
                handle.write(payload_json)
        if self.publisher is None:
            self.logger.debug("Payload: %s", payload_json)
            return
        if not self._discovery_sent:
            self.publisher.publish_discovery(snapshots)
            self._discovery_sent = True
        self.publisher.publish_fleet(snapshots)


def _publish_status(publisher: MqttPublisher, status: str, logger: logging.Logger) -> None:
    publisher.connect()
    # Wait briefly for connection to establish
    time.sleep(0.5)
    if publisher.connected:
        publisher.publish_status(status)
        # Wait for message delivery
        time.sleep(0.5)
    else:
        logger.error("Failed to connect to MQTT broker")
    publisher.disconnect()


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    level = resolve_log_level(args.verbose, args.log_level)
    configure_logging(level)
    logger = logging.getLogger("fleetwatch")
    config = load_config(args.config)
    pretty_print = level <= logging.DEBUG

    if args.publish_status:
        _publish_status(MqttPublisher(config.mqtt), args.publish_status, logger)
        return 0

    client = SnmpClient(config.snmp.version)
    directory = StaticDirectory(config.devices)
    if not len(directory):
        logger.warning("No [device:*] sections in %s; nothing to poll.", args.config)

    if args.diagnose:
        try:
            endpoint = directory.get(args.diagnose)
        except DeviceNotFound as exc:
            parser.error(str(exc))
        print(render_report(endpoint, diagnose(client, endpoint)))
        return 0

    with CollectionOrchestrator(client, directory, poll=config.poll, thresholds=config.thresholds) as orchestrator:
        if args.device:
            try:
                snapshot = orchestrator.refresh_one(args.device).result()
            except DeviceNotFound as exc:
                parser.error(str(exc))
            print(json.dumps(snapshot.to_dict(), indent=2))
            return 0

        use_mqtt = config.mqtt.enabled and not args.dry_run
        if args.dry_run:
            logger.info("Dry run enabled; skipping MQTT publish.")
        publisher = MqttPublisher(config.mqtt) if use_mqtt else None
        if publisher is not None:
            publisher.connect()

        scheduler = PollScheduler(
            orchestrator,
            max(1, config.poll.interval_s),
            on_cycle=CyclePublisher(publisher, args.dump_json, pretty_print),
        )
        try:
            if args.once:
                logger.info("Single-run mode enabled; exiting after one cycle.")
                scheduler.run_once()
                return 0
            scheduler.start()
            logger.info(
                "fleetwatch started. Polling %d device(s) every %s seconds.",
                len(directory),
                scheduler.interval_s,
            )
            while scheduler.running:
                time.sleep(1)
        except KeyboardInterrupt:
            logger.info("fleetwatch stopped.")
        finally:
            scheduler.stop(timeout=5)
            if publisher is not None:
                publisher.disconnect()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
