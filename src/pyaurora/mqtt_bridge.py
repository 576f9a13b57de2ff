"""Publish a WaterFurnace Aurora heat pump to MQTT, following the Homie convention."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass
from urllib.parse import unquote, urlparse

import aiomqtt

from pyaurora import Aurora
from pyaurora.bridge import DEFAULT_INTERVAL, AuroraMqttBridge, homie_device_id
from pyaurora.client import DEFAULT_DEVICE_ID, AuroraBaseTransport, transport_from_uri
from pyaurora.exceptions import (
    AuroraException,
    AuroraInvalidArgumentException,
    AuroraRefreshError,
)
from pyaurora.homie import DEFAULT_ROOT, HomieDevice, last_will

LOGGER = logging.getLogger(__name__)

LOG_LEVELS = ("critical", "error", "warning", "info", "debug")


@dataclass
class MqttSettings:
    """Broker connection parameters."""

    host: str
    port: int = 1883
    username: str | None = None
    password: str | None = None

    @classmethod
    def from_uri(cls, uri: str) -> MqttSettings:
        """Parse mqtt://[user:pass@]host[:port]."""
        parsed = urlparse(uri)
        if parsed.scheme != "mqtt":
            raise AuroraInvalidArgumentException(f"Unsupported broker URI {uri}")
        try:
            port = parsed.port or 1883
        except ValueError as err:
            raise AuroraInvalidArgumentException(f"Invalid broker port in {uri}") from err
        if not parsed.hostname:
            raise AuroraInvalidArgumentException(f"Missing broker host in {uri}")
        return cls(
            parsed.hostname,
            port=port,
            username=unquote(parsed.username) if parsed.username else None,
            password=unquote(parsed.password) if parsed.password else None,
        )


class _ArgumentParser(argparse.ArgumentParser):
    """Exit with status 1 on malformed arguments."""

    def error(self, message: str):  # type: ignore[override]
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def _interval(value: str) -> float:
    try:
        interval = float(value)
    except ValueError as err:
        raise argparse.ArgumentTypeError(f"invalid interval {value!r}") from err
    if not interval > 0:
        raise argparse.ArgumentTypeError(f"interval must be positive, got {value}")
    return interval


def build_parser() -> argparse.ArgumentParser:
    """The command line parser of the bridge."""
    parser = _ArgumentParser(
        prog="aurora-mqtt-bridge",
        description="Bridge a WaterFurnace Aurora heat pump to MQTT (Homie convention)",
    )
    parser.add_argument("device", help="serial device (/dev/ttyUSB0) or tcp://host[:port]")
    parser.add_argument("mqtt_uri", help="broker URI, mqtt://[user:pass@]host[:port]")
    parser.add_argument(
        "--device-id", type=int, default=DEFAULT_DEVICE_ID, help="Modbus device id of the ABC"
    )
    parser.add_argument(
        "--interval",
        type=_interval,
        default=DEFAULT_INTERVAL,
        help="seconds between two refreshes",
    )
    parser.add_argument("--homie-root", default=DEFAULT_ROOT, help="Homie base topic")
    parser.add_argument("--log-level", choices=LOG_LEVELS, default="info")
    return parser


async def run_bridge(  # pylint: disable=too-many-arguments
    transport: AuroraBaseTransport,
    mqtt: MqttSettings,
    *,
    device_id: int = DEFAULT_DEVICE_ID,
    interval: float = DEFAULT_INTERVAL,
    root: str = DEFAULT_ROOT,
) -> None:
    """Probe the heat pump, then bridge it until something fails."""
    aurora = Aurora(transport, device_id)
    abc = await aurora.initialize()
    homie_id = homie_device_id(abc)
    LOGGER.info("Connecting to MQTT broker %s:%s as %s", mqtt.host, mqtt.port, homie_id)
    try:
        async with aiomqtt.Client(
            hostname=mqtt.host,
            port=mqtt.port,
            username=mqtt.username,
            password=mqtt.password,
            identifier=homie_id,
            will=last_will(root, homie_id),
        ) as client:
            homie = HomieDevice(client, homie_id, f"WaterFurnace {abc.model_number}", root)
            bridge = AuroraMqttBridge(abc, homie, interval=interval)
            await bridge.start()
            await bridge.run(client.messages)
    finally:
        aurora.close()


def main(argv: list[str] | None = None) -> int:
    """Run the bridge, returns the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        transport = transport_from_uri(args.device)
        mqtt = MqttSettings.from_uri(args.mqtt_uri)
    except AuroraInvalidArgumentException as err:
        parser.error(str(err))

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        asyncio.run(
            run_bridge(
                transport,
                mqtt,
                device_id=args.device_id,
                interval=args.interval,
                root=args.homie_root,
            )
        )
    except AuroraRefreshError as err:
        LOGGER.critical("Giving up: %s", err)
        return 1
    except AuroraException as err:
        LOGGER.error("Aurora error: %s", err)
        return 1
    except aiomqtt.MqttError as err:
        LOGGER.error("MQTT error: %s", err)
        return 1
    except KeyboardInterrupt:
        LOGGER.info("Interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
