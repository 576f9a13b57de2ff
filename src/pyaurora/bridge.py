"""Bridge between an Aurora ABC and its Homie device on MQTT."""

from __future__ import annotations

import asyncio
import logging
import math
import re
import typing as t

import aiomqtt

from pyaurora.device import AuroraABC
from pyaurora.exceptions import (
    AuroraCommandError,
    AuroraException,
    AuroraQueryError,
    AuroraRefreshError,
)
from pyaurora.homie import Datatype, HomieDevice, HomieProperty
from pyaurora.register_query import (
    format_response,
    parse_query,
    parse_register_address,
    parse_register_value,
)
from pyaurora.schema import Binding, Schema, build_schema, declare_schema

LOGGER = logging.getLogger(__name__)

DEFAULT_INTERVAL = 5.0

MODBUS = "$modbus"
GETREGS = f"{MODBUS}/getregs"
GETREGS_RESPONSE = f"{GETREGS}/response"

Payload = t.Union[str, bytes, bytearray, int, float, None]


def homie_device_id(abc: AuroraABC) -> str:
    """The Homie device id of a controller, derived from its serial number."""
    serial = re.sub(r"[^a-z0-9-]+", "-", (abc.serial_number or "").lower()).strip("-")
    return f"aurora-{serial}" if serial else "aurora"


def parse_command(prop: HomieProperty, payload: str) -> t.Any:
    """Validate a command payload against the datatype and format of a property."""
    text = payload.strip()
    if prop.datatype == Datatype.BOOLEAN:
        if text in ("true", "false"):
            return text == "true"
        raise AuroraCommandError(f"Invalid boolean {payload!r}")

    if prop.datatype == Datatype.ENUM:
        allowed = prop.format.split(",") if prop.format else []
        if text not in allowed:
            raise AuroraCommandError(f"{payload!r} is not one of {prop.format}")
        return text

    try:
        value: int | float = int(text) if prop.datatype == Datatype.INTEGER else float(text)
    except ValueError as err:
        raise AuroraCommandError(f"Invalid {prop.datatype} {payload!r}") from err
    if not math.isfinite(value):
        raise AuroraCommandError(f"Invalid {prop.datatype} {payload!r}")
    if prop.format:
        low, _, high = prop.format.partition(":")
        if not float(low) <= value <= float(high):
            raise AuroraCommandError(f"{value} outside {prop.format}")
    return value


class AuroraMqttBridge:
    """Keep a Homie device in sync with an Aurora controller.

    Two activities run side by side: the refresh loop, polling the controller every
    `interval` seconds, and the message loop, applying property commands and
    answering the raw register requests published on the ``$modbus`` topics. Every
    access to the controller happens while holding `lock`; pass the same lock to any
    other task talking to the controller.
    """

    abc: AuroraABC
    homie: HomieDevice
    lock: asyncio.Lock
    schema: Schema | None
    bindings: list[Binding]

    def __init__(
        self,
        abc: AuroraABC,
        homie_device: HomieDevice,
        lock: asyncio.Lock | None = None,
        interval: float = DEFAULT_INTERVAL,
    ) -> None:
        self.abc = abc
        self.homie = homie_device
        self.lock = lock if lock is not None else asyncio.Lock()
        self.interval = interval
        self.schema = None
        self.bindings = []

    async def start(self) -> None:
        """Build and publish the schema, then do the first refresh."""
        async with self.lock:
            if not self.abc.initialized:
                await self.abc.initialize()
            self.schema = build_schema(self.abc)
            self.bindings = declare_schema(self.schema, self.abc, self.homie)
        await self.homie.publish()
        await self.refresh()
        # register writes on $modbus/<n>/set arrive through the +/+/set subscription
        for suffix in (MODBUS, GETREGS):
            await self.homie.subscribe(suffix)
        LOGGER.info("Bridging %s to %s", self.abc, self.homie.topic)

    async def refresh(self) -> None:
        """Poll the controller and publish every changed value in one batch.

        Any failure reading the controller is fatal and raised as AuroraRefreshError;
        nothing from the failed cycle is published.
        """
        async with self.lock:
            try:
                await self.abc.refresh()
                updates = [(binding.prop, binding.getter(self.abc)) for binding in self.bindings]
            except Exception as err:  # pylint: disable=broad-exception-caught
                LOGGER.exception("Failed to refresh %s", self.abc)
                raise AuroraRefreshError(f"Failed to refresh {self.abc}: {err}") from err

            async with self.homie.batch():
                for prop, value in updates:
                    # unsupported right now, keep the last published value
                    if value is None:
                        continue
                    await prop.update(value)

    async def _refresh_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self.refresh()

    async def _message_loop(self, messages: t.AsyncIterable[aiomqtt.Message]) -> None:
        async for message in messages:
            await self.handle_message(message.topic.value, message.payload)

    async def run(self, messages: t.AsyncIterable[aiomqtt.Message]) -> None:
        """Run the refresh and message loops until one of them fails."""
        refresher = asyncio.create_task(self._refresh_loop(), name="aurora-refresh")
        listener = asyncio.create_task(self._message_loop(messages), name="aurora-messages")
        tasks = (refresher, listener)
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        for task in done:
            task.result()
        raise AuroraException("MQTT message stream ended")

    async def handle_message(self, topic: str, payload: Payload) -> None:
        """Dispatch one inbound message."""
        if isinstance(payload, (bytes, bytearray)):
            try:
                text = payload.decode()
            except UnicodeDecodeError:
                LOGGER.warning("Ignoring undecodable payload on %s", topic)
                return
        else:
            text = "" if payload is None else str(payload)

        prefix = f"{self.homie.topic}/"
        if not topic.startswith(prefix):
            LOGGER.debug("Ignoring message on foreign topic %s", topic)
            return
        suffix = topic[len(prefix) :]
        LOGGER.debug("Received %s: %s", suffix, text)

        if suffix == MODBUS:
            await self._dump_registers()
        elif suffix == GETREGS:
            await self._get_registers(text)
        elif suffix.startswith(f"{MODBUS}/") and suffix.endswith("/set"):
            await self._set_register(suffix[len(MODBUS) + 1 : -len("/set")], text)
        else:
            await self._command(topic, text)

    async def _command(self, topic: str, payload: str) -> None:
        prop = self.homie.property_for_topic(topic)
        if prop is None:
            LOGGER.debug("No property for %s", topic)
            return
        if prop.setter is None:
            LOGGER.warning("Ignoring command for read only property %s", prop)
            return
        try:
            value = parse_command(prop, payload)
        except AuroraCommandError as err:
            LOGGER.warning("Rejected command for %s: %s", prop, err)
            return

        LOGGER.info("Setting %s to %s", prop, value)
        async with self.lock:
            try:
                await prop.setter(value)
            except (AuroraException, ValueError) as err:
                LOGGER.warning("Failed to set %s to %s: %s", prop, value, err)

    async def _dump_registers(self) -> None:
        async with self.lock:
            try:
                values = await self.abc.read_debug_registers()
            except AuroraException as err:
                LOGGER.warning("Failed to read diagnostic registers: %s", err)
                return
        for address, value in values.items():
            await self.homie.publish_relative(f"{MODBUS}/{address}", str(value))

    async def _get_registers(self, payload: str) -> None:
        try:
            correlation_id, addresses = parse_query(payload)
        except AuroraQueryError as err:
            LOGGER.warning("Ignoring register query %r: %s", payload, err)
            return
        async with self.lock:
            try:
                values = await self.abc.read_registers(addresses)
            except AuroraException as err:
                LOGGER.warning("Failed to read registers for query %s: %s", correlation_id, err)
                return
        await self.homie.publish_relative(
            GETREGS_RESPONSE, format_response(correlation_id, values), retain=False
        )

    async def _set_register(self, index: str, payload: str) -> None:
        try:
            address = parse_register_address(index)
            value = parse_register_value(payload)
        except AuroraQueryError as err:
            LOGGER.warning("Ignoring register write %s=%r: %s", index, payload, err)
            return
        LOGGER.info("Writing register %s: %s", address, value)
        async with self.lock:
            try:
                await self.abc.write_register(address, value)
            except AuroraException as err:
                LOGGER.warning("Failed to write register %s: %s", address, err)
            try:
                (current,) = await self.abc.read_registers([address])
            except AuroraException as err:
                LOGGER.warning("Failed to read back register %s: %s", address, err)
                return
        await self.homie.publish_relative(f"{MODBUS}/{address}", str(current))
