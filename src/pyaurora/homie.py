"""Homie convention device, nodes and properties published over MQTT."""

from __future__ import annotations

import contextlib
import logging
import re
import typing as t
from enum import Enum

import aiomqtt

from .exceptions import AuroraException

LOGGER = logging.getLogger(__name__)

HOMIE_VERSION = "4.0.0"
DEFAULT_ROOT = "homie"

_ID = re.compile(r"[a-z0-9][a-z0-9-]*")

Setter = t.Callable[[t.Any], t.Awaitable[t.Any]]


class HomieError(AuroraException):
    """Invalid use of the Homie device tree."""


class Datatype(Enum):
    """Homie property datatypes."""

    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOAT = "float"
    ENUM = "enum"

    def __str__(self) -> str:
        return self.value


class DeviceState(Enum):
    """Homie device lifecycle states."""

    INIT = "init"
    READY = "ready"
    LOST = "lost"

    def __str__(self) -> str:
        return self.value


def format_value(value: t.Any) -> str:
    """Format a value as a Homie payload."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return f"{value:.4f}".rstrip("0").rstrip(".")
    return str(value)


def last_will(root: str, device_id: str) -> aiomqtt.Will:
    """The will marking a device as lost if the broker connection drops."""
    return aiomqtt.Will(
        topic=f"{root}/{device_id}/$state", payload=str(DeviceState.LOST), qos=1, retain=True
    )


class HomieProperty:  # pylint: disable=too-many-instance-attributes
    """A single typed value of a node.

    A property with a setter is settable: commands published on its ``/set`` topic are
    handed to the setter. Without a setter the property is read only.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        node: HomieNode,
        property_id: str,
        name: str,
        datatype: Datatype,
        *,
        value: t.Any = None,
        format: str | None = None,  # pylint: disable=redefined-builtin
        unit: str | None = None,
        retained: bool = True,
        hass: str | None = None,
        setter: Setter | None = None,
    ) -> None:
        self.node = node
        self.id = property_id
        self.name = name
        self.datatype = datatype
        self.value = value
        self.format = format
        self.unit = unit
        self.retained = retained
        self.hass = hass
        self.setter = setter

    def __repr__(self) -> str:
        return f"HomieProperty({self.node.id}/{self.id})"

    @property
    def settable(self) -> bool:
        """Whether inbound commands are accepted."""
        return self.setter is not None

    @property
    def topic(self) -> str:
        """The value topic."""
        return f"{self.node.topic}/{self.id}"

    def attributes(self) -> dict[str, str]:
        """The Homie attributes describing this property."""
        attrs = {
            "$name": self.name,
            "$datatype": str(self.datatype),
            "$settable": format_value(self.settable),
            "$retained": format_value(self.retained),
        }
        if self.format is not None:
            attrs["$format"] = self.format
        if self.unit is not None:
            attrs["$unit"] = self.unit
        return attrs

    async def update(self, value: t.Any) -> None:
        """Set a new value, published now or with the enclosing batch."""
        await self.node.device.update(self, value)


class HomieNode:
    """A named group of properties, fixed once declared."""

    def __init__(self, device: HomieDevice, node_id: str, name: str, node_type: str) -> None:
        self.device = device
        self.id = node_id
        self.name = name
        self.type = node_type
        self.properties: dict[str, HomieProperty] = {}

    def __repr__(self) -> str:
        return f"HomieNode({self.id})"

    @property
    def topic(self) -> str:
        """The node topic."""
        return f"{self.device.topic}/{self.id}"

    def property(self, property_id: str, name: str, datatype: Datatype, **kwargs) -> HomieProperty:
        """Declare a property, see HomieProperty for the keyword arguments."""
        if self.device.published:
            raise HomieError(f"Cannot add property {property_id}, {self.device} is published")
        if not _ID.fullmatch(property_id):
            raise HomieError(f"Invalid property id {property_id!r}")
        if property_id in self.properties:
            raise HomieError(f"Duplicate property {self.id}/{property_id}")
        prop = HomieProperty(self, property_id, name, datatype, **kwargs)
        self.properties[property_id] = prop
        return prop

    def attributes(self) -> dict[str, str]:
        """The Homie attributes describing this node."""
        return {
            "$name": self.name,
            "$type": self.type,
            "$properties": ",".join(self.properties),
        }


class HomieDevice:
    """A Homie device published through an aiomqtt client.

    Nodes and properties are declared first, then `publish` announces the whole tree
    once. Values change afterwards, nothing else does.
    """

    client: aiomqtt.Client

    def __init__(
        self, client: aiomqtt.Client, device_id: str, name: str, root: str = DEFAULT_ROOT
    ) -> None:
        if not _ID.fullmatch(device_id):
            raise HomieError(f"Invalid device id {device_id!r}")
        self.client = client
        self.id = device_id
        self.name = name
        self.root = root
        self.nodes: dict[str, HomieNode] = {}
        self.published = False
        self._batch: list[tuple[HomieProperty, t.Any]] | None = None

    def __str__(self) -> str:
        return f"homie device {self.id}"

    @property
    def topic(self) -> str:
        """The device topic."""
        return f"{self.root}/{self.id}"

    def node(self, node_id: str, name: str, node_type: str) -> HomieNode:
        """Declare a node."""
        if self.published:
            raise HomieError(f"Cannot add node {node_id}, {self} is published")
        if not _ID.fullmatch(node_id):
            raise HomieError(f"Invalid node id {node_id!r}")
        if node_id in self.nodes:
            raise HomieError(f"Duplicate node {node_id}")
        node = HomieNode(self, node_id, name, node_type)
        self.nodes[node_id] = node
        return node

    def last_will(self) -> aiomqtt.Will:
        """The will marking this device as lost if the connection drops."""
        return last_will(self.root, self.id)

    async def _publish(self, topic: str, payload: str, retain: bool = True) -> None:
        LOGGER.debug("Publishing %s: %s", topic, payload)
        await self.client.publish(topic, payload=payload, qos=1, retain=retain)

    async def set_state(self, state: DeviceState) -> None:
        """Publish the device lifecycle state."""
        await self._publish(f"{self.topic}/$state", str(state))

    async def publish(self) -> None:
        """Publish the whole device description, then subscribe to commands."""
        if self.published:
            raise HomieError(f"{self} is already published")
        await self.set_state(DeviceState.INIT)
        await self._publish(f"{self.topic}/$homie", HOMIE_VERSION)
        await self._publish(f"{self.topic}/$name", self.name)
        await self._publish(f"{self.topic}/$extensions", "")
        await self._publish(f"{self.topic}/$nodes", ",".join(self.nodes))
        for node in self.nodes.values():
            for attr, value in node.attributes().items():
                await self._publish(f"{node.topic}/{attr}", value)
            for prop in node.properties.values():
                for attr, value in prop.attributes().items():
                    await self._publish(f"{prop.topic}/{attr}", value)
                if prop.value is not None:
                    await self._publish(prop.topic, format_value(prop.value), prop.retained)
        await self.subscribe("+/+/set")
        self.published = True
        await self.set_state(DeviceState.READY)
        LOGGER.info("Published %s with %d nodes", self, len(self.nodes))

    async def subscribe(self, suffix: str) -> None:
        """Subscribe to a topic relative to the device topic."""
        LOGGER.debug("Subscribing to %s/%s", self.topic, suffix)
        await self.client.subscribe(f"{self.topic}/{suffix}", qos=1)

    async def publish_relative(self, suffix: str, payload: str, retain: bool = True) -> None:
        """Publish on a topic relative to the device topic."""
        await self._publish(f"{self.topic}/{suffix}", payload, retain)

    async def update(self, prop: HomieProperty, value: t.Any) -> None:
        """Set a property value; inside a batch the change is staged."""
        if self._batch is not None:
            self._batch.append((prop, value))
            return
        await self._apply(prop, value)

    async def _apply(self, prop: HomieProperty, value: t.Any) -> None:
        if value == prop.value:
            return
        prop.value = value
        if self.published:
            await self._publish(prop.topic, format_value(value), prop.retained)

    @contextlib.asynccontextmanager
    async def batch(self) -> t.AsyncIterator[HomieDevice]:
        """Stage every update made in the block and apply them together on exit.

        When the block raises nothing is applied.
        """
        if self._batch is not None:
            raise HomieError("Batches do not nest")
        self._batch = []
        try:
            yield self
            staged = self._batch
        finally:
            self._batch = None
        for prop, value in staged:
            await self._apply(prop, value)

    def property_for_topic(self, topic: str) -> HomieProperty | None:
        """Find the property addressed by a ``<device>/<node>/<property>/set`` topic."""
        prefix = f"{self.topic}/"
        if not topic.startswith(prefix):
            return None
        parts = topic[len(prefix) :].split("/")
        if len(parts) != 3 or parts[2] != "set":
            return None
        node = self.nodes.get(parts[0])
        if node is None:
            return None
        return node.properties.get(parts[1])
