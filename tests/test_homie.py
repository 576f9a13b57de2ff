"""Homie device publisher tests."""

import pytest

from pyaurora.homie import Datatype, HomieDevice, HomieError, format_value, last_will

from .conftest import FakeMqttClient


def _device(mqtt: FakeMqttClient) -> HomieDevice:
    device = HomieDevice(mqtt, "aurora-1", "WaterFurnace", root="homie")
    node = device.node("thermostat", "Thermostat", "thermostat")
    node.property("ambient-temperature", "Ambient", Datatype.FLOAT, value=72.1, unit="°F")
    node.property("mode", "Mode", Datatype.ENUM, value="heat", format="off,heat", setter=_noop)
    return device


async def _noop(_value) -> None:
    pass


class TestDeclaration:
    """
    Node and property declarations.
    """

    def test_ids(self, mqtt) -> None:
        with pytest.raises(HomieError):
            HomieDevice(mqtt, "Aurora_1", "WaterFurnace")
        device = HomieDevice(mqtt, "aurora-1", "WaterFurnace")
        node = device.node("abc", "ABC", "ABC")
        with pytest.raises(HomieError):
            device.node("abc", "ABC", "ABC")
        with pytest.raises(HomieError):
            node.property("line_voltage", "Line voltage", Datatype.INTEGER)

    @pytest.mark.asyncio
    async def test_declare_once(self, mqtt) -> None:
        device = _device(mqtt)
        await device.publish()

        with pytest.raises(HomieError):
            device.node("blower", "Blower", "blower")
        with pytest.raises(HomieError):
            device.nodes["thermostat"].property("fan-mode", "Fan mode", Datatype.ENUM)
        with pytest.raises(HomieError):
            await device.publish()

    def test_last_will(self) -> None:
        will = last_will("homie", "aurora-1")
        assert will.topic == "homie/aurora-1/$state"
        assert will.payload == "lost"
        assert will.retain

    def test_format_value(self) -> None:
        assert format_value(True) == "true"
        assert format_value(68.0) == "68"
        assert format_value(72.1) == "72.1"
        assert format_value(240) == "240"


class TestPublish:
    """
    Schema publication.
    """

    @pytest.mark.asyncio
    async def test_publish(self, mqtt) -> None:
        device = _device(mqtt)
        await device.publish()

        assert mqtt.published[0] == ("homie/aurora-1/$state", "init", 1, True)
        assert mqtt.published[-1] == ("homie/aurora-1/$state", "ready", 1, True)
        assert mqtt.last("homie/aurora-1/$homie") == "4.0.0"
        assert mqtt.last("homie/aurora-1/$nodes") == "thermostat"
        assert mqtt.last("homie/aurora-1/thermostat/$properties") == "ambient-temperature,mode"
        assert mqtt.last("homie/aurora-1/thermostat/mode/$settable") == "true"
        assert mqtt.last("homie/aurora-1/thermostat/mode/$format") == "off,heat"
        assert mqtt.last("homie/aurora-1/thermostat/ambient-temperature/$settable") == "false"
        assert mqtt.last("homie/aurora-1/thermostat/ambient-temperature/$unit") == "°F"
        assert mqtt.last("homie/aurora-1/thermostat/ambient-temperature") == "72.1"
        assert mqtt.subscriptions == ["homie/aurora-1/+/+/set"]

    @pytest.mark.asyncio
    async def test_unchanged_values_are_not_republished(self, mqtt) -> None:
        device = _device(mqtt)
        await device.publish()
        prop = device.nodes["thermostat"].properties["ambient-temperature"]
        count = len(mqtt.published)

        await prop.update(72.1)
        assert len(mqtt.published) == count

        await prop.update(72.5)
        assert mqtt.published[-1] == (
            "homie/aurora-1/thermostat/ambient-temperature",
            "72.5",
            1,
            True,
        )

    def test_property_for_topic(self, mqtt) -> None:
        device = _device(mqtt)
        prop = device.property_for_topic("homie/aurora-1/thermostat/mode/set")
        assert prop is device.nodes["thermostat"].properties["mode"]
        assert device.property_for_topic("homie/aurora-1/thermostat/mode") is None
        assert device.property_for_topic("homie/aurora-1/blower/speed/set") is None
        assert device.property_for_topic("homie/other/thermostat/mode/set") is None


class TestBatch:
    """
    Batched updates.
    """

    @pytest.mark.asyncio
    async def test_applied_on_exit(self, mqtt) -> None:
        device = _device(mqtt)
        await device.publish()
        node = device.nodes["thermostat"]
        count = len(mqtt.published)

        async with device.batch():
            await node.properties["ambient-temperature"].update(73.0)
            await node.properties["mode"].update("off")
            assert len(mqtt.published) == count
            assert node.properties["mode"].value == "heat"

        assert mqtt.published[count:] == [
            ("homie/aurora-1/thermostat/ambient-temperature", "73", 1, True),
            ("homie/aurora-1/thermostat/mode", "off", 1, True),
        ]

    @pytest.mark.asyncio
    async def test_discarded_on_error(self, mqtt) -> None:
        device = _device(mqtt)
        await device.publish()
        prop = device.nodes["thermostat"].properties["ambient-temperature"]
        count = len(mqtt.published)

        with pytest.raises(RuntimeError):
            async with device.batch():
                await prop.update(80.0)
                raise RuntimeError("read failed")

        assert len(mqtt.published) == count
        assert prop.value == 72.1

        # the next batch starts clean
        async with device.batch():
            await prop.update(74.0)
        assert mqtt.published[count:] == [
            ("homie/aurora-1/thermostat/ambient-temperature", "74", 1, True)
        ]

    @pytest.mark.asyncio
    async def test_no_nesting(self, mqtt) -> None:
        device = _device(mqtt)
        async with device.batch():
            with pytest.raises(HomieError):
                async with device.batch():
                    pass
