"""MQTT bridge tests: refresh, commands and raw register requests."""

import asyncio
from types import SimpleNamespace

import aiomqtt
import pytest

from pyaurora.bridge import AuroraMqttBridge, homie_device_id, parse_command
from pyaurora.exceptions import AuroraCommandError, AuroraException, AuroraRefreshError
from pyaurora.homie import Datatype, HomieDevice

from .conftest import HOMIE_TOPIC


async def _started(abc, mqtt, **kwargs) -> AuroraMqttBridge:
    await abc.initialize()
    homie_device = HomieDevice(mqtt, homie_device_id(abc), "WaterFurnace")
    bridge = AuroraMqttBridge(abc, homie_device, **kwargs)
    await bridge.start()
    return bridge


def _message(topic: str, payload: bytes) -> SimpleNamespace:
    return SimpleNamespace(topic=SimpleNamespace(value=topic), payload=payload)


class TestParseCommand:
    """
    Command payload validation.
    """

    def test_values(self, mqtt) -> None:
        node = HomieDevice(mqtt, "aurora-1", "WaterFurnace").node("dhw", "DHW", "water-heater")
        enabled = node.property("enabled", "Enabled", Datatype.BOOLEAN)
        setpoint = node.property("setpoint", "Setpoint", Datatype.FLOAT, format="100:140")
        speed = node.property("speed", "Speed", Datatype.INTEGER, format="1:12")
        mode = node.property("mode", "Mode", Datatype.ENUM, format="off,heat")

        assert parse_command(enabled, "true") is True
        assert parse_command(setpoint, "120.5") == pytest.approx(120.5)
        assert parse_command(speed, "12") == 12
        assert parse_command(mode, "heat") == "heat"

        for prop, payload in [
            (enabled, "yes"),
            (setpoint, "99"),
            (setpoint, "nan"),
            (speed, "1.5"),
            (speed, "13"),
            (mode, "Heat"),
        ]:
            with pytest.raises(AuroraCommandError):
                parse_command(prop, payload)


class TestStart:
    """
    Schema publication and first refresh.
    """

    @pytest.mark.asyncio
    async def test_start(self, abc, mqtt) -> None:
        await _started(abc, mqtt)

        assert homie_device_id(abc) == "aurora-15061"
        assert mqtt.last(f"{HOMIE_TOPIC}/$state") == "ready"
        assert mqtt.last(f"{HOMIE_TOPIC}/thermostat/heating-setpoint") == "68"
        assert mqtt.last(f"{HOMIE_TOPIC}/abc/current-mode") == "h1"
        assert mqtt.last(f"{HOMIE_TOPIC}/faults/e2") == "3"
        assert mqtt.last(f"{HOMIE_TOPIC}/faults/clear-history") is None
        assert mqtt.subscriptions == [
            f"{HOMIE_TOPIC}/+/+/set",
            f"{HOMIE_TOPIC}/$modbus",
            f"{HOMIE_TOPIC}/$modbus/getregs",
        ]

    @pytest.mark.asyncio
    async def test_one_subscription_per_topic(self, abc, mqtt) -> None:
        await _started(abc, mqtt)

        for topic in (
            f"{HOMIE_TOPIC}/$modbus/5/set",
            f"{HOMIE_TOPIC}/$modbus/getregs",
            f"{HOMIE_TOPIC}/$modbus",
            f"{HOMIE_TOPIC}/thermostat/mode/set",
        ):
            matching = [f for f in mqtt.subscriptions if aiomqtt.Topic(topic).matches(f)]
            assert len(matching) == 1, topic

    @pytest.mark.asyncio
    async def test_initializes_controller(self, abc, mqtt) -> None:
        bridge = AuroraMqttBridge(abc, HomieDevice(mqtt, "aurora-15061", "WaterFurnace"))
        await bridge.start()
        assert abc.initialized
        assert bridge.schema is not None


class TestRefresh:
    """
    Periodic refresh.
    """

    @pytest.mark.asyncio
    async def test_only_changes_are_published(self, abc, mqtt, registers) -> None:
        bridge = await _started(abc, mqtt)
        count = len(mqtt.published)

        await bridge.refresh()
        assert len(mqtt.published) == count

        registers[502] = 725
        await bridge.refresh()
        assert mqtt.published[count:] == [
            (f"{HOMIE_TOPIC}/thermostat/ambient-temperature", "72.5", 1, True)
        ]

    @pytest.mark.asyncio
    async def test_failure_is_fatal_and_publishes_nothing(self, abc, mqtt, modbus) -> None:
        bridge = await _started(abc, mqtt)
        count = len(mqtt.published)
        modbus.fail_reads = True

        with pytest.raises(AuroraRefreshError):
            await bridge.refresh()
        assert len(mqtt.published) == count

    @pytest.mark.asyncio
    async def test_unsupported_value_keeps_last_published(self, abc, mqtt, registers) -> None:
        bridge = await _started(abc, mqtt)
        count = len(mqtt.published)

        registers.update({605: 0xFFFF, 602: 4})
        await bridge.refresh()

        assert mqtt.published[count:] == [(f"{HOMIE_TOPIC}/faults/e2", "4", 1, True)]
        assert mqtt.last(f"{HOMIE_TOPIC}/faults/e5") == "1"


class TestCommands:
    """
    Property commands.
    """

    @pytest.mark.asyncio
    async def test_setpoint(self, abc, mqtt, modbus) -> None:
        bridge = await _started(abc, mqtt)

        await bridge.handle_message(f"{HOMIE_TOPIC}/thermostat/heating-setpoint/set", b"70")
        await bridge.handle_message(f"{HOMIE_TOPIC}/thermostat/heating-setpoint/set", b"95")

        assert modbus.writes == [(12619, 700)]

    @pytest.mark.asyncio
    async def test_mode(self, abc, mqtt, modbus) -> None:
        bridge = await _started(abc, mqtt)

        await bridge.handle_message(f"{HOMIE_TOPIC}/thermostat/mode/set", b"cool")
        await bridge.handle_message(f"{HOMIE_TOPIC}/thermostat/mode/set", b"warm")

        assert modbus.writes == [(12606, 2)]

    @pytest.mark.asyncio
    async def test_clear_fault_history(self, abc, mqtt, modbus) -> None:
        bridge = await _started(abc, mqtt)
        await bridge.handle_message(f"{HOMIE_TOPIC}/faults/clear-history/set", b"clear")
        assert modbus.writes == [(47, 0x5555)]

    @pytest.mark.asyncio
    async def test_blower_speed(self, abc, mqtt, modbus) -> None:
        bridge = await _started(abc, mqtt)
        assert mqtt.last(f"{HOMIE_TOPIC}/blower/low-compressor-speed") == "5"

        await bridge.handle_message(f"{HOMIE_TOPIC}/blower/low-compressor-speed/set", b"6")
        await bridge.handle_message(f"{HOMIE_TOPIC}/blower/aux-heat-speed/set", b"13")

        assert modbus.writes == [(341, 6)]

    @pytest.mark.asyncio
    async def test_humidistat_modes_back_to_back(self, abc, mqtt, modbus, registers) -> None:
        registers.update({1103: 0x000B, 741: 45, 12309: 0, 12310: (30 << 8) | 55})
        bridge = await _started(abc, mqtt)

        await bridge.handle_message(f"{HOMIE_TOPIC}/humidistat/humidifier-mode/set", b"auto")
        await bridge.handle_message(f"{HOMIE_TOPIC}/humidistat/dehumidifier-mode/set", b"auto")

        assert modbus.writes == [(21114, 0x8000), (21114, 0xC000)]

    @pytest.mark.asyncio
    async def test_ignored(self, abc, mqtt, modbus) -> None:
        bridge = await _started(abc, mqtt)
        count = len(mqtt.published)

        await bridge.handle_message(f"{HOMIE_TOPIC}/abc/lockout/set", b"true")
        await bridge.handle_message(f"{HOMIE_TOPIC}/abc/unknown/set", b"1")
        await bridge.handle_message("homie/other/thermostat/mode/set", b"cool")
        await bridge.handle_message(f"{HOMIE_TOPIC}/thermostat/mode/set", b"\xff\xfe")

        assert not modbus.writes
        assert len(mqtt.published) == count


class TestRegisterRequests:
    """
    Raw register requests on $modbus.
    """

    @pytest.mark.asyncio
    async def test_getregs(self, abc, mqtt, registers) -> None:
        bridge = await _started(abc, mqtt)
        registers.update({0: 10, 1: 11, 2: 12, 10: 99})

        await bridge.handle_message(f"{HOMIE_TOPIC}/$modbus/getregs", b"Q1:0,3;10")

        assert mqtt.published[-1] == (
            f"{HOMIE_TOPIC}/$modbus/getregs/response",
            "Q1:10,11,12,99",
            1,
            False,
        )

    @pytest.mark.asyncio
    async def test_getregs_invalid_has_no_response(self, abc, mqtt) -> None:
        bridge = await _started(abc, mqtt)
        count = len(mqtt.published)

        await bridge.handle_message(f"{HOMIE_TOPIC}/$modbus/getregs", b"Q1:0,3;ten")
        await bridge.handle_message(f"{HOMIE_TOPIC}/$modbus/getregs", b"0,3")
        await bridge.handle_message(f"{HOMIE_TOPIC}/$modbus/getregs", b"Q1:0-2")

        assert len(mqtt.published) == count

    @pytest.mark.asyncio
    async def test_set_echoes_value_read_back(self, abc, mqtt, modbus) -> None:
        bridge = await _started(abc, mqtt)
        modbus.clamp[5] = 20

        await bridge.handle_message(f"{HOMIE_TOPIC}/$modbus/5/set", b"0x1A")

        assert modbus.writes == [(5, 26)]
        assert mqtt.published[-1] == (f"{HOMIE_TOPIC}/$modbus/5", "20", 1, True)
        assert mqtt.topics().count(f"{HOMIE_TOPIC}/$modbus/5") == 1

    @pytest.mark.asyncio
    async def test_set_invalid(self, abc, mqtt, modbus) -> None:
        bridge = await _started(abc, mqtt)

        await bridge.handle_message(f"{HOMIE_TOPIC}/$modbus/5/set", b"0x10000")
        await bridge.handle_message(f"{HOMIE_TOPIC}/$modbus/five/set", b"1")

        assert not modbus.writes

    @pytest.mark.asyncio
    async def test_dump(self, abc, mqtt) -> None:
        bridge = await _started(abc, mqtt)

        await bridge.handle_message(f"{HOMIE_TOPIC}/$modbus", b"")

        assert mqtt.last(f"{HOMIE_TOPIC}/$modbus/16") == "240"
        assert mqtt.last(f"{HOMIE_TOPIC}/$modbus/2") == "300"


class TestConcurrency:
    """
    One controller transaction at a time.
    """

    @pytest.mark.asyncio
    async def test_requests_are_serialized(self, abc, mqtt, modbus) -> None:
        bridge = await _started(abc, mqtt)
        modbus.max_in_flight = 0

        await asyncio.gather(
            bridge.refresh(),
            bridge.handle_message(f"{HOMIE_TOPIC}/$modbus/getregs", b"A:0,3;10"),
            bridge.handle_message(f"{HOMIE_TOPIC}/$modbus/7/set", b"3"),
            bridge.handle_message(f"{HOMIE_TOPIC}/thermostat/heating-setpoint/set", b"70"),
            bridge.handle_message(f"{HOMIE_TOPIC}/$modbus", b""),
            bridge.refresh(),
        )

        assert modbus.max_in_flight == 1

    @pytest.mark.asyncio
    async def test_shared_lock(self, abc, mqtt, modbus) -> None:
        lock = asyncio.Lock()
        bridge = await _started(abc, mqtt, lock=lock)
        count = len(modbus.reads)

        async with lock:
            task = asyncio.create_task(bridge.refresh())
            await asyncio.sleep(0)
            assert len(modbus.reads) == count
        await task
        assert len(modbus.reads) > count


class TestRun:
    """
    Running both loops.
    """

    @pytest.mark.asyncio
    async def test_message_stream_end(self, abc, mqtt, modbus) -> None:
        bridge = await _started(abc, mqtt, interval=3600)

        async def messages():
            yield _message(f"{HOMIE_TOPIC}/thermostat/mode/set", b"cool")

        with pytest.raises(AuroraException, match="stream ended"):
            await bridge.run(messages())
        assert modbus.writes == [(12606, 2)]

    @pytest.mark.asyncio
    async def test_refresh_failure_stops_run(self, abc, mqtt, modbus) -> None:
        bridge = await _started(abc, mqtt, interval=0.01)
        modbus.fail_reads = True

        async def messages():
            await asyncio.Event().wait()
            yield _message(f"{HOMIE_TOPIC}/$modbus", b"")

        with pytest.raises(AuroraRefreshError):
            await bridge.run(messages())
