"""Shared fakes for the pyaurora test suite."""

import asyncio
from dataclasses import dataclass, field

import pytest
from pymodbus.exceptions import ModbusIOException

from pyaurora.client import AsyncAuroraModbusClient
from pyaurora.constants import FAULT_SENTINEL
from pyaurora.device import AuroraABC

SERIAL = "15061"
HOMIE_TOPIC = f"homie/aurora-{SERIAL}"


def string_words(text: str, length: int) -> list[int]:
    """Encode text the way the ABC stores strings."""
    raw = text.encode("ascii").ljust(length * 2, b"\x00")
    return [int.from_bytes(raw[i : i + 2], "big") for i in range(0, length * 2, 2)]


def words32(value: int) -> list[int]:
    """A 32-bit value, high word first."""
    return [(value >> 16) & 0xFFFF, value & 0xFFFF]


def abc_registers() -> dict[int, int]:
    """A dual stage unit with ECM blower, AXB, VS loop pump, DHW and full monitoring."""
    regs: dict[int, int] = {}

    def put(address: int, values: list[int]) -> None:
        regs.update(zip(range(address, address + len(values)), values))

    put(2, [300])
    put(16, [240])
    put(25, [2, 0])
    put(30, [0x0009])  # compressor + blower
    put(88, string_words("ABCVSP", 4))
    put(92, string_words("GSVD036TL", 12))
    put(105, string_words(SERIAL, 5))
    # blower settings
    put(340, [3, 5, 7])
    put(344, [5])
    put(347, [9])
    # VS pump
    put(321, [50, 100])
    put(325, [75])
    # DHW
    put(400, [1, 1300])
    # blower type, energy monitoring level, pump type, zone count
    put(404, [1])
    put(412, [2, 3])
    put(483, [0])
    # thermostat
    put(502, [721])
    put(740, [700, 0, 0xFFF6])
    put(745, [680, 750])
    put(900, [950])
    put(12005, [0, 3])
    # component statuses
    put(800, [1])
    put(806, [1])
    put(812, [3])
    put(815, [3])
    put(818, [3])
    put(824, [3])
    put(827, [1])
    # AXB: performance and refrigerant monitoring
    put(1103, [0x0003, 0x0003])
    put(1109, [1000, 450, 500])
    put(1114, [1250])
    put(1117, [85])
    put(1134, [950, 80, 0])
    put(1146, words32(1800))
    put(1148, words32(250))
    put(1150, words32(0))
    put(1152, words32(2400))
    put(1154, words32(20000))
    put(1156, words32(0))
    put(1164, words32(90))
    # fault history
    for index in range(1, 100):
        regs[600 + index] = FAULT_SENTINEL
    put(601, [0, 3])
    put(605, [1])
    return regs


@dataclass
class FakeResponse:
    """What pymodbus returns for a successful request."""

    address: int = 0
    registers: list[int] = field(default_factory=list)


class FakeModbusClient:
    """An in-memory pymodbus client counting requests in flight."""

    def __init__(self, registers: dict[int, int]) -> None:
        self.registers = registers
        self.connected = True
        self.in_flight = 0
        self.max_in_flight = 0
        self.reads: list[tuple[int, int]] = []
        self.writes: list[tuple[int, int]] = []
        self.clamp: dict[int, int] = {}
        self.fail_reads = False

    async def connect(self) -> bool:
        self.connected = True
        return True

    def close(self) -> None:
        pass

    async def _transaction(self) -> None:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(0)

    async def read_holding_registers(self, address: int, count: int, device_id: int):
        await self._transaction()
        try:
            self.reads.append((address, count))
            if self.fail_reads:
                raise ModbusIOException("no response from device")
            values = [self.registers.get(a, 0) for a in range(address, address + count)]
            return FakeResponse(address, values)
        finally:
            self.in_flight -= 1

    async def write_register(self, address: int, value: int, device_id: int):
        await self._transaction()
        try:
            self.writes.append((address, value))
            self.registers[address] = min(value, self.clamp.get(address, value))
            return FakeResponse(address, [value])
        finally:
            self.in_flight -= 1


class FakeMqttClient:
    """Records what is published and subscribed."""

    def __init__(self) -> None:
        self.published: list[tuple[str, str, int, bool]] = []
        self.subscriptions: list[str] = []

    async def publish(self, topic: str, payload=None, qos: int = 0, retain: bool = False) -> None:
        self.published.append((topic, payload, qos, retain))

    async def subscribe(self, topic: str, qos: int = 0) -> None:
        self.subscriptions.append(topic)

    def last(self, topic: str) -> str | None:
        """The last payload published on a topic."""
        for published, payload, _, _ in reversed(self.published):
            if published == topic:
                return payload
        return None

    def topics(self) -> list[str]:
        return [topic for topic, _, _, _ in self.published]


@pytest.fixture
def registers() -> dict[int, int]:
    return abc_registers()


@pytest.fixture
def modbus(registers) -> FakeModbusClient:
    return FakeModbusClient(registers)


@pytest.fixture
def abc(modbus) -> AuroraABC:
    """An ABC on the fake transport, not yet initialized."""
    return AuroraABC(AsyncAuroraModbusClient(modbus))


@pytest.fixture
def mqtt() -> FakeMqttClient:
    return FakeMqttClient()
