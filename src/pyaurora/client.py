"""Async client for the WaterFurnace Aurora ABC Modbus interface."""

from __future__ import annotations

import asyncio
import logging
import time
import typing as t
from dataclasses import dataclass
from urllib.parse import urlparse

import pymodbus.client as modbusClient
from pymodbus.constants import ExcCodes
from pymodbus.exceptions import ConnectionException as ModbusConnectionException
from pymodbus.exceptions import ModbusException, ModbusIOException
from pymodbus.pdu import ExceptionResponse, ModbusPDU

from .exceptions import (
    AuroraConnectionException,
    AuroraConnectionInterruptedException,
    AuroraException,
    AuroraInvalidArgumentException,
    AuroraIOException,
    AuroraReadException,
    AuroraSlaveBusyException,
    AuroraWriteException,
)

LOGGER = logging.getLogger(__name__)

# Minimum time to wait between two commands sent to the device. The AID port drops
# requests that arrive back to back.
MIN_TIME_BETWEEN_COMMANDS = 0.01

# The ABC refuses reads longer than this many registers.
MAX_READ_LENGTH = 100

DEFAULT_DEVICE_ID = 1


@dataclass
class AuroraBaseTransport:
    """Base class to define the controller transport."""


@dataclass
class AuroraTcpTransport(AuroraBaseTransport):
    """Parameters for a Modbus TCP gateway in front of the AID port."""

    host: str = "192.168.0.207"
    port: int = 502


@dataclass
class AuroraRtuTransport(AuroraBaseTransport):
    """Parameters for the serial transport."""

    device: str = "/dev/ttyUSB0"
    baudrate: int = 19200
    data_bits: int = 8
    parity: str = "E"
    stop_bits: int = 1


def transport_from_uri(uri: str) -> AuroraBaseTransport:
    """Build a transport from a serial device path or a tcp://host[:port] URI."""
    parsed = urlparse(uri)
    if parsed.scheme == "tcp":
        if not parsed.hostname:
            raise AuroraInvalidArgumentException(f"Missing host in {uri}")
        return AuroraTcpTransport(parsed.hostname, port=parsed.port or 502)
    if parsed.scheme in ("", "serial"):
        if not parsed.path:
            raise AuroraInvalidArgumentException(f"Missing serial device in {uri}")
        return AuroraRtuTransport(parsed.path)
    raise AuroraInvalidArgumentException(f"Unsupported transport {parsed.scheme}")


def coalesce(addresses: t.Iterable[int], max_length: int = MAX_READ_LENGTH) -> list[range]:
    """Group register addresses into contiguous ranges no longer than max_length."""
    chunks: list[range] = []
    start: int | None = None
    prev = 0
    for address in sorted(set(addresses)):
        if start is None:
            start = address
        elif address != prev + 1 or address - start >= max_length:
            chunks.append(range(start, prev + 1))
            start = address
        prev = address
    if start is not None:
        chunks.append(range(start, prev + 1))
    return chunks


class AsyncAuroraModbusClient:
    """The base class.

    The client performs no locking. Callers sharing a client between tasks must
    serialize every call through a single lock.
    """

    client: modbusClient.ModbusBaseClient
    device_id: int
    ts: float

    def __init__(
        self, client: modbusClient.ModbusBaseClient, device_id: int = DEFAULT_DEVICE_ID
    ) -> None:
        self.client = client
        self.device_id = device_id
        self.ts = 0

    async def _reconnect(self) -> bool:
        try:
            if not self.client.connected:
                LOGGER.debug("Establishing modbus connection")
                await self.client.connect()
            if not self.client.connected:
                LOGGER.error("Failed to establish modbus connection")
                self.client.close()
                raise AuroraConnectionException
        except ModbusException as err:
            message = f"Failed to establish modbus connection: {err}"
            LOGGER.error(message)
            self.client.close()
            raise AuroraConnectionException from err
        return self.client.connected

    async def _throttle(self) -> None:
        elapsed = time.time() - self.ts
        if elapsed < MIN_TIME_BETWEEN_COMMANDS:
            await asyncio.sleep(MIN_TIME_BETWEEN_COMMANDS - elapsed)

    async def read_registers(self, address: int, count: int) -> list[int]:
        """Read a contiguous block of holding registers."""
        LOGGER.debug(
            "Reading register %s with length %s from device id %s",
            address,
            count,
            self.device_id,
        )

        await self._reconnect()
        try:
            await self._throttle()
            response: ModbusPDU = await self.client.read_holding_registers(
                address,
                count=count,
                device_id=self.device_id,
            )
            if isinstance(response, ExceptionResponse):
                if response.exception_code == ExcCodes.DEVICE_BUSY:
                    message = (
                        "Got a SlaveBusy Modbus Exception while reading "
                        f"register {address} (length {count})"
                    )
                    LOGGER.info(message)
                    raise AuroraSlaveBusyException(message)

                message = (
                    f"Got an error while reading register {address} "
                    f"(length {count}): {response}"
                )
                LOGGER.warning(message)
                raise AuroraReadException(message, modbus_exception_code=response.exception_code)

            if len(response.registers) != count:
                message = (
                    f"Mismatch between number of requested registers ({count}) "
                    f"and number of received registers ({len(response.registers)})"
                )
                LOGGER.error(message)
                raise AuroraSlaveBusyException(message)
        except ModbusIOException as err:
            message = f"Could not read register, I/O exception: {err}"
            LOGGER.error(message)
            self.client.close()
            raise AuroraIOException(message) from err
        except ModbusConnectionException as err:
            message = f"Could not read register, bad connection: {err}"
            LOGGER.error(message)
            self.client.close()
            raise AuroraConnectionInterruptedException(message) from err
        except ModbusException as err:
            message = f"Modbus exception reading register: {err}"
            LOGGER.error(message)
            raise AuroraException(message) from err
        finally:
            self.ts = time.time()
        return list(response.registers)

    async def read_addresses(self, addresses: t.Iterable[int]) -> dict[int, int]:
        """Read an arbitrary set of registers, one transaction per contiguous chunk."""
        values: dict[int, int] = {}
        for chunk in coalesce(addresses):
            words = await self.read_registers(chunk.start, len(chunk))
            values.update(zip(chunk, words, strict=True))
        return values

    async def write_register(self, address: int, value: int) -> bool:
        """Write a single holding register."""
        LOGGER.debug("Writing register %s: %s to device id %s", address, value, self.device_id)

        if not 0 <= value <= 0xFFFF:
            raise AuroraInvalidArgumentException(f"Value {value} does not fit in a register")

        await self._reconnect()
        try:
            await self._throttle()
            response = await self.client.write_register(
                address,
                value,
                device_id=self.device_id,
            )
            if isinstance(response, ExceptionResponse):
                message = (
                    f"Failed to write value {value} to register {address}: "
                    f"{response.exception_code:02X}"
                )
                LOGGER.info(message)
                raise AuroraWriteException(message, modbus_exception_code=response.exception_code)
        except ModbusIOException as err:
            message = f"Could not write register, I/O exception: {err}"
            LOGGER.error(message)
            self.client.close()
            raise AuroraIOException(message) from err
        except ModbusConnectionException as err:
            message = f"Could not write register, bad connection: {err}"
            LOGGER.error(message)
            self.client.close()
            raise AuroraConnectionInterruptedException(message) from err
        except ModbusException as err:
            message = f"Could not write register: {err}"
            LOGGER.error(message)
            raise AuroraException(message) from err
        finally:
            self.ts = time.time()
        return bool(response.address == address and response.registers == [value])

    async def write_registers(self, address: int, values: list[int]) -> bool:
        """Write consecutive registers, one transaction per word."""
        ok = True
        for offset, value in enumerate(values):
            ok = await self.write_register(address + offset, value) and ok
        return ok

    async def connect(self) -> bool:
        """Establish underlying Modbus connection."""
        return await self._reconnect()

    def close(self) -> None:
        """Close underlying Modbus connection."""
        self.client.close()


class AsyncAuroraModbusTcpClient(AsyncAuroraModbusClient):
    """Aurora client using Modbus TCP transport."""

    def __init__(self, transport: AuroraTcpTransport, device_id: int = DEFAULT_DEVICE_ID) -> None:
        client = modbusClient.AsyncModbusTcpClient(transport.host, port=transport.port)
        super().__init__(client, device_id)


class AsyncAuroraModbusRtuClient(AsyncAuroraModbusClient):
    """Aurora client using Modbus RTU transport."""

    def __init__(self, transport: AuroraRtuTransport, device_id: int = DEFAULT_DEVICE_ID) -> None:
        client = modbusClient.AsyncModbusSerialClient(
            transport.device,
            baudrate=transport.baudrate,
            bytesize=transport.data_bits,
            parity=transport.parity,
            stopbits=transport.stop_bits,
        )
        super().__init__(client, device_id)


def client_for_transport(
    transport: AuroraBaseTransport, device_id: int = DEFAULT_DEVICE_ID
) -> AsyncAuroraModbusClient:
    """Instantiate the client matching a transport description."""
    if isinstance(transport, AuroraTcpTransport):
        return AsyncAuroraModbusTcpClient(transport, device_id)
    if isinstance(transport, AuroraRtuTransport):
        return AsyncAuroraModbusRtuClient(transport, device_id)
    raise AuroraException(f"Unknown transport {transport}")
