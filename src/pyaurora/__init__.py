"""The WaterFurnace Aurora heat pump API entrypoint."""

import logging

from pyaurora.client import (
    DEFAULT_DEVICE_ID,
    AsyncAuroraModbusClient,
    AuroraBaseTransport,
    AuroraRtuTransport,
    AuroraTcpTransport,
    client_for_transport,
    transport_from_uri,
)
from pyaurora.constants import Fault
from pyaurora.device import AuroraABC
from pyaurora.exceptions import AuroraException

__all__ = [
    "Aurora",
    "AuroraABC",
    "AuroraBaseTransport",
    "AuroraException",
    "AuroraRtuTransport",
    "AuroraTcpTransport",
    "transport_from_uri",
]

LOGGER = logging.getLogger(__name__)


class Aurora:
    """The Aurora heat pump API."""

    _client: AsyncAuroraModbusClient
    abc: AuroraABC

    def __init__(self, transport: AuroraBaseTransport, device_id: int = DEFAULT_DEVICE_ID) -> None:
        """Initialize the API instance."""
        self._client = client_for_transport(transport, device_id)
        self.abc = AuroraABC(self._client)

    @property
    def client(self) -> AsyncAuroraModbusClient:
        """The underlying Modbus client."""
        return self._client

    async def initialize(self) -> AuroraABC:
        """Probe the controller, returns the initialized ABC."""
        if not self.abc.initialized:
            await self.abc.initialize()
        return self.abc

    async def refresh(self) -> AuroraABC:
        """Pull a fresh snapshot from the controller."""
        await self.abc.refresh()
        return self.abc

    async def read_registers(self, addresses: list[int]) -> list[int]:
        """Read raw registers, in request order."""
        return await self.abc.read_registers(addresses)

    async def write_register(self, address: int, value: int) -> bool:
        """Write a raw register."""
        return await self.abc.write_register(address, value)

    async def last_fault(self) -> Fault | None:
        """Get the last fault reported by the controller."""
        await self.abc.refresh()
        return self.abc.last_fault

    async def connect(self) -> bool:
        """Establish underlying Modbus connection."""
        return await self._client.connect()

    def close(self) -> None:
        """Close underlying Modbus connection."""
        return self._client.close()
