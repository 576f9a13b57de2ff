"""Base class for the components of the heat pump."""

from __future__ import annotations

import logging
import typing as t
from typing import List

from pyaurora.client import AsyncAuroraModbusClient
from pyaurora.registers import RegisterAccess, RegisterBase

LOGGER = logging.getLogger(__name__)


class AuroraComponent:
    """A part of the heat pump whose state is read from the ABC snapshot.

    Accessors only look at the values cached by the last `update`; the transport is
    touched by `update`'s caller (one coalesced read per refresh) and by the setters.
    """

    client: AsyncAuroraModbusClient
    registers: List[RegisterBase]

    def __init__(self, client: AsyncAuroraModbusClient) -> None:
        self.client = client
        self.registers = []

    def _add_registers(self, reglist: List[RegisterBase]) -> None:
        self.registers.extend(reglist)

    def refresh_addresses(self) -> set[int]:
        """All the register addresses this component needs on every refresh."""
        return {
            address
            for reg in self.registers
            if RegisterAccess.READ in reg.description.access
            for address in reg.description.addresses
        }

    def update(self, values: t.Mapping[int, int]) -> None:
        """Update cached state from a register snapshot."""
        raise NotImplementedError

    async def _write(self, register: RegisterBase, value: t.Any) -> bool:
        register.validate(value)
        words = register.encode(value)
        LOGGER.debug("Setting register %s to %s (%s)", register.address, value, words)
        return await self.client.write_registers(register.address, words)
