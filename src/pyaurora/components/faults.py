"""Fault history implementation."""

from __future__ import annotations

import logging
import typing as t

from pyaurora.client import AsyncAuroraModbusClient
from pyaurora.components.base import AuroraComponent
from pyaurora.constants import CLEAR_FAULT_HISTORY_MAGIC, FAULT_SENTINEL, Fault
from pyaurora.registers import RegisterAccess, RegisterAddress, U16Register

LOGGER = logging.getLogger(__name__)

# Fault counters live at FAULT_COUNTER_BASE + fault index.
FAULT_COUNTER_BASE = 600
FAULT_INDICES = range(1, 100)


class Reg(RegisterAddress):
    """Register set for the fault history."""

    LAST_FAULT = 25
    LAST_LOCKOUT = 26
    CLEAR_FAULT_HISTORY = 47


class FaultHistory(AuroraComponent):
    """Per fault occurrence counters.

    Counters reading FAULT_SENTINEL are not supported by this controller and are never
    reported.
    """

    last_fault: Fault | None = None
    last_lockout: Fault | None = None

    def __init__(self, client: AsyncAuroraModbusClient) -> None:
        super().__init__(client)
        self.counts: dict[int, int] = {}
        self.last_fault_reg = U16Register(Reg.LAST_FAULT)
        self.last_lockout_reg = U16Register(Reg.LAST_LOCKOUT)
        self.clear_reg = U16Register(Reg.CLEAR_FAULT_HISTORY, RegisterAccess.WRITE)
        self.counters = {
            index: U16Register(FAULT_COUNTER_BASE + index) for index in FAULT_INDICES
        }
        self._add_registers([self.last_fault_reg, self.last_lockout_reg])
        self._add_registers(list(self.counters.values()))

    def update(self, values: t.Mapping[int, int]) -> None:
        self.last_fault = Fault.from_register(self.last_fault_reg.decode_from(values))
        self.last_lockout = Fault.from_register(self.last_lockout_reg.decode_from(values))
        counts = {}
        for index, reg in self.counters.items():
            value = reg.decode_from(values)
            if value != FAULT_SENTINEL:
                counts[index] = value
        self.counts = counts

    def count(self, index: int) -> int | None:
        """Get the counter for a fault index, None if unsupported."""
        return self.counts.get(index)

    async def clear(self) -> bool:
        """Reset all the fault counters."""
        LOGGER.info("Clearing fault history")
        return await self.client.write_register(self.clear_reg.address, CLEAR_FAULT_HISTORY_MAGIC)
