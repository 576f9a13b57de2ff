"""Domestic hot water generator implementation."""

from __future__ import annotations

import typing as t

from pyaurora.client import AsyncAuroraModbusClient
from pyaurora.components.base import AuroraComponent
from pyaurora.constants import AXBOutputs
from pyaurora.registers import (
    RegisterAccess,
    RegisterAddress,
    TenthsRegister,
    U16Register,
)

DHW_SETPOINT_RANGE = (100, 140)


class Reg(RegisterAddress):
    """Register set for the DHW generator."""

    DHW_ENABLED = 400
    DHW_SETPOINT = 401
    AXB_OUTPUTS = 1104
    DHW_WATER_TEMPERATURE = 1114


class DHW(AuroraComponent):
    """The desuperheater feeding the domestic hot water tank."""

    enabled: bool | None = None
    running: bool | None = None
    setpoint: float | None = None
    water_temperature: float | None = None

    def __init__(self, client: AsyncAuroraModbusClient) -> None:
        super().__init__(client)
        access = RegisterAccess.READ | RegisterAccess.WRITE
        self.enabled_reg = U16Register(Reg.DHW_ENABLED, access, 0, 1)
        self.setpoint_reg = TenthsRegister(Reg.DHW_SETPOINT, access, *DHW_SETPOINT_RANGE)
        self.outputs = U16Register(Reg.AXB_OUTPUTS)
        self.water_temperature_reg = TenthsRegister(Reg.DHW_WATER_TEMPERATURE)
        self._add_registers(
            [self.enabled_reg, self.setpoint_reg, self.outputs, self.water_temperature_reg]
        )

    def update(self, values: t.Mapping[int, int]) -> None:
        self.enabled = bool(self.enabled_reg.decode_from(values))
        self.setpoint = self.setpoint_reg.decode_from(values)
        self.water_temperature = self.water_temperature_reg.decode_from(values)
        outputs = AXBOutputs(self.outputs.decode_from(values) & 0x001F)
        self.running = AXBOutputs.DHW in outputs

    async def set_enabled(self, value: bool) -> bool:
        """Enable or disable hot water generation."""
        return await self._write(self.enabled_reg, int(value))

    async def set_setpoint(self, value: float) -> bool:
        """Change the hot water setpoint (ºF)."""
        return await self._write(self.setpoint_reg, value)
