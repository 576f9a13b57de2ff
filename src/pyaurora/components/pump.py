"""Loop pump implementation."""

from __future__ import annotations

import typing as t

from pyaurora.client import AsyncAuroraModbusClient
from pyaurora.components.base import AuroraComponent
from pyaurora.constants import AXBOutputs, PumpVariant
from pyaurora.registers import RegisterAccess, RegisterAddress, U16Register, U32Register

VS_PUMP_SPEED_RANGE = (1, 100)


class Reg(RegisterAddress):
    """Register set for the loop pump."""

    VS_PUMP_MIN_SPEED = 321
    VS_PUMP_MAX_SPEED = 322
    VS_PUMP_SPEED = 325
    AXB_OUTPUTS = 1104
    PUMP_WATTS = 1164


class Pump(AuroraComponent):
    """The loop pump driven by the AXB, tagged with its variant."""

    running: bool | None = None
    secondary_running: bool | None = None
    speed: int | None = None
    minimum_speed: int | None = None
    maximum_speed: int | None = None
    watts: int | None = None

    def __init__(
        self,
        client: AsyncAuroraModbusClient,
        variant: PumpVariant,
        *,
        energy_monitoring: bool = False,
        secondary: bool = False,
    ) -> None:
        super().__init__(client)
        self.variant = variant
        self.energy_monitoring = energy_monitoring
        self.secondary = secondary
        access = RegisterAccess.READ | RegisterAccess.WRITE
        self.outputs = U16Register(Reg.AXB_OUTPUTS)
        self.speed_reg = U16Register(Reg.VS_PUMP_SPEED)
        self.min_speed_reg = U16Register(Reg.VS_PUMP_MIN_SPEED, access, *VS_PUMP_SPEED_RANGE)
        self.max_speed_reg = U16Register(Reg.VS_PUMP_MAX_SPEED, access, *VS_PUMP_SPEED_RANGE)
        self.watts_reg = U32Register(Reg.PUMP_WATTS)

        self._add_registers([self.outputs])
        if variant.is_variable_speed:
            self._add_registers([self.speed_reg, self.min_speed_reg, self.max_speed_reg])
            if energy_monitoring:
                self._add_registers([self.watts_reg])

    def update(self, values: t.Mapping[int, int]) -> None:
        outputs = AXBOutputs(self.outputs.decode_from(values) & 0x001F)
        self.running = AXBOutputs.LOOP_PUMP in outputs
        if self.secondary:
            self.secondary_running = AXBOutputs.SECONDARY_PUMP in outputs
        if self.variant.is_variable_speed:
            self.speed = self.speed_reg.decode_from(values)
            self.minimum_speed = self.min_speed_reg.decode_from(values)
            self.maximum_speed = self.max_speed_reg.decode_from(values)
            if self.energy_monitoring:
                self.watts = self.watts_reg.decode_from(values)

    async def set_minimum_speed(self, value: int) -> bool:
        """Change the VS pump minimum speed (%)."""
        return await self._write(self.min_speed_reg, value)

    async def set_maximum_speed(self, value: int) -> bool:
        """Change the VS pump maximum speed (%)."""
        return await self._write(self.max_speed_reg, value)
