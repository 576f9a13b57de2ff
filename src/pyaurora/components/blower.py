"""Blower implementation."""

from __future__ import annotations

import typing as t

from pyaurora.client import AsyncAuroraModbusClient
from pyaurora.components.base import AuroraComponent
from pyaurora.constants import BlowerVariant, SystemOutputs
from pyaurora.registers import RegisterAccess, RegisterAddress, U16Register, U32Register

# ECM speed settings accepted by the ABC.
ECM_SPEED_RANGE = (1, 12)


class Reg(RegisterAddress):
    """Register set for the blower."""

    SYSTEM_OUTPUTS = 30
    BLOWER_ONLY_SPEED = 340
    LO_COMPRESSOR_SPEED = 341
    HI_COMPRESSOR_SPEED = 342
    ECM_SPEED = 344
    AUX_HEAT_SPEED = 347
    BLOWER_WATTS = 1148


class Blower(AuroraComponent):
    """The indoor blower, tagged with its motor variant."""

    running: bool | None = None
    speed: int | None = None
    blower_only_speed: int | None = None
    lo_compressor_speed: int | None = None
    hi_compressor_speed: int | None = None
    aux_heat_speed: int | None = None
    watts: int | None = None

    def __init__(
        self, client: AsyncAuroraModbusClient, variant: BlowerVariant, energy_monitoring: bool
    ) -> None:
        super().__init__(client)
        self.variant = variant
        self.energy_monitoring = energy_monitoring
        self.outputs = U16Register(Reg.SYSTEM_OUTPUTS)
        self.ecm_speed = U16Register(Reg.ECM_SPEED)
        self.watts_reg = U32Register(Reg.BLOWER_WATTS)
        access = RegisterAccess.READ | RegisterAccess.WRITE
        self.blower_only_speed_reg = U16Register(
            Reg.BLOWER_ONLY_SPEED, access, *ECM_SPEED_RANGE
        )
        self.lo_compressor_speed_reg = U16Register(
            Reg.LO_COMPRESSOR_SPEED, access, *ECM_SPEED_RANGE
        )
        self.hi_compressor_speed_reg = U16Register(
            Reg.HI_COMPRESSOR_SPEED, access, *ECM_SPEED_RANGE
        )
        self.aux_heat_speed_reg = U16Register(Reg.AUX_HEAT_SPEED, access, *ECM_SPEED_RANGE)

        self._add_registers([self.outputs])
        if variant.is_ecm:
            self._add_registers(
                [
                    self.ecm_speed,
                    self.blower_only_speed_reg,
                    self.lo_compressor_speed_reg,
                    self.hi_compressor_speed_reg,
                    self.aux_heat_speed_reg,
                ]
            )
        if energy_monitoring:
            self._add_registers([self.watts_reg])

    def update(self, values: t.Mapping[int, int]) -> None:
        outputs = SystemOutputs(self.outputs.decode_from(values) & 0x03FF)
        self.running = SystemOutputs.BLOWER in outputs
        if self.variant.is_ecm:
            self.speed = self.ecm_speed.decode_from(values)
            self.blower_only_speed = self.blower_only_speed_reg.decode_from(values)
            self.lo_compressor_speed = self.lo_compressor_speed_reg.decode_from(values)
            self.hi_compressor_speed = self.hi_compressor_speed_reg.decode_from(values)
            self.aux_heat_speed = self.aux_heat_speed_reg.decode_from(values)
        else:
            self.speed = 1 if self.running else 0
        if self.energy_monitoring:
            self.watts = self.watts_reg.decode_from(values)

    async def _set_speed(self, register: U16Register, value: int) -> bool:
        if not self.variant.is_ecm:
            raise ValueError(f"{self.variant} blower speeds are not configurable")
        return await self._write(register, value)

    async def set_blower_only_speed(self, value: int) -> bool:
        """Change the ECM speed used when only the blower runs."""
        return await self._set_speed(self.blower_only_speed_reg, value)

    async def set_lo_compressor_speed(self, value: int) -> bool:
        """Change the ECM speed used with the first compressor stage."""
        return await self._set_speed(self.lo_compressor_speed_reg, value)

    async def set_hi_compressor_speed(self, value: int) -> bool:
        """Change the ECM speed used with the second compressor stage."""
        return await self._set_speed(self.hi_compressor_speed_reg, value)

    async def set_aux_heat_speed(self, value: int) -> bool:
        """Change the ECM speed used with auxiliary heat."""
        return await self._set_speed(self.aux_heat_speed_reg, value)
