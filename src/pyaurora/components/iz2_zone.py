"""IntelliZone 2 zone implementation."""

from __future__ import annotations

import typing as t

from pyaurora.client import AsyncAuroraModbusClient
from pyaurora.components.base import AuroraComponent
from pyaurora.components.thermostat import COOLING_SETPOINT_RANGE, HEATING_SETPOINT_RANGE
from pyaurora.constants import FanMode, HeatingMode
from pyaurora.registers import RegisterAccess, TenthsRegister, U16Register

# Each zone owns a block of status registers and a block of command registers.
ZONE_STATUS_BASE = 31007
ZONE_STATUS_STRIDE = 3
ZONE_COMMAND_BASE = 21202
ZONE_COMMAND_STRIDE = 9

MAX_ZONES = 6


class IZ2Zone(AuroraComponent):
    """One zone of an IntelliZone 2 system, numbered from 1."""

    ambient_temperature: float | None = None
    mode: HeatingMode | None = None
    fan_mode: FanMode | None = None
    heating_setpoint: int | None = None
    cooling_setpoint: int | None = None

    def __init__(self, client: AsyncAuroraModbusClient, zone_number: int) -> None:
        super().__init__(client)
        if not 1 <= zone_number <= MAX_ZONES:
            raise ValueError(f"Invalid IZ2 zone number {zone_number}")
        self.zone_number = zone_number
        status = ZONE_STATUS_BASE + (zone_number - 1) * ZONE_STATUS_STRIDE
        command = ZONE_COMMAND_BASE + (zone_number - 1) * ZONE_COMMAND_STRIDE

        # config: high byte mode, low byte fan mode
        # setpoints: high byte heating, low byte cooling (whole ºF)
        self.ambient = TenthsRegister(status)
        self.config = U16Register(status + 1)
        self.setpoints = U16Register(status + 2)
        self.set_mode_reg = U16Register(command, RegisterAccess.WRITE, 0, max(HeatingMode))
        self.set_fan_reg = U16Register(command + 1, RegisterAccess.WRITE, 0, max(FanMode))
        self.set_heating_reg = TenthsRegister(
            command + 2, RegisterAccess.WRITE, *HEATING_SETPOINT_RANGE
        )
        self.set_cooling_reg = TenthsRegister(
            command + 3, RegisterAccess.WRITE, *COOLING_SETPOINT_RANGE
        )
        self._add_registers([self.ambient, self.config, self.setpoints])

    def __str__(self) -> str:
        return f"IZ2 zone {self.zone_number}"

    def update(self, values: t.Mapping[int, int]) -> None:
        self.ambient_temperature = self.ambient.decode_from(values)
        config = self.config.decode_from(values)
        self.mode = HeatingMode(config >> 8)
        self.fan_mode = FanMode(config & 0xFF)
        setpoints = self.setpoints.decode_from(values)
        self.heating_setpoint = setpoints >> 8
        self.cooling_setpoint = setpoints & 0xFF

    async def set_mode(self, mode: HeatingMode) -> bool:
        """Change the zone mode."""
        return await self._write(self.set_mode_reg, int(mode))

    async def set_fan_mode(self, mode: FanMode) -> bool:
        """Change the zone fan mode."""
        return await self._write(self.set_fan_reg, int(mode))

    async def set_heating_setpoint(self, value: float) -> bool:
        """Change the zone heating setpoint (ºF)."""
        return await self._write(self.set_heating_reg, value)

    async def set_cooling_setpoint(self, value: float) -> bool:
        """Change the zone cooling setpoint (ºF)."""
        return await self._write(self.set_cooling_reg, value)
