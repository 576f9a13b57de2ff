"""Thermostat implementation."""

from __future__ import annotations

import typing as t

from pyaurora.client import AsyncAuroraModbusClient
from pyaurora.components.base import AuroraComponent
from pyaurora.constants import FanMode, HeatingMode
from pyaurora.registers import (
    RegisterAccess,
    RegisterAddress,
    TenthsRegister,
    U16Register,
)

# Setpoints accepted by the thermostat, in ºF.
HEATING_SETPOINT_RANGE = (40, 90)
COOLING_SETPOINT_RANGE = (54, 99)


class Reg(RegisterAddress):
    """Register set for the thermostat."""

    AMBIENT_TEMPERATURE = 502
    ENTERING_AIR_TEMPERATURE = 740
    OUTDOOR_TEMPERATURE = 742
    HEATING_SETPOINT = 745
    COOLING_SETPOINT = 746
    LEAVING_AIR_TEMPERATURE = 900
    FAN_MODE = 12005
    MODE = 12006
    SET_MODE = 12606
    SET_HEATING_SETPOINT = 12619
    SET_COOLING_SETPOINT = 12620
    SET_FAN_MODE = 12621


class Thermostat(AuroraComponent):
    """The communicating thermostat attached to the ABC."""

    mode: HeatingMode | None = None
    fan_mode: FanMode | None = None
    ambient_temperature: float | None = None
    entering_air_temperature: float | None = None
    leaving_air_temperature: float | None = None
    outdoor_temperature: float | None = None
    heating_setpoint: float | None = None
    cooling_setpoint: float | None = None

    def __init__(self, client: AsyncAuroraModbusClient, awl_link: bool) -> None:
        """Initialize the thermostat.

        The outdoor temperature is only known when the AWL link relays it.
        """
        super().__init__(client)
        self.awl_link = awl_link
        self.ambient = TenthsRegister(Reg.AMBIENT_TEMPERATURE)
        self.entering_air = TenthsRegister(Reg.ENTERING_AIR_TEMPERATURE)
        self.leaving_air = TenthsRegister(Reg.LEAVING_AIR_TEMPERATURE)
        self.heating = TenthsRegister(Reg.HEATING_SETPOINT)
        self.cooling = TenthsRegister(Reg.COOLING_SETPOINT)
        self.fan = U16Register(Reg.FAN_MODE)
        self.mode_reg = U16Register(Reg.MODE)
        self.outdoor = TenthsRegister(Reg.OUTDOOR_TEMPERATURE)
        self.set_mode_reg = U16Register(Reg.SET_MODE, RegisterAccess.WRITE, 0, max(HeatingMode))
        self.set_fan_reg = U16Register(Reg.SET_FAN_MODE, RegisterAccess.WRITE, 0, max(FanMode))
        self.set_heating_reg = TenthsRegister(
            Reg.SET_HEATING_SETPOINT, RegisterAccess.WRITE, *HEATING_SETPOINT_RANGE
        )
        self.set_cooling_reg = TenthsRegister(
            Reg.SET_COOLING_SETPOINT, RegisterAccess.WRITE, *COOLING_SETPOINT_RANGE
        )
        registers = [
            self.ambient,
            self.entering_air,
            self.leaving_air,
            self.heating,
            self.cooling,
            self.fan,
            self.mode_reg,
        ]
        if awl_link:
            registers.append(self.outdoor)
        self._add_registers(registers)

    def update(self, values: t.Mapping[int, int]) -> None:
        self.ambient_temperature = self.ambient.decode_from(values)
        self.entering_air_temperature = self.entering_air.decode_from(values)
        self.leaving_air_temperature = self.leaving_air.decode_from(values)
        self.heating_setpoint = self.heating.decode_from(values)
        self.cooling_setpoint = self.cooling.decode_from(values)
        self.mode = HeatingMode(self.mode_reg.decode_from(values))
        self.fan_mode = FanMode(self.fan.decode_from(values))
        if self.awl_link:
            self.outdoor_temperature = self.outdoor.decode_from(values)

    async def set_mode(self, mode: HeatingMode) -> bool:
        """Change the thermostat mode."""
        return await self._write(self.set_mode_reg, int(mode))

    async def set_fan_mode(self, mode: FanMode) -> bool:
        """Change the fan mode."""
        return await self._write(self.set_fan_reg, int(mode))

    async def set_heating_setpoint(self, value: float) -> bool:
        """Change the heating setpoint (ºF)."""
        return await self._write(self.set_heating_reg, value)

    async def set_cooling_setpoint(self, value: float) -> bool:
        """Change the cooling setpoint (ºF)."""
        return await self._write(self.set_cooling_reg, value)
