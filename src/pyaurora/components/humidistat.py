"""Humidistat implementation."""

from __future__ import annotations

import typing as t

from pyaurora.client import AsyncAuroraModbusClient
from pyaurora.components.base import AuroraComponent
from pyaurora.constants import HumidistatMode, SystemOutputs
from pyaurora.registers import RegisterAccess, RegisterAddress, U16Register

HUMIDIFICATION_TARGET_RANGE = (15, 50)
DEHUMIDIFICATION_TARGET_RANGE = (35, 65)

HUMIDIFIER_AUTO = 0x8000
DEHUMIDIFIER_AUTO = 0x4000


class Reg(RegisterAddress):
    """Register set for the humidistat."""

    SYSTEM_OUTPUTS = 30
    RELATIVE_HUMIDITY = 741
    MODES = 12309
    TARGETS = 12310
    SET_MODES = 21114
    SET_TARGETS = 21115


class Humidistat(AuroraComponent):
    """Humidifier and dehumidifier control.

    Modes and targets are packed in one word each, so the setters merge the new value
    with the cached other half before writing, and cache what they wrote.
    """

    relative_humidity: int | None = None
    humidifier_running: bool | None = None
    dehumidifier_running: bool | None = None
    humidifier_mode: HumidistatMode | None = None
    dehumidifier_mode: HumidistatMode | None = None
    humidification_target: int | None = None
    dehumidification_target: int | None = None

    def __init__(self, client: AsyncAuroraModbusClient) -> None:
        super().__init__(client)
        self.outputs = U16Register(Reg.SYSTEM_OUTPUTS)
        self.humidity = U16Register(Reg.RELATIVE_HUMIDITY)
        self.modes = U16Register(Reg.MODES)
        self.targets = U16Register(Reg.TARGETS)
        self.set_modes_reg = U16Register(Reg.SET_MODES, RegisterAccess.WRITE)
        self.set_targets_reg = U16Register(Reg.SET_TARGETS, RegisterAccess.WRITE)
        self._add_registers([self.outputs, self.humidity, self.modes, self.targets])

    def update(self, values: t.Mapping[int, int]) -> None:
        outputs = SystemOutputs(self.outputs.decode_from(values) & 0x03FF)
        self.relative_humidity = self.humidity.decode_from(values)
        self.humidifier_running = SystemOutputs.ACCESSORY in outputs
        self.dehumidifier_running = SystemOutputs.DEHUMIDIFIER in outputs
        modes = self.modes.decode_from(values)
        self.humidifier_mode = (
            HumidistatMode.AUTO if modes & HUMIDIFIER_AUTO else HumidistatMode.MANUAL
        )
        self.dehumidifier_mode = (
            HumidistatMode.AUTO if modes & DEHUMIDIFIER_AUTO else HumidistatMode.MANUAL
        )
        targets = self.targets.decode_from(values)
        self.humidification_target = targets >> 8
        self.dehumidification_target = targets & 0xFF

    def _packed_modes(self, humidifier: HumidistatMode, dehumidifier: HumidistatMode) -> int:
        value = 0
        if humidifier == HumidistatMode.AUTO:
            value |= HUMIDIFIER_AUTO
        if dehumidifier == HumidistatMode.AUTO:
            value |= DEHUMIDIFIER_AUTO
        return value

    async def set_humidifier_mode(self, mode: HumidistatMode) -> bool:
        """Change the humidifier control mode."""
        other = self.dehumidifier_mode or HumidistatMode.MANUAL
        result = await self._write(self.set_modes_reg, self._packed_modes(mode, other))
        if result:
            self.humidifier_mode = mode
        return result

    async def set_dehumidifier_mode(self, mode: HumidistatMode) -> bool:
        """Change the dehumidifier control mode."""
        other = self.humidifier_mode or HumidistatMode.MANUAL
        result = await self._write(self.set_modes_reg, self._packed_modes(other, mode))
        if result:
            self.dehumidifier_mode = mode
        return result

    async def set_humidification_target(self, value: int) -> bool:
        """Change the humidification target (%)."""
        low, high = HUMIDIFICATION_TARGET_RANGE
        if not low <= value <= high:
            raise ValueError(f"Humidification target {value} outside {low}-{high}")
        dehumidification = self.dehumidification_target or DEHUMIDIFICATION_TARGET_RANGE[1]
        result = await self._write(self.set_targets_reg, (value << 8) | dehumidification)
        if result:
            self.humidification_target = value
        return result

    async def set_dehumidification_target(self, value: int) -> bool:
        """Change the dehumidification target (%)."""
        low, high = DEHUMIDIFICATION_TARGET_RANGE
        if not low <= value <= high:
            raise ValueError(f"Dehumidification target {value} outside {low}-{high}")
        humidification = self.humidification_target or HUMIDIFICATION_TARGET_RANGE[0]
        result = await self._write(self.set_targets_reg, (humidification << 8) | value)
        if result:
            self.dehumidification_target = value
        return result
