"""Compressor implementation, including the variable speed drive telemetry."""

from __future__ import annotations

import typing as t

from pyaurora.client import AsyncAuroraModbusClient
from pyaurora.components.base import AuroraComponent
from pyaurora.constants import CompressorVariant, SystemOutputs
from pyaurora.registers import (
    I32Register,
    RegisterAddress,
    TenthsRegister,
    U16Register,
    U32Register,
)


class Reg(RegisterAddress):
    """Register set for the compressor."""

    SYSTEM_OUTPUTS = 30
    HEATING_LIQUID_LINE_TEMPERATURE = 1109
    LEAVING_WATER_TEMPERATURE = 1110
    ENTERING_WATER_TEMPERATURE = 1111
    WATERFLOW = 1117
    SATURATED_CONDENSER_TEMPERATURE = 1134
    SUBCOOLING_HEATING = 1135
    SUBCOOLING_COOLING = 1136
    COMPRESSOR_WATTS = 1146
    HEAT_OF_EXTRACTION = 1154
    HEAT_OF_REJECTION = 1156
    SPEED_DESIRED = 3000
    SPEED_ACTUAL = 3001
    DISCHARGE_PRESSURE = 3322
    SUCTION_PRESSURE = 3323
    DISCHARGE_TEMPERATURE = 3325
    CABINET_TEMPERATURE = 3327
    DRIVE_TEMPERATURE = 3522
    INVERTER_TEMPERATURE = 3524
    EEV_OPEN = 3808
    SATURATED_EVAPORATOR_TEMPERATURE = 3903
    SUPERHEAT = 3906


def variant_from_model(model_number: str, variable_speed_drive: bool) -> CompressorVariant:
    """Decide the compressor variant.

    A drive board means variable speed; otherwise the fourth character of the model
    number tells dual stage ("D") from single stage.
    """
    if variable_speed_drive:
        return CompressorVariant.VARIABLE_SPEED
    if len(model_number) > 3 and model_number[3].upper() == "D":
        return CompressorVariant.DUAL_STAGE
    return CompressorVariant.SINGLE_STAGE


class Compressor(AuroraComponent):  # pylint: disable=too-many-instance-attributes
    """The compressor, tagged with its variant."""

    speed: int | None = None
    desired_speed: int | None = None
    watts: int | None = None
    discharge_pressure: float | None = None
    suction_pressure: float | None = None
    discharge_temperature: float | None = None
    cabinet_temperature: float | None = None
    drive_temperature: float | None = None
    inverter_temperature: float | None = None
    eev_open: int | None = None
    saturated_evaporator_temperature: float | None = None
    superheat: float | None = None
    heating_liquid_line_temperature: float | None = None
    saturated_condenser_temperature: float | None = None
    subcooling_heating: float | None = None
    subcooling_cooling: float | None = None
    heat_of_extraction: int | None = None
    heat_of_rejection: int | None = None
    entering_water_temperature: float | None = None
    leaving_water_temperature: float | None = None
    waterflow: float | None = None

    def __init__(
        self,
        client: AsyncAuroraModbusClient,
        variant: CompressorVariant,
        *,
        energy_monitoring: bool = False,
        refrigerant_monitoring: bool = False,
        performance_monitoring: bool = False,
    ) -> None:
        super().__init__(client)
        self.variant = variant
        self.energy_monitoring = energy_monitoring
        self.refrigerant_monitoring = refrigerant_monitoring
        self.performance_monitoring = performance_monitoring

        self.outputs = U16Register(Reg.SYSTEM_OUTPUTS)
        self.watts_reg = U32Register(Reg.COMPRESSOR_WATTS)
        self.drive = {
            "desired_speed": U16Register(Reg.SPEED_DESIRED),
            "speed": U16Register(Reg.SPEED_ACTUAL),
            "discharge_pressure": TenthsRegister(Reg.DISCHARGE_PRESSURE),
            "suction_pressure": TenthsRegister(Reg.SUCTION_PRESSURE),
            "discharge_temperature": TenthsRegister(Reg.DISCHARGE_TEMPERATURE),
            "cabinet_temperature": TenthsRegister(Reg.CABINET_TEMPERATURE),
            "drive_temperature": TenthsRegister(Reg.DRIVE_TEMPERATURE),
            "inverter_temperature": TenthsRegister(Reg.INVERTER_TEMPERATURE),
            "eev_open": U16Register(Reg.EEV_OPEN),
            "saturated_evaporator_temperature": TenthsRegister(
                Reg.SATURATED_EVAPORATOR_TEMPERATURE
            ),
            "superheat": TenthsRegister(Reg.SUPERHEAT),
        }
        self.refrigerant = {
            "heating_liquid_line_temperature": TenthsRegister(
                Reg.HEATING_LIQUID_LINE_TEMPERATURE
            ),
            "saturated_condenser_temperature": TenthsRegister(
                Reg.SATURATED_CONDENSER_TEMPERATURE
            ),
            "subcooling_heating": TenthsRegister(Reg.SUBCOOLING_HEATING),
            "subcooling_cooling": TenthsRegister(Reg.SUBCOOLING_COOLING),
        }
        self.performance = {
            "heat_of_extraction": I32Register(Reg.HEAT_OF_EXTRACTION),
            "heat_of_rejection": I32Register(Reg.HEAT_OF_REJECTION),
            "entering_water_temperature": TenthsRegister(Reg.ENTERING_WATER_TEMPERATURE),
            "leaving_water_temperature": TenthsRegister(Reg.LEAVING_WATER_TEMPERATURE),
            "waterflow": TenthsRegister(Reg.WATERFLOW),
        }

        self._add_registers([self.outputs])
        if energy_monitoring:
            self._add_registers([self.watts_reg])
        if variant == CompressorVariant.VARIABLE_SPEED:
            self._add_registers(list(self.drive.values()))
        if refrigerant_monitoring:
            self._add_registers(list(self.refrigerant.values()))
        if performance_monitoring:
            self._add_registers(list(self.performance.values()))

    @property
    def variable_speed(self) -> bool:
        """Whether the compressor is driven by a VS drive."""
        return self.variant == CompressorVariant.VARIABLE_SPEED

    def update(self, values: t.Mapping[int, int]) -> None:
        outputs = SystemOutputs(self.outputs.decode_from(values) & 0x03FF)
        if self.variable_speed:
            for name, reg in self.drive.items():
                setattr(self, name, reg.decode_from(values))
        elif SystemOutputs.COMPRESSOR_STAGE_2 in outputs:
            self.speed = 2
        elif SystemOutputs.COMPRESSOR in outputs:
            self.speed = 1
        else:
            self.speed = 0
        if self.energy_monitoring:
            self.watts = self.watts_reg.decode_from(values)
        if self.refrigerant_monitoring:
            for name, reg in self.refrigerant.items():
                setattr(self, name, reg.decode_from(values))
        if self.performance_monitoring:
            for name, reg in self.performance.items():
                setattr(self, name, reg.decode_from(values))

    @property
    def running(self) -> bool:
        """Whether the compressor is currently running."""
        return bool(self.speed)
