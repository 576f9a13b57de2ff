"""Aurora Base Control (ABC) device implementation."""

from __future__ import annotations

import logging
import typing as t
from enum import Flag
from typing import Dict, List

from pyaurora.client import AsyncAuroraModbusClient
from pyaurora.components.base import AuroraComponent
from pyaurora.components.blower import Blower
from pyaurora.components.compressor import Compressor, variant_from_model
from pyaurora.components.dhw import DHW
from pyaurora.components.faults import FaultHistory
from pyaurora.components.humidistat import Humidistat
from pyaurora.components.iz2_zone import MAX_ZONES, IZ2Zone
from pyaurora.components.pump import Pump
from pyaurora.components.thermostat import Thermostat
from pyaurora.constants import (
    DEBUG_REGISTER_RANGES,
    BlowerVariant,
    ComponentStatus,
    Fault,
    PumpVariant,
    SystemOutputs,
)
from pyaurora.exceptions import AuroraNotInitialized
from pyaurora.registers import (
    RegisterAccess,
    RegisterAddress,
    RegisterBase,
    StringRegister,
    U16Register,
    U32Register,
)

LOGGER = logging.getLogger(__name__)

# Energy monitoring levels reported by the ABC.
ENERGY_MONITOR_NONE = 0
ENERGY_MONITOR_COMPRESSOR = 1
ENERGY_MONITOR_FULL = 2


class Reg(RegisterAddress):
    """Register set for the ABC board."""

    ABC_VERSION = 2
    LINE_VOLTAGE = 16
    SYSTEM_OUTPUTS = 30
    PROGRAM_NAME = 88
    MODEL_NUMBER = 92
    SERIAL_NUMBER = 105
    BLOWER_TYPE = 404
    ENERGY_MONITOR = 412
    PUMP_TYPE = 413
    IZ2_ZONE_COUNT = 483
    THERMOSTAT_STATUS = 800
    AXB_STATUS = 806
    IZ2_STATUS = 812
    AOC_STATUS = 815
    MOC_STATUS = 818
    EEV2_STATUS = 824
    AWL_STATUS = 827
    AXB_SETUP = 1103
    AUX_HEAT_WATTS = 1150
    TOTAL_WATTS = 1152


class AXBSetup(Flag):
    """Sensor kits and accessories wired to the AXB (register 1103)."""

    NONE = 0
    PERFORMANCE = 0x0001
    REFRIGERANT = 0x0002
    SECONDARY_PUMP = 0x0004
    HUMIDISTAT = 0x0008


class AuroraABC:  # pylint: disable=too-many-instance-attributes,too-many-public-methods
    """The ABC controller, the single entry point to the heat pump.

    `initialize` probes the installed hardware once and builds the component
    sub-objects. `refresh` pulls a full snapshot; every accessor afterwards reads from
    that snapshot. Nothing here is safe for concurrent use: callers serialize every
    coroutine of this class through one lock.
    """

    client: AsyncAuroraModbusClient
    registers: List[RegisterBase]
    components: List[AuroraComponent]
    values: Dict[int, int]

    abc_version: float | None = None
    program_name: str | None = None
    model_number: str | None = None
    serial_number: str | None = None
    line_voltage: int | None = None
    aux_heat_watts: int | None = None
    total_watts: int | None = None
    outputs: SystemOutputs = SystemOutputs.NONE

    def __init__(self, client: AsyncAuroraModbusClient) -> None:
        """Initialize the class instance."""
        self.client = client
        self.registers = []
        self.components = []
        self.values = {}
        self.initialized = False

        self.statuses: Dict[str, ComponentStatus] = {}
        self.blower_variant = BlowerVariant.PSC
        self.pump_variant = PumpVariant.OPEN_LOOP
        self.energy_level = ENERGY_MONITOR_NONE
        self.axb_setup = AXBSetup.NONE

        self.thermostat: Thermostat | None = None
        self.compressor: Compressor | None = None
        self.blower: Blower | None = None
        self.pump: Pump | None = None
        self.dhw: DHW | None = None
        self.humidistat: Humidistat | None = None
        self.faults = FaultHistory(client)
        self.zones: List[IZ2Zone] = []

        self.line_voltage_reg = U16Register(Reg.LINE_VOLTAGE)
        self.outputs_reg = U16Register(Reg.SYSTEM_OUTPUTS)
        self.aux_heat_watts_reg = U32Register(Reg.AUX_HEAT_WATTS)
        self.total_watts_reg = U32Register(Reg.TOTAL_WATTS)

    def __str__(self) -> str:
        return f"ABC {self.model_number or '?'} ({self.serial_number or '?'})"

    async def initialize(self) -> None:
        """Probe the installed hardware and pull the first snapshot."""
        identification = [
            U16Register(Reg.ABC_VERSION),
            StringRegister(Reg.PROGRAM_NAME, 4, RegisterAccess.READ),
            StringRegister(Reg.MODEL_NUMBER, 12, RegisterAccess.READ),
            StringRegister(Reg.SERIAL_NUMBER, 5, RegisterAccess.READ),
        ]
        config = {
            name: U16Register(reg)
            for name, reg in (
                ("thermostat", Reg.THERMOSTAT_STATUS),
                ("axb", Reg.AXB_STATUS),
                ("iz2", Reg.IZ2_STATUS),
                ("aoc", Reg.AOC_STATUS),
                ("moc", Reg.MOC_STATUS),
                ("eev2", Reg.EEV2_STATUS),
                ("awl", Reg.AWL_STATUS),
            )
        }
        settings = {
            "blower_type": U16Register(Reg.BLOWER_TYPE),
            "energy_monitor": U16Register(Reg.ENERGY_MONITOR),
            "pump_type": U16Register(Reg.PUMP_TYPE),
            "zone_count": U16Register(Reg.IZ2_ZONE_COUNT),
            "axb_setup": U16Register(Reg.AXB_SETUP),
        }
        probe = [*identification, *config.values(), *settings.values()]
        values = await self.client.read_addresses(
            a for reg in probe for a in reg.description.addresses
        )

        version, program, model, serial = (reg.decode_from(values) for reg in identification)
        self.abc_version = version / 100
        self.program_name = program
        self.model_number = model
        self.serial_number = serial
        self.statuses = {
            name: ComponentStatus.from_register(reg.decode_from(values))
            for name, reg in config.items()
        }
        setting = {name: reg.decode_from(values) for name, reg in settings.items()}
        try:
            self.blower_variant = BlowerVariant(setting["blower_type"])
        except ValueError:
            LOGGER.warning("Unknown blower type %s, assuming PSC", setting["blower_type"])
        if self._installed("axb"):
            try:
                self.pump_variant = PumpVariant(setting["pump_type"])
            except ValueError:
                LOGGER.warning("Unknown pump type %s, assuming generic", setting["pump_type"])
                self.pump_variant = PumpVariant.FC1
            self.axb_setup = AXBSetup(setting["axb_setup"] & 0x000F)
        self.energy_level = setting["energy_monitor"]

        self._build_components(min(setting["zone_count"], MAX_ZONES))
        self.initialized = True
        LOGGER.info(
            "Found %s, ABC %s, program %s, components %s",
            self,
            self.abc_version,
            self.program_name,
            {name: str(status.name) for name, status in self.statuses.items()},
        )
        await self.refresh()

    def _installed(self, component: str) -> bool:
        status = self.statuses.get(component)
        return status is not None and status.installed

    def _build_components(self, zone_count: int) -> None:
        client = self.client
        self.thermostat = Thermostat(client, awl_link=self.has_awl_link())
        self.compressor = Compressor(
            client,
            variant_from_model(
                self.model_number or "", self._installed("aoc") and self._installed("moc")
            ),
            energy_monitoring=self.has_energy_monitoring(),
            refrigerant_monitoring=self.has_refrigerant_monitoring(),
            performance_monitoring=self.has_performance_monitoring(),
        )
        self.blower = Blower(client, self.blower_variant, self.has_energy_monitoring())
        self.components = [self.thermostat, self.compressor, self.blower, self.faults]
        if self._installed("axb"):
            self.pump = Pump(
                client,
                self.pump_variant,
                energy_monitoring=self.has_energy_monitoring(),
                secondary=self.has_secondary_pump(),
            )
            self.dhw = DHW(client)
            self.components.extend([self.pump, self.dhw])
        if self.has_humidistat():
            self.humidistat = Humidistat(client)
            self.components.append(self.humidistat)
        if self._installed("iz2"):
            self.zones = [IZ2Zone(client, n) for n in range(1, zone_count + 1)]
            self.components.extend(self.zones)

        self.registers = [self.outputs_reg]
        if self.energy_level >= ENERGY_MONITOR_COMPRESSOR:
            self.registers.append(self.line_voltage_reg)
        if self.has_energy_monitoring():
            self.registers.extend([self.aux_heat_watts_reg, self.total_watts_reg])

    def refresh_addresses(self) -> set[int]:
        """Every register read by one refresh."""
        addresses = {a for reg in self.registers for a in reg.description.addresses}
        for component in self.components:
            addresses |= component.refresh_addresses()
        return addresses

    async def refresh(self) -> None:
        """Pull a full state snapshot from the controller."""
        if not self.initialized:
            raise AuroraNotInitialized("initialize() must be called before refresh()")
        values = await self.client.read_addresses(self.refresh_addresses())
        self.outputs = SystemOutputs(self.outputs_reg.decode_from(values) & 0x03FF)
        if self.energy_level >= ENERGY_MONITOR_COMPRESSOR:
            self.line_voltage = self.line_voltage_reg.decode_from(values)
        if self.has_energy_monitoring():
            self.aux_heat_watts = self.aux_heat_watts_reg.decode_from(values)
            self.total_watts = self.total_watts_reg.decode_from(values)
        for component in self.components:
            component.update(values)
        self.values = values

    # Capability predicates.

    def has_energy_monitoring(self) -> bool:
        """Whether per-component power readings are available."""
        return self.energy_level >= ENERGY_MONITOR_FULL

    def has_line_voltage(self) -> bool:
        """Whether the line voltage is measured."""
        return self.energy_level >= ENERGY_MONITOR_COMPRESSOR

    def has_refrigerant_monitoring(self) -> bool:
        """Whether refrigerant circuit sensors are fitted."""
        return AXBSetup.REFRIGERANT in self.axb_setup or self._installed("eev2")

    def has_performance_monitoring(self) -> bool:
        """Whether water side sensors allow heat of extraction/rejection readings."""
        return AXBSetup.PERFORMANCE in self.axb_setup

    def has_awl_link(self) -> bool:
        """Whether an AWL communication link is active."""
        return self._installed("awl")

    def has_dhw(self) -> bool:
        """Whether a hot water generator is available."""
        return self.dhw is not None

    def has_humidistat(self) -> bool:
        """Whether a humidifier or dehumidifier is controlled by the thermostat."""
        return self._installed("thermostat") and AXBSetup.HUMIDISTAT in self.axb_setup

    def has_secondary_pump(self) -> bool:
        """Whether the AXB drives a secondary loop pump."""
        return AXBSetup.SECONDARY_PUMP in self.axb_setup

    def has_vs_pump(self) -> bool:
        """Whether the loop pump is variable speed."""
        return self.pump is not None and self.pump.variant.is_variable_speed

    @property
    def aux_heat_stage(self) -> int:
        """Active auxiliary heat stage, 0 when off."""
        if SystemOutputs.AUX_HEAT_2 in self.outputs:
            return 2
        if SystemOutputs.AUX_HEAT_1 in self.outputs:
            return 1
        return 0

    @property
    def current_mode(self) -> str:
        """What the unit is doing right now, derived from the output relays."""
        if self.lockout:
            return "lockout"
        if SystemOutputs.COMPRESSOR_STAGE_2 in self.outputs:
            stage = 2
        elif SystemOutputs.COMPRESSOR in self.outputs:
            stage = 1
        else:
            stage = 0
        aux = self.aux_heat_stage
        if stage and aux:
            return f"eh{aux}"
        if aux:
            return "emergency"
        if stage:
            cooling = SystemOutputs.REVERSING_VALVE in self.outputs
            return f"{'c' if cooling else 'h'}{stage}"
        if SystemOutputs.BLOWER in self.outputs:
            return "blower"
        return "standby"

    @property
    def lockout(self) -> bool:
        """Whether the unit is locked out."""
        return SystemOutputs.LOCKOUT in self.outputs

    @property
    def last_fault(self) -> Fault | None:
        """The last fault reported by the controller."""
        return self.faults.last_fault

    def fault_counts(self) -> dict[int, int]:
        """Fault occurrence counters by fault index, unsupported indices omitted."""
        return dict(self.faults.counts)

    async def clear_fault_history(self) -> bool:
        """Reset all the fault counters on the controller."""
        return await self.faults.clear()

    # Raw register access.

    async def read_registers(self, addresses: t.Sequence[int]) -> list[int]:
        """Read raw registers, returned in request order with duplicates kept."""
        values = await self.client.read_addresses(addresses)
        return [values[a] for a in addresses]

    async def write_register(self, address: int, value: int) -> bool:
        """Write a raw register."""
        return await self.client.write_register(address, value)

    async def read_debug_registers(self) -> dict[int, int]:
        """Read the diagnostic register set, by address."""
        return await self.client.read_addresses(
            a for start, length in DEBUG_REGISTER_RANGES for a in range(start, start + length)
        )
