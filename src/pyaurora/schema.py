"""The Homie schema of an Aurora heat pump.

Which nodes and properties exist depends on the hardware probed by
`AuroraABC.initialize`. The table below pairs each node and property with the
capability predicate deciding whether it is declared; `build_schema` evaluates the
predicates once and returns an immutable `Schema`. Getters and setters are resolved
here as well, so the refresh loop and the command dispatcher never look anything up
by name.
"""

from __future__ import annotations

import functools
import logging
import typing as t
from dataclasses import dataclass, replace

from pyaurora.components.compressor import Compressor
from pyaurora.components.iz2_zone import IZ2Zone
from pyaurora.constants import FAULTS, CompressorVariant, FanMode, HeatingMode, HumidistatMode
from pyaurora.device import AuroraABC
from pyaurora.homie import Datatype, HomieDevice, HomieProperty

LOGGER = logging.getLogger(__name__)

Getter = t.Callable[[AuroraABC], t.Any]
Setter = t.Callable[[AuroraABC, t.Any], t.Awaitable[t.Any]]
Predicate = t.Callable[[AuroraABC], bool]

CURRENT_MODES = ("lockout", "standby", "blower", "h1", "h2", "c1", "c2", "eh1", "eh2", "emergency")

TEMPERATURE_UNIT = "°F"


def _enum_format(enum: t.Iterable[t.Any]) -> str:
    return ",".join(str(member) for member in enum)


def _range_format(low: float, high: float) -> str:
    return f"{low}:{high}"


@dataclass(frozen=True)
class PropertySpec:  # pylint: disable=too-many-instance-attributes
    """One row of the schema table."""

    id: str
    name: str
    datatype: Datatype
    getter: Getter | None
    setter: Setter | None = None
    format: str | None = None
    unit: str | None = None
    retained: bool = True
    hass: str | None = None
    predicate: Predicate | None = None

    def applies(self, abc: AuroraABC) -> bool:
        """Whether the property exists on this device."""
        return self.predicate is None or self.predicate(abc)


@dataclass(frozen=True)
class NodeSpec:
    """A node row: its properties are only considered when the predicate holds."""

    id: str
    name: str
    type: str
    properties: tuple[PropertySpec, ...]
    predicate: Predicate | None = None

    def applies(self, abc: AuroraABC) -> bool:
        """Whether the node exists on this device."""
        return self.predicate is None or self.predicate(abc)


@dataclass(frozen=True)
class NodeSchema:
    """A node as declared for one device instance."""

    id: str
    name: str
    type: str
    properties: tuple[PropertySpec, ...]

    def property(self, property_id: str) -> PropertySpec:
        """Look up a declared property."""
        for prop in self.properties:
            if prop.id == property_id:
                return prop
        raise KeyError(f"{self.id}/{property_id}")


@dataclass(frozen=True)
class Schema:
    """All the nodes and properties of one device instance, fixed at startup."""

    nodes: tuple[NodeSchema, ...]

    def node(self, node_id: str) -> NodeSchema:
        """Look up a declared node."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        raise KeyError(node_id)

    def describe(self) -> tuple[tuple[str, tuple[str, ...]], ...]:
        """The shape of the schema: node ids with their property ids, in order."""
        return tuple((node.id, tuple(p.id for p in node.properties)) for node in self.nodes)


@dataclass(frozen=True)
class Binding:
    """A declared Homie property and the getter feeding it on every refresh."""

    prop: HomieProperty
    getter: Getter


def _temperature(
    property_id: str, name: str, getter: Getter, predicate: Predicate | None = None
) -> PropertySpec:
    return PropertySpec(
        property_id,
        name,
        Datatype.FLOAT,
        getter,
        unit=TEMPERATURE_UNIT,
        hass="temperature",
        predicate=predicate,
    )


def _watts(property_id: str, name: str, getter: Getter) -> PropertySpec:
    return PropertySpec(
        property_id,
        name,
        Datatype.INTEGER,
        getter,
        unit="W",
        hass="power",
        predicate=AuroraABC.has_energy_monitoring,
    )


def _variable_speed(abc: AuroraABC) -> bool:
    return abc.compressor is not None and abc.compressor.variable_speed


def _refrigerant(abc: AuroraABC) -> bool:
    return abc.has_refrigerant_monitoring()


def _performance(abc: AuroraABC) -> bool:
    return abc.has_performance_monitoring()


def _ecm_blower(abc: AuroraABC) -> bool:
    return abc.blower is not None and abc.blower.variant.is_ecm


def _compressor_speed_format(compressor: Compressor) -> str:
    if compressor.variant == CompressorVariant.VARIABLE_SPEED:
        return _range_format(0, 12)
    if compressor.variant == CompressorVariant.DUAL_STAGE:
        return _range_format(0, 2)
    return _range_format(0, 1)


def _ecm_speed(property_id: str, name: str, getter: Getter, setter: Setter) -> PropertySpec:
    return PropertySpec(
        property_id,
        name,
        Datatype.INTEGER,
        getter,
        setter=setter,
        format=_range_format(1, 12),
        predicate=_ecm_blower,
    )


ABC_NODE = NodeSpec(
    "abc",
    "Aurora Basic Control",
    "ABC",
    (
        PropertySpec(
            "current-mode",
            "Current operating mode",
            Datatype.ENUM,
            lambda abc: abc.current_mode,
            format=",".join(CURRENT_MODES),
        ),
        PropertySpec("lockout", "Lockout", Datatype.BOOLEAN, lambda abc: abc.lockout),
        PropertySpec(
            "last-fault",
            "Last fault code",
            Datatype.INTEGER,
            lambda abc: abc.last_fault.code if abc.last_fault else None,
        ),
        PropertySpec(
            "aux-heat-stage",
            "Auxiliary heat stage",
            Datatype.INTEGER,
            lambda abc: abc.aux_heat_stage,
            format=_range_format(0, 2),
        ),
        PropertySpec(
            "line-voltage",
            "Line voltage",
            Datatype.INTEGER,
            lambda abc: abc.line_voltage,
            unit="V",
            hass="voltage",
            # a zero reading means the voltage sensor is not wired
            predicate=lambda abc: abc.has_line_voltage() and bool(abc.line_voltage),
        ),
        _watts("aux-heat-watts", "Auxiliary heat power usage", lambda abc: abc.aux_heat_watts),
        _watts("total-watts", "Total power usage", lambda abc: abc.total_watts),
    ),
)

THERMOSTAT_NODE = NodeSpec(
    "thermostat",
    "Thermostat",
    "thermostat",
    (
        PropertySpec(
            "mode",
            "Mode",
            Datatype.ENUM,
            lambda abc: abc.thermostat.mode,
            setter=lambda abc, value: abc.thermostat.set_mode(HeatingMode.parse(value)),
            format=_enum_format(HeatingMode),
        ),
        PropertySpec(
            "fan-mode",
            "Fan mode",
            Datatype.ENUM,
            lambda abc: abc.thermostat.fan_mode,
            setter=lambda abc, value: abc.thermostat.set_fan_mode(FanMode.parse(value)),
            format=_enum_format(FanMode),
        ),
        PropertySpec(
            "heating-setpoint",
            "Heating setpoint",
            Datatype.FLOAT,
            lambda abc: abc.thermostat.heating_setpoint,
            setter=lambda abc, value: abc.thermostat.set_heating_setpoint(value),
            format=_range_format(40, 90),
            unit=TEMPERATURE_UNIT,
        ),
        PropertySpec(
            "cooling-setpoint",
            "Cooling setpoint",
            Datatype.FLOAT,
            lambda abc: abc.thermostat.cooling_setpoint,
            setter=lambda abc, value: abc.thermostat.set_cooling_setpoint(value),
            format=_range_format(54, 99),
            unit=TEMPERATURE_UNIT,
        ),
        _temperature(
            "ambient-temperature",
            "Ambient temperature",
            lambda abc: abc.thermostat.ambient_temperature,
        ),
        _temperature(
            "entering-air-temperature",
            "Entering air temperature",
            lambda abc: abc.thermostat.entering_air_temperature,
        ),
        _temperature(
            "leaving-air-temperature",
            "Leaving air temperature",
            lambda abc: abc.thermostat.leaving_air_temperature,
        ),
        _temperature(
            "outdoor-temperature",
            "Outdoor temperature",
            lambda abc: abc.thermostat.outdoor_temperature,
            predicate=AuroraABC.has_awl_link,
        ),
    ),
)

COMPRESSOR_NODE = NodeSpec(
    "compressor",
    "Compressor",
    "compressor",
    (
        PropertySpec("running", "Running", Datatype.BOOLEAN, lambda abc: abc.compressor.running),
        # the speed format depends on the variant, see build_schema
        PropertySpec("speed", "Current speed", Datatype.INTEGER, lambda abc: abc.compressor.speed),
        _watts("watts", "Power usage", lambda abc: abc.compressor.watts),
        PropertySpec(
            "desired-speed",
            "Desired speed",
            Datatype.INTEGER,
            lambda abc: abc.compressor.desired_speed,
            format=_range_format(0, 12),
            predicate=_variable_speed,
        ),
        PropertySpec(
            "discharge-pressure",
            "Discharge pressure",
            Datatype.FLOAT,
            lambda abc: abc.compressor.discharge_pressure,
            unit="psi",
            hass="pressure",
            predicate=_variable_speed,
        ),
        PropertySpec(
            "suction-pressure",
            "Suction pressure",
            Datatype.FLOAT,
            lambda abc: abc.compressor.suction_pressure,
            unit="psi",
            hass="pressure",
            predicate=_variable_speed,
        ),
        _temperature(
            "discharge-temperature",
            "Discharge temperature",
            lambda abc: abc.compressor.discharge_temperature,
            _variable_speed,
        ),
        _temperature(
            "cabinet-temperature",
            "Cabinet temperature",
            lambda abc: abc.compressor.cabinet_temperature,
            _variable_speed,
        ),
        _temperature(
            "drive-temperature",
            "Drive temperature",
            lambda abc: abc.compressor.drive_temperature,
            _variable_speed,
        ),
        _temperature(
            "inverter-temperature",
            "Inverter temperature",
            lambda abc: abc.compressor.inverter_temperature,
            _variable_speed,
        ),
        PropertySpec(
            "eev-open",
            "Electronic expansion valve open",
            Datatype.INTEGER,
            lambda abc: abc.compressor.eev_open,
            format=_range_format(0, 100),
            unit="%",
            predicate=_variable_speed,
        ),
        _temperature(
            "saturated-evaporator-temperature",
            "Saturated evaporator discharge temperature",
            lambda abc: abc.compressor.saturated_evaporator_temperature,
            _variable_speed,
        ),
        _temperature(
            "superheat", "Superheat", lambda abc: abc.compressor.superheat, _variable_speed
        ),
        _temperature(
            "heating-liquid-line-temperature",
            "Heating liquid line temperature",
            lambda abc: abc.compressor.heating_liquid_line_temperature,
            _refrigerant,
        ),
        _temperature(
            "saturated-condenser-temperature",
            "Saturated condensor discharge temperature",
            lambda abc: abc.compressor.saturated_condenser_temperature,
            _refrigerant,
        ),
        _temperature(
            "subcooling-heating",
            "Subcooling (heating)",
            lambda abc: abc.compressor.subcooling_heating,
            _refrigerant,
        ),
        _temperature(
            "subcooling-cooling",
            "Subcooling (cooling)",
            lambda abc: abc.compressor.subcooling_cooling,
            _refrigerant,
        ),
        PropertySpec(
            "heat-of-extraction",
            "Heat of extraction",
            Datatype.INTEGER,
            lambda abc: abc.compressor.heat_of_extraction,
            unit="Btu/h",
            predicate=_performance,
        ),
        PropertySpec(
            "heat-of-rejection",
            "Heat of rejection",
            Datatype.INTEGER,
            lambda abc: abc.compressor.heat_of_rejection,
            unit="Btu/h",
            predicate=_performance,
        ),
        _temperature(
            "entering-water-temperature",
            "Entering water temperature",
            lambda abc: abc.compressor.entering_water_temperature,
            _performance,
        ),
        _temperature(
            "leaving-water-temperature",
            "Leaving water temperature",
            lambda abc: abc.compressor.leaving_water_temperature,
            _performance,
        ),
        PropertySpec(
            "waterflow",
            "Waterflow",
            Datatype.FLOAT,
            lambda abc: abc.compressor.waterflow,
            unit="gpm",
            predicate=_performance,
        ),
    ),
    predicate=lambda abc: abc.compressor is not None,
)

BLOWER_NODE = NodeSpec(
    "blower",
    "Blower",
    "blower",
    (
        PropertySpec("running", "Running", Datatype.BOOLEAN, lambda abc: abc.blower.running),
        PropertySpec(
            "speed",
            "Current speed",
            Datatype.INTEGER,
            lambda abc: abc.blower.speed,
            format=_range_format(0, 12),
            predicate=_ecm_blower,
        ),
        _ecm_speed(
            "blower-only-speed",
            "Blower only speed",
            lambda abc: abc.blower.blower_only_speed,
            lambda abc, value: abc.blower.set_blower_only_speed(value),
        ),
        _ecm_speed(
            "low-compressor-speed",
            "Low compressor speed",
            lambda abc: abc.blower.lo_compressor_speed,
            lambda abc, value: abc.blower.set_lo_compressor_speed(value),
        ),
        _ecm_speed(
            "high-compressor-speed",
            "High compressor speed",
            lambda abc: abc.blower.hi_compressor_speed,
            lambda abc, value: abc.blower.set_hi_compressor_speed(value),
        ),
        _ecm_speed(
            "aux-heat-speed",
            "Aux heat speed",
            lambda abc: abc.blower.aux_heat_speed,
            lambda abc, value: abc.blower.set_aux_heat_speed(value),
        ),
        _watts("watts", "Power usage", lambda abc: abc.blower.watts),
    ),
)

PUMP_NODE = NodeSpec(
    "pump",
    "Loop pump",
    "pump",
    (
        PropertySpec("running", "Running", Datatype.BOOLEAN, lambda abc: abc.pump.running),
        PropertySpec(
            "secondary-running",
            "Secondary pump running",
            Datatype.BOOLEAN,
            lambda abc: abc.pump.secondary_running,
            predicate=AuroraABC.has_secondary_pump,
        ),
        PropertySpec(
            "speed",
            "Speed",
            Datatype.INTEGER,
            lambda abc: abc.pump.speed,
            format=_range_format(0, 100),
            unit="%",
            predicate=AuroraABC.has_vs_pump,
        ),
        PropertySpec(
            "minimum-speed",
            "Minimum speed",
            Datatype.INTEGER,
            lambda abc: abc.pump.minimum_speed,
            setter=lambda abc, value: abc.pump.set_minimum_speed(value),
            format=_range_format(1, 100),
            unit="%",
            predicate=AuroraABC.has_vs_pump,
        ),
        PropertySpec(
            "maximum-speed",
            "Maximum speed",
            Datatype.INTEGER,
            lambda abc: abc.pump.maximum_speed,
            setter=lambda abc, value: abc.pump.set_maximum_speed(value),
            format=_range_format(1, 100),
            unit="%",
            predicate=AuroraABC.has_vs_pump,
        ),
        PropertySpec(
            "watts",
            "Power usage",
            Datatype.INTEGER,
            lambda abc: abc.pump.watts,
            unit="W",
            hass="power",
            predicate=lambda abc: abc.has_vs_pump() and abc.has_energy_monitoring(),
        ),
    ),
    predicate=lambda abc: abc.pump is not None,
)

DHW_NODE = NodeSpec(
    "dhw",
    "Hot water generator",
    "water-heater",
    (
        PropertySpec(
            "enabled",
            "Enabled",
            Datatype.BOOLEAN,
            lambda abc: abc.dhw.enabled,
            setter=lambda abc, value: abc.dhw.set_enabled(value),
        ),
        PropertySpec("running", "Pump running", Datatype.BOOLEAN, lambda abc: abc.dhw.running),
        _temperature(
            "water-temperature", "Water temperature", lambda abc: abc.dhw.water_temperature
        ),
        PropertySpec(
            "setpoint",
            "Setpoint",
            Datatype.FLOAT,
            lambda abc: abc.dhw.setpoint,
            setter=lambda abc, value: abc.dhw.set_setpoint(value),
            format=_range_format(100, 140),
            unit=TEMPERATURE_UNIT,
        ),
    ),
    predicate=AuroraABC.has_dhw,
)

HUMIDISTAT_NODE = NodeSpec(
    "humidistat",
    "Humidistat",
    "humidistat",
    (
        PropertySpec(
            "relative-humidity",
            "Relative humidity",
            Datatype.INTEGER,
            lambda abc: abc.humidistat.relative_humidity,
            format=_range_format(0, 100),
            unit="%",
            hass="humidity",
            # zero means no humidity sensor
            predicate=lambda abc: bool(abc.humidistat.relative_humidity),
        ),
        PropertySpec(
            "humidifier-running",
            "Humidifier running",
            Datatype.BOOLEAN,
            lambda abc: abc.humidistat.humidifier_running,
        ),
        PropertySpec(
            "dehumidifier-running",
            "Dehumidifier running",
            Datatype.BOOLEAN,
            lambda abc: abc.humidistat.dehumidifier_running,
        ),
        PropertySpec(
            "humidifier-mode",
            "Humidifier mode",
            Datatype.ENUM,
            lambda abc: abc.humidistat.humidifier_mode,
            setter=lambda abc, value: abc.humidistat.set_humidifier_mode(
                HumidistatMode.parse(value)
            ),
            format=_enum_format(HumidistatMode),
        ),
        PropertySpec(
            "dehumidifier-mode",
            "Dehumidifier mode",
            Datatype.ENUM,
            lambda abc: abc.humidistat.dehumidifier_mode,
            setter=lambda abc, value: abc.humidistat.set_dehumidifier_mode(
                HumidistatMode.parse(value)
            ),
            format=_enum_format(HumidistatMode),
        ),
        PropertySpec(
            "humidification-target",
            "Humidification target relative humidity",
            Datatype.INTEGER,
            lambda abc: abc.humidistat.humidification_target,
            setter=lambda abc, value: abc.humidistat.set_humidification_target(value),
            format=_range_format(15, 50),
            unit="%",
        ),
        PropertySpec(
            "dehumidification-target",
            "Dehumidification target relative humidity",
            Datatype.INTEGER,
            lambda abc: abc.humidistat.dehumidification_target,
            setter=lambda abc, value: abc.humidistat.set_dehumidification_target(value),
            format=_range_format(35, 65),
            unit="%",
        ),
    ),
    predicate=lambda abc: abc.humidistat is not None,
)

STATIC_NODES = (
    ABC_NODE,
    THERMOSTAT_NODE,
    COMPRESSOR_NODE,
    BLOWER_NODE,
    PUMP_NODE,
    DHW_NODE,
    HUMIDISTAT_NODE,
)


def zone_node(zone: IZ2Zone) -> NodeSchema:
    """The node of one IntelliZone 2 zone, bound to that zone object."""
    return NodeSchema(
        f"zone{zone.zone_number}",
        f"Zone {zone.zone_number}",
        "thermostat",
        (
            _temperature(
                "ambient-temperature", "Ambient temperature", lambda _: zone.ambient_temperature
            ),
            PropertySpec(
                "mode",
                "Mode",
                Datatype.ENUM,
                lambda _: zone.mode,
                setter=lambda _, value: zone.set_mode(HeatingMode.parse(value)),
                format=_enum_format(HeatingMode),
            ),
            PropertySpec(
                "fan-mode",
                "Fan mode",
                Datatype.ENUM,
                lambda _: zone.fan_mode,
                setter=lambda _, value: zone.set_fan_mode(FanMode.parse(value)),
                format=_enum_format(FanMode),
            ),
            PropertySpec(
                "heating-setpoint",
                "Heating setpoint",
                Datatype.INTEGER,
                lambda _: zone.heating_setpoint,
                setter=lambda _, value: zone.set_heating_setpoint(value),
                format=_range_format(40, 90),
                unit=TEMPERATURE_UNIT,
            ),
            PropertySpec(
                "cooling-setpoint",
                "Cooling setpoint",
                Datatype.INTEGER,
                lambda _: zone.cooling_setpoint,
                setter=lambda _, value: zone.set_cooling_setpoint(value),
                format=_range_format(54, 99),
                unit=TEMPERATURE_UNIT,
            ),
        ),
    )


async def _clear_fault_history(abc: AuroraABC, _value: t.Any) -> bool:
    return await abc.clear_fault_history()


def fault_node(abc: AuroraABC) -> NodeSchema:
    """The fault history node: one counter per supported fault index."""
    properties = [
        PropertySpec(
            f"e{index}",
            FAULTS.get(index, f"E{index}"),
            Datatype.INTEGER,
            lambda abc, index=index: abc.faults.count(index),
        )
        for index in sorted(abc.fault_counts())
    ]
    properties.append(
        PropertySpec(
            "clear-history",
            "Reset fault counts",
            Datatype.ENUM,
            None,
            setter=_clear_fault_history,
            format="clear",
            retained=False,
        )
    )
    return NodeSchema("faults", "Fault history", "faults", tuple(properties))


def build_schema(abc: AuroraABC) -> Schema:
    """Evaluate the capability table against an initialized controller."""
    nodes = []
    for spec in STATIC_NODES:
        if not spec.applies(abc):
            continue
        properties = tuple(p for p in spec.properties if p.applies(abc))
        if spec is COMPRESSOR_NODE and abc.compressor is not None:
            speed_format = _compressor_speed_format(abc.compressor)
            properties = tuple(
                replace(p, format=speed_format) if p.id == "speed" else p
                for p in properties
            )
        nodes.append(NodeSchema(spec.id, spec.name, spec.type, properties))
    nodes.extend(zone_node(zone) for zone in abc.zones)
    nodes.append(fault_node(abc))
    schema = Schema(tuple(nodes))
    LOGGER.debug("Built schema %s", schema.describe())
    return schema


def declare_schema(schema: Schema, abc: AuroraABC, homie_device: HomieDevice) -> list[Binding]:
    """Declare every node and property on the Homie device.

    Returns the bindings the refresh loop walks. Properties without a getter (command
    triggers) are declared but never refreshed.
    """
    bindings = []
    for node_schema in schema.nodes:
        node = homie_device.node(node_schema.id, node_schema.name, node_schema.type)
        for spec in node_schema.properties:
            value = spec.getter(abc) if spec.getter is not None else None
            prop = node.property(
                spec.id,
                spec.name,
                spec.datatype,
                value=value,
                format=spec.format,
                unit=spec.unit,
                retained=spec.retained,
                hass=spec.hass,
                setter=functools.partial(spec.setter, abc) if spec.setter is not None else None,
            )
            if spec.getter is not None:
                bindings.append(Binding(prop, spec.getter))
    return bindings
