"""Constants and data types used by this library."""

from dataclasses import dataclass
from enum import Flag, IntEnum

# Reserved register value meaning "not applicable" or "not supported".
FAULT_SENTINEL = 0xFFFF

# Writing this value to the fault history register clears all counters.
CLEAR_FAULT_HISTORY_MAGIC = 0x5555

# Registers dumped by the $modbus diagnostic request, as (start, length) pairs.
DEBUG_REGISTER_RANGES: tuple[tuple[int, int], ...] = (
    (0, 120),
    (340, 8),
    (400, 16),
    (483, 1),
    (502, 1),
    (740, 3),
    (745, 2),
    (800, 28),
    (900, 1),
    (1103, 12),
    (1134, 3),
    (1146, 20),
)


class ComponentStatus(IntEnum):
    """Status reported by the ABC for each optional board."""

    UNKNOWN = 0
    ACTIVE = 1
    ADDED = 2
    REMOVED = 3
    MISSING = 0xFFFF

    @property
    def installed(self) -> bool:
        """Whether the component is present on the bus."""
        return self in (ComponentStatus.ACTIVE, ComponentStatus.ADDED)

    @classmethod
    def from_register(cls, value: int) -> "ComponentStatus":
        """Decode a component status register, unknown values map to UNKNOWN."""
        try:
            return cls(value)
        except ValueError:
            return cls(cls.UNKNOWN)


class CompressorVariant(IntEnum):
    """Compressor variant, decided once from the model number and installed boards."""

    SINGLE_STAGE = 1
    DUAL_STAGE = 2
    VARIABLE_SPEED = 3

    def __str__(self) -> str:
        if self.value == self.SINGLE_STAGE:
            return "single_stage"
        if self.value == self.DUAL_STAGE:
            return "dual_stage"
        if self.value == self.VARIABLE_SPEED:
            return "variable_speed"
        raise ValueError(f"Unknown compressor variant {self.value}")


class BlowerVariant(IntEnum):
    """Blower motor variant, as reported by the blower type register."""

    PSC = 0
    ECM_208 = 1
    ECM_265 = 2
    FIVE_SPEED = 3

    @property
    def is_ecm(self) -> bool:
        """Whether the motor speeds are configurable."""
        return self in (BlowerVariant.ECM_208, BlowerVariant.ECM_265)

    def __str__(self) -> str:
        if self.value == self.PSC:
            return "psc"
        if self.value == self.ECM_208:
            return "ecm_208_230"
        if self.value == self.ECM_265:
            return "ecm_265_277"
        if self.value == self.FIVE_SPEED:
            return "five_speed"
        raise ValueError(f"Unknown blower variant {self.value}")


class PumpVariant(IntEnum):
    """Loop pump variant, as reported by the pump type register."""

    OPEN_LOOP = 0
    FC1 = 1
    FC2 = 2
    VS_PUMP = 3
    VS_PUMP_26_99 = 4
    VS_PUMP_UPS26_99 = 5
    FC1_GLNP = 6
    FC2_GLNP = 7

    @property
    def is_variable_speed(self) -> bool:
        """Whether the pump speed is controlled by the AXB."""
        return self in (
            PumpVariant.VS_PUMP,
            PumpVariant.VS_PUMP_26_99,
            PumpVariant.VS_PUMP_UPS26_99,
        )

    def __str__(self) -> str:
        return self.name.lower()


class HeatingMode(IntEnum):
    """Thermostat mode."""

    OFF = 0
    AUTO = 1
    COOL = 2
    HEAT = 3
    EHEAT = 4

    def __str__(self) -> str:  # pylint: disable=too-many-return-statements
        if self.value == self.OFF:
            return "off"
        if self.value == self.AUTO:
            return "auto"
        if self.value == self.COOL:
            return "cool"
        if self.value == self.HEAT:
            return "heat"
        if self.value == self.EHEAT:
            return "eheat"
        raise ValueError(f"Unknown heating mode {self.value}")

    @classmethod
    def parse(cls, value: str):
        """Instantiate by string."""
        for mode in cls:
            if value.casefold() == str(mode).casefold():
                return mode
        raise ValueError(f"Unknown heating mode {value}")


class FanMode(IntEnum):
    """Thermostat fan mode."""

    AUTO = 0
    CONTINUOUS = 1
    INTERMITTENT = 2

    def __str__(self) -> str:
        if self.value == self.AUTO:
            return "auto"
        if self.value == self.CONTINUOUS:
            return "continuous"
        if self.value == self.INTERMITTENT:
            return "intermittent"
        raise ValueError(f"Unknown fan mode {self.value}")

    @classmethod
    def parse(cls, value: str):
        """Instantiate by string."""
        for mode in cls:
            if value.casefold() == str(mode).casefold():
                return mode
        raise ValueError(f"Unknown fan mode {value}")


class HumidistatMode(IntEnum):
    """Humidifier and dehumidifier control mode."""

    MANUAL = 0
    AUTO = 1

    def __str__(self) -> str:
        return "auto" if self.value == self.AUTO else "manual"

    @classmethod
    def parse(cls, value: str):
        """Instantiate by string."""
        if value.casefold() == "auto".casefold():
            return cls(cls.AUTO)
        if value.casefold() == "manual".casefold():
            return cls(cls.MANUAL)
        raise ValueError(f"Unknown humidistat mode {value}")


class SystemOutputs(Flag):
    """ABC system output relays (register 30)."""

    NONE = 0
    COMPRESSOR = 0x0001
    COMPRESSOR_STAGE_2 = 0x0002
    REVERSING_VALVE = 0x0004
    BLOWER = 0x0008
    AUX_HEAT_1 = 0x0010
    AUX_HEAT_2 = 0x0020
    DEHUMIDIFIER = 0x0040
    ACCESSORY = 0x0080
    LOCKOUT = 0x0100
    ALARM = 0x0200


class AXBOutputs(Flag):
    """AXB output relays (register 1104)."""

    NONE = 0
    DHW = 0x0001
    LOOP_PUMP = 0x0002
    DIVERTING_VALVE = 0x0004
    SECONDARY_PUMP = 0x0008
    ACCESSORY_2 = 0x0010


@dataclass
class Fault:
    """A decoded fault register value."""

    code: int
    """The fault code, 0 means no fault."""
    lockout: bool
    """True if the fault caused a lockout."""

    @property
    def description(self) -> str:
        """Human readable fault description."""
        if self.code == 0:
            return "No Fault"
        return FAULTS.get(self.code, f"E{self.code}")

    @classmethod
    def from_register(cls, value: int) -> "Fault":
        """Decode register 25 (bit 15 marks a lockout)."""
        return cls(code=value & 0x7FFF, lockout=bool(value & 0x8000))


FAULTS: dict[int, str] = {
    1: "Input Error",
    2: "High Pressure",
    3: "Low Pressure",
    4: "Freeze Detect FP2",
    5: "Freeze Detect FP1",
    7: "Condensate Overflow",
    8: "Over/Under Voltage",
    9: "AirF/RPM",
    10: "Compressor Monitor",
    11: "FP1/2 Sensor Error",
    12: "RefPerfrm Error",
    13: "Non-Critical AXB Sensor Error",
    14: "Critical AXB Sensor Error",
    15: "Hot Water Limit",
    16: "VS Pump Error",
    17: "Communicating Thermostat Error",
    18: "Non-Critical Communications Error",
    19: "Critical Communications Error",
    21: "Low Loop Pressure",
    22: "Communicating ECM Error",
    23: "HA Alarm 1",
    24: "HA Alarm 2",
    25: "AxbEev Error",
    41: "High Drive Temp",
    42: "High Discharge Temp",
    43: "Low Suction Pressure",
    44: "Low Condensing Pressure",
    45: "High Condensing Pressure",
    46: "Output Power Limit",
    47: "EEV ID Comm Error",
    48: "EEV OD Comm Error",
    49: "Cabinet Temperature Sensor",
    51: "Discharge Temp Sensor",
    52: "Suction Pressure Sensor",
    53: "Leaving Air Temp Sensor",
    54: "Low Supply Voltage",
    55: "Out of Envelope",
    56: "Drive Over Current",
    57: "Drive Over/Under Voltage",
    58: "High Drive Temp",
    59: "Internal Drive Error",
    61: "Multiple Safe Mode",
    71: "Loss of Charge",
    72: "Suction Temperature Sensor",
    73: "Leaving Air Temperature Sensor",
    74: "Maximum Operating Pressure",
    99: "System Reset",
}
