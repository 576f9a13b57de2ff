"""Register definitions."""

import typing as t
from dataclasses import dataclass
from enum import Flag, IntEnum, auto

from pymodbus.client.mixin import ModbusClientMixin

from .exceptions import AuroraDecodeError, AuroraInvalidArgumentException

T = t.TypeVar("T")

# The ABC stores 32-bit values with the high word first.
WORD_ORDER = "big"


class RegisterAddress(IntEnum):
    """The register address base class."""


class RegisterAccess(Flag):
    """Register access flags."""

    READ = auto()
    WRITE = auto()


@dataclass(frozen=True)
class RegisterDescription:
    """Register description."""

    address: int
    length: int
    access: RegisterAccess

    @property
    def addresses(self) -> range:
        """All the register addresses spanned by this description."""
        return range(self.address, self.address + self.length)


class RegisterBase(t.Generic[T]):
    """Base class for register definitions."""

    description: RegisterDescription
    datatype: ModbusClientMixin.DATATYPE
    min_value: T | None
    max_value: T | None

    def __init__(
        self,
        description: RegisterDescription,
        min_value: T | None = None,
        max_value: T | None = None,
    ) -> None:
        """Initialize the register instance."""
        self.description = description
        self.min_value = min_value
        self.max_value = max_value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.description.address})"

    @property
    def address(self) -> int:
        """The first register address."""
        return self.description.address

    def decode(self, registers: list[int]) -> T:
        """Decode register words to value."""
        return ModbusClientMixin.convert_from_registers(
            registers, self.datatype, word_order=WORD_ORDER
        )  # type: ignore

    def encode(self, value: T) -> list[int]:
        """Encode value to register words."""
        return ModbusClientMixin.convert_to_registers(value, self.datatype, word_order=WORD_ORDER)  # type: ignore

    def decode_from(self, values: t.Mapping[int, int]) -> T:
        """Decode this register from a snapshot of raw register values."""
        try:
            words = [values[a] for a in self.description.addresses]
        except KeyError as err:
            raise AuroraDecodeError(f"Register {err} missing from snapshot") from err
        return self.decode(words)

    def validate(self, value: t.Any) -> None:
        """Check a value against the writable range of the register."""
        if RegisterAccess.WRITE not in self.description.access:
            raise AuroraInvalidArgumentException(f"Register {self.address} is not writable")
        if self.min_value is not None and value < self.min_value:
            raise AuroraInvalidArgumentException(
                f"Value {value} below minimum {self.min_value} for register {self.address}"
            )
        if self.max_value is not None and value > self.max_value:
            raise AuroraInvalidArgumentException(
                f"Value {value} above maximum {self.max_value} for register {self.address}"
            )


class StringRegister(RegisterBase[str]):
    """String register, two ASCII characters per word."""

    datatype = ModbusClientMixin.DATATYPE.STRING

    def __init__(self, address: int, length: int, access: RegisterAccess) -> None:
        """Initialize the StringRegister instance."""
        description = RegisterDescription(address, length, access)
        super().__init__(description)

    def decode(self, registers: list[int]) -> str:
        """Decode register words to value."""
        b = bytearray()
        for x in registers:
            b.extend(x.to_bytes(2, "big"))

        # remove trailing null bytes and padding
        try:
            result = b.rstrip(b"\x00").decode("ascii")
        except UnicodeDecodeError as err:
            raise AuroraDecodeError from err
        return result.strip()


class NumberRegister(RegisterBase[T]):
    """Base class for number registers."""

    def decode(self, registers: list[int]) -> T:
        """Decode register words to value."""
        result: T = t.cast(
            T,
            ModbusClientMixin.convert_from_registers(
                registers, self.datatype, word_order=WORD_ORDER
            ),
        )
        return result

    def encode(self, value: T) -> list[int]:
        """Encode value to register words."""
        if isinstance(value, bool):
            int_value = int(value)
        elif isinstance(value, int):
            int_value = value
        elif isinstance(value, float):
            int_value = int(value)
        else:
            raise AuroraInvalidArgumentException(f"Unsupported type {type(value)}")
        return ModbusClientMixin.convert_to_registers(
            int_value, self.datatype, word_order=WORD_ORDER
        )


class U16Register(NumberRegister[int]):
    """Unsigned 16-bit register."""

    datatype = ModbusClientMixin.DATATYPE.UINT16

    def __init__(
        self,
        address: int,
        access: RegisterAccess = RegisterAccess.READ,
        min_value: int | None = None,
        max_value: int | None = None,
    ) -> None:
        """Initialize the U16Register instance."""
        description = RegisterDescription(address, 1, access)
        super().__init__(description, min_value, max_value)


class U32Register(NumberRegister[int]):
    """Unsigned 32-bit register."""

    datatype = ModbusClientMixin.DATATYPE.UINT32

    def __init__(self, address: int, access: RegisterAccess = RegisterAccess.READ) -> None:
        """Initialize the U32Register instance."""
        description = RegisterDescription(address, 2, access)
        super().__init__(description)


class I32Register(NumberRegister[int]):
    """Signed 32-bit register."""

    datatype = ModbusClientMixin.DATATYPE.INT32

    def __init__(self, address: int, access: RegisterAccess = RegisterAccess.READ) -> None:
        """Initialize the I32Register instance."""
        description = RegisterDescription(address, 2, access)
        super().__init__(description)


class TenthsRegister(RegisterBase[float]):
    """Signed 16-bit register holding a value in tenths (temperatures, pressures)."""

    datatype = ModbusClientMixin.DATATYPE.INT16

    def __init__(
        self,
        address: int,
        access: RegisterAccess = RegisterAccess.READ,
        min_value: float | None = None,
        max_value: float | None = None,
    ) -> None:
        """Initialize the TenthsRegister instance."""
        description = RegisterDescription(address, 1, access)
        super().__init__(description, min_value, max_value)

    def decode(self, registers: list[int]) -> float:
        """Decode register words to value."""
        raw = t.cast(
            int,
            ModbusClientMixin.convert_from_registers(
                registers, self.datatype, word_order=WORD_ORDER
            ),
        )
        return raw / 10

    def encode(self, value: float) -> list[int]:
        """Encode value to register words."""
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            raise AuroraInvalidArgumentException(f"Unsupported type {type(value)}")
        return ModbusClientMixin.convert_to_registers(
            round(value * 10), self.datatype, word_order=WORD_ORDER
        )
