"""Exceptions from the Aurora library."""


class AuroraException(Exception):
    """Base class for Aurora exceptions."""


class AuroraDecodeError(AuroraException):
    """Decoding failed."""


class AuroraConnectionException(AuroraException):
    """Exception connecting to device."""


class AuroraInvalidArgumentException(AuroraException):
    """Invalid argument."""

    def __init__(self, message: str):
        super().__init__(message)


class AuroraReadException(AuroraException):
    """Exception reading register from device."""

    def __init__(self, message: str, modbus_exception_code: int | None):
        super().__init__(message)
        self.modbus_exception_code = modbus_exception_code


class AuroraConnectionInterruptedException(AuroraException):
    """Connection to the device was interrupted."""


class AuroraSlaveBusyException(AuroraException):
    """Non-fatal exception while trying to read from device."""


class AuroraWriteException(AuroraException):
    """Exception writing register to device."""

    def __init__(self, message: str, modbus_exception_code: int | None):
        super().__init__(message)
        self.modbus_exception_code = modbus_exception_code


class AuroraIOException(AuroraException):
    """I/O exception"""


class AuroraNotInitialized(AuroraException):
    """The controller was used before its components were probed."""


class AuroraRefreshError(AuroraException):
    """Refreshing the device state failed. Not recoverable."""


class AuroraCommandError(AuroraException):
    """An inbound property command was rejected."""


class AuroraQueryError(AuroraException):
    """A raw register query could not be parsed."""
