#!/usr/bin/env python3

"""WaterFurnace Aurora Command Line Interface."""

import argparse
import asyncio
import logging
import pprint

from aiocmd import aiocmd

try:
    from pyaurora import Aurora
except ModuleNotFoundError:
    import os
    import sys

    sys.path.append(f"{os.path.dirname(__file__)}/src")
    from pyaurora import Aurora

from pyaurora.client import AuroraRtuTransport, AuroraTcpTransport
from pyaurora.constants import FAULTS, HeatingMode
from pyaurora.device import AuroraABC
from pyaurora.exceptions import (
    AuroraConnectionException,
    AuroraInvalidArgumentException,
)
from pyaurora.register_query import (
    parse_register_address,
    parse_register_ranges,
    parse_register_value,
)

LOGGER = logging.getLogger(__name__)


def _print_status(abc: AuroraABC) -> None:  # pylint: disable=too-many-statements
    log = logging.getLogger()
    if log.isEnabledFor(logging.DEBUG):
        print("Raw registers")
        print("-------------")
        pprint.pprint(abc.values)

    print("ABC")
    print("---")
    print(f"    {'Model:': <30}{abc.model_number}")
    print(f"    {'Serial:': <30}{abc.serial_number}")
    print(f"    {'Program:': <30}{abc.program_name} {abc.abc_version}")
    print(f"    {'Current mode:': <30}{abc.current_mode}")
    print(f"    {'Last fault:': <30}{abc.last_fault.description if abc.last_fault else '-'}")
    if abc.has_line_voltage():
        print(f"    {'Line voltage:': <30}{abc.line_voltage} V")
    if abc.has_energy_monitoring():
        print(f"    {'Total power:': <30}{abc.total_watts} W")
        print(f"    {'Aux heat power:': <30}{abc.aux_heat_watts} W")
    print("")

    if abc.thermostat is not None:
        thermostat = abc.thermostat
        print("Thermostat")
        print("----------")
        print(f"    {'Mode:': <30}{thermostat.mode}")
        print(f"    {'Fan mode:': <30}{thermostat.fan_mode}")
        print(f"    {'Ambient temperature:': <30}{thermostat.ambient_temperature} ºF")
        print(f"    {'Heating setpoint:': <30}{thermostat.heating_setpoint} ºF")
        print(f"    {'Cooling setpoint:': <30}{thermostat.cooling_setpoint} ºF")
        print(f"    {'Entering air:': <30}{thermostat.entering_air_temperature} ºF")
        print(f"    {'Leaving air:': <30}{thermostat.leaving_air_temperature} ºF")
        if abc.has_awl_link():
            print(f"    {'Outdoor temperature:': <30}{thermostat.outdoor_temperature} ºF")
        print("")

    if abc.compressor is not None:
        print("Compressor")
        print("----------")
        print(f"    {'Variant:': <30}{abc.compressor.variant}")
        print(f"    {'Speed:': <30}{abc.compressor.speed}")
        if abc.has_energy_monitoring():
            print(f"    {'Power:': <30}{abc.compressor.watts} W")
        print("")

    if abc.blower is not None:
        print("Blower")
        print("------")
        print(f"    {'Variant:': <30}{abc.blower.variant}")
        print(f"    {'Running:': <30}{abc.blower.running}")
        print(f"    {'Speed:': <30}{abc.blower.speed}")
        print("")

    if abc.pump is not None:
        print("Loop pump")
        print("---------")
        print(f"    {'Variant:': <30}{abc.pump.variant}")
        print(f"    {'Running:': <30}{abc.pump.running}")
        if abc.has_vs_pump():
            print(f"    {'Speed:': <30}{abc.pump.speed} %")
        print("")

    if abc.dhw is not None:
        print("Hot water")
        print("---------")
        print(f"    {'Enabled:': <30}{abc.dhw.enabled}")
        print(f"    {'Setpoint:': <30}{abc.dhw.setpoint} ºF")
        print(f"    {'Water temperature:': <30}{abc.dhw.water_temperature} ºF")
        print("")

    for zone in abc.zones:
        print(f"{zone}")
        print("-" * len(str(zone)))
        print(f"    {'Mode:': <30}{zone.mode}")
        print(f"    {'Ambient temperature:': <30}{zone.ambient_temperature} ºF")
        print(f"    {'Heating setpoint:': <30}{zone.heating_setpoint} ºF")
        print(f"    {'Cooling setpoint:': <30}{zone.cooling_setpoint} ºF")
        print("")


class AuroraABCCLI(aiocmd.PromptToolkitCmd):
    """The ABC CLI interface."""

    def __init__(self, abc: AuroraABC) -> None:
        super().__init__()
        self.prompt = f"[ABC {abc.model_number}]>> "
        self.abc = abc

    async def do_status(self) -> None:
        """Print the heat pump status."""
        await self.abc.refresh()
        _print_status(self.abc)

    async def do_registers(self, query: str) -> None:
        """Read raw registers: 'start', 'start,length' or 'first-last', ';' separated."""
        addresses = parse_register_ranges(query, inclusive=True)
        values = await self.abc.read_registers(addresses)
        for address, value in zip(addresses, values):
            print(f"    {address: <8}{value: <8}0x{value:04X}")

    async def do_set_register(self, address: str, value: str) -> None:
        """Write a raw register, the value is decimal or 0x hexadecimal."""
        _address = parse_register_address(address)
        _value = parse_register_value(value)
        await self.abc.write_register(_address, _value)
        (res,) = await self.abc.read_registers([_address])
        print(f"Register {_address}: {res}")

    async def do_faults(self) -> None:
        """Print the fault history counters."""
        await self.abc.refresh()
        for index, count in self.abc.fault_counts().items():
            print(f"    E{index: <4}{FAULTS.get(index, ''): <40}{count}")

    async def do_clear_faults(self) -> None:
        """Reset the fault history counters."""
        await self.abc.clear_fault_history()

    async def do_mode(self) -> None:
        """Print the thermostat mode."""
        await self.abc.refresh()
        assert self.abc.thermostat is not None
        print(f"Mode: {self.abc.thermostat.mode}")

    async def do_set_mode(self, mode: str) -> None:
        """Set the thermostat mode: off, auto, cool, heat or eheat."""
        value = HeatingMode.parse(mode)
        assert self.abc.thermostat is not None
        await self.abc.thermostat.set_mode(value)


class AuroraRootCLI(aiocmd.PromptToolkitCmd):
    """CLI root context."""

    prompt = ">> "
    intro = 'Welcome to AuroraCLI. Type "help" for available commands.'
    aurora: Aurora | None = None

    async def _enter(self, aurora: Aurora) -> None:
        self.aurora = aurora
        abc = await aurora.initialize()
        await AuroraABCCLI(abc).run()

    async def do_connect_rtu(  # pylint: disable=too-many-arguments,too-many-positional-arguments
        self,
        port: str = "/dev/ttyUSB0",
        baudrate: str = "19200",
        data_bits: str = "8",
        parity: str = "E",
        stop_bits: str = "1",
        device_id: str = "1",
    ) -> None:
        """Connect to the AID port through a serial adapter."""
        if self.aurora:
            raise AuroraConnectionException("Already connected")
        transport = AuroraRtuTransport(
            device=port,
            baudrate=int(baudrate),
            data_bits=int(data_bits),
            parity=parity,
            stop_bits=int(stop_bits),
        )
        await self._enter(Aurora(transport, int(device_id)))

    async def do_connect_tcp(self, host: str = "192.168.0.207", port: int = 502):
        """Connect through a Modbus TCP gateway."""
        if self.aurora:
            raise AuroraConnectionException("Already connected")
        transport = AuroraTcpTransport(host, port=int(port))
        await self._enter(Aurora(transport))

    async def do_disconnect(self) -> None:
        """Disconnect from the heat pump."""
        if self.aurora:
            self.aurora.close()
            self.aurora = None

    async def do_set_log_level(self, level: str) -> None:
        "Set the log level: critical, fatal, error, warning, info or debug."
        logging.basicConfig()
        log = logging.getLogger()
        if level.casefold() == "critical".casefold():
            log.setLevel(logging.CRITICAL)
        elif level.casefold() == "fatal".casefold():
            log.setLevel(logging.FATAL)
        elif level.casefold() == "error".casefold():
            log.setLevel(logging.ERROR)
        elif level.casefold() == "warning".casefold():
            log.setLevel(logging.WARNING)
        elif level.casefold() == "info".casefold():
            log.setLevel(logging.INFO)
        elif level.casefold() == "debug".casefold():
            log.setLevel(logging.DEBUG)
        else:
            raise AuroraInvalidArgumentException("Invalid log level")


async def main() -> None:
    """Run the async CLI."""
    await AuroraRootCLI().run()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="WaterFurnace Aurora Command Line Interface",
    )
    args = parser.parse_args()
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    loop.run_until_complete(main())
