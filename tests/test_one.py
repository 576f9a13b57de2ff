#!/usr/bin/env python3
"""pyaurora CLI and API smoke tests."""

import logging
import sys

import pytest

from cli import AuroraABCCLI, AuroraRootCLI
from pyaurora import Aurora, AuroraRtuTransport
from pyaurora.exceptions import AuroraConnectionException, AuroraInvalidArgumentException

logging.basicConfig(stream=sys.stdout, level=logging.DEBUG, format="%(levelname)s - %(message)s")


class TestStartPyauroraCli:
    """
    CLI tests.
    """

    def test_cli_root_init(self) -> None:
        """
        Test cli.py root level init.
        """

        cli = AuroraRootCLI()
        assert cli, "no CLI"
        assert cli.aurora is None

    @pytest.mark.asyncio
    async def test_cli_set_log_level(self) -> None:
        """
        Test the log level command.
        """

        cli = AuroraRootCLI()
        await cli.do_set_log_level("warning")
        assert logging.getLogger().level == logging.WARNING
        await cli.do_set_log_level("DEBUG")
        assert logging.getLogger().level == logging.DEBUG

        with pytest.raises(AuroraInvalidArgumentException):
            await cli.do_set_log_level("verbose")

    @pytest.mark.asyncio
    async def test_cli_registers(self, abc, capsys) -> None:
        """
        Test the raw register dump of the ABC context.
        """

        await abc.initialize()
        cli = AuroraABCCLI(abc)
        assert cli.prompt == "[ABC GSVD036TL]>> "

        await cli.do_registers("16;2")

        lines = capsys.readouterr().out.splitlines()
        assert lines[0].split() == ["16", "240", "0x00F0"]
        assert lines[1].split() == ["2", "300", "0x012C"]

    @pytest.mark.asyncio
    async def test_cli_set_register(self, abc, modbus, capsys) -> None:
        """
        Test the raw register write of the ABC context.
        """

        await abc.initialize()
        modbus.clamp[340] = 12
        cli = AuroraABCCLI(abc)

        await cli.do_set_register("340", "0x10")

        assert modbus.writes == [(340, 16)]
        assert capsys.readouterr().out.strip() == "Register 340: 12"


class TestStartPyauroraApi:
    """
    Aurora api tests.
    """

    @pytest.mark.asyncio
    async def test_api_init(self) -> None:
        """
        Test pyaurora api serial init.
        """

        transport = AuroraRtuTransport("/dev/null")

        api = Aurora(transport)
        assert api, "no api"
        assert not api.abc.initialized

    @pytest.mark.asyncio
    async def test_api_connect(self) -> None:
        """
        Test pyaurora api serial connect.
        """

        transport = AuroraRtuTransport("/dev/null")
        api = Aurora(transport)

        with pytest.raises(AuroraConnectionException):
            await api.connect()
