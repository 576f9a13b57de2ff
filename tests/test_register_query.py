"""Raw register query parsing tests."""

import pytest

from pyaurora.exceptions import AuroraQueryError
from pyaurora.register_query import (
    format_response,
    parse_query,
    parse_register_address,
    parse_register_ranges,
    parse_register_value,
)


class TestRanges:
    """
    Range list expansion.
    """

    def test_start_and_length(self) -> None:
        assert parse_register_ranges("0,3;10") == [0, 1, 2, 10]

    def test_request_order_and_duplicates(self) -> None:
        assert parse_register_ranges("10;0,2;1") == [10, 0, 1, 1]

    def test_inclusive_range(self) -> None:
        assert parse_register_ranges("740-742;30", inclusive=True) == [740, 741, 742, 30]

    def test_inclusive_range_is_opt_in(self) -> None:
        with pytest.raises(AuroraQueryError):
            parse_register_ranges("740-742;30")

    def test_ascii_digits_only(self) -> None:
        with pytest.raises(AuroraQueryError):
            parse_register_ranges("\u0663")

    def test_custom_separator(self) -> None:
        assert parse_register_ranges("1 2", separator=" ") == [1, 2]

    @pytest.mark.parametrize(
        "text",
        ["", "abc", "0,3;x", "5,0", "-1", "3-1", "0-2", "0,3;", "65535,2", "70000", "1,2,3"],
    )
    def test_invalid(self, text: str) -> None:
        with pytest.raises(AuroraQueryError):
            parse_register_ranges(text)


class TestQuery:
    """
    getregs payloads.
    """

    def test_parse(self) -> None:
        assert parse_query("Q1:0,3;10") == ("Q1", [0, 1, 2, 10])

    def test_correlation_id_is_free_text(self) -> None:
        assert parse_query("my query:5") == ("my query", [5])

    def test_missing_separator(self) -> None:
        with pytest.raises(AuroraQueryError):
            parse_query("0,3;10")

    def test_partially_valid_fails_whole_request(self) -> None:
        with pytest.raises(AuroraQueryError):
            parse_query("Q1:0,3;ten")

    def test_inclusive_range_is_rejected(self) -> None:
        with pytest.raises(AuroraQueryError):
            parse_query("Q1:0-2")

    def test_format_response(self) -> None:
        assert format_response("Q1", [10, 11, 12, 99]) == "Q1:10,11,12,99"


class TestValues:
    """
    Register addresses and values.
    """

    def test_decimal_and_hex(self) -> None:
        assert parse_register_value("26") == 26
        assert parse_register_value("0x1A") == 26
        assert parse_register_value("0X1a") == 26
        assert parse_register_value(" 0xFFFF ") == 0xFFFF

    @pytest.mark.parametrize(
        "payload",
        ["", "0x", "0x10000", "65536", "-1", "1.5", "twelve", "0x+1A", "0x1_A", "\u0663"],
    )
    def test_invalid_value(self, payload: str) -> None:
        with pytest.raises(AuroraQueryError):
            parse_register_value(payload)

    def test_address(self) -> None:
        assert parse_register_address("5") == 5
        with pytest.raises(AuroraQueryError):
            parse_register_address("0x5")
