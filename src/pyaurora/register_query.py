"""Parsers for raw register queries.

A query payload looks like ``<correlation-id>:<ranges>``, where ranges is a ``;``
separated list of ``start`` or ``start,length`` segments. Register values written by
hand accept decimal or ``0x`` prefixed hexadecimal.
"""

from __future__ import annotations

import re

from .exceptions import AuroraQueryError

MAX_REGISTER = 0xFFFF

_NUMBER = re.compile(r"[0-9]+")
_HEX = re.compile(r"0[xX]([0-9a-fA-F]+)")


def _number(text: str) -> int:
    text = text.strip()
    if not _NUMBER.fullmatch(text):
        raise AuroraQueryError(f"Invalid register number {text!r}")
    value = int(text)
    if value > MAX_REGISTER:
        raise AuroraQueryError(f"Register number {value} out of range")
    return value


def parse_register_address(text: str) -> int:
    """Parse a single decimal register address."""
    return _number(text)


def parse_register_ranges(
    text: str, *, separator: str = ";", inclusive: bool = False
) -> list[int]:
    """Expand a range list into register addresses, in request order.

    Segments are ``start`` or ``start,length``; with `inclusive` the ``first-last``
    form is accepted too. Any bad segment fails the whole list.
    """
    addresses: list[int] = []
    if not text.strip():
        raise AuroraQueryError("Empty register list")
    for segment in text.split(separator):
        if "," in segment:
            start_text, _, length_text = segment.partition(",")
            start = _number(start_text)
            length = _number(length_text)
            if length == 0:
                raise AuroraQueryError(f"Zero length range {segment!r}")
            end = start + length
        elif inclusive and "-" in segment:
            first_text, _, last_text = segment.partition("-")
            start = _number(first_text)
            end = _number(last_text) + 1
            if end <= start:
                raise AuroraQueryError(f"Empty range {segment!r}")
        else:
            start = _number(segment)
            end = start + 1
        if end - 1 > MAX_REGISTER:
            raise AuroraQueryError(f"Range {segment!r} out of range")
        addresses.extend(range(start, end))
    return addresses


def parse_query(payload: str) -> tuple[str, list[int]]:
    """Split a getregs payload into its correlation id and register addresses."""
    correlation_id, sep, ranges = payload.partition(":")
    if not sep:
        raise AuroraQueryError(f"Missing correlation id in {payload!r}")
    return correlation_id, parse_register_ranges(ranges)


def format_response(correlation_id: str, values: list[int]) -> str:
    """Format a getregs response."""
    return f"{correlation_id}:{','.join(str(v) for v in values)}"


def parse_register_value(payload: str) -> int:
    """Parse a register value written as decimal or 0x hexadecimal."""
    text = payload.strip()
    hexadecimal = _HEX.fullmatch(text)
    if hexadecimal:
        value = int(hexadecimal.group(1), 16)
    elif _NUMBER.fullmatch(text):
        value = int(text)
    else:
        raise AuroraQueryError(f"Invalid register value {payload!r}")
    if not 0 <= value <= MAX_REGISTER:
        raise AuroraQueryError(f"Register value {value} out of range")
    return value
