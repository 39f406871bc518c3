"""
Hex helpers for JSON-RPC quantities and byte strings
"""

from typing import Union

Quantity = Union[str, int]


def strip_0x(value: str) -> str:
    return value[2:] if value.startswith(("0x", "0X")) else value


def to_hex(value: Quantity | None) -> str:
    """Encode an integer quantity as 0x-hex.

    None becomes ``0x0``; strings already 0x-prefixed pass through unchanged;
    decimal strings, ``0X``-prefixed strings and ints are converted.
    """
    if value is None:
        return "0x0"
    if isinstance(value, str) and value.startswith("0x"):
        return value
    return hex(to_int(value))


def to_int(value: Quantity) -> int:
    """Decode a quantity given as int, decimal string or 0x-hex string."""
    if isinstance(value, int):
        return value
    return int(value, 16) if value.startswith(("0x", "0X")) else int(value)


def hex_to_bytes(value: str) -> bytes:
    return bytes.fromhex(strip_0x(value))
