"""
S7 Bit Addressing
==================
Parses the textual data-block bit address used throughout the
controller and console:

    DB<block>.DBX<byte>.<bit>      e.g.  DB1.DBX0.0, DB10.DBX3.5

The bit component carries no prefix; only the byte component is
tagged with "DBX".
"""

import re
from dataclasses import dataclass

_ADDRESS_RE = re.compile(r"^DB([0-9]+)\.DBX([0-9]+)\.([0-9]+)$")


class AddressFormatError(ValueError):
    """Raised when a textual bit address does not match DB<n>.DBX<n>.<n>."""


@dataclass(frozen=True)
class BitAddress:
    """A single bit inside a data block."""
    db: int
    byte: int
    bit: int

    def __str__(self) -> str:
        return f"DB{self.db}.DBX{self.byte}.{self.bit}"


def parse_address(text: str) -> BitAddress:
    """Parse "DB<block>.DBX<byte>.<bit>" into a BitAddress."""
    if not isinstance(text, str):
        raise AddressFormatError(f"Address must be a string, got {type(text).__name__}")
    match = _ADDRESS_RE.match(text.strip())
    if match is None:
        raise AddressFormatError(
            f"Invalid bit address {text!r} (expected DB<block>.DBX<byte>.<bit>)"
        )
    db, byte, bit = (int(group) for group in match.groups())
    if bit > 7:
        raise AddressFormatError(f"Bit offset out of range 0-7 in {text!r}")
    return BitAddress(db=db, byte=byte, bit=bit)
