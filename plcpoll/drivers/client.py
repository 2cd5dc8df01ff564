"""
Device Client Interface
========================
The synchronous capability the poll controller drives. Every call
blocks for the device round-trip and implementations are NOT
required to be thread-safe; the controller serializes access.

Result codes follow the S7 client convention: 0 is success, any
other value is an error that `error_text()` can describe.
"""

from typing import Protocol

RESULT_OK = 0


class DeviceClient(Protocol):
    """Protocol for S7 client implementations."""

    def connect(self, address: str, rack: int, slot: int) -> int: ...
    def disconnect(self) -> None: ...

    @property
    def connected(self) -> bool: ...

    def read_area(self, db: int, start: int, buffer: bytearray) -> int: ...
    def write_area(self, db: int, start: int, data: bytearray) -> int: ...
    def error_text(self, code: int) -> str: ...
