"""
PLC Simulator
==============
In-memory stand-in for an S7 CPU, for development and testing
without real hardware. Implements the DeviceClient protocol over
a set of byte-addressed data blocks.

Fault injection lets tests and the console exercise the
controller's error paths:

  - refuse the next connection (non-zero result)
  - raise during the next connection (unexpected fault)
  - fail the next N reads / writes
  - add a fixed round-trip delay to every data call
"""

import time
import logging
import threading
from typing import Optional

from snap7.util import get_bool, set_bool

from plcpoll.core.address import BitAddress, parse_address
from plcpoll.drivers.client import RESULT_OK

logger = logging.getLogger(__name__)

# Simulator result codes
ERR_CONNECTION_REFUSED = 0x0003
ERR_NOT_CONNECTED = 0x0100
ERR_READ_FAILED = 0x0200
ERR_WRITE_FAILED = 0x0300
ERR_ADDRESS_OUT_OF_RANGE = 0x0400
ERR_BLOCK_NOT_FOUND = 0x0500

_ERROR_TEXT = {
    RESULT_OK: "OK",
    ERR_CONNECTION_REFUSED: "TCP : Connection refused",
    ERR_NOT_CONNECTED: "CLI : Client not connected",
    ERR_READ_FAILED: "CLI : Simulated read failure",
    ERR_WRITE_FAILED: "CLI : Simulated write failure",
    ERR_ADDRESS_OUT_OF_RANGE: "CPU : Address out of range",
    ERR_BLOCK_NOT_FOUND: "CPU : Data block not found",
}


class PLCSimulator:
    """
    Simulates the data-block memory of a single S7 CPU.

    Maintains one bytearray per configured data block. The simulator
    guards its own memory so console commands and tests can poke
    values while the controller is scanning.
    """

    def __init__(self, db_sizes: Optional[dict] = None, io_delay_sec: float = 0.0):
        self._lock = threading.Lock()
        self._blocks: dict[int, bytearray] = {
            db: bytearray(size) for db, size in (db_sizes or {1: 16}).items()
        }
        self._connected = False
        self.io_delay_sec = io_delay_sec

        # Fault injection
        self._connect_result = RESULT_OK
        self._connect_exception: Optional[Exception] = None
        self._failing_reads = 0
        self._failing_writes = 0

        # Statistics
        self.connect_calls = 0
        self.read_calls = 0
        self.write_calls = 0

    # ── DeviceClient Protocol Implementation ─────────────────

    def connect(self, address: str, rack: int, slot: int) -> int:
        self.connect_calls += 1
        if self._connect_exception is not None:
            exc, self._connect_exception = self._connect_exception, None
            raise exc
        result, self._connect_result = self._connect_result, RESULT_OK
        if result != RESULT_OK:
            return result
        self._connected = True
        logger.info("Simulator online (%s rack %d slot %d)", address, rack, slot)
        return RESULT_OK

    def disconnect(self) -> None:
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    def read_area(self, db: int, start: int, buffer: bytearray) -> int:
        self.read_calls += 1
        self._delay()
        if not self._connected:
            return ERR_NOT_CONNECTED
        with self._lock:
            if self._failing_reads > 0:
                self._failing_reads -= 1
                return ERR_READ_FAILED
            code = self._check_range(db, start, len(buffer))
            if code != RESULT_OK:
                return code
            buffer[:] = self._blocks[db][start:start + len(buffer)]
        return RESULT_OK

    def write_area(self, db: int, start: int, data: bytearray) -> int:
        self.write_calls += 1
        self._delay()
        if not self._connected:
            return ERR_NOT_CONNECTED
        with self._lock:
            if self._failing_writes > 0:
                self._failing_writes -= 1
                return ERR_WRITE_FAILED
            code = self._check_range(db, start, len(data))
            if code != RESULT_OK:
                return code
            self._blocks[db][start:start + len(data)] = data
        return RESULT_OK

    def error_text(self, code: int) -> str:
        return _ERROR_TEXT.get(code, f"Unknown error code {code}")

    # ── Simulation Controls ──────────────────────────────────

    def refuse_next_connect(self, code: int = ERR_CONNECTION_REFUSED):
        """Make the next connect() return `code`."""
        self._connect_result = code

    def raise_on_next_connect(self, exc: Exception):
        """Make the next connect() raise `exc`."""
        self._connect_exception = exc

    def fail_next_reads(self, count: int):
        with self._lock:
            self._failing_reads = count

    def fail_next_writes(self, count: int):
        with self._lock:
            self._failing_writes = count

    def drop_connection(self):
        """Simulate the CPU closing the session on its side."""
        self._connected = False

    def set_bit(self, address, value: bool):
        """Force a bit from the PLC side (e.g. ladder logic changing it)."""
        addr = self._as_address(address)
        with self._lock:
            set_bool(self._blocks[addr.db], addr.byte, addr.bit, value)

    def get_bit(self, address) -> bool:
        addr = self._as_address(address)
        with self._lock:
            return get_bool(self._blocks[addr.db], addr.byte, addr.bit)

    def get_block(self, db: int) -> bytes:
        """Snapshot of a data block's memory."""
        with self._lock:
            return bytes(self._blocks[db])

    # ── Internal ─────────────────────────────────────────────

    def _check_range(self, db: int, start: int, size: int) -> int:
        block = self._blocks.get(db)
        if block is None:
            return ERR_BLOCK_NOT_FOUND
        if start < 0 or start + size > len(block):
            return ERR_ADDRESS_OUT_OF_RANGE
        return RESULT_OK

    def _delay(self):
        if self.io_delay_sec > 0:
            time.sleep(self.io_delay_sec)

    @staticmethod
    def _as_address(address) -> BitAddress:
        if isinstance(address, BitAddress):
            return address
        return parse_address(address)
