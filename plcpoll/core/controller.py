"""
Poll Controller
================
Owns the connection to one S7 CPU and keeps a single monitored bit
fresh. Each scan cycle:

    1. Read the byte holding the monitored bit
    2. Decode the bit and update the scan time
    3. Notify subscribers (success or failure)

Every read and write against the device goes through one lock, so
an on-demand bit write never interleaves with a scan read. Writes
run on a dedicated worker thread and never block the caller.

Connection state only moves through connect()/disconnect():

    OFFLINE ──► CONNECTING ──► ONLINE ──► OFFLINE
                    │
                    └──► OFFLINE (refused or faulted)
"""

import time
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from enum import Enum
from typing import Optional, Union

from snap7.util import get_bool, set_bool

from plcpoll.config.settings import PollSettings
from plcpoll.core.address import BitAddress, parse_address
from plcpoll.core.events import Signal
from plcpoll.core.scan_timer import ScanTimer
from plcpoll.drivers.client import DeviceClient, RESULT_OK

logger = logging.getLogger(__name__)

# Result code for a write submitted after close()
ERR_CLOSED = -2


class ConnectionState(Enum):
    OFFLINE = "OFFLINE"
    CONNECTING = "CONNECTING"
    ONLINE = "ONLINE"


class PollController:
    """
    Connection lifecycle, periodic scan and serialized bit writes
    for a single PLC.

    Observable state (`state`, `value`, `scan_time_ms`) is written
    only by the controller's own threads and may be read without
    locking. Subscribe to `values_refreshed` to be told when to
    re-read it.
    """

    def __init__(
        self,
        client: DeviceClient,
        settings: Optional[PollSettings] = None,
    ):
        self.client = client
        self.settings = settings or PollSettings()
        self.monitored = parse_address(self.settings.monitored_address)

        self.values_refreshed = Signal("values_refreshed")

        # Guards every call into the client that touches device memory
        self._device_lock = threading.Lock()
        self._timer = ScanTimer(
            self._on_scan_tick,
            interval_ms=self.settings.scan_rate_ms,
            name="plc-scan",
        )
        self._writer = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="plc-write"
        )

        # Runtime state
        self._state = ConnectionState.OFFLINE
        self._value = False
        self._scan_time_ms = 0.0
        self._max_scan_time_ms = 0.0
        self._last_scan_start = 0.0
        self._scan_count = 0
        self._read_errors = 0
        self._write_errors = 0

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def value(self) -> bool:
        """Last successfully read value of the monitored bit."""
        return self._value

    @property
    def scan_time_ms(self) -> float:
        return self._scan_time_ms

    @property
    def max_scan_time_ms(self) -> float:
        return self._max_scan_time_ms

    @property
    def scan_count(self) -> int:
        return self._scan_count

    @property
    def read_errors(self) -> int:
        return self._read_errors

    @property
    def write_errors(self) -> int:
        return self._write_errors

    @property
    def is_scanning(self) -> bool:
        return self._timer.is_running

    # ── Connection Lifecycle ─────────────────────────────────

    def connect(
        self,
        address: Optional[str] = None,
        rack: Optional[int] = None,
        slot: Optional[int] = None,
    ):
        """
        Connect to the CPU and start scanning.

        A refused connection is logged and leaves the controller
        OFFLINE. An exception raised by the client also leaves it
        OFFLINE and is re-raised to the caller.
        """
        address = address if address is not None else self.settings.plc_address
        rack = rack if rack is not None else self.settings.rack
        slot = slot if slot is not None else self.settings.slot

        # Reconnecting: scanning stops until the new session is up
        self._timer.stop()

        try:
            self._state = ConnectionState.CONNECTING
            logger.info("Connecting to %s (rack %d, slot %d)", address, rack, slot)
            with self._device_lock:
                result = self.client.connect(address, rack, slot)
                if result != RESULT_OK:
                    error = self.client.error_text(result)
            if result == RESULT_OK:
                self._state = ConnectionState.ONLINE
                self._last_scan_start = time.monotonic()
                self._timer.interval_ms = self.settings.scan_rate_ms
                self._timer.start()
            else:
                logger.error("Connection error: %s", error)
                self._state = ConnectionState.OFFLINE
            self._notify()
        except Exception:
            logger.exception("Unexpected fault connecting to %s", address)
            self._timer.stop()
            self._state = ConnectionState.OFFLINE
            self._notify()
            raise

    def disconnect(self):
        """
        Stop scanning and close the session.

        No-op when the client reports no live session. The guard uses
        the client's flag rather than `state`, so it tolerates the two
        drifting apart.
        """
        if not self.client.connected:
            return
        self._timer.stop()
        with self._device_lock:
            self.client.disconnect()
        self._state = ConnectionState.OFFLINE
        logger.info("Disconnected")
        self._notify()

    def close(self):
        """Disconnect, stop scanning and release the write worker."""
        self.disconnect()
        self._timer.stop()
        self._writer.shutdown(wait=True)

    def apply_settings(self):
        """
        Pick up edited scan settings without reconnecting.

        Re-parses the monitored address and, if scanning, restarts the
        timer at the current scan rate.
        """
        self.monitored = parse_address(self.settings.monitored_address)
        self._timer.interval_ms = self.settings.scan_rate_ms
        if self._timer.is_running:
            self._timer.stop()
            self._timer.start()
        logger.info(
            "Settings applied: monitoring %s every %d ms",
            self.monitored, self.settings.scan_rate_ms,
        )

    # ── Scan Cycle ───────────────────────────────────────────

    def single_scan(self):
        """Execute exactly one scan cycle (for testing)."""
        self._on_scan_tick()

    def _on_scan_tick(self):
        started = time.monotonic()
        self._scan_count += 1
        try:
            value = self._read_monitored()
            if value is not None:
                self._value = value
                self._scan_time_ms = (started - self._last_scan_start) * 1000.0
                self._max_scan_time_ms = max(self._max_scan_time_ms, self._scan_time_ms)
                self._last_scan_start = started
        finally:
            self._notify()

    def _read_monitored(self) -> Optional[bool]:
        """Read the monitored bit, or None when the read fails."""
        buffer = bytearray(1)
        with self._device_lock:
            result = self.client.read_area(self.monitored.db, self.monitored.byte, buffer)
            if result != RESULT_OK:
                error = self.client.error_text(result)

        if result != RESULT_OK:
            self._read_errors += 1
            logger.warning("Read error: %s", error)
            return None
        return get_bool(buffer, 0, self.monitored.bit)

    # ── Bit Writes ───────────────────────────────────────────

    def write_bit(self, address: Union[str, BitAddress], value: bool) -> Future:
        """
        Queue a single-bit write and return immediately.

        The address is parsed on the calling thread, so a malformed
        address raises AddressFormatError before anything is queued.
        The returned Future resolves to the client's result code
        (0 on success); failures are also logged. After close() the
        Future is already resolved to ERR_CLOSED.
        """
        target = address if isinstance(address, BitAddress) else parse_address(address)
        try:
            return self._writer.submit(self._write_bit, target, bool(value))
        except RuntimeError:
            # Executor already shut down by close()
            self._write_errors += 1
            logger.warning("Write error: controller closed")
            future = Future()
            future.set_result(ERR_CLOSED)
            return future

    def write_monitored(self, value: bool) -> Future:
        """Write the monitored bit."""
        return self.write_bit(self.monitored, value)

    def _write_bit(self, target: BitAddress, value: bool) -> int:
        buffer = bytearray(1)
        try:
            with self._device_lock:
                # Read-modify-write keeps the other seven bits of the byte
                result = self.client.read_area(target.db, target.byte, buffer)
                if result == RESULT_OK:
                    set_bool(buffer, 0, target.bit, value)
                    result = self.client.write_area(target.db, target.byte, buffer)
                if result != RESULT_OK:
                    error = self.client.error_text(result)
        except Exception:
            logger.exception("Write fault on %s", target)
            raise

        if result != RESULT_OK:
            self._write_errors += 1
            logger.warning("Write error: %s", error)
        else:
            logger.debug("Wrote %s = %s", target, value)
        return result

    # ── Notification ─────────────────────────────────────────

    def _notify(self):
        self.values_refreshed.fire()

    def get_status(self) -> dict:
        """Return comprehensive status snapshot."""
        return {
            "state": self._state.value,
            "plc_address": self.settings.plc_address,
            "monitored_address": str(self.monitored),
            "value": self._value,
            "scanning": self.is_scanning,
            "scan_count": self._scan_count,
            "scan_time_ms": round(self._scan_time_ms, 1),
            "max_scan_time_ms": round(self._max_scan_time_ms, 1),
            "read_errors": self._read_errors,
            "write_errors": self._write_errors,
        }
