"""
Siemens S7 Communication Driver
================================
Talks to S7-300/400/1200/1500 CPUs over ISO-on-TCP (port 102)
through python-snap7.

python-snap7 reports failures by raising RuntimeError with the
library's error text. This driver turns those into the numeric
result codes the poll controller expects and keeps the text for
`error_text()`.

Notes for S7-1200/1500 targets:
  - The data block must NOT use optimized block access
  - PUT/GET communication must be enabled in the CPU protection settings
"""

import logging

import snap7
from snap7.type import Area

from plcpoll.drivers.client import RESULT_OK

logger = logging.getLogger(__name__)

# Returned for any error raised by the snap7 library.
ERR_CLIENT = -1


class Snap7Driver:
    """
    Thin DeviceClient adapter around snap7.client.Client.

    Not thread-safe; the controller funnels every call through its
    device lock.
    """

    def __init__(self, tcp_port: int = 102, client=None):
        self.tcp_port = tcp_port
        self._client = client if client is not None else snap7.client.Client()
        self._last_error = ""

    def connect(self, address: str, rack: int, slot: int) -> int:
        """Open an ISO-on-TCP session with the CPU."""
        try:
            self._client.connect(address, rack, slot, self.tcp_port)
        except RuntimeError as exc:
            return self._fail(exc)
        logger.info("S7 connected to %s (rack %d, slot %d)", address, rack, slot)
        return RESULT_OK

    def disconnect(self) -> None:
        try:
            self._client.disconnect()
        except RuntimeError as exc:
            self._fail(exc)
            logger.warning("S7 disconnect error: %s", exc)
        else:
            logger.info("S7 disconnected")

    @property
    def connected(self) -> bool:
        return bool(self._client.get_connected())

    def read_area(self, db: int, start: int, buffer: bytearray) -> int:
        """Read len(buffer) bytes of DB `db` starting at `start` into `buffer`."""
        try:
            data = self._client.read_area(Area.DB, db, start, len(buffer))
        except RuntimeError as exc:
            return self._fail(exc)
        buffer[:len(data)] = data
        return RESULT_OK

    def write_area(self, db: int, start: int, data: bytearray) -> int:
        """Write `data` to DB `db` starting at byte `start`."""
        try:
            self._client.write_area(Area.DB, db, start, data)
        except RuntimeError as exc:
            return self._fail(exc)
        return RESULT_OK

    def error_text(self, code: int) -> str:
        if code == RESULT_OK:
            return "OK"
        if code == ERR_CLIENT and self._last_error:
            return self._last_error
        return f"Unknown error code {code}"

    def _fail(self, exc: Exception) -> int:
        self._last_error = str(exc)
        return ERR_CLIENT
