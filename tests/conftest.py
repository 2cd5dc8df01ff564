"""
Shared test fixtures for the PLC poll controller test suite.
"""

import time
import threading
from contextlib import contextmanager

import pytest

from plcpoll.config.settings import PollSettings
from plcpoll.core.controller import PollController
from plcpoll.drivers.client import RESULT_OK
from plcpoll.drivers.simulator import PLCSimulator


def wait_for(predicate, timeout: float = 2.0, interval: float = 0.01) -> bool:
    """Poll `predicate` until it is true or `timeout` expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


class RecordingClient:
    """
    DeviceClient that records any overlapping entry into its
    methods. Each call holds a non-blocking guard for `io_delay_sec`;
    if the guard is already taken, two calls overlapped.
    """

    def __init__(self, io_delay_sec: float = 0.001):
        self.io_delay_sec = io_delay_sec
        self.memory = bytearray(4)
        self.violations = 0
        self.reads = 0
        self.writes = 0
        self.connects = 0
        self._connected = False
        self._guard = threading.Lock()

    def connect(self, address, rack, slot):
        with self._enter():
            self.connects += 1
            self._connected = True
        return RESULT_OK

    def disconnect(self):
        with self._enter():
            self._connected = False

    @property
    def connected(self):
        return self._connected

    def read_area(self, db, start, buffer):
        with self._enter():
            self.reads += 1
            buffer[:] = self.memory[start:start + len(buffer)]
        return RESULT_OK

    def write_area(self, db, start, data):
        with self._enter():
            self.writes += 1
            # Byte-by-byte with a pause, so an overlapping read would see a torn buffer
            for i, b in enumerate(data):
                self.memory[start + i] = b
                time.sleep(self.io_delay_sec)
        return RESULT_OK

    def error_text(self, code):
        return f"error {code}"

    @contextmanager
    def _enter(self):
        if not self._guard.acquire(blocking=False):
            self.violations += 1
            self._guard.acquire()
        try:
            time.sleep(self.io_delay_sec)
            yield
        finally:
            self._guard.release()


@pytest.fixture
def settings():
    return PollSettings()


@pytest.fixture
def quiet_settings():
    """Settings whose scan timer never fires during a test."""
    return PollSettings(scan_rate_ms=60_000)


@pytest.fixture
def simulator():
    return PLCSimulator()


@pytest.fixture
def controller(simulator, quiet_settings):
    """Controller on the simulator; scans run only via single_scan()."""
    ctrl = PollController(client=simulator, settings=quiet_settings)
    yield ctrl
    ctrl.close()


@pytest.fixture
def refreshes(controller):
    """List that grows by one entry per values_refreshed notification."""
    events = []
    controller.values_refreshed.subscribe(lambda: events.append(controller.state))
    return events


@pytest.fixture(name="wait_for")
def wait_for_fixture():
    return wait_for


@pytest.fixture
def make_recording_client():
    """Factory for RecordingClient instances."""
    return RecordingClient
