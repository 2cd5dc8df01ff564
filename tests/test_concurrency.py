"""
Stress tests for serialized device access: scan reads and
on-demand writes must never overlap inside the client.
"""

import time
import threading

from plcpoll.config.settings import PollSettings
from plcpoll.core.controller import ConnectionState, PollController
from plcpoll.drivers.client import RESULT_OK


class TestSerializedAccess:

    def test_writes_never_overlap_scan_reads(self, make_recording_client, wait_for):
        client = make_recording_client(io_delay_sec=0.001)
        ctrl = PollController(client=client, settings=PollSettings(scan_rate_ms=1))
        try:
            ctrl.connect("10.0.0.5", 0, 1)
            assert wait_for(lambda: client.reads >= 5)

            futures = []
            futures_lock = threading.Lock()

            def burst(bit):
                for i in range(10):
                    f = ctrl.write_bit(f"DB1.DBX{bit % 4}.{bit}", i % 2 == 0)
                    with futures_lock:
                        futures.append(f)

            threads = [threading.Thread(target=burst, args=(b,)) for b in range(8)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

            results = [f.result(timeout=10.0) for f in futures]
            assert results == [RESULT_OK] * 80
            assert client.writes == 80
            assert client.violations == 0
            assert ctrl.state == ConnectionState.ONLINE
        finally:
            ctrl.close()

    def test_scan_sees_write_on_a_later_cycle(self, make_recording_client, wait_for):
        client = make_recording_client(io_delay_sec=0.0)
        ctrl = PollController(client=client, settings=PollSettings(scan_rate_ms=5))
        try:
            ctrl.connect("10.0.0.5", 0, 1)
            ctrl.write_monitored(True).result(timeout=2.0)
            assert wait_for(lambda: ctrl.value is True)
            ctrl.write_monitored(False).result(timeout=2.0)
            assert wait_for(lambda: ctrl.value is False)
        finally:
            ctrl.close()

    def test_disconnect_waits_for_in_flight_scan(self, make_recording_client, wait_for):
        client = make_recording_client(io_delay_sec=0.02)
        ctrl = PollController(client=client, settings=PollSettings(scan_rate_ms=1))
        ctrl.connect("10.0.0.5", 0, 1)
        assert wait_for(lambda: client.reads >= 1)
        ctrl.disconnect()
        reads = client.reads
        assert not ctrl.is_scanning
        time.sleep(0.05)
        assert client.reads == reads
        assert client.violations == 0
        ctrl.close()

    def test_reconnect_waits_for_in_flight_write(self, make_recording_client, wait_for):
        client = make_recording_client(io_delay_sec=0.05)
        ctrl = PollController(client=client, settings=PollSettings(scan_rate_ms=60_000))
        try:
            ctrl.connect("10.0.0.5", 0, 1)
            future = ctrl.write_bit("DB1.DBX0.0", True)
            assert wait_for(lambda: client._guard.locked())
            ctrl.connect("10.0.0.5", 0, 1)
            assert future.result(timeout=2.0) == RESULT_OK
            assert client.connects == 2
            assert client.violations == 0
            assert ctrl.state == ConnectionState.ONLINE
        finally:
            ctrl.close()
