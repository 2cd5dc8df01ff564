"""
End-to-end: connect, scan at the default rate, write the monitored
bit, disconnect.
"""

import time
import threading

from plcpoll.config.settings import PollSettings
from plcpoll.core.controller import ConnectionState, PollController
from plcpoll.drivers.client import RESULT_OK
from plcpoll.drivers.simulator import PLCSimulator


class TestEndToEnd:

    def test_connect_scan_write_disconnect(self, wait_for):
        sim = PLCSimulator()
        ctrl = PollController(client=sim, settings=PollSettings())
        scans = []
        lock = threading.Lock()

        def on_refresh():
            if ctrl.scan_count:
                with lock:
                    scans.append(ctrl.scan_time_ms)

        ctrl.values_refreshed.subscribe(on_refresh)
        try:
            ctrl.connect("10.0.0.5", 0, 1)
            assert ctrl.state == ConnectionState.ONLINE

            # Three scan periods plus scheduling slack
            assert wait_for(lambda: len(scans) >= 3, timeout=1.5)
            with lock:
                observed = list(scans[:3])
            for scan_time in observed:
                assert 50.0 <= scan_time <= 1000.0

            assert ctrl.write_monitored(True).result(timeout=2.0) == RESULT_OK
            assert wait_for(lambda: ctrl.value is True, timeout=2.0)

            ctrl.disconnect()
            with lock:
                count = len(scans)
            time.sleep(0.35)
            with lock:
                assert len(scans) == count
            assert ctrl.state == ConnectionState.OFFLINE
            assert not ctrl.is_scanning
        finally:
            ctrl.close()

    def test_online_iff_scanning(self):
        sim = PLCSimulator()
        ctrl = PollController(client=sim, settings=PollSettings(scan_rate_ms=20))
        try:
            sequence = [
                lambda: ctrl.connect("10.0.0.5", 0, 1),
                ctrl.disconnect,
                ctrl.disconnect,
                lambda: ctrl.connect("10.0.0.5", 0, 1),
                lambda: ctrl.connect("10.0.0.5", 0, 1),
                sim.refuse_next_connect,
                lambda: ctrl.connect("10.0.0.5", 0, 1),
                lambda: ctrl.connect("10.0.0.5", 0, 1),
                ctrl.disconnect,
            ]
            for step in sequence:
                step()
                assert ctrl.state in ConnectionState
                assert (ctrl.state == ConnectionState.ONLINE) == ctrl.is_scanning
        finally:
            ctrl.close()
