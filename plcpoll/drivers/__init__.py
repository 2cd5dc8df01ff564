from plcpoll.drivers.client import DeviceClient, RESULT_OK
from plcpoll.drivers.simulator import PLCSimulator

__all__ = ["DeviceClient", "RESULT_OK", "PLCSimulator"]
