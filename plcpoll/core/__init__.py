from plcpoll.core.address import AddressFormatError, BitAddress, parse_address
from plcpoll.core.events import Signal
from plcpoll.core.scan_timer import ScanTimer
from plcpoll.core.controller import ConnectionState, PollController

__all__ = [
    "AddressFormatError",
    "BitAddress",
    "parse_address",
    "Signal",
    "ScanTimer",
    "ConnectionState",
    "PollController",
]
