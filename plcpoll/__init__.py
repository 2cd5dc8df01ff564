"""
PLC Poll Controller
====================
Keeps a live S7 connection, scans one data-block bit on a fixed
interval, publishes change notifications and writes single bits
on demand.

Target Hardware: Siemens S7-300/400/1200/1500 (ISO-on-TCP)
Client Library:  python-snap7
"""

__version__ = "1.0.0"
