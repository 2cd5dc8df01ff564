"""
PLC Poll CLI Console
=====================
Command-line interface for operator interaction with the poll
controller. Supports:

  - Connection commands (connect, disconnect)
  - Status display (connection state, monitored bit, scan time)
  - Bit writes
  - Settings viewing, modification and persistence
  - Simulator fault injection (offline mode)

Usage:
  python -m console.cli              # Interactive mode against the simulator
"""

import cmd
import time
import logging

from plcpoll.core.address import AddressFormatError
from plcpoll.core.controller import PollController

logger = logging.getLogger(__name__)


class PollConsole(cmd.Cmd):
    """Interactive CLI for the PLC poll controller."""

    intro = (
        "\n"
        "╔══════════════════════════════════════════════════════╗\n"
        "║  S7 Poll Controller — Operator Console              ║\n"
        "║  Type 'help' for commands, 'quit' to exit           ║\n"
        "╚══════════════════════════════════════════════════════╝\n"
    )
    prompt = "PLC> "

    def __init__(self, controller: PollController):
        super().__init__()
        self.ctrl = controller

    # ── Connection Commands ──────────────────────────────────

    def do_connect(self, arg):
        """Connect to the PLC: connect [host [rack slot]]"""
        parts = arg.split()
        try:
            host = parts[0] if parts else None
            rack = int(parts[1]) if len(parts) > 1 else None
            slot = int(parts[2]) if len(parts) > 2 else None
        except ValueError:
            print("Usage: connect [host [rack slot]]")
            return
        try:
            self.ctrl.connect(host, rack, slot)
        except Exception as exc:
            print(f"Connection fault: {exc}")
            return
        print(f"Connection state: {self.ctrl.state.value}")

    def do_disconnect(self, arg):
        """Disconnect from the PLC: disconnect"""
        self.ctrl.disconnect()
        print(f"Connection state: {self.ctrl.state.value}")

    # ── Status Commands ──────────────────────────────────────

    def do_status(self, arg):
        """Show controller status: status"""
        s = self.ctrl.get_status()
        print("\n── Controller Status ─────────────────────────────")
        print(f"  PLC:            {s['plc_address']}")
        print(f"  State:          {s['state']}")
        print(f"  Scanning:       {'YES' if s['scanning'] else 'NO'}")
        print(f"  Scan Count:     {s['scan_count']}")
        print(f"  Scan Time:      {s['scan_time_ms']} ms (max: {s['max_scan_time_ms']} ms)")
        print()
        print("── Monitored Bit ────────────────────────────────")
        print(f"  {s['monitored_address']:<15s} {'ON' if s['value'] else 'OFF'}")
        print()
        print("── Diagnostics ──────────────────────────────────")
        print(f"  Read Errors:    {s['read_errors']}")
        print(f"  Write Errors:   {s['write_errors']}")
        print()

    def do_watch(self, arg):
        """Print the monitored bit on every refresh: watch [seconds]"""
        try:
            duration = float(arg) if arg.strip() else 5.0
        except ValueError:
            print("Usage: watch [seconds]")
            return

        def show():
            print(f"  {self.ctrl.monitored}={int(self.ctrl.value)}  "
                  f"scan={self.ctrl.scan_time_ms:.1f} ms  "
                  f"[{self.ctrl.state.value}]")

        self.ctrl.values_refreshed.subscribe(show)
        try:
            time.sleep(duration)
        except KeyboardInterrupt:
            pass
        finally:
            self.ctrl.values_refreshed.unsubscribe(show)

    # ── Write Commands ───────────────────────────────────────

    def do_write(self, arg):
        """Write a bit: write <0|1> [address]"""
        parts = arg.split()
        if not parts or parts[0] not in ("0", "1"):
            print("Usage: write <0|1> [address]")
            return
        value = parts[0] == "1"
        try:
            if len(parts) > 1:
                self.ctrl.write_bit(parts[1], value)
                target = parts[1]
            else:
                self.ctrl.write_monitored(value)
                target = str(self.ctrl.monitored)
        except AddressFormatError as exc:
            print(exc)
            return
        print(f"Write queued: {target} = {int(value)}")

    # ── Settings Commands ────────────────────────────────────

    def do_settings(self, arg):
        """Show all settings: settings"""
        print("\n── Settings ─────────────────────────────────────")
        for key, val in sorted(self.ctrl.settings.as_dict().items()):
            print(f"  {key:<25s} = {val}")
        print()

    def do_set(self, arg):
        """Update a setting: set <key> <value>"""
        parts = arg.strip().split(None, 1)
        if len(parts) != 2:
            print("Usage: set <key> <value>")
            return
        key, value = parts
        if not self.ctrl.settings.update(key, value):
            print(f"Invalid setting: {key} = {value}")
            return
        if key in ("scan_rate_ms", "monitored_address"):
            self.ctrl.apply_settings()
            print(f"Setting {key} updated to {value}")
        else:
            print(f"Setting {key} updated to {value} (applies on next connect)")

    def do_save(self, arg):
        """Save settings to disk: save [path]"""
        path = arg.strip() or None
        self.ctrl.settings.save(path)
        print("Settings saved")

    # ── Simulator Commands (offline mode) ────────────────────

    def do_sim_fail_reads(self, arg):
        """[Sim] Fail the next N reads: sim_fail_reads <n>"""
        if not hasattr(self.ctrl.client, "fail_next_reads"):
            print("Not in simulation mode")
            return
        try:
            count = int(arg)
        except ValueError:
            print("Usage: sim_fail_reads <n>")
            return
        self.ctrl.client.fail_next_reads(count)
        print(f"Next {count} reads will fail")

    def do_sim_set(self, arg):
        """[Sim] Force a bit from the PLC side: sim_set <address> <0|1>"""
        if not hasattr(self.ctrl.client, "set_bit"):
            print("Not in simulation mode")
            return
        parts = arg.split()
        if len(parts) != 2 or parts[1] not in ("0", "1"):
            print("Usage: sim_set <address> <0|1>")
            return
        try:
            self.ctrl.client.set_bit(parts[0], parts[1] == "1")
        except AddressFormatError as exc:
            print(exc)
            return
        print(f"Simulator {parts[0]} set to {parts[1]}")

    # ── Utility ──────────────────────────────────────────────

    def do_quit(self, arg):
        """Exit the console: quit"""
        print("Shutting down...")
        return True

    def do_exit(self, arg):
        """Exit the console: exit"""
        return self.do_quit(arg)

    do_EOF = do_quit

    def emptyline(self):
        pass

    def default(self, line):
        print(f"Unknown command: {line}. Type 'help' for available commands.")


def run_cli(controller: PollController):
    """Launch the interactive CLI console."""
    console = PollConsole(controller)
    try:
        console.cmdloop()
    except KeyboardInterrupt:
        print("\nInterrupted.")


def main():
    """Entry point for standalone CLI usage."""
    from plcpoll.drivers.simulator import PLCSimulator

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    controller = PollController(client=PLCSimulator())
    controller.connect()

    try:
        run_cli(controller)
    finally:
        controller.close()


if __name__ == "__main__":
    main()
