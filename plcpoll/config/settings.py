"""
Poll Controller Settings
=========================
Connection parameters and scan configuration for one PLC. These
can be adjusted from the console at runtime and are persisted to
disk as JSON.

Rack/slot reference:
  - S7-300:       rack 0, slot 2
  - S7-1200/1500: rack 0, slot 1
"""

from dataclasses import dataclass, field
import json
from pathlib import Path


@dataclass
class PollSettings:
    """Tunable parameters for the poll controller."""

    # ── Connection ───────────────────────────────────────────
    plc_address: str = "192.168.0.1"    # CPU IP address
    rack: int = 0
    slot: int = 1
    tcp_port: int = 102                 # ISO-on-TCP

    # ── Scan ─────────────────────────────────────────────────
    scan_rate_ms: int = 100             # Delay between scan cycles (milliseconds)
    monitored_address: str = "DB1.DBX0.0"  # Bit decoded on every scan

    # ── Persistence ──────────────────────────────────────────
    _config_path: str = field(
        default="config/settings.json", repr=False
    )

    def save(self, path: str = None):
        """Persist current settings to JSON."""
        filepath = Path(path or self._config_path)
        filepath.parent.mkdir(parents=True, exist_ok=True)
        filepath.write_text(json.dumps(self.as_dict(), indent=2))

    @classmethod
    def load(cls, path: str = None) -> "PollSettings":
        """Load settings from JSON, falling back to defaults."""
        filepath = Path(path or "config/settings.json")
        settings = cls()
        if filepath.exists():
            data = json.loads(filepath.read_text())
            for key, value in data.items():
                # Unknown or invalid entries keep their defaults
                settings.update(key, value)
        return settings

    def update(self, key: str, value) -> bool:
        """Update a single setting, returning True on success."""
        if not hasattr(self, key) or key.startswith("_"):
            return False
        expected_type = type(getattr(self, key))
        try:
            value = expected_type(value)
        except (ValueError, TypeError):
            return False
        if not self._is_valid(key, value):
            return False
        setattr(self, key, value)
        return True

    @staticmethod
    def _is_valid(key: str, value) -> bool:
        if key == "scan_rate_ms":
            return value > 0
        if key == "monitored_address":
            # Imported here: plcpoll.core imports this module
            from plcpoll.core.address import AddressFormatError, parse_address
            try:
                parse_address(value)
            except AddressFormatError:
                return False
        return True

    def as_dict(self) -> dict:
        """Return all settings as a flat dictionary."""
        return {
            k: v for k, v in self.__dict__.items()
            if not k.startswith("_")
        }
