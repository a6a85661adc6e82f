"""Snapshot records produced by the listeners.

Every snapshot is a frozen dataclass so listeners can compare the value they
just computed against the last one they sent with plain ``==``.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple

DESKTOP_CLASS = "Desktop"


@dataclass(frozen=True)
class BatterySnapshot:
    """Battery charge and charging status."""

    capacity: int  # 0-100
    status: str  # Charging|Discharging|Full|Not charging|Unknown


@dataclass(frozen=True)
class WifiSnapshot:
    """Wireless association state."""

    connected: bool
    ssid: Optional[str] = None
    signal: Optional[int] = None  # 0-100

    def __post_init__(self):
        if not self.connected:
            object.__setattr__(self, "ssid", None)
            object.__setattr__(self, "signal", None)

    @classmethod
    def disconnected(cls) -> "WifiSnapshot":
        return cls(connected=False)


@dataclass(frozen=True)
class BluetoothSnapshot:
    """Adapter power and connected device names, in reported order."""

    enabled: bool
    connected_devices: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        devices = tuple(self.connected_devices) if self.enabled else ()
        object.__setattr__(self, "connected_devices", devices)

    @classmethod
    def powered_off(cls) -> "BluetoothSnapshot":
        return cls(enabled=False)


@dataclass(frozen=True)
class WorkspaceState:
    """Focused workspace and the highest workspace id to display."""

    active_workspace_id: int
    max_workspace_id: int


@dataclass(frozen=True)
class ActiveWindowClass:
    """Window class of the focused window."""

    class_name: str = DESKTOP_CLASS
