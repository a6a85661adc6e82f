"""Listener modules for hypr-panel."""

from .base import ListenerBase, ListenerState
from .battery import BatteryListener
from .bluetooth import BluetoothListener
from .hyprland import (
    ActiveWindowListener,
    ConnectionState,
    HyprlandSocketListener,
    WorkspaceListener,
)
from .wifi import WifiListener

__all__ = [
    "ListenerBase",
    "ListenerState",
    "BatteryListener",
    "BluetoothListener",
    "WifiListener",
    "HyprlandSocketListener",
    "ActiveWindowListener",
    "WorkspaceListener",
    "ConnectionState",
]
