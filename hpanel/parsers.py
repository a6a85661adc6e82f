"""Parsers for sysfs values, CLI tool output and Hyprland socket events.

These functions never raise on malformed input. ``None`` means "nothing
usable in this cycle" and callers skip or fall back accordingly.
"""

from typing import Iterable, List, Optional, Tuple

import orjson

from .snapshots import (
    DESKTOP_CLASS,
    ActiveWindowClass,
    BatterySnapshot,
    BluetoothSnapshot,
    WifiSnapshot,
    WorkspaceState,
)

ACTIVE_WINDOW_EVENT = "activewindow"
WORKSPACE_EVENTS = frozenset({"workspace", "createworkspace", "destroyworkspace"})
DEFAULT_ACTIVE_WORKSPACE = 1


# Battery

def parse_capacity(text: Optional[str]) -> Optional[int]:
    """Parse the sysfs ``capacity`` file (percent)."""
    if text is None:
        return None
    try:
        value = int(text.strip())
    except ValueError:
        return None
    if value < 0:
        return None
    return min(value, 100)


def parse_status(text: Optional[str]) -> Optional[str]:
    """Parse the sysfs ``status`` file."""
    if text is None:
        return None
    status = text.strip()
    return status or None


def parse_battery(capacity_text: Optional[str], status_text: Optional[str]) -> Optional[BatterySnapshot]:
    """Build a battery snapshot; both files must parse."""
    capacity = parse_capacity(capacity_text)
    status = parse_status(status_text)
    if capacity is None or status is None:
        return None
    return BatterySnapshot(capacity=capacity, status=status)


# Bluetooth

def parse_bluetooth_powered(show_output: Optional[str]) -> bool:
    """True when ``bluetoothctl show`` reports the adapter powered on."""
    if not show_output:
        return False
    return any(line.strip() == "Powered: yes" for line in show_output.splitlines())


def parse_connected_devices(devices_output: Optional[str]) -> List[str]:
    """Device names from ``bluetoothctl devices Connected``.

    Each line reads ``Device <MAC> <name>``; the name may contain spaces.
    """
    if not devices_output:
        return []

    names = []
    for line in devices_output.splitlines():
        parts = line.strip().split(" ", 2)
        if len(parts) == 3 and parts[0] == "Device" and parts[2]:
            names.append(parts[2])
    return names


def build_bluetooth_snapshot(show_output: Optional[str], devices_output: Optional[str]) -> BluetoothSnapshot:
    """Combine the two query outputs; a powered-off adapter has no devices."""
    if not parse_bluetooth_powered(show_output):
        return BluetoothSnapshot.powered_off()
    return BluetoothSnapshot(enabled=True, connected_devices=tuple(parse_connected_devices(devices_output)))


def is_bluetooth_change(line: str) -> bool:
    """Whether a bluetoothctl session line reports a power or connection change."""
    return "[CHG]" in line and ("Connected" in line or "Powered" in line)


# Wifi

def split_terse_fields(line: str, maxsplit: int = 2) -> List[str]:
    """Split an ``nmcli -t`` line on unescaped colons.

    nmcli escapes literal colons and backslashes inside values as ``\\:`` and
    ``\\\\``.
    """
    fields = []
    current = []
    chars = iter(line)
    for ch in chars:
        if ch == "\\":
            escaped = next(chars, "")
            current.append(escaped)
        elif ch == ":" and len(fields) < maxsplit:
            fields.append("".join(current))
            current = []
        else:
            current.append(ch)
    fields.append("".join(current))
    return fields


def parse_wifi(output: Optional[str]) -> WifiSnapshot:
    """Parse ``nmcli -t -f ACTIVE,SSID,SIGNAL dev wifi``.

    The first row whose ACTIVE field is ``yes`` wins; no such row means
    disconnected.
    """
    if not output:
        return WifiSnapshot.disconnected()

    for line in output.splitlines():
        fields = split_terse_fields(line)
        if len(fields) >= 2 and fields[0] == "yes":
            ssid = fields[1] or None
            signal = None
            if len(fields) >= 3:
                try:
                    signal = max(0, min(int(fields[2].strip()), 100))
                except ValueError:
                    signal = None
            return WifiSnapshot(connected=True, ssid=ssid, signal=signal)

    return WifiSnapshot.disconnected()


def is_wifi_transition(line: str) -> bool:
    """Whether an ``nmcli monitor`` line reports a connectivity transition."""
    return "connected" in line or "disconnected" in line


# Hyprland

def parse_hypr_event(line: str) -> Optional[Tuple[str, str]]:
    """Split a socket2 line ``<event>>><payload>`` into its two parts."""
    line = line.rstrip("\r\n")
    if ">>" not in line:
        return None
    name, payload = line.split(">>", 1)
    if not name:
        return None
    return name, payload


def parse_active_window(payload: str) -> Optional[ActiveWindowClass]:
    """Window class from an ``activewindow`` payload ``<class>,<title>``."""
    parts = payload.split(",")
    if len(parts) < 2:
        return None
    return ActiveWindowClass(class_name=parts[0] or DESKTOP_CLASS)


def active_window_from_line(line: str) -> Optional[ActiveWindowClass]:
    """Parse a raw socket line, returning a class only for ``activewindow``."""
    event = parse_hypr_event(line)
    if event is None or event[0] != ACTIVE_WINDOW_EVENT:
        return None
    return parse_active_window(event[1])


def is_workspace_event(line: str) -> bool:
    """Whether a socket line changes workspace topology or focus."""
    event = parse_hypr_event(line)
    return event is not None and event[0] in WORKSPACE_EVENTS


def _as_int_id(value) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def parse_active_workspace_id(json_text: Optional[str]) -> Optional[int]:
    """The ``id`` field of ``hyprctl activeworkspace -j``."""
    if not json_text:
        return None
    try:
        data = orjson.loads(json_text)
    except orjson.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None
    return _as_int_id(data.get("id"))


def parse_workspace_ids(json_text: Optional[str]) -> Optional[List[int]]:
    """Every integer ``id`` in the array from ``hyprctl workspaces -j``."""
    if not json_text:
        return None
    try:
        data = orjson.loads(json_text)
    except orjson.JSONDecodeError:
        return None
    if not isinstance(data, list):
        return None

    ids = []
    for workspace in data:
        if isinstance(workspace, dict):
            ws_id = _as_int_id(workspace.get("id"))
            if ws_id is not None:
                ids.append(ws_id)
    return ids


def compute_workspace_state(
    active_id: Optional[int],
    workspace_ids: Optional[Iterable[int]],
    min_workspaces: int = 5,
) -> WorkspaceState:
    """Combine the two queries, flooring the displayed maximum at min_workspaces."""
    if active_id is None:
        active_id = DEFAULT_ACTIVE_WORKSPACE
    highest = max(workspace_ids or (), default=min_workspaces)
    return WorkspaceState(active_workspace_id=active_id, max_workspace_id=max(highest, min_workspaces))
