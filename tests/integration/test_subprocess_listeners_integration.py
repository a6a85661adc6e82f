"""Integration tests for the wifi and bluetooth listeners against fake tools."""

import pytest

from hpanel.config import BluetoothConfig, WifiConfig
from hpanel.listeners.bluetooth import BluetoothListener
from hpanel.listeners.wifi import WifiListener
from hpanel.snapshots import BluetoothSnapshot, WifiSnapshot


@pytest.fixture
def fake_nmcli(fake_tool, tmp_path):
    """nmcli stand-in: the table comes from a file, monitor lines from a fifo-like file."""
    table = tmp_path / "wifi-table"
    table.write_text("yes:HomeNet:72\n")
    events = tmp_path / "wifi-events"
    events.write_text("")
    script = fake_tool(
        "nmcli",
        f'if [ "$1" = monitor ]; then exec tail -n +1 -f "{events}"; fi\n'
        f'cat "{table}"\n',
    )
    return script, table, events


@pytest.fixture
def fake_bluetoothctl(fake_tool, tmp_path):
    """bluetoothctl stand-in with an interactive session that echoes a change line per input."""
    show = tmp_path / "bt-show"
    show.write_text("Controller 00:1A:7D:DA:71:13 (public)\n\tPowered: yes\n")
    devices = tmp_path / "bt-devices"
    devices.write_text("")
    events = tmp_path / "bt-events"
    events.write_text("")
    script = fake_tool(
        "bluetoothctl",
        f'if [ "$1" = show ]; then cat "{show}"; exit 0; fi\n'
        f'if [ "$1" = devices ]; then cat "{devices}"; exit 0; fi\n'
        f'exec tail -n +1 -f "{events}"\n',
    )
    return script, show, devices, events


def append(path, line):
    with open(path, "a", encoding="utf-8") as f:
        f.write(line + "\n")


@pytest.mark.usefixtures("no_thread_leaks")
class TestWifiWithFakeNmcli:
    """Wifi listener driven by a scripted nmcli."""

    def test_transition_publishes_new_state(self, fake_nmcli):
        script, table, events = fake_nmcli
        listener = WifiListener(WifiConfig(command=script))
        receiver = listener.start()
        try:
            assert receiver.recv(timeout=3.0) == WifiSnapshot(True, "HomeNet", 72)

            table.write_text("no:HomeNet:72\n")
            append(events, "wlan0: disconnected")
            assert receiver.recv(timeout=5.0) == WifiSnapshot.disconnected()

            table.write_text("yes:Office:55\n")
            append(events, "wlan0: using connection 'Office'")
            append(events, "wlan0: connected")
            assert receiver.recv(timeout=5.0) == WifiSnapshot(True, "Office", 55)
        finally:
            listener.stop()

    def test_missing_nmcli(self, tmp_path):
        """Without the tool nothing is published and the listener idles."""
        listener = WifiListener(WifiConfig(command=str(tmp_path / "nope")))
        receiver = listener.start()
        try:
            assert listener.join(timeout=2.0) is True
            assert receiver.try_recv() is None
            assert listener.last_error is None
        finally:
            listener.stop()


@pytest.mark.usefixtures("no_thread_leaks")
class TestBluetoothWithFakeBluetoothctl:
    """Bluetooth listener driven by a scripted bluetoothctl."""

    def test_change_line_refreshes(self, fake_bluetoothctl):
        script, show, devices, events = fake_bluetoothctl
        listener = BluetoothListener(BluetoothConfig(command=script))
        receiver = listener.start()
        try:
            assert receiver.recv(timeout=3.0) == BluetoothSnapshot(True, ())

            devices.write_text("Device AA:BB:CC:DD:EE:01 WH-1000XM4\n")
            append(events, "[CHG] Device AA:BB:CC:DD:EE:01 Connected: yes")
            assert receiver.recv(timeout=5.0) == BluetoothSnapshot(True, ("WH-1000XM4",))

            show.write_text("Controller 00:1A:7D:DA:71:13 (public)\n\tPowered: no\n")
            append(events, "[CHG] Controller 00:1A:7D:DA:71:13 Powered: no")
            assert receiver.recv(timeout=5.0) == BluetoothSnapshot(False, ())
        finally:
            listener.stop()

    def test_keepalive_reaches_session(self, fake_tool, tmp_path, waiter):
        received = tmp_path / "stdin-log"
        script = fake_tool(
            "bluetoothctl",
            'if [ "$1" = show ]; then echo "Powered: no"; exit 0; fi\n'
            f'while read line; do echo "tick" >> "{received}"; done\n',
        )
        listener = BluetoothListener(BluetoothConfig(command=script, keepalive_interval_s=0.05))
        listener.start()
        try:
            assert waiter(lambda: received.exists() and received.read_text().count("tick") >= 2)
        finally:
            listener.stop()

    def test_session_exit_is_not_fatal(self, fake_tool):
        script = fake_tool(
            "bluetoothctl",
            'if [ "$1" = show ]; then echo "Powered: no"; exit 0; fi\n'
            "exit 1\n",
        )
        listener = BluetoothListener(BluetoothConfig(command=script, keepalive_interval_s=0.05))
        receiver = listener.start()
        try:
            assert receiver.recv(timeout=3.0) == BluetoothSnapshot.powered_off()
            assert listener.join(timeout=3.0) is True
            assert listener.last_error is None
        finally:
            listener.stop()
