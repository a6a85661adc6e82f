"""Integration tests for `hpanel run` as a real process."""

import os
import subprocess
import sys

import orjson
import pytest

from hpanel.config import BatteryConfig, BluetoothConfig, Config, HyprlandConfig, WifiConfig


@pytest.fixture
def panel_config(isolated_config, battery_dir, fake_tool, short_socket_dir):
    """Config pointing every source at local fakes."""
    nmcli = fake_tool("nmcli", '[ "$1" = monitor ] && exec sleep 30\necho "yes:HomeNet:72"\n')
    bluetoothctl = fake_tool(
        "bluetoothctl",
        '[ "$1" = show ] && { echo "Powered: no"; exit 0; }\nexec sleep 30\n',
    )
    hyprctl = fake_tool(
        "hyprctl",
        '[ "$1" = activeworkspace ] && { echo \'{"id": 3}\'; exit 0; }\n'
        'echo \'[{"id": 1}, {"id": 3}]\'\n',
    )
    config = Config(
        battery=BatteryConfig(sysfs_root=str(battery_dir.parent)),
        wifi=WifiConfig(command=nmcli),
        bluetooth=BluetoothConfig(command=bluetoothctl),
        hyprland=HyprlandConfig(
            hyprctl=hyprctl,
            socket_path=os.path.join(short_socket_dir, "absent.sock"),
            reconnect_delay_s=0.1,
        ),
    )
    config.save_to_yaml_file(isolated_config)
    return isolated_config


def test_module_help():
    """python -m hpanel --help works."""
    result = subprocess.run(
        [sys.executable, "-m", "hpanel", "--help"],
        capture_output=True,
        text=True,
        timeout=30,
    )

    assert result.returncode == 0
    assert "Hyprland panel" in result.stdout


@pytest.mark.slow
def test_run_prints_initial_snapshots(panel_config):
    """Each queried source publishes its current state as one JSON line."""
    result = subprocess.run(
        [sys.executable, "-m", "hpanel", "run", "--duration", "1.5"],
        capture_output=True,
        text=True,
        timeout=30,
    )

    assert result.returncode == 0, result.stderr

    lines = [orjson.loads(line) for line in result.stdout.splitlines() if line.strip()]
    by_feed = {line["feed"]: line["data"] for line in lines}

    assert by_feed["battery"] == {"capacity": 87, "status": "Discharging"}
    assert by_feed["wifi"] == {"connected": True, "ssid": "HomeNet", "signal": 72}
    assert by_feed["bluetooth"] == {"enabled": False, "connected_devices": []}
    assert by_feed["workspace"] == {"active_workspace_id": 3, "max_workspace_id": 5}
    assert "active_window" not in by_feed
    assert all(isinstance(line["ts"], float) for line in lines)
