"""Test configuration and fixtures for hypr-panel."""

import os
import stat
import threading
import time

import pytest


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the config file at a per-test temp path."""
    monkeypatch.setenv("HPANEL_CONFIG", str(tmp_path / "config.yaml"))
    yield tmp_path / "config.yaml"


@pytest.fixture
def no_thread_leaks():
    """Fixture to detect listener thread leaks during tests."""
    initial_threads = set(threading.enumerate())

    yield

    # Wait briefly for threads to cleanup
    deadline = time.monotonic() + 2.0
    while time.monotonic() < deadline:
        leaked = [
            t for t in set(threading.enumerate()) - initial_threads
            if t.name.startswith(("Listener-", "Dispatch-")) and t.is_alive()
        ]
        if not leaked:
            return
        time.sleep(0.05)

    pytest.fail(f"Test leaked listener threads: {[t.name for t in leaked]}")


@pytest.fixture
def manual_clock():
    """Fixture providing a manual clock for deterministic timing."""
    from hpanel.utils.clock import ManualClock
    return ManualClock(start_time=0.0)


@pytest.fixture
def battery_dir(tmp_path):
    """A fake sysfs power_supply tree with a BAT0 device."""
    device = tmp_path / "power_supply" / "BAT0"
    device.mkdir(parents=True)
    (device / "capacity").write_text("87\n")
    (device / "status").write_text("Discharging\n")
    return device


@pytest.fixture
def fake_tool(tmp_path):
    """Factory writing an executable shell script that stands in for a CLI tool."""

    def make(name: str, body: str) -> str:
        path = tmp_path / "bin" / name
        path.parent.mkdir(exist_ok=True)
        path.write_text("#!/bin/sh\n" + body)
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(path)

    return make


def wait_for(predicate, timeout: float = 3.0, interval: float = 0.02) -> bool:
    """Poll predicate until it is true or timeout elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def waiter():
    """Expose wait_for to tests."""
    return wait_for


@pytest.fixture
def short_socket_dir():
    """A short temp directory for AF_UNIX socket paths (108-byte limit)."""
    import tempfile
    import shutil

    path = tempfile.mkdtemp(prefix="hp", dir="/tmp")
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def clean_hypr_env(monkeypatch):
    """Remove Hyprland environment variables."""
    monkeypatch.delenv("HYPRLAND_INSTANCE_SIGNATURE", raising=False)
    monkeypatch.delenv("XDG_RUNTIME_DIR", raising=False)
    return os.environ
