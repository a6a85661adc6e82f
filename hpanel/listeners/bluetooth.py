"""Bluetooth listener driven by a long-lived bluetoothctl session."""

import subprocess
from typing import List, Optional

from ..commands import run_query, spawn_line_reader, terminate_process
from ..config import BluetoothConfig
from ..parsers import build_bluetooth_snapshot, is_bluetooth_change, parse_bluetooth_powered
from ..snapshots import BluetoothSnapshot
from .base import ListenerBase, LoopSpec


class BluetoothListener(ListenerBase[BluetoothSnapshot]):
    """Publish adapter power and connected devices.

    The interactive session is only used as a change signal; every relevant
    ``[CHG]`` line triggers a fresh query through the one-shot commands. The
    session is not restarted if it exits.
    """

    def __init__(self, config: Optional[BluetoothConfig] = None):
        self.config = config or BluetoothConfig()
        super().__init__()
        self._process: Optional[subprocess.Popen] = None

    @property
    def name(self) -> str:
        return "bluetooth"

    def loops(self) -> List[LoopSpec]:
        return [
            ("session", self._session_loop),
            ("keepalive", self._keepalive_loop),
        ]

    def prime(self) -> None:
        self.refresh()

    def query(self) -> Optional[BluetoothSnapshot]:
        """Query power state, then connected devices only if powered.

        Returns None when either query fails, so the cycle is skipped.
        """
        timeout = self.config.query_timeout_s
        show = run_query([self.config.command, "show"], timeout=timeout)
        if show is None:
            return None
        if not parse_bluetooth_powered(show):
            return BluetoothSnapshot.powered_off()

        devices = run_query([self.config.command, "devices", "Connected"], timeout=timeout)
        if devices is None:
            return None
        return build_bluetooth_snapshot(show, devices)

    def refresh(self) -> bool:
        """Query and emit if changed."""
        return self.emit_if_changed(self.query())

    def handle_line(self, line: str) -> bool:
        """React to one line of session output.

        Returns:
            True if the line triggered a refresh
        """
        if not is_bluetooth_change(line):
            return False
        self.refresh()
        return True

    def send_keepalive(self) -> bool:
        """Write an empty command so the session does not idle out."""
        process = self._process
        if process is None or process.stdin is None:
            return False
        try:
            process.stdin.write("\n")
            process.stdin.flush()
            return True
        except (OSError, ValueError) as e:
            self.logger.debug(f"Keepalive write failed: {e}")
            return False

    def _session_loop(self) -> None:
        try:
            process = spawn_line_reader([self.config.command], with_stdin=True)
        except OSError as e:
            self.logger.error(f"Failed to spawn {self.config.command}: {e}")
            return

        self._process = process
        if self.should_stop():
            terminate_process(process)
            return

        for line in process.stdout:
            if self.should_stop():
                break
            self.handle_line(line)

        returncode = process.wait()
        if not self.should_stop():
            self.logger.warning(
                f"{self.config.command} session exited with code {returncode}, "
                "no further bluetooth updates"
            )

    def _keepalive_loop(self) -> None:
        while not self.wait_or_stop(self.config.keepalive_interval_s):
            process = self._process
            if process is None:
                continue
            if process.poll() is not None or not self.send_keepalive():
                break

    def wake(self) -> None:
        terminate_process(self._process)

    def close_resources(self) -> None:
        process = self._process
        self._process = None
        if process is not None:
            for stream in (process.stdin, process.stdout):
                if stream is not None:
                    try:
                        stream.close()
                    except OSError:
                        pass
