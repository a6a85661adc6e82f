"""Wifi listener driven by ``nmcli monitor``."""

import subprocess
from typing import List, Optional

from ..commands import run_query, spawn_line_reader, terminate_process
from ..config import WifiConfig
from ..parsers import is_wifi_transition, parse_wifi
from ..snapshots import WifiSnapshot
from .base import ListenerBase, LoopSpec


class WifiListener(ListenerBase[WifiSnapshot]):
    """Publish wireless association changes.

    Each transition line from the monitor triggers one full query; there is
    no debounce.
    """

    def __init__(self, config: Optional[WifiConfig] = None):
        self.config = config or WifiConfig()
        super().__init__()
        self._process: Optional[subprocess.Popen] = None

    @property
    def name(self) -> str:
        return "wifi"

    def loops(self) -> List[LoopSpec]:
        return [("monitor", self._monitor_loop)]

    def prime(self) -> None:
        self.refresh()

    def query(self) -> Optional[WifiSnapshot]:
        """Current association, or None if nmcli gave no answer this cycle."""
        output = run_query(
            [self.config.command, "-t", "-f", "ACTIVE,SSID,SIGNAL", "dev", "wifi"],
            timeout=self.config.query_timeout_s,
        )
        if output is None:
            return None
        return parse_wifi(output)

    def refresh(self) -> bool:
        return self.emit_if_changed(self.query())

    def handle_line(self, line: str) -> bool:
        if not is_wifi_transition(line):
            return False
        self.refresh()
        return True

    def _monitor_loop(self) -> None:
        try:
            process = spawn_line_reader([self.config.command, "monitor"])
        except OSError as e:
            self.logger.error(f"Failed to spawn {self.config.command} monitor: {e}")
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
            self.logger.warning(f"{self.config.command} monitor exited with code {returncode}")

    def wake(self) -> None:
        terminate_process(self._process)

    def close_resources(self) -> None:
        process = self._process
        self._process = None
        if process is not None and process.stdout is not None:
            try:
                process.stdout.close()
            except OSError:
                pass
