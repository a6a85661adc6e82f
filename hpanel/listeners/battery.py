"""Battery listener: sysfs polling with debounced udev change events."""

import logging
import os
import select
from pathlib import Path
from typing import Callable, List, Optional

import pyudev

from ..config import BatteryConfig
from ..logging_setup import log_once
from ..parsers import parse_battery
from ..snapshots import BatterySnapshot
from ..utils.clock import Clock
from .base import ListenerBase, LoopSpec


def open_power_supply_monitor() -> pyudev.Monitor:
    """Subscribe to kernel device events of the power_supply subsystem."""
    context = pyudev.Context()
    monitor = pyudev.Monitor.from_netlink(context)
    monitor.filter_by(subsystem="power_supply")
    monitor.start()
    return monitor


def read_text(path: Path) -> Optional[str]:
    """Read a sysfs attribute, or None if it cannot be read."""
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None


class BatteryListener(ListenerBase[BatterySnapshot]):
    """Publish battery capacity and status changes.

    Three loops share the last emitted snapshot and the pending debounce
    timestamp, both guarded by the base class emit lock:

    * ``udev``: a change event for the battery device opens a debounce window
      unless one is already open.
    * ``debounce``: every ``debounce_tick_s`` polls once the window has been
      open for ``debounce_s``.
    * ``fallback``: polls every ``fallback_interval_s`` regardless of events.
    """

    def __init__(
        self,
        config: Optional[BatteryConfig] = None,
        clock: Optional[Clock] = None,
        monitor_factory: Optional[Callable[[], pyudev.Monitor]] = None,
    ):
        self.config = config or BatteryConfig()
        super().__init__(clock)

        self._monitor_factory = monitor_factory or open_power_supply_monitor
        self._pending_since: Optional[float] = None
        self._poll_count = 0
        self._wake_r: Optional[int] = None
        self._wake_w: Optional[int] = None

    @property
    def name(self) -> str:
        return "battery"

    @property
    def poll_count(self) -> int:
        """Number of sysfs polls performed so far."""
        return self._poll_count

    @property
    def pending_deadline(self) -> Optional[float]:
        """Clock time at which the open debounce window fires, if any."""
        with self._emit_lock:
            if self._pending_since is None:
                return None
            return self._pending_since + self.config.debounce_s

    def loops(self) -> List[LoopSpec]:
        return [
            ("udev", self._watch_device_events),
            ("debounce", self._debounce_loop),
            ("fallback", self._fallback_loop),
        ]

    def prime(self) -> None:
        self.poll()

    def read_snapshot(self) -> Optional[BatterySnapshot]:
        """Read both sysfs files; None if either is missing or malformed."""
        device_path = self.config.device_path
        snapshot = parse_battery(
            read_text(device_path / "capacity"),
            read_text(device_path / "status"),
        )
        if snapshot is None:
            log_once(
                self.logger, logging.INFO,
                f"No readable battery data under {device_path}, skipping poll",
            )
        return snapshot

    def poll(self) -> bool:
        """Read the battery and emit if the value changed."""
        with self._emit_lock:
            self._poll_count += 1
        return self.emit_if_changed(self.read_snapshot())

    def handle_device_event(self) -> bool:
        """Open a debounce window unless one is already pending.

        Returns:
            True if this event opened a new window
        """
        with self._emit_lock:
            if self._pending_since is not None:
                return False
            self._pending_since = self.clock.now()
            return True

    def debounce_tick(self) -> bool:
        """Poll if the pending debounce window has elapsed.

        Returns:
            True if a poll was triggered
        """
        with self._emit_lock:
            due = (
                self._pending_since is not None
                and self.clock.now() - self._pending_since >= self.config.debounce_s
            )
            if due:
                self._pending_since = None

        if due:
            self.poll()
        return due

    def fallback_tick(self) -> bool:
        """Unconditional periodic poll."""
        return self.poll()

    def handle_udev_device(self, device) -> bool:
        """Filter a udev event down to changes of the configured battery."""
        if device.action == "change" and device.sys_name == self.config.device:
            self.handle_device_event()
            return True
        return False

    def _debounce_loop(self) -> None:
        while not self.wait_or_stop(self.config.debounce_tick_s):
            self.debounce_tick()

    def _fallback_loop(self) -> None:
        while not self.wait_or_stop(self.config.fallback_interval_s):
            self.fallback_tick()

    def open_resources(self) -> None:
        self._wake_r, self._wake_w = os.pipe()

    def wake(self) -> None:
        if self._wake_w is not None:
            try:
                os.write(self._wake_w, b"\0")
            except OSError:
                pass

    def close_resources(self) -> None:
        for fd in (self._wake_r, self._wake_w):
            if fd is not None:
                try:
                    os.close(fd)
                except OSError:
                    pass
        self._wake_r = self._wake_w = None

    def _watch_device_events(self) -> None:
        try:
            monitor = self._monitor_factory()
        except Exception as e:
            self.logger.error(f"Failed to create udev monitor, continuing with polling only: {e}")
            return

        monitor_fd = monitor.fileno()
        poller = select.poll()
        poller.register(monitor_fd, select.POLLIN)
        poller.register(self._wake_r, select.POLLIN)

        self.logger.debug(f"Watching udev power_supply events for {self.config.device}")

        while not self.should_stop():
            try:
                ready = poller.poll()
            except OSError as e:
                self.logger.error(f"udev readiness poll failed: {e}")
                if self.wait_or_stop(self.config.error_backoff_s):
                    break
                continue

            for fd, events in ready:
                if fd != monitor_fd:
                    continue
                if events & (select.POLLERR | select.POLLHUP | select.POLLNVAL):
                    self.logger.error(f"udev monitor socket reported error condition {events:#x}")
                    self.wait_or_stop(self.config.error_backoff_s)
                    continue
                if not events & select.POLLIN:
                    continue
                try:
                    self._drain_monitor(monitor)
                except OSError as e:
                    self.logger.error(f"Failed to receive udev event: {e}")
                    self.wait_or_stop(self.config.error_backoff_s)

    def _drain_monitor(self, monitor) -> None:
        while True:
            device = monitor.poll(timeout=0)
            if device is None:
                return
            self.handle_udev_device(device)
