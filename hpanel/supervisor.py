"""Listener supervisor: lifecycle management and snapshot dispatch."""

import signal
import threading
import time
from typing import Any, Callable, Dict, Optional

from .config import Config
from .listeners.base import ListenerBase
from .logging_setup import get_logger

logger = get_logger("supervisor")

SnapshotCallback = Callable[[str, Any], None]


class PanelSupervisor:
    """Owns one receiver per listener and hands every snapshot to a callback."""

    def __init__(
        self,
        callback: SnapshotCallback,
        verbose: bool = False,
        install_signal_handlers: bool = True,
    ):
        """Initialize supervisor.

        Args:
            callback: Called as callback(feed_name, snapshot) from a dispatch thread
            verbose: If True, log detailed lifecycle messages
            install_signal_handlers: Handle SIGINT/SIGTERM by requesting shutdown
        """
        self.callback = callback
        self.verbose = verbose
        self._running = False
        self._shutdown_requested = threading.Event()

        # feed name -> status dict
        self._listener_status: Dict[str, Dict[str, Any]] = {}
        self._dispatch_threads: Dict[str, threading.Thread] = {}

        if install_signal_handlers:
            self._setup_signal_handlers()

    def _setup_signal_handlers(self):
        """Set up signal handlers for graceful shutdown."""

        def signal_handler(signum, frame):
            logger.info(f"Received signal {signum}, initiating graceful shutdown...")
            self.request_shutdown()

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

    def add_listener(self, feed: str, listener: ListenerBase) -> None:
        """Register a listener under a feed name."""
        if feed in self._listener_status:
            raise ValueError(f"Feed {feed} is already registered")

        self._listener_status[feed] = {
            "name": feed,
            "listener": listener,
            "started": False,
            "error": None,
        }

        if self.verbose:
            logger.info(f"Added {feed} listener")

    def start_all(self) -> Dict[str, bool]:
        """Start every listener and its dispatch thread.

        A listener that fails to start is logged and skipped; the others
        still start.

        Returns:
            Dict mapping feed names to success status
        """
        if self._running:
            raise RuntimeError("Supervisor already running")

        self._running = True
        self._shutdown_requested.clear()
        results = {}

        for feed, status in self._listener_status.items():
            try:
                receiver = status["listener"].start()
            except Exception as e:
                logger.warning(f"Failed to start {feed}: {e}", exc_info=True)
                status["error"] = str(e)
                results[feed] = False
                continue

            status["started"] = True
            status["error"] = None
            results[feed] = True

            thread = threading.Thread(
                target=self._dispatch_loop,
                args=(feed, receiver),
                name=f"Dispatch-{feed}",
                daemon=True,
            )
            self._dispatch_threads[feed] = thread
            thread.start()

        started = sum(results.values())
        logger.info(f"Started {started}/{len(self._listener_status)} listeners")
        return results

    def _dispatch_loop(self, feed: str, receiver) -> None:
        """Forward snapshots until the listener closes its channel."""
        for snapshot in receiver:
            try:
                self.callback(feed, snapshot)
            except Exception as e:
                logger.error(f"Callback failed for {feed} snapshot {snapshot!r}: {e}", exc_info=True)

        if self.verbose:
            logger.info(f"Dispatch for {feed} finished")

    def stop_all(self, timeout_seconds: float = 10.0) -> None:
        """Stop all listeners and wait for dispatch to drain."""
        if not self._running:
            return

        for feed, status in reversed(list(self._listener_status.items())):
            if not status["started"]:
                continue
            try:
                status["listener"].stop()
                status["started"] = False
                if self.verbose:
                    logger.info(f"Stopped {feed} listener")
            except Exception as e:
                logger.warning(f"Error stopping {feed}: {e}")

        deadline = time.monotonic() + timeout_seconds
        for feed, thread in self._dispatch_threads.items():
            remaining = deadline - time.monotonic()
            if remaining > 0:
                thread.join(remaining)
            if thread.is_alive():
                logger.warning(f"Dispatch for {feed} did not finish within timeout")

        self._dispatch_threads.clear()
        self._running = False

    def request_shutdown(self) -> None:
        """Request graceful shutdown."""
        self._shutdown_requested.set()

    def is_shutdown_requested(self) -> bool:
        return self._shutdown_requested.is_set()

    def wait_until_shutdown(self, duration: Optional[float] = None, check_interval: float = 0.5) -> None:
        """Block until shutdown is requested or duration seconds have passed."""
        deadline = None if duration is None else time.monotonic() + duration
        while self._running and not self._shutdown_requested.is_set():
            wait = check_interval
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                wait = min(wait, remaining)
            self._shutdown_requested.wait(wait)

    def get_listener_status(self) -> Dict[str, Dict[str, Any]]:
        """Current status and statistics of every registered listener."""
        return {
            feed: {
                "started": status["started"],
                "error": status["error"],
                **status["listener"].get_stats(),
            }
            for feed, status in self._listener_status.items()
        }

    def is_running(self) -> bool:
        return self._running


def create_standard_supervisor(
    callback: SnapshotCallback,
    config: Optional[Config] = None,
    verbose: bool = False,
    install_signal_handlers: bool = True,
) -> PanelSupervisor:
    """Create a supervisor with the fixed listener set."""
    from .listeners import (
        ActiveWindowListener,
        BatteryListener,
        BluetoothListener,
        WifiListener,
        WorkspaceListener,
    )

    config = config or Config()
    supervisor = PanelSupervisor(
        callback, verbose=verbose, install_signal_handlers=install_signal_handlers
    )

    supervisor.add_listener("active_window", ActiveWindowListener(config.hyprland))
    supervisor.add_listener("workspace", WorkspaceListener(config.hyprland))
    supervisor.add_listener("wifi", WifiListener(config.wifi))
    supervisor.add_listener("bluetooth", BluetoothListener(config.bluetooth))
    supervisor.add_listener("battery", BatteryListener(config.battery))

    return supervisor
