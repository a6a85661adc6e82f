"""Base listener classes and interfaces."""

import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Dict, Generic, List, Optional, Tuple, TypeVar

from ..channel import Receiver, Sender, channel
from ..logging_setup import get_logger
from ..utils.clock import Clock, MonotonicClock

T = TypeVar("T")

LoopSpec = Tuple[str, Callable[[], None]]


class ListenerState(Enum):
    """Listener state enumeration."""

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    ERROR = "error"


class ListenerBase(ABC, Generic[T]):
    """Abstract base class for listeners that publish snapshots on a channel.

    A listener runs one daemon thread per long-running loop returned by
    ``loops()``. Every loop must return promptly once ``should_stop()`` is
    true; ``stop()`` sets the stop event and calls ``wake()`` so loops blocked
    on I/O notice it.
    """

    def __init__(self, clock: Optional[Clock] = None):
        """Initialize listener base.

        Args:
            clock: Optional clock for deterministic timing (defaults to monotonic time)
        """
        self.logger = get_logger(f"listener.{self.name}")
        self.clock = clock or MonotonicClock()

        self._state = ListenerState.STOPPED
        self._stop_event = threading.Event()
        self._threads: List[threading.Thread] = []
        self._error: Optional[Exception] = None
        self._inline_mode = False

        self._sender: Optional[Sender] = None
        self._receiver: Optional[Receiver] = None

        # Guards the last-emitted value; held only for compare-and-send
        self._emit_lock = threading.Lock()
        self._last_emitted: Optional[T] = None
        self._emit_count = 0

    @property
    @abstractmethod
    def name(self) -> str:
        """Listener name (e.g. 'battery', 'wifi')."""
        pass

    @abstractmethod
    def loops(self) -> List[LoopSpec]:
        """Long-running loops to run, one thread each, as (label, callable)."""
        pass

    def prime(self) -> None:
        """Synchronous work done by start() before it returns the receiver."""

    def open_resources(self) -> None:
        """Acquire resources shared by the loops before their threads start."""

    def wake(self) -> None:
        """Interrupt blocking waits so loops observe the stop request."""

    def close_resources(self) -> None:
        """Release resources after the loop threads have finished."""

    @property
    def state(self) -> ListenerState:
        """Get current listener state."""
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state in (ListenerState.RUNNING, ListenerState.ERROR)

    @property
    def last_error(self) -> Optional[Exception]:
        """Get last unexpected error raised by a loop, if any."""
        return self._error

    @property
    def last_emitted(self) -> Optional[T]:
        with self._emit_lock:
            return self._last_emitted

    @property
    def receiver(self) -> Optional[Receiver]:
        return self._receiver

    def start(self) -> Receiver:
        """Start the listener and return the receiving end of its channel."""
        if self._state != ListenerState.STOPPED:
            self.logger.warning(f"Listener {self.name} is already running")
            return self._receiver

        self._open_channel()
        self._state = ListenerState.STARTING

        try:
            self.prime()
            self.open_resources()
        except Exception:
            self._sender.close()
            self._state = ListenerState.STOPPED
            raise

        self._threads = []
        for label, target in self.loops():
            thread = threading.Thread(
                target=self._run_wrapper,
                args=(label, target),
                name=f"Listener-{self.name}-{label}",
                daemon=True,
            )
            self._threads.append(thread)

        self._state = ListenerState.RUNNING
        for thread in self._threads:
            thread.start()

        self.logger.info(f"Started listener {self.name} ({len(self._threads)} threads)")
        return self._receiver

    def start_inline_for_tests(self) -> Receiver:
        """Run only the synchronous start-up work, without background threads."""
        if self._state != ListenerState.STOPPED:
            self.logger.warning(f"Listener {self.name} is already running")
            return self._receiver

        self._open_channel()
        self._inline_mode = True
        self.prime()
        self._state = ListenerState.RUNNING

        self.logger.info(f"Started listener {self.name} in inline mode")
        return self._receiver

    def _open_channel(self) -> None:
        self._sender, self._receiver = channel()
        self._stop_event.clear()
        self._error = None
        self._inline_mode = False
        with self._emit_lock:
            self._last_emitted = None
            self._emit_count = 0

    def stop(self, timeout: float = 2.0) -> None:
        """Stop all loops, release resources and close the channel."""
        if self._state in (ListenerState.STOPPED, ListenerState.STOPPING):
            return

        self._state = ListenerState.STOPPING
        self._stop_event.set()

        try:
            self.wake()
        except Exception as e:
            self.logger.error(f"Error waking listener {self.name}: {e}", exc_info=True)

        if not self.join(timeout):
            alive = [t.name for t in self._threads if t.is_alive()]
            self.logger.warning(f"Listener {self.name} threads did not stop gracefully: {alive}")

        try:
            self.close_resources()
        except Exception as e:
            self.logger.error(f"Error releasing resources for {self.name}: {e}", exc_info=True)

        if self._sender is not None:
            self._sender.close()

        self._state = ListenerState.STOPPED
        self.logger.info(f"Stopped listener {self.name}")

    def join(self, timeout: float = 2.0) -> bool:
        """Wait for all loop threads to finish.

        Returns:
            True if every thread finished, False if any timed out
        """
        if self._inline_mode:
            return True

        for thread in self._threads:
            if thread.is_alive() and thread is not threading.current_thread():
                thread.join(timeout=timeout)
        return not any(t.is_alive() for t in self._threads)

    def _run_wrapper(self, label: str, target: Callable[[], None]) -> None:
        """Run one loop, containing any unexpected error to this listener."""
        try:
            target()
        except Exception as e:
            self._error = e
            if not self._stop_event.is_set():
                self._state = ListenerState.ERROR
            self.logger.error(f"Loop {label} of listener {self.name} failed: {e}", exc_info=True)
        else:
            self.logger.debug(f"Loop {label} of listener {self.name} exited")

    def emit(self, snapshot: T) -> bool:
        """Send a snapshot unconditionally.

        Returns:
            True if the snapshot was queued for the consumer
        """
        with self._emit_lock:
            self._last_emitted = snapshot
            self._emit_count += 1
            return self._send(snapshot)

    def emit_if_changed(self, snapshot: Optional[T]) -> bool:
        """Send a snapshot only if it differs from the last one sent.

        A ``None`` snapshot means the source had nothing usable and is skipped.

        Returns:
            True if the snapshot was sent
        """
        if snapshot is None:
            return False

        with self._emit_lock:
            if snapshot == self._last_emitted:
                return False
            self._last_emitted = snapshot
            self._emit_count += 1
            self._send(snapshot)
        return True

    def _send(self, snapshot: T) -> bool:
        if self._sender is None:
            return False
        # A dropped receiver is not an error for the producer
        return self._sender.send(snapshot)

    def should_stop(self) -> bool:
        """Check if listener should stop."""
        return self._stop_event.is_set()

    def wait_or_stop(self, timeout: float) -> bool:
        """Wait for timeout or stop signal. Returns True if should stop."""
        return self._stop_event.wait(timeout)

    def get_stats(self) -> Dict[str, Any]:
        """Get listener statistics."""
        return {
            "name": self.name,
            "state": self._state.value,
            "threads": [t.name for t in self._threads if t.is_alive()],
            "emitted": self._emit_count,
            "last_error": str(self._error) if self._error else None,
        }
