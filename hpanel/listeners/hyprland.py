"""Hyprland listeners reading the socket2 event stream."""

import os
import socket
from abc import abstractmethod
from enum import Enum
from typing import List, Optional, TypeVar

from ..commands import run_query
from ..config import HyprlandConfig
from ..parsers import (
    active_window_from_line,
    compute_workspace_state,
    is_workspace_event,
    parse_active_workspace_id,
    parse_workspace_ids,
)
from ..snapshots import ActiveWindowClass, WorkspaceState
from .base import ListenerBase, LoopSpec

T = TypeVar("T")


class ConnectionState(Enum):
    """Event socket connection state."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


def hyprland_socket_path(config: Optional[HyprlandConfig] = None) -> Optional[str]:
    """Path of the event socket, or None when not running under Hyprland."""
    if config is not None and config.socket_path:
        return config.socket_path

    runtime_dir = os.environ.get("XDG_RUNTIME_DIR")
    signature = os.environ.get("HYPRLAND_INSTANCE_SIGNATURE")
    if not runtime_dir or not signature:
        return None
    return os.path.join(runtime_dir, "hypr", signature, ".socket2.sock")


class HyprlandSocketListener(ListenerBase[T]):
    """Reconnect-and-read loop shared by the Hyprland listeners.

    A failed connect, a closed connection or a read error all return to
    DISCONNECTED and wait ``reconnect_delay_s`` before the next attempt.
    """

    def __init__(self, config: Optional[HyprlandConfig] = None):
        self.config = config or HyprlandConfig()
        super().__init__()
        self._connection_state = ConnectionState.DISCONNECTED
        self._socket: Optional[socket.socket] = None
        self._connect_attempts = 0

    @property
    def connection_state(self) -> ConnectionState:
        return self._connection_state

    @property
    def connect_attempts(self) -> int:
        return self._connect_attempts

    @abstractmethod
    def handle_line(self, line: str) -> bool:
        """Handle one event line. Returns True if it produced a snapshot."""
        pass

    def loops(self) -> List[LoopSpec]:
        return [("socket", self._reconnect_loop)]

    def _reconnect_loop(self) -> None:
        path = hyprland_socket_path(self.config)
        if path is None:
            self.logger.error(
                "XDG_RUNTIME_DIR or HYPRLAND_INSTANCE_SIGNATURE not set, "
                "Hyprland events unavailable"
            )
            return

        while not self.should_stop():
            self._connection_state = ConnectionState.CONNECTING
            self._connect_attempts += 1
            try:
                sock = self._connect(path)
            except OSError as e:
                self._connection_state = ConnectionState.DISCONNECTED
                self.logger.warning(f"Failed to connect to Hyprland socket {path}: {e}")
                if self.wait_or_stop(self.config.reconnect_delay_s):
                    break
                continue

            self._connection_state = ConnectionState.CONNECTED
            self.logger.info(f"Connected to Hyprland socket {path}")

            try:
                self._read_lines(sock)
            except OSError as e:
                if not self.should_stop():
                    self.logger.warning(f"Hyprland socket read failed: {e}")
            finally:
                self._socket = None
                sock.close()
                self._connection_state = ConnectionState.DISCONNECTED

            if self.should_stop():
                break
            self.logger.info(
                f"Hyprland socket closed, reconnecting in {self.config.reconnect_delay_s}s"
            )
            if self.wait_or_stop(self.config.reconnect_delay_s):
                break

    def _connect(self, path: str) -> socket.socket:
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.settimeout(self.config.read_timeout_s)
            sock.connect(path)
        except OSError:
            sock.close()
            raise
        self._socket = sock
        if self.should_stop():
            # stop() may have run before the socket was published
            sock.shutdown(socket.SHUT_RDWR)
        return sock

    def _read_lines(self, sock: socket.socket) -> None:
        buffer = b""
        while not self.should_stop():
            try:
                chunk = sock.recv(4096)
            except socket.timeout:
                continue
            if not chunk:
                return

            buffer += chunk
            *lines, buffer = buffer.split(b"\n")
            for raw in lines:
                self.handle_line(raw.decode("utf-8", errors="replace"))

    def wake(self) -> None:
        sock = self._socket
        if sock is not None:
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass

    def get_stats(self):
        stats = super().get_stats()
        stats["connection"] = self._connection_state.value
        stats["connect_attempts"] = self._connect_attempts
        return stats


class ActiveWindowListener(HyprlandSocketListener[ActiveWindowClass]):
    """Publish the focused window class on every ``activewindow`` event."""

    @property
    def name(self) -> str:
        return "active_window"

    def handle_line(self, line: str) -> bool:
        snapshot = active_window_from_line(line)
        if snapshot is None:
            return False
        self.emit(snapshot)
        return True


class WorkspaceListener(HyprlandSocketListener[WorkspaceState]):
    """Publish workspace focus and topology on every workspace event.

    Values are recomputed and sent on each event, even when unchanged.
    """

    @property
    def name(self) -> str:
        return "workspace"

    def prime(self) -> None:
        self.emit(self.query())

    def query(self) -> WorkspaceState:
        """Active workspace id, then the workspace list."""
        timeout = self.config.query_timeout_s
        active_id = parse_active_workspace_id(
            run_query([self.config.hyprctl, "activeworkspace", "-j"], timeout=timeout)
        )
        workspace_ids = parse_workspace_ids(
            run_query([self.config.hyprctl, "workspaces", "-j"], timeout=timeout)
        )
        return compute_workspace_state(active_id, workspace_ids, self.config.min_workspaces)

    def handle_line(self, line: str) -> bool:
        if not is_workspace_event(line):
            return False
        self.emit(self.query())
        return True
