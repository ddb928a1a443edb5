"""
Real implementations of protocol interfaces.

These are production implementations that use libtmux to launch windows,
check on them and capture their output.
"""

import logging
import os
import shlex
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

import libtmux
from libtmux.exc import LibTmuxException
from libtmux._internal.query_list import ObjectDoesNotExist

from .domain import LaunchResult, LaunchSpec, WindowStatus
from .exceptions import CaptureError, TmuxNotFoundError
from .logging_config import get_structured_logger

logger = logging.getLogger(__name__)
launch_log = get_structured_logger("launcher")

DRY_RUN_WINDOW_ID = "dry-run-id"

# Largest chunk of captured output read back at once
MAX_READ_BYTES = 256 * 1024


def inside_tmux() -> bool:
    return bool(os.environ.get("TMUX"))


class TmuxServerMixin:
    """Lazy libtmux server connection shared by the tmux collaborators."""

    _socket_name: Optional[str] = None
    _server: Optional[libtmux.Server] = None

    @property
    def server(self) -> libtmux.Server:
        """Lazy-load the tmux server connection."""
        if self._server is None:
            if self._socket_name:
                self._server = libtmux.Server(socket_name=self._socket_name)
            else:
                self._server = libtmux.Server()
        return self._server


class TmuxLauncher(TmuxServerMixin):
    """Opens each launch in a new window of the tmux session we run in."""

    def __init__(self, socket_name: Optional[str] = None, dry_run: bool = False):
        # Support BLUNDERBUSS_TMUX_SOCKET env var for testing
        self._socket_name = socket_name or os.environ.get("BLUNDERBUSS_TMUX_SOCKET")
        self._server = None
        self.dry_run = dry_run

    def _current_session(self) -> libtmux.Session:
        pane_id = os.environ.get("TMUX_PANE")
        try:
            if pane_id:
                return self.server.panes.get(pane_id=pane_id).session
            return self.server.sessions[0]
        except (LibTmuxException, ObjectDoesNotExist, IndexError) as e:
            raise TmuxNotFoundError(f"could not find the current tmux session: {e}") from e

    def launch(self, spec: LaunchSpec) -> LaunchResult:
        if self.dry_run:
            launch_log.info("[dry-run] would launch", window=spec.window_name, command=spec.command)
            return LaunchResult(window_name=spec.window_name, window_id=DRY_RUN_WINDOW_ID)

        if not inside_tmux() and not self._socket_name:
            return LaunchResult(window_name=spec.window_name, error="not running inside tmux")

        try:
            sess = self._current_session()
            kwargs: Dict[str, Any] = {
                "window_name": spec.window_name,
                "attach": False,
                "window_shell": spec.command,
            }
            if spec.work_dir:
                kwargs["start_directory"] = spec.work_dir
            if spec.env:
                kwargs["environment"] = dict(spec.env)
            window = sess.new_window(**kwargs)
        except (LibTmuxException, TmuxNotFoundError) as e:
            launch_log.warning(f"Launch failed: {e}", window=spec.window_name)
            return LaunchResult(window_name=spec.window_name, error=str(e))

        pane_id = window.panes[0].pane_id if window.panes else ""
        launch_log.info("Launched", window=spec.window_name, window_id=window.window_id, cwd=spec.work_dir)
        return LaunchResult(
            window_name=spec.window_name,
            window_id=window.window_id or "",
            pane_id=pane_id or "",
        )


class TmuxStatusChecker(TmuxServerMixin):
    """Reports whether a window still exists on the server."""

    def __init__(self, socket_name: Optional[str] = None):
        self._socket_name = socket_name or os.environ.get("BLUNDERBUSS_TMUX_SOCKET")
        self._server = None

    def check(self, window_id: str) -> WindowStatus:
        try:
            windows = self.server.windows
            present = any(
                window_id in (w.window_id, w.window_name) for w in windows
            )
        except LibTmuxException as e:
            logger.debug("Status check for %s failed: %s", window_id, e)
            return WindowStatus.UNKNOWN
        return WindowStatus.RUNNING if present else WindowStatus.DEAD


class TmuxOutputCapture(TmuxServerMixin):
    """Pipes a window's pane into a temp file with ``pipe-pane``."""

    def __init__(self, window_id: str, socket_name: Optional[str] = None):
        self.window_id = window_id
        self._socket_name = socket_name or os.environ.get("BLUNDERBUSS_TMUX_SOCKET")
        self._server = None
        self.path: Optional[Path] = None

    def start(self) -> None:
        try:
            fd, name = tempfile.mkstemp(prefix="blunderbuss-", suffix=".log")
            os.close(fd)
        except OSError as e:
            raise CaptureError(f"cannot create capture file for {self.window_id}: {e}") from e
        self.path = Path(name)
        try:
            result = self.server.cmd(
                "pipe-pane", "-t", self.window_id, f"cat >> {shlex.quote(name)}"
            )
        except LibTmuxException as e:
            self._remove_file()
            raise CaptureError(f"pipe-pane failed for {self.window_id}: {e}") from e
        if result.stderr:
            self._remove_file()
            raise CaptureError(f"pipe-pane failed for {self.window_id}: {' '.join(result.stderr)}")

    def read(self) -> bytes:
        if self.path is None:
            return b""
        try:
            with open(self.path, "rb") as f:
                size = f.seek(0, os.SEEK_END)
                f.seek(max(0, size - MAX_READ_BYTES))
                return f.read()
        except OSError:
            return b""

    def stop(self) -> None:
        try:
            self.server.cmd("pipe-pane", "-t", self.window_id)
        except LibTmuxException as e:
            raise CaptureError(f"stopping capture for {self.window_id}: {e}") from e
        finally:
            self._remove_file()

    def _remove_file(self) -> None:
        if self.path is not None:
            try:
                self.path.unlink()
            except FileNotFoundError:
                pass
            self.path = None
