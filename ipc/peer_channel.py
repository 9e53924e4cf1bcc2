"""Unix-socket side channel a running instance listens on for focus requests.

One endpoint per application name, ``<sockets_dir>/<name>.sock``. The
endpoint exists only while the owning window is alive; a failed connect is
read as "no live owner", never as an error.
"""

from __future__ import annotations

import logging
import os
import socket
import threading
from collections.abc import Callable
from enum import Enum
from pathlib import Path

from core.errors import WebletError

logger = logging.getLogger("weblet.peer_channel")

FOCUS_MESSAGE = b"focus"
_MAX_MESSAGE = 16


class NotifyResult(Enum):
    DELIVERED = "delivered"
    UNREACHABLE = "unreachable"


class ChannelInUse(WebletError):
    """Another live instance already owns the endpoint."""


def _connect(path: Path, timeout: float) -> socket.socket | None:
    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    sock.settimeout(timeout)
    try:
        sock.connect(str(path))
    except OSError:
        sock.close()
        return None
    return sock


class PeerListener:
    """Accept loop running on a daemon thread; call ``close`` to tear it down."""

    def __init__(self, path: Path, on_focus: Callable[[], None], poll_interval: float = 0.2) -> None:
        self.path = path
        self.on_focus = on_focus
        self.poll_interval = poll_interval
        self._stop = threading.Event()
        self._sock: socket.socket | None = None
        self._thread: threading.Thread | None = None
        self._inode: int | None = None

    def start(self) -> PeerListener:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        live = _connect(self.path, timeout=0.5)
        if live is not None:
            live.close()
            raise ChannelInUse(f"peer endpoint {self.path} is owned by a live instance")
        if self.path.exists() or self.path.is_symlink():
            self.path.unlink()
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.bind(str(self.path))
            sock.listen(8)
        except OSError:
            sock.close()
            raise
        sock.settimeout(self.poll_interval)
        self._sock = sock
        self._inode = os.stat(self.path).st_ino
        self._thread = threading.Thread(
            target=self._serve, name=f"peer-listener:{self.path.stem}", daemon=True
        )
        self._thread.start()
        logger.debug("listening for focus requests on %s", self.path)
        return self

    def _serve(self) -> None:
        assert self._sock is not None
        while not self._stop.is_set():
            try:
                conn, _ = self._sock.accept()
            except TimeoutError:
                continue
            except OSError:
                break
            with conn:
                conn.settimeout(1.0)
                try:
                    data = conn.recv(_MAX_MESSAGE)
                except OSError as exc:
                    logger.debug("peer connection dropped: %s", exc)
                    continue
            if data.strip() == FOCUS_MESSAGE:
                logger.info("received focus request from another instance")
                try:
                    self.on_focus()
                except Exception:
                    logger.exception("focus handler failed")

    def close(self) -> None:
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=2.0)
        if self._sock is not None:
            self._sock.close()
            self._sock = None
        try:
            # Only remove the endpoint if it is still the one this listener bound.
            if self._inode is not None and os.stat(self.path).st_ino == self._inode:
                self.path.unlink()
        except FileNotFoundError:
            pass
        self._inode = None

    def __enter__(self) -> PeerListener:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class PeerChannel:
    """Per-name endpoints under one sockets directory."""

    def __init__(self, sockets_dir: Path, timeout: float = 1.0) -> None:
        self.sockets_dir = sockets_dir
        self.timeout = timeout

    def endpoint(self, name: str) -> Path:
        return self.sockets_dir / f"{name}.sock"

    def listen(self, name: str, on_focus: Callable[[], None]) -> PeerListener:
        return PeerListener(self.endpoint(name), on_focus).start()

    def notify(self, name: str) -> NotifyResult:
        sock = _connect(self.endpoint(name), timeout=self.timeout)
        if sock is None:
            return NotifyResult.UNREACHABLE
        try:
            sock.sendall(FOCUS_MESSAGE)
        except OSError as exc:
            logger.debug("focus request to %s failed: %s", name, exc)
            return NotifyResult.UNREACHABLE
        finally:
            sock.close()
        return NotifyResult.DELIVERED

    def is_live(self, name: str) -> bool:
        sock = _connect(self.endpoint(name), timeout=self.timeout)
        if sock is None:
            return False
        sock.close()
        return True
