"""Per-name launch lease materialized as an exclusively-created marker file."""

from __future__ import annotations

import json
import logging
import os
import time
import uuid
from collections.abc import Callable
from pathlib import Path
from typing import Any

logger = logging.getLogger("weblet.launch_lease")


class LaunchLease:
    """Mutual exclusion for "start a new instance" attempts on one name.

    Ownership is decided only by ``O_CREAT | O_EXCL`` succeeding. Each
    acquisition writes a random token into the JSON body; a marker is only
    adopted or removed by a holder presenting that token. The marker's mtime
    is its acquisition time.
    """

    def __init__(self, locks_dir: Path, name: str, clock: Callable[[], float] = time.time) -> None:
        self.name = name
        self.path = locks_dir / f"{name}.lock"
        self.clock = clock
        self.held = False
        self.token: str | None = None

    def try_acquire(self) -> bool:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return False
        self.token = uuid.uuid4().hex
        body = {"name": self.name, "pid": os.getpid(), "acquired_at": self.clock(), "token": self.token}
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(body, fh)
        self.held = True
        logger.debug("acquired launch lease %s", self.path)
        return True

    def adopt(self, token: str | None) -> bool:
        """Take over the marker the launching parent created for us.

        Succeeds only while the marker still carries ``token``. Without a
        token there is nothing to hand over, so a fresh acquisition is tried.
        """
        if token is None:
            return self.try_acquire()
        if self.read().get("token") != token:
            return False
        self.token = token
        self.held = True
        return True

    def exists(self) -> bool:
        return self.path.exists()

    def age(self) -> float | None:
        """Seconds since the marker was created, or None if there is none."""
        try:
            mtime = self.path.stat().st_mtime
        except FileNotFoundError:
            return None
        return max(0.0, self.clock() - mtime)

    def read(self) -> dict[str, Any]:
        try:
            return json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (FileNotFoundError, json.JSONDecodeError):
            return {}

    def release(self) -> None:
        if not self.held:
            return
        self.held = False
        current = self.read()
        if current and current.get("token") != self.token:
            # Reclaimed meanwhile; the marker now belongs to another launch.
            logger.warning("launch lease for '%s' was taken over; leaving it", self.name)
            return
        self.path.unlink(missing_ok=True)
        logger.debug("released launch lease %s", self.path)

    def reclaim(self) -> None:
        """Forcibly remove a marker presumed abandoned by a crashed owner."""
        logger.warning("reclaiming stale launch lease for '%s' (%s)", self.name, self.read())
        self.path.unlink(missing_ok=True)

    def __enter__(self) -> LaunchLease:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()
