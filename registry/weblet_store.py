"""JSON-backed configuration store: weblets.json and weblet.json."""

from __future__ import annotations

import fcntl
import json
import logging
import os
import tempfile
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from core.errors import AlreadyExists, ConfigError, NotFound
from registry.models import BrowserSettings, Weblet

logger = logging.getLogger("weblet.store")


def _read_json(path: Path) -> Any:
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8") or "null")
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{path} is not valid JSON: {exc}") from exc


def _write_json(path: Path, payload: Any) -> None:
    """Replace path atomically so concurrent readers never see a partial file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(payload, fh, indent=2)
            fh.write("\n")
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class WebletStore:
    """Loads and saves weblet records and the browser settings.

    Every read-modify-write runs under an exclusive ``flock`` on
    ``weblets.json.lock`` so a background worker recording its pid cannot
    resurrect an entry the CLI just removed.
    """

    def __init__(self, weblets_file: Path, settings_file: Path) -> None:
        self.weblets_file = weblets_file
        self.settings_file = settings_file
        self.lock_file = weblets_file.with_name(weblets_file.name + ".lock")

    @contextmanager
    def _locked(self) -> Iterator[None]:
        self.lock_file.parent.mkdir(parents=True, exist_ok=True)
        with self.lock_file.open("a") as fh:
            fcntl.flock(fh, fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(fh, fcntl.LOCK_UN)

    @contextmanager
    def transaction(self) -> Iterator[list[Weblet]]:
        """Yield the current records under the lock; save them if the block succeeds."""
        with self._locked():
            weblets = self.load()
            yield weblets
            self._save(weblets)

    def load(self) -> list[Weblet]:
        data = _read_json(self.weblets_file)
        if data is None:
            return []
        if not isinstance(data, list):
            raise ConfigError(f"{self.weblets_file} must contain a JSON list")
        try:
            return [Weblet.model_validate(item) for item in data]
        except ValidationError as exc:
            raise ConfigError(f"{self.weblets_file} has an invalid entry: {exc}") from exc

    def _save(self, weblets: list[Weblet]) -> None:
        payload = [w.model_dump(exclude_none=True) for w in sorted(weblets, key=lambda w: w.name)]
        _write_json(self.weblets_file, payload)

    def save(self, weblets: list[Weblet]) -> None:
        with self._locked():
            self._save(weblets)

    def get(self, name: str) -> Weblet:
        for weblet in self.load():
            if weblet.name == name:
                return weblet
        raise NotFound(name)

    def add(self, weblet: Weblet) -> Weblet:
        with self.transaction() as weblets:
            if any(w.name == weblet.name for w in weblets):
                raise AlreadyExists(weblet.name)
            weblets.append(weblet)
        return weblet

    def remove(self, name: str) -> Weblet:
        with self.transaction() as weblets:
            for index, weblet in enumerate(weblets):
                if weblet.name == name:
                    del weblets[index]
                    return weblet
            raise NotFound(name)

    def record_pid(self, name: str, pid: int | None) -> None:
        """Update only the pid field; the background worker's one write."""
        with self.transaction() as weblets:
            for weblet in weblets:
                if weblet.name == name:
                    weblet.pid = pid
                    return
            logger.debug("cannot record pid for '%s': entry was removed", name)

    def clear_dead_pids(self, is_alive: Callable[[int], bool]) -> list[Weblet]:
        """Drop recorded pids that no longer run; return the updated records."""
        with self.transaction() as weblets:
            for weblet in weblets:
                if weblet.pid and not is_alive(weblet.pid):
                    weblet.pid = None
        return weblets

    def load_settings(self) -> BrowserSettings:
        data = _read_json(self.settings_file)
        if data is None:
            return BrowserSettings()
        try:
            return BrowserSettings.model_validate(data)
        except ValidationError as exc:
            raise ConfigError(f"{self.settings_file} is invalid: {exc}") from exc

    def save_settings(self, settings: BrowserSettings) -> None:
        with self._locked():
            _write_json(self.settings_file, settings.model_dump())
