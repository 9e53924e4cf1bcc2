"""Display sessions: the process or window a background worker hosts."""

from __future__ import annotations

import logging
import shutil
import signal
import subprocess
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from core.errors import BrowserNotFound, StartFailure
from os_controller.base_controller import ApplicationIdentity
from os_controller.window_focuser import WindowFocuser
from os_controller.window_matcher import WindowMatcher, expected_class_token

logger = logging.getLogger("weblet.display_engine")

ENGINES = ("browser", "native")


@dataclass(frozen=True)
class SessionSpec:
    """Everything a display session needs to open one application window."""

    identity: ApplicationIdentity
    storage_dir: Path
    wm_class: str
    icon_path: Path | None = None
    width: int = 1200
    height: int = 800


def build_session_spec(
    identity: ApplicationIdentity,
    storage_root: Path,
    icon_path: Path | None = None,
    width: int = 1200,
    height: int = 800,
) -> SessionSpec:
    storage_dir = storage_root / identity.name
    storage_dir.mkdir(parents=True, exist_ok=True)
    return SessionSpec(
        identity=identity,
        storage_dir=storage_dir,
        wm_class=expected_class_token(identity.name),
        icon_path=icon_path,
        width=width,
        height=height,
    )


class DisplaySession(ABC):
    """One window per worker process, owned for the process lifetime."""

    def __init__(self, spec: SessionSpec) -> None:
        self.spec = spec

    @abstractmethod
    def run(self) -> int:
        """Open the window and block until it closes; return an exit status."""

    @abstractmethod
    def shutdown(self) -> None:
        """Close the window as if the user had closed it."""

    @abstractmethod
    def request_focus(self) -> None:
        """Raise the window. Safe to call from any thread."""

    def install_signal_handlers(self) -> None:
        def _handler(signum: int, _frame: object) -> None:
            logger.info("received signal %s; shutting down %s", signum, self.spec.identity.name)
            self.shutdown()

        for signum in (signal.SIGINT, signal.SIGTERM):
            signal.signal(signum, _handler)


def detect_browsers(candidates: list[str]) -> list[str]:
    return [browser for browser in candidates if shutil.which(browser)]


class BrowserSession(DisplaySession):
    """A Chromium-family browser in --app mode with an isolated profile."""

    def __init__(
        self,
        spec: SessionSpec,
        browser: str,
        focuser: WindowFocuser,
        matcher: WindowMatcher,
        on_started: Callable[[int | None], None] | None = None,
    ) -> None:
        super().__init__(spec)
        self.browser = browser
        self.focuser = focuser
        self.matcher = matcher
        self.on_started = on_started
        self.process: subprocess.Popen[bytes] | None = None

    def command(self) -> list[str]:
        return [
            self.browser,
            f"--app={self.spec.identity.url}",
            f"--user-data-dir={self.spec.storage_dir}",
            f"--class={self.spec.wm_class}",
            "--no-first-run",
            "--no-default-browser-check",
        ]

    def run(self) -> int:
        try:
            self.process = subprocess.Popen(self.command(), stdin=subprocess.DEVNULL)
        except OSError as exc:
            raise StartFailure(f"failed to start browser {self.browser}: {exc}") from exc
        logger.info(
            "started weblet '%s' with PID %s using %s",
            self.spec.identity.name,
            self.process.pid,
            self.browser,
        )
        if self.on_started is not None:
            self.on_started(self.process.pid)
        try:
            return self.process.wait()
        finally:
            if self.on_started is not None:
                self.on_started(None)

    def shutdown(self) -> None:
        if self.process is not None and self.process.poll() is None:
            self.process.terminate()

    def request_focus(self) -> None:
        pid = self.process.pid if self.process is not None else None
        identity = ApplicationIdentity(
            name=self.spec.identity.name, url=self.spec.identity.url, pid=pid
        )
        window = self.matcher.find_window(identity)
        if window is None:
            logger.warning("focus requested but no window found for '%s'", identity.name)
            return
        self.focuser.focus(window)


def resolve_browser(configured: str, candidates: list[str]) -> tuple[str, bool]:
    """Pick the browser binary; returns (browser, should_persist).

    The configured browser wins when it is on PATH; otherwise a single
    detected candidate is chosen and should be persisted.
    """
    if configured and shutil.which(configured):
        return configured, False
    available = detect_browsers(candidates)
    if not available:
        raise BrowserNotFound(
            f"no supported browser found (tried: {', '.join(candidates)})"
        )
    if len(available) > 1:
        raise BrowserNotFound("multiple browsers found, please run 'weblet setup' to choose")
    return available[0], True


def open_native_session(
    spec: SessionSpec,
    on_started: Callable[[int | None], None] | None = None,
) -> DisplaySession:
    """Build the embedded WebKit session; needs PyGObject with WebKit2GTK."""
    try:
        from view.webview_session import WebviewSession
    except (ImportError, ValueError) as exc:
        raise StartFailure(
            "native mode needs PyGObject with GTK 3 and WebKit2GTK 4.1 "
            f"(pip install 'weblet[native]'): {exc}"
        ) from exc
    return WebviewSession(spec, on_started=on_started)
