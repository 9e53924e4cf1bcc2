"""Top-level wiring of the launcher runtime."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from core.policy_runtime import ensure_runtime_dirs, load_effective_config, resolve_data_dir
from executor.background_runner import BackgroundSpawner, ForegroundWorker
from executor.launch_coordinator import LaunchCoordinator
from executor.launch_lease import LaunchLease
from ipc.peer_channel import PeerChannel
from os_controller.base_controller import ApplicationIdentity
from os_controller.window_focuser import WindowFocuser, default_focus_backends
from os_controller.window_manager import WindowProbe, default_probe_backends
from os_controller.window_matcher import WindowMatcher
from registry.favicon import find_cached_icon
from registry.models import Weblet
from registry.weblet_store import WebletStore
from view.display_engine import (
    BrowserSession,
    DisplaySession,
    build_session_spec,
    open_native_session,
    resolve_browser,
)

logger = logging.getLogger("weblet.orchestrator")


@dataclass
class RuntimeBundle:
    """Holds initialized runtime components."""

    config: dict[str, Any]
    paths: dict[str, Path]
    store: WebletStore
    channel: PeerChannel
    probe: WindowProbe
    matcher: WindowMatcher

    def _setting(self, section: str, key: str, default: Any) -> Any:
        return self.config.get(section, {}).get(key, default)

    @property
    def tool_timeout(self) -> float:
        return float(self._setting("probe", "command_timeout_seconds", 2.0))

    @property
    def browser_candidates(self) -> list[str]:
        return list(self._setting("browser", "candidates", []))

    def focuser(self, name: str | None = None, include_peer: bool = True) -> WindowFocuser:
        channel = self.channel if include_peer else None
        return WindowFocuser(default_focus_backends(channel, app_name=name, timeout=self.tool_timeout))

    def lease(self, name: str) -> LaunchLease:
        return LaunchLease(self.paths["locks_dir"], name)

    def coordinator(self) -> LaunchCoordinator:
        return LaunchCoordinator(
            matcher=self.matcher,
            focuser_factory=lambda name: self.focuser(name),
            lease_factory=self.lease,
            spawner=BackgroundSpawner(self.paths["root"], self.paths["logs_dir"]),
            channel=self.channel,
            wait_budget=float(self._setting("launch", "wait_budget_seconds", 4.0)),
            poll_interval=float(self._setting("launch", "poll_interval_seconds", 0.2)),
            stale_after=float(self._setting("launch", "stale_after_seconds", 10.0)),
        )

    def engine_for(self, weblet: Weblet) -> str:
        return weblet.engine or self.store.load_settings().engine

    def ensure_browser(self) -> str:
        """Resolve the browser binary, persisting an auto-detected choice."""
        settings = self.store.load_settings()
        browser, persist = resolve_browser(settings.browser, self.browser_candidates)
        if persist:
            settings.browser = browser
            self.store.save_settings(settings)
            logger.info("automatically configured browser: %s", browser)
        return browser

    def session_factory(self, weblet: Weblet) -> Callable[[ApplicationIdentity], DisplaySession]:
        def _record(pid: int | None) -> None:
            self.store.record_pid(weblet.name, pid)

        def _build(identity: ApplicationIdentity) -> DisplaySession:
            spec = build_session_spec(
                identity,
                self.paths["data_dir"],
                icon_path=find_cached_icon(self.paths["icons_dir"], identity.url),
                width=int(self._setting("window", "width", 1200)),
                height=int(self._setting("window", "height", 800)),
            )
            if self.engine_for(weblet) == "native":
                return open_native_session(spec, on_started=_record)
            return BrowserSession(
                spec,
                browser=self.ensure_browser(),
                focuser=self.focuser(include_peer=False),
                matcher=self.matcher,
                on_started=_record,
            )

        return _build

    def worker(self, weblet: Weblet) -> ForegroundWorker:
        return ForegroundWorker(
            matcher=self.matcher,
            focuser=self.focuser(weblet.name),
            lease=self.lease(weblet.name),
            channel=self.channel,
            session_factory=self.session_factory(weblet),
        )


class Orchestrator:
    """Creates and wires runtime components for CLI use."""

    def __init__(self, root: Path | None = None) -> None:
        self.root = resolve_data_dir(root)

    def build(self) -> RuntimeBundle:
        config = load_effective_config(self.root)
        paths = ensure_runtime_dirs(self.root)
        timeout = float(config.get("probe", {}).get("command_timeout_seconds", 2.0))

        store = WebletStore(paths["weblets_file"], paths["settings_file"])
        channel = PeerChannel(paths["sockets_dir"])
        probe = WindowProbe(default_probe_backends(timeout=timeout))
        matcher = WindowMatcher(probe, storage_root=paths["data_dir"])
        return RuntimeBundle(
            config=config,
            paths=paths,
            store=store,
            channel=channel,
            probe=probe,
            matcher=matcher,
        )
