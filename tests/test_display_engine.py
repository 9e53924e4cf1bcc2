"""Tests for display sessions and browser resolution."""

from __future__ import annotations

import builtins
import os
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from core import system_inspector
from core.errors import BrowserNotFound, StartFailure
from os_controller.base_controller import ApplicationIdentity
from view.display_engine import (
    BrowserSession,
    build_session_spec,
    open_native_session,
    resolve_browser,
)

DISCORD = ApplicationIdentity(name="discord", url="https://discord.com/app")


def _which(available: set[str]):
    return lambda name: f"/usr/bin/{name}" if name in available else None


def test_session_spec_creates_storage(tmp_path: Path) -> None:
    spec = build_session_spec(DISCORD, tmp_path)
    assert spec.storage_dir == tmp_path / "discord"
    assert spec.storage_dir.is_dir()
    assert spec.wm_class == "weblet-discord"


def test_browser_command_isolates_profile(tmp_path: Path) -> None:
    spec = build_session_spec(DISCORD, tmp_path)
    session = BrowserSession(spec, browser="chromium", focuser=MagicMock(), matcher=MagicMock())
    command = session.command()
    assert command[0] == "chromium"
    assert "--app=https://discord.com/app" in command
    assert f"--user-data-dir={tmp_path / 'discord'}" in command
    assert "--class=weblet-discord" in command


def test_browser_session_reports_pid_lifecycle(tmp_path: Path) -> None:
    seen: list[int | None] = []
    spec = build_session_spec(DISCORD, tmp_path)
    session = BrowserSession(
        spec, browser="chromium", focuser=MagicMock(), matcher=MagicMock(), on_started=seen.append
    )
    with patch("view.display_engine.subprocess.Popen") as popen:
        popen.return_value.pid = 777
        popen.return_value.wait.return_value = 0
        assert session.run() == 0
    assert seen == [777, None]


def test_browser_session_spawn_error(tmp_path: Path) -> None:
    session = BrowserSession(
        build_session_spec(DISCORD, tmp_path), browser="missing", focuser=MagicMock(), matcher=MagicMock()
    )
    with patch("view.display_engine.subprocess.Popen", side_effect=FileNotFoundError("missing")):
        with pytest.raises(StartFailure):
            session.run()


def test_request_focus_uses_matcher_and_focuser(tmp_path: Path) -> None:
    matcher = MagicMock()
    focuser = MagicMock()
    session = BrowserSession(build_session_spec(DISCORD, tmp_path), "chromium", focuser, matcher)
    session.request_focus()
    focuser.focus.assert_called_once_with(matcher.find_window.return_value)


def test_resolve_browser_prefers_configured() -> None:
    with patch("view.display_engine.shutil.which", side_effect=_which({"chromium", "google-chrome"})):
        assert resolve_browser("chromium", ["google-chrome", "chromium"]) == ("chromium", False)


def test_resolve_browser_auto_selects_single_candidate() -> None:
    with patch("view.display_engine.shutil.which", side_effect=_which({"chromium-browser"})):
        assert resolve_browser("", ["google-chrome", "chromium-browser"]) == ("chromium-browser", True)


def test_resolve_browser_failures() -> None:
    with patch("view.display_engine.shutil.which", side_effect=_which(set())):
        with pytest.raises(BrowserNotFound):
            resolve_browser("", ["google-chrome"])
    with patch("view.display_engine.shutil.which", side_effect=_which({"google-chrome", "chromium"})):
        with pytest.raises(BrowserNotFound, match="weblet setup"):
            resolve_browser("", ["google-chrome", "chromium"])


def test_native_session_without_gtk_is_start_failure(tmp_path: Path, monkeypatch) -> None:
    real_import = builtins.__import__

    def fake_import(name, *args, **kwargs):
        if name == "view.webview_session" or name == "gi":
            raise ImportError("No module named 'gi'")
        return real_import(name, *args, **kwargs)

    monkeypatch.setattr(builtins, "__import__", fake_import)
    with pytest.raises(StartFailure, match="native"):
        open_native_session(build_session_spec(DISCORD, tmp_path))


def test_pid_helpers_on_current_process() -> None:
    assert system_inspector.is_pid_alive(os.getpid()) is True
    assert system_inspector.is_pid_alive(None) is False
    assert system_inspector.process_cmdline(0) == []
