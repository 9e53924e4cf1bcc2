"""Tests for window listing backends and their degradation."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

from core.errors import ToolUnavailable
from os_controller.linux_controller import (
    XpropProbe,
    parse_wmctrl_listing,
    parse_xprop_window,
)
from os_controller.window_manager import WindowProbe

WMCTRL_OUTPUT = (
    "0x03a00003  0 2211   weblet-discord.weblet-discord  box Discord - Friends\n"
    "0x04000007 -1 0      xfce4-panel.Xfce4-panel  box xfce4-panel\n"
    "0x05000001  0 3100   gnome-terminal-server.Gnome-terminal  box\n"
)


def test_parse_wmctrl_listing() -> None:
    windows = parse_wmctrl_listing(WMCTRL_OUTPUT)
    assert len(windows) == 3
    assert windows[0].id == "0x03a00003"
    assert windows[0].window_class == "weblet-discord.weblet-discord"
    assert windows[0].title == "Discord - Friends"
    assert windows[0].owner_pid == 2211
    assert windows[1].owner_pid is None
    assert windows[2].title == ""


def test_parse_xprop_window() -> None:
    output = (
        'WM_CLASS(STRING) = "weblet-discord", "weblet-discord"\n'
        '_NET_WM_NAME(UTF8_STRING) = "Discord"\n'
        "_NET_WM_PID(CARDINAL) = 812\n"
    )
    window = parse_xprop_window("0x1", output)
    assert window.window_class == "weblet-discord.weblet-discord"
    assert window.title == "Discord"
    assert window.owner_pid == 812


def test_xprop_probe_walks_client_list() -> None:
    responses = [
        (0, "_NET_CLIENT_LIST(WINDOW): window id # 0x1, 0x2\n", ""),
        (0, 'WM_CLASS(STRING) = "a", "A"\n_NET_WM_NAME(UTF8_STRING) = "One"\n', ""),
        (1, "", "BadWindow"),
    ]
    with patch("os_controller.linux_controller.run_command", side_effect=responses):
        windows = XpropProbe().list_windows()
    assert [w.id for w in windows] == ["0x1"]
    assert windows[0].title == "One"


def test_probe_falls_back_to_next_backend() -> None:
    broken = MagicMock()
    broken.name = "wmctrl"
    broken.list_windows.side_effect = ToolUnavailable("wmctrl")
    working = MagicMock()
    working.name = "xprop"
    working.list_windows.return_value = parse_wmctrl_listing(WMCTRL_OUTPUT)

    assert len(WindowProbe([broken, working]).list_windows()) == 3


def test_probe_without_any_tool_reports_no_windows() -> None:
    with patch("os_controller.linux_controller.run_command", side_effect=ToolUnavailable("wmctrl")):
        assert WindowProbe().list_windows() == []


def test_probe_absorbs_unexpected_backend_errors() -> None:
    backend = MagicMock()
    backend.name = "odd"
    backend.list_windows.side_effect = RuntimeError("boom")
    assert WindowProbe([backend]).list_windows() == []
