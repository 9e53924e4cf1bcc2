"""Tests for the focus backend chain."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

from core.errors import NoMechanismAvailable, ToolUnavailable
from ipc.peer_channel import NotifyResult
from os_controller.base_controller import WindowDescriptor
from os_controller.linux_controller import GnomeShellActivator, XdotoolActivator
from os_controller.window_focuser import (
    PeerChannelActivator,
    WindowFocuser,
    default_focus_backends,
)

WINDOW = WindowDescriptor(id="0x03a00003", window_class="weblet-discord", title="Discord")


def _backend(name: str, **behaviour) -> MagicMock:
    backend = MagicMock()
    backend.name = name
    if "raises" in behaviour:
        backend.activate.side_effect = behaviour["raises"]
    else:
        backend.activate.return_value = behaviour.get("returns", True)
    return backend


def test_first_successful_backend_wins() -> None:
    first = _backend("wmctrl", raises=ToolUnavailable("wmctrl"))
    second = _backend("xdotool", returns=True)
    third = _backend("gnome-shell", returns=True)

    result = WindowFocuser([first, second, third]).focus(WINDOW)

    assert result.focused is True
    assert result.mechanism == "xdotool"
    assert result.attempts == ["wmctrl: unavailable"]
    third.activate.assert_not_called()


def test_all_mechanisms_missing_is_reported_not_raised() -> None:
    with patch("os_controller.linux_controller.run_command", side_effect=ToolUnavailable("x")):
        result = WindowFocuser(default_focus_backends(None)).focus(WINDOW)

    assert result.focused is False
    assert isinstance(result.error, NoMechanismAvailable)
    assert len(result.attempts) == 3


def test_backend_without_effect_is_recorded() -> None:
    result = WindowFocuser([_backend("wmctrl", returns=False)]).focus(WINDOW)
    assert result.focused is False
    assert result.attempts == ["wmctrl: no effect"]


def test_xdotool_gets_decimal_window_id() -> None:
    with patch("os_controller.linux_controller.run_command", return_value=(0, "", "")) as run:
        assert XdotoolActivator().activate(WINDOW) is True
    assert run.call_args.args[0] == ["xdotool", "windowactivate", str(0x03A00003)]


def test_gnome_shell_reply_parsing() -> None:
    with patch("os_controller.linux_controller.run_command", return_value=(0, "(true, 'true')\n", "")):
        assert GnomeShellActivator().activate(WINDOW) is True
    with patch("os_controller.linux_controller.run_command", return_value=(0, "(false, '')\n", "")):
        assert GnomeShellActivator().activate(WINDOW) is False


def test_peer_channel_backend_notifies_by_name() -> None:
    channel = MagicMock()
    channel.notify.return_value = NotifyResult.DELIVERED
    assert PeerChannelActivator(channel, app_name="discord").activate(WINDOW) is True
    channel.notify.assert_called_once_with("discord")


def test_default_chain_order() -> None:
    names = [b.name for b in default_focus_backends(MagicMock(), app_name="discord")]
    assert names == ["wmctrl", "xdotool", "gnome-shell", "peer-channel"]
