"""Raise a matched window by trying activation backends in order."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from core.errors import NoMechanismAvailable, ToolUnavailable
from ipc.peer_channel import NotifyResult, PeerChannel
from os_controller.base_controller import (
    ActivationBackend,
    ApplicationIdentity,
    WindowDescriptor,
)
from os_controller.linux_controller import (
    GnomeShellActivator,
    WmctrlActivator,
    XdotoolActivator,
)


class PeerChannelActivator(ActivationBackend):
    """Asks the owning instance to present itself over the peer channel."""

    name = "peer-channel"

    def __init__(self, channel: PeerChannel, app_name: str | None = None) -> None:
        self.channel = channel
        self.app_name = app_name

    def activate(self, target: WindowDescriptor | ApplicationIdentity) -> bool:
        name = target.name if isinstance(target, ApplicationIdentity) else self.app_name
        if not name:
            return False
        return self.channel.notify(name) is NotifyResult.DELIVERED


@dataclass
class FocusResult:
    focused: bool
    mechanism: str | None = None
    attempts: list[str] = field(default_factory=list)
    error: NoMechanismAvailable | None = None


class WindowFocuser:
    """Chain of activation backends; the first success wins."""

    def __init__(self, backends: list[ActivationBackend]) -> None:
        self.logger = logging.getLogger("weblet.window_focuser")
        self.backends = list(backends)

    def focus(self, target: WindowDescriptor | ApplicationIdentity) -> FocusResult:
        attempts: list[str] = []
        for backend in self.backends:
            try:
                ok = backend.activate(target)
            except ToolUnavailable as exc:
                self.logger.debug("focus backend %s unavailable: %s", backend.name, exc)
                attempts.append(f"{backend.name}: unavailable")
                continue
            except Exception as exc:
                self.logger.debug("focus backend %s failed: %s", backend.name, exc)
                attempts.append(f"{backend.name}: {exc}")
                continue
            if ok:
                self.logger.info("focused window using %s", backend.name)
                return FocusResult(focused=True, mechanism=backend.name, attempts=attempts)
            attempts.append(f"{backend.name}: no effect")
        return FocusResult(focused=False, attempts=attempts, error=NoMechanismAvailable(attempts))


def default_focus_backends(
    channel: PeerChannel | None,
    app_name: str | None = None,
    timeout: float = 2.0,
) -> list[ActivationBackend]:
    """Ordered backends: wmctrl, xdotool, GNOME Shell, then the peer channel if given."""
    backends: list[ActivationBackend] = [
        WmctrlActivator(timeout=timeout),
        XdotoolActivator(timeout=timeout),
        GnomeShellActivator(timeout=timeout),
    ]
    if channel is not None:
        backends.append(PeerChannelActivator(channel, app_name=app_name))
    return backends
