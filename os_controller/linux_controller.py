"""X11/GNOME backends that shell out to wmctrl, xprop, xdotool and gdbus."""

from __future__ import annotations

import json
import logging
import re

from core.errors import ToolUnavailable
from executor.command_executor import run_command
from os_controller.base_controller import (
    ActivationBackend,
    ApplicationIdentity,
    ProbeBackend,
    WindowDescriptor,
)

logger = logging.getLogger("weblet.linux_controller")

_CLIENT_LIST_RE = re.compile(r"0x[0-9a-fA-F]+")
_QUOTED_RE = re.compile(r'"((?:[^"\\]|\\.)*)"')


def _parse_pid(raw: str) -> int | None:
    try:
        pid = int(raw)
    except ValueError:
        return None
    return pid if pid > 0 else None


def parse_wmctrl_listing(output: str) -> list[WindowDescriptor]:
    """Parse ``wmctrl -lpx``: id, desktop, pid, class, host, title."""
    windows: list[WindowDescriptor] = []
    for line in output.splitlines():
        parts = line.split(None, 5)
        if len(parts) < 5:
            continue
        window_id, _desktop, pid, wm_class, _host = parts[:5]
        title = parts[5] if len(parts) == 6 else ""
        windows.append(
            WindowDescriptor(
                id=window_id,
                window_class=wm_class,
                title=title,
                owner_pid=_parse_pid(pid),
            )
        )
    return windows


def parse_xprop_window(window_id: str, output: str) -> WindowDescriptor:
    """Build a descriptor from ``xprop -id <id> WM_CLASS _NET_WM_NAME _NET_WM_PID``."""
    wm_class = ""
    title = ""
    pid: int | None = None
    for line in output.splitlines():
        if "=" not in line:
            continue
        key, _, value = line.partition("=")
        key = key.strip()
        if key.startswith("WM_CLASS"):
            wm_class = ".".join(_QUOTED_RE.findall(value))
        elif key.startswith("_NET_WM_NAME") or (key.startswith("WM_NAME") and not title):
            quoted = _QUOTED_RE.findall(value)
            title = quoted[0] if quoted else value.strip()
        elif key.startswith("_NET_WM_PID"):
            pid = _parse_pid(value.strip())
    return WindowDescriptor(id=window_id, window_class=wm_class, title=title, owner_pid=pid)


class WmctrlProbe(ProbeBackend):
    name = "wmctrl"

    def __init__(self, timeout: float = 2.0) -> None:
        self.timeout = timeout

    def list_windows(self) -> list[WindowDescriptor]:
        code, stdout, stderr = run_command(["wmctrl", "-lpx"], timeout=self.timeout)
        if code != 0:
            raise ToolUnavailable("wmctrl", stderr.strip() or f"exit status {code}")
        return parse_wmctrl_listing(stdout)


class XpropProbe(ProbeBackend):
    """Walks _NET_CLIENT_LIST when wmctrl is not installed."""

    name = "xprop"

    def __init__(self, timeout: float = 2.0) -> None:
        self.timeout = timeout

    def list_windows(self) -> list[WindowDescriptor]:
        code, stdout, stderr = run_command(
            ["xprop", "-root", "_NET_CLIENT_LIST"], timeout=self.timeout
        )
        if code != 0:
            raise ToolUnavailable("xprop", stderr.strip() or f"exit status {code}")
        _, _, ids = stdout.partition("#")
        windows: list[WindowDescriptor] = []
        for window_id in _CLIENT_LIST_RE.findall(ids):
            code, props, _ = run_command(
                ["xprop", "-id", window_id, "WM_CLASS", "_NET_WM_NAME", "WM_NAME", "_NET_WM_PID"],
                timeout=self.timeout,
            )
            if code != 0:
                # Window vanished between listing and inspection.
                continue
            windows.append(parse_xprop_window(window_id, props))
        return windows


class WmctrlActivator(ActivationBackend):
    name = "wmctrl"

    def __init__(self, timeout: float = 2.0) -> None:
        self.timeout = timeout

    def activate(self, target: WindowDescriptor | ApplicationIdentity) -> bool:
        if not isinstance(target, WindowDescriptor):
            return False
        code, _, stderr = run_command(["wmctrl", "-i", "-a", target.id], timeout=self.timeout)
        if code != 0:
            logger.debug("wmctrl could not activate %s: %s", target.id, stderr.strip())
        return code == 0


class XdotoolActivator(ActivationBackend):
    name = "xdotool"

    def __init__(self, timeout: float = 2.0) -> None:
        self.timeout = timeout

    @staticmethod
    def _window_arg(window_id: str) -> str:
        if window_id.lower().startswith("0x"):
            try:
                return str(int(window_id, 16))
            except ValueError:
                return window_id
        return window_id

    def activate(self, target: WindowDescriptor | ApplicationIdentity) -> bool:
        if not isinstance(target, WindowDescriptor):
            return False
        code, _, stderr = run_command(
            ["xdotool", "windowactivate", self._window_arg(target.id)], timeout=self.timeout
        )
        if code != 0:
            logger.debug("xdotool could not activate %s: %s", target.id, stderr.strip())
        return code == 0


class GnomeShellActivator(ActivationBackend):
    """Title-substring activation through org.gnome.Shell.Eval.

    Works where ids are not addressable (GNOME on Wayland), provided the shell
    still accepts Eval calls.
    """

    name = "gnome-shell"

    SCRIPT = (
        "(function(needle) {{"
        " const wins = global.get_window_actors().map(a => a.meta_window)"
        ".filter(w => (w.get_title() || '').toLowerCase().includes(needle));"
        " if (wins.length === 0) return false;"
        " wins[0].activate(global.get_current_time());"
        " return true;"
        " }})({needle})"
    )

    def __init__(self, timeout: float = 2.0) -> None:
        self.timeout = timeout

    @staticmethod
    def _needle(target: WindowDescriptor | ApplicationIdentity) -> str:
        if isinstance(target, WindowDescriptor) and target.title:
            return target.title
        if isinstance(target, ApplicationIdentity):
            return target.name
        return ""

    def activate(self, target: WindowDescriptor | ApplicationIdentity) -> bool:
        needle = self._needle(target).strip().lower()
        if not needle:
            return False
        script = self.SCRIPT.format(needle=json.dumps(needle))
        code, stdout, stderr = run_command(
            [
                "gdbus",
                "call",
                "--session",
                "--dest",
                "org.gnome.Shell",
                "--object-path",
                "/org/gnome/Shell",
                "--method",
                "org.gnome.Shell.Eval",
                script,
            ],
            timeout=self.timeout,
        )
        if code != 0:
            raise ToolUnavailable("gnome-shell", stderr.strip() or f"exit status {code}")
        # Reply looks like "(true, 'true')"; Eval is refused outside unsafe mode.
        return stdout.strip().startswith("(true") and "'true'" in stdout
