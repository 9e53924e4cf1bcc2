"""Freedesktop launcher files so weblets show up in the desktop menu."""

from __future__ import annotations

import logging
import shutil
import sys
from pathlib import Path

from core.errors import ToolUnavailable
from executor.command_executor import run_command
from os_controller.window_matcher import expected_class_token

logger = logging.getLogger("weblet.desktop_entry")

DEFAULT_ICON = "web-browser"


def default_applications_dir() -> Path:
    return Path.home() / ".local" / "share" / "applications"


def resolve_exec() -> str:
    """Command line that launches this CLI from a desktop file."""
    on_path = shutil.which("weblet")
    if on_path:
        argv0 = Path(sys.argv[0]).resolve() if sys.argv and sys.argv[0] else None
        if argv0 is None or Path(on_path).resolve() == argv0:
            return "weblet"
        return on_path
    return f"{sys.executable} -m ui.cli.cli"


def _quote_arg(arg: str) -> str:
    if any(ch in arg for ch in ' \t"\'\\$`'):
        escaped = arg.replace("\\", "\\\\").replace('"', '\\"').replace("$", "\\$").replace("`", "\\`")
        return f'"{escaped}"'
    return arg


def render_desktop_entry(name: str, url: str, exec_cmd: str, icon: str) -> str:
    return (
        "[Desktop Entry]\n"
        "Version=1.0\n"
        "Type=Application\n"
        f"Name={name}\n"
        f"Comment=Weblet for {url}\n"
        f"Exec={exec_cmd} {_quote_arg(name)}\n"
        f"Icon={icon}\n"
        "Terminal=false\n"
        "Categories=Network;WebBrowser;\n"
        "StartupNotify=true\n"
        f"StartupWMClass={expected_class_token(name)}\n"
    )


class DesktopEntryWriter:
    def __init__(self, applications_dir: Path | None = None, exec_cmd: str | None = None) -> None:
        self.applications_dir = applications_dir or default_applications_dir()
        self.exec_cmd = exec_cmd

    def path_for(self, name: str) -> Path:
        return self.applications_dir / f"weblet-{name}.desktop"

    def write(self, name: str, url: str, icon_path: Path | None = None) -> Path:
        self.applications_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(name)
        icon = str(icon_path) if icon_path is not None else DEFAULT_ICON
        path.write_text(
            render_desktop_entry(name, url, self.exec_cmd or resolve_exec(), icon),
            encoding="utf-8",
        )
        path.chmod(0o755)
        self._refresh_database()
        return path

    def remove(self, name: str) -> bool:
        path = self.path_for(name)
        if not path.exists():
            return False
        path.unlink()
        self._refresh_database()
        return True

    def _refresh_database(self) -> None:
        try:
            run_command(["update-desktop-database", str(self.applications_dir)], timeout=10.0)
        except ToolUnavailable as exc:
            logger.debug("desktop database not refreshed: %s", exc)
