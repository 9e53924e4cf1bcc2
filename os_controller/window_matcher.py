"""Layered heuristic that maps an application identity to a live window.

Tiers, first hit wins:

1. window class against ``weblet-<slug>`` (exact, prefix, suffix, substring)
2. title equal to the name, or starting with the name and a separator
3. title containing the URL's second-level label, the host or the raw name
4. owning process: recorded pid, or a cmdline carrying the app's storage dir

Each tier scans every window before the next tier is tried, so a weaker
heuristic never shadows a stronger match on another window.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Callable
from pathlib import Path
from urllib.parse import urlparse

from core import system_inspector
from os_controller.base_controller import ApplicationIdentity, WindowDescriptor
from os_controller.window_manager import WindowProbe

logger = logging.getLogger("weblet.window_matcher")

CLASS_PREFIX = "weblet-"
TITLE_SEPARATORS = (" - ", " – ", " — ", " | ", ": ", " · ")
MIN_PATTERN_LENGTH = 3
# Second-level labels that sit under a country code (example.co.uk).
_SHARED_SLDS = {"co", "com", "org", "net", "gov", "ac", "edu"}

SITE_ALIASES: dict[str, tuple[str, ...]] = {
    "youtube.com": ("youtube",),
    "gmail.com": ("gmail",),
    "mail.google.com": ("gmail",),
    "github.com": ("github",),
    "teams.microsoft.com": ("teams", "microsoft teams"),
}


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.strip().lower()).strip("-")
    return slug or "app"


def expected_class_token(name: str) -> str:
    """Window class token the display engines stamp on their window."""
    return f"{CLASS_PREFIX}{slugify(name)}"


def url_host(url: str) -> str:
    parsed = urlparse(url if "://" in url else f"https://{url}")
    return (parsed.hostname or "").lower()


def second_level_label(url: str) -> str:
    """Return the label just before the public suffix: discord.com -> discord."""
    labels = [label for label in url_host(url).split(".") if label]
    if labels and labels[0] == "www":
        labels = labels[1:]
    if not labels:
        return ""
    if len(labels) == 1:
        return labels[0]
    if len(labels) >= 3 and len(labels[-1]) == 2 and labels[-2] in _SHARED_SLDS:
        return labels[-3]
    return labels[-2]


def _class_parts(window_class: str) -> list[str]:
    lowered = window_class.lower()
    return [lowered, *[part for part in lowered.split(".") if part]]


def _storage_fragment_in(args: list[str], fragment: str) -> bool:
    for arg in args:
        if arg == fragment or arg.endswith("=" + fragment) or (fragment + os.sep) in arg:
            return True
    return False


class WindowMatcher:
    """Finds the live window belonging to an application, if any."""

    def __init__(
        self,
        probe: WindowProbe,
        storage_root: Path | None = None,
        cmdline_reader: Callable[[int | None], list[str]] = system_inspector.process_cmdline,
    ) -> None:
        self.probe = probe
        self.storage_root = storage_root
        self.cmdline_reader = cmdline_reader

    def find_window(self, identity: ApplicationIdentity) -> WindowDescriptor | None:
        return self.match(identity, self.probe.list_windows())

    def match(
        self, identity: ApplicationIdentity, windows: list[WindowDescriptor]
    ) -> WindowDescriptor | None:
        for tier in (self._by_class, self._by_title, self._by_derived_title, self._by_owner):
            found = tier(identity, windows)
            if found is not None:
                logger.debug(
                    "matched %s to window %s via %s", identity.name, found.id, tier.__name__
                )
                return found
        return None

    def _by_class(
        self, identity: ApplicationIdentity, windows: list[WindowDescriptor]
    ) -> WindowDescriptor | None:
        token = expected_class_token(identity.name)
        # The token must end at a boundary: weblet-chat is not weblet-chatgpt.
        bounded = re.compile(re.escape(token) + r"(?![a-z0-9])")
        checks: list[Callable[[str], bool]] = [
            lambda part: part == token,
            lambda part: bounded.match(part) is not None,
            lambda part: part.endswith(token),
            lambda part: bounded.search(part) is not None,
        ]
        for check in checks:
            for window in windows:
                if window.window_class and any(check(p) for p in _class_parts(window.window_class)):
                    return window
        return None

    def _by_title(
        self, identity: ApplicationIdentity, windows: list[WindowDescriptor]
    ) -> WindowDescriptor | None:
        name = identity.name.strip().lower()
        if not name:
            return None
        for window in windows:
            title = window.title.strip().lower()
            if title == name or any(title.startswith(name + sep) for sep in TITLE_SEPARATORS):
                return window
        return None

    def _title_patterns(self, identity: ApplicationIdentity) -> list[str]:
        host = url_host(identity.url)
        bare_host = host[4:] if host.startswith("www.") else host
        patterns = [
            second_level_label(identity.url),
            identity.name.strip().lower(),
            host,
            bare_host.replace(".", " "),
        ]
        for domain, aliases in SITE_ALIASES.items():
            if bare_host == domain or bare_host.endswith("." + domain):
                patterns.extend(aliases)
        seen: list[str] = []
        for pattern in patterns:
            if len(pattern) >= MIN_PATTERN_LENGTH and pattern not in seen:
                seen.append(pattern)
        return seen

    def _by_derived_title(
        self, identity: ApplicationIdentity, windows: list[WindowDescriptor]
    ) -> WindowDescriptor | None:
        patterns = self._title_patterns(identity)
        for pattern in patterns:
            for window in windows:
                if pattern in window.title.lower():
                    return window
        return None

    def _by_owner(
        self, identity: ApplicationIdentity, windows: list[WindowDescriptor]
    ) -> WindowDescriptor | None:
        owned = [w for w in windows if w.owner_pid]
        if not owned:
            return None
        if identity.pid:
            for window in owned:
                if window.owner_pid == identity.pid:
                    return window
        if self.storage_root is None:
            return None
        fragment = str(self.storage_root / identity.name)
        inspected: dict[int, bool] = {}
        for window in owned:
            pid = window.owner_pid
            if pid not in inspected:
                inspected[pid] = _storage_fragment_in(self.cmdline_reader(pid), fragment)
            if inspected[pid]:
                return window
        return None
