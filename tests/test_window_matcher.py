"""Tests for the layered window matcher."""

from __future__ import annotations

from pathlib import Path

from os_controller.base_controller import ApplicationIdentity, WindowDescriptor
from os_controller.window_matcher import (
    WindowMatcher,
    expected_class_token,
    second_level_label,
    slugify,
)


class StaticProbe:
    def __init__(self, windows: list[WindowDescriptor]) -> None:
        self.windows = windows
        self.calls = 0

    def list_windows(self) -> list[WindowDescriptor]:
        self.calls += 1
        return list(self.windows)


def _matcher(windows: list[WindowDescriptor], **kwargs) -> WindowMatcher:
    return WindowMatcher(StaticProbe(windows), **kwargs)


DISCORD = ApplicationIdentity(name="discord", url="https://discord.com/app")


def test_slug_and_class_token() -> None:
    assert slugify("My Mail") == "my-mail"
    assert slugify("  ") == "app"
    assert expected_class_token("Discord") == "weblet-discord"


def test_second_level_label() -> None:
    assert second_level_label("https://discord.com/app") == "discord"
    assert second_level_label("https://www.bbc.co.uk/news") == "bbc"
    assert second_level_label("mail.google.com") == "google"
    assert second_level_label("localhost:8080") == "localhost"


def test_class_exact_match_beats_title_match_on_other_window() -> None:
    title_hit = WindowDescriptor(id="0x1", window_class="firefox.Firefox", title="discord")
    class_hit = WindowDescriptor(id="0x2", window_class="weblet-discord.weblet-discord", title="Chat")
    matcher = _matcher([title_hit, class_hit])
    assert matcher.find_window(DISCORD) == class_hit


def test_class_exact_beats_prefix() -> None:
    prefix = WindowDescriptor(id="0x1", window_class="weblet-discord-canary", title="x")
    exact = WindowDescriptor(id="0x2", window_class="weblet-discord", title="y")
    assert _matcher([prefix, exact]).find_window(DISCORD) == exact


def test_class_match_is_case_insensitive() -> None:
    window = WindowDescriptor(id="0x3", window_class="crx.Weblet-Discord", title="")
    assert _matcher([window]).find_window(DISCORD) == window


def test_title_equal_or_separated() -> None:
    unrelated = WindowDescriptor(id="0x1", window_class="code.Code", title="notes about discordance")
    window = WindowDescriptor(id="0x2", window_class="google-chrome", title="Discord - Friends")
    assert _matcher([unrelated, window]).find_window(DISCORD) == window


def test_derived_title_uses_url_label() -> None:
    identity = ApplicationIdentity(name="chat", url="https://discord.com/app")
    window = WindowDescriptor(id="0x1", window_class="google-chrome", title="#general | Discord")
    assert _matcher([window]).find_window(identity) == window


def test_site_alias_matches_title() -> None:
    identity = ApplicationIdentity(name="mail", url="https://mail.google.com/mail/u/0")
    window = WindowDescriptor(id="0x1", window_class="chromium", title="Inbox (3) - Gmail")
    assert _matcher([window]).find_window(identity) == window


def test_short_patterns_are_skipped() -> None:
    identity = ApplicationIdentity(name="x", url="https://x.io")
    window = WindowDescriptor(id="0x1", window_class="term", title="xterm on box")
    assert _matcher([window]).find_window(identity) is None


def test_owner_by_recorded_pid() -> None:
    identity = ApplicationIdentity(name="tool", url="https://example.org", pid=4242)
    window = WindowDescriptor(id="0x9", window_class="Untitled", title="", owner_pid=4242)
    assert _matcher([window]).find_window(identity) == window


def test_owner_by_storage_dir_in_cmdline(tmp_path: Path) -> None:
    identity = ApplicationIdentity(name="tool", url="https://example.org")
    other = WindowDescriptor(id="0x1", window_class="Untitled", title="", owner_pid=10)
    mine = WindowDescriptor(id="0x2", window_class="Untitled", title="", owner_pid=11)
    cmdlines = {
        10: ["chrome", f"--user-data-dir={tmp_path / 'tool-two'}"],
        11: ["chrome", f"--user-data-dir={tmp_path / 'tool'}"],
    }
    matcher = _matcher([other, mine], storage_root=tmp_path, cmdline_reader=lambda pid: cmdlines[pid])
    assert matcher.find_window(identity) == mine


def test_no_windows_means_no_match() -> None:
    assert _matcher([]).find_window(DISCORD) is None


def test_matching_twice_gives_same_answer() -> None:
    window = WindowDescriptor(id="0x2", window_class="weblet-discord", title="Discord")
    matcher = _matcher([window])
    assert matcher.find_window(DISCORD) == matcher.find_window(DISCORD)
    assert matcher.probe.calls == 2


def test_class_token_needs_a_boundary() -> None:
    chat = ApplicationIdentity(name="chat", url="https://talk.example.org")
    other_app = WindowDescriptor(id="0x1", window_class="weblet-chatgpt.weblet-chatgpt", title="New conversation")
    assert _matcher([other_app]).find_window(chat) is None

    own = WindowDescriptor(id="0x2", window_class="crx.weblet-chat", title="Talk")
    assert _matcher([other_app, own]).find_window(chat) == own
