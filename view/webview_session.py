"""Embedded WebKit2GTK window used by the native display engine."""

from __future__ import annotations

import logging
import os
import signal
import threading
from collections.abc import Callable

import gi

gi.require_version("Gtk", "3.0")
gi.require_version("WebKit2", "4.1")
from gi.repository import GLib, Gtk, WebKit2  # noqa: E402

from view.display_engine import DisplaySession, SessionSpec  # noqa: E402

logger = logging.getLogger("weblet.webview")

USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
FOCUS_POLL_MS = 100


class WebviewSession(DisplaySession):
    """GTK main loop hosting one WebKit view with persistent storage.

    Focus requests arrive on the peer listener thread; they only set an event
    which a GLib timer on the UI loop consumes.
    """

    def __init__(
        self,
        spec: SessionSpec,
        on_started: Callable[[int | None], None] | None = None,
    ) -> None:
        super().__init__(spec)
        self.on_started = on_started
        self.window: Gtk.Window | None = None
        self.webview: WebKit2.WebView | None = None
        self._focus_requested = threading.Event()

    def _build_context(self) -> WebKit2.WebContext:
        data_dir = str(self.spec.storage_dir)
        manager = WebKit2.WebsiteDataManager(
            base_data_directory=data_dir,
            base_cache_directory=data_dir,
        )
        cookies = manager.get_cookie_manager()
        cookies.set_persistent_storage(
            str(self.spec.storage_dir / "cookies.sqlite"),
            WebKit2.CookiePersistentStorage.SQLITE,
        )
        cookies.set_accept_policy(WebKit2.CookieAcceptPolicy.ALWAYS)
        return WebKit2.WebContext.new_with_website_data_manager(manager)

    def _configure(self, webview: WebKit2.WebView) -> None:
        settings = webview.get_settings()
        settings.set_user_agent(USER_AGENT)
        settings.set_enable_javascript(True)
        settings.set_javascript_can_access_clipboard(True)
        settings.set_enable_media_stream(True)
        settings.set_enable_mediasource(True)
        settings.set_enable_webaudio(True)
        settings.set_enable_media(True)
        settings.set_media_playback_requires_user_gesture(False)
        settings.set_enable_encrypted_media(True)
        settings.set_hardware_acceleration_policy(WebKit2.HardwareAccelerationPolicy.ALWAYS)
        settings.set_enable_webgl(True)
        settings.set_enable_developer_extras(False)
        webview.connect("permission-request", self._on_permission_request)

    @staticmethod
    def _on_permission_request(_webview: WebKit2.WebView, request: WebKit2.PermissionRequest) -> bool:
        logger.info("granting %s", type(request).__name__)
        request.allow()
        return True

    def _on_realize(self, window: Gtk.Window) -> None:
        gdk_window = window.get_window()
        if gdk_window is not None and hasattr(gdk_window, "set_utf8_property"):
            gdk_window.set_utf8_property("_GTK_APPLICATION_ID", self.spec.wm_class)

    def _build_window(self) -> Gtk.Window:
        identity = self.spec.identity
        GLib.set_prgname(self.spec.wm_class)
        GLib.set_application_name(identity.name)
        window = Gtk.Window(title=identity.name)
        window.set_default_size(self.spec.width, self.spec.height)
        window.set_position(Gtk.WindowPosition.CENTER)
        window.set_role(self.spec.wm_class)
        window.set_wmclass(self.spec.wm_class, self.spec.wm_class)
        window.connect("realize", self._on_realize)
        window.connect("destroy", self._on_destroy)
        if self.spec.icon_path is not None and self.spec.icon_path.exists():
            try:
                window.set_icon_from_file(str(self.spec.icon_path))
            except GLib.Error as exc:
                logger.warning("could not load window icon %s: %s", self.spec.icon_path, exc)

        webview = WebKit2.WebView.new_with_context(self._build_context())
        self._configure(webview)
        window.add(webview)
        webview.load_uri(identity.url)
        self.webview = webview
        return window

    def _on_destroy(self, _window: Gtk.Window) -> None:
        self.window = None
        Gtk.main_quit()

    def _check_focus(self) -> bool:
        if self._focus_requested.is_set():
            self._focus_requested.clear()
            if self.window is not None:
                self.window.present()
        return GLib.SOURCE_CONTINUE

    def _on_signal(self) -> bool:
        logger.info("shutting down weblet %s", self.spec.identity.name)
        self.shutdown()
        return GLib.SOURCE_REMOVE

    def install_signal_handlers(self) -> None:
        for signum in (signal.SIGINT, signal.SIGTERM):
            GLib.unix_signal_add(GLib.PRIORITY_DEFAULT, signum, self._on_signal)

    def run(self) -> int:
        self.window = self._build_window()
        self.window.show_all()
        logger.info("opened weblet window: %s (%s)", self.spec.identity.name, self.spec.identity.url)
        logger.info("data directory: %s", self.spec.storage_dir)
        GLib.timeout_add(FOCUS_POLL_MS, self._check_focus)
        if self.on_started is not None:
            self.on_started(os.getpid())
        try:
            Gtk.main()
        finally:
            if self.on_started is not None:
                self.on_started(None)
        logger.info("weblet window closed")
        return 0

    def shutdown(self) -> None:
        if self.window is not None:
            GLib.idle_add(self._destroy_window)

    def _destroy_window(self) -> bool:
        if self.window is not None:
            self.window.destroy()
        return GLib.SOURCE_REMOVE

    def request_focus(self) -> None:
        self._focus_requested.set()
