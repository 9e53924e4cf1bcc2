"""Typer command handlers."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

import typer
from pydantic import ValidationError

from core import system_inspector
from core.errors import AlreadyRunningUnreachable, BrowserNotFound, ConfigError, WebletError
from core.orchestrator import Orchestrator, RuntimeBundle
from core.policy_runtime import configure_logging
from executor.background_runner import is_background_worker
from registry.desktop_entry import DesktopEntryWriter
from registry.favicon import FaviconFetcher
from registry.models import Weblet
from view.display_engine import detect_browsers

logger = logging.getLogger("weblet.cli")

_options = {"verbose": False, "root": None}


def set_global_options(verbose: bool, root: Path | None) -> None:
    _options["verbose"] = verbose
    _options["root"] = root


def _runtime() -> RuntimeBundle:
    try:
        bundle = Orchestrator(root=_options["root"]).build()
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc
    configure_logging(bundle.config, verbose=bool(_options["verbose"]))
    return bundle


def _warn(message: str) -> None:
    typer.echo(f"Warning: {message}", err=True)


@contextmanager
def reported_errors() -> Iterator[None]:
    """Turn WebletError into a message on stderr and the error's exit code."""
    try:
        yield
    except WebletError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=exc.exit_code) from exc


def current_version() -> str:
    try:
        return version("weblet")
    except PackageNotFoundError:
        return "dev"


def show_version() -> None:
    typer.echo(f"weblet version {current_version()}")


def run(name: str) -> None:
    """Attach to or start the named weblet."""
    with reported_errors():
        bundle = _runtime()
        weblet = bundle.store.get(name)
        if is_background_worker():
            code = bundle.worker(weblet).run(weblet.identity())
            raise typer.Exit(code=code)
        if bundle.engine_for(weblet) == "browser":
            bundle.ensure_browser()
        outcome = bundle.coordinator().launch(weblet.identity())

    if outcome.started:
        typer.echo(f"Started weblet '{name}' (background worker PID {outcome.worker_pid})")
        return
    if outcome.warning is None:
        mechanism = outcome.focus.mechanism if outcome.focus else "peer-channel"
        typer.echo(f"Focused existing weblet '{name}' using {mechanism}")
        return
    _report_unreachable(outcome.warning)


def _report_unreachable(warning: AlreadyRunningUnreachable) -> None:
    if warning.confirmed:
        typer.echo(f"{warning}; raise it manually.")
        return
    typer.echo(f"Error: {warning}", err=True)
    raise typer.Exit(code=warning.exit_code)


def add(name: str, url: str, native: bool = False) -> None:
    """Register a weblet and create its desktop shortcut."""
    with reported_errors():
        bundle = _runtime()
        try:
            weblet = Weblet(name=name, url=url, engine="native" if native else None)
        except ValidationError as exc:
            raise ConfigError(f"invalid weblet: {exc.errors()[0]['msg']}") from exc
        bundle.store.add(weblet)
    typer.echo(f"Added weblet '{name}' with URL '{url}'")

    icon_path = None
    try:
        icon_path = FaviconFetcher(bundle.paths["icons_dir"]).fetch(weblet.url)
    except Exception as exc:
        _warn(f"failed to download icon: {exc}")
    if icon_path is None:
        logger.warning("no icon found for %s; using the default", weblet.url)
    try:
        desktop_file = DesktopEntryWriter().write(weblet.name, weblet.url, icon_path)
    except OSError as exc:
        _warn(f"failed to create desktop file: {exc}")
    else:
        typer.echo(f"Created desktop file: {desktop_file}")


def remove(name: str) -> None:
    """Stop a running weblet and forget it."""
    with reported_errors():
        bundle = _runtime()
        weblet = bundle.store.get(name)
        if system_inspector.is_pid_alive(weblet.pid):
            system_inspector.terminate_process(weblet.pid)
        bundle.store.remove(name)
    try:
        writer = DesktopEntryWriter()
        if writer.remove(name):
            typer.echo(f"Removed desktop file: {writer.path_for(name)}")
    except OSError as exc:
        _warn(f"failed to remove desktop file: {exc}")
    typer.echo(f"Removed weblet '{name}'")


def list_weblets() -> None:
    """Print weblets with their running state, clearing dead pids."""
    with reported_errors():
        bundle = _runtime()
        weblets = bundle.store.clear_dead_pids(system_inspector.is_pid_alive)
        if not weblets:
            typer.echo("No weblets available.")
            return
        typer.echo("Available weblets:")
        for weblet in weblets:
            status = "running" if weblet.pid else "stopped"
            typer.echo(f"  {weblet.name}: {weblet.url} ({status})")


def setup() -> None:
    """Choose the browser used by the browser engine."""
    with reported_errors():
        bundle = _runtime()
        candidates = bundle.browser_candidates
        available = detect_browsers(candidates)
        if not available:
            raise BrowserNotFound(f"no supported browser found (tried: {', '.join(candidates)})")
        settings = bundle.store.load_settings()
        if len(available) == 1:
            settings.browser = available[0]
            bundle.store.save_settings(settings)
            typer.echo(f"Automatically selected browser: {available[0]}")
            return

        typer.echo("Multiple browsers found. Please choose one:")
        for index, browser in enumerate(available, start=1):
            typer.echo(f"  {index}. {browser}")
        while True:
            choice = typer.prompt(f"Enter your choice (1-{len(available)})", type=int)
            if 1 <= choice <= len(available):
                break
            typer.echo(f"Invalid choice. Please enter a number between 1 and {len(available)}.")
        settings.browser = available[choice - 1]
        bundle.store.save_settings(settings)
        typer.echo(f"Browser configured: {settings.browser}")
