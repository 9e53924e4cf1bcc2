"""CLI entrypoint for weblet."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import typer

from ui.cli import commands

app = typer.Typer(help="Run websites as single-instance desktop applications", no_args_is_help=True)

COMMAND_NAMES = {"run", "add", "remove", "list", "setup", "version"}


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    home: Optional[Path] = typer.Option(None, "--home", help="Data directory (default: $WEBLET_HOME or ~/.weblet)"),
) -> None:
    commands.set_global_options(verbose=verbose, root=home)


@app.command("run")
def run_cmd(name: str = typer.Argument(..., help="Weblet name")) -> None:
    """Focus the weblet if it is running, otherwise start it."""
    commands.run(name=name)


@app.command("add")
def add_cmd(
    name: str = typer.Argument(..., help="Weblet name"),
    url: str = typer.Argument(..., help="Website URL"),
    native: bool = typer.Option(False, "--native", help="Use the embedded WebKit engine"),
) -> None:
    """Register a new weblet."""
    commands.add(name=name, url=url, native=native)


@app.command("remove")
def remove_cmd(name: str = typer.Argument(..., help="Weblet name")) -> None:
    """Stop and remove a weblet."""
    commands.remove(name=name)


@app.command("list")
def list_cmd() -> None:
    """List weblets and whether they are running."""
    commands.list_weblets()


@app.command("setup")
def setup_cmd() -> None:
    """Choose the browser for browser-engine weblets."""
    commands.setup()


@app.command("version")
def version_cmd() -> None:
    """Show version."""
    commands.show_version()


def expand_shorthand(args: list[str]) -> list[str]:
    """Rewrite `weblet <name>` as `weblet run <name>`."""
    expanded = list(args)
    for index, arg in enumerate(expanded):
        if arg.startswith("-"):
            continue
        if index > 0 and expanded[index - 1] == "--home":
            continue
        if arg not in COMMAND_NAMES:
            expanded.insert(index, "run")
        break
    return expanded


def main() -> None:
    app(args=expand_shorthand(sys.argv[1:]), prog_name="weblet")


if __name__ == "__main__":
    main()
