"""Command execution wrapper for external desktop tools."""

from __future__ import annotations

import subprocess
from pathlib import Path

from core.errors import ToolUnavailable


def run_command(
    command: list[str],
    cwd: Path | None = None,
    timeout: float | None = None,
) -> tuple[int, str, str]:
    """Run command and return (exit_code, stdout, stderr).

    A missing binary or a hung tool surfaces as ToolUnavailable so callers can
    treat both the same way.
    """
    try:
        proc = subprocess.run(
            command,
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError as exc:
        raise ToolUnavailable(command[0]) from exc
    except subprocess.TimeoutExpired as exc:
        raise ToolUnavailable(command[0], f"timed out after {timeout}s") from exc
    except OSError as exc:
        raise ToolUnavailable(command[0], str(exc)) from exc
    return proc.returncode, proc.stdout, proc.stderr
