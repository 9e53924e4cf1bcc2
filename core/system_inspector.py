"""Process-table helpers backed by psutil."""

from __future__ import annotations

import logging

import psutil

logger = logging.getLogger("weblet.system_inspector")


def is_pid_alive(pid: int | None) -> bool:
    """Return True when pid names a live, non-zombie process."""
    if not pid or pid <= 0:
        return False
    try:
        proc = psutil.Process(pid)
        return proc.is_running() and proc.status() != psutil.STATUS_ZOMBIE
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return False


def process_cmdline(pid: int | None) -> list[str]:
    """Return the argv of pid, or an empty list when it cannot be read."""
    if not pid or pid <= 0:
        return []
    try:
        return psutil.Process(pid).cmdline()
    except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess) as exc:
        logger.debug("cannot read cmdline of %s: %s", pid, exc)
        return []


def terminate_process(pid: int, timeout: float = 3.0) -> bool:
    """Terminate pid, escalating to kill after timeout. Returns True if it was running."""
    try:
        proc = psutil.Process(pid)
        proc.terminate()
    except psutil.NoSuchProcess:
        return False
    except psutil.AccessDenied:
        logger.warning("not permitted to stop process %s", pid)
        return False
    try:
        proc.wait(timeout=timeout)
    except psutil.TimeoutExpired:
        proc.kill()
    except psutil.NoSuchProcess:
        pass
    return True
