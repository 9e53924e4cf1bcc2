"""Two-phase launch: detach a worker, then run the display inside it.

The worker is this same CLI re-executed with ``WEBLET_BACKGROUND=1`` in a new
session with its standard streams redirected to a per-name log file. The
flag travels in the environment rather than argv so process-table matching
never sees it.
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import sys
from collections.abc import Callable, Mapping
from pathlib import Path

from core.errors import StartFailure
from core.policy_runtime import DATA_DIR_ENV
from executor.launch_lease import LaunchLease
from ipc.peer_channel import ChannelInUse, NotifyResult, PeerChannel, PeerListener
from os_controller.base_controller import ApplicationIdentity
from os_controller.window_focuser import WindowFocuser
from os_controller.window_matcher import WindowMatcher
from view.display_engine import DisplaySession

BACKGROUND_ENV = "WEBLET_BACKGROUND"
LEASE_TOKEN_ENV = "WEBLET_LEASE_TOKEN"

logger = logging.getLogger("weblet.background")


def is_background_worker(environ: Mapping[str, str] | None = None) -> bool:
    env = os.environ if environ is None else environ
    return env.get(BACKGROUND_ENV) == "1"


class BackgroundSpawner:
    """Starts the detached worker and returns without waiting for it."""

    def __init__(self, data_dir: Path, logs_dir: Path, entry: list[str] | None = None) -> None:
        self.data_dir = data_dir
        self.logs_dir = logs_dir
        self.entry = entry or [sys.executable, "-m", "ui.cli.cli"]

    def command(self, identity: ApplicationIdentity) -> list[str]:
        return [*self.entry, "run", identity.name]

    def environment(self, lease_token: str | None = None) -> dict[str, str]:
        env = dict(os.environ)
        env[BACKGROUND_ENV] = "1"
        env[DATA_DIR_ENV] = str(self.data_dir)
        env.pop(LEASE_TOKEN_ENV, None)
        if lease_token is not None:
            env[LEASE_TOKEN_ENV] = lease_token
        return env

    def spawn(self, identity: ApplicationIdentity, lease_token: str | None = None) -> int:
        self.logs_dir.mkdir(parents=True, exist_ok=True)
        log_path = self.logs_dir / f"{identity.name}.log"
        with log_path.open("ab") as log:
            proc = subprocess.Popen(
                self.command(identity),
                stdin=subprocess.DEVNULL,
                stdout=log,
                stderr=subprocess.STDOUT,
                env=self.environment(lease_token),
                start_new_session=True,
                close_fds=True,
            )
        return proc.pid


def _exit_on_signal(signum: int, _frame: object) -> None:
    raise SystemExit(128 + signum)


class ForegroundWorker:
    """Body of the background worker process.

    Holds the launch lease for its whole life and releases it on every exit
    path. Re-checks for a window before opening one, since another path may
    have created it after the parent's probe.
    """

    def __init__(
        self,
        matcher: WindowMatcher,
        focuser: WindowFocuser,
        lease: LaunchLease,
        channel: PeerChannel,
        session_factory: Callable[[ApplicationIdentity], DisplaySession],
    ) -> None:
        self.matcher = matcher
        self.focuser = focuser
        self.lease = lease
        self.channel = channel
        self.session_factory = session_factory

    def run(self, identity: ApplicationIdentity, lease_token: str | None = None) -> int:
        # Until the session installs its own handlers, a signal unwinds the lease.
        for signum in (signal.SIGINT, signal.SIGTERM):
            signal.signal(signum, _exit_on_signal)
        os.environ.pop(BACKGROUND_ENV, None)
        env_token = os.environ.pop(LEASE_TOKEN_ENV, None)
        if lease_token is None:
            lease_token = env_token
        if not self.lease.adopt(lease_token):
            logger.warning(
                "launch lease for '%s' is held by another launch; not starting", identity.name
            )
            return 0
        with self.lease:
            window = self.matcher.find_window(identity)
            if window is not None:
                logger.info("window for '%s' appeared meanwhile; focusing it", identity.name)
                self.focuser.focus(window)
                return 0
            if self.channel.notify(identity.name) is NotifyResult.DELIVERED:
                logger.info("focused existing weblet window: %s", identity.name)
                return 0
            try:
                session = self.session_factory(identity)
            except StartFailure as exc:
                logger.error("%s", exc)
                return exc.exit_code
            session.install_signal_handlers()
            listener = self._listen(identity, session)
            try:
                return session.run()
            except StartFailure as exc:
                logger.error("%s", exc)
                return exc.exit_code
            finally:
                if listener is not None:
                    listener.close()

    def _listen(self, identity: ApplicationIdentity, session: DisplaySession) -> PeerListener | None:
        try:
            return self.channel.listen(identity.name, session.request_focus)
        except (ChannelInUse, OSError) as exc:
            logger.warning("failed to start focus listener: %s", exc)
            return None
