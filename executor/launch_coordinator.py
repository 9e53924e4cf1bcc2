"""Single-instance launch coordination.

Decides, for one invocation, whether to attach to a live window, wait for a
racing launch to finish, or become the launch that starts the process.
Lease creation is the only serialization point; probing and matching are
read-only and may be repeated freely.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from core.errors import AlreadyRunningUnreachable, LeaseTimeout, StartFailure
from executor.launch_lease import LaunchLease
from ipc.peer_channel import NotifyResult, PeerChannel
from os_controller.base_controller import ApplicationIdentity, WindowDescriptor
from os_controller.window_focuser import FocusResult, WindowFocuser
from os_controller.window_matcher import WindowMatcher

logger = logging.getLogger("weblet.launch_coordinator")


class LaunchState(str, Enum):
    IDLE = "idle"
    PROBING = "probing"
    ATTACHING = "attaching"
    ACQUIRING = "acquiring"
    BACKGROUND_STARTING = "background_starting"
    WAITING = "waiting"
    DONE = "done"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


class Spawner(Protocol):
    def spawn(self, identity: ApplicationIdentity, lease_token: str | None = None) -> int: ...


@dataclass
class LaunchOutcome:
    """What one invocation ended up doing."""

    name: str
    action: str
    window: WindowDescriptor | None = None
    focus: FocusResult | None = None
    worker_pid: int | None = None
    warning: AlreadyRunningUnreachable | None = None
    states: list[LaunchState] = field(default_factory=list)

    @property
    def started(self) -> bool:
        return self.action == "started"


class LaunchCoordinator:
    """Attach-or-start state machine for one application name at a time."""

    def __init__(
        self,
        matcher: WindowMatcher,
        focuser_factory: Callable[[str], WindowFocuser],
        lease_factory: Callable[[str], LaunchLease],
        spawner: Spawner,
        channel: PeerChannel | None = None,
        wait_budget: float = 4.0,
        poll_interval: float = 0.2,
        stale_after: float = 10.0,
        sleep: Callable[[float], None] = time.sleep,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.matcher = matcher
        self.focuser_factory = focuser_factory
        self.lease_factory = lease_factory
        self.spawner = spawner
        self.channel = channel
        self.wait_budget = wait_budget
        self.poll_interval = poll_interval
        self.stale_after = stale_after
        self.sleep = sleep
        self.monotonic = monotonic

    def launch(self, identity: ApplicationIdentity) -> LaunchOutcome:
        states = [LaunchState.IDLE]
        return self._launch(identity, states, may_reclaim=True)

    def _launch(
        self,
        identity: ApplicationIdentity,
        states: list[LaunchState],
        may_reclaim: bool,
    ) -> LaunchOutcome:
        states.append(LaunchState.PROBING)
        window = self.matcher.find_window(identity)
        if window is not None:
            return self._attach(identity, window, states)
        if self._peer_focused(identity):
            states.extend([LaunchState.ATTACHING, LaunchState.DONE])
            return LaunchOutcome(name=identity.name, action="attached", states=states)

        states.append(LaunchState.ACQUIRING)
        lease = self.lease_factory(identity.name)
        if lease.try_acquire():
            return self._start(identity, lease, states)

        states.append(LaunchState.WAITING)
        logger.info("another launch of '%s' is in progress; waiting", identity.name)
        window = self._wait_for_window(identity)
        if window is not None:
            return self._attach(identity, window, states)
        if self._peer_focused(identity):
            states.extend([LaunchState.ATTACHING, LaunchState.DONE])
            return LaunchOutcome(name=identity.name, action="attached", states=states)

        age = lease.age()
        if may_reclaim and age is None:
            # Owner finished and released without leaving a window behind.
            return self._launch(identity, states, may_reclaim=False)
        if may_reclaim and age is not None and age >= self.stale_after:
            if self.channel is not None and self.channel.is_live(identity.name):
                logger.info("lease for '%s' is old but its instance still answers", identity.name)
            else:
                lease.reclaim()
                return self._launch(identity, states, may_reclaim=False)
        states.append(LaunchState.TIMED_OUT)
        raise LeaseTimeout(identity.name, self.wait_budget)

    def _start(
        self, identity: ApplicationIdentity, lease: LaunchLease, states: list[LaunchState]
    ) -> LaunchOutcome:
        states.append(LaunchState.BACKGROUND_STARTING)
        try:
            worker_pid = self.spawner.spawn(identity, lease.token)
        except StartFailure:
            lease.release()
            states.append(LaunchState.FAILED)
            raise
        except OSError as exc:
            lease.release()
            states.append(LaunchState.FAILED)
            raise StartFailure(f"could not start background worker for '{identity.name}': {exc}") from exc
        # The worker now owns the marker and removes it when it exits.
        lease.held = False
        states.append(LaunchState.DONE)
        logger.info("started background worker %s for '%s'", worker_pid, identity.name)
        return LaunchOutcome(
            name=identity.name, action="started", worker_pid=worker_pid, states=states
        )

    def _attach(
        self,
        identity: ApplicationIdentity,
        window: WindowDescriptor,
        states: list[LaunchState],
    ) -> LaunchOutcome:
        states.append(LaunchState.ATTACHING)
        result = self.focuser_factory(identity.name).focus(window)
        outcome = LaunchOutcome(
            name=identity.name, action="attached", window=window, focus=result, states=states
        )
        if not result.focused:
            confirmed = self.matcher.find_window(identity) is not None
            outcome.warning = AlreadyRunningUnreachable(identity.name, confirmed=confirmed)
            logger.warning("%s (%s)", outcome.warning, result.error)
        states.append(LaunchState.DONE)
        return outcome

    def _wait_for_window(self, identity: ApplicationIdentity) -> WindowDescriptor | None:
        # Window lookups can be slow; the budget is wall time, not a poll count.
        deadline = self.monotonic() + self.wait_budget
        while True:
            remaining = deadline - self.monotonic()
            if remaining <= 0:
                return None
            self.sleep(min(self.poll_interval, remaining))
            window = self.matcher.find_window(identity)
            if window is not None:
                return window

    def _peer_focused(self, identity: ApplicationIdentity) -> bool:
        if self.channel is None:
            return False
        return self.channel.notify(identity.name) is NotifyResult.DELIVERED
