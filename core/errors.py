"""Error taxonomy shared by the launcher, store and CLI."""

from __future__ import annotations


class WebletError(Exception):
    """Base error; ``exit_code`` is what the CLI exits with."""

    exit_code = 1


class NotFound(WebletError):
    """Name is unknown to the configuration store."""

    exit_code = 3

    def __init__(self, name: str) -> None:
        super().__init__(f"weblet '{name}' not found")
        self.name = name


class AlreadyExists(WebletError):
    def __init__(self, name: str) -> None:
        super().__init__(f"weblet '{name}' already exists")
        self.name = name


class ConfigError(WebletError):
    """Configuration or store content is unusable."""


class LeaseTimeout(WebletError):
    """Another launch holds the lease and did not finish within the wait budget."""

    exit_code = 4

    def __init__(self, name: str, waited: float) -> None:
        super().__init__(
            f"another launch of '{name}' is still starting after {waited:.1f}s; try again shortly"
        )
        self.name = name
        self.waited = waited


class StartFailure(WebletError):
    """The display process could not be spawned."""

    exit_code = 5


class BrowserNotFound(StartFailure):
    pass


class AlreadyRunningUnreachable(WebletError):
    """Instance is running but no focus mechanism worked.

    Soft outcome: when the window is still confirmed alive the CLI reports it
    as information and exits 0.
    """

    exit_code = 6

    def __init__(self, name: str, confirmed: bool) -> None:
        state = "is running" if confirmed else "could not be confirmed running"
        super().__init__(f"weblet '{name}' {state} but could not be focused")
        self.name = name
        self.confirmed = confirmed


class ToolUnavailable(WebletError):
    """A probing or focusing binary is missing or failed to execute."""

    def __init__(self, tool: str, reason: str = "not installed") -> None:
        super().__init__(f"{tool}: {reason}")
        self.tool = tool
        self.reason = reason


class NoMechanismAvailable(WebletError):
    """Every focus backend was unavailable or failed."""

    def __init__(self, attempts: list[str]) -> None:
        detail = "; ".join(attempts) if attempts else "no backends configured"
        super().__init__(f"no focus mechanism available ({detail})")
        self.attempts = attempts
