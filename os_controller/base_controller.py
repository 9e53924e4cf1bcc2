"""Window descriptors and the backend interfaces used for probing and focusing."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class WindowDescriptor:
    """One live top-level window as reported by the window manager."""

    id: str
    window_class: str
    title: str
    owner_pid: int | None = None


@dataclass(frozen=True)
class ApplicationIdentity:
    """Name/url pair identifying one logical desktop application."""

    name: str
    url: str
    pid: int | None = None


class ProbeBackend(ABC):
    """Lists windows through one introspection tool."""

    name: str = "probe"

    @abstractmethod
    def list_windows(self) -> list[WindowDescriptor]:
        """Return visible windows; raise ToolUnavailable when the tool cannot run."""


class ActivationBackend(ABC):
    """Raises a window through one mechanism."""

    name: str = "activate"

    @abstractmethod
    def activate(self, target: WindowDescriptor | ApplicationIdentity) -> bool:
        """Return True when the window was raised.

        Raise ToolUnavailable when the mechanism cannot run at all; return
        False when it ran but could not address the target.
        """
