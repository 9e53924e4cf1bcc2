"""Window probe facade over the available introspection backends."""

from __future__ import annotations

import logging

from core.errors import ToolUnavailable
from os_controller.base_controller import ProbeBackend, WindowDescriptor
from os_controller.linux_controller import WmctrlProbe, XpropProbe


class WindowProbe:
    """Lists live windows using the first backend that can run.

    Never raises: a missing or failing tool is treated as "no windows".
    """

    def __init__(self, backends: list[ProbeBackend] | None = None) -> None:
        self.logger = logging.getLogger("weblet.window_probe")
        self.backends = list(backends) if backends is not None else default_probe_backends()

    def list_windows(self) -> list[WindowDescriptor]:
        for backend in self.backends:
            try:
                windows = backend.list_windows()
            except ToolUnavailable as exc:
                self.logger.debug("probe backend %s unavailable: %s", backend.name, exc)
                continue
            except Exception as exc:
                self.logger.debug("probe backend %s failed: %s", backend.name, exc)
                continue
            return windows
        return []


def default_probe_backends(timeout: float = 2.0) -> list[ProbeBackend]:
    return [WmctrlProbe(timeout=timeout), XpropProbe(timeout=timeout)]
