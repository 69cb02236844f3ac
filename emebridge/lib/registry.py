from __future__ import annotations

import threading
import weakref
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from emebridge.static.color import Color
from emebridge.unit.handle.handle_log import setup_logging

logger = setup_logging("registry", "aluminum")


@dataclass
class Installation:
    capability: str
    originals: dict[str, Any] = field(default_factory=dict)

    def original(self, name: str) -> Any:
        return self.originals.get(name)


class ShimRegistry:
    """
    Records, per host and capability, that a shim is active and what it replaced.

    Installations are never removed. Hosts are held weakly so throwaway hosts
    (tests, one-shot CLI runs) can be collected.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._hosts: weakref.WeakKeyDictionary[Any, dict[str, Installation]] = weakref.WeakKeyDictionary()

    def install(self, host: Any, capability: str, patch: Callable[[Any], dict[str, Any]]) -> bool:
        """
        Run ``patch(host)`` once per host and capability.

        ``patch`` swaps the entry points in place and returns the originals it
        replaced. Returns False when the capability was already installed.
        """
        with self._lock:
            entries = self._hosts.setdefault(host, {})
            if capability in entries:
                logger.debug(f"{capability} already installed on {host!r}, skipping")
                return False
            entries[capability] = Installation(capability, dict(patch(host)))
        logger.info(f"{Color.fg('mint')}installed {Color.fg('gold')}{capability}{Color.fg('mint')} shim{Color.reset()}")
        return True

    def is_installed(self, host: Any, capability: str) -> bool:
        return capability in self._hosts.get(host, {})

    def get(self, host: Any, capability: str) -> Installation | None:
        return self._hosts.get(host, {}).get(capability)


registry: ShimRegistry = ShimRegistry()
