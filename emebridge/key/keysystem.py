from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from emebridge.static.color import Color
from emebridge.unit.handle.handle_log import setup_logging

logger = setup_logging("keysystem", "plum")

PLAYREADY_TOKEN = "playready"
WIDEVINE = "com.widevine.alpha"

KeySystemInput = str | Sequence[str]


@dataclass(frozen=True)
class KeySystemPolicy:
    """
    Decides which key system is actually requested from the host.

    Any identifier containing ``unsupported_token`` (case-insensitive) is
    swapped for ``supported``. Negotiation and license-URL rewriting share one
    policy instance so both always target the same DRM family.
    """

    unsupported_token: str = PLAYREADY_TOKEN
    supported: str = WIDEVINE
    enabled: bool = True

    @classmethod
    def from_config(cls, cfg: dict[str, Any]) -> KeySystemPolicy:
        section = cfg["keysystem"]
        return cls(
            unsupported_token=section["unsupported_token"],
            supported=section["supported"],
            enabled=section["substitute"],
        )

    def matches(self, key_system: Any) -> bool:
        if not self.enabled:
            return False
        if isinstance(key_system, str):
            return self.unsupported_token.lower() in key_system.lower()
        if isinstance(key_system, Sequence):
            return any(isinstance(k, str) and self.unsupported_token.lower() in k.lower() for k in key_system)
        return False

    def resolve(self, key_system: KeySystemInput) -> KeySystemInput:
        if self.matches(key_system):
            logger.info(f"mapping {Color.fg('gold')}{key_system!r}{Color.reset()} -> {Color.fg('mint')}{self.supported}{Color.reset()}")
            return self.supported
        return key_system
