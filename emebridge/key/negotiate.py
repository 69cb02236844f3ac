from __future__ import annotations

import inspect
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from emebridge.host.errors import PlatformUnavailableError
from emebridge.key.keysystem import KeySystemInput, KeySystemPolicy
from emebridge.key.robustness import CandidateGenerator
from emebridge.lib.load_yaml_config import CFG
from emebridge.lib.registry import registry
from emebridge.static.color import Color
from emebridge.unit.handle.handle_log import setup_logging
from emebridge.unit.media.drm_typing_dict import MediaKeySystemConfiguration

logger = setup_logging("negotiate", "cobalt")

CAPABILITY = "negotiation"
ENTRY_POINT = "request_media_key_system_access"

RequestAccess = Callable[[KeySystemInput, Sequence[MediaKeySystemConfiguration] | None], Any]


class Outcome(Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


@dataclass
class NegotiationAttempt:
    key_system: KeySystemInput
    candidate: MediaKeySystemConfiguration
    outcome: Outcome = Outcome.PENDING
    reason: Exception | None = None

    @property
    def robustness(self) -> list[str | None]:
        return [vc.get("robustness") for vc in self.candidate.get("videoCapabilities", [])]


class NegotiationEngine:
    """
    Probes the host capability check until one configuration is accepted.

    The caller's own request goes first, untouched. After that, robustness
    variants are tried strictly one at a time; a host CDM is not asked to
    evaluate two configurations concurrently. When everything is refused the
    last refusal is raised as the host produced it.
    """

    def __init__(self, original: RequestAccess | None, generator: CandidateGenerator | None = None) -> None:
        self.original = original
        self.generator = generator or CandidateGenerator.from_config(CFG)

    async def _call(self, key_system: KeySystemInput, configurations: Sequence[MediaKeySystemConfiguration] | None) -> Any:
        result = self.original(key_system, configurations)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def negotiate(self, key_system: KeySystemInput, configurations: Sequence[MediaKeySystemConfiguration] | None) -> Any:
        if self.original is None:
            logger.warning(f"no native {ENTRY_POINT} available on this platform")
            raise PlatformUnavailableError(f"No native {ENTRY_POINT} available")

        try:
            return await self._call(key_system, configurations)
        except Exception as e:
            logger.warning(f"native request failed: {Color.fg('tomato')}{e!r}{Color.reset()}")
            last_error: Exception = e

        attempts: list[NegotiationAttempt] = []
        for candidate in self.generator.generate(configurations):
            attempt = NegotiationAttempt(key_system, candidate)
            attempts.append(attempt)
            logger.info(f"trying fallback robustness for {Color.fg('gold')}{key_system}{Color.reset()} {attempt.robustness}")
            try:
                access = await self._call(key_system, [candidate])
            except Exception as e:
                attempt.outcome, attempt.reason = Outcome.REJECTED, e
                last_error = e
                logger.debug(f"robustness {attempt.robustness} rejected: {e!r}")
                continue
            attempt.outcome = Outcome.ACCEPTED
            logger.info(f"{Color.fg('mint')}accepted {attempt.robustness} after {len(attempts)} fallback attempt(s){Color.reset()}")
            return access

        for idx, attempt in enumerate(attempts, 1):
            logger.warning(f"  #{idx} {attempt.robustness}: {attempt.reason!r}")
        logger.error(f"all negotiation attempts failed ({len(attempts)} candidates): {last_error!r}")
        raise last_error


class NegotiationShim:
    """Drop-in replacement for the host's capability-check entry point."""

    def __init__(self, engine: NegotiationEngine, policy: KeySystemPolicy | None = None) -> None:
        self.engine = engine
        self.policy = policy

    async def __call__(
        self,
        key_system: KeySystemInput,
        supported_configurations: Sequence[MediaKeySystemConfiguration] | None = None,
    ) -> Any:
        logger.info(f"{ENTRY_POINT} called: {key_system!r}")
        if self.policy is not None:
            key_system = self.policy.resolve(key_system)
        return await self.engine.negotiate(key_system, supported_configurations)


def install_negotiation_shim(
    host: Any,
    policy: KeySystemPolicy | None = None,
    generator: CandidateGenerator | None = None,
) -> bool:
    def patch(target: Any) -> dict[str, Any]:
        original = getattr(target, ENTRY_POINT, None)
        if original is None:
            logger.warning(f"{ENTRY_POINT} missing, negotiation will fail closed")
        shim = NegotiationShim(
            NegotiationEngine(original, generator),
            policy if policy is not None else KeySystemPolicy.from_config(CFG),
        )
        setattr(target, ENTRY_POINT, shim)
        return {ENTRY_POINT: original}

    return registry.install(host, CAPABILITY, patch)
