from __future__ import annotations

from typing import Any

from emebridge.host.platform import HostPlatform, default_platform
from emebridge.key.keysystem import KeySystemPolicy
from emebridge.key.negotiate import install_negotiation_shim
from emebridge.key.robustness import CandidateGenerator
from emebridge.lib.load_yaml_config import CFG
from emebridge.static.color import Color
from emebridge.static.parameter import paramstore
from emebridge.unit.handle.handle_log import setup_logging
from emebridge.unit.http.intercept import RequestInterceptor, install_request_shim

logger = setup_logging("core", "gold")


def build_policy(cfg: dict[str, Any] = CFG) -> KeySystemPolicy:
    policy = KeySystemPolicy.from_config(cfg)
    if paramstore.get("no_substitute") is True:
        return KeySystemPolicy(policy.unsupported_token, policy.supported, enabled=False)
    return policy


def install(host: HostPlatform | None = None, cfg: dict[str, Any] = CFG) -> HostPlatform:
    """
    Install every enabled shim on ``host`` (a default host when omitted).

    Negotiation and request interception share one key-system policy so both
    substitute the same DRM family. Repeated calls are no-ops.
    """
    if host is None:
        host = default_platform()
    policy = build_policy(cfg)

    if cfg["negotiation"]["enabled"]:
        install_negotiation_shim(host, policy=policy, generator=CandidateGenerator.from_config(cfg))
    else:
        logger.info(f"{Color.fg('dove')}negotiation shim disabled in config{Color.reset()}")

    if cfg["intercept"]["enabled"]:
        install_request_shim(host, RequestInterceptor.from_config(cfg, policy))
    else:
        logger.info(f"{Color.fg('dove')}request shim disabled in config{Color.reset()}")
    return host
