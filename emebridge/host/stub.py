from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from emebridge.lib.load_yaml_config import CFG
from emebridge.lib.registry import registry
from emebridge.unit.handle.handle_log import setup_logging
from emebridge.unit.media.drm_typing_dict import DeviceInfo, ServiceResponse

logger = setup_logging("device_stub", "beige")

CAPABILITY = "device"

ServiceCallback = Callable[[ServiceResponse], Any]


@dataclass
class ServiceHandle:
    uri: str
    _timer: asyncio.TimerHandle

    def cancel(self) -> None:
        logger.info(f"request canceled {self.uri}")
        self._timer.cancel()


@dataclass
class DeviceStub:
    """
    Fake TV platform identity for running off-device.

    Service calls always succeed with an empty payload; apps expecting a
    specific payload may still fail.
    """

    model_name: str = CFG["device"]["model_name"]
    platform: str = CFG["device"]["platform"]
    sdk_version: str = CFG["device"]["sdk_version"]
    device_id: str = CFG["device"]["device_id"]
    country: str = CFG["device"]["country"]
    locale: str = CFG["device"]["locale"]
    user_agent_suffix: str = CFG["device"]["user_agent_suffix"]
    service_delay: float = CFG["device"]["service_delay"]
    launch_params: dict[str, Any] = field(default_factory=dict)
    listeners: dict[str, list[Callable[..., Any]]] = field(default_factory=dict)

    @property
    def device_info(self) -> DeviceInfo:
        return {
            "modelName": self.model_name,
            "platform": self.platform,
            "sdkVersion": self.sdk_version,
            "deviceId": self.device_id,
        }

    def add_event_listener(self, name: str, callback: Callable[..., Any]) -> None:
        logger.info(f"add_event_listener {name}")
        self.listeners.setdefault(name, []).append(callback)

    def remove_event_listener(self, name: str, callback: Callable[..., Any]) -> None:
        callbacks = self.listeners.get(name, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def on_close(self) -> None:
        pass

    def platform_back(self) -> None:
        pass

    def service_request(
        self,
        uri: str | dict[str, Any],
        on_success: ServiceCallback | None = None,
        on_failure: ServiceCallback | None = None,
        params: dict[str, Any] | None = None,
    ) -> ServiceHandle:
        # legacy callers pass a single options mapping
        if isinstance(uri, dict):
            opts = uri
            uri = str(opts.get("service") or opts.get("uri") or "")
            on_success = on_success or opts.get("onSuccess")
            on_failure = on_failure or opts.get("onFailure")
            params = params or opts.get("params")
        logger.info(f"service_request: {uri} {params or {}}")

        def answer() -> None:
            if on_success is not None:
                on_success({"returnValue": True, "data": {}})

        timer = asyncio.get_running_loop().call_later(self.service_delay, answer)
        return ServiceHandle(uri, timer)

    def user_agent(self, current: str) -> str:
        marker = self.user_agent_suffix.split("/", 1)[0]
        if current and marker in current:
            return current
        return f"{current} {self.user_agent_suffix}".strip()


def install_device_stub(host: Any, stub: DeviceStub | None = None) -> bool:
    def patch(target: Any) -> dict[str, Any]:
        originals = {"device": getattr(target, "device", None), "user_agent": getattr(target, "user_agent", "")}
        device = originals["device"]
        if device is None:
            device = stub if stub is not None else DeviceStub()
            target.device = device
        if isinstance(device, DeviceStub):
            target.user_agent = device.user_agent(originals["user_agent"] or "")
        logger.info("device stubs ready")
        return originals

    return registry.install(host, CAPABILITY, patch)
