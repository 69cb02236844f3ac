import copy
from dataclasses import dataclass
from typing import Any

import httpx
import pytest

from emebridge.host.errors import NotSupportedError
from emebridge.host.platform import HostPlatform
from emebridge.host.xhr import ReadyState


@dataclass
class FakeAccess:
    key_system: str
    configuration: dict[str, Any]


class FakeCdm:
    """Capability check accepting only configurations whose video robustness equals ``accept``."""

    def __init__(self, accept: str | None = None, accept_anything: bool = False) -> None:
        self.accept = accept
        self.accept_anything = accept_anything
        self.calls: list[tuple[Any, Any]] = []

    async def __call__(self, key_system: Any, configs: Any) -> FakeAccess:
        self.calls.append((key_system, copy.deepcopy(configs)))
        if self.accept_anything:
            return FakeAccess(key_system, configs[0] if configs else {})
        if configs:
            levels = [vc.get("robustness") for cfg in configs for vc in cfg.get("videoCapabilities", [])]
            if self.accept is not None and levels and all((level or "") == self.accept for level in levels):
                return FakeAccess(key_system, configs[0])
        raise NotSupportedError(f"rejected #{len(self.calls)}")


class FakeXHR:
    """Callback-style request object that only records what it was asked to do."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.ready_state = ReadyState.UNSENT
        self.status = 0
        self.response = None
        self.response_type = ""
        self.response_text = ""
        self.with_credentials = False
        self.onload = None
        self.onerror = None
        self.onreadystatechange = None

    def open(self, method: str, url: str) -> None:
        self.calls.append(("open", method, url))
        self.ready_state = ReadyState.OPENED

    def set_request_header(self, name: str, value: str) -> None:
        self.calls.append(("header", name, value))

    def send(self, body: Any = None) -> None:
        self.calls.append(("send", body))


class FakeConnection:
    responses: list[httpx.Response] = []

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []

    async def request(self, method, url, *, headers=None, body=None, credentials="same-origin"):
        self.calls.append({"method": method, "url": url, "headers": headers, "body": body, "credentials": credentials})
        return self.responses.pop(0)


@pytest.fixture
def host() -> HostPlatform:
    return HostPlatform(XMLHttpRequest=FakeXHR, Connection=FakeConnection)


LICENSE_URL = "https://api.example.com/melody/v1/license_url?keysystem=com.microsoft.playready&contentId=abc%20def&x=1"
PLAYREADY_LICENSE = "https://license.example.com/v1/playready-license/track/42?token=t0k"
WIDEVINE_LICENSE = "https://license.example.com/v1/widevine-license/track/42?token=t0k"
