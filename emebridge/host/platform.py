from __future__ import annotations

from collections.abc import Callable
from typing import Any

from emebridge.host.connection import Connection
from emebridge.host.fetch import NativeFetch
from emebridge.host.xhr import XMLHttpRequest


class HostPlatform:
    """
    The entry points an application reaches DRM and the network through.

    Shims replace these attributes in place, so an application that looks
    them up on the host at call time always goes through the active layer.
    """

    def __init__(
        self,
        *,
        request_media_key_system_access: Callable[..., Any] | None = None,
        fetch: Callable[..., Any] | None = None,
        XMLHttpRequest: type | None = None,
        Connection: type | None = None,
        base_url: str | None = None,
        user_agent: str = "",
        device: Any = None,
    ) -> None:
        self.request_media_key_system_access = request_media_key_system_access
        self.fetch = fetch
        self.XMLHttpRequest = XMLHttpRequest
        self.Connection = Connection
        self.base_url = base_url
        self.user_agent = user_agent
        self.device = device

    def __repr__(self) -> str:
        return f"<HostPlatform base_url={self.base_url!r} at {id(self):#x}>"


def default_platform(base_url: str | None = None) -> HostPlatform:
    """Host backed by httpx, requests and aiohttp. There is no native CDM."""
    native_fetch = NativeFetch(base_url=base_url)
    return HostPlatform(
        request_media_key_system_access=None,
        fetch=native_fetch,
        XMLHttpRequest=XMLHttpRequest,
        Connection=Connection,
        base_url=base_url,
        user_agent=native_fetch.user_agent,
    )
