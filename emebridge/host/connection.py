from __future__ import annotations

import aiohttp
import httpx

from emebridge.lib.load_yaml_config import CFG
from emebridge.unit.handle.handle_log import setup_logging
from emebridge.unit.http.request_model import InterceptedRequest, resolve_url
from emebridge.unit.media.drm_typing_dict import CredentialsMode

logger = setup_logging("host.connection", "blue")

# aiohttp has already decoded the body
_DROPPED_HEADERS = frozenset({"content-encoding", "content-length", "transfer-encoding"})


class Connection:
    """Request object whose single ``request`` call carries method, headers and body."""

    def __init__(self, base_url: str | None = None, timeout: float = CFG["http"]["timeout"]) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self._session: aiohttp.ClientSession | None = None

    def get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"user-agent": CFG["http"]["user_agent"]},
            )
        return self._session

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes | str | None = None,
        credentials: CredentialsMode = "same-origin",
    ) -> httpx.Response:
        request = InterceptedRequest(
            method=method.upper(),
            url=resolve_url(url, self.base_url),
            headers=headers or {},
            body=body,
            credentials=credentials,
        )
        session = self.get_session()
        logger.debug(f"{request.method} {request.url}")
        async with session.request(request.method, request.url, headers=request.outgoing_headers(), data=request.body) as resp:
            content = await resp.read()
            return httpx.Response(
                resp.status,
                headers=[(k, v) for k, v in resp.headers.items() if k.lower() not in _DROPPED_HEADERS],
                content=content,
                request=httpx.Request(request.method, request.url),
            )
