from __future__ import annotations

import httpx

from emebridge.lib.load_yaml_config import CFG
from emebridge.unit.handle.handle_log import setup_logging
from emebridge.unit.http.request_model import CREDENTIAL_HEADERS, InterceptedRequest
from emebridge.unit.media.drm_typing_dict import FetchInit

logger = setup_logging("host.fetch", "teal")


class NativeFetch:
    """Promise-style request function backed by one lazily created ``httpx.AsyncClient``."""

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = CFG["http"]["timeout"],
        user_agent: str = CFG["http"]["user_agent"],
        base_url: str | None = None,
    ) -> None:
        self.transport = transport
        self.timeout = timeout
        self.user_agent = user_agent
        self.base_url = base_url
        self._session: httpx.AsyncClient | None = None

    def get_session(self) -> httpx.AsyncClient:
        if self._session is None:
            self._session = httpx.AsyncClient(
                transport=self.transport,
                timeout=self.timeout,
                headers={"user-agent": self.user_agent},
                follow_redirects=True,
            )
        return self._session

    async def close_session(self) -> None:
        if self._session is not None:
            await self._session.aclose()
            self._session = None

    async def __call__(self, resource: str | httpx.URL | httpx.Request, init: FetchInit | None = None) -> httpx.Response:
        session = self.get_session()
        if isinstance(resource, httpx.Request) and not init:
            return await session.send(resource)

        request = InterceptedRequest.from_fetch(resource, init, self.base_url)
        outgoing = session.build_request(
            request.method,
            request.url,
            headers=request.outgoing_headers(),
            content=request.body,
        )
        if request.credentials == "omit":
            for name in CREDENTIAL_HEADERS:
                outgoing.headers.pop(name, None)
        logger.debug(f"{request.method} {request.url}")
        return await session.send(outgoing)
