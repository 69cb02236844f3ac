from __future__ import annotations

import asyncio
from collections.abc import Callable
from enum import IntEnum
from typing import Any

import requests

from emebridge.host.errors import InvalidStateError
from emebridge.lib.load_yaml_config import CFG
from emebridge.unit.handle.handle_log import setup_logging
from emebridge.unit.http.request_model import InterceptedRequest

logger = setup_logging("host.xhr", "navy")


class ReadyState(IntEnum):
    UNSENT = 0
    OPENED = 1
    SENT = 2
    HEADERS_RECEIVED = 3
    DONE = 4


class XMLHttpRequest:
    """
    Callback-style request object.

    Method, URL and headers are set first; ``send`` dispatches once and
    returns immediately. Completion is reported through ``onload``,
    ``onreadystatechange`` and ``onerror``. ``send`` needs a running event loop;
    ``wait()`` resolves once the request settles.
    """

    session_factory: Callable[[], requests.Session] = requests.Session

    def __init__(self) -> None:
        self.ready_state: ReadyState = ReadyState.UNSENT
        self.status: int = 0
        self.response: bytes | None = None
        self.response_type: str = ""
        self.response_text: str = ""
        self.with_credentials: bool = False
        self.timeout: float = CFG["http"]["timeout"]
        self.onload: Callable[[], Any] | None = None
        self.onerror: Callable[[BaseException], Any] | None = None
        self.onreadystatechange: Callable[[], Any] | None = None
        self._method: str = "GET"
        self._url: str = ""
        self._headers: dict[str, str] = {}
        self._task: asyncio.Task | None = None

    def _set_state(self, state: ReadyState) -> None:
        self.ready_state = state
        if callable(self.onreadystatechange):
            self.onreadystatechange()

    def open(self, method: str, url: str) -> None:
        self._method = method.upper()
        self._url = url
        self._headers = {}
        self.status = 0
        self.response = None
        self.response_text = ""
        self._set_state(ReadyState.OPENED)

    def set_request_header(self, name: str, value: str) -> None:
        if self.ready_state is not ReadyState.OPENED:
            raise InvalidStateError("set_request_header() requires open()")
        self._headers[name] = value

    def send(self, body: bytes | str | None = None) -> None:
        if self.ready_state is not ReadyState.OPENED:
            raise InvalidStateError("send() requires open()")
        request = InterceptedRequest(
            method=self._method,
            url=self._url,
            headers=self._headers,
            body=body,
            credentials="include" if self.with_credentials else "same-origin",
        )
        self.ready_state = ReadyState.SENT
        self._task = asyncio.get_running_loop().create_task(self._dispatch(request))

    def _perform(self, request: InterceptedRequest) -> requests.Response:
        with self.session_factory() as session:
            return session.request(
                request.method,
                request.url,
                headers=request.outgoing_headers(),
                data=request.body,
                timeout=self.timeout,
            )

    async def _dispatch(self, request: InterceptedRequest) -> None:
        try:
            response = await asyncio.to_thread(self._perform, request)
        except Exception as e:
            logger.error(f"{request.method} {request.url} failed: {e!r}")
            self.status = 0
            self.ready_state = ReadyState.DONE
            if callable(self.onerror):
                self.onerror(e)
            if callable(self.onreadystatechange):
                self.onreadystatechange()
            return
        self.status = response.status_code
        self._set_state(ReadyState.HEADERS_RECEIVED)
        if self.response_type == "arraybuffer":
            self.response = response.content
        else:
            self.response_text = response.text
        self._set_state(ReadyState.DONE)
        if callable(self.onload):
            self.onload()

    async def wait(self) -> None:
        if self._task is not None:
            await self._task
