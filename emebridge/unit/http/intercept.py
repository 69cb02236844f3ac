from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

import httpx
from pydantic import ValidationError

from emebridge.host.errors import InvalidStateError, PlatformUnavailableError
from emebridge.host.xhr import ReadyState
from emebridge.key.keysystem import KeySystemPolicy
from emebridge.lib.load_yaml_config import CFG
from emebridge.lib.registry import registry
from emebridge.static.color import Color
from emebridge.unit.handle.handle_log import setup_logging
from emebridge.unit.http.request_model import InterceptedRequest, resolve_url
from emebridge.unit.http.rules import RetryPolicy, RewriteRule, rules_from_config
from emebridge.unit.http.xhr_adapter import complete_from_error, complete_from_response
from emebridge.unit.media.drm_typing_dict import CredentialsMode, FetchInit

logger = setup_logging("intercept", "orange")

CAPABILITY = "request"

Send = Callable[[InterceptedRequest], Awaitable[httpx.Response]]


class RequestInterceptor:
    """
    Applies license-request rewriting and not-found fallback.

    A request matching a rewrite rule is rewritten once before it leaves. A
    request matching a retry policy is sent as given, and only when that
    response carries the trigger status is a second, otherwise identical
    request sent to the alternate path. Anything else passes through.
    """

    def __init__(self, rewrite_rules: Sequence[RewriteRule] = (), retry_policies: Sequence[RetryPolicy] = ()) -> None:
        self.rewrite_rules: tuple[RewriteRule, ...] = tuple(rewrite_rules)
        self.retry_policies: tuple[RetryPolicy, ...] = tuple(retry_policies)

    @classmethod
    def from_config(cls, cfg: dict[str, Any], policy: KeySystemPolicy | None = None) -> RequestInterceptor:
        rewrite, fallback = rules_from_config(cfg, policy if policy is not None else KeySystemPolicy.from_config(cfg))
        return cls(rewrite, fallback)

    def rewrite(self, request: InterceptedRequest) -> InterceptedRequest | None:
        for rule in self.rewrite_rules:
            url = rule(request.url)
            if url is not None:
                logger.info(f"rewrite {rule.query_param}: {Color.fg('dove')}{request.url}{Color.reset()} -> {Color.fg('mint')}{url}{Color.reset()}")
                return request.with_url(url)
        return None

    def retry_policy_for(self, request: InterceptedRequest) -> RetryPolicy | None:
        for policy in self.retry_policies:
            if policy.applies_to(request.url):
                return policy
        return None

    async def dispatch(self, request: InterceptedRequest, send: Send) -> httpx.Response:
        rewritten = self.rewrite(request)
        if rewritten is not None:
            return await send(rewritten)

        policy = self.retry_policy_for(request)
        if policy is None:
            return await send(request)

        response = await send(request)
        if response.status_code != policy.trigger_status:
            return response

        alternate = policy.apply(request)
        logger.info(
            f"{Color.fg('gold')}{response.status_code}{Color.reset()} from {request.url}, "
            f"retrying with {Color.fg('mint')}{alternate.url}{Color.reset()}"
        )
        return await send(alternate)


class FetchShim:
    """Wraps the promise-style request function."""

    def __init__(self, original: Callable[..., Awaitable[httpx.Response]] | None, interceptor: RequestInterceptor, base_url: str | None = None) -> None:
        self.original = original
        self.interceptor = interceptor
        self.base_url = base_url

    async def __call__(self, resource: str | httpx.URL | httpx.Request, init: FetchInit | None = None) -> httpx.Response:
        original = self.original
        if original is None:
            raise PlatformUnavailableError("No native fetch available")
        try:
            request = InterceptedRequest.from_fetch(resource, init, self.base_url)
        except ValidationError as e:
            logger.warning(f"fetch shim cannot inspect request, passing through: {e}")
            return await original(resource, init)

        async def send(outgoing: InterceptedRequest) -> httpx.Response:
            if outgoing is request:
                return await original(resource, init)
            return await original(outgoing.url, outgoing.fetch_init())

        return await self.interceptor.dispatch(request, send)


class InterceptedXMLHttpRequest:
    """
    Mixin placed in front of the host's callback-style request class.

    Fallback-eligible requests are carried out through the host's original
    fetch and finished by the response adapter; rewrite-eligible ones are
    reopened on the new URL and continue down the native path.
    """

    _interceptor: RequestInterceptor
    _native_fetch: Callable[..., Awaitable[httpx.Response]] | None = None
    _base_url: str | None = None

    def open(self, method: str, url: str, *args: Any, **kwargs: Any) -> Any:
        self._shim_method = method
        self._shim_url = resolve_url(url, self._base_url)
        self._shim_headers: dict[str, str] = {}
        return super().open(method, url, *args, **kwargs)

    def set_request_header(self, name: str, value: str) -> Any:
        result = super().set_request_header(name, value)
        self._shim_headers[name] = value
        return result

    def _shim_request(self, body: bytes | str | None) -> InterceptedRequest:
        credentials: CredentialsMode = "include" if getattr(self, "with_credentials", False) else "same-origin"
        return InterceptedRequest(
            method=str(getattr(self, "_shim_method", "POST")).upper(),
            url=getattr(self, "_shim_url", ""),
            headers=dict(getattr(self, "_shim_headers", {})),
            body=body,
            credentials=credentials,
        )

    def send(self, body: bytes | str | None = None) -> Any:
        try:
            request = self._shim_request(body)
        except ValidationError as e:
            logger.warning(f"[XHR] cannot inspect request, passing through: {e}")
            return super().send(body)

        rewritten = self._interceptor.rewrite(request)
        if rewritten is not None:
            super().open(request.method, rewritten.url)
            for name, value in request.headers.items():
                super().set_request_header(name, value)
            return super().send(body)

        if self._interceptor.retry_policy_for(request) is not None:
            if self.ready_state is not ReadyState.OPENED:
                raise InvalidStateError("send() requires open()")
            self.ready_state = ReadyState.SENT
            self._task = asyncio.get_running_loop().create_task(self._send_with_fallback(request))
            return None

        return super().send(body)

    async def _send_with_fallback(self, request: InterceptedRequest) -> None:
        fetch = self._native_fetch

        async def send(outgoing: InterceptedRequest) -> httpx.Response:
            if fetch is None:
                raise PlatformUnavailableError("No native fetch available")
            return await fetch(outgoing.url, outgoing.fetch_init())

        try:
            response = await self._interceptor.dispatch(request, send)
            await complete_from_response(self, response)
        except Exception as e:
            logger.error(f"[XHR] fetch error for {request.url}: {e!r}")
            complete_from_error(self, e)


class InterceptedConnection:
    """Mixin placed in front of the host's connection class."""

    _interceptor: RequestInterceptor
    _base_url: str | None = None

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes | str | None = None,
        credentials: CredentialsMode = "same-origin",
    ) -> httpx.Response:
        native_request = super().request
        try:
            request = InterceptedRequest(
                method=method.upper(),
                url=resolve_url(url, self._base_url),
                headers=headers or {},
                body=body,
                credentials=credentials,
            )
        except ValidationError as e:
            logger.warning(f"[Connection] cannot inspect request, passing through: {e}")
            return await native_request(method, url, headers=headers, body=body, credentials=credentials)

        async def send(outgoing: InterceptedRequest) -> httpx.Response:
            if outgoing is request:
                return await native_request(method, url, headers=headers, body=body, credentials=credentials)
            return await native_request(
                outgoing.method,
                outgoing.url,
                headers=dict(outgoing.headers),
                body=outgoing.body,
                credentials=outgoing.credentials,
            )

        return await self._interceptor.dispatch(request, send)


def _wrap_class(mixin: type, native: type, **attrs: Any) -> type:
    namespace = {"__module__": native.__module__, "__qualname__": native.__qualname__, **attrs}
    return type(native.__name__, (mixin, native), namespace)


def install_request_shim(host: Any, interceptor: RequestInterceptor | None = None) -> bool:
    def patch(target: Any) -> dict[str, Any]:
        active = interceptor if interceptor is not None else RequestInterceptor.from_config(CFG)
        base_url = getattr(target, "base_url", None)
        originals = {
            "fetch": getattr(target, "fetch", None),
            "XMLHttpRequest": getattr(target, "XMLHttpRequest", None),
            "Connection": getattr(target, "Connection", None),
        }

        if originals["fetch"] is None:
            logger.warning("fetch missing, license requests through fetch will fail closed")
        target.fetch = FetchShim(originals["fetch"], active, base_url)

        if originals["XMLHttpRequest"] is not None:
            native_fetch = originals["fetch"]
            target.XMLHttpRequest = _wrap_class(
                InterceptedXMLHttpRequest,
                originals["XMLHttpRequest"],
                _interceptor=active,
                _native_fetch=staticmethod(native_fetch) if native_fetch is not None else None,
                _base_url=base_url,
            )
        else:
            logger.warning("XMLHttpRequest missing, skipping")

        if originals["Connection"] is not None:
            target.Connection = _wrap_class(
                InterceptedConnection,
                originals["Connection"],
                _interceptor=active,
                _base_url=base_url,
            )
        else:
            logger.warning("Connection missing, skipping")
        return originals

    return registry.install(host, CAPABILITY, patch)
