from unittest.mock import AsyncMock

import httpx
import pytest
from conftest import LICENSE_URL, PLAYREADY_LICENSE, WIDEVINE_LICENSE, FakeXHR

from emebridge.host.errors import InvalidStateError, PlatformUnavailableError
from emebridge.host.platform import HostPlatform
from emebridge.host.xhr import ReadyState
from emebridge.key.keysystem import KeySystemPolicy
from emebridge.unit.http.intercept import RequestInterceptor, install_request_shim
from emebridge.unit.http.rules import RetryPolicy, RewriteRule

REWRITTEN = "https://api.example.com/melody/v1/license_url?keysystem=com.widevine.alpha&contentId=abc%20def&x=1"


def _interceptor() -> RequestInterceptor:
    return RequestInterceptor([RewriteRule(policy=KeySystemPolicy())], [RetryPolicy()])


def _track(xhr) -> list:
    events: list = []
    xhr.onload = lambda: events.append(("load", xhr.ready_state))
    xhr.onerror = lambda error: events.append(("error", error))
    xhr.onreadystatechange = lambda: events.append(("rsc", xhr.ready_state))
    return events


def test_wrapped_class_keeps_native_identity(host: HostPlatform) -> None:
    install_request_shim(host, _interceptor())

    assert issubclass(host.XMLHttpRequest, FakeXHR)
    assert host.XMLHttpRequest.__name__ == "FakeXHR"


@pytest.mark.asyncio
async def test_not_found_license_falls_back_through_native_fetch() -> None:
    fetch = AsyncMock(side_effect=[httpx.Response(404), httpx.Response(200, content=b"\x08\x02license")])
    host = HostPlatform(fetch=fetch, XMLHttpRequest=FakeXHR)
    install_request_shim(host, _interceptor())

    xhr = host.XMLHttpRequest()
    events = _track(xhr)
    xhr.with_credentials = True
    xhr.open("POST", PLAYREADY_LICENSE)
    xhr.set_request_header("X-Session", "s1")
    xhr.send(b"challenge")
    assert xhr.ready_state == ReadyState.SENT
    await xhr._task

    assert events == [("load", ReadyState.DONE), ("rsc", ReadyState.DONE)]
    assert xhr.status == 200
    assert xhr.response == b"\x08\x02license"
    assert xhr.response_type == "arraybuffer"
    assert ("send", b"challenge") not in xhr.calls

    expected_init = {"method": "POST", "headers": {"X-Session": "s1"}, "body": b"challenge", "credentials": "include"}
    assert fetch.await_args_list[0].args == (PLAYREADY_LICENSE, expected_init)
    assert fetch.await_args_list[1].args == (WIDEVINE_LICENSE, expected_init)


@pytest.mark.asyncio
async def test_successful_license_is_not_retried() -> None:
    fetch = AsyncMock(return_value=httpx.Response(200, content=b"license"))
    host = HostPlatform(fetch=fetch, XMLHttpRequest=FakeXHR)
    install_request_shim(host, _interceptor())

    xhr = host.XMLHttpRequest()
    xhr.open("POST", PLAYREADY_LICENSE)
    xhr.send(b"challenge")
    await xhr._task

    fetch.assert_awaited_once()
    assert xhr.status == 200


@pytest.mark.asyncio
async def test_dispatch_failure_reaches_onerror() -> None:
    error = httpx.ConnectError("connection refused")
    host = HostPlatform(fetch=AsyncMock(side_effect=[error]), XMLHttpRequest=FakeXHR)
    install_request_shim(host, _interceptor())

    xhr = host.XMLHttpRequest()
    events = _track(xhr)
    xhr.open("POST", PLAYREADY_LICENSE)
    xhr.send(b"challenge")
    await xhr._task

    assert events == [("error", error), ("rsc", ReadyState.DONE)]
    assert xhr.status == 0


@pytest.mark.asyncio
async def test_missing_native_fetch_reports_platform_error(host: HostPlatform) -> None:
    install_request_shim(host, _interceptor())

    xhr = host.XMLHttpRequest()
    events = _track(xhr)
    xhr.open("POST", PLAYREADY_LICENSE)
    xhr.send(b"challenge")
    await xhr._task

    assert isinstance(events[0][1], PlatformUnavailableError)


def test_license_url_lookup_is_reopened_on_rewritten_url(host: HostPlatform) -> None:
    install_request_shim(host, _interceptor())

    xhr = host.XMLHttpRequest()
    xhr.open("GET", LICENSE_URL)
    xhr.set_request_header("Accept", "application/json")
    xhr.send()

    assert xhr.calls == [
        ("open", "GET", LICENSE_URL),
        ("header", "Accept", "application/json"),
        ("open", "GET", REWRITTEN),
        ("header", "Accept", "application/json"),
        ("send", None),
    ]


def test_relative_lookup_is_resolved_before_rewrite() -> None:
    host = HostPlatform(XMLHttpRequest=FakeXHR, base_url="https://api.example.com/tv/")
    install_request_shim(host, _interceptor())

    xhr = host.XMLHttpRequest()
    xhr.open("GET", "/melody/v1/license_url?keysystem=playready")
    xhr.send()

    assert xhr.calls[1] == ("open", "GET", "https://api.example.com/melody/v1/license_url?keysystem=com.widevine.alpha")


def test_unrelated_request_goes_straight_to_native_send(host: HostPlatform) -> None:
    install_request_shim(host, _interceptor())

    xhr = host.XMLHttpRequest()
    xhr.open("GET", "https://api.example.com/v1/catalog")
    xhr.send()

    assert xhr.calls == [("open", "GET", "https://api.example.com/v1/catalog"), ("send", None)]


class UnreadableResponse(httpx.Response):
    async def aread(self) -> bytes:
        raise RuntimeError("decoder failed")


@pytest.mark.asyncio
async def test_body_failure_still_completes_through_onerror() -> None:
    host = HostPlatform(fetch=AsyncMock(return_value=UnreadableResponse(200)), XMLHttpRequest=FakeXHR)
    install_request_shim(host, _interceptor())

    xhr = host.XMLHttpRequest()
    events = _track(xhr)
    xhr.open("POST", PLAYREADY_LICENSE)
    xhr.send(b"challenge")
    await xhr._task

    assert [e[0] for e in events] == ["error", "rsc"]
    assert isinstance(events[0][1], RuntimeError)
    assert xhr.status == 0
    assert xhr.ready_state == ReadyState.DONE


@pytest.mark.asyncio
async def test_second_send_on_license_request_is_rejected() -> None:
    fetch = AsyncMock(return_value=httpx.Response(200, content=b"license"))
    host = HostPlatform(fetch=fetch, XMLHttpRequest=FakeXHR)
    install_request_shim(host, _interceptor())

    xhr = host.XMLHttpRequest()
    xhr.open("POST", PLAYREADY_LICENSE)
    xhr.send(b"challenge")
    task = xhr._task
    with pytest.raises(InvalidStateError):
        xhr.send(b"challenge")
    await task

    assert xhr._task is task
    fetch.assert_awaited_once()


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [403, 500])
async def test_license_error_status_is_not_retried(status: int) -> None:
    fetch = AsyncMock(return_value=httpx.Response(status))
    host = HostPlatform(fetch=fetch, XMLHttpRequest=FakeXHR)
    install_request_shim(host, _interceptor())

    xhr = host.XMLHttpRequest()
    events = _track(xhr)
    xhr.open("POST", PLAYREADY_LICENSE)
    xhr.send(b"challenge")
    await xhr._task

    fetch.assert_awaited_once()
    assert fetch.await_args.args[0] == PLAYREADY_LICENSE
    assert xhr.status == status
    assert events == [("load", ReadyState.DONE), ("rsc", ReadyState.DONE)]
