import pytest
import requests

from emebridge.host.errors import InvalidStateError
from emebridge.host.xhr import ReadyState, XMLHttpRequest


def _response(status: int, content: bytes) -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response._content = content
    response.encoding = "utf-8"
    return response


class FakeSession:
    sent: list[dict] = []
    outcome: requests.Response | Exception = _response(200, b"ok")

    def __enter__(self) -> "FakeSession":
        return self

    def __exit__(self, *exc) -> None:
        return None

    def request(self, method, url, headers=None, data=None, timeout=None):
        FakeSession.sent.append({"method": method, "url": url, "headers": headers, "data": data})
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


class RecordingXHR(XMLHttpRequest):
    session_factory = FakeSession


@pytest.fixture(autouse=True)
def _reset_session() -> None:
    FakeSession.sent = []
    FakeSession.outcome = _response(200, b"ok")


@pytest.mark.asyncio
async def test_arraybuffer_response() -> None:
    FakeSession.outcome = _response(200, b"\x08\x01license")
    xhr = RecordingXHR()
    xhr.response_type = "arraybuffer"
    xhr.open("post", "https://license.example.com/lic")
    xhr.set_request_header("X-Session", "s1")

    states: list = []
    xhr.onreadystatechange = lambda: states.append(xhr.ready_state)
    xhr.onload = lambda: states.append("load")
    xhr.send(b"challenge")
    await xhr.wait()

    assert FakeSession.sent == [
        {"method": "POST", "url": "https://license.example.com/lic", "headers": {"X-Session": "s1"}, "data": b"challenge"}
    ]
    assert xhr.status == 200
    assert xhr.response == b"\x08\x01license"
    assert states == [ReadyState.HEADERS_RECEIVED, ReadyState.DONE, "load"]


@pytest.mark.asyncio
async def test_text_response() -> None:
    FakeSession.outcome = _response(404, b"not here")
    xhr = RecordingXHR()
    xhr.open("GET", "https://api.example.com/missing")
    xhr.send()
    await xhr.wait()

    assert xhr.status == 404
    assert xhr.response_text == "not here"


@pytest.mark.asyncio
async def test_transport_failure_calls_onerror() -> None:
    FakeSession.outcome = requests.ConnectionError("refused")
    xhr = RecordingXHR()
    errors: list = []
    xhr.onerror = errors.append
    xhr.open("GET", "https://api.example.com/down")
    xhr.send()
    await xhr.wait()

    assert xhr.status == 0
    assert xhr.ready_state == ReadyState.DONE
    assert isinstance(errors[0], requests.ConnectionError)


def test_header_before_open_is_rejected() -> None:
    with pytest.raises(InvalidStateError):
        RecordingXHR().set_request_header("X-Session", "s1")


def test_send_before_open_is_rejected() -> None:
    with pytest.raises(InvalidStateError):
        RecordingXHR().send()


@pytest.mark.asyncio
async def test_unexpected_failure_still_completes() -> None:
    FakeSession.outcome = RuntimeError("boom")
    xhr = RecordingXHR()
    events: list = []
    xhr.onerror = lambda error: events.append(("error", error))
    xhr.onreadystatechange = lambda: events.append(("rsc", xhr.ready_state))
    xhr.open("GET", "https://api.example.com/v1/catalog")
    xhr.send()
    await xhr.wait()

    assert isinstance(events[0][1], RuntimeError)
    assert events[1] == ("rsc", ReadyState.DONE)
    assert xhr.status == 0
