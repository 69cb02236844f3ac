from __future__ import annotations

from typing import Any

import httpx

from emebridge.host.xhr import ReadyState
from emebridge.unit.handle.handle_log import setup_logging

logger = setup_logging("xhr_adapter", "peach")


async def _materialize(xhr: Any, response: httpx.Response) -> None:
    try:
        xhr.response = bytes(await response.aread())
        xhr.response_type = "arraybuffer"
        return
    except (httpx.HTTPError, httpx.StreamError) as e:
        logger.debug(f"binary body unavailable, falling back to text: {e!r}")
    xhr.response = None
    try:
        xhr.response_text = response.text
    except (httpx.StreamError, UnicodeDecodeError, LookupError):
        xhr.response_text = ""


async def complete_from_response(xhr: Any, response: httpx.Response) -> None:
    """Finish a callback-style request with a response obtained elsewhere."""
    xhr.status = response.status_code
    xhr.ready_state = ReadyState.HEADERS_RECEIVED
    await _materialize(xhr, response)
    xhr.ready_state = ReadyState.DONE
    if callable(getattr(xhr, "onload", None)):
        xhr.onload()
    if callable(getattr(xhr, "onreadystatechange", None)):
        xhr.onreadystatechange()


def complete_from_error(xhr: Any, error: BaseException) -> None:
    xhr.status = 0
    xhr.ready_state = ReadyState.DONE
    if callable(getattr(xhr, "onerror", None)):
        xhr.onerror(error)
    if callable(getattr(xhr, "onreadystatechange", None)):
        xhr.onreadystatechange()
