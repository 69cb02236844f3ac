from __future__ import annotations

from typing import Any
from urllib.parse import urljoin

import httpx
from pydantic import BaseModel, ConfigDict, Field

from emebridge.unit.media.drm_typing_dict import CredentialsMode, FetchInit

CREDENTIAL_HEADERS = frozenset({"cookie", "authorization"})


class InterceptedRequest(BaseModel):
    """A license request as issued by the application, whatever surface it used."""

    model_config = ConfigDict(frozen=True)

    method: str = "GET"
    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    body: bytes | str | None = None
    credentials: CredentialsMode = "same-origin"

    def with_url(self, url: str) -> InterceptedRequest:
        return self.model_copy(update={"url": url})

    def outgoing_headers(self) -> dict[str, str]:
        if self.credentials != "omit":
            return dict(self.headers)
        return {k: v for k, v in self.headers.items() if k.lower() not in CREDENTIAL_HEADERS}

    def fetch_init(self) -> FetchInit:
        return {
            "method": self.method,
            "headers": dict(self.headers),
            "body": self.body,
            "credentials": self.credentials,
        }

    @classmethod
    def from_fetch(cls, resource: str | httpx.URL | httpx.Request, init: FetchInit | None = None, base_url: str | None = None) -> InterceptedRequest:
        init = init or {}
        fields: dict[str, Any] = {}
        if isinstance(resource, httpx.Request):
            fields["url"] = str(resource.url)
            fields["method"] = resource.method
            fields["headers"] = dict(resource.headers.items())
            try:
                fields["body"] = resource.content or None
            except httpx.RequestNotRead:
                fields["body"] = None
        else:
            fields["url"] = resolve_url(str(resource), base_url)
        if "method" in init:
            fields["method"] = init["method"]
        if "headers" in init:
            fields["headers"] = dict(init["headers"] or {})
        if "body" in init:
            fields["body"] = init["body"]
        if "credentials" in init:
            fields["credentials"] = init["credentials"]
        fields["method"] = str(fields.get("method", "GET")).upper()
        return cls(**fields)


def resolve_url(url: str, base_url: str | None) -> str:
    if base_url:
        return urljoin(base_url, url)
    return url
