from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from urllib.parse import quote, unquote_plus, urlsplit, urlunsplit

from emebridge.key.keysystem import KeySystemPolicy
from emebridge.unit.http.request_model import InterceptedRequest

LICENSE_URL_PATH = "/melody/v1/license_url"
KEYSYSTEM_PARAM = "keysystem"
PLAYREADY_LICENSE_SEGMENT = "/playready-license/"
WIDEVINE_LICENSE_SEGMENT = "/widevine-license/"


@dataclass(frozen=True)
class RewriteRule:
    """
    Rewrites the key-system query parameter of a license-URL lookup.

    Fires only when ``path`` occurs in the URL path and ``query_param`` names a
    scheme the policy wants replaced. Every other query pair keeps its exact
    original encoding and position.
    """

    policy: KeySystemPolicy
    path: str = LICENSE_URL_PATH
    query_param: str = KEYSYSTEM_PARAM

    def __call__(self, url: str) -> str | None:
        parts = urlsplit(url)
        if self.path not in parts.path or not parts.query:
            return None
        changed = False
        pairs: list[str] = []
        for pair in parts.query.split("&"):
            name, sep, value = pair.partition("=")
            if sep and unquote_plus(name) == self.query_param and self.policy.matches(unquote_plus(value)):
                pairs.append(f"{name}={quote(self.policy.supported, safe='')}")
                changed = True
            else:
                pairs.append(pair)
        if not changed:
            return None
        return urlunsplit(parts._replace(query="&".join(pairs)))


@dataclass(frozen=True)
class RetryPolicy:
    """Re-dispatch on ``trigger_status`` with ``path_segment`` swapped for ``replacement``."""

    path_segment: str = PLAYREADY_LICENSE_SEGMENT
    replacement: str = WIDEVINE_LICENSE_SEGMENT
    trigger_status: int = 404

    def applies_to(self, url: str) -> bool:
        return self.path_segment in urlsplit(url).path

    def path_transform(self, path: str) -> str:
        return path.replace(self.path_segment, self.replacement, 1)

    def alternate_url(self, url: str) -> str:
        parts = urlsplit(url)
        return urlunsplit(parts._replace(path=self.path_transform(parts.path)))

    def apply(self, request: InterceptedRequest) -> InterceptedRequest:
        return request.with_url(self.alternate_url(request.url))


def rules_from_config(cfg: dict[str, Any], policy: KeySystemPolicy) -> tuple[list[RewriteRule], list[RetryPolicy]]:
    section = cfg["intercept"]
    rewrite = [RewriteRule(policy=policy, path=rule["path"], query_param=rule["query_param"]) for rule in section["rewrite"]]
    fallback = [
        RetryPolicy(
            path_segment=rule["path_segment"],
            replacement=rule["replacement"],
            trigger_status=int(rule["trigger_status"]),
        )
        for rule in section["fallback"]
    ]
    return rewrite, fallback
