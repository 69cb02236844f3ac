import copy
from unittest.mock import AsyncMock

import httpx
import pytest
from conftest import LICENSE_URL, FakeCdm

from emebridge.core import build_policy, install
from emebridge.host.platform import HostPlatform
from emebridge.lib.load_yaml_config import CFG
from emebridge.lib.registry import registry
from emebridge.static.parameter import paramstore
from emebridge.unit.http.intercept import FetchShim

REQUESTED = [{"videoCapabilities": [{"contentType": 'video/mp4; codecs="avc1.640028"'}]}]


@pytest.fixture(autouse=True)
def _clear_params():
    yield
    paramstore.clear()


def test_install_wires_every_enabled_shim() -> None:
    host = HostPlatform(request_media_key_system_access=FakeCdm(accept_anything=True), fetch=AsyncMock())

    assert install(host) is host
    assert registry.is_installed(host, "negotiation")
    assert registry.is_installed(host, "request")


def test_install_without_host_builds_default() -> None:
    host = install()
    assert isinstance(host.fetch, FetchShim)
    assert registry.is_installed(host, "request")


def test_disabled_sections_are_skipped() -> None:
    cfg = copy.deepcopy(CFG)
    cfg["negotiation"]["enabled"] = False
    cfg["intercept"]["enabled"] = False
    cdm = FakeCdm(accept_anything=True)
    host = HostPlatform(request_media_key_system_access=cdm)

    install(host, cfg)

    assert host.request_media_key_system_access is cdm
    assert not registry.is_installed(host, "request")


def test_no_substitute_override() -> None:
    assert build_policy().enabled is True
    paramstore.set("no_substitute", True)
    assert build_policy().enabled is False


@pytest.mark.asyncio
async def test_one_policy_drives_both_shims() -> None:
    paramstore.set("no_substitute", True)
    cdm = FakeCdm(accept_anything=True)
    fetch = AsyncMock(return_value=httpx.Response(200))
    host = install(HostPlatform(request_media_key_system_access=cdm, fetch=fetch))

    await host.request_media_key_system_access("com.microsoft.playready", REQUESTED)
    await host.fetch(LICENSE_URL)

    assert cdm.calls[0][0] == "com.microsoft.playready"
    assert fetch.await_args.args[0] == LICENSE_URL
