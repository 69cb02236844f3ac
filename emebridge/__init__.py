from emebridge.core import install
from emebridge.host.errors import PlatformUnavailableError
from emebridge.host.platform import HostPlatform, default_platform
from emebridge.host.stub import DeviceStub, install_device_stub
from emebridge.key.keysystem import KeySystemPolicy
from emebridge.key.negotiate import install_negotiation_shim
from emebridge.key.robustness import ROBUSTNESS_LEVELS, CandidateGenerator, generate
from emebridge.static.version import __version__
from emebridge.unit.http.intercept import RequestInterceptor, install_request_shim

__all__ = [
    "CandidateGenerator",
    "DeviceStub",
    "HostPlatform",
    "KeySystemPolicy",
    "PlatformUnavailableError",
    "ROBUSTNESS_LEVELS",
    "RequestInterceptor",
    "__version__",
    "default_platform",
    "generate",
    "install",
    "install_device_stub",
    "install_negotiation_shim",
    "install_request_shim",
]
