class HostError(Exception):
    """Base for errors a host platform reports through its own entry points."""


class NotSupportedError(HostError):
    """The requested key system or configuration is not supported."""


class InvalidStateError(HostError):
    """An entry point was used out of order, e.g. ``send()`` before ``open()``."""


class PlatformUnavailableError(NotSupportedError):
    """The native entry point a shim wraps does not exist on this host."""
