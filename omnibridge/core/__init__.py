"""Core module initialization.

The SSE helpers live in :mod:`omnibridge.core.sse`; they depend on the format
registry and are imported from there directly.
"""

from .exceptions import (
    BridgeError,
    ConfigurationError,
    MalformedDeltaError,
    ProviderConfigError,
    UnsupportedFormatError,
)
from .upstream_transport import (
    build_client,
    clear_upstream_transports,
    get_upstream_transport,
    register_upstream_transport,
    unregister_upstream_transport,
)

__all__ = [
    "BridgeError",
    "ConfigurationError",
    "MalformedDeltaError",
    "ProviderConfigError",
    "UnsupportedFormatError",
    "build_client",
    "clear_upstream_transports",
    "get_upstream_transport",
    "register_upstream_transport",
    "unregister_upstream_transport",
]
