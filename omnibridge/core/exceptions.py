"""Core exceptions for the gateway."""

from typing import Any, Optional


class BridgeError(Exception):
    """Base exception for gateway errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UnsupportedFormatError(BridgeError):
    """Raised when a wire format is unknown or has no translation path."""

    def __init__(self, format_name: Any, message: Optional[str] = None) -> None:
        super().__init__(message or f"Unsupported format: {format_name!r}")
        self.format_name = format_name


class ProviderConfigError(BridgeError):
    """Raised when a provider is missing configuration needed to build a request."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class ConfigurationError(BridgeError):
    """Raised when there's an issue with the configuration."""
    pass


class MalformedDeltaError(BridgeError):
    """Raised for a malformed stream chunk when the stream runs in strict mode."""

    def __init__(self, payload: Any) -> None:
        preview = repr(payload)
        if len(preview) > 200:
            preview = preview[:200] + "..."
        super().__init__(f"Malformed stream chunk: {preview}")
        self.payload = payload
