"""Provider configuration for executors."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional

from ..core.exceptions import ConfigurationError, UnsupportedFormatError
from ..translator.formats import Format

logger = logging.getLogger("omnibridge")

DEFAULT_TIMEOUT = 60.0
AUTH_STYLES = {"bearer", "x-api-key", "x-goog-api-key"}


@dataclass
class ProviderConfig:
    """Static description of one backend provider."""

    provider: str
    base_urls: list[str] = field(default_factory=list)
    headers: dict[str, str] = field(default_factory=dict)
    token_url: Optional[str] = None
    client_id: str = ""
    client_secret: str = ""
    auth: str = "bearer"
    format: Format = Format.OPENAI
    timeout: float = DEFAULT_TIMEOUT
    copilot_token_url: Optional[str] = None

    def with_defaults(self, defaults: "ProviderConfig") -> "ProviderConfig":
        """Fill unset fields from ``defaults``; explicit headers win."""
        return replace(
            self,
            base_urls=list(self.base_urls or defaults.base_urls),
            headers={**defaults.headers, **self.headers},
            token_url=self.token_url or defaults.token_url,
            client_id=self.client_id or defaults.client_id,
            client_secret=self.client_secret or defaults.client_secret,
            copilot_token_url=self.copilot_token_url or defaults.copilot_token_url,
            format=self.format if self.format != Format.OPENAI else defaults.format,
            timeout=self.timeout if self.timeout != DEFAULT_TIMEOUT else defaults.timeout,
        )

    @classmethod
    def from_mapping(cls, provider: str, data: Mapping[str, Any]) -> "ProviderConfig":
        """Build a ProviderConfig from one ``providers.<name>`` YAML section.

        Raises:
            ConfigurationError: If a field has the wrong shape.
        """
        if not isinstance(data, Mapping):
            raise ConfigurationError(f"Provider '{provider}' config must be a mapping")

        base_urls = data.get("base_urls")
        if base_urls is None and data.get("base_url"):
            base_urls = [data["base_url"]]
        if base_urls is None:
            base_urls = []
        if not isinstance(base_urls, list) or not all(isinstance(u, str) for u in base_urls):
            raise ConfigurationError(f"Provider '{provider}': base_urls must be a list of strings")

        headers = data.get("headers") or {}
        if not isinstance(headers, Mapping):
            raise ConfigurationError(f"Provider '{provider}': headers must be a mapping")

        auth = str(data.get("auth") or "bearer").lower()
        if auth not in AUTH_STYLES:
            raise ConfigurationError(
                f"Provider '{provider}': unknown auth style '{auth}' "
                f"(expected one of {sorted(AUTH_STYLES)})"
            )

        try:
            fmt = Format.coerce(data.get("format") or Format.OPENAI)
        except UnsupportedFormatError as exc:
            raise ConfigurationError(f"Provider '{provider}': {exc.message}") from exc

        try:
            timeout = float(data.get("timeout") or DEFAULT_TIMEOUT)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Provider '{provider}': timeout must be a number") from exc

        return cls(
            provider=provider,
            base_urls=[u.rstrip("/") for u in base_urls if u],
            headers={str(k): str(v) for k, v in headers.items()},
            token_url=data.get("token_url") or None,
            client_id=str(data.get("client_id") or ""),
            client_secret=str(data.get("client_secret") or ""),
            auth=auth,
            format=fmt,
            timeout=timeout,
            copilot_token_url=data.get("copilot_token_url") or None,
        )


def load_provider_configs(config: Mapping[str, Any]) -> dict[str, ProviderConfig]:
    """Build provider configs from the ``providers`` section of a loaded config."""
    providers = (config or {}).get("providers") or {}
    if not isinstance(providers, Mapping):
        raise ConfigurationError("'providers' section must be a mapping")
    result: dict[str, ProviderConfig] = {}
    for name, section in providers.items():
        result[str(name)] = ProviderConfig.from_mapping(str(name), section or {})
    logger.debug("Loaded %d provider configs", len(result))
    return result
