"""Executor contract: how one backend provider is called.

An executor turns a canonical call (model, body, stream flag, credentials)
into the provider's native HTTP request, and knows how to refresh the
provider's OAuth credentials. Executors hold configuration only and are
shared between concurrent requests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional

import httpx

from ..core.exceptions import ProviderConfigError
from ..core.upstream_transport import build_client
from ..translator.formats import Format
from .config import ProviderConfig

logger = logging.getLogger("omnibridge")

AUTH_FAILURE_STATUSES = {401, 403}
FAILOVER_STATUSES = {429, 500, 502, 503, 504}


@dataclass
class Credentials:
    """One credential set for a provider account."""

    access_token: str = ""
    refresh_token: Optional[str] = None
    project_id: Optional[str] = None
    session_id: Optional[str] = None
    expires_in: Optional[int] = None
    provider_data: dict[str, Any] = field(default_factory=dict)


@dataclass
class ExecutionResult:
    """Outcome of :meth:`BaseExecutor.execute`.

    ``credentials`` is the set that produced ``response``; compare it with
    the input (or check ``refreshed``) to persist rotated tokens. Streamed
    responses stay open until :meth:`aclose` is awaited.
    """

    response: httpx.Response
    url: str
    credentials: Credentials
    refreshed: bool = False
    client: Optional[httpx.AsyncClient] = field(default=None, repr=False)

    @property
    def ok(self) -> bool:
        return self.response.is_success

    async def aclose(self) -> None:
        await self.response.aclose()
        if self.client is not None:
            client, self.client = self.client, None
            await client.aclose()


class BaseExecutor:
    """Executor for an OpenAI-compatible provider.

    Subclasses override the ``build_*`` hooks to speak other native formats.
    """

    native_format: Format = Format.OPENAI

    def __init__(self, provider: str, config: Optional[ProviderConfig] = None) -> None:
        self.provider = provider
        self.config = config or ProviderConfig(provider=provider)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(provider={self.provider!r})"

    # ------------------------------------------------------------------
    # Request building
    # ------------------------------------------------------------------

    def base_urls(self) -> list[str]:
        if not self.config.base_urls:
            raise ProviderConfigError(self.provider, "no base URLs configured")
        return self.config.base_urls

    def url_path(self, model: str, stream: bool) -> str:
        return "/chat/completions"

    def build_url(self, model: str, stream: bool, url_index: int = 0) -> str:
        """Return the request URL using the ``url_index``-th base URL.

        An out-of-range index falls back to the first base URL.

        Raises:
            ProviderConfigError: If the provider has no base URLs.
        """
        urls = self.base_urls()
        base = urls[url_index] if 0 <= url_index < len(urls) else urls[0]
        return f"{base.rstrip('/')}{self.url_path(model, stream)}"

    def auth_headers(self, credentials: Optional[Credentials]) -> dict[str, str]:
        token = credentials.access_token if credentials else ""
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}

    def build_headers(self, credentials: Optional[Credentials], stream: bool = True) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        headers.update(self.config.headers)
        headers.update(self.auth_headers(credentials))
        if stream:
            headers["Accept"] = "text/event-stream"
        return headers

    def transform_request(
        self,
        model: str,
        body: Mapping[str, Any],
        stream: bool,
        credentials: Optional[Credentials] = None,
    ) -> dict[str, Any]:
        payload = dict(body)
        payload["model"] = model
        payload["stream"] = stream
        return payload

    # ------------------------------------------------------------------
    # Credential refresh
    # ------------------------------------------------------------------

    async def refresh_credentials(
        self, credentials: Credentials, log: Optional[logging.Logger] = None
    ) -> Optional[Credentials]:
        """Exchange the refresh token for a new access token.

        Returns None when there is nothing to refresh or the exchange fails;
        fields the token endpoint does not reissue are carried forward.
        """
        log = log or logger
        if not credentials.refresh_token:
            return None
        token_url = self.config.token_url
        if not token_url:
            log.debug("Provider %s has no token URL; skipping refresh", self.provider)
            return None

        tokens = await self.post_token_form(
            token_url,
            {
                "grant_type": "refresh_token",
                "refresh_token": credentials.refresh_token,
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
            },
            log,
        )
        if tokens is None:
            return None
        refreshed = self.credentials_from_tokens(tokens, credentials)
        if refreshed is None:
            log.error("Token refresh for %s returned no access_token", self.provider)
            return None
        log.info("Refreshed credentials for provider %s", self.provider)
        return refreshed

    async def post_token_form(
        self, url: str, form: Mapping[str, str], log: logging.Logger
    ) -> Optional[dict[str, Any]]:
        """POST a form-encoded token request; None on any failure."""
        try:
            async with build_client(url, self.config.timeout) as client:
                response = await client.post(
                    url, data=dict(form), headers={"Accept": "application/json"}
                )
        except httpx.HTTPError as exc:
            log.error("Token refresh for %s failed: %s: %s", self.provider, type(exc).__name__, exc)
            return None
        if not response.is_success:
            log.warning(
                "Token refresh for %s rejected with status %s", self.provider, response.status_code
            )
            return None
        try:
            data = response.json()
        except ValueError:
            log.error("Token refresh for %s returned a non-JSON body", self.provider)
            return None
        return data if isinstance(data, dict) else None

    def credentials_from_tokens(
        self, tokens: Mapping[str, Any], previous: Credentials
    ) -> Optional[Credentials]:
        access_token = tokens.get("access_token")
        if not access_token:
            return None
        expires_in = tokens.get("expires_in")
        try:
            expires_in = int(expires_in) if expires_in is not None else None
        except (TypeError, ValueError):
            logger.warning("Token refresh for %s returned unparseable expires_in %r", self.provider, expires_in)
            expires_in = None
        return replace(
            previous,
            access_token=str(access_token),
            refresh_token=tokens.get("refresh_token") or previous.refresh_token,
            expires_in=expires_in,
            provider_data=dict(previous.provider_data),
        )

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(
        self,
        model: str,
        body: Mapping[str, Any],
        stream: bool,
        credentials: Credentials,
        log: Optional[logging.Logger] = None,
    ) -> ExecutionResult:
        """Send one request, failing over across the base URL pool.

        A transport error, 429 or 5xx moves to the next base URL. A 401/403
        triggers one credential refresh and one retry on the same URL. When
        every URL is exhausted the last response is returned as is, or the
        last transport error is raised.

        Raises:
            ProviderConfigError: If the provider has no base URLs.
            httpx.HTTPError: If the last URL failed at the transport level.
        """
        log = log or logger
        url_count = len(self.base_urls())
        refreshed = False
        url_index = 0
        last_error: Optional[httpx.HTTPError] = None

        while url_index < url_count:
            url = self.build_url(model, stream, url_index)
            payload = self.transform_request(model, body, stream, credentials)
            headers = self.build_headers(credentials, stream)
            try:
                client, response = await self._send(url, headers, payload, stream)
            except httpx.HTTPError as exc:
                last_error = exc
                log.warning(
                    "Provider %s request to %s failed (%s); trying next URL",
                    self.provider, url, type(exc).__name__,
                )
                url_index += 1
                continue

            result = ExecutionResult(response, url, credentials, refreshed, client)
            status = response.status_code

            if status in AUTH_FAILURE_STATUSES and not refreshed:
                refreshed = True
                new_credentials = await self.refresh_credentials(credentials, log)
                if new_credentials is None:
                    return result
                await result.aclose()
                credentials = new_credentials
                continue

            if status in FAILOVER_STATUSES and url_index + 1 < url_count:
                log.warning(
                    "Provider %s returned %s from %s; trying next URL",
                    self.provider, status, url,
                )
                await result.aclose()
                url_index += 1
                continue

            return result

        if last_error is not None:
            log.error("Provider %s exhausted all %d base URLs", self.provider, url_count)
            raise last_error
        raise ProviderConfigError(self.provider, "no base URL accepted the request")

    async def _send(
        self,
        url: str,
        headers: Mapping[str, str],
        payload: Mapping[str, Any],
        stream: bool,
    ) -> tuple[httpx.AsyncClient, httpx.Response]:
        timeout_value = self.config.timeout
        if stream:
            timeout: httpx.Timeout | float = httpx.Timeout(
                connect=timeout_value, read=None, write=timeout_value, pool=timeout_value
            )
        else:
            timeout = timeout_value
        client = build_client(url, timeout)
        try:
            request = client.build_request("POST", url, headers=dict(headers), json=payload)
            logger.debug("Sending %s request to %s (stream=%s)", self.provider, url, stream)
            response = await client.send(request, stream=stream)
        except Exception:
            await client.aclose()
            raise
        return client, response
