"""Executor for GitHub Copilot chat completions.

Copilot calls are authorised with a short-lived Copilot API token, which is
minted from the GitHub OAuth access token. Refresh therefore rotates the
GitHub token first and then fetches a fresh Copilot token.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from ..core.upstream_transport import build_client
from ..translator.formats import Format
from .base import BaseExecutor, Credentials
from .config import ProviderConfig

COPILOT_TOKEN_KEY = "copilot_token"

logger = logging.getLogger("omnibridge")

GITHUB_DEFAULTS = ProviderConfig(
    provider="github",
    base_urls=["https://api.githubcopilot.com"],
    headers={
        "Copilot-Integration-Id": "vscode-chat",
        "Editor-Version": "vscode/1.85.0",
        "Editor-Plugin-Version": "copilot-chat/0.12.0",
        "User-Agent": "GitHubCopilotChat/0.12.0",
        "Openai-Intent": "conversation-panel",
    },
    token_url="https://github.com/login/oauth/access_token",
    copilot_token_url="https://api.github.com/copilot_internal/v2/token",
    format=Format.OPENAI,
)


class GithubExecutor(BaseExecutor):
    native_format = Format.OPENAI

    def __init__(self, config: Optional[ProviderConfig] = None) -> None:
        config = (config or ProviderConfig(provider="github")).with_defaults(GITHUB_DEFAULTS)
        super().__init__("github", config)

    def auth_headers(self, credentials: Optional[Credentials]) -> dict[str, str]:
        if credentials is None:
            return {}
        token = credentials.provider_data.get(COPILOT_TOKEN_KEY) or credentials.access_token
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}

    async def refresh_credentials(
        self, credentials: Credentials, log: Optional[logging.Logger] = None
    ) -> Optional[Credentials]:
        log = log or logger
        refreshed = await super().refresh_credentials(credentials, log)
        if refreshed is None:
            return None
        copilot = await self.fetch_copilot_token(refreshed.access_token, log)
        if copilot is None:
            # The GitHub token is still valid; drop the stale Copilot token
            refreshed.provider_data.pop(COPILOT_TOKEN_KEY, None)
            return refreshed
        refreshed.provider_data[COPILOT_TOKEN_KEY] = copilot["token"]
        if copilot.get("expires_at") is not None:
            refreshed.provider_data["copilot_expires_at"] = copilot["expires_at"]
        return refreshed

    async def fetch_copilot_token(
        self, github_token: str, log: Optional[logging.Logger] = None
    ) -> Optional[dict[str, Any]]:
        """Mint a Copilot API token; None when the exchange fails."""
        log = log or logger
        url = self.config.copilot_token_url
        if not url:
            return None
        headers = {
            "Authorization": f"token {github_token}",
            "Accept": "application/json",
            "User-Agent": self.config.headers.get("User-Agent", "GitHubCopilotChat/0.12.0"),
        }
        try:
            async with build_client(url, self.config.timeout) as client:
                response = await client.get(url, headers=headers)
        except httpx.HTTPError as exc:
            log.error("Copilot token fetch failed: %s: %s", type(exc).__name__, exc)
            return None
        if not response.is_success:
            log.warning("Copilot token fetch rejected with status %s", response.status_code)
            return None
        try:
            data = response.json()
        except ValueError:
            log.error("Copilot token endpoint returned a non-JSON body")
            return None
        if not isinstance(data, dict) or not data.get("token"):
            return None
        return data
