"""Executor for the Gemini CLI Code Assist endpoint."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from ..translator.formats import Format
from .antigravity import GOOGLE_TOKEN_URL
from .base import BaseExecutor, Credentials
from .config import ProviderConfig

GEMINI_CLI_DEFAULTS = ProviderConfig(
    provider="gemini-cli",
    base_urls=["https://cloudcode-pa.googleapis.com"],
    headers={
        "User-Agent": "google-api-nodejs-client/9.15.1",
        "X-Goog-Api-Client": "gl-node/22.17.0",
    },
    token_url=GOOGLE_TOKEN_URL,
    format=Format.GEMINI_CLI,
)


class GeminiCLIExecutor(BaseExecutor):
    native_format = Format.GEMINI_CLI

    def __init__(self, config: Optional[ProviderConfig] = None) -> None:
        config = (config or ProviderConfig(provider="gemini-cli")).with_defaults(GEMINI_CLI_DEFAULTS)
        super().__init__("gemini-cli", config)

    def url_path(self, model: str, stream: bool) -> str:
        if stream:
            return "/v1internal:streamGenerateContent?alt=sse"
        return "/v1internal:generateContent"

    def transform_request(
        self,
        model: str,
        body: Mapping[str, Any],
        stream: bool,
        credentials: Optional[Credentials] = None,
    ) -> dict[str, Any]:
        """Wrap a Gemini request in the ``{model, project, request}`` envelope."""
        if isinstance(body.get("request"), Mapping):
            request = dict(body["request"])
        else:
            request = {k: v for k, v in body.items() if k not in ("model", "stream", "project")}
        project = (credentials.project_id if credentials else None) or body.get("project") or ""
        return {"model": model, "project": project, "request": request}
