"""Executor for providers without a dedicated implementation.

The configured native format decides the request path and body shape, and
the configured auth style decides which header carries the token.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from ..translator.formats import ENVELOPED_FORMATS, Format
from .base import BaseExecutor, Credentials
from .config import ProviderConfig

ANTHROPIC_VERSION = "2023-06-01"


class DefaultExecutor(BaseExecutor):
    def __init__(self, provider: str, config: Optional[ProviderConfig] = None) -> None:
        super().__init__(provider, config)
        self.native_format = self.config.format

    def url_path(self, model: str, stream: bool) -> str:
        fmt = self.native_format
        if fmt == Format.CLAUDE:
            return "/v1/messages"
        if fmt == Format.OPENAI_RESPONSES:
            return "/responses"
        if fmt == Format.GEMINI:
            if stream:
                return f"/v1beta/models/{model}:streamGenerateContent?alt=sse"
            return f"/v1beta/models/{model}:generateContent"
        if fmt in ENVELOPED_FORMATS:
            if stream:
                return "/v1internal:streamGenerateContent?alt=sse"
            return "/v1internal:generateContent"
        return "/chat/completions"

    def auth_headers(self, credentials: Optional[Credentials]) -> dict[str, str]:
        token = credentials.access_token if credentials else ""
        if not token:
            return {}
        if self.config.auth == "x-api-key":
            headers = {"x-api-key": token}
            if self.native_format == Format.CLAUDE:
                headers["anthropic-version"] = ANTHROPIC_VERSION
            return headers
        if self.config.auth == "x-goog-api-key":
            return {"x-goog-api-key": token}
        return {"Authorization": f"Bearer {token}"}

    def transform_request(
        self,
        model: str,
        body: Mapping[str, Any],
        stream: bool,
        credentials: Optional[Credentials] = None,
    ) -> dict[str, Any]:
        if self.native_format == Format.GEMINI:
            # Model and stream mode travel in the URL
            return {k: v for k, v in body.items() if k not in ("model", "stream")}
        if self.native_format in ENVELOPED_FORMATS:
            payload = dict(body)
            payload["model"] = model
            if credentials and credentials.project_id and not payload.get("project"):
                payload["project"] = credentials.project_id
            return payload
        return super().transform_request(model, body, stream, credentials)
