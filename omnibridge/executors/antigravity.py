"""Executor for the Antigravity Code Assist endpoints."""

from __future__ import annotations

from typing import Any, Callable, Mapping, Optional

from ..translator.formats import Format
from .base import BaseExecutor, Credentials
from .config import ProviderConfig
from .ids import generate_project_id, generate_request_id, generate_session_id

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
DEFAULT_USER_AGENT = "antigravity/1.104.0 darwin/arm64"

ANTIGRAVITY_DEFAULTS = ProviderConfig(
    provider="antigravity",
    base_urls=[
        "https://daily-cloudcode-pa.sandbox.googleapis.com",
        "https://daily-cloudcode-pa.googleapis.com",
        "https://cloudcode-pa.googleapis.com",
    ],
    token_url=GOOGLE_TOKEN_URL,
    format=Format.ANTIGRAVITY,
)


class AntigravityExecutor(BaseExecutor):
    native_format = Format.ANTIGRAVITY

    def __init__(
        self,
        config: Optional[ProviderConfig] = None,
        project_id_factory: Callable[[], str] = generate_project_id,
        session_id_factory: Callable[[], str] = generate_session_id,
        request_id_factory: Callable[[], str] = generate_request_id,
    ) -> None:
        config = (config or ProviderConfig(provider="antigravity")).with_defaults(ANTIGRAVITY_DEFAULTS)
        super().__init__("antigravity", config)
        self._project_id_factory = project_id_factory
        self._session_id_factory = session_id_factory
        self._request_id_factory = request_id_factory

    def url_path(self, model: str, stream: bool) -> str:
        if stream:
            return "/v1internal:streamGenerateContent?alt=sse"
        return "/v1internal:generateContent"

    def build_headers(self, credentials: Optional[Credentials], stream: bool = True) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {credentials.access_token if credentials else ''}",
            "User-Agent": self.config.headers.get("User-Agent", DEFAULT_USER_AGENT),
        }
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
        project_id = (credentials.project_id if credentials else None) or self._project_id_factory()

        request = dict(body.get("request") or {})
        request["sessionId"] = (
            request.get("sessionId")
            or (credentials.session_id if credentials else None)
            or self._session_id_factory()
        )
        request.pop("safetySettings", None)
        if request.get("tools"):
            request["toolConfig"] = {"functionCallingConfig": {"mode": "VALIDATED"}}

        payload = dict(body)
        payload.update({
            "project": project_id,
            "model": model,
            "userAgent": "antigravity",
            "requestType": "agent",
            "requestId": self._request_id_factory(),
            "request": request,
        })
        return payload
