"""Identifier generators used when building Code Assist requests."""

import secrets
from uuid import uuid4

_ADJECTIVES = ("useful", "bright", "swift", "calm", "bold")
_NOUNS = ("fuze", "wave", "spark", "flow", "core")

_SESSION_ID_BOUND = 9_000_000_000_000_000_000


def generate_project_id() -> str:
    """Return a placeholder project id such as ``swift-wave-1a2b3``."""
    return f"{secrets.choice(_ADJECTIVES)}-{secrets.choice(_NOUNS)}-{uuid4().hex[:5]}"


def generate_session_id() -> str:
    return f"-{secrets.randbelow(_SESSION_ID_BOUND)}"


def generate_request_id(prefix: str = "agent") -> str:
    return f"{prefix}-{uuid4()}"
