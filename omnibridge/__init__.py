"""omnibridge - chat-completion protocol translation core

Lets clients speak one chat-completion wire protocol while the backend
speaks another.

This module provides:
- translate / init_state: chunk-by-chunk stream translation between formats
- aggregate: collapse a translated stream into one non-streaming response
- Executors: build, send and re-authenticate provider requests
- Pipeline helpers: SSE re-framing and FastAPI responses

Example:
    >>> from omnibridge import init_state, translate
    >>> state = init_state("claude", model="gpt-4o")
    >>> events = translate("openai", "claude", chunk, state)
"""

from .bypass import handle_bypass_request
from .config_loader import load_config
from .core.exceptions import (
    BridgeError,
    ConfigurationError,
    MalformedDeltaError,
    ProviderConfigError,
    UnsupportedFormatError,
)
from .core.sse import done_sentinel, encode
from .executors import Credentials, ExecutorRegistry, get_executor, has_specialized_executor
from .logging import logger, setup_logging
from .pipeline import collect_translated, stream_translated
from .translator import Format, TranslationState, aggregate, detect_format, init_state, translate

__version__ = "0.1.0"

__all__ = [
    "BridgeError",
    "ConfigurationError",
    "Credentials",
    "ExecutorRegistry",
    "Format",
    "MalformedDeltaError",
    "ProviderConfigError",
    "TranslationState",
    "UnsupportedFormatError",
    "aggregate",
    "collect_translated",
    "detect_format",
    "done_sentinel",
    "encode",
    "get_executor",
    "handle_bypass_request",
    "has_specialized_executor",
    "init_state",
    "load_config",
    "logger",
    "setup_logging",
    "stream_translated",
    "translate",
]
