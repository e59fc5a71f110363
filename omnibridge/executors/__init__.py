"""Executor registry: provider id -> executor.

Usage:
    from omnibridge.executors import get_executor

    executor = get_executor("antigravity")
    result = await executor.execute(model, body, stream=True, credentials=creds)
    try:
        ...
    finally:
        await result.aclose()

Providers without a dedicated executor get a :class:`DefaultExecutor`, built
once per provider id and cached.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from .antigravity import AntigravityExecutor
from .base import BaseExecutor, Credentials, ExecutionResult
from .config import ProviderConfig, load_provider_configs
from .default import DefaultExecutor
from .gemini_cli import GeminiCLIExecutor
from .github import GithubExecutor

__all__ = [
    "AntigravityExecutor",
    "BaseExecutor",
    "Credentials",
    "DefaultExecutor",
    "ExecutionResult",
    "ExecutorRegistry",
    "GeminiCLIExecutor",
    "GithubExecutor",
    "ProviderConfig",
    "get_executor",
    "get_registry",
    "has_specialized_executor",
    "load_provider_configs",
    "reset_registry",
    "set_registry",
]

SPECIALIZED_EXECUTORS: dict[str, Any] = {
    "antigravity": AntigravityExecutor,
    "gemini-cli": GeminiCLIExecutor,
    "github": GithubExecutor,
}


class ExecutorRegistry:
    """Maps provider ids to shared executor instances."""

    def __init__(self, providers: Optional[Mapping[str, ProviderConfig]] = None) -> None:
        self._providers = dict(providers or {})
        self._specialized: dict[str, BaseExecutor] = {
            name: factory(self._providers.get(name))
            for name, factory in SPECIALIZED_EXECUTORS.items()
        }
        self._defaults: dict[str, DefaultExecutor] = {}

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "ExecutorRegistry":
        return cls(load_provider_configs(config))

    def get(self, provider: str) -> BaseExecutor:
        executor = self._specialized.get(provider)
        if executor is not None:
            return executor
        default = self._defaults.get(provider)
        if default is None:
            default = DefaultExecutor(provider, self._providers.get(provider))
            self._defaults[provider] = default
        return default

    def has_specialized(self, provider: str) -> bool:
        return provider in self._specialized


_registry: Optional[ExecutorRegistry] = None


def get_registry() -> ExecutorRegistry:
    """Get the singleton registry, creating an unconfigured one if needed."""
    global _registry
    if _registry is None:
        _registry = ExecutorRegistry()
    return _registry


def set_registry(registry: ExecutorRegistry) -> None:
    global _registry
    _registry = registry


def reset_registry() -> None:
    """Reset the singleton (for testing)."""
    global _registry
    _registry = None


def get_executor(provider: str) -> BaseExecutor:
    return get_registry().get(provider)


def has_specialized_executor(provider: str) -> bool:
    return get_registry().has_specialized(provider)
