from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..config import ConfigError, ReelifyConfig, find_config, load_config
from .provider import AnalysisProvider
from .providers.fallback import FallbackAnalysisProvider


class ProviderRegistry:
    def __init__(self, config: ReelifyConfig):
        self._config = config
        self._providers: dict[str, AnalysisProvider] = {}

    @classmethod
    def from_config_file(cls, config_path: Optional[Path] = None) -> "ProviderRegistry":
        if config_path is None:
            config_path = find_config()
        config = load_config(config_path)
        return cls(config)

    @property
    def config(self) -> ReelifyConfig:
        return self._config

    def get_provider(self, name: str) -> AnalysisProvider:
        if name in self._providers:
            return self._providers[name]

        provider = self._instantiate_provider(name)
        self._providers[name] = provider
        return provider

    def get_default_provider(self) -> AnalysisProvider:
        return self.get_provider(self._config.default_provider)

    def _instantiate_provider(self, name: str) -> AnalysisProvider:
        if name == "fallback":
            return FallbackAnalysisProvider()

        if name == "openai":
            if self._config.providers.openai is None:
                raise ConfigError(
                    "Provider 'openai' is not configured in reelify.toml. "
                    "Add a [providers.openai] section."
                )
            from .providers.openai_vision import OpenAIVisionProvider

            return OpenAIVisionProvider(self._config.providers.openai)

        available = self._config.available_providers()
        raise ConfigError(
            f"Unknown provider: '{name}'. Available providers: {sorted(available)}"
        )
