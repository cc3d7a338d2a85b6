from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from .config import ConfigError, PosecastConfig, load_config_or_default
from .provider import DescriberProvider, ImageProvider
from .providers.placeholder import PlaceholderProvider

Provider = Union[DescriberProvider, ImageProvider]


class ProviderRegistry:
    def __init__(self, config: PosecastConfig):
        self._config = config
        self._providers: dict[str, Provider] = {}

    @classmethod
    def from_config_file(cls, config_path: Optional[Path] = None) -> "ProviderRegistry":
        return cls(load_config_or_default(config_path))

    @property
    def config(self) -> PosecastConfig:
        return self._config

    def get_provider(self, name: str) -> Provider:
        if name in self._providers:
            return self._providers[name]

        provider = self._instantiate_provider(name)
        self._providers[name] = provider
        return provider

    def get_default_provider(self) -> Provider:
        return self.get_provider(self._config.default_provider)

    def _instantiate_provider(self, name: str) -> Provider:
        if name == "placeholder":
            return PlaceholderProvider(self._config.providers.placeholder)

        if name == "gemini":
            if self._config.providers.gemini is None:
                raise ConfigError(
                    "Provider 'gemini' is not configured in posecast.toml. "
                    "Add [providers.gemini] section."
                )
            from .providers.gemini import GeminiProvider

            return GeminiProvider(self._config.providers.gemini)

        raise ConfigError(
            f"Unknown provider: '{name}'. "
            f"Available providers: {sorted(self._config.provider_names())}"
        )
