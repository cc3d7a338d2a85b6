from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

CONFIG_FILENAME = "posecast.toml"
ALLOWED_BATCH_SIZES = (5, 10)

DEFAULT_CONFIG_TOML = """\
default_provider = "placeholder"
max_batch_size = 5

[providers.placeholder]

# [providers.gemini]
# api_key_env = "GEMINI_API_KEY"
# vision_model = "gemini-2.5-flash"
# image_model = "gemini-2.5-flash-image"
"""


class PlaceholderProviderConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    width: int = 768
    height: int = 768


class GeminiProviderConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    api_key_env: str = "GEMINI_API_KEY"
    vision_model: str = "gemini-2.5-flash"
    image_model: str = "gemini-2.5-flash-image"


class ProvidersConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    placeholder: Optional[PlaceholderProviderConfig] = None
    gemini: Optional[GeminiProviderConfig] = None


class PosecastConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    default_provider: str = "placeholder"
    max_batch_size: int = 5
    providers: ProvidersConfig = ProvidersConfig()

    @field_validator("default_provider")
    @classmethod
    def validate_default_provider(cls, v: str) -> str:
        if not v:
            raise ValueError("default_provider cannot be empty")
        return v

    @field_validator("max_batch_size")
    @classmethod
    def validate_max_batch_size(cls, v: int) -> int:
        if v not in ALLOWED_BATCH_SIZES:
            raise ValueError(
                f"max_batch_size must be one of {list(ALLOWED_BATCH_SIZES)}, got {v}"
            )
        return v

    @model_validator(mode="after")
    def check_default_provider_exists(self) -> "PosecastConfig":
        provider_names = self.provider_names()
        if self.default_provider not in provider_names:
            raise ValueError(
                f"default_provider '{self.default_provider}' is not configured. "
                f"Available providers: {sorted(provider_names)}"
            )
        return self

    def provider_names(self) -> set[str]:
        names = {"placeholder"}
        if self.providers.gemini is not None:
            names.add("gemini")
        return names


class ConfigError(Exception):
    def __init__(self, message: str, path: Optional[Path] = None, line: Optional[int] = None):
        self.path = path
        self.line = line
        if path:
            loc = f"{path}"
            if line:
                loc += f":{line}"
            message = f"{loc}: {message}"
        super().__init__(message)


def load_config(config_path: Path) -> PosecastConfig:
    if not config_path.exists():
        raise ConfigError(
            f"Config file not found: {config_path}\n"
            "Run 'posecast init' to create one",
            path=config_path,
        )

    try:
        import tomllib
    except ImportError:
        import tomli as tomllib  # type: ignore

    try:
        text = config_path.read_text()
        data = tomllib.loads(text)
    except Exception as e:
        raise ConfigError(f"Failed to parse TOML: {e}", path=config_path) from e

    try:
        return PosecastConfig.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid configuration: {e}", path=config_path) from e


def find_config(start_dir: Optional[Path] = None) -> Path:
    if start_dir is None:
        start_dir = Path.cwd()

    current = start_dir.resolve()
    while current != current.parent:
        candidate = current / CONFIG_FILENAME
        if candidate.exists():
            return candidate
        current = current.parent

    return start_dir / CONFIG_FILENAME


def load_config_or_default(config_path: Optional[Path] = None) -> PosecastConfig:
    """Load the nearest config, falling back to defaults when none exists."""
    if config_path is None:
        config_path = find_config()
        if not config_path.exists():
            return PosecastConfig()
    return load_config(config_path)


def write_default_config(path: Path, force: bool = False) -> Path:
    if path.exists() and not force:
        raise FileExistsError(path)
    path.write_text(DEFAULT_CONFIG_TOML, encoding="utf-8")
    return path
