"""Configuration system for dcut.

Layered config loading (lowest to highest priority):
1. config/default.toml (shipped with package)
2. ~/.config/dcut/config.toml (user-level)
3. ./dcut.toml (project-level)
4. Environment variables (DCUT_LIPSYNC__API_KEY, etc.)
5. CLI flags
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, TypeAdapter
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

_PACKAGE_ROOT = Path(__file__).resolve().parent.parent.parent.parent
_DEFAULT_CONFIG = _PACKAGE_ROOT / "config" / "default.toml"
_USER_CONFIG = Path.home() / ".config" / "dcut" / "config.toml"
_PROJECT_CONFIG = Path("dcut.toml")

# (video, audio) bitrates per quality preset
QUALITY_BITRATES: dict[str, tuple[str, str]] = {
    "low": ("500k", "64k"),
    "medium": ("1000k", "128k"),
    "high": ("2000k", "192k"),
    "ultra": ("4000k", "320k"),
}


class AssetsConfig(BaseModel):
    characters_dir: Path = Path("./assets/characters/videos")
    meta_dir: Path = Path("./assets/meta-videos")


class LipSyncConfig(BaseModel):
    api_key: str | None = None
    api_base: str = "https://api.sync.so/v2"
    model: str = "lipsync-2"
    sync_mode: str = "bounce"
    concurrency: int = 1  # jobs in flight at once; the service rate-limits
    batch_pause: float = 1.0  # seconds between sync-lane batches
    request_timeout: float = 60.0

    # Polling: delay = min(poll_initial + poll_step * attempt, poll_max)
    poll_initial: float = 2.0
    poll_step: float = 1.0
    poll_max: float = 10.0
    poll_max_attempts: int = 600
    poll_timeout: float = 3600.0
    poll_failure_budget: int = 5  # consecutive transient poll errors
    poll_error_pause: float = 5.0


class StagingConfig(BaseModel):
    access_token: str | None = None
    folder: str = "/sync-temp"


class RenderConfig(BaseModel):
    width: int = 1920
    height: int = 1080
    fps: int = 24
    crf: int = 23
    preset: str = "medium"
    video_codec: str = "libx264"
    audio_codec: str = "aac"
    # Bitrate preset for the final concatenation; None keeps constant-quality crf
    quality: Literal["low", "medium", "high", "ultra"] | None = None

    @property
    def bitrates(self) -> tuple[str, str] | None:
        return QUALITY_BITRATES[self.quality] if self.quality else None


class DCutConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DCUT_",
        env_nested_delimiter="__",
    )

    assets: AssetsConfig = AssetsConfig()
    lipsync: LipSyncConfig = LipSyncConfig()
    staging: StagingConfig = StagingConfig()
    render: RenderConfig = RenderConfig()
    workspace_dir: Path = Path("./dcut_workspace")
    plain_workers: int | None = None  # None = one per CPU
    keep_temp: bool = False

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # TOML layers arrive as init kwargs; environment variables override them
        return env_settings, init_settings, dotenv_settings, file_secret_settings


def _load_toml(path: Path) -> dict:
    """Load a TOML file if it exists, return empty dict otherwise."""
    if path.is_file():
        with open(path, "rb") as f:
            return tomllib.load(f)
    return {}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base."""
    merged = base.copy()
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(**cli_overrides: object) -> DCutConfig:
    """Load configuration from all layers and merge.

    Args:
        **cli_overrides: Direct overrides from CLI flags. Keys can be
            dot-separated (e.g. lipsync.concurrency=2).
    """
    config_data: dict = {}
    for path in (_DEFAULT_CONFIG, _USER_CONFIG, _PROJECT_CONFIG):
        layer = _load_toml(path)
        config_data = _deep_merge(config_data, layer)

    # Flatten 'general' section into top-level
    if "general" in config_data:
        general = config_data.pop("general")
        config_data = _deep_merge(config_data, general)

    overrides: dict = {}
    for key, value in cli_overrides.items():
        if value is None:
            continue
        parts = key.split(".")
        target = overrides
        for part in parts[:-1]:
            target = target.setdefault(part, {})
        target[parts[-1]] = value

    # Env vars are handled by Pydantic BaseSettings and beat the TOML layers
    config = DCutConfig(**config_data)
    return _apply_overrides(config, overrides)


def _apply_overrides(config: DCutConfig, overrides: dict) -> DCutConfig:
    """Apply CLI values on top of every other layer, environment included."""
    update: dict = {}
    for key, value in overrides.items():
        current = getattr(config, key)
        if isinstance(current, BaseModel) and isinstance(value, dict):
            merged = _deep_merge(current.model_dump(), value)
            update[key] = type(current).model_validate(merged)
        else:
            annotation = DCutConfig.model_fields[key].annotation
            update[key] = TypeAdapter(annotation).validate_python(value)
    return config.model_copy(update=update)
