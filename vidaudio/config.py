"""
vidaudio.config - YAML config loading, profile merging, validation.

Handles loading vidaudio.yaml, applying profile defaults, and validating
all parameters. Precedence: command line > config file > profile.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from vidaudio.exceptions import ConfigError
from vidaudio.job import JobOptions, split_mode

CONFIG_FILENAME = "vidaudio.yaml"


class VidAudioConfig(BaseModel):
    """Resolved configuration for an extraction run."""

    profile: str = "default"

    speed: float = Field(default=1.0, gt=0.0, allow_inf_nan=False)
    downsample: bool = False
    split_seconds: int | None = Field(default=None, gt=0)

    output_dir: Path = Path(".")
    ffmpeg_binary: str = "ffmpeg"

    config_path: Path | None = None

    @field_validator("ffmpeg_binary")
    @classmethod
    def validate_ffmpeg_binary(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("ffmpeg_binary must not be empty")
        return v

    def job_options(self) -> JobOptions:
        return JobOptions(
            speed=self.speed,
            downsample=self.downsample,
            split=split_mode(self.split_seconds),
        )


BUILTIN_PROFILES: dict[str, dict[str, Any]] = {
    "default": {
        "speed": 1.0,
        "downsample": False,
        "split_seconds": None,
    },
    "voice": {
        "speed": 1.0,
        "downsample": True,
        "split_seconds": None,
    },
    "podcast": {
        "speed": 1.25,
        "downsample": True,
        "split_seconds": None,
    },
    "chapters": {
        "speed": 1.0,
        "downsample": False,
        "split_seconds": 600,
    },
}


def load_profile(name: str, profiles_dir: Path | None = None) -> dict[str, Any]:
    """Load a profile by name, checking custom profiles first."""
    if profiles_dir and profiles_dir.exists():
        profile_file = profiles_dir / f"{name}.yaml"
        if profile_file.exists():
            try:
                with open(profile_file) as f:
                    profile = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {profile_file}: {e}") from e
            if not isinstance(profile, dict):
                raise ConfigError(f"{profile_file} must contain a mapping")
            return profile
    if name in BUILTIN_PROFILES:
        return BUILTIN_PROFILES[name].copy()
    raise ConfigError(f"Unknown profile: {name}")


def merge_config(overrides: dict[str, Any], base: dict[str, Any]) -> dict[str, Any]:
    """Merge overrides onto base. None values in overrides do not override."""
    merged = base.copy()
    for key, value in overrides.items():
        if value is not None:
            merged[key] = value
    return merged


def resolve_profile(name: str, profiles_dir: Path | None = None) -> dict[str, Any]:
    """Load a profile and fold in the profile it inherits from, if any."""
    profile = load_profile(name, profiles_dir)
    parent_name = profile.pop("inherits", None)
    if parent_name:
        parent = load_profile(parent_name, profiles_dir)
        parent.pop("inherits", None)
        profile = merge_config(profile, parent)
    return profile


def find_config(start: Path | None = None) -> Path | None:
    """Look for vidaudio.yaml in start (default: cwd) and its parents."""
    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.exists():
            return candidate
        if current == current.parent:
            return None
        current = current.parent


def load_config(
    config_path: Path | None = None,
    profile: str | None = None,
    overrides: dict[str, Any] | None = None,
) -> VidAudioConfig:
    """Load and validate configuration.

    Args:
        config_path: Explicit config file; None means no file (defaults only)
        profile: Profile name overriding the file's ``profile`` key
        overrides: Values (e.g. from the command line) applied last; None is ignored

    Returns:
        Validated configuration

    Raises:
        ConfigError: If the file is missing, unreadable, or invalid
    """
    raw_config: dict[str, Any] = {}
    profiles_dir = None
    if config_path is not None:
        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")
        try:
            with open(config_path) as f:
                raw_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e
        if not isinstance(raw_config, dict):
            raise ConfigError(f"{config_path} must contain a mapping")
        output_dir = raw_config.get("output_dir")
        if output_dir and not Path(output_dir).is_absolute():
            raw_config["output_dir"] = config_path.parent / output_dir
        candidate = config_path.parent / "profiles"
        profiles_dir = candidate if candidate.exists() else None

    profile_name = profile or raw_config.get("profile", "default")
    merged = merge_config(raw_config, resolve_profile(profile_name, profiles_dir))
    merged = merge_config(overrides or {}, merged)
    merged["profile"] = profile_name
    merged["config_path"] = config_path

    try:
        return VidAudioConfig(**merged)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def create_default_config(profile: str = "default") -> dict[str, Any]:
    """Create a default config for a new working directory."""
    defaults = {
        "profile": profile,
        "output_dir": ".",
        "ffmpeg_binary": "ffmpeg",
    }
    if profile in BUILTIN_PROFILES:
        defaults = merge_config(BUILTIN_PROFILES[profile], defaults)
    return defaults


def write_config(config: dict[str, Any], path: Path) -> None:
    """Write configuration to a YAML file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False)
