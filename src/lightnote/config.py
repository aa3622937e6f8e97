"""Unified configuration loaded from .lightnote.toml, env vars, and CLI flags.

Loading order: defaults → TOML file → env vars → CLI flags.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".lightnote.toml"
CONFIG_SEARCH_PATHS = [
    Path("."),
]
GLOBAL_CONFIG_PATH = Path.home() / ".config" / "lightnote" / "config.toml"

DEFAULT_TRACKED_ENTITIES = ["charlotte", "mum", "work", "sleep"]
DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."


def parse_tracked_entities(raw: str | list[str] | None) -> list[str]:
    """Normalise a comma-separated (or list) entity setting.

    Lowercases, trims, drops blanks and duplicates, keeps first-seen order.
    """
    if raw is None:
        return list(DEFAULT_TRACKED_ENTITIES)
    items = raw.split(",") if isinstance(raw, str) else raw
    seen: list[str] = []
    for item in items:
        name = str(item).strip().lower()
        if name and name not in seen:
            seen.append(name)
    return seen


class LLMSectionConfig(BaseModel):
    """[llm] section. ``url`` and ``model`` are required to make a call."""

    url: str = ""
    token: str = ""
    model: str = ""
    timeout: float = 60.0
    temperature: float = 0.2
    system: str = DEFAULT_SYSTEM_PROMPT

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.model)


class TrackingConfig(BaseModel):
    """[tracking] section."""

    entities: list[str] = Field(default_factory=lambda: list(DEFAULT_TRACKED_ENTITIES))

    @field_validator("entities", mode="before")
    @classmethod
    def _split_entities(cls, value: object) -> list[str]:
        if isinstance(value, (str, list)):
            return parse_tracked_entities(value)
        return value  # type: ignore[return-value]


class DigestSectionConfig(BaseModel):
    """[digest] section."""

    min_words: int = 3
    low_mood_threshold: float = -0.2
    sample_size: int = 18


class ThemesSectionConfig(BaseModel):
    """[themes] section."""

    pin_cache: bool = False


class StorageConfig(BaseModel):
    """[storage] section."""

    directory: str = "./.lightnote"
    entries_file: str = "entries.json"

    @property
    def entries_path(self) -> Path:
        path = Path(self.entries_file)
        return path if path.is_absolute() else Path(self.directory) / path


class LightnoteConfig(BaseModel):
    """Top-level configuration model."""

    llm: LLMSectionConfig = Field(default_factory=LLMSectionConfig)
    tracking: TrackingConfig = Field(default_factory=TrackingConfig)
    digest: DigestSectionConfig = Field(default_factory=DigestSectionConfig)
    themes: ThemesSectionConfig = Field(default_factory=ThemesSectionConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)


def load_config(path: str | Path | None = None) -> LightnoteConfig:
    """Load configuration from a TOML file, then overlay environment variables.

    Search order:
    1. Explicit path (if provided)
    2. .lightnote.toml in CWD
    3. ~/.config/lightnote/config.toml

    Args:
        path: Explicit path to a TOML file.

    Returns:
        Merged LightnoteConfig.
    """
    data: dict[str, object] = {}

    if path is not None:
        toml_path = Path(path)
        if toml_path.exists():
            data = _load_toml(toml_path)
        else:
            logger.warning("Config file not found: %s", toml_path)
    else:
        for search_dir in CONFIG_SEARCH_PATHS:
            candidate = search_dir / CONFIG_FILENAME
            if candidate.exists():
                data = _load_toml(candidate)
                logger.info("Loaded config from %s", candidate)
                break
        if not data and GLOBAL_CONFIG_PATH.exists():
            data = _load_toml(GLOBAL_CONFIG_PATH)
            logger.info("Loaded config from %s", GLOBAL_CONFIG_PATH)

    config = LightnoteConfig.model_validate(data) if data else LightnoteConfig()
    return _apply_env_vars(config)


def merge_cli_overrides(config: LightnoteConfig, **cli_kwargs: object) -> LightnoteConfig:
    """Overlay explicitly-set CLI flags onto the config.

    Only overrides values where the flag was provided (not None).
    """
    data = config.model_dump()

    mapping: dict[str, tuple[str, str]] = {
        "llm_url": ("llm", "url"),
        "llm_model": ("llm", "model"),
        "llm_timeout": ("llm", "timeout"),
        "track": ("tracking", "entities"),
        "storage_directory": ("storage", "directory"),
        "entries_file": ("storage", "entries_file"),
    }

    for key, value in cli_kwargs.items():
        if value is None:
            continue
        if key in mapping:
            section, field = mapping[key]
            data[section][field] = value

    return LightnoteConfig.model_validate(data)


def _load_toml(path: Path) -> dict[str, object]:
    """Load a TOML file and return the data dict."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return {}


def _apply_env_vars(config: LightnoteConfig) -> LightnoteConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    env_mapping: dict[str, tuple[str, str]] = {
        "LIGHTNOTE_LLM_URL": ("llm", "url"),
        "LIGHTNOTE_LLM_TOKEN": ("llm", "token"),
        "LIGHTNOTE_LLM_MODEL": ("llm", "model"),
        "LIGHTNOTE_TRACK": ("tracking", "entities"),
        "LIGHTNOTE_STORAGE_DIR": ("storage", "directory"),
        "LIGHTNOTE_ENTRIES_FILE": ("storage", "entries_file"),
    }

    for env_var, (section, field) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            data[section][field] = value

    timeout_raw = os.environ.get("LIGHTNOTE_LLM_TIMEOUT")
    if timeout_raw is not None:
        try:
            data["llm"]["timeout"] = float(timeout_raw)
        except ValueError:
            logger.warning("Ignoring non-numeric LIGHTNOTE_LLM_TIMEOUT=%r", timeout_raw)

    return LightnoteConfig.model_validate(data)
