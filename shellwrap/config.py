import os
import re
import json
import logging
from pathlib import Path
from typing import Any, Literal, Optional
from pydantic import BaseModel, Field, ValidationInfo, field_validator, model_validator

from shellwrap._verbosity import Verbosity, resolve_verbosity

APP_NAME = "shellwrap"

logger = logging.getLogger(__name__)

# XDG Paths - Explicit XDG resolution so ~/.config/ is used even on macOS
CONFIG_DIR = Path(os.getenv("XDG_CONFIG_HOME", Path.home() / ".config")) / APP_NAME
SETTINGS_FILE = CONFIG_DIR / "settings.json"
PROJECT_DIR_NAME = ".shellwrap"


def _ensure_dirs() -> None:
    """Create the config directory (idempotent)."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)


def _parse_env_pairs(raw: str) -> dict[str, str]:
    """Parse ``A=1,B=2`` or a JSON object into an ordered mapping."""
    raw = raw.strip()
    if raw.startswith("{"):
        return json.loads(raw)
    pairs: dict[str, str] = {}
    for item in raw.split(","):
        if not item.strip():
            continue
        key, sep, value = item.partition("=")
        if not sep:
            raise ValueError(f"default_env entry must be KEY=value, got '{item.strip()}'")
        pairs[key.strip()] = value.strip()
    return pairs


def normalize_umask(v: Any) -> str | None:
    """Validate an octal umask string; empty values mean unset."""
    if v is None or v == "":
        return None
    v = str(v)
    if not re.fullmatch(r"[0-7]{3,4}", v):
        raise ValueError(f"umask must be 3 or 4 octal digits (e.g. '022'), got '{v}'")
    return v


class Settings(BaseModel):
    # Rendering defaults
    default_env: dict[str, str] = Field(default_factory=dict)
    umask: Optional[str] = Field(default=None)
    # Executable -> prefix overrides for the /usr/bin/env launcher
    command_map: dict[str, str] = Field(default_factory=dict)

    # Outcome defaults
    output_verbosity: int = Field(default=Verbosity.INFO)
    raise_on_non_zero_exit: bool = Field(default=True)

    # CLI
    theme: Literal["light", "dark"] = Field(default="light")

    @field_validator("default_env", mode="before")
    @classmethod
    def _parse_default_env(cls, v: Any) -> Any:
        if v is None:
            return {}
        if isinstance(v, str):
            v = _parse_env_pairs(v)
        if isinstance(v, dict):
            return {str(k): str(val) for k, val in v.items()}
        return v

    @field_validator("umask", mode="before")
    @classmethod
    def _validate_umask(cls, v: Any) -> str | None:
        return normalize_umask(v)

    @field_validator("output_verbosity", mode="before")
    @classmethod
    def _resolve_output_verbosity(cls, v: Any) -> int:
        return resolve_verbosity(v)

    @model_validator(mode='before')
    @classmethod
    def fill_from_env(cls, data: dict, info: ValidationInfo) -> dict:
        """Env vars override all file-based values (highest precedence layer)."""
        if not isinstance(data, dict) or (info.context or {}).get("skip_env"):
            return data
        env_map = {
            "umask": "SHELLWRAP_UMASK",
            "output_verbosity": "SHELLWRAP_OUTPUT_VERBOSITY",
            "raise_on_non_zero_exit": "SHELLWRAP_RAISE_ON_NON_ZERO_EXIT",
            "theme": "SHELLWRAP_THEME",
            "default_env": "SHELLWRAP_DEFAULT_ENV",
        }

        for field, env_var in env_map.items():
            val = os.getenv(env_var)
            if val:
                data[field] = val

        command_map_env = os.getenv("SHELLWRAP_COMMAND_MAP")
        if command_map_env:
            data["command_map"] = json.loads(command_map_env)
        return data

    def save(self):
        """Save current settings to settings.json"""
        _ensure_dirs()
        with open(SETTINGS_FILE, "w") as f:
            f.write(self.model_dump_json(indent=2, exclude_none=True))


def find_project_config() -> Path | None:
    """Return .shellwrap/settings.json in cwd if it exists, else None."""
    candidate = Path.cwd() / PROJECT_DIR_NAME / "settings.json"
    return candidate if candidate.is_file() else None


def load_config() -> Settings:
    data: dict = {}

    # Layer 1: User config (~/.config/shellwrap/settings.json)
    if SETTINGS_FILE.exists():
        with open(SETTINGS_FILE, "r") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                logger.warning("Error loading %s: %s. Using defaults.", SETTINGS_FILE, e)

    # Layer 2: Project config (<cwd>/.shellwrap/settings.json) — shallow merge
    project_config = find_project_config()
    if project_config is not None:
        with open(project_config, "r") as f:
            try:
                data |= json.load(f)
            except json.JSONDecodeError as e:
                logger.warning("Error loading project config %s: %s. Skipping.", project_config, e)

    # Layer 3: Env vars (handled by fill_from_env model_validator)
    return Settings.model_validate(data)


# Lazy settings singleton — loaded on first access, not at import time.
_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the process-wide Settings instance, loading it on first call."""
    global _settings
    if _settings is None:
        _settings = load_config()
    return _settings


def configure(**overrides: Any) -> Settings:
    """Replace the process-wide Settings with a validated copy carrying *overrides*."""
    global _settings
    data = get_settings().model_dump()
    data.update(overrides)
    # Explicit overrides outrank the env layer already folded into the current instance
    _settings = Settings.model_validate(data, context={"skip_env": True})
    return _settings


def reset_settings() -> None:
    """Forget the process-wide Settings; the next get_settings() reloads defaults."""
    global _settings
    _settings = None


def __getattr__(name: str):
    """Lazy module attribute — ``from shellwrap.config import settings`` works without import-time side effects."""
    if name == "settings":
        return get_settings()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
