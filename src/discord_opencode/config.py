"""Configuration loader with YAML parsing, env-var interpolation, and Pydantic validation."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

DEFAULT_CONFIG_PATH = Path("~/.config/opencode/discord_opencode.yaml").expanduser()
CONFIG_PATH_ENV = "DISCORD_OPENCODE_CONFIG_PATH"
DEFAULT_MAX_FILE_SIZE = 8 * 1024 * 1024


class AppConfig(BaseModel):
    log_level: str = "INFO"
    discord_token: str = ""
    default_channel_id: Optional[str] = None
    database_path: str = Field("~/.discord_opencode/sessions.db", validate_default=True)
    allowed_file_paths: list[str] = Field(
        default_factory=lambda: ["~/projects", "/tmp"], validate_default=True
    )
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    enable_session_store: bool = True
    require_remote_approval: bool = True
    allowed_tools: Optional[list[str]] = None

    @field_validator("database_path")
    @classmethod
    def _expand_database_path(cls, value: str) -> str:
        return str(Path(value).expanduser())

    @field_validator("allowed_file_paths")
    @classmethod
    def _expand_allowed_paths(cls, value: list[str]) -> list[str]:
        return [str(Path(p.strip()).expanduser()) for p in value if p.strip()]

    @field_validator("max_file_size")
    @classmethod
    def _positive_size(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("max_file_size must be positive")
        return value

    @field_validator("default_channel_id", mode="before")
    @classmethod
    def _empty_channel_is_none(cls, value: object) -> object:
        if value == "":
            return None
        if isinstance(value, int):
            return str(value)
        return value


_ENV_VAR_PATTERN = re.compile(r"\$\{(\w+)\}")


def _interpolate_env_vars(text: str) -> str:
    """Replace ${VAR_NAME} patterns with environment variable values."""

    def _replace(match: re.Match) -> str:
        value = os.environ.get(match.group(1))
        if value is None:
            return match.group(0)
        return value

    return _ENV_VAR_PATTERN.sub(_replace, text)


def _split_list(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


def _env_overrides() -> dict:
    """Collect DISCORD_OPENCODE_* overrides; these win over the config file."""
    overrides: dict = {}

    simple = {
        "DISCORD_TOKEN": "discord_token",
        "DISCORD_OPENCODE_DEFAULT_CHANNEL_ID": "default_channel_id",
        "DISCORD_OPENCODE_DB_PATH": "database_path",
    }
    for env_name, field_name in simple.items():
        value = os.environ.get(env_name)
        if value:
            overrides[field_name] = value

    if paths := os.environ.get("DISCORD_OPENCODE_ALLOWED_PATHS"):
        overrides["allowed_file_paths"] = _split_list(paths)
    if tools := os.environ.get("DISCORD_OPENCODE_ALLOWED_TOOLS"):
        overrides["allowed_tools"] = _split_list(tools)

    max_size = os.environ.get("DISCORD_OPENCODE_MAX_FILE_SIZE", "")
    if max_size.isdigit() and int(max_size) > 0:
        overrides["max_file_size"] = int(max_size)

    # Anything other than the literal "false" enables the flag.
    flags = {
        "DISCORD_OPENCODE_ENABLE_SESSIONS": "enable_session_store",
        "DISCORD_OPENCODE_REQUIRE_REMOTE_APPROVAL": "require_remote_approval",
    }
    for env_name, field_name in flags.items():
        value = os.environ.get(env_name)
        if value:
            overrides[field_name] = value != "false"

    return overrides


def resolve_config_path(config_path: str | Path | None = None) -> Path:
    if config_path:
        return Path(config_path).expanduser()
    if env_path := os.environ.get(CONFIG_PATH_ENV):
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_PATH


def load_config(config_path: str | Path | None = None, env_path: str | Path = ".env") -> AppConfig:
    """Load and validate configuration from YAML file with env-var interpolation."""
    env_file = Path(env_path)
    if env_file.exists():
        load_dotenv(env_file)

    config_file = resolve_config_path(config_path)
    if not config_file.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_file}. "
            "Run 'discord-opencode setup' to create a template."
        )

    raw_text = config_file.read_text(encoding="utf-8")
    data = yaml.safe_load(_interpolate_env_vars(raw_text)) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration at {config_file} must be a mapping")

    data.update(_env_overrides())
    return AppConfig(**data)


def write_template_config(config_path: str | Path, force: bool = False) -> Path:
    """Write a template config populated with default values.

    Raises FileExistsError if the file exists and ``force`` is not set.
    """
    target = Path(config_path).expanduser()
    if target.exists() and not force:
        raise FileExistsError(f"Config already exists at {target}. Use --force to overwrite.")

    target.parent.mkdir(parents=True, exist_ok=True, mode=0o700)

    template = {
        "discord_token": "",
        "default_channel_id": "",
        "database_path": "~/.discord_opencode/sessions.db",
        "allowed_file_paths": ["~/projects", "/tmp"],
        "max_file_size": DEFAULT_MAX_FILE_SIZE,
        "enable_session_store": True,
        "require_remote_approval": True,
        "log_level": "INFO",
    }
    target.write_text(yaml.safe_dump(template, sort_keys=False), encoding="utf-8")
    return target
