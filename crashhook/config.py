"""
Configuration loading and validation for Crashhook.

Settings come from three places, highest precedence first: command-line
flags, the CRASHHOOK_WEBHOOK environment variable (webhook URL only), and
an optional YAML file.
"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from crashhook.classifier import WatchSet, WatchTarget
from crashhook.core import DEFAULT_TIMEOUT

WEBHOOK_ENV_VAR = "CRASHHOOK_WEBHOOK"


class Config(BaseModel):
    """Main configuration for Crashhook."""
    webhook: str | None = None
    programs: list[str] = Field(default_factory=list)  # "name" or "group:name"
    notifier: str = "feishu"
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    headers: dict[str, str] = Field(default_factory=dict)
    method: str = "POST"  # webhook notifier
    channel: str | None = None  # slack notifier
    username: str | None = None  # slack notifier
    log_level: str = "INFO"
    log_file: str | None = None

    @field_validator("programs")
    @classmethod
    def validate_programs(cls, programs: list[str]) -> list[str]:
        for program in programs:
            WatchTarget.parse(program)
        return programs

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, level: str) -> str:
        level = level.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {level}")
        return level

    @field_validator("method")
    @classmethod
    def validate_method(cls, method: str) -> str:
        method = method.upper()
        if method not in {"POST", "PUT"}:
            raise ValueError(f"Unsupported HTTP method: {method}")
        return method

    def watch_set(self) -> WatchSet:
        return WatchSet.from_specs(self.programs)

    def notifier_config(self) -> dict[str, Any]:
        """Config dictionary handed to the notifier factory."""
        config: dict[str, Any] = {
            "timeout": self.timeout,
            "headers": dict(self.headers),
            "method": self.method,
        }
        for key in ("channel", "username"):
            value = getattr(self, key)
            if value:
                config[key] = value
        return config


def load_config(config_path: str | Path) -> Config:
    """
    Load and validate configuration from YAML file.

    Args:
        config_path: Path to the YAML configuration file

    Returns:
        Validated Config object

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is invalid
        yaml.YAMLError: If YAML parsing fails
    """
    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with path.open('r', encoding='utf-8') as f:
        raw_config: dict[str, Any] | None = yaml.safe_load(f)

    try:
        return Config.model_validate(raw_config or {})
    except ValidationError as e:
        raise ValueError(f"Configuration validation error: {e}") from e


def resolve_webhook(flag: str | None, config: Config | None = None) -> str | None:
    """
    Pick the webhook URL: flag, then environment, then config file.

    Empty strings count as unset at every level.
    """
    if flag:
        return flag

    env_value = os.environ.get(WEBHOOK_ENV_VAR)
    if env_value:
        return env_value

    if config is not None and config.webhook:
        return config.webhook
    return None


def build_config(
    config_path: str | Path | None = None,
    webhook: str | None = None,
    programs: list[str] | None = None,
    overrides: dict[str, Any] | None = None,
) -> Config:
    """
    Merge the config file, environment and command-line values.

    Args:
        config_path: Optional YAML file
        webhook: --webhook flag value
        programs: --program flag values, appended to the file's programs
        overrides: Other flag values; None entries are ignored

    Raises:
        FileNotFoundError: If config_path doesn't exist
        ValueError: If the merged config is invalid
    """
    base = load_config(config_path) if config_path else Config()

    data = base.model_dump()
    data["programs"] = [*base.programs, *(programs or [])]
    data.update({k: v for k, v in (overrides or {}).items() if v is not None})
    data["webhook"] = resolve_webhook(webhook, base)

    try:
        return Config.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Configuration validation error: {e}") from e
