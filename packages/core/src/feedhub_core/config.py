import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "store_path": ".feedhub.db",
    "tracker_timeout": 10,  # seconds per GitHub request
    "ai_enabled": False,
    "ai_provider": "anthropic",
    "ai_model": None,  # None = provider default
    "ai_temperature": None,  # None = provider default
    "api_host": "127.0.0.1",
    "api_port": 8000,
}


@dataclass(frozen=True)
class AIConfig:
    """Advisory AI settings, resolved once per operation and passed explicitly."""

    enabled: bool = False
    provider: str = "anthropic"
    api_key: str | None = None
    model: str | None = None
    temperature: float | None = None


def load_config(config_path: str = ".feedhub.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .feedhub.yml in the current directory
      3. CLI argument overrides
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        if not isinstance(file_config, dict):
            raise ValueError(f"{config_path} must contain a YAML mapping.")
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    # Credentials always come from the environment, never from the file.
    config["github_token"] = os.environ.get("GITHUB_TOKEN")
    config["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")
    config["openai_api_key"] = os.environ.get("OPENAI_API_KEY")

    return config


def ai_config_from(config: dict) -> AIConfig:
    provider = config.get("ai_provider") or "anthropic"
    return AIConfig(
        enabled=bool(config.get("ai_enabled")),
        provider=provider,
        api_key=config.get(f"{provider}_api_key"),
        model=config.get("ai_model"),
        temperature=config.get("ai_temperature"),
    )
