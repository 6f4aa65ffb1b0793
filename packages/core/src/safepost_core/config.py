import os
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "model": "anthropic",
    "plan": "starter",
    "user_id": None,  # None = resolve from SAFEPOST_USER_ID or the login name
    "store": "memory",  # "memory" | "sqlite"
    "store_path": ".safepost.db",
    "session_path": ".safepost_session.json",
    "cache_ttl_seconds": 60,
    "content_type": "social_media_post",
    "platform": "general",
    "plan_limits": {},  # plan -> monthly check limit (null = unlimited); merged over the built-in table
    "history_limits": {},  # plan -> visible history depth; merged over the built-in table
}


def load_config(config_path: str = ".safepost.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .safepost.yml in the current directory
      3. CLI argument overrides
    """
    config = {
        **DEFAULT_CONFIG,
        "plan_limits": dict(DEFAULT_CONFIG["plan_limits"]),
        "history_limits": dict(DEFAULT_CONFIG["history_limits"]),
    }

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    # Resolve credentials from environment variables
    config["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")
    config["openai_api_key"] = os.environ.get("OPENAI_API_KEY")
    if os.environ.get("SAFEPOST_USER_ID"):
        config["user_id"] = os.environ["SAFEPOST_USER_ID"]

    return config


def get_analyzer(config: dict):
    """Instantiate the analysis provider named by ``config["model"]``."""
    from safepost_core.providers.anthropic import AnthropicAnalyzer
    from safepost_core.providers.openai import OpenAIAnalyzer

    model = config["model"]
    if model == "anthropic":
        return AnthropicAnalyzer(api_key=config["anthropic_api_key"])
    if model == "openai":
        return OpenAIAnalyzer(api_key=config["openai_api_key"])
    raise ValueError(f"Unknown model provider: {model!r}. Choose 'anthropic' or 'openai'.")
