"""Configuration manager for the Weam integrator using TOML files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict

import toml

logger = logging.getLogger(__name__)


def _config_file() -> Path:
    from . import config

    return config.CONFIG_FILE


# Default configurations for each provider
DEFAULT_CONFIGS = {
    "openai": {
        "provider": "openai",
        "model": "gpt-4",
        "api_key": "",
        "endpoint": "https://api.openai.com/v1/chat/completions",
    },
    "anthropic": {
        "provider": "anthropic",
        "model": "claude-3-5-sonnet-20241022",
        "api_key": "",
    },
    "ollama": {
        "provider": "ollama",
        "model": "qwen2.5-coder:7b",
        "endpoint": "http://127.0.0.1:11434/api/generate",
    },
}

ALL_PROVIDERS = list(DEFAULT_CONFIGS)


def load_full_config() -> Dict[str, Any]:
    """Load the entire TOML config (all sections)."""
    config_file = _config_file()
    if not config_file.exists():
        return {}
    try:
        with open(config_file, "r") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", config_file, exc)
        return {}


def load_config() -> Dict[str, Any]:
    """Load the ``[llm]`` section.

    Returns:
        Provider settings. Falls back to OpenAI defaults if the file
        doesn't exist or has no ``[llm]`` table.
    """
    return load_full_config().get("llm", DEFAULT_CONFIGS["openai"].copy())


def _save_full_config(config: Dict[str, Any]) -> bool:
    """Write the entire config dict, preserving all sections."""
    config_file = _config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    try:
        with open(config_file, "w") as f:
            toml.dump(config, f)
        return True
    except OSError as exc:
        logger.warning("Could not write config %s: %s", config_file, exc)
        return False


def save_config(provider: str, model: str, api_key: str = "", endpoint: str = "") -> bool:
    """Save LLM configuration to the TOML file.

    Args:
        provider: Provider name (openai, anthropic, ollama)
        model: Model name
        api_key: API key for cloud providers
        endpoint: Custom endpoint URL

    Returns:
        True if saved successfully, False otherwise
    """
    config = load_full_config()

    config["llm"] = {
        "provider": provider,
        "model": model,
    }
    if api_key:
        config["llm"]["api_key"] = api_key
    if endpoint:
        config["llm"]["endpoint"] = endpoint

    return _save_full_config(config)


def clear_config() -> bool:
    """Remove the ``[llm]`` section, resetting to defaults."""
    config = load_full_config()
    config.pop("llm", None)
    return _save_full_config(config)


def get_provider_config(provider: str) -> Dict[str, Any]:
    """Get default configuration for a specific provider."""
    return DEFAULT_CONFIGS.get(provider, DEFAULT_CONFIGS["openai"]).copy()
