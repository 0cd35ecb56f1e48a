"""Configuration paths and LLM settings for the Weam integrator."""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(os.environ.get("WEAMINT_HOME", str(Path.home() / ".weamint"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"

# Generated artifacts land in a directory of this name, outside the scanned app
OUTPUT_DIR_NAME = "weam-integration"
BACKUP_SUFFIX = ".bak"
LOCK_FILE_NAME = ".weamint.lock"

# Loaded from ~/.weamint/config.toml (set via `weamint config set-llm`)
from .config_manager import load_config  # noqa: E402

_toml_config = load_config()

API_KEY_ENV_VARS = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}

LLM_PROVIDER = os.environ.get("WEAMINT_LLM_PROVIDER") or _toml_config.get("provider", "openai")
LLM_MODEL = os.environ.get("WEAMINT_LLM_MODEL") or _toml_config.get("model", "gpt-4")
LLM_API_KEY = os.environ.get(API_KEY_ENV_VARS.get(LLM_PROVIDER, ""), "") or _toml_config.get("api_key", "")
LLM_ENDPOINT = _toml_config.get("endpoint", "")


def ensure_base_dirs() -> None:
    """Create the settings directory if needed."""
    BASE_DIR.mkdir(parents=True, exist_ok=True)
