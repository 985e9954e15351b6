import os
from typing import Optional
from pathlib import Path

import yaml

DEFAULT_CONFIG: dict = {
    "model": "gemini",
    "store_path": ".prinsight.db",
    "reports_dir": "reports",
    "browser_executable": None,  # None = let Playwright use its bundled Chromium
    "render_timeout_ms": 30000,
    "max_patch_chars": 20000,
    "sync_limit": 50,
}

# Provider name -> environment variable holding its API key.
API_KEY_ENV = {
    "gemini": "GEMINI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
}


def load_config(config_path: str = ".prinsight.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .prinsight.yml in the current directory
      3. CLI argument overrides
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    # Credentials come from the environment only, never from the file.
    config["github_token"] = os.environ.get("GITHUB_TOKEN")
    config["gemini_api_key"] = os.environ.get("GEMINI_API_KEY")
    config["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")
    config["openai_api_key"] = os.environ.get("OPENAI_API_KEY")

    browser_path = os.environ.get("PRINSIGHT_BROWSER_PATH")
    if browser_path:
        config["browser_executable"] = browser_path

    return config


def api_key_for(config: dict) -> Optional[str]:
    """Return the API key for the configured provider, or None when unset."""
    model = config["model"]
    if model not in API_KEY_ENV:
        raise ValueError(f"Unknown model provider: {model!r}. Choose one of {sorted(API_KEY_ENV)}.")
    return config.get(f"{model}_api_key")
