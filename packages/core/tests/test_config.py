"""Tests for configuration loading."""

import pytest

from prinsight_core.config import api_key_for, load_config


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for var in ("GITHUB_TOKEN", "GEMINI_API_KEY", "ANTHROPIC_API_KEY", "OPENAI_API_KEY", "PRINSIGHT_BROWSER_PATH"):
        monkeypatch.delenv(var, raising=False)


def test_defaults_applied_when_no_config_file(tmp_path):
    config = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    assert config["model"] == "gemini"
    assert config["store_path"] == ".prinsight.db"
    assert config["reports_dir"] == "reports"
    assert config["browser_executable"] is None
    assert config["render_timeout_ms"] == 30000
    assert config["sync_limit"] == 50


def test_config_file_overrides_defaults(tmp_path):
    cfg = tmp_path / ".prinsight.yml"
    cfg.write_text("model: openai\nreports_dir: out\n")
    config = load_config(config_path=str(cfg))
    assert config["model"] == "openai"
    assert config["reports_dir"] == "out"


def test_empty_config_file_uses_defaults(tmp_path):
    cfg = tmp_path / ".prinsight.yml"
    cfg.write_text("")
    config = load_config(config_path=str(cfg))
    assert config["model"] == "gemini"


def test_cli_overrides_config_file(tmp_path):
    cfg = tmp_path / ".prinsight.yml"
    cfg.write_text("model: openai\n")
    config = load_config(config_path=str(cfg), cli_overrides={"model": "anthropic"})
    assert config["model"] == "anthropic"


def test_none_cli_overrides_ignored(tmp_path):
    cfg = tmp_path / ".prinsight.yml"
    cfg.write_text("model: openai\n")
    config = load_config(config_path=str(cfg), cli_overrides={"model": None})
    assert config["model"] == "openai"


def test_credentials_come_from_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "gh-tok")
    monkeypatch.setenv("GEMINI_API_KEY", "gem-key")
    cfg = tmp_path / ".prinsight.yml"
    cfg.write_text("github_token: from-file\n")
    config = load_config(config_path=str(cfg))
    assert config["github_token"] == "gh-tok"
    assert config["gemini_api_key"] == "gem-key"
    assert config["openai_api_key"] is None


def test_browser_path_env_overrides_file(tmp_path, monkeypatch):
    monkeypatch.setenv("PRINSIGHT_BROWSER_PATH", "/usr/bin/chromium")
    cfg = tmp_path / ".prinsight.yml"
    cfg.write_text("browser_executable: /opt/chrome\n")
    config = load_config(config_path=str(cfg))
    assert config["browser_executable"] == "/usr/bin/chromium"


class TestApiKeyFor:
    def test_returns_key_of_selected_provider(self):
        config = {"model": "anthropic", "anthropic_api_key": "ant", "openai_api_key": "oai"}
        assert api_key_for(config) == "ant"

    def test_returns_none_when_unset(self):
        assert api_key_for({"model": "gemini", "gemini_api_key": None}) is None

    def test_unknown_model_raises(self):
        with pytest.raises(ValueError, match="Unknown model provider"):
            api_key_for({"model": "llama"})
