"""
Unit tests for SnapSolveConfig.

Tests defaults, file loading, environment overrides and saving.
"""

import json
from pathlib import Path

from snapsolve.config import (
    CONFIG_PATH,
    GatewayConfig,
    SnapSolveConfig,
    StoreConfig,
)


class TestDefaults:
    """Tests for default configuration values."""

    def test_default_values(self):
        """Defaults point at an OpenAI-compatible endpoint."""
        config = SnapSolveConfig()

        assert config.gateway.api_url == "https://api.openai.com/v1/chat/completions"
        assert config.gateway.api_key is None
        assert config.gateway.model == "gpt-4o"
        assert config.gateway.timeout_seconds == 300.0
        assert config.remote_debug.base_url == "http://localhost:3000"
        assert config.store.max_frames == 2
        assert config.default_language == "python"

    def test_config_path(self):
        """CONFIG_PATH lives under the home directory."""
        assert CONFIG_PATH == Path.home() / ".snapsolve" / "config.json"

    def test_store_path_expands_user(self):
        """StoreConfig.path expands ~."""
        assert StoreConfig(base_dir="~/shots").path == Path.home() / "shots"


class TestLoad:
    """Tests for SnapSolveConfig.load()."""

    def test_missing_file_gives_defaults(self, tmp_path):
        """A missing config file is not an error."""
        config = SnapSolveConfig.load(tmp_path / "absent.json", use_env=False)
        assert config.gateway == GatewayConfig()

    def test_file_values_merge_over_defaults(self, tmp_path):
        """Keys present in the file override defaults; others stay."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "gateway": {"model": "gpt-4o-mini", "timeout_seconds": 60},
            "store": {"max_frames": 5},
            "default_language": "rust",
        }))

        config = SnapSolveConfig.load(path, use_env=False)

        assert config.gateway.model == "gpt-4o-mini"
        assert config.gateway.timeout_seconds == 60
        assert config.gateway.api_url == GatewayConfig().api_url
        assert config.store.max_frames == 5
        assert config.default_language == "rust"

    def test_unknown_keys_ignored(self, tmp_path):
        """Extra keys in a section do not break loading."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"gateway": {"model": "m", "legacy_field": True}}))

        config = SnapSolveConfig.load(path, use_env=False)

        assert config.gateway.model == "m"

    def test_environment_applied_on_load(self, tmp_path, monkeypatch):
        """SNAPSOLVE_* variables override the file."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"gateway": {"model": "from-file"}}))
        monkeypatch.setenv("SNAPSOLVE_MODEL", "from-env")
        monkeypatch.setenv("SNAPSOLVE_API_KEY", "sk-env")

        config = SnapSolveConfig.load(path)

        assert config.gateway.model == "from-env"
        assert config.gateway.api_key == "sk-env"


class TestApplyEnv:
    """Tests for apply_env()."""

    def test_all_overrides(self):
        """Every supported variable lands in its field."""
        config = SnapSolveConfig()
        config.apply_env({
            "SNAPSOLVE_API_URL": "http://localhost:11434/v1/chat/completions",
            "SNAPSOLVE_API_KEY": "sk-1",
            "SNAPSOLVE_MODEL": "llava",
            "SNAPSOLVE_DEBUG_URL": "https://debug.example",
            "SNAPSOLVE_HOME": "/tmp/snap",
        })

        assert config.gateway.api_url == "http://localhost:11434/v1/chat/completions"
        assert config.gateway.api_key == "sk-1"
        assert config.gateway.model == "llava"
        assert config.remote_debug.base_url == "https://debug.example"
        assert config.store.base_dir == "/tmp/snap"

    def test_openai_key_fallback(self):
        """OPENAI_API_KEY is used when SNAPSOLVE_API_KEY is absent."""
        config = SnapSolveConfig()
        config.apply_env({"OPENAI_API_KEY": "sk-openai"})
        assert config.gateway.api_key == "sk-openai"

    def test_empty_values_ignored(self):
        """Blank variables do not clobber settings."""
        config = SnapSolveConfig()
        config.apply_env({"SNAPSOLVE_MODEL": ""})
        assert config.gateway.model == "gpt-4o"


class TestSave:
    """Tests for save()."""

    def test_save_round_trip_without_key(self, tmp_path):
        """Saved settings reload; the API key is never written."""
        path = tmp_path / "nested" / "config.json"
        config = SnapSolveConfig()
        config.gateway.api_key = "sk-secret"
        config.gateway.model = "gpt-4.1"
        config.default_language = "kotlin"

        config.save(path)

        assert "sk-secret" not in path.read_text()
        loaded = SnapSolveConfig.load(path, use_env=False)
        assert loaded.gateway.model == "gpt-4.1"
        assert loaded.gateway.api_key is None
        assert loaded.default_language == "kotlin"
