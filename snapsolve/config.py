"""
Configuration management for snapsolve.

Settings come from ``~/.snapsolve/config.json`` (all keys optional) and are
then overridden by environment variables, with a ``.env`` file loaded first.
"""

import json
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

CONFIG_PATH = Path.home() / ".snapsolve" / "config.json"

DEFAULT_LANGUAGE = "python"


def _filter_dataclass_fields(data: dict[str, Any], cls: type) -> dict[str, Any]:
    """Filter dict to only include fields that exist in the dataclass."""
    valid_fields = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in valid_fields}


@dataclass
class GatewayConfig:
    """Vision model endpoint (OpenAI-compatible chat completions)."""

    api_url: str = "https://api.openai.com/v1/chat/completions"
    api_key: str | None = None
    model: str = "gpt-4o"
    # Upper bound for one streamed request; distinct from cancellation.
    timeout_seconds: float = 300.0


@dataclass
class RemoteDebugConfig:
    """Hosted debug endpoint used by the supplementary pipeline."""

    base_url: str = "http://localhost:3000"
    timeout_seconds: float = 300.0
    max_redirects: int = 5


@dataclass
class StoreConfig:
    """Screenshot queue storage."""

    base_dir: str = "~/.snapsolve"
    max_frames: int = 2

    @property
    def path(self) -> Path:
        return Path(self.base_dir).expanduser()


@dataclass
class SnapSolveConfig:
    """Complete snapsolve configuration."""

    gateway: GatewayConfig = field(default_factory=GatewayConfig)
    remote_debug: RemoteDebugConfig = field(default_factory=RemoteDebugConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    default_language: str = DEFAULT_LANGUAGE

    @classmethod
    def load(cls, path: Path | None = None, use_env: bool = True) -> "SnapSolveConfig":
        """
        Load configuration from file, then apply environment overrides.

        Args:
            path: Config file path. Defaults to ~/.snapsolve/config.json
            use_env: Apply SNAPSOLVE_* environment overrides

        Returns:
            SnapSolveConfig with file values merged over defaults
        """
        if path is None:
            path = CONFIG_PATH

        data: dict[str, Any] = {}
        if path.exists():
            with open(path) as f:
                data = json.load(f)

        config = cls(
            gateway=GatewayConfig(**_filter_dataclass_fields(data.get("gateway", {}), GatewayConfig)),
            remote_debug=RemoteDebugConfig(
                **_filter_dataclass_fields(data.get("remote_debug", {}), RemoteDebugConfig)
            ),
            store=StoreConfig(**_filter_dataclass_fields(data.get("store", {}), StoreConfig)),
            default_language=data.get("default_language") or DEFAULT_LANGUAGE,
        )

        if use_env:
            load_dotenv()
            config.apply_env()
        return config

    def apply_env(self, environ: dict[str, str] | None = None) -> None:
        """Override settings from SNAPSOLVE_* variables."""
        env = os.environ if environ is None else environ

        if env.get("SNAPSOLVE_API_URL"):
            self.gateway.api_url = env["SNAPSOLVE_API_URL"]
        api_key = env.get("SNAPSOLVE_API_KEY") or env.get("OPENAI_API_KEY")
        if api_key:
            self.gateway.api_key = api_key
        if env.get("SNAPSOLVE_MODEL"):
            self.gateway.model = env["SNAPSOLVE_MODEL"]
        if env.get("SNAPSOLVE_DEBUG_URL"):
            self.remote_debug.base_url = env["SNAPSOLVE_DEBUG_URL"]
        if env.get("SNAPSOLVE_HOME"):
            self.store.base_dir = env["SNAPSOLVE_HOME"]

    def save(self, path: Path | None = None) -> None:
        """Save configuration to file. The API key is never written."""
        if path is None:
            path = CONFIG_PATH

        path.parent.mkdir(parents=True, exist_ok=True)

        gateway = asdict(self.gateway)
        gateway.pop("api_key", None)
        with open(path, "w") as f:
            json.dump(
                {
                    "gateway": gateway,
                    "remote_debug": asdict(self.remote_debug),
                    "store": asdict(self.store),
                    "default_language": self.default_language,
                },
                f,
                indent=2,
            )


# Default configuration instance
default_config = SnapSolveConfig()
