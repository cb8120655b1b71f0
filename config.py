"""
Application configuration.

Sources, lowest precedence first: defaults, a JSON config file, SIGNDESK_*
environment variables. Command-line flags in main.py override all three.
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from signing.session import MAX_UPLOAD_BYTES

# Environment variable prefix
ENV_PREFIX = "SIGNDESK_"

DEFAULT_HOME = Path("~/.signdesk")


@dataclass
class AppConfig:
    """Main application configuration."""

    # Data directory holding users, local keys and the vault
    home: Path = field(default_factory=lambda: DEFAULT_HOME.expanduser())

    # Uploads
    max_upload_bytes: int = MAX_UPLOAD_BYTES

    # Logging
    log_level: str = "WARNING"
    log_file: str | None = None

    @property
    def users_file(self) -> Path:
        return self.home / "users.json"

    @property
    def keys_file(self) -> Path:
        return self.home / "keys.json"

    @property
    def vault_dir(self) -> Path:
        return self.home / "vault"

    def ensure_home(self) -> Path:
        self.home.mkdir(parents=True, exist_ok=True)
        return self.home


def _apply(config: AppConfig, data: dict[str, Any]) -> AppConfig:
    if data.get("home"):
        config.home = Path(data["home"]).expanduser()
    if data.get("max_upload_bytes") is not None:
        config.max_upload_bytes = int(data["max_upload_bytes"])
    if data.get("log_level"):
        config.log_level = str(data["log_level"])
    if "log_file" in data:
        config.log_file = data["log_file"] or None
    return config


def load_config_from_file(path: Path, base: AppConfig | None = None) -> AppConfig:
    """Load configuration from a JSON file."""
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r") as f:
        data = json.load(f)

    return _apply(base or AppConfig(), data)


def load_config_from_env(base: AppConfig | None = None) -> AppConfig:
    """Load configuration from environment variables."""
    data: dict[str, Any] = {}
    if os.getenv(f"{ENV_PREFIX}HOME"):
        data["home"] = os.getenv(f"{ENV_PREFIX}HOME")
    if os.getenv(f"{ENV_PREFIX}MAX_UPLOAD_BYTES"):
        data["max_upload_bytes"] = os.getenv(f"{ENV_PREFIX}MAX_UPLOAD_BYTES")
    if os.getenv(f"{ENV_PREFIX}LOG_LEVEL"):
        data["log_level"] = os.getenv(f"{ENV_PREFIX}LOG_LEVEL")
    if os.getenv(f"{ENV_PREFIX}LOG_FILE"):
        data["log_file"] = os.getenv(f"{ENV_PREFIX}LOG_FILE")
    return _apply(base or AppConfig(), data)


def load_config(config_path: Path | None = None) -> AppConfig:
    """
    Load configuration with precedence:
    1. Environment variables
    2. Config file (if provided, or SIGNDESK_CONFIG)
    3. Defaults
    """
    config = AppConfig()

    if config_path is None and os.getenv(f"{ENV_PREFIX}CONFIG"):
        config_path = Path(os.getenv(f"{ENV_PREFIX}CONFIG", ""))
    if config_path is not None:
        config = load_config_from_file(config_path, config)

    return load_config_from_env(config)


def get_default_config_template() -> str:
    """Starter config file contents."""
    data = asdict(AppConfig())
    data["home"] = str(DEFAULT_HOME)
    return json.dumps(data, indent=2)
