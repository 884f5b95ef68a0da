# =============================================================================
# tracker_core/config/settings.py
# Runtime Configuration for the Tracker Core
# =============================================================================
"""
TrackerConfig - settings read once at startup.

Sources, later ones winning:
1. Built-in defaults
2. A secrets.toml file::

       [supabase]
       url = "https://your-project.supabase.co"
       key = "your-anon-key"

       [tracker]
       store_mode = "offline"      # or "remote"
       db_path = "local_data/medical_tracker.db"
       push_workers = 2

3. Environment variables (SUPABASE_URL, SUPABASE_KEY, TRACKER_STORE_MODE,
   TRACKER_DB_PATH)
"""

from __future__ import annotations
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union
import logging

import toml

from tracker_core.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_SECRETS_PATH = Path("config") / "secrets.toml"
DEFAULT_DATA_DIR = Path("local_data")

STORE_MODES = ("offline", "remote")
REMOTE_PROVIDERS = ("supabase", "mock")


@dataclass
class TrackerConfig:
    """Process-wide settings; fixed for the lifetime of the process."""
    store_mode: str = "offline"
    db_path: str = str(DEFAULT_DATA_DIR / "medical_tracker.db")
    preferences_path: str = str(DEFAULT_DATA_DIR / "app_settings.json")
    remote_provider: str = "mock"
    supabase_url: str = ""
    supabase_key: str = ""
    push_workers: int = 2
    push_queue_size: int = 1000
    log_level: str = "INFO"
    log_to_file: bool = False

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Check value ranges; raises ConfigurationError."""
        if self.store_mode not in STORE_MODES:
            raise ConfigurationError(
                f"Unknown store mode '{self.store_mode}'",
                config_key="store_mode",
                expected_type=" | ".join(STORE_MODES),
            )
        if self.remote_provider not in REMOTE_PROVIDERS:
            raise ConfigurationError(
                f"Unknown remote provider '{self.remote_provider}'",
                config_key="remote_provider",
                expected_type=" | ".join(REMOTE_PROVIDERS),
            )
        if self.remote_provider == "supabase" and not (self.supabase_url and self.supabase_key):
            raise ConfigurationError(
                "Supabase provider selected but url/key are missing",
                config_key="supabase",
            )
        if self.push_workers < 1:
            raise ConfigurationError(
                "push_workers must be at least 1",
                config_key="push_workers",
                expected_type="int >= 1",
            )
        if self.push_queue_size < 1:
            raise ConfigurationError(
                "push_queue_size must be at least 1",
                config_key="push_queue_size",
                expected_type="int >= 1",
            )

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> TrackerConfig:
        """Build a config from a flat dict, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in values.items():
            if key not in known:
                logger.debug(f"Ignoring unknown config key: {key}")
                continue
            kwargs[key] = value

        for key in ("push_workers", "push_queue_size"):
            if key in kwargs:
                try:
                    kwargs[key] = int(kwargs[key])
                except (TypeError, ValueError):
                    raise ConfigurationError(
                        f"{key} must be an integer",
                        config_key=key,
                        expected_type="int",
                    )
        if isinstance(kwargs.get("log_to_file"), str):
            kwargs["log_to_file"] = kwargs["log_to_file"].lower() in ("1", "true", "yes")

        return cls(**kwargs)


def _read_secrets(path: Path) -> Dict[str, Any]:
    """Flatten a secrets.toml file into TrackerConfig keys."""
    try:
        secrets = toml.load(path)
    except toml.TomlDecodeError as e:
        raise ConfigurationError(f"Malformed secrets file {path}: {e}", config_key="secrets")

    values: Dict[str, Any] = dict(secrets.get("tracker", {}))
    supabase = secrets.get("supabase", {})
    if supabase.get("url"):
        values["supabase_url"] = supabase["url"]
    if supabase.get("key"):
        values["supabase_key"] = supabase["key"]
    return values


def load_config(
    secrets_path: Optional[Union[str, Path]] = None,
    environ: Optional[Dict[str, str]] = None,
) -> TrackerConfig:
    """
    Load configuration from secrets file and environment.

    Args:
        secrets_path: Path to secrets.toml (default: config/secrets.toml)
        environ: Environment mapping (default: os.environ)

    Returns:
        Validated TrackerConfig
    """
    environ = os.environ if environ is None else environ
    path = Path(secrets_path) if secrets_path else DEFAULT_SECRETS_PATH

    values: Dict[str, Any] = {}
    if path.exists():
        values.update(_read_secrets(path))
        logger.debug(f"Loaded secrets from {path}")
    elif secrets_path:
        raise ConfigurationError(f"Secrets file not found: {path}", config_key="secrets")

    env_mapping = {
        "SUPABASE_URL": "supabase_url",
        "SUPABASE_KEY": "supabase_key",
        "TRACKER_STORE_MODE": "store_mode",
        "TRACKER_DB_PATH": "db_path",
        "TRACKER_LOG_LEVEL": "log_level",
    }
    for env_key, config_key in env_mapping.items():
        if environ.get(env_key):
            values[config_key] = environ[env_key]

    # Default to the mock gateway when no credentials are configured
    if "remote_provider" not in values:
        has_credentials = values.get("supabase_url") and values.get("supabase_key")
        values["remote_provider"] = "supabase" if has_credentials else "mock"

    config = TrackerConfig.from_dict(values)
    logger.info(
        f"Configuration loaded: store_mode={config.store_mode}, "
        f"remote_provider={config.remote_provider}"
    )
    return config
