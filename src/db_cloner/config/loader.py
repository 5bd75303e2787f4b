"""Load db.toml into ``DatabaseConfig``."""

import os
import tomllib
from pathlib import Path

from pydantic import ValidationError

from db_cloner.config.models import CloneSettings, DatabaseConfig, DatabaseProfile
from db_cloner.errors import ConfigurationError

CONFIG_ENV_VAR = "DB_CLONER_CONFIG"


def default_config_path() -> Path:
    """``$DB_CLONER_CONFIG`` if set, else ``./db.toml``."""
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return Path.cwd() / "db.toml"


def load_db_config(config_path: str | Path | None = None) -> DatabaseConfig:
    """Load database configuration from TOML file.

    Args:
        config_path: Path to db.toml (default: ``default_config_path()``)

    Returns:
        DatabaseConfig with all profiles and clone settings

    Raises:
        FileNotFoundError: If config file doesn't exist
        ConfigurationError: If config format is invalid
    """
    path = Path(config_path) if config_path is not None else default_config_path()

    if not path.exists():
        raise FileNotFoundError(
            f"Database config not found: {path}\n"
            f"Create db.toml with a [profiles.<name>] table per connection."
        )

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {path.name}: {e}") from e

    try:
        profiles = {
            name: DatabaseProfile(**profile_data)
            for name, profile_data in data.get("profiles", {}).items()
        }
        clone = CloneSettings(**data.get("clone", {}))
    except (TypeError, ValidationError) as e:
        raise ConfigurationError(f"Invalid configuration in {path.name}: {e}") from e

    return DatabaseConfig(profiles=profiles, clone=clone)
