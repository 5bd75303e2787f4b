"""Configuration management: connection profiles, clone settings, TOML loading.

Usage:
    >>> from db_cloner.config import load_db_config, CloneSettings, DatabaseConfig
"""

from db_cloner.config.loader import load_db_config
from db_cloner.config.models import CloneSettings, DatabaseConfig, DatabaseProfile

__all__ = ["load_db_config", "CloneSettings", "DatabaseConfig", "DatabaseProfile"]
