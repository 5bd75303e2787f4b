"""Database adapter factory.

Connections are named profiles in db.toml (``[profiles.<name>]``).  The
clone command takes a source and target profile name; both are resolved
and checked with ``SELECT 1`` before anything destructive happens.
"""

import logging
from urllib.parse import quote

from db_cloner.adapters.sql import AsyncSQLAdapter
from db_cloner.config.models import DatabaseConfig, DatabaseProfile
from db_cloner.errors import ConfigurationError, ConnectivityError
from db_cloner.schema.models import ConnectionResult

logger = logging.getLogger(__name__)


class ProfileNotFoundError(ConfigurationError):
    """Raised when a connection name is not configured in db.toml."""

    pass


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with password substitution.

    Args:
        profile: Database profile from config

    Returns:
        Connection URL with password substituted
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


def get_profile(profile_name: str, config: DatabaseConfig) -> DatabaseProfile:
    """Look up a profile by name.

    Raises:
        ProfileNotFoundError: If the profile is not in db.toml.
    """
    if profile_name not in config.profiles:
        available = ", ".join(config.profiles.keys()) or "(none)"
        raise ProfileNotFoundError(
            f"DB connection does not exist: '{profile_name}'. Available: {available}"
        )
    return config.profiles[profile_name]


def get_adapter(profile_name: str, config: DatabaseConfig) -> AsyncSQLAdapter:
    """Create an adapter for a named profile (no connection is opened yet).

    Raises:
        ProfileNotFoundError: If the profile is not in db.toml.
        ConfigurationError: If the URL cannot be parsed or names an
            engine whose driver is not installed.
    """
    profile = get_profile(profile_name, config)
    try:
        return AsyncSQLAdapter(resolve_url(profile))
    except Exception as e:
        raise ConfigurationError(
            f"DB connection '{profile_name}' is not configured properly: {e}"
        ) from e


async def open_validated_adapter(
    profile_name: str, config: DatabaseConfig
) -> AsyncSQLAdapter:
    """Create an adapter and prove the database is reachable.

    Returns:
        An adapter whose pinned connection is already open.

    Raises:
        ProfileNotFoundError: If the profile is not in db.toml.
        ConfigurationError: If the profile URL is unusable.
        ConnectivityError: If ``SELECT 1`` fails.
    """
    adapter = get_adapter(profile_name, config)
    try:
        await adapter.test_connection()
    except Exception as e:
        await adapter.close()
        raise ConnectivityError(
            f"Failed to connect to '{profile_name}': {e}"
        ) from e

    logger.info(
        "Validated connection '%s' (%s, database %s)",
        profile_name,
        adapter.dialect_name,
        adapter.database_name,
    )
    return adapter


async def connect_and_validate(
    profile_name: str, config: DatabaseConfig
) -> ConnectionResult:
    """Check a profile without keeping the connection.

    Example:
        >>> result = await connect_and_validate("staging", config)
        >>> if not result.success:
        ...     print(result.error)
    """
    try:
        adapter = await open_validated_adapter(profile_name, config)
    except (ConfigurationError, ConnectivityError) as e:
        return ConnectionResult(success=False, profile_name=profile_name, error=str(e))

    try:
        return ConnectionResult(
            success=True,
            profile_name=profile_name,
            database_name=adapter.database_name,
            dialect=adapter.dialect_name,
        )
    finally:
        await adapter.close()
