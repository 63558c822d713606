"""Reconciler factory.

Resolves the active database profile from db.toml and builds a
``DatabaseReconciler`` wired to a pooled SQLAlchemy executor.

Profile selection:
1. Explicit ``profile_name`` argument
2. ``<prefix>DB_PROFILE`` environment variable
3. Raise ``ProfileNotFoundError``

Usage:
    from db_reconciler.factory import create_reconciler
    from db_reconciler.model import load_entity_model

    bundle = load_entity_model("entitymodel.toml")
    reconciler = create_reconciler(field_types=bundle.field_types, env_prefix="APP_")
    result = reconciler.check_db(bundle.entities, add_missing=True)
"""

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from urllib.parse import quote

from db_reconciler.adapters.engine import EngineExecutor
from db_reconciler.config.loader import load_db_config
from db_reconciler.config.models import DatabaseConfig, DatabaseProfile
from db_reconciler.dialects.registry import DialectRegistry
from db_reconciler.exceptions import ProfileNotFoundError
from db_reconciler.model.entities import FieldTypeModel
from db_reconciler.schema.reconciler import DatabaseReconciler

logger = logging.getLogger(__name__)


# ============================================================================
# Profile Resolution
# ============================================================================


def get_active_profile_name(env_prefix: str = "") -> str:
    """Get active profile name from the environment.

    Args:
        env_prefix: Prefix for the variable name (``APP_`` reads ``APP_DB_PROFILE``).

    Raises:
        ProfileNotFoundError: If the variable is unset or empty.
    """
    env_var = f"{env_prefix}DB_PROFILE"
    env_profile = os.environ.get(env_var)
    if env_profile:
        return env_profile

    raise ProfileNotFoundError(
        "No database profile configured.\n"
        f"Run: {env_var}=<name> db-reconciler check"
    )


def get_active_profile(
    profile_name: str | None = None,
    env_prefix: str = "",
    config: DatabaseConfig | None = None,
    config_path: Path | str | None = None,
) -> tuple[str, DatabaseProfile]:
    """Get active profile name and configuration.

    Returns:
        Tuple of (profile_name, DatabaseProfile)

    Raises:
        ProfileNotFoundError: If no profile is selected or it is not in db.toml
        FileNotFoundError: If db.toml does not exist
    """
    if profile_name is None:
        profile_name = get_active_profile_name(env_prefix)
    if config is None:
        config = load_db_config(config_path)

    if profile_name not in config.profiles:
        raise ProfileNotFoundError(
            f"Profile '{profile_name}' not found in db.toml",
            details={"available": ", ".join(config.profiles.keys())},
        )

    return profile_name, config.profiles[profile_name]


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with password substitution.

    Example:
        >>> resolve_url(DatabaseProfile(url="postgresql://app:[YOUR-PASSWORD]@db/app", db_password="p@ss"))
        'postgresql://app:p%40ss@db/app'
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


# ============================================================================
# Reconciler Factory
# ============================================================================


def create_reconciler(
    profile: DatabaseProfile | None = None,
    field_types: Mapping[str, FieldTypeModel] | None = None,
    profile_name: str | None = None,
    env_prefix: str = "",
    config_path: Path | str | None = None,
    registry: DialectRegistry | None = None,
    **engine_kwargs,
) -> DatabaseReconciler:
    """Build a reconciler for a profile.

    Args:
        profile: Profile to connect with; resolved from db.toml when omitted.
        field_types: Logical field types of the model to be checked.
        profile_name: Profile to resolve when ``profile`` is omitted.
        env_prefix: Prefix for the ``DB_PROFILE`` environment variable.
        config_path: Path to db.toml.
        registry: Dialect registry (default: the built-in dialects).
        **engine_kwargs: Forwarded to the SQLAlchemy engine.

    Raises:
        ProfileNotFoundError: If no profile can be resolved.
    """
    if profile is None:
        profile_name, profile = get_active_profile(
            profile_name, env_prefix, config_path=config_path
        )
        logger.info("Using database profile %s", profile_name)

    executor = EngineExecutor(resolve_url(profile), **engine_kwargs)
    return DatabaseReconciler(
        executor,
        field_types or {},
        datasource=profile.datasource,
        registry=registry,
    )
