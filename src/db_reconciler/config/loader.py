"""Configuration loading for db-reconciler."""

import tomllib
from pathlib import Path

from pydantic import ValidationError

from db_reconciler.config.models import DatabaseConfig, DatabaseProfile
from db_reconciler.exceptions import ConfigurationError


def load_db_config(config_path: Path | str | None = None) -> DatabaseConfig:
    """Load database configuration from TOML file.

    Args:
        config_path: Path to db.toml (default: ./db.toml)

    Returns:
        DatabaseConfig with all profiles

    Raises:
        FileNotFoundError: If config file doesn't exist
        ConfigurationError: If config format is invalid
    """
    if config_path is None:
        config_path = Path.cwd() / "db.toml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(
            f"Database config not found: {config_path}\n"
            f"Copy db.toml.example to db.toml and configure your profiles."
        )

    with open(config_path, "rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(
                f"Invalid TOML in {config_path.name}", cause=e
            ) from e

    # Parse profiles
    profiles = {}
    try:
        for name, profile_data in data.get("profiles", {}).items():
            profiles[name] = DatabaseProfile(**profile_data)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid profile '{name}' in {config_path.name}", cause=e
        ) from e

    # Parse model settings
    model_settings = data.get("model", {})

    return DatabaseConfig(
        profiles=profiles,
        model_file=model_settings.get("file", "entitymodel.toml"),
    )
