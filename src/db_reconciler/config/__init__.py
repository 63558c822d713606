"""Database configuration loading and models.

Usage:
    from db_reconciler.config import load_db_config, DatabaseConfig, DatabaseProfile
"""

from db_reconciler.config.loader import load_db_config
from db_reconciler.config.models import (
    DatabaseConfig,
    DatabaseProfile,
    DatasourceConfig,
)

__all__ = [
    "load_db_config",
    "DatabaseConfig",
    "DatabaseProfile",
    "DatasourceConfig",
]
