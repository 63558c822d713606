"""db-reconciler: check and repair a live relational schema against an entity model.

Detects the SQL dialect of a connection, compares declared entities with
the live tables, columns, foreign keys and indexes, and (optionally)
creates what is missing and promotes or widens columns. Nothing is ever
dropped or narrowed.

Usage:
    from db_reconciler import create_reconciler, load_entity_model
    from db_reconciler import DatabaseReconciler, ReconciliationResult, Severity
    from db_reconciler import default_registry, ConnectionProbe
"""

__version__ = "0.1.0"

# Adapters
from db_reconciler.adapters.base import SqlExecutor
from db_reconciler.adapters.engine import EngineExecutor

# Config
from db_reconciler.config.loader import load_db_config
from db_reconciler.config.models import DatabaseConfig, DatabaseProfile, DatasourceConfig

# Dialects
from db_reconciler.dialects import ConnectionProbe, Dialect, DialectRegistry, default_registry

# Exceptions
from db_reconciler.exceptions import (
    ConfigurationError,
    IntrospectionError,
    ModelError,
    ProfileNotFoundError,
    ReconcilerError,
)

# Factory
from db_reconciler.factory import create_reconciler, get_active_profile, resolve_url

# Model
from db_reconciler.model import EntityModel, FieldTypeModel, load_entity_model

# Schema
from db_reconciler.schema import (
    DatabaseReconciler,
    IndexAlternativeAction,
    ReconciliationMessage,
    ReconciliationResult,
    Severity,
)

__all__ = [
    # Adapters
    "SqlExecutor",
    "EngineExecutor",
    # Config
    "load_db_config",
    "DatabaseConfig",
    "DatabaseProfile",
    "DatasourceConfig",
    # Dialects
    "ConnectionProbe",
    "Dialect",
    "DialectRegistry",
    "default_registry",
    # Exceptions
    "ReconcilerError",
    "ConfigurationError",
    "IntrospectionError",
    "ModelError",
    "ProfileNotFoundError",
    # Factory
    "create_reconciler",
    "get_active_profile",
    "resolve_url",
    # Model
    "EntityModel",
    "FieldTypeModel",
    "load_entity_model",
    # Schema
    "DatabaseReconciler",
    "IndexAlternativeAction",
    "ReconciliationMessage",
    "ReconciliationResult",
    "Severity",
]
