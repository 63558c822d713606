"""SQL executors used by the reconciler.

Usage:
    from db_reconciler.adapters import EngineExecutor, SqlExecutor
"""

from db_reconciler.adapters.base import SqlExecutor
from db_reconciler.adapters.engine import (
    EngineExecutor,
    create_engine_pooled,
    normalize_database_url,
)

__all__ = [
    "SqlExecutor",
    "EngineExecutor",
    "create_engine_pooled",
    "normalize_database_url",
]
