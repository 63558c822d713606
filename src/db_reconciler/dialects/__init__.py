"""SQL dialect records, connection probing and detection.

Usage:
    from db_reconciler.dialects import default_registry, probe_connection

    registry = default_registry()
    with engine.connect() as conn:
        dialect = registry.detect(probe_connection(conn))
"""

from db_reconciler.dialects.builtin import BUILTIN_DIALECTS
from db_reconciler.dialects.models import (
    ConnectionProbe,
    Dialect,
    IndexLookup,
    parse_version,
    probe_connection,
)
from db_reconciler.dialects.registry import DialectRegistry, default_registry

__all__ = [
    "BUILTIN_DIALECTS",
    "ConnectionProbe",
    "Dialect",
    "DialectRegistry",
    "IndexLookup",
    "default_registry",
    "parse_version",
    "probe_connection",
]
