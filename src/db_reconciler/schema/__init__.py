"""Live schema introspection, type policy, DDL synthesis and reconciliation.

Usage:
    from db_reconciler.schema import DatabaseReconciler, ReconciliationResult
"""

from db_reconciler.schema.alternative import IndexAlternativeAction, select_alternative_action
from db_reconciler.schema.ddl import DdlSynthesizer
from db_reconciler.schema.introspector import SchemaIntrospector
from db_reconciler.schema.models import (
    LiveColumn,
    LiveIndex,
    LiveReference,
    ReconciliationMessage,
    ReconciliationResult,
    Severity,
    StepResult,
)
from db_reconciler.schema.reconciler import DatabaseReconciler
from db_reconciler.schema.types import (
    ALLOWED_PROMOTIONS,
    TypeDescriptor,
    decide_mismatch,
    decide_size_change,
    parse_type,
)

__all__ = [
    "ALLOWED_PROMOTIONS",
    "DatabaseReconciler",
    "DdlSynthesizer",
    "IndexAlternativeAction",
    "LiveColumn",
    "LiveIndex",
    "LiveReference",
    "ReconciliationMessage",
    "ReconciliationResult",
    "SchemaIntrospector",
    "Severity",
    "StepResult",
    "TypeDescriptor",
    "decide_mismatch",
    "decide_size_change",
    "parse_type",
    "select_alternative_action",
]
