"""SQL type descriptors and the promotion/widening policy.

``parse_type`` turns a field type's SQL string (``"VARCHAR(255)"``,
``"DECIMAL(18,2)"``, ``"VARCHAR2(40 CHAR)"``) into a ``TypeDescriptor``.
The policy functions decide whether a mismatch between a live column and
its declaration may be corrected automatically:

- a type mismatch is corrected only when promotion is enabled and the
  live type may be promoted to the declared one (``ALLOWED_PROMOTIONS``);
- a size mismatch is corrected only when widening is enabled and the
  declared size is larger;
- decimal-digit mismatches are always reported and never corrected.

Usage:
    from db_reconciler.schema.types import parse_type, decide_size_change

    descriptor = parse_type(field_type, oracle_like=False)
    decide_size_change(live_column, descriptor, widen=True, oracle_like=False)
    # SizeDecision.WIDEN
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from db_reconciler.model.entities import FieldTypeModel
from db_reconciler.schema.models import LiveColumn

logger = logging.getLogger(__name__)

SIZE_EXTENSIONS = frozenset({"BYTE", "CHAR"})

# Live column type -> declared types it may be promoted to
ALLOWED_PROMOTIONS: dict[str, frozenset[str]] = {
    "VARCHAR": frozenset({"NVARCHAR", "TEXT", "LONGTEXT"}),
    "VARCHAR2": frozenset({"NVARCHAR2"}),
    "NVARCHAR": frozenset({"NTEXT"}),
}


@dataclass(frozen=True)
class TypeDescriptor:
    """A parsed SQL type.

    ``base`` is the type name used for identity comparison (the field
    type's alias when it has one). ``full_type`` is the SQL string as
    declared and is what DDL uses; it takes no part in equality.

    Example:
        >>> TypeDescriptor("VARCHAR", 20) == TypeDescriptor("VARCHAR", 20, full_type="VARCHAR(20)")
        True
    """

    base: str
    size: int = -1
    decimals: int = -1
    extension: str = ""
    full_type: str = field(default="", compare=False)

    @property
    def identity(self) -> str:
        return self.base.upper()


def _to_int(text: str, sql_type: str) -> int:
    try:
        return int(text.strip())
    except ValueError:
        logger.error("Cannot parse size '%s' of SQL type '%s'", text, sql_type)
        return -1


def parse_type(
    field_type: FieldTypeModel,
    oracle_like: bool,
    on_invalid_extension: Callable[[str], None] | None = None,
) -> TypeDescriptor:
    """Parse a field type's SQL type string.

    Args:
        field_type: The logical field type.
        oracle_like: Whether ``BYTE``/``CHAR`` size units are meaningful.
        on_invalid_extension: Called with the offending token when the
            size is followed by something other than ``BYTE``/``CHAR``.

    Returns:
        The descriptor; sizes that are absent or unparsable are -1.

    Example:
        >>> parse_type(FieldTypeModel(name="n", sql_type="NUMERIC(18,2)"), False)
        TypeDescriptor(base='NUMERIC', size=18, decimals=2, extension='', full_type='NUMERIC(18,2)')
    """
    sql_type = field_type.sql_type
    open_paren = sql_type.find("(")
    close_paren = sql_type.find(")", open_paren) if open_paren >= 0 else -1
    comma = sql_type.find(",")

    size = -1
    decimals = -1
    extension = ""

    if open_paren > 0 and close_paren > open_paren:
        base = sql_type[:open_paren].strip()
        if open_paren < comma < close_paren:
            size = _to_int(sql_type[open_paren + 1:comma], sql_type)
            decimals = _to_int(sql_type[comma + 1:close_paren], sql_type)
        else:
            tokens = sql_type[open_paren + 1:close_paren].split()
            if len(tokens) == 2:
                unit = tokens[1]
                if unit in SIZE_EXTENSIONS:
                    if oracle_like:
                        extension = unit
                elif on_invalid_extension is not None:
                    on_invalid_extension(unit)
            if len(tokens) in (1, 2):
                size = _to_int(tokens[0], sql_type)
            else:
                logger.error("Cannot parse size of SQL type '%s'", sql_type)
    else:
        base = sql_type.strip()

    if field_type.sql_type_alias:
        base = field_type.sql_type_alias

    return TypeDescriptor(
        base=base, size=size, decimals=decimals, extension=extension, full_type=sql_type
    )


# ============================================================================
# Promotion
# ============================================================================


class MismatchDecision(str, Enum):
    PROMOTE = "promote"
    WARN = "warn"


def is_promotion_allowed(observed: str, declared: str) -> bool:
    """True if a live ``observed`` column may be promoted to ``declared``."""
    return declared.upper() in ALLOWED_PROMOTIONS.get(observed.upper(), frozenset())


def decide_mismatch(
    observed: str,
    declared: str,
    decimal_digits: int,
    promote: bool,
    observed_size: int = -1,
    declared_size: int = -1,
) -> MismatchDecision:
    """Decide what to do about a live type that differs from the declared one.

    Promotion never shrinks a column: a declared size smaller than the
    live size turns the promotion into a warning.
    """
    if not promote or decimal_digits != -1:
        return MismatchDecision.WARN
    if not is_promotion_allowed(observed, declared):
        return MismatchDecision.WARN
    if declared_size != -1 and observed_size != -1 and declared_size < observed_size:
        return MismatchDecision.WARN
    return MismatchDecision.PROMOTE


# ============================================================================
# Widening
# ============================================================================


class SizeDecision(str, Enum):
    NONE = "none"
    WIDEN = "widen"
    WARN = "warn"


def detect_unicode_widening(descriptor: TypeDescriptor, column: LiveColumn) -> bool:
    """A VARCHAR2 declared with CHAR semantics whose live column still uses bytes."""
    return (
        descriptor.identity == "VARCHAR2"
        and descriptor.extension == "CHAR"
        and not column.has_unicode_extension
    )


def is_size_change_needed(
    column: LiveColumn, descriptor: TypeDescriptor, oracle_like: bool
) -> bool:
    needed = (
        descriptor.size != -1
        and column.column_size != -1
        and descriptor.size != column.column_size
    )
    if needed or not oracle_like:
        return needed
    return detect_unicode_widening(descriptor, column) or (
        column.has_unicode_extension and descriptor.extension != "CHAR"
    )


def is_size_change_allowed(
    column: LiveColumn, descriptor: TypeDescriptor, widen: bool, oracle_like: bool
) -> bool:
    if not widen or descriptor.decimals != -1:
        return False
    if descriptor.size > column.column_size:
        return True
    return (
        oracle_like
        and detect_unicode_widening(descriptor, column)
        and descriptor.size >= column.column_size
    )


def decide_size_change(
    column: LiveColumn, descriptor: TypeDescriptor, widen: bool, oracle_like: bool
) -> SizeDecision:
    """Decide what to do about a live column whose size differs from the declaration."""
    if not is_size_change_needed(column, descriptor, oracle_like):
        return SizeDecision.NONE
    if is_size_change_allowed(column, descriptor, widen, oracle_like):
        return SizeDecision.WIDEN
    return SizeDecision.WARN


def decimals_mismatch(column: LiveColumn, descriptor: TypeDescriptor) -> bool:
    return descriptor.decimals != -1 and descriptor.decimals != column.decimal_digits
