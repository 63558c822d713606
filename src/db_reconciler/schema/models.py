"""Models for live schema snapshots and reconciliation output.

This module contains:
- Live descriptors: LiveColumn, LiveReference, LiveIndex (rebuilt every run)
- Step outcome: StepResult
- Output: Severity, ReconciliationMessage, ReconciliationResult
"""

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field


# ============================================================================
# Live Schema Descriptors
# ============================================================================


@dataclass(frozen=True)
class LiveColumn:
    """A column as reported by the database.

    Names and type names are upper-cased; sizes are -1 when unknown and
    ``nullable`` is ``None`` when the driver does not say.

    Example:
        >>> LiveColumn("ORDERS", "TOTAL", "DECIMAL", 18, 2).type_as_string()
        'DECIMAL(18,2)'
    """

    table_name: str
    column_name: str
    type_name: str
    column_size: int = -1
    decimal_digits: int = -1
    max_size_in_bytes: int = -1
    nullable: bool | None = None

    @property
    def has_unicode_extension(self) -> bool:
        """True for an Oracle VARCHAR2 column using character length semantics."""
        return (
            self.type_name.strip().upper() == "VARCHAR2"
            and self.column_size > 0
            and 4 * self.column_size == self.max_size_in_bytes
        )

    def type_as_string(self) -> str:
        if self.column_size > 0:
            if self.decimal_digits > 0:
                return f"{self.type_name}({self.column_size},{self.decimal_digits})"
            extension = " CHAR" if self.has_unicode_extension else ""
            return f"{self.type_name}({self.column_size}{extension})"
        return self.type_name


@dataclass(frozen=True)
class LiveReference:
    """A foreign key as reported by the database.

    Multi-column keys list their columns comma separated.
    """

    fk_name: str
    fk_table_name: str
    fk_column_name: str
    pk_table_name: str
    pk_column_name: str

    def __str__(self) -> str:
        return (
            f"FK Reference from table {self.fk_table_name} called {self.fk_name} "
            f"to PK in table {self.pk_table_name}"
        )


@dataclass(frozen=True)
class LiveIndex:
    """An index as reported by the database."""

    index_name: str
    table_name: str
    unique: bool = False


# ============================================================================
# Step Outcome
# ============================================================================


@dataclass(frozen=True)
class StepResult:
    """Outcome of one DDL step.

    ``error`` carries the full failure text (including the driver's
    message); ``statements`` lists the SQL that was executed.

    Example:
        >>> StepResult.success("CREATE INDEX X ON T (A)").ok
        True
        >>> StepResult.failure("boom").ok
        False
    """

    statements: tuple[str, ...] = ()
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, *statements: str) -> "StepResult":
        return cls(statements=statements)

    @classmethod
    def failure(cls, error: str, *statements: str) -> "StepResult":
        return cls(statements=statements, error=error)

    @classmethod
    def combine(cls, results: list["StepResult"]) -> "StepResult":
        """Merge several results; errors are joined by newlines."""
        statements = tuple(sql for result in results for sql in result.statements)
        errors = [result.error for result in results if result.error]
        return cls(statements=statements, error="\n".join(errors) if errors else None)


# ============================================================================
# Reconciliation Output
# ============================================================================


class Severity(str, Enum):
    """Message severity, lowest first."""

    VERBOSE = "verbose"
    INFO = "info"
    IMPORTANT = "important"
    WARNING = "warning"
    ERROR = "error"


class ReconciliationMessage(BaseModel):
    """One line of the reconciliation transcript.

    Example:
        >>> msg = ReconciliationMessage(severity=Severity.WARNING, text="Column X is missing")
        >>> str(msg)
        'Column X is missing'
    """

    severity: Severity
    text: str

    def __str__(self) -> str:
        return self.text


class ReconciliationResult(BaseModel):
    """Result of ``DatabaseReconciler.check_db()``.

    Attributes:
        created_entities: Names of entities whose tables were created.
        messages: The complete, ordered message transcript.
        aborted: True if live tables or columns could not be read.
    """

    created_entities: list[str] = Field(default_factory=list)
    messages: list[ReconciliationMessage] = Field(default_factory=list)
    aborted: bool = False

    def count(self, severity: Severity) -> int:
        return sum(1 for m in self.messages if m.severity == severity)

    @property
    def has_errors(self) -> bool:
        return self.count(Severity.ERROR) > 0

    @property
    def non_verbose(self) -> list[ReconciliationMessage]:
        return [m for m in self.messages if m.severity != Severity.VERBOSE]
