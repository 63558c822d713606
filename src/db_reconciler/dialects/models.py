"""Dialect records and connection probes.

A ``Dialect`` is an immutable data record: product-name prefixes, an
optional version predicate, a schema-name resolver and the DDL templates
that differ between database products. Records carry no connection
state; everything they need to know about a live database is captured
once in a ``ConnectionProbe``.

Usage:
    from db_reconciler.dialects.models import ConnectionProbe, probe_connection

    with engine.connect() as conn:
        probe = probe_connection(conn)
    probe.version()
    # (16, 2, 0)
"""

import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from sqlalchemy.engine import Connection


# ============================================================================
# Templates shared between dialects
# ============================================================================

ALTER_COLUMN_TEMPLATE = "ALTER TABLE {table} ALTER COLUMN {column} {type}"
MODIFY_COLUMN_TEMPLATE = "ALTER TABLE {table} MODIFY {column} {type}"
ALTER_COLUMN_TYPE_TEMPLATE = "ALTER TABLE {table} ALTER COLUMN {column} TYPE {type}"

DROP_INDEX_SCHEMA_DOT_INDEX = "DROP INDEX {schema_dot}{index}"
DROP_INDEX_SCHEMA_DOT_TABLE_DOT_INDEX = "DROP INDEX {schema_dot}{table}.{index}"
ALTER_TABLE_DROP_INDEX = "ALTER TABLE {schema_dot}{table} DROP INDEX {index}"

STANDARD_SELECT_SYNTAX = "SELECT {0} FROM {1} WHERE {2}"
STANDARD_SELECT_FOR_UPDATE_SYNTAX = "SELECT {0} FROM {1} WHERE {2} FOR UPDATE"

STANDARD_CONSTRAINT_NAME_CLIP_LENGTH = 30

# SQLAlchemy dialect name -> product name as the database reports it
PRODUCT_NAMES = {
    "postgresql": "PostgreSQL",
    "mysql": "MySQL",
    "mariadb": "MySQL",
    "oracle": "Oracle",
    "mssql": "Microsoft SQL Server",
    "sqlite": "SQLite",
    "db2": "DB2",
    "ibm_db_sa": "DB2",
    "firebird": "Firebird",
    "sybase": "Adaptive Server Enterprise",
    "hsqldb": "HSQL Database Engine",
    "h2": "H2",
    "derby": "Apache Derby",
    "sapdb": "SAP DB",
    "maxdb": "SAP DB",
}

_VERSION_RE = re.compile(r"(\d+)(?:\.(\d+))?(?:\.(\d+))?")


# ============================================================================
# Connection probe
# ============================================================================


def parse_version(text: str, prefix: str = "") -> tuple[int, int, int]:
    """Parse ``major.minor.micro`` out of a product version string.

    Missing parts are 0. When ``prefix`` is given and the string starts
    with it, parsing starts after the prefix.

    Example:
        >>> parse_version("2.3.2")
        (2, 3, 2)
        >>> parse_version("Oracle8i Enterprise Edition Release 8.1.7.0.0",
        ...               prefix="Oracle8i Enterprise Edition Release ")
        (8, 1, 7)
    """
    if prefix and text.startswith(prefix):
        text = text[len(prefix):]
    match = _VERSION_RE.search(text or "")
    if not match:
        return (0, 0, 0)
    major, minor, micro = (int(part) if part else 0 for part in match.groups())
    return (major, minor, micro)


@dataclass(frozen=True)
class ConnectionProbe:
    """What dialect detection needs to know about a live connection.

    ``major``/``minor``/``micro`` are ``None`` when the driver does not
    report a numeric server version; the product version string is parsed
    instead.

    Example:
        >>> probe = ConnectionProbe("PostgreSQL", major=9, minor=4)
        >>> probe.version()
        (9, 4, 0)
    """

    product_name: str
    product_version: str = ""
    major: int | None = None
    minor: int | None = None
    micro: int | None = None
    driver_name: str = ""
    driver_version: str = ""
    user_name: str | None = None

    @property
    def has_version_accessors(self) -> bool:
        return self.major is not None and self.minor is not None

    def version(self, prefix: str = "") -> tuple[int, int, int]:
        """Server version as ``(major, minor, micro)``."""
        if self.has_version_accessors:
            return (self.major, self.minor, self.micro or 0)
        return parse_version(self.product_version, prefix)

    def describe(self) -> str:
        """Full product and driver strings, for log messages."""
        return (
            f"Database meta-data: {self.product_name} {self.product_version}. "
            f"Driver meta-data: {self.driver_name} {self.driver_version}."
        )


def probe_connection(connection: Connection) -> ConnectionProbe:
    """Build a ``ConnectionProbe`` from a SQLAlchemy connection."""
    sa_dialect = connection.dialect
    product_name = PRODUCT_NAMES.get(sa_dialect.name, sa_dialect.name)

    version_info = tuple(
        part for part in (sa_dialect.server_version_info or ()) if isinstance(part, int)
    )
    product_version = ".".join(str(part) for part in version_info)

    major = version_info[0] if len(version_info) > 0 else None
    minor = version_info[1] if len(version_info) > 1 else None
    micro = version_info[2] if len(version_info) > 2 else None

    dbapi = getattr(sa_dialect, "dbapi", None)
    driver_version = str(
        getattr(dbapi, "__version__", None) or getattr(dbapi, "version", "") or ""
    )

    return ConnectionProbe(
        product_name=product_name,
        product_version=product_version,
        major=major,
        minor=minor,
        micro=micro,
        driver_name=sa_dialect.driver or "",
        driver_version=driver_version,
        user_name=connection.engine.url.username,
    )


# ============================================================================
# Dialect record
# ============================================================================


class IndexLookup(str, Enum):
    """How a dialect wants table names passed to index metadata lookups."""

    AS_IS = "as_is"
    UPPER = "upper"
    LOWER_RETRY = "lower_retry"  # as given, then lower-cased when nothing comes back


def _no_schema(probe: ConnectionProbe) -> str | None:
    return None


def _product_name_matches(prefixes: tuple[str, ...], product_name: str | None) -> bool:
    if product_name is None:
        return False
    name = product_name.strip().lower()
    return any(name.startswith(prefix.lower()) for prefix in prefixes)


@dataclass(frozen=True)
class Dialect:
    """A named SQL-product/version profile.

    Attributes:
        name: Canonical dialect name, e.g. ``"PostGres 7.3 and higher"``.
        field_type_name: Name of the field-type set used with this dialect.
        product_name_prefixes: Case-insensitive prefixes of the product name.
        version_predicate: Extra check on the probe; ``None`` means any version.
        schema_resolver: Default schema for a connection (may return ``None``).
        constraint_name_clip_length: Longest constraint/index name allowed.
        change_column_type_template: ``None`` when column type changes are
            unsupported and can only be reported.
        drop_index_template: One of the three ``DROP INDEX`` shapes.
        cluster_select_template: Select syntax used in cluster mode.
        supports_function_indexes: Whether indexes over expressions are allowed;
            otherwise a virtual column is materialized and indexed.
        index_lookup: Table-name casing rule for index metadata.
        oracle_like: Enables ``BYTE``/``CHAR`` size units and Unicode widening.
    """

    name: str
    field_type_name: str
    product_name_prefixes: tuple[str, ...]
    version_predicate: Callable[[ConnectionProbe], bool] | None = None
    schema_resolver: Callable[[ConnectionProbe], str | None] = _no_schema
    constraint_name_clip_length: int = STANDARD_CONSTRAINT_NAME_CLIP_LENGTH
    change_column_type_template: str | None = None
    drop_index_template: str = DROP_INDEX_SCHEMA_DOT_TABLE_DOT_INDEX
    cluster_select_template: str = STANDARD_SELECT_SYNTAX
    supports_function_indexes: bool = False
    index_lookup: IndexLookup = IndexLookup.AS_IS
    oracle_like: bool = False

    def __str__(self) -> str:
        return self.name

    def matches(self, probe: ConnectionProbe) -> bool:
        """True if the probe's product name and version belong to this dialect."""
        if not _product_name_matches(self.product_name_prefixes, probe.product_name):
            return False
        if self.version_predicate is None:
            return True
        return self.version_predicate(probe)

    def schema_name(self, probe: ConnectionProbe) -> str | None:
        return self.schema_resolver(probe)

    def change_column_type_sql(self, table: str, column: str, sql_type: str) -> str | None:
        """ALTER statement changing a column's type, or ``None`` if unsupported."""
        if self.change_column_type_template is None:
            return None
        return self.change_column_type_template.format(
            table=table, column=column, type=sql_type
        )

    def drop_index_sql(self, schema_name: str | None, table: str, index: str) -> str:
        schema_dot = f"{schema_name}." if schema_name else ""
        return self.drop_index_template.format(
            schema_dot=schema_dot, table=table, index=index
        )

    def select_for_update_syntax(self, cluster_mode: bool) -> str:
        """Row-locking select template with ``{0}`` columns, ``{1}`` table, ``{2}`` where."""
        if cluster_mode:
            return self.cluster_select_template
        return STANDARD_SELECT_SYNTAX
