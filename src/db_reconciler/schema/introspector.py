"""Live schema introspection via the SQLAlchemy inspector.

This module reads what the reconciler compares against:
- Table and view names
- Columns (type name, size, decimal digits, byte length, nullability)
- Foreign keys
- Index names

Every name is upper-cased and, when a schema is configured, prefixed
with the upper-cased schema name, so live tables can be matched against
``EntityModel.qualified_table_name()``.

Usage:
    from db_reconciler.schema.introspector import SchemaIntrospector

    introspector = SchemaIntrospector(executor, dialect, schema_name="app")
    tables = introspector.list_tables(messages)
    columns = introspector.list_columns(tables, messages)
"""

import logging
import re
from collections.abc import Iterable

from sqlalchemy import inspect, text
from sqlalchemy.engine import Connection, Inspector
from sqlalchemy.engine.reflection import ObjectKind
from sqlalchemy.exc import CompileError, NoSuchTableError, SQLAlchemyError
from sqlalchemy.types import TypeEngine

from db_reconciler.adapters.base import SqlExecutor
from db_reconciler.dialects.models import Dialect, IndexLookup, probe_connection
from db_reconciler.exceptions import IntrospectionError
from db_reconciler.schema.models import (
    LiveColumn,
    LiveIndex,
    LiveReference,
    ReconciliationMessage,
    Severity,
)

logger = logging.getLogger(__name__)

ORACLE_COLUMN_QUERY = (
    "SELECT TABLE_NAME, COLUMN_NAME, DATA_TYPE, DATA_LENGTH "
    "FROM ALL_TAB_COLUMNS WHERE OWNER = :owner"
)
ORACLE_SYNONYM_QUERY = "SELECT SYNONYM_NAME FROM ALL_SYNONYMS WHERE OWNER = :owner"

TABLES_AND_VIEWS = ObjectKind.TABLE | ObjectKind.VIEW

_SIZE_ARGUMENTS = re.compile(r"\([^)]*\)")
_TYPE_MODIFIERS = re.compile(
    r"\s+(?:CHARACTER SET|COLLATE|UNSIGNED|ZEROFILL|WITH(?:OUT)? (?:LOCAL )?TIME ZONE)\b.*$"
)
# names PostgreSQL reports for the zoned variants
_PG_ZONED_NAMES = {"TIMESTAMP": "TIMESTAMPTZ", "TIME": "TIMETZ"}


def native_type_name(type_string: str, backend: str) -> str:
    """Type name as the database reports it, from a compiled or catalog type string.

    Size arguments are dropped everywhere. Outside Oracle, whose catalog
    names keep their zone clause, column modifiers are dropped too and
    PostgreSQL zoned types map to their short names.

    Example:
        >>> native_type_name("TIMESTAMP(6) WITHOUT TIME ZONE", "postgresql")
        'TIMESTAMP'
        >>> native_type_name("VARCHAR(255) CHARACTER SET utf8mb4", "mysql")
        'VARCHAR'
    """
    name = " ".join(_SIZE_ARGUMENTS.sub("", type_string).split()).upper()
    if backend == "oracle":
        return name
    zoned = " WITH TIME ZONE" in name
    name = _TYPE_MODIFIERS.sub("", name)
    if zoned and backend == "postgresql":
        return _PG_ZONED_NAMES.get(name, name)
    return name


def _type_name(sa_type: TypeEngine, connection: Connection) -> str:
    """Native type name of a reflected SQLAlchemy type."""
    try:
        compiled = sa_type.compile(dialect=connection.dialect)
    except CompileError:
        compiled = type(sa_type).__name__
    return native_type_name(compiled, connection.dialect.name)


def _size(value: object) -> int:
    return value if isinstance(value, int) else -1


class SchemaIntrospector:
    """Reads tables, columns, foreign keys and indexes of the live database.

    Each ``list_*`` method borrows its own connection from the executor.
    Connection and metadata failures are recorded as error messages and
    turned into a ``None`` result; the caller decides whether to abort.

    Args:
        executor: Connection source.
        dialect: Detected dialect; drives the lookup schema and the
            table-name casing used for index lookups.
        schema_name: Configured schema, if any.
    """

    def __init__(
        self,
        executor: SqlExecutor,
        dialect: Dialect,
        schema_name: str | None = None,
    ):
        self._executor = executor
        self._dialect = dialect
        self._schema_name = schema_name or None
        # table key -> name as reported by the database
        self._raw_names: dict[str, str] = {}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _error(self, messages: list[ReconciliationMessage], text_: str) -> None:
        logger.error(text_)
        messages.append(ReconciliationMessage(severity=Severity.ERROR, text=text_))

    def _lookup_schema(self, connection: Connection) -> str | None:
        if self._schema_name:
            return self._schema_name
        probe = probe_connection(connection)
        if self._dialect.oracle_like and probe.user_name:
            # the connecting user owns the schema
            return probe.user_name.upper()
        return self._dialect.schema_name(probe) or None

    def table_key(self, raw_name: str) -> str:
        """Key a live table is reported under: ``SCHEMA.TABLE`` or ``TABLE``."""
        name = raw_name.upper()
        if self._schema_name:
            return f"{self._schema_name.upper()}.{name}"
        return name

    def _plain_name(self, table_key: str) -> str:
        if self._schema_name and "." in table_key:
            return table_key.split(".", 1)[1]
        return table_key

    def _oracle_synonyms(self, conn: Connection, owner: str | None) -> list[str]:
        if not owner:
            return []
        try:
            rows = conn.execute(text(ORACLE_SYNONYM_QUERY), {"owner": owner.upper()})
        except SQLAlchemyError as e:
            logger.warning("Unable to read synonyms from ALL_SYNONYMS: %s", e)
            return []
        return [str(name) for (name,) in rows]

    def _scan_raw_tables(
        self, conn: Connection, inspector: Inspector, schema: str | None
    ) -> list[str]:
        """Tables and views, plus synonyms on Oracle-like dialects."""
        names = list(inspector.get_table_names(schema=schema)) + list(
            inspector.get_view_names(schema=schema)
        )
        if self._dialect.oracle_like:
            names.extend(n for n in self._oracle_synonyms(conn, schema) if n not in names)
        return names

    def _wanted_raw_names(
        self, conn: Connection, inspector: Inspector, schema: str | None, wanted: set[str]
    ) -> list[str]:
        return [
            raw
            for raw in self._scan_raw_tables(conn, inspector, schema)
            if self.table_key(raw) in wanted
        ]

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def list_tables(self, messages: list[ReconciliationMessage]) -> set[str] | None:
        """All table and view names visible in the lookup schema.

        Returns:
            The set of table keys, an empty set when the scan itself
            fails, or ``None`` when no connection could be obtained.
        """
        logger.info("Getting table info from database")
        try:
            with self._executor.connect() as conn:
                try:
                    inspector = inspect(conn)
                    schema = self._lookup_schema(conn)
                    raw_tables = self._scan_raw_tables(conn, inspector, schema)
                except SQLAlchemyError as e:
                    # some databases fail the scan when there are no tables yet
                    self._error(
                        messages,
                        "Unable to get list of table information, let's try the "
                        f"create anyway... Error was: {e}",
                    )
                    return set()
        except IntrospectionError as e:
            self._error(
                messages, f"Unable to establish a connection with the database... Error was: {e}"
            )
            return None

        table_names: set[str] = set()
        for raw in raw_tables:
            key = self.table_key(raw)
            self._raw_names[key] = raw
            table_names.add(key)
        return table_names

    # ------------------------------------------------------------------
    # Columns
    # ------------------------------------------------------------------

    def _oracle_catalog(
        self, conn: Connection, owner: str | None
    ) -> dict[tuple[str, str], tuple[str, int]]:
        """Native type name and byte length per (TABLE, COLUMN) from ALL_TAB_COLUMNS."""
        if not owner:
            return {}
        try:
            rows = conn.execute(text(ORACLE_COLUMN_QUERY), {"owner": owner.upper()})
        except SQLAlchemyError as e:
            logger.warning("Unable to read column types from ALL_TAB_COLUMNS: %s", e)
            return {}
        return {
            (str(table).upper(), str(column).upper()): (
                native_type_name(str(data_type), "oracle"),
                _size(data_length),
            )
            for table, column, data_type, data_length in rows
        }

    def list_columns(
        self, table_names: Iterable[str], messages: list[ReconciliationMessage]
    ) -> dict[str, list[LiveColumn]] | None:
        """Columns of the given tables, keyed by table key.

        All tables are reflected in one batched inspector call. On
        Oracle-like dialects the type name and byte length come from
        ALL_TAB_COLUMNS, since the reflected type loses names such as
        VARCHAR2.
        """
        wanted = set(table_names)
        if not wanted:
            return {}

        logger.info("Getting column info from database")
        columns: dict[str, list[LiveColumn]] = {}
        try:
            with self._executor.connect() as conn:
                inspector = inspect(conn)
                schema = self._lookup_schema(conn)
                raws = self._wanted_raw_names(conn, inspector, schema, wanted)
                if not raws:
                    return {}
                catalog = (
                    self._oracle_catalog(conn, schema) if self._dialect.oracle_like else {}
                )
                reflected = inspector.get_multi_columns(
                    schema=schema, filter_names=raws, kind=TABLES_AND_VIEWS
                )
                for (_, raw), cols in reflected.items():
                    key = self.table_key(raw)
                    for col in cols:
                        sa_type = col["type"]
                        column_name = str(col["name"]).upper()
                        size = _size(getattr(sa_type, "length", None))
                        if size == -1:
                            size = _size(getattr(sa_type, "precision", None))
                        type_name, byte_length = catalog.get(
                            (raw.upper(), column_name), (None, -1)
                        )
                        columns.setdefault(key, []).append(
                            LiveColumn(
                                table_name=key,
                                column_name=column_name,
                                type_name=type_name or _type_name(sa_type, conn),
                                column_size=size,
                                decimal_digits=_size(getattr(sa_type, "scale", None)),
                                max_size_in_bytes=byte_length,
                                nullable=col.get("nullable"),
                            )
                        )
        except IntrospectionError as e:
            self._error(
                messages, f"Unable to establish a connection with the database... Error was: {e}"
            )
            return None
        except SQLAlchemyError as e:
            self._error(messages, f"Error getting column meta data. Error was: {e}")
            return None

        return columns

    # ------------------------------------------------------------------
    # Foreign keys
    # ------------------------------------------------------------------

    def list_foreign_keys(
        self, table_names: Iterable[str], messages: list[ReconciliationMessage]
    ) -> dict[str, dict[str, LiveReference]] | None:
        """Foreign keys of the given tables: table key -> FK name -> reference."""
        wanted = set(table_names)
        if not wanted:
            return {}

        logger.info("Getting foreign key info from database")
        references: dict[str, dict[str, LiveReference]] = {}
        try:
            with self._executor.connect() as conn:
                inspector = inspect(conn)
                schema = self._lookup_schema(conn)
                raws = self._wanted_raw_names(conn, inspector, schema, wanted)
                if not raws:
                    return {}
                reflected = inspector.get_multi_foreign_keys(
                    schema=schema, filter_names=raws, kind=ObjectKind.TABLE
                )
                for (_, raw), fks in reflected.items():
                    key = self.table_key(raw)
                    for fk in fks:
                        if not fk.get("name"):
                            logger.debug("Skipping unnamed foreign key on table %s", key)
                            continue
                        reference = LiveReference(
                            fk_name=fk["name"].upper(),
                            fk_table_name=key,
                            fk_column_name=",".join(
                                c.upper() for c in fk["constrained_columns"]
                            ),
                            pk_table_name=self.table_key(fk["referred_table"]),
                            pk_column_name=",".join(
                                c.upper() for c in fk["referred_columns"]
                            ),
                        )
                        references.setdefault(key, {})[reference.fk_name] = reference
        except IntrospectionError as e:
            self._error(
                messages, f"Unable to establish a connection with the database... Error was: {e}"
            )
            return None
        except SQLAlchemyError as e:
            self._error(messages, f"Error getting foreign key info. Error was: {e}")
            return None

        logger.info("There are %d tables with foreign keys", len(references))
        return references

    # ------------------------------------------------------------------
    # Indexes
    # ------------------------------------------------------------------

    def _index_lookup_name(self, table_key: str) -> str:
        plain = self._plain_name(table_key)
        if self._dialect.index_lookup == IndexLookup.UPPER:
            return plain.upper()
        return self._raw_names.get(table_key, plain)

    def _read_indexes(
        self, inspector: Inspector, name: str, schema: str | None
    ) -> list[dict]:
        try:
            return list(inspector.get_indexes(name, schema=schema))
        except NoSuchTableError:
            return []

    def list_indexes(
        self,
        table_names: Iterable[str],
        messages: list[ReconciliationMessage],
        include_unique: bool = False,
    ) -> dict[str, set[str]] | None:
        """Index names of the given tables, keyed by table key.

        Unique indexes are skipped unless ``include_unique`` is set. A
        table whose indexes cannot be read is logged and gets an empty set.
        """
        wanted = sorted(set(table_names))
        if not wanted:
            return {}

        logger.info("Getting index info from database")
        indexes: dict[str, set[str]] = {}
        try:
            with self._executor.connect() as conn:
                inspector = inspect(conn)
                schema = self._lookup_schema(conn)
                for key in wanted:
                    names: set[str] = set()
                    lookup = self._index_lookup_name(key)
                    try:
                        rows = self._read_indexes(inspector, lookup, schema)
                        if not rows and self._dialect.index_lookup == IndexLookup.LOWER_RETRY:
                            rows = self._read_indexes(inspector, lookup.lower(), schema)
                        for row in rows:
                            if not row.get("name"):
                                continue
                            index = LiveIndex(
                                index_name=row["name"].upper(),
                                table_name=key,
                                unique=bool(row.get("unique")),
                            )
                            if index.unique and not include_unique:
                                continue
                            names.add(index.index_name)
                    except SQLAlchemyError as e:
                        logger.warning("Error getting index info for table %s: %s", key, e)
                    indexes[key] = names
        except IntrospectionError as e:
            self._error(
                messages, f"Unable to establish a connection with the database... Error was: {e}"
            )
            return None

        return indexes
