"""Built-in dialect records.

``BUILTIN_DIALECTS`` lists the records in registration order. Detection
returns the first record whose predicate holds, so records for the same
product with overlapping version ranges must stay most-specific-first
(Oracle 9i/10g before Oracle 8i, HSQL <= 2.3.2 before HSQL >= 2.3.3).
"""

import sys

from db_reconciler.dialects.models import (
    ALTER_COLUMN_TEMPLATE,
    ALTER_COLUMN_TYPE_TEMPLATE,
    ALTER_TABLE_DROP_INDEX,
    DROP_INDEX_SCHEMA_DOT_INDEX,
    MODIFY_COLUMN_TEMPLATE,
    STANDARD_SELECT_FOR_UPDATE_SYNTAX,
    ConnectionProbe,
    Dialect,
    IndexLookup,
    parse_version,
)

ORACLE_8I_VERSION_PREFIX = "Oracle8i Enterprise Edition Release "


# ----------------------------------------------------------------------------
# Version predicates
# ----------------------------------------------------------------------------


def _at_least(major: int, minor: int):
    def predicate(probe: ConnectionProbe) -> bool:
        return probe.version()[:2] >= (major, minor)

    return predicate


def _at_most(major: int, minor: int):
    def predicate(probe: ConnectionProbe) -> bool:
        return probe.version()[:2] <= (major, minor)

    return predicate


def _exactly(major: int, minor: int):
    def predicate(probe: ConnectionProbe) -> bool:
        return probe.version()[:2] == (major, minor)

    return predicate


def _hsql_version(probe: ConnectionProbe) -> tuple[int, int, int]:
    # HSQL drivers only report major.minor; the micro part lives in the version string
    if probe.product_version:
        return parse_version(probe.product_version)
    return probe.version()


def _hsql_at_most_2_3_2(probe: ConnectionProbe) -> bool:
    return _hsql_version(probe) <= (2, 3, 2)


def _hsql_at_least_2_3_3(probe: ConnectionProbe) -> bool:
    return _hsql_version(probe) >= (2, 3, 3)


def _oracle_8i(probe: ConnectionProbe) -> bool:
    return probe.version(prefix=ORACLE_8I_VERSION_PREFIX)[:2] <= (8, sys.maxsize)


# ----------------------------------------------------------------------------
# Schema resolvers
# ----------------------------------------------------------------------------


def _upper_user_schema(probe: ConnectionProbe) -> str | None:
    return probe.user_name.upper() if probe.user_name else None


def _public_schema(probe: ConnectionProbe) -> str | None:
    return "public"


def _empty_schema(probe: ConnectionProbe) -> str | None:
    return ""


# ----------------------------------------------------------------------------
# Records
# ----------------------------------------------------------------------------

DB2 = Dialect(
    name="DB2",
    field_type_name="db2",
    product_name_prefixes=("DB2", "QDB2"),
    schema_resolver=_upper_user_schema,
    constraint_name_clip_length=15,
)

CLOUDSCAPE = Dialect(
    name="Cloudscape",
    field_type_name="cloudscape",
    product_name_prefixes=("Apache Derby",),
)

FIREBIRD = Dialect(
    name="Firebird",
    field_type_name="firebird",
    product_name_prefixes=("Firebird",),
)

HSQL = Dialect(
    name="HSQL 2.3.2 and earlier",
    field_type_name="hsql",
    product_name_prefixes=("HSQL Database Engine",),
    version_predicate=_hsql_at_most_2_3_2,
    change_column_type_template=MODIFY_COLUMN_TEMPLATE,
    drop_index_template=DROP_INDEX_SCHEMA_DOT_INDEX,
    index_lookup=IndexLookup.UPPER,
)

HSQL_2_3_3 = Dialect(
    name="HSQL 2.3.3 and later",
    field_type_name="hsql",
    product_name_prefixes=("HSQL Database Engine",),
    version_predicate=_hsql_at_least_2_3_3,
    change_column_type_template=MODIFY_COLUMN_TEMPLATE,
    drop_index_template=DROP_INDEX_SCHEMA_DOT_INDEX,
    cluster_select_template=STANDARD_SELECT_FOR_UPDATE_SYNTAX,
    index_lookup=IndexLookup.UPPER,
)

H2 = Dialect(
    name="H2",
    field_type_name="h2",
    product_name_prefixes=("H2",),
    change_column_type_template=ALTER_COLUMN_TEMPLATE,
    drop_index_template=DROP_INDEX_SCHEMA_DOT_INDEX,
    cluster_select_template=STANDARD_SELECT_FOR_UPDATE_SYNTAX,
    index_lookup=IndexLookup.UPPER,
)

MYSQL = Dialect(
    name="MySQL",
    field_type_name="mysql",
    product_name_prefixes=("MySQL",),
    change_column_type_template=MODIFY_COLUMN_TEMPLATE,
    drop_index_template=ALTER_TABLE_DROP_INDEX,
    cluster_select_template=STANDARD_SELECT_FOR_UPDATE_SYNTAX,
)

MSSQL = Dialect(
    name="MS SQL",
    field_type_name="mssql",
    product_name_prefixes=("Microsoft SQL Server",),
    change_column_type_template=ALTER_COLUMN_TEMPLATE,
    cluster_select_template="SELECT {0} FROM {1} WITH (UPDLOCK,ROWLOCK) WHERE {2}",
)

ORACLE_10G = Dialect(
    name="Oracle 9i and 10g",
    field_type_name="oracle10g",
    product_name_prefixes=("ORACLE",),
    version_predicate=_at_least(9, 0),
    change_column_type_template=MODIFY_COLUMN_TEMPLATE,
    drop_index_template=DROP_INDEX_SCHEMA_DOT_INDEX,
    cluster_select_template=STANDARD_SELECT_FOR_UPDATE_SYNTAX,
    supports_function_indexes=True,
    index_lookup=IndexLookup.UPPER,
    oracle_like=True,
)

ORACLE_8I = Dialect(
    name="Oracle 8i",
    field_type_name="oracle",
    product_name_prefixes=("Oracle",),
    version_predicate=_oracle_8i,
    cluster_select_template=STANDARD_SELECT_FOR_UPDATE_SYNTAX,
    supports_function_indexes=True,
    index_lookup=IndexLookup.UPPER,
    oracle_like=True,
)

POSTGRES_7_2 = Dialect(
    name="PostGres 7.2",
    field_type_name="postgres72",
    product_name_prefixes=("POSTGRESQL",),
    version_predicate=_exactly(7, 2),
    schema_resolver=_empty_schema,
    cluster_select_template=STANDARD_SELECT_FOR_UPDATE_SYNTAX,
    supports_function_indexes=True,
    index_lookup=IndexLookup.LOWER_RETRY,
)

POSTGRES_7_3 = Dialect(
    name="PostGres 7.3 and higher",
    field_type_name="postgres72",
    product_name_prefixes=("POSTGRESQL",),
    version_predicate=_at_least(7, 3),
    schema_resolver=_public_schema,
    change_column_type_template=ALTER_COLUMN_TYPE_TEMPLATE,
    drop_index_template=DROP_INDEX_SCHEMA_DOT_INDEX,
    cluster_select_template=STANDARD_SELECT_FOR_UPDATE_SYNTAX,
    supports_function_indexes=True,
    index_lookup=IndexLookup.LOWER_RETRY,
)

POSTGRES = Dialect(
    name="Postgres 7.1 and earlier",
    field_type_name="postgres",
    product_name_prefixes=("POSTGRESQL",),
    version_predicate=_at_most(7, 1),
    cluster_select_template=STANDARD_SELECT_FOR_UPDATE_SYNTAX,
    supports_function_indexes=True,
    index_lookup=IndexLookup.LOWER_RETRY,
)

SAP_DB = Dialect(
    name="SAP DB version 7.5 or less",
    field_type_name="sapdb",
    product_name_prefixes=("SAP DB",),
    version_predicate=_at_most(7, 5),
)

SAP_DB_7_6 = Dialect(
    name="SAP DB Version 7.6 or greater",
    field_type_name="sapdb",
    product_name_prefixes=("SAP DB",),
    version_predicate=_at_least(7, 6),
    schema_resolver=_upper_user_schema,
)

SYBASE = Dialect(
    name="Sybase",
    field_type_name="sybase",
    product_name_prefixes=("Adaptive Server", "sql server"),
)

SQLITE = Dialect(
    name="SQLite",
    field_type_name="sqlite",
    product_name_prefixes=("SQLite",),
    drop_index_template=DROP_INDEX_SCHEMA_DOT_INDEX,
    supports_function_indexes=True,
)

BUILTIN_DIALECTS: tuple[Dialect, ...] = (
    DB2,
    CLOUDSCAPE,
    FIREBIRD,
    HSQL,
    HSQL_2_3_3,
    H2,
    MYSQL,
    MSSQL,
    ORACLE_10G,
    ORACLE_8I,
    POSTGRES_7_2,
    POSTGRES_7_3,
    POSTGRES,
    SAP_DB,
    SAP_DB_7_6,
    SYBASE,
    SQLITE,
)
