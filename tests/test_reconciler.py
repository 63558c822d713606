"""Tests for DatabaseReconciler.

The executor is a MagicMock recording the DDL it is asked to run and the
introspector is a MagicMock returning a fixed live snapshot, so every test
checks exactly which statements a reconciliation issues and which
messages it reports.
"""

from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.exc import SQLAlchemyError

from db_reconciler.config.models import DatasourceConfig
from db_reconciler.dialects.builtin import MYSQL, POSTGRES_7_3, SQLITE
from db_reconciler.dialects.models import ConnectionProbe
from db_reconciler.dialects.registry import DialectRegistry
from db_reconciler.exceptions import ConfigurationError, IntrospectionError
from db_reconciler.model.entities import (
    EntityModel,
    FieldModel,
    FieldTypeModel,
    FunctionIndexModel,
    IndexModel,
    KeyMap,
    RelationModel,
)
from db_reconciler.schema.introspector import SchemaIntrospector
from db_reconciler.schema.models import LiveColumn, LiveReference, Severity
from db_reconciler.schema.reconciler import DatabaseReconciler
from db_reconciler.schema.types import parse_type

FIELD_TYPES = {
    "id": FieldTypeModel(name="id", sql_type="VARCHAR(20)"),
    "name": FieldTypeModel(name="name", sql_type="VARCHAR(100)"),
    "short-varchar": FieldTypeModel(name="short-varchar", sql_type="VARCHAR(60)"),
    "very-long": FieldTypeModel(name="very-long", sql_type="TEXT"),
    "currency-amount": FieldTypeModel(name="currency-amount", sql_type="NUMERIC(18,2)"),
}


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _entity(name: str, *fields: FieldModel, table_name: str = "", **kwargs) -> EntityModel:
    return EntityModel(entity_name=name, table_name=table_name, fields=list(fields), **kwargs)


def _pk(name: str = "id") -> FieldModel:
    return FieldModel(name=name, type="id", is_primary_key=True)


def _one(related: str, field_name: str, title: str = "") -> RelationModel:
    return RelationModel(
        type="one",
        related_entity_name=related,
        title=title,
        key_maps=[KeyMap(field_name=field_name, related_field_name="id")],
    )


def _live(entity: EntityModel) -> list[LiveColumn]:
    """Live columns exactly matching the entity's declared fields."""
    columns = []
    for f in entity.fields:
        descriptor = parse_type(FIELD_TYPES[f.type], False)
        columns.append(
            LiveColumn(
                entity.table_name,
                f.column_name,
                descriptor.identity,
                descriptor.size,
                descriptor.decimals,
            )
        )
    return columns


def _reconciler(
    tables: dict[str, list[LiveColumn]],
    indexes: dict[str, set[str]] | None = None,
    fks: dict[str, dict[str, LiveReference]] | None = None,
    datasource: DatasourceConfig | None = None,
    dialect=POSTGRES_7_3,
) -> tuple[DatabaseReconciler, MagicMock]:
    introspector = MagicMock(spec=SchemaIntrospector)
    introspector.list_tables.return_value = set(tables)
    introspector.list_columns.return_value = dict(tables)
    introspector.list_indexes.return_value = indexes or {}
    introspector.list_foreign_keys.return_value = fks or {}

    executor = MagicMock()
    executor.execute_ddl.return_value = 0
    reconciler = DatabaseReconciler(
        executor,
        FIELD_TYPES,
        datasource or DatasourceConfig(),
        dialect=dialect,
        introspector=introspector,
    )
    return reconciler, executor


def _statements(executor: MagicMock) -> list[str]:
    return [c.args[0] for c in executor.execute_ddl.call_args_list]


def _texts(result, severity: Severity) -> list[str]:
    return [m.text for m in result.messages if m.severity == severity]


def _customer() -> EntityModel:
    return _entity("Customer", _pk(), FieldModel(name="name", type="name"))


def _order(**kwargs) -> EntityModel:
    return _entity(
        "Order",
        _pk(),
        FieldModel(name="customerId", type="id"),
        FieldModel(name="comments", type="very-long"),
        table_name="ORDERS",
        relations=[_one("Customer", "customerId", title="Order")],
        **kwargs,
    )


# ------------------------------------------------------------------
# Column type checks
# ------------------------------------------------------------------


class TestColumnTypes:
    """Verify promotion, widening and type-mismatch reporting."""

    def test_varchar_column_declared_text_is_promoted(self) -> None:
        """A live VARCHAR(255) declared as TEXT gets one ALTER COLUMN TYPE."""
        foo = _entity("Foo", _pk(), FieldModel(name="bar", type="very-long"))
        live = [LiveColumn("FOO", "ID", "VARCHAR", 20), LiveColumn("FOO", "BAR", "VARCHAR", 255)]
        reconciler, executor = _reconciler({"FOO": live})

        result = reconciler.check_db({"Foo": foo}, promote=True)

        assert _statements(executor) == ["ALTER TABLE FOO ALTER COLUMN BAR TYPE TEXT"]
        important = _texts(result, Severity.IMPORTANT)
        assert len(important) == 1
        assert 'promoted from "VARCHAR(255)" to "TEXT"' in important[0]
        assert not result.has_errors

    def test_mismatch_without_promote_warns(self) -> None:
        foo = _entity("Foo", _pk(), FieldModel(name="bar", type="very-long"))
        live = [LiveColumn("FOO", "ID", "VARCHAR", 20), LiveColumn("FOO", "BAR", "VARCHAR", 255)]
        reconciler, executor = _reconciler({"FOO": live})

        result = reconciler.check_db({"Foo": foo}, promote=False)

        assert _statements(executor) == []
        assert _texts(result, Severity.WARNING) == [
            'WARNING: Column "BAR" of table "FOO" of entity "Foo" is of type "VARCHAR(255)" '
            'in the database, but is defined as type "TEXT" in the entity definition.'
        ]

    def test_disallowed_promotion_warns(self) -> None:
        """A live TEXT column declared VARCHAR is never converted."""
        foo = _entity("Foo", _pk(), FieldModel(name="bar", type="short-varchar"))
        live = [LiveColumn("FOO", "ID", "VARCHAR", 20), LiveColumn("FOO", "BAR", "TEXT")]
        reconciler, executor = _reconciler({"FOO": live})

        result = reconciler.check_db({"Foo": foo}, promote=True)

        assert _statements(executor) == []
        assert len(_texts(result, Severity.WARNING)) == 1

    def test_promotion_unsupported_by_dialect(self) -> None:
        """Dialects without a type-change template report an error."""
        foo = _entity("Foo", _pk(), FieldModel(name="bar", type="very-long"))
        live = [LiveColumn("FOO", "ID", "VARCHAR", 20), LiveColumn("FOO", "BAR", "VARCHAR", 255)]
        reconciler, executor = _reconciler({"FOO": live}, dialect=SQLITE)

        result = reconciler.check_db({"Foo": foo}, promote=True)

        assert _statements(executor) == []
        errors = _texts(result, Severity.ERROR)
        assert errors[0].startswith('Could not promote column "BAR" in table "FOO"')
        assert errors[1] == "Changing of column type is not supported in SQLite."

    def test_wider_declaration_is_widened(self) -> None:
        foo = _entity("Foo", _pk(), FieldModel(name="title", type="name"))
        live = [LiveColumn("FOO", "ID", "VARCHAR", 20), LiveColumn("FOO", "TITLE", "VARCHAR", 60)]
        reconciler, executor = _reconciler({"FOO": live})

        result = reconciler.check_db({"Foo": foo}, widen=True)

        assert _statements(executor) == ["ALTER TABLE FOO ALTER COLUMN TITLE TYPE VARCHAR(100)"]
        assert "has been changed from VARCHAR(60) to VARCHAR(100)" in _texts(
            result, Severity.IMPORTANT
        )[0]

    def test_narrower_declaration_is_never_applied(self) -> None:
        foo = _entity("Foo", _pk(), FieldModel(name="title", type="short-varchar"))
        live = [LiveColumn("FOO", "ID", "VARCHAR", 20), LiveColumn("FOO", "TITLE", "VARCHAR", 100)]
        reconciler, executor = _reconciler({"FOO": live})

        result = reconciler.check_db({"Foo": foo}, add_missing=True)

        assert _statements(executor) == []
        warnings = _texts(result, Severity.WARNING)
        assert len(warnings) == 1
        assert 'has a column size of "VARCHAR(100)"' in warnings[0]

    def test_decimal_digits_mismatch_is_reported(self) -> None:
        foo = _entity("Foo", _pk(), FieldModel(name="total", type="currency-amount"))
        live = [LiveColumn("FOO", "ID", "VARCHAR", 20), LiveColumn("FOO", "TOTAL", "NUMERIC", 18, 4)]
        reconciler, executor = _reconciler({"FOO": live})

        result = reconciler.check_db({"Foo": foo}, add_missing=True)

        assert _statements(executor) == []
        assert 'has a decimalDigits of "4"' in _texts(result, Severity.WARNING)[0]

    def test_unknown_field_type_is_an_error(self) -> None:
        foo = _entity("Foo", _pk(), FieldModel(name="bar", type="ghost"))
        live = [LiveColumn("FOO", "ID", "VARCHAR", 20), LiveColumn("FOO", "BAR", "TEXT")]
        reconciler, _ = _reconciler({"FOO": live})

        result = reconciler.check_db({"Foo": foo})

        assert 'field type name of "ghost"' in _texts(result, Severity.ERROR)[0]


# ------------------------------------------------------------------
# Missing tables and columns
# ------------------------------------------------------------------


class TestMissingColumns:
    """Verify ADD COLUMN and its legacy retry."""

    def _setup(self):
        order = _entity("Order", _pk(), FieldModel(name="status", type="id"), table_name="ORDERS")
        live = [LiveColumn("ORDERS", "ID", "VARCHAR", 20)]
        return order, _reconciler({"ORDERS": live})

    def test_missing_column_is_added(self) -> None:
        order, (reconciler, executor) = self._setup()

        result = reconciler.check_db({"Order": order}, add_missing=True)

        assert _statements(executor) == ["ALTER TABLE ORDERS ADD STATUS VARCHAR(20)"]
        assert 'Added column "STATUS" to table "ORDERS"' in _texts(result, Severity.IMPORTANT)

    def test_legacy_syntax_retried_once(self) -> None:
        order, (reconciler, executor) = self._setup()
        executor.execute_ddl.side_effect = [SQLAlchemyError("syntax error"), 0]

        result = reconciler.check_db({"Order": order}, add_missing=True)

        assert _statements(executor) == [
            "ALTER TABLE ORDERS ADD STATUS VARCHAR(20)",
            "ALTER TABLE ORDERS ADD COLUMN STATUS VARCHAR(20)",
        ]
        assert not result.has_errors

    def test_both_syntaxes_fail(self) -> None:
        """Exactly two attempts; the first failure is reported."""
        order, (reconciler, executor) = self._setup()
        executor.execute_ddl.side_effect = SQLAlchemyError("syntax error")

        result = reconciler.check_db({"Order": order}, add_missing=True)

        assert executor.execute_ddl.call_count == 2
        errors = _texts(result, Severity.ERROR)
        assert errors[0] == 'Could not add column "STATUS" to table "ORDERS"'
        assert "ALTER TABLE ORDERS ADD STATUS VARCHAR(20)\nError was:" in errors[1]

    def test_missing_column_only_reported_without_add_missing(self) -> None:
        order, (reconciler, executor) = self._setup()

        result = reconciler.check_db({"Order": order})

        assert _statements(executor) == []
        assert any('missing its corresponding column "STATUS"' in t for t in _texts(result, Severity.WARNING))


class TestMissingTables:
    """Verify table creation and the follow-up FK and index phases."""

    def test_tables_created_with_foreign_keys_and_indexes(self) -> None:
        customer = _customer()
        order = _order(indexes=[IndexModel(name="ORDER_CUST", field_names=["customerId"])])
        reconciler, executor = _reconciler({})

        result = reconciler.check_db({"Customer": customer, "Order": order}, add_missing=True)

        assert _statements(executor) == [
            "CREATE TABLE CUSTOMER (ID VARCHAR(20) NOT NULL, NAME VARCHAR(100), "
            "CONSTRAINT PK_CUSTOMER PRIMARY KEY (ID))",
            "CREATE TABLE ORDERS (ID VARCHAR(20) NOT NULL, CUSTOMER_ID VARCHAR(20), "
            "COMMENTS TEXT, CONSTRAINT PK_ORDERS PRIMARY KEY (ID))",
            "ALTER TABLE ORDERS ADD CONSTRAINT ORDERCUSTOMER FOREIGN KEY (CUSTOMER_ID) "
            "REFERENCES CUSTOMER (ID)",
            "CREATE INDEX ORDERCUSTOMER ON ORDERS (CUSTOMER_ID)",
            "CREATE INDEX ORDER_CUST ON ORDERS (CUSTOMER_ID)",
        ]
        assert result.created_entities == ["Customer", "Order"]
        assert not result.has_errors

    def test_foreign_keys_disabled(self) -> None:
        reconciler, executor = _reconciler(
            {}, datasource=DatasourceConfig(use_foreign_keys=False, use_foreign_key_indices=False)
        )

        reconciler.check_db({"Customer": _customer(), "Order": _order()}, add_missing=True)

        assert all(s.startswith("CREATE TABLE") for s in _statements(executor))

    def test_missing_table_only_reported_without_add_missing(self) -> None:
        reconciler, executor = _reconciler({})

        result = reconciler.check_db({"Customer": _customer()})

        assert _statements(executor) == []
        assert _texts(result, Severity.WARNING) == ['Entity "Customer" has no table in the database']
        assert result.created_entities == []

    def test_failed_create_is_not_marked_created(self) -> None:
        reconciler, executor = _reconciler({})
        executor.execute_ddl.side_effect = SQLAlchemyError("permission denied")

        result = reconciler.check_db({"Customer": _customer()}, add_missing=True)

        assert result.created_entities == []
        assert 'Could not create table "CUSTOMER"' in _texts(result, Severity.ERROR)

    def test_view_entities_are_skipped(self) -> None:
        view = EntityModel(entity_name="OrderSummary", is_view=True)
        reconciler, executor = _reconciler({})

        result = reconciler.check_db({"OrderSummary": view}, add_missing=True)

        assert _statements(executor) == []
        assert _texts(result, Severity.VERBOSE) == ["NOT Checking #1/1 View Entity OrderSummary"]


# ------------------------------------------------------------------
# Foreign keys and FK indexes on existing tables
# ------------------------------------------------------------------


class TestForeignKeyCheck:
    """Verify foreign keys are matched by name only."""

    def _entities(self) -> dict[str, EntityModel]:
        customer = _entity("OrderCustomer", _pk(), FieldModel(name="name", type="name"))
        order = _entity(
            "Order",
            _pk(),
            FieldModel(name="customerId", type="id"),
            table_name="ORDERS",
            relations=[_one("OrderCustomer", "customerId")],
        )
        return {"OrderCustomer": customer, "Order": order}

    def _tables(self, entities) -> dict[str, list[LiveColumn]]:
        return {e.table_name: _live(e) for e in entities.values()}

    def test_existing_fk_needs_nothing(self) -> None:
        entities = self._entities()
        ref = LiveReference("ORDERCUSTOMER", "ORDERS", "CUSTOMER_ID", "ORDER_CUSTOMER", "ID")
        reconciler, executor = _reconciler(
            self._tables(entities),
            fks={"ORDERS": {"ORDERCUSTOMER": ref}},
            datasource=DatasourceConfig(check_fks_on_start=True),
        )

        reconciler.check_db(entities)

        assert _statements(executor) == []

    def test_missing_fk_is_created_once(self) -> None:
        entities = self._entities()
        reconciler, executor = _reconciler(
            self._tables(entities), datasource=DatasourceConfig(check_fks_on_start=True)
        )

        result = reconciler.check_db(entities)

        assert _statements(executor) == [
            "ALTER TABLE ORDERS ADD CONSTRAINT ORDERCUSTOMER FOREIGN KEY (CUSTOMER_ID) "
            "REFERENCES ORDER_CUSTOMER (ID)"
        ]
        assert 'Created foreign key(s) for entity "Order"' in _texts(result, Severity.IMPORTANT)

    def test_unknown_fk_is_reported_not_dropped(self) -> None:
        entities = self._entities()
        legacy = LiveReference("FK_LEGACY", "ORDERS", "CUSTOMER_ID", "ORDER_CUSTOMER", "ID")
        ours = LiveReference("ORDERCUSTOMER", "ORDERS", "CUSTOMER_ID", "ORDER_CUSTOMER", "ID")
        reconciler, executor = _reconciler(
            self._tables(entities),
            fks={"ORDERS": {"FK_LEGACY": legacy, "ORDERCUSTOMER": ours}},
            datasource=DatasourceConfig(check_fks_on_start=True),
        )

        result = reconciler.check_db(entities)

        assert _statements(executor) == []
        assert "Unknown Foreign Key Constraint FK_LEGACY found in table ORDERS" in _texts(
            result, Severity.VERBOSE
        )

    def test_fk_check_disabled_by_default(self) -> None:
        entities = self._entities()
        reconciler, executor = _reconciler(self._tables(entities))

        reconciler.check_db(entities)

        reconciler.introspector.list_foreign_keys.assert_not_called()
        assert _statements(executor) == []


class TestForeignKeyIndexCheck:
    """Verify FK index reconciliation on existing tables."""

    def _entities(self) -> dict[str, EntityModel]:
        order = _entity(
            "Order",
            _pk(),
            FieldModel(name="customerId", type="id"),
            FieldModel(name="salesRepId", type="id"),
            table_name="ORDERS",
            relations=[_one("Customer", "customerId"), _one("SalesRep", "salesRepId")],
        )
        return {
            "Customer": _customer(),
            "SalesRep": _entity("SalesRep", _pk()),
            "Order": order,
        }

    def _run(self, order_indexes: set[str]):
        entities = self._entities()
        tables = {e.table_name: _live(e) for e in entities.values()}
        reconciler, executor = _reconciler(
            tables,
            indexes={"ORDERS": order_indexes},
            datasource=DatasourceConfig(check_fk_indices_on_start=True),
        )
        return reconciler.check_db(entities), executor

    def test_no_indexes_creates_all(self) -> None:
        """A table with zero indexes gets an index for every 'one' relation."""
        result, executor = self._run(set())

        assert _statements(executor) == [
            "CREATE INDEX CUSTOMER ON ORDERS (CUSTOMER_ID)",
            "CREATE INDEX SALESREP ON ORDERS (SALES_REP_ID)",
        ]
        assert 'Created foreign key indices for entity "Order"' in _texts(result, Severity.IMPORTANT)

    def test_only_missing_index_created(self) -> None:
        result, executor = self._run({"CUSTOMER", "LEGACY_IX"})

        assert _statements(executor) == ["CREATE INDEX SALESREP ON ORDERS (SALES_REP_ID)"]
        assert "Unknown Index LEGACY_IX found in table ORDERS" in _texts(result, Severity.VERBOSE)

    def test_all_present_needs_nothing(self) -> None:
        _, executor = self._run({"CUSTOMER", "SALESREP"})
        assert _statements(executor) == []


# ------------------------------------------------------------------
# Declared and function based indexes on existing tables
# ------------------------------------------------------------------


class TestMissingIndices:
    """Verify name-only index reconciliation."""

    def test_missing_declared_index_created(self) -> None:
        order = _order(indexes=[IndexModel(name="ORDER_CUST", field_names=["customerId"])])
        entities = {"Customer": _customer(), "Order": order}
        tables = {e.table_name: _live(e) for e in entities.values()}
        reconciler, executor = _reconciler(tables, indexes={"ORDERS": set()})

        reconciler.check_db(entities)

        assert _statements(executor) == ["CREATE INDEX ORDER_CUST ON ORDERS (CUSTOMER_ID)"]

    def test_same_name_different_definition_is_left_alone(self) -> None:
        """An index is identified by name; its columns are not compared."""
        order = _order(indexes=[IndexModel(name="ORDER_CUST", field_names=["customerId"])])
        entities = {"Customer": _customer(), "Order": order}
        tables = {e.table_name: _live(e) for e in entities.values()}
        # the live ORDER_CUST may cover different columns; it still counts as present
        reconciler, executor = _reconciler(tables, indexes={"ORDERS": {"ORDER_CUST"}})

        result = reconciler.check_db(entities, add_missing=True)

        assert _statements(executor) == []
        assert not result.has_errors

    def test_function_index_with_virtual_column(self) -> None:
        """Dialects without expression indexes get a generated column first."""
        fb = FunctionIndexModel(
            name="CUST_NAME_UPPER", function="UPPER(NAME)", field_type="name",
            virtual_column="nameUpper",
        )
        customer = _entity(
            "Customer", _pk(), FieldModel(name="name", type="name"), function_indexes=[fb]
        )
        reconciler, executor = _reconciler(
            {"CUSTOMER": _live(_customer())}, indexes={"CUSTOMER": set()}, dialect=MYSQL
        )

        result = reconciler.check_db({"Customer": customer}, add_missing=True)

        assert _statements(executor) == [
            "ALTER TABLE CUSTOMER ADD NAME_UPPER VARCHAR(100) AS (UPPER(NAME))",
            "CREATE INDEX CUST_NAME_UPPER ON CUSTOMER (NAME_UPPER)",
        ]
        assert not any("NAME_UPPER" in t for t in _texts(result, Severity.WARNING) if "missing" in t)
        assert 'Created function based indices for entity "Customer"' in _texts(
            result, Severity.IMPORTANT
        )

    def test_function_index_on_expression(self) -> None:
        fb = FunctionIndexModel(
            name="CUST_NAME_UPPER", function="UPPER(NAME)", field_type="name",
            virtual_column="nameUpper",
        )
        customer = _entity(
            "Customer", _pk(), FieldModel(name="name", type="name"), function_indexes=[fb]
        )
        reconciler, executor = _reconciler(
            {"CUSTOMER": _live(customer)}, indexes={"CUSTOMER": set()}
        )

        reconciler.check_db({"Customer": customer})

        assert _statements(executor) == ["CREATE INDEX CUST_NAME_UPPER ON CUSTOMER (UPPER(NAME))"]


class TestAlternativeActions:
    """Verify alternative index actions replace generic index creation."""

    def _action(self, claims: bool = True, error: str | None = None) -> MagicMock:
        action = MagicMock()
        action.should_run.return_value = claims
        action.run.return_value = error
        return action

    def _run(self, *actions: MagicMock):
        index = IndexModel(name="ORDER_CUST", field_names=["customerId"], alternative_actions=list(actions))
        order = _order(indexes=[index])
        entities = {"Customer": _customer(), "Order": order}
        tables = {e.table_name: _live(e) for e in entities.values()}
        reconciler, executor = _reconciler(tables, indexes={"ORDERS": set()})
        return reconciler, executor, entities

    def test_claiming_action_runs_instead_of_create_index(self) -> None:
        action = self._action()
        reconciler, executor, entities = self._run(action)

        result = reconciler.check_db(entities)

        assert _statements(executor) == []
        action.run.assert_called_once()
        entity, index, passed = action.run.call_args.args
        assert (entity.entity_name, index.name, passed) == ("Order", "ORDER_CUST", reconciler)
        assert not result.has_errors

    def test_non_claiming_action_uses_generic_index(self) -> None:
        action = self._action(claims=False)
        reconciler, executor, entities = self._run(action)

        reconciler.check_db(entities)

        action.run.assert_not_called()
        assert _statements(executor) == ["CREATE INDEX ORDER_CUST ON ORDERS (CUSTOMER_ID)"]

    def test_action_error_is_reported(self) -> None:
        reconciler, _, entities = self._run(self._action(error="tablespace full"))

        result = reconciler.check_db(entities)

        assert _texts(result, Severity.ERROR) == [
            'Could not create missing indices for entity "Order"',
            "tablespace full",
        ]

    def test_action_driver_failure_is_reported(self) -> None:
        action = self._action()
        action.run.side_effect = SQLAlchemyError("ORA-29855")
        reconciler, _, entities = self._run(action)

        result = reconciler.check_db(entities)

        assert "Unable to handle alternative action... Error was: ORA-29855" in _texts(
            result, Severity.ERROR
        )

    def test_two_claiming_actions_raise(self) -> None:
        reconciler, _, entities = self._run(self._action(), self._action())

        with pytest.raises(ConfigurationError, match="Multiple alternative actions"):
            reconciler.check_db(entities)


# ------------------------------------------------------------------
# Run-level behaviour
# ------------------------------------------------------------------


class TestRunBehaviour:
    """Verify idempotence, orphan safety and aborts."""

    def _consistent(self) -> tuple[DatabaseReconciler, MagicMock, dict[str, EntityModel]]:
        order = _order(indexes=[IndexModel(name="ORDER_CUST", field_names=["customerId"])])
        entities = {"Customer": _customer(), "Order": order}
        tables = {e.table_name: _live(e) for e in entities.values()}
        ref = LiveReference("ORDERCUSTOMER", "ORDERS", "CUSTOMER_ID", "CUSTOMER", "ID")
        reconciler, executor = _reconciler(
            tables,
            indexes={"CUSTOMER": {"PK_CUSTOMER"}, "ORDERS": {"ORDER_CUST", "ORDERCUSTOMER"}},
            fks={"ORDERS": {"ORDERCUSTOMER": ref}},
            datasource=DatasourceConfig(check_fks_on_start=True, check_fk_indices_on_start=True),
        )
        return reconciler, executor, entities

    def test_repaired_schema_is_quiet(self) -> None:
        """A schema that already matches produces no DDL and only verbose messages."""
        reconciler, executor, entities = self._consistent()

        result = reconciler.check_db(entities, add_missing=True)

        assert _statements(executor) == []
        assert result.non_verbose == []

    def test_repeated_runs_are_identical(self) -> None:
        reconciler, executor, entities = self._consistent()

        first = reconciler.check_db(entities, add_missing=True)
        second = reconciler.check_db(entities, add_missing=True)

        assert [m.text for m in first.messages] == [m.text for m in second.messages]
        assert _statements(executor) == []

    def test_orphans_are_reported_never_dropped(self) -> None:
        customer = _customer()
        live = _live(customer) + [LiveColumn("CUSTOMER", "FAX", "VARCHAR", 20)]
        reconciler, executor = _reconciler(
            {"CUSTOMER": live, "LEGACY": [LiveColumn("LEGACY", "ID", "INTEGER")]}
        )

        result = reconciler.check_db({"Customer": customer}, add_missing=True)

        assert _statements(executor) == []
        assert (
            'Table named "LEGACY" exists in the database but has no corresponding entity'
            in _texts(result, Severity.VERBOSE)
        )
        assert any('Column "FAX"' in t for t in _texts(result, Severity.WARNING))

    def test_messages_appended_to_caller_list(self) -> None:
        reconciler, _ = _reconciler({})
        sink = []

        result = reconciler.check_db({"Customer": _customer()}, sink)

        assert sink
        assert [m.text for m in result.messages] == [m.text for m in sink]

    def test_unreadable_tables_abort(self) -> None:
        reconciler, executor = _reconciler({})
        reconciler.introspector.list_tables.return_value = None

        result = reconciler.check_db({"Customer": _customer()}, add_missing=True)

        assert result.aborted
        assert _texts(result, Severity.ERROR)[-1] == (
            "Could not get table name information from the database, aborting."
        )
        assert _statements(executor) == []

    def test_unreadable_columns_abort(self) -> None:
        reconciler, executor = _reconciler({"CUSTOMER": []})
        reconciler.introspector.list_columns.return_value = None

        result = reconciler.check_db({"Customer": _customer()}, add_missing=True)

        assert result.aborted
        assert _statements(executor) == []

    def test_no_connection_for_detection_aborts(self) -> None:
        executor = MagicMock()
        executor.connect.side_effect = IntrospectionError("connection refused")
        reconciler = DatabaseReconciler(executor, FIELD_TYPES)

        result = reconciler.check_db({"Customer": _customer()})

        assert result.aborted
        assert _texts(result, Severity.ERROR)[-1] == (
            "Could not determine the database dialect, aborting."
        )

    def test_undetected_dialect_aborts(self) -> None:
        executor = MagicMock()
        reconciler = DatabaseReconciler(executor, FIELD_TYPES, registry=DialectRegistry())

        with patch(
            "db_reconciler.schema.reconciler.probe_connection",
            return_value=ConnectionProbe("Informix", major=14, minor=10),
        ):
            result = reconciler.check_db({"Customer": _customer()})

        assert result.aborted
        executor.execute_ddl.assert_not_called()


class TestDialectResolution:
    """Verify how the reconciler picks its dialect."""

    def test_configured_dialect_needs_no_connection(self) -> None:
        executor = MagicMock()
        reconciler = DatabaseReconciler(
            executor, FIELD_TYPES, DatasourceConfig(dialect="MySQL")
        )

        assert reconciler.dialect is MYSQL
        executor.connect.assert_not_called()

    def test_detected_dialect(self) -> None:
        reconciler = DatabaseReconciler(MagicMock(), FIELD_TYPES)

        with patch(
            "db_reconciler.schema.reconciler.probe_connection",
            return_value=ConnectionProbe("PostgreSQL", major=9, minor=4),
        ):
            assert reconciler.dialect is POSTGRES_7_3

    def test_unknown_configured_dialect_raises(self) -> None:
        reconciler = DatabaseReconciler(MagicMock(), FIELD_TYPES, DatasourceConfig(dialect="Informix"))

        with pytest.raises(ConfigurationError):
            reconciler.check_db({})


class TestInduceModel:
    """Verify entities induced from live tables."""

    def test_induced_entities(self) -> None:
        live = [
            LiveColumn("ORDER_LINE", "ID", "VARCHAR", 20),
            LiveColumn("ORDER_LINE", "TOTAL", "DECIMAL", 18, 2),
            LiveColumn("ORDER_LINE", "NOTE", "TEXT"),
            LiveColumn("ORDER_LINE", "BODY", "XML"),
        ]
        reconciler, _ = _reconciler({"ORDER_LINE": live})

        (entity,) = reconciler.induce_model_from_db()

        assert entity.entity_name == "OrderLine"
        assert entity.table_name == "ORDER_LINE"
        assert [(f.name, f.column_name, f.type) for f in entity.fields] == [
            ("id", "ID", "id"),
            ("total", "TOTAL", "currency-amount"),
            ("note", "NOTE", "very-long"),
            ("body", "BODY", "invalid"),
        ]

    def test_unreadable_tables_induce_nothing(self) -> None:
        reconciler, _ = _reconciler({})
        reconciler.introspector.list_tables.return_value = None

        assert reconciler.induce_model_from_db() == []
