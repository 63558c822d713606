"""Reconcile a live database schema with the declared entity model.

``DatabaseReconciler.check_db()`` compares the declared entities with
the live schema and, depending on its flags, creates missing tables,
columns, foreign keys and indexes and promotes or widens columns. It
never narrows a column and never drops anything: tables, columns,
constraints and indexes without a declared counterpart are reported only.

Every outcome is appended to a caller-owned message list (and logged).
Only two conditions stop a run early: no dialect, and live tables or
columns that cannot be read at all.

Usage:
    from db_reconciler.schema.reconciler import DatabaseReconciler

    reconciler = DatabaseReconciler(executor, bundle.field_types, profile.datasource)
    messages = []
    result = reconciler.check_db(bundle.entities, messages, add_missing=True)
    for message in result.non_verbose:
        print(message.severity, message.text)
"""

import logging
from collections.abc import Callable, Mapping

from sqlalchemy.exc import SQLAlchemyError

from db_reconciler.adapters.base import SqlExecutor
from db_reconciler.config.models import DatasourceConfig
from db_reconciler.dialects.models import Dialect, probe_connection
from db_reconciler.dialects.registry import DialectRegistry, default_registry
from db_reconciler.exceptions import ConfigurationError, IntrospectionError, ModelError
from db_reconciler.model.entities import (
    EntityModel,
    FieldModel,
    FieldTypeModel,
    FunctionIndexModel,
    IndexModel,
    db_name_to_class_name,
    db_name_to_var_name,
    induce_field_type,
)
from db_reconciler.schema.alternative import select_alternative_action
from db_reconciler.schema.ddl import DdlSynthesizer
from db_reconciler.schema.introspector import SchemaIntrospector
from db_reconciler.schema.models import (
    LiveColumn,
    ReconciliationMessage,
    ReconciliationResult,
    Severity,
    StepResult,
)
from db_reconciler.schema.types import (
    MismatchDecision,
    SizeDecision,
    decide_mismatch,
    decide_size_change,
    decimals_mismatch,
    parse_type,
)

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    Severity.VERBOSE: logging.DEBUG,
    Severity.INFO: logging.INFO,
    Severity.IMPORTANT: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}


class DatabaseReconciler:
    """Checks and repairs the live schema of one datasource.

    Args:
        executor: Connection source and DDL runner.
        field_types: Logical field type name -> field type.
        datasource: Datasource flags; defaults to ``DatasourceConfig()``.
        dialect: Dialect to use. When omitted, the dialect named in the
            datasource is looked up, or detected from a live connection.
        registry: Registry used for lookup and detection.
        introspector: Live schema reader; built from the executor when omitted.
    """

    def __init__(
        self,
        executor: SqlExecutor,
        field_types: Mapping[str, FieldTypeModel],
        datasource: DatasourceConfig | None = None,
        dialect: Dialect | None = None,
        registry: DialectRegistry | None = None,
        introspector: SchemaIntrospector | None = None,
    ):
        self.executor = executor
        self.field_types = dict(field_types)
        self.datasource = datasource or DatasourceConfig()
        self.registry = registry if registry is not None else default_registry()
        self._dialect = dialect
        self._introspector = introspector

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------

    def resolve_dialect(self) -> Dialect | None:
        """Configured dialect, else the detected one; ``None`` if detection fails.

        Raises:
            ConfigurationError: If the datasource names an unknown dialect.
            IntrospectionError: If detection needs a connection and none is available.
        """
        if self._dialect is None:
            if self.datasource.dialect:
                self._dialect = self.registry.get(self.datasource.dialect)
            else:
                with self.executor.connect() as conn:
                    probe = probe_connection(conn)
                self._dialect = self.registry.detect(probe)
        return self._dialect

    @property
    def dialect(self) -> Dialect:
        dialect = self.resolve_dialect()
        if dialect is None:
            raise ConfigurationError(
                "No dialect matches the database; name one in the datasource configuration"
            )
        return dialect

    @property
    def schema_name(self) -> str | None:
        return self.datasource.schema_name or None

    @property
    def ddl(self) -> DdlSynthesizer:
        return DdlSynthesizer(self.dialect, self.datasource, self.field_types, self.schema_name)

    @property
    def introspector(self) -> SchemaIntrospector:
        if self._introspector is None:
            self._introspector = SchemaIntrospector(
                self.executor, self.dialect, self.schema_name
            )
        return self._introspector

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def _emit(
        self, messages: list[ReconciliationMessage], severity: Severity, text: str
    ) -> None:
        logger.log(_LOG_LEVELS[severity], text)
        messages.append(ReconciliationMessage(severity=severity, text=text))

    def _verbose(self, messages: list[ReconciliationMessage], text: str) -> None:
        self._emit(messages, Severity.VERBOSE, text)

    def _important(self, messages: list[ReconciliationMessage], text: str) -> None:
        self._emit(messages, Severity.IMPORTANT, text)

    def _warn(self, messages: list[ReconciliationMessage], text: str) -> None:
        self._emit(messages, Severity.WARNING, text)

    def _error(self, messages: list[ReconciliationMessage], text: str) -> None:
        self._emit(messages, Severity.ERROR, text)

    def _report(
        self,
        messages: list[ReconciliationMessage],
        result: StepResult,
        failure: str,
        success: str | None = None,
    ) -> None:
        if not result.ok:
            self._error(messages, failure)
            self._error(messages, result.error)
        elif success:
            self._important(messages, success)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute(self, sql: str) -> StepResult:
        """Run one DDL statement, capturing a driver failure as the step's error."""
        try:
            self.executor.execute_ddl(sql)
        except SQLAlchemyError as e:
            return StepResult.failure(
                f"SQL Exception while executing the following:\n{sql}\nError was: {e}", sql
            )
        return StepResult.success(sql)

    def _run(self, build: Callable[[], str]) -> StepResult:
        try:
            sql = build()
        except ModelError as e:
            return StepResult.failure(str(e))
        return self.execute(sql)

    # ------------------------------------------------------------------
    # Single steps
    # ------------------------------------------------------------------

    def create_table(
        self, entity: EntityModel, entities: Mapping[str, EntityModel]
    ) -> StepResult:
        return self._run(lambda: self.ddl.create_table(entity, entities, add_fks=False))

    def add_column(self, entity: EntityModel, field: FieldModel) -> StepResult:
        """``ADD``, then ``ADD COLUMN``; if both fail the first error is reported."""
        ddl = self.ddl
        first = self._run(lambda: ddl.add_column(entity, field))
        if first.ok or not first.statements:
            return first
        legacy = ddl.add_column_legacy(entity, field)
        logger.info("Add column failed, trying alternate syntax: %s", legacy)
        if self.execute(legacy).ok:
            return StepResult.success(legacy)
        return first

    def modify_column_type(self, entity: EntityModel, field: FieldModel) -> StepResult:
        try:
            sql = self.ddl.change_column_type(entity, field)
        except ModelError as e:
            return StepResult.failure(str(e))
        if sql is None:
            return StepResult.failure(
                f"Changing of column type is not supported in {self.dialect.name}."
            )
        return self.execute(sql)

    def create_foreign_keys(
        self, entity: EntityModel, entities: Mapping[str, EntityModel]
    ) -> StepResult:
        ddl = self.ddl
        results = []
        for relation in entity.one_relations:
            related = ddl.related_entity(relation, entities)
            if related is None:
                continue
            results.append(self._run(lambda: ddl.add_foreign_key(entity, relation, related)))
        return StepResult.combine(results)

    def create_foreign_key_indices(self, entity: EntityModel) -> StepResult:
        ddl = self.ddl
        return StepResult.combine(
            [self._run(lambda: ddl.fk_index(entity, r)) for r in entity.one_relations]
        )

    def create_declared_index(self, entity: EntityModel, index: IndexModel) -> StepResult:
        """Create one declared index, letting a claiming alternative action do it instead.

        Raises:
            ConfigurationError: If more than one alternative action claims the index.
        """
        action = select_alternative_action(entity, index, self)
        if action is not None:
            try:
                error = action.run(entity, index, self)
            except SQLAlchemyError as e:
                return StepResult.failure(
                    f"Unable to handle alternative action... Error was: {e}"
                )
            return StepResult.failure(error) if error else StepResult.success()
        return self._run(lambda: self.ddl.index(entity, index))

    def create_declared_indices(self, entity: EntityModel) -> StepResult:
        return StepResult.combine(
            [self.create_declared_index(entity, index) for index in entity.indexes]
        )

    def create_function_based_index(
        self,
        entity: EntityModel,
        fb_index: FunctionIndexModel,
        live_columns: frozenset[str] = frozenset(),
    ) -> StepResult:
        """Index over an expression, adding its virtual column first where needed."""
        ddl = self.ddl
        results = []
        if (
            not self.dialect.supports_function_indexes
            and ddl.virtual_column_name(fb_index) not in live_columns
        ):
            added = self._run(lambda: ddl.add_virtual_column(entity, fb_index))
            if not added.ok:
                return added
            results.append(added)
        results.append(self._run(lambda: ddl.function_index(entity, fb_index)))
        return StepResult.combine(results)

    def create_function_based_indices(self, entity: EntityModel) -> StepResult:
        return StepResult.combine(
            [self.create_function_based_index(entity, fb) for fb in entity.function_indexes]
        )

    # ------------------------------------------------------------------
    # Column checks
    # ------------------------------------------------------------------

    def check_field_type(
        self,
        entity: EntityModel,
        field: FieldModel,
        column: LiveColumn,
        messages: list[ReconciliationMessage],
        promote: bool,
        widen: bool,
    ) -> None:
        """Compare one live column with its field; promote or widen when allowed."""
        table = self.ddl.table_name(entity)
        column_ref = (
            f'Column "{column.column_name}" of table "{table}" of entity "{entity.entity_name}"'
        )

        field_type = self.field_types.get(field.type)
        if field_type is None:
            self._error(
                messages,
                f'{column_ref} has a field type name of "{field.type}" which is not '
                "found in the field type definitions",
            )
            return

        oracle_like = self.dialect.oracle_like
        descriptor = parse_type(
            field_type,
            oracle_like,
            on_invalid_extension=lambda token: self._warn(
                messages,
                f'Definition for column "{column.column_name}" of table "{table}" of entity '
                f'"{entity.entity_name}" has an invalid size extension "{token}" which will '
                "be ignored.",
            ),
        )
        live_type = column.type_as_string()

        if column.type_name != descriptor.identity:
            decision = decide_mismatch(
                column.type_name,
                descriptor.identity,
                descriptor.decimals,
                promote,
                observed_size=column.column_size,
                declared_size=descriptor.size,
            )
            if decision == MismatchDecision.PROMOTE:
                self._report(
                    messages,
                    self.modify_column_type(entity, field),
                    failure=(
                        f'Could not promote column "{column.column_name}" in table "{table}" '
                        f'from type: "{live_type}" to type: "{descriptor.full_type}".'
                    ),
                    success=(
                        f"{column_ref} is of wrong type and has been promoted from "
                        f'"{live_type}" to "{descriptor.full_type}".'
                    ),
                )
            else:
                self._warn(
                    messages,
                    f'WARNING: {column_ref} is of type "{live_type}" in the database, but is '
                    f'defined as type "{descriptor.full_type}" in the entity definition.',
                )
            return

        decision = decide_size_change(column, descriptor, widen, oracle_like)
        if decision == SizeDecision.WIDEN:
            self._report(
                messages,
                self.modify_column_type(entity, field),
                failure=(
                    f'Could not widen column "{column.column_name}" in table "{table}" '
                    f"to size: {descriptor.full_type}."
                ),
                success=(
                    f'Column "{column.column_name}" of type "{descriptor.base}" of table '
                    f'"{table}" of entity "{entity.entity_name}" has different type definition '
                    f"and has been changed from {live_type} to {descriptor.full_type}."
                ),
            )
        elif decision == SizeDecision.WARN:
            self._warn(
                messages,
                f'WARNING: {column_ref} has a column size of "{live_type}" in the database, '
                f'but is defined to have a column size of "{descriptor.full_type}" in the '
                "entity definition.",
            )

        if decimals_mismatch(column, descriptor):
            self._warn(
                messages,
                f'WARNING: {column_ref} has a decimalDigits of "{column.decimal_digits}" in '
                f'the database, but is defined to have a decimalDigits of "{descriptor.decimals}" '
                "in the entity definition.",
            )

    def _check_columns(
        self,
        entity: EntityModel,
        live_columns: list[LiveColumn],
        messages: list[ReconciliationMessage],
        add_missing: bool,
        promote: bool,
        widen: bool,
    ) -> None:
        table = self.ddl.table_name(entity)
        name = entity.entity_name

        declared: dict[str, FieldModel] = {f.column_name.upper(): f for f in entity.fields}
        virtual: set[str] = set()
        for fb_index in entity.function_indexes:
            virtual_field = fb_index.virtual_column_field(self.dialect)
            if virtual_field is not None:
                declared[virtual_field.column_name.upper()] = virtual_field
                virtual.add(virtual_field.column_name.upper())

        unmatched = dict(declared)
        for column in live_columns:
            field = unmatched.pop(column.column_name, None)
            if field is not None:
                self.check_field_type(entity, field, column, messages, promote, widen)
            else:
                self._warn(
                    messages,
                    f'Column "{column.column_name}" of table "{table}" of entity "{name}" '
                    "exists in the database but has no corresponding field",
                )

        if len(live_columns) != len(declared):
            self._warn(
                messages,
                f'Entity "{name}" has {len(declared)} fields but table "{table}" has '
                f"{len(live_columns)} columns.",
            )

        # missing virtual columns are added with their function based index
        for column_name, field in unmatched.items():
            if column_name in virtual:
                continue
            self._warn(
                messages,
                f'Field "{field.name}" of entity "{name}" is missing its corresponding '
                f'column "{field.column_name}"',
            )
            if add_missing:
                self._report(
                    messages,
                    self.add_column(entity, field),
                    failure=f'Could not add column "{field.column_name}" to table "{table}"',
                    success=f'Added column "{field.column_name}" to table "{table}"',
                )

    # ------------------------------------------------------------------
    # Existing-table passes
    # ------------------------------------------------------------------

    def create_missing_indices(
        self,
        existing: Mapping[str, EntityModel],
        messages: list[ReconciliationMessage],
    ) -> None:
        """Create declared indexes whose name is not present on an existing table.

        Identity is the upper-cased name only; an index with the declared
        name but a different definition is left alone.
        """
        if not existing:
            return
        index_info = self.introspector.list_indexes(existing.keys(), messages, include_unique=True)
        if index_info is None:
            return

        for table_key, entity in existing.items():
            actual = index_info.get(table_key, set())
            results = []
            for index in entity.indexes:
                if index.name.upper() in actual:
                    continue
                logger.info(
                    "Missing index '%s' on existing table '%s' ...creating", index.name, table_key
                )
                results.append(self.create_declared_index(entity, index))
            self._report(
                messages,
                StepResult.combine(results),
                failure=f'Could not create missing indices for entity "{entity.entity_name}"',
            )

    def create_missing_function_based_indices(
        self,
        existing: Mapping[str, EntityModel],
        live_columns: Mapping[str, list[LiveColumn]],
        messages: list[ReconciliationMessage],
    ) -> None:
        """Name-only pass for function based indexes on existing tables."""
        if not existing:
            return
        index_info = self.introspector.list_indexes(existing.keys(), messages, include_unique=True)
        if index_info is None:
            return

        for table_key, entity in existing.items():
            actual = index_info.get(table_key, set())
            column_names = frozenset(c.column_name for c in live_columns.get(table_key, []))
            results = []
            for fb_index in entity.function_indexes:
                if fb_index.name.upper() in actual:
                    continue
                logger.info(
                    "Missing index '%s' on existing table '%s' ...creating",
                    fb_index.name,
                    table_key,
                )
                results.append(self.create_function_based_index(entity, fb_index, column_names))
            if results:
                self._report(
                    messages,
                    StepResult.combine(results),
                    failure=(
                        "Could not create missing function based indices for entity "
                        f'"{entity.entity_name}"'
                    ),
                    success=f'Created function based indices for entity "{entity.entity_name}"',
                )

    def _check_foreign_keys(
        self,
        ordered: list[EntityModel],
        existing: Mapping[str, EntityModel],
        entities: Mapping[str, EntityModel],
        messages: list[ReconciliationMessage],
    ) -> None:
        references = self.introspector.list_foreign_keys(existing.keys(), messages)
        if references is None:
            return

        ddl = self.ddl
        created_total = 0
        for entity in ordered:
            if entity.is_view:
                self._verbose(messages, f"NOT Checking View Entity {entity.entity_name}")
                continue
            table = ddl.table_name(entity)
            table_key = table.upper()
            if table_key not in existing:
                continue

            remaining = dict(references.get(table_key, {}))
            created = False
            for relation in entity.one_relations:
                fk_name = ddl.fk_constraint_name(relation)
                if remaining.pop(fk_name.upper(), None) is not None:
                    continue
                related = ddl.related_entity(relation, entities)
                if related is None:
                    continue
                logger.debug(
                    "No Foreign Key Constraint %s found in entity %s", fk_name, entity.entity_name
                )
                result = self._run(lambda: ddl.add_foreign_key(entity, relation, related))
                if result.ok:
                    self._verbose(
                        messages,
                        f'Created foreign key {fk_name} for entity "{entity.entity_name}"',
                    )
                    created = True
                    created_total += 1
                else:
                    self._report(
                        messages,
                        result,
                        failure=(
                            f'Could not create foreign key {fk_name} for entity '
                            f'"{entity.entity_name}"'
                        ),
                    )
            if created:
                self._important(
                    messages, f'Created foreign key(s) for entity "{entity.entity_name}"'
                )
            for unknown in sorted(remaining):
                self._verbose(
                    messages, f"Unknown Foreign Key Constraint {unknown} found in table {table}"
                )

        logger.info("Created %d fk refs", created_total)

    def _check_foreign_key_indices(
        self,
        ordered: list[EntityModel],
        existing: Mapping[str, EntityModel],
        messages: list[ReconciliationMessage],
    ) -> None:
        index_info = self.introspector.list_indexes(existing.keys(), messages)
        if index_info is None:
            return

        ddl = self.ddl
        created_total = 0
        for entity in ordered:
            if entity.is_view:
                self._verbose(messages, f"NOT Checking View Entity {entity.entity_name}")
                continue
            table = ddl.table_name(entity)
            table_key = table.upper()
            if table_key not in existing:
                continue

            remaining = set(index_info.get(table_key, set()))
            if not remaining:
                # nothing indexed yet: create every FK index
                if entity.one_relations:
                    result = self.create_foreign_key_indices(entity)
                    created_total += len(result.statements) if result.ok else 0
                    self._report(
                        messages,
                        result,
                        failure=(
                            "Could not create foreign key indices for entity "
                            f'"{entity.entity_name}"'
                        ),
                        success=f'Created foreign key indices for entity "{entity.entity_name}"',
                    )
                continue

            created = False
            for relation in entity.one_relations:
                fk_name = ddl.fk_constraint_name(relation)
                if fk_name.upper() in remaining:
                    remaining.discard(fk_name.upper())
                    continue
                logger.debug("No Index %s found for entity %s", fk_name, entity.entity_name)
                result = self._run(lambda: ddl.fk_index(entity, relation))
                if result.ok:
                    self._verbose(
                        messages,
                        f'Created foreign key index {fk_name} for entity "{entity.entity_name}"',
                    )
                    created = True
                    created_total += 1
                else:
                    self._report(
                        messages,
                        result,
                        failure=(
                            f"Could not create foreign key index {fk_name} for entity "
                            f'"{entity.entity_name}"'
                        ),
                    )
            if created:
                self._important(
                    messages,
                    f'Created foreign key index/indices for entity "{entity.entity_name}"',
                )
            for unknown in sorted(remaining):
                self._verbose(messages, f"Unknown Index {unknown} found in table {table}")

        logger.info("Created %d indices", created_total)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def _abort(
        self, messages: list[ReconciliationMessage], text: str
    ) -> ReconciliationResult:
        self._error(messages, text)
        return ReconciliationResult(messages=messages, aborted=True)

    def check_db(
        self,
        entities: Mapping[str, EntityModel],
        messages: list[ReconciliationMessage] | None = None,
        add_missing: bool = False,
        promote: bool | None = None,
        widen: bool | None = None,
    ) -> ReconciliationResult:
        """Reconcile the live schema with ``entities``.

        Args:
            entities: Entity name -> declared entity.
            messages: Sink the transcript is appended to; a new list if omitted.
            add_missing: Create missing tables and columns.
            promote: Promote columns to an allowed wider type (default: ``add_missing``).
            widen: Widen columns declared larger than they are (default: ``add_missing``).

        Returns:
            The names of entities whose tables were created and the full transcript.

        Raises:
            ConfigurationError: For an unknown dialect name, an invalid FK
                style or two alternative actions claiming one index.
        """
        if messages is None:
            messages = []
        promote = add_missing if promote is None else promote
        widen = add_missing if widen is None else widen

        try:
            dialect = self.resolve_dialect()
        except IntrospectionError as e:
            self._error(
                messages, f"Unable to establish a connection with the database... Error was: {e}"
            )
            dialect = None
        if dialect is None:
            return self._abort(messages, "Could not determine the database dialect, aborting.")

        live_tables = self.introspector.list_tables(messages)
        if live_tables is None:
            return self._abort(
                messages, "Could not get table name information from the database, aborting."
            )
        live_columns = self.introspector.list_columns(live_tables, messages)
        if live_columns is None:
            return self._abort(
                messages, "Could not get column information from the database, aborting."
            )

        ddl = self.ddl
        ordered = sorted(entities.values(), key=lambda e: e.entity_name)
        total = len(ordered)
        existing: dict[str, EntityModel] = {}
        created: list[EntityModel] = []

        for position, entity in enumerate(ordered, start=1):
            name = entity.entity_name
            if entity.is_view:
                self._verbose(messages, f"NOT Checking #{position}/{total} View Entity {name}")
                continue

            table = ddl.table_name(entity)
            self._verbose(
                messages, f"Checking #{position}/{total} Entity {name} with table {table}"
            )

            table_key = table.upper()
            if table_key in live_tables:
                existing[table_key] = entity
                self._check_columns(
                    entity,
                    live_columns.get(table_key, []),
                    messages,
                    add_missing,
                    promote,
                    widen,
                )
                continue

            self._warn(messages, f'Entity "{name}" has no table in the database')
            if add_missing:
                result = self.create_table(entity, entities)
                self._report(
                    messages,
                    result,
                    failure=f'Could not create table "{table}"',
                    success=f'Created table "{table}"',
                )
                if result.ok:
                    created.append(entity)

        for orphan in sorted(live_tables - set(existing)):
            self._verbose(
                messages,
                f'Table named "{orphan}" exists in the database but has no corresponding entity',
            )

        ds = self.datasource
        if ds.use_foreign_keys:
            for entity in created:
                if entity.one_relations:
                    self._report(
                        messages,
                        self.create_foreign_keys(entity, entities),
                        failure=f'Could not create foreign keys for entity "{entity.entity_name}"',
                        success=f'Created foreign keys for entity "{entity.entity_name}"',
                    )

        if ds.use_foreign_key_indices:
            for entity in created:
                if entity.one_relations:
                    self._report(
                        messages,
                        self.create_foreign_key_indices(entity),
                        failure=(
                            "Could not create foreign key indices for entity "
                            f'"{entity.entity_name}"'
                        ),
                        success=f'Created foreign key indices for entity "{entity.entity_name}"',
                    )

        if ds.use_indices:
            for entity in created:
                if entity.indexes:
                    self._report(
                        messages,
                        self.create_declared_indices(entity),
                        failure=(
                            f'Could not create declared indices for entity "{entity.entity_name}"'
                        ),
                        success=f'Created declared indices for entity "{entity.entity_name}"',
                    )
            self.create_missing_indices(existing, messages)

        if ds.use_function_based_indices:
            for entity in created:
                if entity.function_indexes:
                    self._report(
                        messages,
                        self.create_function_based_indices(entity),
                        failure=(
                            "Could not create function based indices for entity "
                            f'"{entity.entity_name}"'
                        ),
                    )
            self.create_missing_function_based_indices(existing, live_columns, messages)

        if ds.use_foreign_keys and ds.check_fks_on_start and existing:
            self._check_foreign_keys(ordered, existing, entities, messages)

        if ds.use_foreign_key_indices and ds.check_fk_indices_on_start and existing:
            self._check_foreign_key_indices(ordered, existing, messages)

        return ReconciliationResult(
            created_entities=[entity.entity_name for entity in created],
            messages=messages,
        )

    def _induce_type_name(self, column: LiveColumn) -> str:
        for field_type in self.field_types.values():
            descriptor = parse_type(field_type, self.dialect.oracle_like)
            if (
                descriptor.identity == column.type_name
                and descriptor.size in (-1, column.column_size)
                and descriptor.decimals in (-1, column.decimal_digits)
            ):
                return field_type.name
        return induce_field_type(column.type_name, column.column_size, column.decimal_digits)

    def induce_model_from_db(
        self, messages: list[ReconciliationMessage] | None = None
    ) -> list[EntityModel]:
        """Build entities from the live tables, in table-name order.

        Column types are mapped to the first registered field type whose
        SQL type matches; other columns get a guessed type name.
        """
        if messages is None:
            messages = []
        live_tables = self.introspector.list_tables(messages)
        if live_tables is None:
            return []
        live_columns = self.introspector.list_columns(live_tables, messages)
        if live_columns is None:
            return []

        induced = []
        for table_key in sorted(live_columns):
            plain = table_key.split(".", 1)[1] if self.schema_name else table_key
            fields = [
                FieldModel(
                    name=db_name_to_var_name(column.column_name),
                    column_name=column.column_name,
                    type=self._induce_type_name(column),
                )
                for column in live_columns[table_key]
            ]
            induced.append(
                EntityModel(
                    entity_name=db_name_to_class_name(plain), table_name=plain, fields=fields
                )
            )
        return induced
