"""DDL synthesis for declared entities.

``DdlSynthesizer`` turns declared entities, relations and indexes into
SQL text for the detected dialect. It only builds statements; executing
them is the reconciler's job.

Usage:
    from db_reconciler.schema.ddl import DdlSynthesizer

    ddl = DdlSynthesizer(dialect, datasource, field_types, schema_name="APP")
    ddl.create_table(order_entity, entities)
    # 'CREATE TABLE APP.ORDERS (ID BIGINT NOT NULL, ..., CONSTRAINT PK_ORDERS PRIMARY KEY (ID))'
    ddl.fk_constraint_name(order_entity.relations[0])
    # 'CUSTOMER'
"""

import logging
from collections.abc import Mapping

from db_reconciler.config.models import DatasourceConfig
from db_reconciler.dialects.models import Dialect
from db_reconciler.exceptions import ConfigurationError, ModelError
from db_reconciler.model.entities import (
    EntityModel,
    FieldModel,
    FieldTypeModel,
    FunctionIndexModel,
    IndexModel,
    RelationModel,
    java_name_to_db_name,
)

logger = logging.getLogger(__name__)

FK_STYLE_NAME_CONSTRAINT = "name_constraint"
FK_STYLE_NAME_FK = "name_fk"


class DdlSynthesizer:
    """Builds CREATE/ALTER/DROP statements for one dialect and datasource.

    Args:
        dialect: Dialect whose templates and capabilities are used.
        datasource: Datasource flags (FK style, PK constraint names, clip length).
        field_types: Logical field type name -> field type.
        schema_name: Schema prefixed to table names, if any.

    Raises (from the builder methods):
        ModelError: A field type or key-map field cannot be resolved.
        ConfigurationError: The datasource names an unknown FK style.
    """

    def __init__(
        self,
        dialect: Dialect,
        datasource: DatasourceConfig,
        field_types: Mapping[str, FieldTypeModel],
        schema_name: str | None = None,
    ):
        self.dialect = dialect
        self.datasource = datasource
        self.field_types = field_types
        self.schema_name = schema_name or None

    @property
    def clip_length(self) -> int:
        """Longest constraint/index name; the datasource overrides the dialect."""
        return (
            self.datasource.constraint_name_clip_length
            or self.dialect.constraint_name_clip_length
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def table_name(self, entity: EntityModel) -> str:
        return entity.qualified_table_name(self.schema_name)

    def sql_type(self, entity: EntityModel, field_name: str, type_name: str) -> str:
        field_type = self.field_types.get(type_name)
        if field_type is None:
            raise ModelError(
                f"Field type [{type_name}] not found for field [{field_name}] "
                f"of entity [{entity.entity_name}]",
                details={"entity": entity.entity_name, "field": field_name},
            )
        return field_type.sql_type

    def _column_name(self, entity: EntityModel, field_name: str) -> str:
        field = entity.get_field(field_name)
        if field is None:
            raise ModelError(
                f"Field [{field_name}] not found in entity [{entity.entity_name}]",
                details={"entity": entity.entity_name, "field": field_name},
            )
        return field.column_name

    def _check_not_view(self, entity: EntityModel, action: str) -> None:
        if entity.is_view:
            raise ModelError(f"Cannot {action} for a view entity [{entity.entity_name}]")

    def _clip(self, name: str) -> str:
        return name[: self.clip_length]

    # ------------------------------------------------------------------
    # Tables and columns
    # ------------------------------------------------------------------

    def create_table(
        self,
        entity: EntityModel,
        entities: Mapping[str, EntityModel],
        add_fks: bool = False,
    ) -> str:
        """``CREATE TABLE`` with all fields, the primary key and optionally inline FKs."""
        self._check_not_view(entity, "create table")

        parts = []
        for field in entity.fields:
            column = f"{field.column_name} {self.sql_type(entity, field.name, field.type)}"
            if field.is_primary_key:
                column += " NOT NULL"
            parts.append(column)

        pk_fields = entity.primary_key_fields
        if pk_fields:
            pk_columns = ", ".join(f.column_name for f in pk_fields)
            if self.datasource.use_pk_constraint_names:
                pk_name = self._clip(f"PK_{entity.table_name}")
                parts.append(f"CONSTRAINT {pk_name} PRIMARY KEY ({pk_columns})")
            else:
                parts.append(f"PRIMARY KEY ({pk_columns})")

        if add_fks:
            for relation in entity.one_relations:
                related = self.related_entity(relation, entities)
                if related is not None:
                    parts.append(self.fk_constraint_clause(entity, relation, related))

        return f"CREATE TABLE {self.table_name(entity)} ({', '.join(parts)})"

    def add_column(self, entity: EntityModel, field: FieldModel) -> str:
        self._check_not_view(entity, "add column")
        sql_type = self.sql_type(entity, field.name, field.type)
        return f"ALTER TABLE {self.table_name(entity)} ADD {field.column_name} {sql_type}"

    def add_column_legacy(self, entity: EntityModel, field: FieldModel) -> str:
        """Fallback syntax for databases that insist on ``ADD COLUMN``."""
        self._check_not_view(entity, "add column")
        sql_type = self.sql_type(entity, field.name, field.type)
        return (
            f"ALTER TABLE {self.table_name(entity)} "
            f"ADD COLUMN {field.column_name} {sql_type}"
        )

    def virtual_column_name(self, fb_index: FunctionIndexModel) -> str:
        return java_name_to_db_name(fb_index.virtual_column)

    def add_virtual_column(self, entity: EntityModel, fb_index: FunctionIndexModel) -> str:
        """Generated column holding a function index's expression."""
        self._check_not_view(entity, "add column")
        sql_type = self.sql_type(entity, fb_index.name, fb_index.field_type)
        return (
            f"ALTER TABLE {self.table_name(entity)} ADD "
            f"{self.virtual_column_name(fb_index)} {sql_type} "
            f"AS ({fb_index.function_for(self.dialect)})"
        )

    def change_column_type(self, entity: EntityModel, field: FieldModel) -> str | None:
        """Statement changing a column to its declared type, ``None`` if the dialect cannot."""
        self._check_not_view(entity, "change column")
        sql_type = self.sql_type(entity, field.name, field.type)
        return self.dialect.change_column_type_sql(
            self.table_name(entity), field.column_name, sql_type
        )

    # ------------------------------------------------------------------
    # Foreign keys
    # ------------------------------------------------------------------

    def related_entity(
        self, relation: RelationModel, entities: Mapping[str, EntityModel]
    ) -> EntityModel | None:
        """Target of a relation, or ``None`` (logged) when it cannot carry a FK."""
        related = entities.get(relation.related_entity_name)
        if related is None:
            logger.error(
                "Error adding foreign key: entity was not found for related entity name %s",
                relation.related_entity_name,
            )
            return None
        if related.is_view:
            logger.error(
                "Error adding foreign key: related entity is a view entity for related "
                "entity name %s",
                relation.related_entity_name,
            )
            return None
        return related

    def fk_constraint_name(self, relation: RelationModel) -> str:
        """Declared ``fk_name``, else upper(title + related entity), clipped.

        Example:
            >>> ddl.fk_constraint_name(RelationModel(type="one", related_entity_name="OrderCustomer"))
            'ORDERCUSTOMER'
        """
        name = relation.fk_name
        if not name:
            name = (relation.title + relation.related_entity_name).upper()
        return self._clip(name)

    def fk_constraint_clause(
        self, entity: EntityModel, relation: RelationModel, related: EntityModel
    ) -> str:
        main_columns = ", ".join(
            self._column_name(entity, km.field_name) for km in relation.key_maps
        )
        related_columns = ", ".join(
            self._column_name(related, km.related_field_name) for km in relation.key_maps
        )
        name = self.fk_constraint_name(relation)
        references = f"REFERENCES {self.table_name(related)} ({related_columns})"

        fk_style = self.datasource.fk_style
        if fk_style == FK_STYLE_NAME_CONSTRAINT:
            clause = f"CONSTRAINT {name} FOREIGN KEY ({main_columns}) {references}"
        elif fk_style == FK_STYLE_NAME_FK:
            clause = f"FOREIGN KEY {name} ({main_columns}) {references}"
        else:
            raise ConfigurationError(
                f"fk-style specified for this data-source is not valid: {fk_style}",
                details={"fk_style": fk_style},
            )

        if self.datasource.use_fk_initially_deferred:
            clause += " INITIALLY DEFERRED"
        return clause

    def add_foreign_key(
        self, entity: EntityModel, relation: RelationModel, related: EntityModel
    ) -> str:
        clause = self.fk_constraint_clause(entity, relation, related)
        return f"ALTER TABLE {self.table_name(entity)} ADD {clause}"

    def drop_foreign_key(self, entity: EntityModel, relation: RelationModel) -> str:
        return (
            f"ALTER TABLE {self.table_name(entity)} "
            f"DROP CONSTRAINT {self.fk_constraint_name(relation)}"
        )

    # ------------------------------------------------------------------
    # Indexes
    # ------------------------------------------------------------------

    def _index_clause(self, entity: EntityModel, unique: bool, name: str, over: str) -> str:
        unique_kw = "UNIQUE " if unique else ""
        return f"CREATE {unique_kw}INDEX {name} ON {self.table_name(entity)} ({over})"

    def index(self, entity: EntityModel, index: IndexModel) -> str:
        columns = ", ".join(self._column_name(entity, name) for name in index.field_names)
        return self._index_clause(entity, index.unique, index.name, columns)

    def fk_index(self, entity: EntityModel, relation: RelationModel) -> str:
        """Non-unique index named like the relation's FK over its local columns."""
        columns = ", ".join(
            self._column_name(entity, km.field_name) for km in relation.key_maps
        )
        return self._index_clause(entity, False, self.fk_constraint_name(relation), columns)

    def function_index(self, entity: EntityModel, fb_index: FunctionIndexModel) -> str:
        """Index over the expression, or over its virtual column when unsupported."""
        if self.dialect.supports_function_indexes:
            over = fb_index.function_for(self.dialect)
        else:
            over = self.virtual_column_name(fb_index)
        return self._index_clause(entity, fb_index.unique, fb_index.name, over)

    def drop_index(self, entity: EntityModel, index_name: str) -> str:
        return self.dialect.drop_index_sql(self.schema_name, entity.table_name, index_name)
