"""Pydantic models for the declared data model.

The declared model is the input to reconciliation: logical field types,
entities with their fields, relations, indexes and function-based
indexes. Instances are built once (usually by
``db_reconciler.model.loader``) and only read afterwards.
"""

import importlib
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from db_reconciler.dialects.models import Dialect
from db_reconciler.exceptions import ConfigurationError


def java_name_to_db_name(java_name: str) -> str:
    """Convert a camelCase name to an upper-case, underscore separated one.

    Example:
        >>> java_name_to_db_name("orderItem")
        'ORDER_ITEM'
        >>> java_name_to_db_name("Order")
        'ORDER'
    """
    if not java_name:
        return ""
    chars = [java_name[0].upper()]
    for char in java_name[1:]:
        if char.isupper():
            chars.append("_")
        chars.append(char.upper())
    return "".join(chars)


def db_name_to_var_name(db_name: str) -> str:
    """Convert an upper-case, underscore separated name to camelCase.

    Example:
        >>> db_name_to_var_name("ORDER_ITEM")
        'orderItem'
    """
    chars = []
    to_upper = False
    for char in db_name:
        if char == "_":
            to_upper = True
        elif to_upper:
            chars.append(char.upper())
            to_upper = False
        else:
            chars.append(char.lower())
    return "".join(chars)


def db_name_to_class_name(db_name: str) -> str:
    name = db_name_to_var_name(db_name)
    return name[:1].upper() + name[1:]


def induce_field_type(type_name: str, length: int, decimals: int) -> str:
    """Guess a logical field type name for a live column."""
    if type_name in ("VARCHAR", "VARCHAR2"):
        if length <= 10:
            return "very-short"
        if length <= 60:
            return "short-varchar"
        if length <= 255:
            return "long-varchar"
        if length <= 4000:
            return "very-long"
        return "invalid"
    if type_name == "TEXT":
        return "very-long"
    if type_name in ("DECIMAL", "NUMERIC"):
        if length > 18:
            return "invalid"
        if decimals <= 0:
            return "numeric"
        if decimals <= 2:
            return "currency-amount"
        if decimals <= 6:
            return "floating-point"
        return "invalid"
    if type_name in ("BLOB", "OID"):
        return "blob"
    if type_name in ("DATETIME", "TIMESTAMP"):
        return "date-time"
    if type_name == "DATE":
        return "date"
    if type_name == "TIME":
        return "time"
    if type_name == "CHAR" and length == 1:
        return "indicator"
    return "invalid"


def _load_object(path: str) -> Any:
    """Instantiate ``package.module:ClassName`` (or ``package.module.ClassName``)."""
    module_name, sep, attr = path.partition(":")
    if not sep:
        module_name, _, attr = path.rpartition(".")
    if not module_name or not attr:
        raise ConfigurationError(f"Invalid import path '{path}'")
    try:
        factory = getattr(importlib.import_module(module_name), attr)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(f"Cannot load '{path}'", cause=e) from e
    return factory()


# ============================================================================
# Field types and fields
# ============================================================================


class FieldTypeModel(BaseModel):
    """A logical field type and the SQL type it maps to.

    Example:
        >>> ft = FieldTypeModel(name="long-varchar", sql_type="VARCHAR(255)")
        >>> ft.sql_type_alias is None
        True
    """

    name: str
    sql_type: str
    sql_type_alias: str | None = None
    python_type: str = ""


class FieldModel(BaseModel):
    """An entity field; ``column_name`` defaults to the upper-snake form of ``name``."""

    name: str
    type: str
    column_name: str = ""
    is_primary_key: bool = False

    @model_validator(mode="after")
    def _default_column_name(self) -> "FieldModel":
        if not self.column_name:
            self.column_name = java_name_to_db_name(self.name)
        return self


# ============================================================================
# Relations and indexes
# ============================================================================


class KeyMap(BaseModel):
    """Maps a local field to a field of the related entity."""

    field_name: str
    related_field_name: str = ""
    constant_value: str | None = None

    @model_validator(mode="after")
    def _default_related_field(self) -> "KeyMap":
        if not self.related_field_name:
            self.related_field_name = self.field_name
        return self


class RelationModel(BaseModel):
    """A relation to another entity.

    Only ``type == "one"`` relations get foreign keys and FK indexes.
    """

    type: str
    related_entity_name: str
    title: str = ""
    key_maps: list[KeyMap] = Field(default_factory=list)
    fk_name: str | None = None
    related_optional: bool = False

    @property
    def is_one(self) -> bool:
        return self.type == "one"


class IndexModel(BaseModel):
    """A declared index over entity fields.

    ``alternative_actions`` accepts action objects or import paths
    (``package.module:ClassName``) that are instantiated on load.
    """

    name: str
    unique: bool = False
    field_names: list[str] = Field(default_factory=list)
    alternative_actions: list[Any] = Field(default_factory=list, exclude=True)

    @field_validator("alternative_actions", mode="before")
    @classmethod
    def _resolve_actions(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        return [_load_object(item) if isinstance(item, str) else item for item in value]


class FunctionIndexModel(BaseModel):
    """An index over an expression.

    Dialects that cannot index expressions get a generated
    ``virtual_column`` of ``field_type`` holding the expression, and the
    index is built over that column instead. ``dialect_functions`` maps a
    dialect name or field-type name to a dialect-specific expression.
    """

    name: str
    unique: bool = False
    function: str
    field_type: str
    virtual_column: str
    dialect_functions: dict[str, str] = Field(default_factory=dict)

    def function_for(self, dialect: Dialect) -> str:
        if dialect.name in self.dialect_functions:
            return self.dialect_functions[dialect.name]
        return self.dialect_functions.get(dialect.field_type_name, self.function)

    def virtual_column_field(self, dialect: Dialect) -> FieldModel | None:
        """The generated column backing this index, or ``None`` when the dialect indexes expressions."""
        if dialect.supports_function_indexes:
            return None
        return FieldModel(name=self.virtual_column, type=self.field_type)


# ============================================================================
# Entities
# ============================================================================


class EntityModel(BaseModel):
    """A declared entity; ``table_name`` defaults to the upper-snake entity name.

    Example:
        >>> entity = EntityModel(
        ...     entity_name="OrderItem",
        ...     fields=[FieldModel(name="id", type="id", is_primary_key=True)],
        ... )
        >>> entity.table_name
        'ORDER_ITEM'
        >>> entity.qualified_table_name("app")
        'app.ORDER_ITEM'
    """

    entity_name: str
    table_name: str = ""
    fields: list[FieldModel] = Field(default_factory=list)
    relations: list[RelationModel] = Field(default_factory=list)
    indexes: list[IndexModel] = Field(default_factory=list)
    function_indexes: list[FunctionIndexModel] = Field(default_factory=list)
    is_view: bool = False

    @model_validator(mode="after")
    def _default_table_name(self) -> "EntityModel":
        if not self.table_name:
            self.table_name = java_name_to_db_name(self.entity_name)
        return self

    @property
    def primary_key_fields(self) -> list[FieldModel]:
        return [f for f in self.fields if f.is_primary_key]

    @property
    def one_relations(self) -> list[RelationModel]:
        return [r for r in self.relations if r.is_one]

    def get_field(self, name: str) -> FieldModel | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def qualified_table_name(self, schema_name: str | None) -> str:
        if schema_name:
            return f"{schema_name}.{self.table_name}"
        return self.table_name


class EntityModelBundle(BaseModel):
    """Field types and entities loaded from one model file."""

    field_types: dict[str, FieldTypeModel] = Field(default_factory=dict)
    entities: dict[str, EntityModel] = Field(default_factory=dict)
