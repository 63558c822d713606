"""Declared entity model: field types, entities, relations and indexes.

Usage:
    from db_reconciler.model import load_entity_model, EntityModel, FieldTypeModel
"""

from db_reconciler.model.entities import (
    EntityModel,
    EntityModelBundle,
    FieldModel,
    FieldTypeModel,
    FunctionIndexModel,
    IndexModel,
    KeyMap,
    RelationModel,
    db_name_to_class_name,
    db_name_to_var_name,
    induce_field_type,
    java_name_to_db_name,
)
from db_reconciler.model.loader import load_entity_model, parse_entity_model

__all__ = [
    "EntityModel",
    "EntityModelBundle",
    "FieldModel",
    "FieldTypeModel",
    "FunctionIndexModel",
    "IndexModel",
    "KeyMap",
    "RelationModel",
    "db_name_to_class_name",
    "db_name_to_var_name",
    "induce_field_type",
    "java_name_to_db_name",
    "load_entity_model",
    "parse_entity_model",
]
