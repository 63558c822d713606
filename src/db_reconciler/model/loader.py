"""Load a declared entity model from a TOML file.

File layout:

    [field_types.id]
    sql_type = "VARCHAR(20)"

    [field_types.very-long]
    sql_type = "TEXT"

    [[entities]]
    entity_name = "Order"
    fields = [
        { name = "id", type = "id", is_primary_key = true },
        { name = "customerId", type = "id" },
    ]
    relations = [
        { type = "one", related_entity_name = "Customer", key_maps = [{ field_name = "customerId", related_field_name = "id" }] },
    ]
    indexes = [{ name = "ORDER_CUST", field_names = ["customerId"] }]

Usage:
    from db_reconciler.model.loader import load_entity_model

    bundle = load_entity_model("entitymodel.toml")
    bundle.entities["Order"].table_name
    # 'ORDER'
"""

import tomllib
from pathlib import Path

from pydantic import ValidationError

from db_reconciler.exceptions import ConfigurationError
from db_reconciler.model.entities import EntityModel, EntityModelBundle, FieldTypeModel


def parse_entity_model(data: dict) -> EntityModelBundle:
    """Build an ``EntityModelBundle`` from already-parsed TOML data.

    Raises:
        ConfigurationError: On invalid or duplicate definitions.
    """
    try:
        field_types = {
            name: FieldTypeModel(name=name, **type_data)
            for name, type_data in data.get("field_types", {}).items()
        }

        entities: dict[str, EntityModel] = {}
        for entity_data in data.get("entities", []):
            entity = EntityModel(**entity_data)
            if entity.entity_name in entities:
                raise ConfigurationError(
                    f"Entity '{entity.entity_name}' is defined more than once"
                )
            entities[entity.entity_name] = entity
    except ValidationError as e:
        raise ConfigurationError("Invalid entity model definition", cause=e) from e

    return EntityModelBundle(field_types=field_types, entities=entities)


def load_entity_model(model_path: Path | str) -> EntityModelBundle:
    """Load field types and entities from a TOML model file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ConfigurationError: If the file is not valid TOML or the model is invalid
    """
    model_path = Path(model_path)
    if not model_path.exists():
        raise FileNotFoundError(f"Entity model not found: {model_path}")

    with open(model_path, "rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(
                f"Invalid TOML in {model_path.name}", cause=e
            ) from e

    return parse_entity_model(data)
