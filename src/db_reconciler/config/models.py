"""Pydantic models for database configuration."""

from pydantic import BaseModel, Field


# ============================================================================
# Configuration Models
# ============================================================================


class DatasourceConfig(BaseModel):
    """Reconciliation settings for one datasource.

    ``dialect`` names a registered dialect explicitly; leave it empty to
    detect the dialect from the live connection. A
    ``constraint_name_clip_length`` of 0 means "use the dialect default".

    Example:
        >>> ds = DatasourceConfig(schema_name="public")
        >>> ds.fk_style
        'name_constraint'
        >>> ds.check_fks_on_start
        False
    """

    schema_name: str | None = None
    dialect: str = ""
    add_missing_on_start: bool = True
    use_foreign_keys: bool = True
    use_foreign_key_indices: bool = True
    check_fks_on_start: bool = False
    check_fk_indices_on_start: bool = False
    use_pk_constraint_names: bool = True
    constraint_name_clip_length: int = Field(default=0, ge=0)
    fk_style: str = "name_constraint"
    use_fk_initially_deferred: bool = False
    use_indices: bool = True
    use_function_based_indices: bool = True


class DatabaseProfile(BaseModel):
    """Database connection profile from db.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution
    datasource: DatasourceConfig = Field(default_factory=DatasourceConfig)


class DatabaseConfig(BaseModel):
    """Complete database configuration from db.toml."""

    profiles: dict[str, DatabaseProfile]
    model_file: str = "entitymodel.toml"
