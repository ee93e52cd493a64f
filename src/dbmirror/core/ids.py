"""Internal-ID codec for mirrored catalog nodes.

Every mirror node is addressed by a composite key that spells out its full
ancestor path: ``database``, ``database.schema`` or
``database.schema.table``. This module is the only place that formats or
parses those keys; permission inheritance depends on parsing them back
exactly.
"""

from __future__ import annotations

from dataclasses import dataclass

from dbmirror.core.errors import MalformedInternalIdError
from dbmirror.core.models import NodeKind

SEPARATOR = "."

_KIND_BY_PARTS = {
    1: NodeKind.DATABASE,
    2: NodeKind.SCHEMA,
    3: NodeKind.TABLE,
}


@dataclass(frozen=True)
class SchemaRef:
    """Parsed components of a schema internal ID."""

    database_name: str
    name: str

    @property
    def internal_id(self) -> str:
        return schema_id(self.database_name, self.name)


@dataclass(frozen=True)
class TableRef:
    """Parsed components of a table internal ID."""

    database_name: str
    schema_name: str
    name: str

    @property
    def schema_id(self) -> str:
        """Internal ID of the schema that owns this table."""
        return schema_id(self.database_name, self.schema_name)

    @property
    def internal_id(self) -> str:
        return table_id(self.database_name, self.schema_name, self.name)


def _check_component(value: str, what: str) -> str:
    if not isinstance(value, str) or not value:
        raise MalformedInternalIdError(f"{what} must be a non-empty string.")
    if SEPARATOR in value:
        raise MalformedInternalIdError(
            f"{what} {value!r} must not contain {SEPARATOR!r}."
        )
    return value


def _split(internal_id: str, expected: int, form: str) -> list[str]:
    if not isinstance(internal_id, str):
        raise MalformedInternalIdError(
            f"Internal ID must be a string, got {internal_id!r}."
        )
    parts = internal_id.split(SEPARATOR)
    if len(parts) != expected or not all(parts):
        raise MalformedInternalIdError(
            f"Internal ID {internal_id!r} must be in the form `{form}`."
        )
    return parts


def database_id(database_name: str) -> str:
    """Return the internal ID of a database."""
    return _check_component(database_name, "Database name")


def schema_id(database_name: str, schema_name: str) -> str:
    """Return the internal ID of a schema (``database.schema``)."""
    return SEPARATOR.join(
        (
            _check_component(database_name, "Database name"),
            _check_component(schema_name, "Schema name"),
        )
    )


def table_id(database_name: str, schema_name: str, table_name: str) -> str:
    """Return the internal ID of a table (``database.schema.table``)."""
    return SEPARATOR.join(
        (
            _check_component(database_name, "Database name"),
            _check_component(schema_name, "Schema name"),
            _check_component(table_name, "Table name"),
        )
    )


def parse_database_id(internal_id: str) -> str:
    """Validate a database internal ID and return the database name."""
    (name,) = _split(internal_id, 1, "database")
    return name


def parse_schema_id(internal_id: str) -> SchemaRef:
    """Split ``database.schema`` into its components."""
    database_name, name = _split(internal_id, 2, "database.schema")
    return SchemaRef(database_name=database_name, name=name)


def parse_table_id(internal_id: str) -> TableRef:
    """Split ``database.schema.table`` into its components."""
    database_name, schema_name, name = _split(
        internal_id, 3, "database.schema.table"
    )
    return TableRef(database_name=database_name, schema_name=schema_name, name=name)


def node_kind(internal_id: str) -> NodeKind:
    """Classify an internal ID by the number of path components it holds."""
    if not isinstance(internal_id, str) or not internal_id:
        raise MalformedInternalIdError("Internal ID must be a non-empty string.")
    parts = internal_id.split(SEPARATOR)
    kind = _KIND_BY_PARTS.get(len(parts))
    if kind is None or not all(parts):
        raise MalformedInternalIdError(
            f"Internal ID {internal_id!r} is not a database, schema or table key."
        )
    return kind
