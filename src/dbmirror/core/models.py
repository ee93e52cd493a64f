"""Core domain models for the remote database mirror.

These models represent mirrored catalog nodes (database, schema, table) in a
simple, immutable form. They are intentionally free of persistence, SDK and
CLI concerns so the reconciliation algorithm can run against any store.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Permission(str, Enum):
    """
    Read permission state of a mirror node.

    Values:
        INHERITED: Default for discovered nodes; access comes from an ancestor.
        SELECTED: Explicitly granted by a permission-editing action.
    """

    INHERITED = "inherited"
    SELECTED = "selected"


class NodeKind(str, Enum):
    """Level of a node in the database -> schema -> table hierarchy."""

    DATABASE = "database"
    SCHEMA = "schema"
    TABLE = "table"


@dataclass(frozen=True)
class DatabaseNode:
    """
    Mirrored database, root of the hierarchy.

    Attributes:
        connector_id: Connector instance that owns this node.
        internal_id: Stable key, equal to the database name.
        name: Display name of the database.
        permission: Read permission state.
    """

    connector_id: str
    internal_id: str
    name: str
    permission: Permission = Permission.INHERITED

    @property
    def kind(self) -> NodeKind:
        return NodeKind.DATABASE


@dataclass(frozen=True)
class SchemaNode:
    """
    Mirrored schema. ``database_name`` is a back-reference, not ownership.
    """

    connector_id: str
    internal_id: str
    name: str
    database_name: str
    permission: Permission = Permission.INHERITED

    @property
    def kind(self) -> NodeKind:
        return NodeKind.SCHEMA


@dataclass(frozen=True)
class TableNode:
    """
    Mirrored table.

    Attributes:
        last_upserted_at: Time of the last successful pass that reached this
            table, or None for a table that was only granted so far.
    """

    connector_id: str
    internal_id: str
    name: str
    schema_name: str
    database_name: str
    permission: Permission = Permission.INHERITED
    last_upserted_at: datetime | None = None

    @property
    def kind(self) -> NodeKind:
        return NodeKind.TABLE


MirrorNode = DatabaseNode | SchemaNode | TableNode


@dataclass(frozen=True)
class MimeTypes:
    """Provider-specific mime types sent to the external indexer."""

    database: str
    schema: str
    table: str


def _provider_mime_types(provider: str) -> MimeTypes:
    prefix = f"application/vnd.dbmirror.{provider}"
    return MimeTypes(
        database=f"{prefix}.database",
        schema=f"{prefix}.schema",
        table=f"{prefix}.table",
    )


PROVIDER_MIME_TYPES: dict[str, MimeTypes] = {
    provider: _provider_mime_types(provider)
    for provider in ("bigquery", "snowflake", "databricks")
}


def mime_types_for(provider: str) -> MimeTypes:
    """Return the mime type table for a remote provider name."""
    try:
        return PROVIDER_MIME_TYPES[provider.lower()]
    except KeyError:
        known = ", ".join(sorted(PROVIDER_MIME_TYPES))
        raise ValueError(f"Unknown provider '{provider}'. Known: {known}") from None


@dataclass(frozen=True)
class Connector:
    """
    Connector instance a sync runs for.

    Attributes:
        id: Opaque identifier scoping every mirror store query.
        secret_ref: Reference to the warehouse credentials, forwarded to the
            indexer so it can query the remote tables.
    """

    id: str
    secret_ref: str = ""
