"""Mirror store interface.

The mirror is an ownership-exclusive cache of the remote catalog structure
and its permission state, scoped per connector. The reconciler talks to it
only through this protocol, so any persistence technology can back it.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from dbmirror.core.models import (
    DatabaseNode,
    MirrorNode,
    Permission,
    SchemaNode,
    TableNode,
)


class MirrorStore(Protocol):
    """Repository of mirrored database, schema and table nodes."""

    def list_databases(self, connector_id: str) -> list[DatabaseNode]:
        """Return all database nodes of a connector."""
        ...

    def list_schemas(self, connector_id: str) -> list[SchemaNode]:
        """Return all schema nodes of a connector."""
        ...

    def list_tables(self, connector_id: str) -> list[TableNode]:
        """Return all table nodes of a connector."""
        ...

    def create_database(
        self,
        connector_id: str,
        *,
        internal_id: str,
        name: str,
        permission: Permission,
    ) -> DatabaseNode:
        """Insert a database node; fails if the key already exists."""
        ...

    def create_schema(
        self,
        connector_id: str,
        *,
        internal_id: str,
        name: str,
        database_name: str,
        permission: Permission,
    ) -> SchemaNode:
        """Insert a schema node; fails if the key already exists."""
        ...

    def create_table(
        self,
        connector_id: str,
        *,
        internal_id: str,
        name: str,
        schema_name: str,
        database_name: str,
        permission: Permission,
        last_upserted_at: datetime | None,
    ) -> TableNode:
        """Insert a table node; fails if the key already exists."""
        ...

    def touch_table(self, node: TableNode, timestamp: datetime) -> TableNode:
        """Update ``last_upserted_at`` and return the updated node."""
        ...

    def set_permission(self, node: MirrorNode, permission: Permission) -> MirrorNode:
        """Change the permission of a node and return the updated node."""
        ...

    def destroy(self, node: MirrorNode) -> None:
        """Hard-delete a node."""
        ...
