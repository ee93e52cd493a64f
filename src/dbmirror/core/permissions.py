"""Read-permission resolution over a mirror snapshot.

Permission is inherited top-down: granting a database grants every schema
and table below it, and granting a schema grants every table below it. The
resolver is built once per sync from the nodes loaded at the start of the
pass and never re-queries the store.
"""

from __future__ import annotations

from typing import Iterable

from dbmirror.core.ids import parse_database_id, parse_schema_id, parse_table_id
from dbmirror.core.models import DatabaseNode, Permission, SchemaNode, TableNode


class PermissionResolver:
    """
    Decide whether a candidate node is read-granted, by itself or through
    an ancestor.
    """

    def __init__(self, granted_ids: Iterable[str]):
        """
        Args:
            granted_ids: Internal IDs explicitly granted (permission=selected).
        """
        self.granted_ids = frozenset(granted_ids)

    @classmethod
    def from_nodes(
        cls,
        databases: Iterable[DatabaseNode],
        schemas: Iterable[SchemaNode],
        tables: Iterable[TableNode],
    ) -> PermissionResolver:
        """Collect the selected internal IDs across all three levels."""
        granted: set[str] = set()
        for nodes in (databases, schemas, tables):
            granted.update(
                n.internal_id for n in nodes if n.permission == Permission.SELECTED
            )
        return cls(granted)

    def is_database_granted(self, internal_id: str) -> bool:
        """True iff the database itself is granted."""
        return parse_database_id(internal_id) in self.granted_ids

    def is_schema_granted(self, internal_id: str) -> bool:
        """True iff the schema or its database is granted."""
        ref = parse_schema_id(internal_id)
        return (
            ref.database_name in self.granted_ids or internal_id in self.granted_ids
        )

    def is_table_granted(self, internal_id: str) -> bool:
        """True iff the table, its schema or its database is granted."""
        ref = parse_table_id(internal_id)
        return (
            ref.database_name in self.granted_ids
            or ref.schema_id in self.granted_ids
            or internal_id in self.granted_ids
        )

    def __len__(self) -> int:
        return len(self.granted_ids)
