"""In-memory collaborators shared by the reconciliation tests."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from dbmirror.core.errors import IndexerError, MirrorStoreError
from dbmirror.core.models import (
    DatabaseNode,
    MirrorNode,
    NodeKind,
    Permission,
    SchemaNode,
    TableNode,
)


class MemoryStore:
    """Mirror store keeping nodes in dicts and recording every write."""

    def __init__(self) -> None:
        self.nodes: dict[NodeKind, dict[tuple[str, str], MirrorNode]] = {
            NodeKind.DATABASE: {},
            NodeKind.SCHEMA: {},
            NodeKind.TABLE: {},
        }
        self.ops: list[tuple[str, str]] = []
        self.fail_on: set[tuple[str, str]] = set()

    def _check(self, op: str, internal_id: str) -> None:
        if (op, internal_id) in self.fail_on:
            raise MirrorStoreError(f"{op} failed for {internal_id}")

    def _insert(self, op: str, node: MirrorNode) -> MirrorNode:
        self._check(op, node.internal_id)
        key = (node.connector_id, node.internal_id)
        if key in self.nodes[node.kind]:
            raise MirrorStoreError(f"{node.internal_id} already exists")
        self.nodes[node.kind][key] = node
        self.ops.append((op, node.internal_id))
        return node

    def _list(self, kind: NodeKind, connector_id: str) -> list:
        return [n for (cid, _), n in self.nodes[kind].items() if cid == connector_id]

    def list_databases(self, connector_id: str) -> list[DatabaseNode]:
        return self._list(NodeKind.DATABASE, connector_id)

    def list_schemas(self, connector_id: str) -> list[SchemaNode]:
        return self._list(NodeKind.SCHEMA, connector_id)

    def list_tables(self, connector_id: str) -> list[TableNode]:
        return self._list(NodeKind.TABLE, connector_id)

    def create_database(self, connector_id, *, internal_id, name, permission):
        return self._insert(
            "create_database",
            DatabaseNode(connector_id, internal_id, name, Permission(permission)),
        )

    def create_schema(self, connector_id, *, internal_id, name, database_name, permission):
        return self._insert(
            "create_schema",
            SchemaNode(
                connector_id, internal_id, name, database_name, Permission(permission)
            ),
        )

    def create_table(
        self,
        connector_id,
        *,
        internal_id,
        name,
        schema_name,
        database_name,
        permission,
        last_upserted_at,
    ):
        return self._insert(
            "create_table",
            TableNode(
                connector_id,
                internal_id,
                name,
                schema_name,
                database_name,
                Permission(permission),
                last_upserted_at,
            ),
        )

    def touch_table(self, node: TableNode, timestamp: datetime) -> TableNode:
        self._check("touch_table", node.internal_id)
        updated = replace(node, last_upserted_at=timestamp)
        self.nodes[NodeKind.TABLE][(node.connector_id, node.internal_id)] = updated
        self.ops.append(("touch_table", node.internal_id))
        return updated

    def set_permission(self, node: MirrorNode, permission: Permission) -> MirrorNode:
        updated = replace(node, permission=Permission(permission))
        self.nodes[node.kind][(node.connector_id, node.internal_id)] = updated
        self.ops.append(("set_permission", node.internal_id))
        return updated

    def destroy(self, node: MirrorNode) -> None:
        self._check("destroy", node.internal_id)
        del self.nodes[node.kind][(node.connector_id, node.internal_id)]
        self.ops.append(("destroy", node.internal_id))

    # -- test helpers --------------------------------------------------

    def ids(self, kind: NodeKind, connector_id: str = "c1") -> set[str]:
        return {n.internal_id for n in self._list(kind, connector_id)}

    def get(self, kind: NodeKind, internal_id: str, connector_id: str = "c1"):
        return self.nodes[kind].get((connector_id, internal_id))

    def seed(self, *nodes: MirrorNode) -> MemoryStore:
        for n in nodes:
            self.nodes[n.kind][(n.connector_id, n.internal_id)] = n
        return self


class RecordingIndexer:
    """External indexer recording calls; ``failures`` injects errors per call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, dict]] = []
        # (operation, key) -> list of exceptions raised on successive calls
        self.failures: dict[tuple[str, str], list[Exception]] = {}

    def _record(self, op: str, key: str, kwargs: dict) -> None:
        queued = self.failures.get((op, key))
        if queued:
            raise queued.pop(0)
        self.calls.append((op, key, kwargs))

    def fail(self, op: str, key: str, *errors: Exception) -> None:
        self.failures[(op, key)] = list(errors) or [IndexerError(f"{op} {key} failed")]

    def upsert_folder(self, **kwargs) -> None:
        self._record("upsert_folder", kwargs["folder_id"], kwargs)

    def delete_folder(self, **kwargs) -> None:
        self._record("delete_folder", kwargs["folder_id"], kwargs)

    def upsert_table(self, **kwargs) -> None:
        self._record("upsert_table", kwargs["table_id"], kwargs)

    def delete_table(self, **kwargs) -> None:
        self._record("delete_table", kwargs["table_id"], kwargs)

    def keys(self, op: str) -> list[str]:
        return [key for o, key, _ in self.calls if o == op]
