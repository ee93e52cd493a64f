"""Permission editing on the mirror.

Granting is the only way a node becomes ``selected``; the reconciler never
does it. Granting a node that the mirror does not know yet creates it, plus
any missing ancestor as ``inherited``, so the next sync can reach it.
Revoking puts a node back to ``inherited``; the next sync removes it if
nothing else grants it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from dbmirror.core.ids import node_kind, parse_schema_id, parse_table_id
from dbmirror.core.models import MirrorNode, NodeKind, Permission
from dbmirror.core.store import MirrorStore


@dataclass(frozen=True)
class GrantResult:
    """Result of a permission change on a single internal ID."""

    internal_id: str
    kind: NodeKind
    created: bool
    permission: Permission


@dataclass
class RevokeOutcome:
    """Revoked nodes plus the IDs the mirror does not know."""

    revoked: list[GrantResult] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)


def _find(store: MirrorStore, connector_id: str, internal_id: str) -> MirrorNode | None:
    kind = node_kind(internal_id)
    if kind == NodeKind.DATABASE:
        nodes: Iterable[MirrorNode] = store.list_databases(connector_id)
    elif kind == NodeKind.SCHEMA:
        nodes = store.list_schemas(connector_id)
    else:
        nodes = store.list_tables(connector_id)
    return next((n for n in nodes if n.internal_id == internal_id), None)


def _create(
    store: MirrorStore, connector_id: str, internal_id: str, permission: Permission
) -> MirrorNode:
    kind = node_kind(internal_id)
    if kind == NodeKind.DATABASE:
        return store.create_database(
            connector_id,
            internal_id=internal_id,
            name=internal_id,
            permission=permission,
        )
    if kind == NodeKind.SCHEMA:
        ref = parse_schema_id(internal_id)
        return store.create_schema(
            connector_id,
            internal_id=internal_id,
            name=ref.name,
            database_name=ref.database_name,
            permission=permission,
        )
    table = parse_table_id(internal_id)
    return store.create_table(
        connector_id,
        internal_id=internal_id,
        name=table.name,
        schema_name=table.schema_name,
        database_name=table.database_name,
        permission=permission,
        last_upserted_at=None,
    )


def _ancestor_ids(internal_id: str) -> list[str]:
    """Internal IDs of a node's ancestors, database first."""
    kind = node_kind(internal_id)
    if kind == NodeKind.SCHEMA:
        return [parse_schema_id(internal_id).database_name]
    if kind == NodeKind.TABLE:
        ref = parse_table_id(internal_id)
        return [ref.database_name, ref.schema_id]
    return []


def _create_selected(
    store: MirrorStore, connector_id: str, internal_id: str
) -> MirrorNode:
    """Create a granted node, adding missing ancestors as ``inherited``."""
    for ancestor_id in _ancestor_ids(internal_id):
        if _find(store, connector_id, ancestor_id) is None:
            _create(store, connector_id, ancestor_id, Permission.INHERITED)
    return _create(store, connector_id, internal_id, Permission.SELECTED)


def grant(
    store: MirrorStore,
    connector_id: str,
    internal_ids: Iterable[str],
) -> list[GrantResult]:
    """
    Mark internal IDs as explicitly read-granted.

    All IDs are validated before the store is touched, so a malformed ID
    leaves the mirror unchanged.

    Raises:
        MalformedInternalIdError: If any ID is not a valid composite key.
    """
    ids = list(dict.fromkeys(internal_ids))
    for internal_id in ids:
        node_kind(internal_id)

    results: list[GrantResult] = []
    for internal_id in ids:
        node = _find(store, connector_id, internal_id)
        created = node is None
        if node is None:
            node = _create_selected(store, connector_id, internal_id)
        elif node.permission != Permission.SELECTED:
            node = store.set_permission(node, Permission.SELECTED)
        results.append(
            GrantResult(
                internal_id=internal_id,
                kind=node.kind,
                created=created,
                permission=node.permission,
            )
        )
    return results


def revoke(
    store: MirrorStore,
    connector_id: str,
    internal_ids: Iterable[str],
) -> RevokeOutcome:
    """Put explicitly granted nodes back to ``inherited``."""
    ids = list(dict.fromkeys(internal_ids))
    for internal_id in ids:
        node_kind(internal_id)

    outcome = RevokeOutcome()
    for internal_id in ids:
        node = _find(store, connector_id, internal_id)
        if node is None:
            outcome.missing.append(internal_id)
            continue
        if node.permission != Permission.INHERITED:
            node = store.set_permission(node, Permission.INHERITED)
        outcome.revoked.append(
            GrantResult(
                internal_id=internal_id,
                kind=node.kind,
                created=False,
                permission=node.permission,
            )
        )
    return outcome
