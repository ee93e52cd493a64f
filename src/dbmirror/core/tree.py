"""Remote catalog snapshots.

A ``RemoteTree`` is what the remote warehouse looks like right now:
databases containing schemas containing tables. Trees are built either by
walking a catalog adapter (Unity Catalog) or by loading a JSON snapshot
exported from providers without an adapter here (BigQuery, Snowflake).
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping, Protocol

from dbmirror.core.ids import parse_table_id, schema_id, table_id
from dbmirror.core.models import NodeKind


@dataclass(frozen=True)
class RemoteTable:
    """Table as reported by the remote warehouse."""

    name: str
    database_name: str
    schema_name: str


@dataclass(frozen=True)
class RemoteSchema:
    name: str
    tables: tuple[RemoteTable, ...] = ()


@dataclass(frozen=True)
class RemoteDatabase:
    name: str
    schemas: tuple[RemoteSchema, ...] = ()


@dataclass(frozen=True)
class RemoteTree:
    databases: tuple[RemoteDatabase, ...] = ()

    @property
    def table_count(self) -> int:
        return sum(len(s.tables) for db in self.databases for s in db.schemas)


class CatalogAdapter(Protocol):
    """Interface for listing the remote catalog, level by level."""

    def list_catalogs(self) -> Iterable[Any]:
        """Return objects with a ``.name``."""
        ...

    def list_schemas(self, catalog: str) -> Iterable[Any]:
        """Return objects with a ``.name``."""
        ...

    def list_tables(self, catalog: str, schema: str) -> Iterable[Any]:
        """Return objects with a ``.full_name`` (``catalog.schema.table``)."""
        ...


def tree_from_catalog(
    adapter: CatalogAdapter,
    catalogs: Iterable[str] | None = None,
) -> RemoteTree:
    """
    Walk a catalog adapter into a ``RemoteTree``.

    Args:
        adapter: Adapter listing catalogs, schemas and tables.
        catalogs: Optional catalog names to restrict the walk to.

    Returns:
        The remote tree, in the order the adapter lists nodes.
    """
    wanted = set(catalogs) if catalogs else None
    databases: list[RemoteDatabase] = []

    for catalog in adapter.list_catalogs():
        catalog_name = catalog.name
        if wanted is not None and catalog_name not in wanted:
            continue

        schemas: list[RemoteSchema] = []
        for schema in adapter.list_schemas(catalog=catalog_name):
            tables = []
            for t in adapter.list_tables(catalog=catalog_name, schema=schema.name):
                ref = parse_table_id(t.full_name)
                tables.append(
                    RemoteTable(
                        name=ref.name,
                        database_name=ref.database_name,
                        schema_name=ref.schema_name,
                    )
                )
            schemas.append(RemoteSchema(name=schema.name, tables=tuple(tables)))
        databases.append(RemoteDatabase(name=catalog_name, schemas=tuple(schemas)))

    return RemoteTree(databases=tuple(databases))


def _require_name(item: Any, where: str) -> str:
    if not isinstance(item, Mapping):
        raise ValueError(f"{where} must be an object, got {type(item).__name__}.")
    name = item.get("name")
    if not isinstance(name, str) or not name:
        raise ValueError(f"{where} is missing a non-empty `name`.")
    return name


def tree_from_dict(data: Mapping[str, Any]) -> RemoteTree:
    """
    Build a tree from a snapshot mapping.

    Expected shape::

        {"databases": [{"name": "d1", "schemas": [
            {"name": "s1", "tables": [{"name": "t1"}]}]}]}

    Tables may carry their own ``database_name``/``schema_name``; otherwise
    they inherit the names of the enclosing database and schema.
    """
    if not isinstance(data, Mapping):
        raise ValueError("Snapshot must be a JSON object with a `databases` list.")

    databases: list[RemoteDatabase] = []
    for db in data.get("databases") or []:
        db_name = _require_name(db, "Database")
        schemas: list[RemoteSchema] = []
        for s in db.get("schemas") or []:
            schema_name = _require_name(s, f"Schema in '{db_name}'")
            tables = tuple(
                RemoteTable(
                    name=_require_name(t, f"Table in '{db_name}.{schema_name}'"),
                    database_name=t.get("database_name") or db_name,
                    schema_name=t.get("schema_name") or schema_name,
                )
                for t in s.get("tables") or []
            )
            schemas.append(RemoteSchema(name=schema_name, tables=tables))
        databases.append(RemoteDatabase(name=db_name, schemas=tuple(schemas)))

    return RemoteTree(databases=tuple(databases))


def load_tree(path: Path) -> RemoteTree:
    """Load a JSON snapshot file into a ``RemoteTree``."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Snapshot {path} is not valid JSON: {exc}") from exc
    return tree_from_dict(data)


def iter_internal_ids(tree: RemoteTree) -> Iterator[tuple[NodeKind, str]]:
    """Yield ``(kind, internal_id)`` for every node, in walk order."""
    for db in tree.databases:
        yield NodeKind.DATABASE, db.name
        for s in db.schemas:
            yield NodeKind.SCHEMA, schema_id(db.name, s.name)
            for t in s.tables:
                yield NodeKind.TABLE, table_id(t.database_name, t.schema_name, t.name)
