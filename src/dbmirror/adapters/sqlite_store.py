"""SQLite-backed mirror store."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from dbmirror.core.errors import MirrorStoreError
from dbmirror.core.models import (
    DatabaseNode,
    MirrorNode,
    NodeKind,
    Permission,
    SchemaNode,
    TableNode,
)

_SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS remote_databases (
    connector_id TEXT NOT NULL,
    internal_id  TEXT NOT NULL,
    name         TEXT NOT NULL,
    permission   TEXT NOT NULL CHECK(permission IN ('inherited','selected')),
    PRIMARY KEY (connector_id, internal_id)
);

CREATE TABLE IF NOT EXISTS remote_schemas (
    connector_id  TEXT NOT NULL,
    internal_id   TEXT NOT NULL,
    name          TEXT NOT NULL,
    database_name TEXT NOT NULL,
    permission    TEXT NOT NULL CHECK(permission IN ('inherited','selected')),
    PRIMARY KEY (connector_id, internal_id)
);

CREATE TABLE IF NOT EXISTS remote_tables (
    connector_id     TEXT NOT NULL,
    internal_id      TEXT NOT NULL,
    name             TEXT NOT NULL,
    schema_name      TEXT NOT NULL,
    database_name    TEXT NOT NULL,
    permission       TEXT NOT NULL CHECK(permission IN ('inherited','selected')),
    last_upserted_at TEXT,
    PRIMARY KEY (connector_id, internal_id)
);
"""

_TABLE_BY_KIND = {
    NodeKind.DATABASE: "remote_databases",
    NodeKind.SCHEMA: "remote_schemas",
    NodeKind.TABLE: "remote_tables",
}


def open_db(db_path: Path) -> sqlite3.Connection:
    """Open (or create) the mirror database with WAL journaling and Row rows."""
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    return conn


def _format_ts(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _parse_ts(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class SqliteMirrorStore:
    """
    Mirror store persisting nodes in a local SQLite file.

    Every ``sqlite3.Error`` surfaces as ``MirrorStoreError``.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        try:
            self.conn = open_db(self.path)
            self.conn.executescript(_SCHEMA_SQL)
        except sqlite3.Error as exc:
            raise MirrorStoreError(f"Cannot open mirror store {self.path}: {exc}") from exc

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> SqliteMirrorStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @contextmanager
    def _tx(self, action: str) -> Iterator[sqlite3.Connection]:
        try:
            with self.conn:
                yield self.conn
        except sqlite3.IntegrityError as exc:
            # Primary key clashes surface as UNIQUE constraint failures.
            if "UNIQUE" in str(exc):
                raise MirrorStoreError(
                    f"Cannot {action}: node already exists ({exc})"
                ) from exc
            raise MirrorStoreError(f"Cannot {action}: constraint violated ({exc})") from exc
        except sqlite3.Error as exc:
            raise MirrorStoreError(f"Cannot {action}: {exc}") from exc

    def _select(self, table: str, connector_id: str) -> list[sqlite3.Row]:
        try:
            return self.conn.execute(
                f"SELECT * FROM {table} WHERE connector_id = ? ORDER BY rowid",
                (connector_id,),
            ).fetchall()
        except sqlite3.Error as exc:
            raise MirrorStoreError(f"Cannot list {table}: {exc}") from exc

    # -- reads ---------------------------------------------------------

    def list_databases(self, connector_id: str) -> list[DatabaseNode]:
        return [
            DatabaseNode(
                connector_id=r["connector_id"],
                internal_id=r["internal_id"],
                name=r["name"],
                permission=Permission(r["permission"]),
            )
            for r in self._select("remote_databases", connector_id)
        ]

    def list_schemas(self, connector_id: str) -> list[SchemaNode]:
        return [
            SchemaNode(
                connector_id=r["connector_id"],
                internal_id=r["internal_id"],
                name=r["name"],
                database_name=r["database_name"],
                permission=Permission(r["permission"]),
            )
            for r in self._select("remote_schemas", connector_id)
        ]

    def list_tables(self, connector_id: str) -> list[TableNode]:
        return [
            TableNode(
                connector_id=r["connector_id"],
                internal_id=r["internal_id"],
                name=r["name"],
                schema_name=r["schema_name"],
                database_name=r["database_name"],
                permission=Permission(r["permission"]),
                last_upserted_at=_parse_ts(r["last_upserted_at"]),
            )
            for r in self._select("remote_tables", connector_id)
        ]

    # -- writes --------------------------------------------------------

    def create_database(
        self,
        connector_id: str,
        *,
        internal_id: str,
        name: str,
        permission: Permission,
    ) -> DatabaseNode:
        with self._tx(f"create database {internal_id}") as conn:
            conn.execute(
                "INSERT INTO remote_databases (connector_id, internal_id, name, permission) "
                "VALUES (?, ?, ?, ?)",
                (connector_id, internal_id, name, Permission(permission).value),
            )
        return DatabaseNode(
            connector_id=connector_id,
            internal_id=internal_id,
            name=name,
            permission=Permission(permission),
        )

    def create_schema(
        self,
        connector_id: str,
        *,
        internal_id: str,
        name: str,
        database_name: str,
        permission: Permission,
    ) -> SchemaNode:
        with self._tx(f"create schema {internal_id}") as conn:
            conn.execute(
                "INSERT INTO remote_schemas "
                "(connector_id, internal_id, name, database_name, permission) "
                "VALUES (?, ?, ?, ?, ?)",
                (
                    connector_id,
                    internal_id,
                    name,
                    database_name,
                    Permission(permission).value,
                ),
            )
        return SchemaNode(
            connector_id=connector_id,
            internal_id=internal_id,
            name=name,
            database_name=database_name,
            permission=Permission(permission),
        )

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
        with self._tx(f"create table {internal_id}") as conn:
            conn.execute(
                "INSERT INTO remote_tables (connector_id, internal_id, name, "
                "schema_name, database_name, permission, last_upserted_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    connector_id,
                    internal_id,
                    name,
                    schema_name,
                    database_name,
                    Permission(permission).value,
                    _format_ts(last_upserted_at),
                ),
            )
        return TableNode(
            connector_id=connector_id,
            internal_id=internal_id,
            name=name,
            schema_name=schema_name,
            database_name=database_name,
            permission=Permission(permission),
            last_upserted_at=last_upserted_at,
        )

    def touch_table(self, node: TableNode, timestamp: datetime) -> TableNode:
        with self._tx(f"touch table {node.internal_id}") as conn:
            conn.execute(
                "UPDATE remote_tables SET last_upserted_at = ? "
                "WHERE connector_id = ? AND internal_id = ?",
                (_format_ts(timestamp), node.connector_id, node.internal_id),
            )
        return replace(node, last_upserted_at=timestamp)

    def set_permission(self, node: MirrorNode, permission: Permission) -> MirrorNode:
        table = _TABLE_BY_KIND[node.kind]
        with self._tx(f"update permission of {node.internal_id}") as conn:
            conn.execute(
                f"UPDATE {table} SET permission = ? "
                "WHERE connector_id = ? AND internal_id = ?",
                (Permission(permission).value, node.connector_id, node.internal_id),
            )
        return replace(node, permission=Permission(permission))

    def destroy(self, node: MirrorNode) -> None:
        table = _TABLE_BY_KIND[node.kind]
        with self._tx(f"destroy {node.internal_id}") as conn:
            conn.execute(
                f"DELETE FROM {table} WHERE connector_id = ? AND internal_id = ?",
                (node.connector_id, node.internal_id),
            )
