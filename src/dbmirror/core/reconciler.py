"""Reconciliation of a remote catalog tree into the mirror and the indexer.

A sync pass has two phases:

1. **Walk**: visit every database, schema and table of the remote tree. A
   node is *ensured* (created in the mirror if missing, marked used) only if
   it, or one of its ancestors, is read-granted. Ensuring a node ensures its
   ancestors first. Tables are pushed to the indexer as soon as they are
   ensured; databases and schemas are not.
2. **Sweep**: every used database and schema is upserted as an indexer
   folder. Every mirror node that was not used is deleted from the indexer
   and then from the mirror, tables first, then schemas, then databases. A
   parent whose child row had to be kept (its delete failed) stays as well.

The pass is single-threaded and owns the connector's mirror while it runs.
Cancellation is observed through the heartbeat port during the walk and
always aborts before the sweep, so no destructive action is taken by a
cancelled pass.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from dbmirror.core.errors import IndexerError, IndexerTimeout, SyncCancelled
from dbmirror.core.heartbeat import HeartbeatPort, NullHeartbeat
from dbmirror.core.ids import (
    database_id,
    parse_database_id,
    parse_schema_id,
    parse_table_id,
    schema_id,
    table_id,
)
from dbmirror.core.indexer import ExternalIndexer
from dbmirror.core.lease import connector_lease
from dbmirror.core.models import (
    Connector,
    DatabaseNode,
    MimeTypes,
    MirrorNode,
    NodeKind,
    Permission,
    SchemaNode,
    TableNode,
)
from dbmirror.core.permissions import PermissionResolver
from dbmirror.core.settings import SyncSettings
from dbmirror.core.store import MirrorStore
from dbmirror.core.tree import RemoteTree

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class NodeFailure:
    """An indexer operation that failed for a single node."""

    internal_id: str
    operation: str
    error: str


@dataclass
class SyncReport:
    """Outcome of one sync pass."""

    connector_id: str
    databases_kept: int = 0
    schemas_kept: int = 0
    tables_kept: int = 0
    databases_removed: int = 0
    schemas_removed: int = 0
    tables_removed: int = 0
    tables_upserted: int = 0
    folders_upserted: int = 0
    failures: list[NodeFailure] = field(default_factory=list)
    invariant_violations: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when every indexer operation of the pass succeeded."""
        return not self.failures


class Reconciler:
    """
    Runs one sync pass for one connector.

    The instance owns the working sets (mirror nodes loaded at the start of
    the pass plus those created during it) and the set of internal IDs used
    by the pass. Create a new instance for every pass.
    """

    def __init__(
        self,
        store: MirrorStore,
        indexer: ExternalIndexer,
        *,
        connector: Connector,
        mime_types: MimeTypes,
        heartbeat: HeartbeatPort | None = None,
        settings: SyncSettings | None = None,
        clock: Callable[[], datetime] | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self.store = store
        self.indexer = indexer
        self.connector = connector
        self.mime_types = mime_types
        self.settings = settings or SyncSettings()
        self._heartbeat = heartbeat or NullHeartbeat()
        self._clock = clock or _utcnow
        self._sleep = sleep or time.sleep

        self.databases: dict[str, DatabaseNode] = {}
        self.schemas: dict[str, SchemaNode] = {}
        self.tables: dict[str, TableNode] = {}
        self.used: set[str] = set()
        self.resolver = PermissionResolver(())
        self.report = SyncReport(connector_id=connector.id)
        self._started = False

    # ------------------------------------------------------------------
    # Pass
    # ------------------------------------------------------------------

    def run(self, tree: RemoteTree) -> SyncReport:
        """
        Reconcile the mirror and the indexer with ``tree``.

        Raises:
            MalformedInternalIdError: A remote node produced an unparseable
                key; the pass aborts before the sweep.
            MirrorStoreError: The mirror store failed; the pass aborts.
            SyncCancelled: Cancellation was requested during the walk.
        """
        if self._started:
            raise RuntimeError("A Reconciler runs a single sync pass.")
        self._started = True

        self._load_snapshot()
        logger.info(
            "Syncing connector %s: %d remote database(s), %d granted id(s)",
            self.connector.id,
            len(tree.databases),
            len(self.resolver),
        )

        try:
            self._walk(tree)
            # Last chance to cancel before anything is deleted.
            self._heartbeat.heartbeat()
        except SyncCancelled as exc:
            logger.warning(
                "Sync of connector %s cancelled before sweep: %s",
                self.connector.id,
                exc,
            )
            raise

        self._log_plan()
        self._sweep()
        logger.info("Sync completed for connector %s", self.connector.id)
        return self.report

    def _load_snapshot(self) -> None:
        cid = self.connector.id
        self.databases = {n.internal_id: n for n in self.store.list_databases(cid)}
        self.schemas = {n.internal_id: n for n in self.store.list_schemas(cid)}
        self.tables = {n.internal_id: n for n in self.store.list_tables(cid)}
        self.resolver = PermissionResolver.from_nodes(
            self.databases.values(), self.schemas.values(), self.tables.values()
        )
        self.used = set()

    def _walk(self, tree: RemoteTree) -> None:
        visited = 0
        for db in tree.databases:
            db_id = database_id(db.name)
            if self.resolver.is_database_granted(db_id):
                self.ensure_database(db_id)

            for schema in db.schemas:
                s_id = schema_id(db.name, schema.name)
                if self.resolver.is_schema_granted(s_id):
                    self.ensure_schema(s_id)

                for table in schema.tables:
                    t_id = table_id(table.database_name, table.schema_name, table.name)
                    if self.resolver.is_table_granted(t_id):
                        self.ensure_table(t_id)

                    visited += 1
                    if visited % self.settings.heartbeat_every == 0:
                        self._heartbeat.heartbeat()

    # ------------------------------------------------------------------
    # Creation (ancestor first)
    # ------------------------------------------------------------------

    def ensure_database(self, internal_id: str) -> DatabaseNode:
        """Mark a database used and create its mirror node if missing."""
        name = parse_database_id(internal_id)
        self.used.add(internal_id)

        node = self.databases.get(internal_id)
        if node is None:
            node = self.store.create_database(
                self.connector.id,
                internal_id=internal_id,
                name=name,
                permission=Permission.INHERITED,
            )
            self.databases[internal_id] = node
        # Folders are pushed to the indexer in the sweep.
        return node

    def ensure_schema(self, internal_id: str) -> SchemaNode:
        """Ensure the parent database, then mark the schema used."""
        ref = parse_schema_id(internal_id)
        self.ensure_database(ref.database_name)
        self.used.add(internal_id)

        node = self.schemas.get(internal_id)
        if node is None:
            node = self.store.create_schema(
                self.connector.id,
                internal_id=internal_id,
                name=ref.name,
                database_name=ref.database_name,
                permission=Permission.INHERITED,
            )
            self.schemas[internal_id] = node
        return node

    def ensure_table(self, internal_id: str) -> TableNode:
        """
        Ensure the parent schema, mark the table used, then upsert it to the
        indexer right away.
        """
        ref = parse_table_id(internal_id)
        parent_id = ref.schema_id
        self.ensure_schema(parent_id)
        self.used.add(internal_id)

        now = self._clock()
        node = self.tables.get(internal_id)
        if node is None:
            node = self.store.create_table(
                self.connector.id,
                internal_id=internal_id,
                name=ref.name,
                schema_name=ref.schema_name,
                database_name=ref.database_name,
                permission=Permission.INHERITED,
                last_upserted_at=now,
            )
        else:
            node = self.store.touch_table(node, now)
        self.tables[internal_id] = node

        upserted = self._index(
            internal_id,
            "upsert_table",
            self.indexer.upsert_table,
            table_id=internal_id,
            table_name=internal_id,
            remote_table_ref=internal_id,
            remote_secret_ref=self.connector.secret_ref,
            description="",
            parents=[internal_id, parent_id, ref.database_name],
            parent_id=parent_id,
            title=ref.name,
            mime_type=self.mime_types.table,
        )
        if upserted:
            self.report.tables_upserted += 1
        return node

    # ------------------------------------------------------------------
    # Sweep
    # ------------------------------------------------------------------

    def _log_plan(self) -> None:
        def split(nodes: dict[str, Any]) -> tuple[int, int]:
            keep = sum(1 for i in nodes if i in self.used)
            return keep, len(nodes) - keep

        db_keep, db_remove = split(self.databases)
        s_keep, s_remove = split(self.schemas)
        t_keep, t_remove = split(self.tables)
        logger.info(
            "Connector %s: keeping %d database(s), %d schema(s), %d table(s); "
            "removing %d database(s), %d schema(s), %d table(s)",
            self.connector.id,
            db_keep,
            s_keep,
            t_keep,
            db_remove,
            s_remove,
            t_remove,
        )

    def _sweep(self) -> None:
        # Folders of used nodes first, parents before children.
        for db in self.databases.values():
            if db.internal_id not in self.used:
                continue
            self.report.databases_kept += 1
            if self._index(
                db.internal_id,
                "upsert_folder",
                self.indexer.upsert_folder,
                folder_id=db.internal_id,
                title=db.name,
                parents=[db.internal_id],
                parent_id=None,
                mime_type=self.mime_types.database,
            ):
                self.report.folders_upserted += 1

        for schema in self.schemas.values():
            if schema.internal_id not in self.used:
                continue
            self.report.schemas_kept += 1
            if self._index(
                schema.internal_id,
                "upsert_folder",
                self.indexer.upsert_folder,
                folder_id=schema.internal_id,
                title=schema.name,
                parents=[schema.internal_id, schema.database_name],
                parent_id=schema.database_name,
                mime_type=self.mime_types.schema,
            ):
                self.report.folders_upserted += 1

        # Removals go children first so a kept child never loses its parent.
        # Used tables were upserted during the walk.
        for table in list(self.tables.values()):
            if table.internal_id in self.used:
                self.report.tables_kept += 1
                continue
            self._remove(
                table, "delete_table", self.indexer.delete_table, table_id=table.internal_id
            )

        for schema in list(self.schemas.values()):
            if schema.internal_id not in self.used:
                self._remove(
                    schema,
                    "delete_folder",
                    self.indexer.delete_folder,
                    folder_id=schema.internal_id,
                )

        for db in list(self.databases.values()):
            if db.internal_id not in self.used:
                self._remove(
                    db, "delete_folder", self.indexer.delete_folder, folder_id=db.internal_id
                )

    def _has_children(self, node: MirrorNode) -> bool:
        """True if a child row is still in the working set after its removal failed."""
        if node.kind == NodeKind.DATABASE:
            children = [*self.schemas.values(), *self.tables.values()]
            return any(c.database_name == node.name for c in children)
        if node.kind == NodeKind.SCHEMA:
            return any(
                t.database_name == node.database_name and t.schema_name == node.name
                for t in self.tables.values()
            )
        return False

    def _remove(
        self,
        node: MirrorNode,
        operation: str,
        call: Callable[..., None],
        **kwargs: Any,
    ) -> None:
        if node.permission == Permission.SELECTED:
            logger.error(
                "%s %s of connector %s is selected but was not used during the "
                "sync; grant bookkeeping disagrees with the remote tree",
                node.kind.value.capitalize(),
                node.internal_id,
                self.connector.id,
            )
            self.report.invariant_violations.append(node.internal_id)

        if self._has_children(node):
            logger.warning(
                "Keeping %s %s of connector %s until its children are removed",
                node.kind.value,
                node.internal_id,
                self.connector.id,
            )
            return

        if not self._index(node.internal_id, operation, call, **kwargs):
            # Keep the mirror row so the next pass retries the delete.
            return

        self.store.destroy(node)
        if node.kind == NodeKind.DATABASE:
            del self.databases[node.internal_id]
            self.report.databases_removed += 1
        elif node.kind == NodeKind.SCHEMA:
            del self.schemas[node.internal_id]
            self.report.schemas_removed += 1
        else:
            del self.tables[node.internal_id]
            self.report.tables_removed += 1

    def _index(
        self,
        internal_id: str,
        operation: str,
        call: Callable[..., None],
        **kwargs: Any,
    ) -> bool:
        """
        Run one indexer call for a node, retrying timeouts with exponential
        backoff.

        Failures are logged and recorded on the report; they never abort the
        pass. Returns True on success.
        """
        attempts = self.settings.indexer_retries + 1

        def log_retry(state: RetryCallState) -> None:
            logger.warning(
                "Indexer %s timed out for %s (connector %s), attempt %d/%d",
                operation,
                internal_id,
                self.connector.id,
                state.attempt_number,
                attempts,
            )

        retrying = Retrying(
            retry=retry_if_exception_type(IndexerTimeout),
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(
                multiplier=self.settings.indexer_backoff,
                max=self.settings.indexer_timeout,
            ),
            before_sleep=log_retry,
            sleep=self._sleep,
            reraise=True,
        )
        try:
            retrying(call, **kwargs)
            return True
        except IndexerError as exc:
            logger.error(
                "Indexer %s failed for %s (connector %s): %s",
                operation,
                internal_id,
                self.connector.id,
                exc,
            )
            self.report.failures.append(
                NodeFailure(internal_id=internal_id, operation=operation, error=str(exc))
            )
            return False


def sync(
    tree: RemoteTree,
    connector: Connector,
    mime_types: MimeTypes,
    *,
    store: MirrorStore,
    indexer: ExternalIndexer,
    heartbeat: HeartbeatPort | None = None,
    settings: SyncSettings | None = None,
) -> SyncReport:
    """
    Run one sync pass for ``connector`` while holding its lease.

    Raises:
        SyncAlreadyRunning: Another pass for the same connector is running.
    """
    with connector_lease(connector.id):
        reconciler = Reconciler(
            store,
            indexer,
            connector=connector,
            mime_types=mime_types,
            heartbeat=heartbeat,
            settings=settings,
        )
        return reconciler.run(tree)
