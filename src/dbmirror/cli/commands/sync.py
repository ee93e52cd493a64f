from __future__ import annotations

import signal
from enum import Enum
from pathlib import Path

import typer
from databricks.sdk.errors import NotFound, PermissionDenied

from dbmirror.adapters.http_indexer import HttpIndexer
from dbmirror.adapters.unitycatalog import AuthError, UnityCatalogAdapter
from dbmirror.cli.common.context import open_store_or_exit
from dbmirror.cli.common.exits import EXIT_CANCELLED, EXIT_USAGE, die, exit_from_exc
from dbmirror.cli.common.options import (
    BackoffOpt,
    ConnectorOpt,
    DataSourceOpt,
    HeartbeatEveryOpt,
    IndexerApiKeyOpt,
    IndexerUrlOpt,
    ProfileOpt,
    ProjectOpt,
    RetriesOpt,
    SnapshotOpt,
    StoreOpt,
    TimeoutOpt,
)
from dbmirror.cli.common.output import out
from dbmirror.core.errors import (
    MalformedInternalIdError,
    MirrorStoreError,
    SyncAlreadyRunning,
    SyncCancelled,
)
from dbmirror.core.heartbeat import CancellationToken
from dbmirror.core.models import Connector, mime_types_for
from dbmirror.core.reconciler import sync
from dbmirror.core.settings import SyncSettings
from dbmirror.core.tree import RemoteTree, load_tree, tree_from_catalog


class Provider(str, Enum):
    databricks = "databricks"
    snapshot = "snapshot"


def _load_remote_tree(
    provider: Provider,
    *,
    snapshot: Path | None,
    profile: str | None,
    catalogs: list[str],
) -> RemoteTree:
    """Fetch the remote tree from Unity Catalog or read it from a snapshot file."""
    if provider == Provider.snapshot:
        if snapshot is None:
            die("--snapshot is required with --provider snapshot.", EXIT_USAGE)
        try:
            return load_tree(snapshot)
        except (OSError, ValueError) as exc:
            exit_from_exc(exc, message=f"Cannot read snapshot: {exc}", code=EXIT_USAGE)

    try:
        adapter = UnityCatalogAdapter.from_profile(profile)
    except AuthError as exc:
        exit_from_exc(exc, message=str(exc), code=1)

    try:
        with out.status("Loading Unity Catalog tree..."):
            return tree_from_catalog(adapter, catalogs or None)
    except NotFound as exc:
        exit_from_exc(exc, message=f"Catalog object not found: {exc}", code=1)
    except PermissionDenied as exc:
        exit_from_exc(exc, message=f"No permission to list the catalog: {exc}", code=1)
    except MalformedInternalIdError as exc:
        exit_from_exc(exc, message=str(exc), code=EXIT_USAGE)


def _progress_message(beats: int, every: int, total: int) -> str:
    """Status line for a heartbeat; the beat after the walk counts no new tables."""
    return f"Syncing... ({min(beats * every, total)}/{total} tables visited)"


def sync_command(
    store: str = StoreOpt,
    connector: str = ConnectorOpt,
    secret_ref: str = typer.Option(
        "",
        "--secret-ref",
        envvar="DBMIRROR_SECRET_REF",
        help="Warehouse credentials reference forwarded to the indexer",
    ),
    provider: Provider = typer.Option(
        Provider.databricks, "--provider", help="Where the remote tree comes from"
    ),
    snapshot: Path | None = SnapshotOpt,
    profile: str | None = ProfileOpt,
    catalog: list[str] = typer.Option(
        [],
        "--catalog",
        help="Restrict the Unity Catalog walk to this catalog. This is reusable.",
        show_default=False,
    ),
    mime_provider: str | None = typer.Option(
        None,
        "--mime-provider",
        help="Mime type family: bigquery, snowflake or databricks",
    ),
    indexer_url: str = IndexerUrlOpt,
    indexer_api_key: str | None = IndexerApiKeyOpt,
    project: str = ProjectOpt,
    data_source: str = DataSourceOpt,
    heartbeat_every: int = HeartbeatEveryOpt,
    timeout: float = TimeoutOpt,
    retries: int = RetriesOpt,
    backoff: float = BackoffOpt,
):
    """Mirror the remote catalog and reconcile the external index."""
    try:
        settings = SyncSettings(
            heartbeat_every=heartbeat_every,
            indexer_timeout=timeout,
            indexer_retries=retries,
            indexer_backoff=backoff,
        )
    except ValueError as exc:
        exit_from_exc(exc, message=str(exc), code=EXIT_USAGE)

    if mime_provider is None:
        if provider == Provider.snapshot:
            die("--mime-provider is required with --provider snapshot.", EXIT_USAGE)
        mime_provider = "databricks"
    try:
        mime_types = mime_types_for(mime_provider)
    except ValueError as exc:
        exit_from_exc(exc, message=str(exc), code=EXIT_USAGE)

    tree = _load_remote_tree(
        provider, snapshot=snapshot, profile=profile, catalogs=catalog
    )
    out.info(
        f"Remote tree: {len(tree.databases)} database(s), {tree.table_count} table(s)"
    )

    mirror = open_store_or_exit(store)
    indexer = HttpIndexer(
        indexer_url,
        project,
        data_source,
        api_key=indexer_api_key,
        timeout=settings.indexer_timeout,
    )

    with out.status("Syncing...") as status:
        token = CancellationToken(
            on_beat=lambda beats: status.update(
                _progress_message(beats, settings.heartbeat_every, tree.table_count)
            )
        )
        previous = signal.signal(
            signal.SIGTERM, lambda *_: token.cancel("terminated by SIGTERM")
        )
        try:
            report = sync(
                tree,
                Connector(id=connector, secret_ref=secret_ref),
                mime_types,
                store=mirror,
                indexer=indexer,
                heartbeat=token,
                settings=settings,
            )
        except SyncCancelled as exc:
            exit_from_exc(
                exc, message=f"Sync cancelled before sweep: {exc}", code=EXIT_CANCELLED
            )
        except SyncAlreadyRunning as exc:
            exit_from_exc(exc, message=str(exc), code=1)
        except MalformedInternalIdError as exc:
            exit_from_exc(exc, message=f"Malformed remote identifier: {exc}", code=EXIT_USAGE)
        except MirrorStoreError as exc:
            exit_from_exc(exc, message=f"Mirror store failure: {exc}", code=1)
        finally:
            signal.signal(signal.SIGTERM, previous)
            indexer.close()
            mirror.close()

    out.header("Sync")
    out.sync_report_table(report)

    if report.invariant_violations:
        out.warn(
            f"{len(report.invariant_violations)} selected node(s) were not reached "
            "and have been removed."
        )

    if report.failures:
        out.failures_table(report.failures)
        out.error(
            f"{len(report.failures)} indexer operation(s) failed; "
            "they are retried on the next sync."
        )
        raise typer.Exit(1)

    out.success("Sync completed.")
