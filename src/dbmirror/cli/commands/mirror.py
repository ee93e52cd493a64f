from __future__ import annotations

from pathlib import Path

import typer

from dbmirror.cli.common.context import MirrorAppContext, build_mirror_context
from dbmirror.cli.common.exits import EXIT_USAGE, die, exit_from_exc
from dbmirror.cli.common.options import ConnectorOpt, SnapshotOpt, StoreOpt, YesOpt
from dbmirror.cli.common.output import out
from dbmirror.cli.tui import select_node_ids
from dbmirror.core.errors import MalformedInternalIdError, MirrorStoreError
from dbmirror.core.grants import grant, revoke
from dbmirror.core.models import NodeKind, Permission
from dbmirror.core.tree import iter_internal_ids, load_tree

mirror_app = typer.Typer(
    help="Inspect the mirror and edit read permissions.",
    no_args_is_help=True,
)


@mirror_app.callback()
def _init(
    ctx: typer.Context,
    store: str = StoreOpt,
    connector: str = ConnectorOpt,
):
    """Open the mirror store for a connector."""
    appctx = build_mirror_context(store, connector)
    ctx.call_on_close(appctx.store.close)
    ctx.obj = appctx


@mirror_app.command("list")
def mirror_list(
    ctx: typer.Context,
    kind: NodeKind | None = typer.Option(
        None, "--kind", case_sensitive=False, help="Only show one node kind"
    ),
    selected_only: bool = typer.Option(
        False, "--selected", help="Only show explicitly granted nodes"
    ),
):
    """List mirrored databases, schemas and tables."""
    appctx: MirrorAppContext = ctx.obj
    store = appctx.store
    cid = appctx.connector_id

    try:
        nodes = [
            *(store.list_databases(cid) if kind in (None, NodeKind.DATABASE) else []),
            *(store.list_schemas(cid) if kind in (None, NodeKind.SCHEMA) else []),
            *(store.list_tables(cid) if kind in (None, NodeKind.TABLE) else []),
        ]
    except MirrorStoreError as exc:
        exit_from_exc(exc, message=str(exc), code=1)

    if selected_only:
        nodes = [n for n in nodes if n.permission == Permission.SELECTED]

    if not nodes:
        out.warn("Mirror is empty.")
        raise typer.Exit(0)

    out.header("Mirror")
    out.info(f"Connector: {cid} | Nodes: {len(nodes)}")
    out.nodes_table(nodes, title="Mirror nodes")


@mirror_app.command("grant")
def mirror_grant(
    ctx: typer.Context,
    ids: list[str] | None = typer.Argument(
        None, help="Internal IDs: database, database.schema or database.schema.table"
    ),
    snapshot: Path | None = SnapshotOpt,
):
    """Grant read access to databases, schemas or tables."""
    appctx: MirrorAppContext = ctx.obj

    selected = list(ids or [])
    if not selected:
        if snapshot is None:
            die("Provide internal IDs or --snapshot to pick them interactively.", EXIT_USAGE)
        try:
            tree = load_tree(snapshot)
        except (OSError, ValueError) as exc:
            exit_from_exc(exc, message=f"Cannot read snapshot: {exc}", code=EXIT_USAGE)
        selected = select_node_ids(iter_internal_ids(tree))
        if not selected:
            out.warn("No nodes selected.")
            raise typer.Exit(0)

    try:
        results = grant(appctx.store, appctx.connector_id, selected)
    except MalformedInternalIdError as exc:
        exit_from_exc(exc, message=str(exc), code=EXIT_USAGE)
    except MirrorStoreError as exc:
        exit_from_exc(exc, message=str(exc), code=1)

    out.grant_results_table(results, title="Granted")
    out.success(f"Granted {len(results)} node(s). Run a sync to index them.")


@mirror_app.command("revoke")
def mirror_revoke(
    ctx: typer.Context,
    ids: list[str] = typer.Argument(..., help="Internal IDs to revoke"),
    yes: bool = YesOpt,
):
    """Revoke explicit read grants; the next sync removes unreachable nodes."""
    appctx: MirrorAppContext = ctx.obj

    out.header("Nodes to revoke")
    for internal_id in ids:
        out.info(internal_id)

    if not yes:
        if not out.confirm("Proceed? Nodes no longer granted are removed on the next sync."):
            out.warn("Cancelled.")
            raise typer.Exit(0)

    try:
        outcome = revoke(appctx.store, appctx.connector_id, ids)
    except MalformedInternalIdError as exc:
        exit_from_exc(exc, message=str(exc), code=EXIT_USAGE)
    except MirrorStoreError as exc:
        exit_from_exc(exc, message=str(exc), code=1)

    if outcome.revoked:
        out.grant_results_table(outcome.revoked, title="Revoked")
    for internal_id in outcome.missing:
        out.warn(f"Not in mirror: {internal_id}")

    out.success(f"Revoked {len(outcome.revoked)} node(s).")
