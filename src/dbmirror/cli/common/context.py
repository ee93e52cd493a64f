"""Application context management for the CLI."""

from dataclasses import dataclass

from dbmirror.adapters.sqlite_store import SqliteMirrorStore
from dbmirror.cli.common.exits import die
from dbmirror.core.errors import MirrorStoreError


@dataclass
class MirrorAppContext:
    """Application context holding the mirror store of one connector."""

    connector_id: str
    store: SqliteMirrorStore


def open_store_or_exit(store_path: str) -> SqliteMirrorStore:
    """Open the SQLite mirror store, exiting with an error if it cannot be opened."""
    try:
        return SqliteMirrorStore(store_path)
    except MirrorStoreError as exc:
        die(str(exc), code=1)


def build_mirror_context(store_path: str, connector_id: str) -> MirrorAppContext:
    """Build the context for mirror commands."""
    return MirrorAppContext(
        connector_id=connector_id, store=open_store_or_exit(store_path)
    )
