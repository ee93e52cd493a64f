"""External indexer interface.

The indexer receives folder-like entries (databases, schemas) and table-like
entries keyed by internal ID. Every operation is idempotent; ``parents``
carries the self-inclusive ancestor chain, closest first, for downstream
filtering.
"""

from __future__ import annotations

from typing import Protocol, Sequence


class ExternalIndexer(Protocol):
    """Upsert/delete operations of the search index the mirror feeds."""

    def upsert_folder(
        self,
        *,
        folder_id: str,
        title: str,
        parents: Sequence[str],
        parent_id: str | None,
        mime_type: str,
    ) -> None:
        """Create or update a folder entry."""
        ...

    def delete_folder(self, *, folder_id: str) -> None:
        """Delete a folder entry; deleting a missing folder is not an error."""
        ...

    def upsert_table(
        self,
        *,
        table_id: str,
        table_name: str,
        remote_table_ref: str,
        remote_secret_ref: str,
        description: str,
        parents: Sequence[str],
        parent_id: str | None,
        title: str,
        mime_type: str,
    ) -> None:
        """Create or update a remote table entry."""
        ...

    def delete_table(self, *, table_id: str) -> None:
        """Delete a table entry; deleting a missing table is not an error."""
        ...
