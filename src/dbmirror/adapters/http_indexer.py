"""HTTP client for the external search/index service."""

from __future__ import annotations

from typing import Any, Sequence
from urllib.parse import quote

import httpx

from dbmirror.core.errors import IndexerError, IndexerTimeout
from dbmirror.core.settings import DEFAULT_INDEXER_TIMEOUT


class HttpIndexer:
    """
    External indexer talking to a data source's folder and table endpoints.

    Endpoints, relative to ``/projects/{project_id}/data_sources/{data_source_id}``:

    - ``POST /folders`` and ``DELETE /folders/{folder_id}``
    - ``POST /tables`` and ``DELETE /tables/{table_id}``

    Every request carries the configured timeout. A 404 on delete is treated
    as success so deletes stay idempotent.
    """

    def __init__(
        self,
        base_url: str,
        project_id: str,
        data_source_id: str,
        *,
        api_key: str | None = None,
        timeout: float = DEFAULT_INDEXER_TIMEOUT,
        client: httpx.Client | None = None,
    ) -> None:
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self.client = client or httpx.Client(
            base_url=base_url.rstrip("/"), headers=headers, timeout=timeout
        )
        self.timeout = timeout
        self.prefix = (
            f"/projects/{quote(project_id, safe='')}"
            f"/data_sources/{quote(data_source_id, safe='')}"
        )

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> HttpIndexer:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _request(
        self,
        method: str,
        path: str,
        *,
        payload: dict[str, Any] | None = None,
        missing_ok: bool = False,
    ) -> None:
        url = f"{self.prefix}{path}"
        try:
            response = self.client.request(
                method, url, json=payload, timeout=self.timeout
            )
        except httpx.TimeoutException as exc:
            raise IndexerTimeout(f"{method} {url} timed out after {self.timeout}s") from exc
        except httpx.HTTPError as exc:
            raise IndexerError(f"{method} {url} failed: {exc}") from exc

        if missing_ok and response.status_code == 404:
            return
        if response.is_error:
            raise IndexerError(
                f"{method} {url} returned {response.status_code}: {response.text[:200]}"
            )

    def upsert_folder(
        self,
        *,
        folder_id: str,
        title: str,
        parents: Sequence[str],
        parent_id: str | None,
        mime_type: str,
    ) -> None:
        self._request(
            "POST",
            "/folders",
            payload={
                "folder_id": folder_id,
                "title": title,
                "parents": list(parents),
                "parent_id": parent_id,
                "mime_type": mime_type,
            },
        )

    def delete_folder(self, *, folder_id: str) -> None:
        self._request(
            "DELETE", f"/folders/{quote(folder_id, safe='')}", missing_ok=True
        )

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
        self._request(
            "POST",
            "/tables",
            payload={
                "table_id": table_id,
                "name": table_name,
                "remote_database_table_id": remote_table_ref,
                "remote_database_secret_id": remote_secret_ref,
                "description": description,
                "parents": list(parents),
                "parent_id": parent_id,
                "title": title,
                "mime_type": mime_type,
            },
        )

    def delete_table(self, *, table_id: str) -> None:
        self._request("DELETE", f"/tables/{quote(table_id, safe='')}", missing_ok=True)
