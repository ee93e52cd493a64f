import json

import httpx
import pytest

from dbmirror.adapters.http_indexer import HttpIndexer
from dbmirror.core.errors import IndexerError, IndexerTimeout


def _indexer(handler):
    client = httpx.Client(
        transport=httpx.MockTransport(handler), base_url="https://index.test"
    )
    return HttpIndexer("https://index.test", "p1", "ds1", client=client, timeout=5.0)


def test_upsert_table_posts_payload():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    indexer = _indexer(handler)
    indexer.upsert_table(
        table_id="d.s.t",
        table_name="d.s.t",
        remote_table_ref="d.s.t",
        remote_secret_ref="sec",
        description="",
        parents=("d.s.t", "d.s", "d"),
        parent_id="d.s",
        title="t",
        mime_type="application/vnd.dbmirror.snowflake.table",
    )

    (request,) = seen
    assert request.method == "POST"
    assert request.url.path == "/projects/p1/data_sources/ds1/tables"
    body = json.loads(request.content)
    assert body["table_id"] == "d.s.t"
    assert body["remote_database_table_id"] == "d.s.t"
    assert body["remote_database_secret_id"] == "sec"
    assert body["parents"] == ["d.s.t", "d.s", "d"]
    assert body["parent_id"] == "d.s"


def test_upsert_folder_sends_null_parent_for_databases():
    bodies = []

    def handler(request):
        bodies.append(json.loads(request.content))
        return httpx.Response(201)

    _indexer(handler).upsert_folder(
        folder_id="d", title="d", parents=["d"], parent_id=None, mime_type="m"
    )

    assert bodies == [
        {"folder_id": "d", "title": "d", "parents": ["d"], "parent_id": None, "mime_type": "m"}
    ]


def test_delete_is_idempotent_on_404():
    def handler(request):
        assert request.method == "DELETE"
        return httpx.Response(404)

    indexer = _indexer(handler)
    indexer.delete_table(table_id="d.s.t")
    indexer.delete_folder(folder_id="d.s")


def test_server_error_raises_indexer_error():
    indexer = _indexer(lambda request: httpx.Response(500, text="boom"))

    with pytest.raises(IndexerError, match="500"):
        indexer.delete_folder(folder_id="d")


def test_404_on_upsert_is_an_error():
    indexer = _indexer(lambda request: httpx.Response(404))

    with pytest.raises(IndexerError):
        indexer.upsert_folder(
            folder_id="d", title="d", parents=["d"], parent_id=None, mime_type="m"
        )


def test_timeout_raises_indexer_timeout():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    indexer = _indexer(handler)

    with pytest.raises(IndexerTimeout):
        indexer.delete_table(table_id="d.s.t")


def test_transport_error_raises_indexer_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(IndexerError) as excinfo:
        _indexer(handler).delete_table(table_id="d.s.t")
    assert not isinstance(excinfo.value, IndexerTimeout)


def test_api_key_sets_bearer_header():
    indexer = HttpIndexer("https://index.test/", "p", "d", api_key="k")
    try:
        assert indexer.client.headers["Authorization"] == "Bearer k"
    finally:
        indexer.close()
