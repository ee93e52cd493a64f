import pytest
from fakes import MemoryStore

from dbmirror.core.errors import MalformedInternalIdError
from dbmirror.core.grants import grant, revoke
from dbmirror.core.models import DatabaseNode, NodeKind, Permission


def test_grant_creates_unknown_nodes_as_selected():
    store = MemoryStore()

    results = grant(store, "c1", ["d1", "d2.s1", "d3.s1.t1", "d1"])

    assert [(r.internal_id, r.kind, r.created) for r in results] == [
        ("d1", NodeKind.DATABASE, True),
        ("d2.s1", NodeKind.SCHEMA, True),
        ("d3.s1.t1", NodeKind.TABLE, True),
    ]
    table = store.get(NodeKind.TABLE, "d3.s1.t1")
    assert table.permission == Permission.SELECTED
    assert table.schema_name == "s1"
    assert table.last_upserted_at is None
    assert store.get(NodeKind.SCHEMA, "d2.s1").database_name == "d2"


def test_grant_promotes_existing_node():
    store = MemoryStore().seed(DatabaseNode("c1", "d1", "d1", Permission.INHERITED))

    (result,) = grant(store, "c1", ["d1"])

    assert not result.created
    assert result.permission == Permission.SELECTED
    assert store.get(NodeKind.DATABASE, "d1").permission == Permission.SELECTED


def test_grant_validates_every_id_first():
    store = MemoryStore()

    with pytest.raises(MalformedInternalIdError):
        grant(store, "c1", ["d1", "a.b.c.d"])

    assert store.ops == []


def test_revoke_reports_missing_ids():
    store = MemoryStore().seed(DatabaseNode("c1", "d1", "d1", Permission.SELECTED))

    outcome = revoke(store, "c1", ["d1", "d9"])

    assert [r.internal_id for r in outcome.revoked] == ["d1"]
    assert outcome.missing == ["d9"]
    assert store.get(NodeKind.DATABASE, "d1").permission == Permission.INHERITED


def test_grant_creates_missing_ancestors_as_inherited():
    store = MemoryStore().seed(DatabaseNode("c1", "d1", "d1", Permission.SELECTED))

    grant(store, "c1", ["d1.s1.t1", "d2.s2"])

    assert store.ids(NodeKind.DATABASE) == {"d1", "d2"}
    assert store.ids(NodeKind.SCHEMA) == {"d1.s1", "d2.s2"}
    assert store.get(NodeKind.DATABASE, "d1").permission == Permission.SELECTED
    assert store.get(NodeKind.DATABASE, "d2").permission == Permission.INHERITED
    assert store.get(NodeKind.SCHEMA, "d1.s1").permission == Permission.INHERITED
    assert store.get(NodeKind.SCHEMA, "d2.s2").permission == Permission.SELECTED
    creates = [key for op, key in store.ops if op.startswith("create_")]
    assert creates == ["d1.s1", "d1.s1.t1", "d2", "d2.s2"]


def test_grant_of_ancestor_after_descendant_promotes_it():
    store = MemoryStore()

    results = grant(store, "c1", ["d1.s1.t1", "d1"])

    assert [r.created for r in results] == [True, False]
    assert store.get(NodeKind.DATABASE, "d1").permission == Permission.SELECTED
