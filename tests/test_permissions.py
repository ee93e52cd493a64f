import pytest

from dbmirror.core.errors import MalformedInternalIdError
from dbmirror.core.models import (
    DatabaseNode,
    Permission,
    SchemaNode,
    TableNode,
)
from dbmirror.core.permissions import PermissionResolver


def test_database_grant_is_inherited_by_descendants():
    resolver = PermissionResolver({"d1"})

    assert resolver.is_database_granted("d1")
    assert resolver.is_schema_granted("d1.s1")
    assert resolver.is_table_granted("d1.s1.t1")
    assert not resolver.is_database_granted("d2")
    assert not resolver.is_table_granted("d2.s1.t1")


def test_schema_grant_does_not_grant_database_or_siblings():
    resolver = PermissionResolver({"d1.s1"})

    assert not resolver.is_database_granted("d1")
    assert resolver.is_schema_granted("d1.s1")
    assert not resolver.is_schema_granted("d1.s2")
    assert resolver.is_table_granted("d1.s1.t9")
    assert not resolver.is_table_granted("d1.s2.t1")


def test_table_grant_is_exact():
    resolver = PermissionResolver({"d1.s1.t1"})

    assert resolver.is_table_granted("d1.s1.t1")
    assert not resolver.is_table_granted("d1.s1.t2")
    assert not resolver.is_schema_granted("d1.s1")


def test_prefix_match_is_on_whole_components():
    resolver = PermissionResolver({"d1"})

    assert not resolver.is_table_granted("d10.s1.t1")


def test_from_nodes_collects_selected_only():
    resolver = PermissionResolver.from_nodes(
        [
            DatabaseNode("c1", "d1", "d1", Permission.SELECTED),
            DatabaseNode("c1", "d2", "d2", Permission.INHERITED),
        ],
        [SchemaNode("c1", "d2.s1", "s1", "d2", Permission.SELECTED)],
        [TableNode("c1", "d3.s1.t1", "t1", "s1", "d3", Permission.INHERITED)],
    )

    assert resolver.granted_ids == frozenset({"d1", "d2.s1"})
    assert len(resolver) == 2


def test_malformed_candidates_propagate():
    resolver = PermissionResolver(())

    with pytest.raises(MalformedInternalIdError):
        resolver.is_schema_granted("no-dot")
    with pytest.raises(MalformedInternalIdError):
        resolver.is_table_granted("d1.s1")
