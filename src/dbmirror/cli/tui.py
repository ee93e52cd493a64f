"""Interactive selection of remote catalog nodes."""

from __future__ import annotations

from typing import Iterable

import questionary

from dbmirror.cli.common.output import out
from dbmirror.core.models import NodeKind

_MAX_ID_WIDTH = 96
_INDENT = {NodeKind.DATABASE: 0, NodeKind.SCHEMA: 2, NodeKind.TABLE: 4}


def _truncate(text: str, max_len: int) -> str:
    """Return text capped at max_len characters using an ASCII ellipsis."""
    if max_len <= 3 or len(text) <= max_len:
        return text[:max_len]
    return f"{text[: max_len - 3]}..."


def _node_choice_title(kind: NodeKind, internal_id: str) -> str:
    """Indent a node by its depth and tag it with its kind."""
    indent = " " * _INDENT[kind]
    return f"{indent}{_truncate(internal_id, _MAX_ID_WIDTH)}  ({kind.value})"


def select_node_ids(nodes: Iterable[tuple[NodeKind, str]]) -> list[str]:
    """Display a checkbox prompt over remote nodes and return the picked IDs."""
    choices = [
        questionary.Choice(title=_node_choice_title(kind, internal_id), value=internal_id)
        for kind, internal_id in nodes
    ]
    return out.select_many("Select nodes to grant:", choices)
