"""Output formatting utilities for the CLI."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Mapping

import questionary
from rich.console import Console
from rich.status import Status
from rich.table import Table
from rich.theme import Theme

from dbmirror.cli.common.tui_style import (
    QUESTIONARY_STYLE_CONFIRM,
    QUESTIONARY_STYLE_SELECT,
)

_THEME = Theme(
    {
        "ok": "bold green",
        "warn": "yellow",
        "err": "bold red",
        "title": "bold cyan",
        "meta": "dim",
    }
)

console = Console(theme=_THEME)


def _fmt_ts(value: Any) -> str:
    if value is None:
        return "-"
    return value.strftime("%Y-%m-%d %H:%M:%S")


@dataclass(frozen=True)
class Out:
    """Output formatter for CLI messages and tables."""

    def _q_try(self, fn, *args, **kwargs):
        """Call questionary prompts and drop unsupported kwargs on older versions."""
        try:
            return fn(*args, **kwargs)
        except TypeError:
            for k in ("pointer", "checked_icon", "unchecked_icon", "auto_enter"):
                kwargs.pop(k, None)
            return fn(*args, **kwargs)

    def _q(self, message: str) -> str:
        return f"[dbmirror] {message}"

    def info(self, msg: str) -> None:
        console.print(f"[title]›[/] {msg}")

    @contextmanager
    def status(self, msg: str) -> Iterator[Status]:
        """Show a transient spinner; the yielded Status can be updated."""
        with console.status(msg, spinner="dots") as st:
            yield st

    def success(self, msg: str) -> None:
        console.print(f"[ok]✓[/] {msg}")

    def warn(self, msg: str) -> None:
        console.print(f"[warn]⚠[/] {msg}")

    def error(self, msg: str) -> None:
        console.print(f"[err]✗[/] {msg}")

    def header(self, title: str) -> None:
        console.print(f"[title]{title}[/]")

    def kv(self, items: Mapping[str, Any]) -> None:
        """Print key-value pairs."""
        for k, v in items.items():
            console.print(f"[meta]{k}[/]: {v}")

    def select_many(self, message: str, choices: list[Any]) -> list[Any]:
        """
        Prompt the user to select multiple items from a list.

        Choices may be plain strings or ``questionary.Choice`` objects.
        Returns the selected values.
        """
        if not choices:
            return []

        prompt = self._q_try(
            questionary.checkbox,
            self._q(message),
            choices=choices,
            style=QUESTIONARY_STYLE_SELECT,
            qmark="✦",
            instruction="Use ↑/↓, space, a (all), i (invert), enter",
            pointer="❯",
            checked_icon="▣",
            unchecked_icon="▢",
        )
        return list(prompt.ask() or [])

    def confirm(self, message: str, *, default: bool = False) -> bool:
        """Ask a y/n question with the shared prompt style."""
        console.print("[meta]Use y/n then Enter[/]")
        prompt = self._q_try(
            questionary.confirm,
            self._q(message),
            default=default,
            style=QUESTIONARY_STYLE_CONFIRM,
            qmark="✦",
            auto_enter=False,
        )
        return bool(prompt.ask())

    def nodes_table(self, nodes: Iterable[Any], title: str = "Mirror") -> None:
        """
        Render mirror nodes.

        Expects objects with ``.kind``, ``.internal_id``, ``.permission`` and,
        for tables, ``.last_upserted_at``.
        """
        t = Table(title=title, show_lines=False)
        t.add_column("Kind", style="meta", no_wrap=True)
        t.add_column("Internal ID", style="ok")
        t.add_column("Permission")
        t.add_column("Last upserted", style="meta")

        for n in nodes:
            permission = n.permission.value
            if permission == "selected":
                permission = f"[title]{permission}[/]"
            t.add_row(
                n.kind.value,
                n.internal_id,
                permission,
                _fmt_ts(getattr(n, "last_upserted_at", None)),
            )

        console.print(t)

    def grant_results_table(
        self, results: Iterable[Any], title: str = "Permission changes"
    ) -> None:
        """Expects objects with ``.internal_id``, ``.kind``, ``.created``, ``.permission``."""
        t = Table(title=title, show_lines=False)
        t.add_column("Internal ID", style="ok")
        t.add_column("Kind", style="meta")
        t.add_column("Permission")
        t.add_column("Created", style="meta")

        for r in results:
            t.add_row(
                r.internal_id,
                r.kind.value,
                r.permission.value,
                "yes" if r.created else "no",
            )

        console.print(t)

    def sync_report_table(self, report: Any, title: str = "Sync summary") -> None:
        """Render kept/removed counts of a ``SyncReport``."""
        t = Table(title=title, show_lines=False)
        t.add_column("Kind", style="meta")
        t.add_column("Kept", style="ok")
        t.add_column("Removed", style="warn")

        t.add_row("databases", str(report.databases_kept), str(report.databases_removed))
        t.add_row("schemas", str(report.schemas_kept), str(report.schemas_removed))
        t.add_row("tables", str(report.tables_kept), str(report.tables_removed))

        console.print(t)
        self.kv(
            {
                "Tables upserted": report.tables_upserted,
                "Folders upserted": report.folders_upserted,
            }
        )

    def failures_table(self, failures: Iterable[Any], title: str = "Indexer failures") -> None:
        """Expects objects with ``.internal_id``, ``.operation`` and ``.error``."""
        t = Table(title=title, show_lines=False)
        t.add_column("Internal ID", style="ok")
        t.add_column("Operation", style="meta")
        t.add_column("Error", style="err")

        for f in failures:
            t.add_row(f.internal_id, f.operation, f.error)

        console.print(t)


out = Out()
