"""Sync command: one reconciliation pass from the terminal."""

from __future__ import annotations

import sys

import click
from rich.table import Table

from ._common import KAYA_HOME, console, home_path


def register_sync_commands(main: click.Group) -> None:
    """Register the sync command."""

    @main.command("sync")
    @click.option("--home", default=KAYA_HOME, type=click.Path())
    def sync(home: str):
        """Reconcile ~/.kaya with the server once and print a summary."""
        from ..errors import SaveButtonError
        from ..sync.engine import SyncEngine

        engine = SyncEngine(home_path(home))
        try:
            report = engine.sync()
        except SaveButtonError as exc:
            console.print(f"[bold red]Sync failed:[/] {exc}")
            sys.exit(1)

        if not report.results and not report.errors:
            console.print(
                "[yellow]Not configured.[/] Run [cyan]savebutton config set[/] first."
            )
            sys.exit(1)

        table = Table(title="Sync summary")
        table.add_column("Collection", style="cyan")
        table.add_column("Downloaded", justify="right")
        table.add_column("Uploaded", justify="right")
        table.add_column("Failed", justify="right")
        for label, result in report.results.items():
            failed = f"[red]{result.failed}[/]" if result.failed else "0"
            table.add_row(
                label + (" [dim](skipped)[/]" if result.skipped else ""),
                str(result.downloaded),
                str(result.uploaded),
                failed,
            )
        console.print()
        console.print(table)

        for label, error in report.errors.items():
            console.print(f"  [red]{label}:[/] {error}")
        console.print()

        if not report.ok:
            sys.exit(1)
