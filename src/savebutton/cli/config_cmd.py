"""Config commands: status, set."""

from __future__ import annotations

import sys
from typing import Optional

import click

from ._common import KAYA_HOME, console, home_path


def register_config_commands(main: click.Group) -> None:
    """Register the config command group."""

    @main.group("config")
    def config():
        """Account settings stored in ~/.kaya/.config."""

    @config.command("status")
    @click.option("--home", default=KAYA_HOME, type=click.Path())
    def config_status(home: str):
        """Show the configured server and email. Never prints the password."""
        from ..config import config_path, load_config
        from ..errors import SaveButtonError

        path = home_path(home)
        try:
            current = load_config(path)
        except SaveButtonError as exc:
            console.print(f"[bold red]Unreadable config:[/] {exc}")
            sys.exit(1)

        console.print(f"\n  Config: [dim]{config_path(path)}[/]")
        console.print(f"  Server: {current.server or '[yellow]not set[/]'}")
        console.print(f"  Email: {current.email or '[yellow]not set[/]'}")
        stored = "[green]stored[/]" if current.has_password else "[yellow]not set[/]"
        console.print(f"  Password: {stored}\n")

    @config.command("set")
    @click.option("--home", default=KAYA_HOME, type=click.Path())
    @click.option("--server", default=None, help="Account server URL.")
    @click.option("--email", default=None, help="Account email.")
    @click.option("--password", default=None, help="Account password (re-keys the vault).")
    @click.option("--ask-password", is_flag=True, help="Prompt for the password.")
    def config_set(
        home: str,
        server: Optional[str],
        email: Optional[str],
        password: Optional[str],
        ask_password: bool,
    ):
        """Merge new values into the stored config."""
        from ..config import load_config, save_config
        from ..errors import SaveButtonError

        if ask_password:
            password = click.prompt("Password", hide_input=True)

        path = home_path(home)
        try:
            updated = load_config(path).updated(server=server, email=email, password=password)
            written = save_config(updated, path)
        except SaveButtonError as exc:
            console.print(f"[bold red]Could not save config:[/] {exc}")
            sys.exit(1)
        console.print(f"\n  [green]Saved[/] {written}\n")
