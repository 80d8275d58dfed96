"""Daemon commands: start, stop, status."""

from __future__ import annotations

import os
import signal
import sys

import click

from ._common import KAYA_HOME, console, home_path


def register_daemon_commands(main: click.Group) -> None:
    """Register the daemon command group."""

    @main.group()
    def daemon():
        """Localhost daemon -- HTTP front-end for the extension.

        Serves http://127.0.0.1:<port> for the browser and keeps
        ~/.kaya synced with the server in the background.
        """

    @daemon.command("start")
    @click.option("--home", default=KAYA_HOME, type=click.Path())
    @click.option("--port", default=21420, help="Listen port (default: 21420).")
    @click.option("--sync-interval", "sync_int", default=60, help="Sync interval in seconds.")
    def daemon_start(home: str, port: int, sync_int: int):
        """Start the daemon in the foreground (Ctrl+C to stop)."""
        from ..daemon import DaemonConfig, DaemonService, is_running

        path = home_path(home)
        if is_running(path):
            console.print("[yellow]Daemon is already running.[/]")
            sys.exit(0)

        config = DaemonConfig(home=path, port=port, sync_interval=sync_int)
        svc = DaemonService(config)

        console.print(f"\n  [green]Starting daemon[/] on port [cyan]{port}[/]")
        console.print(f"  Sync: {sync_int}s")
        console.print(f"  Log: {config.log_file}")
        console.print(f"  PID: {os.getpid()}\n")

        try:
            svc.start()
        except OSError as exc:
            console.print(f"[bold red]Could not listen on port {port}:[/] {exc}")
            svc.stop()
            sys.exit(1)
        svc.run_forever()

    @daemon.command("stop")
    @click.option("--home", default=KAYA_HOME, type=click.Path())
    def daemon_stop(home: str):
        """Stop the running daemon."""
        from ..daemon import PID_FILE, read_pid

        path = home_path(home)
        pid = read_pid(path)
        if pid is None:
            console.print("[yellow]Daemon is not running.[/]")
            return

        try:
            os.kill(pid, signal.SIGTERM)
            console.print(f"\n  [green]Sent SIGTERM to daemon (PID {pid})[/]\n")
        except ProcessLookupError:
            console.print("[yellow]Daemon process not found, cleaning up PID file.[/]")
            (path / PID_FILE).unlink(missing_ok=True)

    @daemon.command("status")
    @click.option("--home", default=KAYA_HOME, type=click.Path())
    @click.option("--port", default=21420, help="Port to probe.")
    def daemon_status(home: str, port: int):
        """Show whether the daemon is running and answering."""
        import requests

        from ..daemon import read_pid

        pid = read_pid(home_path(home))
        if pid is None:
            console.print("\n  [yellow]Daemon is not running.[/]\n")
            return

        try:
            response = requests.get(f"http://127.0.0.1:{port}/health", timeout=2)
            healthy = response.status_code == 200
        except requests.RequestException:
            healthy = False

        health = "[green]ok[/]" if healthy else "[red]unreachable[/]"
        console.print(f"\n  Daemon running (PID {pid}), port {port}: {health}\n")
