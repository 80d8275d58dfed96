"""Native host command: launched by the browser, speaks on stdio."""

from __future__ import annotations

import click

from ._common import KAYA_HOME, home_path


def register_nativehost_commands(main: click.Group) -> None:
    """Register the nativehost command."""

    @main.command("nativehost", context_settings={"ignore_unknown_options": True})
    @click.option("--home", default=KAYA_HOME, type=click.Path())
    @click.option("--sync-interval", "sync_int", default=60, help="Sync interval in seconds.")
    @click.argument("browser_args", nargs=-1)
    def nativehost(home: str, sync_int: int, browser_args: tuple[str, ...]):
        """Run the native messaging host.

        Browsers append the extension origin (and on Windows a parent
        window handle); those arguments are accepted and ignored.
        Nothing but framed replies is ever written to stdout.
        """
        from ..nativehost import NativeHostConfig, run_native_host

        run_native_host(NativeHostConfig(home=home_path(home), sync_interval=sync_int))
