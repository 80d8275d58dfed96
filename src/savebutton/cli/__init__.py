"""
Save Button CLI -- run the daemon or native host, sync by hand.

The main Click group is defined here; each command group lives in its
own module and registers itself through a ``register_*`` function.

Entry point: savebutton.cli:main
"""

from __future__ import annotations

import click

from .. import __version__


@click.group()
@click.version_option(version=__version__, prog_name="savebutton")
def main():
    """Save Button -- local sync agent for the browser extension."""


from .daemon import register_daemon_commands
from .nativehost import register_nativehost_commands
from .sync_cmd import register_sync_commands
from .config_cmd import register_config_commands

register_daemon_commands(main)
register_nativehost_commands(main)
register_sync_commands(main)
register_config_commands(main)
