from __future__ import annotations

import typer

from registry_sync.cli.registry import app as registry_app
from registry_sync.cli.sync import app as sync_app

app = typer.Typer(no_args_is_help=True)
app.add_typer(sync_app, name="sync")
app.add_typer(registry_app, name="registry")
