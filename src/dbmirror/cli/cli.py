"""CLI application for remote database mirroring."""

import typer

from dbmirror.cli.commands.mirror import mirror_app
from dbmirror.cli.commands.sync import sync_command
from dbmirror.cli.common.logs import configure_logging
from dbmirror.cli.common.options import VerboseOpt

app = typer.Typer(
    help="dbmirror - mirror remote warehouse catalogs into a searchable index",
    no_args_is_help=True,
)


@app.callback()
def _main(verbose: bool = VerboseOpt):
    """Configure logging before any command runs."""
    configure_logging(verbose)


app.command("sync")(sync_command)
app.add_typer(mirror_app, name="mirror")


if __name__ == "__main__":
    app()
