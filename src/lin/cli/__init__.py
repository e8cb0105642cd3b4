"""lin CLI commands."""

from __future__ import annotations

import typer

from lin._version import version

from ._helpers import GlobalOptions, SortedGroup, configure_logging

app = typer.Typer(
    help="lin - a fast command-line client for Linear.",
    no_args_is_help=True,
    cls=SortedGroup,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"lin {version}")
        raise typer.Exit(0)


@app.callback(invoke_without_command=True)
def _global_options(
    ctx: typer.Context,
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON for all commands",
    ),
    no_cache: bool = typer.Option(
        False,
        "--no-cache",
        help="Skip cached responses and fetch live (results are still cached)",
    ),
    org: str = typer.Option(
        None,
        "--org",
        "-o",
        help="Organization to use instead of the active one",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    _version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit",
    ),
) -> None:
    from ._json_state import set_json_flag

    set_json_flag(json_output)
    configure_logging(verbose)
    ctx.obj = GlobalOptions(no_cache=no_cache, org=org)
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(0)


from . import (  # noqa: E402
    _cmd_auth,
    _cmd_cache,
    _cmd_issue,
    _cmd_team,
)

for _mod in (
    _cmd_auth,
    _cmd_cache,
    _cmd_issue,
    _cmd_team,
):
    _mod.register(app)


def main() -> None:
    """Run the lin CLI application."""
    app()
