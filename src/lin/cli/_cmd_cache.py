"""Response cache commands for lin CLI."""

from __future__ import annotations

import typer

from lin.errors import CacheError

from ._helpers import SortedGroup, fail, get_cache
from ._json_state import echo_json, is_json_output

cache_app = typer.Typer(
    help="Inspect and clear the response cache.",
    no_args_is_help=True,
    cls=SortedGroup,
)


def register(app: typer.Typer) -> None:
    """Register cache commands."""
    app.add_typer(cache_app, name="cache")

    @cache_app.command("status")
    def cache_status(ctx: typer.Context) -> None:
        """Show entry counts and size of the response cache."""
        cache = get_cache(ctx)
        try:
            stats = cache.stats()
        except CacheError as e:
            raise fail(e) from e

        if is_json_output():
            echo_json(
                {
                    "cache_file": str(cache.path),
                    "total_entries": stats.total_entries,
                    "valid_entries": stats.valid_entries,
                    "expired_entries": stats.expired_entries,
                    "size_bytes": stats.size_bytes,
                    "size": stats.formatted_size(),
                }
            )
            return

        typer.echo(f"Cache file: {cache.path}")
        typer.echo(f"Entries:    {stats.total_entries} total")
        typer.echo(f"            {stats.valid_entries} valid")
        typer.echo(f"            {stats.expired_entries} expired")
        typer.echo(f"Size:       {stats.formatted_size()}")

    @cache_app.command("clear")
    def cache_clear(ctx: typer.Context) -> None:
        """Remove every cached response."""
        try:
            removed = get_cache(ctx).clear()
        except CacheError as e:
            raise fail(e) from e

        if is_json_output():
            echo_json({"cleared": removed})
        else:
            typer.echo(f"✓ Cleared {removed} cache entr{'y' if removed == 1 else 'ies'}")

    @cache_app.command("prune")
    def cache_prune(ctx: typer.Context) -> None:
        """Remove expired cached responses."""
        try:
            removed = get_cache(ctx).purge_expired()
        except CacheError as e:
            raise fail(e) from e

        if is_json_output():
            echo_json({"pruned": removed})
        else:
            typer.echo(
                f"✓ Pruned {removed} expired entr{'y' if removed == 1 else 'ies'}"
            )
