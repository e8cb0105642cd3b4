"""Shared infrastructure for lin CLI commands."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import typer
from typer.core import TyperGroup

from lin.api import LinearClient
from lin.cache import TTLCache
from lin.config import ConfigStore
from lin.context import Context

from ._json_state import echo_error

if TYPE_CHECKING:
    import click

    from lin.errors import LinError


class SortedGroup(TyperGroup):
    """Typer group that lists commands in alphabetical order."""

    def list_commands(self, ctx: click.Context) -> list[str]:
        """Return commands sorted alphabetically."""
        return sorted(super().list_commands(ctx))


@dataclass
class GlobalOptions:
    """Options given before the subcommand, stored on ``ctx.obj``."""

    no_cache: bool = False
    org: str | None = None


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr; DEBUG when verbose, WARNING otherwise."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def get_options(ctx: typer.Context) -> GlobalOptions:
    root = ctx.find_root()
    if not isinstance(root.obj, GlobalOptions):
        root.obj = GlobalOptions()
    return root.obj


def get_store() -> ConfigStore:
    return ConfigStore()


def get_cache(ctx: typer.Context) -> TTLCache:
    """The response cache, honouring the global --no-cache flag."""
    return TTLCache(bypass=get_options(ctx).no_cache)


def new_client(token: str) -> LinearClient:
    return LinearClient(token)


def get_context(ctx: typer.Context) -> Context:
    """Load the configuration and build the per-invocation context.

    Raises:
        ConfigError: If the document is corrupt or no token is available
    """
    options = get_options(ctx)
    return Context.load(
        get_store(),
        get_cache(ctx),
        organization=options.org,
        client_factory=new_client,
    )


def fail(error: LinError) -> typer.Exit:
    """Report *error* and return the Exit to raise."""
    echo_error(str(error))
    return typer.Exit(1)
