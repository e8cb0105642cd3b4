"""Organization authentication and sync commands for lin CLI."""

from __future__ import annotations

import os

import typer

from lin.config import (
    add_organization,
    mask_token,
    remove_organization,
    switch_organization,
    validate_document,
)
from lin.constants import LINEAR_API_TOKEN_ENV
from lin.errors import LinError, RemoteError
from lin.metadata import MetadataCache
from lin.sync import SyncOrchestrator, SyncResult

from . import _helpers
from ._formatting import format_team_summary
from ._helpers import SortedGroup, fail, get_cache, get_context, get_store
from ._json_state import echo_json, is_json_output

auth_app = typer.Typer(
    help="Manage authenticated organizations.",
    no_args_is_help=True,
    cls=SortedGroup,
)


def _report_sync(result: SyncResult, verb: str) -> None:
    if is_json_output():
        echo_json(
            {
                "organization": result.organization,
                "teams": result.team_keys,
                "team_count": len(result.teams),
                "state_count": result.state_count,
            }
        )
        return
    typer.echo(
        f"✓ {verb} {result.organization}: {len(result.teams)} team(s), "
        f"{result.state_count} workflow state(s)"
    )
    for team in result.teams:
        typer.echo(format_team_summary(team))


def register(app: typer.Typer) -> None:
    """Register auth and sync commands."""
    app.add_typer(auth_app, name="auth")

    @auth_app.command("add")
    def auth_add(
        ctx: typer.Context,
        name: str = typer.Argument(..., help="Name for this organization"),
        token: str = typer.Option(
            ...,
            "--token",
            "-t",
            prompt="API token",
            hide_input=True,
            help="Linear personal API token",
        ),
    ) -> None:
        """Authenticate with an organization and sync its teams."""
        store = get_store()
        client = _helpers.new_client(token)
        try:
            try:
                client.fetch_viewer()
            except RemoteError as e:
                msg = f"Invalid or expired API token: {e}"
                raise RemoteError(msg) from e

            doc = store.load()
            add_organization(doc, name, token)
            switch_organization(doc, name.strip())
            store.save(doc)

            metadata = MetadataCache(store, name.strip())
            result = SyncOrchestrator(client, metadata, get_cache(ctx)).sync()
        except LinError as e:
            raise fail(e) from e
        finally:
            client.close()

        _report_sync(result, "Authenticated")

    @auth_app.command("switch")
    def auth_switch(
        name: str = typer.Argument(..., help="Organization to make active"),
    ) -> None:
        """Switch the active organization."""
        store = get_store()
        try:
            doc = store.load()
            switch_organization(doc, name)
            store.save(doc)
        except LinError as e:
            raise fail(e) from e

        if is_json_output():
            echo_json({"organization": name})
        else:
            typer.echo(f"✓ Switched to {name}")

    @auth_app.command("list")
    def auth_list() -> None:
        """List authenticated organizations."""
        try:
            doc = get_store().load()
        except LinError as e:
            raise fail(e) from e

        rows = [
            {
                "name": name,
                "active": name == doc.active_organization,
                "team_count": len(org.teams),
                "last_sync": org.last_sync,
            }
            for name, org in sorted(doc.organizations.items())
        ]
        if is_json_output():
            echo_json({"organizations": rows})
            return
        if not rows:
            typer.echo("No organizations configured. Run 'lin auth add <name>'.")
            return
        for row in rows:
            marker = "*" if row["active"] else " "
            synced = row["last_sync"] or "never"
            typer.echo(
                f"{marker} {row['name']}  ({row['team_count']} teams, last sync: {synced})"
            )

    @auth_app.command("remove")
    def auth_remove(
        name: str = typer.Argument(..., help="Organization to remove"),
    ) -> None:
        """Remove an organization and its cached metadata."""
        store = get_store()
        try:
            doc = store.load()
            remove_organization(doc, name)
            store.save(doc)
        except LinError as e:
            raise fail(e) from e

        if is_json_output():
            echo_json({"organization": name})
        else:
            typer.echo(f"✓ Removed {name}")

    @auth_app.command("status")
    def auth_status() -> None:
        """Show the active organization."""
        try:
            doc = get_store().load()
        except LinError as e:
            raise fail(e) from e

        env_token = bool(os.environ.get(LINEAR_API_TOKEN_ENV))
        org = doc.active()
        data = {
            "organization": org.name if org else None,
            "token": mask_token(org.token) if org else None,
            "teams": sorted(org.teams) if org else [],
            "last_sync": org.last_sync if org else None,
            "default_team": org.default_team if org else None,
            "env_token": env_token,
        }
        if is_json_output():
            echo_json(data)
            return

        if env_token:
            typer.echo(
                f"Using {LINEAR_API_TOKEN_ENV} from the environment; "
                "team, state and estimate names are unavailable."
            )
        if org is None:
            typer.echo("No active organization.")
            return
        typer.echo(f"Organization: {org.name}")
        typer.echo(f"Token:        {data['token']}")
        typer.echo(f"Teams:        {', '.join(data['teams']) or 'none'}")
        typer.echo(f"Last sync:    {org.last_sync or 'never'}")
        if org.default_team:
            typer.echo(f"Default team: {org.default_team}")

    @auth_app.command("validate")
    def auth_validate() -> None:
        """Check the configuration for problems."""
        try:
            doc = get_store().load()
        except LinError as e:
            raise fail(e) from e

        issues = validate_document(doc)
        has_errors = any(i.severity == "error" for i in issues)
        if is_json_output():
            echo_json(
                {
                    "valid": not has_errors,
                    "issues": [
                        {"severity": i.severity, "field": i.field, "message": i.message}
                        for i in issues
                    ],
                }
            )
        elif not issues:
            typer.echo("✓ Configuration is valid")
        else:
            for issue in issues:
                typer.echo(f"{issue.severity}: {issue.field}: {issue.message}")
        if has_errors:
            raise typer.Exit(1)

    @app.command("sync")
    def sync(ctx: typer.Context) -> None:
        """Refresh teams, workflow states, labels and estimates."""
        try:
            context = get_context(ctx)
            try:
                result = context.syncer().sync()
            finally:
                context.close()
        except LinError as e:
            raise fail(e) from e

        _report_sync(result, "Synced")
