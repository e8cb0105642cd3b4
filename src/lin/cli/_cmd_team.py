"""Team and workflow state commands for lin CLI."""

from __future__ import annotations

import typer

from lin.errors import ConfigError, LinError
from lin.models import EntityType, StateCategory, WorkflowState
from lin.sync import teams_cache_key

from ._formatting import format_state_table, format_team_table
from ._helpers import SortedGroup, fail, get_context
from ._json_state import echo_json, is_json_output

team_app = typer.Typer(
    help="List teams and choose the default team.",
    no_args_is_help=True,
    cls=SortedGroup,
)
state_app = typer.Typer(
    help="List workflow states.", no_args_is_help=True, cls=SortedGroup
)


def register(app: typer.Typer) -> None:
    """Register team and state commands."""
    app.add_typer(team_app, name="team")
    app.add_typer(state_app, name="state")

    @team_app.command("list")
    def team_list(ctx: typer.Context) -> None:
        """List all teams in the organization."""
        try:
            context = get_context(ctx)
            try:
                teams = context.cache.cached(
                    EntityType.TEAMS,
                    teams_cache_key(context.partition),
                    context.client.fetch_teams,
                )
            finally:
                context.close()
        except LinError as e:
            raise fail(e) from e

        if is_json_output():
            echo_json(teams)
        elif not teams:
            typer.echo("No teams found")
        else:
            typer.echo(format_team_table(teams))

    @team_app.command("switch")
    def team_switch(
        ctx: typer.Context,
        team: str = typer.Argument(..., help="Team key or ID to use by default"),
    ) -> None:
        """Set the team used when --team is omitted."""
        try:
            context = get_context(ctx)
            try:
                metadata = context.metadata()
                if metadata is None:
                    msg = (
                        "A default team needs a stored organization; the API "
                        "token is coming from the environment."
                    )
                    raise ConfigError(msg)
                resolved = context.resolver().resolve_team(team)
                metadata.set_default_team(resolved.label)
            finally:
                context.close()
        except LinError as e:
            raise fail(e) from e

        if is_json_output():
            echo_json({"team": resolved.label})
        else:
            typer.echo(f"✓ Switched to team '{resolved.label}'")

    @team_app.command("current")
    def team_current(ctx: typer.Context) -> None:
        """Show the default team."""
        try:
            context = get_context(ctx)
            metadata = context.metadata()
            current = metadata.default_team if metadata is not None else None
        except LinError as e:
            raise fail(e) from e

        if is_json_output():
            echo_json({"current_team": current})
        elif current is None:
            typer.echo(
                "No team selected. Use 'lin team switch <key>' to set a default team."
            )
        else:
            typer.echo(f"Current team: {current}")

    @state_app.command("list")
    def state_list(
        ctx: typer.Context,
        team: str | None = typer.Option(
            None, "--team", "-t", help="Team key or ID (default: current team)"
        ),
    ) -> None:
        """List a team's workflow states.

        Served from the synced metadata when the team is cached, otherwise
        fetched and kept in the response cache.
        """
        try:
            context = get_context(ctx)
            try:
                resolved = context.resolver().resolve_team_or_default(team)
                metadata = context.metadata()
                cached = metadata.find_team(resolved.id) if metadata else None
                if cached is not None:
                    states = cached.states
                else:
                    raw = context.cache.cached(
                        EntityType.WORKFLOW_STATES,
                        context.cache_key("state list", {"team": resolved.id}),
                        lambda: [
                            {"id": s.id, "name": s.name, "category": s.category.value}
                            for s in context.client.fetch_workflow_states(resolved.id)
                        ],
                    )
                    states = [
                        WorkflowState(
                            id=s["id"],
                            name=s["name"],
                            category=StateCategory(s["category"]),
                        )
                        for s in raw
                    ]
            finally:
                context.close()
        except LinError as e:
            raise fail(e) from e

        if is_json_output():
            echo_json(
                [
                    {"id": s.id, "name": s.name, "category": s.category.value}
                    for s in states
                ]
            )
        else:
            typer.echo(format_state_table(states))
