"""Issue commands for lin CLI."""

from __future__ import annotations

from typing import Any

import typer

from lin.constants import DEFAULT_ISSUE_LIMIT, is_uuid
from lin.errors import (
    ConfigError,
    InvalidEstimate,
    LinError,
    UnknownLabel,
    UnknownState,
)
from lin.models import EntityType
from lin.resolvers import ResolvedTeam, Resolver, parse_number

from ._formatting import format_issue_table
from ._helpers import SortedGroup, fail, get_context
from ._json_state import echo_error, echo_json, is_json_output

issue_app = typer.Typer(
    help="List, create and update issues.",
    no_args_is_help=True,
    cls=SortedGroup,
)


def _require_team(team: ResolvedTeam | None, option: str) -> ResolvedTeam:
    if team is None:
        msg = (
            f"{option} requires --team or a default team ('lin team switch <key>')"
        )
        raise ConfigError(msg)
    return team


def check_offline_names(
    state: str | None, estimate: str | None, labels: list[str] | None
) -> None:
    """Reject names that cannot resolve without a stored organization.

    Raises:
        ResolutionError: On the first non-identifier state or label, or
            non-numeric estimate
    """
    if state is not None and not is_uuid(state.strip()):
        raise UnknownState(state)
    if estimate is not None and parse_number(estimate) is None:
        raise InvalidEstimate(estimate)
    for lbl in labels or ():
        if not is_uuid(lbl.strip()):
            raise UnknownLabel(lbl)


def build_issue_input(
    resolver: Resolver,
    *,
    team: ResolvedTeam | None,
    state: str | None = None,
    priority: str | None = None,
    estimate: str | None = None,
    assignee: str | None = None,
    labels: list[str] | None = None,
) -> dict[str, Any]:
    """Resolve friendly names into an ``IssueCreateInput``/``IssueUpdateInput``.

    Raises:
        ResolutionError: If any name cannot be resolved
        ConfigError: If a team-scoped option is used without a team
    """
    fields: dict[str, Any] = {}
    if state is not None:
        fields["stateId"] = resolver.resolve_state(state, _require_team(team, "--state"))
    if priority is not None:
        fields["priority"] = resolver.resolve_priority(priority)
    if estimate is not None:
        fields["estimate"] = resolver.resolve_estimate(estimate, team)
    if assignee is not None:
        fields["assigneeId"] = resolver.resolve_assignee(assignee)
    if labels:
        scoped = _require_team(team, "--label")
        fields["labelIds"] = [resolver.resolve_label(lbl, scoped) for lbl in labels]
    return fields


def _echo_issue(issue: dict[str, Any], verb: str) -> None:
    if is_json_output():
        echo_json(issue)
    else:
        typer.echo(f"✓ {verb} {issue.get('identifier', issue['id'])}: {issue['title']}")


def register(app: typer.Typer) -> None:
    """Register issue commands."""
    app.add_typer(issue_app, name="issue")

    @issue_app.command("list")
    def issue_list(
        ctx: typer.Context,
        team: str | None = typer.Option(
            None, "--team", "-t", help="Team key or ID (default: current team)"
        ),
        state: str | None = typer.Option(
            None, "--state", "-s", help="Workflow state name or ID (needs a team)"
        ),
        assignee: str | None = typer.Option(
            None, "--assignee", "-a", help="'me' or a user ID"
        ),
        priority: str | None = typer.Option(
            None, "--priority", "-p", help="0-4 or none/urgent/high/normal/low"
        ),
        limit: int = typer.Option(
            DEFAULT_ISSUE_LIMIT, "--limit", "-n", help="Maximum issues to show"
        ),
    ) -> None:
        """List issues, served from the response cache when fresh."""
        try:
            context = get_context(ctx)
            try:
                resolver = context.resolver()
                resolved_team = (
                    resolver.resolve_team(team) if team else resolver.default_team()
                )

                params: dict[str, Any] = {"limit": limit}
                issue_filter: dict[str, Any] = {}
                if resolved_team is not None:
                    params["team"] = resolved_team.id
                    issue_filter["team"] = {"id": {"eq": resolved_team.id}}
                if state is not None:
                    state_id = resolver.resolve_state(
                        state, _require_team(resolved_team, "--state")
                    )
                    params["state"] = state_id
                    issue_filter["state"] = {"id": {"eq": state_id}}
                if assignee is not None:
                    user_id = resolver.resolve_assignee(assignee)
                    params["assignee"] = user_id
                    issue_filter["assignee"] = {"id": {"eq": user_id}}
                if priority is not None:
                    level = resolver.resolve_priority(priority)
                    params["priority"] = level
                    issue_filter["priority"] = {"eq": level}

                issues = context.cache.cached(
                    EntityType.ISSUES,
                    context.cache_key("issue list", params),
                    lambda: context.client.fetch_issues(issue_filter, limit),
                )
            finally:
                context.close()
        except LinError as e:
            raise fail(e) from e

        if is_json_output():
            echo_json(issues)
        elif not issues:
            typer.echo("No issues found")
        else:
            typer.echo(format_issue_table(issues))

    @issue_app.command("create")
    def issue_create(
        ctx: typer.Context,
        title: str = typer.Argument(..., help="Issue title"),
        team: str | None = typer.Option(
            None, "--team", "-t", help="Team key or ID (default: current team)"
        ),
        state: str | None = typer.Option(None, "--state", "-s", help="Workflow state"),
        priority: str | None = typer.Option(None, "--priority", "-p", help="Priority"),
        estimate: str | None = typer.Option(
            None, "--estimate", "-e", help="Number or estimate name (e.g. M)"
        ),
        assignee: str | None = typer.Option(
            None, "--assignee", "-a", help="'me' or a user ID"
        ),
        label: list[str] | None = typer.Option(
            None, "--label", "-l", help="Label name or ID (repeatable)"
        ),
        description: str | None = typer.Option(
            None, "--description", "-d", help="Markdown description"
        ),
    ) -> None:
        """Create an issue."""
        try:
            context = get_context(ctx)
            try:
                resolver = context.resolver()
                resolved_team = resolver.resolve_team_or_default(team)
                issue_input = {
                    "title": title,
                    "teamId": resolved_team.id,
                    **build_issue_input(
                        resolver,
                        team=resolved_team,
                        state=state,
                        priority=priority,
                        estimate=estimate,
                        assignee=assignee,
                        labels=label,
                    ),
                }
                if description is not None:
                    issue_input["description"] = description
                issue = context.client.create_issue(issue_input)
            finally:
                context.close()
        except LinError as e:
            raise fail(e) from e

        _echo_issue(issue, "Created")

    @issue_app.command("update")
    def issue_update(
        ctx: typer.Context,
        issue_id: str = typer.Argument(..., help="Issue ID or identifier (ENG-123)"),
        team: str | None = typer.Option(
            None, "--team", "-t", help="Team for name lookups (default: issue's team)"
        ),
        title: str | None = typer.Option(None, "--title", help="New title"),
        state: str | None = typer.Option(None, "--state", "-s", help="Workflow state"),
        priority: str | None = typer.Option(None, "--priority", "-p", help="Priority"),
        estimate: str | None = typer.Option(
            None, "--estimate", "-e", help="Number or estimate name"
        ),
        assignee: str | None = typer.Option(
            None, "--assignee", "-a", help="'me' or a user ID"
        ),
        label: list[str] | None = typer.Option(
            None, "--label", "-l", help="Replace labels (repeatable)"
        ),
    ) -> None:
        """Update an issue."""
        if all(v is None for v in (title, state, priority, estimate, assignee)) and not label:
            echo_error("Nothing to update")
            raise typer.Exit(1)

        try:
            context = get_context(ctx)
            try:
                resolver = context.resolver()
                resolved_team: ResolvedTeam | None = None
                if team is not None:
                    resolved_team = resolver.resolve_team(team)
                elif state is not None or estimate is not None or label:
                    if resolver.metadata is None:
                        check_offline_names(state, estimate, label)
                    owner = context.client.fetch_issue_team(issue_id)
                    resolved_team = ResolvedTeam(id=owner["id"], key=owner["key"])

                issue_input = build_issue_input(
                    resolver,
                    team=resolved_team,
                    state=state,
                    priority=priority,
                    estimate=estimate,
                    assignee=assignee,
                    labels=label,
                )
                if title is not None:
                    issue_input["title"] = title
                issue = context.client.update_issue(issue_id, issue_input)
            finally:
                context.close()
        except LinError as e:
            raise fail(e) from e

        _echo_issue(issue, "Updated")
