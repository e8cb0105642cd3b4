"""Display and formatting functions for lin CLI."""

from __future__ import annotations

from io import StringIO
from typing import TYPE_CHECKING, Any

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from lin.constants import PRIORITY_COLORS, PRIORITY_LABELS, STATE_COLORS

if TYPE_CHECKING:
    from lin.models import Team, WorkflowState


def _new_table() -> Table:
    return Table(
        show_header=True,
        header_style="bold",
        box=box.ROUNDED,
        pad_edge=False,
        show_edge=False,
    )


def _render(table: Table) -> str:
    string_io = StringIO()
    console = Console(file=string_io, force_terminal=True, width=None)
    console.print(table)
    return string_io.getvalue().rstrip()


def format_priority(priority: int | None) -> str:
    if priority is None:
        return ""
    color = PRIORITY_COLORS.get(priority, "white")
    return f"[{color}]{PRIORITY_LABELS.get(priority, str(priority))}[/]"


def format_issue_table(issues: list[dict[str, Any]]) -> str:
    """Format issues from the API as a table.

    Args:
        issues: Issue nodes as returned by the issues query

    Returns:
        Rendered table, or an empty string for no issues
    """
    if not issues:
        return ""

    table = _new_table()
    table.add_column("ID", no_wrap=True)
    table.add_column("State", no_wrap=True)
    table.add_column("Priority", no_wrap=True)
    table.add_column("Est", no_wrap=True)
    table.add_column("Title", overflow="fold")
    table.add_column("Assignee", no_wrap=True)

    for issue in issues:
        state = issue.get("state") or {}
        color = STATE_COLORS.get(state.get("type", ""), "white")
        estimate = issue.get("estimate")
        assignee = issue.get("assignee") or {}
        table.add_row(
            issue.get("identifier", issue.get("id", "")),
            f"[{color}]{escape(state.get('name', ''))}[/]",
            format_priority(issue.get("priority")),
            "" if estimate is None else f"{estimate:g}",
            escape(issue.get("title", "")),
            escape(assignee.get("name", "")),
        )
    return _render(table)


def format_team_table(teams: list[dict[str, Any]]) -> str:
    """Format team nodes as a Key / Name / ID table."""
    table = _new_table()
    table.add_column("Key", no_wrap=True)
    table.add_column("Name", overflow="fold")
    table.add_column("ID", no_wrap=True)
    for team in sorted(teams, key=lambda t: t["key"]):
        table.add_row(team["key"], escape(team.get("name", "")), team["id"])
    return _render(table)


def format_state_table(states: list[WorkflowState]) -> str:
    table = _new_table()
    table.add_column("Name", no_wrap=True)
    table.add_column("Category", no_wrap=True)
    table.add_column("ID", no_wrap=True)
    for state in states:
        color = STATE_COLORS.get(state.category.value, "white")
        table.add_row(
            escape(state.name), f"[{color}]{state.category.value}[/]", state.id
        )
    return _render(table)


def format_team_summary(team: Team) -> str:
    """One line per team for sync/status output."""
    estimates = ", ".join(team.estimates) if team.estimates else "none"
    return (
        f"  {team.key:<8} {team.name} "
        f"({len(team.states)} states, {len(team.labels)} labels, estimates: {estimates})"
    )
