"""GraphQL client for the Linear API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from lin.constants import LINEAR_API_URL, REQUEST_TIMEOUT, TEAMS_PAGE_SIZE
from lin.errors import RemoteError
from lin.models import Label, StateCategory, WorkflowState

logger = logging.getLogger(__name__)

VIEWER_QUERY = """
query Viewer {
    viewer { id name email displayName active }
}
"""

TEAMS_QUERY = """
query Teams($first: Int) {
    teams(first: $first) {
        nodes { id key name issueEstimationType }
    }
}
"""

WORKFLOW_STATES_QUERY = """
query WorkflowStates($id: String!) {
    team(id: $id) {
        id
        states { nodes { id name type position } }
    }
}
"""

LABELS_QUERY = """
query TeamLabels($id: String!) {
    team(id: $id) {
        id
        labels { nodes { id name color } }
    }
}
"""

ISSUES_QUERY = """
query Issues($first: Int, $filter: IssueFilter) {
    issues(first: $first, filter: $filter) {
        nodes {
            id identifier title priority estimate updatedAt
            state { id name type }
            team { id key }
            assignee { id name }
        }
    }
}
"""

ISSUE_TEAM_QUERY = """
query IssueTeam($id: String!) {
    issue(id: $id) { id team { id key } }
}
"""

ISSUE_CREATE_MUTATION = """
mutation IssueCreate($input: IssueCreateInput!) {
    issueCreate(input: $input) {
        success
        issue { id identifier title priority estimate state { id name } team { id key } }
    }
}
"""

ISSUE_UPDATE_MUTATION = """
mutation IssueUpdate($id: String!, $input: IssueUpdateInput!) {
    issueUpdate(id: $id, input: $input) {
        success
        issue { id identifier title priority estimate state { id name } team { id key } }
    }
}
"""


def _category(raw: str | None) -> StateCategory:
    try:
        return StateCategory(raw or "unstarted")
    except ValueError:
        # Linear also has "triage"; treat anything else as not yet started
        return StateCategory.UNSTARTED


class LinearClient:
    """Blocking GraphQL client authenticated with a personal API token."""

    def __init__(
        self,
        token: str,
        url: str = LINEAR_API_URL,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.url = url
        self._client = httpx.Client(
            headers={
                "Authorization": token,
                "Content-Type": "application/json",
            },
            timeout=REQUEST_TIMEOUT,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> LinearClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def query(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Run a GraphQL operation and return its ``data`` object.

        Raises:
            RemoteError: On transport failure, non-2xx status, GraphQL
                errors, or a response without data
        """
        try:
            response = self._client.post(
                self.url, json={"query": query, "variables": variables or {}}
            )
        except httpx.HTTPError as e:
            msg = f"Request failed: {e}"
            raise RemoteError(msg) from e

        if response.status_code == 429:
            msg = "Rate limited by the Linear API; try again shortly"
            raise RemoteError(msg)
        if response.is_error:
            msg = (
                f"HTTP {response.status_code} {response.reason_phrase}: "
                f"{response.text}"
            )
            raise RemoteError(msg)

        try:
            body = response.json()
        except ValueError as e:
            msg = f"Failed to parse response: {e}"
            raise RemoteError(msg) from e

        errors = body.get("errors")
        if errors:
            messages = "; ".join(str(err.get("message", err)) for err in errors)
            msg = f"GraphQL errors: {messages}"
            raise RemoteError(msg)

        data = body.get("data")
        if data is None:
            msg = "GraphQL response contained no data"
            raise RemoteError(msg)
        return data

    def fetch_viewer(self) -> dict[str, Any]:
        """Return the authenticated user."""
        return self.query(VIEWER_QUERY)["viewer"]

    def fetch_current_user(self) -> str:
        """Return the authenticated user's id."""
        return self.fetch_viewer()["id"]

    def fetch_teams(self) -> list[dict[str, Any]]:
        """Return every team as ``{id, key, name, issueEstimationType}``."""
        data = self.query(TEAMS_QUERY, {"first": TEAMS_PAGE_SIZE})
        return data["teams"]["nodes"]

    def fetch_workflow_states(self, team_id: str) -> list[WorkflowState]:
        """Return a team's workflow states in board order."""
        data = self.query(WORKFLOW_STATES_QUERY, {"id": team_id})
        nodes = sorted(
            data["team"]["states"]["nodes"],
            key=lambda n: n.get("position") or 0,
        )
        return [
            WorkflowState(id=n["id"], name=n["name"], category=_category(n.get("type")))
            for n in nodes
        ]

    def fetch_labels(self, team_id: str) -> list[Label]:
        """Return the labels available to a team."""
        data = self.query(LABELS_QUERY, {"id": team_id})
        return [
            Label(id=n["id"], name=n["name"], color=n.get("color"))
            for n in data["team"]["labels"]["nodes"]
        ]

    def fetch_issues(
        self,
        issue_filter: dict[str, Any],
        first: int,
    ) -> list[dict[str, Any]]:
        """Return issues matching a GraphQL ``IssueFilter``."""
        data = self.query(ISSUES_QUERY, {"first": first, "filter": issue_filter})
        return data["issues"]["nodes"]

    def fetch_issue_team(self, issue_id: str) -> dict[str, Any]:
        """Return ``{id, key}`` of the team an issue belongs to."""
        return self.query(ISSUE_TEAM_QUERY, {"id": issue_id})["issue"]["team"]

    def create_issue(self, issue_input: dict[str, Any]) -> dict[str, Any]:
        """Create an issue and return it."""
        result = self.query(ISSUE_CREATE_MUTATION, {"input": issue_input})["issueCreate"]
        if not result.get("success"):
            msg = "Issue creation was not successful"
            raise RemoteError(msg)
        return result["issue"]

    def update_issue(self, issue_id: str, issue_input: dict[str, Any]) -> dict[str, Any]:
        """Update an issue and return it."""
        result = self.query(
            ISSUE_UPDATE_MUTATION, {"id": issue_id, "input": issue_input}
        )["issueUpdate"]
        if not result.get("success"):
            msg = f"Update of issue '{issue_id}' was not successful"
            raise RemoteError(msg)
        return result["issue"]
