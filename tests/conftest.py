"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

from lin.cache import TTLCache
from lin.config import MemoryStore, add_organization
from lin.errors import RemoteError
from lin.metadata import MetadataCache
from lin.models import Document, Label, StateCategory, Team, WorkflowState

ENG_ID = "11111111-1111-1111-1111-111111111111"
DES_ID = "22222222-2222-2222-2222-222222222222"
TODO_ID = "aaaaaaaa-0000-0000-0000-000000000001"
DOING_ID = "aaaaaaaa-0000-0000-0000-000000000002"
DONE_ID = "aaaaaaaa-0000-0000-0000-000000000003"
BUG_ID = "bbbbbbbb-0000-0000-0000-000000000001"
USER_ID = "cccccccc-0000-0000-0000-000000000001"


class Clock:
    """Controllable time source for TTL tests."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_team(
    key: str = "ENG",
    team_id: str = ENG_ID,
    estimates: dict[str, float] | None = None,
) -> Team:
    """Build a team with Todo / In Progress / Done states and a Bug label."""
    return Team(
        id=team_id,
        key=key,
        name=f"{key.title()} Team",
        states=[
            WorkflowState(TODO_ID, "Todo", StateCategory.UNSTARTED),
            WorkflowState(DOING_ID, "In Progress", StateCategory.STARTED),
            WorkflowState(DONE_ID, "Done", StateCategory.COMPLETED),
        ],
        labels=[Label(BUG_ID, "Bug", "#ff0000")],
        estimates=estimates if estimates is not None else {},
    )


@dataclass
class FakeLinear:
    """In-memory stand-in for LinearClient.

    ``teams`` maps team id to the Team returned by sync-related fetches.
    Set ``fail_states_for`` to a team id to make its state fetch fail.
    """

    teams: dict[str, Team] = field(default_factory=dict)
    estimate_types: dict[str, str] = field(default_factory=dict)
    user_id: str = USER_ID
    fail_states_for: str | None = None
    issues: list[dict[str, Any]] = field(default_factory=list)
    calls: list[str] = field(default_factory=list)
    created: list[dict[str, Any]] = field(default_factory=list)
    updated: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    closed: bool = False

    def add(self, team: Team, estimate_type: str | None = None) -> None:
        self.teams[team.id] = team
        if estimate_type:
            self.estimate_types[team.id] = estimate_type

    def fetch_viewer(self) -> dict[str, Any]:
        self.calls.append("viewer")
        return {"id": self.user_id, "name": "Test User"}

    def fetch_current_user(self) -> str:
        return self.fetch_viewer()["id"]

    def fetch_teams(self) -> list[dict[str, Any]]:
        self.calls.append("teams")
        return [
            {
                "id": t.id,
                "key": t.key,
                "name": t.name,
                "issueEstimationType": self.estimate_types.get(t.id),
            }
            for t in self.teams.values()
        ]

    def fetch_workflow_states(self, team_id: str) -> list[WorkflowState]:
        self.calls.append(f"states:{team_id}")
        if team_id == self.fail_states_for:
            msg = "HTTP 500 Internal Server Error"
            raise RemoteError(msg)
        return list(self.teams[team_id].states)

    def fetch_labels(self, team_id: str) -> list[Label]:
        self.calls.append(f"labels:{team_id}")
        return list(self.teams[team_id].labels)

    def fetch_issues(self, issue_filter: dict[str, Any], first: int) -> list[dict[str, Any]]:
        self.calls.append("issues")
        return self.issues[:first]

    def fetch_issue_team(self, issue_id: str) -> dict[str, Any]:
        self.calls.append(f"issue_team:{issue_id}")
        team = next(iter(self.teams.values()))
        return {"id": team.id, "key": team.key}

    def create_issue(self, issue_input: dict[str, Any]) -> dict[str, Any]:
        self.created.append(issue_input)
        return {"id": "issue-1", "identifier": "ENG-1", "title": issue_input["title"]}

    def update_issue(self, issue_id: str, issue_input: dict[str, Any]) -> dict[str, Any]:
        self.updated.append((issue_id, issue_input))
        return {"id": issue_id, "identifier": "ENG-1", "title": "Updated"}

    def close(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point config and cache directories at a temp dir; drop env tokens."""
    monkeypatch.setenv("LIN_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.setenv("LIN_CACHE_DIR", str(tmp_path / "cache"))
    monkeypatch.delenv("LINEAR_API_TOKEN", raising=False)
    return tmp_path


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def cache(tmp_path: Path, clock: Clock) -> TTLCache:
    return TTLCache(tmp_path / "cache" / "cache.json", clock=clock)


@pytest.fixture
def store() -> MemoryStore:
    """Memory store with an active 'acme' organization and no teams."""
    doc = Document()
    add_organization(doc, "acme", "lin_api_test_token_123456")
    return MemoryStore(doc)


@pytest.fixture
def metadata(store: MemoryStore) -> MetadataCache:
    return MetadataCache(store, "acme")


@pytest.fixture
def fake_linear() -> FakeLinear:
    fake = FakeLinear()
    fake.add(make_team(), "tShirt")
    return fake
