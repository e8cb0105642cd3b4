"""Data models for the lin configuration and cache documents."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from lin.constants import SCHEMA_VERSION, TTL_SECONDS


class StateCategory(str, Enum):
    """Workflow state category as reported by Linear."""

    BACKLOG = "backlog"
    UNSTARTED = "unstarted"
    STARTED = "started"
    COMPLETED = "completed"
    CANCELED = "canceled"


class EntityType(str, Enum):
    """Type tag for TTL cache entries."""

    TEAMS = "teams"
    USERS = "users"
    WORKFLOW_STATES = "workflow-states"
    LABELS = "labels"
    PROJECTS = "projects"
    CYCLES = "cycles"
    DOCUMENTS = "documents"
    ISSUES = "issues"
    COMMENTS = "comments"
    SEARCH = "search"

    @property
    def ttl(self) -> int:
        """Seconds an entry of this type stays valid."""
        return TTL_SECONDS[self.value]


@dataclass(frozen=True)
class WorkflowState:
    """A workflow state of a team."""

    id: str
    name: str
    category: StateCategory = StateCategory.UNSTARTED


@dataclass(frozen=True)
class Label:
    """An issue label available to a team."""

    id: str
    name: str
    color: str | None = None


@dataclass
class Team:
    """Everything cached about one team, replaced wholesale on sync."""

    id: str
    key: str
    name: str
    states: list[WorkflowState] = field(default_factory=list[WorkflowState])
    labels: list[Label] = field(default_factory=list[Label])
    # Lowercased friendly name -> points
    estimates: dict[str, float] = field(default_factory=dict[str, float])

    def find_state(self, name: str) -> WorkflowState | None:
        """Return the first state whose name matches case-insensitively."""
        wanted = name.lower()
        for state in self.states:
            if state.name.lower() == wanted:
                return state
        return None

    def find_label(self, name: str) -> Label | None:
        """Return the first label whose name matches case-insensitively."""
        wanted = name.lower()
        for label in self.labels:
            if label.name.lower() == wanted:
                return label
        return None

    def state_names(self) -> list[str]:
        """Names of all workflow states in upstream order."""
        return [s.name for s in self.states]


@dataclass
class Organization:
    """An authenticated organization profile and its metadata partition."""

    name: str
    token: str
    teams: dict[str, Team] = field(default_factory=dict[str, Team])
    last_sync: str | None = None
    # Team used when a command is given no --team
    default_team: str | None = None


@dataclass
class Document:
    """The persisted configuration document."""

    active_organization: str | None = None
    organizations: dict[str, Organization] = field(
        default_factory=dict[str, Organization]
    )
    schema_version: int = SCHEMA_VERSION

    def active(self) -> Organization | None:
        """Return the active organization profile, if any."""
        if self.active_organization is None:
            return None
        return self.organizations.get(self.active_organization)


@dataclass
class CacheEntry:
    """One cached API response."""

    entity: EntityType
    fingerprint: str
    payload: Any
    fetched_at: float

    def age(self, now: float) -> float:
        """Seconds since the entry was fetched."""
        return now - self.fetched_at

    def is_valid(self, now: float) -> bool:
        """True while the entry is younger than its type's TTL."""
        return self.age(now) < self.entity.ttl


def team_to_dict(team: Team) -> dict[str, Any]:
    """Serialize a team to a TOML/JSON-compatible dictionary."""
    return {
        "id": team.id,
        "key": team.key,
        "name": team.name,
        "states": [
            {"id": s.id, "name": s.name, "category": s.category.value}
            for s in team.states
        ],
        "labels": [
            {"id": lbl.id, "name": lbl.name, **({"color": lbl.color} if lbl.color else {})}
            for lbl in team.labels
        ],
        "estimates": dict(team.estimates),
    }


def dict_to_team(data: dict[str, Any]) -> Team:
    """Deserialize a team, lowercasing estimate names.

    Raises:
        KeyError: If a required field is missing.
        ValueError: If a state category is unknown.
    """
    return Team(
        id=data["id"],
        key=data["key"],
        name=data.get("name", data["key"]),
        states=[
            WorkflowState(
                id=s["id"],
                name=s["name"],
                category=StateCategory(s.get("category", "unstarted")),
            )
            for s in data.get("states", [])
        ],
        labels=[
            Label(id=lbl["id"], name=lbl["name"], color=lbl.get("color"))
            for lbl in data.get("labels", [])
        ],
        estimates={
            str(name).lower(): float(value)
            for name, value in data.get("estimates", {}).items()
        },
    )


def document_to_dict(doc: Document) -> dict[str, Any]:
    """Serialize the configuration document.

    TOML has no null, so unset optional fields are omitted.
    """
    orgs: dict[str, Any] = {}
    for name, org in doc.organizations.items():
        entry: dict[str, Any] = {
            "token": org.token,
            "teams": {key: team_to_dict(team) for key, team in org.teams.items()},
        }
        if org.last_sync:
            entry["last_sync"] = org.last_sync
        if org.default_team:
            entry["default_team"] = org.default_team
        orgs[name] = entry

    data: dict[str, Any] = {"schema_version": doc.schema_version}
    if doc.active_organization is not None:
        data["active_organization"] = doc.active_organization
    data["organizations"] = orgs
    return data


def dict_to_document(data: dict[str, Any]) -> Document:
    """Deserialize the configuration document.

    Raises:
        KeyError: If a required field is missing.
        ValueError: If a field has an invalid value.
        TypeError: If a field has the wrong shape.
    """
    orgs: dict[str, Organization] = {}
    for name, entry in data.get("organizations", {}).items():
        orgs[name] = Organization(
            name=name,
            token=entry["token"],
            teams={
                key: dict_to_team(team) for key, team in entry.get("teams", {}).items()
            },
            last_sync=entry.get("last_sync"),
            default_team=entry.get("default_team"),
        )
    return Document(
        active_organization=data.get("active_organization"),
        organizations=orgs,
        schema_version=int(data.get("schema_version", SCHEMA_VERSION)),
    )


def entry_to_dict(entry: CacheEntry) -> dict[str, Any]:
    """Serialize a cache entry."""
    return {
        "type": entry.entity.value,
        "fingerprint": entry.fingerprint,
        "payload": entry.payload,
        "fetched_at": entry.fetched_at,
    }


def dict_to_entry(data: dict[str, Any]) -> CacheEntry:
    """Deserialize a cache entry.

    Raises:
        KeyError: If a required field is missing.
        ValueError: If the type tag is unknown.
    """
    return CacheEntry(
        entity=EntityType(data["type"]),
        fingerprint=data["fingerprint"],
        payload=data["payload"],
        fetched_at=float(data["fetched_at"]),
    )
