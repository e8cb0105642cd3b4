"""Refresh an organization's cached team metadata from Linear."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from lin.cache import fingerprint, org_partition
from lin.constants import ESTIMATE_SCALES
from lin.models import EntityType, Label, Team, WorkflowState

if TYPE_CHECKING:
    from lin.cache import TTLCache
    from lin.metadata import MetadataCache

logger = logging.getLogger(__name__)


def teams_cache_key(partition: str) -> str:
    """Cache key for the team list of one cache partition."""
    return fingerprint("team list", partition=partition)


class TeamSource(Protocol):
    """The parts of the Linear API a sync needs."""

    def fetch_teams(self) -> list[dict[str, Any]]: ...

    def fetch_workflow_states(self, team_id: str) -> list[WorkflowState]: ...

    def fetch_labels(self, team_id: str) -> list[Label]: ...


def parse_estimate_scale(estimate_type: str | None) -> dict[str, float]:
    """Map a team's ``issueEstimationType`` to lowercased name -> points.

    Unknown types, ``notUsed`` and None yield an empty scale.
    """
    if not estimate_type:
        return {}
    return {name.lower(): value for name, value in ESTIMATE_SCALES.get(estimate_type, [])}


@dataclass(frozen=True)
class SyncResult:
    """Outcome of a sync, for reporting."""

    organization: str
    teams: list[Team]

    @property
    def team_keys(self) -> list[str]:
        return [t.key for t in self.teams]

    @property
    def state_count(self) -> int:
        return sum(len(t.states) for t in self.teams)


class SyncOrchestrator:
    """Fetches every team in full and replaces the metadata partition."""

    def __init__(
        self,
        source: TeamSource,
        metadata: MetadataCache,
        cache: TTLCache | None = None,
    ) -> None:
        self.source = source
        self.metadata = metadata
        self.cache = cache

    def sync(self) -> SyncResult:
        """Refresh teams, states, labels and estimate scales.

        Everything is fetched before anything is written, so a failure on
        any team leaves the previously cached set untouched.

        Raises:
            RemoteError: If any fetch fails
            ConfigError: If the refreshed set cannot be saved
        """
        org = self.metadata.organization
        logger.info("Syncing teams for organization %s", org)

        raw_teams = self.source.fetch_teams()
        teams: list[Team] = []
        for raw in raw_teams:
            logger.debug("Fetching workflow states and labels for team %s", raw["key"])
            teams.append(
                Team(
                    id=raw["id"],
                    key=raw["key"],
                    name=raw.get("name") or raw["key"],
                    states=self.source.fetch_workflow_states(raw["id"]),
                    labels=self.source.fetch_labels(raw["id"]),
                    estimates=parse_estimate_scale(raw.get("issueEstimationType")),
                )
            )

        self.metadata.replace_teams(teams)
        if self.cache is not None:
            self.cache.put(
                EntityType.TEAMS, teams_cache_key(org_partition(org)), raw_teams
            )

        logger.debug("Synced %d team(s) for %s", len(teams), org)
        return SyncResult(organization=org, teams=teams)
