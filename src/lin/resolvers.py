"""Turn user-supplied names into the identifiers the Linear API expects.

Each domain tries, in order: a cached friendly name, a raw identifier,
a numeric value, and finally a ResolutionError listing the valid
alternatives.  Team and state misses trigger one sync and one retry.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from lin.constants import PRIORITY_NAMES, is_uuid
from lin.errors import (
    ConfigError,
    InvalidEstimate,
    InvalidPriority,
    RemoteError,
    UnknownAssignee,
    UnknownEstimate,
    UnknownLabel,
    UnknownState,
    UnknownTeam,
)

if TYPE_CHECKING:
    from lin.metadata import MetadataCache
    from lin.models import Team

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ResolvedTeam:
    """A team identifier, with its key when the team is cached."""

    id: str
    key: str | None = None

    @property
    def label(self) -> str:
        return self.key or self.id


def parse_number(token: str) -> float | None:
    """Parse a finite float, or return None."""
    try:
        value = float(token.strip())
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def resolve_priority(token: str) -> int:
    """Resolve 0-4 or a priority name to Linear's priority integer.

    Raises:
        InvalidPriority: If the token is out of range or an unknown name
    """
    stripped = token.strip()
    try:
        value = int(stripped)
    except ValueError:
        value = None

    if value is not None:
        if 0 <= value <= 4:
            return value
        raise InvalidPriority(token, available=PRIORITY_NAMES)

    named = PRIORITY_NAMES.get(stripped.lower())
    if named is None:
        raise InvalidPriority(token, available=PRIORITY_NAMES)
    return named


class Resolver:
    """Name resolution against the metadata cache.

    Args:
        metadata: The active organization's metadata, or None when the
            token came from the environment (raw ids and numbers only)
        refresh: Re-syncs the metadata; called at most once per resolver
        current_user: Returns the authenticated user's id for ``me``
    """

    def __init__(
        self,
        metadata: MetadataCache | None,
        refresh: Callable[[], object] | None = None,
        current_user: Callable[[], str] | None = None,
    ) -> None:
        self.metadata = metadata
        self._refresh = refresh
        self._current_user = current_user
        self._refreshed = False

    def _refresh_once(self) -> bool:
        """Run the sync if it has not run yet; return True if it did."""
        if self.metadata is None or self._refresh is None or self._refreshed:
            return False
        self._refreshed = True
        logger.info("Name not found in cache, syncing teams and retrying")
        try:
            self._refresh()
        except (RemoteError, ConfigError) as e:
            logger.warning("Sync during name resolution failed: %s", e)
            return False
        self.metadata.invalidate()
        return True

    def _with_refresh(self, lookup: Callable[[], T]) -> T:
        """Run *lookup*; on a miss, sync once and run it exactly once more."""
        try:
            return lookup()
        except (UnknownTeam, UnknownState):
            if not self._refresh_once():
                raise
        return lookup()

    def _cached_team(self, team: ResolvedTeam) -> Team | None:
        if self.metadata is None:
            return None
        return self.metadata.find_team(team.key or team.id)

    def _lookup_team(self, token: str) -> ResolvedTeam:
        if self.metadata is not None:
            cached = self.metadata.find_team(token)
            if cached is not None:
                return ResolvedTeam(id=cached.id, key=cached.key)
        if is_uuid(token):
            return ResolvedTeam(id=token)
        if self.metadata is None:
            raise UnknownTeam(token, offline=True)
        raise UnknownTeam(token, available=self.metadata.team_keys())

    def resolve_team(self, token: str) -> ResolvedTeam:
        """Resolve a team key (case-insensitive) or raw team id.

        Raises:
            UnknownTeam: If no cached key matches, even after a sync
        """
        return self._with_refresh(lambda: self._lookup_team(token.strip()))

    def default_team(self) -> ResolvedTeam | None:
        """Resolve the organization's default team, if one is set."""
        if self.metadata is None or self.metadata.default_team is None:
            return None
        return self.resolve_team(self.metadata.default_team)

    def resolve_team_or_default(self, token: str | None) -> ResolvedTeam:
        """Resolve *token*, falling back to the default team when it is None.

        Raises:
            ConfigError: If no team was given and no default team is set
            UnknownTeam: If the team cannot be resolved
        """
        if token is not None:
            return self.resolve_team(token)
        team = self.default_team()
        if team is None:
            msg = (
                "No team specified. Use --team or set a default team with "
                "'lin team switch <key>'"
            )
            raise ConfigError(msg)
        return team

    def _lookup_state(self, token: str, team: ResolvedTeam) -> str:
        cached = self._cached_team(team)
        if cached is not None:
            state = cached.find_state(token)
            if state is not None:
                return state.id
        if is_uuid(token):
            return token
        available = cached.state_names() if cached is not None else ()
        raise UnknownState(token, team=team.label, available=available)

    def resolve_state(self, token: str, team: ResolvedTeam) -> str:
        """Resolve a workflow state name (case-insensitive) or raw state id.

        Duplicate names after lowercasing resolve to the first listed.

        Raises:
            UnknownState: If the team has no such state, even after a sync
        """
        return self._with_refresh(lambda: self._lookup_state(token.strip(), team))

    def resolve_priority(self, token: str) -> int:
        return resolve_priority(token)

    def resolve_estimate(self, token: str, team: ResolvedTeam | None) -> float:
        """Resolve a numeric estimate or a name on the team's estimate scale.

        Numbers always win, so a scale entry named "5" is never consulted
        for the token "5".

        Raises:
            InvalidEstimate: If the token is not numeric and names cannot
                be looked up (no cache or no team)
            UnknownEstimate: If the team's scale has no such name
        """
        number = parse_number(token)
        if number is not None:
            return number
        if self.metadata is None or team is None:
            raise InvalidEstimate(token)

        cached = self._cached_team(team)
        scale = cached.estimates if cached is not None else {}
        value = scale.get(token.strip().lower())
        if value is None:
            raise UnknownEstimate(token, team=team.label, available=scale)
        return value

    def resolve_label(self, token: str, team: ResolvedTeam) -> str:
        """Resolve a label name (case-insensitive) or raw label id.

        Raises:
            UnknownLabel: If the team has no such label
        """
        token = token.strip()
        cached = self._cached_team(team)
        if cached is not None:
            label = cached.find_label(token)
            if label is not None:
                return label.id
        if is_uuid(token):
            return token
        available = [lbl.name for lbl in cached.labels] if cached is not None else ()
        raise UnknownLabel(token, team=team.label, available=available)

    def resolve_assignee(self, token: str) -> str:
        """Resolve ``me`` to the current user's id; pass anything else through.

        Raises:
            UnknownAssignee: If the token is empty or ``me`` cannot be resolved
        """
        stripped = token.strip()
        if not stripped:
            raise UnknownAssignee(token)
        if stripped.lower() == "me":
            if self._current_user is None:
                raise UnknownAssignee(token)
            return self._current_user()
        return stripped
