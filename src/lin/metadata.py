"""Per-organization team metadata stored in the configuration document.

Teams, workflow states, labels and estimate scales are fetched wholesale
by a sync and read without any expiry check; only another sync changes
them.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from lin.errors import ConfigError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from lin.config import Store
    from lin.models import Organization, Team

logger = logging.getLogger(__name__)


class MetadataCache:
    """View over one organization's cached teams."""

    def __init__(self, store: Store, organization: str) -> None:
        self.store = store
        self.organization = organization
        self._snapshot: Organization | None = None

    def _org(self) -> Organization:
        if self._snapshot is None:
            org = self.store.load().organizations.get(self.organization)
            if org is None:
                msg = (
                    f"Organization '{self.organization}' not found in "
                    "configuration. Re-authenticate with 'lin auth add'."
                )
                raise ConfigError(msg)
            self._snapshot = org
        return self._snapshot

    def invalidate(self) -> None:
        """Drop the loaded snapshot so the next read goes to the store."""
        self._snapshot = None

    def teams(self) -> dict[str, Team]:
        """All cached teams keyed by team key."""
        return self._org().teams

    @property
    def last_sync(self) -> str | None:
        return self._org().last_sync

    @property
    def default_team(self) -> str | None:
        return self._org().default_team

    def set_default_team(self, team: str | None) -> None:
        """Persist the team used when a command is given no ``--team``.

        Raises:
            ConfigError: If the organization no longer exists or the
                document cannot be written
        """
        doc = self.store.load()
        org = doc.organizations.get(self.organization)
        if org is None:
            msg = f"Organization '{self.organization}' not found in configuration"
            raise ConfigError(msg)
        org.default_team = team
        self.store.save(doc)
        self._snapshot = org

    def team_keys(self) -> list[str]:
        return sorted(self.teams())

    def find_team(self, token: str) -> Team | None:
        """Find a team by key (case-insensitive) or by opaque id."""
        wanted = token.lower()
        for key, team in self.teams().items():
            if key.lower() == wanted:
                return team
        for team in self.teams().values():
            if team.id == token:
                return team
        return None

    def replace_teams(
        self,
        teams: Iterable[Team],
        synced_at: datetime | None = None,
    ) -> None:
        """Replace the organization's whole team set in one save.

        Raises:
            ConfigError: If the organization no longer exists or the
                document cannot be written
        """
        doc = self.store.load()
        org = doc.organizations.get(self.organization)
        if org is None:
            msg = f"Organization '{self.organization}' was removed during sync"
            raise ConfigError(msg)

        org.teams = {team.key: team for team in teams}
        org.last_sync = (synced_at or datetime.now(timezone.utc)).isoformat()
        self.store.save(doc)
        logger.debug(
            "Stored %d team(s) for organization %s", len(org.teams), self.organization
        )
        self._snapshot = org
