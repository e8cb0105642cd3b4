"""Exception types raised by lin."""

from __future__ import annotations

from collections.abc import Iterable


class LinError(Exception):
    """Base class for all lin errors."""

    kind = "error"


class ConfigError(LinError):
    """The configuration document is missing, corrupt or unwritable."""

    kind = "config"


class CacheError(LinError):
    """Reading or writing the response cache failed.

    Never fatal: the TTL cache catches these and treats them as a miss.
    """

    kind = "cache"


class RemoteError(LinError):
    """The Linear API request failed."""

    kind = "api"


def _sorted_unique(names: Iterable[str]) -> tuple[str, ...]:
    return tuple(sorted(set(names)))


class ResolutionError(LinError):
    """A user-supplied name could not be turned into an API identifier.

    Attributes:
        token: The string the user supplied.
        team: Team key the lookup was scoped to, if any.
        available: Valid alternatives, sorted and deduplicated.
    """

    kind = "resolution"
    domain = "value"

    def __init__(
        self,
        token: str,
        team: str | None = None,
        available: Iterable[str] = (),
    ) -> None:
        self.token = token
        self.team = team
        self.available = _sorted_unique(available)
        super().__init__(self._message())

    def _scope(self) -> str:
        return f" for team '{self.team}'" if self.team else ""

    def _hint(self) -> str:
        if self.available:
            return f" Available {self.domain}s: {', '.join(self.available)}"
        return ""

    def _message(self) -> str:
        return f"{self.domain.capitalize()} '{self.token}' not found{self._scope()}.{self._hint()}"


class UnknownTeam(ResolutionError):
    """No cached team key matches and the token is not a raw identifier."""

    domain = "team"

    def __init__(
        self,
        token: str,
        team: str | None = None,
        available: Iterable[str] = (),
        *,
        offline: bool = False,
    ) -> None:
        # Set before the message is rendered
        self.offline = offline
        super().__init__(token, team=team, available=available)

    def _hint(self) -> str:
        if self.offline:
            return (
                " Team keys need a stored organization: use a team ID or "
                "run 'lin auth add'."
            )
        if self.available:
            return super()._hint()
        return " Run 'lin sync' or 'lin team list' to see available teams."


class UnknownState(ResolutionError):
    """No workflow state of the team matches the token."""

    domain = "state"


class UnknownEstimate(ResolutionError):
    """The token is not a number and not a name on the team's estimate scale."""

    domain = "estimate"

    def _message(self) -> str:
        if not self.available:
            return (
                f"Estimate '{self.token}' is not a number and no estimates are "
                f"configured{self._scope()}. Provide a numeric value."
            )
        return (
            f"Estimate '{self.token}' not found{self._scope()}.{self._hint()}. "
            "You can also use a numeric value directly."
        )


class InvalidEstimate(ResolutionError):
    """A non-numeric estimate was given where only numbers are accepted."""

    domain = "estimate"

    def _message(self) -> str:
        return f"Invalid estimate '{self.token}': must be a numeric value"


class InvalidPriority(ResolutionError):
    """The token is neither 0-4 nor a known priority name."""

    domain = "priority"

    def _message(self) -> str:
        return (
            f"Invalid priority '{self.token}'. Use 0-4 or one of: "
            f"{', '.join(self.available)}"
        )


class UnknownLabel(ResolutionError):
    """No label of the team matches the token."""

    domain = "label"


class UnknownAssignee(ResolutionError):
    """The assignee token is empty or 'me' could not be resolved."""

    domain = "assignee"

    def _message(self) -> str:
        return f"Invalid assignee '{self.token}': use 'me' or a user ID"
