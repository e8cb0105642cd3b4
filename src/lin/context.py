"""Per-invocation handle threading configuration through every component."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from lin.api import LinearClient
from lin.cache import TTLCache, env_partition, fingerprint, org_partition
from lin.config import Credential, Store, resolve_credential
from lin.errors import ConfigError
from lin.metadata import MetadataCache
from lin.models import Document, EntityType
from lin.resolvers import Resolver
from lin.sync import SyncOrchestrator

@dataclass
class Context:
    """Everything a command needs, loaded once at startup."""

    store: Store
    cache: TTLCache
    document: Document
    credential: Credential
    client_factory: Callable[[str], Any] = LinearClient
    _client: Any = field(default=None, init=False, repr=False)
    _metadata: MetadataCache | None = field(default=None, init=False, repr=False)

    @classmethod
    def load(
        cls,
        store: Store,
        cache: TTLCache,
        organization: str | None = None,
        client_factory: Callable[[str], Any] = LinearClient,
    ) -> Context:
        """Load the document snapshot and pick the credential.

        Raises:
            ConfigError: If the document is corrupt or no token is available
        """
        document = store.load()
        credential = resolve_credential(document, organization)
        return cls(
            store=store,
            cache=cache,
            document=document,
            credential=credential,
            client_factory=client_factory,
        )

    @property
    def from_env(self) -> bool:
        return self.credential.from_env

    @property
    def partition(self) -> str:
        """Cache partition: the profile name, or a digest of an env token."""
        if self.credential.organization is None:
            return env_partition(self.credential.token)
        return org_partition(self.credential.organization)

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = self.client_factory(self.credential.token)
        return self._client

    def metadata(self) -> MetadataCache | None:
        """The metadata cache, or None in environment-token mode."""
        if self.credential.organization is None:
            return None
        if self._metadata is None:
            self._metadata = MetadataCache(self.store, self.credential.organization)
        return self._metadata

    def syncer(self) -> SyncOrchestrator:
        """Sync orchestrator for the active organization.

        Raises:
            ConfigError: In environment-token mode, which has no metadata
        """
        metadata = self.metadata()
        if metadata is None:
            msg = (
                "Sync needs a stored organization; the API token is coming "
                "from the environment. Run 'lin auth add' first."
            )
            raise ConfigError(msg)
        return SyncOrchestrator(self.client, metadata, self.cache)

    def cache_key(self, command: str, params: dict[str, Any] | None = None) -> str:
        """Fingerprint scoped to the active organization's partition."""
        return fingerprint(command, params, partition=self.partition)

    def current_user(self) -> str:
        """The authenticated user's id, cached as a ``users`` entry."""
        return self.cache.cached(
            EntityType.USERS,
            self.cache_key("viewer"),
            self.client.fetch_current_user,
        )

    def resolver(self) -> Resolver:
        metadata = self.metadata()
        refresh = None
        if metadata is not None:

            def refresh() -> object:
                return self.syncer().sync()

        return Resolver(metadata, refresh=refresh, current_user=self.current_user)

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
