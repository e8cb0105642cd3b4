"""Response cache with per-entity-type expiration.

All entries live in one JSON document (``<cache dir>/cache.json``).  The
document is loaded as a snapshot and replaced atomically on every write;
there is no cross-process lock, so overlapping writers resolve as last
writer wins.
"""

from __future__ import annotations

import hashlib
import logging
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import orjson

from lin.config import get_cache_dir
from lin.constants import CACHE_FILENAME, SCHEMA_VERSION
from lin.errors import CacheError
from lin.models import CacheEntry, EntityType, dict_to_entry, entry_to_dict
from lin.utils import atomic_write, format_size

logger = logging.getLogger(__name__)

_Key = tuple[EntityType, str]


def org_partition(name: str) -> str:
    """Cache partition of a stored organization profile."""
    return f"org:{name}"


def env_partition(token: str) -> str:
    """Cache partition of a token taken from the environment."""
    digest = hashlib.sha256(token.encode()).hexdigest()[:12]
    return f"env:{digest}"


def fingerprint(
    command: str,
    params: Mapping[str, Any] | None = None,
    partition: str | None = None,
) -> str:
    """Derive a cache key from a command and its *resolved* parameters.

    Each parameter contributes ``name=value`` items (one per element for
    list values); items are lowercased, deduplicated and sorted, so
    ``state=Done`` and ``state=done`` share a slot while an extra filter
    yields a distinct one.  ``None`` values are skipped.  The partition is
    hashed verbatim, so profiles differing only in case stay apart.
    """
    items: set[str] = set()
    for name, value in (params or {}).items():
        if value is None:
            continue
        values: Iterable[Any] = (
            value if isinstance(value, (list, tuple, set, frozenset)) else [value]
        )
        for v in values:
            items.add(f"{name}={v}".lower())

    identity = orjson.dumps([command.lower(), sorted(items), partition])
    digest = hashlib.sha256(identity).hexdigest()[:16]
    return f"{command.lower()}:{digest}"


@dataclass(frozen=True)
class CacheStats:
    """Summary of the cache contents."""

    total_entries: int = 0
    expired_entries: int = 0
    size_bytes: int = 0

    @property
    def valid_entries(self) -> int:
        return self.total_entries - self.expired_entries

    def formatted_size(self) -> str:
        return format_size(self.size_bytes)


class TTLCache:
    """Key/value cache partitioned by entity type, each with its own TTL."""

    def __init__(
        self,
        path: str | Path | None = None,
        *,
        bypass: bool = False,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the cache.

        Args:
            path: Path to the cache document (default: platform cache dir)
            bypass: If True, reads always miss; writes still happen
            clock: Returns the current time in seconds since the epoch
        """
        self.path = Path(path) if path is not None else get_cache_dir() / CACHE_FILENAME
        self.bypass = bypass
        self._clock = clock

    def _read(self) -> dict[_Key, CacheEntry]:
        """Load the cache document.

        An undecodable document or unknown schema counts as empty; bad
        individual entries are dropped.

        Raises:
            CacheError: If the file exists but cannot be read
        """
        if not self.path.exists():
            return {}
        try:
            raw = self.path.read_bytes()
        except OSError as e:
            msg = f"Failed to read cache file {self.path}: {e}"
            raise CacheError(msg) from e

        try:
            data = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            logger.warning("Ignoring corrupt cache file %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict) or data.get("schema_version") != SCHEMA_VERSION:
            logger.debug("Ignoring cache file %s with unknown schema", self.path)
            return {}

        records = data.get("entries")
        if not isinstance(records, list):
            logger.warning("Ignoring cache file %s without an entry list", self.path)
            return {}

        entries: dict[_Key, CacheEntry] = {}
        for record in records:
            try:
                entry = dict_to_entry(record)
            except (KeyError, ValueError, TypeError) as e:
                logger.debug("Dropping malformed cache entry: %s", e)
                continue
            entries[(entry.entity, entry.fingerprint)] = entry
        return entries

    def _write(self, entries: dict[_Key, CacheEntry]) -> None:
        """Replace the cache document.

        Raises:
            CacheError: If the payload cannot be serialized or written
        """
        try:
            payload = orjson.dumps(
                {
                    "schema_version": SCHEMA_VERSION,
                    "entries": [entry_to_dict(e) for e in entries.values()],
                }
            )
            atomic_write(self.path, payload)
        except (OSError, TypeError) as e:
            msg = f"Failed to write cache file {self.path}: {e}"
            raise CacheError(msg) from e

    def get(self, entity: EntityType, key: str) -> Any | None:
        """Return the cached payload, or None if absent, expired or bypassed."""
        if self.bypass:
            return None
        try:
            entry = self._read().get((entity, key))
        except CacheError as e:
            logger.warning("Cache read failed, treating as miss: %s", e)
            return None

        if entry is None:
            logger.debug("Cache miss: %s %s", entity.value, key)
            return None
        if not entry.is_valid(self._clock()):
            logger.debug("Cache expired: %s %s", entity.value, key)
            return None
        logger.debug("Cache hit: %s %s", entity.value, key)
        return entry.payload

    def put(self, entity: EntityType, key: str, payload: Any) -> None:
        """Store a payload, stamping it with the current time.

        Expired entries are dropped in the same write.  Failures are
        logged and otherwise ignored.
        """
        now = self._clock()
        try:
            entries = {k: e for k, e in self._read().items() if e.is_valid(now)}
            entries[(entity, key)] = CacheEntry(
                entity=entity,
                fingerprint=key,
                payload=payload,
                fetched_at=now,
            )
            self._write(entries)
        except CacheError as e:
            logger.warning("Cache write failed: %s", e)

    def purge_expired(self) -> int:
        """Remove entries older than their type's TTL.

        Returns:
            Number of entries removed
        """
        entries = self._read()
        now = self._clock()
        kept = {k: e for k, e in entries.items() if e.is_valid(now)}
        removed = len(entries) - len(kept)
        if removed:
            self._write(kept)
        return removed

    def clear(self) -> int:
        """Remove every entry.

        Returns:
            Number of entries removed
        """
        entries = self._read()
        if self.path.exists():
            self._write({})
        return len(entries)

    def stats(self) -> CacheStats:
        """Count entries without modifying the cache."""
        entries = self._read()
        now = self._clock()
        return CacheStats(
            total_entries=len(entries),
            expired_entries=sum(1 for e in entries.values() if not e.is_valid(now)),
            size_bytes=sum(len(orjson.dumps(entry_to_dict(e))) for e in entries.values()),
        )

    def cached(
        self,
        entity: EntityType,
        key: str,
        fetch: Callable[[], Any],
    ) -> Any:
        """Return the cached payload or fetch, store and return a fresh one."""
        payload = self.get(entity, key)
        if payload is not None:
            return payload
        payload = fetch()
        self.put(entity, key, payload)
        return payload
