"""Durable match-id → enrichment context cache.

The cache is owned by a single writer (the enrichment coordinator). Readers
only ever receive read-only snapshots. The whole mapping is stored as one
JSON string under a single key of a key-value store: read once at startup
and overwritten after each enrichment batch settles.
"""

import json
from collections.abc import Mapping
from types import MappingProxyType

from pydantic import ValidationError

from specter.core.logging import get_logger
from specter.core.schemas_matches import EnrichmentContext
from specter.db.kv_store import KeyValueStore

logger = get_logger(__name__)


class EnrichmentCache:
    """Single-writer store of enrichment contexts keyed by match id."""

    def __init__(self, store: KeyValueStore, key: str):
        self._store = store
        self._key = key
        self._entries: dict[str, EnrichmentContext] = {}

    def load(self) -> int:
        """
        Load the persisted cache, replacing in-memory entries.

        Missing or unreadable data yields an empty cache. Individual entries
        that fail validation are dropped.

        Returns:
            Number of entries loaded
        """
        try:
            raw = self._store.get(self._key)
        except Exception as e:
            logger.warning(f"Failed to read enrichment cache: {e}")
            raw = None

        entries: dict[str, EnrichmentContext] = {}
        if raw:
            try:
                data = json.loads(raw)
            except json.JSONDecodeError as e:
                logger.warning(f"Enrichment cache is not valid JSON, starting empty: {e}")
                data = {}

            if isinstance(data, dict):
                for match_id, value in data.items():
                    try:
                        entries[str(match_id)] = EnrichmentContext.model_validate(value)
                    except ValidationError as e:
                        logger.warning(f"Dropping invalid cache entry {match_id}: {e}")

        self._entries = entries
        logger.info(f"Loaded enrichment cache: {len(entries)} entries")
        return len(entries)

    def __len__(self) -> int:
        return len(self._entries)

    def contains(self, match_id: str) -> bool:
        return match_id in self._entries

    def get(self, match_id: str) -> EnrichmentContext | None:
        return self._entries.get(match_id)

    def snapshot(self) -> Mapping[str, EnrichmentContext]:
        """Read-only view over a copy of the current entries."""
        return MappingProxyType(dict(self._entries))

    def merge(self, contexts: Mapping[str, EnrichmentContext]) -> None:
        """Write settled contexts. Each value is stored whole or not at all."""
        for match_id, context in contexts.items():
            if not isinstance(context, EnrichmentContext):
                raise TypeError(f"Cache values must be EnrichmentContext, got {type(context)!r}")
        self._entries = {**self._entries, **contexts}

    def persist(self) -> bool:
        """
        Overwrite the stored cache with the current entries.

        Failures are logged and swallowed.

        Returns:
            True if the write succeeded
        """
        payload = {match_id: ctx.to_store() for match_id, ctx in self._entries.items()}
        try:
            self._store.set(self._key, json.dumps(payload))
        except Exception as e:
            logger.warning(f"Failed to persist enrichment cache: {e}")
            return False

        logger.debug(f"Persisted enrichment cache: {len(payload)} entries")
        return True
