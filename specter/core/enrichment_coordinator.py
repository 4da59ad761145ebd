"""Concurrent enrichment of candidate matches.

The coordinator is the single writer of the EnrichmentCache. For a batch of
matches it:

1. Computes the work set: matches with a source URL and no cache entry.
2. Dispatches one fetch per work item without waiting for the others
   (optionally capped by a semaphore).
3. Maps each settled fetch into exactly one EnrichmentContext, storing an
   error context on failure. Fetch failures never reach the caller.
4. Counts settlements down from the work-set size. At zero, merges the
   working copy into the cache, persists it, and fires ``on_done`` once.

Overlapping invocations share an in-flight registry keyed by match id, so a
second request for an id already being fetched awaits the first fetch.
"""

import asyncio
import logging
import contextlib
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from specter.core.cancellation import CancellationToken
from specter.core.enrichment_cache import EnrichmentCache
from specter.core.enrichment_mapping import map_enrichment_payload
from specter.core.exceptions import FetchError, OperationCancelled
from specter.core.logging import get_logger, log_with_context
from specter.core.schemas_matches import CandidateMatch, EnrichmentContext

logger = get_logger(__name__)

ContextFetcher = Callable[[str], Awaitable[Any]]
ProgressCallback = Callable[[str, EnrichmentContext | None, int], None]
DoneCallback = Callable[[Mapping[str, EnrichmentContext]], None]


@dataclass
class EnrichmentRun:
    """Outcome of one coordinator invocation."""

    snapshot: Mapping[str, EnrichmentContext] = field(
        default_factory=lambda: MappingProxyType({})
    )
    fetched_ids: list[str] = field(default_factory=list)
    failed_ids: list[str] = field(default_factory=list)
    reused_ids: list[str] = field(default_factory=list)
    cancelled_ids: list[str] = field(default_factory=list)

    @property
    def work_size(self) -> int:
        return len(self.fetched_ids) + len(self.reused_ids) + len(self.cancelled_ids)


def _notify(callback: Callable[..., None] | None, *args: Any) -> None:
    """Invoke an observer; observer errors are logged, never propagated."""
    if callback is None:
        return
    try:
        callback(*args)
    except Exception as e:
        logger.error(f"Enrichment observer failed: {e}", exc_info=True)


class EnrichmentCoordinator:
    """Drives concurrent per-match fetches and merges results into the cache."""

    def __init__(
        self,
        cache: EnrichmentCache,
        fetcher: ContextFetcher | None = None,
        max_concurrency: int = 0,
    ):
        if fetcher is None:
            from specter.core.firecrawl_service import fetch_enrichment_payload

            fetcher = fetch_enrichment_payload

        self.cache = cache
        self._fetcher = fetcher
        self._semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency > 0 else None
        self._in_flight: dict[str, asyncio.Future] = {}
        self._active_runs = 0

    @property
    def is_loading(self) -> bool:
        return self._active_runs > 0

    def work_set(self, matches: Sequence[CandidateMatch]) -> list[CandidateMatch]:
        """Matches that need a fetch: have a source URL, not cached, first per id."""
        seen: set[str] = set()
        work: list[CandidateMatch] = []
        for match in matches:
            if not match.source_url or not match.source_url.strip():
                continue
            if match.id in seen or self.cache.contains(match.id):
                continue
            seen.add(match.id)
            work.append(match)
        return work

    async def enrich(
        self,
        matches: Sequence[CandidateMatch],
        on_progress: ProgressCallback | None = None,
        on_done: DoneCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> EnrichmentRun:
        """
        Enrich candidate matches and merge the results into the cache.

        Args:
            matches: Candidate matches from search
            on_progress: Called after every settlement with
                (match_id, context or None if cancelled, pending count)
            on_done: Called exactly once with the merged cache snapshot
            cancel: Optional token checked before and after each fetch

        Returns:
            EnrichmentRun with the merged snapshot and per-id outcome
        """
        work = self.work_set(matches)
        run = EnrichmentRun()

        if not work:
            run.snapshot = self.cache.snapshot()
            logger.debug("Enrichment skipped: nothing to fetch")
            _notify(on_done, run.snapshot)
            return run

        logger.info(f"Starting enrichment of {len(work)} matches")

        working: dict[str, EnrichmentContext] = {}
        pending = len(work)

        def finalize() -> None:
            if working:
                self.cache.merge(working)
                self.cache.persist()
            run.snapshot = self.cache.snapshot()
            logger.info(
                f"Enrichment complete: {len(run.fetched_ids)} fetched, "
                f"{len(run.failed_ids)} failed, {len(run.reused_ids)} reused, "
                f"{len(run.cancelled_ids)} cancelled"
            )
            _notify(on_done, run.snapshot)

        async def settle(match: CandidateMatch) -> None:
            nonlocal pending
            context: EnrichmentContext | None = None
            try:
                context, reused = await self._resolve(match, cancel)
                working[match.id] = context
                if reused:
                    run.reused_ids.append(match.id)
                else:
                    run.fetched_ids.append(match.id)
                    if context.is_error:
                        run.failed_ids.append(match.id)
            except OperationCancelled:
                run.cancelled_ids.append(match.id)
            finally:
                pending -= 1
                _notify(on_progress, match.id, context, pending)
                if pending == 0:
                    finalize()

        self._active_runs += 1
        try:
            await asyncio.gather(*(settle(m) for m in work))
        finally:
            self._active_runs -= 1

        return run

    async def _resolve(
        self,
        match: CandidateMatch,
        cancel: CancellationToken | None,
    ) -> tuple[EnrichmentContext, bool]:
        """Return (context, reused). Reuses cache hits and in-flight fetches."""
        cached = self.cache.get(match.id)
        if cached is not None:
            return cached, True

        existing = self._in_flight.get(match.id)
        if existing is not None:
            try:
                shared = await asyncio.shield(existing)
            except asyncio.CancelledError:
                if not existing.cancelled():
                    raise
                shared = None
            if shared is not None:
                return shared, True
            # The other fetch was cancelled; fetch it here instead

        future = asyncio.get_running_loop().create_future()
        self._in_flight[match.id] = future
        try:
            context = await self._fetch_context(match, cancel)
            future.set_result(context)
            return context, False
        except OperationCancelled:
            future.set_result(None)
            raise
        finally:
            if not future.done():
                future.cancel()
            if self._in_flight.get(match.id) is future:
                del self._in_flight[match.id]

    async def _fetch_context(
        self,
        match: CandidateMatch,
        cancel: CancellationToken | None,
    ) -> EnrichmentContext:
        if cancel:
            cancel.raise_if_cancelled()

        limiter = self._semaphore or contextlib.nullcontext()
        async with limiter:
            if cancel:
                cancel.raise_if_cancelled()
            try:
                payload = await self._fetcher(match.source_url)
            except OperationCancelled:
                raise
            except FetchError as e:
                log_with_context(
                    logger,
                    logging.WARNING,
                    f"Enrichment fetch failed: {e.message}",
                    match_id=match.id,
                    status_code=e.status_code,
                )
                context = EnrichmentContext.failed(e.message)
            except Exception as e:
                log_with_context(
                    logger, logging.WARNING, f"Enrichment fetch error: {e!r}", match_id=match.id
                )
                context = EnrichmentContext.failed(str(e) or type(e).__name__)
            else:
                context = map_enrichment_payload(payload)

        if cancel:
            cancel.raise_if_cancelled()
        return context
