"""Fake collaborators for enrichment and generation tests."""

import asyncio
from typing import Any

from specter.core.exceptions import FetchError


def scrape_payload(title: str, payout: str = "$1,000,000") -> dict[str, Any]:
    """A Firecrawl-style ``{success, data}`` envelope."""
    return {
        "success": True,
        "data": {
            "markdown": f"# {title}\n\nSettlement details.",
            "json": {"title": title, "payout": payout, "deadline": "2025-12-31"},
            "metadata": {"title": title, "sourceURL": "https://example.com"},
            "links": ["https://example.com/claim"],
        },
    }


class FakeFetcher:
    """Records calls; returns scrape payloads or raises per URL.

    Args:
        failures: URL -> message; fetches of these URLs raise FetchError
        delay: Seconds to sleep before responding
        gate: Optional event every fetch waits on before responding
    """

    def __init__(
        self,
        failures: dict[str, str] | None = None,
        delay: float = 0.0,
        gate: asyncio.Event | None = None,
    ):
        self.failures = failures or {}
        self.delay = delay
        self.gate = gate
        self.calls: list[str] = []
        self.active = 0
        self.max_active = 0

    async def __call__(self, url: str) -> dict[str, Any]:
        self.calls.append(url)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.gate is not None:
                await self.gate.wait()
            if self.delay:
                await asyncio.sleep(self.delay)
            if url in self.failures:
                raise FetchError(self.failures[url], url=url, status_code=500)
            return scrape_payload(f"Case at {url}")
        finally:
            self.active -= 1


class FakeGenerator:
    """Text generator yielding preset fragments, optionally failing midway.

    Args:
        fragments: Fragments to yield in order
        fail_after: Raise after yielding this many fragments
        error: Exception raised when ``fail_after`` is reached
    """

    def __init__(
        self,
        fragments: list[str],
        fail_after: int | None = None,
        error: Exception | None = None,
    ):
        self.fragments = fragments
        self.fail_after = fail_after
        self.error = error or RuntimeError("connection reset")
        self.calls: list[list[dict[str, str]]] = []

    async def __call__(self, messages: list[dict[str, str]]):
        self.calls.append(messages)
        for i, fragment in enumerate(self.fragments):
            if self.fail_after is not None and i == self.fail_after:
                raise self.error
            await asyncio.sleep(0)
            yield fragment
        if self.fail_after is not None and self.fail_after >= len(self.fragments):
            raise self.error


def build_test_engine(
    fetcher: FakeFetcher | None = None,
    generator: FakeGenerator | None = None,
):
    """Engine wired to fakes and an in-memory cache."""
    from specter.core.enrichment_cache import EnrichmentCache
    from specter.core.enrichment_coordinator import EnrichmentCoordinator
    from specter.db.kv_store import MemoryStore
    from specter.services.draft_session import DraftSession
    from specter.services.workflow import SpecterEngine, WorkflowRegistry

    cache = EnrichmentCache(MemoryStore(), "classActionEnrichmentCache")
    return SpecterEngine(
        cache=cache,
        coordinator=EnrichmentCoordinator(cache, fetcher=fetcher or FakeFetcher()),
        drafts=DraftSession(generator or FakeGenerator(["INTRODUCTION\nText"])),
        workflows=WorkflowRegistry(),
    )
