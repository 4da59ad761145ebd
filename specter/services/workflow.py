"""In-memory workflow sessions and the process-wide engine.

A workflow session holds the per-user wizard state (facts, matches, the
selected match, the complaint document). The engine owns the shared pieces:
the enrichment cache and its coordinator, and the draft session.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from functools import lru_cache
from uuid import uuid4

from specter.core.config import get_settings
from specter.core.enrichment_cache import EnrichmentCache
from specter.core.enrichment_coordinator import EnrichmentCoordinator
from specter.core.exceptions import SectionNotEditableError, SectionNotFoundError
from specter.core.logging import get_logger, log_with_context
from specter.core.schemas_draft import ComplaintDocument, DraftSection, Fact
from specter.core.schemas_matches import CandidateMatch, EnrichmentContext
from specter.db.kv_store import JsonFileStore
from specter.services.draft_session import DraftSession

logger = get_logger(__name__)


@dataclass
class WorkflowSession:
    """Wizard state for one user."""

    id: str = field(default_factory=lambda: str(uuid4()))
    facts: list[Fact] = field(default_factory=list)
    matches: list[CandidateMatch] = field(default_factory=list)
    selected_match_id: str | None = None
    document: ComplaintDocument = field(default_factory=ComplaintDocument)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def selected_match(self) -> CandidateMatch | None:
        if self.selected_match_id is None:
            return None
        for match in self.matches:
            if match.id == self.selected_match_id:
                return match
        return None

    def contexts(self, snapshot: Mapping[str, EnrichmentContext]) -> dict[str, EnrichmentContext]:
        """Cached contexts for this session's matches, in match order."""
        return {m.id: snapshot[m.id] for m in self.matches if m.id in snapshot}

    def edit_section(self, section_id: str, content: str) -> DraftSection:
        section = self.document.get_section(section_id)
        if section is None:
            raise SectionNotFoundError(section_id)
        if not section.editable:
            raise SectionNotEditableError(section_id)
        section.content = content
        return section.model_copy()


class WorkflowRegistry:
    """Process-local store of workflow sessions."""

    def __init__(self) -> None:
        self._sessions: dict[str, WorkflowSession] = {}

    def create(self, facts: list[Fact] | None = None) -> WorkflowSession:
        session = WorkflowSession(facts=list(facts or []))
        self._sessions[session.id] = session
        log_with_context(logger, logging.INFO, "Created workflow session", workflow_id=session.id)
        return session

    def get(self, session_id: str) -> WorkflowSession | None:
        return self._sessions.get(session_id)


@dataclass
class SpecterEngine:
    """Shared services behind the API."""

    cache: EnrichmentCache
    coordinator: EnrichmentCoordinator
    drafts: DraftSession
    workflows: WorkflowRegistry


def build_engine() -> SpecterEngine:
    """Wire the engine from settings and load the persisted cache."""
    from specter.core.llm import GenerationClient

    settings = get_settings()

    cache = EnrichmentCache(JsonFileStore(settings.ENRICHMENT_CACHE_PATH), settings.ENRICHMENT_CACHE_KEY)
    cache.load()

    return SpecterEngine(
        cache=cache,
        coordinator=EnrichmentCoordinator(cache, max_concurrency=settings.ENRICHMENT_MAX_CONCURRENCY),
        drafts=DraftSession(GenerationClient().stream_text),
        workflows=WorkflowRegistry(),
    )


@lru_cache
def get_engine() -> SpecterEngine:
    """Get the process-wide engine instance."""
    return build_engine()
