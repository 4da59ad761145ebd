"""Draft session: full complaint generation and single-section regeneration.

Both use cases stream tokens through the TokenStreamAggregator and split the
result with the section splitter. Generated sections only replace document
state once the stream completes; a failed generation leaves previously
committed content as it was.
"""

import logging
from collections.abc import AsyncIterable, Callable, Mapping

from specter.chains.draft_prompts import (
    COMPLAINT_HEADINGS,
    build_full_draft_messages,
    build_section_messages,
)
from specter.core.cancellation import CancellationToken
from specter.core.exceptions import (
    DocumentBusyError,
    GenerationError,
    SectionBusyError,
    SectionNotEditableError,
    SectionNotFoundError,
)
from specter.core.logging import get_logger, log_with_context
from specter.core.schemas_draft import ComplaintDocument, DraftSection, Fact, HeadingSpec
from specter.core.schemas_matches import CandidateMatch, EnrichmentContext
from specter.core.section_splitter import split_sections
from specter.core.token_stream import (
    GenerationSession,
    SnapshotObserver,
    TokenStreamAggregator,
)

logger = get_logger(__name__)

TextGenerator = Callable[[list[dict[str, str]]], AsyncIterable[str]]


class DraftSession:
    """Orchestrates generation, aggregation and splitting for a complaint."""

    def __init__(
        self,
        generator: TextGenerator,
        headings: list[HeadingSpec] | None = None,
        aggregator: TokenStreamAggregator | None = None,
    ):
        self._generate = generator
        self.headings = list(headings or COMPLAINT_HEADINGS)
        self._aggregator = aggregator or TokenStreamAggregator()
        # Keyed by document identity; section ids repeat across documents
        self._regenerating: set[tuple[int, str]] = set()
        self._drafting: set[int] = set()

    def is_regenerating(self, document: ComplaintDocument, section_id: str) -> bool:
        return (id(document), section_id) in self._regenerating

    def is_drafting(self, document: ComplaintDocument) -> bool:
        return id(document) in self._drafting

    def regenerating_sections(self, document: ComplaintDocument) -> list[str]:
        key = id(document)
        return sorted(section_id for doc_key, section_id in self._regenerating if doc_key == key)

    async def generate_full_draft(
        self,
        document: ComplaintDocument,
        facts: list[Fact],
        contexts: Mapping[str, EnrichmentContext],
        selected_match: CandidateMatch | None = None,
        observer: SnapshotObserver | None = None,
        cancel: CancellationToken | None = None,
    ) -> list[DraftSection]:
        """
        Generate the whole complaint and replace the document's sections.

        Args:
            document: Document whose section list is replaced on success
            facts: Reviewed facts
            contexts: Enrichment contexts to embed in the prompt
            selected_match: The class action the user chose to join, if any
            observer: Receives every stream snapshot
            cancel: Optional cancellation token

        Returns:
            The new sections

        Raises:
            DocumentBusyError: If a draft or regeneration of the document is in flight
            GenerationError: If the stream fails or produces no text
        """
        busy = self.regenerating_sections(document)
        if busy:
            raise DocumentBusyError(f"Sections are being regenerated: {', '.join(busy)}")
        if self.is_drafting(document):
            raise DocumentBusyError("A full draft is already being generated")

        messages = build_full_draft_messages(facts, contexts, self.headings, selected_match)
        logger.info(f"Generating full draft: {len(facts)} facts, {len(contexts)} contexts")

        self._drafting.add(id(document))
        try:
            session = await self._aggregator.consume(
                self._generate(messages), observer=observer, cancel=cancel
            )
            if not session.accumulated_text.strip():
                session.fail("empty generation")
                raise GenerationError("Generation returned no text")

            sections = session.split(self.headings)
            document.replace_sections(sections)
        finally:
            self._drafting.discard(id(document))

        logger.info(f"Full draft split into {len(sections)} sections")
        return sections

    async def regenerate_section(
        self,
        document: ComplaintDocument,
        section_id: str,
        facts: list[Fact],
        contexts: Mapping[str, EnrichmentContext],
        observer: SnapshotObserver | None = None,
        cancel: CancellationToken | None = None,
    ) -> DraftSection:
        """
        Regenerate one section, updating its content live while streaming.

        Raises:
            SectionNotFoundError: If the document has no such section
            SectionNotEditableError: If the section is locked
            DocumentBusyError: If a full draft of the document is in flight
            SectionBusyError: If this section is already being regenerated
            GenerationError: If the stream fails; previous content is restored
        """
        section = document.get_section(section_id)
        if section is None:
            raise SectionNotFoundError(section_id)
        if not section.editable:
            raise SectionNotEditableError(section_id)
        if self.is_drafting(document):
            raise DocumentBusyError("A full draft is being generated")
        if self.is_regenerating(document, section_id):
            raise SectionBusyError(section_id)

        busy_key = (id(document), section_id)
        self._regenerating.add(busy_key)
        previous_content = section.content
        heading = HeadingSpec(label=section.title, section_id=section.id, editable=section.editable)
        messages = build_section_messages(section, facts, contexts)
        log_with_context(logger, logging.INFO, "Regenerating section", section_id=section_id)

        try:
            session = GenerationSession()
            async for snapshot in self._aggregator.snapshots(
                self._generate(messages), session=session, cancel=cancel
            ):
                if not snapshot.is_complete:
                    section.content = split_sections(snapshot.text, [heading])[0].content
                if observer is not None:
                    observer(snapshot)

            if not session.accumulated_text.strip():
                session.fail("empty generation")
                raise GenerationError("Generation returned no text")

            section.content = session.split([heading])[0].content
        except BaseException as e:
            section.content = previous_content
            log_with_context(
                logger,
                logging.WARNING,
                f"Section regeneration aborted, previous content restored: {e!r}",
                section_id=section_id,
            )
            raise
        finally:
            self._regenerating.discard(busy_key)

        log_with_context(
            logger,
            logging.INFO,
            f"Regenerated section: {len(section.content)} chars",
            section_id=section_id,
        )
        return section.model_copy()
