"""Tests for full-draft generation and section regeneration."""

import asyncio

import pytest

from specter.core.cancellation import CancellationToken
from specter.core.exceptions import (
    DocumentBusyError,
    GenerationError,
    OperationCancelled,
    SectionBusyError,
    SectionNotEditableError,
    SectionNotFoundError,
)
from specter.core.schemas_draft import ComplaintDocument, DraftSection, Fact
from specter.core.schemas_matches import CandidateMatch, EnrichmentContext
from specter.core.section_splitter import FALLBACK_SECTION_ID
from specter.services.draft_session import DraftSession
from tests.fakes.fake_services import FakeGenerator

FACTS = [Fact(label="Payment Amount", value="$1,250.00", confidence=0.88)]
CONTEXTS = {
    "match-1": EnrichmentContext(title="Acme Lease Settlement", payout="$2M"),
    "match-2": EnrichmentContext.failed("Firecrawl API error (500)"),
}


def _document() -> ComplaintDocument:
    return ComplaintDocument(
        sections=[
            DraftSection(id="section-intro", title="INTRODUCTION", content="Old intro."),
            DraftSection(
                id="section-jurisdiction",
                title="JURISDICTION AND VENUE",
                content="Old venue.",
                editable=False,
            ),
            DraftSection(
                id="section-facts", title="FACTUAL ALLEGATIONS", content="Old facts."
            ),
        ]
    )


class TestFullDraft:
    @pytest.mark.asyncio
    async def test_replaces_sections_wholesale(self):
        generator = FakeGenerator(
            ["COMPLAINT\nJane Doe v. Acme\n", "INTRODUCTION\n1. Plaintiff ", "brings this action.\n",
             "PRAYER FOR RELIEF\nDamages."]
        )
        session = DraftSession(generator)
        document = _document()
        snapshots = []

        sections = await session.generate_full_draft(
            document, FACTS, CONTEXTS, observer=snapshots.append
        )

        assert [s.id for s in sections] == ["section-caption", "section-intro", "section-prayer"]
        assert sections[1].content == "1. Plaintiff brings this action."
        assert sections[2].editable is False
        assert [s.id for s in document.sections] == [s.id for s in sections]
        assert snapshots[-1].is_complete
        assert len(snapshots) == 5

    @pytest.mark.asyncio
    async def test_prompt_embeds_facts_and_usable_contexts(self):
        generator = FakeGenerator(["INTRODUCTION\nText"])
        match = CandidateMatch(id="match-1", name="Acme Lease Settlement")

        await DraftSession(generator).generate_full_draft(
            ComplaintDocument(), FACTS, CONTEXTS, selected_match=match
        )

        user_prompt = generator.calls[0][1]["content"]
        assert "$1,250.00" in user_prompt
        assert "Payout: $2M" in user_prompt
        assert "Firecrawl API error" not in user_prompt
        assert "PRAYER FOR RELIEF" in user_prompt

    @pytest.mark.asyncio
    async def test_no_heading_falls_back_to_single_section(self):
        document = ComplaintDocument()

        generator = FakeGenerator(["Free-form ", "draft text"])

        sections = await DraftSession(generator).generate_full_draft(document, FACTS, {})

        assert len(sections) == 1
        assert sections[0].id == FALLBACK_SECTION_ID
        assert sections[0].content == "Free-form draft text"

    @pytest.mark.asyncio
    async def test_failure_leaves_document_untouched(self):
        document = _document()
        generator = FakeGenerator(["INTRODUCTION\n", "partial"], fail_after=2)

        with pytest.raises(GenerationError) as exc_info:
            await DraftSession(generator).generate_full_draft(document, FACTS, CONTEXTS)

        assert exc_info.value.partial_text == "INTRODUCTION\npartial"
        assert document.get_section("section-intro").content == "Old intro."

    @pytest.mark.asyncio
    async def test_empty_generation_raises(self):
        document = _document()

        with pytest.raises(GenerationError):
            await DraftSession(FakeGenerator(["  ", "\n"])).generate_full_draft(document, FACTS, {})

        assert len(document.sections) == 3


class TestRegenerateSection:
    @pytest.mark.asyncio
    async def test_live_updates_then_finalizes(self):
        document = _document()
        generator = FakeGenerator(["INTRODUCTION\n", "New ", "intro ", "text.\n"])
        session = DraftSession(generator)
        live = []

        def observer(snapshot):
            live.append(document.get_section("section-intro").content)

        result = await session.regenerate_section(
            document, "section-intro", FACTS, CONTEXTS, observer=observer
        )

        assert live[:4] == ["", "New", "New intro", "New intro text."]
        assert result.content == "New intro text."
        assert document.get_section("section-intro").content == "New intro text."
        assert document.get_section("section-jurisdiction").content == "Old venue."
        assert session.is_regenerating(document, "section-intro") is False

    @pytest.mark.asyncio
    async def test_prompt_is_scoped_to_one_section(self):
        generator = FakeGenerator(["INTRODUCTION\nx"])

        await DraftSession(generator).regenerate_section(
            _document(), "section-intro", FACTS, CONTEXTS
        )

        user_prompt = generator.calls[0][1]["content"]
        assert 'Rewrite only the "INTRODUCTION" section' in user_prompt
        assert "Old intro." in user_prompt

    @pytest.mark.asyncio
    async def test_output_without_heading_becomes_section_content(self):
        document = _document()

        await DraftSession(FakeGenerator(["Just the body."])).regenerate_section(
            document, "section-intro", FACTS, {}
        )

        assert document.get_section("section-intro").content == "Just the body."

    @pytest.mark.asyncio
    async def test_failure_restores_previous_content(self):
        document = _document()
        generator = FakeGenerator(["INTRODUCTION\n", "Half"], fail_after=2)

        with pytest.raises(GenerationError):
            await DraftSession(generator).regenerate_section(
                document, "section-intro", FACTS, CONTEXTS
            )

        assert document.get_section("section-intro").content == "Old intro."

    @pytest.mark.asyncio
    async def test_cancellation_restores_previous_content(self):
        document = _document()
        cancel = CancellationToken()
        session = DraftSession(FakeGenerator(["INTRODUCTION\n", "a", "b", "c"]))

        def observer(snapshot):
            if snapshot.index == 1:
                cancel.cancel()

        with pytest.raises(OperationCancelled):
            await session.regenerate_section(
                document, "section-intro", FACTS, {}, observer=observer, cancel=cancel
            )

        assert document.get_section("section-intro").content == "Old intro."
        assert session.is_regenerating(document, "section-intro") is False

    @pytest.mark.asyncio
    async def test_unknown_section(self):
        with pytest.raises(SectionNotFoundError):
            await DraftSession(FakeGenerator(["x"])).regenerate_section(
                _document(), "section-missing", FACTS, {}
            )

    @pytest.mark.asyncio
    async def test_concurrent_regeneration_of_same_section_is_rejected(self):
        gate = asyncio.Event()

        async def slow_generator(messages):
            if "INTRODUCTION" not in messages[1]["content"]:
                yield "Facts text."
                return
            yield "INTRODUCTION\n"
            await gate.wait()
            yield "Done."

        document = _document()
        session = DraftSession(slow_generator)

        first = asyncio.create_task(
            session.regenerate_section(document, "section-intro", FACTS, {})
        )
        await asyncio.sleep(0.01)
        assert session.is_regenerating(document, "section-intro")

        with pytest.raises(SectionBusyError):
            await session.regenerate_section(document, "section-intro", FACTS, {})

        # A different section may regenerate concurrently
        await session.regenerate_section(document, "section-facts", FACTS, {})
        assert document.get_section("section-facts").content == "Facts text."

        gate.set()
        result = await first
        assert result.content == "Done."

    @pytest.mark.asyncio
    async def test_same_section_in_another_document_is_independent(self):
        gate = asyncio.Event()

        async def gated_generator(messages):
            if "Old intro." in messages[1]["content"]:
                yield "INTRODUCTION\n"
                await gate.wait()
                yield "First."
                return
            yield "INTRODUCTION\nSecond."

        first_document = _document()
        second_document = _document()
        second_document.get_section("section-intro").content = "Another intro."
        session = DraftSession(gated_generator)

        first = asyncio.create_task(
            session.regenerate_section(first_document, "section-intro", FACTS, {})
        )
        await asyncio.sleep(0.01)
        assert session.is_regenerating(first_document, "section-intro")
        assert session.is_regenerating(second_document, "section-intro") is False

        result = await session.regenerate_section(second_document, "section-intro", FACTS, {})
        assert result.content == "Second."

        gate.set()
        assert (await first).content == "First."
        assert first_document.get_section("section-intro").content == "First."
        assert second_document.get_section("section-intro").content == "Second."

    @pytest.mark.asyncio
    async def test_locked_section_is_not_regenerated(self):
        document = _document()
        generator = FakeGenerator(["JURISDICTION AND VENUE\nrewritten"])

        with pytest.raises(SectionNotEditableError):
            await DraftSession(generator).regenerate_section(
                document, "section-jurisdiction", FACTS, {}
            )

        assert document.get_section("section-jurisdiction").content == "Old venue."
        assert generator.calls == []


class TestDraftAndRegenerationExclusion:
    @pytest.mark.asyncio
    async def test_full_draft_rejected_while_section_regenerates(self):
        gate = asyncio.Event()

        async def gated_generator(messages):
            yield "INTRODUCTION\n"
            await gate.wait()
            yield "Regenerated."

        document = _document()
        session = DraftSession(gated_generator)
        regeneration = asyncio.create_task(
            session.regenerate_section(document, "section-intro", FACTS, {})
        )
        await asyncio.sleep(0.01)

        with pytest.raises(DocumentBusyError):
            await session.generate_full_draft(document, FACTS, {})

        gate.set()
        result = await regeneration
        assert result.content == "Regenerated."
        assert document.get_section("section-intro").content == "Regenerated."
        assert len(document.sections) == 3

    @pytest.mark.asyncio
    async def test_regeneration_rejected_while_full_draft_runs(self):
        gate = asyncio.Event()

        async def gated_generator(messages):
            yield "INTRODUCTION\n"
            await gate.wait()
            yield "Drafted."

        document = _document()
        session = DraftSession(gated_generator)
        draft = asyncio.create_task(session.generate_full_draft(document, FACTS, {}))
        await asyncio.sleep(0.01)
        assert session.is_drafting(document)

        with pytest.raises(DocumentBusyError):
            await session.regenerate_section(document, "section-intro", FACTS, {})

        gate.set()
        sections = await draft
        assert [s.id for s in sections] == ["section-intro"]
        assert session.is_drafting(document) is False

    @pytest.mark.asyncio
    async def test_other_documents_are_not_blocked(self):
        gate = asyncio.Event()

        async def gated_generator(messages):
            if "Old intro." in messages[1]["content"]:
                await gate.wait()
            yield "INTRODUCTION\nText."

        busy_document = _document()
        free_document = ComplaintDocument()
        session = DraftSession(gated_generator)
        regeneration = asyncio.create_task(
            session.regenerate_section(busy_document, "section-intro", FACTS, {})
        )
        await asyncio.sleep(0.01)

        sections = await session.generate_full_draft(free_document, FACTS, {})
        assert [s.id for s in sections] == ["section-intro"]

        gate.set()
        await regeneration
