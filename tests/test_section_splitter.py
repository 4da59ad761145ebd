"""Tests for splitting generated text into sections by heading."""

from specter.chains.draft_prompts import COMPLAINT_HEADINGS
from specter.core.schemas_draft import HeadingSpec
from specter.core.section_splitter import (
    FALLBACK_SECTION_ID,
    FALLBACK_SECTION_TITLE,
    split_sections,
)

INTRO = HeadingSpec(label="INTRODUCTION", section_id="section-intro")
PARTIES = HeadingSpec(label="PARTIES", section_id="section-parties", editable=False)


def test_sections_follow_heading_order():
    sections = split_sections("INTRODUCTION\nHello\nPARTIES\nWorld", [INTRO, PARTIES])

    assert [(s.id, s.content) for s in sections] == [
        ("section-intro", "Hello"),
        ("section-parties", "World"),
    ]
    assert sections[0].title == "INTRODUCTION"
    assert sections[1].editable is False


def test_no_heading_found_yields_single_fallback_with_unmodified_text():
    text = "  Nothing matches here\n"

    sections = split_sections(text, [INTRO, PARTIES])

    assert len(sections) == 1
    assert sections[0].id == FALLBACK_SECTION_ID
    assert sections[0].title == FALLBACK_SECTION_TITLE
    assert sections[0].content == text


def test_missing_heading_is_skipped():
    headings = [
        HeadingSpec(label="A", section_id="a"),
        HeadingSpec(label="B", section_id="b"),
        HeadingSpec(label="C", section_id="c"),
    ]

    sections = split_sections("A\nfirst\nC\nthird", headings)

    assert [s.id for s in sections] == ["a", "c"]
    assert [s.content for s in sections] == ["first", "third"]


def test_search_is_case_insensitive_and_literal():
    headings = [
        HeadingSpec(label="CAUSES OF ACTION (COUNT I)", section_id="claims"),
    ]

    sections = split_sections("Causes of Action (Count I)\nNegligence.", headings)

    assert sections[0].id == "claims"
    assert sections[0].content == "Negligence."


def test_last_found_heading_runs_to_end_of_text():
    sections = split_sections("INTRODUCTION\nOne\n\nTwo\n\n", [INTRO])

    assert sections[0].content == "One\n\nTwo"


def test_heading_search_restarts_from_beginning():
    # "parties" appears in the introduction body before the PARTIES heading,
    # so the PARTIES section starts there.
    text = "INTRODUCTION\nThe parties agree.\nPARTIES\nPlaintiff Jane Doe."

    sections = split_sections(text, [INTRO, PARTIES])

    assert sections[0].content == "The"
    assert sections[1].content == "agree.\nPARTIES\nPlaintiff Jane Doe."


def test_full_complaint_headings():
    text = "\n".join(f"{h.label}\nBody of {h.section_id}." for h in COMPLAINT_HEADINGS)

    sections = split_sections(text, COMPLAINT_HEADINGS)

    assert [s.id for s in sections] == [h.section_id for h in COMPLAINT_HEADINGS]
    for section in sections:
        assert section.content == f"Body of {section.id}."
