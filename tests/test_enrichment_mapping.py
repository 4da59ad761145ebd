"""Tests for mapping context-fetch payloads into EnrichmentContext."""

import json

import pytest

from specter.core.enrichment_mapping import map_enrichment_payload


def test_top_level_object():
    payload = {
        "title": "Acme Data Breach Settlement",
        "markdown": "# Acme\n\nDetails",
        "payout": "$10,000,000",
        "lawFirm": "Doe & Roe LLP",
        "caseNumber": "3:24-cv-01234",
        "links": ["https://acme-settlement.com/claim"],
    }

    context = map_enrichment_payload(payload)

    assert context.title == "Acme Data Breach Settlement"
    assert context.body_text == "# Acme\n\nDetails"
    assert context.payout == "$10,000,000"
    assert context.law_firm == "Doe & Roe LLP"
    assert context.case_number == "3:24-cv-01234"
    assert context.links == ["https://acme-settlement.com/claim"]
    assert context.raw_payload == payload
    assert context.error is None


def test_success_data_envelope():
    payload = {
        "success": True,
        "data": {
            "markdown": "Page text",
            "extract": {"deadline": "March 1, 2025", "courtInfo": "N.D. Cal."},
            "metadata": {"ogTitle": "Widget Settlement"},
            "screenshot": "https://cdn.example.com/shot.png",
        },
    }

    context = map_enrichment_payload(payload)

    assert context.title == "Widget Settlement"
    assert context.deadline == "March 1, 2025"
    assert context.court_info == "N.D. Cal."
    assert context.screenshot_ref == "https://cdn.example.com/shot.png"
    assert context.metadata == {"ogTitle": "Widget Settlement"}


def test_flat_scrape_variant_with_json_string_and_actions():
    payload = {
        "html": "<h1>Case</h1>",
        "json": json.dumps({"title": "Case", "participants": 120000}),
        "links": [{"url": "https://a.example"}, "https://b.example", {"text": "no url"}],
        "actions": {"screenshots": ["first.png", "content.png"]},
    }

    context = map_enrichment_payload(payload)

    assert context.title == "Case"
    assert context.participants == "120000"
    assert context.body_text == "<h1>Case</h1>"
    assert context.links == ["https://a.example", "https://b.example"]
    assert context.screenshot_ref == "content.png"


def test_bare_markdown_string():
    context = map_enrichment_payload("# Heading\n\nBody")

    assert context.body_text == "# Heading\n\nBody"
    assert context.error is None


def test_error_payload():
    context = map_enrichment_payload({"error": "Failed to scrape URL"})

    assert context.is_error
    assert context.error == "Failed to scrape URL"


def test_unsuccessful_envelope_is_error():
    context = map_enrichment_payload({"success": False})

    assert context.error == "Scrape unsuccessful"


def test_raw_field_is_kept_as_raw_payload():
    context = map_enrichment_payload({"title": "T", "raw": {"source": "upstream"}})

    assert context.raw_payload == {"source": "upstream"}


@pytest.mark.parametrize("payload", [None, 42, ["a", "b"], "", {"links": 5, "metadata": "x"}])
def test_unexpected_shapes_never_raise(payload):
    context = map_enrichment_payload(payload)

    assert context.error is None
    assert context.title is None
