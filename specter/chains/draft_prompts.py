"""Prompts and canonical headings for complaint drafting."""

import json
from collections.abc import Mapping

from specter.core.schemas_draft import DraftSection, Fact, HeadingSpec
from specter.core.schemas_matches import CandidateMatch, EnrichmentContext

# Order defines the order of sections in the drafted complaint
COMPLAINT_HEADINGS: list[HeadingSpec] = [
    HeadingSpec(label="COMPLAINT", section_id="section-caption"),
    HeadingSpec(label="INTRODUCTION", section_id="section-intro"),
    HeadingSpec(label="PARTIES", section_id="section-parties"),
    HeadingSpec(label="JURISDICTION AND VENUE", section_id="section-jurisdiction", editable=False),
    HeadingSpec(label="FACTUAL ALLEGATIONS", section_id="section-facts"),
    HeadingSpec(label="CLASS ACTION ALLEGATIONS", section_id="section-class", editable=False),
    HeadingSpec(label="CAUSES OF ACTION", section_id="section-claims"),
    HeadingSpec(label="PRAYER FOR RELIEF", section_id="section-prayer", editable=False),
]

# Body text of scraped pages is long; keep the prompt bounded
MAX_CONTEXT_BODY_CHARS = 2000

CONTEXT_FIELDS: list[tuple[str, str]] = [
    ("title", "Title"),
    ("summary", "Summary"),
    ("status", "Status"),
    ("payout", "Payout"),
    ("participants", "Participants"),
    ("deadline", "Deadline"),
    ("law_firm", "Law firm"),
    ("eligibility", "Eligibility"),
    ("case_number", "Case number"),
    ("court_info", "Court"),
]

DRAFT_SYSTEM = """You are an experienced class-action litigator drafting a federal civil complaint.

Rules:
- Use ONLY the facts and related-case context provided; never invent names, dates or amounts
- Write each section heading exactly as given, in uppercase, on its own line
- Do not use markdown heading markers (#) before headings
- Number paragraphs consecutively across sections
- Plain text or light markdown only"""

FULL_DRAFT_USER = """<facts>
{facts_json}
</facts>

<selected_case>
{selected_case}
</selected_case>

<related_cases>
{related_cases}
</related_cases>

Draft the complete complaint. Use these section headings, in this order:
{heading_list}"""

SECTION_USER = """<facts>
{facts_json}
</facts>

<related_cases>
{related_cases}
</related_cases>

<current_section>
{current_content}
</current_section>

Rewrite only the "{title}" section of the complaint. Start your answer with the heading "{title}" on its own line, followed by the section text. Do not write any other section."""


def _facts_json(facts: list[Fact]) -> str:
    return json.dumps([{"label": f.label, "value": f.value} for f in facts], indent=2)


def render_context(match_id: str, context: EnrichmentContext) -> str:
    """Render one enrichment context as a prompt block. Error contexts render empty."""
    if context.is_error:
        return ""

    lines = [f"Case {match_id}:"]
    for attr, label in CONTEXT_FIELDS:
        value = getattr(context, attr)
        if value:
            lines.append(f"- {label}: {value}")
    if context.body_text:
        body = context.body_text[:MAX_CONTEXT_BODY_CHARS]
        lines.append(f"- Page excerpt: {body}")
    return "\n".join(lines) if len(lines) > 1 else ""


def render_contexts(contexts: Mapping[str, EnrichmentContext]) -> str:
    blocks = [render_context(mid, ctx) for mid, ctx in contexts.items()]
    blocks = [b for b in blocks if b]
    return "\n\n".join(blocks) if blocks else "None available."


def _render_selected(match: CandidateMatch | None) -> str:
    if match is None:
        return "None selected; this complaint starts a new class action."
    return f"{match.name}\n{match.description}\nSource: {match.source_url or 'n/a'}"


def build_full_draft_messages(
    facts: list[Fact],
    contexts: Mapping[str, EnrichmentContext],
    headings: list[HeadingSpec],
    selected_match: CandidateMatch | None = None,
) -> list[dict[str, str]]:
    """Messages for drafting the whole complaint in one generation call."""
    user = FULL_DRAFT_USER.format(
        facts_json=_facts_json(facts),
        selected_case=_render_selected(selected_match),
        related_cases=render_contexts(contexts),
        heading_list="\n".join(h.label for h in headings),
    )
    return [
        {"role": "system", "content": DRAFT_SYSTEM},
        {"role": "user", "content": user},
    ]


def build_section_messages(
    section: DraftSection,
    facts: list[Fact],
    contexts: Mapping[str, EnrichmentContext],
) -> list[dict[str, str]]:
    """Messages for regenerating exactly one existing section."""
    user = SECTION_USER.format(
        facts_json=_facts_json(facts),
        related_cases=render_contexts(contexts),
        current_content=section.content or "(empty)",
        title=section.title,
    )
    return [
        {"role": "system", "content": DRAFT_SYSTEM},
        {"role": "user", "content": user},
    ]
