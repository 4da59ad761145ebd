"""Split generated text into titled sections by heading labels.

Each heading label is searched for case-insensitively, as a literal, from
the start of the text. Note that the scan for every heading restarts at the
beginning of the text regardless of where the previous heading was found,
so a label that also appears earlier in body text (e.g. "parties" inside the
introduction) will match there first.
"""

import re

from specter.core.schemas_draft import DraftSection, HeadingSpec

FALLBACK_SECTION_ID = "draft"
FALLBACK_SECTION_TITLE = "Draft"


def _locate(text: str, label: str) -> tuple[int, int] | None:
    """(start, end) of the first case-insensitive occurrence, or None."""
    match = re.search(re.escape(label), text, flags=re.IGNORECASE)
    if match is None:
        return None
    return match.start(), match.end()


def split_sections(text: str, headings: list[HeadingSpec]) -> list[DraftSection]:
    """
    Partition text into sections in heading order.

    Headings not present in the text produce no section. If no heading is
    present at all, a single fallback section holds the unmodified text.

    Args:
        text: Completed (or live) generated text
        headings: Ordered heading specs; order defines output order

    Returns:
        Ordered list of sections
    """
    found: list[tuple[HeadingSpec, int, int]] = []
    for heading in headings:
        span = _locate(text, heading.label)
        if span is not None:
            found.append((heading, span[0], span[1]))

    if not found:
        return [
            DraftSection(
                id=FALLBACK_SECTION_ID,
                title=FALLBACK_SECTION_TITLE,
                content=text,
                editable=True,
            )
        ]

    sections: list[DraftSection] = []
    for i, (heading, _start, end) in enumerate(found):
        stop = found[i + 1][1] if i + 1 < len(found) else len(text)
        sections.append(
            DraftSection(
                id=heading.section_id,
                title=heading.label,
                content=text[end:stop].strip(),
                editable=heading.editable,
            )
        )
    return sections
