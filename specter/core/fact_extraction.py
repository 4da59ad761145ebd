"""Rule-based fact extraction from evidence text.

Works on text already pulled out of the uploaded document by the text
extraction collaborator. Each rule yields at most one fact.
"""

import re

from specter.core.logging import get_logger
from specter.core.schemas_draft import Fact

logger = get_logger(__name__)

_DATE = r"\d{1,2}[-/]\d{1,2}[-/]\d{2,4}"

LEASE_PERIOD_RE = re.compile(
    rf"(?:lease\s+period:|from\s+)?\s*({_DATE})\s*(?:to|through|-)\s*({_DATE})", re.I
)
AGREEMENT_TYPE_RE = re.compile(
    r"(?:LEASE[- ]?CONTRACT|BUY[- ]?OUT[- ]?AGREEMENT|RENTAL[- ]?AGREEMENT)[^\n.]*", re.I
)
FORM_NUMBER_RE = re.compile(r"(?:form|document)[- ]?(?:number|id|#)?[- ]?(\d+)", re.I)
PROPERTY_RE = re.compile(r"(?:property|premises|asset)[^\n.]+", re.I)
MONEY_RE = re.compile(r"\$\s*[\d,]+(?:\.\d{2})?")


def extract_facts(text: str) -> list[Fact]:
    """
    Extract key facts from document text.

    Args:
        text: Plain text of the evidence document

    Returns:
        Facts in a fixed order: lease period, agreement type, form number,
        property description, payment amount (absent ones skipped)
    """
    facts: list[Fact] = []

    lease = LEASE_PERIOD_RE.search(text)
    if lease:
        facts.append(
            Fact(label="Lease Period", value=f"{lease.group(1)} to {lease.group(2)}", confidence=0.95)
        )

    agreement = AGREEMENT_TYPE_RE.search(text)
    if agreement:
        facts.append(Fact(label="Agreement Type", value=agreement.group(0).strip(), confidence=0.92))

    form_number = FORM_NUMBER_RE.search(text)
    if form_number:
        facts.append(Fact(label="Form Number", value=form_number.group(1), confidence=0.97))

    prop = PROPERTY_RE.search(text)
    if prop:
        facts.append(Fact(label="Property Description", value=prop.group(0).strip(), confidence=0.85))

    money = MONEY_RE.search(text)
    if money:
        facts.append(Fact(label="Payment Amount", value=money.group(0), confidence=0.88))

    logger.debug(f"Extracted {len(facts)} facts from {len(text)} chars")
    return facts
