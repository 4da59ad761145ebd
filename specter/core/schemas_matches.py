"""Pydantic schemas for candidate matches and their enrichment context."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CandidateMatch(BaseModel):
    """A candidate class action found by search. Immutable once produced."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str = Field(..., description="Stable match identifier")
    name: str = Field(..., description="Case or settlement name")
    description: str = Field(default="", description="Search snippet or summary")
    confidence_score: float = Field(
        default=0.5, ge=0.0, le=1.0, description="Match confidence in [0, 1]"
    )
    source_url: str | None = Field(default=None, description="Page to enrich from")
    source: str | None = Field(default=None, description="Displayed source domain")
    date_posted: str | None = Field(default=None, description="Date mentioned in the snippet")
    member_count: int | None = Field(default=None, description="Class size mentioned in the snippet")


class EnrichmentContext(BaseModel):
    """Supplementary context fetched for one candidate match.

    When ``error`` is set no other field is trustworthy.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str | None = None
    body_text: str | None = None
    payout: str | None = None
    participants: str | None = None
    deadline: str | None = None
    law_firm: str | None = None
    eligibility: str | None = None
    case_number: str | None = None
    court_info: str | None = None
    summary: str | None = None
    status: str | None = None
    screenshot_ref: str | None = None
    links: list[str] | None = None
    metadata: dict[str, Any] | None = None
    raw_payload: Any | None = None
    error: str | None = None

    @classmethod
    def failed(cls, message: str) -> "EnrichmentContext":
        """Build the error form of a context."""
        return cls(error=message or "Unknown error")

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def to_store(self) -> dict[str, Any]:
        """Serialize for the persisted cache (camelCase, no empty fields)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
