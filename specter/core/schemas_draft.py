"""Pydantic schemas for extracted facts and complaint drafts."""

from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Fact(BaseModel):
    """A fact extracted from the user's evidence and reviewed by the user."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    label: str = Field(..., description="What the fact describes, e.g. 'Payment Amount'")
    value: str = Field(..., description="Extracted value")
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    is_edited: bool = Field(default=False, description="Set when the user corrected the value")


class HeadingSpec(BaseModel):
    """A heading label to search for and the section identity it produces."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    label: str = Field(..., min_length=1, description="Literal heading text")
    section_id: str = Field(..., description="Id of the section this heading opens")
    editable: bool = Field(default=True, description="Whether users may edit the section")


class DraftSection(BaseModel):
    """One titled section of a generated complaint."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    title: str
    content: str = ""
    editable: bool = True


class ComplaintDocument(BaseModel):
    """The document model the draft session writes sections into."""

    sections: list[DraftSection] = Field(default_factory=list)

    def get_section(self, section_id: str) -> DraftSection | None:
        for section in self.sections:
            if section.id == section_id:
                return section
        return None

    def replace_sections(self, sections: list[DraftSection]) -> None:
        self.sections = list(sections)

    def snapshot(self) -> tuple[DraftSection, ...]:
        """Copies of the current sections for readers."""
        return tuple(section.model_copy() for section in self.sections)
