"""Domain exceptions for the enrichment and drafting pipeline.

Enrichment failures are recorded per match as data and never escape the
coordinator. Generation failures are raised to the caller together with any
partial text. Each exception carries a stable ``error_code`` for logging and
API mapping.
"""


class SpecterError(Exception):
    """Base class for Specter domain errors."""

    error_code = "specter_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.error_code}: {self.message}"


class FetchError(SpecterError):
    """Non-2xx response or network failure while fetching match context."""

    error_code = "fetch_failed"

    def __init__(self, message: str, url: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class MappingError(SpecterError):
    """Collaborator payload had an unexpected shape."""

    error_code = "mapping_failed"


class SearchError(SpecterError):
    """Search collaborator failed or is not configured."""

    error_code = "search_failed"


class GenerationError(SpecterError):
    """Generation stream raised or the endpoint returned an error."""

    error_code = "generation_failed"

    def __init__(self, message: str, partial_text: str = ""):
        super().__init__(message)
        self.partial_text = partial_text


class OperationCancelled(SpecterError):
    """A cancellation token was tripped at a suspension point."""

    error_code = "cancelled"

    def __init__(self, message: str = "Operation cancelled"):
        super().__init__(message)


class SectionNotFoundError(SpecterError):
    """No section with the requested id exists in the document."""

    error_code = "section_not_found"

    def __init__(self, section_id: str):
        super().__init__(f"Section not found: {section_id}")
        self.section_id = section_id


class SectionBusyError(SpecterError):
    """A regeneration for this section is already in flight."""

    error_code = "section_busy"

    def __init__(self, section_id: str):
        super().__init__(f"Section is already being regenerated: {section_id}")
        self.section_id = section_id


class SectionNotEditableError(SpecterError):
    """The section is locked against manual edits."""

    error_code = "section_not_editable"

    def __init__(self, section_id: str):
        super().__init__(f"Section is not editable: {section_id}")
        self.section_id = section_id


class DocumentBusyError(SpecterError):
    """A full draft and a section regeneration would overlap on one document."""

    error_code = "document_busy"
