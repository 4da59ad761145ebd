"""Workflow API: sessions, facts, candidate matches and enrichment."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from specter.core.exceptions import SearchError
from specter.core.fact_extraction import extract_facts
from specter.core.logging import get_logger
from specter.core.schemas_draft import DraftSection, Fact
from specter.core.schemas_matches import CandidateMatch
from specter.core.serpapi_service import build_search_query, search_class_actions
from specter.services.workflow import SpecterEngine, WorkflowSession, get_engine

logger = get_logger(__name__)

router = APIRouter()


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateWorkflowRequest(CamelModel):
    facts: list[Fact] = []


class FactsRequest(CamelModel):
    facts: list[Fact]


class ExtractFactsRequest(CamelModel):
    """Text already extracted from the uploaded evidence document."""

    text: str = Field(..., min_length=1)


class SearchRequest(CamelModel):
    query: str | None = Field(default=None, description="Overrides the fact-derived query")
    limit: int | None = Field(default=None, ge=1, le=20)


class SelectMatchRequest(CamelModel):
    match_id: str | None = Field(default=None, description="None clears the selection")


class WorkflowResponse(CamelModel):
    id: str
    facts: list[Fact]
    matches: list[CandidateMatch]
    selected_match_id: str | None
    sections: list[DraftSection]


class SearchResponse(CamelModel):
    query: str
    matches: list[CandidateMatch]


class EnrichResponse(CamelModel):
    contexts: dict[str, dict[str, Any]]
    fetched: list[str]
    failed: list[str]
    reused: list[str]
    cancelled: list[str]


def get_workflow(engine: SpecterEngine, workflow_id: str) -> WorkflowSession:
    """Look up a workflow session or raise 404."""
    session = engine.workflows.get(workflow_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Workflow not found: {workflow_id}")
    return session


def _to_response(session: WorkflowSession) -> WorkflowResponse:
    return WorkflowResponse(
        id=session.id,
        facts=session.facts,
        matches=session.matches,
        selected_match_id=session.selected_match_id,
        sections=list(session.document.snapshot()),
    )


@router.post("/workflows", status_code=201)
async def create_workflow(
    request: CreateWorkflowRequest | None = None,
    engine: SpecterEngine = Depends(get_engine),
) -> WorkflowResponse:
    """Start a new wizard session, optionally seeded with facts."""
    session = engine.workflows.create(request.facts if request else None)
    return _to_response(session)


@router.get("/workflows/{workflow_id}")
async def read_workflow(
    workflow_id: str,
    engine: SpecterEngine = Depends(get_engine),
) -> WorkflowResponse:
    return _to_response(get_workflow(engine, workflow_id))


@router.put("/workflows/{workflow_id}/facts")
async def replace_facts(
    workflow_id: str,
    request: FactsRequest,
    engine: SpecterEngine = Depends(get_engine),
) -> WorkflowResponse:
    """Replace the session's facts with the user-reviewed list."""
    session = get_workflow(engine, workflow_id)
    session.facts = list(request.facts)
    return _to_response(session)


@router.post("/workflows/{workflow_id}/facts/extract")
async def extract_workflow_facts(
    workflow_id: str,
    request: ExtractFactsRequest,
    engine: SpecterEngine = Depends(get_engine),
) -> WorkflowResponse:
    """
    Extract facts from evidence text into the session.

    Args:
        workflow_id: Workflow session id
        request: Plain text of the evidence document

    Returns:
        The updated workflow
    """
    session = get_workflow(engine, workflow_id)
    session.facts = extract_facts(request.text)
    logger.info(f"Workflow {workflow_id}: extracted {len(session.facts)} facts")
    return _to_response(session)


@router.post("/workflows/{workflow_id}/matches/search")
async def search_matches(
    workflow_id: str,
    request: SearchRequest,
    engine: SpecterEngine = Depends(get_engine),
) -> SearchResponse:
    """
    Search for class actions matching the session's facts.

    Replaces the session's candidate matches and clears the selection.

    Raises:
        HTTPException 502: If the search collaborator fails
    """
    session = get_workflow(engine, workflow_id)
    query = (request.query or "").strip() or build_search_query(session.facts)

    try:
        matches = await search_class_actions(query, facts=session.facts, limit=request.limit)
    except SearchError as e:
        logger.error(f"Workflow {workflow_id}: search failed: {e}")
        raise HTTPException(status_code=502, detail=e.message) from e

    session.matches = matches
    session.selected_match_id = None
    return SearchResponse(query=query, matches=matches)


@router.post("/workflows/{workflow_id}/matches/select")
async def select_match(
    workflow_id: str,
    request: SelectMatchRequest,
    engine: SpecterEngine = Depends(get_engine),
) -> WorkflowResponse:
    session = get_workflow(engine, workflow_id)
    if request.match_id is not None and all(m.id != request.match_id for m in session.matches):
        raise HTTPException(status_code=404, detail=f"Match not found: {request.match_id}")

    session.selected_match_id = request.match_id
    return _to_response(session)


@router.post("/workflows/{workflow_id}/matches/enrich")
async def enrich_matches(
    workflow_id: str,
    engine: SpecterEngine = Depends(get_engine),
) -> EnrichResponse:
    """
    Enrich the session's candidate matches.

    Matches already cached are reused; per-match failures come back as
    contexts with an ``error`` field rather than failing the request.
    """
    session = get_workflow(engine, workflow_id)
    run = await engine.coordinator.enrich(session.matches)

    contexts = session.contexts(run.snapshot)
    return EnrichResponse(
        contexts={mid: ctx.to_store() for mid, ctx in contexts.items()},
        fetched=run.fetched_ids,
        failed=run.failed_ids,
        reused=run.reused_ids,
        cancelled=run.cancelled_ids,
    )


@router.get("/enrichment")
async def read_enrichment_cache(engine: SpecterEngine = Depends(get_engine)) -> dict[str, Any]:
    """Current enrichment cache contents keyed by match id."""
    snapshot = engine.cache.snapshot()
    return {
        "loading": engine.coordinator.is_loading,
        "contexts": {mid: ctx.to_store() for mid, ctx in snapshot.items()},
    }
