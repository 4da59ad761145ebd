"""Complaint drafting API with SSE streaming.

SSE Event Types:
- type: 'snapshot' - One streamed fragment plus the accumulated text
- type: 'sections' - Full draft split into sections (draft endpoint)
- type: 'section' - The regenerated section (regenerate endpoint)
- type: 'done' - Stream complete
- type: 'error' - Generation failed; document state is unchanged
"""

import asyncio
import json
from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from specter.api.workflows import get_workflow
from specter.core.cancellation import CancellationToken
from specter.core.exceptions import (
    GenerationError,
    SectionNotEditableError,
    SectionNotFoundError,
    SpecterError,
)
from specter.core.logging import get_logger
from specter.core.schemas_draft import DraftSection
from specter.core.token_stream import SnapshotObserver, StreamSnapshot
from specter.services.workflow import SpecterEngine, get_engine

logger = get_logger(__name__)

router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable nginx buffering
}


class SectionEditRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    content: str


def _sse(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload)}\n\n"


def _snapshot_event(snapshot: StreamSnapshot) -> dict[str, Any]:
    return {
        "type": "snapshot",
        "index": snapshot.index,
        "fragment": snapshot.fragment,
        "text": snapshot.text,
    }


async def _stream_generation(
    run: Callable[[SnapshotObserver, CancellationToken], Awaitable[Any]],
    on_result: Callable[[Any], dict[str, Any]],
    label: str,
) -> AsyncGenerator[str, None]:
    """
    Run a generation task and relay its snapshots as SSE events.

    The task reports snapshots through an observer callback; they are queued
    and drained here so the response streams while generation is running.
    Closing the response trips the cancellation token.
    """
    queue: asyncio.Queue[StreamSnapshot | None] = asyncio.Queue()
    cancel = CancellationToken()

    def observer(snapshot: StreamSnapshot) -> None:
        if not snapshot.is_complete:
            queue.put_nowait(snapshot)

    task = asyncio.create_task(run(observer, cancel))
    task.add_done_callback(lambda _: queue.put_nowait(None))

    try:
        while (snapshot := await queue.get()) is not None:
            yield _sse(_snapshot_event(snapshot))

        result = task.result()
        yield _sse(on_result(result))
        yield _sse({"type": "done"})

    except GenerationError as e:
        logger.error(f"{label} failed: {e}")
        yield _sse({"type": "error", "message": e.message, "partialText": e.partial_text})
    except SpecterError as e:
        logger.error(f"{label} failed: {e}")
        yield _sse({"type": "error", "message": e.message})
    except Exception as e:
        logger.error(f"Error in {label} stream: {e}", exc_info=True)
        yield _sse({"type": "error", "message": str(e)})
    finally:
        if not task.done():
            cancel.cancel("Client disconnected")
            task.cancel()


@router.post("/workflows/{workflow_id}/draft")
async def draft_complaint(
    workflow_id: str,
    engine: SpecterEngine = Depends(get_engine),
) -> StreamingResponse:
    """
    Generate the full complaint for a workflow.

    Streams snapshots while generating, then the split sections. The
    workflow's sections are replaced only if generation succeeds.

    Args:
        workflow_id: Workflow session id

    Returns:
        StreamingResponse with Server-Sent Events

    Raises:
        HTTPException 404: Unknown workflow
        HTTPException 409: A draft or section regeneration is in flight
    """
    session = get_workflow(engine, workflow_id)
    busy = engine.drafts.regenerating_sections(session.document)
    if busy or engine.drafts.is_drafting(session.document):
        raise HTTPException(status_code=409, detail="Complaint is already being generated")

    contexts = session.contexts(engine.cache.snapshot())

    def run(observer: SnapshotObserver, cancel: CancellationToken):
        return engine.drafts.generate_full_draft(
            session.document,
            session.facts,
            contexts,
            selected_match=session.selected_match(),
            observer=observer,
            cancel=cancel,
        )

    def on_result(sections: list[DraftSection]) -> dict[str, Any]:
        return {
            "type": "sections",
            "sections": [s.model_dump(by_alias=True) for s in sections],
        }

    return StreamingResponse(
        _stream_generation(run, on_result, f"Draft for workflow {workflow_id}"),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.post("/workflows/{workflow_id}/sections/{section_id}/regenerate")
async def regenerate_section(
    workflow_id: str,
    section_id: str,
    engine: SpecterEngine = Depends(get_engine),
) -> StreamingResponse:
    """
    Regenerate one section of a workflow's complaint.

    Raises:
        HTTPException 404: Unknown workflow or section
        HTTPException 400: The section is locked
        HTTPException 409: The section or the full draft is already being generated
    """
    session = get_workflow(engine, workflow_id)
    section = session.document.get_section(section_id)
    if section is None:
        raise HTTPException(status_code=404, detail=f"Section not found: {section_id}")
    if not section.editable:
        raise HTTPException(status_code=400, detail=f"Section is not editable: {section_id}")
    if engine.drafts.is_drafting(session.document):
        raise HTTPException(status_code=409, detail="Complaint is already being generated")
    if engine.drafts.is_regenerating(session.document, section_id):
        raise HTTPException(
            status_code=409, detail=f"Section is already being regenerated: {section_id}"
        )

    contexts = session.contexts(engine.cache.snapshot())

    def run(observer: SnapshotObserver, cancel: CancellationToken):
        return engine.drafts.regenerate_section(
            session.document,
            section_id,
            session.facts,
            contexts,
            observer=observer,
            cancel=cancel,
        )

    def on_result(section: DraftSection) -> dict[str, Any]:
        return {"type": "section", "section": section.model_dump(by_alias=True)}

    return StreamingResponse(
        _stream_generation(run, on_result, f"Regeneration of {section_id}"),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.patch("/workflows/{workflow_id}/sections/{section_id}")
async def edit_section(
    workflow_id: str,
    section_id: str,
    request: SectionEditRequest,
    engine: SpecterEngine = Depends(get_engine),
) -> DraftSection:
    """Manually edit an editable section."""
    session = get_workflow(engine, workflow_id)
    if engine.drafts.is_regenerating(session.document, section_id):
        raise HTTPException(
            status_code=409, detail=f"Section is being regenerated: {section_id}"
        )

    try:
        return session.edit_section(section_id, request.content)
    except SectionNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message) from e
    except SectionNotEditableError as e:
        raise HTTPException(status_code=400, detail=e.message) from e
