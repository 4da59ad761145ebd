"""API router for v1 endpoints."""

from fastapi import APIRouter

from specter.api import complaint, workflows

router = APIRouter()

# Wizard state, fact extraction, search and enrichment
router.include_router(workflows.router, tags=["workflows"])

# Complaint drafting and section regeneration (SSE)
router.include_router(complaint.router, tags=["complaint"])
