"""Lookup route: start enrichment of a parsed session."""

from fastapi import APIRouter, BackgroundTasks

from wine_value.web.dependencies import ServiceDep

router = APIRouter(prefix="/api", tags=["lookup"])


@router.post("/lookup/{session_id}", status_code=202)
async def start_lookup(
    session_id: str,
    service: ServiceDep,
    background_tasks: BackgroundTasks,
) -> dict:
    """
    Start looking up prices and ratings for a session.

    Responds immediately; progress is visible through GET /api/wines/{id}.
    A second start while a lookup runs is rejected with 409.
    """
    session = service.begin_lookup(session_id)
    background_tasks.add_task(service.run_lookup, session_id)

    return {
        "message": "Lookup started",
        "session_id": session_id,
        "wine_count": len(session.pending_indices()),
    }
