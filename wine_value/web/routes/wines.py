"""Session routes: view, edit and export the wines of a session."""

from typing import Any

from fastapi import APIRouter
from fastapi.responses import Response

from wine_value.core.schema import WineEdit
from wine_value.services.export_service import ExportService
from wine_value.web.dependencies import ServiceDep

router = APIRouter(prefix="/api/wines", tags=["wines"])


@router.get("/{session_id}")
async def get_session(session_id: str, service: ServiceDep) -> dict[str, Any]:
    """
    Get the current snapshot of a session.

    Clients poll this while parsing and lookups run in the background.
    """
    return service.get_session(session_id).model_dump(mode="json")


@router.put("/{session_id}/{index}")
async def edit_wine(
    session_id: str,
    index: int,
    edit: WineEdit,
    service: ServiceDep,
) -> dict[str, Any]:
    """
    Correct a parsed wine.

    Only the fields present in the body change. The wine goes back to
    ``pending`` so the next lookup re-enriches it.
    """
    wine = service.edit_wine(session_id, index, edit)
    return {"success": True, "wine": wine.model_dump(mode="json")}


@router.get("/{session_id}/export")
async def export_session_csv(session_id: str, service: ServiceDep) -> Response:
    """
    Export a session's wines as CSV.

    Returns:
        CSV file download.
    """
    session = service.get_session(session_id)
    export_service = ExportService()

    return Response(
        content=export_service.export_session_csv(session),
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="{export_service.export_filename(session)}"',
        },
    )
