"""Upload route: accept a wine list file and parse it in the background."""

import tempfile
from pathlib import Path
from uuid import uuid4

from fastapi import APIRouter, BackgroundTasks, File, HTTPException, UploadFile

from wine_value.core.errors import UnsupportedFileTypeError
from wine_value.services.ai.document_parser import SUPPORTED_EXTENSIONS
from wine_value.web.dependencies import ConfigDep, ServiceDep

router = APIRouter(prefix="/api", tags=["upload"])


def _upload_dir(configured: str) -> Path:
    """Directory for uploaded files (a temp subdirectory unless configured)."""
    path = Path(configured) if configured else Path(tempfile.gettempdir()) / "wine-value-uploads"
    path.mkdir(parents=True, exist_ok=True)
    return path


@router.post("/upload", status_code=202)
async def upload_wine_list(
    service: ServiceDep,
    config: ConfigDep,
    background_tasks: BackgroundTasks,
    winelist: UploadFile = File(...),
) -> dict:
    """
    Upload a wine list (PDF or image) and start parsing it.

    Returns:
        The new session id; poll GET /api/wines/{id} for the parse result.
    """
    extension = Path(winelist.filename or "").suffix.lower()
    if extension not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFileTypeError(extension)

    content = await winelist.read()
    max_bytes = config.upload.max_file_size_mb * 1024 * 1024
    if len(content) > max_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File too large (max {config.upload.max_file_size_mb} MB)",
        )
    if not content:
        raise HTTPException(status_code=400, detail="No file uploaded")

    file_path = _upload_dir(config.upload.upload_dir) / f"{uuid4()}{extension}"
    file_path.write_bytes(content)

    session = service.create_session()
    background_tasks.add_task(service.parse_upload, session.id, file_path, True)

    return {"session_id": session.id, "status": session.status.value}
