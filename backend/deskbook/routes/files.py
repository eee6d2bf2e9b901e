"""
DeskBook Backend - Stored Photo Route
=======================================

What:  GET /files/{path} serves photos written by LocalImageHost.
How:   The path is resolved against STORAGE_ROOT and must stay inside it;
       the media type is guessed from the extension.
"""

from pathlib import Path

from fastapi import APIRouter
from fastapi.responses import FileResponse

from deskbook.config import settings
from deskbook.exceptions import NotFoundError, ValidationError

router = APIRouter(tags=["Files"])


@router.get(
    "/files/{file_path:path}",
    summary="Serve a stored photo",
    responses={
        200: {"description": "Image file"},
        400: {"description": "Path outside the storage root"},
        404: {"description": "File not found"},
    },
)
async def serve_file(file_path: str) -> FileResponse:
    storage_root = Path(settings.storage_root).resolve()
    full_path = (storage_root / file_path).resolve()

    # ../ segments must not escape the storage root
    if not full_path.is_relative_to(storage_root):
        raise ValidationError(message="Invalid file path", field="file_path")

    if not full_path.is_file():
        raise NotFoundError(resource="file", resource_id=file_path)

    return FileResponse(
        path=str(full_path),
        headers={"Cache-Control": "public, max-age=86400"},
    )
