"""Serve published artifacts."""

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import FileResponse

from reel_render.services.storage_service import get_storage_service

router = APIRouter()

MEDIA_TYPES = {
    ".mp4": "video/mp4",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".srt": "application/x-subrip",
    ".wav": "audio/wav",
    ".aac": "audio/aac",
}


@router.get("/files/{storage_key:path}")
async def get_file(storage_key: str):
    """Serve files from local storage."""
    storage_service = get_storage_service()
    if not storage_service.file_exists(storage_key):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="File not found",
        )

    file_path = storage_service.get_file_path(storage_key)
    media_type = MEDIA_TYPES.get(file_path.suffix.lower(), "application/octet-stream")

    return FileResponse(
        path=str(file_path),
        media_type=media_type,
        filename=file_path.name,
    )
