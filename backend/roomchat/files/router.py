"""FastAPI router for file upload and download endpoints."""
import logging

from fastapi import APIRouter, File, HTTPException, UploadFile
from fastapi.responses import FileResponse

from roomchat.config import get_config

from .schemas import UploadResponse
from .service import BlobStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["files"])


def get_blob_store() -> BlobStore:
    """Return the process blob store configured from settings."""
    uploads = get_config().uploads
    return BlobStore.get_instance(
        uploads.upload_dir, uploads.public_prefix, uploads.max_file_size_bytes
    )


@router.post("/upload", response_model=UploadResponse)
async def upload_file(file: UploadFile = File(...)) -> UploadResponse:
    """Upload a file (attachment, room background or avatar).

    The returned URL is what clients put in ``fileMessage``,
    ``backgroundChange`` and ``avatarChange`` events.

    Raises:
        HTTPException 413: If file exceeds the configured size limit
        HTTPException 500: If the file cannot be written
    """
    content = await file.read()
    try:
        url = get_blob_store().store(content, file.filename or "")
    except ValueError as e:
        raise HTTPException(status_code=413, detail=str(e))
    except OSError as e:
        logger.error(f"File upload failed: {e}")
        raise HTTPException(status_code=500, detail=f"Upload failed: {str(e)}")

    logger.info(f"File uploaded: {file.filename} ({len(content)} bytes) -> {url}")
    return UploadResponse(url=url)


@router.get("/uploads/{filename}")
async def download_file(filename: str):
    """Serve a previously uploaded file.

    Raises:
        HTTPException 404: If file not found
    """
    file_path = get_blob_store().get_path(filename)
    if not file_path:
        raise HTTPException(status_code=404, detail="File not found")
    return FileResponse(path=file_path)
