"""Pydantic schemas for file uploads."""
from pydantic import BaseModel, Field


class UploadResponse(BaseModel):
    """Response after a successful upload."""
    url: str = Field(..., description="Public URL of the stored file")
