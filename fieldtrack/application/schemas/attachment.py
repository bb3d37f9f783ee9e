"""Pydantic DTOs for attachment records."""

from pydantic import BaseModel, Field


class AttachmentCreate(BaseModel):
    """Schema for inserting an attachment record after a successful upload."""

    owner_id: int = Field(..., gt=0)
    storage_path: str = Field(..., min_length=1)
    created_by: str
