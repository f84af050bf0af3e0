"""
Pydantic schemas for folders
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from uuid import UUID
from datetime import datetime


class FolderCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)


class FolderUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)


class FolderResponse(BaseModel):
    id: UUID
    user_id: UUID
    name: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
