"""
Pydantic schemas for notes
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List
from uuid import UUID
from datetime import datetime


class NoteCreate(BaseModel):
    title: str = Field(default="Untitled Note", max_length=255)
    content: Optional[str] = None
    color: Optional[str] = Field(default=None, max_length=32)
    tags: Optional[List[str]] = None
    folder_id: Optional[UUID] = None


class NoteUpdate(BaseModel):
    title: Optional[str] = Field(default=None, max_length=255)
    content: Optional[str] = None
    color: Optional[str] = Field(default=None, max_length=32)
    tags: Optional[List[str]] = None

    @field_validator("title")
    @classmethod
    def title_not_null(cls, v: Optional[str]) -> str:
        # Omit the field to leave the title unchanged
        if v is None:
            raise ValueError("title cannot be null")
        return v


class NoteFlagUpdate(BaseModel):
    value: bool = True


class NoteResponse(BaseModel):
    id: UUID
    user_id: UUID
    title: str
    content: Optional[str] = None
    color: Optional[str] = None
    tags: Optional[List[str]] = None
    is_favorite: bool
    is_archived: bool
    is_trashed: bool
    trashed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
