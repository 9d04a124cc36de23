"""
Pydantic schemas for knowledge base endpoints
"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class KnowledgeEntryResponse(BaseModel):
    """Knowledge entry as returned by the admin API"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    category: str
    title: str
    content: str
    priority: int
    is_active: bool
    created_at: datetime
    updated_at: datetime


class KnowledgeEntryCreate(BaseModel):
    category: str = Field(..., min_length=1, max_length=100, pattern=r"^[a-z0-9_]+$")
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)
    priority: int = 0


class KnowledgeEntryUpdate(BaseModel):
    """Schema for partial updates; omitted fields are left unchanged"""
    category: Optional[str] = Field(None, min_length=1, max_length=100, pattern=r"^[a-z0-9_]+$")
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    content: Optional[str] = Field(None, min_length=1)
    priority: Optional[int] = None
    is_active: Optional[bool] = None
