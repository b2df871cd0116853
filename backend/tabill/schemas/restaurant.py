"""Branch and dining table schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class BranchCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    address: Optional[str] = None
    phone: Optional[str] = None


class BranchUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    address: Optional[str] = None
    phone: Optional[str] = None


class BranchResponse(BaseModel):
    id: int
    owner_id: int
    name: str
    address: Optional[str] = None
    phone: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class TableCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    location: Optional[str] = None


class TableUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    location: Optional[str] = None
    status: Optional[str] = None


class TableResponse(BaseModel):
    """Dining table. ``status`` is Occupied whenever a pending order exists."""

    id: int
    name: str
    location: Optional[str] = None
    status: str
    has_pending_order: bool = False

    model_config = {"from_attributes": True}
