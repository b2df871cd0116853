"""Kitchen request and production log schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from tabill.models.kitchen import KitchenRequestStatus


class KitchenRequestLineCreate(BaseModel):
    inventory_item_id: int
    quantity: float = Field(..., gt=0)


class KitchenRequestCreate(BaseModel):
    requesting_staff_name: str = Field(..., min_length=1, max_length=200)
    lines: List[KitchenRequestLineCreate] = Field(..., min_length=1)
    notes: Optional[str] = None


class KitchenRequestLineResponse(BaseModel):
    id: int
    inventory_item_id: Optional[int] = None
    item_name: str
    quantity: float
    unit: str

    model_config = {"from_attributes": True}


class KitchenRequestResponse(BaseModel):
    id: int
    requesting_staff_name: str
    status: KitchenRequestStatus
    request_date: datetime
    fulfilled_date: Optional[datetime] = None
    notes: Optional[str] = None
    lines: List[KitchenRequestLineResponse] = []

    model_config = {"from_attributes": True}


class ProductionLogCreate(BaseModel):
    chef_id: Optional[int] = None
    chef_name: str = Field(..., min_length=1, max_length=200)
    menu_item_id: int
    variant_id: int
    quantity: int = Field(..., gt=0, strict=True)


class ProductionLogResponse(BaseModel):
    id: int
    chef_id: Optional[int] = None
    chef_name: str
    menu_item_id: int
    variant_id: int
    menu_item_name: str
    variant_name: str
    quantity_produced: int
    cost_of_production: float
    production_date: datetime

    model_config = {"from_attributes": True}
