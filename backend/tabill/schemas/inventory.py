"""Inventory and procurement schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from tabill.models.inventory import ProcurementStatus


class InventoryItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    category: str = "General"
    quantity: float = 0.0
    unit: str = "pcs"
    reorder_level: float = Field(default=0.0, ge=0)


class InventoryItemUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    category: Optional[str] = None
    quantity: Optional[float] = None
    unit: Optional[str] = None
    reorder_level: Optional[float] = Field(default=None, ge=0)


class InventoryItemResponse(BaseModel):
    id: int
    name: str
    category: str
    quantity: float
    unit: str
    reorder_level: float
    low_stock: bool = False
    last_updated: datetime

    model_config = {"from_attributes": True}


class StockAdjustment(BaseModel):
    item_id: int
    delta: float


class StockAdjustRequest(BaseModel):
    adjustments: List[StockAdjustment] = Field(default_factory=list)


class SupplierCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class SupplierUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class SupplierResponse(BaseModel):
    id: int
    name: str
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None

    model_config = {"from_attributes": True}


class ProcurementLineCreate(BaseModel):
    item_id: Optional[int] = None
    item_name: Optional[str] = None
    quantity: float = Field(..., gt=0)
    unit: Optional[str] = None
    price_per_unit: float = Field(..., ge=0)

    @model_validator(mode="after")
    def require_item(self):
        if self.item_id is None and not self.item_name:
            raise ValueError("Either item_id or item_name is required")
        return self


class ProcurementOrderCreate(BaseModel):
    supplier_id: int
    lines: List[ProcurementLineCreate] = Field(..., min_length=1)
    notes: Optional[str] = None


class ProcurementLineResponse(BaseModel):
    id: int
    item_id: Optional[int] = None
    item_name: str
    quantity: float
    unit: str
    price_per_unit: float

    model_config = {"from_attributes": True}


class ProcurementOrderResponse(BaseModel):
    id: int
    supplier_id: Optional[int] = None
    supplier_name: str
    total_amount: float
    status: ProcurementStatus
    order_date: datetime
    received_date: Optional[datetime] = None
    notes: Optional[str] = None
    lines: List[ProcurementLineResponse] = []

    model_config = {"from_attributes": True}
