"""Pending order and finalized order schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from tabill.models.order import PaymentMethod


class LineAdd(BaseModel):
    menu_item_id: int
    variant_id: int
    quantity: int = 1
    expected_version: Optional[int] = None


class LineSet(BaseModel):
    menu_item_id: int
    variant_id: int
    quantity: int
    expected_version: Optional[int] = None


class LineDelta(BaseModel):
    menu_item_id: int
    variant_id: int
    delta: int
    expected_version: Optional[int] = None


class RatesUpdate(BaseModel):
    # Range is checked by the service so that bad rates are a 400
    sgst_rate: float
    cgst_rate: float
    expected_version: Optional[int] = None


class PendingLineResponse(BaseModel):
    menu_item_id: int
    variant_id: int
    quantity: int
    item_name: str
    variant_name: str
    category: str
    unit_price: float
    line_total: float
    resolved: bool

    model_config = {"from_attributes": True}


class PendingOrderResponse(BaseModel):
    """Draft of a table. ``id`` and ``version`` are null when no draft exists."""

    id: Optional[int] = None
    table_id: int
    version: Optional[int] = None
    sgst_rate: float
    cgst_rate: float
    subtotal: float
    sgst_amount: float
    cgst_amount: float
    total: float
    lines: List[PendingLineResponse] = []

    @classmethod
    def from_view(cls, view) -> "PendingOrderResponse":
        return cls(
            id=view.draft.id if view.draft else None,
            table_id=view.table_id,
            version=view.version,
            sgst_rate=view.sgst_rate,
            cgst_rate=view.cgst_rate,
            subtotal=view.totals.subtotal,
            sgst_amount=view.totals.sgst_amount,
            cgst_amount=view.totals.cgst_amount,
            total=view.totals.total,
            lines=[PendingLineResponse.model_validate(line) for line in view.lines],
        )


class FinalizeRequest(BaseModel):
    payment_method: str = PaymentMethod.CASH
    staff_name: Optional[str] = Field(default=None, max_length=200)
    expected_version: Optional[int] = None


class TakeawayLine(BaseModel):
    menu_item_id: int
    variant_id: int
    quantity: int = 1


class TakeawayRequest(BaseModel):
    lines: List[TakeawayLine] = Field(default_factory=list)
    sgst_rate: Optional[float] = None
    cgst_rate: Optional[float] = None
    payment_method: str = PaymentMethod.CASH
    staff_name: Optional[str] = Field(default=None, max_length=200)


class OrderItemResponse(BaseModel):
    id: int
    menu_item_id: int
    variant_id: int
    item_name: str
    variant_name: str
    quantity: int
    unit_price: float
    total_price: float

    model_config = {"from_attributes": True}


class OrderResponse(BaseModel):
    id: int
    order_number: str
    table_id: Optional[int] = None
    order_type: str
    subtotal: float
    sgst_rate: float
    cgst_rate: float
    sgst_amount: float
    cgst_amount: float
    total: float
    payment_status: str
    payment_method: Optional[str] = None
    status: str
    staff_name: Optional[str] = None
    order_date: datetime
    items: List[OrderItemResponse] = []

    model_config = {"from_attributes": True}
