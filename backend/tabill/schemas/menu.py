"""Menu schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class CategoryResponse(BaseModel):
    id: int
    name: str

    model_config = {"from_attributes": True}


class VariantIn(BaseModel):
    name: str = Field(default="Regular", min_length=1, max_length=100)
    cost_price: float = Field(default=0.0, ge=0)
    selling_price: float = Field(..., ge=0)


def _unique_variant_names(variants: List[VariantIn]) -> List[VariantIn]:
    """Variant names identify a portion within an item and must not repeat."""
    seen = set()
    for variant in variants:
        key = variant.name.strip().lower()
        if key in seen:
            raise ValueError(f"Duplicate variant name: {variant.name!r}")
        seen.add(key)
    return variants


class VariantResponse(BaseModel):
    id: int
    name: str
    cost_price: float
    selling_price: float

    model_config = {"from_attributes": True}


class MenuItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    category: str = Field(..., min_length=1, max_length=100)
    part_number: Optional[str] = None
    chef_id: Optional[int] = None
    variants: List[VariantIn] = Field(default_factory=list)

    @field_validator("variants")
    @classmethod
    def unique_variant_names(cls, v):
        return _unique_variant_names(v)


class MenuItemUpdate(BaseModel):
    """Partial update. When ``variants`` is given it replaces the whole set."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    part_number: Optional[str] = None
    chef_id: Optional[int] = None
    variants: Optional[List[VariantIn]] = None

    @field_validator("variants")
    @classmethod
    def unique_variant_names(cls, v):
        return _unique_variant_names(v) if v is not None else v


class MenuItemResponse(BaseModel):
    id: int
    name: str
    category: str
    part_number: Optional[str] = None
    chef_id: Optional[int] = None
    is_orderable: bool
    variants: List[VariantResponse] = []

    model_config = {"from_attributes": True}
