"""Menu routes - categories, items and variants."""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request, status

from tabill.core.config import settings
from tabill.core.exceptions import TabillError, to_http_exception
from tabill.core.rate_limit import limiter
from tabill.core.responses import list_response
from tabill.core.tenancy import CurrentTenant
from tabill.db.session import DbSession
from tabill.models.menu import Category, MenuItem, MenuItemVariant
from tabill.schemas.menu import (
    CategoryCreate,
    CategoryResponse,
    MenuItemCreate,
    MenuItemResponse,
    MenuItemUpdate,
)
from tabill.services.catalog_service import CatalogService

router = APIRouter()


# ============== CATEGORIES ==============

@router.get("/categories")
def list_categories(db: DbSession, ctx: CurrentTenant):
    categories = db.query(Category).filter(*Category.scoped(ctx)).order_by(Category.name).all()
    return list_response([CategoryResponse.model_validate(c).model_dump() for c in categories])


@router.post("/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_default)
def create_category(request: Request, db: DbSession, ctx: CurrentTenant, body: CategoryCreate):
    name = body.name.strip()
    exists = db.query(Category.id).filter(*Category.scoped(ctx), Category.name == name).first()
    if exists:
        raise HTTPException(status_code=400, detail=f"Category '{name}' already exists")

    category = Category(owner_id=ctx.owner_id, branch_id=ctx.branch_id, name=name)
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(settings.rate_limit_default)
def delete_category(request: Request, category_id: int, db: DbSession, ctx: CurrentTenant):
    """Delete a category label. Items keep their category text."""
    category = db.query(Category).filter(*Category.scoped(ctx), Category.id == category_id).first()
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    db.delete(category)
    db.commit()


# ============== ITEMS ==============

@router.get("/items")
def list_menu_items(
    db: DbSession,
    ctx: CurrentTenant,
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    orderable_only: bool = Query(False),
):
    """List menu items with variants, filtered by category and name/part number."""
    items = CatalogService(db, ctx).list_menu(
        category=category, search=search, orderable_only=orderable_only
    )
    return list_response([MenuItemResponse.model_validate(i).model_dump() for i in items])


@router.post("/items", response_model=MenuItemResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_default)
def create_menu_item(request: Request, db: DbSession, ctx: CurrentTenant, body: MenuItemCreate):
    item = MenuItem(
        owner_id=ctx.owner_id,
        branch_id=ctx.branch_id,
        name=body.name,
        category=body.category,
        part_number=body.part_number,
        chef_id=body.chef_id,
        variants=[MenuItemVariant(**v.model_dump()) for v in body.variants],
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


@router.get("/items/{item_id}", response_model=MenuItemResponse)
def get_menu_item(item_id: int, db: DbSession, ctx: CurrentTenant):
    try:
        return CatalogService(db, ctx).get_item(item_id)
    except TabillError as e:
        raise to_http_exception(e)


@router.put("/items/{item_id}", response_model=MenuItemResponse)
@limiter.limit(settings.rate_limit_default)
def update_menu_item(
    request: Request, item_id: int, db: DbSession, ctx: CurrentTenant, body: MenuItemUpdate
):
    """Update a menu item. A ``variants`` list replaces all existing variants.

    Finalized orders are unaffected; pending lines that pointed at a removed
    variant become unresolved.
    """
    try:
        item = CatalogService(db, ctx).get_item(item_id)
    except TabillError as e:
        raise to_http_exception(e)

    data = body.model_dump(exclude_unset=True)
    variants = data.pop("variants", None)
    for field, value in data.items():
        if value is not None:
            setattr(item, field, value)

    if variants is not None:
        # Keep ids of variants whose name survives so open drafts still resolve
        existing = {}
        for v in item.variants:
            existing.setdefault(v.name, []).append(v)
        kept = []
        for v in variants:
            same_name = existing.get(v["name"])
            variant = same_name.pop(0) if same_name else None
            if variant is None:
                variant = MenuItemVariant(name=v["name"])
            variant.cost_price = v["cost_price"]
            variant.selling_price = v["selling_price"]
            kept.append(variant)
        item.variants = kept

    db.commit()
    db.refresh(item)
    return item


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(settings.rate_limit_default)
def delete_menu_item(request: Request, item_id: int, db: DbSession, ctx: CurrentTenant):
    try:
        item = CatalogService(db, ctx).get_item(item_id)
    except TabillError as e:
        raise to_http_exception(e)
    db.delete(item)
    db.commit()
