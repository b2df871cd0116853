"""Catalog lookup - resolves (menu item, variant) pairs to names and prices."""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from tabill.core.exceptions import NotFoundError
from tabill.core.tenancy import TenantContext
from tabill.models.menu import MenuItem, MenuItemVariant

logger = logging.getLogger(__name__)

# Placeholders for lines whose item or variant has been deleted
MISSING_ITEM_NAME = "Item"
MISSING_VARIANT_NAME = "Regular"
UNCATEGORIZED = "Uncategorized"


@dataclass(frozen=True)
class CatalogEntry:
    menu_item_id: int
    variant_id: int
    display_name: str
    variant_name: str
    category: str
    unit_price: float
    cost_price: float
    resolved: bool


class CatalogService:
    """Read-only view of a branch menu."""

    def __init__(self, db: Session, ctx: TenantContext):
        self.db = db
        self.ctx = ctx

    def resolve(self, pairs: Iterable[Tuple[int, int]]) -> Dict[Tuple[int, int], CatalogEntry]:
        """Resolve a batch of (menu_item_id, variant_id) pairs.

        Missing rows never fail the batch; their entry is returned with
        ``resolved=False``, zero price and placeholder names.
        """
        pairs = list(dict.fromkeys(pairs))
        if not pairs:
            return {}

        item_ids = {item_id for item_id, _ in pairs}
        variant_ids = {variant_id for _, variant_id in pairs}

        items = {
            item.id: item
            for item in self.db.query(MenuItem)
            .filter(*MenuItem.scoped(self.ctx), MenuItem.id.in_(item_ids))
            .all()
        }
        variants = {
            variant.id: variant
            for variant in self.db.query(MenuItemVariant)
            .filter(MenuItemVariant.id.in_(variant_ids))
            .all()
        }

        resolved = {}
        for item_id, variant_id in pairs:
            item = items.get(item_id)
            variant = variants.get(variant_id)
            # A variant only counts when it belongs to the requested item
            if variant is not None and variant.menu_item_id != item_id:
                variant = None

            if item is None or variant is None:
                logger.debug(f"Unresolved catalog reference item={item_id} variant={variant_id}")

            resolved[(item_id, variant_id)] = CatalogEntry(
                menu_item_id=item_id,
                variant_id=variant_id,
                display_name=item.name if item else MISSING_ITEM_NAME,
                variant_name=variant.name if variant else MISSING_VARIANT_NAME,
                category=item.category if item else UNCATEGORIZED,
                unit_price=float(variant.selling_price) if item and variant else 0.0,
                cost_price=float(variant.cost_price or 0) if item and variant else 0.0,
                resolved=item is not None and variant is not None,
            )
        return resolved

    def lookup(self, menu_item_id: int, variant_id: int) -> CatalogEntry:
        return self.resolve([(menu_item_id, variant_id)])[(menu_item_id, variant_id)]

    def require(self, menu_item_id: int, variant_id: int) -> CatalogEntry:
        """Like ``lookup`` but raise NotFoundError for a missing item or variant."""
        entry = self.lookup(menu_item_id, variant_id)
        if not entry.resolved:
            raise NotFoundError(
                f"Menu item {menu_item_id} with variant {variant_id} not found"
            )
        return entry

    def list_menu(
        self,
        category: Optional[str] = None,
        search: Optional[str] = None,
        orderable_only: bool = False,
    ) -> List[MenuItem]:
        """List branch menu items with their variants.

        ``search`` matches name or part number, case-insensitively.
        """
        query = (
            self.db.query(MenuItem)
            .options(selectinload(MenuItem.variants))
            .filter(*MenuItem.scoped(self.ctx))
        )
        if category and category.lower() != "all":
            query = query.filter(MenuItem.category == category)
        if search:
            pattern = f"%{search.strip().lower()}%"
            query = query.filter(
                or_(
                    MenuItem.name.ilike(pattern),
                    MenuItem.part_number.ilike(pattern),
                )
            )

        items = query.order_by(MenuItem.name, MenuItem.id).all()
        if orderable_only:
            items = [item for item in items if item.is_orderable]
        return items

    def get_item(self, item_id: int) -> MenuItem:
        item = (
            self.db.query(MenuItem)
            .options(selectinload(MenuItem.variants))
            .filter(*MenuItem.scoped(self.ctx), MenuItem.id == item_id)
            .first()
        )
        if not item:
            raise NotFoundError("Menu item not found")
        return item
