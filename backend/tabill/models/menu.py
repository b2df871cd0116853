"""Menu models - categories, items and their priced variants."""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from tabill.db.base import Base, TenantMixin, TimestampMixin
from tabill.models.validators import non_negative


class Category(Base, TenantMixin, TimestampMixin):
    """Menu category label."""

    __tablename__ = "categories"
    __table_args__ = (
        UniqueConstraint("owner_id", "branch_id", "name", name="uq_categories_tenant_name"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)


class MenuItem(Base, TenantMixin, TimestampMixin):
    """Menu item for ordering. Orderable only while it has at least one variant."""

    __tablename__ = "menu_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    part_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    chef_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    variants: Mapped[List["MenuItemVariant"]] = relationship(
        "MenuItemVariant",
        back_populates="menu_item",
        cascade="all, delete-orphan",
        order_by="MenuItemVariant.id",
    )

    @property
    def is_orderable(self) -> bool:
        return len(self.variants) > 0


class MenuItemVariant(Base, TimestampMixin):
    """A priced portion of a menu item ("Half", "Full", "Regular")."""

    __tablename__ = "menu_item_variants"

    id: Mapped[int] = mapped_column(primary_key=True)
    menu_item_id: Mapped[int] = mapped_column(
        ForeignKey("menu_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False, default="Regular")
    cost_price: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    selling_price: Mapped[float] = mapped_column(Float, nullable=False)

    menu_item: Mapped["MenuItem"] = relationship("MenuItem", back_populates="variants")

    @validates("cost_price", "selling_price")
    def _validate_price(self, key, value):
        return non_negative(key, value)
