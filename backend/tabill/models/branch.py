"""Branch model."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from tabill.db.base import Base, TimestampMixin


class Branch(Base, TimestampMixin):
    """A restaurant location belonging to one owner.

    The (owner_id, branch id) pair is the tenant context that scopes every
    other table in the system.
    """

    __tablename__ = "branches"

    id: Mapped[int] = mapped_column(primary_key=True)
    owner_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
