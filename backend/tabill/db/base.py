"""SQLAlchemy declarative base and common utilities."""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, func
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column

from tabill.core.exceptions import VersionConflictError


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class TimestampMixin:
    """Mixin for created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class TenantMixin:
    """Owner/branch scoping columns.

    Every tenant-scoped row carries both identifiers and every query filters
    on both. Use ``scoped()`` to build the filter expression.
    """

    owner_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    @declared_attr
    def branch_id(cls) -> Mapped[int]:
        return mapped_column(
            ForeignKey("branches.id", ondelete="CASCADE"), nullable=False, index=True
        )

    @classmethod
    def scoped(cls, ctx):
        """SQLAlchemy filter expressions for a tenant context."""
        return (cls.owner_id == ctx.owner_id, cls.branch_id == ctx.branch_id)


class VersionMixin:
    """Optimistic locking via a version counter.

    Models using this mixin gain a ``version`` column that starts at 1
    and is incremented on every update.  The column is the mapper's
    ``version_id_col``, so every UPDATE and DELETE is issued with
    ``WHERE version = <loaded version>`` and raises ``StaleDataError`` when
    another session changed the row first.  The counter is bumped by hand
    (``increment_version``), never by the ORM.

    Call ``check_version()`` before writing to reject a client that
    edited an older copy.
    """

    version: Mapped[int] = mapped_column(Integer, default=1, server_default="1", nullable=False)

    @declared_attr.directive
    def __mapper_args__(cls):
        return {"version_id_col": cls.version, "version_id_generator": False}

    def check_version(self, expected: Optional[int]) -> None:
        """Raise VersionConflictError if *expected* doesn't match current version."""
        if expected is not None and expected != self.version:
            raise VersionConflictError(expected, self.version)

    def increment_version(self) -> None:
        """Increment the version counter after a successful update."""
        self.version = (self.version or 1) + 1
