"""Service-level exceptions.

Services raise these; route handlers translate them to HTTP responses via
``to_http_exception``. Persistence errors (SQLAlchemy) are not wrapped and
propagate to the global exception handler.
"""

from typing import Optional

from fastapi import HTTPException, status


class TabillError(Exception):
    """Base class for expected, user-facing errors."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TabillError, ValueError):
    """Input rejected before any write."""


class OrderValidationError(ValidationError):
    """Empty order, bad quantity, bad rate or missing tenant context."""


class NotFoundError(TabillError, LookupError):
    """Entity does not exist within the caller's tenant/branch."""

    status_code = status.HTTP_404_NOT_FOUND


class VersionConflictError(TabillError, ValueError):
    """Stale write detected by the version counter."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, expected: int, current: int):
        super().__init__(
            f"Version conflict: expected {expected}, current {current}. "
            "Please refresh and try again."
        )
        self.expected = expected
        self.current = current


class UnresolvedLineError(TabillError):
    """A draft line references a menu item or variant that no longer exists."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, menu_item_id: int, variant_id: int, quantity: int):
        super().__init__(
            f"Order line references a deleted menu item or variant "
            f"(menu_item_id={menu_item_id}, variant_id={variant_id}, quantity={quantity}). "
            "Remove or correct the line and retry."
        )
        self.menu_item_id = menu_item_id
        self.variant_id = variant_id
        self.quantity = quantity


def to_http_exception(exc: TabillError, detail: Optional[str] = None) -> HTTPException:
    """Convert a service exception into an HTTPException."""
    return HTTPException(status_code=exc.status_code, detail=detail or exc.message)
