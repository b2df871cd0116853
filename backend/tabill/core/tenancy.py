"""Tenant/branch context resolved from request headers.

Authentication lives outside this service; the caller forwards the active
owner and branch with every request.
"""

from dataclasses import dataclass
from typing import Annotated, Optional

from fastapi import Depends, Header

from tabill.core.exceptions import OrderValidationError, to_http_exception


@dataclass(frozen=True)
class OwnerContext:
    owner_id: int


@dataclass(frozen=True)
class TenantContext:
    """The (owner, branch) pair every scoped query filters on."""

    owner_id: int
    branch_id: int


def _parse_id(raw: Optional[str]) -> Optional[int]:
    if raw is None:
        return None
    try:
        value = int(raw.strip())
    except ValueError:
        return None
    return value if value > 0 else None


def resolve_context(owner_id: Optional[int], branch_id: Optional[int]) -> TenantContext:
    """Build a TenantContext or raise when either identifier is missing."""
    if not owner_id or not branch_id:
        raise OrderValidationError("No active branch")
    return TenantContext(owner_id=owner_id, branch_id=branch_id)


async def get_owner_context(
    x_owner_id: Annotated[Optional[str], Header()] = None,
) -> OwnerContext:
    owner_id = _parse_id(x_owner_id)
    if owner_id is None:
        raise to_http_exception(OrderValidationError("No active owner"))
    return OwnerContext(owner_id=owner_id)


async def get_tenant_context(
    x_owner_id: Annotated[Optional[str], Header()] = None,
    x_branch_id: Annotated[Optional[str], Header()] = None,
) -> TenantContext:
    """Extract the tenant context from the X-Owner-ID / X-Branch-ID headers."""
    try:
        return resolve_context(_parse_id(x_owner_id), _parse_id(x_branch_id))
    except OrderValidationError as e:
        raise to_http_exception(e)


CurrentOwner = Annotated[OwnerContext, Depends(get_owner_context)]
CurrentTenant = Annotated[TenantContext, Depends(get_tenant_context)]
