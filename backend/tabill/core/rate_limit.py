"""Shared rate limiter instance for use across route files."""

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from tabill.core.config import settings


def get_branch_or_ip(request: Request) -> str:
    """Rate limit by branch when the tenant headers are present, else by IP."""
    branch_id = request.headers.get("X-Branch-ID", "").strip()
    if branch_id.isdigit():
        return f"branch:{branch_id}"
    return get_remote_address(request)


limiter = Limiter(key_func=get_branch_or_ip, enabled=settings.rate_limit_enabled)
