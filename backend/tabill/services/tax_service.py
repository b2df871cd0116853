"""Tax and total calculation for orders.

Two-component GST: SGST and CGST are each a percentage of the subtotal.

    subtotal    = sum(unit_price * quantity)
    sgst_amount = subtotal * sgst_rate / 100
    cgst_amount = subtotal * cgst_rate / 100
    total       = subtotal + sgst_amount + cgst_amount

Nothing here rounds. Rounding happens only when a bill is rendered.
"""

import math
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from tabill.core.config import settings
from tabill.core.exceptions import OrderValidationError


@dataclass(frozen=True)
class Totals:
    subtotal: float
    sgst_amount: float
    cgst_amount: float
    total: float


def validate_rate(value, name: str = "rate") -> float:
    """Return the rate as a float or raise for non-finite or out-of-range values."""
    if isinstance(value, bool):
        raise OrderValidationError(f"{name} must be a number")
    try:
        rate = float(value)
    except (TypeError, ValueError):
        raise OrderValidationError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(rate) or rate < 0 or rate > 100:
        raise OrderValidationError(f"{name} must be between 0 and 100, got {value}")
    return rate


def resolve_rates(sgst_rate: Optional[float], cgst_rate: Optional[float]) -> Tuple[float, float]:
    """Validate the given rates, falling back to the configured defaults."""
    sgst = settings.default_sgst_rate if sgst_rate is None else sgst_rate
    cgst = settings.default_cgst_rate if cgst_rate is None else cgst_rate
    return validate_rate(sgst, "sgst_rate"), validate_rate(cgst, "cgst_rate")


def compute_totals(
    priced_lines: Iterable[Tuple[float, int]],
    sgst_rate: float,
    cgst_rate: float,
) -> Totals:
    """Compute totals from (unit_price, quantity) pairs in line order.

    Pure: the same lines and rates always give bit-identical results.
    """
    sgst_rate = validate_rate(sgst_rate, "sgst_rate")
    cgst_rate = validate_rate(cgst_rate, "cgst_rate")

    subtotal = 0.0
    for unit_price, quantity in priced_lines:
        subtotal += float(unit_price) * quantity

    sgst_amount = subtotal * sgst_rate / 100
    cgst_amount = subtotal * cgst_rate / 100
    return Totals(
        subtotal=subtotal,
        sgst_amount=sgst_amount,
        cgst_amount=cgst_amount,
        total=subtotal + sgst_amount + cgst_amount,
    )


def round_money(value: float) -> float:
    return round(value, 2)
