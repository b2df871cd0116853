"""Line-item accumulator for the active draft.

Maps (menu_item_id, variant_id) to a quantity. Lines keep insertion order,
which is also the order totals are summed in.
"""

from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from tabill.core.exceptions import OrderValidationError

LineKey = Tuple[int, int]


def require_int(name: str, value) -> int:
    # bool is an int subclass; True must not count as one portion
    if isinstance(value, bool) or not isinstance(value, int):
        raise OrderValidationError(f"{name} must be an integer, got {value!r}")
    return value


class LineAccumulator:
    """In-memory line set of a draft order."""

    def __init__(self, lines: Iterable[Tuple[LineKey, int]] = ()):
        self._lines: Dict[LineKey, int] = {}
        for key, quantity in lines:
            self._lines[key] = self._lines.get(key, 0) + quantity

    @classmethod
    def from_items(cls, items) -> "LineAccumulator":
        """Build from rows carrying menu_item_id, variant_id and quantity."""
        return cls(((item.menu_item_id, item.variant_id), item.quantity) for item in items)

    def add_line(self, menu_item_id: int, variant_id: int, quantity: int = 1) -> int:
        """Add ``quantity`` portions. Returns the new quantity of the line."""
        quantity = require_int("quantity", quantity)
        if quantity <= 0:
            raise OrderValidationError(f"Quantity must be positive, got {quantity}")

        key = (menu_item_id, variant_id)
        self._lines[key] = self._lines.get(key, 0) + quantity
        return self._lines[key]

    def set_quantity(self, menu_item_id: int, variant_id: int, quantity: int) -> int:
        """Set a line's quantity. Zero or less removes the line."""
        quantity = require_int("quantity", quantity)
        key = (menu_item_id, variant_id)
        if quantity <= 0:
            self._lines.pop(key, None)
            return 0
        self._lines[key] = quantity
        return quantity

    def change_quantity(self, menu_item_id: int, variant_id: int, delta: int) -> int:
        """Step a line up or down. The result is floored at zero."""
        delta = require_int("delta", delta)
        current = self._lines.get((menu_item_id, variant_id), 0)
        if current == 0 and delta <= 0:
            return 0
        return self.set_quantity(menu_item_id, variant_id, max(current + delta, 0))

    def quantity_of(self, menu_item_id: int, variant_id: int) -> int:
        return self._lines.get((menu_item_id, variant_id), 0)

    def snapshot(self) -> List[Tuple[LineKey, int]]:
        return list(self._lines.items())

    def restore(self, snapshot: List[Tuple[LineKey, int]]) -> None:
        self._lines = dict(snapshot)

    def lines(self) -> List[Tuple[LineKey, int]]:
        return list(self._lines.items())

    def keys(self) -> List[LineKey]:
        return list(self._lines)

    def is_empty(self) -> bool:
        return not self._lines

    def get(self, key: LineKey) -> Optional[int]:
        return self._lines.get(key)

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self) -> Iterator[Tuple[LineKey, int]]:
        return iter(self.lines())
