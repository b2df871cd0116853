"""Tests for the line-item accumulator."""

import pytest

from tabill.core.exceptions import OrderValidationError
from tabill.services.order_lines import LineAccumulator


class TestAddLine:

    def test_new_pair_appends_line(self):
        acc = LineAccumulator()
        assert acc.add_line(1, 10) == 1
        assert acc.add_line(2, 20, 3) == 3
        assert acc.lines() == [((1, 10), 1), ((2, 20), 3)]

    def test_same_pair_increments(self):
        acc = LineAccumulator()
        acc.add_line(1, 10, 2)
        acc.add_line(1, 10)
        assert acc.lines() == [((1, 10), 3)]

    def test_identity_is_the_id_pair(self):
        # Two variants of one item are distinct lines even if they share a name
        acc = LineAccumulator()
        acc.add_line(1, 10)
        acc.add_line(1, 11)
        assert len(acc) == 2

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, "2", True])
    def test_rejects_non_positive_or_non_integer(self, quantity):
        acc = LineAccumulator()
        with pytest.raises(OrderValidationError):
            acc.add_line(1, 10, quantity)
        assert acc.is_empty()


class TestSetAndChangeQuantity:

    def test_set_overwrites(self):
        acc = LineAccumulator([((1, 10), 2)])
        acc.set_quantity(1, 10, 5)
        assert acc.quantity_of(1, 10) == 5

    def test_set_zero_removes_line(self):
        acc = LineAccumulator([((1, 10), 2), ((2, 20), 1)])
        assert acc.set_quantity(1, 10, 0) == 0
        assert acc.keys() == [(2, 20)]

    def test_set_negative_removes_line(self):
        acc = LineAccumulator([((1, 10), 2)])
        acc.set_quantity(1, 10, -3)
        assert acc.is_empty()

    def test_set_on_missing_pair_adds_it(self):
        acc = LineAccumulator()
        acc.set_quantity(3, 30, 4)
        assert acc.lines() == [((3, 30), 4)]

    def test_set_keeps_line_position(self):
        acc = LineAccumulator([((1, 10), 1), ((2, 20), 1)])
        acc.set_quantity(1, 10, 9)
        assert acc.keys() == [(1, 10), (2, 20)]

    def test_change_steps_up_and_down(self):
        acc = LineAccumulator([((1, 10), 2)])
        assert acc.change_quantity(1, 10, 1) == 3
        assert acc.change_quantity(1, 10, -2) == 1

    def test_change_floors_at_zero_and_removes(self):
        acc = LineAccumulator([((1, 10), 2)])
        assert acc.change_quantity(1, 10, -5) == 0
        assert acc.is_empty()

    def test_decrement_of_missing_line_is_noop(self):
        acc = LineAccumulator()
        assert acc.change_quantity(1, 10, -1) == 0
        assert acc.is_empty()


class TestSnapshot:

    def test_restore_reverts_mutations(self):
        acc = LineAccumulator([((1, 10), 2)])
        snap = acc.snapshot()

        acc.add_line(2, 20)
        acc.set_quantity(1, 10, 0)
        acc.restore(snap)

        assert acc.lines() == [((1, 10), 2)]

    def test_snapshot_is_independent_copy(self):
        acc = LineAccumulator([((1, 10), 2)])
        snap = acc.snapshot()
        acc.add_line(1, 10)
        assert snap == [((1, 10), 2)]

    def test_from_items_merges_duplicate_rows(self):
        class Row:
            def __init__(self, menu_item_id, variant_id, quantity):
                self.menu_item_id = menu_item_id
                self.variant_id = variant_id
                self.quantity = quantity

        acc = LineAccumulator.from_items([Row(1, 10, 1), Row(1, 10, 2), Row(2, 20, 1)])
        assert acc.lines() == [((1, 10), 3), ((2, 20), 1)]
