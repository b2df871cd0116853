"""Tests for draft (pending) order persistence."""

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from tabill.core.exceptions import NotFoundError, OrderValidationError, VersionConflictError
from tabill.core.tenancy import TenantContext
from tabill.db.base import Base
from tabill.models.branch import Branch
from tabill.models.menu import MenuItem, MenuItemVariant
from tabill.models.order import Order, PendingOrder, PendingOrderItem
from tabill.models.restaurant import DiningTable
from tabill.services.draft_order_service import DraftOrderService
from tabill.services.finalization_service import FinalizationService


def _drafts(db_session):
    return db_session.query(PendingOrder).all()


class TestLineChanges:
    """Every line change rewrites the draft and its totals."""

    def test_first_line_creates_draft(self, db_session, tenant, table, menu):
        view = DraftOrderService(db_session, tenant).add_line(
            table.id, menu["biryani"].id, menu["biryani_full"].id, 2
        )

        assert view.draft is not None
        assert view.version == 1
        assert view.totals.subtotal == pytest.approx(700.0)
        draft = _drafts(db_session)[0]
        assert draft.table_id == table.id
        assert draft.sgst_rate == 9.0 and draft.cgst_rate == 9.0
        assert draft.total == pytest.approx(826.0)

    def test_persisted_totals_match_lines(self, db_session, tenant, table, menu):
        service = DraftOrderService(db_session, tenant)
        service.add_line(table.id, menu["biryani"].id, menu["biryani_full"].id, 2)
        service.add_line(table.id, menu["soda"].id, menu["soda_regular"].id, 1)

        draft = _drafts(db_session)[0]
        assert draft.subtotal == pytest.approx(760.0)
        assert draft.sgst_amount == pytest.approx(68.4)
        assert draft.cgst_amount == pytest.approx(68.4)
        assert draft.total == pytest.approx(896.8)
        assert [(i.menu_item_id, i.quantity) for i in draft.items] == [
            (menu["biryani"].id, 2),
            (menu["soda"].id, 1),
        ]

    def test_adding_same_pair_increments_single_line(self, db_session, tenant, table, menu):
        service = DraftOrderService(db_session, tenant)
        service.add_line(table.id, menu["soda"].id, menu["soda_regular"].id)
        service.add_line(table.id, menu["soda"].id, menu["soda_regular"].id)

        items = db_session.query(PendingOrderItem).all()
        assert len(items) == 1
        assert items[0].quantity == 2

    def test_at_most_one_draft_per_table(self, db_session, tenant, table, menu):
        service = DraftOrderService(db_session, tenant)
        for _ in range(3):
            service.add_line(table.id, menu["soda"].id, menu["soda_regular"].id)
        service.add_line(table.id, menu["biryani"].id, menu["biryani_half"].id)

        assert len(_drafts(db_session)) == 1

    def test_version_increases_on_every_write(self, db_session, tenant, table, menu):
        service = DraftOrderService(db_session, tenant)
        service.add_line(table.id, menu["soda"].id, menu["soda_regular"].id)
        view = service.change_quantity(table.id, menu["soda"].id, menu["soda_regular"].id, 1)
        assert view.version == 2

    def test_set_quantity_zero_on_only_line_deletes_draft(self, db_session, tenant, table, menu):
        service = DraftOrderService(db_session, tenant)
        service.add_line(table.id, menu["soda"].id, menu["soda_regular"].id)

        view = service.set_quantity(table.id, menu["soda"].id, menu["soda_regular"].id, 0)

        assert view.draft is None
        assert _drafts(db_session) == []
        assert db_session.query(PendingOrderItem).count() == 0

    def test_decrement_to_zero_deletes_draft(self, db_session, tenant, table, menu):
        service = DraftOrderService(db_session, tenant)
        service.add_line(table.id, menu["soda"].id, menu["soda_regular"].id, 2)
        service.change_quantity(table.id, menu["soda"].id, menu["soda_regular"].id, -5)

        assert _drafts(db_session) == []

    def test_adding_unknown_variant_is_not_found(self, db_session, tenant, table, menu):
        with pytest.raises(NotFoundError):
            DraftOrderService(db_session, tenant).add_line(table.id, menu["soda"].id, 999999)
        assert _drafts(db_session) == []

    def test_non_positive_quantity_rejected_without_write(self, db_session, tenant, table, menu):
        with pytest.raises(OrderValidationError):
            DraftOrderService(db_session, tenant).add_line(
                table.id, menu["soda"].id, menu["soda_regular"].id, 0
            )
        assert _drafts(db_session) == []

    def test_non_integer_quantity_is_validation_error(self, db_session, tenant, table, menu):
        service = DraftOrderService(db_session, tenant)
        with pytest.raises(OrderValidationError):
            service.set_quantity(table.id, menu["soda"].id, menu["soda_regular"].id, "2")
        with pytest.raises(OrderValidationError):
            service.change_quantity(table.id, menu["soda"].id, menu["soda_regular"].id, 1.5)
        with pytest.raises(OrderValidationError):
            service.set_quantity(table.id, menu["soda"].id, menu["soda_regular"].id, True)
        assert _drafts(db_session) == []

    def test_unknown_table_is_not_found(self, db_session, tenant, menu):
        with pytest.raises(NotFoundError):
            DraftOrderService(db_session, tenant).add_line(
                12345, menu["soda"].id, menu["soda_regular"].id
            )


class TestVersionConflicts:

    def test_stale_version_rejected_and_nothing_written(self, db_session, tenant, table, menu):
        service = DraftOrderService(db_session, tenant)
        service.add_line(table.id, menu["soda"].id, menu["soda_regular"].id)
        service.add_line(table.id, menu["soda"].id, menu["soda_regular"].id)  # version 2

        with pytest.raises(VersionConflictError):
            service.add_line(
                table.id, menu["biryani"].id, menu["biryani_full"].id, expected_version=1
            )

        draft = _drafts(db_session)[0]
        assert draft.version == 2
        assert len(draft.items) == 1

    def test_matching_version_is_accepted(self, db_session, tenant, table, menu):
        service = DraftOrderService(db_session, tenant)
        view = service.add_line(table.id, menu["soda"].id, menu["soda_regular"].id)
        view = service.add_line(
            table.id, menu["soda"].id, menu["soda_regular"].id, expected_version=view.version
        )
        assert view.version == 2

    def test_version_against_missing_draft_conflicts(self, db_session, tenant, table, menu):
        with pytest.raises(VersionConflictError):
            DraftOrderService(db_session, tenant).add_line(
                table.id, menu["soda"].id, menu["soda_regular"].id, expected_version=3
            )


class TestRatesAndDiscard:

    def test_update_rates_recomputes_amounts(self, db_session, tenant, table, menu):
        service = DraftOrderService(db_session, tenant)
        service.add_line(table.id, menu["biryani"].id, menu["biryani_full"].id, 2)

        view = service.update_rates(table.id, 2.5, 2.5)

        assert view.sgst_rate == 2.5
        draft = _drafts(db_session)[0]
        assert draft.sgst_amount == pytest.approx(17.5)
        assert draft.cgst_amount == pytest.approx(17.5)
        assert draft.total == pytest.approx(735.0)

    @pytest.mark.parametrize("sgst,cgst", [(-1, 9), (9, 150), (float("nan"), 9)])
    def test_out_of_range_rates_rejected(self, db_session, tenant, table, menu, sgst, cgst):
        service = DraftOrderService(db_session, tenant)
        service.add_line(table.id, menu["soda"].id, menu["soda_regular"].id)

        with pytest.raises(OrderValidationError):
            service.update_rates(table.id, sgst, cgst)
        assert _drafts(db_session)[0].sgst_rate == 9.0

    def test_rates_on_table_without_draft(self, db_session, tenant, table):
        with pytest.raises(NotFoundError):
            DraftOrderService(db_session, tenant).update_rates(table.id, 5, 5)

    def test_discard_removes_draft_and_lines(self, db_session, tenant, table, menu):
        service = DraftOrderService(db_session, tenant)
        service.add_line(table.id, menu["soda"].id, menu["soda_regular"].id)
        service.discard(table.id)

        assert _drafts(db_session) == []
        assert db_session.query(PendingOrderItem).count() == 0


class TestReadModel:

    def test_empty_view_for_available_table(self, db_session, tenant, table):
        view = DraftOrderService(db_session, tenant).view(table.id)
        assert view.draft is None
        assert view.lines == []
        assert view.totals.total == 0.0

    def test_stale_line_shown_as_unresolved(self, db_session, tenant, table, menu):
        service = DraftOrderService(db_session, tenant)
        service.add_line(table.id, menu["biryani"].id, menu["biryani_half"].id)
        service.add_line(table.id, menu["soda"].id, menu["soda_regular"].id)

        db_session.delete(menu["biryani_half"])
        db_session.commit()

        view = service.view(table.id)
        stale = view.lines[0]
        assert not stale.resolved
        assert stale.variant_name == "Regular"
        assert stale.unit_price == 0.0
        assert view.totals.subtotal == pytest.approx(60.0)


class TestFailedWriteRollsBack:

    def test_failure_during_line_rewrite_keeps_previous_draft(
        self, db_session, tenant, table, menu, monkeypatch
    ):
        service = DraftOrderService(db_session, tenant)
        service.add_line(table.id, menu["soda"].id, menu["soda_regular"].id)

        def boom(draft, accumulator):
            raise RuntimeError("disk full")

        monkeypatch.setattr(service, "replace_lines", boom)
        with pytest.raises(RuntimeError):
            service.add_line(table.id, menu["biryani"].id, menu["biryani_full"].id)

        draft = _drafts(db_session)[0]
        assert draft.version == 1
        assert [i.menu_item_id for i in draft.items] == [menu["soda"].id]
        assert draft.subtotal == pytest.approx(60.0)


# line name -> (menu fixture key, variant fixture key)
PAIRS = {
    "soda": ("soda", "soda_regular"),
    "full": ("biryani", "biryani_full"),
    "half": ("biryani", "biryani_half"),
}


class TestTotalInvariant:
    """Stored totals always equal subtotal * (1 + sgst/100 + cgst/100)."""

    @pytest.mark.parametrize(
        "steps",
        [
            [("add", "soda", 1), ("add", "full", 2), ("set", "soda", 4), ("change", "full", -1)],
            [("add", "half", 3), ("rates", 2.5, 6), ("add", "soda", 7), ("change", "soda", -7)],
            [("set", "full", 1), ("add", "half", 1), ("rates", 0, 0), ("set", "full", 9)],
            [("add", "soda", 2), ("rates", 14, 14), ("change", "half", 5), ("set", "soda", 0), ("add", "soda", 1)],
        ],
    )
    def test_invariant_after_every_step(self, db_session, tenant, table, menu, steps):
        service = DraftOrderService(db_session, tenant)
        for step in steps:
            op = step[0]
            if op == "rates":
                view = service.update_rates(table.id, step[1], step[2])
            else:
                item_key, variant_key = PAIRS[step[1]]
                item_id, variant_id = menu[item_key].id, menu[variant_key].id
                if op == "add":
                    view = service.add_line(table.id, item_id, variant_id, step[2])
                elif op == "set":
                    view = service.set_quantity(table.id, item_id, variant_id, step[2])
                else:
                    view = service.change_quantity(table.id, item_id, variant_id, step[2])

            draft = service.get_draft(table.id)
            assert draft is not None
            expected_subtotal = sum(line.unit_price * line.quantity for line in view.lines)
            assert draft.subtotal == pytest.approx(expected_subtotal)
            assert draft.total == pytest.approx(
                draft.subtotal * (1 + draft.sgst_rate / 100 + draft.cgst_rate / 100)
            )
            assert draft.total == pytest.approx(
                draft.subtotal + draft.sgst_amount + draft.cgst_amount
            )


@pytest.fixture
def two_sessions(tmp_path):
    """Two independent sessions on one file-backed database, plus seed ids."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'tabill.db'}", connect_args={"check_same_thread": False}
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    seed = SessionLocal()
    branch = Branch(owner_id=1, name="MG Road")
    seed.add(branch)
    seed.flush()
    table = DiningTable(owner_id=1, branch_id=branch.id, name="T1")
    soda = MenuItem(
        owner_id=1,
        branch_id=branch.id,
        name="Masala Soda",
        category="Beverages",
        variants=[MenuItemVariant(name="Regular", cost_price=20.0, selling_price=60.0)],
    )
    seed.add_all([table, soda])
    seed.commit()
    ids = {
        "ctx": TenantContext(owner_id=1, branch_id=branch.id),
        "table": table.id,
        "item": soda.id,
        "variant": soda.variants[0].id,
    }
    seed.close()

    first, second = SessionLocal(), SessionLocal()
    yield first, second, ids
    first.close()
    second.close()
    engine.dispose()


def _stored_draft(session, table_id):
    session.expire_all()
    return session.query(PendingOrder).filter(PendingOrder.table_id == table_id).first()


class TestConcurrentWriters:
    """Two sessions editing the same draft: the later writer gets a conflict."""

    def test_interleaved_line_writes_do_not_lose_updates(self, two_sessions):
        first, second, ids = two_sessions
        ctx, table_id, item_id, variant_id = ids["ctx"], ids["table"], ids["item"], ids["variant"]
        DraftOrderService(first, ctx).add_line(table_id, item_id, variant_id, 1)

        other_writer = DraftOrderService(second, ctx)

        def add_while_other_writer_commits(accumulator):
            accumulator.add_line(item_id, variant_id, 3)
            other_writer.set_quantity(table_id, item_id, variant_id, 5, expected_version=1)

        with pytest.raises(VersionConflictError) as exc_info:
            DraftOrderService(first, ctx)._apply(
                table_id, add_while_other_writer_commits, expected_version=1
            )

        assert exc_info.value.expected == 1
        assert exc_info.value.current == 2
        draft = _stored_draft(second, table_id)
        assert draft.version == 2
        assert [item.quantity for item in draft.items] == [5]
        assert draft.subtotal == pytest.approx(300.0)

    def test_stale_rate_change_is_rejected(self, two_sessions, monkeypatch):
        first, second, ids = two_sessions
        ctx, table_id, item_id, variant_id = ids["ctx"], ids["table"], ids["item"], ids["variant"]
        DraftOrderService(first, ctx).add_line(table_id, item_id, variant_id, 1)

        service = DraftOrderService(first, ctx)
        price_lines = service.price_lines

        def price_after_other_writer(accumulator):
            DraftOrderService(second, ctx).change_quantity(table_id, item_id, variant_id, 1)
            return price_lines(accumulator)

        monkeypatch.setattr(service, "price_lines", price_after_other_writer)
        with pytest.raises(VersionConflictError):
            service.update_rates(table_id, 2.5, 2.5)

        draft = _stored_draft(second, table_id)
        assert draft.sgst_rate == 9.0
        assert [item.quantity for item in draft.items] == [2]

    def test_checkout_of_changed_draft_creates_no_order(self, two_sessions, monkeypatch):
        first, second, ids = two_sessions
        ctx, table_id, item_id, variant_id = ids["ctx"], ids["table"], ids["item"], ids["variant"]
        DraftOrderService(first, ctx).add_line(table_id, item_id, variant_id, 1)

        finalizer = FinalizationService(first, ctx)
        price = finalizer._price

        def price_after_other_writer(ctx_, accumulator):
            DraftOrderService(second, ctx).add_line(table_id, item_id, variant_id, 2)
            return price(ctx_, accumulator)

        monkeypatch.setattr(finalizer, "_price", price_after_other_writer)
        with pytest.raises(VersionConflictError):
            finalizer.finalize_table(table_id)

        second.expire_all()
        assert second.query(Order).count() == 0
        draft = _stored_draft(second, table_id)
        assert [item.quantity for item in draft.items] == [3]

    def test_two_first_lines_on_same_table(self, two_sessions):
        first, second, ids = two_sessions
        ctx, table_id, item_id, variant_id = ids["ctx"], ids["table"], ids["item"], ids["variant"]
        other_writer = DraftOrderService(second, ctx)

        def add_while_other_writer_opens_table(accumulator):
            accumulator.add_line(item_id, variant_id, 1)
            other_writer.add_line(table_id, item_id, variant_id, 4)

        with pytest.raises(VersionConflictError):
            DraftOrderService(first, ctx)._apply(table_id, add_while_other_writer_opens_table, None)

        draft = _stored_draft(second, table_id)
        assert draft.version == 1
        assert [item.quantity for item in draft.items] == [4]
