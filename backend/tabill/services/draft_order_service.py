"""Draft (pending) order persistence.

A table has at most one pending order. Every line change rewrites the draft
in a single transaction:

1. find-or-create the pending order for the table and store fresh totals
2. delete its lines, then insert the current line set
3. if the line set is empty, delete the pending order instead

Writes accept an optional ``expected_version``. A mismatch with the stored
version raises VersionConflictError before anything is written. Independently
of it, the version column guards the write itself: if another session changed
or removed the draft between our read and our write, the UPDATE or DELETE
matches no row and the write fails with VersionConflictError (HTTP 409).
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from tabill.core.exceptions import NotFoundError, VersionConflictError
from tabill.core.tenancy import TenantContext
from tabill.db.session import unit_of_work
from tabill.models.order import OrderType, PendingOrder, PendingOrderItem
from tabill.models.restaurant import DiningTable
from tabill.services.catalog_service import CatalogEntry, CatalogService
from tabill.services.order_lines import LineAccumulator, require_int
from tabill.services.tax_service import Totals, compute_totals, resolve_rates, validate_rate

logger = logging.getLogger(__name__)


@dataclass
class DraftLine:
    menu_item_id: int
    variant_id: int
    quantity: int
    item_name: str
    variant_name: str
    category: str
    unit_price: float
    line_total: float
    resolved: bool


@dataclass
class DraftView:
    table_id: int
    draft: Optional[PendingOrder]
    lines: List[DraftLine]
    sgst_rate: float
    cgst_rate: float
    totals: Totals

    @property
    def version(self) -> Optional[int]:
        return self.draft.version if self.draft else None


class DraftOrderService:
    """Reads and writes the pending order of a table."""

    def __init__(self, db: Session, ctx: TenantContext):
        self.db = db
        self.ctx = ctx
        self.catalog = CatalogService(db, ctx)

    # ==================== LOOKUPS ====================

    def get_table(self, table_id: int) -> DiningTable:
        table = (
            self.db.query(DiningTable)
            .filter(*DiningTable.scoped(self.ctx), DiningTable.id == table_id)
            .first()
        )
        if not table:
            raise NotFoundError("Table not found")
        return table

    def get_draft(self, table_id: int) -> Optional[PendingOrder]:
        return (
            self.db.query(PendingOrder)
            .filter(*PendingOrder.scoped(self.ctx), PendingOrder.table_id == table_id)
            .first()
        )

    def require_draft(self, table_id: int) -> PendingOrder:
        draft = self.get_draft(table_id)
        if not draft:
            raise NotFoundError("No pending order for this table")
        return draft

    def occupied_table_ids(self) -> set:
        rows = self.db.query(PendingOrder.table_id).filter(*PendingOrder.scoped(self.ctx)).all()
        return {row[0] for row in rows}

    # ==================== READ MODEL ====================

    def price_lines(
        self, accumulator: LineAccumulator
    ) -> Tuple[List[DraftLine], List[Tuple[float, int]]]:
        entries = self.catalog.resolve(accumulator.keys())
        lines: List[DraftLine] = []
        priced: List[Tuple[float, int]] = []
        for key, quantity in accumulator.lines():
            entry: CatalogEntry = entries[key]
            lines.append(
                DraftLine(
                    menu_item_id=key[0],
                    variant_id=key[1],
                    quantity=quantity,
                    item_name=entry.display_name,
                    variant_name=entry.variant_name,
                    category=entry.category,
                    unit_price=entry.unit_price,
                    line_total=entry.unit_price * quantity,
                    resolved=entry.resolved,
                )
            )
            priced.append((entry.unit_price, quantity))
        return lines, priced

    def view(self, table_id: int) -> DraftView:
        """Draft for a table with resolved lines and totals.

        A table without a draft yields an empty view carrying the default rates.
        """
        self.get_table(table_id)
        draft = self.get_draft(table_id)
        if draft:
            sgst_rate, cgst_rate = draft.sgst_rate, draft.cgst_rate
            accumulator = LineAccumulator.from_items(draft.items)
        else:
            sgst_rate, cgst_rate = resolve_rates(None, None)
            accumulator = LineAccumulator()

        lines, priced = self.price_lines(accumulator)
        return DraftView(
            table_id=table_id,
            draft=draft,
            lines=lines,
            sgst_rate=sgst_rate,
            cgst_rate=cgst_rate,
            totals=compute_totals(priced, sgst_rate, cgst_rate),
        )

    # ==================== LINE OPERATIONS ====================

    def add_line(
        self,
        table_id: int,
        menu_item_id: int,
        variant_id: int,
        quantity: int = 1,
        expected_version: Optional[int] = None,
    ) -> DraftView:
        # Only items that currently exist can be added; existing lines are
        # allowed to go stale and are reported as unresolved.
        self.catalog.require(menu_item_id, variant_id)
        return self._apply(
            table_id,
            lambda acc: acc.add_line(menu_item_id, variant_id, quantity),
            expected_version,
        )

    def set_quantity(
        self,
        table_id: int,
        menu_item_id: int,
        variant_id: int,
        quantity: int,
        expected_version: Optional[int] = None,
    ) -> DraftView:
        quantity = require_int("quantity", quantity)
        if quantity > 0 and self.get_draft_quantity(table_id, menu_item_id, variant_id) == 0:
            self.catalog.require(menu_item_id, variant_id)
        return self._apply(
            table_id,
            lambda acc: acc.set_quantity(menu_item_id, variant_id, quantity),
            expected_version,
        )

    def change_quantity(
        self,
        table_id: int,
        menu_item_id: int,
        variant_id: int,
        delta: int,
        expected_version: Optional[int] = None,
    ) -> DraftView:
        delta = require_int("delta", delta)
        if delta > 0 and self.get_draft_quantity(table_id, menu_item_id, variant_id) == 0:
            self.catalog.require(menu_item_id, variant_id)
        return self._apply(
            table_id,
            lambda acc: acc.change_quantity(menu_item_id, variant_id, delta),
            expected_version,
        )

    def get_draft_quantity(self, table_id: int, menu_item_id: int, variant_id: int) -> int:
        draft = self.get_draft(table_id)
        if not draft:
            return 0
        return LineAccumulator.from_items(draft.items).quantity_of(menu_item_id, variant_id)

    def update_rates(
        self,
        table_id: int,
        sgst_rate: float,
        cgst_rate: float,
        expected_version: Optional[int] = None,
    ) -> DraftView:
        """Change the tax rates of a draft and recompute its stored amounts."""
        sgst_rate = validate_rate(sgst_rate, "sgst_rate")
        cgst_rate = validate_rate(cgst_rate, "cgst_rate")

        self.get_table(table_id)
        draft = self.require_draft(table_id)
        draft.check_version(expected_version)
        loaded_version = draft.version

        accumulator = LineAccumulator.from_items(draft.items)
        _, priced = self.price_lines(accumulator)
        totals = compute_totals(priced, sgst_rate, cgst_rate)

        with self.guard_version(table_id, loaded_version), unit_of_work(self.db):
            draft.sgst_rate = sgst_rate
            draft.cgst_rate = cgst_rate
            self._store_totals(draft, totals)
            draft.increment_version()

        logger.info(
            f"Updated rates for table {table_id}: sgst={sgst_rate} cgst={cgst_rate}"
        )
        return self.view(table_id)

    def discard(self, table_id: int, expected_version: Optional[int] = None) -> None:
        """Drop the draft of a table without creating an order."""
        self.get_table(table_id)
        draft = self.require_draft(table_id)
        draft.check_version(expected_version)
        with self.guard_version(table_id, draft.version), unit_of_work(self.db):
            self.delete_draft(draft)
        logger.info(f"Discarded pending order for table {table_id}")

    # ==================== PERSISTENCE ====================

    def upsert_draft(
        self, table_id: int, totals: Totals, draft: Optional[PendingOrder] = None
    ) -> PendingOrder:
        """Store totals on the loaded draft, or create one when ``draft`` is None.

        Runs inside the caller's transaction. A new draft takes the
        configured default rates. The draft is never re-read here: a draft
        created by another session since the caller's read makes the INSERT
        hit the one-draft-per-table constraint.
        """
        if draft is None:
            sgst_rate, cgst_rate = resolve_rates(None, None)
            draft = PendingOrder(
                owner_id=self.ctx.owner_id,
                branch_id=self.ctx.branch_id,
                table_id=table_id,
                order_type=OrderType.DINE_IN,
                sgst_rate=sgst_rate,
                cgst_rate=cgst_rate,
                version=1,
            )
            self.db.add(draft)
        else:
            draft.increment_version()

        self._store_totals(draft, totals)
        self.db.flush()
        return draft

    def replace_lines(self, draft: PendingOrder, accumulator: LineAccumulator) -> None:
        """Delete the draft's lines and insert the current set, in line order."""
        draft.items.clear()
        self.db.flush()
        draft.items.extend(
            PendingOrderItem(menu_item_id=key[0], variant_id=key[1], quantity=quantity)
            for key, quantity in accumulator.lines()
        )
        self.db.flush()

    def delete_draft(self, draft: PendingOrder) -> None:
        """Remove a draft and its lines.

        The version is bumped and flushed first so a draft changed by
        another session fails here, before any of its lines are touched.
        """
        draft.increment_version()
        self.db.flush()
        draft.items.clear()
        self.db.flush()
        self.db.delete(draft)
        self.db.flush()

    @contextmanager
    def guard_version(self, table_id: int, loaded_version: int) -> Iterator[None]:
        """Translate a lost race on the draft row into VersionConflictError.

        Wrap it around ``unit_of_work`` so the rollback has already happened
        when the current version is read back.
        """
        try:
            yield
        except StaleDataError:
            current = self.get_draft(table_id)
            current_version = current.version if current else 0
            logger.warning(
                f"Concurrent change to pending order of table {table_id}: "
                f"loaded version {loaded_version}, now {current_version}"
            )
            raise VersionConflictError(loaded_version, current_version) from None

    def _store_totals(self, draft: PendingOrder, totals: Totals) -> None:
        draft.subtotal = totals.subtotal
        draft.sgst_amount = totals.sgst_amount
        draft.cgst_amount = totals.cgst_amount
        draft.total = totals.total

    def _apply(
        self,
        table_id: int,
        mutate: Callable[[LineAccumulator], object],
        expected_version: Optional[int],
    ) -> DraftView:
        """Apply a line mutation and persist the result.

        The accumulator is changed first; if persisting fails it is restored
        from the snapshot and the transaction is rolled back.
        """
        self.get_table(table_id)
        draft = self.get_draft(table_id)
        if draft is not None:
            draft.check_version(expected_version)
        elif expected_version is not None:
            # The draft the client was editing is gone (finalized or discarded)
            raise VersionConflictError(expected_version, 0)

        loaded_version = draft.version if draft else 0
        accumulator = LineAccumulator.from_items(draft.items) if draft else LineAccumulator()
        snapshot = accumulator.snapshot()
        try:
            mutate(accumulator)
            with self.guard_version(table_id, loaded_version), unit_of_work(self.db):
                if accumulator.is_empty():
                    if draft is not None:
                        self.delete_draft(draft)
                        logger.info(f"Pending order for table {table_id} emptied and deleted")
                else:
                    sgst_rate = draft.sgst_rate if draft else None
                    cgst_rate = draft.cgst_rate if draft else None
                    sgst_rate, cgst_rate = resolve_rates(sgst_rate, cgst_rate)
                    _, priced = self.price_lines(accumulator)
                    totals = compute_totals(priced, sgst_rate, cgst_rate)
                    draft = self.upsert_draft(table_id, totals, draft)
                    self.replace_lines(draft, accumulator)
        except IntegrityError:
            accumulator.restore(snapshot)
            current = self.get_draft(table_id) if loaded_version == 0 else None
            if current is None:
                raise
            # Another session created the table's draft first
            raise VersionConflictError(loaded_version, current.version) from None
        except Exception:
            accumulator.restore(snapshot)
            raise

        return self.view(table_id)
