"""Tests for branch expenses."""

from datetime import date

import pytest

from tabill.core.exceptions import NotFoundError, ValidationError
from tabill.core.tenancy import TenantContext
from tabill.models.expense import ExpenseCategory
from tabill.services.expense_service import ExpenseService

API = "/api/v1"


@pytest.fixture
def expenses(db_session, tenant):
    service = ExpenseService(db_session, tenant)
    return [
        service.create_expense(ExpenseCategory.RENT, 25000.0, date(2024, 3, 1), "March rent"),
        service.create_expense(ExpenseCategory.UTILITIES, 1800.0, date(2024, 3, 5), "Gas"),
        service.create_expense(ExpenseCategory.UTILITIES, 950.5, date(2024, 3, 20), "Water"),
        service.create_expense(ExpenseCategory.SUPPLIES, 400.0, date(2024, 4, 2)),
    ]


class TestExpenseService:

    def test_list_is_newest_first(self, db_session, tenant, expenses):
        listed = ExpenseService(db_session, tenant).list_expenses()
        assert [e.expense_date for e in listed] == [
            date(2024, 4, 2), date(2024, 3, 20), date(2024, 3, 5), date(2024, 3, 1)
        ]

    def test_list_filters_by_range_and_category(self, db_session, tenant, expenses):
        service = ExpenseService(db_session, tenant)
        march = service.list_expenses(date(2024, 3, 1), date(2024, 3, 31))
        assert len(march) == 3
        utilities = service.list_expenses(category=ExpenseCategory.UTILITIES)
        assert {e.description for e in utilities} == {"Gas", "Water"}

    def test_summary_lists_every_category(self, db_session, tenant, expenses):
        summary = ExpenseService(db_session, tenant).summary(date(2024, 3, 1), date(2024, 3, 31))
        assert summary["total"] == pytest.approx(27750.5)
        assert summary["by_category"]["Rent"] == pytest.approx(25000.0)
        assert summary["by_category"]["Utilities"] == pytest.approx(2750.5)
        assert summary["by_category"]["Supplies"] == 0.0
        assert set(summary["by_category"]) == {c.value for c in ExpenseCategory}

    def test_non_positive_amount_rejected(self, db_session, tenant):
        service = ExpenseService(db_session, tenant)
        with pytest.raises(ValidationError):
            service.create_expense(ExpenseCategory.OTHER, 0, date(2024, 3, 1))
        with pytest.raises(ValidationError):
            service.create_expense(ExpenseCategory.OTHER, -10.0, date(2024, 3, 1))
        assert service.list_expenses() == []

    def test_update_and_delete(self, db_session, tenant, expenses):
        service = ExpenseService(db_session, tenant)
        updated = service.update_expense(expenses[1].id, amount=2000.0, description=None)
        assert updated.amount == 2000.0
        assert updated.description == "Gas"

        service.delete_expense(expenses[1].id)
        with pytest.raises(NotFoundError):
            service.get_expense(expenses[1].id)

    def test_other_branch_cannot_see_expense(self, db_session, other_branch, tenant, expenses):
        other = ExpenseService(db_session, TenantContext(tenant.owner_id, other_branch.id))
        assert other.list_expenses() == []
        with pytest.raises(NotFoundError):
            other.get_expense(expenses[0].id)

    def test_inverted_range_rejected(self, db_session, tenant):
        with pytest.raises(ValidationError):
            ExpenseService(db_session, tenant).summary(date(2024, 4, 1), date(2024, 3, 1))


class TestExpenseAPI:

    def test_create_list_and_summary(self, client, tenant_headers):
        created = client.post(
            f"{API}/expenses",
            json={"category": "Maintenance", "amount": 1200, "expense_date": "2024-05-04",
                  "description": "Chimney cleaning"},
            headers=tenant_headers,
        )
        assert created.status_code == 201
        assert created.json()["category"] == "Maintenance"

        listed = client.get(f"{API}/expenses", headers=tenant_headers)
        assert listed.status_code == 200
        assert listed.json()["total"] == 1

        summary = client.get(
            f"{API}/expenses/summary",
            params={"date_from": "2024-05-01", "date_to": "2024-05-31"},
            headers=tenant_headers,
        )
        assert summary.status_code == 200
        assert summary.json()["total"] == 1200
        assert summary.json()["by_category"]["Maintenance"] == 1200

    def test_invalid_payloads(self, client, tenant_headers):
        bad_amount = client.post(
            f"{API}/expenses",
            json={"category": "Rent", "amount": 0, "expense_date": "2024-05-04"},
            headers=tenant_headers,
        )
        assert bad_amount.status_code == 422
        bad_category = client.post(
            f"{API}/expenses",
            json={"category": "Travel", "amount": 10, "expense_date": "2024-05-04"},
            headers=tenant_headers,
        )
        assert bad_category.status_code == 422

    def test_update_delete_and_missing(self, client, tenant_headers):
        expense_id = client.post(
            f"{API}/expenses",
            json={"category": "Marketing", "amount": 500, "expense_date": "2024-05-04"},
            headers=tenant_headers,
        ).json()["id"]

        updated = client.put(
            f"{API}/expenses/{expense_id}", json={"amount": 750}, headers=tenant_headers
        )
        assert updated.status_code == 200
        assert updated.json()["amount"] == 750
        assert updated.json()["category"] == "Marketing"

        assert client.delete(f"{API}/expenses/{expense_id}", headers=tenant_headers).status_code == 204
        assert client.delete(f"{API}/expenses/{expense_id}", headers=tenant_headers).status_code == 404

    def test_inverted_range_is_bad_request(self, client, tenant_headers):
        response = client.get(
            f"{API}/expenses",
            params={"date_from": "2024-05-02", "date_to": "2024-05-01"},
            headers=tenant_headers,
        )
        assert response.status_code == 400
