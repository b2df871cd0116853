"""Tests for kitchen stock requests and production logs."""

import pytest

from tabill.core.exceptions import NotFoundError, OrderValidationError, ValidationError
from tabill.models.kitchen import KitchenRequestStatus
from tabill.services.inventory_service import InventoryService
from tabill.services.kitchen_service import KitchenService, ProductionService

API = "/api/v1"


@pytest.fixture
def stock(db_session, tenant):
    service = InventoryService(db_session, tenant)
    return {
        "rice": service.create_item(name="Basmati Rice", quantity=20.0, unit="kg"),
        "chicken": service.create_item(name="Chicken", quantity=4.0, unit="kg"),
    }


class TestKitchenRequests:

    def test_create_copies_name_and_unit(self, db_session, tenant, stock):
        kitchen_request = KitchenService(db_session, tenant).create_request(
            "Suresh", [{"inventory_item_id": stock["rice"].id, "quantity": 5}], notes="Lunch prep"
        )
        assert kitchen_request.status == KitchenRequestStatus.PENDING
        assert kitchen_request.requesting_staff_name == "Suresh"
        line = kitchen_request.lines[0]
        assert (line.item_name, line.unit, line.quantity) == ("Basmati Rice", "kg", 5)

    def test_fulfil_deducts_stock(self, db_session, tenant, stock):
        service = KitchenService(db_session, tenant)
        kitchen_request = service.create_request(
            "Suresh",
            [
                {"inventory_item_id": stock["rice"].id, "quantity": 5},
                {"inventory_item_id": stock["chicken"].id, "quantity": 1.5},
            ],
        )

        fulfilled = service.fulfil_request(kitchen_request.id)

        assert fulfilled.status == KitchenRequestStatus.FULFILLED
        assert fulfilled.fulfilled_date is not None
        inventory = InventoryService(db_session, tenant)
        assert inventory.get_item(stock["rice"].id).quantity == pytest.approx(15.0)
        assert inventory.get_item(stock["chicken"].id).quantity == pytest.approx(2.5)

    def test_short_line_rejects_whole_request(self, db_session, tenant, stock):
        service = KitchenService(db_session, tenant)
        kitchen_request = service.create_request(
            "Suresh",
            [
                {"inventory_item_id": stock["rice"].id, "quantity": 5},
                {"inventory_item_id": stock["chicken"].id, "quantity": 6},
            ],
        )

        with pytest.raises(ValidationError, match="Not enough stock"):
            service.fulfil_request(kitchen_request.id)

        inventory = InventoryService(db_session, tenant)
        assert inventory.get_item(stock["rice"].id).quantity == pytest.approx(20.0)
        assert service.get_request(kitchen_request.id).status == KitchenRequestStatus.PENDING

    def test_deleted_inventory_item_blocks_fulfilment(self, db_session, tenant, stock):
        service = KitchenService(db_session, tenant)
        kitchen_request = service.create_request(
            "Suresh", [{"inventory_item_id": stock["chicken"].id, "quantity": 1}]
        )
        InventoryService(db_session, tenant).delete_item(stock["chicken"].id)

        with pytest.raises(ValidationError, match="no longer exists"):
            service.fulfil_request(kitchen_request.id)

    def test_only_pending_requests_change(self, db_session, tenant, stock):
        service = KitchenService(db_session, tenant)
        kitchen_request = service.create_request(
            "Suresh", [{"inventory_item_id": stock["rice"].id, "quantity": 1}]
        )
        assert service.cancel_request(kitchen_request.id).status == KitchenRequestStatus.CANCELLED
        with pytest.raises(ValidationError):
            service.fulfil_request(kitchen_request.id)
        assert InventoryService(db_session, tenant).get_item(stock["rice"].id).quantity == 20.0

    def test_list_filters_by_status(self, db_session, tenant, stock):
        service = KitchenService(db_session, tenant)
        first = service.create_request("A", [{"inventory_item_id": stock["rice"].id, "quantity": 1}])
        service.create_request("B", [{"inventory_item_id": stock["rice"].id, "quantity": 1}])
        service.fulfil_request(first.id)

        pending = service.list_requests(status=KitchenRequestStatus.PENDING)
        assert [r.requesting_staff_name for r in pending] == ["B"]
        assert len(service.list_requests()) == 2

    def test_invalid_requests(self, db_session, tenant, stock):
        service = KitchenService(db_session, tenant)
        with pytest.raises(ValidationError):
            service.create_request("Suresh", [])
        with pytest.raises(ValidationError):
            service.create_request("  ", [{"inventory_item_id": stock["rice"].id, "quantity": 1}])
        with pytest.raises(NotFoundError):
            service.create_request("Suresh", [{"inventory_item_id": 9999, "quantity": 1}])
        assert service.list_requests() == []


class TestProductionLogs:

    def test_cost_from_variant_cost_price(self, db_session, tenant, menu):
        log = ProductionService(db_session, tenant).log_production(
            "Chef Anil", menu["biryani"].id, menu["biryani_full"].id, 4, chef_id=7
        )
        assert log.menu_item_name == "Chicken Biryani"
        assert log.variant_name == "Full"
        assert log.quantity_produced == 4
        assert log.cost_of_production == pytest.approx(800.0)

    def test_names_and_cost_are_frozen(self, db_session, tenant, menu):
        service = ProductionService(db_session, tenant)
        log = service.log_production("Chef Anil", menu["soda"].id, menu["soda_regular"].id, 10)

        menu["soda_regular"].cost_price = 35.0
        menu["soda"].name = "Jeera Soda"
        db_session.commit()

        stored = service.list_logs()[0]
        assert stored.id == log.id
        assert stored.menu_item_name == "Masala Soda"
        assert stored.cost_of_production == pytest.approx(200.0)

    def test_filter_by_chef(self, db_session, tenant, menu):
        service = ProductionService(db_session, tenant)
        service.log_production("Chef Anil", menu["soda"].id, menu["soda_regular"].id, 2, chef_id=1)
        service.log_production("Chef Mary", menu["soda"].id, menu["soda_regular"].id, 3, chef_id=2)
        assert [log.chef_name for log in service.list_logs(chef_id=2)] == ["Chef Mary"]

    def test_invalid_production(self, db_session, tenant, menu):
        service = ProductionService(db_session, tenant)
        with pytest.raises(ValidationError):
            service.log_production("Chef Anil", menu["soda"].id, menu["soda_regular"].id, 0)
        with pytest.raises(OrderValidationError):
            service.log_production("Chef Anil", menu["soda"].id, menu["soda_regular"].id, 1.5)
        with pytest.raises(NotFoundError):
            service.log_production("Chef Anil", menu["soda"].id, menu["biryani_half"].id, 1)
        assert service.list_logs() == []


class TestKitchenAPI:

    def test_request_flow(self, client, tenant_headers, stock):
        created = client.post(
            f"{API}/kitchen/requests",
            json={
                "requesting_staff_name": "Suresh",
                "lines": [{"inventory_item_id": stock["chicken"].id, "quantity": 3}],
            },
            headers=tenant_headers,
        )
        assert created.status_code == 201
        request_id = created.json()["id"]
        assert created.json()["lines"][0]["item_name"] == "Chicken"

        fulfilled = client.post(f"{API}/kitchen/requests/{request_id}/fulfil", headers=tenant_headers)
        assert fulfilled.status_code == 200
        assert fulfilled.json()["status"] == "Fulfilled"

        again = client.post(f"{API}/kitchen/requests/{request_id}/fulfil", headers=tenant_headers)
        assert again.status_code == 400

        listed = client.get(
            f"{API}/kitchen/requests", params={"status": "Fulfilled"}, headers=tenant_headers
        )
        assert listed.json()["total"] == 1

    def test_short_stock_is_bad_request(self, client, tenant_headers, stock):
        request_id = client.post(
            f"{API}/kitchen/requests",
            json={
                "requesting_staff_name": "Suresh",
                "lines": [{"inventory_item_id": stock["chicken"].id, "quantity": 10}],
            },
            headers=tenant_headers,
        ).json()["id"]
        response = client.post(f"{API}/kitchen/requests/{request_id}/fulfil", headers=tenant_headers)
        assert response.status_code == 400
        assert "Not enough stock" in response.json()["detail"]

    def test_production_flow(self, client, tenant_headers, menu):
        created = client.post(
            f"{API}/kitchen/productions",
            json={
                "chef_name": "Chef Anil",
                "menu_item_id": menu["biryani"].id,
                "variant_id": menu["biryani_half"].id,
                "quantity": 3,
            },
            headers=tenant_headers,
        )
        assert created.status_code == 201
        assert created.json()["cost_of_production"] == 360.0

        listed = client.get(f"{API}/kitchen/productions", headers=tenant_headers)
        assert listed.json()["total"] == 1

        missing = client.post(
            f"{API}/kitchen/productions",
            json={"chef_name": "Chef Anil", "menu_item_id": 9999, "variant_id": 1, "quantity": 1},
            headers=tenant_headers,
        )
        assert missing.status_code == 404
