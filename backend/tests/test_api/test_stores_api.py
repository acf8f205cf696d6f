"""
Tests for the store locator and work order endpoints
"""
from datetime import date, timedelta
from unittest.mock import patch

from loyalty_api.domain.booking import WorkOrder
from loyalty_api.domain.store import Store, StoreService

DOWNTOWN = Store(id=1, name="Downtown", city="Springfield", latitude=39.7817, longitude=-89.6501,
                 services=["Bike Repair"], rating=4.5, parking_available=True)
LAKESIDE = Store(id=2, name="Lakeside", city="Chicago", latitude=41.8781, longitude=-87.6298,
                 services=["Ski Fitting"], rating=3.9)


class TestStoreLocator:

    @patch('loyalty_api.api.stores.StoreRepository')
    def test_nearest_first_with_distance_cap(self, mock_repo_cls, anonymous_client):
        mock_repo_cls.return_value.find_all_active.return_value = [LAKESIDE, DOWNTOWN]

        data = anonymous_client.get("/api/stores", params={"lat": 39.8, "lng": -89.6, "maxDistance": 50}).json()

        assert data["total"] == 1
        assert data["stores"][0]["name"] == "Downtown"
        assert data["stores"][0]["distance"] < 10

    @patch('loyalty_api.api.stores.StoreRepository')
    def test_service_and_parking_filters(self, mock_repo_cls, anonymous_client):
        mock_repo_cls.return_value.find_all_active.return_value = [DOWNTOWN, LAKESIDE]

        data = anonymous_client.get("/api/stores", params={"services": "ski fitting,Engraving"}).json()
        assert [s["id"] for s in data["stores"]] == [2]

        data = anonymous_client.get("/api/stores", params={"hasParking": "true"}).json()
        assert [s["id"] for s in data["stores"]] == [1]

        data = anonymous_client.get("/api/stores", params={"hasParking": "false"}).json()
        assert [s["id"] for s in data["stores"]] == [2]

    def test_latitude_out_of_range(self, anonymous_client):
        response = anonymous_client.get("/api/stores", params={"lat": 120, "lng": 0})
        assert response.status_code == 400

    @patch('loyalty_api.api.stores.StoreRepository')
    def test_services_of_unknown_store(self, mock_repo_cls, anonymous_client):
        mock_repo_cls.return_value.find_by_id.return_value = None

        response = anonymous_client.get("/api/stores/9/services")

        assert response.status_code == 404
        mock_repo_cls.return_value.find_services.assert_not_called()


def work_order(**overrides):
    values = dict(id=31, customer_id=42, store_id=1, title="Wheel truing", status="submitted")
    values.update(overrides)
    return WorkOrder(**values)


class TestWorkOrders:

    @patch('loyalty_api.api.work_orders.WorkOrderRepository')
    @patch('loyalty_api.api.work_orders.StoreRepository')
    def test_submit(self, mock_store_repo_cls, mock_repo_cls, client):
        # Arrange
        mock_store_repo_cls.return_value.find_by_id.return_value = DOWNTOWN
        mock_repo_cls.return_value.create.return_value = work_order()

        # Act
        response = client.post("/api/work-orders", json={
            "storeId": 1,
            "type": "repair",
            "title": "  Wheel truing ",
            "description": "Rear wheel wobbles",
            "estimatedCompletion": (date.today() + timedelta(days=7)).isoformat(),
        })

        # Assert
        assert response.status_code == 201
        kwargs = mock_repo_cls.return_value.create.call_args.kwargs
        assert kwargs["title"] == "Wheel truing"
        assert kwargs["priority"] == "medium"
        mock_store_repo_cls.return_value.find_service.assert_not_called()

    def test_invalid_type(self, client):
        response = client.post("/api/work-orders", json={
            "storeId": 1, "type": "polish", "title": "Shine", "description": "Make it shine",
        })
        assert response.status_code == 400

    def test_completion_too_far_ahead(self, client):
        response = client.post("/api/work-orders", json={
            "storeId": 1, "type": "repair", "title": "Frame", "description": "Crack",
            "estimatedCompletion": (date.today() + timedelta(days=120)).isoformat(),
        })
        assert response.status_code == 400

    @patch('loyalty_api.api.work_orders.StoreRepository')
    def test_service_must_belong_to_store(self, mock_store_repo_cls, client):
        mock_store_repo_cls.return_value.find_by_id.return_value = DOWNTOWN
        mock_store_repo_cls.return_value.find_service.return_value = None

        response = client.post("/api/work-orders", json={
            "storeId": 1, "serviceId": 77, "type": "repair", "title": "Brakes", "description": "Bleed",
        })

        assert response.status_code == 404

    @patch('loyalty_api.api.work_orders.WorkOrderRepository')
    def test_cancel_finished_order_rejected(self, mock_repo_cls, client):
        mock_repo_cls.return_value.find_for_customer.return_value = work_order(status="completed")

        response = client.patch("/api/work-orders/31", json={"status": "cancelled"})

        assert response.status_code == 400
        mock_repo_cls.return_value.update.assert_not_called()

    @patch('loyalty_api.api.work_orders.WorkOrderRepository')
    def test_notes_update_by_alias(self, mock_repo_cls, client):
        mock_repo = mock_repo_cls.return_value
        mock_repo.find_for_customer.return_value = work_order()
        mock_repo.update.return_value = work_order(customer_notes="Call first")

        response = client.patch("/api/work-orders/31", json={"customerNotes": "Call first"})

        assert response.json()["workOrder"]["customerNotes"] == "Call first"
        mock_repo.update.assert_called_once_with(31, 42, {"customer_notes": "Call first"})


def test_store_service_listing_shape():
    service = StoreService(id=3, store_id=1, name="Bike Repair", duration=60, price=45.0)
    assert service.to_dict()["storeId"] == 1
