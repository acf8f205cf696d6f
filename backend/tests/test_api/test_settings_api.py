"""
Tests for the system settings endpoints
"""
from unittest.mock import patch

from loyalty_api.domain.settings import SystemSetting


class TestReadSettings:

    @patch('loyalty_api.api.settings.get_settings_service')
    def test_category_values_parsed(self, mock_service, client):
        mock_service.return_value.by_category.return_value = [
            SystemSetting(setting_key="low_stock_threshold", setting_value="5", setting_type="number",
                          category="inventory"),
        ]

        data = client.get("/api/settings/inventory").json()

        assert data["category"] == "inventory"
        assert data["settings"][0]["parsedValue"] == 5
        mock_service.return_value.by_category.assert_called_once_with("inventory")

    def test_unknown_category(self, client):
        response = client.get("/api/settings/marketing")
        assert response.status_code == 404

    def test_requires_login(self, anonymous_client):
        assert anonymous_client.get("/api/settings").status_code == 401


class TestUpdateSetting:

    def test_customer_forbidden(self, client):
        response = client.put("/api/settings/tax_rate", json={"value": 0.08})
        assert response.status_code == 403

    def test_invalid_type(self, admin_client):
        response = admin_client.put("/api/settings/tax_rate", json={"value": 0.08, "type": "decimal"})
        assert response.status_code == 400

    @patch('loyalty_api.api.settings.get_settings_service')
    def test_admin_saves(self, mock_service, admin_client):
        service = mock_service.return_value
        service.set_with_type.return_value = True
        service.get.return_value = "0.08"

        response = admin_client.put("/api/settings/tax_rate", json={"value": 0.08, "category": "pos"})

        assert response.json() == {"success": True, "key": "tax_rate", "value": "0.08"}
        service.set_with_type.assert_called_once_with(
            "tax_rate", 0.08, setting_type=None, category="pos", description=None, user="admin@example.com"
        )

    @patch('loyalty_api.api.settings.get_settings_service')
    def test_save_failure(self, mock_service, admin_client):
        mock_service.return_value.set_with_type.return_value = False

        response = admin_client.put("/api/settings/tax_rate", json={"value": 0.08})

        assert response.status_code == 500
