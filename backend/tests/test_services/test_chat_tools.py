"""
Tests for the chat assistant tools and the tool dispatcher
"""
import json
from unittest.mock import MagicMock, patch

from loyalty_api.domain.customer import Customer
from loyalty_api.services import chat_tools
from loyalty_api.services.chat_tools import execute_tool


class TestExecuteTool:

    def test_unknown_tool(self):
        result = json.loads(execute_tool("delete_account", {}, customer_id=42))
        assert result == {"error": "Tool 'delete_account' not found"}

    def test_model_cannot_choose_customer(self):
        fake = MagicMock(return_value='{"ok": true}')
        with patch.dict(chat_tools.TOOL_FUNCTIONS, {"get_points_balance": fake}):
            execute_tool("get_points_balance", {"customer_id": 1}, customer_id=42)

        fake.assert_called_once_with(customer_id=42)

    def test_invalid_parameters(self):
        result = json.loads(execute_tool("get_points_balance", {"color": "red"}, customer_id=42))
        assert result["error"].startswith("Invalid parameters for get_points_balance")

    def test_none_input(self):
        fake = MagicMock(return_value='{}')
        with patch.dict(chat_tools.TOOL_FUNCTIONS, {"get_upcoming_appointments": fake}):
            execute_tool("get_upcoming_appointments", None, customer_id=42)
        fake.assert_called_once_with(customer_id=42)


class TestPointsBalance:

    @patch('loyalty_api.services.chat_tools.CustomerRepository')
    def test_balance_and_progress(self, mock_repo_class):
        mock_repo_class.return_value.find_by_id.return_value = Customer(
            id=42, name="Ana", points=3000, customer_tier="Silver", total_spent=1830.5,
        )

        result = json.loads(chat_tools.get_points_balance(customer_id=42))

        assert result["points"] == 3000
        assert result["tier"] == "Silver"
        assert result["next_tier"] == "Gold"
        assert result["points_to_next_tier"] == 2000
        assert result["progress_percent"] == 50.0
        assert result["total_spent"] == 1830.5

    @patch('loyalty_api.services.chat_tools.CustomerRepository')
    def test_missing_customer(self, mock_repo_class):
        mock_repo_class.return_value.find_by_id.return_value = None
        assert json.loads(chat_tools.get_points_balance(customer_id=42)) == {"error": "Customer not found"}

    @patch('loyalty_api.services.chat_tools.CustomerRepository')
    def test_database_error_becomes_json_error(self, mock_repo_class):
        mock_repo_class.return_value.find_by_id.side_effect = Exception("connection lost")
        assert json.loads(chat_tools.get_points_balance(customer_id=42)) == {"error": "connection lost"}


class TestSearchProducts:

    @patch('loyalty_api.services.chat_tools.ProductRepository')
    def test_limit_capped(self, mock_repo_class):
        mock_repo_class.return_value.search.return_value = ([], 0)

        chat_tools.search_products(customer_id=42, query="shoe", limit=50)

        kwargs = mock_repo_class.return_value.search.call_args.kwargs
        assert kwargs["limit"] == 10
        assert kwargs["search"] == "shoe"
