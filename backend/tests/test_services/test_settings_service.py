"""
Tests for SystemSettingsService

The repository is a MagicMock; no database is used.
"""
from unittest.mock import MagicMock

import pytest

from loyalty_api.domain.settings import SystemSetting
from loyalty_api.services.settings_service import DEFAULT_SETTINGS, SystemSettingsService


def setting(key, value, setting_type="string", category="general"):
    return SystemSetting(setting_key=key, setting_value=value, setting_type=setting_type, category=category)


@pytest.fixture
def repository():
    return MagicMock()


@pytest.fixture
def service(repository):
    return SystemSettingsService(repository)


class TestReads:

    def test_get_returns_raw_value(self, service, repository):
        repository.find_by_key.return_value = setting("currency_code", "EUR")
        assert service.get("currency_code") == "EUR"

    def test_get_returns_none_on_database_error(self, service, repository):
        repository.find_by_key.side_effect = Exception("connection refused")
        assert service.get("currency_code") is None

    def test_get_with_default_for_empty_value(self, service, repository):
        repository.find_by_key.return_value = setting("company_name", "")
        assert service.get_with_default("company_name", "Acme") == "Acme"

    def test_get_as_type(self, service, repository):
        repository.find_by_key.return_value = setting("tax_inclusive", "true", "boolean")
        assert service.get_as_type("tax_inclusive", "boolean", False) is True

    def test_unparseable_number_falls_back(self, service, repository):
        repository.find_by_key.return_value = setting("low_stock_threshold", "many", "number")
        assert service.low_stock_threshold() == 5

    def test_low_stock_threshold_on_database_error(self, service, repository):
        repository.find_by_key.side_effect = Exception("timeout")
        assert service.low_stock_threshold() == 5

    def test_points_redemption_rate(self, service, repository):
        repository.find_by_key.return_value = setting("points_redemption_rate", "50", "number")
        assert service.points_redemption_rate() == 50.0

    def test_list_reads_return_empty_on_error(self, service, repository):
        repository.find_all.side_effect = Exception("boom")
        repository.find_by_category.side_effect = Exception("boom")
        assert service.all() == []
        assert service.by_category("chat") == []


class TestWrites:

    def test_set_with_type_infers_and_serializes(self, service, repository):
        assert service.set_with_type("tax_inclusive", True, category="pos", user="admin@example.com") is True

        args, kwargs = repository.upsert.call_args
        assert args == ("tax_inclusive", "true")
        assert kwargs["setting_type"] == "boolean"
        assert kwargs["category"] == "pos"
        assert kwargs["updated_by"] == "admin@example.com"

    def test_set_json(self, service, repository):
        service.set_with_type("feature_flags", {"beta": True})
        args, kwargs = repository.upsert.call_args
        assert args[1] == '{"beta": true}'
        assert kwargs["setting_type"] == "json"

    def test_set_returns_false_on_error(self, service, repository):
        repository.upsert.side_effect = Exception("read-only")
        assert service.set("company_name", "Acme") is False

    def test_initialize_default_settings_only_missing(self, service, repository):
        repository.exists_any.side_effect = lambda key: key != "currency_code"
        created = service.initialize_default_settings()

        assert created == 1
        repository.upsert.assert_called_once()
        assert repository.upsert.call_args[0] == ("currency_code", "USD")

    def test_initialize_default_settings_all_missing(self, service, repository):
        repository.exists_any.return_value = False
        assert service.initialize_default_settings() == len(DEFAULT_SETTINGS)


class TestChatSettings:

    def test_defaults_when_nothing_stored(self, service, repository):
        repository.find_by_category.return_value = []
        chat = service.get_chat_settings()
        assert chat.chat_enabled is True
        assert chat.max_file_size == 10485760
        assert "application/pdf" in chat.allowed_file_types

    def test_stored_values_are_typed(self, service, repository):
        repository.find_by_category.return_value = [
            setting("chat_enabled", "false", "boolean", "chat"),
            setting("chat_max_file_size", "2048", "number", "chat"),
            setting("chat_allowed_file_types", "image/png, text/plain", "string", "chat"),
        ]
        chat = service.get_chat_settings()
        assert chat.chat_enabled is False
        assert chat.max_file_size == 2048
        assert chat.allowed_file_types == ["image/png", "text/plain"]

    def test_update_writes_only_given_fields(self, service, repository):
        failed = service.update_chat_settings(
            {"chat_enabled": False, "allowed_file_types": ["image/png", "image/gif"]},
            user="admin@example.com",
        )

        assert failed == []
        written = {call[0][0]: call[0][1] for call in repository.upsert.call_args_list}
        assert written == {
            "chat_enabled": "false",
            "chat_allowed_file_types": "image/png,image/gif",
        }

    def test_update_reports_failed_keys(self, service, repository):
        repository.upsert.side_effect = Exception("down")
        assert service.update_chat_settings({"max_file_size": 1024}, user="admin") == ["chat_max_file_size"]
