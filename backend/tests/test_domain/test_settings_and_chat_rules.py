"""
Tests for setting value conversion and chat helpers
"""
import pytest

from loyalty_api.domain.chat import (
    DEFAULT_SESSION_TITLE,
    ChatAttachment,
    ChatSettings,
    title_from_message,
    validate_attachments,
)
from loyalty_api.domain.settings import infer_setting_type, parse_setting_value, serialize_setting_value


class TestSettingValues:

    @pytest.mark.parametrize("raw,setting_type,expected", [
        ("5", "number", 5),
        ("0.08", "number", 0.08),
        ("abc", "number", "fallback"),
        ("TRUE", "boolean", True),
        ("off", "boolean", False),
        ("maybe", "boolean", "fallback"),
        ('{"a": 1}', "json", {"a": 1}),
        ("{oops", "json", "fallback"),
        ("USD", "string", "USD"),
        (None, "string", "fallback"),
    ])
    def test_parse(self, raw, setting_type, expected):
        assert parse_setting_value(raw, setting_type, "fallback") == expected

    def test_serialize(self):
        assert serialize_setting_value(False, "boolean") == "false"
        assert serialize_setting_value([1, 2], "json") == "[1, 2]"
        assert serialize_setting_value(0.08, "number") == "0.08"

    def test_infer(self):
        assert infer_setting_type(True) == "boolean"
        assert infer_setting_type(3) == "number"
        assert infer_setting_type({"a": 1}) == "json"
        assert infer_setting_type("x") == "string"


class TestChatHelpers:

    def test_title_from_message(self):
        assert title_from_message("  Where is my   order?  ") == "Where is my order?"
        assert title_from_message("") == DEFAULT_SESSION_TITLE
        long_title = title_from_message("a" * 80)
        assert long_title == "a" * 50 + "..."

    def test_attachment_size_limit(self):
        settings = ChatSettings(max_file_size=1000)
        with pytest.raises(ValueError, match="exceeds the maximum size"):
            validate_attachments([ChatAttachment(name="scan.pdf", type="application/pdf", size=1001)], settings)

    def test_attachment_type_allowed_case_insensitive(self):
        settings = ChatSettings(allowed_file_types=["image/png"])
        validate_attachments([ChatAttachment(name="a.png", type="IMAGE/PNG", size=10)], settings)
        with pytest.raises(ValueError, match="not allowed"):
            validate_attachments([ChatAttachment(name="a.exe", type="application/x-msdownload", size=10)], settings)
