import pytest

from config.settings import mask_sensitive_data

pytestmark = pytest.mark.unit


class TestSensitiveDataMasking:
    @pytest.mark.parametrize(
        "key,value",
        [
            ("email", "ana@example.com"),
            ("phone", "+5511990000001"),
            ("Authorization", "Bearer eyJhbGciOi"),
        ],
    )
    def test_sensitive_keys_masked(self, key, value):
        result = mask_sensitive_data(None, None, {"event": "test", key: value})
        assert result[key] == "***MASKED***"

    def test_password_masked_inline(self):
        event_dict = {"event": "test", "data": "password='s3cret123'"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "s3cret123" not in result["data"]
        assert "***MASKED***" in result["data"]

    def test_token_masked_inline(self):
        event_dict = {"event": "test", "header": "token=abc123xyz"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "abc123xyz" not in result["header"]
        assert "***MASKED***" in result["header"]

    def test_empty_sensitive_value_left_alone(self):
        result = mask_sensitive_data(None, None, {"event": "test", "email": ""})
        assert result["email"] == ""

    def test_non_sensitive_data_unchanged(self):
        event_dict = {
            "event": "cancellation.approved",
            "order_id": "ORD-20260101-ABCDEF",
            "decision": "approved",
        }
        result = mask_sensitive_data(None, None, dict(event_dict))
        assert result == event_dict
