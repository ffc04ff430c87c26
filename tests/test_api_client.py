"""
Tests for services/api_client.py and services/error_messages.py

Covers: bearer header, endpoint paths and bodies, error message building
from failed responses, transport failures, login token capture, CSV export,
and message-text error classification.
"""

from unittest.mock import MagicMock

import pytest
import requests

from services.api_client import ApiClient, ApiError
from services.error_messages import ErrorKind, classify_error, explain_error


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _response(status: int = 200, body: object = None, content: bytes = b"") -> MagicMock:
    response = MagicMock()
    response.status_code = status
    response.ok = 200 <= status < 300
    response.content = content
    if body is None:
        response.json.side_effect = ValueError("no JSON")
    else:
        response.json.return_value = body
    return response


def _client(response: MagicMock, token: str | None = "tok") -> tuple[ApiClient, MagicMock]:
    session = MagicMock()
    session.request.return_value = response
    client = ApiClient(base_url="http://api.test/api/", token=token, timeout=3, session=session)
    return client, session


# ═══════════════════════════════════════════════════════════════════════════
# Requests
# ═══════════════════════════════════════════════════════════════════════════

class TestRequests:
    def test_bearer_header_and_url(self):
        client, session = _client(_response(body={"success": True, "products": []}))

        client.get_products()

        args, kwargs = session.request.call_args
        assert args == ("GET", "http://api.test/api/products")
        assert kwargs["headers"]["Authorization"] == "Bearer tok"
        assert kwargs["timeout"] == 3

    def test_no_token_no_auth_header(self):
        client, session = _client(_response(body={"success": True}), token="")
        client.get_active_categories()
        assert "Authorization" not in session.request.call_args.kwargs["headers"]

    def test_bulk_create_body(self):
        client, session = _client(_response(body={"success": True}))
        client.bulk_create_products([{"sku": "M-1"}])
        kwargs = session.request.call_args.kwargs
        assert session.request.call_args.args[0] == "POST"
        assert kwargs["json"] == {"products": [{"sku": "M-1"}]}

    def test_update_product(self):
        client, session = _client(_response(body={"success": True}))
        client.update_product("p1", {"stock": 3})
        args, kwargs = session.request.call_args
        assert args == ("PATCH", "http://api.test/api/products/p1")
        assert kwargs["json"] == {"stock": 3}

    def test_delete_product(self):
        client, session = _client(_response(body={"success": True}))
        client.delete_product("p1")
        assert session.request.call_args.args == ("DELETE", "http://api.test/api/products/p1")

    def test_conversion_rate_timeout_passed(self):
        client, session = _client(_response(body={"success": True, "conversionRate": 400}))
        client.get_conversion_rate(timeout=1.5)
        assert session.request.call_args.kwargs["timeout"] == 1.5

    def test_set_conversion_rate_body(self):
        client, session = _client(_response(body={"success": True}))
        client.set_conversion_rate(410)
        assert session.request.call_args.kwargs["json"] == {"rate": 410}


# ═══════════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════════

class TestErrors:
    def test_server_message(self):
        client, _ = _client(_response(401, {"success": False, "message": "Invalid token."}))
        with pytest.raises(ApiError) as exc_info:
            client.get_products()
        assert exc_info.value.message == "Invalid token."
        assert exc_info.value.status_code == 401

    def test_validation_details_appended(self):
        body = {
            "success": False,
            "message": "Validation failed",
            "errors": [{"msg": "Name is required"}, {"msg": "SKU is required"}],
        }
        client, _ = _client(_response(400, body))
        with pytest.raises(ApiError) as exc_info:
            client.bulk_create_products([])
        assert exc_info.value.message == "Validation failed: Name is required, SKU is required"
        assert exc_info.value.payload == body

    def test_non_json_error(self):
        client, _ = _client(_response(502))
        with pytest.raises(ApiError) as exc_info:
            client.get_products()
        assert exc_info.value.message == "An error occurred (HTTP 502)"

    def test_non_json_success_body(self):
        client, _ = _client(_response(200))
        with pytest.raises(ApiError):
            client.get_products()

    def test_transport_failure_wrapped(self):
        session = MagicMock()
        session.request.side_effect = requests.ConnectionError("refused")
        client = ApiClient(base_url="http://api.test", token="tok", session=session)
        with pytest.raises(ApiError) as exc_info:
            client.get_products()
        assert exc_info.value.status_code is None
        assert exc_info.value.message.startswith("Network error")


# ═══════════════════════════════════════════════════════════════════════════
# Auth and export
# ═══════════════════════════════════════════════════════════════════════════

class TestAuthAndExport:
    def test_login_keeps_token_and_role(self):
        body = {"success": True, "token": "new-token", "user": {"role": "admin"}}
        client, _ = _client(_response(body=body), token=None)
        client.login("admin", "secret")
        assert client.token == "new-token"
        assert client.user_role == "admin"

    def test_failed_login_keeps_state(self):
        client, _ = _client(_response(body={"success": False}), token=None)
        client.login("admin", "wrong")
        assert client.token is None

    def test_current_user_role(self):
        client, _ = _client(_response(body={"success": True, "user": {"role": "seller"}}))
        client.get_current_user()
        assert client.user_role == "seller"

    def test_export_returns_bytes(self):
        client, _ = _client(_response(200, content=b"\xef\xbb\xbfName\r\n"))
        assert client.export_products_csv() == b"\xef\xbb\xbfName\r\n"

    def test_export_failure(self):
        client, _ = _client(_response(403))
        with pytest.raises(ApiError):
            client.export_products_csv()


# ═══════════════════════════════════════════════════════════════════════════
# Error classification
# ═══════════════════════════════════════════════════════════════════════════

class TestClassifyError:
    @pytest.mark.parametrize("message,kind", [
        ("Access denied. No token provided.", ErrorKind.NOT_LOGGED_IN),
        ("Authentication required.", ErrorKind.NOT_LOGGED_IN),
        ("Invalid token.", ErrorKind.SESSION_EXPIRED),
        ("Invalid token. User not found.", ErrorKind.SESSION_EXPIRED),
        ("jwt expired", ErrorKind.SESSION_EXPIRED),
        ("Access denied. Insufficient permissions.", ErrorKind.INSUFFICIENT_ROLE),
        ("Account is not active.", ErrorKind.ACCOUNT_INACTIVE),
        ("Validation failed: Name is required", ErrorKind.VALIDATION),
        ("Network error: connection refused", ErrorKind.NETWORK),
        ("Something odd", ErrorKind.UNKNOWN),
        ("", ErrorKind.UNKNOWN),
        (None, ErrorKind.UNKNOWN),
    ])
    def test_classification(self, message, kind):
        assert classify_error(message) is kind

    def test_role_and_login_explanations_differ(self):
        assert explain_error("Access denied. No token provided.") != explain_error(
            "Access denied. Insufficient permissions."
        )

    def test_validation_explanation_includes_message(self):
        assert "SKU is required" in explain_error("Validation failed: SKU is required")

    def test_unknown_passes_message_through(self):
        assert explain_error("Duplicate SKU") == "Duplicate SKU"
