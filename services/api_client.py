"""
Back-office REST client.

Thin requests-based wrapper around the backend's JSON endpoints.  Every call
sends the bearer token (when one is set) and returns the decoded JSON body.
Any non-2xx response, undecodable body or transport failure raises ApiError
carrying the server's message, so callers can show it and classify it with
services/error_messages.py.

Endpoints used by the import/pricing pipeline:
    GET    /products                    → {success, products[]}
    GET    /categories/active           → {success, categories[]}
    POST   /products/bulk               → {success, message}
    PATCH  /products/:id                → {success}
    DELETE /products/:id                → {success}
    GET    /settings/conversion-rate    → {success, conversionRate}
    POST   /settings/conversion-rate    → {success, conversionRate}
    GET    /products/export/csv         → raw CSV bytes
"""

import logging
from typing import Any, Optional

import requests

from config.settings import get_settings

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "An error occurred"


class ApiError(Exception):
    """
    A backend call failed.

    Attributes:
        message: Server message, with validation details appended
                 ("Validation failed: Name is required, SKU is required").
        status_code: HTTP status, or None for transport failures.
        payload: Decoded response body, if any.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        payload: Optional[dict] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.payload = payload or {}
        super().__init__(message)


class ApiClient:
    """Client for the back-office REST API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
        user_role: Optional[str] = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.token = token if token is not None else settings.auth_token
        self.timeout = timeout or settings.request_timeout_seconds
        self.session = session or requests.Session()
        self.user_role = user_role

    # -----------------------------------------------------------------
    # Transport
    # -----------------------------------------------------------------

    def set_token(self, token: Optional[str], user_role: Optional[str] = None) -> None:
        self.token = token
        self.user_role = user_role if token else None

    def _headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _send(
        self,
        method: str,
        endpoint: str,
        json: Optional[dict] = None,
        params: Optional[dict] = None,
        timeout: Optional[float] = None,
    ) -> requests.Response:
        url = f"{self.base_url}{endpoint}"
        logger.debug(f"{method} {url}")
        try:
            return self.session.request(
                method,
                url,
                json=json,
                params=params,
                headers=self._headers(),
                timeout=timeout or self.timeout,
            )
        except requests.RequestException as exc:
            logger.error(f"{method} {url} failed: {exc}")
            raise ApiError(f"Network error: {exc}") from exc

    def request(
        self,
        method: str,
        endpoint: str,
        json: Optional[dict] = None,
        params: Optional[dict] = None,
        timeout: Optional[float] = None,
    ) -> dict[str, Any]:
        """
        Call *endpoint* and return the decoded JSON body.

        Raises:
            ApiError: On transport failure, a non-JSON body, or a non-2xx
                status.  For non-2xx responses the message is the server's
                "message" plus any "errors[].msg" texts.
        """
        response = self._send(method, endpoint, json=json, params=params, timeout=timeout)

        try:
            data = response.json()
        except ValueError:
            data = None

        if not response.ok:
            message = _error_message(data, response.status_code)
            logger.error(
                f"{method} {endpoint} returned {response.status_code}: {message}"
            )
            raise ApiError(message, response.status_code, data if isinstance(data, dict) else None)

        if not isinstance(data, dict):
            raise ApiError(
                f"Unexpected response from {endpoint}", response.status_code
            )
        return data

    # -----------------------------------------------------------------
    # Authentication
    # -----------------------------------------------------------------

    def login(self, username: str, password: str) -> dict[str, Any]:
        """Log in and keep the returned token and user role."""
        data = self.request("POST", "/auth/login", json={
            "username": username,
            "password": password,
        })
        if data.get("success"):
            role = (data.get("user") or {}).get("role")
            self.set_token(data.get("token"), role)
            logger.info(f"Logged in as '{username}' (role={role})")
        return data

    def get_current_user(self) -> dict[str, Any]:
        data = self.request("GET", "/auth/me")
        role = (data.get("user") or {}).get("role")
        if role:
            self.user_role = role
        return data

    # -----------------------------------------------------------------
    # Products
    # -----------------------------------------------------------------

    def get_products(self, filters: Optional[dict] = None) -> dict[str, Any]:
        return self.request("GET", "/products", params=filters or None)

    def bulk_create_products(self, products: list[dict]) -> dict[str, Any]:
        return self.request("POST", "/products/bulk", json={"products": products})

    def update_product(self, product_id: str, changes: dict) -> dict[str, Any]:
        return self.request("PATCH", f"/products/{product_id}", json=changes)

    def delete_product(self, product_id: str) -> dict[str, Any]:
        return self.request("DELETE", f"/products/{product_id}")

    def export_products_csv(self) -> bytes:
        """Download the catalog export as raw CSV bytes."""
        response = self._send("GET", "/products/export/csv")
        if not response.ok:
            raise ApiError("Failed to export products", response.status_code)
        return response.content

    # -----------------------------------------------------------------
    # Categories and settings
    # -----------------------------------------------------------------

    def get_active_categories(self) -> dict[str, Any]:
        return self.request("GET", "/categories/active")

    def get_conversion_rate(self, timeout: Optional[float] = None) -> dict[str, Any]:
        return self.request("GET", "/settings/conversion-rate", timeout=timeout)

    def set_conversion_rate(self, rate: float) -> dict[str, Any]:
        return self.request("POST", "/settings/conversion-rate", json={"rate": rate})


def _error_message(data: Any, status_code: int) -> str:
    """Build the error text for a failed response body."""
    if not isinstance(data, dict):
        return f"{DEFAULT_ERROR_MESSAGE} (HTTP {status_code})"

    message = data.get("message") or DEFAULT_ERROR_MESSAGE
    errors = data.get("errors")
    if isinstance(errors, list) and errors:
        details = [
            str(item.get("msg") or item.get("message") or "")
            if isinstance(item, dict) else str(item)
            for item in errors
        ]
        message += ": " + ", ".join(detail for detail in details if detail)
    return message
