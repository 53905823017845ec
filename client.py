"""
HTTP client for the Closet Cater API, as used by the storefront and the admin console.

Endpoints are configured from the environment: API_BASE_URL plus one path suffix per
endpoint, and DEFAULT_TIMEOUT in milliseconds. The admin credential lives in a
:class:`Session`, which wraps whatever mapping the caller hands in (a plain dict by default)
instead of reaching for ambient browser storage.
"""
import json
import logging
import os
from typing import Any, Dict, List, MutableMapping, Optional

import httpx

logger = logging.getLogger(__name__)

API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")
DEFAULT_TIMEOUT_MS = 5000


def load_timeout() -> float:
    """Request timeout in seconds from DEFAULT_TIMEOUT (milliseconds), 5s when unset or invalid."""
    try:
        ms = int(os.getenv("DEFAULT_TIMEOUT", ""))
    except ValueError:
        ms = 0
    return (ms or DEFAULT_TIMEOUT_MS) / 1000


def load_endpoints() -> Dict[str, str]:
    return {
        "CREATE_ADMIN": os.getenv("CREATE_ADMIN_ENDPOINT", "/api/auth/register"),
        "LOGIN": os.getenv("LOGIN_ENDPOINT", "/api/auth/login"),
        "PRODUCTS": os.getenv("PRODUCTS_ENDPOINT", "/api/products"),
        "ORDERS": os.getenv("ORDERS_ENDPOINT", "/api/orders"),
    }


class ApiError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def error_message(response: httpx.Response, fallback: str) -> str:
    try:
        data = response.json()
    except ValueError:
        return fallback
    if isinstance(data, dict):
        return data.get("message") or data.get("error") or fallback
    return fallback


class Session:
    """Credential store shared by the client and the admin console."""

    TOKEN_KEY = "authToken"
    INFO_KEY = "adminInfo"

    def __init__(self, storage: Optional[MutableMapping[str, str]] = None):
        self.storage = {} if storage is None else storage

    @property
    def token(self) -> str:
        return self.storage.get(self.TOKEN_KEY) or ""

    @property
    def admin_info(self) -> Optional[dict]:
        raw = self.storage.get(self.INFO_KEY)
        if not raw:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            return None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token and self.admin_info)

    def store(self, token: str, info: dict):
        self.storage[self.TOKEN_KEY] = token
        self.storage[self.INFO_KEY] = json.dumps(info)

    def clear(self):
        self.storage.pop(self.TOKEN_KEY, None)
        self.storage.pop(self.INFO_KEY, None)


class StorefrontClient:
    def __init__(
        self,
        http: Optional[httpx.Client] = None,
        session: Optional[Session] = None,
        base_url: Optional[str] = None,
        endpoints: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ):
        self.session = session if session is not None else Session()
        self.base_url = (API_BASE_URL if base_url is None else base_url).rstrip("/")
        self.endpoints = {**load_endpoints(), **(endpoints or {})}
        self.timeout = timeout if timeout is not None else load_timeout()
        self.http = http if http is not None else httpx.Client(timeout=self.timeout)

    def url(self, name: str, *parts: str) -> str:
        return self.base_url + self.endpoints[name] + "".join("/" + p for p in parts)

    def _request(self, method: str, url: str, fallback: str, auth: bool = False, body: Any = None) -> Any:
        headers = {}
        if auth and self.session.token:
            headers["Authorization"] = f"Bearer {self.session.token}"
        try:
            response = self.http.request(method, url, json=body, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise ApiError(fallback) from exc
        if response.is_error:
            raise ApiError(error_message(response, fallback), response.status_code)
        try:
            return response.json()
        except ValueError as exc:
            logger.warning("%s %s returned a non-JSON body", method, url)
            raise ApiError(fallback, response.status_code) from exc

    # products
    def list_products(self) -> List[dict]:
        return self._request("GET", self.url("PRODUCTS"), "Failed to fetch products")

    def get_product(self, product_id: str) -> dict:
        return self._request("GET", self.url("PRODUCTS", product_id), "Failed to fetch product")

    def create_product(self, data: dict) -> dict:
        return self._request("POST", self.url("PRODUCTS"), "Product creation failed", auth=True, body=data)

    def update_product(self, product_id: str, data: dict) -> dict:
        return self._request("PUT", self.url("PRODUCTS", product_id), "Product update failed", auth=True, body=data)

    # auth
    def login(self, email: str, password: str) -> dict:
        data = self._request("POST", self.url("LOGIN"), "Login failed", body={"email": email, "password": password})
        info = {k: v for k, v in data.items() if k != "token"}
        self.session.store(data["token"], info)
        return info

    def create_admin(self, name: str, email: str, password: str) -> dict:
        body = {"name": name, "email": email, "password": password}
        return self._request("POST", self.url("CREATE_ADMIN"), "Admin creation failed", body=body)

    def logout(self):
        self.session.clear()

    # orders
    def create_order(self, payload: dict) -> dict:
        return self._request("POST", self.url("ORDERS"), "Order creation failed", auth=True, body=payload)

    def get_order(self, order_id: str) -> dict:
        return self._request("GET", self.url("ORDERS", order_id), "Failed to fetch order", auth=True)

    def pay_order(self, order_id: str, payment_result: dict) -> dict:
        return self._request("PUT", self.url("ORDERS", order_id, "pay"), "Payment failed", auth=True, body=payment_result)

    def list_my_orders(self) -> List[dict]:
        return self._request("GET", self.url("ORDERS", "myorders"), "Failed to fetch orders", auth=True)

    def close(self):
        self.http.close()
