# cartstore/sdk.py
from typing import Any, Dict, Optional

import httpx
import requests


class StoreAPIError(Exception):
    def __init__(self, status_code: int, payload: Any):
        self.status_code = status_code
        self.payload = payload
        message = payload.get("error") if isinstance(payload, dict) else payload
        super().__init__(f"HTTP {status_code}: {message}")


def _decode(r) -> Any:
    try:
        body = r.json()
    except ValueError:
        body = {"error": r.text}
    if r.status_code >= 400:
        raise StoreAPIError(r.status_code, body)
    return body


class StoreClient:
    """Thin client for the cart-store HTTP API.

    ``session`` may be any object with a requests-style ``get``/``post``/
    ``put``/``delete`` API; a ``requests.Session`` is created when omitted.
    ``async_transport`` is handed to the ``httpx.AsyncClient`` of the async calls.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8080",
        timeout: int = 10,
        session: Any = None,
        async_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self.async_transport = async_transport

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    # Products
    def list_products(
        self,
        query: Optional[str] = None,
        sort: Optional[str] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Dict[str, Any]:
        params = {k: v for k, v in {"query": query, "sort": sort, "page": page, "limit": limit}.items() if v is not None}
        r = self.session.get(self._url("/api/products"), params=params, timeout=self.timeout)
        return _decode(r)

    def get_product(self, product_id: str) -> Dict[str, Any]:
        return _decode(self.session.get(self._url(f"/api/products/{product_id}"), timeout=self.timeout))

    def create_product(self, **fields: Any) -> Dict[str, Any]:
        r = self.session.post(self._url("/api/products"), json=fields, timeout=self.timeout)
        return _decode(r)["product"]

    # Carts
    def create_cart(self) -> Dict[str, Any]:
        return _decode(self.session.post(self._url("/api/carts"), timeout=self.timeout))

    def view_cart(self, cart_id: str) -> Dict[str, Any]:
        return _decode(self.session.get(self._url(f"/api/carts/{cart_id}"), timeout=self.timeout))

    def add_to_cart(self, cart_id: str, product_id: str, quantity: int = 1) -> Dict[str, Any]:
        r = self.session.post(
            self._url(f"/api/carts/{cart_id}/products/{product_id}"),
            json={"quantity": quantity},
            timeout=self.timeout,
        )
        return _decode(r)["cart"]

    def remove_from_cart(self, cart_id: str, product_id: str) -> Dict[str, Any]:
        r = self.session.delete(self._url(f"/api/carts/{cart_id}/products/{product_id}"), timeout=self.timeout)
        return _decode(r)["cart"]

    def clear_cart(self, cart_id: str) -> Dict[str, Any]:
        return _decode(self.session.delete(self._url(f"/api/carts/{cart_id}"), timeout=self.timeout))["cart"]

    async def add_to_cart_async(self, cart_id: str, product_id: str, quantity: int = 1) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.async_transport) as client:
            r = await client.post(
                self._url(f"/api/carts/{cart_id}/products/{product_id}"),
                json={"quantity": quantity},
            )
            return _decode(r)["cart"]
