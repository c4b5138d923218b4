# cartstore/errors.py
# Every reported failure is a StoreError carrying its HTTP status.

from typing import Any, Dict, Optional


class StoreError(Exception):
    status_code = 500
    message = "internal error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        self.message = message or self.message

    def detail(self) -> Dict[str, Any]:
        return {}

    def to_payload(self) -> Dict[str, Any]:
        return {"status": "error", "error": self.message, **self.detail()}


class InvalidId(StoreError):
    status_code = 400
    message = "invalid id"

    def __init__(self, name: str = "id", value: Any = None):
        super().__init__(f"invalid {name}")
        self.name = name
        self.value = value


class NotFound(StoreError):
    status_code = 404
    message = "not found"

    def __init__(self, entity: str, entity_id: Any = None):
        super().__init__(f"{entity} not found")
        self.entity = entity
        self.entity_id = entity_id


class ItemNotFound(NotFound):
    def __init__(self, cart_id: Any, product_id: Any):
        StoreError.__init__(self, "product is not in the cart")
        self.entity = "line item"
        self.cart_id = cart_id
        self.entity_id = product_id


class ProductUnavailable(StoreError):
    status_code = 400
    message = "product is not available"

    def __init__(self, product_id: Any = None):
        super().__init__()
        self.product_id = product_id


class InvalidQuantity(StoreError):
    status_code = 400
    message = "quantity must be a positive integer"

    def __init__(self, value: Any = None):
        super().__init__()
        self.value = value


class InsufficientStock(StoreError):
    status_code = 400
    message = "insufficient stock"

    def __init__(self, stock: int, current_qty: int, requested: int):
        super().__init__(f"insufficient stock: stock {stock}, in cart {current_qty}, requested +{requested}")
        self.stock = stock
        self.current_qty = current_qty
        self.requested = requested

    def detail(self) -> Dict[str, Any]:
        return {"stock": self.stock, "currentQty": self.current_qty, "requested": self.requested}


class ValidationError(StoreError):
    status_code = 400
    message = "missing required fields"


class StorageUnavailable(StoreError):
    status_code = 503
    message = "storage unavailable"
