from typing import Any, Dict, List, Optional

from .core import validate_product, validate_product_update
from .database import Collection, LockRegistry, Record, Store
from .errors import InvalidId, ItemNotFound, NotFound, ValidationError
from .events import EventSink, NullEventSink, notify
from .logs import get_logger
from .query import DEFAULT_LIMIT, DEFAULT_PAGE, Page, build_filter, build_sort, to_positive_int

log = get_logger("repositories")


def require_id(collection: Collection, record_id: Any, name: str) -> str:
    if not collection.is_valid_id(record_id):
        raise InvalidId(name, record_id)
    return record_id


class ProductRepository:
    def __init__(self, store: Store, events: Optional[EventSink] = None):
        self.collection = store.products
        self.events = events or NullEventSink()

    async def list(
        self,
        query: Optional[str] = None,
        sort: Optional[str] = None,
        page: Any = DEFAULT_PAGE,
        limit: Any = DEFAULT_LIMIT,
    ) -> Page:
        return await self.collection.paginate(
            build_filter(query),
            build_sort(sort),
            to_positive_int(page, DEFAULT_PAGE),
            to_positive_int(limit, DEFAULT_LIMIT),
        )

    async def get(self, product_id: Any) -> Record:
        require_id(self.collection, product_id, "pid")
        product = await self.collection.find_by_id(product_id)
        if product is None:
            raise NotFound("product", product_id)
        return product

    async def create(self, data: Any) -> Record:
        created = await self.collection.insert(validate_product(data))
        log.info("product_created", product_id=created["id"], code=created["code"])
        notify(self.events, "products.changed", {"action": "created", "ids": [created["id"]]})
        return created

    async def create_many(self, items: Any) -> List[Record]:
        """Validate every entry, then insert them in one backend call.

        Nothing is written when an entry is invalid; the error names the first
        bad entry by its 1-based position. Whether a storage failure halfway
        through leaves some records behind depends on the backend.
        """
        if not isinstance(items, list) or not items:
            raise ValidationError("product list is empty")
        records = [validate_product(item, position=i) for i, item in enumerate(items, start=1)]
        created = await self.collection.insert_many(records)
        log.info("products_created", count=len(created))
        notify(self.events, "products.changed", {"action": "created", "ids": [c["id"] for c in created]})
        return created

    async def update(self, product_id: Any, data: Any) -> Record:
        require_id(self.collection, product_id, "pid")
        partial = validate_product_update(data)
        updated = await self.collection.update_by_id(product_id, partial)
        if updated is None:
            raise NotFound("product", product_id)
        notify(self.events, "products.changed", {"action": "updated", "ids": [product_id]})
        return updated

    async def delete(self, product_id: Any) -> bool:
        require_id(self.collection, product_id, "pid")
        if not await self.collection.delete_by_id(product_id):
            raise NotFound("product", product_id)
        log.info("product_deleted", product_id=product_id)
        notify(self.events, "products.changed", {"action": "deleted", "ids": [product_id]})
        return True


class CartRepository:
    """Carts and their line items; writes to one cart run under that cart's lock."""

    def __init__(self, store: Store, locks: Optional[LockRegistry] = None, events: Optional[EventSink] = None):
        self.collection = store.carts
        self.products = store.products
        self.locks = LockRegistry() if locks is None else locks
        self.events = events or NullEventSink()

    def lock_for(self, cart_id: str):
        return self.locks.hold(f"cart:{cart_id}")

    async def create(self) -> Record:
        cart = await self.collection.insert({"products": []})
        log.info("cart_created", cart_id=cart["id"])
        return cart

    async def find(self, cart_id: Any) -> Record:
        """Return the stored cart with line items still holding product ids."""
        require_id(self.collection, cart_id, "cid")
        cart = await self.collection.find_by_id(cart_id)
        if cart is None:
            raise NotFound("cart", cart_id)
        return cart

    async def populate(self, cart: Record) -> Record:
        refs = [item["product"] for item in cart["products"]]
        found = await self.products.find_many(refs)
        return {
            **cart,
            "products": [
                {"product": found.get(item["product"]), "quantity": item["quantity"]}
                for item in cart["products"]
            ],
        }

    async def get(self, cart_id: Any) -> Record:
        return await self.populate(await self.find(cart_id))

    async def save_items(self, cart_id: str, items: List[Dict[str, Any]]) -> Record:
        updated = await self.collection.update_by_id(cart_id, {"products": items})
        if updated is None:
            # deleted underneath us between read and write
            raise NotFound("cart", cart_id)
        notify(self.events, "cart.changed", {"cart_id": cart_id})
        return updated

    async def clear(self, cart_id: Any) -> Record:
        require_id(self.collection, cart_id, "cid")
        async with self.lock_for(cart_id):
            await self.find(cart_id)
            cart = await self.save_items(cart_id, [])
        log.info("cart_cleared", cart_id=cart_id)
        return cart

    async def remove_item(self, cart_id: Any, product_id: Any) -> Record:
        require_id(self.collection, cart_id, "cid")
        require_id(self.products, product_id, "pid")
        async with self.lock_for(cart_id):
            cart = await self.find(cart_id)
            kept = [item for item in cart["products"] if item["product"] != product_id]
            if len(kept) == len(cart["products"]):
                raise ItemNotFound(cart_id, product_id)
            cart = await self.save_items(cart_id, kept)
        log.info("cart_item_removed", cart_id=cart_id, product_id=product_id)
        return await self.populate(cart)
