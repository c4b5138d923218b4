# cartstore/inventory.py
# Stock is a ceiling checked against the cart's cumulative quantity; it is never decremented.

from typing import Any

from .core import parse_quantity
from .database import Record
from .errors import InsufficientStock, ProductUnavailable
from .logs import get_logger
from .repositories import CartRepository, ProductRepository, require_id

log = get_logger("inventory")


class InventoryReconciler:
    def __init__(self, products: ProductRepository, carts: CartRepository):
        self.products = products
        self.carts = carts

    async def add_item(self, cart_id: Any, product_id: Any, quantity: Any = 1) -> Record:
        require_id(self.carts.collection, cart_id, "cid")
        require_id(self.products.collection, product_id, "pid")

        async with self.carts.lock_for(cart_id):
            cart = await self.carts.find(cart_id)
            product = await self.products.get(product_id)
            if product.get("status") is False:
                log.info("add_rejected", reason="unavailable", cart_id=cart_id, product_id=product_id)
                raise ProductUnavailable(product_id)
            requested = parse_quantity(quantity)

            items = cart["products"]
            line = next((item for item in items if item["product"] == product_id), None)
            current_qty = line["quantity"] if line is not None else 0
            new_total = current_qty + requested

            stock = product.get("stock", 0)
            if stock < new_total:
                log.info(
                    "add_rejected",
                    reason="insufficient_stock",
                    cart_id=cart_id,
                    product_id=product_id,
                    stock=stock,
                    current_qty=current_qty,
                    requested=requested,
                )
                raise InsufficientStock(stock, current_qty, requested)

            if line is not None:
                line["quantity"] = new_total
            else:
                items.append({"product": product_id, "quantity": requested})
            saved = await self.carts.save_items(cart_id, items)

        log.info("item_added", cart_id=cart_id, product_id=product_id, quantity=new_total)
        return await self.carts.populate(saved)
