# cartstore/main.py
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Dict, Optional

import uvicorn
from fastapi import APIRouter, Body, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings
from .database import LockRegistry, Store, build_store
from .errors import StoreError
from .events import EventSink, LoggingEventSink, NullEventSink
from .inventory import InventoryReconciler
from .logs import configure_logging, get_logger
from .repositories import CartRepository, ProductRepository

log = get_logger("http")


@dataclass
class Services:
    store: Store
    products: ProductRepository
    carts: CartRepository
    inventory: InventoryReconciler


def build_services(store: Store, events: Optional[EventSink] = None) -> Services:
    events = events or NullEventSink()
    products = ProductRepository(store, events)
    carts = CartRepository(store, LockRegistry(), events)
    return Services(store, products, carts, InventoryReconciler(products, carts))


def _services(request: Request) -> Services:
    return request.app.state.services


# ---------------------------
# Product endpoints
# ---------------------------
products_router = APIRouter(prefix="/api/products", tags=["products"])


@products_router.get("")
async def list_products(
    request: Request,
    query: Optional[str] = None,
    sort: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
):
    result = await _services(request).products.list(query, sort, page, limit)

    def link(target: Optional[int]) -> Optional[str]:
        if target is None:
            return None
        # other query params survive; only page/limit are replaced
        return str(request.url.include_query_params(page=target, limit=result.limit))

    return {
        "status": "success",
        "payload": result.docs,
        "totalPages": result.total_pages,
        "prevPage": result.prev_page,
        "nextPage": result.next_page,
        "page": result.page,
        "hasPrevPage": result.has_prev_page,
        "hasNextPage": result.has_next_page,
        "prevLink": link(result.prev_page),
        "nextLink": link(result.next_page),
    }


@products_router.get("/{pid}")
async def get_product(request: Request, pid: str):
    return await _services(request).products.get(pid)


@products_router.post("", status_code=201)
async def create_products(request: Request, payload: Any = Body(...)):
    repo = _services(request).products
    if isinstance(payload, list):
        created = await repo.create_many(payload)
        return {"message": "products created", "products": created}
    created = await repo.create(payload)
    return {"message": "product created", "product": created}


@products_router.put("/{pid}")
async def update_product(request: Request, pid: str, payload: Any = Body(...)):
    updated = await _services(request).products.update(pid, payload)
    return {"message": "product updated", "product": updated}


@products_router.delete("/{pid}")
async def delete_product(request: Request, pid: str):
    await _services(request).products.delete(pid)
    return {"message": "product deleted"}


# ---------------------------
# Cart endpoints
# ---------------------------
carts_router = APIRouter(prefix="/api/carts", tags=["carts"])


@carts_router.post("", status_code=201)
async def create_cart(request: Request):
    return await _services(request).carts.create()


@carts_router.get("/{cid}")
async def get_cart(request: Request, cid: str):
    return await _services(request).carts.get(cid)


@carts_router.post("/{cid}/products/{pid}")
async def add_to_cart(request: Request, cid: str, pid: str, payload: Optional[Dict[str, Any]] = Body(None)):
    # an absent key means 1; an explicit null is a bad quantity
    quantity = (payload or {}).get("quantity", 1)
    cart = await _services(request).inventory.add_item(cid, pid, quantity)
    return {"message": "product added to cart", "cart": cart}


@carts_router.delete("/{cid}/products/{pid}")
async def remove_from_cart(request: Request, cid: str, pid: str):
    cart = await _services(request).carts.remove_item(cid, pid)
    return {"message": "product removed from cart", "cart": cart}


@carts_router.delete("/{cid}")
async def clear_cart(request: Request, cid: str):
    cart = await _services(request).carts.clear(cid)
    return {"message": "cart cleared", "cart": cart}


# ---------------------------
# App factory
# ---------------------------
async def _store_error(request: Request, exc: StoreError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def _unexpected_error(request: Request, exc: Exception):
    log.error("unhandled_error", path=request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"status": "error", "error": "internal error"})


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[Store] = None,
    events: Optional[EventSink] = None,
) -> FastAPI:
    settings = settings or Settings()
    configure_logging(settings.log_level, settings.log_format)
    if events is None:
        events = LoggingEventSink() if settings.event_sink == "log" else NullEventSink()
    services = build_services(store or build_store(settings), events)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log.info("startup", backend=settings.backend)
        yield
        await services.store.close()

    app = FastAPI(title="cart-store", lifespan=lifespan)
    app.state.services = services
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(StoreError, _store_error)
    app.add_exception_handler(Exception, _unexpected_error)
    app.include_router(products_router)
    app.include_router(carts_router)
    return app


def run(settings: Optional[Settings] = None) -> None:
    settings = settings or Settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
