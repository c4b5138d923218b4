# tests/test_api.py
import asyncio
from urllib.parse import parse_qs, urlsplit

import pytest
from fastapi.testclient import TestClient

from cartstore.config import Settings
from cartstore.database import MemoryDocumentStore
from cartstore.main import create_app


@pytest.fixture
def store():
    return MemoryDocumentStore()


@pytest.fixture
def client(store):
    return TestClient(create_app(Settings(), store=store))


def _product(client, **fields):
    data = {"title": "Yerba", "description": "1kg pack", "code": "YB-1", "price": 10, "stock": 2, "category": "food"}
    data.update(fields)
    r = client.post("/api/products", json=data)
    assert r.status_code == 201
    return r.json()["product"]["id"]


def test_cart_flow(client):
    pid = _product(client)
    r = client.post("/api/carts")
    assert r.status_code == 201
    cid = r.json()["id"]
    assert r.json()["products"] == []

    r = client.post(f"/api/carts/{cid}/products/{pid}", json={"quantity": 2})
    assert r.status_code == 200
    line = r.json()["cart"]["products"][0]
    assert line["quantity"] == 2
    assert line["product"]["code"] == "YB-1"

    r = client.post(f"/api/carts/{cid}/products/{pid}", json={"quantity": 1})
    assert r.status_code == 400
    body = r.json()
    assert body["status"] == "error"
    assert (body["stock"], body["currentQty"], body["requested"]) == (2, 2, 1)

    r = client.get(f"/api/carts/{cid}")
    assert r.json()["products"][0]["product"]["id"] == pid

    r = client.delete(f"/api/carts/{cid}/products/{pid}")
    assert r.status_code == 200
    assert r.json()["cart"]["products"] == []

    r = client.delete(f"/api/carts/{cid}/products/{pid}")
    assert r.status_code == 404

    r = client.delete(f"/api/carts/{cid}")
    assert r.status_code == 200
    assert r.json()["cart"]["products"] == []


def test_add_defaults_to_one_without_body(client):
    pid = _product(client)
    cid = client.post("/api/carts").json()["id"]
    r = client.post(f"/api/carts/{cid}/products/{pid}")
    assert r.status_code == 200
    assert r.json()["cart"]["products"][0]["quantity"] == 1


@pytest.mark.parametrize("quantity", [0, -1, "abc", None])
def test_add_rejects_bad_quantity(client, quantity):
    pid = _product(client)
    cid = client.post("/api/carts").json()["id"]
    r = client.post(f"/api/carts/{cid}/products/{pid}", json={"quantity": quantity})
    assert r.status_code == 400
    assert "quantity" in r.json()["error"]


def test_add_rejects_unavailable_product(client):
    pid = _product(client, status=False)
    cid = client.post("/api/carts").json()["id"]
    assert client.post(f"/api/carts/{cid}/products/{pid}").status_code == 400


def test_id_errors(client):
    assert client.get("/api/carts/nope").status_code == 400
    assert client.get("/api/carts/" + "a" * 24).status_code == 404
    assert client.get("/api/products/nope").status_code == 400
    assert client.get("/api/products/" + "b" * 24).status_code == 404
    cid = client.post("/api/carts").json()["id"]
    assert client.post(f"/api/carts/{cid}/products/" + "c" * 24).status_code == 404
    assert client.delete("/api/carts/" + "d" * 24).status_code == 404


def test_list_envelope_and_links(client):
    for i in range(12):
        _product(client, code=f"C{i}", price=i, status=i % 4 != 0)

    r = client.get("/api/products", params={"query": "status:true", "sort": "desc", "page": 2, "limit": 5})
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "success"
    prices = [p["price"] for p in body["payload"]]
    assert prices == sorted(prices, reverse=True)
    assert all(p["status"] for p in body["payload"])
    assert len(prices) == 4
    assert body["page"] == 2
    assert body["totalPages"] == 2
    assert body["hasPrevPage"] is True and body["prevPage"] == 1
    assert body["hasNextPage"] is False and body["nextPage"] is None
    assert body["nextLink"] is None

    prev = parse_qs(urlsplit(body["prevLink"]).query)
    assert prev == {"query": ["status:true"], "sort": ["desc"], "page": ["1"], "limit": ["5"]}


def test_list_defaults(client):
    body = client.get("/api/products", params={"page": "zero", "limit": "0"}).json()
    assert body["page"] == 1
    assert body["totalPages"] == 1
    assert body["payload"] == []
    assert body["prevLink"] is None


def test_product_crud(client):
    r = client.post("/api/products", json={"title": "No code"})
    assert r.status_code == 400

    r = client.post("/api/products", json=[
        {"title": "A", "description": "a", "code": "A", "price": 1, "stock": 1, "category": "x"},
        {"title": "B", "description": "b", "code": "B", "price": 1, "category": "x"},
    ])
    assert r.status_code == 400
    assert "#2" in r.json()["error"]
    assert client.get("/api/products").json()["payload"] == []

    pid = _product(client)
    r = client.put(f"/api/products/{pid}", json={"_id": "x", "id": "y", "stock": 9})
    assert r.status_code == 200
    assert r.json()["product"]["stock"] == 9
    assert r.json()["product"]["id"] == pid

    assert client.delete(f"/api/products/{pid}").status_code == 200
    assert client.delete(f"/api/products/{pid}").status_code == 404


def test_storage_failure_is_503(client, store):
    cid = client.post("/api/carts").json()["id"]
    asyncio.run(store.close())
    r = client.get(f"/api/carts/{cid}")
    assert r.status_code == 503
    assert r.json() == {"status": "error", "error": "storage unavailable"}


def test_prices_keep_their_json_type(client):
    pid = _product(client, price=1200)
    price = client.get(f"/api/products/{pid}").json()["price"]
    assert price == 1200 and isinstance(price, int)

    r = client.put(f"/api/products/{pid}", json={"price": 12.5})
    assert r.json()["product"]["price"] == 12.5

    r = client.put(f"/api/products/{pid}", json={"price": 30})
    assert isinstance(r.json()["product"]["price"], int)
    assert client.put(f"/api/products/{pid}", json={"price": -1}).status_code == 400


def test_event_sink_follows_settings(store):
    from cartstore.events import LoggingEventSink, NullEventSink

    services = create_app(Settings(backend="memory"), store=store).state.services
    assert isinstance(services.products.events, LoggingEventSink)
    assert isinstance(services.carts.events, LoggingEventSink)

    services = create_app(Settings(backend="memory", event_sink="none"), store=store).state.services
    assert isinstance(services.products.events, NullEventSink)


def test_logging_sink_logs_each_write(store, monkeypatch):
    from cartstore import events

    logged = []

    class Recorder:
        def info(self, message, **fields):
            logged.append((message, fields))

    monkeypatch.setattr(events, "log", Recorder())
    client = TestClient(create_app(Settings(backend="memory"), store=store))
    pid = _product(client)
    cid = client.post("/api/carts").json()["id"]
    assert client.post(f"/api/carts/{cid}/products/{pid}").status_code == 200

    names = [fields["event_name"] for message, fields in logged if message == "event"]
    assert names == ["products.changed", "cart.changed"]
