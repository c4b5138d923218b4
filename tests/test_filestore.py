import asyncio
import json

import pytest

from cartstore.errors import StorageUnavailable
from cartstore.filestore import JsonFileCollection, JsonFileStore
from cartstore.main import build_services


def run(coro):
    return asyncio.run(coro)


def test_missing_file_reads_empty(tmp_path):
    coll = JsonFileCollection(tmp_path / "products.json")
    assert run(coll.read_all()) == []
    assert run(coll.find_by_id("1")) is None


def test_records_are_flat_json_arrays(tmp_path, product_data):
    services = build_services(JsonFileStore(tmp_path))
    product = run(services.products.create(product_data()))
    cart = run(services.carts.create())
    run(services.inventory.add_item(cart["id"], product["id"], 2))

    products = json.loads((tmp_path / "products.json").read_text())
    carts = json.loads((tmp_path / "carts.json").read_text())
    assert products[0]["id"] == "1"
    assert products[0]["code"] == "MATE-001"
    assert carts == [{"products": [{"product": "1", "quantity": 2}], "id": "1"}]


def test_ids_increment_from_max(tmp_path):
    coll = JsonFileCollection(tmp_path / "carts.json")
    a = run(coll.insert({"products": []}))
    b = run(coll.insert({"products": []}))
    run(coll.delete_by_id(a["id"]))
    c = run(coll.insert({"products": []}))
    assert (a["id"], b["id"], c["id"]) == ("1", "2", "3")


def test_corrupt_file_is_storage_unavailable(tmp_path):
    path = tmp_path / "products.json"
    path.write_text("{not json")
    with pytest.raises(StorageUnavailable):
        run(JsonFileCollection(path).read_all())

    path.write_text('{"id": "1"}')
    with pytest.raises(StorageUnavailable):
        run(JsonFileCollection(path).read_all())


def test_concurrent_writers_do_not_lose_updates(tmp_path):
    coll = JsonFileCollection(tmp_path / "products.json")

    async def insert_all():
        await asyncio.gather(*(coll.insert({"code": str(i)}) for i in range(20)))

    run(insert_all())
    records = run(coll.read_all())
    assert len(records) == 20
    assert sorted(int(r["id"]) for r in records) == list(range(1, 21))


def test_update_merges_and_keeps_id(tmp_path):
    coll = JsonFileCollection(tmp_path / "products.json")
    rec = run(coll.insert({"code": "A", "stock": 1}))
    updated = run(coll.update_by_id(rec["id"], {"stock": 4, "id": "77"}))
    assert updated == {"code": "A", "stock": 4, "id": rec["id"]}
    assert run(coll.update_by_id("99", {"stock": 1})) is None
