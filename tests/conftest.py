import pytest

from cartstore.database import MemoryDocumentStore
from cartstore.events import RecordingEventSink
from cartstore.filestore import JsonFileStore
from cartstore.main import build_services


@pytest.fixture(params=["memory", "file"])
def store(request, tmp_path):
    if request.param == "file":
        return JsonFileStore(tmp_path)
    return MemoryDocumentStore()


@pytest.fixture
def missing_id(store):
    # well-formed for the backend, but never allocated
    if isinstance(store, JsonFileStore):
        return "999999"
    return "0" * 24


@pytest.fixture
def events():
    return RecordingEventSink()


@pytest.fixture
def services(store, events):
    return build_services(store, events)


@pytest.fixture
def product_data():
    def make(**overrides):
        data = {
            "title": "Mate cup",
            "description": "Calabash mate cup",
            "code": "MATE-001",
            "price": 1200,
            "stock": 5,
            "category": "kitchen",
        }
        data.update(overrides)
        return data

    return make
