# cartstore/database.py
# Storage interface, per-key locks and the in-process document backend.

import asyncio
import copy
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .config import Settings
from .errors import StorageUnavailable
from .ids import is_object_id, new_object_id
from .logs import get_logger
from .query import Page, matches, paginate_records

log = get_logger("database")

Record = Dict[str, Any]


class LockRegistry:
    """Named asyncio locks that exist only while some task holds or awaits them."""

    def __init__(self):
        # key -> [lock, number of tasks holding or waiting]
        self._locks: Dict[str, list] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, key: str):
        entry = self._locks.get(key)
        if entry is None:
            entry = self._locks[key] = [asyncio.Lock(), 0]
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[key]


class Collection(ABC):
    name: str

    @abstractmethod
    def is_valid_id(self, record_id: Any) -> bool: ...

    @abstractmethod
    async def read_all(self) -> List[Record]: ...

    @abstractmethod
    async def write_all(self, records: List[Record]) -> None: ...

    @abstractmethod
    async def find_by_id(self, record_id: str) -> Optional[Record]: ...

    @abstractmethod
    async def insert_many(self, records: List[Record]) -> List[Record]: ...

    @abstractmethod
    async def update_by_id(self, record_id: str, partial: Record) -> Optional[Record]: ...

    @abstractmethod
    async def delete_by_id(self, record_id: str) -> bool: ...

    async def insert(self, record: Record) -> Record:
        return (await self.insert_many([record]))[0]

    async def find_one(self, predicate: Callable[[Record], bool]) -> Optional[Record]:
        for record in await self.read_all():
            if predicate(record):
                return record
        return None

    async def find_many(self, ids: Iterable[str]) -> Dict[str, Record]:
        wanted = set(ids)
        return {r["id"]: r for r in await self.read_all() if r["id"] in wanted}

    async def paginate(
        self,
        flt: Record,
        sort: Optional[Tuple[str, int]],
        page: int,
        limit: int,
    ) -> Page:
        return paginate_records(await self.read_all(), flt, sort, page, limit)


class Store(ABC):
    products: Collection
    carts: Collection

    async def close(self) -> None:
        pass


# ---------------------------
# Document backend
# ---------------------------
class DocumentCollection(Collection):
    """Documents keyed by opaque id, with equality indexes on selected fields.

    ``paginate`` narrows its candidates through the indexes when the filter
    only touches indexed fields, and falls back to a full scan otherwise.
    """

    def __init__(self, name: str, indexed: Iterable[str] = ()):
        self.name = name
        self._docs: Dict[str, Record] = {}
        self._indexes: Dict[str, Dict[Any, set]] = {f: {} for f in indexed}
        self.closed = False

    def is_valid_id(self, record_id: Any) -> bool:
        return is_object_id(record_id)

    def _check_open(self) -> None:
        if self.closed:
            log.error("collection_closed", collection=self.name)
            raise StorageUnavailable()

    def _index_add(self, doc: Record) -> None:
        for f, idx in self._indexes.items():
            if f in doc:
                idx.setdefault(doc[f], set()).add(doc["id"])

    def _index_remove(self, doc: Record) -> None:
        for f, idx in self._indexes.items():
            ids = idx.get(doc.get(f))
            if ids is not None:
                ids.discard(doc["id"])
                if not ids:
                    del idx[doc.get(f)]

    def _put(self, doc: Record) -> None:
        old = self._docs.get(doc["id"])
        if old is not None:
            self._index_remove(old)
        self._docs[doc["id"]] = doc
        self._index_add(doc)

    async def read_all(self) -> List[Record]:
        self._check_open()
        return [copy.deepcopy(d) for d in self._docs.values()]

    async def write_all(self, records: List[Record]) -> None:
        self._check_open()
        self._docs.clear()
        for idx in self._indexes.values():
            idx.clear()
        for r in records:
            self._put(copy.deepcopy(r))

    async def find_by_id(self, record_id: str) -> Optional[Record]:
        self._check_open()
        doc = self._docs.get(record_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def find_many(self, ids: Iterable[str]) -> Dict[str, Record]:
        self._check_open()
        return {i: copy.deepcopy(self._docs[i]) for i in set(ids) if i in self._docs}

    async def insert_many(self, records: List[Record]) -> List[Record]:
        self._check_open()
        created = []
        for r in records:
            doc = copy.deepcopy(r)
            doc["id"] = new_object_id()
            self._put(doc)
            created.append(copy.deepcopy(doc))
        return created

    async def update_by_id(self, record_id: str, partial: Record) -> Optional[Record]:
        self._check_open()
        doc = self._docs.get(record_id)
        if doc is None:
            return None
        merged = {**doc, **copy.deepcopy(partial), "id": record_id}
        self._put(merged)
        return copy.deepcopy(merged)

    async def delete_by_id(self, record_id: str) -> bool:
        self._check_open()
        doc = self._docs.pop(record_id, None)
        if doc is None:
            return False
        self._index_remove(doc)
        return True

    async def paginate(self, flt, sort, page, limit) -> Page:
        self._check_open()
        if flt and all(f in self._indexes for f in flt):
            candidate_ids = None
            for f, v in flt.items():
                ids = self._indexes[f].get(v, set())
                candidate_ids = ids if candidate_ids is None else candidate_ids & ids
            # keep insertion order for unsorted listings
            candidates = [d for i, d in self._docs.items() if i in candidate_ids]
        else:
            candidates = [d for d in self._docs.values() if matches(d, flt)]
        result = paginate_records(candidates, {}, sort, page, limit)
        result.docs = [copy.deepcopy(d) for d in result.docs]
        return result


class MemoryDocumentStore(Store):
    def __init__(self):
        self.products = DocumentCollection("products", indexed=("category", "status"))
        self.carts = DocumentCollection("carts")

    async def close(self) -> None:
        self.products.closed = True
        self.carts.closed = True
        log.info("store_closed", backend="memory")


def build_store(settings: Settings) -> Store:
    if settings.backend == "memory":
        return MemoryDocumentStore()
    from .filestore import JsonFileStore

    return JsonFileStore(settings.data_dir)
