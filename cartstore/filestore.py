# cartstore/filestore.py
# One JSON array per collection, rewritten whole on every write. The per-collection
# lock only guards writers inside this process.

import asyncio
import json
from pathlib import Path
from typing import Any, List, Optional

from .database import Collection, Record, Store
from .errors import StorageUnavailable
from .ids import is_numeric_id, next_id
from .logs import get_logger

log = get_logger("filestore")


class JsonFileCollection(Collection):
    def __init__(self, path: Path):
        self.path = Path(path)
        self.name = self.path.stem
        self._lock = asyncio.Lock()

    def is_valid_id(self, record_id: Any) -> bool:
        return is_numeric_id(record_id)

    def _load(self) -> List[Record]:
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "[]")
        except (OSError, ValueError) as e:
            log.error("collection_read_failed", path=str(self.path), exc_info=e)
            raise StorageUnavailable() from e
        if not isinstance(data, list):
            log.error("collection_corrupt", path=str(self.path), found=type(data).__name__)
            raise StorageUnavailable()
        return data

    def _dump(self, records: List[Record]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(json.dumps(records, indent=2) + "\n", encoding="utf-8")
            tmp.replace(self.path)
        except OSError as e:
            log.error("collection_write_failed", path=str(self.path), exc_info=e)
            raise StorageUnavailable() from e

    async def read_all(self) -> List[Record]:
        return await asyncio.to_thread(self._load)

    async def write_all(self, records: List[Record]) -> None:
        async with self._lock:
            await asyncio.to_thread(self._dump, records)

    async def find_by_id(self, record_id: str) -> Optional[Record]:
        for record in await self.read_all():
            if record.get("id") == record_id:
                return record
        return None

    async def insert_many(self, records: List[Record]) -> List[Record]:
        async with self._lock:
            existing = await asyncio.to_thread(self._load)
            created = []
            for r in records:
                doc = {**r, "id": next_id(e["id"] for e in existing)}
                existing.append(doc)
                created.append(doc)
            await asyncio.to_thread(self._dump, existing)
        return [dict(c) for c in created]

    async def update_by_id(self, record_id: str, partial: Record) -> Optional[Record]:
        async with self._lock:
            records = await asyncio.to_thread(self._load)
            for i, record in enumerate(records):
                if record.get("id") == record_id:
                    records[i] = {**record, **partial, "id": record_id}
                    await asyncio.to_thread(self._dump, records)
                    return records[i]
        return None

    async def delete_by_id(self, record_id: str) -> bool:
        async with self._lock:
            records = await asyncio.to_thread(self._load)
            kept = [r for r in records if r.get("id") != record_id]
            if len(kept) == len(records):
                return False
            await asyncio.to_thread(self._dump, kept)
        return True


class JsonFileStore(Store):
    def __init__(self, data_dir: Path):
        data_dir = Path(data_dir)
        self.products = JsonFileCollection(data_dir / "products.json")
        self.carts = JsonFileCollection(data_dir / "carts.json")
