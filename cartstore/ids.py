# cartstore/ids.py
# Numeric max+1 ids for the file backend, opaque hex ids for the document backend.

import re
import secrets
from typing import Any, Iterable

_OBJECT_ID_RE = re.compile(r"^[0-9a-f]{24}$")


def next_id(existing_ids: Iterable[Any]) -> str:
    numbers = [int(i) for i in existing_ids]
    if not numbers:
        return "1"
    return str(max(numbers) + 1)


def new_object_id() -> str:
    return secrets.token_hex(12)


def is_numeric_id(value: Any) -> bool:
    return isinstance(value, str) and value.isdigit() and value.isascii()


def is_object_id(value: Any) -> bool:
    return isinstance(value, str) and bool(_OBJECT_ID_RE.match(value))
