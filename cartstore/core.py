import math
from typing import Annotated, Any, Dict, List, Optional, Union

import pydantic
from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StrictInt

from .errors import InvalidQuantity, ValidationError

REQUIRED_PRODUCT_FIELDS = ("title", "description", "code", "price", "stock", "category")


def _non_negative(value: Union[int, float]) -> Union[int, float]:
    if value < 0:
        raise ValueError("must be >= 0")
    return value


# ints stay ints, so a price of 1200 is stored and returned as 1200
Price = Annotated[Union[StrictInt, float], AfterValidator(_non_negative)]


# ---------------------------
# Pydantic schemas
# ---------------------------
class ProductIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    code: str = Field(min_length=1)
    price: Price
    stock: int = Field(ge=0)
    category: str = Field(min_length=1)
    status: bool = True
    thumbnails: List[str] = Field(default_factory=list)


class ProductUpdate(BaseModel):
    """Allow-list of mutable product fields.

    Defaults are not validated, so an omitted field stays unset while an
    explicit ``null`` is rejected like any other bad value. Unknown keys,
    ``id`` included, are dropped.
    """

    model_config = ConfigDict(extra="ignore")

    title: str = Field(None, min_length=1)
    description: str = Field(None, min_length=1)
    code: str = Field(None, min_length=1)
    price: Price = None
    stock: int = Field(None, ge=0)
    category: str = Field(None, min_length=1)
    status: bool = None
    thumbnails: List[str] = None


# ---------------------------
# Helpers
# ---------------------------
def _bad_fields(e: pydantic.ValidationError) -> List[str]:
    return sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]})


def validate_product(data: Any, position: Optional[int] = None) -> Dict[str, Any]:
    """Validate a product creation payload and return the record to store."""
    prefix = f"product #{position}: " if position is not None else ""
    if not isinstance(data, dict):
        raise ValidationError(f"{prefix}expected an object")
    try:
        product = ProductIn.model_validate(data)
    except pydantic.ValidationError as e:
        raise ValidationError(f"{prefix}missing or invalid fields: {', '.join(_bad_fields(e))}") from e
    return product.model_dump()


def validate_product_update(data: Any) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise ValidationError("expected an object")
    partial = {k: v for k, v in data.items() if k != "id"}
    try:
        update = ProductUpdate.model_validate(partial)
    except pydantic.ValidationError as e:
        raise ValidationError(f"invalid fields: {', '.join(_bad_fields(e))}") from e
    return update.model_dump(exclude_unset=True)


def parse_quantity(value: Any) -> int:
    """Coerce a requested quantity to a positive int."""
    if value is None or isinstance(value, bool):
        raise InvalidQuantity(value)

    n = value
    if isinstance(value, str):
        text = value.strip()
        try:
            n = int(text)
        except ValueError:
            try:
                n = float(text)
            except ValueError:
                raise InvalidQuantity(value)
    if isinstance(n, float):
        if not math.isfinite(n) or not n.is_integer():
            raise InvalidQuantity(value)
        n = int(n)
    if not isinstance(n, int) or n <= 0:
        raise InvalidQuantity(value)
    return n
