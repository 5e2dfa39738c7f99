from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationInfo, field_validator

DEFAULT_UNIT = "dona"


def normalize_price(value: Any) -> str:
    """Render a price as a plain numeric string: no exponent, no trailing zeros."""
    if isinstance(value, bool) or value is None:
        raise ValueError(f"price is not numeric: {value!r}")
    try:
        amount = Decimal(str(value).strip().replace(" ", ""))
    except InvalidOperation as exc:
        raise ValueError(f"price is not numeric: {value!r}") from exc
    if not amount.is_finite() or amount < 0:
        raise ValueError(f"price must be a finite non-negative number: {value!r}")
    if amount == amount.to_integral_value():
        return str(int(amount))
    return format(amount.normalize(), "f")


# Catalog
class SourceProduct(BaseModel):
    """Product as exported by the catalog store."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=True)

    id: str = Field(..., validation_alias=AliasChoices("id", "_id"))
    name: str = Field(..., min_length=1)
    description: str = ""
    price: Any
    category_id: str | None = Field(default=None, validation_alias=AliasChoices("category_id", "categoryId"))
    category: str | None = None
    stock: int = 0
    unit: str = DEFAULT_UNIT

    @field_validator("id", "category_id", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @field_validator("description", "unit", mode="before")
    @classmethod
    def _none_to_default(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return "" if info.field_name == "description" else DEFAULT_UNIT
        return value


class ProductRecord(BaseModel):
    """Indexed product record, without its vector."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: str = ""
    price: str
    category: str = Field(..., min_length=1)
    stock: int = Field(default=0, ge=0)
    unit: str = DEFAULT_UNIT

    @field_validator("price", mode="before")
    @classmethod
    def _normalize_price(cls, value: Any) -> str:
        return normalize_price(value)

    def embedding_text(self) -> str:
        """Text fed to the embedding model; derived only from the record fields."""
        parts = [f"{self.name}."]
        if self.description:
            parts.append(f"{self.description}.")
        parts.append(f"Kategoriya: {self.category}.")
        parts.append(f"Narxi: {self.price} so'm.")
        return " ".join(parts)

    def to_metadata(self) -> Dict[str, str | int]:
        return self.model_dump()

    @classmethod
    def from_metadata(cls, metadata: Dict[str, Any]) -> "ProductRecord":
        return cls.model_validate(metadata)


class ProductHit(BaseModel):
    product: ProductRecord
    score: float


# Chat
class ChatTurn(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    """Chat request from the storefront widget."""

    message: str = Field(..., min_length=1, description="Foydalanuvchi xabari")
    history: List[ChatTurn] = Field(default_factory=list, description="Oldingi suhbat")

    @field_validator("message")
    @classmethod
    def _message_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("message must not be blank")
        return value


# Admin
class ReindexRequest(BaseModel):
    """Request to rebuild the product index."""

    mode: Literal["full"] = Field(default="full", description="Rebuild mode")
    catalog_path: str | None = Field(default=None, description="Override catalog snapshot path")


class SkippedRecord(BaseModel):
    source_id: str
    reason: str


class ReindexResponse(BaseModel):
    status: Literal["completed"] = Field(default="completed")
    indexed: int = Field(..., ge=0, description="Number of products indexed")
    skipped: List[SkippedRecord] = Field(default_factory=list)
    elapsed_sec: float | None = Field(None, ge=0)


__all__ = [
    "DEFAULT_UNIT",
    "normalize_price",
    "SourceProduct",
    "ProductRecord",
    "ProductHit",
    "ChatTurn",
    "ChatRequest",
    "ReindexRequest",
    "SkippedRecord",
    "ReindexResponse",
]
