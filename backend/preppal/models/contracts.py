"""PrepPal contract models.

Everything that crosses a stage boundary of the shopping-list pipeline, and
every API request/response body, is declared here. Stages only ever read
these models; they build new instances instead of mutating inputs.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

# Prices stay Decimal internally and go over the wire as JSON numbers.
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

MatchTier = Literal["code", "name", "keyword"]


# === Pipeline Types ===


class SuggestedItem(BaseModel):
    """An item proposed by intent resolution, not yet checked against inventory."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    category: str = Field(min_length=1)
    unit_price: Money = Field(ge=0)
    quantity: int = Field(ge=1, default=1)
    reference_code: str | None = None


class CatalogRecord(BaseModel):
    """A product as stored in the catalog. Read-only to the pipeline."""

    model_config = ConfigDict(frozen=True)

    id: int
    reference_code: str
    name: str
    category: str
    price: Money = Field(ge=0)
    discount: int = Field(ge=0, le=100, default=0)  # percent
    stock: int = Field(ge=0)
    is_active: bool = True
    keywords: frozenset[str] = frozenset()
    primary_image_ref: str | None = None


class MatchedItem(BaseModel):
    """A suggested item enriched with live catalog pricing, or marked unresolved.

    ``catalog_id`` is None when no tier matched (or the lookup failed); the
    suggested ``unit_price`` is then carried over as ``resolved_price``.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    category: str
    unit_price: Money
    quantity: int = Field(ge=1)
    reference_code: str | None = None
    catalog_id: int | None = None
    resolved_price: Money
    in_stock: bool = False
    available_stock: int = Field(ge=0, default=0)
    match_tier: MatchTier | None = None
    image_ref: str | None = None

    @property
    def line_cost(self) -> Decimal:
        return self.resolved_price * self.quantity


class AllocationPreferences(BaseModel):
    max_budget: Money | None = Field(default=None, gt=0)
    exclude_categories: set[str] = set()


class ListSummary(BaseModel):
    total_items: int = 0
    estimated_cost: Money = Decimal("0.00")
    available_items: int = 0
    unavailable_items: int = 0
    per_category_count: dict[str, int] = {}


# === API Request/Response Models ===


class GenerateListRequest(BaseModel):
    prompt: str
    preferences: AllocationPreferences | None = None


class GenerateListResponse(BaseModel):
    prompt: str
    categories: list[str] = []
    items: list[MatchedItem] = []
    summary: ListSummary
    tips: list[str] = []


class SaveListRequest(BaseModel):
    list_name: str = Field(min_length=1, max_length=200)
    prompt: str | None = None
    items: list[MatchedItem] = Field(min_length=1)


class SavedListSummary(BaseModel):
    id: str
    name: str
    prompt: str | None = None
    item_count: int
    estimated_cost: Money
    created_at: datetime


class ErrorResponse(BaseModel):
    error: str
    message: str
    retryable: bool
    detail: str | None = None
