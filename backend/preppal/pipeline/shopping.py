"""Shopping list pipeline: resolves a prompt into a budgeted, catalog-backed list.

5-step pipeline:
1. Intent resolution (prompt → suggested items)
2. Catalog matching (code → name → keyword → unmatched, parallelized per item)
3. Budget allocation (single greedy left-to-right pass)
4. Category exclusion
5. Summary

Each step takes the previous step's output and nothing else. Order of items is
part of the contract: matching is 1:1 with the suggestions, and the later
steps only ever drop items, never reorder them.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from collections.abc import Iterable, Sequence
from decimal import ROUND_HALF_UP, Decimal

import structlog

from preppal.config import settings
from preppal.models.contracts import (
    AllocationPreferences,
    CatalogRecord,
    GenerateListRequest,
    GenerateListResponse,
    ListSummary,
    MatchedItem,
    MatchTier,
    SuggestedItem,
)
from preppal.pipeline.catalog import CatalogLookup, CatalogUnavailableError
from preppal.pipeline.intent import IntentResolver, validate_prompt

log = structlog.get_logger("preppal.shopping")

CENTS = Decimal("0.01")

SHOPPING_TIPS = (
    "Check for coupons and discounts before purchasing",
    "Consider buying in bulk for frequently used items",
    "Compare prices across different brands",
)


# === Step 2: Catalog Matching ===


def name_tokens(name: str) -> frozenset[str]:
    """Lowercase whitespace-delimited tokens of an item name."""
    return frozenset(name.lower().split())


async def find_catalog_record(
    catalog: CatalogLookup,
    item: SuggestedItem,
) -> tuple[CatalogRecord, MatchTier] | None:
    """Run the lookup tiers in order and return the first hit with its tier.

    Exceptions from the catalog propagate; ``match_item`` owns isolation.
    """
    if item.reference_code:
        record = await catalog.find_by_code(item.reference_code)
        if record is not None:
            return record, "code"

    record = await catalog.find_by_name_pattern(item.name)
    if record is not None:
        return record, "name"

    record = await catalog.find_by_keywords(name_tokens(item.name))
    if record is not None:
        return record, "keyword"

    return None


def unmatched_item(item: SuggestedItem) -> MatchedItem:
    return MatchedItem(
        name=item.name,
        category=item.category,
        unit_price=item.unit_price,
        quantity=item.quantity,
        reference_code=item.reference_code,
        catalog_id=None,
        resolved_price=item.unit_price,
        in_stock=False,
        available_stock=0,
    )


def matched_item(item: SuggestedItem, record: CatalogRecord, tier: MatchTier) -> MatchedItem:
    return MatchedItem(
        name=item.name,
        category=item.category,
        unit_price=item.unit_price,
        quantity=item.quantity,
        reference_code=item.reference_code,
        catalog_id=record.id,
        resolved_price=record.price,
        in_stock=record.stock > 0,
        available_stock=record.stock,
        match_tier=tier,
        image_ref=record.primary_image_ref,
    )


async def match_item(catalog: CatalogLookup, item: SuggestedItem, index: int = 0) -> MatchedItem:
    """Resolve one item. Any lookup failure degrades this item to unmatched."""
    try:
        found = await find_catalog_record(catalog, item)
    except Exception as exc:
        log.warning(
            "catalog_lookup_failed",
            item_index=index,
            item_name=item.name,
            error_type=type(exc).__name__,
            error=str(exc)[:200],
        )
        return unmatched_item(item)

    if found is None:
        log.debug("catalog_no_match", item_index=index, item_name=item.name)
        return unmatched_item(item)
    record, tier = found
    return matched_item(item, record, tier)


async def match_items(
    items: Sequence[SuggestedItem],
    catalog: CatalogLookup,
    *,
    concurrency: int | None = None,
) -> list[MatchedItem]:
    """Step 2: Match every item against the catalog (parallelized with semaphore).

    Output has the same length and order as ``items``; this never raises for
    a failing lookup.
    """
    if not items:
        return []
    semaphore = asyncio.Semaphore(max(1, concurrency or settings.match_concurrency))

    async def _match_limited(index: int, item: SuggestedItem) -> MatchedItem:
        async with semaphore:
            return await match_item(catalog, item, index)

    # gather keeps input order regardless of completion order
    matched = await asyncio.gather(*(_match_limited(i, item) for i, item in enumerate(items)))

    resolved = sum(1 for m in matched if m.catalog_id is not None)
    log.info(
        "shopping_matching_complete",
        items=len(items),
        resolved=resolved,
        unresolved=len(items) - resolved,
    )
    return list(matched)


# === Step 3: Budget Allocation ===


def allocate_budget(
    items: Sequence[MatchedItem],
    max_budget: Decimal | None,
) -> list[MatchedItem]:
    """Step 3: Greedy, order-preserving selection under a spending cap.

    Walks the list once carrying (selected, running_total). An item that
    would push the total over the cap is skipped for good; later, cheaper
    items can still fit. Not a knapsack: earlier items win.
    """
    if max_budget is None:
        return list(items)

    selected: list[MatchedItem] = []
    running_total = Decimal("0")
    for item in items:
        cost = item.line_cost
        if running_total + cost <= max_budget:
            selected.append(item)
            running_total += cost

    if len(selected) < len(items):
        log.info(
            "shopping_budget_applied",
            max_budget=str(max_budget),
            kept=len(selected),
            skipped=len(items) - len(selected),
            allocated=str(running_total),
        )
    return selected


# === Step 4: Category Exclusion ===


def exclude_categories(
    items: Iterable[MatchedItem],
    excluded: Iterable[str],
) -> list[MatchedItem]:
    """Step 4: Drop items in excluded categories, keeping survivor order.

    Runs after budget allocation, so budget freed here is not refilled with
    items the allocator already skipped.
    """
    excluded_set = set(excluded)
    if not excluded_set:
        return list(items)
    return [item for item in items if item.category not in excluded_set]


# === Step 5: Summary ===


def round_money(amount: Decimal) -> Decimal:
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def summarize(items: Sequence[MatchedItem]) -> ListSummary:
    """Step 5: Totals, availability counts and per-category tallies."""
    total = sum((item.line_cost for item in items), Decimal("0"))
    available = sum(1 for item in items if item.in_stock)
    return ListSummary(
        total_items=len(items),
        estimated_cost=round_money(total),
        available_items=available,
        unavailable_items=len(items) - available,
        per_category_count=dict(Counter(item.category for item in items)),
    )


def categories_present(items: Iterable[MatchedItem]) -> list[str]:
    """Distinct categories in first-seen order."""
    return list(dict.fromkeys(item.category for item in items))


# === Pipeline Entry ===


async def build_shopping_list(
    suggested: Sequence[SuggestedItem],
    catalog: CatalogLookup,
    preferences: AllocationPreferences | None = None,
) -> tuple[list[MatchedItem], ListSummary]:
    """Steps 2-5 over an already-resolved suggestion list."""
    prefs = preferences or AllocationPreferences()
    matched = await match_items(suggested, catalog)
    allocated = allocate_budget(matched, prefs.max_budget)
    final = exclude_categories(allocated, prefs.exclude_categories)
    return final, summarize(final)


async def generate_shopping_list(
    request: GenerateListRequest,
    resolver: IntentResolver,
    catalog: CatalogLookup,
) -> GenerateListResponse:
    """Prompt in, budgeted and catalog-matched shopping list out.

    Raises InvalidPromptError before any work, CatalogUnavailableError when
    the catalog cannot be reached at all, IntentResolutionError when the
    resolver backend fails. Single-item lookup failures never raise.
    """
    prompt = validate_prompt(request.prompt)
    prefs = request.preferences or AllocationPreferences()

    log.info(
        "shopping_pipeline_start",
        prompt_length=len(prompt),
        max_budget=str(prefs.max_budget) if prefs.max_budget is not None else None,
        excluded_categories=sorted(prefs.exclude_categories),
    )

    try:
        await catalog.ping()
    except CatalogUnavailableError:
        log.error("shopping_catalog_unavailable")
        raise

    # Step 1: Resolve intent
    suggested = await resolver.resolve(prompt)
    log.info("shopping_items_suggested", count=len(suggested))

    # Steps 2-5
    items, summary = await build_shopping_list(suggested, catalog, prefs)

    log.info(
        "shopping_pipeline_complete",
        suggested=len(suggested),
        final=summary.total_items,
        estimated_cost=str(summary.estimated_cost),
        unavailable=summary.unavailable_items,
    )

    return GenerateListResponse(
        prompt=prompt,
        categories=categories_present(items),
        items=items,
        summary=summary,
        tips=list(SHOPPING_TIPS),
    )
