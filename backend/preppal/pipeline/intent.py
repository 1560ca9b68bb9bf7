"""Intent resolution: turns a free-text shopping prompt into suggested items.

Two resolvers implement the same ``IntentResolver`` protocol:

- ``KeywordIntentResolver``: canned lists picked by keyword, used in mock
  mode and whenever no model is configured.
- ``ClaudeIntentResolver``: asks an Anthropic model for a JSON item list.

Downstream stages only see ``list[SuggestedItem]``, so either can be swapped
in without touching matching or allocation.
"""

from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path
from typing import Any, Protocol

import anthropic
import structlog
from pydantic import ValidationError

from preppal.config import settings
from preppal.models.contracts import SuggestedItem

log = structlog.get_logger("preppal.intent")

PROMPTS_DIR = Path(__file__).resolve().parent.parent / "prompts"

MAX_TOKENS = 2048
MAX_SUGGESTED_ITEMS = 12


class InvalidPromptError(Exception):
    """Raised when a prompt is empty or longer than the allowed maximum."""


class IntentResolutionError(Exception):
    """Raised when the resolver backend fails to produce an item list."""

    def __init__(self, message: str, *, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable


def validate_prompt(prompt: str | None, max_length: int | None = None) -> str:
    """Return the trimmed prompt, or raise InvalidPromptError.

    The length limit applies to the prompt as sent, before trimming.
    """
    limit = max_length if max_length is not None else settings.max_prompt_length
    if not prompt or not prompt.strip():
        raise InvalidPromptError("Prompt is required")
    if len(prompt) > limit:
        raise InvalidPromptError(f"Prompt is too long (max {limit} characters)")
    return prompt.strip()


class IntentResolver(Protocol):
    async def resolve(self, prompt: str) -> list[SuggestedItem]: ...


# === Keyword Fallback ===


def _items(*rows: tuple[str, str, str, int]) -> tuple[SuggestedItem, ...]:
    return tuple(
        SuggestedItem(name=name, category=category, unit_price=Decimal(price), quantity=qty)
        for name, category, price, qty in rows
    )


TRIP_ITEMS = _items(
    ("Sunscreen SPF 50+", "Health & Safety", "12.99", 1),
    ("Beach Towel", "Travel Essentials", "19.99", 2),
    ("Flip Flops", "Clothing", "15.99", 1),
    ("Waterproof Phone Case", "Travel Essentials", "9.99", 1),
    ("Portable Charger", "Electronics", "24.99", 1),
    ("First Aid Kit", "Health & Safety", "16.99", 1),
)

PARTY_ITEMS = _items(
    ("Birthday Balloons Pack", "Decorations", "8.99", 1),
    ("Paper Plates (50 pack)", "Tableware", "6.99", 1),
    ("Plastic Cups (50 pack)", "Tableware", "5.99", 1),
    ("Birthday Candles", "Decorations", "3.99", 1),
    ("Party Hats", "Decorations", "7.99", 1),
    ("Soda Variety Pack", "Food & Drinks", "12.99", 2),
)

CAMPING_ITEMS = _items(
    ("Camping Tent (4-person)", "Camping Gear", "89.99", 1),
    ("Sleeping Bag", "Camping Gear", "34.99", 2),
    ("Portable Camping Stove", "Food & Cooking", "45.99", 1),
    ("Flashlight", "Safety", "12.99", 2),
    ("Insect Repellent", "Safety", "8.99", 1),
    ("Camping Chairs", "Camping Gear", "29.99", 2),
)

GENERAL_ITEMS = _items(
    ("Multi-purpose Cleaner", "Household", "4.99", 1),
    ("Paper Towels", "Household", "8.99", 1),
    ("Snack Mix", "Food", "6.99", 1),
    ("Bottled Water (24 pack)", "Beverages", "3.99", 1),
)

# Checked in order; first rule with a matching keyword wins.
KEYWORD_RULES: tuple[tuple[tuple[str, ...], tuple[SuggestedItem, ...]], ...] = (
    (("goa", "beach", "vacation"), TRIP_ITEMS),
    (("birthday", "party", "celebration"), PARTY_ITEMS),
    (("camping", "outdoor", "hiking"), CAMPING_ITEMS),
)


class KeywordIntentResolver:
    """Canned shopping lists keyed by words found in the prompt."""

    async def resolve(self, prompt: str) -> list[SuggestedItem]:
        text = validate_prompt(prompt).lower()
        for keywords, items in KEYWORD_RULES:
            if any(k in text for k in keywords):
                log.info("intent_keyword_match", keyword=next(k for k in keywords if k in text))
                return list(items)
        log.info("intent_keyword_default")
        return list(GENERAL_ITEMS)


# === Claude Resolver ===


def _strip_code_fence(text: str) -> str:
    """Remove a surrounding markdown code fence, with or without a language tag."""
    text = text.strip()
    if not text.startswith("```"):
        return text
    text = text.removeprefix("```")
    for lang in ("json", "JSON"):
        text = text.removeprefix(lang)
    text = text.lstrip("\n")
    return text.rsplit("```", 1)[0].strip()


def _extract_json(text: str) -> dict[str, Any]:
    """Parse the first JSON object out of a model reply.

    Accepts bare JSON, fenced JSON, or JSON surrounded by prose. Fractional
    numbers parse as Decimal. Returns an empty dict when nothing parseable
    is found.
    """
    text = _strip_code_fence(text)
    if not text:
        return {}
    try:
        data = json.loads(text, parse_float=Decimal)
        return data if isinstance(data, dict) else {}
    except json.JSONDecodeError:
        pass

    start = text.find("{")
    if start == -1:
        return {}
    depth = 0
    in_string = False
    escape_next = False
    for i in range(start, len(text)):
        ch = text[i]
        if escape_next:
            escape_next = False
            continue
        if in_string:
            if ch == "\\":
                escape_next = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                try:
                    data = json.loads(text[start : i + 1], parse_float=Decimal)
                except json.JSONDecodeError:
                    return {}
                return data if isinstance(data, dict) else {}
    return {}


def _validate_suggested_items(raw_items: list[Any]) -> list[SuggestedItem]:
    """Build SuggestedItems from model output, dropping malformed entries."""
    valid: list[SuggestedItem] = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            log.warning("intent_item_dropped", reason="not an object")
            continue
        try:
            valid.append(SuggestedItem.model_validate(raw))
        except ValidationError as exc:
            log.warning(
                "intent_item_dropped",
                reason="validation failed",
                errors=exc.error_count(),
                item_keys=list(raw.keys()),
            )
    if len(valid) < len(raw_items):
        log.info(
            "intent_items_validated",
            raw=len(raw_items),
            valid=len(valid),
            dropped=len(raw_items) - len(valid),
        )
    return valid[:MAX_SUGGESTED_ITEMS]


_prompt_template_cache: str | None = None


def _load_prompt_template() -> str:
    global _prompt_template_cache  # noqa: PLW0603
    if _prompt_template_cache is None:
        _prompt_template_cache = (PROMPTS_DIR / "intent_resolution.txt").read_text()
    return _prompt_template_cache


def build_resolution_prompt(prompt: str) -> str:
    return _load_prompt_template().format(prompt=prompt, max_items=MAX_SUGGESTED_ITEMS)


class ClaudeIntentResolver:
    """Resolve prompts with an Anthropic model."""

    def __init__(
        self,
        client: anthropic.AsyncAnthropic | None = None,
        *,
        model: str | None = None,
    ) -> None:
        self._client = client
        self.model = model or settings.intent_model

    def _get_client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            if not settings.anthropic_api_key:
                raise IntentResolutionError("ANTHROPIC_API_KEY not set", retryable=False)
            self._client = anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)
        return self._client

    async def resolve(self, prompt: str) -> list[SuggestedItem]:
        text_prompt = validate_prompt(prompt)
        client = self._get_client()
        try:
            response = await client.messages.create(
                model=self.model,
                max_tokens=MAX_TOKENS,
                messages=[{"role": "user", "content": build_resolution_prompt(text_prompt)}],
            )
        except anthropic.RateLimitError as e:
            log.warning("intent_rate_limited")
            raise IntentResolutionError(f"Claude rate limited: {e}", retryable=True) from e
        except anthropic.APIStatusError as e:
            log.error("intent_api_error", status=e.status_code)
            raise IntentResolutionError(
                f"Claude API error ({e.status_code}): {e}",
                retryable=e.status_code >= 500,
            ) from e
        except anthropic.APIConnectionError as e:
            log.error("intent_connection_error", error=str(e)[:200])
            raise IntentResolutionError(f"Claude unreachable: {e}", retryable=True) from e

        log.info(
            "intent_resolution_tokens",
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            model=self.model,
        )

        text = ""
        for block in response.content:
            if hasattr(block, "text"):
                text += block.text

        raw_items = _extract_json(text).get("items") or []
        if not isinstance(raw_items, list):
            log.warning("intent_items_bad_type", got=type(raw_items).__name__)
            raw_items = []
        items = _validate_suggested_items(raw_items)
        log.info("intent_items_resolved", count=len(items))
        return items


def get_intent_resolver() -> IntentResolver:
    """Resolver selected by settings; keyword fallback unless a model is configured."""
    if settings.use_mock_resolver or not settings.anthropic_api_key:
        return KeywordIntentResolver()
    return ClaudeIntentResolver()
