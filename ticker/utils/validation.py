"""
Card validation and repair.

Generated records are untrusted. Recoverable problems (placeholder or
relative URLs) are repaired deterministically; anything else that breaks a
required field drops the record.
"""

import copy
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote, urlparse

from pydantic import ValidationError
from structlog import get_logger

from ticker.models.api import CardCategory, ContentRecord, IdeaCard, StockCard

logger = get_logger(__name__)

TICKER_PATTERN = re.compile(r"^[A-Z]{1,5}$")
MAX_TAGLINE_LENGTH = 100
MIN_EXPLAINER_LENGTH = 50
FALLBACK_SEARCH_URL = "https://www.google.com/search?q="


@dataclass(frozen=True)
class ValidationResult:
    """Errors drop a record; warnings are only logged."""

    errors: tuple[str, ...]
    warnings: tuple[str, ...]

    @property
    def valid(self) -> bool:
        return not self.errors


def is_valid_url(url: Any) -> bool:
    """True for a well-formed absolute http(s) URL."""
    if not isinstance(url, str) or not url:
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        # Unbalanced IPv6 brackets and the like
        return False
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return False
    return not any(ch.isspace() for ch in parsed.netloc)


def fallback_search_url(query: str) -> str:
    """Deterministic search URL used in place of a broken link."""
    return FALLBACK_SEARCH_URL + quote(query, safe="-_.!~*'()")


def repair_urls(record: dict[str, Any]) -> int:
    """
    Replace invalid source/tool URLs in place.

    Returns the number of URLs repaired.
    """
    repaired = 0

    sources = record.get("sources")
    if isinstance(sources, list):
        for source in sources:
            if isinstance(source, dict) and not is_valid_url(source.get("url")):
                query = record.get("title") or record.get("ticker") or "investment"
                source["url"] = fallback_search_url(str(query))
                repaired += 1

    tools = record.get("getStarted")
    if isinstance(tools, list):
        for tool in tools:
            if isinstance(tool, dict) and not is_valid_url(tool.get("url")):
                tool["url"] = fallback_search_url(str(tool.get("name") or "investment platform"))
                repaired += 1

    return repaired


def _is_non_empty_list(value: Any) -> bool:
    return isinstance(value, list) and len(value) > 0


def validate_card(record: Mapping[str, Any], category: CardCategory) -> ValidationResult:
    """Check a raw generated record against the card quality rules."""
    errors: list[str] = []
    warnings: list[str] = []

    if record.get("type", category.value) != category.value:
        errors.append(f"Wrong card type: {record.get('type')}")

    if not record.get("title"):
        errors.append("Missing title")
    if not record.get("tagline"):
        errors.append("Missing tagline")
    if not record.get("simpleExplainer"):
        errors.append("Missing simpleExplainer")
    if not _is_non_empty_list(record.get("goodReasons")):
        errors.append("Missing goodReasons")
    if not _is_non_empty_list(record.get("concerns")):
        errors.append("Missing concerns")

    if category == CardCategory.STOCK:
        ticker = record.get("ticker")
        if not ticker:
            errors.append("Missing ticker")
        elif not isinstance(ticker, str) or not TICKER_PATTERN.match(ticker):
            errors.append(f"Invalid ticker format: {ticker}")
        if not record.get("price"):
            warnings.append("Missing price")
    else:
        if not record.get("investment"):
            warnings.append("Missing investment range")
        if not record.get("category"):
            warnings.append("Missing category")

    tagline = record.get("tagline")
    if isinstance(tagline, str) and len(tagline) > MAX_TAGLINE_LENGTH:
        warnings.append(f"Tagline too long (>{MAX_TAGLINE_LENGTH} chars)")

    explainer = record.get("simpleExplainer")
    if isinstance(explainer, str) and explainer and len(explainer) < MIN_EXPLAINER_LENGTH:
        warnings.append(f"Explainer too short (<{MIN_EXPLAINER_LENGTH} chars)")

    for field_name in ("sources", "getStarted"):
        for idx, link in enumerate(record.get(field_name) or []):
            if not isinstance(link, Mapping) or not is_valid_url(link.get("url")):
                errors.append(f"Invalid {field_name} URL at index {idx}")

    return ValidationResult(errors=tuple(errors), warnings=tuple(warnings))


def build_cards(
    records: Iterable[Any], category: CardCategory
) -> tuple[list[ContentRecord], int]:
    """
    Repair, validate and parse raw records.

    Returns the surviving cards (in input order) and the number dropped.
    """
    model = StockCard if category == CardCategory.STOCK else IdeaCard
    cards: list[ContentRecord] = []
    dropped = 0

    for index, raw in enumerate(records):
        if not isinstance(raw, Mapping):
            logger.warning("card_dropped", index=index, errors=["Not an object"])
            dropped += 1
            continue

        record = copy.deepcopy(dict(raw))
        record.setdefault("type", category.value)

        repaired = repair_urls(record)
        if repaired:
            logger.info("card_urls_repaired", index=index, repaired=repaired)

        result = validate_card(record, category)
        if not result.valid:
            logger.warning("card_dropped", index=index, errors=list(result.errors))
            dropped += 1
            continue

        try:
            card = model.model_validate(record)
        except ValidationError as exc:
            logger.warning("card_dropped", index=index, errors=[str(exc)])
            dropped += 1
            continue

        if result.warnings:
            logger.info("card_warnings", index=index, warnings=list(result.warnings))
        cards.append(card)

    logger.info(
        "cards_validated",
        category=category.value,
        valid=len(cards),
        dropped=dropped,
    )
    return cards, dropped
