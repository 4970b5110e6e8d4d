"""
Tests for card validation and URL repair.
"""

import pytest

from ticker.models.api import CardCategory, IdeaCard, StockCard
from ticker.utils.validation import (
    build_cards,
    fallback_search_url,
    is_valid_url,
    repair_urls,
    validate_card,
)


class TestIsValidUrl:
    @pytest.mark.parametrize(
        "url",
        ["https://fidelity.com", "http://example.com/path?q=1", "https://www.sec.gov/edgar"],
    )
    def test_valid(self, url):
        assert is_valid_url(url) is True

    @pytest.mark.parametrize(
        "url",
        [
            None,
            "",
            "#",
            "/relative/path",
            "fidelity.com",
            "ftp://example.com",
            "https://",
            42,
            "http://[",
            "https://foo]",
            "http://exa mple.com",
        ],
    )
    def test_invalid(self, url):
        assert is_valid_url(url) is False


class TestRepairUrls:
    def test_placeholder_source_gets_search_url(self, make_stock_record):
        record = make_stock_record(sources=[{"name": "Yahoo", "url": "#"}])
        assert repair_urls(record) == 1
        assert record["sources"][0]["url"] == "https://www.google.com/search?q=NVDA%20Corp"

    def test_source_falls_back_to_ticker_then_generic(self):
        record = {"ticker": "AMD", "sources": [{"url": ""}]}
        repair_urls(record)
        assert record["sources"][0]["url"] == fallback_search_url("AMD")

        record = {"sources": [{"name": "x"}]}
        repair_urls(record)
        assert record["sources"][0]["url"] == "https://www.google.com/search?q=investment"

    def test_tool_uses_its_own_name(self):
        record = {"getStarted": [{"name": "Robinhood", "url": "robinhood.com"}, {"url": "#"}]}
        assert repair_urls(record) == 2
        assert record["getStarted"][0]["url"] == fallback_search_url("Robinhood")
        assert record["getStarted"][1]["url"] == fallback_search_url("investment platform")

    def test_valid_urls_untouched(self, make_stock_record):
        record = make_stock_record()
        assert repair_urls(record) == 0
        assert record["sources"][0]["url"] == "https://finance.yahoo.com/quote/NVDA"

    def test_repair_is_deterministic(self, make_stock_record):
        first = make_stock_record(sources=[{"url": "#"}])
        second = make_stock_record(sources=[{"url": "#"}])
        repair_urls(first)
        repair_urls(second)
        assert first == second

    def test_special_characters_are_encoded(self):
        assert fallback_search_url("S&P 500") == "https://www.google.com/search?q=S%26P%20500"


class TestValidateCard:
    def test_valid_stock(self, make_stock_record):
        result = validate_card(make_stock_record(), CardCategory.STOCK)
        assert result.valid
        assert result.warnings == ()

    def test_missing_ticker_is_error(self, make_stock_record):
        record = make_stock_record()
        del record["ticker"]
        result = validate_card(record, CardCategory.STOCK)
        assert not result.valid
        assert "Missing ticker" in result.errors

    @pytest.mark.parametrize("ticker", ["nvda", "TOOLONG", "BRK.B", "12"])
    def test_bad_ticker_format(self, make_stock_record, ticker):
        result = validate_card(make_stock_record(ticker=ticker), CardCategory.STOCK)
        assert not result.valid

    def test_missing_price_is_warning(self, make_stock_record):
        result = validate_card(make_stock_record(price=None), CardCategory.STOCK)
        assert result.valid
        assert "Missing price" in result.warnings

    @pytest.mark.parametrize("field", ["title", "tagline", "simpleExplainer"])
    def test_missing_required_text(self, make_idea_record, field):
        record = make_idea_record()
        record[field] = ""
        assert not validate_card(record, CardCategory.IDEA).valid

    @pytest.mark.parametrize("field", ["goodReasons", "concerns"])
    def test_empty_lists_are_errors(self, make_idea_record, field):
        assert not validate_card(make_idea_record(**{field: []}), CardCategory.IDEA).valid

    def test_idea_soft_fields_are_warnings(self, make_idea_record):
        record = make_idea_record()
        del record["investment"]
        del record["category"]
        result = validate_card(record, CardCategory.IDEA)
        assert result.valid
        assert set(result.warnings) == {"Missing investment range", "Missing category"}

    def test_length_warnings(self, make_idea_record):
        record = make_idea_record(tagline="x" * 101, simpleExplainer="Too short.")
        result = validate_card(record, CardCategory.IDEA)
        assert result.valid
        assert len(result.warnings) == 2

    def test_wrong_type_is_error(self, make_idea_record):
        result = validate_card(make_idea_record(), CardCategory.STOCK)
        assert not result.valid

    def test_unrepaired_url_is_error(self, make_stock_record):
        result = validate_card(make_stock_record(sources=[{"url": "#"}]), CardCategory.STOCK)
        assert not result.valid


class TestBuildCards:
    def test_valid_records_survive_in_order(self, make_stock_record):
        cards, dropped = build_cards(
            [make_stock_record("NVDA"), make_stock_record("AMD")], CardCategory.STOCK
        )
        assert dropped == 0
        assert [c.ticker for c in cards] == ["NVDA", "AMD"]
        assert all(isinstance(c, StockCard) for c in cards)

    def test_missing_ticker_dropped(self, make_stock_record):
        broken = make_stock_record()
        del broken["ticker"]
        cards, dropped = build_cards([broken, make_stock_record("AMD")], CardCategory.STOCK)
        assert dropped == 1
        assert [c.ticker for c in cards] == ["AMD"]

    def test_placeholder_url_repaired_not_dropped(self, make_stock_record):
        record = make_stock_record(sources=[{"name": "Yahoo", "url": "#"}])
        cards, dropped = build_cards([record], CardCategory.STOCK)
        assert dropped == 0
        assert cards[0].sources[0].url == fallback_search_url("NVDA Corp")

    @pytest.mark.parametrize("url", ["http://[", "https://foo]", "http://exa mple.com"])
    def test_malformed_url_repaired_not_raised(self, make_stock_record, url):
        record = make_stock_record("NVDA", sources=[{"name": "x", "url": url}])
        cards, dropped = build_cards([record], CardCategory.STOCK)
        assert dropped == 0
        assert cards[0].sources[0].url == fallback_search_url("NVDA Corp")

    def test_input_records_not_mutated(self, make_stock_record):
        record = make_stock_record(sources=[{"url": "#"}])
        build_cards([record], CardCategory.STOCK)
        assert record["sources"][0]["url"] == "#"

    def test_missing_type_defaults_to_requested_category(self, make_idea_record):
        record = make_idea_record()
        del record["type"]
        cards, dropped = build_cards([record], CardCategory.IDEA)
        assert dropped == 0
        assert isinstance(cards[0], IdeaCard)
        assert cards[0].category_label == "Healthcare Technology"
        assert cards[0].investment_range == "$20K - $50K"

    def test_mismatched_category_dropped(self, make_idea_record, make_stock_record):
        cards, dropped = build_cards(
            [make_idea_record(), make_stock_record()], CardCategory.STOCK
        )
        assert dropped == 1
        assert len(cards) == 1

    def test_non_object_records_dropped(self, make_stock_record):
        cards, dropped = build_cards(["nope", 42, make_stock_record()], CardCategory.STOCK)
        assert dropped == 2
        assert len(cards) == 1

    def test_all_invalid(self, make_stock_record):
        cards, dropped = build_cards(
            [make_stock_record(ticker="bad"), make_stock_record(title="")], CardCategory.STOCK
        )
        assert cards == []
        assert dropped == 2
