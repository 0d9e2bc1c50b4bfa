"""Tests for in-play data models."""

import pytest

from oddsfeed.inplay.models import (
    MarketDefinition,
    MarketState,
    Match,
    PriceLevel,
    Runner,
    overlay,
    runner_key,
)


class TestRunnerKey:
    """Unit tests for the composite runner key."""

    def test_missing_handicap_is_zero(self):
        """Test that an absent handicap keys as 0."""
        assert runner_key("47972") == "47972-0"
        assert runner_key("47972", None) == "47972-0"

    def test_fractional_handicap(self):
        """Test that handicap lines keep their sign and fraction."""
        assert runner_key("5001", 2.5) == "5001-2.5"
        assert runner_key("5001", -1.5) == "5001--1.5"

    def test_whole_number_handicap_has_no_decimal(self):
        """Test that 2.0 and 2 produce the same key."""
        assert runner_key("5001", 2.0) == runner_key("5001", 2) == "5001-2"

    def test_same_selection_different_lines_are_distinct(self):
        """Test that one selection id at two handicap lines gets two keys."""
        assert runner_key("5001", 1.5) != runner_key("5001", 2.5)


class TestOverlay:
    """Unit tests for the field-wise overlay."""

    def test_present_fields_win(self):
        """Test that fields in the update replace the base value."""
        base = PriceLevel(index=0, odds=1.9, amount=10.0)
        assert overlay(base, {"odds": 2.0}) == PriceLevel(index=0, odds=2.0, amount=10.0)

    def test_none_fields_keep_base(self):
        """Test that None in the update means 'not mentioned'."""
        base = Runner(id="1", traded_volume=500.0)
        result = overlay(base, {"traded_volume": None, "locked": True})
        assert result.traded_volume == 500.0
        assert result.locked is True

    def test_empty_update_returns_base(self):
        """Test that an empty update returns the same object."""
        base = Runner(id="1")
        assert overlay(base, {}) is base

    def test_base_is_not_mutated(self):
        """Test that overlay returns a copy."""
        base = Runner(id="1", traded_volume=1.0)
        overlay(base, {"traded_volume": 2.0})
        assert base.traded_volume == 1.0


class TestPriceLevel:
    """Tests for PriceLevel parsing."""

    def test_from_feed(self):
        """Test parsing a full feed level."""
        level = PriceLevel.from_feed({"index": 1, "odds": 2.5, "amount": 120}, position=1)
        assert level == PriceLevel(index=1, odds=2.5, amount=120.0)

    def test_missing_odds_means_no_price(self):
        """Test that absent or zero odds mean no price available."""
        level = PriceLevel.from_feed({"index": 0, "amount": 5}, position=0)
        assert level.odds == 0.0
        assert not level.has_price

    def test_missing_index_uses_position(self):
        """Test that the ladder position fills in a missing index."""
        assert PriceLevel.from_feed({"odds": 3.0}, position=2).index == 2


class TestRunner:
    """Tests for Runner parsing and helpers."""

    def test_fields_from_feed_marks_omitted_ladders_none(self):
        """Test that an omitted ladder stays None so overlay leaves it alone."""
        fields = Runner.fields_from_feed({"id": 47972, "bdatb": [{"index": 0, "odds": 1.9}]})
        assert fields["id"] == "47972"
        assert fields["back"] == (PriceLevel(index=0, odds=1.9),)
        assert fields["lay"] is None
        assert fields["handicap"] is None

    def test_empty_ladder_is_present(self):
        """Test that an explicit empty ladder is kept as an empty tuple."""
        fields = Runner.fields_from_feed({"id": "1", "bdatl": []})
        assert fields["lay"] == ()

    def test_best_prices(self):
        """Test best back/lay skip a priceless top level."""
        runner = Runner(
            id="1",
            back=(PriceLevel(index=0, odds=2.0, amount=10),),
            lay=(PriceLevel(index=0, odds=0.0, amount=0),),
        )
        assert runner.best_back == PriceLevel(index=0, odds=2.0, amount=10)
        assert runner.best_lay is None

    def test_key(self):
        """Test the runner key property."""
        assert Runner(id="5001", handicap=-0.5).key == "5001--0.5"


class TestMarketState:
    """Tests for MarketState helpers and serialization."""

    def test_fields_from_feed(self):
        """Test translating an envelope into market fields."""
        fields = MarketState.fields_from_feed(
            {
                "id": "1.201",
                "status": "OPEN",
                "currency": "GBP",
                "marketDefinition": {"marketType": "MATCH_ODDS", "inPlay": True},
                "bettingEnabled": True,
                "rc": [],
            }
        )
        assert fields["status"] == "OPEN"
        assert fields["currency"] == "GBP"
        assert fields["main_event_name"] is None
        assert fields["market_definition"] == MarketDefinition(market_type="MATCH_ODDS", in_play=True)
        assert fields["extras"] == {"bettingEnabled": True}

    @pytest.mark.parametrize(
        "in_play,status,expected",
        [(True, "OPEN", True), (True, "SUSPENDED", False), (False, "OPEN", False)],
    )
    def test_is_live(self, in_play, status, expected):
        """Test that live means in play and open."""
        market = MarketState(
            market_id="1.201",
            market_definition=MarketDefinition(in_play=in_play),
            status=status,
        )
        assert market.is_live is expected

    def test_is_suspended(self):
        """Test the suspended helper."""
        assert MarketState(market_id="1", status="SUSPENDED").is_suspended
        assert not MarketState(market_id="1", status="OPEN").is_suspended

    def test_to_dict_uses_feed_names(self):
        """Test serialization back to the feed's field names."""
        market = MarketState(market_id="1.201", currency="EUR", last_updated=123.0)
        data = market.to_dict()
        assert data["id"] == "1.201"
        assert data["currency"] == "EUR"
        assert data["runners"] == {}
        assert data["lastUpdated"] == 123.0

    def test_is_immutable(self):
        """Test that market state cannot be modified in place."""
        market = MarketState(market_id="1.201")
        with pytest.raises(AttributeError):
            market.status = "OPEN"  # type: ignore[misc]
        with pytest.raises(TypeError):
            market.runners["x"] = Runner(id="x")  # type: ignore[index]


class TestMatch:
    """Tests for Match parsing."""

    def test_from_feed(self):
        """Test parsing a snapshot match."""
        match = Match.from_feed(
            {
                "id": 34001,
                "name": "Arsenal v Chelsea",
                "sport": "Soccer",
                "openDate": "2026-10-19T15:00:00Z",
                "markets": [{"marketId": "1.201", "marketName": "Match Odds"}],
            }
        )
        assert match.id == "34001"
        assert match.markets[0].market_id == "1.201"
        assert match.to_dict()["markets"] == [{"marketId": "1.201", "marketName": "Match Odds"}]

    def test_no_markets(self):
        """Test a match with no markets listed."""
        assert Match.from_feed({"id": "1"}).markets == ()
