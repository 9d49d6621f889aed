"""Tests for the multi-book aggregator."""

import pytest

from fightodds.engine.aggregator import (
    MultiBookAggregator,
    fair_probabilities,
    latest_by_sportsbook,
    valid_snapshots,
)
from fightodds.engine.odds_math import no_vig_probabilities
from fightodds.models.schemas import MethodOdds, Outcome


@pytest.fixture
def aggregator():
    return MultiBookAggregator()


class TestLatestBySportsbook:
    """Tests for latest-per-book reduction."""

    def test_keeps_latest_in_first_appearance_order(self, make_snapshot):
        quotes = [
            make_snapshot(sportsbook="A", fighter1=-150, minutes=10),
            make_snapshot(sportsbook="B", fighter1=-140, minutes=0),
            make_snapshot(sportsbook="A", fighter1=-160, minutes=5),
        ]

        latest = latest_by_sportsbook(quotes)

        assert [q.sportsbook for q in latest] == ["A", "B"]
        assert latest[0].moneyline.fighter1 == -150

    def test_equal_timestamps_keep_later_arrival(self, make_snapshot):
        quotes = [
            make_snapshot(sportsbook="A", fighter1=-150),
            make_snapshot(sportsbook="A", fighter1=-170),
        ]
        assert latest_by_sportsbook(quotes)[0].moneyline.fighter1 == -170


class TestAggregate:
    """Tests for the aggregated market view."""

    def test_fair_probabilities_remove_vig(self, make_snapshot):
        quote = make_snapshot(fighter1=-150, fighter2=130)

        prob1, prob2 = fair_probabilities(quote)

        assert (prob1, prob2) == no_vig_probabilities(-150, 130)
        assert prob1 + prob2 == pytest.approx(1.0)
        assert prob1 > 0.5

    def test_best_odds_per_outcome(self, aggregator, make_snapshot):
        """Best price for each side may come from different books."""
        quotes = [
            make_snapshot(sportsbook="A", fighter1=-150, fighter2=130),
            make_snapshot(sportsbook="B", fighter1=-140, fighter2=120),
        ]

        result = aggregator.aggregate(quotes)

        assert result.best_odds[Outcome.FIGHTER1].sportsbook == "B"
        assert result.best_odds[Outcome.FIGHTER2].sportsbook == "A"

    def test_best_odds_tie_goes_to_first_book(self, aggregator, make_snapshot):
        quotes = [make_snapshot(sportsbook="A"), make_snapshot(sportsbook="B")]
        assert aggregator.aggregate(quotes).best_odds[Outcome.FIGHTER1].sportsbook == "A"

    def test_identical_books_give_full_confidence(self, aggregator, make_snapshot):
        quotes = [make_snapshot(sportsbook=b) for b in ("A", "B", "C")]

        consensus = aggregator.aggregate(quotes).consensus

        assert consensus.probability[0] == pytest.approx(0.580, abs=1e-3)
        assert sum(consensus.probability) == pytest.approx(1.0)
        assert consensus.confidence == pytest.approx(1.0)
        assert consensus.book_count == 3

    def test_disagreement_lowers_confidence(self, aggregator, make_snapshot):
        quotes = [
            make_snapshot(sportsbook="A", fighter1=-400, fighter2=300),
            make_snapshot(sportsbook="B", fighter1=250, fighter2=-300),
        ]
        assert aggregator.aggregate(quotes).consensus.confidence < 1.0

    def test_market_depth_and_vig(self, aggregator, make_snapshot):
        quotes = [
            make_snapshot(sportsbook="A", method=MethodOdds(ko=150)),
            make_snapshot(sportsbook="B", fighter1=-110, fighter2=-110),
        ]

        result = aggregator.aggregate(quotes)

        assert result.market_depth.moneyline == 2
        assert result.market_depth.method == 1
        assert result.market_depth.rounds == 0
        assert result.average_vig > 0

    def test_market_efficiency(self, aggregator, make_snapshot):
        same = [make_snapshot(sportsbook="A"), make_snapshot(sportsbook="B")]
        single = [make_snapshot(sportsbook="A")]

        assert aggregator.aggregate(same).market_efficiency == pytest.approx(1.0)
        assert aggregator.aggregate(single).market_efficiency == 0.5


class TestInvalidQuotes:
    """Tests for quotes with unusable moneyline prices."""

    def test_valid_snapshots_keeps_order(self, make_snapshot):
        quotes = [
            make_snapshot(sportsbook="A"),
            make_snapshot(sportsbook="B", fighter1=0),
            make_snapshot(sportsbook="C", fighter2=float("nan")),
            make_snapshot(sportsbook="D"),
        ]
        assert [q.sportsbook for q in valid_snapshots(quotes)] == ["A", "D"]

    def test_aggregate_skips_invalid(self, aggregator, make_snapshot):
        quotes = [
            make_snapshot(sportsbook="A", minutes=0),
            make_snapshot(sportsbook="A", fighter1=0, minutes=5),
            make_snapshot(sportsbook="B", fighter1=float("inf")),
        ]

        result = aggregator.aggregate(quotes)

        assert [b.sportsbook for b in result.books] == ["A"]
        assert result.books[0].moneyline.fighter1 == -150

    def test_invalid_method_price_is_not_a_market(self, aggregator, make_snapshot):
        quotes = [make_snapshot(method=MethodOdds(ko=float("nan")))]
        assert aggregator.aggregate(quotes).market_depth.method == 0

    def test_best_odds_read_only(self, aggregator, make_snapshot):
        result = aggregator.aggregate([make_snapshot()])
        with pytest.raises(TypeError):
            result.best_odds[Outcome.FIGHTER1] = None
