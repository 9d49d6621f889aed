"""Tests for line movement analysis."""

import pytest

from fightodds.config import OddsFeatureConfig
from fightodds.engine.movement import (
    MovementAnalyzer,
    closing_line_value,
    group_by_sportsbook,
)
from fightodds.engine.odds_math import percentage_change
from fightodds.models.schemas import MovementDirection, MovementType


@pytest.fixture
def analyzer():
    return MovementAnalyzer()


@pytest.fixture
def two_hour_move(make_snapshot):
    """One book moving -150 -> -180 over two hours."""
    return [
        make_snapshot(fighter1=-150, fighter2=130, minutes=0),
        make_snapshot(fighter1=-180, fighter2=155, minutes=120),
    ]


class TestAnalyzeBook:
    """Tests for single-book metrics."""

    def test_movement_and_velocity(self, analyzer, two_hour_move):
        metrics = analyzer.analyze_book(two_hour_move)

        assert metrics.total_line_movement > 0
        assert metrics.line_movement_velocity == pytest.approx(metrics.total_line_movement / 2)
        assert metrics.snapshot_count == 2

    def test_slow_move_is_not_steam(self, analyzer, two_hour_move):
        """Above the steam threshold but outside the 60 minute window."""
        metrics = analyzer.analyze_book(two_hour_move)

        assert metrics.steam_move_count == 0
        assert metrics.movements[0].movement_type == MovementType.SIGNIFICANT

    def test_wider_window_makes_steam(self, two_hour_move):
        analyzer = MovementAnalyzer(OddsFeatureConfig(steam_window_minutes=180))
        assert analyzer.analyze_book(two_hour_move).steam_move_count == 1

    def test_higher_threshold_disables_steam(self, make_snapshot):
        fast = [
            make_snapshot(fighter1=-150, fighter2=130, minutes=0),
            make_snapshot(fighter1=-180, fighter2=155, minutes=10),
        ]

        assert MovementAnalyzer().analyze_book(fast).steam_move_count == 1
        strict = MovementAnalyzer(OddsFeatureConfig(steam_move_threshold_pct=50))
        assert strict.analyze_book(fast).steam_move_count == 0

    def test_single_snapshot_is_zero(self, analyzer, make_snapshot):
        metrics = analyzer.analyze_book([make_snapshot()])

        assert metrics.total_line_movement == 0
        assert metrics.line_movement_velocity == 0
        assert metrics.reversal_count == 0
        assert metrics.movements == ()

    def test_same_timestamp_has_no_velocity(self, analyzer, make_snapshot):
        quotes = [make_snapshot(fighter1=-150), make_snapshot(fighter1=-200, fighter2=170)]

        metrics = analyzer.analyze_book(quotes)

        assert metrics.total_line_movement > 0
        assert metrics.line_movement_velocity == 0

    def test_sorts_arrival_order(self, analyzer, two_hour_move):
        metrics = analyzer.analyze_book(list(reversed(two_hour_move)))
        assert metrics.movements[0].direction == MovementDirection.UP

    def test_reversals(self, analyzer, make_snapshot):
        quotes = [
            make_snapshot(fighter1=-150, fighter2=130, minutes=0),
            make_snapshot(fighter1=-180, fighter2=155, minutes=30),
            make_snapshot(fighter1=-180, fighter2=155, minutes=60),
            make_snapshot(fighter1=-140, fighter2=120, minutes=90),
            make_snapshot(fighter1=-170, fighter2=145, minutes=120),
        ]

        metrics = analyzer.analyze_book(quotes)

        assert metrics.reversal_count == 2
        assert metrics.movements[1].direction == MovementDirection.FLAT
        assert metrics.movements[2].movement_type == MovementType.STEAM

    def test_reverse_classification(self, make_snapshot):
        analyzer = MovementAnalyzer(OddsFeatureConfig(steam_move_threshold_pct=50))
        quotes = [
            make_snapshot(fighter1=-150, fighter2=130, minutes=0),
            make_snapshot(fighter1=-180, fighter2=155, minutes=30),
            make_snapshot(fighter1=-140, fighter2=120, minutes=60),
        ]

        movements = analyzer.analyze_book(quotes).movements

        assert movements[0].movement_type == MovementType.SIGNIFICANT
        assert movements[1].movement_type == MovementType.REVERSE


class TestClosingLineValue:
    """Tests for CLV."""

    def test_better_price_than_close_is_positive(self):
        """Bet +150, closed +120."""
        assert closing_line_value(150, 120) == pytest.approx(5.4545, abs=1e-3)

    def test_worse_price_is_negative(self):
        assert closing_line_value(120, 150) < 0

    def test_book_clv_uses_opening_fighter1_price(self, analyzer, two_hour_move):
        metrics = analyzer.analyze_book(two_hour_move)
        assert metrics.closing_line_value == pytest.approx(closing_line_value(-150, -180))
        assert metrics.closing_line_value > 0


class TestRollup:
    """Tests for group-then-reduce."""

    def test_groups_by_book(self, make_snapshot):
        quotes = [
            make_snapshot(sportsbook="A", minutes=10),
            make_snapshot(sportsbook="B", minutes=5),
            make_snapshot(sportsbook="A", minutes=0),
        ]

        groups = group_by_sportsbook(quotes)

        assert list(groups) == ["A", "B"]
        assert groups["A"][0].timestamp < groups["A"][1].timestamp

    def test_books_are_not_mixed(self, analyzer, make_snapshot):
        """Interleaved books with static prices produce no movement."""
        quotes = [
            make_snapshot(sportsbook="A", fighter1=-150, fighter2=130, minutes=0),
            make_snapshot(sportsbook="B", fighter1=-200, fighter2=170, minutes=1),
            make_snapshot(sportsbook="A", fighter1=-150, fighter2=130, minutes=2),
            make_snapshot(sportsbook="B", fighter1=-200, fighter2=170, minutes=3),
        ]

        summary = analyzer.rollup(analyzer.analyze(quotes))

        assert summary.total_line_movement == 0
        assert summary.reversal_count == 0
        assert summary.book_count == 2

    def test_rollup_averages_and_sums(self, analyzer, make_snapshot, two_hour_move):
        quotes = two_hour_move + [
            make_snapshot(sportsbook="B", minutes=0),
            make_snapshot(sportsbook="B", minutes=120),
        ]

        per_book = analyzer.analyze(quotes)
        summary = analyzer.rollup(per_book)

        moving = per_book["DraftKings"].total_line_movement
        assert summary.total_line_movement == pytest.approx(moving / 2)
        assert summary.steam_move_count == 0

    def test_empty_rollup(self, analyzer):
        assert analyzer.rollup({}).book_count == 0


class TestInvalidSnapshots:
    """Tests for histories containing unusable prices."""

    def test_invalid_snapshot_is_skipped(self, analyzer, make_snapshot, two_hour_move):
        history = two_hour_move + [make_snapshot(fighter1=0, minutes=60)]

        metrics = analyzer.analyze_book(history)

        assert metrics.snapshot_count == 2
        assert metrics.total_line_movement == pytest.approx(
            analyzer.analyze_book(two_hour_move).total_line_movement
        )

    def test_book_with_only_invalid_quotes_is_dropped(self, analyzer, make_snapshot, two_hour_move):
        quotes = two_hour_move + [make_snapshot(sportsbook="B", fighter2=float("nan"))]

        per_book = analyzer.analyze(quotes)

        assert list(per_book) == ["DraftKings"]


class TestMovementRecords:
    """Tests for individual movement records."""

    def test_percentage_change_is_relative(self, analyzer, two_hour_move):
        movement = analyzer.analyze_book(two_hour_move).movements[0]

        expected = percentage_change(movement.from_probability, movement.to_probability)
        assert movement.percentage_change == pytest.approx(expected)
        assert movement.percentage_change > 0

    def test_to_log(self, analyzer, two_hour_move):
        log = analyzer.analyze_book(two_hour_move).movements[0].to_log()

        assert log["sportsbook"] == "DraftKings"
        assert log["from"] == [-150, 130]
        assert log["to"] == [-180, 155]
        assert log["direction"] == "up"
        assert log["type"] == "significant"
        assert log["timestamp"].startswith("2024-06-01T20:00:00")
