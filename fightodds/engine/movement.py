"""
Line movement analysis.

Two phases:
1. group_by_sportsbook: bucket snapshots into per-book price histories
2. analyze_book: movements, steam moves, reversals, velocity and CLV
   for a single book's history

rollup() then averages the per-book metrics into a fight-level view.
Direction and reversals are only meaningful within one book's own
price history, so books are never mixed before phase 2.
"""

from typing import Iterable, Optional, Sequence

import structlog

from fightodds.config import DEFAULT_FEATURE_CONFIG, OddsFeatureConfig
from fightodds.engine.aggregator import fair_probabilities, mean, valid_snapshots
from fightodds.engine.odds_math import percentage_change, sign, to_decimal
from fightodds.models.schemas import (
    BookMovementMetrics,
    LineMovementSummary,
    MovementDirection,
    MovementType,
    OddsMovement,
    OddsSnapshot,
)

logger = structlog.get_logger()


def sort_by_time(snapshots: Iterable[OddsSnapshot]) -> list[OddsSnapshot]:
    """Stable sort by timestamp ascending."""
    return sorted(snapshots, key=lambda s: s.timestamp)


def group_by_sportsbook(snapshots: Iterable[OddsSnapshot]) -> dict[str, list[OddsSnapshot]]:
    """Bucket snapshots per book, each bucket sorted by time."""
    groups: dict[str, list[OddsSnapshot]] = {}
    for snapshot in snapshots:
        groups.setdefault(snapshot.sportsbook, []).append(snapshot)
    return {book: sort_by_time(history) for book, history in groups.items()}


def closing_line_value(bet_odds: float, closing_odds: float) -> float:
    """
    Closing line value in probability points for the backed side.

    Positive when the price taken paid more than the closing price,
    e.g. bet +150, closed +120 -> about +5.45.
    """
    return (1 / to_decimal(closing_odds) - 1 / to_decimal(bet_odds)) * 100


class MovementAnalyzer:
    """Computes movement metrics from per-book price histories."""

    def __init__(self, config: Optional[OddsFeatureConfig] = None):
        self.config = config or DEFAULT_FEATURE_CONFIG
        self.logger = logger.bind(component="movement_analyzer")

    # =========================================================================
    # Phase 2: single book
    # =========================================================================

    def analyze_book(self, history: Sequence[OddsSnapshot]) -> BookMovementMetrics:
        """
        Metrics for one (fight, sportsbook) history.

        The history is sorted here; callers may pass arrival order.
        Snapshots with unusable moneyline prices are skipped.
        """
        history = sort_by_time(valid_snapshots(history))
        if not history:
            return BookMovementMetrics(sportsbook="", snapshot_count=0)

        sportsbook = history[0].sportsbook
        if len(history) < 2:
            return BookMovementMetrics(sportsbook=sportsbook, snapshot_count=1)

        first, last = history[0], history[-1]
        probabilities = [fair_probabilities(s)[0] for s in history]

        total = abs(probabilities[-1] - probabilities[0]) * 100
        elapsed_hours = (last.timestamp - first.timestamp).total_seconds() / 3600
        velocity = total / elapsed_hours if elapsed_hours > 0 else 0.0

        movements = self.movements(history, probabilities)

        steam = sum(1 for m in movements if m.movement_type == MovementType.STEAM)
        reversals = self.count_reversals([m.to_probability - m.from_probability for m in movements])

        if steam:
            self.logger.debug(
                "Steam moves detected",
                fight_id=first.fight_id,
                sportsbook=sportsbook,
                count=steam,
                moves=[m.to_log() for m in movements if m.movement_type == MovementType.STEAM],
            )

        return BookMovementMetrics(
            sportsbook=sportsbook,
            snapshot_count=len(history),
            total_line_movement=total,
            line_movement_velocity=velocity,
            steam_move_count=steam,
            reversal_count=reversals,
            closing_line_value=closing_line_value(
                first.moneyline.fighter1, last.moneyline.fighter1
            ),
            movements=tuple(movements),
        )

    def movements(
        self,
        history: Sequence[OddsSnapshot],
        probabilities: Optional[Sequence[float]] = None,
    ) -> list[OddsMovement]:
        """Movement records for each consecutive pair of a sorted history."""
        if probabilities is None:
            probabilities = [fair_probabilities(s)[0] for s in history]

        movements = []
        last_direction = 0
        for i in range(1, len(history)):
            prev, curr = history[i - 1], history[i]
            prev_p, curr_p = probabilities[i - 1], probabilities[i]

            delta = curr_p - prev_p
            pct = percentage_change(prev_p, curr_p)
            direction = sign(delta)
            elapsed = (curr.timestamp - prev.timestamp).total_seconds()

            is_reversal = direction != 0 and last_direction != 0 and direction != last_direction
            movements.append(OddsMovement(
                fight_id=curr.fight_id,
                sportsbook=curr.sportsbook,
                timestamp=curr.timestamp,
                from_odds=prev.moneyline,
                to_odds=curr.moneyline,
                from_probability=prev_p,
                to_probability=curr_p,
                percentage_change=pct,
                direction=self._direction(direction),
                movement_type=self.classify(pct, elapsed, is_reversal),
                elapsed_seconds=elapsed,
            ))

            if direction != 0:
                last_direction = direction

        return movements

    def classify(self, pct_change: float, elapsed_seconds: float, is_reversal: bool) -> MovementType:
        """Steam > reverse > significant > minor."""
        magnitude = abs(pct_change)
        window_seconds = self.config.steam_window_minutes * 60

        if magnitude >= self.config.steam_move_threshold_pct and elapsed_seconds <= window_seconds:
            return MovementType.STEAM
        if is_reversal and magnitude >= self.config.reverse_move_threshold_pct:
            return MovementType.REVERSE
        if magnitude >= self.config.significant_move_threshold_pct:
            return MovementType.SIGNIFICANT
        return MovementType.MINOR

    @staticmethod
    def count_reversals(deltas: Sequence[float]) -> int:
        """Sign flips in a delta sequence, ignoring flat steps."""
        reversals = 0
        last = 0
        for delta in deltas:
            direction = sign(delta)
            if direction == 0:
                continue
            if last != 0 and direction != last:
                reversals += 1
            last = direction
        return reversals

    @staticmethod
    def _direction(direction: int) -> MovementDirection:
        if direction > 0:
            return MovementDirection.UP
        if direction < 0:
            return MovementDirection.DOWN
        return MovementDirection.FLAT

    # =========================================================================
    # Phase 1 + reduce
    # =========================================================================

    def analyze(self, snapshots: Iterable[OddsSnapshot]) -> dict[str, BookMovementMetrics]:
        """Per-book metrics for all valid snapshots of one fight."""
        return {
            book: self.analyze_book(history)
            for book, history in group_by_sportsbook(valid_snapshots(snapshots)).items()
        }

    @staticmethod
    def rollup(per_book: dict[str, BookMovementMetrics]) -> LineMovementSummary:
        """Mean of movement/velocity/CLV across books; counts are summed."""
        metrics = list(per_book.values())
        if not metrics:
            return LineMovementSummary()

        return LineMovementSummary(
            total_line_movement=mean([m.total_line_movement for m in metrics]),
            line_movement_velocity=mean([m.line_movement_velocity for m in metrics]),
            steam_move_count=sum(m.steam_move_count for m in metrics),
            reversal_count=sum(m.reversal_count for m in metrics),
            closing_line_value=mean([m.closing_line_value for m in metrics]),
            book_count=len(metrics),
        )
