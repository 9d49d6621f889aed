"""
Odds feature extraction.

Pipeline for one fight:
1. drop snapshots with unusable moneyline prices
2. apply the sportsbook filter
3. aggregate the latest quote per book (consensus / agreement)
4. per-book movement analysis, rolled up
5. arbitrage detection
6. sharp vs public, volume, liquidity and method / round market shape

Every step is a pure function of the input, so repeated calls on the
same data give equal vectors.
"""

from typing import Iterable, Optional, Sequence

import structlog

from fightodds.config import (
    DEFAULT_FEATURE_CONFIG,
    DEFAULT_FILTER_CONFIG,
    OddsFeatureConfig,
    SportsbookFilterConfig,
)
from fightodds.engine.aggregator import (
    MultiBookAggregator,
    fair_probabilities,
    mean,
    population_variance,
    valid_snapshots,
)
from fightodds.engine.arbitrage import ArbitrageDetector
from fightodds.engine.movement import MovementAnalyzer, sort_by_time
from fightodds.engine.odds_math import implied_probability, is_valid_odds
from fightodds.engine.sportsbook_filter import SportsbookFilter
from fightodds.errors import InsufficientDataError
from fightodds.models.schemas import (
    ArbitrageOpportunity,
    OddsAnalysis,
    OddsFeatureVector,
    OddsMovement,
    OddsMovementData,
    OddsSnapshot,
)

logger = structlog.get_logger()


class OddsFeatureExtractor:
    """
    Turns a fight's odds history into an OddsFeatureVector.

    Configs given to the constructor are defaults; the ones passed to
    extract_features / analyze take precedence for that call.
    """

    def __init__(
        self,
        feature_config: Optional[OddsFeatureConfig] = None,
        filter_config: Optional[SportsbookFilterConfig] = None,
    ):
        self.feature_config = feature_config or DEFAULT_FEATURE_CONFIG
        self.filter_config = filter_config or DEFAULT_FILTER_CONFIG
        self.sportsbook_filter = SportsbookFilter()
        self.aggregator = MultiBookAggregator()
        self.logger = logger.bind(component="feature_extractor")

    # =========================================================================
    # Public API
    # =========================================================================

    def extract_features(
        self,
        data: OddsMovementData,
        filter_config: Optional[SportsbookFilterConfig] = None,
        feature_config: Optional[OddsFeatureConfig] = None,
    ) -> OddsFeatureVector:
        """
        Compute the feature vector for one fight.

        Raises:
            InsufficientDataError: no snapshots, or none left after
                validation and filtering
        """
        return self.analyze(data, filter_config, feature_config).features

    def analyze(
        self,
        data: OddsMovementData,
        filter_config: Optional[SportsbookFilterConfig] = None,
        feature_config: Optional[OddsFeatureConfig] = None,
    ) -> OddsAnalysis:
        """Features plus the movements, opportunities and aggregate behind them."""
        config = feature_config or self.feature_config
        snapshots = self._prepare(data, filter_config or self.filter_config)

        aggregate = self.aggregator.aggregate(snapshots)

        analyzer = MovementAnalyzer(config)
        per_book = analyzer.analyze(snapshots)
        summary = analyzer.rollup(per_book)

        opportunities = ArbitrageDetector(config).detect(snapshots)

        ordered = sort_by_time(snapshots)
        opening = fair_probabilities(ordered[0])
        closing = fair_probabilities(ordered[-1])

        book_probs = [b.fair_probability[0] for b in aggregate.books]
        variance = population_variance(book_probs)
        agreement = max(0.0, min(1.0, 1.0 - variance ** 0.5))

        sharp = self._group_probability(snapshots, config.sharp_bookmakers)
        public = self._group_probability(snapshots, config.public_bookmakers)

        volumes = [s.volume for s in snapshots if s.volume is not None]
        average_volume = mean(volumes)

        features = OddsFeatureVector(
            opening_implied_probability=opening,
            closing_implied_probability=closing,
            current_implied_probability=closing,
            market_consensus_strength=agreement,
            bookmaker_agreement=agreement,
            implied_probability_variance=variance,
            total_line_movement=summary.total_line_movement,
            line_movement_velocity=summary.line_movement_velocity,
            line_reversal_count=summary.reversal_count,
            steam_move_count=summary.steam_move_count,
            closing_line_value=summary.closing_line_value,
            arbitrage_opportunity_count=len(opportunities),
            max_arbitrage_profit=max((o.profit_percent for o in opportunities), default=0.0),
            sharp_money_percentage=sharp,
            public_money_percentage=public,
            sharp_public_divergence=abs(sharp - public),
            average_volume=average_volume,
            volume_spike=volume_spike(volumes),
            volume_spike_count=sum(
                1 for v in volumes if v > config.volume_spike_factor * average_volume
            ),
            liquidity_score=self._liquidity(len(aggregate.books), average_volume, config),
            method_betting_variance=market_variance(s.method.items() for s in snapshots),
            round_betting_variance=market_variance(s.rounds.items() for s in snapshots),
            favorite_method_odds=favorite_odds(
                [s.method.items() for s in ordered if s.has_method_market]
            ),
            favorite_round_odds=favorite_odds(
                [s.rounds.items() for s in ordered if s.has_round_market]
            ),
        )

        movements: list[OddsMovement] = []
        for metrics in per_book.values():
            movements.extend(metrics.movements)
        movements = sorted(movements, key=lambda m: m.timestamp)

        self.logger.debug(
            "Extracted odds features",
            fight_id=data.fight_id,
            snapshots=len(snapshots),
            books=len(aggregate.books),
            movements=len(movements),
            arbitrage=len(opportunities),
        )

        return OddsAnalysis(
            features=features,
            movements=tuple(movements),
            arbitrage_opportunities=tuple(opportunities),
            aggregate=aggregate,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _prepare(
        self,
        data: OddsMovementData,
        filter_config: SportsbookFilterConfig,
    ) -> list[OddsSnapshot]:
        if not data.snapshots:
            raise InsufficientDataError(data.fight_id, "no snapshots")

        valid = valid_snapshots(data.snapshots)
        if not valid:
            raise InsufficientDataError(data.fight_id, "no valid snapshots")

        filtered = self.sportsbook_filter.apply(valid, filter_config)
        if not filtered:
            raise InsufficientDataError(data.fight_id, "all snapshots filtered out")

        return filtered

    @staticmethod
    def _group_probability(snapshots: Sequence[OddsSnapshot], books: Sequence[str]) -> float:
        """Mean fighter-1 probability over a book group's snapshots; 0.5 if none."""
        group = set(books)
        probs = [fair_probabilities(s)[0] for s in snapshots if s.sportsbook in group]
        return mean(probs) if probs else 0.5

    @staticmethod
    def _liquidity(book_count: int, average_volume: float, config: OddsFeatureConfig) -> float:
        book_score = min(1.0, book_count / config.liquidity_max_books)
        volume_score = min(1.0, average_volume / config.liquidity_max_volume)
        return (book_score + volume_score) / 2


def volume_spike(volumes: Sequence[float]) -> float:
    """Largest volume relative to the mean of the others."""
    if len(volumes) < 2:
        return 0.0
    ordered = sorted(volumes)
    baseline = mean(ordered[:-1])
    if baseline <= 0:
        return 0.0
    return ordered[-1] / baseline


def market_variance(markets: Iterable[list[tuple[str, int]]]) -> float:
    """
    Mean per-outcome variance of implied probability.

    Outcomes are only counted in snapshots that quote them with a usable
    price; zero placeholders and non-finite values are skipped.
    """
    by_outcome: dict[str, list[float]] = {}
    for items in markets:
        for name, odds in items:
            if is_valid_odds(odds):
                by_outcome.setdefault(name, []).append(implied_probability(odds))

    if not by_outcome:
        return 0.0
    return mean([population_variance(probs) for probs in by_outcome.values()])


def favorite_odds(markets: Sequence[list[tuple[str, int]]]) -> float:
    """Odds of the most likely outcome in the last quoted market; 0 if none."""
    if not markets:
        return 0.0
    quoted = [odds for _, odds in markets[-1] if is_valid_odds(odds)]
    if not quoted:
        return 0.0
    return float(max(quoted, key=implied_probability))


# =============================================================================
# Entry points
# =============================================================================

def compute_odds_features(
    data: OddsMovementData,
    filter_config: Optional[SportsbookFilterConfig] = None,
    feature_config: Optional[OddsFeatureConfig] = None,
) -> OddsFeatureVector:
    """Feature vector for one fight."""
    return OddsFeatureExtractor().extract_features(data, filter_config, feature_config)


def detect_arbitrage(
    quotes: Sequence[OddsSnapshot],
    config: Optional[OddsFeatureConfig] = None,
) -> list[ArbitrageOpportunity]:
    """Arbitrage opportunities across the latest quote of each book."""
    return ArbitrageDetector(config).detect(quotes)


def analyze_odds(
    data: OddsMovementData,
    filter_config: Optional[SportsbookFilterConfig] = None,
    feature_config: Optional[OddsFeatureConfig] = None,
) -> OddsAnalysis:
    """Features together with movements, opportunities and the market aggregate."""
    return OddsFeatureExtractor().analyze(data, filter_config, feature_config)
