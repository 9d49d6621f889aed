"""Odds normalization, aggregation, movement and arbitrage engines."""

from fightodds.engine.aggregator import MultiBookAggregator, latest_by_sportsbook
from fightodds.engine.arbitrage import ArbitrageDetector
from fightodds.engine.features import (
    OddsFeatureExtractor,
    analyze_odds,
    compute_odds_features,
    detect_arbitrage,
)
from fightodds.engine.movement import MovementAnalyzer, closing_line_value, group_by_sportsbook
from fightodds.engine.normalizer import (
    build_snapshot,
    canonicalize_name,
    from_odds_api_event,
    generate_fight_id,
    normalize_batch,
)
from fightodds.engine.sportsbook_filter import SportsbookFilter, apply_sportsbook_filter

__all__ = [
    "MultiBookAggregator",
    "latest_by_sportsbook",
    "ArbitrageDetector",
    "OddsFeatureExtractor",
    "analyze_odds",
    "compute_odds_features",
    "detect_arbitrage",
    "MovementAnalyzer",
    "closing_line_value",
    "group_by_sportsbook",
    "build_snapshot",
    "canonicalize_name",
    "from_odds_api_event",
    "generate_fight_id",
    "normalize_batch",
    "SportsbookFilter",
    "apply_sportsbook_filter",
]
