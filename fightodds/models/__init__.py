"""Odds engine data models and schemas."""

from fightodds.models.schemas import (
    Outcome,
    MovementDirection,
    MovementType,
    MoneylineOdds,
    MethodOdds,
    RoundOdds,
    OddsSnapshot,
    OddsMovement,
    OddsMovementData,
    ArbitrageLeg,
    ArbitrageOpportunity,
    BookQuote,
    BestPrice,
    MarketConsensus,
    MarketDepth,
    MarketAggregate,
    BookMovementMetrics,
    LineMovementSummary,
    OddsFeatureVector,
    OddsAnalysis,
)

__all__ = [
    "Outcome",
    "MovementDirection",
    "MovementType",
    "MoneylineOdds",
    "MethodOdds",
    "RoundOdds",
    "OddsSnapshot",
    "OddsMovement",
    "OddsMovementData",
    "ArbitrageLeg",
    "ArbitrageOpportunity",
    "BookQuote",
    "BestPrice",
    "MarketConsensus",
    "MarketDepth",
    "MarketAggregate",
    "BookMovementMetrics",
    "LineMovementSummary",
    "OddsFeatureVector",
    "OddsAnalysis",
]
