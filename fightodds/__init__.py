"""
fightodds: multi-book odds signals and arbitrage detection for fights.
"""

from fightodds.config import OddsFeatureConfig, SportsbookFilterConfig, get_settings
from fightodds.engine import analyze_odds, compute_odds_features, detect_arbitrage
from fightodds.errors import (
    ConfigurationError,
    InsufficientDataError,
    InvalidOddsError,
    OddsEngineError,
)
from fightodds.models import OddsFeatureVector, OddsMovementData, OddsSnapshot

__version__ = "0.1.0"

__all__ = [
    "OddsFeatureConfig",
    "SportsbookFilterConfig",
    "get_settings",
    "analyze_odds",
    "compute_odds_features",
    "detect_arbitrage",
    "ConfigurationError",
    "InsufficientDataError",
    "InvalidOddsError",
    "OddsEngineError",
    "OddsFeatureVector",
    "OddsMovementData",
    "OddsSnapshot",
]
