"""
Odds engine data models.

Defines the core data structures for:
- Per-book odds snapshots (moneyline, method, rounds)
- Derived line movements
- Arbitrage opportunities
- The fixed-shape feature vector handed to prediction models
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict


def _has_price(items: list[tuple[str, int]]) -> bool:
    """True when at least one outcome carries a usable price."""
    from fightodds.engine.odds_math import is_valid_odds

    return any(is_valid_odds(odds) for _, odds in items)


class Outcome(str, Enum):
    """Moneyline outcomes of a two-fighter contest."""
    FIGHTER1 = "fighter1"
    FIGHTER2 = "fighter2"


class MovementDirection(str, Enum):
    """Direction of fighter 1's normalized probability between two quotes."""
    UP = "up"        # line strengthened (fighter 1 more likely)
    DOWN = "down"
    FLAT = "flat"


class MovementType(str, Enum):
    """Classification of a single consecutive price change."""
    MINOR = "minor"
    SIGNIFICANT = "significant"
    REVERSE = "reverse"
    STEAM = "steam"


# =============================================================================
# Snapshots
# =============================================================================

@dataclass(frozen=True)
class MoneylineOdds:
    """Head-to-head American odds. Both values are nonzero."""
    fighter1: int
    fighter2: int

    def for_outcome(self, outcome: Outcome) -> int:
        return self.fighter1 if outcome == Outcome.FIGHTER1 else self.fighter2


@dataclass(frozen=True)
class MethodOdds:
    """Method-of-victory odds. 0 (or any unusable price) means not offered."""
    ko: int = 0
    submission: int = 0
    decision: int = 0

    def items(self) -> list[tuple[str, int]]:
        return [("ko", self.ko), ("submission", self.submission), ("decision", self.decision)]

    @property
    def is_offered(self) -> bool:
        return _has_price(self.items())


@dataclass(frozen=True)
class RoundOdds:
    """Winning-round odds. 0 (or any unusable price) means not offered."""
    round1: int = 0
    round2: int = 0
    round3: int = 0
    round4: int = 0
    round5: int = 0

    def items(self) -> list[tuple[str, int]]:
        return [
            ("round1", self.round1),
            ("round2", self.round2),
            ("round3", self.round3),
            ("round4", self.round4),
            ("round5", self.round5),
        ]

    @property
    def is_offered(self) -> bool:
        return _has_price(self.items())


@dataclass(frozen=True)
class OddsSnapshot:
    """
    One sportsbook's prices for one fight at one point in time.

    Created once at ingestion and never mutated.
    """
    fight_id: str
    sportsbook: str               # canonical display name
    timestamp: datetime
    moneyline: MoneylineOdds
    method: MethodOdds = field(default_factory=MethodOdds)
    rounds: RoundOdds = field(default_factory=RoundOdds)
    volume: Optional[float] = None

    @property
    def has_method_market(self) -> bool:
        return self.method.is_offered

    @property
    def has_round_market(self) -> bool:
        return self.rounds.is_offered


@dataclass(frozen=True)
class OddsMovement:
    """Price change between two consecutive quotes from one sportsbook."""
    fight_id: str
    sportsbook: str
    timestamp: datetime           # time of the later quote
    from_odds: MoneylineOdds
    to_odds: MoneylineOdds
    from_probability: float       # normalized fighter 1 probability
    to_probability: float
    percentage_change: float      # signed, relative to from_probability
    direction: MovementDirection
    movement_type: MovementType
    elapsed_seconds: float

    def to_log(self) -> dict:
        return {
            "fight_id": self.fight_id,
            "sportsbook": self.sportsbook,
            "timestamp": self.timestamp.isoformat(),
            "from": [self.from_odds.fighter1, self.from_odds.fighter2],
            "to": [self.to_odds.fighter1, self.to_odds.fighter2],
            "pct_change": self.percentage_change,
            "direction": self.direction.value,
            "type": self.movement_type.value,
        }


@dataclass
class OddsMovementData:
    """
    Per-fight input to the engine.

    snapshots arrive in ingestion order, not necessarily time order.
    movements / arbitrage_opportunities are whatever the caller last
    stored; the engine recomputes both on every call.
    """
    fight_id: str
    snapshots: list[OddsSnapshot] = field(default_factory=list)
    movements: list[OddsMovement] = field(default_factory=list)
    arbitrage_opportunities: list["ArbitrageOpportunity"] = field(default_factory=list)


# =============================================================================
# Arbitrage
# =============================================================================

@dataclass(frozen=True)
class ArbitrageLeg:
    """One side of an arbitrage bet."""
    sportsbook: str
    outcome: Outcome
    odds: int
    implied_probability: float
    stake: float                  # fraction of total stake
    timestamp: datetime


@dataclass(frozen=True)
class ArbitrageOpportunity:
    """
    Opposing bets whose combined implied probability is below 1.

    expires_at is a heuristic (quote time + fixed validity window),
    not a guarantee derived from market data.
    """
    fight_id: str
    sportsbooks: tuple[str, ...]
    profit_percent: float
    stakes: Mapping[str, float] = field(hash=False)   # read-only view
    legs: tuple[ArbitrageLeg, ...]
    combined_probability: float
    expires_at: datetime
    risk_factors: tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "stakes", MappingProxyType(dict(self.stakes)))
        object.__setattr__(self, "risk_factors", tuple(self.risk_factors))

    def payout(self, outcome: Outcome, total_stake: float = 1.0) -> float:
        """Gross return if `outcome` wins."""
        for leg in self.legs:
            if leg.outcome == outcome:
                return total_stake * leg.stake / leg.implied_probability
        return 0.0

    def to_log(self) -> dict:
        return {
            "fight_id": self.fight_id,
            "sportsbooks": list(self.sportsbooks),
            "profit_pct": round(self.profit_percent, 4),
            "stakes": {book: round(stake, 6) for book, stake in self.stakes.items()},
            "expires_at": self.expires_at.isoformat(),
            "risk_factors": list(self.risk_factors),
        }


# =============================================================================
# Aggregation / movement results
# =============================================================================

@dataclass(frozen=True)
class BookQuote:
    """Per-book row of the aggregated market view."""
    sportsbook: str
    timestamp: datetime
    moneyline: MoneylineOdds
    fair_probability: tuple[float, float]
    vig: float


@dataclass(frozen=True)
class BestPrice:
    sportsbook: str
    odds: int
    decimal_odds: float


@dataclass(frozen=True)
class MarketConsensus:
    probability: tuple[float, float]
    confidence: float
    book_count: int


@dataclass(frozen=True)
class MarketDepth:
    moneyline: int = 0
    method: int = 0
    rounds: int = 0


@dataclass(frozen=True)
class MarketAggregate:
    """Multi-book view of one fight from the latest quote per book."""
    fight_id: str
    books: tuple[BookQuote, ...]
    best_odds: Mapping[Outcome, BestPrice] = field(hash=False)
    consensus: MarketConsensus
    market_depth: MarketDepth
    market_efficiency: float
    average_vig: float

    def __post_init__(self):
        object.__setattr__(self, "best_odds", MappingProxyType(dict(self.best_odds)))


@dataclass(frozen=True)
class BookMovementMetrics:
    """Movement statistics for one (fight, sportsbook) price history."""
    sportsbook: str
    snapshot_count: int
    total_line_movement: float = 0.0
    line_movement_velocity: float = 0.0
    steam_move_count: int = 0
    reversal_count: int = 0
    closing_line_value: float = 0.0
    movements: tuple[OddsMovement, ...] = ()


@dataclass(frozen=True)
class LineMovementSummary:
    """Fight-level rollup of per-book movement metrics."""
    total_line_movement: float = 0.0
    line_movement_velocity: float = 0.0
    steam_move_count: int = 0
    reversal_count: int = 0
    closing_line_value: float = 0.0
    book_count: int = 0


# =============================================================================
# Feature vector
# =============================================================================

class OddsFeatureVector(BaseModel):
    """
    Fixed-shape odds features for one fight.

    Probability pairs are (fighter1, fighter2), vig removed.
    """
    model_config = ConfigDict(frozen=True)

    # Implied probability
    opening_implied_probability: tuple[float, float]
    closing_implied_probability: tuple[float, float]
    current_implied_probability: tuple[float, float]

    # Market consensus
    market_consensus_strength: float
    bookmaker_agreement: float
    implied_probability_variance: float

    # Line movement
    total_line_movement: float
    line_movement_velocity: float
    line_reversal_count: int
    steam_move_count: int

    # Market efficiency
    closing_line_value: float
    arbitrage_opportunity_count: int
    max_arbitrage_profit: float

    # Sharp vs public
    sharp_money_percentage: float
    public_money_percentage: float
    sharp_public_divergence: float

    # Volume and liquidity
    average_volume: float
    volume_spike: float
    volume_spike_count: int
    liquidity_score: float

    # Method and round markets
    method_betting_variance: float
    round_betting_variance: float
    favorite_method_odds: float
    favorite_round_odds: float

    @classmethod
    def feature_names(cls) -> list[str]:
        """Column names matching to_array()."""
        names = []
        for name, info in cls.model_fields.items():
            if info.annotation == tuple[float, float]:
                names.extend([f"{name}_fighter1", f"{name}_fighter2"])
            else:
                names.append(name)
        return names

    def to_array(self) -> list[float]:
        """Flatten into a fixed-order float list for model input."""
        values = []
        for name in type(self).model_fields:
            value = getattr(self, name)
            if isinstance(value, tuple):
                values.extend(float(v) for v in value)
            else:
                values.append(float(value))
        return values


@dataclass(frozen=True)
class OddsAnalysis:
    """Everything the engine derives for one fight in a single call."""
    features: OddsFeatureVector
    movements: tuple[OddsMovement, ...]
    arbitrage_opportunities: tuple[ArbitrageOpportunity, ...]
    aggregate: MarketAggregate
