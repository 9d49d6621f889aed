"""
Cross-book arbitrage detection.

An arbitrage exists when backing fighter 1 at one book and fighter 2 at
another costs less than 1 in combined implied probability:

    combined = ip(A.fighter1) + ip(B.fighter2) < 1

Staking each leg in proportion to its implied probability pays the same
amount whichever fighter wins, for a profit of 1/combined - 1.
"""

from datetime import datetime, timedelta
from itertools import combinations
from typing import Optional, Sequence

import structlog

from fightodds.config import DEFAULT_FEATURE_CONFIG, OddsFeatureConfig
from fightodds.engine.aggregator import latest_by_sportsbook, valid_snapshots
from fightodds.engine.odds_math import implied_probability
from fightodds.models.schemas import (
    ArbitrageLeg,
    ArbitrageOpportunity,
    OddsSnapshot,
    Outcome,
)

logger = structlog.get_logger()

# Prices this long are thinly traded and often limited
EXTREME_ODDS = 1000

SAME_SPORTSBOOK = "same_sportsbook"
STALE_QUOTE = "stale_quote"
THIN_MARGIN = "thin_margin"
EXTREME_ODDS_RISK = "extreme_odds"


class ArbitrageDetector:
    """
    Finds two-leg arbitrage across the latest quote of each sportsbook.

    Detection only. Opportunities carry risk annotations and a heuristic
    expiry, but nothing here checks that a price is still available.
    """

    def __init__(self, config: Optional[OddsFeatureConfig] = None):
        self.config = config or DEFAULT_FEATURE_CONFIG
        self.logger = logger.bind(component="arbitrage_detector")

    def detect(
        self,
        quotes: Sequence[OddsSnapshot],
        as_of: Optional[datetime] = None,
    ) -> list[ArbitrageOpportunity]:
        """
        All opportunities across distinct book pairs, best profit first.

        Args:
            quotes: snapshots for one fight, any order; quotes with unusable
                moneyline prices are skipped
            as_of: reference time for staleness; defaults to the newest quote

        Returns:
            At most one opportunity per unordered book pair
        """
        latest = latest_by_sportsbook(valid_snapshots(quotes))
        if len(latest) < 2:
            return []

        if as_of is None:
            as_of = max(q.timestamp for q in latest)

        opportunities = []
        for quote_a, quote_b in combinations(latest, 2):
            opportunity = self.evaluate_pair(quote_a, quote_b, as_of=as_of)
            if opportunity:
                opportunities.append(opportunity)

        # sorted() is stable, so equal profits keep pair order
        opportunities = sorted(opportunities, key=lambda o: o.profit_percent, reverse=True)

        if opportunities:
            self.logger.debug(
                "Arbitrage detected",
                fight_id=opportunities[0].fight_id,
                count=len(opportunities),
                best=opportunities[0].to_log(),
            )
        return opportunities

    def evaluate_pair(
        self,
        quote_a: OddsSnapshot,
        quote_b: OddsSnapshot,
        as_of: Optional[datetime] = None,
    ) -> Optional[ArbitrageOpportunity]:
        """
        Best orientation of a single pair, or None if neither qualifies.

        Both quotes may come from the same book; the result is then
        flagged with a same_sportsbook risk factor.
        """
        if as_of is None:
            as_of = max(quote_a.timestamp, quote_b.timestamp)

        candidates = [
            self._orientation(quote_a, quote_b, as_of),
            self._orientation(quote_b, quote_a, as_of),
        ]
        candidates = [c for c in candidates if c is not None]
        if not candidates:
            return None
        return max(candidates, key=lambda c: c.profit_percent)

    def _orientation(
        self,
        fighter1_quote: OddsSnapshot,
        fighter2_quote: OddsSnapshot,
        as_of: datetime,
    ) -> Optional[ArbitrageOpportunity]:
        """fighter1_quote backs fighter 1, fighter2_quote backs fighter 2."""
        odds1 = fighter1_quote.moneyline.fighter1
        odds2 = fighter2_quote.moneyline.fighter2
        ip1 = implied_probability(odds1)
        ip2 = implied_probability(odds2)
        combined = ip1 + ip2

        if combined >= 1 - self.config.arbitrage_min_profit_pct / 100:
            return None

        profit_pct = (1 / combined - 1) * 100

        legs = (
            ArbitrageLeg(
                sportsbook=fighter1_quote.sportsbook,
                outcome=Outcome.FIGHTER1,
                odds=odds1,
                implied_probability=ip1,
                stake=ip1 / combined,
                timestamp=fighter1_quote.timestamp,
            ),
            ArbitrageLeg(
                sportsbook=fighter2_quote.sportsbook,
                outcome=Outcome.FIGHTER2,
                odds=odds2,
                implied_probability=ip2,
                stake=ip2 / combined,
                timestamp=fighter2_quote.timestamp,
            ),
        )

        stakes: dict[str, float] = {}
        for leg in legs:
            stakes[leg.sportsbook] = stakes.get(leg.sportsbook, 0.0) + leg.stake

        oldest = min(leg.timestamp for leg in legs)

        return ArbitrageOpportunity(
            fight_id=fighter1_quote.fight_id,
            sportsbooks=tuple(leg.sportsbook for leg in legs),
            profit_percent=profit_pct,
            stakes=stakes,
            legs=legs,
            combined_probability=combined,
            expires_at=oldest + timedelta(minutes=self.config.arbitrage_validity_minutes),
            risk_factors=self._risk_factors(legs, profit_pct, as_of),
        )

    def _risk_factors(
        self,
        legs: Sequence[ArbitrageLeg],
        profit_pct: float,
        as_of: datetime,
    ) -> tuple[str, ...]:
        risks = []

        if legs[0].sportsbook == legs[1].sportsbook:
            risks.append(SAME_SPORTSBOOK)

        for leg in legs:
            age = (as_of - leg.timestamp).total_seconds()
            if age > self.config.arbitrage_stale_quote_seconds:
                risks.append(f"{STALE_QUOTE}:{leg.sportsbook}")

        if profit_pct < self.config.arbitrage_thin_margin_pct:
            risks.append(THIN_MARGIN)

        if any(abs(leg.odds) >= EXTREME_ODDS for leg in legs):
            risks.append(EXTREME_ODDS_RISK)

        return tuple(risks)
