"""
Multi-book aggregation.

Combines the latest quote from each sportsbook into:
- best available price per outcome
- vig-free consensus probability with an agreement-based confidence
- market depth / efficiency metrics
"""

from typing import Iterable, Sequence

import structlog

from fightodds.engine.odds_math import (
    is_valid_odds,
    no_vig_probabilities,
    overround,
    to_decimal,
)
from fightodds.models.schemas import (
    BestPrice,
    BookQuote,
    MarketAggregate,
    MarketConsensus,
    MarketDepth,
    OddsSnapshot,
    Outcome,
)

logger = structlog.get_logger()

# Largest possible population variance of values in [0, 1]
MAX_PROBABILITY_VARIANCE = 0.25


def valid_snapshots(snapshots: Iterable[OddsSnapshot]) -> list[OddsSnapshot]:
    """
    Snapshots whose moneyline prices are both usable.

    Rejected snapshots are logged and skipped; order is preserved.
    """
    valid = []
    for snapshot in snapshots:
        moneyline = snapshot.moneyline
        if is_valid_odds(moneyline.fighter1) and is_valid_odds(moneyline.fighter2):
            valid.append(snapshot)
        else:
            logger.warning(
                "Dropping snapshot with invalid moneyline",
                fight_id=snapshot.fight_id,
                sportsbook=snapshot.sportsbook,
                fighter1=moneyline.fighter1,
                fighter2=moneyline.fighter2,
            )
    return valid


def latest_by_sportsbook(quotes: Sequence[OddsSnapshot]) -> list[OddsSnapshot]:
    """
    Latest quote per sportsbook, in order of first appearance.

    Equal timestamps keep the later arrival.
    """
    latest: dict[str, OddsSnapshot] = {}
    for quote in quotes:
        existing = latest.get(quote.sportsbook)
        if existing is None or quote.timestamp >= existing.timestamp:
            latest[quote.sportsbook] = quote
    return list(latest.values())


def fair_probabilities(snapshot: OddsSnapshot) -> tuple[float, float]:
    """Vig-free (fighter1, fighter2) probabilities for a snapshot."""
    return no_vig_probabilities(snapshot.moneyline.fighter1, snapshot.moneyline.fighter2)


def mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def population_variance(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    avg = mean(values)
    return sum((v - avg) ** 2 for v in values) / len(values)


class MultiBookAggregator:
    """
    Aggregates concurrent quotes for one fight.

    Unlike a single-book view, the best price for each side can come
    from a different book. Consensus is the unweighted mean of each
    book's vig-free probability.
    """

    def __init__(self):
        self.logger = logger.bind(component="multi_book_aggregator")

    def aggregate(self, quotes: Sequence[OddsSnapshot]) -> MarketAggregate:
        """
        Build the multi-book view.

        Invalid quotes are skipped. Multiple quotes from the same book
        are reduced to the latest.
        """
        latest = latest_by_sportsbook(valid_snapshots(quotes))
        fight_id = latest[0].fight_id if latest else ""

        books = tuple(
            BookQuote(
                sportsbook=q.sportsbook,
                timestamp=q.timestamp,
                moneyline=q.moneyline,
                fair_probability=fair_probabilities(q),
                vig=overround(q.moneyline.fighter1, q.moneyline.fighter2),
            )
            for q in latest
        )

        aggregate = MarketAggregate(
            fight_id=fight_id,
            books=books,
            best_odds=self._best_odds(latest),
            consensus=self._consensus(books),
            market_depth=MarketDepth(
                moneyline=len(latest),
                method=sum(1 for q in latest if q.has_method_market),
                rounds=sum(1 for q in latest if q.has_round_market),
            ),
            market_efficiency=self._market_efficiency(latest),
            average_vig=mean([b.vig for b in books]),
        )

        self.logger.debug(
            "Aggregated market",
            fight_id=fight_id,
            books=len(books),
            consensus=f"{aggregate.consensus.probability[0]:.3f}",
            confidence=f"{aggregate.consensus.confidence:.3f}",
        )
        return aggregate

    def _best_odds(self, latest: Sequence[OddsSnapshot]) -> dict[Outcome, BestPrice]:
        """Highest decimal payout per outcome; first book wins ties."""
        best: dict[Outcome, BestPrice] = {}
        for outcome in Outcome:
            for quote in latest:
                odds = quote.moneyline.for_outcome(outcome)
                decimal = to_decimal(odds)
                current = best.get(outcome)
                if current is None or decimal > current.decimal_odds:
                    best[outcome] = BestPrice(
                        sportsbook=quote.sportsbook,
                        odds=odds,
                        decimal_odds=decimal,
                    )
        return best

    def _consensus(self, books: Sequence[BookQuote]) -> MarketConsensus:
        if not books:
            return MarketConsensus(probability=(0.5, 0.5), confidence=0.0, book_count=0)

        fighter1 = [b.fair_probability[0] for b in books]
        prob1 = mean(fighter1)

        variance = population_variance(fighter1)
        confidence = max(0.0, min(1.0, 1.0 - variance / MAX_PROBABILITY_VARIANCE))

        return MarketConsensus(
            probability=(prob1, 1.0 - prob1),
            confidence=confidence,
            book_count=len(books),
        )

    def _market_efficiency(self, latest: Sequence[OddsSnapshot]) -> float:
        """1 minus the mean decimal-odds spread across books, clamped to [0, 1]."""
        if len(latest) < 2:
            return 0.5

        spreads = []
        for outcome in Outcome:
            decimals = [to_decimal(q.moneyline.for_outcome(outcome)) for q in latest]
            spreads.append(max(decimals) - min(decimals))

        return max(0.0, 1.0 - min(1.0, mean(spreads)))
