"""
Odds math primitives.

Pure conversions between American odds, decimal odds and implied
probabilities. No state, no I/O.

American odds:
    +150 -> bet 100 to win 150
    -200 -> bet 200 to win 100
"""

import math

from fightodds.errors import InvalidOddsError

# Single tolerance for every float comparison on probabilities
# (sum-to-one checks, direction/reversal sign detection).
PROBABILITY_EPSILON = 1e-9


def is_valid_odds(odds) -> bool:
    """True for a nonzero, finite number."""
    if isinstance(odds, bool) or not isinstance(odds, (int, float)):
        return False
    return math.isfinite(odds) and odds != 0


def implied_probability(odds: float) -> float:
    """
    Convert American odds to implied probability (vig included).

    Raises:
        InvalidOddsError: for 0 or a non-finite value
    """
    if not is_valid_odds(odds):
        raise InvalidOddsError(odds)
    if odds > 0:
        return 100 / (odds + 100)
    return (-odds) / ((-odds) + 100)


def normalize_two_way(p1: float, p2: float) -> tuple[float, float]:
    """
    Remove the bookmaker margin from a two-outcome market.

    The returned pair sums to 1.0 within PROBABILITY_EPSILON.
    """
    if not (p1 > 0 and p2 > 0) or not (math.isfinite(p1) and math.isfinite(p2)):
        raise ValueError(f"Probabilities must be positive and finite: {p1}, {p2}")
    total = p1 + p2
    fair1 = p1 / total
    return fair1, 1.0 - fair1


def to_decimal(odds: float) -> float:
    """Convert American odds to decimal payout (stake included)."""
    if not is_valid_odds(odds):
        raise InvalidOddsError(odds)
    if odds > 0:
        return 1 + odds / 100
    return 1 + 100 / (-odds)


def no_vig_probabilities(fighter1_odds: float, fighter2_odds: float) -> tuple[float, float]:
    """Vig-free probability pair for a moneyline."""
    return normalize_two_way(
        implied_probability(fighter1_odds),
        implied_probability(fighter2_odds),
    )


def overround(fighter1_odds: float, fighter2_odds: float) -> float:
    """House edge: sum of raw implied probabilities minus 1."""
    return implied_probability(fighter1_odds) + implied_probability(fighter2_odds) - 1.0


def percentage_change(old: float, new: float) -> float:
    """Signed relative change in percent. 0 when old is 0."""
    if old == 0:
        return 0.0
    return (new - old) / abs(old) * 100


def sign(value: float) -> int:
    """-1, 0 or 1 with PROBABILITY_EPSILON as the flat band."""
    if value > PROBABILITY_EPSILON:
        return 1
    if value < -PROBABILITY_EPSILON:
        return -1
    return 0
