"""
Snapshot normalization.

Turns raw per-source quotes into canonical OddsSnapshot values:
- flat records already keyed by fight / sportsbook
- The Odds API style events (bookmakers -> markets -> outcomes)

Absent method / round markets become all-zero placeholders so every
snapshot downstream has the same shape.
"""

import math
import re
from datetime import datetime, timezone
from typing import Iterable, Optional

import structlog

from fightodds.engine.odds_math import is_valid_odds
from fightodds.errors import InvalidOddsError
from fightodds.models.schemas import MethodOdds, MoneylineOdds, OddsSnapshot, RoundOdds

logger = structlog.get_logger()


# Source key -> display name
SPORTSBOOK_NAMES = {
    "draftkings": "DraftKings",
    "fanduel": "FanDuel",
    "betmgm": "BetMGM",
    "caesars": "Caesars",
    "pointsbet": "PointsBet",
    "betrivers": "BetRivers",
    "unibet": "Unibet",
    "williamhill_us": "William Hill",
    "bovada": "Bovada",
    "mybookie": "MyBookie",
    "hardrockbet": "Hard Rock Bet",
    "espnbet": "ESPN BET",
    "betway": "Betway",
    "wynnbet": "WynnBET",
    "barstool": "Barstool Sportsbook",
    "superbook": "SuperBook",
    "twinspires": "TwinSpires",
    "foxbet": "FOX Bet",
    "tipico": "Tipico",
    "betfred": "Betfred",
    "pinnacle": "Pinnacle",
    "bookmaker": "Bookmaker",
    "cris": "CRIS",
    "circa": "Circa",
    "betfair": "Betfair",
    "betfair_ex_eu": "Betfair Exchange",
}

H2H_MARKET = "h2h"
METHOD_MARKET = "fight_result_method"
ROUND_MARKET = "fight_result_round"

METHOD_KEYWORDS = {
    "ko": ("ko", "knockout", "tko"),
    "submission": ("submission", "sub"),
    "decision": ("decision", "points"),
}

ROUND_ORDINALS = {1: "1st", 2: "2nd", 3: "3rd", 4: "4th", 5: "5th"}

# American prices are never inside (-100, +100)
MIN_AMERICAN_ODDS = 100


def canonicalize_name(raw_key: str) -> str:
    """Map a source identifier to its display name. Unknown keys pass through."""
    return SPORTSBOOK_NAMES.get(raw_key, SPORTSBOOK_NAMES.get(raw_key.lower(), raw_key))


def generate_fight_id(home_team: str, away_team: str, commence_time) -> str:
    """Stable fight id, independent of which fighter is listed first."""
    fighters = sorted([home_team, away_team])
    date_str = parse_timestamp(commence_time).date().isoformat()
    return re.sub(r"[^a-zA-Z0-9_]", "_", f"odds_api_{fighters[0]}_vs_{fighters[1]}_{date_str}")


def parse_timestamp(value) -> datetime:
    """
    Parse a datetime, ISO-8601 string or epoch milliseconds.

    Naive datetimes are taken as UTC.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        dt = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    else:
        raise ValueError(f"Unsupported timestamp: {value!r}")

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _american_or_none(value) -> Optional[int]:
    """Round to an American price; None unless finite with |odds| >= 100."""
    if not is_valid_odds(value):
        return None
    odds = int(round(value))
    if abs(odds) < MIN_AMERICAN_ODDS:
        return None
    return odds


def _to_american(value, sportsbook: str = "") -> int:
    """Validate a required price and coerce it to an integer."""
    odds = _american_or_none(value)
    if odds is None:
        raise InvalidOddsError(value, sportsbook)
    return odds


def _optional_price(value) -> int:
    """Optional market price: anything unusable becomes the 0 placeholder."""
    odds = _american_or_none(value)
    return 0 if odds is None else odds


def build_snapshot(raw: dict) -> OddsSnapshot:
    """
    Build a snapshot from a flat record.

    Expected keys: fight_id, sportsbook, timestamp,
    moneyline {fighter1, fighter2}, and optionally method, rounds, volume.

    Raises:
        InvalidOddsError: zero, non-finite or non-American (|odds| < 100)
            moneyline price
        KeyError: a required key is missing
    """
    sportsbook = canonicalize_name(str(raw["sportsbook"]))
    moneyline = raw["moneyline"]

    method_raw = raw.get("method") or {}
    rounds_raw = raw.get("rounds") or {}

    volume = raw.get("volume")
    if volume is not None:
        volume = float(volume)
        if not math.isfinite(volume) or volume < 0:
            volume = None

    return OddsSnapshot(
        fight_id=str(raw["fight_id"]),
        sportsbook=sportsbook,
        timestamp=parse_timestamp(raw["timestamp"]),
        moneyline=MoneylineOdds(
            fighter1=_to_american(moneyline["fighter1"], sportsbook),
            fighter2=_to_american(moneyline["fighter2"], sportsbook),
        ),
        method=MethodOdds(
            ko=_optional_price(method_raw.get("ko")),
            submission=_optional_price(method_raw.get("submission")),
            decision=_optional_price(method_raw.get("decision")),
        ),
        rounds=RoundOdds(
            **{f"round{n}": _optional_price(rounds_raw.get(f"round{n}")) for n in range(1, 6)}
        ),
        volume=volume,
    )


def normalize_batch(raws: Iterable[dict]) -> list[OddsSnapshot]:
    """Build snapshots, skipping (and logging) records that fail."""
    snapshots = []
    for raw in raws:
        try:
            snapshots.append(build_snapshot(raw))
        except (InvalidOddsError, KeyError, TypeError, ValueError) as e:
            logger.warning(
                "Skipping malformed odds record",
                sportsbook=raw.get("sportsbook") if isinstance(raw, dict) else None,
                error=str(e),
            )
    return snapshots


# =============================================================================
# The Odds API payloads
# =============================================================================

def _find_market(bookmaker: dict, key: str) -> Optional[dict]:
    for market in bookmaker.get("markets", []):
        if market.get("key") == key:
            return market
    return None


def _extract_method_odds(market: Optional[dict]) -> MethodOdds:
    if not market:
        return MethodOdds()

    prices = {}
    for method, keywords in METHOD_KEYWORDS.items():
        prices[method] = 0
        for outcome in market.get("outcomes", []):
            name = outcome.get("name", "").lower()
            if any(word in name for word in keywords):
                prices[method] = _optional_price(outcome.get("price"))
                break
    return MethodOdds(**prices)


def _extract_round_odds(market: Optional[dict]) -> RoundOdds:
    if not market:
        return RoundOdds()

    prices = {}
    for n, ordinal in ROUND_ORDINALS.items():
        prices[f"round{n}"] = 0
        for outcome in market.get("outcomes", []):
            name = outcome.get("name", "")
            if f"Round {n}" in name or ordinal in name:
                prices[f"round{n}"] = _optional_price(outcome.get("price"))
                break
    return RoundOdds(**prices)


def _parse_bookmaker(event: dict, bookmaker: dict, fight_id: str) -> Optional[OddsSnapshot]:
    """One snapshot per bookmaker. None if there is no usable h2h market."""
    h2h = _find_market(bookmaker, H2H_MARKET)
    if not h2h or len(h2h.get("outcomes", [])) != 2:
        return None

    home, away = event.get("home_team"), event.get("away_team")
    prices = {o.get("name"): o.get("price") for o in h2h["outcomes"]}
    sportsbook = canonicalize_name(bookmaker.get("key", ""))

    last_update = bookmaker.get("last_update") or event.get("commence_time")

    return OddsSnapshot(
        fight_id=fight_id,
        sportsbook=sportsbook,
        timestamp=parse_timestamp(last_update),
        moneyline=MoneylineOdds(
            fighter1=_to_american(prices.get(home), sportsbook),
            fighter2=_to_american(prices.get(away), sportsbook),
        ),
        method=_extract_method_odds(_find_market(bookmaker, METHOD_MARKET)),
        rounds=_extract_round_odds(_find_market(bookmaker, ROUND_MARKET)),
    )


def from_odds_api_event(event: dict) -> list[OddsSnapshot]:
    """
    Convert a The Odds API event into per-bookmaker snapshots.

    fighter1 is the event's home_team. A bookmaker that fails to
    parse is logged and skipped without aborting the event.
    """
    fight_id = generate_fight_id(
        event.get("home_team", ""),
        event.get("away_team", ""),
        event.get("commence_time"),
    )

    snapshots = []
    for bookmaker in event.get("bookmakers", []):
        try:
            snapshot = _parse_bookmaker(event, bookmaker, fight_id)
        except (InvalidOddsError, TypeError, ValueError) as e:
            logger.warning(
                "Failed to parse bookmaker odds",
                event_id=event.get("id"),
                bookmaker=bookmaker.get("key"),
                error=str(e),
            )
            continue
        if snapshot:
            snapshots.append(snapshot)

    return snapshots
