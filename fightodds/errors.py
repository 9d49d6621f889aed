"""
Exception types raised by the odds engine.
"""


class OddsEngineError(Exception):
    """Base class for all engine errors."""


class InsufficientDataError(OddsEngineError):
    """No usable snapshots were supplied for a fight."""

    def __init__(self, fight_id: str = "", reason: str = "no snapshots"):
        self.fight_id = fight_id
        self.reason = reason
        super().__init__(f"Insufficient odds data for fight '{fight_id}': {reason}")


class InvalidOddsError(OddsEngineError, ValueError):
    """An odds value is zero or not a finite number."""

    def __init__(self, odds, sportsbook: str = ""):
        self.odds = odds
        self.sportsbook = sportsbook
        where = f" from {sportsbook}" if sportsbook else ""
        super().__init__(f"Invalid American odds{where}: {odds!r}")


class ConfigurationError(OddsEngineError, ValueError):
    """A configuration value is out of range."""
