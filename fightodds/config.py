"""
Odds engine configuration.

Two layers:
- Immutable per-call values (OddsFeatureConfig, SportsbookFilterConfig)
  that every engine function takes explicitly.
- EngineSettings, loaded from environment variables / .env with the
  FIGHTODDS_ prefix, for services that embed the engine.
"""

from dataclasses import dataclass, field
from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from fightodds.errors import ConfigurationError


DEFAULT_SHARP_BOOKMAKERS = ("Pinnacle", "Bookmaker", "CRIS")
DEFAULT_PUBLIC_BOOKMAKERS = ("DraftKings", "FanDuel", "BetMGM", "Caesars")


@dataclass(frozen=True)
class OddsFeatureConfig:
    """Thresholds and book groupings for feature extraction."""

    # Movement thresholds (percent change in normalized probability)
    steam_move_threshold_pct: float = 5.0
    significant_move_threshold_pct: float = 2.0
    reverse_move_threshold_pct: float = 3.0

    # Steam moves must happen within this window between two quotes
    steam_window_minutes: float = 60.0

    # Book groups
    sharp_bookmakers: tuple[str, ...] = DEFAULT_SHARP_BOOKMAKERS
    public_bookmakers: tuple[str, ...] = DEFAULT_PUBLIC_BOOKMAKERS

    # Volume
    volume_spike_factor: float = 2.0

    # Arbitrage
    arbitrage_min_profit_pct: float = 1.0
    arbitrage_validity_minutes: float = 5.0   # heuristic window lifetime
    arbitrage_stale_quote_seconds: float = 300.0
    arbitrage_thin_margin_pct: float = 2.0

    # Liquidity normalization
    liquidity_max_books: int = 20
    liquidity_max_volume: float = 1_000_000.0

    def __post_init__(self):
        # Accept lists from callers but store tuples
        object.__setattr__(self, "sharp_bookmakers", tuple(self.sharp_bookmakers))
        object.__setattr__(self, "public_bookmakers", tuple(self.public_bookmakers))

        non_negative = {
            "steam_move_threshold_pct": self.steam_move_threshold_pct,
            "significant_move_threshold_pct": self.significant_move_threshold_pct,
            "reverse_move_threshold_pct": self.reverse_move_threshold_pct,
            "steam_window_minutes": self.steam_window_minutes,
            "arbitrage_min_profit_pct": self.arbitrage_min_profit_pct,
            "arbitrage_validity_minutes": self.arbitrage_validity_minutes,
            "arbitrage_stale_quote_seconds": self.arbitrage_stale_quote_seconds,
            "arbitrage_thin_margin_pct": self.arbitrage_thin_margin_pct,
        }
        for name, value in non_negative.items():
            if value < 0:
                raise ConfigurationError(f"{name} must be >= 0, got {value}")

        if self.arbitrage_min_profit_pct >= 100:
            raise ConfigurationError("arbitrage_min_profit_pct must be below 100")
        if self.volume_spike_factor <= 0:
            raise ConfigurationError("volume_spike_factor must be > 0")
        if self.liquidity_max_books <= 0 or self.liquidity_max_volume <= 0:
            raise ConfigurationError("liquidity normalizers must be > 0")


@dataclass(frozen=True)
class SportsbookFilterConfig:
    """
    Which sportsbooks to use and in what order.

    include wins over exclude when both are set.
    """
    include: Optional[frozenset[str]] = None
    exclude: Optional[frozenset[str]] = None
    priority_sportsbooks: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if self.include is not None:
            object.__setattr__(self, "include", frozenset(self.include))
        if self.exclude is not None:
            object.__setattr__(self, "exclude", frozenset(self.exclude))
        object.__setattr__(self, "priority_sportsbooks", tuple(self.priority_sportsbooks))

    @property
    def is_empty(self) -> bool:
        return self.include is None and self.exclude is None and not self.priority_sportsbooks


DEFAULT_FEATURE_CONFIG = OddsFeatureConfig()
DEFAULT_FILTER_CONFIG = SportsbookFilterConfig()


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class FeatureSettings(BaseModel):
    """Environment overrides for OddsFeatureConfig."""

    steam_move_threshold_pct: float = 5.0
    significant_move_threshold_pct: float = 2.0
    reverse_move_threshold_pct: float = 3.0
    steam_window_minutes: float = 60.0
    volume_spike_factor: float = 2.0

    # Comma-separated book names
    sharp_bookmakers: str = Field(default=",".join(DEFAULT_SHARP_BOOKMAKERS))
    public_bookmakers: str = Field(default=",".join(DEFAULT_PUBLIC_BOOKMAKERS))


class ArbitrageSettings(BaseModel):
    """Environment overrides for arbitrage detection."""

    min_profit_pct: float = 1.0
    validity_minutes: float = 5.0
    stale_quote_seconds: float = 300.0
    thin_margin_pct: float = 2.0


class FilterSettings(BaseModel):
    """Environment overrides for the sportsbook filter."""

    include: str = Field(default="", description="Comma-separated books to keep")
    exclude: str = Field(default="", description="Comma-separated books to drop")
    priority: str = Field(default="", description="Comma-separated books to list first")


class EngineSettings(BaseSettings):
    """Settings for services embedding the odds engine."""

    model_config = SettingsConfigDict(
        env_prefix="FIGHTODDS_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    log_level: str = "INFO"
    json_logs: bool = True

    features: FeatureSettings = Field(default_factory=FeatureSettings)
    arbitrage: ArbitrageSettings = Field(default_factory=ArbitrageSettings)
    sportsbooks: FilterSettings = Field(default_factory=FilterSettings)

    def to_feature_config(self) -> OddsFeatureConfig:
        """Build the immutable per-call config from loaded settings."""
        return OddsFeatureConfig(
            steam_move_threshold_pct=self.features.steam_move_threshold_pct,
            significant_move_threshold_pct=self.features.significant_move_threshold_pct,
            reverse_move_threshold_pct=self.features.reverse_move_threshold_pct,
            steam_window_minutes=self.features.steam_window_minutes,
            sharp_bookmakers=tuple(_split_csv(self.features.sharp_bookmakers)),
            public_bookmakers=tuple(_split_csv(self.features.public_bookmakers)),
            volume_spike_factor=self.features.volume_spike_factor,
            arbitrage_min_profit_pct=self.arbitrage.min_profit_pct,
            arbitrage_validity_minutes=self.arbitrage.validity_minutes,
            arbitrage_stale_quote_seconds=self.arbitrage.stale_quote_seconds,
            arbitrage_thin_margin_pct=self.arbitrage.thin_margin_pct,
        )

    def to_filter_config(self) -> SportsbookFilterConfig:
        include = _split_csv(self.sportsbooks.include)
        exclude = _split_csv(self.sportsbooks.exclude)
        return SportsbookFilterConfig(
            include=frozenset(include) if include else None,
            exclude=frozenset(exclude) if exclude else None,
            priority_sportsbooks=tuple(_split_csv(self.sportsbooks.priority)),
        )


# Singleton instance
_settings: Optional[EngineSettings] = None


def get_settings() -> EngineSettings:
    """Get engine settings singleton."""
    global _settings
    if _settings is None:
        _settings = EngineSettings()
    return _settings


def reload_settings() -> EngineSettings:
    """Reload settings from environment."""
    global _settings
    _settings = EngineSettings()
    return _settings
