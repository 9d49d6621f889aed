"""Shared fixtures for odds engine tests."""

from datetime import datetime, timedelta, timezone

import pytest

from fightodds.models.schemas import (
    MethodOdds,
    MoneylineOdds,
    OddsMovementData,
    OddsSnapshot,
    RoundOdds,
)

BASE_TIME = datetime(2024, 6, 1, 18, 0, tzinfo=timezone.utc)


@pytest.fixture
def base_time():
    return BASE_TIME


@pytest.fixture
def make_snapshot():
    """Factory for snapshots; minutes are offsets from BASE_TIME."""

    def _make(
        sportsbook="DraftKings",
        fighter1=-150,
        fighter2=130,
        minutes=0.0,
        volume=None,
        method=None,
        rounds=None,
        fight_id="fight_1",
    ):
        return OddsSnapshot(
            fight_id=fight_id,
            sportsbook=sportsbook,
            timestamp=BASE_TIME + timedelta(minutes=minutes),
            moneyline=MoneylineOdds(fighter1=fighter1, fighter2=fighter2),
            method=method or MethodOdds(),
            rounds=rounds or RoundOdds(),
            volume=volume,
        )

    return _make


@pytest.fixture
def make_data():
    """Wrap snapshots in OddsMovementData."""

    def _make(snapshots, fight_id="fight_1"):
        return OddsMovementData(fight_id=fight_id, snapshots=list(snapshots))

    return _make
