"""Shared fixtures for the scanner tests."""

from datetime import datetime, timedelta, timezone

import pytest

from oddsarb.models.schemas import MarketType, OddsQuote


NOW = datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)
KICKOFF = NOW + timedelta(hours=3)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_quote():
    """Factory for quotes with sensible defaults."""
    def _make(
        outcome_name: str = "Arsenal",
        raw_price: float = 2.0,
        bookmaker: str = "williamhill",
        market_type: MarketType = MarketType.BACK,
        event_id: str = "evt1",
        sport_key: str = "soccer_epl",
        commence_time: datetime = KICKOFF,
        home_team: str = "Arsenal",
        away_team: str = "Chelsea",
    ) -> OddsQuote:
        return OddsQuote(
            event_id=event_id,
            sport_key=sport_key,
            home_team=home_team,
            away_team=away_team,
            commence_time=commence_time,
            market_type=market_type,
            outcome_name=outcome_name,
            bookmaker=bookmaker,
            raw_price=raw_price,
        )
    return _make


def odds_payload() -> list[dict]:
    """One EPL event as returned by /sports/soccer_epl/odds."""
    return [
        {
            "id": "evt1",
            "sport_key": "soccer_epl",
            "sport_title": "EPL",
            "commence_time": "2030-01-01T15:00:00Z",
            "home_team": "Arsenal",
            "away_team": "Chelsea",
            "bookmakers": [
                {
                    "key": "williamhill",
                    "title": "William Hill",
                    "markets": [
                        {"key": "h2h", "outcomes": [
                            {"name": "Arsenal", "price": 2.1},
                            {"name": "Chelsea", "price": 3.4},
                            {"name": "Draw", "price": 3.3},
                        ]},
                        {"key": "spreads", "outcomes": [
                            {"name": "Arsenal", "price": 1.9, "point": -0.5},
                        ]},
                    ],
                },
                {
                    "key": "paddypower",
                    "title": "Paddy Power",
                    "markets": [
                        {"key": "h2h", "outcomes": [
                            {"name": "Arsenal", "price": 2.6},
                            {"name": "Chelsea", "price": 4.0},
                            {"name": "Draw", "price": 3.9},
                        ]},
                    ],
                },
                {
                    "key": "betfair_ex_uk",
                    "title": "Betfair",
                    "markets": [
                        {"key": "h2h", "outcomes": [
                            {"name": "Arsenal", "price": 2.2},
                            {"name": "Chelsea", "price": 3.5},
                            {"name": "Draw", "price": 3.4},
                        ]},
                        {"key": "h2h_lay", "outcomes": [
                            {"name": "Arsenal", "price": 2.64},
                            {"name": "Chelsea", "price": 4.1},
                            {"name": "Draw", "price": 4.0},
                        ]},
                    ],
                },
                {
                    "key": "brokenbook",
                    "title": "Broken",
                    "markets": [
                        {"key": "h2h", "outcomes": [
                            {"name": "Arsenal", "price": 1.0},
                            {"name": "Chelsea"},
                        ]},
                    ],
                },
            ],
        }
    ]


def sports_payload() -> list[dict]:
    """Response of /sports."""
    return [
        {"key": "soccer_epl", "group": "Soccer", "title": "EPL", "active": True, "has_outrights": False},
        {"key": "basketball_nba", "group": "Basketball", "title": "NBA", "active": True, "has_outrights": False},
        {"key": "golf_masters_tournament_winner", "group": "Golf", "title": "Masters", "active": True, "has_outrights": True},
        {"key": "baseball_mlb", "group": "Baseball", "title": "MLB", "active": False, "has_outrights": False},
    ]


@pytest.fixture
def odds_data():
    return odds_payload()


@pytest.fixture
def sports_data():
    return sports_payload()
