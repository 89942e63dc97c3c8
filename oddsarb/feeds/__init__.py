"""
Odds data feeds.

- The Odds API: aggregates back odds from 40+ bookmakers plus exchange lay odds
"""

from oddsarb.feeds.odds_api import OddsAPIFeed, OddsAPIError

__all__ = [
    "OddsAPIFeed",
    "OddsAPIError",
]
