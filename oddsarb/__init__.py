"""
Sports Betting Arbitrage Scanner.

Pulls head-to-head odds from The Odds API and ranks markets by their
commission-adjusted implied probability. A market under 100% is an
arbitrage: staking every outcome across bookmakers locks in a profit.

Layout:
- feeds/: The Odds API client
- engine/: Commission model and arbitrage calculator
- models/: Quote and candidate schemas
- utils/: Logging, tables, Discord alerts
"""

__version__ = "0.1.0"
