"""
Arbitrage detection engine.

1. Fold exchange commission into every price
2. Keep the best price per outcome across bookmakers
3. Sum implied probabilities per market (under 100% = arbitrage)
"""

from oddsarb.engine.arbitrage import ArbitrageCalculator
from oddsarb.engine.commission import CommissionTable, adjust_price

__all__ = [
    "ArbitrageCalculator",
    "CommissionTable",
    "adjust_price",
]
