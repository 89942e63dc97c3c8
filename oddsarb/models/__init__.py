"""Odds and arbitrage data models."""

from oddsarb.models.schemas import (
    InvalidQuoteError,
    MarketType,
    OddsQuote,
    AdjustedQuote,
    BestQuoteGroup,
    ArbitrageCandidate,
    ScanResult,
    american_to_decimal,
)

__all__ = [
    "InvalidQuoteError",
    "MarketType",
    "OddsQuote",
    "AdjustedQuote",
    "BestQuoteGroup",
    "ArbitrageCandidate",
    "ScanResult",
    "american_to_decimal",
]
