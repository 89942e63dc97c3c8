"""
Odds and arbitrage data models.

Defines the core data structures for:
- Bookmaker quotes (back and lay) as returned by The Odds API
- Commission-adjusted quotes
- Best-price groups across bookmakers
- Arbitrage candidates and scan results
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class InvalidQuoteError(ValueError):
    """Raised when a quote violates the model invariants."""


class MarketType(Enum):
    """Head-to-head market sides (values are The Odds API market keys)."""
    BACK = "h2h"
    LAY = "h2h_lay"    # Exchanges only (Betfair, Matchbook, ...)

    @classmethod
    def from_market_key(cls, key: str) -> Optional["MarketType"]:
        """Map an API market key to a MarketType, None if not head-to-head."""
        for market_type in cls:
            if market_type.value == key:
                return market_type
        return None


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class OddsQuote:
    """One bookmaker's decimal price for one outcome of one event."""
    event_id: str
    sport_key: str
    home_team: str
    away_team: str
    commence_time: datetime
    market_type: MarketType
    outcome_name: str
    bookmaker: str          # API key, e.g. "betfair_ex_uk"
    raw_price: float

    def __post_init__(self):
        if not self.event_id:
            raise InvalidQuoteError("event_id is required")
        if not self.outcome_name:
            raise InvalidQuoteError(f"outcome_name is required (event {self.event_id})")
        if not self.bookmaker:
            raise InvalidQuoteError(f"bookmaker is required (event {self.event_id})")
        if not isinstance(self.commence_time, datetime):
            raise InvalidQuoteError(f"commence_time must be a datetime, got {self.commence_time!r}")
        if not isinstance(self.market_type, MarketType):
            raise InvalidQuoteError(f"unknown market type {self.market_type!r}")
        try:
            price = float(self.raw_price)
        except (TypeError, ValueError):
            raise InvalidQuoteError(f"price {self.raw_price!r} is not a number") from None
        if not math.isfinite(price) or not price > 1.0:
            raise InvalidQuoteError(
                f"decimal price must be finite and > 1.0, got {price} "
                f"({self.bookmaker} {self.outcome_name} {self.market_type.value})"
            )
        object.__setattr__(self, "raw_price", price)
        object.__setattr__(self, "commence_time", ensure_utc(self.commence_time))

    @property
    def is_lay(self) -> bool:
        return self.market_type is MarketType.LAY

    def get_display_name(self) -> str:
        """Get human-readable event name."""
        return f"{self.away_team} @ {self.home_team}"


@dataclass(frozen=True)
class AdjustedQuote:
    """A quote with the bookmaker's commission folded into the price."""
    quote: OddsQuote
    commission_rate: float
    adjusted_price: float


@dataclass(frozen=True)
class BestQuoteGroup:
    """
    Best adjusted price for one (event, outcome[, market type]).

    `bookmakers` holds at most `max_bookmakers` names in ascending order;
    `tie_count` is the number of distinct bookmakers that matched the best
    price before the cap was applied.
    """
    event_id: str
    sport_key: str
    home_team: str
    away_team: str
    commence_time: datetime
    outcome_name: str
    market_type: MarketType
    adjusted_price: float
    raw_price: float
    bookmakers: tuple[str, ...]
    tie_count: int

    @property
    def implied_pct(self) -> float:
        """Commission-adjusted implied probability in percent."""
        return 100.0 / self.adjusted_price


@dataclass(frozen=True)
class ArbitrageCandidate:
    """
    One market whose legs cover every outcome.

    Back-only scans produce one candidate per event with a leg per outcome.
    Back/lay scans produce one candidate per (event, outcome) with a back leg
    and a lay leg.
    """
    event_id: str
    sport_key: str
    home_team: str
    away_team: str
    commence_time: datetime
    legs: tuple[BestQuoteGroup, ...]
    market_percentage: float
    outcome_name: Optional[str] = None

    @property
    def is_arbitrage(self) -> bool:
        """True when staking every leg guarantees a profit."""
        return self.market_percentage < 100.0

    @property
    def profit_pct(self) -> float:
        """Guaranteed return on total stake in percent (negative = loss)."""
        return (100.0 / self.market_percentage - 1.0) * 100.0

    def stake_distribution(self, total_stake: float = 100.0) -> list[float]:
        """
        Split `total_stake` across legs so every outcome pays the same.

        Stakes are proportional to 1 / adjusted_price. For a lay leg the
        figure is the liability to put at risk.
        """
        inverse_sum = sum(1.0 / leg.adjusted_price for leg in self.legs)
        if inverse_sum <= 0:
            return [0.0 for _ in self.legs]
        return [
            (1.0 / leg.adjusted_price) / inverse_sum * total_stake
            for leg in self.legs
        ]

    def get_display_name(self) -> str:
        """Get human-readable event name."""
        return f"{self.away_team} @ {self.home_team}"

    def to_rows(self, slots: int = 4) -> list[dict]:
        """Flatten into one row per leg, padding bookmaker slots with ''."""
        rows = []
        for leg in self.legs:
            row = {
                "event_id": self.event_id,
                "sport_key": self.sport_key,
                "home_team": self.home_team,
                "away_team": self.away_team,
                "commence_time": self.commence_time.isoformat(),
                "outcome_name": leg.outcome_name,
                "market_type": leg.market_type.value,
                "adjusted_price": leg.adjusted_price,
                "raw_price": leg.raw_price,
                "market_percentage": self.market_percentage,
            }
            for i in range(slots):
                row[f"bookmaker_{i + 1}"] = leg.bookmakers[i] if i < len(leg.bookmakers) else ""
            rows.append(row)
        return rows


@dataclass
class ScanResult:
    """Output of one scan over a quote set."""
    back: list[ArbitrageCandidate] = field(default_factory=list)
    back_lay: list[ArbitrageCandidate] = field(default_factory=list)
    quote_count: int = 0
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def arbitrage_count(self) -> int:
        """Number of candidates (both modes) under the 100% line."""
        return sum(1 for c in self.back + self.back_lay if c.is_arbitrage)


# =============================================================================
# Utility Functions
# =============================================================================

def american_to_decimal(american: float) -> float:
    """Convert American odds to Decimal."""
    if american > 0:
        return (american / 100) + 1
    else:
        return (100 / abs(american)) + 1
