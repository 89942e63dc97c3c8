"""
Exchange commission model.

Exchanges take a cut of net winnings, which lowers the effective price of
both sides of a bet:

    back:  1 + (1 - c) * (price - 1)
    lay:   1 + (1 - c) / (price - 1)

The lay form is the decimal price of the equivalent back bet on the outcome
NOT happening, so back and lay prices can be summed the same way.
"""

from typing import Iterable, Optional, TYPE_CHECKING

import structlog

from oddsarb.models.schemas import MarketType

if TYPE_CHECKING:
    from oddsarb.config import CommissionSettings

logger = structlog.get_logger()


def adjust_price(raw_price: float, commission: float, market_type: MarketType) -> float:
    """
    Fold commission into a decimal price.

    Raises:
        ValueError: price <= 1 or commission outside [0, 1)
    """
    if not raw_price > 1.0:
        raise ValueError(f"decimal price must be > 1.0, got {raw_price}")
    if not 0.0 <= commission < 1.0:
        raise ValueError(f"commission rate must be in [0, 1), got {commission}")

    if market_type is MarketType.LAY:
        return 1.0 + (1.0 - commission) / (raw_price - 1.0)
    return 1.0 + (1.0 - commission) * (raw_price - 1.0)


class CommissionTable:
    """
    Commission lookup keyed by bookmaker and sport.

    Usage:
        table = CommissionTable(exchanges=["betfair_ex_uk"], default_rate=0.05,
                                sport_rates={"soccer_epl": 0.10})
        table.rate_for("betfair_ex_uk", "soccer_epl")   # 0.10
        table.rate_for("williamhill", "soccer_epl")     # 0.0
    """

    def __init__(
        self,
        exchanges: Optional[Iterable[str]] = None,
        default_rate: float = 0.0,
        sport_rates: Optional[dict[str, float]] = None,
    ):
        self.exchanges = frozenset(exchanges or ())
        self.default_rate = default_rate
        self.sport_rates = dict(sport_rates or {})

        for label, rate in [("default", default_rate), *self.sport_rates.items()]:
            if not 0.0 <= rate < 1.0:
                raise ValueError(f"commission rate for {label} must be in [0, 1), got {rate}")

    @classmethod
    def from_settings(cls, settings: "CommissionSettings") -> "CommissionTable":
        """Build from the `commission` config section."""
        return cls(
            exchanges=settings.exchanges,
            default_rate=settings.default_rate,
            sport_rates=settings.sport_rates,
        )

    def rate_for(self, bookmaker: str, sport_key: str) -> float:
        """Commission rate for a bookmaker in a sport (0 for non-exchanges)."""
        if bookmaker not in self.exchanges:
            return 0.0
        return self.sport_rates.get(sport_key, self.default_rate)

    def __call__(self, bookmaker: str, sport_key: str) -> float:
        return self.rate_for(bookmaker, sport_key)

    def __repr__(self) -> str:
        return (
            f"CommissionTable(exchanges={sorted(self.exchanges)}, "
            f"default_rate={self.default_rate}, sport_rates={self.sport_rates})"
        )
