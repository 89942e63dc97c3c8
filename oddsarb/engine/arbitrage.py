"""
Arbitrage Calculator.

Turns a flat set of bookmaker quotes into ranked arbitrage candidates.

Two scans share the same preprocessing:

    Back only:  best back price per (event, outcome), summed across the
                event's outcomes. One candidate per event.
    Back/lay:   best back and best lay price per (event, outcome). One
                candidate per outcome that has both sides.

market_percentage = sum(100 / adjusted_price) over the legs; anything under
100 is a guaranteed profit once commission is paid.
"""

import math
from collections import defaultdict
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

import structlog

from oddsarb.engine.commission import CommissionTable, adjust_price
from oddsarb.models.schemas import (
    AdjustedQuote,
    ArbitrageCandidate,
    BestQuoteGroup,
    MarketType,
    OddsQuote,
    ScanResult,
    ensure_utc,
)

logger = structlog.get_logger()

CommissionLookup = Callable[[str, str], float]

# Relative tolerance for treating two adjusted prices as a tie
PRICE_TIE_TOLERANCE = 1e-9


class ArbitrageCalculator:
    """
    Detects arbitrage across bookmakers.

    Stateless between calls: the same quotes and `now` always give the same
    result, whatever order the quotes arrive in.

    Usage:
        calc = ArbitrageCalculator(commission=CommissionTable(...))
        result = calc.scan(quotes)
        for candidate in result.back:
            print(candidate.get_display_name(), candidate.market_percentage)
    """

    def __init__(
        self,
        commission: Optional[CommissionLookup] = None,
        lay_excluded_sports: Optional[Iterable[str]] = None,
        max_bookmakers: int = 4,
        min_outcomes: int = 2,
    ):
        if max_bookmakers < 1:
            raise ValueError("max_bookmakers must be >= 1")
        if min_outcomes < 2:
            raise ValueError("min_outcomes must be >= 2")
        self.commission = commission or CommissionTable()
        self.lay_excluded_sports = frozenset(lay_excluded_sports or ())
        self.max_bookmakers = max_bookmakers
        self.min_outcomes = min_outcomes
        self.logger = logger.bind(component="arbitrage_calculator")

    # =========================================================================
    # Preprocessing
    # =========================================================================

    def prepare(
        self,
        quotes: Iterable[OddsQuote],
        now: Optional[datetime] = None,
        include_lay: bool = False,
    ) -> list[AdjustedQuote]:
        """
        Drop started events (and lay quotes unless asked for) and apply
        commission to what is left.
        """
        now = ensure_utc(now) if now else datetime.now(timezone.utc)
        adjusted = []
        started = 0

        for quote in quotes:
            if quote.commence_time <= now:
                started += 1
                continue
            if quote.is_lay and not include_lay:
                continue
            rate = self.commission(quote.bookmaker, quote.sport_key)
            adjusted.append(AdjustedQuote(
                quote=quote,
                commission_rate=rate,
                adjusted_price=adjust_price(quote.raw_price, rate, quote.market_type),
            ))

        if started:
            self.logger.debug("Dropped quotes for started events", count=started)

        return adjusted

    def best_quotes(
        self,
        adjusted: Iterable[AdjustedQuote],
        by_market_type: bool = False,
    ) -> list[BestQuoteGroup]:
        """
        Reduce quotes to the best adjusted price per (event, outcome) or
        (event, outcome, market type), keeping every bookmaker that ties.
        """
        groups: dict[tuple, list[AdjustedQuote]] = defaultdict(list)
        for aq in adjusted:
            q = aq.quote
            key = (q.event_id, q.outcome_name, q.market_type) if by_market_type else (q.event_id, q.outcome_name)
            groups[key].append(aq)

        return [self._reduce_group(members) for _, members in sorted(groups.items(), key=_group_sort_key)]

    def _reduce_group(self, members: list[AdjustedQuote]) -> BestQuoteGroup:
        best_price = max(aq.adjusted_price for aq in members)
        winners = sorted(
            (
                aq for aq in members
                if math.isclose(aq.adjusted_price, best_price, rel_tol=PRICE_TIE_TOLERANCE)
            ),
            key=lambda aq: (aq.quote.bookmaker, aq.quote.raw_price),
        )
        bookmakers = sorted({aq.quote.bookmaker for aq in winners})
        lead = winners[0].quote

        return BestQuoteGroup(
            event_id=lead.event_id,
            sport_key=lead.sport_key,
            home_team=lead.home_team,
            away_team=lead.away_team,
            commence_time=lead.commence_time,
            outcome_name=lead.outcome_name,
            market_type=lead.market_type,
            adjusted_price=best_price,
            raw_price=lead.raw_price,
            bookmakers=tuple(bookmakers[:self.max_bookmakers]),
            tie_count=len(bookmakers),
        )

    # =========================================================================
    # Back only
    # =========================================================================

    def find_back_arbitrage(
        self,
        quotes: Iterable[OddsQuote],
        now: Optional[datetime] = None,
    ) -> list[ArbitrageCandidate]:
        """
        Best back price per outcome, summed per event.

        Events with fewer than `min_outcomes` priced outcomes are incomplete
        markets and are skipped.
        """
        groups = self.best_quotes(self.prepare(quotes, now, include_lay=False))

        by_event: dict[str, list[BestQuoteGroup]] = defaultdict(list)
        for group in groups:
            by_event[group.event_id].append(group)

        candidates = []
        for event_id, legs in by_event.items():
            if len(legs) < self.min_outcomes:
                continue
            legs = sorted(legs, key=lambda g: g.outcome_name)
            candidates.append(_build_candidate(legs))

        candidates.sort(key=lambda c: (c.market_percentage, c.event_id))

        self.logger.debug(
            "Back scan complete",
            events=len(candidates),
            arbitrage=sum(1 for c in candidates if c.is_arbitrage),
        )
        return candidates

    # =========================================================================
    # Back / lay
    # =========================================================================

    def find_back_lay_arbitrage(
        self,
        quotes: Iterable[OddsQuote],
        now: Optional[datetime] = None,
    ) -> list[ArbitrageCandidate]:
        """
        Best back price against best lay price for the same outcome.

        Outcomes without both sides are dropped, as are sports in
        `lay_excluded_sports`.
        """
        eligible = (q for q in quotes if q.sport_key not in self.lay_excluded_sports)
        groups = self.best_quotes(self.prepare(eligible, now, include_lay=True), by_market_type=True)

        pairs: dict[tuple[str, str], dict[MarketType, BestQuoteGroup]] = defaultdict(dict)
        for group in groups:
            pairs[(group.event_id, group.outcome_name)][group.market_type] = group

        candidates = []
        for (event_id, outcome_name), sides in pairs.items():
            back = sides.get(MarketType.BACK)
            lay = sides.get(MarketType.LAY)
            if back is None or lay is None:
                continue
            candidates.append(_build_candidate([back, lay], outcome_name=outcome_name))

        candidates.sort(key=lambda c: (c.market_percentage, c.event_id, c.outcome_name))

        self.logger.debug(
            "Back/lay scan complete",
            outcomes=len(candidates),
            arbitrage=sum(1 for c in candidates if c.is_arbitrage),
        )
        return candidates

    # =========================================================================
    # Both
    # =========================================================================

    def scan(
        self,
        quotes: Iterable[OddsQuote],
        now: Optional[datetime] = None,
    ) -> ScanResult:
        """Run both scans over the same quotes and `now`."""
        quotes = list(quotes)
        now = ensure_utc(now) if now else datetime.now(timezone.utc)

        result = ScanResult(
            back=self.find_back_arbitrage(quotes, now),
            back_lay=self.find_back_lay_arbitrage(quotes, now),
            quote_count=len(quotes),
            generated_at=now,
        )

        self.logger.info(
            "Scan complete",
            quotes=result.quote_count,
            back_events=len(result.back),
            back_lay_outcomes=len(result.back_lay),
            arbitrage=result.arbitrage_count,
        )
        return result


def _group_sort_key(item: tuple[tuple, list[AdjustedQuote]]) -> tuple:
    key, _ = item
    return tuple(k.value if isinstance(k, MarketType) else k for k in key)


def _build_candidate(
    legs: list[BestQuoteGroup],
    outcome_name: Optional[str] = None,
) -> ArbitrageCandidate:
    lead = legs[0]
    return ArbitrageCandidate(
        event_id=lead.event_id,
        sport_key=lead.sport_key,
        home_team=lead.home_team,
        away_team=lead.away_team,
        commence_time=lead.commence_time,
        legs=tuple(legs),
        market_percentage=sum(leg.implied_pct for leg in legs),
        outcome_name=outcome_name,
    )
