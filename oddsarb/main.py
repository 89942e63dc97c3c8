"""
Odds Arbitrage Scanner - Main Entry Point.

Runs one scan:
1. List in-season sports (or use the configured list)
2. Fetch head-to-head back and lay odds for each sport
3. Fold exchange commission into every price
4. Rank back-only markets and back/lay pairs by market percentage
5. Print both tables (and alert on anything under 100%)

Usage:
    python -m oddsarb.main

Environment Variables:
    ODDS_API__API_KEY              - Required: The Odds API key
    ODDS_API__REGIONS              - Bookmaker regions (default: uk)
    ODDS_API__SPORTS               - JSON list of sport keys (default: all active)
    SCAN__LAY_EXCLUDED_SPORTS      - JSON list of sports skipped for back/lay
    ALERTS__DISCORD_WEBHOOK_URL    - Discord webhook for arbitrage alerts
    LOG_LEVEL                      - DEBUG|INFO|WARNING (default: INFO)
"""

import asyncio
import sys
from datetime import datetime
from typing import Optional

import httpx
import structlog
from pydantic import ValidationError

from oddsarb.config import Settings, get_settings
from oddsarb.engine.arbitrage import ArbitrageCalculator
from oddsarb.engine.commission import CommissionTable
from oddsarb.feeds.odds_api import OddsAPIError, OddsAPIFeed
from oddsarb.models.schemas import ScanResult
from oddsarb.utils.alerts import DiscordAlerter
from oddsarb.utils.logging import setup_logging
from oddsarb.utils.tables import format_back_lay_table, format_back_table

logger = structlog.get_logger()


class ArbScanner:
    """
    Wires the odds feed, the calculator and the alerter together.

    The feed and alerter can be injected (tests pass ones backed by
    httpx.MockTransport).
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        feed: Optional[OddsAPIFeed] = None,
        alerter: Optional[DiscordAlerter] = None,
    ):
        self.settings = settings or get_settings()
        self.logger = logger.bind(component="arb_scanner")

        self.feed = feed or OddsAPIFeed(self.settings.odds_api)
        self.calculator = ArbitrageCalculator(
            commission=CommissionTable.from_settings(self.settings.commission),
            lay_excluded_sports=self.settings.scan.lay_excluded_sports,
            max_bookmakers=self.settings.scan.max_bookmakers,
            min_outcomes=self.settings.scan.min_outcomes,
        )

        self.alerter = alerter
        if self.alerter is None and self.settings.alerts.discord_webhook_url:
            self.alerter = DiscordAlerter(self.settings.alerts.discord_webhook_url)

    async def resolve_sports(self) -> list[str]:
        """Configured sports, or every active sport when none are set."""
        if self.settings.odds_api.sports:
            return list(self.settings.odds_api.sports)
        sports = await self.feed.list_active_sports()
        return [s["key"] for s in sports]

    async def run_once(self, now: Optional[datetime] = None) -> ScanResult:
        """Fetch, scan and report once."""
        try:
            sport_keys = await self.resolve_sports()
        except (OddsAPIError, httpx.HTTPError) as e:
            self.logger.error("Could not list sports", error=str(e))
            sport_keys = []

        self.logger.info("Starting scan", sports=len(sport_keys))

        quotes = await self.feed.fetch_all_odds(sport_keys) if sport_keys else []
        result = self.calculator.scan(quotes, now)

        self.report(result)
        await self.send_alerts(result)

        metrics = self.feed.get_metrics()
        self.logger.info(
            "Scan finished",
            arbitrage=result.arbitrage_count,
            requests_remaining=metrics["requests_remaining"],
        )
        return result

    def report(self, result: ScanResult) -> None:
        """Print both tables to stdout."""
        limit = self.settings.scan.max_rows
        print("=" * 60)
        print(f"ARBITRAGE SCAN {result.generated_at:%Y-%m-%d %H:%M:%S} UTC")
        print(f"Quotes: {result.quote_count}  Arbitrage: {result.arbitrage_count}")
        print("=" * 60)
        print()
        print(format_back_table(result.back, limit=limit))
        print()
        print(format_back_lay_table(result.back_lay, limit=limit))
        print()

    async def send_alerts(self, result: ScanResult) -> int:
        """Alert on every candidate under 100%. Returns the number sent."""
        if not self.alerter:
            return 0

        sent = 0
        for candidate in result.back + result.back_lay:
            if not candidate.is_arbitrage:
                continue
            if await self.alerter.send_arbitrage_alert(candidate, self.settings.scan.total_stake):
                sent += 1
        return sent

    async def close(self) -> None:
        await self.feed.close()
        if self.alerter:
            await self.alerter.close()


async def run(settings: Settings) -> ScanResult:
    scanner = ArbScanner(settings)
    try:
        return await scanner.run_once()
    finally:
        await scanner.close()


def main() -> int:
    """Entry point."""
    try:
        settings = get_settings()
    except ValidationError as e:
        logger.error("Invalid configuration", error=str(e))
        return 1
    setup_logging(settings.log_level, settings.json_logs)

    if not settings.odds_api.api_key:
        logger.error("ODDS_API__API_KEY environment variable required")
        return 1

    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
