"""
The Odds API Feed.

Aggregates head-to-head odds from 40+ sportsbooks, including the Betfair
exchange lay market (`h2h_lay`).

API Docs: https://the-odds-api.com/liveapi/guides/v4/

Key endpoints:
- /sports: List available sports
- /sports/{sport}/odds: Get odds for upcoming events

Each sport costs one request per region and market, so a full scan over
every active sport can use a large share of a free-tier quota.
"""

import asyncio
import ssl
import time
from datetime import datetime
from typing import Optional

import certifi
import httpx
import structlog

from oddsarb.config import OddsAPISettings
from oddsarb.models.schemas import (
    InvalidQuoteError,
    MarketType,
    OddsQuote,
    american_to_decimal,
)

logger = structlog.get_logger()


class OddsAPIError(Exception):
    """A request to The Odds API failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


# =============================================================================
# Feed Implementation
# =============================================================================

class OddsAPIFeed:
    """
    Odds feed from The Odds API.

    Usage:
        async with OddsAPIFeed(OddsAPISettings(api_key="your_key")) as feed:
            sports = await feed.list_active_sports()
            quotes = await feed.fetch_all_odds([s["key"] for s in sports])
    """

    def __init__(
        self,
        config: OddsAPISettings,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config
        self.logger = logger.bind(feed="odds_api")

        # HTTP client (owned only when we create it)
        self._http_client = client
        self._owns_client = client is None

        # Quota tracking
        self._requests_remaining: Optional[int] = None
        self._requests_used: Optional[int] = None

        # Health
        self._error_count: int = 0
        self._last_success_ms: int = 0

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def __aenter__(self) -> "OddsAPIFeed":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            ssl_context = ssl.create_default_context(cafile=certifi.where())
            self._http_client = httpx.AsyncClient(
                verify=ssl_context,
                timeout=self.config.timeout_seconds,
                headers={"Accept": "application/json"},
            )
            self._owns_client = True
        return self._http_client

    async def close(self) -> None:
        """Close the HTTP client if this feed created it."""
        if self._http_client and self._owns_client:
            await self._http_client.aclose()
        self._http_client = None

    # =========================================================================
    # API Calls
    # =========================================================================

    async def _make_request(self, endpoint: str, params: Optional[dict] = None) -> dict | list:
        """
        GET an endpoint and return parsed JSON.

        Raises:
            OddsAPIError: transport failure or non-200 response
        """
        url = f"{self.config.base_url}{endpoint}"
        full_params = {"apiKey": self.config.api_key}
        if params:
            full_params.update(params)

        try:
            response = await self._get_client().get(url, params=full_params)
        except httpx.HTTPError as e:
            self._error_count += 1
            raise OddsAPIError(f"Request to {endpoint} failed: {e}") from e

        self._track_quota(response)

        if response.status_code == 200:
            self._last_success_ms = int(time.time() * 1000)
            try:
                return response.json()
            except ValueError as e:
                self._error_count += 1
                raise OddsAPIError(f"Invalid JSON from {endpoint}") from e

        self._error_count += 1
        if response.status_code == 401:
            self.logger.error("Invalid API key")
        elif response.status_code == 429:
            self.logger.warning("Rate limited by API", endpoint=endpoint)
        else:
            self.logger.warning(
                "API error",
                endpoint=endpoint,
                status=response.status_code,
                body=response.text[:200],
            )
        raise OddsAPIError(
            f"{endpoint} returned HTTP {response.status_code}",
            status_code=response.status_code,
        )

    def _track_quota(self, response: httpx.Response) -> None:
        """Record usage from The Odds API quota headers."""
        remaining = response.headers.get("x-requests-remaining")
        used = response.headers.get("x-requests-used")
        try:
            if remaining is not None:
                self._requests_remaining = int(float(remaining))
            if used is not None:
                self._requests_used = int(float(used))
        except ValueError:
            return
        if remaining is not None or used is not None:
            self.logger.debug(
                "API request",
                used=self._requests_used,
                remaining=self._requests_remaining,
            )

    async def list_active_sports(self) -> list[dict]:
        """
        Get in-season sports that have head-to-head markets.

        Returns:
            List of dicts with keys: key, title
        """
        data = await self._make_request("/sports")
        if not isinstance(data, list):
            raise OddsAPIError("Unexpected /sports payload")

        sports = [
            {"key": s["key"], "title": s.get("title") or s["key"]}
            for s in data
            if isinstance(s, dict)
            and s.get("key")
            and s.get("active", True)
            and not s.get("has_outrights", False)
        ]
        self.logger.info("Fetched sports", count=len(sports))
        return sports

    async def fetch_h2h_odds(
        self,
        sport_key: str,
        region: Optional[str] = None,
        odds_format: Optional[str] = None,
    ) -> list[OddsQuote]:
        """
        Get head-to-head back and lay quotes for one sport.

        Args:
            sport_key: The Odds API sport key (e.g. "soccer_epl")
            region: Comma-separated regions (defaults to config)
            odds_format: "decimal" or "american" (defaults to config)

        Returns:
            One OddsQuote per bookmaker/market/outcome, prices in decimal

        Raises:
            OddsAPIError: the request failed
        """
        odds_format = (odds_format or self.config.odds_format).lower()
        params = {
            "regions": region or self.config.regions,
            "markets": ",".join(self.config.markets),
            "oddsFormat": odds_format,
            "dateFormat": "iso",
        }
        data = await self._make_request(f"/sports/{sport_key}/odds", params)
        if not isinstance(data, list):
            raise OddsAPIError(f"Unexpected odds payload for {sport_key}")

        quotes: list[OddsQuote] = []
        try:
            for event_data in data:
                quotes.extend(self._parse_event(event_data, sport_key, odds_format))
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            self._error_count += 1
            raise OddsAPIError(f"Malformed odds payload for {sport_key}: {e}") from e

        self.logger.info(
            "Fetched odds",
            sport=sport_key,
            events=len(data),
            quotes=len(quotes),
            requests_remaining=self._requests_remaining,
        )
        return quotes

    async def fetch_all_odds(self, sport_keys: list[str]) -> list[OddsQuote]:
        """
        Fetch several sports concurrently.

        A sport that fails is logged and contributes no quotes; the result is
        the union of every sport that succeeded.
        """
        semaphore = asyncio.Semaphore(self.config.max_concurrent_requests)
        failed: list[str] = []

        async def fetch_one(sport_key: str) -> list[OddsQuote]:
            async with semaphore:
                try:
                    return await self.fetch_h2h_odds(sport_key)
                except (OddsAPIError, httpx.HTTPError) as e:
                    self.logger.warning("Sport fetch failed", sport=sport_key, error=str(e))
                    failed.append(sport_key)
                    return []

        results = await asyncio.gather(*(fetch_one(key) for key in sport_keys))

        quotes = [quote for sport_quotes in results for quote in sport_quotes]
        self.logger.info(
            "Fetched all sports",
            sports=len(sport_keys),
            failed=len(failed),
            quotes=len(quotes),
        )
        return quotes

    # =========================================================================
    # Parsing
    # =========================================================================

    def _parse_event(self, data: dict, sport_key: str, odds_format: str) -> list[OddsQuote]:
        """Flatten one event's bookmakers/markets/outcomes into quotes."""
        try:
            event_id = data["id"]
            commence_time = datetime.fromisoformat(data["commence_time"].replace("Z", "+00:00"))
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            self.logger.debug("Failed to parse event", sport=sport_key, error=str(e))
            return []

        quotes = []
        skipped = 0
        for book_data in data.get("bookmakers") or []:
            if not isinstance(book_data, dict):
                skipped += 1
                continue
            bookmaker = book_data.get("key", "")
            for market in book_data.get("markets") or []:
                if not isinstance(market, dict):
                    skipped += 1
                    continue
                market_type = MarketType.from_market_key(market.get("key", ""))
                if market_type is None:
                    continue
                for outcome_data in market.get("outcomes") or []:
                    if not isinstance(outcome_data, dict):
                        skipped += 1
                        continue
                    try:
                        price = float(outcome_data["price"])
                        if odds_format == "american":
                            price = american_to_decimal(price)
                        quotes.append(OddsQuote(
                            event_id=event_id,
                            sport_key=data.get("sport_key") or sport_key,
                            home_team=data.get("home_team", ""),
                            away_team=data.get("away_team", ""),
                            commence_time=commence_time,
                            market_type=market_type,
                            outcome_name=outcome_data.get("name", ""),
                            bookmaker=bookmaker,
                            raw_price=price,
                        ))
                    except (KeyError, TypeError, ValueError, ZeroDivisionError, InvalidQuoteError) as e:
                        skipped += 1
                        self.logger.debug(
                            "Skipped outcome",
                            event_id=event_id,
                            bookmaker=bookmaker,
                            error=str(e),
                        )

        if skipped:
            self.logger.warning("Skipped malformed outcomes", event_id=event_id, count=skipped)
        return quotes

    # =========================================================================
    # Metrics
    # =========================================================================

    def get_metrics(self) -> dict:
        """Get feed health metrics."""
        return {
            "name": "odds_api",
            "requests_remaining": self._requests_remaining,
            "requests_used": self._requests_used,
            "error_count": self._error_count,
            "age_seconds": (int(time.time() * 1000) - self._last_success_ms) / 1000 if self._last_success_ms else 0,
        }
