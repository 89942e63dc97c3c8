"""
Discord alerting for arbitrage found during a scan.

Alert failures are logged and reported as False; they never abort a scan.
"""

import asyncio
import time
from typing import Optional

import httpx
import structlog

from oddsarb.models.schemas import ArbitrageCandidate, MarketType

logger = structlog.get_logger()


class DiscordAlerter:
    """
    Discord webhook alerter.

    Features:
    - Persistent HTTP client (injectable for tests)
    - Retry with progressive backoff on timeouts
    - Honours Discord's 429 retry_after
    """

    # Retry settings
    MAX_RETRIES = 3
    RETRY_DELAYS = [1.0, 2.0, 5.0]  # Progressive backoff

    def __init__(self, webhook_url: str, client: Optional[httpx.AsyncClient] = None):
        self.webhook_url = webhook_url
        self.logger = logger.bind(component="discord_alerter")
        self._rate_limit_until: float = 0

        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the persistent HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(15.0),
                follow_redirects=True,
            )
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this alerter created it."""
        if self._client and self._owns_client:
            await self._client.aclose()
        self._client = None

    # ==========================================================================
    # Core Methods
    # ==========================================================================

    async def _send_with_retry(self, payload: dict) -> bool:
        """
        Send payload to Discord with retry logic.

        Returns:
            True if sent successfully
        """
        if not self.webhook_url:
            return False

        if time.time() < self._rate_limit_until:
            return False  # Silent skip when rate limited

        for attempt in range(self.MAX_RETRIES):
            try:
                response = await self._get_client().post(self.webhook_url, json=payload)

                if response.status_code == 429:
                    try:
                        retry_after = float(response.json().get("retry_after", 5))
                    except (ValueError, TypeError, AttributeError):
                        retry_after = 5.0
                    self._rate_limit_until = time.time() + retry_after
                    self.logger.debug("Discord rate limited", retry_after=retry_after)
                    return False

                response.raise_for_status()
                return True

            except (httpx.ConnectTimeout, httpx.ReadTimeout, httpx.ConnectError, httpx.PoolTimeout) as e:
                self.logger.debug(
                    "Discord send failed",
                    error_type=type(e).__name__,
                    attempt=attempt + 1,
                )
                if attempt < self.MAX_RETRIES - 1:
                    await asyncio.sleep(self.RETRY_DELAYS[min(attempt, len(self.RETRY_DELAYS) - 1)])

            except httpx.HTTPError as e:
                self.logger.warning("Discord send failed", error=str(e))
                return False

        self.logger.warning("Discord unreachable", attempts=self.MAX_RETRIES)
        return False

    async def send_message(self, content: str) -> bool:
        """
        Send a simple text message.

        Args:
            content: Message text

        Returns:
            True if sent successfully
        """
        return await self._send_with_retry({"content": content})

    # ==========================================================================
    # Arbitrage Alerts
    # ==========================================================================

    async def send_arbitrage_alert(
        self,
        candidate: ArbitrageCandidate,
        total_stake: float = 100.0,
    ) -> bool:
        """Send one arbitrage with its stake split."""
        return await self.send_message(format_arbitrage_message(candidate, total_stake))


def format_arbitrage_message(candidate: ArbitrageCandidate, total_stake: float = 100.0) -> str:
    """Build the Discord text for one candidate."""
    kind = "Back/Lay" if candidate.outcome_name else "Back"
    lines = [
        f"💰 **{kind} arbitrage: {candidate.get_display_name()}**",
        f"**Sport:** {candidate.sport_key}",
        f"**Starts:** {candidate.commence_time:%Y-%m-%d %H:%M} UTC",
        f"**Market:** {candidate.market_percentage:.2f}% "
        f"(profit {candidate.profit_pct:.2f}%)",
    ]
    stakes = candidate.stake_distribution(total_stake)
    for leg, stake in zip(candidate.legs, stakes):
        side = "Lay" if leg.market_type is MarketType.LAY else "Back"
        verb = "risk" if side == "Lay" else "stake"
        lines.append(
            f"• {side} **{leg.outcome_name}** @ {leg.raw_price:.2f} "
            f"({', '.join(leg.bookmakers)}): {verb} {stake:.2f}"
        )
    return "\n".join(lines)
