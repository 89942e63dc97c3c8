"""Tests for tables and Discord alerts."""

import asyncio
import json

import httpx
import pytest

from oddsarb.engine.arbitrage import ArbitrageCalculator
from oddsarb.models.schemas import MarketType
from oddsarb.utils.alerts import DiscordAlerter, format_arbitrage_message
from oddsarb.utils.tables import format_back_lay_table, format_back_table


@pytest.fixture
def back_candidates(make_quote, now):
    quotes = [
        make_quote("Arsenal", 2.10, "williamhill"),
        make_quote("Arsenal", 2.10, "betway"),
        make_quote("Chelsea", 2.05, "paddypower"),
    ]
    return ArbitrageCalculator().find_back_arbitrage(quotes, now)


@pytest.fixture
def back_lay_candidates(make_quote, now):
    quotes = [
        make_quote("Arsenal", 2.2, "williamhill"),
        make_quote("Arsenal", 2.1, "betfair_ex_uk", MarketType.LAY),
    ]
    return ArbitrageCalculator().find_back_lay_arbitrage(quotes, now)


class TestTables:
    """Tests for the text tables."""

    def test_back_table_lines(self, back_candidates):
        text = format_back_table(back_candidates)
        lines = text.splitlines()

        assert lines[0].startswith("BACK-ONLY")
        assert "Market %" in lines[1]
        # Header, rule, one line per outcome
        assert len(lines) == 5
        assert "betway" in lines[3] and "williamhill" in lines[3]
        assert "96.40" in lines[3]
        assert "Chelsea @ Arsenal" in lines[4]

    def test_back_lay_table_marks_sides(self, back_lay_candidates):
        lines = format_back_lay_table(back_lay_candidates).splitlines()

        assert "back" in lines[3]
        assert "lay" in lines[4]
        assert "betfair_ex_uk" in lines[4]

    def test_empty_tables(self):
        assert "No back-only markets found." in format_back_table([])
        assert "No back/lay pairs found." in format_back_lay_table([])

    def test_limit(self, make_quote, now):
        quotes = []
        for i in range(3):
            quotes.append(make_quote("Home", 2.0, event_id=f"evt{i}"))
            quotes.append(make_quote("Away", 2.0, event_id=f"evt{i}"))
        candidates = ArbitrageCalculator().find_back_arbitrage(quotes, now)

        text = format_back_table(candidates, limit=1)

        assert "... 2 more" in text


class TestAlerts:
    """Tests for the Discord alerter."""

    def test_message_contents(self, back_candidates):
        message = format_arbitrage_message(back_candidates[0], total_stake=100.0)

        assert "Back arbitrage: Chelsea @ Arsenal" in message
        assert "96.40%" in message
        assert "betway, williamhill" in message
        assert "stake" in message

    def test_back_lay_message_uses_liability(self, back_lay_candidates):
        message = format_arbitrage_message(back_lay_candidates[0])
        assert "Back/Lay arbitrage" in message
        assert "Lay **Arsenal**" in message
        assert "risk" in message

    def test_send_posts_to_webhook(self, back_candidates):
        posted = []

        def handler(request: httpx.Request) -> httpx.Response:
            posted.append(json.loads(request.content))
            return httpx.Response(204)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        alerter = DiscordAlerter("https://discord.test/webhook", client=client)

        assert asyncio.run(alerter.send_arbitrage_alert(back_candidates[0]))
        assert len(posted) == 1
        assert "Chelsea @ Arsenal" in posted[0]["content"]

    def test_rate_limited_send_returns_false(self, back_candidates):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, json={"retry_after": 30})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        alerter = DiscordAlerter("https://discord.test/webhook", client=client)

        assert asyncio.run(alerter.send_message("hi")) is False
        assert asyncio.run(alerter.send_message("again")) is False

    def test_rate_limited_with_non_object_body(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(429, json=["slow down"])

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        alerter = DiscordAlerter("https://discord.test/webhook", client=client)

        assert asyncio.run(alerter.send_message("hi")) is False
        # Falls back to the default back-off and skips the next send
        assert asyncio.run(alerter.send_message("again")) is False
        assert len(calls) == 1

    def test_server_error_returns_false(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        alerter = DiscordAlerter("https://discord.test/webhook", client=client)

        assert asyncio.run(alerter.send_message("hi")) is False

    def test_no_webhook_is_noop(self):
        assert asyncio.run(DiscordAlerter("").send_message("hi")) is False


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
