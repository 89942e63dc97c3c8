"""End-to-end tests for the scanner with a mocked Odds API."""

import asyncio
import json

import httpx
import pytest

from oddsarb import main as main_module
from oddsarb.config import OddsAPISettings, ScanSettings, Settings
from oddsarb.feeds.odds_api import OddsAPIFeed
from oddsarb.main import ArbScanner
from oddsarb.utils.alerts import DiscordAlerter


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        odds_api=OddsAPISettings(api_key="test-key", base_url="https://odds.test/v4"),
        scan=ScanSettings(max_rows=10),
    )


@pytest.fixture
def api_handler(odds_data, sports_data):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v4/sports":
            return httpx.Response(200, json=sports_data)
        if request.url.path == "/v4/sports/soccer_epl/odds":
            return httpx.Response(200, json=odds_data)
        return httpx.Response(404, json={"message": "Unknown sport"})
    return handler


@pytest.fixture
def webhook_posts():
    return []


@pytest.fixture
def scanner(settings, api_handler, webhook_posts):
    def webhook(request: httpx.Request) -> httpx.Response:
        webhook_posts.append(json.loads(request.content))
        return httpx.Response(204)

    feed = OddsAPIFeed(
        settings.odds_api,
        client=httpx.AsyncClient(transport=httpx.MockTransport(api_handler)),
    )
    alerter = DiscordAlerter(
        "https://discord.test/webhook",
        client=httpx.AsyncClient(transport=httpx.MockTransport(webhook)),
    )
    return ArbScanner(settings, feed=feed, alerter=alerter)


class TestArbScanner:
    """Tests for a full scan."""

    def test_run_once(self, scanner, webhook_posts, now, capsys):
        result = asyncio.run(scanner.run_once(now))

        # EPL fetched; NBA returned 404 and contributed nothing
        assert result.quote_count == 12

        # Paddy Power's 2.6 / 4.0 / 3.9 is an 89.1% market
        assert len(result.back) == 1
        back = result.back[0]
        assert back.market_percentage == pytest.approx(100 / 2.6 + 100 / 4.0 + 100 / 3.9)
        assert back.is_arbitrage

        # Betfair EPL lay at 10% commission: no back/lay arbitrage
        assert len(result.back_lay) == 3
        assert not any(c.is_arbitrage for c in result.back_lay)

        assert len(webhook_posts) == 1

        out = capsys.readouterr().out
        assert "BACK-ONLY MARKETS" in out
        assert "BACK/LAY PAIRS" in out
        assert "paddypower" in out

    def test_configured_sports_skip_listing(self, settings, odds_data, now):
        settings.odds_api.sports = ["soccer_epl"]
        paths = []

        def handler(request: httpx.Request) -> httpx.Response:
            paths.append(request.url.path)
            return httpx.Response(200, json=odds_data)

        feed = OddsAPIFeed(settings.odds_api, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        result = asyncio.run(ArbScanner(settings, feed=feed).run_once(now))

        assert paths == ["/v4/sports/soccer_epl/odds"]
        assert len(result.back) == 1

    def test_sports_listing_failure_gives_empty_scan(self, settings, now, capsys):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500)

        feed = OddsAPIFeed(settings.odds_api, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        result = asyncio.run(ArbScanner(settings, feed=feed).run_once(now))

        assert result.quote_count == 0
        assert "No back-only markets found." in capsys.readouterr().out

    def test_lay_excluded_sport(self, settings, api_handler, now):
        settings.scan.lay_excluded_sports = ["soccer_epl"]
        feed = OddsAPIFeed(settings.odds_api, client=httpx.AsyncClient(transport=httpx.MockTransport(api_handler)))

        result = asyncio.run(ArbScanner(settings, feed=feed).run_once(now))

        assert result.back_lay == []
        assert len(result.back) == 1

    def test_min_outcomes_from_settings(self, settings, api_handler, now):
        settings.scan.min_outcomes = 4
        feed = OddsAPIFeed(settings.odds_api, client=httpx.AsyncClient(transport=httpx.MockTransport(api_handler)))

        result = asyncio.run(ArbScanner(settings, feed=feed).run_once(now))

        # EPL has three outcomes
        assert result.back == []
        assert len(result.back_lay) == 3


class TestMain:
    """Tests for the entry point."""

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.setattr(main_module, "get_settings", lambda: Settings(_env_file=None))
        monkeypatch.setattr(main_module, "setup_logging", lambda *args: None)
        assert main_module.main() == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
