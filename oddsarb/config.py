"""
Configuration settings for the odds arbitrage scanner.
Uses pydantic-settings for validation and environment variable loading.

Nested sections are set with a double underscore, e.g.:
    ODDS_API__API_KEY=...
    ODDS_API__SPORTS='["soccer_epl","basketball_nba"]'
    COMMISSION__SPORT_RATES='{"soccer_epl": 0.10}'
    SCAN__LAY_EXCLUDED_SPORTS='["cricket_test_match"]'
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class OddsAPISettings(BaseModel):
    """The Odds API configuration."""

    api_key: str = Field(default="", description="The Odds API key")
    base_url: str = "https://api.the-odds-api.com/v4"

    regions: str = "uk"             # Comma-separated (uk, eu, us, au)
    odds_format: str = "decimal"    # decimal | american
    markets: list[str] = Field(default_factory=lambda: ["h2h", "h2h_lay"])

    # Empty = every active non-outright sport
    sports: list[str] = Field(default_factory=list)

    timeout_seconds: float = 15.0
    max_concurrent_requests: int = 4

    @field_validator("odds_format")
    @classmethod
    def _check_odds_format(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("decimal", "american"):
            raise ValueError(f"odds_format must be 'decimal' or 'american', got {v!r}")
        return v

    @field_validator("max_concurrent_requests")
    @classmethod
    def _check_concurrency(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_concurrent_requests must be >= 1")
        return v


class CommissionSettings(BaseModel):
    """
    Exchange commission on net winnings.

    Bookmakers listed in `exchanges` pay `default_rate`, or the sport's entry
    in `sport_rates` when there is one. Every other bookmaker pays nothing.
    """

    exchanges: list[str] = Field(default_factory=lambda: [
        "betfair_ex_uk",
        "betfair_ex_eu",
        "betfair_ex_au",
    ])
    default_rate: float = 0.05
    sport_rates: dict[str, float] = Field(default_factory=lambda: {
        "soccer_epl": 0.10,
    })

    @field_validator("default_rate")
    @classmethod
    def _check_default_rate(cls, v: float) -> float:
        if not 0.0 <= v < 1.0:
            raise ValueError(f"commission rate must be in [0, 1), got {v}")
        return v

    @field_validator("sport_rates")
    @classmethod
    def _check_sport_rates(cls, v: dict[str, float]) -> dict[str, float]:
        for sport, rate in v.items():
            if not 0.0 <= rate < 1.0:
                raise ValueError(f"commission rate for {sport} must be in [0, 1), got {rate}")
        return v


class ScanSettings(BaseModel):
    """Arbitrage scan settings."""

    # Sports with unreliable lay data, skipped in back/lay scans
    lay_excluded_sports: list[str] = Field(default_factory=list)

    max_bookmakers: int = 4     # Tied bookmakers reported per outcome
    total_stake: float = 100.0  # Used for stake suggestions in alerts
    max_rows: int = 25          # Rows printed per table

    # Priced outcomes an event needs before a back-only market is reported.
    # Raise to 3 to skip soccer events where no book prices the draw.
    min_outcomes: int = 2

    @field_validator("max_bookmakers", "max_rows")
    @classmethod
    def _check_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @field_validator("min_outcomes")
    @classmethod
    def _check_min_outcomes(cls, v: int) -> int:
        if v < 2:
            raise ValueError("must be >= 2")
        return v


class AlertSettings(BaseModel):
    """Discord alerting settings."""

    discord_webhook_url: str = Field(default="", description="Discord webhook URL")


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore"
    )

    # Logging
    log_level: str = "INFO"
    json_logs: bool = False

    # Sub-settings
    odds_api: OddsAPISettings = Field(default_factory=OddsAPISettings)
    commission: CommissionSettings = Field(default_factory=CommissionSettings)
    scan: ScanSettings = Field(default_factory=ScanSettings)
    alerts: AlertSettings = Field(default_factory=AlertSettings)


# Singleton instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get settings singleton."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Reload settings from environment."""
    global _settings
    _settings = Settings()
    return _settings
