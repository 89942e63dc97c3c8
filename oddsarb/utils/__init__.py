"""Utility modules."""

from oddsarb.utils.logging import setup_logging
from oddsarb.utils.alerts import DiscordAlerter, format_arbitrage_message
from oddsarb.utils.tables import format_back_table, format_back_lay_table

__all__ = [
    "setup_logging",
    "DiscordAlerter",
    "format_arbitrage_message",
    "format_back_table",
    "format_back_lay_table",
]
