"""
Plain-text tables for scan results.
"""

from typing import Sequence

from oddsarb.models.schemas import ArbitrageCandidate

BOOKMAKER_SLOTS = 4

_COLUMNS = [
    # (header, row key, width)
    ("Event", "event", 34),
    ("Outcome", "outcome_name", 22),
    ("Side", "market_type", 7),
    ("Price", "adjusted_price", 7),
    ("Book 1", "bookmaker_1", 14),
    ("Book 2", "bookmaker_2", 14),
    ("Book 3", "bookmaker_3", 14),
    ("Book 4", "bookmaker_4", 14),
    ("Market %", "market_percentage", 9),
]


def _cell(value, width: int) -> str:
    text = str(value)
    if len(text) > width:
        text = text[:width - 1] + "…"
    return text.ljust(width)


def _format_rows(candidates: Sequence[ArbitrageCandidate], limit: int) -> list[str]:
    header = " ".join(_cell(title, width) for title, _, width in _COLUMNS)
    lines = [header, "-" * len(header)]

    for candidate in candidates[:limit]:
        for row in candidate.to_rows(slots=BOOKMAKER_SLOTS):
            row["event"] = candidate.get_display_name()
            row["adjusted_price"] = f"{row['adjusted_price']:.3f}"
            row["market_percentage"] = f"{row['market_percentage']:.2f}"
            row["market_type"] = "lay" if row["market_type"] == "h2h_lay" else "back"
            lines.append(" ".join(_cell(row[key], width) for _, key, width in _COLUMNS))

    if len(candidates) > limit:
        lines.append(f"... {len(candidates) - limit} more")
    return lines


def format_back_table(candidates: Sequence[ArbitrageCandidate], limit: int = 25) -> str:
    """Render back-only candidates, one line per outcome."""
    title = "BACK-ONLY MARKETS (best price per outcome)"
    if not candidates:
        return "\n".join([title, "No back-only markets found."])
    return "\n".join([title, *_format_rows(candidates, limit)])


def format_back_lay_table(candidates: Sequence[ArbitrageCandidate], limit: int = 25) -> str:
    """Render back/lay candidates, a back line and a lay line per outcome."""
    title = "BACK/LAY PAIRS (best back vs best lay per outcome)"
    if not candidates:
        return "\n".join([title, "No back/lay pairs found."])
    return "\n".join([title, *_format_rows(candidates, limit)])
