"""Small text, date and rounding helpers shared by the signal generators."""

from __future__ import annotations

import math
import re
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

_SENTENCE_SPLIT = re.compile(r"[.!?。\n]+")


def truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def split_sentences(text: str) -> List[str]:
    return [part.strip() for part in _SENTENCE_SPLIT.split(text or "") if part.strip()]


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round like a person would: 2.5 -> 3, 0.125 -> 0.13 at two digits."""
    # Beyond 1e15 a float has no fractional digits left to round.
    if not math.isfinite(value) or abs(value) >= 1e15:
        return value
    quantum = Decimal(1).scaleb(-ndigits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def round_int(value: float) -> int:
    return int(round_half_up(value))


def parse_day(value: str) -> Optional[date]:
    """Calendar day from ``YYYY-MM-DD`` or an ISO timestamp; ``None`` if malformed."""
    if not value or len(value) < 10:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def parse_timestamp(value: str) -> Optional[datetime]:
    """Timezone-aware datetime from ISO text; date-only values become midnight UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        day = parse_day(value)
        if day is None:
            return None
        parsed = datetime(day.year, day.month, day.day)
    try:
        return as_utc(parsed)
    except OverflowError:
        return None


def as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def month_key(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def shift_months(day: date, months: int) -> date:
    """Move ``day`` by whole calendar months, clamping to the month's last day."""
    index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    for candidate in (day.day, 30, 29, 28):
        try:
            return date(year, month, min(day.day, candidate))
        except ValueError:
            continue
    return date(year, month, 28)


def format_number(value: float) -> str:
    """``75.0`` -> ``"75"``, ``62.5`` -> ``"62.5"``."""
    return f"{value:g}"


__all__ = [
    "as_utc",
    "format_number",
    "month_key",
    "parse_day",
    "parse_timestamp",
    "round_half_up",
    "round_int",
    "shift_months",
    "split_sentences",
    "truncate",
]
