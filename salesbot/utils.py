"""Shared utilities used across the sales agent."""

import math
import re
from datetime import datetime
from typing import Any, Optional
from zoneinfo import ZoneInfo

PH_MOBILE_RE = re.compile(r"^(?:\+?63|0)9\d{9}$")
# Thousands separated by commas, then an optional fraction that is dropped.
AMOUNT_RE = re.compile(r"\d[\d,]*(?:\.\d*)?")


def to_int(value: Any) -> int:
    """Read a peso/mileage figure from a sheet cell.

    Currency marks and separators are ignored and centavos are truncated.

    Examples:
        >>> to_int("₱550,000.00")
        550000
        >>> to_int(95000.5)
        95000
        >>> to_int(None)
        0
    """
    if isinstance(value, (int, float)):
        return int(value)
    match = AMOUNT_RE.search(str(value or ""))
    if not match:
        return 0
    whole = match.group(0).split(".")[0].replace(",", "")
    return int(whole) if whole else 0


def normalize_ph_mobile(value: str) -> Optional[str]:
    """Validate a Philippine mobile number and return it in +63 form.

    Returns None when the value is not a PH mobile number.

    Examples:
        >>> normalize_ph_mobile("0917 123 4567")
        '+639171234567'
        >>> normalize_ph_mobile("+639171234567")
        '+639171234567'
    """
    cleaned = re.sub(r"[^\d+]", "", value or "")
    if not PH_MOBILE_RE.match(cleaned):
        return None
    if cleaned.startswith("+"):
        return cleaned
    if cleaned.startswith("0"):
        return "+63" + cleaned[1:]
    return "+" + cleaned


def peso(amount: int) -> str:
    """Format an amount as pesos with thousands separators."""
    return f"₱{amount:,}"


def round_up(amount: int, step: int) -> int:
    """Round an amount up to the nearest multiple of step."""
    return int(math.ceil(amount / step)) * step


def local_hour(now: float, timezone: str) -> int:
    """Hour of day (0-23) for an epoch timestamp in the given IANA timezone."""
    return datetime.fromtimestamp(now, tz=ZoneInfo(timezone)).hour
