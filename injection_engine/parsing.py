"""
Value parsing for extracted line fields.

Extracted quantities, prices and dates arrive as free text in mixed
European / ISO notation. These helpers turn them into Decimal / date values
or None when the text cannot be read.
"""

import re
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Optional, Union


_CURRENCY_CHARS = re.compile(r"[€$£\s]|EUR|USD", re.IGNORECASE)

DATE_FORMATS = [
    "%Y-%m-%d",
    "%d-%m-%Y",
    "%d/%m/%Y",
    "%Y/%m/%d",
    "%d.%m.%Y",
    "%Y%m%d",
]

MKG_DATE_FORMAT = "%Y-%m-%d"


def parse_decimal(value: Union[str, int, float, Decimal, None]) -> Optional[Decimal]:
    """
    Parse a number written as "1.234,50", "€ 12,5", "$3.00" or "7".

    Args:
        value: Raw extracted value

    Returns:
        Decimal, or None if absent or unparseable
    """
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))

    text = _CURRENCY_CHARS.sub("", str(value))
    if not text:
        return None

    # Both separators present: the last one is the decimal separator
    if "," in text and "." in text:
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    else:
        text = text.replace(",", ".")

    try:
        number = Decimal(text)
    except InvalidOperation:
        return None
    if not number.is_finite():
        return None
    return number


def is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def parse_date(value: Union[str, date, None]) -> Optional[date]:
    """
    Parse a delivery/quote date.

    Handles:
    - ISO format: 2025-11-15 (also with a time part)
    - European formats: 15-11-2025, 15/11/2025, 15.11.2025
    - Compact: 20251115

    Returns:
        date, or None if absent or unparseable
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None

    iso_match = re.match(r"(\d{4})-(\d{2})-(\d{2})", text)
    if iso_match:
        try:
            return date(int(iso_match.group(1)), int(iso_match.group(2)), int(iso_match.group(3)))
        except ValueError:
            return None

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def format_mkg_date(value: date) -> str:
    """Dates are sent to MKG as YYYY-MM-DD."""
    return value.strftime(MKG_DATE_FORMAT)


def mkg_date_or_default(value: Optional[str], today: date, default_days: int) -> str:
    """Normalize an extracted date, or fall back to today + default_days."""
    parsed = parse_date(value)
    if parsed is None:
        parsed = today + timedelta(days=default_days)
    return format_mkg_date(parsed)


def to_float(value: Optional[str], default: float = 0.0) -> float:
    """Parsed number as float for the MKG wire format."""
    number = parse_decimal(value)
    return float(number) if number is not None else default
