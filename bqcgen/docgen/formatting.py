"""
bqcgen/docgen/formatting.py

Display formatting for amounts and dates as they appear in the note.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Union

from .record import NOT_AVAILABLE, to_number, to_text

CRORE = 10_000_000
LAKH = 100_000

DATE_INPUT_FORMATS = ("%Y-%m-%d", "%d-%m-%Y", "%d/%m/%Y", "%Y/%m/%d")
DISPLAY_DATE_FORMAT = "%d/%m/%Y"
FILENAME_DATE_FORMAT = "%d-%m-%Y"


# ---------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------
def _plain(amount: float) -> str:
    if float(amount).is_integer():
        return f"{amount:,.0f}"
    return f"{amount:,.2f}"


def format_currency(amount) -> str:
    """Rupee amount -> "Rs. X.XX Crore" / "Rs. X.XX Lacs" / "Rs. 12,345"."""
    amount = to_number(amount)
    if abs(amount) >= CRORE:
        return f"Rs. {amount / CRORE:.2f} Crore"
    if abs(amount) >= LAKH:
        return f"Rs. {amount / LAKH:.2f} Lacs"
    return f"Rs. {_plain(amount)}"


def indian_grouping(whole: int) -> str:
    """12345678 -> "1,23,45,678" (last three digits, then pairs)."""
    digits = str(abs(whole))
    if len(digits) > 3:
        head, tail = digits[:-3], digits[-3:]
        pairs = []
        while len(head) > 2:
            pairs.insert(0, head[-2:])
            head = head[:-2]
        if head:
            pairs.insert(0, head)
        digits = ",".join(pairs + [tail])
    return f"-{digits}" if whole < 0 else digits


def format_indian_rupees(amount) -> str:
    amount = to_number(amount)
    rounded = round(amount, 2)
    whole = int(rounded)
    text = indian_grouping(whole)
    paise = round(abs(rounded - whole) * 100)
    if paise:
        text = f"{text}.{paise:02d}"
    if whole == 0 and rounded < 0:
        text = f"-{text}"
    return f"₹ {text}"


def crore_to_rupees(value) -> float:
    return to_number(value) * CRORE


def format_crore(value) -> str:
    return f"Rs. {to_number(value):.2f} Crore"


def format_lakh(value) -> str:
    return f"Rs. {to_number(value):.2f} Lakh"


def format_turnover_amount(crores) -> str:
    """
    Crore with two decimals, switching to Lakh when the Crore figure would
    lose precision (below 0.01 Cr or not exact at two decimals).
    """
    value = to_number(crores)
    if value == 0:
        return format_crore(0)
    exact_at_two = abs(round(value, 2) - value) < 1e-9
    if abs(value) < 0.01 or not exact_at_two:
        return format_lakh(value * 100)
    return format_crore(value)


def format_emd(lakh) -> str:
    value = to_number(lakh)
    if value == 0:
        return "Nil"
    return f"Rs. {value:g} Lakh"


def format_units(count) -> str:
    return f"{int(round(to_number(count))):,} Units"


def format_percentage(value) -> str:
    return f"{to_number(value):g}%"


# ---------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------
def parse_date(value: Union[str, date, datetime, None]):
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = to_text(value)
    if not raw:
        return None
    # ISO timestamps from the client carry a time part.
    candidate = raw[:10] if "T" in raw else raw
    for fmt in DATE_INPUT_FORMATS:
        try:
            return datetime.strptime(candidate, fmt).date()
        except ValueError:
            continue
    return None


def format_date(value: Union[str, date, datetime, None]) -> str:
    """Any accepted input -> dd/mm/yyyy. Unparseable text is returned as-is."""
    parsed = parse_date(value)
    if parsed is not None:
        return parsed.strftime(DISPLAY_DATE_FORMAT)
    raw = to_text(value)
    return raw or NOT_AVAILABLE


def filename_date(value: Union[date, datetime]) -> str:
    return value.strftime(FILENAME_DATE_FORMAT)
