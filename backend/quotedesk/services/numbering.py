"""
Quotation numbering.

WHAT: Builds human-readable quotation numbers of the form
QT/<fy>/<initials>/<nnn>, e.g. QT/2526/AK/007.

WHY: Customers and sales staff refer to quotations by number, not by id.
The number encodes the financial year and the salesperson, and runs per
(year, salesperson) prefix.

HOW: Pure helpers. The running number comes from the latest number already
issued under the same prefix (read by QuotationDAO.get_latest_number).
"""

from datetime import date
from typing import Optional

from quotedesk.core.config import settings


def financial_year_code(on: date, start_month: Optional[int] = None) -> str:
    """
    Four-digit financial year code.

    Examples:
        >>> financial_year_code(date(2025, 4, 1))
        '2526'
        >>> financial_year_code(date(2026, 3, 31))
        '2526'
    """
    start_month = start_month or settings.FINANCIAL_YEAR_START_MONTH
    first_year = on.year if on.month >= start_month else on.year - 1
    return f"{first_year % 100:02d}{(first_year + 1) % 100:02d}"


def salesperson_initials(name: Optional[str]) -> str:
    """
    Upper-case initials of each word of a name ("Asha K Menon" -> "AKM").

    Blank names give "XX" so the number stays well-formed.
    """
    words = (name or "").split()
    if not words:
        return "XX"
    return "".join(word[0] for word in words).upper()


def number_prefix(fy_code: str, initials: str) -> str:
    """Prefix shared by all numbers of one salesperson in one financial year."""
    return f"{settings.QUOTATION_NUMBER_PREFIX}/{fy_code}/{initials}/"


def next_running_number(latest_number: Optional[str]) -> int:
    """
    Running number following `latest_number`.

    A missing or malformed latest number restarts the sequence at 1.
    """
    if not latest_number:
        return 1
    suffix = latest_number.rsplit("/", 1)[-1]
    return int(suffix) + 1 if suffix.isdigit() else 1


def format_quotation_number(prefix: str, running_number: int) -> str:
    """Full quotation number, running number zero-padded to 3 digits."""
    return f"{prefix}{running_number:03d}"
