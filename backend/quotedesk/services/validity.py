"""
Quotation validity.

WHAT: Derives a quotation's validity state (valid, due, overdue, expired)
from its date, its validity window and the current date.

WHY: The state is never stored. Computing it on every read means it
cannot go stale, and a quotation silently crossing its expiry date needs
no job to flip a flag.

HOW:
    expiry    = quotation_date + validity_days
    remaining = (expiry - today).days

    expired  remaining < 0
    overdue  0 <= remaining <= overdue_within_days
    due      overdue_within_days < remaining <= due_within_days
    valid    otherwise

The thresholds come from ValidityPolicy (configured through settings).
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional, Union

from quotedesk.core.config import settings


DateLike = Union[date, datetime]


class ValidityState(str, Enum):
    """
    Validity state of a quotation.

    EXPIRED is terminal for the record: the only way forward is a reissue,
    which creates a new quotation with a fresh window.
    """

    VALID = "valid"
    DUE = "due"
    OVERDUE = "overdue"
    EXPIRED = "expired"


@dataclass(frozen=True)
class ValidityPolicy:
    """
    Thresholds for the due/overdue states, in whole days before expiry.

    Attributes:
        due_within_days: Remaining days at or below which a quotation is due
        overdue_within_days: Remaining days at or below which it is overdue
    """

    due_within_days: int = 2
    overdue_within_days: int = 0

    def __post_init__(self) -> None:
        if self.overdue_within_days < 0:
            raise ValueError("overdue_within_days must not be negative")
        if self.due_within_days < self.overdue_within_days:
            raise ValueError("due_within_days must be >= overdue_within_days")

    @classmethod
    def from_settings(cls) -> "ValidityPolicy":
        """Policy configured through VALIDITY_* settings."""
        return cls(
            due_within_days=settings.VALIDITY_DUE_WITHIN_DAYS,
            overdue_within_days=settings.VALIDITY_OVERDUE_WITHIN_DAYS,
        )


@dataclass(frozen=True)
class ValidityInfo:
    """Expiry date, remaining days and derived state of a quotation."""

    expiry_date: date
    remaining_days: int
    state: ValidityState


def _as_date(value: DateLike) -> date:
    # datetime is a date subclass; drop the time part
    if isinstance(value, datetime):
        return value.date()
    return value


def expiry_date(quotation_date: DateLike, validity_days: Optional[int]) -> date:
    """Last day of the validity window."""
    return _as_date(quotation_date) + timedelta(days=int(validity_days or 0))


def remaining_days(
    quotation_date: DateLike,
    validity_days: Optional[int],
    now: Optional[DateLike] = None,
) -> int:
    """Whole days from `now` (default today) until expiry; negative once expired."""
    today = _as_date(now) if now is not None else date.today()
    return (expiry_date(quotation_date, validity_days) - today).days


def derive_validity_state(
    quotation_date: DateLike,
    validity_days: Optional[int],
    now: Optional[DateLike] = None,
    policy: Optional[ValidityPolicy] = None,
) -> ValidityState:
    """
    Derive the validity state of a quotation.

    Args:
        quotation_date: Issue date
        validity_days: Validity window in days
        now: Reference date (default today)
        policy: Thresholds (default from settings)

    Returns:
        ValidityState
    """
    policy = policy or ValidityPolicy.from_settings()
    remaining = remaining_days(quotation_date, validity_days, now)

    if remaining < 0:
        return ValidityState.EXPIRED
    if remaining <= policy.overdue_within_days:
        return ValidityState.OVERDUE
    if remaining <= policy.due_within_days:
        return ValidityState.DUE
    return ValidityState.VALID


def describe_validity(
    quotation_date: DateLike,
    validity_days: Optional[int],
    now: Optional[DateLike] = None,
    policy: Optional[ValidityPolicy] = None,
) -> ValidityInfo:
    """Expiry, remaining days and state in one value, for read models."""
    return ValidityInfo(
        expiry_date=expiry_date(quotation_date, validity_days),
        remaining_days=remaining_days(quotation_date, validity_days, now),
        state=derive_validity_state(quotation_date, validity_days, now, policy),
    )


def is_expired(
    quotation_date: DateLike,
    validity_days: Optional[int],
    now: Optional[DateLike] = None,
) -> bool:
    """True once the validity window has fully elapsed."""
    return remaining_days(quotation_date, validity_days, now) < 0
