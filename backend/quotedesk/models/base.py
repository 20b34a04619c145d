"""
Base model class for all SQLAlchemy models.

WHY: Centralizing common model functionality (timestamps, ID, money type) in
one module keeps every table consistent.
"""

from datetime import datetime, timezone
from sqlalchemy import Column, Integer, DateTime, Numeric
from sqlalchemy.orm import DeclarativeBase


# Currency amounts are stored with two decimal places
Money = Numeric(12, 2)


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns (no tz)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    WHY: DeclarativeBase provides the foundation for SQLAlchemy 2.0 models
    with improved type hints and async support.
    """

    pass


class TimestampMixin:
    """
    Mixin to add created_at and updated_at timestamps to models.

    WHY: Quotation records, follow-ups and audit rows all need creation and
    modification times for the sales history.
    """

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class PrimaryKeyMixin:
    """Mixin to add an auto-incrementing integer primary key."""

    id = Column(Integer, primary_key=True, index=True)
