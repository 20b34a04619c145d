"""
Quotation numbering tests.
"""

from datetime import date

import pytest

from quotedesk.services.numbering import (
    financial_year_code,
    format_quotation_number,
    next_running_number,
    number_prefix,
    salesperson_initials,
)


class TestFinancialYearCode:
    """Tests for financial_year_code (April start by default)."""

    @pytest.mark.parametrize(
        "on, expected",
        [
            (date(2025, 4, 1), "2526"),
            (date(2025, 12, 31), "2526"),
            (date(2026, 3, 31), "2526"),
            (date(2026, 4, 1), "2627"),
            (date(1999, 6, 1), "9900"),
        ],
    )
    def test_april_start(self, on, expected):
        assert financial_year_code(on) == expected

    def test_calendar_year_start(self):
        assert financial_year_code(date(2025, 1, 15), start_month=1) == "2526"


class TestSalespersonInitials:
    """Tests for salesperson_initials."""

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("Asha Kumar", "AK"),
            ("asha k menon", "AKM"),
            ("  Ravi   Shah ", "RS"),
            ("Madonna", "M"),
            ("", "XX"),
            (None, "XX"),
        ],
    )
    def test_initials(self, name, expected):
        assert salesperson_initials(name) == expected


class TestRunningNumber:
    """Tests for the running number sequence."""

    def test_first_number(self):
        assert next_running_number(None) == 1

    def test_follows_latest(self):
        assert next_running_number("QT/2526/AK/041") == 42

    def test_malformed_latest_restarts(self):
        assert next_running_number("QT/2526/AK/draft") == 1

    def test_full_number(self):
        prefix = number_prefix("2526", "AK")

        assert prefix == "QT/2526/AK/"
        assert format_quotation_number(prefix, 7) == "QT/2526/AK/007"
        assert format_quotation_number(prefix, 1234) == "QT/2526/AK/1234"
