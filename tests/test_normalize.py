"""
Tests for value coercion, alias probing and textual classifiers.
"""
import math

import pytest

from claimsops.data.normalize import (
    age_band,
    any_flag,
    decision_reason,
    first_present,
    group_key,
    is_expense_category,
    pain_level_category,
    parse_boolean,
    parse_currency,
    parse_integer,
)


class TestParseCurrency:

    @pytest.mark.parametrize("text, expected", [
        ("$1,234.50", 1234.5),
        ("(123.45)", -123.45),
        ("$(2,000)", -2000.0),
        ('"15,000"', 15000.0),
        ("  42 ", 42.0),
        ("-7.5", -7.5),
        ("", 0.0),
        ("(blank)", 0.0),
        ("Blank", 0.0),
        ("n/a", 0.0),
        ("12abc", 0.0),
        (None, 0.0),
        (float("nan"), 0.0),
        (float("inf"), 0.0),
        (250, 250.0),
    ])
    def test_values(self, text, expected):
        assert parse_currency(text) == expected

    def test_never_raises_or_returns_nan(self):
        for text in ["$", "()", "((1))", "1e400", "--5", object()]:
            value = parse_currency(text)
            assert math.isfinite(value)


class TestParseBoolean:

    @pytest.mark.parametrize("text", ["Yes", "y", "TRUE", "1", " yes "])
    def test_truthy(self, text):
        assert parse_boolean(text) is True

    @pytest.mark.parametrize("text", ["No", "", None, "0", "maybe", "Yes please"])
    def test_falsy(self, text):
        assert parse_boolean(text) is False


class TestParseInteger:

    def test_leading_digits(self):
        assert parse_integer("12.7") == 12
        assert parse_integer("1,234 days") == 1234

    def test_default(self):
        assert parse_integer("") == 0
        assert parse_integer("abc", default=-1) == -1
        assert parse_integer(None, default=5) == 5


class TestProbing:

    def test_first_present_takes_first_non_empty(self):
        row = {"Open/Closed Days": " ", "Open/Closed Days ": "91", "Days": "12"}
        assert first_present(row, ["Open/Closed Days", "Open/Closed Days ", "Days"]) == "91"

    def test_first_present_default(self):
        assert first_present({}, ["A", "B"], "0") == "0"

    def test_any_flag(self):
        row = {"FATALITY": "No", "Injury Incident - Fatality": "Yes"}
        assert any_flag(row, ["FATALITY", "Injury Incident - Fatality"])
        assert not any_flag(row, ["FATALITY"])

    def test_group_key_blank(self):
        assert group_key("  ") == "(blank)"
        assert group_key(None) == "(blank)"
        assert group_key(" LIT ") == "LIT"


class TestClassifiers:

    @pytest.mark.parametrize("days, band", [
        (0, "Under 60 Days"),
        (60, "Under 60 Days"),
        (61, "61-180 Days"),
        (180, "61-180 Days"),
        (181, "181-365 Days"),
        (365, "181-365 Days"),
        (366, "365+ Days"),
    ])
    def test_age_band_boundaries(self, days, band):
        assert age_band(days) == band

    def test_expense_category(self):
        assert is_expense_category("Expert Fees")
        assert is_expense_category("Legal Expenses - Outside Counsel")
        assert is_expense_category("peer review")
        assert not is_expense_category("Indemnity Payment")
        assert not is_expense_category("")

    def test_pain_category_and_reason(self):
        assert pain_level_category("Pending") == "Pending"
        assert pain_level_category("Blank") == "Pending"
        assert pain_level_category("5+") == "High (5+)"
        assert pain_level_category("Limits") == "High (5+)"
        assert pain_level_category("Under 5") == "Under 5"
        assert pain_level_category("3") == "3"
        assert pain_level_category("") == "Unknown"

        assert decision_reason("Pending") == "Pending pain assessment + no evaluation"
        assert decision_reason("5+ (Severe)") == "High pain level + no evaluation"
        assert decision_reason("Under 5") == "High reserves with no evaluation"
