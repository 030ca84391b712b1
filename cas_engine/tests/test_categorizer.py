"""Tests for holding categorization."""

import pytest

from cas_engine.categorizer import categorize_holding, scheme_type_for
from cas_engine.models import HoldingCategory, SchemeType


class TestCategorizeHolding:
    """Tests for categorize_holding."""

    @pytest.mark.parametrize(
        "isin,name,expected",
        [
            ("INE002A01018", "RELIANCE INDUSTRIES LTD", HoldingCategory.EQUITIES),
            ("INE732E07AB1", "SAMPLE FINANCE LIMITED", HoldingCategory.CORPORATE_BONDS),
            ("INE123408XY1", "XYZ LTD SR 4", HoldingCategory.CORPORATE_BONDS),
            ("INE123456789", "ABC LTD 8.5% NCD 2027", HoldingCategory.CORPORATE_BONDS),
            ("INE123456789", "ABC Infra Bonds", HoldingCategory.CORPORATE_BONDS),
            ("INF209K01YY3", "ADITYA BIRLA SL LIQUID FUND", HoldingCategory.DEMAT_MUTUAL_FUNDS),
            ("INF0RQ622015", "XYZ Alternative Investment Fund", HoldingCategory.AIFS),
            ("INF0RQ622015", "XYZ AIF Category II Fund", HoldingCategory.AIFS),
            ("IN0020230012", "GOI 7.26% 2033", HoldingCategory.GOVERNMENT_SECURITIES),
            ("IN2920230109", "TAMIL NADU SDL 2033", HoldingCategory.GOVERNMENT_SECURITIES),
        ],
    )
    def test_indian_isins(self, isin, name, expected):
        """Test ISIN prefixes decide the bucket."""
        assert categorize_holding(isin, name) == expected

    def test_foreign_isin_keyword_fallback(self):
        """Test names decide the bucket for non-Indian ISINs."""
        assert categorize_holding("US0378331005", "Treasury Note") == HoldingCategory.GOVERNMENT_SECURITIES
        assert categorize_holding("US0378331005", "Corporate Bond 2030") == HoldingCategory.CORPORATE_BONDS
        assert categorize_holding("LU0000000001", "Global Equity Fund") == HoldingCategory.DEMAT_MUTUAL_FUNDS
        assert categorize_holding("US0378331005", "APPLE INC") == HoldingCategory.EQUITIES

    def test_lowercase_isin(self):
        """Test ISIN case does not matter."""
        assert categorize_holding("inf209k01yy3", "Liquid Fund") == HoldingCategory.DEMAT_MUTUAL_FUNDS

    def test_empty_input_defaults_to_equities(self):
        """Test missing data falls back to equities."""
        assert categorize_holding("", "") == HoldingCategory.EQUITIES
        assert categorize_holding(None, None) == HoldingCategory.EQUITIES

    def test_exactly_one_bucket(self):
        """Test the result is always a single category."""
        result = categorize_holding("INE732E07AB1", "Infra Bond Fund")
        assert isinstance(result, HoldingCategory)


class TestSchemeType:
    """Tests for scheme_type_for."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("HDFC Flexi Cap Fund - Direct Growth", SchemeType.EQUITY),
            ("ICICI Prudential Liquid Fund", SchemeType.DEBT),
            ("Axis Money Market Fund", SchemeType.DEBT),
            ("SBI Corporate Bond Fund", SchemeType.DEBT),
            ("HDFC Hybrid Equity Fund", SchemeType.HYBRID),
            ("ICICI Balanced Advantage Fund", SchemeType.HYBRID),
            ("", SchemeType.EQUITY),
        ],
    )
    def test_scheme_type(self, name, expected):
        """Test scheme names map to their type."""
        assert scheme_type_for(name) == expected
