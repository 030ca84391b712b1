"""Tests for CAS validation module."""

from decimal import Decimal

import pytest

from cas_engine.formatter import calculate_summary
from cas_engine.models import (
    DematAccount,
    Holding,
    HoldingCategory,
    Holdings,
    Investor,
    MutualFundFolio,
    ParsedStatement,
    Scheme,
)
from cas_engine.validator import (
    CASValidator,
    validate_cas,
    validate_holding_value,
    validate_isin,
    validate_pan,
)


def make_holding(isin="INE123456789", category=HoldingCategory.EQUITIES, **kwargs):
    values = dict(units=Decimal("10"), price=Decimal("2500"), value=Decimal("25000"))
    values.update(kwargs)
    return Holding(isin=isin, name="Reliance Industries", category=category, **values)


def make_statement(holdings=None, folios=None, investor=None):
    account = DematAccount(dp_id="12345678", bo_id="1234567800012345", holdings=holdings or Holdings())
    statement = ParsedStatement(
        investor=investor or Investor(name="Ravi", pan="ABCDE1234F"),
        demat_accounts=[account],
        mutual_funds=folios or [],
    )
    statement.summary = calculate_summary(statement)
    return statement


class TestFormatValidators:
    """Tests for ISIN and PAN format checks."""

    @pytest.mark.parametrize("isin", ["INE123456789", "INF179K01XX1", "IN0020230012", "US0378331005"])
    def test_valid_isin(self, isin):
        """Test well-formed ISINs."""
        assert validate_isin(isin)

    @pytest.mark.parametrize("isin", ["", "INE12345678", "INE1234567890", "ine123456789", "INE12345678X"])
    def test_invalid_isin(self, isin):
        """Test malformed ISINs."""
        assert not validate_isin(isin)

    def test_pan(self):
        """Test PAN format validation."""
        assert validate_pan("ABCDE1234F")
        assert not validate_pan("ABCD1234F")
        assert not validate_pan("")


class TestHoldingValue:
    """Tests for units x price checks."""

    def test_within_tolerance(self):
        """Test a value within 1% passes."""
        assert validate_holding_value(make_holding(value=Decimal("25200")))

    def test_outside_tolerance(self):
        """Test a value more than 1% off fails."""
        assert not validate_holding_value(make_holding(value=Decimal("30000")))

    def test_market_price_used_when_price_missing(self):
        """Test debt holdings are checked against their market price."""
        bond = make_holding(
            category=HoldingCategory.CORPORATE_BONDS,
            price=Decimal("0"),
            value=Decimal("5000"),
            additional_info={"market_price": Decimal("1000")},
        )
        assert not validate_holding_value(bond)

    def test_cannot_validate_without_price(self):
        """Test missing prices are not flagged."""
        assert validate_holding_value(make_holding(price=Decimal("0")))


class TestCASValidator:
    """Tests for CASValidator."""

    def test_clean_statement(self):
        """Test a consistent statement has no findings."""
        holdings = Holdings(equities=[make_holding()])
        result = validate_cas(make_statement(holdings))

        assert result.is_valid
        assert result.errors == []
        assert result.warnings == []

    def test_invalid_pan_is_error(self):
        """Test a malformed PAN is an error."""
        result = validate_cas(make_statement(investor=Investor(name="Ravi", pan="BAD")))

        assert not result.is_valid
        assert any("Invalid PAN" in e for e in result.errors)

    def test_invalid_isin_is_warning(self):
        """Test a malformed ISIN is only a warning."""
        holdings = Holdings(equities=[make_holding(isin="BAD")])
        result = validate_cas(make_statement(holdings))

        assert result.is_valid
        assert any("Invalid ISIN" in w for w in result.warnings)

    def test_isin_in_two_buckets_is_error(self):
        """Test the same ISIN in two buckets of one account is an error."""
        holdings = Holdings(
            equities=[make_holding()],
            corporate_bonds=[make_holding(category=HoldingCategory.CORPORATE_BONDS)],
        )
        result = validate_cas(make_statement(holdings))

        assert not result.is_valid
        assert any("appears in both equities and corporate_bonds" in e for e in result.errors)

    def test_value_mismatch_is_warning(self):
        """Test units x price far from value is a warning."""
        holdings = Holdings(equities=[make_holding(value=Decimal("30000"))])
        result = validate_cas(make_statement(holdings))

        assert result.is_valid
        assert any("Value mismatch" in w for w in result.warnings)

    def test_empty_folio_is_warning(self):
        """Test a folio without schemes is a warning."""
        result = validate_cas(make_statement(folios=[MutualFundFolio(folio_number="123")]))

        assert any("Folio 123 has no schemes" in w for w in result.warnings)

    def test_summary_mismatch_is_error(self):
        """Test a summary that disagrees with the leaves is an error."""
        statement = make_statement(Holdings(equities=[make_holding()]))
        statement.summary.total_value = Decimal("1.00")

        result = CASValidator().validate(statement)

        assert not result.is_valid
        assert any("Summary grand total" in e for e in result.errors)

    def test_stale_category_total_is_error(self):
        """Test a category total that disagrees with its bucket is an error."""
        statement = make_statement(Holdings(equities=[make_holding()]))
        statement.demat_accounts[0].holdings.equities.append(
            make_holding(isin="INE040A01034", value=Decimal("25000"))
        )

        result = CASValidator().validate(statement)

        assert any("Summary equities total" in e for e in result.errors)

    def test_minimal_data_warning(self):
        """Test an empty statement gets the minimal data warning."""
        result = validate_cas(ParsedStatement())

        assert result.is_valid
        assert any("Minimal data" in w for w in result.warnings)

    def test_scheme_isin_checked(self):
        """Test scheme ISINs are format-checked too."""
        folio = MutualFundFolio(folio_number="1", schemes=[Scheme(isin="INF12", name="X")])
        result = validate_cas(make_statement(folios=[folio]))

        assert any("Invalid ISIN format: INF12" in w for w in result.warnings)
