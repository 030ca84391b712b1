"""Tests for CAS engine data models."""

from datetime import date
from decimal import Decimal

from cas_engine.models import (
    VOLATILE_META_FIELDS,
    AdditionalInfo,
    DematAccount,
    Holding,
    HoldingCategory,
    Holdings,
    Investor,
    Meta,
    MutualFundFolio,
    ParsedStatement,
    Scheme,
    Transaction,
    TransactionType,
    ValidationResult,
)


class TestInvestor:
    """Tests for Investor dataclass."""

    def test_defaults_are_empty_strings(self):
        """Test every field defaults to an empty string."""
        investor = Investor()

        assert investor.to_dict() == {
            "name": "",
            "pan": "",
            "address": "",
            "email": "",
            "mobile": "",
            "cas_id": "",
            "pincode": "",
        }
        assert investor.is_empty

    def test_investor_normalization(self):
        """Test that PAN and email are normalized."""
        investor = Investor(name="Ravi", pan="  abcde1234f  ", email="  RAVI@EXAMPLE.COM  ")

        assert investor.pan == "ABCDE1234F"
        assert investor.email == "ravi@example.com"
        assert not investor.is_empty


class TestHolding:
    """Tests for Holding dataclass."""

    def test_equity_shape(self):
        """Test equities serialize a price."""
        holding = Holding(
            isin="ine123456789",
            name="Reliance",
            category=HoldingCategory.EQUITIES,
            units=Decimal("10.00"),
            price=Decimal("2500.00"),
            value=Decimal("25000.00"),
        )

        data = holding.to_dict()

        assert data["isin"] == "INE123456789"
        assert data["price"] == 2500.0
        assert "nav" not in data
        assert "face_value" not in data

    def test_fund_shape(self):
        """Test fund buckets serialize a NAV."""
        holding = Holding(
            isin="INF179K01XX1",
            name="Flexi Cap",
            category=HoldingCategory.DEMAT_MUTUAL_FUNDS,
            price=Decimal("52.10"),
        )

        data = holding.to_dict()

        assert data["nav"] == 52.1
        assert "fund_house" in data
        assert "price" not in data

    def test_bond_shape(self):
        """Test debt buckets serialize a face value."""
        holding = Holding(
            isin="INE732E07AB1",
            name="NCD",
            category=HoldingCategory.CORPORATE_BONDS,
            additional_info={"market_price": Decimal("1000.00")},
        )

        data = holding.to_dict()

        assert data["face_value"] == 0.0
        assert data["additional_info"] == {"market_price": 1000.0}
        assert holding.unit_price == Decimal("1000.00")


class TestHoldings:
    """Tests for the five holding buckets."""

    def test_iteration_and_value(self):
        """Test iterating across buckets and summing values."""
        holdings = Holdings(
            equities=[Holding("INE123456789", "A", HoldingCategory.EQUITIES, value=Decimal("10"))],
            aifs=[Holding("INF0RQ622015", "B", HoldingCategory.AIFS, value=Decimal("5"))],
        )

        assert len(holdings) == 2
        assert [h.isin for h in holdings] == ["INE123456789", "INF0RQ622015"]
        assert holdings.value == Decimal("15")
        assert holdings.bucket(HoldingCategory.AIFS)[0].name == "B"

    def test_to_dict_has_every_bucket(self):
        """Test empty buckets are still serialized."""
        assert set(Holdings().to_dict()) == {c.value for c in HoldingCategory}


class TestDematAccount:
    """Tests for DematAccount dataclass."""

    def test_value_derived_from_holdings(self):
        """Test the account value is the sum of its holdings."""
        account = DematAccount(
            bo_id="1234567800012345",
            holdings=Holdings(
                equities=[Holding("INE123456789", "A", HoldingCategory.EQUITIES, value=Decimal("25000"))]
            ),
        )

        assert account.value == Decimal("25000")
        assert account.to_dict()["value"] == 25000.0
        assert account.to_dict()["additional_info"] == AdditionalInfo().to_dict()

    def test_additional_info_defaults(self):
        """Test account details default to active, no BSDA."""
        info = AdditionalInfo()

        assert info.status == "Active"
        assert info.bo_type is None
        assert info.bsda == "NO"


class TestTransaction:
    """Tests for Transaction dataclass."""

    def test_to_dict(self):
        """Test transaction serialization."""
        tx = Transaction(
            date=date(2024, 1, 15),
            description="Purchase",
            transaction_type=TransactionType.PURCHASE,
            amount=Decimal("1000.00"),
            units=Decimal("19.50"),
        )

        data = tx.to_dict()

        assert data["date"] == "2024-01-15"
        assert data["transaction_type"] == "purchase"
        assert data["units"] == 19.5

    def test_missing_date(self):
        """Test an unreadable date serializes as null."""
        assert Transaction(date=None, description="x").to_dict()["date"] is None


class TestMutualFundFolio:
    """Tests for folios and schemes."""

    def test_folio_value(self):
        """Test the folio value is the sum of its schemes."""
        folio = MutualFundFolio(
            folio_number="1234567/89",
            schemes=[
                Scheme(isin="INF179K01XX1", name="A", value=Decimal("100")),
                Scheme(isin="INF209K01YY3", name="B", value=Decimal("50.5")),
            ],
        )

        assert folio.value == Decimal("150.5")

    def test_scheme_additional_info(self):
        """Test scheme additional info nests ARN and investment value."""
        scheme = Scheme(isin="INF179K01XX1", name="A", arn_code="ARN-1", investment_value=Decimal("10"))

        assert scheme.to_dict()["additional_info"] == {"arn_code": "ARN-1", "investment_value": 10.0}


class TestParsedStatement:
    """Tests for ParsedStatement."""

    def test_six_top_level_keys(self):
        """Test the serialized statement has exactly six keys."""
        data = ParsedStatement().to_dict()

        assert list(data) == ["investor", "demat_accounts", "mutual_funds", "insurance", "summary", "meta"]

    def test_stable_dict_drops_volatile_fields(self):
        """Test run-dependent meta fields are removed."""
        statement = ParsedStatement(
            meta=Meta(cas_type="CDSL", generated_at="2024-02-01T10:00:00", tracking_id="X", parse_time_ms=5.0)
        )

        meta = statement.to_stable_dict()["meta"]

        assert all(key not in meta for key in VOLATILE_META_FIELDS)
        assert meta["cas_type"] == "CDSL"
        assert statement.to_dict()["meta"]["tracking_id"] == "X"

    def test_lookups(self):
        """Test finding accounts and folios by identifier."""
        statement = ParsedStatement(
            demat_accounts=[DematAccount(bo_id="111"), DematAccount(bo_id="222")],
            mutual_funds=[MutualFundFolio(folio_number="F1")],
        )

        assert statement.get_account("222").bo_id == "222"
        assert statement.get_account("333") is None
        assert statement.get_folio("F1").folio_number == "F1"
        assert statement.get_folio("F2") is None


class TestValidationResult:
    """Tests for ValidationResult dataclass."""

    def test_add_error_invalidates(self):
        """Test adding an error marks the result invalid."""
        result = ValidationResult()
        result.add_error("bad")

        assert not result.is_valid
        assert result.errors == ["bad"]

    def test_add_warning_keeps_valid(self):
        """Test warnings do not invalidate."""
        result = ValidationResult()
        result.add_warning("hmm")

        assert result.is_valid

    def test_merge(self):
        """Test merging combines findings and validity."""
        first = ValidationResult()
        first.add_warning("w")
        second = ValidationResult()
        second.add_error("e")

        first.merge(second)

        assert not first.is_valid
        assert first.errors == ["e"]
        assert first.warnings == ["w"]
