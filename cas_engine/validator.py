"""
Validation module for the CAS parsing engine.

This module implements content checks on a formatted ``ParsedStatement``.
Validation never raises; every finding lands in a ``ValidationResult`` as an
error (the data is inconsistent) or a warning (the data looks suspicious).
"""

import logging
from decimal import Decimal
from typing import Dict

from cas_engine.formatter import calculate_summary
from cas_engine.models import (
    DematAccount,
    Holding,
    HoldingCategory,
    Investor,
    MutualFundFolio,
    ParsedStatement,
    Summary,
    ValidationResult,
)
from cas_engine.patterns import ISIN_RE, PAN_RE

logger = logging.getLogger(__name__)

# Validation constants
VALUE_TOLERANCE = Decimal("0.01")  # 1% tolerance for units x price
TOTAL_TOLERANCE = Decimal("0.01")  # absolute tolerance for summary totals


class CASValidator:
    """
    Validator for parsed CAS statements.

    Implements these rules:
    - Format validation (PAN, ISIN patterns)
    - Bucket exclusivity (an ISIN sits in one bucket per account)
    - Value calculations (units x price ~ value)
    - Summary consistency (totals equal the sums of leaf values)
    - Empty folios and near-empty statements
    """

    def __init__(
        self,
        value_tolerance: Decimal = VALUE_TOLERANCE,
        total_tolerance: Decimal = TOTAL_TOLERANCE,
    ):
        """
        Initialize the validator.

        Args:
            value_tolerance: Relative tolerance for value calculations (0.01 = 1%).
            total_tolerance: Absolute tolerance for summary totals.
        """
        self.value_tolerance = value_tolerance
        self.total_tolerance = total_tolerance

    def validate(self, statement: ParsedStatement) -> ValidationResult:
        """
        Perform complete validation of a parsed statement.

        Args:
            statement: Formatted statement to validate.

        Returns:
            ValidationResult with errors and warnings.
        """
        result = ValidationResult()

        logger.info("Starting CAS validation")

        result.merge(self.validate_investor(statement.investor))

        for account in statement.demat_accounts:
            result.merge(self.validate_account(account))

        for folio in statement.mutual_funds:
            result.merge(self.validate_folio(folio))

        result.merge(self.validate_summary(statement))

        if statement.investor.is_empty and not statement.demat_accounts:
            result.add_warning(
                "Minimal data extracted: no investor name, PAN or demat accounts found"
            )

        logger.info(
            f"Validation complete: valid={result.is_valid}, "
            f"errors={len(result.errors)}, warnings={len(result.warnings)}"
        )

        return result

    def validate_investor(self, investor: Investor) -> ValidationResult:
        """Check the investor PAN and email shape; missing fields are allowed."""
        result = ValidationResult()

        if investor.pan and not validate_pan(investor.pan):
            result.add_error(f"Invalid PAN format: {investor.pan}")

        if investor.email and "@" not in investor.email:
            result.add_warning(f"Invalid email format: {investor.email}")

        return result

    def validate_account(self, account: DematAccount) -> ValidationResult:
        """
        Validate one demat account and its holdings.

        Args:
            account: Demat account to validate.

        Returns:
            ValidationResult for the account.
        """
        result = ValidationResult()
        label = account.bo_id or account.dp_id or account.dp_name

        buckets_by_isin: Dict[str, HoldingCategory] = {}
        for category in HoldingCategory:
            for holding in account.holdings.bucket(category):
                first = buckets_by_isin.setdefault(holding.isin, category)
                if first != category:
                    result.add_error(
                        f"ISIN {holding.isin} appears in both {first.value} and "
                        f"{category.value} for account {label}"
                    )
                result.merge(self.validate_holding(holding))

        return result

    def validate_holding(self, holding: Holding) -> ValidationResult:
        """
        Validate a single holding.

        Args:
            holding: Holding data to validate.

        Returns:
            ValidationResult for holding validation.
        """
        result = ValidationResult()

        if not holding.isin:
            result.add_warning(f"Missing ISIN for holding: {holding.name[:50]}")
        elif not validate_isin(holding.isin):
            result.add_warning(f"Invalid ISIN format: {holding.isin}")

        if not validate_holding_value(holding, self.value_tolerance):
            calculated = holding.units * holding.unit_price
            result.add_warning(
                f"Value mismatch for {holding.name[:30]}: "
                f"calculated={calculated:.2f}, stated={holding.value:.2f}"
            )

        return result

    def validate_folio(self, folio: MutualFundFolio) -> ValidationResult:
        result = ValidationResult()
        if not folio.schemes:
            result.add_warning(f"Folio {folio.folio_number or '?'} has no schemes")
        for scheme in folio.schemes:
            if scheme.isin and not validate_isin(scheme.isin):
                result.add_warning(f"Invalid ISIN format: {scheme.isin}")
        return result

    def validate_summary(self, statement: ParsedStatement) -> ValidationResult:
        """
        Compare the statement's summary with one recomputed from its leaves.

        Args:
            statement: Formatted statement.

        Returns:
            ValidationResult with an error per total that disagrees.
        """
        result = ValidationResult()
        expected = calculate_summary(statement)
        actual = statement.summary

        for label, stated, computed in _summary_pairs(actual, expected):
            if abs(stated - computed) > self.total_tolerance:
                result.add_error(
                    f"Summary {label} total {stated} does not match computed {computed}"
                )
        return result


def _summary_pairs(actual: Summary, expected: Summary):
    yield "demat", actual.demat.total_value, expected.demat.total_value
    yield "mutual_funds", actual.mutual_funds.total_value, expected.mutual_funds.total_value
    yield "insurance", actual.insurance.total_value, expected.insurance.total_value
    for category, computed in expected.categories.items():
        yield category, actual.categories.get(category, Decimal("0")), computed
    yield "grand", actual.total_value, expected.total_value


def validate_cas(statement: ParsedStatement) -> ValidationResult:
    """
    Convenience function to validate a parsed statement.

    Args:
        statement: Formatted statement to validate.

    Returns:
        ValidationResult with errors and warnings.
    """
    validator = CASValidator()
    return validator.validate(statement)


def validate_isin(isin: str) -> bool:
    """
    Validate an ISIN format.

    Args:
        isin: ISIN string to validate.

    Returns:
        True if valid, False otherwise.
    """
    return bool(ISIN_RE.match(isin or ""))


def validate_pan(pan: str) -> bool:
    """
    Validate a PAN format.

    Args:
        pan: PAN string to validate.

    Returns:
        True if valid, False otherwise.
    """
    return bool(PAN_RE.match(pan or ""))


def validate_holding_value(
    holding: Holding, tolerance: Decimal = VALUE_TOLERANCE
) -> bool:
    """
    Validate that holding value matches units x price.

    Args:
        holding: Holding to validate.
        tolerance: Acceptable tolerance (as decimal ratio).

    Returns:
        True if value is within tolerance, False otherwise.
    """
    price = holding.unit_price
    if holding.units <= 0 or price <= 0 or holding.value <= 0:
        return True  # Can't validate without positive values

    calculated = holding.units * price
    diff_ratio = abs(calculated - holding.value) / holding.value
    return diff_ratio <= tolerance
