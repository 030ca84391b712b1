"""
Data models for the CAS parsing engine.

This module defines the core data structures using dataclasses for:
- Investor identity
- Demat accounts and their categorized holdings
- Mutual fund folios, schemes and transactions
- Insurance policies
- Portfolio summary and statement metadata
- Validation results
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

ZERO = Decimal("0.00")


class Dialect(Enum):
    """Issuer formats a CAS document can be written in."""
    CDSL = "CDSL"
    NSDL = "NSDL"
    CAMS = "CAMS"
    KFINTECH = "KFINTECH"
    UNKNOWN = "UNKNOWN"


class HoldingCategory(Enum):
    """Buckets a demat holding is sorted into. Values double as JSON keys."""
    EQUITIES = "equities"
    DEMAT_MUTUAL_FUNDS = "demat_mutual_funds"
    CORPORATE_BONDS = "corporate_bonds"
    GOVERNMENT_SECURITIES = "government_securities"
    AIFS = "aifs"


class SchemeType(Enum):
    EQUITY = "equity"
    DEBT = "debt"
    HYBRID = "hybrid"


class TransactionType(Enum):
    """
    Enumeration of all possible transaction types in a CAS statement.

    These types cover standard mutual fund operations including purchases,
    redemptions, systematic investments, switches, dividends, and charges.
    """
    PURCHASE = "purchase"
    REDEMPTION = "redemption"
    SIP = "sip"
    STP_IN = "stp_in"
    STP_OUT = "stp_out"
    SWITCH_IN = "switch_in"
    SWITCH_OUT = "switch_out"
    DIVIDEND_PAYOUT = "dividend_payout"
    DIVIDEND_REINVESTMENT = "dividend_reinvestment"
    STT = "stt"
    STAMP_DUTY = "stamp_duty"
    CHARGES = "charges"
    SEGREGATED_PORTFOLIO = "segregated_portfolio"
    BONUS = "bonus"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"
    UNKNOWN = "unknown"


def _money(value: Decimal) -> float:
    """
    Serialize a two-place Decimal as a JSON number.

    Totals are summed exactly on the Decimal model and converted once, so a
    JSON total equals the sum of its JSON leaves only after rounding to two
    places (0.1 + 0.2 serializes as 0.3, not 0.30000000000000004).
    """
    return float(value)


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class Investor:
    """
    Represents investor personal information from the CAS statement.

    Every field is a string; a field the statement did not yield is "".

    Attributes:
        name: Full name of the investor
        pan: Permanent Account Number (10-character alphanumeric)
        address: Postal address
        email: Email address
        mobile: Mobile phone number
        cas_id: Statement identifier printed by the issuer
        pincode: Postal pincode taken from the address
    """
    name: str = ""
    pan: str = ""
    address: str = ""
    email: str = ""
    mobile: str = ""
    cas_id: str = ""
    pincode: str = ""

    def __post_init__(self):
        """Normalize investor data."""
        self.pan = self.pan.strip().upper() if self.pan else ""
        self.email = self.email.strip().lower() if self.email else ""

    @property
    def is_empty(self) -> bool:
        return not (self.name or self.pan)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "pan": self.pan,
            "address": self.address,
            "email": self.email,
            "mobile": self.mobile,
            "cas_id": self.cas_id,
            "pincode": self.pincode,
        }


@dataclass
class AdditionalInfo:
    """Account-level details printed next to a demat account."""
    status: str = "Active"
    bo_type: Optional[str] = None
    bo_sub_status: str = ""
    bsda: str = "NO"
    nominee: str = ""
    email: str = ""
    mobile: str = ""

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "bo_type": self.bo_type,
            "bo_sub_status": self.bo_sub_status,
            "bsda": self.bsda,
            "nominee": self.nominee,
            "email": self.email,
            "mobile": self.mobile,
        }


@dataclass
class Holding:
    """
    A single security held in a demat account.

    The JSON shape depends on the bucket the holding was sorted into:
    equities expose ``price``, fund buckets expose ``nav`` and debt buckets
    expose ``face_value``.

    Attributes:
        isin: International Securities Identification Number (12 characters)
        name: Security name as printed
        category: Bucket the holding belongs to
        units: Quantity held
        value: Market value printed for the row
        price: Market price or NAV per unit
        face_value: Face value per unit (debt instruments)
        symbol: Exchange symbol, when known
        fund_house: Fund house, when known (fund buckets)
        additional_info: Extra numeric columns (market_price, free_balance)
    """
    isin: str
    name: str
    category: HoldingCategory
    units: Decimal = ZERO
    value: Decimal = ZERO
    price: Decimal = ZERO
    face_value: Decimal = ZERO
    symbol: str = ""
    fund_house: str = ""
    additional_info: Dict[str, Decimal] = field(default_factory=dict)

    def __post_init__(self):
        self.isin = self.isin.strip().upper() if self.isin else ""

    @property
    def unit_price(self) -> Decimal:
        """Per-unit price used for units x price checks."""
        if self.price:
            return self.price
        return self.additional_info.get("market_price", ZERO)

    def to_dict(self) -> dict:
        extra = {key: _money(val) for key, val in self.additional_info.items()}
        if self.category == HoldingCategory.EQUITIES:
            return {
                "isin": self.isin,
                "name": self.name,
                "symbol": self.symbol,
                "units": _money(self.units),
                "price": _money(self.price),
                "value": _money(self.value),
                "additional_info": extra,
            }
        if self.category in (HoldingCategory.DEMAT_MUTUAL_FUNDS, HoldingCategory.AIFS):
            return {
                "isin": self.isin,
                "name": self.name,
                "units": _money(self.units),
                "nav": _money(self.price),
                "value": _money(self.value),
                "fund_house": self.fund_house,
                "additional_info": extra,
            }
        return {
            "isin": self.isin,
            "name": self.name,
            "symbol": self.symbol,
            "units": _money(self.units),
            "face_value": _money(self.face_value),
            "value": _money(self.value),
            "additional_info": extra,
        }


@dataclass
class Holdings:
    """Five parallel holding buckets of one demat account."""
    equities: List[Holding] = field(default_factory=list)
    demat_mutual_funds: List[Holding] = field(default_factory=list)
    corporate_bonds: List[Holding] = field(default_factory=list)
    government_securities: List[Holding] = field(default_factory=list)
    aifs: List[Holding] = field(default_factory=list)

    def bucket(self, category: HoldingCategory) -> List[Holding]:
        return getattr(self, category.value)

    def __iter__(self) -> Iterator[Holding]:
        for category in HoldingCategory:
            yield from self.bucket(category)

    def __len__(self) -> int:
        return sum(len(self.bucket(c)) for c in HoldingCategory)

    @property
    def value(self) -> Decimal:
        return sum((h.value for h in self), ZERO)

    def to_dict(self) -> dict:
        return {
            category.value: [h.to_dict() for h in self.bucket(category)]
            for category in HoldingCategory
        }


@dataclass
class DematAccount:
    """
    One depository account and what it holds.

    ``value`` is always derived from the holdings; it is never stored.

    Attributes:
        dp_id: Depository Participant ID
        dp_name: Depository Participant (broker) name
        bo_id: Beneficial Owner ID, the account identifier
        client_id: Client ID with the DP
        demat_type: "cdsl" or "nsdl"
        holdings: Categorized holdings
        additional_info: Account status details
    """
    dp_id: str = ""
    dp_name: str = ""
    bo_id: str = ""
    client_id: str = ""
    demat_type: str = "cdsl"
    holdings: Holdings = field(default_factory=Holdings)
    additional_info: AdditionalInfo = field(default_factory=AdditionalInfo)

    @property
    def value(self) -> Decimal:
        return self.holdings.value

    def to_dict(self) -> dict:
        return {
            "dp_id": self.dp_id,
            "dp_name": self.dp_name,
            "bo_id": self.bo_id,
            "client_id": self.client_id,
            "demat_type": self.demat_type,
            "holdings": self.holdings.to_dict(),
            "additional_info": self.additional_info.to_dict(),
            "value": _money(self.value),
        }


@dataclass
class Transaction:
    """
    Represents a single transaction in a mutual fund scheme.

    Attributes:
        date: Date of the transaction (None when unreadable)
        description: Original transaction description from the statement
        transaction_type: Categorized type of transaction
        amount: Transaction amount in INR
        units: Number of units transacted (positive for buy, negative for sell)
        nav: NAV at which the transaction was executed
        balance_units: Running balance of units after this transaction
    """
    date: Optional[date]
    description: str
    transaction_type: TransactionType = TransactionType.UNKNOWN
    amount: Decimal = ZERO
    units: Decimal = ZERO
    nav: Decimal = ZERO
    balance_units: Decimal = ZERO

    def to_dict(self) -> dict:
        return {
            "date": _iso(self.date),
            "description": self.description,
            "transaction_type": self.transaction_type.value,
            "amount": _money(self.amount),
            "units": _money(self.units),
            "nav": _money(self.nav),
            "balance_units": _money(self.balance_units),
        }


@dataclass
class Scheme:
    """A mutual fund scheme held under a folio."""
    isin: str
    name: str
    units: Decimal = ZERO
    nav: Decimal = ZERO
    value: Decimal = ZERO
    closing_balance: Decimal = ZERO
    scheme_type: SchemeType = SchemeType.EQUITY
    transactions: List[Transaction] = field(default_factory=list)
    arn_code: Optional[str] = None
    investment_value: Decimal = ZERO

    def to_dict(self) -> dict:
        return {
            "isin": self.isin,
            "name": self.name,
            "units": _money(self.units),
            "nav": _money(self.nav),
            "value": _money(self.value),
            "closing_balance": _money(self.closing_balance),
            "scheme_type": self.scheme_type.value,
            "transactions": [t.to_dict() for t in self.transactions],
            "additional_info": {
                "arn_code": self.arn_code,
                "investment_value": _money(self.investment_value),
            },
        }


@dataclass
class MutualFundFolio:
    """
    A folio held with one asset management company.

    Attributes:
        amc: Asset Management Company name
        folio_number: Folio number
        registrar: Registrar and Transfer Agent (e.g., CAMS, KFintech)
        schemes: Schemes held in the folio
    """
    amc: str = ""
    folio_number: str = ""
    registrar: str = ""
    schemes: List[Scheme] = field(default_factory=list)

    @property
    def value(self) -> Decimal:
        return sum((s.value for s in self.schemes), ZERO)

    def to_dict(self) -> dict:
        return {
            "amc": self.amc,
            "folio_number": self.folio_number,
            "registrar": self.registrar,
            "schemes": [s.to_dict() for s in self.schemes],
            "value": _money(self.value),
        }


@dataclass
class InsurancePolicy:
    """A life or health insurance policy listed in the statement."""
    policy_number: str = ""
    policy_name: str = ""
    insurer: str = ""
    policy_type: str = "life"
    sum_assured: Decimal = ZERO
    premium: Decimal = ZERO
    policy_status: str = ""
    start_date: Optional[date] = None
    maturity_date: Optional[date] = None
    value: Decimal = ZERO

    def to_dict(self) -> dict:
        return {
            "policy_number": self.policy_number,
            "policy_name": self.policy_name,
            "insurer": self.insurer,
            "policy_type": self.policy_type,
            "sum_assured": _money(self.sum_assured),
            "premium": _money(self.premium),
            "policy_status": self.policy_status,
            "start_date": _iso(self.start_date),
            "maturity_date": _iso(self.maturity_date),
            "value": _money(self.value),
        }


@dataclass
class Insurance:
    life_insurance_policies: List[InsurancePolicy] = field(default_factory=list)

    @property
    def value(self) -> Decimal:
        return sum((p.value for p in self.life_insurance_policies), ZERO)

    def to_dict(self) -> dict:
        return {
            "life_insurance_policies": [p.to_dict() for p in self.life_insurance_policies],
        }


@dataclass
class AccountSummary:
    count: int = 0
    total_value: Decimal = ZERO

    def to_dict(self) -> dict:
        return {"count": self.count, "total_value": _money(self.total_value)}


@dataclass
class Summary:
    """
    Aggregate counts and values, always recomputed from the statement.

    Attributes:
        demat: Demat account count and value
        mutual_funds: Folio count and value
        insurance: Policy count and value
        categories: Demat value per holding bucket
        total_value: Grand total across all account classes
    """
    demat: AccountSummary = field(default_factory=AccountSummary)
    mutual_funds: AccountSummary = field(default_factory=AccountSummary)
    insurance: AccountSummary = field(default_factory=AccountSummary)
    categories: Dict[str, Decimal] = field(
        default_factory=lambda: {c.value: ZERO for c in HoldingCategory}
    )
    total_value: Decimal = ZERO

    def to_dict(self) -> dict:
        return {
            "accounts": {
                "demat": self.demat.to_dict(),
                "mutual_funds": self.mutual_funds.to_dict(),
                "insurance": self.insurance.to_dict(),
            },
            "categories": {key: _money(val) for key, val in self.categories.items()},
            "total_value": _money(self.total_value),
        }


@dataclass
class StatementPeriod:
    """ISO dates bounding the statement; "" when not printed."""
    from_date: str = ""
    to_date: str = ""

    def to_dict(self) -> dict:
        return {"from": self.from_date, "to": self.to_date}


@dataclass
class Meta:
    """
    Statement metadata.

    ``generated_at``, ``tracking_id`` and ``parse_time_ms`` change on every
    run; everything else is a pure function of the input document.
    """
    cas_type: str = Dialect.UNKNOWN.value
    generated_at: str = ""
    statement_period: StatementPeriod = field(default_factory=StatementPeriod)
    parser_version: str = ""
    tracking_id: str = ""
    file_name: str = ""
    file_size: int = 0
    parse_time_ms: float = 0.0

    def to_dict(self) -> dict:
        return {
            "cas_type": self.cas_type,
            "generated_at": self.generated_at,
            "statement_period": self.statement_period.to_dict(),
            "parser_version": self.parser_version,
            "tracking_id": self.tracking_id,
            "file_name": self.file_name,
            "file_size": self.file_size,
            "parse_time_ms": self.parse_time_ms,
        }


VOLATILE_META_FIELDS = ("generated_at", "tracking_id", "parse_time_ms")


@dataclass
class ValidationResult:
    """
    Result of validation checks on parsed CAS data.

    Attributes:
        is_valid: True if all critical validations pass
        errors: List of critical errors that indicate parsing failures
        warnings: List of non-critical issues that should be reviewed
    """
    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_error(self, message: str) -> None:
        """Add a critical error and mark result as invalid."""
        self.errors.append(message)
        self.is_valid = False

    def add_warning(self, message: str) -> None:
        """Add a non-critical warning."""
        self.warnings.append(message)

    def merge(self, other: "ValidationResult") -> None:
        """Merge another validation result into this one."""
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        if not other.is_valid:
            self.is_valid = False


@dataclass
class ParsedStatement:
    """
    Complete parsed CAS statement.

    This is the top-level container for everything recovered from one
    document. ``validation`` travels with the object but is not part of the
    serialized output.

    Attributes:
        investor: Investor identity
        demat_accounts: Demat accounts in document order
        mutual_funds: Mutual fund folios in document order
        insurance: Insurance policies
        summary: Recomputed totals
        meta: Statement metadata
        validation: Results of content validation
    """
    investor: Investor = field(default_factory=Investor)
    demat_accounts: List[DematAccount] = field(default_factory=list)
    mutual_funds: List[MutualFundFolio] = field(default_factory=list)
    insurance: Insurance = field(default_factory=Insurance)
    summary: Summary = field(default_factory=Summary)
    meta: Meta = field(default_factory=Meta)
    validation: ValidationResult = field(default_factory=ValidationResult)

    def get_account(self, bo_id: str) -> Optional[DematAccount]:
        """Get the demat account with the given BO ID."""
        for account in self.demat_accounts:
            if account.bo_id == bo_id:
                return account
        return None

    def get_folio(self, folio_number: str) -> Optional[MutualFundFolio]:
        """Get the mutual fund folio with the given number."""
        for folio in self.mutual_funds:
            if folio.folio_number == folio_number:
                return folio
        return None

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the statement to a dictionary for JSON serialization.

        Returns:
            Dictionary with exactly the keys investor, demat_accounts,
            mutual_funds, insurance, summary and meta.
        """
        return {
            "investor": self.investor.to_dict(),
            "demat_accounts": [a.to_dict() for a in self.demat_accounts],
            "mutual_funds": [f.to_dict() for f in self.mutual_funds],
            "insurance": self.insurance.to_dict(),
            "summary": self.summary.to_dict(),
            "meta": self.meta.to_dict(),
        }

    def to_stable_dict(self) -> Dict[str, Any]:
        """Serialized form with the run-dependent meta fields removed."""
        data = self.to_dict()
        for key in VOLATILE_META_FIELDS:
            data["meta"].pop(key, None)
        return data
