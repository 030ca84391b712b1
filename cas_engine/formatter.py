"""
Output formatting for parsed CAS data.

Dialect parsers return loose dictionaries of strings. The formatter walks
that structure and coerces every leaf through one of three total functions
(``clean_string``, ``parse_number``, ``parse_date``), fills absent parts
with empty defaults and recomputes the summary from the coerced values.
None of the coercions raise.
"""

import logging
import math
import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Mapping, Optional

from dateutil import parser as date_parser

from cas_engine.categorizer import scheme_type_for
from cas_engine.models import (
    ZERO,
    AccountSummary,
    AdditionalInfo,
    DematAccount,
    Dialect,
    Holding,
    HoldingCategory,
    Holdings,
    Insurance,
    InsurancePolicy,
    Investor,
    Meta,
    MutualFundFolio,
    ParsedStatement,
    Scheme,
    SchemeType,
    StatementPeriod,
    Summary,
    Transaction,
    TransactionType,
    ValidationResult,
)

logger = logging.getLogger(__name__)

PARSER_VERSION = "2.0.0"

REQUIRED_KEYS = ("investor", "demat_accounts", "mutual_funds", "insurance", "summary", "meta")

DATE_FORMATS = (
    "%d-%b-%Y",
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%Y-%m-%d",
    "%d-%B-%Y",
    "%d %b %Y",
    "%d.%m.%Y",
)

CENT = Decimal("0.01")
CURRENCY_RE = re.compile(r"(?:Rs\.?|INR|₹)", re.IGNORECASE)
LEADING_NUMBER_RE = re.compile(r"^-?(?:\d+(?:\.\d*)?|\.\d+)")
YEAR_RE = re.compile(r"\d{4}")


def clean_string(value: Any) -> str:
    """Trim and collapse whitespace; anything that is not a string becomes ""."""
    if not isinstance(value, str):
        return ""
    return " ".join(value.split())


def _to_cents(number: Decimal) -> Decimal:
    """Round to paise; values past the context precision become 0.00."""
    try:
        return number.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return ZERO


def parse_number(value: Any) -> Decimal:
    """
    Coerce a value to a Decimal rounded to two places.

    Thousands separators, currency markers and other stray characters are
    dropped; a parenthesized amount is negative. Anything that cannot be read
    as a number becomes 0.00.
    """
    if isinstance(value, bool):
        return ZERO
    if isinstance(value, (int, float, Decimal)):
        if isinstance(value, float) and not math.isfinite(value):
            return ZERO
        try:
            number = Decimal(str(value))
        except InvalidOperation:
            return ZERO
        if not number.is_finite():
            return ZERO
        return _to_cents(number)
    if not isinstance(value, str):
        return ZERO

    text = value.strip()
    negative = text.startswith("(") and text.endswith(")")
    text = CURRENCY_RE.sub("", text)
    text = re.sub(r"[^0-9.\-]", "", text)
    match = LEADING_NUMBER_RE.match(text)
    if not match:
        return ZERO
    try:
        number = Decimal(match.group(0).rstrip("."))
    except InvalidOperation:
        return ZERO
    if negative and number > 0:
        number = -number
    return _to_cents(number)


def parse_date(value: Any) -> Optional[date]:
    """
    Coerce a value to a date.

    Known statement formats are tried first; free-form text is handed to
    dateutil (day first) only when it carries a four-digit year. Anything
    unreadable becomes None.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    if not YEAR_RE.search(text):
        return None
    try:
        return date_parser.parse(text, dayfirst=True, default=datetime(2000, 1, 1)).date()
    except (ValueError, OverflowError) as e:
        logger.debug(f"Unreadable date '{text}': {e}")
        return None


def iso_or_empty(value: Any) -> str:
    parsed = parse_date(value)
    return parsed.isoformat() if parsed else ""


def _pick(data: Mapping, *keys: str) -> Any:
    """First value among ``keys`` that is present and not empty."""
    for key in keys:
        value = data.get(key)
        if value is not None and value != "":
            return value
    return None


def _mapping(value: Any) -> Mapping:
    return value if isinstance(value, Mapping) else {}


def _sequence(value: Any) -> List:
    return list(value) if isinstance(value, (list, tuple)) else []


class OutputFormatter:
    """
    Turns raw dialect-parser output into a ``ParsedStatement``.

    The result is structurally complete whatever the input held: missing
    sections become empty lists or default objects.
    """

    def format(self, raw: Mapping) -> ParsedStatement:
        """
        Format raw parser output.

        Args:
            raw: Dictionary with any of investor, demat_accounts,
                mutual_funds, insurance and meta. A summary in the input is
                ignored.

        Returns:
            Fully typed ParsedStatement with a recomputed summary.
        """
        raw = _mapping(raw)
        statement = ParsedStatement(
            investor=self.format_investor(raw.get("investor")),
            demat_accounts=[self.format_account(a) for a in _sequence(raw.get("demat_accounts"))],
            mutual_funds=[self.format_folio(f) for f in _sequence(raw.get("mutual_funds"))],
            insurance=self.format_insurance(raw.get("insurance")),
            meta=self.format_meta(raw.get("meta")),
        )
        statement.summary = calculate_summary(statement)
        logger.info(
            f"Formatted statement: {len(statement.demat_accounts)} demat accounts, "
            f"{len(statement.mutual_funds)} folios, total value {statement.summary.total_value}"
        )
        return statement

    def format_investor(self, data: Any) -> Investor:
        data = _mapping(data)
        return Investor(
            name=clean_string(data.get("name")),
            pan=clean_string(data.get("pan")),
            address=clean_string(data.get("address")),
            email=clean_string(data.get("email")),
            mobile=clean_string(data.get("mobile")),
            cas_id=clean_string(data.get("cas_id")),
            pincode=clean_string(data.get("pincode")),
        )

    def format_account(self, data: Any) -> DematAccount:
        data = _mapping(data)
        return DematAccount(
            dp_id=clean_string(data.get("dp_id")),
            dp_name=clean_string(data.get("dp_name")),
            bo_id=clean_string(data.get("bo_id")),
            client_id=clean_string(data.get("client_id")),
            demat_type=(clean_string(data.get("demat_type")) or "cdsl").lower(),
            holdings=self.format_holdings(data.get("holdings")),
            additional_info=self.format_additional_info(data.get("additional_info")),
        )

    def format_additional_info(self, data: Any) -> AdditionalInfo:
        data = _mapping(data)
        bo_type = clean_string(data.get("bo_type"))
        return AdditionalInfo(
            status=clean_string(data.get("status")) or "Active",
            bo_type=bo_type or None,
            bo_sub_status=clean_string(data.get("bo_sub_status")),
            bsda=clean_string(data.get("bsda")).upper() or "NO",
            nominee=clean_string(data.get("nominee")),
            email=clean_string(data.get("email")).lower(),
            mobile=clean_string(data.get("mobile")),
        )

    def format_holdings(self, data: Any) -> Holdings:
        data = _mapping(data)
        holdings = Holdings()
        for category in HoldingCategory:
            bucket = holdings.bucket(category)
            for row in _sequence(data.get(category.value)):
                bucket.append(self.format_holding(row, category))
        return holdings

    def format_holding(self, data: Any, category: HoldingCategory) -> Holding:
        data = _mapping(data)
        extra = {
            key: parse_number(value)
            for key, value in _mapping(data.get("additional_info")).items()
            if value is not None
        }
        if category in (HoldingCategory.DEMAT_MUTUAL_FUNDS, HoldingCategory.AIFS):
            price = _pick(data, "nav", "price", "market_price")
        else:
            price = _pick(data, "price", "market_price")
        return Holding(
            isin=clean_string(data.get("isin")),
            name=clean_string(_pick(data, "name", "company_name", "scheme_name")),
            category=category,
            units=parse_number(_pick(data, "units", "quantity")),
            value=parse_number(data.get("value")),
            price=parse_number(price),
            face_value=parse_number(data.get("face_value")),
            symbol=clean_string(data.get("symbol")),
            fund_house=clean_string(data.get("fund_house")),
            additional_info=extra,
        )

    def format_folio(self, data: Any) -> MutualFundFolio:
        data = _mapping(data)
        return MutualFundFolio(
            amc=clean_string(data.get("amc")),
            folio_number=clean_string(data.get("folio_number")),
            registrar=clean_string(data.get("registrar")),
            schemes=[self.format_scheme(s) for s in _sequence(data.get("schemes"))],
        )

    def format_scheme(self, data: Any) -> Scheme:
        data = _mapping(data)
        name = clean_string(_pick(data, "name", "scheme_name"))
        info = _mapping(data.get("additional_info"))
        arn_code = clean_string(info.get("arn_code"))
        return Scheme(
            isin=clean_string(data.get("isin")),
            name=name,
            units=parse_number(data.get("units")),
            nav=parse_number(data.get("nav")),
            value=parse_number(data.get("value")),
            closing_balance=parse_number(_pick(data, "closing_balance", "units")),
            scheme_type=self._scheme_type(data.get("scheme_type"), name),
            transactions=[self.format_transaction(t) for t in _sequence(data.get("transactions"))],
            arn_code=arn_code or None,
            investment_value=parse_number(info.get("investment_value")),
        )

    @staticmethod
    def _scheme_type(value: Any, name: str) -> SchemeType:
        try:
            return SchemeType(clean_string(value).lower())
        except ValueError:
            return scheme_type_for(name)

    def format_transaction(self, data: Any) -> Transaction:
        data = _mapping(data)
        try:
            tx_type = TransactionType(clean_string(data.get("transaction_type")).lower())
        except ValueError:
            tx_type = TransactionType.UNKNOWN
        return Transaction(
            date=parse_date(data.get("date")),
            description=clean_string(data.get("description")),
            transaction_type=tx_type,
            amount=parse_number(data.get("amount")),
            units=parse_number(data.get("units")),
            nav=parse_number(data.get("nav")),
            balance_units=parse_number(data.get("balance_units")),
        )

    def format_insurance(self, data: Any) -> Insurance:
        data = _mapping(data)
        return Insurance(
            life_insurance_policies=[
                self.format_policy(p) for p in _sequence(data.get("life_insurance_policies"))
            ],
        )

    def format_policy(self, data: Any) -> InsurancePolicy:
        data = _mapping(data)
        policy_type = clean_string(data.get("policy_type")).lower()
        return InsurancePolicy(
            policy_number=clean_string(data.get("policy_number")),
            policy_name=clean_string(data.get("policy_name")),
            insurer=clean_string(data.get("insurer")),
            policy_type=policy_type if policy_type in ("life", "health") else "life",
            sum_assured=parse_number(data.get("sum_assured")),
            premium=parse_number(data.get("premium")),
            policy_status=clean_string(data.get("policy_status")),
            start_date=parse_date(data.get("start_date")),
            maturity_date=parse_date(data.get("maturity_date")),
            value=parse_number(data.get("value")),
        )

    def format_meta(self, data: Any) -> Meta:
        data = _mapping(data)
        period = _mapping(data.get("statement_period"))
        cas_type = clean_string(data.get("cas_type")).upper()
        if cas_type not in {d.value for d in Dialect}:
            cas_type = Dialect.UNKNOWN.value
        file_size = data.get("file_size")
        parse_time = data.get("parse_time_ms")
        return Meta(
            cas_type=cas_type,
            generated_at=clean_string(data.get("generated_at"))
            or datetime.now().isoformat(timespec="seconds"),
            statement_period=StatementPeriod(
                from_date=iso_or_empty(period.get("from")),
                to_date=iso_or_empty(period.get("to")),
            ),
            parser_version=clean_string(data.get("parser_version")) or PARSER_VERSION,
            tracking_id=clean_string(data.get("tracking_id")),
            file_name=clean_string(data.get("file_name")),
            file_size=file_size if isinstance(file_size, int) and not isinstance(file_size, bool) else 0,
            parse_time_ms=float(parse_number(parse_time)),
        )


def _sum(values: Iterable[Decimal]) -> Decimal:
    return sum(values, ZERO)


def calculate_summary(statement: ParsedStatement) -> Summary:
    """
    Recompute every aggregate from the statement's leaf values.

    Args:
        statement: A formatted statement.

    Returns:
        Summary whose totals are sums of holding, scheme and policy values.
    """
    categories: Dict[str, Decimal] = {c.value: ZERO for c in HoldingCategory}
    for account in statement.demat_accounts:
        for category in HoldingCategory:
            categories[category.value] += _sum(
                h.value for h in account.holdings.bucket(category)
            )

    demat = AccountSummary(
        count=len(statement.demat_accounts),
        total_value=_sum(a.value for a in statement.demat_accounts),
    )
    mutual_funds = AccountSummary(
        count=len(statement.mutual_funds),
        total_value=_sum(f.value for f in statement.mutual_funds),
    )
    insurance = AccountSummary(
        count=len(statement.insurance.life_insurance_policies),
        total_value=statement.insurance.value,
    )
    return Summary(
        demat=demat,
        mutual_funds=mutual_funds,
        insurance=insurance,
        categories=categories,
        total_value=demat.total_value + mutual_funds.total_value + insurance.total_value,
    )


def validate_format(data: Any) -> ValidationResult:
    """
    Structural check of serialized output.

    Args:
        data: Output of ``ParsedStatement.to_dict()`` (or anything claiming
            to be).

    Returns:
        ValidationResult listing missing keys and wrong container types.
    """
    result = ValidationResult()
    if not isinstance(data, Mapping):
        result.add_error("Formatted data must be an object")
        return result

    for key in REQUIRED_KEYS:
        if key not in data:
            result.add_error(f"Missing required property: {key}")

    for key in ("demat_accounts", "mutual_funds"):
        if key in data and not isinstance(data[key], list):
            result.add_error(f"{key} must be an array")
    for key in ("investor", "insurance", "summary", "meta"):
        if key in data and not isinstance(data[key], Mapping):
            result.add_error(f"{key} must be an object")

    summary = data.get("summary")
    if isinstance(summary, Mapping):
        total = summary.get("total_value")
        if isinstance(total, bool) or not isinstance(total, (int, float)):
            result.add_warning("summary.total_value should be a number")
    return result
