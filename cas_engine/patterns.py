"""
Regex vocabulary for each CAS dialect.

All dialects share one extraction algorithm; what differs between them is
collected here as a ``DialectPatterns`` table: investor field alternatives,
account section markers, holding row shapes and section boundaries.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Pattern, Tuple

from cas_engine.models import Dialect

ISIN = r"[A-Z]{2}[A-Z0-9]{9}\d"
NUM = r"-?\d[\d,]*(?:\.\d+)?"
PAN = r"[A-Z]{5}[0-9]{4}[A-Z]"
DATE = r"\d{2}[-/](?:\d{2}|[A-Za-z]{3})[-/]\d{4}"

PAN_RE = re.compile(rf"^{PAN}$")
ISIN_RE = re.compile(rf"^{ISIN}$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PINCODE_RE = re.compile(r"(?<!\d)(\d{6})(?!\d)")

IGNORE = re.IGNORECASE
LINES = re.MULTILINE


class SectionStyle(Enum):
    """How a dialect lays out its demat accounts."""
    DP_SECTIONS = "dp_sections"
    ACCOUNT_ANCHORS = "account_anchors"
    NONE = "none"


def _compile(*patterns: str, flags: int = IGNORE | LINES) -> Tuple[Pattern, ...]:
    return tuple(re.compile(p, flags) for p in patterns)


@dataclass(frozen=True)
class DialectPatterns:
    """
    Per-dialect pattern table consumed by ``DialectParser``.

    Each ``*_patterns`` tuple is an ordered list of alternatives: the first
    one that matches and passes the field check wins.
    """
    dialect: Dialect
    depository: str
    section_style: SectionStyle

    # Investor identity
    name_patterns: Tuple[Pattern, ...]
    pan_patterns: Tuple[Pattern, ...]
    address_patterns: Tuple[Pattern, ...]
    email_patterns: Tuple[Pattern, ...]
    mobile_patterns: Tuple[Pattern, ...]
    cas_id_patterns: Tuple[Pattern, ...]

    # Account sectioning
    account_section: Optional[Pattern] = None
    section_required: Tuple[str, ...] = ()
    section_excluded: Tuple[str, ...] = ()
    min_section_length: int = 100
    anchor_window: int = 500
    dp_name_patterns: Tuple[Pattern, ...] = ()
    dp_id_patterns: Tuple[Pattern, ...] = ()
    client_id_patterns: Tuple[Pattern, ...] = ()
    additional_info_patterns: Dict[str, Tuple[Pattern, ...]] = field(default_factory=dict)
    bo_id_pattern: Optional[Pattern] = None

    # Holdings
    holding_row: Optional[Pattern] = None
    no_holdings_markers: Tuple[str, ...] = ()
    holdings_required_markers: Tuple[str, ...] = ()

    # Mutual funds held outside demat; None means the whole text
    mf_section_start: Optional[Pattern] = None


COMMON_NAME = _compile(
    r"^[ \t]*(?:Investor[ \t]+|Client[ \t]+|Account[ \t]+Holder[ \t]+)?Name[ \t]*:[ \t]*"
    r"([A-Za-z][A-Za-z. ]*?)[ \t]*(?:\bPAN\b|\bFolio\b|$)",
    r"^[ \t]*Account[ \t]+Holder[ \t]*:[ \t]*([A-Za-z][A-Za-z. ]*?)[ \t]*(?:\bPAN\b|$)",
)
CDSL_NAME = COMMON_NAME + _compile(
    r"^[ \t]*([A-Z][A-Za-z. ]+?)[ \t]+(?:S/O|D/O|W/O|S O|D O|W O)\b",
)
COMMON_PAN = _compile(
    rf"\bPAN\s*:?\s*({PAN})",
    rf"Permanent\s+Account\s+Number\s*:?\s*({PAN})",
)
NSDL_PAN = COMMON_PAN + _compile(
    rf"Tax\s+ID\s*:?\s*({PAN})",
) + _compile(rf"\b({PAN})\b", flags=0)
COMMON_ADDRESS = _compile(
    r"(?:^|\n)[ \t]*(?:Correspondence[ \t]+|Registered[ \t]+)?Address[ \t]*:?[ \t]*"
    r"(.+?)(?=\bE-?mail\b|\bMobile\b|\bPhone\b|\bPAN\b|\bFolio\b|\n\n|\Z)",
    flags=IGNORE | re.DOTALL,
)
COMMON_EMAIL = _compile(
    r"\bE-?mail\s*(?:Id)?\s*:?\s*(\S+@\S+)",
    r"([a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,})",
)
COMMON_MOBILE = _compile(
    r"\bMobile\s*(?:No\.?)?\s*:?\s*\+?([0-9X]{10,})",
    r"\bPhone\s*:?\s*\+?([0-9X]{10,})",
    r"\bContact\s*:?\s*\+?([0-9X]{10,})",
)
COMMON_CAS_ID = _compile(
    r"\bCAS\s*ID\s*:?\s*([A-Z0-9]{4,})",
    r"\bStatement\s+(?:ID|No\.?)\s*:?\s*([A-Z0-9]{4,})",
)

PERIOD_PATTERNS = _compile(
    rf"Statement\s+Period\s*:?\s*({DATE})\s*to\s*({DATE})",
    rf"for\s+the\s+period\s+from\s+({DATE})\s+to\s+({DATE})",
    rf"\bFrom\s*:?\s*({DATE})\s*To\s*:?\s*({DATE})",
    rf"\bPeriod\s*:?\s*({DATE})\s*to\s*({DATE})",
    rf"({DATE})\s+To\s+({DATE})",
)

INSURANCE_SECTION = re.compile(
    r"INSURANCE\s+POLICIES.*?(?=MUTUAL\s+FUND|DP\s+Name\s*:|\Z)", IGNORE | re.DOTALL
)
POLICY_START = re.compile(r"Policy\s*(?:No\.?|Number)\s*:?\s*([A-Z0-9/-]+)", IGNORE)
POLICY_FIELDS: Dict[str, Tuple[Pattern, ...]] = {
    "policy_name": _compile(
        r"(?:Policy|Plan)\s+Name\s*:\s*([^\n]+?)[ \t]*$",
    ),
    "insurer": _compile(
        r"(?:Insurer|Insurance\s+Company)\s*:\s*([^\n]+?)[ \t]*$",
    ),
    "sum_assured": _compile(
        rf"Sum\s+(?:Assured|Insured)\s*:?\s*(?:Rs\.?|INR|₹)?\s*({NUM})",
    ),
    "premium": _compile(
        rf"Premium(?:\s+Amount)?\s*:?\s*(?:Rs\.?|INR|₹)?\s*({NUM})",
    ),
    "policy_status": _compile(
        r"(?:Policy\s+)?Status\s*:\s*([A-Za-z ]+?)[ \t]*$",
    ),
    "start_date": _compile(
        rf"(?:Start|Commencement|Issue)\s+Date\s*:?\s*({DATE})",
    ),
    "maturity_date": _compile(
        rf"Maturity\s+Date\s*:?\s*({DATE})",
    ),
    "value": _compile(
        rf"(?:Fund|Surrender|Current)\s+Value\s*:?\s*(?:Rs\.?|INR|₹)?\s*({NUM})",
    ),
}
HEALTH_POLICY_HINTS = ("health", "mediclaim", "medical")


CDSL_PATTERNS = DialectPatterns(
    dialect=Dialect.CDSL,
    depository="cdsl",
    section_style=SectionStyle.DP_SECTIONS,
    name_patterns=CDSL_NAME,
    pan_patterns=COMMON_PAN,
    address_patterns=COMMON_ADDRESS,
    email_patterns=COMMON_EMAIL,
    mobile_patterns=COMMON_MOBILE,
    cas_id_patterns=COMMON_CAS_ID,
    account_section=re.compile(
        r"DP\s+Name\s*:.*?(?=DP\s+Name\s*:|MF\s+Folios|MUTUAL\s+FUND\s+UNITS\s+HELD|\Z)",
        IGNORE | re.DOTALL,
    ),
    section_required=("DP ID", "CLIENT ID"),
    section_excluded=("STATEMENT OF TRANSACTIONS",),
    dp_name_patterns=_compile(
        r"DP\s+Name\s*:\s*([^\n]+?)(?=\s+DP\s+ID\b|\s+CLIENT\s+ID\b|[ \t]*$)",
    ),
    dp_id_patterns=_compile(r"DP\s+ID\s*:?\s*(\d+)"),
    client_id_patterns=_compile(r"CLIENT\s+ID\s*:?\s*(\d+)"),
    additional_info_patterns={
        "status": _compile(r"(?<!Sub )\bStatus\s*:\s*([A-Za-z]+)"),
        "bo_type": _compile(r"\bBO\s+Type\s*:\s*([A-Za-z]+)"),
        "bo_sub_status": _compile(r"\bBO\s+Sub\s+Status\s*:\s*([A-Za-z]+)"),
        "bsda": _compile(r"\bBSDA\s*:?\s*(Yes|No)\b"),
        "nominee": _compile(r"\bNominee(?:\s+Name)?\s*:\s*([^\n]+?)[ \t]*$"),
        "email": COMMON_EMAIL[:1],
        "mobile": COMMON_MOBILE[:1],
    },
    bo_id_pattern=re.compile(r"BO\s+ID\s*:?\s*(\d+)", IGNORE),
    holding_row=re.compile(
        rf"\b(?P<isin>{ISIN})\s+(?P<name>[^\n]+?)\s+(?P<units>{NUM})\s+"
        rf"(?:(?:--|{NUM})\s+){{3}}"
        rf"(?P<free_balance>{NUM})\s+(?P<price>{NUM})\s+(?P<value>{NUM})(?!\S)"
    ),
    no_holdings_markers=("No Holdings", "Nil Holding", "Nil Balance"),
    holdings_required_markers=("HOLDING STATEMENT", "Portfolio Value"),
    mf_section_start=re.compile(r"MUTUAL\s+FUND\s+UNITS\s+HELD", IGNORE),
)


NSDL_PATTERNS = DialectPatterns(
    dialect=Dialect.NSDL,
    depository="nsdl",
    section_style=SectionStyle.ACCOUNT_ANCHORS,
    name_patterns=COMMON_NAME,
    pan_patterns=NSDL_PAN,
    address_patterns=COMMON_ADDRESS,
    email_patterns=COMMON_EMAIL,
    mobile_patterns=COMMON_MOBILE,
    cas_id_patterns=COMMON_CAS_ID,
    account_section=re.compile(r"\b(IN\d{14})\b"),
    dp_name_patterns=_compile(
        r"DP\s+Name\s*:?\s*([^\n]+?)(?=\s+DP\s+ID\b|\s+Client\s+ID\b|[ \t]*$)",
        r"Depository\s+Participant\s*:?\s*([^\n]+?)[ \t]*$",
        r"\bDP\s*:\s*([^\n]+?)[ \t]*$",
        r"\bBroker\s*:?\s*([^\n]+?)[ \t]*$",
    ),
    additional_info_patterns={
        "status": _compile(r"(?<!Sub )\bStatus\s*:\s*([A-Za-z]+)"),
        "email": COMMON_EMAIL[:1],
    },
    holding_row=re.compile(
        rf"\b(?P<isin>{ISIN})\s+(?P<name>[^\n]+?)\s+(?P<units>{NUM})\s+"
        rf"(?P<price>{NUM})\s+(?P<value>{NUM})(?!\S)"
    ),
    no_holdings_markers=("No Holdings", "Nil Balance"),
    mf_section_start=re.compile(r"Mutual\s+Fund\s+(?:Statement|Units\s+Held)", IGNORE),
)


CAMS_PATTERNS = DialectPatterns(
    dialect=Dialect.CAMS,
    depository="",
    section_style=SectionStyle.NONE,
    name_patterns=COMMON_NAME,
    pan_patterns=COMMON_PAN,
    address_patterns=COMMON_ADDRESS,
    email_patterns=COMMON_EMAIL,
    mobile_patterns=COMMON_MOBILE,
    cas_id_patterns=COMMON_CAS_ID,
)

KFINTECH_PATTERNS = DialectPatterns(
    dialect=Dialect.KFINTECH,
    depository="",
    section_style=SectionStyle.NONE,
    name_patterns=COMMON_NAME,
    pan_patterns=COMMON_PAN,
    address_patterns=COMMON_ADDRESS,
    email_patterns=COMMON_EMAIL,
    mobile_patterns=COMMON_MOBILE,
    cas_id_patterns=COMMON_CAS_ID,
)


PATTERN_TABLES: Dict[Dialect, DialectPatterns] = {
    Dialect.CDSL: CDSL_PATTERNS,
    Dialect.NSDL: NSDL_PATTERNS,
    Dialect.CAMS: CAMS_PATTERNS,
    Dialect.KFINTECH: KFINTECH_PATTERNS,
}
