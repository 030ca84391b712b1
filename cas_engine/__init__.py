"""
Consolidated Account Statement (CAS) PDF parsing engine.

Turns CDSL and NSDL CAS PDFs (and, with reduced extraction, CAMS and
KFintech statements) into one normalized structure: investor identity,
demat accounts with categorized holdings, mutual fund folios, insurance
policies, a recomputed summary and statement metadata.
"""

from cas_engine.exceptions import (
    CASParseError,
    ExtractionError,
    ExtractionFailure,
    InputError,
    UnknownFormatError,
    UnsupportedFormatError,
)
from cas_engine.models import (
    Dialect,
    HoldingCategory,
    Investor,
    Holding,
    DematAccount,
    MutualFundFolio,
    Scheme,
    Transaction,
    TransactionType,
    ParsedStatement,
    ValidationResult,
)
from cas_engine.main import CASParser, parse_cas_file

__version__ = "2.0.0"
__all__ = [
    "CASParseError",
    "ExtractionError",
    "ExtractionFailure",
    "InputError",
    "UnknownFormatError",
    "UnsupportedFormatError",
    "Dialect",
    "HoldingCategory",
    "Investor",
    "Holding",
    "DematAccount",
    "MutualFundFolio",
    "Scheme",
    "Transaction",
    "TransactionType",
    "ParsedStatement",
    "ValidationResult",
    "CASParser",
    "parse_cas_file",
]
