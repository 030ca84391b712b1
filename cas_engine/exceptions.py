"""
Exceptions raised by the CAS parsing engine.

Every fatal condition surfaces as a subclass of CASParseError carrying an
actionable message and a stable error code. Field-level misses never raise;
they degrade to empty values inside the dialect parsers.
"""

from enum import Enum
from typing import Iterable


class ExtractionFailure(Enum):
    """Reasons a PDF could not be turned into usable text."""
    NOT_FOUND = "not_found"
    EMPTY = "empty"
    TOO_LARGE = "too_large"
    WRONG_PASSWORD = "wrong_password"
    PASSWORD_REQUIRED = "password_required"
    CORRUPTED = "corrupted"
    TOO_SHORT = "too_short"


class CASParseError(Exception):
    """Base exception for all engine failures."""

    def __init__(self, message: str, error_code: str = "PARSING_FAILED"):
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)


class ExtractionError(CASParseError):
    """The PDF could not be read or produced unusable text."""

    def __init__(self, message: str, reason: ExtractionFailure):
        super().__init__(message, error_code=reason.name)
        self.reason = reason


class InputError(ExtractionError):
    """The input file itself is unacceptable (missing, empty, oversized)."""


class UnknownFormatError(CASParseError):
    """The text matched none of the known CAS issuer dialects."""

    def __init__(self, supported: Iterable[str] = ("CDSL", "NSDL")):
        supported_list = ", ".join(supported)
        super().__init__(
            f"Unknown CAS format. Currently supported: {supported_list}. "
            "Please check if this is a valid CAS document.",
            error_code="UNKNOWN_FORMAT",
        )


class UnsupportedFormatError(CASParseError):
    """The dialect was recognised but extraction for it is switched off."""

    def __init__(self, dialect: str, supported: Iterable[str]):
        supported_list = ", ".join(supported)
        super().__init__(
            f"Parser not yet implemented for CAS type: {dialect}. "
            f"Available parsers: {supported_list}",
            error_code="UNSUPPORTED_FORMAT",
        )
        self.dialect = dialect
