"""
Line-based reader for mutual fund folios.

Walks the mutual fund part of a statement one line at a time, keeping the
current AMC, folio and scheme as context. It understands two layouts:

- depository tables, one scheme per row: ``ISIN name units nav value``
- registrar statements, where a scheme header
  (``CODE-Name - ISIN: INF...``) is followed by dated transaction lines and a
  ``Closing Unit Balance`` line.

Output is raw dictionaries of strings, formatted later.
"""

import logging
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from cas_engine.categorizer import scheme_type_for
from cas_engine.formatter import parse_number
from cas_engine.models import TransactionType
from cas_engine.patterns import ISIN, NUM

logger = logging.getLogger(__name__)

RawDict = Dict[str, Any]


# Registrar description keywords; the first match wins, so specific entries come
# first. SIP and STP descriptions also contain "Purchase" or "Switch".
TRANSACTION_KEYWORDS: Tuple[Tuple[TransactionType, str], ...] = (
    (TransactionType.SIP, r"systematic\s*investment|\bSIP\b"),
    (TransactionType.STP_IN, r"\bSTP\s*-?\s*in\b"),
    (TransactionType.STP_OUT, r"\bSTP\s*-?\s*out\b"),
    (TransactionType.SWITCH_IN, r"switch(?:ed)?\s*-?\s*in\b|switch\s+from"),
    (TransactionType.SWITCH_OUT, r"switch(?:ed)?\s*-?\s*out\b|switch\s+to"),
    (TransactionType.DIVIDEND_REINVESTMENT, r"(?:dividend|idcw|div\.)\s*reinv"),
    (TransactionType.DIVIDEND_PAYOUT, r"(?:dividend|idcw|div\.)\s*pay"),
    (TransactionType.STT, r"\bSTT\b"),
    (TransactionType.STAMP_DUTY, r"stamp\s*duty"),
    (TransactionType.CHARGES, r"exit\s*load|\bcharges?\b"),
    (TransactionType.SEGREGATED_PORTFOLIO, r"segregat"),
    (TransactionType.BONUS, r"\bbonus\b"),
    (TransactionType.TRANSFER_IN, r"transfer\s*-?\s*in\b|transmission"),
    (TransactionType.TRANSFER_OUT, r"transfer\s*-?\s*out\b"),
    (TransactionType.REDEMPTION, r"redemption|redeem"),
    (TransactionType.PURCHASE, r"purchase|subscription"),
)


class TransactionTypeDetector:
    """Maps a registrar transaction description to a TransactionType."""

    def __init__(self, keywords: Tuple[Tuple[TransactionType, str], ...] = TRANSACTION_KEYWORDS):
        self._patterns = [
            (tx_type, re.compile(pattern, re.IGNORECASE)) for tx_type, pattern in keywords
        ]

    def detect(self, description: str, units: Decimal) -> TransactionType:
        """First keyword match wins; otherwise the sign of the units decides."""
        for tx_type, pattern in self._patterns:
            if pattern.search(description):
                return tx_type
        if units < 0:
            return TransactionType.REDEMPTION
        if units > 0:
            return TransactionType.PURCHASE
        return TransactionType.UNKNOWN


@dataclass
class FolioContext:
    """Where the reader currently is in the mutual fund section."""
    amc: str = ""
    folio: Optional[RawDict] = None
    scheme: Optional[RawDict] = None


class FolioReader:
    """
    Reads mutual fund folios from statement lines.

    Each ``read`` call starts from a fresh context, so one reader can be used
    for several documents.
    """

    AMC_PATTERN = re.compile(r"^([A-Za-z][A-Za-z&.\s]*?(?:Mutual\s+Fund|MF))\s*$", re.IGNORECASE)
    FOLIO_PATTERN = re.compile(
        r"Folio\s*(?:No\.?|Number)\s*:?\s*([A-Z0-9][A-Z0-9/ ]*?)(?=\s+(?:KYC|PAN|Registrar)\b|\s*$)",
        re.IGNORECASE,
    )
    REGISTRAR_PATTERN = re.compile(r"Registrar\s*:\s*(\w+)", re.IGNORECASE)
    ARN_PATTERN = re.compile(r"\b(ARN-\d+)\b", re.IGNORECASE)
    SCHEME_HEADER_PATTERN = re.compile(
        r"^(?:(?P<code>[A-Z0-9]{2,10})-)?(?P<name>.+?)[\s-]*ISIN\s*:\s*(?P<isin>INF[A-Z0-9]{9})"
    )
    SCHEME_ROW_PATTERN = re.compile(
        rf"^(?P<isin>{ISIN})\s+(?P<name>.+?)\s+(?P<units>{NUM})\s+(?P<nav>{NUM})\s+(?P<value>{NUM})\s*$"
    )
    DATE_PATTERN = re.compile(r"^(\d{2}-[A-Za-z]{3}-\d{4})")
    CLOSING_PATTERN = re.compile(
        rf"Closing\s*Unit\s*Balance\s*:\s*({NUM})\s*"
        rf"NAV\s*on\s*(\d{{2}}-[A-Za-z]{{3}}-\d{{4}})\s*:\s*INR\s*({NUM})"
        rf"(?:.*?(?:Cost\s*Value|Total\s*Cost)\s*:\s*(?:INR\s*)?({NUM}))?"
        rf".*?Market\s*Value.*?:\s*INR\s*({NUM})",
        re.IGNORECASE,
    )
    FINANCIAL_NUMBER = re.compile(r"^\(?-?\d[\d,]*\.\d+\)?$")

    def __init__(self):
        self.context = FolioContext()
        self.type_detector = TransactionTypeDetector()
        self.folios: List[RawDict] = []

    def read(self, text: str) -> List[RawDict]:
        """
        Read every folio in the text.

        Args:
            text: Mutual fund part of a normalized statement.

        Returns:
            Raw folio dictionaries that hold at least one scheme.
        """
        self.context = FolioContext()
        self.folios = []

        for line in text.split("\n"):
            line = line.strip()
            if line:
                self._read_line(line)

        folios = [f for f in self.folios if f["schemes"]]
        dropped = len(self.folios) - len(folios)
        if dropped:
            logger.debug(f"Dropped {dropped} folios without schemes")
        logger.info(
            f"Read {len(folios)} folios with "
            f"{sum(len(f['schemes']) for f in folios)} schemes"
        )
        return folios

    def _read_line(self, line: str) -> None:
        amc_match = self.AMC_PATTERN.match(line)
        if amc_match:
            self.context.amc = " ".join(amc_match.group(1).split())
            self.context.folio = None
            self.context.scheme = None
            logger.debug(f"Found AMC: {self.context.amc}")
            return

        folio_match = self.FOLIO_PATTERN.search(line)
        if folio_match:
            self._start_folio(folio_match.group(1).replace(" ", ""))
            self._read_registrar(line)
            return

        row_match = self.SCHEME_ROW_PATTERN.match(line)
        if row_match:
            self._add_scheme_row(row_match)
            return

        header_match = self.SCHEME_HEADER_PATTERN.match(line)
        if header_match:
            self._start_scheme(header_match, line)
            self._read_registrar(line)
            return

        if self._read_registrar(line):
            return

        closing_match = self.CLOSING_PATTERN.search(line)
        if closing_match:
            self._close_scheme(closing_match)
            return

        if self.DATE_PATTERN.match(line) and self.context.scheme is not None:
            transaction = self.parse_transaction_line(line)
            if transaction:
                self.context.scheme["transactions"].append(transaction)

    def _start_folio(self, folio_number: str) -> None:
        current = self.context.folio
        if current is not None and current["folio_number"] == folio_number:
            return
        self.context.folio = {
            "amc": self.context.amc,
            "folio_number": folio_number,
            "registrar": "",
            "schemes": [],
        }
        self.context.scheme = None
        self.folios.append(self.context.folio)
        logger.debug(f"Found Folio: {folio_number}")

    def _current_folio(self) -> RawDict:
        if self.context.folio is None:
            self._start_folio("")
        return self.context.folio

    def _read_registrar(self, line: str) -> bool:
        match = self.REGISTRAR_PATTERN.search(line)
        if not match:
            return False
        self._current_folio()["registrar"] = match.group(1).upper()
        return True

    @staticmethod
    def _new_scheme(isin: str, name: str) -> RawDict:
        return {
            "isin": isin,
            "name": name,
            "units": "",
            "nav": "",
            "value": "",
            "closing_balance": "",
            "scheme_type": scheme_type_for(name).value,
            "transactions": [],
            "additional_info": {"arn_code": None, "investment_value": ""},
        }

    def _add_scheme_row(self, match: re.Match) -> None:
        name = " ".join(match.group("name").split())
        scheme = self._new_scheme(match.group("isin"), name)
        scheme.update(
            units=match.group("units"),
            nav=match.group("nav"),
            value=match.group("value"),
            closing_balance=match.group("units"),
        )
        self._current_folio()["schemes"].append(scheme)
        self.context.scheme = scheme

    def _start_scheme(self, match: re.Match, line: str) -> None:
        name = match.group("name")
        name = re.sub(r"\(\s*Advisor\s*:.*?\)", "", name, flags=re.IGNORECASE)
        name = re.sub(r"[\s\-]+$", "", " ".join(name.split()))
        scheme = self._new_scheme(match.group("isin"), name)
        arn = self.ARN_PATTERN.search(line)
        if arn:
            scheme["additional_info"]["arn_code"] = arn.group(1).upper()
        self._current_folio()["schemes"].append(scheme)
        self.context.scheme = scheme
        logger.debug(f"Found scheme {scheme['isin']}: {name}")

    def _close_scheme(self, match: re.Match) -> None:
        scheme = self.context.scheme
        if scheme is None:
            logger.warning("Closing balance line outside of a scheme; skipped")
            return
        scheme.update(
            units=match.group(1),
            closing_balance=match.group(1),
            nav=match.group(3),
            value=match.group(5),
        )
        if match.group(4):
            scheme["additional_info"]["investment_value"] = match.group(4)

    def parse_transaction_line(self, line: str) -> Optional[RawDict]:
        """
        Parse a dated transaction line.

        Examples::

            01-Jan-2024 Purchase 9,999.50 198.442 50.3900 198.442
            01-Jan-2024 *** Stamp Duty *** 0.50

        Args:
            line: Line starting with a DD-Mon-YYYY date.

        Returns:
            Raw transaction dictionary, or None when the line has too few
            numeric columns.
        """
        date_match = self.DATE_PATTERN.match(line)
        if not date_match:
            return None
        tx_date = date_match.group(1)
        rest = line[date_match.end():].strip()

        if "***" in rest:
            special = re.search(r"\*\*\*\s*(.+?)\s*\*\*\*\s*([\d,.()-]+)?", rest)
            if not special:
                return None
            description = special.group(1).strip()
            tx_type = self.type_detector.detect(description, Decimal("0"))
            if tx_type in (TransactionType.UNKNOWN, TransactionType.PURCHASE, TransactionType.REDEMPTION):
                tx_type = TransactionType.CHARGES
            return {
                "date": tx_date,
                "description": description,
                "transaction_type": tx_type.value,
                "amount": special.group(2) or "0",
                "units": "0",
                "nav": "0",
                "balance_units": "0",
            }

        description_parts = []
        number_parts = []
        for part in rest.split():
            # Integers such as reference numbers belong to the description
            if self.FINANCIAL_NUMBER.match(part):
                number_parts.append(part)
            else:
                description_parts.append(part)

        if len(number_parts) < 3:
            return None

        units = number_parts[1]
        description = " ".join(description_parts)
        tx_type = self.type_detector.detect(description, parse_number(units))
        return {
            "date": tx_date,
            "description": description,
            "transaction_type": tx_type.value,
            "amount": number_parts[0],
            "units": units,
            "nav": number_parts[2],
            "balance_units": number_parts[3] if len(number_parts) > 3 else "0",
        }


def read_folios(text: str) -> List[RawDict]:
    """
    Convenience function to read mutual fund folios from text.

    Args:
        text: Mutual fund part of a normalized statement.

    Returns:
        Raw folio dictionaries.
    """
    return FolioReader().read(text)
