"""
Shared extraction algorithm for every CAS dialect.

A ``DialectParser`` is one algorithm driven by a ``DialectPatterns`` table:

1. investor fields from ordered pattern alternatives
2. account sectioning (DP sections for CDSL, account-number anchors for NSDL)
3. per-account fields and additional info
4. BO ID correlation
5. holdings rows per account, each sorted into one bucket
6. mutual fund folios
7. insurance policies and the statement period

A parser never fails on partial data. Whatever it cannot find is left
empty; the result is raw dictionaries of strings for the formatter.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from cas_engine import matching
from cas_engine.categorizer import categorize_holding
from cas_engine.diagnostics import DiagnosticsCollector, NullDiagnostics
from cas_engine.folio_reader import FolioReader
from cas_engine.models import Dialect, HoldingCategory
from cas_engine.patterns import (
    HEALTH_POLICY_HINTS,
    INSURANCE_SECTION,
    PATTERN_TABLES,
    PERIOD_PATTERNS,
    POLICY_FIELDS,
    POLICY_START,
    DialectPatterns,
    SectionStyle,
)

logger = logging.getLogger(__name__)

RawDict = Dict[str, Any]

FUND_BUCKETS = (HoldingCategory.DEMAT_MUTUAL_FUNDS, HoldingCategory.AIFS)
DEBT_BUCKETS = (HoldingCategory.CORPORATE_BONDS, HoldingCategory.GOVERNMENT_SECURITIES)


def empty_holdings() -> Dict[str, List[RawDict]]:
    return {category.value: [] for category in HoldingCategory}


def empty_additional_info() -> RawDict:
    return {
        "status": "Active",
        "bo_type": None,
        "bo_sub_status": "",
        "bsda": "NO",
        "nominee": "",
        "email": "",
        "mobile": "",
    }


def collect_bo_ids(text: str, pattern: re.Pattern) -> List[str]:
    """Every distinct BO ID in the document, in order of first appearance."""
    seen: List[str] = []
    for match in pattern.finditer(text):
        bo_id = match.group(1)
        if bo_id not in seen:
            seen.append(bo_id)
    return seen


def assign_bo_ids(accounts: List[RawDict], bo_ids: List[str]) -> None:
    """
    Give each account a BO ID by position.

    The Nth BO ID found in the document goes to the Nth account section. An
    account past the end of the list gets ``dp_id + client_id`` when both are
    known. This is best-effort: a document that lists BO IDs in a different
    order from its DP sections will attribute holdings to the wrong account.

    Args:
        accounts: Raw accounts in section order; updated in place.
        bo_ids: Distinct BO IDs in order of first appearance.
    """
    for index, account in enumerate(accounts):
        if index < len(bo_ids):
            account["bo_id"] = bo_ids[index]
        elif account.get("dp_id") and account.get("client_id"):
            account["bo_id"] = account["dp_id"] + account["client_id"]
        else:
            account["bo_id"] = ""


def shape_holding(category: HoldingCategory, row: RawDict) -> RawDict:
    """Lay out a matched row with the keys its bucket uses."""
    extra = {"market_price": row["price"]}
    if row.get("free_balance") is not None:
        extra["free_balance"] = row["free_balance"]

    holding: RawDict = {"isin": row["isin"], "name": row["name"], "units": row["units"]}
    if category in FUND_BUCKETS:
        holding.update(nav=row["price"], fund_house="")
    elif category in DEBT_BUCKETS:
        holding.update(symbol="", face_value="")
    else:
        holding.update(symbol="", price=row["price"])
    holding["value"] = row["value"]
    holding["additional_info"] = extra
    return holding


class DialectParser:
    """
    Extracts raw statement data from normalized CAS text.

    One instance per parse; it keeps no state between calls beyond its
    pattern table and diagnostics collector.
    """

    def __init__(
        self,
        patterns: DialectPatterns,
        diagnostics: Optional[DiagnosticsCollector] = None,
    ):
        self.patterns = patterns
        self.diagnostics = diagnostics or NullDiagnostics()

    @property
    def dialect(self) -> Dialect:
        return self.patterns.dialect

    def parse(self, text: str, password: Optional[str] = None) -> RawDict:
        """
        Parse normalized statement text.

        Args:
            text: Normalized text from the extractor.
            password: Unused by the text-level parsers; accepted so every
                dialect shares one signature.

        Returns:
            Raw dictionary with investor, demat_accounts, mutual_funds,
            insurance and meta keys.
        """
        investor = self.extract_investor(text)
        accounts = self.extract_demat_accounts(text)
        mutual_funds = self.extract_mutual_funds(text)
        policies = self.extract_insurance(text)
        period = self.extract_statement_period(text)

        if not investor["name"] and not investor["pan"] and not accounts:
            logger.warning("Minimal data extracted; this might not be a complete CAS")
            self.diagnostics.warning(
                "minimal_data_extracted",
                {
                    "dialect": self.dialect.value,
                    "has_investor_name": False,
                    "has_pan": False,
                    "demat_accounts": 0,
                    "mutual_funds": len(mutual_funds),
                },
            )

        self.diagnostics.record(
            "dialect_parsed",
            {
                "dialect": self.dialect.value,
                "investor_fields": sum(1 for v in investor.values() if v),
                "demat_accounts": len(accounts),
                "mutual_funds": len(mutual_funds),
                "policies": len(policies),
            },
        )
        return {
            "investor": investor,
            "demat_accounts": accounts,
            "mutual_funds": mutual_funds,
            "insurance": {"life_insurance_policies": policies},
            "meta": {
                "cas_type": self.dialect.value,
                "statement_period": period,
            },
        }

    # Investor

    def extract_investor(self, text: str) -> RawDict:
        """
        Extract investor identity fields.

        Each field takes the first alternative that matches and passes its
        check; a miss leaves "".
        """
        p = self.patterns
        investor = {
            "name": matching.first_valid_match(text, p.name_patterns, matching.check_name, "name"),
            "pan": matching.first_valid_match(text, p.pan_patterns, matching.check_pan, "pan"),
            "address": matching.first_valid_match(
                text, p.address_patterns, matching.check_address, "address"
            ),
            "email": matching.first_valid_match(text, p.email_patterns, matching.check_email, "email"),
            "mobile": matching.first_valid_match(
                text, p.mobile_patterns, matching.check_mobile, "mobile"
            ),
            "cas_id": matching.first_valid_match(
                text, p.cas_id_patterns, matching.check_cas_id, "cas_id"
            ),
        }
        investor = {key: value or "" for key, value in investor.items()}
        investor["pincode"] = matching.pincode_from(investor["address"])
        logger.info(
            f"Investor extraction: {sum(1 for v in investor.values() if v)}/7 fields found"
        )
        return investor

    # Demat accounts

    def extract_demat_accounts(self, text: str) -> List[RawDict]:
        style = self.patterns.section_style
        if style == SectionStyle.DP_SECTIONS:
            accounts = self._accounts_from_dp_sections(text)
        elif style == SectionStyle.ACCOUNT_ANCHORS:
            accounts = self._accounts_from_anchors(text)
        else:
            accounts = []
        logger.info(f"Demat account extraction: {len(accounts)} accounts found")
        return accounts

    def split_account_sections(self, text: str) -> List[str]:
        """
        Split text into DP sections.

        A section runs from one ``DP Name:`` to the next section marker. It is
        kept only when it names both identifiers, is not a transaction
        listing and is not near-empty.
        """
        p = self.patterns
        sections = []
        for match in p.account_section.finditer(text):
            section = match.group(0)
            upper = section.upper()
            if not all(marker.upper() in upper for marker in p.section_required):
                continue
            if any(marker.upper() in upper for marker in p.section_excluded):
                continue
            if len(section.strip()) <= p.min_section_length:
                continue
            sections.append(section)
        return sections

    def _account_fields(self, section: str) -> RawDict:
        p = self.patterns
        info = empty_additional_info()
        for key, alternatives in p.additional_info_patterns.items():
            check = {
                "email": matching.check_email,
                "mobile": matching.check_mobile,
            }.get(key)
            value = matching.first_valid_match(section, alternatives, check, key)
            if value:
                info[key] = value
        return {
            "dp_id": matching.first_valid_match(section, p.dp_id_patterns, field_name="dp_id") or "",
            "dp_name": matching.first_valid_match(
                section, p.dp_name_patterns, matching.check_name, "dp_name"
            ) or "",
            "bo_id": "",
            "client_id": matching.first_valid_match(
                section, p.client_id_patterns, field_name="client_id"
            ) or "",
            "demat_type": p.depository,
            "holdings": empty_holdings(),
            "additional_info": info,
        }

    def _accounts_from_dp_sections(self, text: str) -> List[RawDict]:
        p = self.patterns
        sections = self.split_account_sections(text)
        accounts = [self._account_fields(section) for section in sections]

        bo_ids = collect_bo_ids(text, p.bo_id_pattern) if p.bo_id_pattern else []
        assign_bo_ids(accounts, bo_ids)
        if len(bo_ids) != len(accounts):
            self.diagnostics.record(
                "bo_id_count_mismatch",
                {"sections": len(accounts), "bo_ids": len(bo_ids)},
                level=logging.WARNING,
            )

        kept = []
        for account in accounts:
            if not (account["dp_id"] or account["dp_name"]):
                continue
            account["holdings"] = self._holdings_for_bo_id(text, account["bo_id"])
            kept.append(account)
        return kept

    def _holdings_for_bo_id(self, text: str, bo_id: str) -> Dict[str, List[RawDict]]:
        """
        Read holdings between this account's BO ID marker and the next one.

        Returns empty buckets when the marker is missing, when the block
        says there are no holdings, or when it lacks the holding statement
        markers.
        """
        if not bo_id:
            return empty_holdings()
        start = re.search(rf"BO\s+ID\s*:?\s*{re.escape(bo_id)}\b", text, re.IGNORECASE)
        if not start:
            logger.debug(f"No holdings block found for BO ID {bo_id}")
            return empty_holdings()
        following = re.compile(r"BO\s+ID", re.IGNORECASE).search(text, start.end())
        end = following.start() if following else len(text)
        block = text[start.start():self._demat_end(text, start.end(), end)]
        return self._holdings_from_block(block)

    def _demat_end(self, text: str, position: int, end: int) -> int:
        """Clip a holdings block at the mutual fund section that follows it."""
        start = self.patterns.mf_section_start
        if start is None:
            return end
        match = start.search(text, position)
        return min(end, match.start()) if match else end

    def _holdings_from_block(self, block: str) -> Dict[str, List[RawDict]]:
        p = self.patterns
        lowered = block.lower()
        if any(marker.lower() in lowered for marker in p.no_holdings_markers):
            return empty_holdings()
        if not all(marker.lower() in lowered for marker in p.holdings_required_markers):
            return empty_holdings()
        return self.parse_holding_rows(block)

    def parse_holding_rows(self, block: str) -> Dict[str, List[RawDict]]:
        """
        Match every holding row in a block and sort it into a bucket.

        An ISIN is kept once per block; later rows repeating it are ignored.
        """
        holdings = empty_holdings()
        seen = set()
        for match in self.patterns.holding_row.finditer(block):
            row = match.groupdict()
            isin = row["isin"]
            if isin in seen:
                logger.debug(f"Duplicate ISIN {isin} in holdings block; keeping first")
                continue
            seen.add(isin)
            row["name"] = matching.collapse(row["name"])
            category = categorize_holding(isin, row["name"])
            holdings[category.value].append(shape_holding(category, row))
        return holdings

    def _accounts_from_anchors(self, text: str) -> List[RawDict]:
        p = self.patterns
        anchors: List[Tuple[str, int]] = [
            (m.group(1), m.start()) for m in p.account_section.finditer(text)
        ]
        first_seen: Dict[str, int] = {}
        for number, position in anchors:
            first_seen.setdefault(number, position)

        accounts = []
        ordered = sorted(first_seen.items(), key=lambda item: item[1])
        for index, (number, position) in enumerate(ordered):
            previous_end = ordered[index - 1][1] + len(ordered[index - 1][0]) if index else 0
            next_start = self._demat_end(
                text, position, self._next_other_anchor(anchors, number, position)
            )
            window = text[
                max(previous_end, position - p.anchor_window):
                min(next_start, position + len(number) + p.anchor_window)
            ]
            account = self._account_fields(window)
            account.update(bo_id=number, dp_id=number[:8], client_id=number[8:])
            account["holdings"] = self._holdings_from_block(text[position:next_start])
            accounts.append(account)
        return accounts

    @staticmethod
    def _next_other_anchor(anchors: List[Tuple[str, int]], number: str, position: int) -> int:
        for other, other_position in anchors:
            if other_position > position and other != number:
                return other_position
        return 10 ** 12

    # Mutual funds

    def extract_mutual_funds(self, text: str) -> List[RawDict]:
        start = self.patterns.mf_section_start
        if start is None:
            section = text
        else:
            match = start.search(text)
            if not match:
                return []
            section = text[match.start():]
        return FolioReader().read(section)

    # Insurance

    def extract_insurance(self, text: str) -> List[RawDict]:
        """Read policies from the insurance section, one per policy number."""
        section_match = INSURANCE_SECTION.search(text)
        if not section_match:
            return []
        section = section_match.group(0)
        starts = list(POLICY_START.finditer(section))
        policies = []
        for index, start in enumerate(starts):
            end = starts[index + 1].start() if index + 1 < len(starts) else len(section)
            block = section[start.start():end]
            policy = {"policy_number": start.group(1)}
            for key, alternatives in POLICY_FIELDS.items():
                policy[key] = matching.first_valid_match(block, alternatives, field_name=key) or ""
            lowered = block.lower()
            policy["policy_type"] = (
                "health" if any(hint in lowered for hint in HEALTH_POLICY_HINTS) else "life"
            )
            policies.append(policy)
        logger.info(f"Insurance extraction: {len(policies)} policies found")
        return policies

    # Statement period

    def extract_statement_period(self, text: str) -> Dict[str, str]:
        for pattern in PERIOD_PATTERNS:
            match = pattern.search(text)
            if match:
                return {"from": match.group(1), "to": match.group(2)}
        return {"from": "", "to": ""}


def create_parser(
    dialect: Dialect,
    diagnostics: Optional[DiagnosticsCollector] = None,
) -> DialectParser:
    """
    Build the parser for a dialect.

    Args:
        dialect: Detected dialect; UNKNOWN has no parser.
        diagnostics: Collector for parse events.

    Returns:
        DialectParser bound to the dialect's pattern table.

    Raises:
        KeyError: If the dialect has no pattern table.
    """
    return DialectParser(PATTERN_TABLES[dialect], diagnostics)
