"""
Holding categorization.

Sorts a demat holding into exactly one bucket using ISIN prefix conventions,
falling back to keywords in the security name. This is a heuristic, not a
security-master lookup.

Indian ISINs: ``INE`` is a company security (the two characters at
positions 8-9 give the security type, ``07``/``08`` for debentures), ``INF``
is a fund unit, and ``IN`` followed by a digit is a government security.
"""

import re
from typing import Tuple

from cas_engine.models import HoldingCategory, SchemeType

DEBT_SECURITY_TYPES = ("07", "08")

BOND_KEYWORDS = ("bond", "debenture", " ncd", "non convertible", "non-convertible")
GOVERNMENT_KEYWORDS = ("government", "govt", "goi ", "treasury", "state development loan", "sdl ")
AIF_KEYWORDS = ("alternative investment", " aif ", " aif-", "category i ", "category ii ", "category iii ")
FUND_KEYWORDS = ("fund", "etf", "scheme")

GOVERNMENT_ISIN = re.compile(r"^IN\d")


def _has_any(name: str, keywords: Tuple[str, ...]) -> bool:
    padded = f" {name} "
    return any(k in padded for k in keywords)


def categorize_holding(isin: str, name: str) -> HoldingCategory:
    """
    Pick the single bucket a holding belongs to.

    Args:
        isin: 12-character ISIN.
        name: Security name as printed.

    Returns:
        The holding category; equities when nothing else fits.
    """
    isin = (isin or "").upper()
    lowered = (name or "").lower()

    if isin.startswith("INF"):
        if _has_any(lowered, AIF_KEYWORDS):
            return HoldingCategory.AIFS
        return HoldingCategory.DEMAT_MUTUAL_FUNDS

    if GOVERNMENT_ISIN.match(isin):
        return HoldingCategory.GOVERNMENT_SECURITIES

    if isin.startswith("INE"):
        if isin[7:9] in DEBT_SECURITY_TYPES or _has_any(lowered, BOND_KEYWORDS):
            return HoldingCategory.CORPORATE_BONDS
        return HoldingCategory.EQUITIES

    if _has_any(lowered, GOVERNMENT_KEYWORDS):
        return HoldingCategory.GOVERNMENT_SECURITIES
    if _has_any(lowered, BOND_KEYWORDS):
        return HoldingCategory.CORPORATE_BONDS
    if _has_any(lowered, AIF_KEYWORDS):
        return HoldingCategory.AIFS
    if _has_any(lowered, FUND_KEYWORDS):
        return HoldingCategory.DEMAT_MUTUAL_FUNDS
    return HoldingCategory.EQUITIES


def scheme_type_for(name: str) -> SchemeType:
    """Classify a mutual fund scheme as equity, debt or hybrid by its name."""
    lowered = (name or "").lower()
    if any(k in lowered for k in ("debt", "bond", "liquid", "money")):
        return SchemeType.DEBT
    if any(k in lowered for k in ("hybrid", "balanced")):
        return SchemeType.HYBRID
    return SchemeType.EQUITY
