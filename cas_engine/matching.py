"""
Ordered-alternative field matching.

A field is looked up by trying each pattern in turn; the first capture that
passes the field check wins. A miss is an ordinary ``None`` result, never an
exception.
"""

import logging
import re
from typing import Callable, Iterable, Optional, Pattern

from cas_engine.patterns import EMAIL_RE, PAN_RE, PINCODE_RE

logger = logging.getLogger(__name__)

Check = Callable[[str], Optional[str]]


def collapse(value: str) -> str:
    """Trim and collapse internal whitespace."""
    return " ".join(value.split())


def first_valid_match(
    text: str,
    patterns: Iterable[Pattern],
    check: Optional[Check] = None,
    field_name: str = "",
) -> Optional[str]:
    """
    Return the first capture that passes ``check``.

    Args:
        text: Text to search.
        patterns: Ordered alternatives, each with one capture group.
        check: Normalizes a candidate and returns None to reject it.
            Defaults to whitespace collapsing with empties rejected.
        field_name: Used only for log messages.

    Returns:
        The normalized value, or None when no alternative matched.
    """
    check = check or accept_text
    for pattern in patterns:
        try:
            match = pattern.search(text)
            if not match:
                continue
            value = check(match.group(1))
        except (re.error, IndexError, ValueError) as e:
            logger.warning(f"Pattern for {field_name or 'field'} failed: {e}")
            continue
        if value:
            return value
    return None


def accept_text(value: str) -> Optional[str]:
    value = collapse(value or "")
    return value or None


def check_name(value: str) -> Optional[str]:
    value = collapse(value or "").strip(" .")
    if len(value) < 2 or len(value) > 100:
        return None
    return value


def check_pan(value: str) -> Optional[str]:
    value = (value or "").strip().upper()
    return value if PAN_RE.match(value) else None


def check_email(value: str) -> Optional[str]:
    value = re.sub(r"\s", "", value or "").lower().rstrip(".,;")
    return value if EMAIL_RE.match(value) else None


def check_mobile(value: str) -> Optional[str]:
    """Reject masked numbers and anything shorter than ten digits."""
    value = (value or "").strip()
    if "X" in value.upper():
        return None
    digits = re.sub(r"\D", "", value)
    return digits if len(digits) >= 10 else None


def check_address(value: str) -> Optional[str]:
    value = collapse(value or "").strip(" ,")
    if not value or len(value) > 300:
        return None
    return value


def check_cas_id(value: str) -> Optional[str]:
    value = (value or "").strip().upper()
    return value if any(ch.isdigit() for ch in value) else None


def pincode_from(address: str) -> str:
    """First six-digit run inside an address, or ""."""
    match = PINCODE_RE.search(address or "")
    return match.group(1) if match else ""
