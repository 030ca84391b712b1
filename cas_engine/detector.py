"""
CAS format detection.

Classifies normalized statement text into one of the issuer dialects by
counting keyword markers. Dialects are checked in a fixed priority order and
the first one whose threshold is met wins; scores are never compared across
dialects.
"""

import logging
from typing import Dict, List, Tuple

from cas_engine.models import Dialect

logger = logging.getLogger(__name__)


class FormatMarkers:
    """
    Keyword markers identifying each CAS issuer.

    Markers are matched as lowercase substrings of the lowercased text.
    """

    CDSL_MARKERS = [
        "cdsl",
        "central depository services",
        "dp name",
        "dp id",
        "bo id",
    ]

    NSDL_MARKERS = [
        "nsdl",
        "national securities depository",
        "demat account statement",
    ]

    CAMS_MARKERS = [
        "computer age management services",
        "cams",
        "mutual fund statement",
    ]

    KFINTECH_MARKERS = [
        "kfintech",
        "karvy",
    ]

    # Last-resort fallback: a generic demat statement is read as CDSL
    FALLBACK_MARKERS = ["demat", "account"]


class FormatDetector:
    """
    Decides which issuer produced a CAS document.

    Detection is a pure function of the text: no state is carried between
    calls.
    """

    # (dialect, markers, minimum markers present), in priority order
    RULES: List[Tuple[Dialect, List[str], int]] = [
        (Dialect.CDSL, FormatMarkers.CDSL_MARKERS, 2),
        (Dialect.NSDL, FormatMarkers.NSDL_MARKERS, 1),
        (Dialect.CAMS, FormatMarkers.CAMS_MARKERS, 1),
        (Dialect.KFINTECH, FormatMarkers.KFINTECH_MARKERS, 1),
    ]

    def score(self, text: str) -> Dict[Dialect, int]:
        """
        Count the markers of every dialect present in the text.

        Args:
            text: Normalized statement text.

        Returns:
            Mapping of dialect to number of its markers found.
        """
        lowered = (text or "").lower()
        return {
            dialect: sum(1 for marker in markers if marker in lowered)
            for dialect, markers, _ in self.RULES
        }

    def detect(self, text: str) -> Dialect:
        """
        Classify the text.

        Args:
            text: Normalized statement text.

        Returns:
            The first dialect (in priority order) whose marker threshold is
            met, CDSL for a generic demat statement, otherwise UNKNOWN.
        """
        scores = self.score(text)
        for dialect, _, threshold in self.RULES:
            if scores[dialect] >= threshold:
                logger.info(f"Detected CAS format {dialect.value} (scores: {self._fmt(scores)})")
                return dialect

        lowered = (text or "").lower()
        if all(marker in lowered for marker in FormatMarkers.FALLBACK_MARKERS):
            logger.info("No issuer markers found; treating generic demat statement as CDSL")
            return Dialect.CDSL

        logger.warning(f"Unable to detect CAS format (scores: {self._fmt(scores)})")
        return Dialect.UNKNOWN

    @staticmethod
    def _fmt(scores: Dict[Dialect, int]) -> str:
        return ", ".join(f"{d.value}={n}" for d, n in scores.items())


def detect_format(text: str) -> Dialect:
    """
    Convenience function to detect the dialect of CAS text.

    Args:
        text: Normalized statement text.

    Returns:
        Detected Dialect (possibly UNKNOWN).
    """
    return FormatDetector().detect(text)
