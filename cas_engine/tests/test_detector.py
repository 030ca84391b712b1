"""Tests for CAS format detection."""

import pytest

from cas_engine.detector import FormatDetector, detect_format
from cas_engine.models import Dialect

from samples import CAMS_TEXT, MINIMAL_TEXT, NSDL_TEXT, UNKNOWN_TEXT


class TestFormatDetector:
    """Tests for FormatDetector."""

    def test_detect_cdsl(self, cdsl_text):
        """Test CDSL statement is detected."""
        assert FormatDetector().detect(cdsl_text) == Dialect.CDSL

    def test_detect_nsdl(self):
        """Test NSDL statement is detected."""
        assert detect_format(NSDL_TEXT) == Dialect.NSDL

    def test_detect_cams(self):
        """Test CAMS statement is detected."""
        assert detect_format(CAMS_TEXT) == Dialect.CAMS

    def test_detect_kfintech(self):
        """Test KFintech statement is detected."""
        text = "Consolidated Account Statement issued by KFin Technologies (KFintech)"
        assert detect_format(text) == Dialect.KFINTECH

    def test_single_cdsl_marker_is_not_enough(self):
        """Test CDSL needs two markers; one marker falls through to NSDL."""
        text = "DP Name: HDFC Bank Limited NSDL account"
        assert detect_format(text) == Dialect.NSDL

    def test_priority_over_score(self):
        """Test CDSL wins over NSDL even when NSDL has more markers."""
        text = (
            "NSDL National Securities Depository Demat Account Statement "
            "DP Name: Broker DP ID: 12345678"
        )
        detector = FormatDetector()

        scores = detector.score(text)
        assert scores[Dialect.NSDL] > scores[Dialect.CDSL]
        assert detector.detect(text) == Dialect.CDSL

    def test_generic_demat_fallback(self):
        """Test a statement mentioning only a demat account is read as CDSL."""
        assert detect_format(MINIMAL_TEXT) == Dialect.CDSL

    def test_unknown(self):
        """Test text without markers is UNKNOWN."""
        assert detect_format(UNKNOWN_TEXT) == Dialect.UNKNOWN

    def test_empty_text_is_unknown(self):
        """Test empty text is UNKNOWN rather than an error."""
        assert detect_format("") == Dialect.UNKNOWN

    @pytest.mark.parametrize("text", [NSDL_TEXT, CAMS_TEXT, UNKNOWN_TEXT])
    def test_detection_is_deterministic(self, text):
        """Test the same text always yields the same dialect."""
        detector = FormatDetector()
        assert len({detector.detect(text) for _ in range(5)}) == 1

    def test_case_insensitive(self):
        """Test markers match regardless of case."""
        assert detect_format("CENTRAL DEPOSITORY SERVICES ... BO ID 1234") == Dialect.CDSL
