"""Tests for the diagnostics side channel."""

import logging

import pytest

from cas_engine.diagnostics import (
    LoggingDiagnostics,
    NullDiagnostics,
    mask_email,
    mask_value,
    new_session_id,
    redact_fields,
)


class TestMasking:
    """Tests for identifier masking."""

    def test_mask_pan(self):
        """Test the middle of a PAN is hidden."""
        assert mask_value("ABCDE1234F") == "ABXXXXXX4F"

    def test_mask_short_value(self):
        """Test short values are hidden entirely."""
        assert mask_value("1234") == "XXXX"
        assert mask_value("") == ""

    def test_mask_email(self):
        """Test only the first letter of the local part stays."""
        assert mask_email("ravi.sharma@example.com") == "r***@example.com"

    def test_redact_fields(self):
        """Test sensitive fields are masked and passwords dropped."""
        redacted = redact_fields(
            {"pan": "ABCDE1234F", "email": "ravi@example.com", "password": "secret", "pages": 3}
        )

        assert redacted == {
            "pan": "ABXXXXXX4F",
            "email": "r***@example.com",
            "has_password": True,
            "pages": 3,
        }

    def test_session_id_prefix(self):
        """Test session ids are prefixed and unique."""
        first, second = new_session_id(), new_session_id()

        assert first.startswith("CAS_SESSION_")
        assert first != second


class TestLoggingDiagnostics:
    """Tests for LoggingDiagnostics."""

    def test_records_and_logs(self, caplog):
        """Test events are kept and mirrored to logging with masking."""
        diagnostics = LoggingDiagnostics(session_id="CAS_SESSION_test")

        with caplog.at_level(logging.INFO, logger="cas_engine.diagnostics"):
            diagnostics.record("investor_found", {"pan": "ABCDE1234F"})

        event = diagnostics.find("investor_found")[0]
        assert event.fields == {"pan": "ABXXXXXX4F"}
        assert event.session_id == "CAS_SESSION_test"
        assert "ABCDE1234F" not in caplog.text
        assert "CAS_SESSION_test" in caplog.text

    def test_stage_completed(self):
        """Test a stage records start and completion with extra fields."""
        diagnostics = LoggingDiagnostics()

        with diagnostics.stage("parsing", cas_type="CDSL") as extra:
            extra["demat_accounts"] = 2

        assert diagnostics.find("parsing_started")[0].fields == {"cas_type": "CDSL"}
        completed = diagnostics.find("parsing_completed")[0]
        assert completed.fields["demat_accounts"] == 2
        assert "duration_ms" in completed.fields

    def test_stage_failed(self):
        """Test a failing stage records the error and re-raises."""
        diagnostics = LoggingDiagnostics()

        with pytest.raises(ValueError):
            with diagnostics.stage("extraction"):
                raise ValueError("bad")

        failed = diagnostics.find("extraction_failed")[0]
        assert failed.fields["error"] == "ValueError"
        assert failed.level == logging.ERROR
        assert not diagnostics.find("extraction_completed")
        assert diagnostics.warnings() == [failed]

    def test_null_diagnostics_discards(self):
        """Test the null collector accepts events silently."""
        diagnostics = NullDiagnostics()

        diagnostics.warning("anything", {"pan": "ABCDE1234F"})
        with diagnostics.stage("parsing"):
            pass

        assert diagnostics.session_id.startswith("CAS_SESSION_")
