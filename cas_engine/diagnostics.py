"""
Diagnostics side channel for the CAS parsing engine.

The pipeline never logs through ambient globals for its structured events;
a collector is passed in and every stage calls ``record(event, fields)``.
The default collector keeps events in memory for the caller and mirrors
them to the standard logging module with personal identifiers masked.
"""

import logging
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

logger = logging.getLogger(__name__)

SENSITIVE_FIELDS = {"pan", "email", "mobile", "bo_id", "client_id", "password"}


def new_session_id() -> str:
    """Create a correlation id for one parse invocation."""
    return f"CAS_SESSION_{uuid.uuid4().hex[:16]}"


def mask_value(value: str, keep_start: int = 2, keep_end: int = 2) -> str:
    """
    Mask the middle of an identifier.

    Args:
        value: Identifier to mask (PAN, account number, phone).
        keep_start: Leading characters left visible.
        keep_end: Trailing characters left visible.

    Returns:
        Masked string, e.g. ``ABXXXXXX4F`` for a PAN.
    """
    if not value:
        return ""
    value = str(value)
    if len(value) <= keep_start + keep_end:
        return "X" * len(value)
    hidden = len(value) - keep_start - keep_end
    return value[:keep_start] + "X" * hidden + value[-keep_end:]


def mask_email(email: str) -> str:
    """Mask the local part of an email address."""
    if not email or "@" not in email:
        return mask_value(email)
    local, _, domain = email.partition("@")
    return f"{local[:1]}***@{domain}"


def redact_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``fields`` with sensitive values masked."""
    redacted: Dict[str, Any] = {}
    for key, value in fields.items():
        if key == "password":
            redacted["has_password"] = bool(value)
        elif key == "email" and isinstance(value, str):
            redacted[key] = mask_email(value)
        elif key in SENSITIVE_FIELDS and isinstance(value, str):
            redacted[key] = mask_value(value)
        else:
            redacted[key] = value
    return redacted


@dataclass
class DiagnosticEvent:
    """
    One recorded diagnostic event.

    Attributes:
        name: Event name, e.g. ``extraction_completed``
        fields: Redacted event payload
        level: logging level the event was recorded at
        session_id: Correlation id of the parse invocation
    """
    name: str
    fields: Dict[str, Any] = field(default_factory=dict)
    level: int = logging.INFO
    session_id: str = ""


class DiagnosticsCollector:
    """
    Interface for the diagnostics side channel.

    Subclasses decide where events go. The base implementation drops them.
    """

    def __init__(self, session_id: Optional[str] = None):
        self.session_id = session_id or new_session_id()

    def record(
        self,
        event: str,
        fields: Optional[Dict[str, Any]] = None,
        level: int = logging.INFO,
    ) -> None:
        """Record a diagnostic event."""

    def warning(self, event: str, fields: Optional[Dict[str, Any]] = None) -> None:
        self.record(event, fields, level=logging.WARNING)

    @contextmanager
    def stage(self, name: str, **fields: Any) -> Iterator[Dict[str, Any]]:
        """
        Time a pipeline stage.

        Records ``<name>_started`` on entry and ``<name>_completed`` (or
        ``<name>_failed``) on exit with the elapsed milliseconds. The yielded
        dict can be filled by the caller with extra completion fields.
        """
        self.record(f"{name}_started", dict(fields))
        extra: Dict[str, Any] = {}
        started = time.perf_counter()
        try:
            yield extra
        except Exception as e:
            elapsed = round((time.perf_counter() - started) * 1000, 2)
            self.record(
                f"{name}_failed",
                {"duration_ms": elapsed, "error": type(e).__name__},
                level=logging.ERROR,
            )
            raise
        elapsed = round((time.perf_counter() - started) * 1000, 2)
        self.record(f"{name}_completed", {"duration_ms": elapsed, **extra})


class NullDiagnostics(DiagnosticsCollector):
    """Collector that discards every event."""


class LoggingDiagnostics(DiagnosticsCollector):
    """
    Collector that keeps events in memory and mirrors them to logging.

    Attributes:
        events: Every event recorded so far, in order.
    """

    def __init__(
        self,
        session_id: Optional[str] = None,
        log: Optional[logging.Logger] = None,
    ):
        super().__init__(session_id)
        self.events: List[DiagnosticEvent] = []
        self._log = log or logger

    def record(
        self,
        event: str,
        fields: Optional[Dict[str, Any]] = None,
        level: int = logging.INFO,
    ) -> None:
        payload = redact_fields(fields or {})
        self.events.append(
            DiagnosticEvent(
                name=event,
                fields=payload,
                level=level,
                session_id=self.session_id,
            )
        )
        self._log.log(level, f"[{self.session_id}] {event} {payload}")

    def find(self, event: str) -> List[DiagnosticEvent]:
        """Get all recorded events with the given name."""
        return [e for e in self.events if e.name == event]

    def warnings(self) -> List[DiagnosticEvent]:
        """Get all events recorded at WARNING level or above."""
        return [e for e in self.events if e.level >= logging.WARNING]
