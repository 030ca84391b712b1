"""
PDF text extraction module for the CAS parsing engine.

This module turns raw PDF bytes into normalized plain text using pdfplumber.
It validates the input, unlocks encrypted statements (retrying common case
variants of the supplied password) and rejects documents whose text is too
short to be a CAS.
"""

import io
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple, Union

import pdfplumber
from pdfminer.pdfdocument import PDFPasswordIncorrect

from cas_engine.diagnostics import DiagnosticsCollector, NullDiagnostics
from cas_engine.exceptions import ExtractionError, ExtractionFailure, InputError

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 50 * 1024 * 1024
MIN_TEXT_LENGTH = 100

PdfSource = Union[str, Path, bytes, bytearray]


@dataclass
class PageContent:
    """
    Represents extracted content from a single PDF page.

    Attributes:
        page_number: 1-indexed page number
        lines: List of text lines extracted from the page
        raw_text: Complete raw text of the page
    """
    page_number: int
    lines: List[str] = field(default_factory=list)
    raw_text: str = ""


@dataclass
class ExtractedDocument:
    """
    Represents the complete extracted content from a PDF document.

    Attributes:
        pages: List of page contents
        total_pages: Total number of pages in the document
        source_path: Path to the source PDF file (None for in-memory input)
        file_size: Size of the input in bytes
        text: Normalized text of the whole document
        password_attempts: Number of open attempts made
    """
    pages: List[PageContent] = field(default_factory=list)
    total_pages: int = 0
    source_path: Optional[str] = None
    file_size: int = 0
    text: str = ""
    password_attempts: int = 0

    def get_all_lines(self) -> List[str]:
        """
        Get all lines from all pages as a flat list.

        Returns:
            List of all text lines across all pages.
        """
        all_lines = []
        for page in self.pages:
            all_lines.extend(page.lines)
        return all_lines

    def get_all_text(self) -> str:
        """
        Get complete raw text from all pages.

        Returns:
            Complete text content of the document, before normalization.
        """
        return "\n".join(page.raw_text for page in self.pages)


def normalize_text(text: str) -> str:
    """
    Normalize extracted text.

    Line endings become LF, runs of three or more newlines collapse to two,
    runs of horizontal whitespace collapse to one space and the result is
    trimmed.
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = re.sub(r"\n{3,}", "\n\n", text)
    text = re.sub(r"[^\S\n]{2,}", " ", text)
    return text.strip()


def password_candidates(password: Optional[str]) -> List[Optional[str]]:
    """
    Passwords to try, in order.

    A supplied password is tried as-is, trimmed, uppercased and lowercased
    (duplicates removed). Without a password a single unprotected attempt
    is made.
    """
    if not password:
        return [None]
    trimmed = password.strip()
    candidates: List[Optional[str]] = []
    for candidate in (password, trimmed, trimmed.upper(), trimmed.lower()):
        if candidate and candidate not in candidates:
            candidates.append(candidate)
    return candidates


def is_password_error(exc: BaseException) -> bool:
    """
    Check whether an exception raised while opening a PDF means a bad password.

    pdfplumber wraps pdfminer errors, so the argument and the cause chain are
    inspected too.
    """
    seen = set()
    pending = [exc]
    while pending:
        current = pending.pop()
        if current is None or id(current) in seen:
            continue
        seen.add(id(current))
        if isinstance(current, PDFPasswordIncorrect):
            return True
        for arg in getattr(current, "args", ()):
            if isinstance(arg, BaseException):
                pending.append(arg)
        pending.append(current.__cause__)
        pending.append(current.__context__)
    return False


class PDFExtractor:
    """
    Extracts normalized text from CAS PDF files.

    This class uses pdfplumber for text extraction, handling multi-page
    documents, password retries and whitespace normalization.
    """

    def __init__(
        self,
        password: Optional[str] = None,
        max_file_size: int = MAX_FILE_SIZE,
        min_text_length: int = MIN_TEXT_LENGTH,
        diagnostics: Optional[DiagnosticsCollector] = None,
    ):
        """
        Initialize the PDF extractor.

        Args:
            password: Optional password for encrypted PDFs.
            max_file_size: Largest accepted input in bytes.
            min_text_length: Shortest normalized text accepted as a CAS.
            diagnostics: Collector for extraction events.
        """
        self.password = password
        self.max_file_size = max_file_size
        self.min_text_length = min_text_length
        self.diagnostics = diagnostics or NullDiagnostics()

    def extract(self, source: PdfSource) -> ExtractedDocument:
        """
        Extract normalized text from a PDF file or buffer.

        Args:
            source: Path to the PDF file, or its raw bytes.

        Returns:
            ExtractedDocument whose ``text`` holds the normalized text.

        Raises:
            InputError: The file is missing, empty or too large.
            ExtractionError: The password is wrong or missing, the PDF is
                corrupted, or the extracted text is too short.
        """
        data, source_path = self._read_source(source)
        logger.info(f"Extracting text from PDF ({len(data)} bytes)")

        candidates = password_candidates(self.password)
        document = None
        attempts = 0
        for candidate in candidates:
            attempts += 1
            self.diagnostics.record(
                "pdf_open_attempt",
                {"attempt": attempts, "of": len(candidates), "password": candidate},
            )
            try:
                document = self._read_pdf(data, candidate)
                break
            except Exception as e:
                if is_password_error(e):
                    logger.debug(f"Password attempt {attempts} rejected")
                    continue
                logger.error(f"Failed to extract PDF: {e}")
                raise ExtractionError(
                    f"Failed to read PDF: {e}. Please ensure the PDF file is not corrupted.",
                    ExtractionFailure.CORRUPTED,
                ) from e

        if document is None:
            if self.password:
                raise ExtractionError(
                    "Incorrect CAS password. Please verify the CAS password is correct.",
                    ExtractionFailure.WRONG_PASSWORD,
                )
            raise ExtractionError(
                "This CAS PDF is password protected. Please provide the CAS password.",
                ExtractionFailure.PASSWORD_REQUIRED,
            )

        document.source_path = source_path
        document.file_size = len(data)
        document.password_attempts = attempts
        document.text = normalize_text(document.get_all_text())

        if len(document.text) < self.min_text_length:
            raise ExtractionError(
                "Extracted text is too short. This might not be a valid CAS document.",
                ExtractionFailure.TOO_SHORT,
            )

        self.diagnostics.record(
            "text_extracted",
            {
                "pages": document.total_pages,
                "text_length": len(document.text),
                "attempts": attempts,
            },
        )
        return document

    def _read_source(self, source: PdfSource) -> Tuple[bytes, Optional[str]]:
        """Load the input and apply the size checks."""
        if isinstance(source, (bytes, bytearray)):
            data = bytes(source)
            source_path = None
        else:
            path = Path(source)
            if not path.is_file():
                raise InputError(f"PDF file not found: {path}", ExtractionFailure.NOT_FOUND)
            data = path.read_bytes()
            source_path = str(path)

        if not data:
            raise InputError("PDF file is empty", ExtractionFailure.EMPTY)
        if len(data) > self.max_file_size:
            limit_mb = self.max_file_size // (1024 * 1024)
            raise InputError(
                f"PDF file is too large ({len(data)} bytes). Maximum size is {limit_mb}MB.",
                ExtractionFailure.TOO_LARGE,
            )
        return data, source_path

    def _read_pdf(self, data: bytes, password: Optional[str]) -> ExtractedDocument:
        """Open the PDF with one password candidate and read every page."""
        document = ExtractedDocument()
        with pdfplumber.open(io.BytesIO(data), password=password) as pdf:
            document.total_pages = len(pdf.pages)
            logger.info(f"PDF has {document.total_pages} pages")

            for page_num, page in enumerate(pdf.pages, start=1):
                page_content = self._extract_page(page, page_num)
                document.pages.append(page_content)
                logger.debug(
                    f"Page {page_num}: extracted {len(page_content.lines)} lines"
                )
        return document

    def _extract_page(self, page, page_number: int) -> PageContent:
        """
        Extract text from a single PDF page.

        Args:
            page: pdfplumber page object.
            page_number: 1-indexed page number.

        Returns:
            PageContent with extracted lines and raw text.
        """
        content = PageContent(page_number=page_number)
        raw_text = None

        # Simple extraction keeps character sequences intact
        try:
            raw_text = page.extract_text(x_tolerance=2, y_tolerance=2)
        except Exception as e:
            logger.debug(f"Simple extraction failed on page {page_number}: {e}")

        # Layout-aware extraction as fallback for sparse pages
        if not raw_text or len(raw_text.strip()) < 100:
            try:
                raw_text_layout = page.extract_text(layout=True, x_tolerance=3, y_tolerance=3)
                if raw_text_layout and len(raw_text_layout) > len(raw_text or ""):
                    raw_text = raw_text_layout
            except Exception as e:
                logger.debug(f"Layout extraction failed on page {page_number}: {e}")

        if raw_text:
            content.raw_text = raw_text
            content.lines = [" ".join(line.split()) for line in raw_text.split("\n")]
            content.lines = [line for line in content.lines if line]
        else:
            logger.warning(f"No text extracted from page {page_number}")

        return content


def extract_text_from_pdf(
    source: PdfSource,
    password: Optional[str] = None,
) -> ExtractedDocument:
    """
    Convenience function to extract text from a PDF file.

    Args:
        source: Path to the PDF file, or its raw bytes.
        password: Optional password for encrypted PDFs.

    Returns:
        ExtractedDocument containing the normalized text.
    """
    extractor = PDFExtractor(password=password)
    return extractor.extract(source)
