"""
Main entry point for the CAS parsing engine.

This module provides the CLI interface and orchestrates the parsing
process from PDF extraction through formatting, validation and JSON export.
"""

import argparse
import json
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from cas_engine.detector import FormatDetector
from cas_engine.diagnostics import DiagnosticsCollector, LoggingDiagnostics
from cas_engine.dialect_parser import create_parser
from cas_engine.exceptions import CASParseError, UnknownFormatError, UnsupportedFormatError
from cas_engine.extractor import MAX_FILE_SIZE, MIN_TEXT_LENGTH, PDFExtractor, PdfSource
from cas_engine.formatter import OutputFormatter, validate_format
from cas_engine.models import Dialect, ParsedStatement
from cas_engine.validator import CASValidator

logger = logging.getLogger(__name__)

ALL_DIALECTS = (Dialect.CDSL, Dialect.NSDL, Dialect.CAMS, Dialect.KFINTECH)


class CASParser:
    """
    Main parser class for Consolidated Account Statements.

    This class orchestrates the complete parsing pipeline:
    1. Extract text from PDF
    2. Detect the issuer dialect
    3. Run the dialect parser
    4. Format and recompute the summary
    5. Validate results

    One instance can parse any number of documents; nothing is shared
    between calls except configuration.
    """

    def __init__(
        self,
        password: Optional[str] = "",
        diagnostics: Optional[DiagnosticsCollector] = None,
        max_file_size: int = MAX_FILE_SIZE,
        min_text_length: int = MIN_TEXT_LENGTH,
        supported_dialects: Iterable[Dialect] = ALL_DIALECTS,
    ):
        """
        Initialize the CAS parser.

        Args:
            password: Password for encrypted PDFs ("" for none).
            diagnostics: Collector for pipeline events. A fresh
                LoggingDiagnostics is used per parse when omitted.
            max_file_size: Largest accepted input in bytes.
            min_text_length: Shortest extracted text accepted as a CAS.
            supported_dialects: Dialects this instance will parse.
        """
        self.password = password or ""
        self.diagnostics = diagnostics
        self.max_file_size = max_file_size
        self.min_text_length = min_text_length
        self.supported_dialects = tuple(supported_dialects)
        self.detector = FormatDetector()
        self.formatter = OutputFormatter()
        self.validator = CASValidator()

    def parse(self, source: PdfSource) -> ParsedStatement:
        """
        Parse a CAS PDF file.

        Args:
            source: Path to the CAS PDF file, or its raw bytes.

        Returns:
            ParsedStatement with all parsed data.

        Raises:
            InputError: If the file is missing, empty or too large.
            ExtractionError: If the PDF cannot be opened or read.
            UnknownFormatError: If no dialect matches the text.
            UnsupportedFormatError: If the dialect is switched off.
            CASParseError: For any other failure.
        """
        diagnostics = self.diagnostics or LoggingDiagnostics()
        started = time.perf_counter()
        file_name = "" if isinstance(source, (bytes, bytearray)) else Path(source).name
        logger.info(f"Starting CAS parsing: {file_name or '<bytes>'}")

        try:
            with diagnostics.stage("extraction", has_password=bool(self.password)) as extra:
                extractor = PDFExtractor(
                    password=self.password or None,
                    max_file_size=self.max_file_size,
                    min_text_length=self.min_text_length,
                    diagnostics=diagnostics,
                )
                document = extractor.extract(source)
                extra.update(pages=document.total_pages, text_length=len(document.text))

            statement = self._parse_document_text(document.text, diagnostics)
        except CASParseError:
            raise
        except Exception as e:
            logger.exception("Failed to parse CAS PDF")
            raise CASParseError(f"CAS parsing failed: {e}") from e

        statement.meta.file_name = file_name
        statement.meta.file_size = document.file_size
        statement.meta.parse_time_ms = round((time.perf_counter() - started) * 1000, 2)
        return statement

    def parse_text(self, text: str) -> ParsedStatement:
        """
        Parse already-extracted CAS text.

        Args:
            text: Normalized statement text.

        Returns:
            ParsedStatement with all parsed data.
        """
        diagnostics = self.diagnostics or LoggingDiagnostics()
        started = time.perf_counter()
        try:
            statement = self._parse_document_text(text, diagnostics)
        except CASParseError:
            raise
        except Exception as e:
            logger.exception("Failed to parse CAS text")
            raise CASParseError(f"CAS parsing failed: {e}") from e
        statement.meta.parse_time_ms = round((time.perf_counter() - started) * 1000, 2)
        return statement

    def _parse_document_text(
        self, text: str, diagnostics: DiagnosticsCollector
    ) -> ParsedStatement:
        dialect = self.detector.detect(text)
        diagnostics.record("format_detected", {"cas_type": dialect.value})
        if dialect == Dialect.UNKNOWN:
            raise UnknownFormatError()
        if dialect not in self.supported_dialects:
            raise UnsupportedFormatError(
                dialect.value, [d.value for d in self.supported_dialects]
            )

        with diagnostics.stage("parsing", cas_type=dialect.value) as extra:
            raw = create_parser(dialect, diagnostics).parse(text, self.password)
            extra.update(
                demat_accounts=len(raw["demat_accounts"]),
                mutual_funds=len(raw["mutual_funds"]),
            )

        raw["meta"].update(
            generated_at=datetime.now().isoformat(timespec="seconds"),
            tracking_id=diagnostics.session_id,
        )
        statement = self.formatter.format(raw)
        statement.validation = self.validator.validate(statement)

        structure = validate_format(statement.to_dict())
        if not structure.is_valid or structure.warnings:
            diagnostics.warning(
                "format_validation",
                {"errors": structure.errors, "warnings": structure.warnings},
            )

        diagnostics.record(
            "parse_completed",
            {
                "cas_type": dialect.value,
                "demat_accounts": len(statement.demat_accounts),
                "mutual_funds": len(statement.mutual_funds),
                "total_value": float(statement.summary.total_value),
                "valid": statement.validation.is_valid,
            },
        )
        logger.info(
            f"Parsing complete: {len(statement.demat_accounts)} demat accounts, "
            f"{len(statement.mutual_funds)} folios, "
            f"valid={statement.validation.is_valid}"
        )
        return statement


def parse_cas_file(source: PdfSource, password: Optional[str] = "") -> ParsedStatement:
    """
    Parse a CAS PDF file.

    This is the main entry point for programmatic use.

    Args:
        source: Path to the CAS PDF file, or its raw bytes.
        password: Optional password for encrypted PDFs.

    Returns:
        ParsedStatement with all parsed data.
    """
    parser = CASParser(password=password)
    return parser.parse(source)


def export_to_json(statement: ParsedStatement, output_path: Optional[str] = None) -> str:
    """
    Export a parsed statement to JSON.

    Args:
        statement: Parsed CAS statement.
        output_path: Optional path to write JSON file.

    Returns:
        JSON string representation.
    """
    json_data = statement.to_dict()
    json_str = json.dumps(json_data, indent=2, ensure_ascii=False)

    if output_path:
        Path(output_path).write_text(json_str, encoding="utf-8")
        logger.info(f"Exported JSON to: {output_path}")

    return json_str


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Parse Consolidated Account Statement (CAS) PDFs from CDSL and NSDL",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s statement.pdf
  %(prog)s statement.pdf -o output.json
  %(prog)s statement.pdf --password ABCDE1234F -v
        """,
    )
    parser.add_argument(
        "pdf_file",
        help="Path to the CAS PDF file",
    )
    parser.add_argument(
        "-o", "--output",
        help="Output JSON file path (default: stdout)",
    )
    parser.add_argument(
        "-p", "--password",
        default="",
        help="Password for encrypted PDF",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress all output except errors",
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        help="Only validate, don't output full JSON",
    )

    args = parser.parse_args()

    # Configure logging
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    elif args.quiet:
        logging.getLogger().setLevel(logging.ERROR)

    try:
        statement = parse_cas_file(args.pdf_file, password=args.password)
    except CASParseError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        sys.exit(1)

    if args.validate_only:
        # Output validation results only
        validation = statement.validation
        print(f"Validation: {'PASSED' if validation.is_valid else 'FAILED'}")
        if validation.errors:
            print("\nErrors:")
            for error in validation.errors:
                print(f"  - {error}")
        if validation.warnings:
            print("\nWarnings:")
            for warning in validation.warnings:
                print(f"  - {warning}")
        sys.exit(0 if validation.is_valid else 1)

    json_output = export_to_json(statement, args.output)

    if not args.output:
        print(json_output)

    # Print summary to stderr
    if not args.quiet:
        print(
            f"\nParsed {statement.meta.cas_type}: "
            f"{len(statement.demat_accounts)} demat accounts, "
            f"{len(statement.mutual_funds)} folios, "
            f"total value {statement.summary.total_value}",
            file=sys.stderr,
        )
        if not statement.validation.is_valid:
            print(
                f"Validation errors: {len(statement.validation.errors)}",
                file=sys.stderr,
            )
        if statement.validation.warnings:
            print(
                f"Validation warnings: {len(statement.validation.warnings)}",
                file=sys.stderr,
            )


if __name__ == "__main__":
    main()
