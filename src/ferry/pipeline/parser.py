"""Tolerant parser for delimited text exported from spreadsheets.

Works line by line: blank lines are dropped, the delimiter is sniffed from a
sample of lines, and every line is tokenized with a quote-aware scanner.
Row-shape problems are recorded as issues instead of aborting the parse.
"""

from __future__ import annotations

import logging
import statistics
from typing import Optional

from pydantic import BaseModel

from ferry.core.exceptions import ParseError, UnsupportedFileTypeError
from ferry.models.issues import Severity, ValidationIssue
from ferry.models.table import ParsedTable, RawRow

logger = logging.getLogger(__name__)

CANDIDATE_DELIMITERS: tuple[str, ...] = (",", ";", "\t", "|")
DEFAULT_DELIMITER = ","
SUPPORTED_EXTENSIONS = frozenset({"csv", "tsv", "txt"})
QUOTE = '"'


class ParseOptions(BaseModel):
    """Caller overrides for a single parse."""

    delimiter: Optional[str] = None  # None = detect
    has_header: bool = True
    sample_lines: int = 5


# ---------------------------------------------------------------------------
# Delimiter detection
# ---------------------------------------------------------------------------

def count_unquoted(line: str, delimiter: str) -> int:
    """Count delimiter occurrences that fall outside quoted sections."""
    count = 0
    in_quotes = False
    i = 0
    while i < len(line):
        ch = line[i]
        if ch == QUOTE:
            if in_quotes and line[i + 1:i + 2] == QUOTE:
                i += 2  # escaped quote, stays inside the quoted section
                continue
            in_quotes = not in_quotes
        elif ch == delimiter and not in_quotes:
            count += 1
        i += 1
    return count


def _score(counts: list[int]) -> float:
    nonzero = [c for c in counts if c > 0]
    if not nonzero:
        return 0.0
    return statistics.mean(nonzero) / (1 + statistics.pstdev(nonzero))


def detect_delimiter(lines: list[str], sample_lines: int = 5) -> str:
    """Pick the candidate delimiter used most consistently across a sample.

    Comma wins ties, and is the answer when nothing scores above zero.
    """
    sample = [line for line in lines if line.strip()][:sample_lines]
    scores = {
        delim: _score([count_unquoted(line, delim) for line in sample])
        for delim in CANDIDATE_DELIMITERS
    }
    best = max(scores.values())
    if best <= 0:
        return DEFAULT_DELIMITER
    winners = [delim for delim, score in scores.items() if score == best]
    if len(winners) > 1:
        return DEFAULT_DELIMITER
    return winners[0]


# ---------------------------------------------------------------------------
# Tokenizing
# ---------------------------------------------------------------------------

def tokenize_line(line: str, delimiter: str) -> list[str]:
    """Split one line on ``delimiter`` outside quotes; ``""`` becomes ``"``."""
    fields: list[str] = []
    buf: list[str] = []
    in_quotes = False
    i = 0
    n = len(line)
    while i < n:
        ch = line[i]
        if in_quotes:
            if ch == QUOTE:
                if i + 1 < n and line[i + 1] == QUOTE:
                    buf.append(QUOTE)
                    i += 2
                    continue
                in_quotes = False
            else:
                buf.append(ch)
        elif ch == QUOTE:
            in_quotes = True
        elif ch == delimiter:
            fields.append("".join(buf).strip())
            buf = []
        else:
            buf.append(ch)
        i += 1
    fields.append("".join(buf).strip())
    return fields


def _header_key(header: str) -> str:
    return " ".join(header.lower().split())


def _duplicate_header_issues(headers: list[str]) -> list[ValidationIssue]:
    seen: dict[str, int] = {}
    issues: list[ValidationIssue] = []
    for idx, header in enumerate(headers):
        key = _header_key(header)
        if key in seen:
            issues.append(ValidationIssue(
                row=0,
                column=header,
                value=header,
                message=(
                    f"Duplicate column header {header!r} at position {idx + 1} "
                    f"(first seen at position {seen[key] + 1})"
                ),
                severity=Severity.WARNING,
            ))
        else:
            seen[key] = idx
    return issues


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def parse(content: str, options: ParseOptions | None = None) -> ParsedTable:
    """Parse delimited text into headers, rows and structural issues."""
    options = options or ParseOptions()
    lines = [line for line in content.splitlines() if line.strip()]

    if not lines:
        return ParsedTable(
            fatal=True,
            issues=[ValidationIssue(row=0, message="File is empty", severity=Severity.ERROR)],
        )

    delimiter = options.delimiter or detect_delimiter(lines, options.sample_lines)
    logger.debug("Using delimiter %r for %d lines", delimiter, len(lines))

    if options.has_header:
        headers = tokenize_line(lines[0], delimiter)
        data_lines = lines[1:]
    else:
        width = len(tokenize_line(lines[0], delimiter))
        headers = [f"Column {i}" for i in range(1, width + 1)]
        data_lines = lines

    issues = _duplicate_header_issues(headers)
    if not data_lines:
        issues.append(ValidationIssue(
            row=0, message="File has a header row but no data rows",
            severity=Severity.WARNING,
        ))

    rows: list[RawRow] = []
    expected = len(headers)
    for row_number, line in enumerate(data_lines, start=1):
        values = tokenize_line(line, delimiter)
        mismatch = len(values) != expected
        if len(values) < expected:
            issues.append(ValidationIssue(
                row=row_number,
                value=line,
                message=f"Row has {len(values)} fields, expected {expected}",
                severity=Severity.ERROR,
            ))
            values = values + [""] * (expected - len(values))
        elif len(values) > expected:
            issues.append(ValidationIssue(
                row=row_number,
                value=line,
                message=f"Row has {len(values)} fields, expected {expected}; extra fields dropped",
                severity=Severity.WARNING,
            ))
            values = values[:expected]

        cells: dict[str, str] = {}
        for header, value in zip(headers, values):
            cells.setdefault(header, value)
        rows.append(RawRow(
            row_number=row_number,
            cells=cells,
            values=values,
            column_count_mismatch=mismatch,
        ))

    return ParsedTable(headers=headers, rows=rows, delimiter=delimiter, issues=issues)


def file_extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


def decode_bytes(data: bytes) -> str:
    """Decode upload bytes, trying UTF-8 (with BOM) before latin-1."""
    for encoding in ("utf-8-sig", "utf-8"):
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            continue
    return data.decode("latin-1")


def parse_file(
    data: bytes,
    filename: str,
    options: ParseOptions | None = None,
    max_bytes: int | None = None,
) -> ParsedTable:
    """Reject unsupported uploads up front, then decode and parse."""
    ext = file_extension(filename)
    if ext not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFileTypeError(filename, ext)
    if max_bytes is not None and len(data) > max_bytes:
        raise ParseError(f"{filename!r} is {len(data)} bytes, limit is {max_bytes}")

    options = options or ParseOptions()
    if ext == "tsv" and options.delimiter is None:
        options = options.model_copy(update={"delimiter": "\t"})
    return parse(decode_bytes(data), options)
