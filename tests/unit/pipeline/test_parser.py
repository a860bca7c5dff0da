"""Tests for the delimited text parser."""

from __future__ import annotations

import pytest

from ferry.core.exceptions import ParseError, UnsupportedFileTypeError
from ferry.models.issues import Severity
from ferry.pipeline.parser import (
    ParseOptions,
    count_unquoted,
    decode_bytes,
    detect_delimiter,
    parse,
    parse_file,
    tokenize_line,
)


class TestDetectDelimiter:
    def test_comma(self):
        assert detect_delimiter(["Name,Email", "Ada,ada@example.com"]) == ","

    def test_semicolon_with_decimal_commas(self):
        lines = ["Name;Email;Amount", "Smith;a@b.com;1,50", "Jones;c@d.com;2,75"]
        assert detect_delimiter(lines) == ";"

    def test_tab_and_pipe(self):
        assert detect_delimiter(["a\tb\tc", "1\t2\t3"]) == "\t"
        assert detect_delimiter(["a|b", "1|2"]) == "|"

    def test_tie_defaults_to_comma(self):
        assert detect_delimiter(["a,b;c", "1,2;3"]) == ","

    def test_no_delimiter_defaults_to_comma(self):
        assert detect_delimiter(["single", "column"]) == ","

    def test_quoted_delimiters_are_not_counted(self):
        assert count_unquoted('"a;b;c",d;e', ";") == 1
        assert count_unquoted('"say ""x;y""";z', ";") == 1


class TestTokenizeLine:
    def test_quoted_field_keeps_delimiter(self):
        assert tokenize_line('"Smith, John",john@example.com', ",") == ["Smith, John", "john@example.com"]

    def test_escaped_quotes(self):
        assert tokenize_line('"He said ""hi""",x', ",") == ['He said "hi"', "x"]

    def test_fields_are_trimmed(self):
        assert tokenize_line(" a , b ,c", ",") == ["a", "b", "c"]

    def test_trailing_empty_field(self):
        assert tokenize_line("a,b,", ",") == ["a", "b", ""]


class TestParse:
    def test_headers_and_rows(self):
        table = parse("Name,Email\nAda,ada@example.com\n\nBob,bob@example.com\n")
        assert table.headers == ["Name", "Email"]
        assert table.row_count == 2
        assert [r.row_number for r in table.rows] == [1, 2]
        assert table.rows[1].get("Email") == "bob@example.com"
        assert not table.fatal
        assert table.issues == []

    def test_quoted_name_stays_one_cell(self):
        table = parse('Name,Email\n"Smith, John",john@example.com\n')
        assert table.rows[0].cells == {"Name": "Smith, John", "Email": "john@example.com"}

    def test_semicolon_file(self):
        table = parse("Name;Email;Amount\nSmith;a@b.com;1,50\nJones;c@d.com;2,75\n")
        assert table.delimiter == ";"
        assert table.rows[0].get("Amount") == "1,50"

    def test_explicit_delimiter_wins(self):
        table = parse("a;b\n1;2", ParseOptions(delimiter=","))
        assert table.headers == ["a;b"]

    def test_short_row_is_error_and_padded(self):
        table = parse("A,B,C\n1,2\n")
        row = table.rows[0]
        assert row.column_count_mismatch
        assert row.values == ["1", "2", ""]
        assert row.get("C") == ""
        [issue] = table.issues_for_row(1)
        assert issue.severity == Severity.ERROR

    def test_long_row_is_warning_and_truncated(self):
        table = parse("A,B\n1,2,3\n")
        row = table.rows[0]
        assert row.column_count_mismatch
        assert row.values == ["1", "2"]
        [issue] = table.issues_for_row(1)
        assert issue.severity == Severity.WARNING

    def test_duplicate_headers_warn_and_stay_addressable(self):
        table = parse("Email,email ,Name\nx@y.com,z@y.com,Ada\n")
        [issue] = table.issues
        assert issue.row == 0
        assert issue.severity == Severity.WARNING
        assert table.rows[0].cell_at(1) == "z@y.com"

    def test_first_duplicate_wins_in_cells(self):
        table = parse("Email,Email\nfirst@y.com,second@y.com\n")
        assert table.rows[0].get("Email") == "first@y.com"
        assert table.rows[0].cell_at(1) == "second@y.com"

    def test_empty_content_is_fatal(self):
        table = parse("\n   \n")
        assert table.fatal
        assert table.row_count == 0
        assert len(table.issues) == 1
        assert table.issues[0].severity == Severity.ERROR

    def test_header_only_is_a_warning(self):
        table = parse("A,B\n")
        assert not table.fatal
        assert table.row_count == 0
        assert table.issues[0].severity == Severity.WARNING

    def test_without_header_row(self):
        table = parse("1,2\n3,4\n", ParseOptions(has_header=False))
        assert table.headers == ["Column 1", "Column 2"]
        assert table.row_count == 2
        assert table.rows[0].get("Column 2") == "2"


class TestParseFile:
    def test_rejects_unsupported_extension(self):
        with pytest.raises(UnsupportedFileTypeError) as exc_info:
            parse_file(b"a,b", "clients.xlsx")
        assert exc_info.value.extension == "xlsx"

    def test_unsupported_is_a_parse_error(self):
        with pytest.raises(ParseError):
            parse_file(b"a,b", "noextension")

    def test_tsv_defaults_to_tab(self):
        table = parse_file(b"a\tb\n1\t2\n", "export.TSV")
        assert table.delimiter == "\t"
        assert table.rows[0].get("b") == "2"

    def test_strips_utf8_bom(self):
        table = parse_file("\ufeffName,Email\nAda,a@b.com\n".encode("utf-8"), "c.csv")
        assert table.headers[0] == "Name"

    def test_size_limit(self):
        with pytest.raises(ParseError):
            parse_file(b"a,b\n1,2\n", "c.csv", max_bytes=4)

    def test_latin1_fallback(self):
        assert decode_bytes("Café".encode("latin-1")) == "Café"
