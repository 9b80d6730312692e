"""Tests for delimiter detection and line parsing."""

from order_importer.parsers.csv_text import (
    detect_delimiter,
    find_header,
    parse_csv_text,
    parse_line,
)
from order_importer.services.staging import content_hash


class TestDetectDelimiter:
    def test_comma_is_default(self):
        assert detect_delimiter("a,b,c\n1,2,3") == ","
        assert detect_delimiter("single column") == ","

    def test_semicolon(self):
        assert detect_delimiter("a;b;c\n1;2,5;3") == ";"

    def test_tab(self):
        assert detect_delimiter("a\tb\tc\n1\t2\t3") == "\t"

    def test_tie_between_comma_and_semicolon_picks_comma(self):
        assert detect_delimiter("a,b;c") == ","


class TestParseLine:
    def test_simple_fields_are_trimmed(self):
        assert parse_line(" a , b,c ", ",") == ["a", "b", "c"]

    def test_quoted_delimiter_is_kept(self):
        assert parse_line('ORD1,"Rua X, 123",2', ",") == ["ORD1", "Rua X, 123", "2"]

    def test_doubled_quotes_are_literal(self):
        assert parse_line('x,"say ""hi""",y', ",") == ["x", 'say "hi"', "y"]

    def test_space_before_quote(self):
        assert parse_line('ORD1, "XL", "Camisa Polo"', ",") == ["ORD1", "XL", "Camisa Polo"]

    def test_trailing_empty_field(self):
        assert parse_line("a,b,", ",") == ["a", "b", ""]

    def test_other_delimiter(self):
        assert parse_line('a;"b;c";d', ";") == ["a", "b;c", "d"]


class TestParseCsvText:
    def test_headers_and_rows(self):
        parsed = parse_csv_text("Order ID,Qty\nA1,2\nA2,3\n")
        assert parsed.headers == ["Order ID", "Qty"]
        assert parsed.rows == [
            {"Order ID": "A1", "Qty": "2"},
            {"Order ID": "A2", "Qty": "3"},
        ]
        assert parsed.delimiter == ","

    def test_header_quotes_and_bom_are_stripped(self):
        parsed = parse_csv_text("\ufeff'Order ID';\"Qty\"\nA1;2\n")
        assert parsed.headers == ["Order ID", "Qty"]
        assert parsed.delimiter == ";"

    def test_blank_lines_and_empty_footers_are_skipped(self):
        text = "Order ID,Qty\r\n\r\nA1,2\r\n,\r\n  \r\n"
        parsed = parse_csv_text(text)
        assert parsed.rows == [{"Order ID": "A1", "Qty": "2"}]

    def test_repeated_header_names_keep_every_column(self):
        parsed = parse_csv_text("Order ID,Qty,Qty,Qty_2\nA1,1,2,3\n")
        assert parsed.headers == ["Order ID", "Qty", "Qty_2", "Qty_2_2"]
        assert parsed.rows == [{"Order ID": "A1", "Qty": "1", "Qty_2": "2", "Qty_2_2": "3"}]

    def test_repeated_header_value_changes_staging_hash(self):
        first = parse_csv_text("Order ID,Note,Note\nA1,x,first\n").rows[0]
        second = parse_csv_text("Order ID,Note,Note\nA1,x,second\n").rows[0]
        assert content_hash(first) != content_hash(second)

    def test_short_rows_are_padded(self):
        parsed = parse_csv_text("a,b,c\n1\n")
        assert parsed.rows == [{"a": "1", "b": "", "c": ""}]

    def test_extra_cells_are_ignored(self):
        parsed = parse_csv_text("a,b\n1,2,3\n")
        assert parsed.rows == [{"a": "1", "b": "2"}]

    def test_empty_text(self):
        parsed = parse_csv_text("\n \n")
        assert parsed.headers == []
        assert parsed.rows == []


class TestFindHeader:
    def test_ignores_case_and_punctuation(self):
        assert find_header(["order_id", "Qty"], ["Order ID"]) == "order_id"

    def test_first_matching_header_wins(self):
        headers = ["Tracking No", "Tracking Number"]
        assert find_header(headers, ["Tracking Number", "Tracking No"]) == "Tracking No"

    def test_missing(self):
        assert find_header(["Qty"], ["Order ID"]) is None
