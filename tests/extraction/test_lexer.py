"""Tests for the literal and comment aware lexer."""

import pytest
from testradius.extraction.lexer import (
    LineIndex,
    expression_end,
    find_block_end,
    find_closing,
    mask,
    normalize_whitespace,
)


class TestFindBlockEnd:
    """Test brace matching."""

    def test_nested_blocks(self):
        text = "func f() { if x { y() } }"
        open_index = text.index("{")
        assert find_block_end(text, open_index) == len(text) - 1

    def test_braces_in_raw_string_ignored(self):
        text = 'func f() string { return `resource "a" "b" {` }'
        open_index = text.index("{")
        assert find_block_end(text, open_index) == len(text) - 1

    def test_braces_in_comments_and_runes_ignored(self):
        text = "{ // }\n /* } */ r := '}'; s := \"}\" }"
        assert find_block_end(text, 0) == len(text) - 1

    def test_escaped_quote_in_string(self):
        text = '{ s := "a\\"}" }'
        assert find_block_end(text, 0) == len(text) - 1

    def test_unbalanced_returns_minus_one(self):
        assert find_block_end("func f() { if x {", 9) == -1

    def test_parentheses(self):
        text = "basic(data, fmt.Sprintf(\")\"))"
        assert find_closing(text, text.index("(")) == len(text) - 1

    def test_not_an_opener(self):
        with pytest.raises(ValueError):
            find_closing("abc", 0)


class TestMask:
    """Test masking of literals and comments."""

    def test_preserves_length_and_lines(self):
        text = 'x := `a\nb` // c\ny := "d"'
        masked = mask(text)
        assert len(masked) == len(text)
        assert masked.count("\n") == text.count("\n")

    def test_blanks_contents_keeps_delimiters(self):
        masked = mask('s := "azurerm_subnet"')
        assert "azurerm_subnet" not in masked
        assert masked.startswith('s := "')
        assert masked.endswith('"')

    def test_comments_only(self):
        text = 'a := "keep" // drop'
        masked = mask(text, strings=False)
        assert '"keep"' in masked
        assert "drop" not in masked


class TestExpressionEnd:
    """Test expression boundary detection."""

    def test_stops_at_top_level_comma(self):
        text = "r.basic(data, 1), Check: x"
        assert text[:expression_end(text, 0)] == "r.basic(data, 1)"

    def test_stops_at_unmatched_close(self):
        text = "r.basic(data)}"
        assert text[:expression_end(text, 0)] == "r.basic(data)"

    def test_spans_lines_inside_brackets(self):
        text = "func() string {\n return r.basic(data)\n},"
        assert text[:expression_end(text, 0)] == text[:-1]


class TestLineIndex:
    """Test offset to line mapping."""

    def test_line_of(self):
        text = "a\nbb\nccc"
        index = LineIndex(text)
        assert index.line_of(0) == 1
        assert index.line_of(text.index("bb")) == 2
        assert index.line_of(text.index("ccc") + 2) == 3
        assert index.line_count == 3

    def test_normalize_whitespace(self):
        assert normalize_whitespace('  resource   "azurerm_subnet"\t"x" {  ') == 'resource "azurerm_subnet" "x" {'
