"""
Tests for the regvm Lexer
=========================

These tests verify token classification, byte spans, line/column
tracking and the lexer's handling of bytes it does not recognise.
"""

import pytest

from regvm.assembler.lexer import Lexer, Token, TokenType, read_all_tokens


def token_types(source) -> list[TokenType]:
    return [t.type for t in read_all_tokens(source)]


def token_texts(source) -> list[str]:
    lexer = Lexer(source)
    return [t.text(lexer.source) for t in lexer.tokenize() if t.type != TokenType.EOF]


# =============================================================================
# Token Classification
# =============================================================================

class TestTokenClassification:
    """Tests for basic token types."""

    def test_empty_source_yields_only_eof(self):
        tokens = read_all_tokens("")
        assert len(tokens) == 1
        assert tokens[0].type == TokenType.EOF
        assert tokens[0].span == (0, 0)

    def test_instruction_with_label(self):
        assert token_types("loop: add a, b") == [
            TokenType.IDENTIFIER,
            TokenType.COLON,
            TokenType.IDENTIFIER,
            TokenType.IDENTIFIER,
            TokenType.COMMA,
            TokenType.IDENTIFIER,
            TokenType.EOF,
        ]

    def test_newline_is_a_token(self):
        assert token_types("nop\nexit") == [
            TokenType.IDENTIFIER,
            TokenType.NEWLINE,
            TokenType.IDENTIFIER,
            TokenType.EOF,
        ]

    def test_identifier_characters(self):
        """Identifiers start with a letter or underscore and may contain digits."""
        assert token_texts("_start loop2 R13") == ["_start", "loop2", "R13"]

    def test_digits_then_letters_split(self):
        assert token_types("123abc")[:2] == [TokenType.NUMBER, TokenType.IDENTIFIER]
        assert token_texts("123abc") == ["123", "abc"]

    def test_eof_is_always_last(self):
        tokens = read_all_tokens("set a, 1\n")
        assert tokens[-1].type == TokenType.EOF
        assert sum(1 for t in tokens if t.type == TokenType.EOF) == 1


# =============================================================================
# Numbers
# =============================================================================

class TestNumbers:
    """Tests for decimal and hexadecimal literals."""

    @pytest.mark.parametrize("text,value", [
        ("0", 0),
        ("42", 42),
        ("09", 9),
        ("65535", 65535),
        ("0x1F", 31),
        ("0x1f", 31),
        ("0x10", 16),
        ("0x0", 0),
        ("0x1234", 0x1234),
    ])
    def test_literal_value(self, text, value):
        lexer = Lexer(text)
        tokens = list(lexer.tokenize())
        assert tokens[0].type == TokenType.NUMBER
        assert tokens[0].int_value(lexer.source) == value
        assert tokens[1].type == TokenType.EOF

    def test_hex_requires_decimal_digit_after_prefix(self):
        """0xff is the number 0 followed by the identifier xff."""
        assert token_types("0xff") == [TokenType.NUMBER, TokenType.IDENTIFIER, TokenType.EOF]
        assert token_texts("0xff") == ["0", "xff"]

    def test_bare_hex_prefix_at_end_of_input(self):
        assert token_texts("0x") == ["0", "x"]

    def test_hex_stops_at_non_hex_letter(self):
        assert token_texts("0x1g") == ["0x1", "g"]

    def test_minus_sign_is_skipped(self):
        """There are no negative literals: '-' is an unrecognised byte."""
        assert token_texts("set a, -5") == ["set", "a", ",", "5"]


# =============================================================================
# Comments and Skipped Bytes
# =============================================================================

class TestCommentsAndWhitespace:
    """Tests for comments and bytes that produce no token."""

    def test_comment_runs_to_end_of_line(self):
        assert token_types("nop ; do nothing\nexit") == [
            TokenType.IDENTIFIER,
            TokenType.NEWLINE,
            TokenType.IDENTIFIER,
            TokenType.EOF,
        ]

    def test_comment_only_source(self):
        assert token_types("; just a comment") == [TokenType.EOF]

    def test_comment_hides_delimiters(self):
        assert token_types("; a, b: c") == [TokenType.EOF]

    def test_tabs_and_carriage_returns_skipped(self):
        assert token_types("\tnop\r\n") == [
            TokenType.IDENTIFIER,
            TokenType.NEWLINE,
            TokenType.EOF,
        ]

    def test_unknown_punctuation_skipped(self):
        assert token_texts("push (a)!") == ["push", "a"]

    def test_non_ascii_bytes_skipped(self):
        assert token_texts("nop é") == ["nop"]


# =============================================================================
# Positions and Spans
# =============================================================================

class TestPositions:
    """Tests for byte spans and line/column tracking."""

    def test_span_points_into_source(self):
        lexer = Lexer(b"  set a, 1")
        set_token = next(lexer.tokenize())
        assert set_token.span == (2, 5)
        assert lexer.source[2:5] == b"set"

    def test_line_and_column(self):
        tokens = read_all_tokens("nop\n  push a")
        push = tokens[2]
        assert push.line == 2
        assert push.column == 3
        reg = tokens[3]
        assert (reg.line, reg.column) == (2, 8)

    def test_newline_token_on_line_it_ends(self):
        tokens = read_all_tokens("nop\nexit")
        assert tokens[1].type == TokenType.NEWLINE
        assert tokens[1].line == 1

    def test_location_carries_filename(self):
        tokens = read_all_tokens("nop", filename="prog.asm")
        location = tokens[0].location
        assert location.filename == "prog.asm"
        assert str(location) == "prog.asm:1:1"

    def test_text_input_is_encoded(self):
        assert Lexer("nop").source == b"nop"

    def test_line_text(self):
        lexer = Lexer("nop\r\n  jmp top\n")
        assert lexer.line_text(1) == "nop"
        assert lexer.line_text(2) == "  jmp top"
        assert lexer.line_text(99) == ""

    def test_token_is_immutable(self):
        token = read_all_tokens("nop")[0]
        assert isinstance(token, Token)
        with pytest.raises(AttributeError):
            token.line = 5
