"""
regvm Assembly Language Lexer
=============================

This module converts raw source bytes into a flat stream of classified
tokens for the parser. Tokens do not copy their text: each one records a
byte span into the source, and the text is decoded only when the parser
asks for it.

Token Types
-----------
- IDENTIFIER: Mnemonics, register names, label names
- NUMBER: Decimal or hexadecimal integer literal
- COMMA, COLON: Delimiters
- NEWLINE: End of line (statement separator)
- EOF: End of input (always the last token)

Number Formats
--------------
| Format      | Example | Value |
|-------------|---------|-------|
| Decimal     | 123     | 123   |
| Hexadecimal | 0x1F    | 31    |

A literal is hexadecimal only when the ``0`` is followed by ``x`` and then
a *decimal* digit. ``0x1f`` is hex, but ``0xff`` is the number ``0``
followed by the identifier ``xff``. Existing sources rely on this, so it
is kept as is.

Comments and Unknown Bytes
--------------------------
``;`` starts a comment that runs to the end of the line. The lexer never
fails: any byte it does not recognise (spaces, tabs, ``\\r``, ``-``,
punctuation) is skipped without producing a token.

Example
-------
>>> from regvm.assembler.lexer import Lexer
>>> lexer = Lexer(b"loop: add a, b")
>>> [t.type.name for t in lexer.tokenize()]
['IDENTIFIER', 'COLON', 'IDENTIFIER', 'IDENTIFIER', 'COMMA', 'IDENTIFIER', 'EOF']
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator

from regvm.errors import SourceLocation


# =============================================================================
# Token Type Enumeration
# =============================================================================

class TokenType(Enum):
    """Token types for the assembly language."""
    IDENTIFIER = auto()
    NUMBER = auto()
    COMMA = auto()
    NEWLINE = auto()
    COLON = auto()
    EOF = auto()


# =============================================================================
# Token Data Class
# =============================================================================

@dataclass(frozen=True)
class Token:
    """
    A single token: its type and where it sits in the source.

    Attributes:
        type: The TokenType classification
        start: Byte offset of the first byte of the token
        end: Byte offset one past the last byte of the token
        line: Line number of the token start (1-indexed)
        column: Column number of the token start (1-indexed)
        filename: Name of the source file
    """
    type: TokenType
    start: int
    end: int
    line: int
    column: int
    filename: str = "<input>"

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.start}..{self.end}, {self.line}:{self.column})"

    @property
    def span(self) -> tuple[int, int]:
        """Byte span (start, end) into the source."""
        return (self.start, self.end)

    @property
    def location(self) -> SourceLocation:
        """Return a SourceLocation for error reporting."""
        return SourceLocation(self.filename, self.line, self.column)

    def text(self, source: bytes) -> str:
        """Decode the token text from the source it was scanned from."""
        return source[self.start:self.end].decode("utf-8", errors="replace")

    def int_value(self, source: bytes) -> int:
        """
        Numeric value of a NUMBER token.

        Hexadecimal literals keep their ``0x`` prefix in the span, so the
        base is recovered from the text itself.
        """
        text = self.text(source)
        if text[:2] == "0x":
            return int(text[2:], 16)
        return int(text)


# =============================================================================
# Lexer Implementation
# =============================================================================

_DIGITS = frozenset(b"0123456789")
_HEX_DIGITS = frozenset(b"0123456789abcdefABCDEF")
_IDENT_START = frozenset(b"abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ_")
_IDENT_CHARS = _IDENT_START | _DIGITS

_SINGLE_BYTE_TOKENS = {
    ord(","): TokenType.COMMA,
    ord(":"): TokenType.COLON,
    ord("\n"): TokenType.NEWLINE,
}


class Lexer:
    """
    Tokenizes assembly source.

    Usage:
        lexer = Lexer(source_bytes, filename)
        tokens = list(lexer.tokenize())

    Attributes:
        source: The source bytes being tokenized
        filename: Name of the source file (for error reporting)
    """

    def __init__(self, source: bytes | str, filename: str = "<input>"):
        """
        Initialize the lexer.

        Args:
            source: Assembly source; text is encoded as UTF-8
            filename: Name of the source file (for error messages)
        """
        if isinstance(source, str):
            source = source.encode("utf-8")
        self.source = bytes(source)
        self.filename = filename

        self._pos = 0
        self._line = 1
        self._line_start = 0

    def tokenize(self) -> Iterator[Token]:
        """
        Generate tokens from the source.

        Yields:
            Token objects, always terminated by a single EOF token
        """
        source = self.source
        length = len(source)

        while self._pos < length:
            byte = source[self._pos]

            if byte == ord(";"):
                self._skip_comment()
                continue

            if byte in _SINGLE_BYTE_TOKENS:
                yield self._make_token(_SINGLE_BYTE_TOKENS[byte], self._pos, self._pos + 1)
                self._pos += 1
                if byte == ord("\n"):
                    self._line += 1
                    self._line_start = self._pos
                continue

            if byte in _DIGITS:
                yield self._scan_number()
                continue

            if byte in _IDENT_START:
                yield self._scan_identifier()
                continue

            # Unrecognised byte (whitespace included)
            self._pos += 1

        yield self._make_token(TokenType.EOF, length, length)

    # =========================================================================
    # Scanning Helpers
    # =========================================================================

    def _make_token(self, token_type: TokenType, start: int, end: int) -> Token:
        return Token(
            type=token_type,
            start=start,
            end=end,
            line=self._line,
            column=start - self._line_start + 1,
            filename=self.filename,
        )

    def _skip_comment(self) -> None:
        """Skip to (but not past) the next newline."""
        end = self.source.find(b"\n", self._pos)
        self._pos = len(self.source) if end == -1 else end

    def _scan_number(self) -> Token:
        """Scan a decimal literal, or a hex literal behind the 0x<digit> lookahead."""
        source = self.source
        start = self._pos
        digits = _DIGITS

        if (
            source[start] == ord("0")
            and start + 2 < len(source)
            and source[start + 1] == ord("x")
            and source[start + 2] in _DIGITS
        ):
            digits = _HEX_DIGITS
            self._pos += 2

        while self._pos < len(source) and source[self._pos] in digits:
            self._pos += 1

        return self._make_token(TokenType.NUMBER, start, self._pos)

    def _scan_identifier(self) -> Token:
        source = self.source
        start = self._pos
        while self._pos < len(source) and source[self._pos] in _IDENT_CHARS:
            self._pos += 1
        return self._make_token(TokenType.IDENTIFIER, start, self._pos)

    # =========================================================================
    # Utility Methods
    # =========================================================================

    def line_text(self, line: int) -> str:
        """Return the text of a 1-indexed source line (for error context)."""
        lines = self.source.split(b"\n")
        if 1 <= line <= len(lines):
            return lines[line - 1].rstrip(b"\r").decode("utf-8", errors="replace")
        return ""


def read_all_tokens(source: bytes | str, filename: str = "<input>") -> list[Token]:
    """Tokenize a whole source unit into a list."""
    return list(Lexer(source, filename).tokenize())
