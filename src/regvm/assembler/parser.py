"""
regvm Assembly Language Parser
==============================

This module turns the lexer's token stream into an ordered list of
structured instruction records that the code generator can encode.

Grammar
-------
A program is a sequence of lines separated by NEWLINE tokens::

    program   := line (NEWLINE line)* EOF
    line      := <empty> | label_decl | statement
    label_decl:= IDENTIFIER ":"
    statement := MNEMONIC [operand ("," operand)*]

Blank lines are skipped. A head identifier followed by a colon is always a
label declaration; otherwise it must be a known mnemonic.

Instruction Records
-------------------
| Record         | Mnemonics                                          |
|----------------|----------------------------------------------------|
| LabelDecl      | ``name:``                                          |
| NoOperand      | nop, exit, ret, then, else                         |
| LabelOp        | jmp, call                                          |
| RegOp          | push, pop, neg                                     |
| RegRegOp       | mov, add, sub, mul, div, mod, gt, lt, ge, le, eq, ne |
| SetImmediate   | set (narrow form <= 255, wide form otherwise)      |
| DebugPrint     | dbg                                                |

The narrow/wide choice for ``set`` is made here, once, from the literal's
value; the code generator never revisits it.
"""

from dataclasses import dataclass
from typing import Union

from regvm.errors import AssemblySyntaxError, SourceLocation
from regvm.assembler.lexer import Token, TokenType, Lexer
from regvm.cpu import (
    Opcode,
    OperandKind,
    MNEMONICS,
    REGISTER_PAIR_OPCODES,
    lookup_register,
)


# =============================================================================
# Instruction Records
# =============================================================================

@dataclass(frozen=True)
class LabelDecl:
    """Label declaration. Emits no bytes."""
    name: str
    location: SourceLocation


@dataclass(frozen=True)
class NoOperand:
    """nop, exit, ret and the two conditional skip markers."""
    opcode: Opcode
    location: SourceLocation


@dataclass(frozen=True)
class LabelOp:
    """Unconditional jump or subroutine call to a label."""
    opcode: Opcode
    label: str
    location: SourceLocation


@dataclass(frozen=True)
class RegOp:
    """push, pop, neg."""
    opcode: Opcode
    reg: int
    location: SourceLocation


@dataclass(frozen=True)
class RegRegOp:
    """
    Two-register instruction.

    For mov and arithmetic ``dst`` is the destination; for comparisons the
    pair is (left, right).
    """
    opcode: Opcode
    dst: int
    src: int
    location: SourceLocation


@dataclass(frozen=True)
class SetImmediate:
    """Load immediate. ``opcode`` is SET_BYTE or SET_SHORT."""
    opcode: Opcode
    reg: int
    value: int
    location: SourceLocation


@dataclass(frozen=True)
class DebugPrint:
    """Print a register in the given mode (or dump state)."""
    reg: int
    mode: int
    location: SourceLocation


ParsedInstruction = Union[LabelDecl, NoOperand, LabelOp, RegOp, RegRegOp, SetImmediate, DebugPrint]


# =============================================================================
# Parser Implementation
# =============================================================================

class Parser:
    """
    Parses a token stream into instruction records.

    The parser borrows the token list and the source bytes the tokens point
    into; it must not outlive either.

    Usage:
        lexer = Lexer(source, filename)
        parser = Parser(list(lexer.tokenize()), lexer.source, filename)
        instructions = parser.parse()
    """

    def __init__(self, tokens: list[Token], source: bytes, filename: str = "<input>"):
        """
        Initialize the parser.

        Args:
            tokens: List of tokens from the lexer (ending in EOF)
            source: The source bytes the token spans refer to
            filename: Source filename for error reporting
        """
        self._tokens = tokens
        self._source = source
        self._filename = filename
        self._pos = 0

    def parse(self) -> list[ParsedInstruction]:
        """
        Parse all tokens into instruction records.

        Returns:
            Instruction records in source order

        Raises:
            AssemblySyntaxError: On the first syntax error
        """
        instructions: list[ParsedInstruction] = []

        while True:
            token = self._current()
            if token.type == TokenType.EOF:
                break
            if token.type == TokenType.NEWLINE:
                self._advance()
                continue
            if token.type != TokenType.IDENTIFIER:
                raise self._error(f"unexpected token {token.type.name}", token)

            instructions.append(self._parse_line())

        return instructions

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _current(self) -> Token:
        if self._pos >= len(self._tokens):
            return self._tokens[-1]
        return self._tokens[self._pos]

    def _advance(self) -> Token:
        token = self._current()
        self._pos += 1
        return token

    def _expect(self, token_type: TokenType) -> Token:
        token = self._current()
        if token.type != token_type:
            raise self._error(
                f"expected {token_type.name} but found {token.type.name}", token
            )
        return self._advance()

    def _error(self, message: str, token: Token) -> AssemblySyntaxError:
        """Build a syntax error pointing at ``token``."""
        return AssemblySyntaxError(
            message,
            token.location,
            source_line=self._line_text(token),
        )

    def _line_text(self, token: Token) -> str:
        start = self._source.rfind(b"\n", 0, token.start) + 1
        end = self._source.find(b"\n", token.start)
        if end == -1:
            end = len(self._source)
        return self._source[start:end].rstrip(b"\r").decode("utf-8", errors="replace")

    # =========================================================================
    # Line Parsing
    # =========================================================================

    def _parse_line(self) -> ParsedInstruction:
        head = self._advance()
        name = head.text(self._source)

        if self._current().type == TokenType.COLON:
            self._advance()
            instruction: ParsedInstruction = LabelDecl(name, head.location)
        else:
            instruction = self._parse_statement(head, name)

        self._end_of_line()
        return instruction

    def _end_of_line(self) -> None:
        """A statement ends at NEWLINE (consumed) or EOF (left in place)."""
        if self._current().type != TokenType.EOF:
            self._expect(TokenType.NEWLINE)

    def _parse_statement(self, head: Token, name: str) -> ParsedInstruction:
        entry = MNEMONICS.get(name.lower())
        if entry is None:
            raise self._error(f"unknown instruction '{name}'", head)

        opcode, kinds = entry
        location = head.location

        if not kinds:
            return NoOperand(opcode, location)

        if kinds == (OperandKind.LABEL,):
            return LabelOp(opcode, self._parse_label(), location)

        if kinds == (OperandKind.REGISTER,):
            return RegOp(opcode, self._parse_register(), location)

        first = self._parse_register()
        self._expect(TokenType.COMMA)

        if opcode in REGISTER_PAIR_OPCODES:
            return RegRegOp(opcode, first, self._parse_register(), location)

        if opcode == Opcode.DEBUG:
            mode_token = self._current()
            mode = self._parse_int()
            if mode > 0xFF:
                raise self._error(f"debug mode {mode} does not fit in a byte", mode_token)
            return DebugPrint(first, mode, location)

        # set: the literal's magnitude picks the narrow or wide encoding
        value_token = self._current()
        value = self._parse_int()
        if value > 0xFFFF:
            raise self._error(f"immediate value {value} does not fit in 16 bits", value_token)
        wide = Opcode.SET_SHORT if value > 0xFF else Opcode.SET_BYTE
        return SetImmediate(wide, first, value, location)

    # =========================================================================
    # Operand Parsing
    # =========================================================================

    def _parse_register(self) -> int:
        token = self._expect(TokenType.IDENTIFIER)
        text = token.text(self._source)
        reg = lookup_register(text)
        if reg is None:
            raise self._error(f"expected register name, found '{text}'", token)
        return reg

    def _parse_label(self) -> str:
        return self._expect(TokenType.IDENTIFIER).text(self._source)

    def _parse_int(self) -> int:
        return self._expect(TokenType.NUMBER).int_value(self._source)


# =============================================================================
# Convenience Function
# =============================================================================

def parse_source(source: bytes | str, filename: str = "<input>") -> list[ParsedInstruction]:
    """
    Tokenize and parse a source unit.

    Args:
        source: Assembly source (text or bytes)
        filename: Filename for error messages

    Returns:
        Instruction records in source order
    """
    lexer = Lexer(source, filename)
    tokens = list(lexer.tokenize())
    return Parser(tokens, lexer.source, filename).parse()
