"""
Tests for the regvm Parser
==========================

These tests verify that each instruction form is parsed into the right
record, that register names and aliases resolve, and that malformed
lines are reported with their source position.
"""

import pytest

from regvm.assembler.parser import (
    DebugPrint,
    LabelDecl,
    LabelOp,
    NoOperand,
    RegOp,
    RegRegOp,
    SetImmediate,
    parse_source,
)
from regvm.cpu import Opcode
from regvm.errors import AssemblySyntaxError


def parse_one(source: str):
    instructions = parse_source(source)
    assert len(instructions) == 1
    return instructions[0]


# =============================================================================
# Instruction Forms
# =============================================================================

class TestInstructionForms:
    """Tests for each record type."""

    @pytest.mark.parametrize("mnemonic,opcode", [
        ("nop", Opcode.NOP),
        ("exit", Opcode.EXIT),
        ("ret", Opcode.RETURN),
        ("then", Opcode.THEN),
        ("else", Opcode.ELSE),
    ])
    def test_no_operand(self, mnemonic, opcode):
        inst = parse_one(mnemonic)
        assert isinstance(inst, NoOperand)
        assert inst.opcode == opcode

    def test_label_declaration(self):
        inst = parse_one("loop:")
        assert isinstance(inst, LabelDecl)
        assert inst.name == "loop"

    def test_label_named_like_mnemonic(self):
        """A head identifier followed by a colon is always a label."""
        inst = parse_one("nop:")
        assert inst == LabelDecl("nop", inst.location)

    @pytest.mark.parametrize("mnemonic,opcode", [
        ("jmp", Opcode.JUMP_FW),
        ("call", Opcode.CALL),
    ])
    def test_label_operand(self, mnemonic, opcode):
        inst = parse_one(f"{mnemonic} target")
        assert isinstance(inst, LabelOp)
        assert inst.opcode == opcode
        assert inst.label == "target"

    @pytest.mark.parametrize("mnemonic,opcode", [
        ("push", Opcode.PUSH),
        ("pop", Opcode.POP),
        ("neg", Opcode.NEG),
    ])
    def test_single_register(self, mnemonic, opcode):
        inst = parse_one(f"{mnemonic} c")
        assert isinstance(inst, RegOp)
        assert inst.opcode == opcode
        assert inst.reg == 3

    @pytest.mark.parametrize("mnemonic", [
        "mov", "add", "sub", "mul", "div", "mod",
        "gt", "lt", "ge", "le", "eq", "ne",
    ])
    def test_register_pair(self, mnemonic):
        inst = parse_one(f"{mnemonic} a, m")
        assert isinstance(inst, RegRegOp)
        assert inst.opcode.name.lower() == mnemonic
        assert (inst.dst, inst.src) == (1, 13)

    def test_debug_print(self):
        inst = parse_one("dbg b, 3")
        assert isinstance(inst, DebugPrint)
        assert (inst.reg, inst.mode) == (2, 3)

    def test_debug_print_hex_mode(self):
        assert parse_one("dbg a, 0x10").mode == 0x10

    def test_mnemonics_case_insensitive(self):
        assert parse_one("NOP").opcode == Opcode.NOP
        assert parse_one("Add A, B").opcode == Opcode.ADD


# =============================================================================
# Immediate Loads
# =============================================================================

class TestSetImmediate:
    """Tests for narrow/wide selection of set."""

    @pytest.mark.parametrize("value,opcode", [
        (0, Opcode.SET_BYTE),
        (5, Opcode.SET_BYTE),
        (255, Opcode.SET_BYTE),
        (256, Opcode.SET_SHORT),
        (1000, Opcode.SET_SHORT),
        (65535, Opcode.SET_SHORT),
    ])
    def test_width_follows_value(self, value, opcode):
        inst = parse_one(f"set a, {value}")
        assert isinstance(inst, SetImmediate)
        assert inst.opcode == opcode
        assert inst.value == value

    def test_hex_value(self):
        inst = parse_one("set a, 0x100")
        assert inst.opcode == Opcode.SET_SHORT
        assert inst.value == 256

    def test_value_too_large(self):
        with pytest.raises(AssemblySyntaxError, match="does not fit in 16 bits"):
            parse_source("set a, 65536")

    def test_minus_sign_ignored(self):
        assert parse_one("set a, -5").value == 5


# =============================================================================
# Registers
# =============================================================================

class TestRegisters:
    """Tests for register names and aliases."""

    @pytest.mark.parametrize("name,number", [
        ("z", 0),
        ("a", 1),
        ("m", 13),
        ("r1", 1),
        ("r13", 13),
        ("ret", 14),
        ("sp", 15),
        ("SP", 15),
        ("Z", 0),
    ])
    def test_register_names(self, name, number):
        assert parse_one(f"push {name}").reg == number

    @pytest.mark.parametrize("name", ["q", "r0", "r14", "r16", "x"])
    def test_unknown_register(self, name):
        with pytest.raises(AssemblySyntaxError, match=f"expected register name, found '{name}'"):
            parse_source(f"push {name}")


# =============================================================================
# Program Structure
# =============================================================================

class TestProgramStructure:
    """Tests for multi-line programs."""

    def test_blank_lines_and_comments_skipped(self):
        instructions = parse_source("\n\n  ; comment\n nop \n\n")
        assert len(instructions) == 1
        assert isinstance(instructions[0], NoOperand)

    def test_source_order_preserved(self):
        instructions = parse_source("start:\nset a, 1\njmp start\n")
        assert [type(i) for i in instructions] == [LabelDecl, SetImmediate, LabelOp]

    def test_locations_recorded(self):
        instructions = parse_source("nop\n\n   push a", filename="x.asm")
        location = instructions[1].location
        assert location.filename == "x.asm"
        assert (location.line, location.column) == (3, 4)

    def test_bytes_source(self):
        assert len(parse_source(b"nop\nexit\n")) == 2


# =============================================================================
# Syntax Errors
# =============================================================================

class TestSyntaxErrors:
    """Tests for malformed input."""

    def test_unknown_instruction(self):
        with pytest.raises(AssemblySyntaxError, match="unknown instruction 'frob'"):
            parse_source("frob a")

    def test_missing_comma(self):
        with pytest.raises(AssemblySyntaxError, match="expected COMMA but found IDENTIFIER"):
            parse_source("add a b")

    def test_missing_operand(self):
        with pytest.raises(AssemblySyntaxError, match="expected COMMA but found EOF"):
            parse_source("set a")

    def test_number_where_register_expected(self):
        with pytest.raises(AssemblySyntaxError, match="expected IDENTIFIER but found NUMBER"):
            parse_source("add a, 5")

    def test_number_where_label_expected(self):
        with pytest.raises(AssemblySyntaxError, match="expected IDENTIFIER but found NUMBER"):
            parse_source("jmp 5")

    def test_extra_operand(self):
        with pytest.raises(AssemblySyntaxError, match="expected NEWLINE"):
            parse_source("exit now")

    def test_label_and_instruction_on_one_line(self):
        with pytest.raises(AssemblySyntaxError, match="expected NEWLINE"):
            parse_source("loop: nop")

    def test_line_starting_with_delimiter(self):
        with pytest.raises(AssemblySyntaxError, match="unexpected token COMMA"):
            parse_source(", nop")

    def test_line_starting_with_number(self):
        with pytest.raises(AssemblySyntaxError, match="unexpected token NUMBER"):
            parse_source("5")

    def test_debug_mode_too_large(self):
        with pytest.raises(AssemblySyntaxError, match="debug mode 256 does not fit in a byte"):
            parse_source("dbg a, 256")

    def test_hex_letter_quirk_is_an_error(self):
        """0xff lexes as 0 then xff, so the line has a stray identifier."""
        with pytest.raises(AssemblySyntaxError):
            parse_source("set a, 0xff")

    def test_error_location_and_caret(self):
        with pytest.raises(AssemblySyntaxError) as exc_info:
            parse_source("nop\n  frob a", filename="bad.asm")
        error = exc_info.value
        assert error.location.line == 2
        assert error.location.column == 3
        assert error.source_line == "  frob a"
        message = str(error)
        assert message.startswith("bad.asm:2:3: error: unknown instruction 'frob'")
        assert message.splitlines()[2] == "      ^"

    def test_first_error_stops_parsing(self):
        with pytest.raises(AssemblySyntaxError) as exc_info:
            parse_source("frob\nblah")
        assert "frob" in exc_info.value.message
