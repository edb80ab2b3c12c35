"""
regvm CPU Package
=================

Instruction set definitions shared by the assembler, the virtual machine
and the disassembler. Keeping the encoding tables in one place guarantees
that what the assembler emits is exactly what the VM decodes.

Usage:
    from regvm.cpu import Opcode, INSTRUCTION_TABLE, decode_opcode
"""

from regvm.cpu.isa import (
    # Core types
    Opcode,
    OperandKind,
    InstructionInfo,
    # Tables
    INSTRUCTION_TABLE,
    INSTRUCTION_LENGTHS,
    MNEMONICS,
    REGISTER_PAIR_OPCODES,
    COMPARISON_OPCODES,
    JUMP_OPCODES,
    # Registers
    REGISTER_COUNT,
    ZERO_REGISTER,
    RETURN_REGISTER,
    SP_REGISTER,
    REGISTER_NAMES,
    REGISTER_ALIASES,
    # Debug output
    DEBUG_FORMATS,
    # Helpers
    decode_opcode,
    instruction_length,
    lookup_register,
    format_debug_value,
    to_signed16,
    to_signed8,
)

__all__ = [
    "Opcode",
    "OperandKind",
    "InstructionInfo",
    "INSTRUCTION_TABLE",
    "INSTRUCTION_LENGTHS",
    "MNEMONICS",
    "REGISTER_PAIR_OPCODES",
    "COMPARISON_OPCODES",
    "JUMP_OPCODES",
    "REGISTER_COUNT",
    "ZERO_REGISTER",
    "RETURN_REGISTER",
    "SP_REGISTER",
    "REGISTER_NAMES",
    "REGISTER_ALIASES",
    "DEBUG_FORMATS",
    "decode_opcode",
    "instruction_length",
    "lookup_register",
    "format_debug_value",
    "to_signed16",
    "to_signed8",
]
