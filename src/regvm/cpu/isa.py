"""
regvm Instruction Set Definition
================================

This module is the single source of truth for the bytecode encoding. The
assembler (which encodes instructions), the virtual machine (which decodes
and executes them) and the disassembler all read from these tables.

Instruction Format
------------------
Every instruction is an opcode byte followed by a fixed number of operand
bytes that depends only on the opcode:

    opcode [operand bytes]

| Length | Opcodes                                              |
|--------|------------------------------------------------------|
| 1      | nop, exit, then, else, ret                           |
| 2      | jmp (fw/bw), push, pop, neg                          |
| 3      | set (byte), add..mod, comparisons, call, mov, dbg    |
| 4      | set (short)                                          |

Multi-byte immediates and call targets are big-endian. Jump operands are a
single byte holding the distance from the jump opcode to its target.

Registers
---------
Sixteen 16-bit registers. Slot 0 (``z``) always reads zero, slot 14
(``ret``) receives the return address on ``ret``, slot 15 (``sp``) is the
stack pointer. The general purpose slots 1-13 are named ``a`` to ``m`` and
also answer to ``r1`` to ``r13``.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum, auto
from typing import Optional

from regvm.errors import InvalidOpcodeError


# =============================================================================
# Opcodes
# =============================================================================

class Opcode(IntEnum):
    """Opcode byte values. The numbering is part of the image format."""
    NOP = 0x00
    EXIT = 0x01
    JUMP_FW = 0x02
    JUMP_BW = 0x03
    THEN = 0x04
    ELSE = 0x05
    SET_BYTE = 0x06
    SET_SHORT = 0x07
    PUSH = 0x08
    POP = 0x09
    ADD = 0x0A
    SUB = 0x0B
    MUL = 0x0C
    DIV = 0x0D
    MOD = 0x0E
    NEG = 0x0F
    GT = 0x10
    LT = 0x11
    GE = 0x12
    LE = 0x13
    EQ = 0x14
    NE = 0x15
    RETURN = 0x16
    CALL = 0x17
    MOV = 0x18
    DEBUG = 0x19


class OperandKind(Enum):
    """How the parser reads an operand and how it is encoded."""
    REGISTER = auto()   # Register name, one byte
    IMMEDIATE = auto()  # Integer literal, one or two bytes
    MODE = auto()       # Debug print mode, one byte
    LABEL = auto()      # Label identifier, resolved by the assembler


@dataclass(frozen=True)
class InstructionInfo:
    """
    Encoding details for one opcode.

    Attributes:
        opcode: The opcode byte
        mnemonic: Source mnemonic (the canonical spelling)
        size: Total encoded size in bytes, opcode included
    """
    opcode: Opcode
    mnemonic: str
    size: int

    def __repr__(self) -> str:
        return f"InstructionInfo({self.mnemonic}, opcode=${self.opcode:02X}, size={self.size})"


# =============================================================================
# Instruction Table
# =============================================================================

INSTRUCTION_TABLE: dict[Opcode, InstructionInfo] = {
    Opcode.NOP: InstructionInfo(Opcode.NOP, "nop", 1),
    Opcode.EXIT: InstructionInfo(Opcode.EXIT, "exit", 1),
    Opcode.JUMP_FW: InstructionInfo(Opcode.JUMP_FW, "jmp", 2),
    Opcode.JUMP_BW: InstructionInfo(Opcode.JUMP_BW, "jmp", 2),
    Opcode.THEN: InstructionInfo(Opcode.THEN, "then", 1),
    Opcode.ELSE: InstructionInfo(Opcode.ELSE, "else", 1),
    Opcode.SET_BYTE: InstructionInfo(Opcode.SET_BYTE, "set", 3),
    Opcode.SET_SHORT: InstructionInfo(Opcode.SET_SHORT, "set", 4),
    Opcode.PUSH: InstructionInfo(Opcode.PUSH, "push", 2),
    Opcode.POP: InstructionInfo(Opcode.POP, "pop", 2),
    Opcode.ADD: InstructionInfo(Opcode.ADD, "add", 3),
    Opcode.SUB: InstructionInfo(Opcode.SUB, "sub", 3),
    Opcode.MUL: InstructionInfo(Opcode.MUL, "mul", 3),
    Opcode.DIV: InstructionInfo(Opcode.DIV, "div", 3),
    Opcode.MOD: InstructionInfo(Opcode.MOD, "mod", 3),
    Opcode.NEG: InstructionInfo(Opcode.NEG, "neg", 2),
    Opcode.GT: InstructionInfo(Opcode.GT, "gt", 3),
    Opcode.LT: InstructionInfo(Opcode.LT, "lt", 3),
    Opcode.GE: InstructionInfo(Opcode.GE, "ge", 3),
    Opcode.LE: InstructionInfo(Opcode.LE, "le", 3),
    Opcode.EQ: InstructionInfo(Opcode.EQ, "eq", 3),
    Opcode.NE: InstructionInfo(Opcode.NE, "ne", 3),
    Opcode.RETURN: InstructionInfo(Opcode.RETURN, "ret", 1),
    Opcode.CALL: InstructionInfo(Opcode.CALL, "call", 3),
    Opcode.MOV: InstructionInfo(Opcode.MOV, "mov", 3),
    Opcode.DEBUG: InstructionInfo(Opcode.DEBUG, "dbg", 3),
}

# Length table indexed by opcode value. Unassigned bytes map to None.
_ASSIGNED_OPCODES = {opcode.value: opcode for opcode in Opcode}

INSTRUCTION_LENGTHS: tuple[Optional[int], ...] = tuple(
    INSTRUCTION_TABLE[_ASSIGNED_OPCODES[value]].size if value in _ASSIGNED_OPCODES else None
    for value in range(256)
)


def decode_opcode(value: int, pc: Optional[int] = None) -> Opcode:
    """
    Decode a raw byte into an Opcode.

    Args:
        value: The byte read from memory
        pc: Address the byte was read from (for the fault message)

    Raises:
        InvalidOpcodeError: If the byte is not an assigned opcode
    """
    opcode = _ASSIGNED_OPCODES.get(value)
    if opcode is None:
        raise InvalidOpcodeError(value, pc)
    return opcode


def instruction_length(value: int, pc: Optional[int] = None) -> int:
    """Encoded length of the instruction whose opcode byte is ``value``."""
    length = INSTRUCTION_LENGTHS[value & 0xFF]
    if length is None:
        raise InvalidOpcodeError(value, pc)
    return length


# =============================================================================
# Source Mnemonics
# =============================================================================
# Mnemonic -> (opcode, operand kinds). "set" and "jmp" map to the first of
# their two encodings; the parser and code generator pick the final form.

MNEMONICS: dict[str, tuple[Opcode, tuple[OperandKind, ...]]] = {
    "nop": (Opcode.NOP, ()),
    "exit": (Opcode.EXIT, ()),
    "ret": (Opcode.RETURN, ()),
    "then": (Opcode.THEN, ()),
    "else": (Opcode.ELSE, ()),
    "jmp": (Opcode.JUMP_FW, (OperandKind.LABEL,)),
    "call": (Opcode.CALL, (OperandKind.LABEL,)),
    "push": (Opcode.PUSH, (OperandKind.REGISTER,)),
    "pop": (Opcode.POP, (OperandKind.REGISTER,)),
    "neg": (Opcode.NEG, (OperandKind.REGISTER,)),
    "mov": (Opcode.MOV, (OperandKind.REGISTER, OperandKind.REGISTER)),
    "add": (Opcode.ADD, (OperandKind.REGISTER, OperandKind.REGISTER)),
    "sub": (Opcode.SUB, (OperandKind.REGISTER, OperandKind.REGISTER)),
    "mul": (Opcode.MUL, (OperandKind.REGISTER, OperandKind.REGISTER)),
    "div": (Opcode.DIV, (OperandKind.REGISTER, OperandKind.REGISTER)),
    "mod": (Opcode.MOD, (OperandKind.REGISTER, OperandKind.REGISTER)),
    "gt": (Opcode.GT, (OperandKind.REGISTER, OperandKind.REGISTER)),
    "lt": (Opcode.LT, (OperandKind.REGISTER, OperandKind.REGISTER)),
    "ge": (Opcode.GE, (OperandKind.REGISTER, OperandKind.REGISTER)),
    "le": (Opcode.LE, (OperandKind.REGISTER, OperandKind.REGISTER)),
    "eq": (Opcode.EQ, (OperandKind.REGISTER, OperandKind.REGISTER)),
    "ne": (Opcode.NE, (OperandKind.REGISTER, OperandKind.REGISTER)),
    "set": (Opcode.SET_BYTE, (OperandKind.REGISTER, OperandKind.IMMEDIATE)),
    "dbg": (Opcode.DEBUG, (OperandKind.REGISTER, OperandKind.MODE)),
}

# Opcodes whose two operand bytes are (dst, src) or (left, right) registers
REGISTER_PAIR_OPCODES = frozenset({
    Opcode.MOV, Opcode.ADD, Opcode.SUB, Opcode.MUL, Opcode.DIV, Opcode.MOD,
    Opcode.GT, Opcode.LT, Opcode.GE, Opcode.LE, Opcode.EQ, Opcode.NE,
})

COMPARISON_OPCODES = frozenset({
    Opcode.GT, Opcode.LT, Opcode.GE, Opcode.LE, Opcode.EQ, Opcode.NE,
})

JUMP_OPCODES = frozenset({Opcode.JUMP_FW, Opcode.JUMP_BW})


# =============================================================================
# Registers
# =============================================================================

REGISTER_COUNT = 16
ZERO_REGISTER = 0
RETURN_REGISTER = 14
SP_REGISTER = 15

# Canonical register names, indexed by register number
REGISTER_NAMES: tuple[str, ...] = (
    "z", "a", "b", "c", "d", "e", "f", "g",
    "h", "i", "j", "k", "l", "m", "ret", "sp",
)

# Every accepted spelling -> register number
REGISTER_ALIASES: dict[str, int] = {name: index for index, name in enumerate(REGISTER_NAMES)}
REGISTER_ALIASES.update({f"r{index}": index for index in range(1, 14)})


def lookup_register(name: str) -> Optional[int]:
    """Return the register number for a name or alias, or None."""
    return REGISTER_ALIASES.get(name.lower())


# =============================================================================
# Debug Print Modes
# =============================================================================
# The low nibble selects the rendering. Modes 0x00-0x04 end the output
# with a line break, modes 0x10-0x14 do not. Any other mode dumps the
# whole machine state.

DEBUG_FORMATS: dict[int, str] = {
    0: "{:d}",      # Decimal
    1: "{:X}",      # Hexadecimal
    2: "{:05d}",    # Zero-padded decimal
    3: "{:04X}",    # Zero-padded hexadecimal
    4: "0x{:04X}",  # Prefixed hexadecimal
}

DEBUG_NEWLINE_BASE = 0x00
DEBUG_INLINE_BASE = 0x10


def format_debug_value(value: int, mode: int) -> Optional[str]:
    """
    Render a register value for the ``dbg`` instruction.

    Args:
        value: Unsigned 16-bit register value
        mode: Debug mode byte

    Returns:
        The rendered text (with a trailing newline for line modes), or
        None if the mode requests a full machine state dump.
    """
    if DEBUG_NEWLINE_BASE <= mode < DEBUG_NEWLINE_BASE + len(DEBUG_FORMATS):
        return DEBUG_FORMATS[mode - DEBUG_NEWLINE_BASE].format(value) + "\n"
    if DEBUG_INLINE_BASE <= mode < DEBUG_INLINE_BASE + len(DEBUG_FORMATS):
        return DEBUG_FORMATS[mode - DEBUG_INLINE_BASE].format(value)
    return None


# =============================================================================
# Value Helpers
# =============================================================================

def to_signed16(value: int) -> int:
    """Reinterpret an unsigned 16-bit value as two's-complement signed."""
    value &= 0xFFFF
    return value - 0x10000 if value & 0x8000 else value


def to_signed8(value: int) -> int:
    """Reinterpret an unsigned byte as two's-complement signed."""
    value &= 0xFF
    return value - 0x100 if value & 0x80 else value
