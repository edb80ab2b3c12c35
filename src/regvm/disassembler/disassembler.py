"""
regvm Disassembler
==================

Disassembles regvm program images into human-readable assembly language.
This is the inverse operation of the assembler's code generation.

Images are loaded at address 0, so a byte's offset in the buffer is also
its address. Decoding is linear: each instruction's length comes from the
shared length table, and decoding resumes right after it.

Rendering:
    - Registers by canonical name (z, a..m, ret, sp)
    - Immediates in decimal, so the output reassembles
    - Jump and call targets as absolute ``$XXXX`` addresses, or as the
      label name when a symbol is known for the target
    - Unassigned opcode bytes, and instructions cut off by the end of the
      buffer, as ``.byte $xx``

Usage:
    disasm = Disassembler()

    # Disassemble a whole image
    instructions = disasm.disassemble(image)

    # Disassemble ten instructions from address $0040
    instructions = disasm.disassemble(memory, start=0x40, count=10)
    print(disasm.format_listing(instructions))
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from ..cpu import (
    INSTRUCTION_LENGTHS,
    INSTRUCTION_TABLE,
    REGISTER_COUNT,
    REGISTER_NAMES,
    DEBUG_FORMATS,
    Opcode,
    to_signed8,
)


# =============================================================================
# Data Structures
# =============================================================================

@dataclass
class DisassembledInstruction:
    """
    Represents a single disassembled instruction.

    Attributes:
        address: Memory address of the instruction
        opcode: The opcode byte
        mnemonic: The instruction mnemonic (e.g., "set", "jmp")
        operands: Formatted operand string for display
        raw_bytes: All bytes comprising this instruction
        comment: Optional comment (jump distance, debug mode, warnings)
    """
    address: int
    opcode: int
    mnemonic: str
    operands: str
    raw_bytes: bytes
    comment: str = ""

    @property
    def size(self) -> int:
        return len(self.raw_bytes)

    def __str__(self) -> str:
        return self.to_text()

    def to_text(self, show_bytes: bool = True) -> str:
        """Format as assembly line: ADDRESS: [BYTES] MNEMONIC OPERANDS [; COMMENT]"""
        asm = f"{self.mnemonic} {self.operands}" if self.operands else self.mnemonic

        prefix = f"${self.address:04X}: "
        if show_bytes:
            # Longest instruction is 4 bytes = 11 chars with spaces
            prefix += " ".join(f"{b:02X}" for b in self.raw_bytes).ljust(11) + "  "

        if self.comment:
            return f"{prefix}{asm:<16} ; {self.comment}"
        return f"{prefix}{asm}"

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "address": f"${self.address:04X}",
            "address_int": self.address,
            "opcode": f"${self.opcode:02X}",
            "mnemonic": self.mnemonic,
            "operands": self.operands,
            "size": self.size,
            "bytes": [f"${b:02X}" for b in self.raw_bytes],
            "comment": self.comment,
        }


_DEBUG_MODE_NAMES = {
    0: "decimal",
    1: "hex",
    2: "padded decimal",
    3: "padded hex",
    4: "prefixed hex",
}


# =============================================================================
# Disassembler
# =============================================================================

class Disassembler:
    """
    Disassembler for regvm program images.

    Attributes:
        _symbol_table: Maps addresses to label names for jump/call targets
    """

    def __init__(self, symbol_table: Optional[Dict[int, str]] = None):
        """
        Initialize the disassembler.

        Args:
            symbol_table: Optional dict mapping addresses to label names.
        """
        self._symbol_table = dict(symbol_table or {})

    def add_symbol(self, address: int, name: str) -> None:
        self._symbol_table[address] = name

    def add_symbols(self, symbols: Dict[int, str]) -> None:
        """
        Add multiple symbols to the symbol table.

        Args:
            symbols: Dictionary mapping addresses to names
        """
        self._symbol_table.update(symbols)

    def disassemble_one(self, data: bytes, address: int) -> DisassembledInstruction:
        """
        Disassemble the instruction starting at ``address``.

        Raises:
            ValueError: If address is outside the buffer
        """
        if not 0 <= address < len(data):
            raise ValueError(f"Address {address} beyond data length {len(data)}")

        opcode = data[address]
        length = INSTRUCTION_LENGTHS[opcode]

        if length is None:
            return self._data_byte(data, address, "unknown opcode")
        if address + length > len(data):
            return self._data_byte(data, address, "truncated instruction")

        raw = bytes(data[address:address + length])
        op = Opcode(opcode)
        operands, comment = self._format_operands(op, address, raw[1:])

        return DisassembledInstruction(
            address=address,
            opcode=opcode,
            mnemonic=INSTRUCTION_TABLE[op].mnemonic,
            operands=operands,
            raw_bytes=raw,
            comment=comment,
        )

    def disassemble(
        self,
        data: bytes,
        start: int = 0,
        count: Optional[int] = None
    ) -> List[DisassembledInstruction]:
        """
        Disassemble multiple instructions.

        Args:
            data: Image or memory contents (address 0 = first byte)
            start: Address of the first instruction
            count: Maximum number of instructions (None = to end of data)

        Returns:
            List of DisassembledInstruction objects
        """
        result = []
        address = start

        while address < len(data):
            if count is not None and len(result) >= count:
                break
            instr = self.disassemble_one(data, address)
            result.append(instr)
            address += instr.size

        return result

    def format_listing(
        self,
        instructions: List[DisassembledInstruction],
        show_bytes: bool = True
    ) -> str:
        """
        Join instructions into a listing, with a label line before every
        address that has a symbol.
        """
        lines = []
        for instr in instructions:
            label = self._symbol_table.get(instr.address)
            if label:
                lines.append(f"{label}:")
            lines.append(instr.to_text(show_bytes))
        return "\n".join(lines)

    # =========================================================================
    # Operand Formatting
    # =========================================================================

    def _format_operands(self, op: Opcode, address: int, operand_bytes: bytes) -> tuple[str, str]:
        """Return (operands, comment) for a fully present instruction."""
        warnings = [
            f"invalid register r{b}"
            for b in self._register_bytes(op, operand_bytes)
            if b >= REGISTER_COUNT
        ]

        if op in (Opcode.JUMP_FW, Opcode.JUMP_BW):
            distance = operand_bytes[0] if op == Opcode.JUMP_FW else to_signed8(operand_bytes[0])
            target = address + distance
            return self._target(target), f"{distance:+d}"

        if op == Opcode.CALL:
            target = (operand_bytes[0] << 8) | operand_bytes[1]
            return self._target(target), ""

        if op == Opcode.SET_BYTE:
            operands = f"{_reg(operand_bytes[0])}, {operand_bytes[1]}"
        elif op == Opcode.SET_SHORT:
            value = (operand_bytes[1] << 8) | operand_bytes[2]
            operands = f"{_reg(operand_bytes[0])}, {value}"
        elif op == Opcode.DEBUG:
            mode = operand_bytes[1]
            operands = f"{_reg(operand_bytes[0])}, {mode}"
            warnings.insert(0, _describe_debug_mode(mode))
        else:
            operands = ", ".join(_reg(b) for b in operand_bytes)

        return operands, "; ".join(warnings)

    @staticmethod
    def _register_bytes(op: Opcode, operand_bytes: bytes) -> bytes:
        if op in (Opcode.JUMP_FW, Opcode.JUMP_BW, Opcode.CALL):
            return b""
        if op in (Opcode.SET_BYTE, Opcode.SET_SHORT, Opcode.DEBUG):
            return operand_bytes[:1]
        return operand_bytes

    def _target(self, target: int) -> str:
        return self._symbol_table.get(target, f"${target:04X}")

    @staticmethod
    def _data_byte(data: bytes, address: int, comment: str) -> DisassembledInstruction:
        value = data[address]
        return DisassembledInstruction(
            address=address,
            opcode=value,
            mnemonic=".byte",
            operands=f"${value:02X}",
            raw_bytes=bytes([value]),
            comment=comment,
        )


def _reg(value: int) -> str:
    if value < REGISTER_COUNT:
        return REGISTER_NAMES[value]
    return f"r{value}"


def _describe_debug_mode(mode: int) -> str:
    low = mode & 0x0F
    if mode & 0xF0 in (0x00, 0x10) and low in DEBUG_FORMATS:
        suffix = "" if mode & 0x10 else ", newline"
        return f"{_DEBUG_MODE_NAMES[low]}{suffix}"
    return "dump state"


# =============================================================================
# Convenience Function
# =============================================================================

def disassemble(
    data: bytes,
    start: int = 0,
    count: Optional[int] = None,
    symbols: Optional[Dict[str, int]] = None
) -> List[DisassembledInstruction]:
    """
    Disassemble a program image or memory buffer.

    Args:
        data: Bytes to decode (address 0 = first byte)
        start: Address of the first instruction
        count: Maximum number of instructions
        symbols: Optional assembler symbol table (name -> address)

    Returns:
        List of DisassembledInstruction objects
    """
    table = {address: name for name, address in (symbols or {}).items()}
    return Disassembler(table).disassemble(data, start, count)
