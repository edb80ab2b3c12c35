"""
regvm Code Generator
====================

This module turns parsed instruction records into a flat program image.
It implements a two-pass assembly process:

Pass 1 (Offset Accounting)
--------------------------
- Walk the instructions in order with a running byte offset
- Record each label declaration in the symbol table
- Encode every instruction whose bytes are already known
- Leave a placeholder for jumps and calls, advancing the offset by their
  fixed encoded length (2 for jmp, 3 for call)
- Append an implicit ``exit`` so execution always terminates

Pass 2 (Resolution)
-------------------
- Look up each placeholder's label in the now complete symbol table
- Jumps become a forward or backward jump carrying a one-byte distance
  from the jump opcode to its target
- Calls become CALL followed by the big-endian absolute target

All bookkeeping (offset, symbols, placeholder buffer) is local to one
``generate()`` call. Only the last result is kept, for the listing and
symbol file writers.

Jump Encoding
-------------
| Distance (target - jump) | Encoding                        |
|--------------------------|---------------------------------|
| 1 .. 255                 | JUMP_FW, distance               |
| -128 .. 0                | JUMP_BW, distance & 0xFF        |
| anything else            | truncated to one byte (warning) |

The VM reinterprets the backward operand as a signed byte, so only
distances down to -128 survive the round trip.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from regvm.errors import BranchRangeError, SourceLocation, UndefinedSymbolError
from regvm.assembler.parser import (
    ParsedInstruction,
    LabelDecl,
    NoOperand,
    LabelOp,
    RegOp,
    RegRegOp,
    SetImmediate,
    DebugPrint,
)
from regvm.cpu import INSTRUCTION_TABLE, Opcode

logger = logging.getLogger(__name__)


# =============================================================================
# Pass 1 Output
# =============================================================================

@dataclass(frozen=True)
class Placeholder:
    """
    Stand-in for a jump or call whose target is not yet known.

    Attributes:
        opcode: JUMP_FW (for any jmp) or CALL
        label: Target label name
        offset: Byte offset of the instruction's own opcode
        location: Source location of the instruction
    """
    opcode: Opcode
    label: str
    offset: int
    location: SourceLocation

    @property
    def size(self) -> int:
        return INSTRUCTION_TABLE[self.opcode].size


Entry = Union[bytes, Placeholder]


# =============================================================================
# Assembly Result
# =============================================================================

@dataclass(frozen=True)
class ListingRow:
    """One line of the assembly listing."""
    address: int
    code: bytes
    line: int
    text: str

    def __str__(self) -> str:
        hex_str = " ".join(f"{b:02X}" for b in self.code)
        line = f"{self.line:4d}" if self.line else "    "
        return f"${self.address:04X}  {hex_str:12s}  {line}  {self.text}"


@dataclass
class AssemblyResult:
    """
    Output of one ``generate()`` call.

    Attributes:
        image: The program image, loaded at address 0
        symbols: Label name to byte offset
        listing: Rows in address order
    """
    image: bytes
    symbols: dict[str, int] = field(default_factory=dict)
    listing: list[ListingRow] = field(default_factory=list)


# =============================================================================
# Code Generator
# =============================================================================

class CodeGenerator:
    """
    Generates a program image from parsed instruction records.

    Usage:
        codegen = CodeGenerator()
        result = codegen.generate(instructions, source)
        image = result.image
        codegen.write_listing("program.lst")
    """

    def __init__(self, strict_branches: bool = False):
        """
        Initialize the code generator.

        Args:
            strict_branches: If True, a jump whose distance does not fit in
                             one byte raises BranchRangeError instead of
                             being truncated with a warning.
        """
        self._strict_branches = strict_branches
        self._result: Optional[AssemblyResult] = None

    # =========================================================================
    # Public Interface
    # =========================================================================

    def generate(
        self,
        instructions: list[ParsedInstruction],
        source: Optional[Union[bytes, str]] = None,
    ) -> AssemblyResult:
        """
        Assemble instruction records into a program image.

        Args:
            instructions: Parsed instruction records in source order
            source: The source text, used for listing and error context

        Returns:
            AssemblyResult with image, symbols and listing

        Raises:
            UndefinedSymbolError: If a jump or call names an unknown label
            BranchRangeError: In strict mode, for an unencodable jump distance
        """
        source_lines = _split_lines(source)

        entries, symbols, rows = self._pass1(instructions, source_lines)
        logger.debug(
            f"Pass 1: {len(entries)} entries, {len(symbols)} labels, "
            f"{sum(1 for e in entries if isinstance(e, Placeholder))} placeholders"
        )

        image = self._pass2(entries, symbols, source_lines)
        logger.debug(f"Pass 2: {len(image)} bytes")

        listing = [
            ListingRow(row.address, image[row.address:row.address + len(row.code)], row.line, row.text)
            for row in rows
        ]

        self._result = AssemblyResult(image=image, symbols=symbols, listing=listing)
        return self._result

    def get_code(self) -> bytes:
        """Return the image from the last ``generate()`` call."""
        return self._last_result().image

    def get_symbols(self) -> dict[str, int]:
        """Return a copy of the symbol table from the last ``generate()`` call."""
        return dict(self._last_result().symbols)

    def get_listing(self) -> str:
        """
        Get the assembly listing as a string.

        Returns:
            The listing showing addresses, generated bytes, and source lines,
            followed by the symbol table.
        """
        result = self._last_result()
        lines = []
        lines.append("regvm Assembler Listing")
        lines.append("=" * 60)
        lines.append("")
        lines.append("Addr  Code          Line  Source")
        lines.append("-" * 60)
        lines.extend(str(row) for row in result.listing)
        lines.append("")
        lines.append("Symbol Table")
        lines.append("-" * 30)
        for name, value in sorted(result.symbols.items()):
            lines.append(f"{name:20s} = ${value:04X}")
        return "\n".join(lines)

    def get_symbol_file(self) -> str:
        """Symbol table in ``name $XXXX`` form, one per line."""
        lines = ["# Symbol table", "# Generated by rvasm"]
        for name, value in sorted(self._last_result().symbols.items()):
            lines.append(f"{name} ${value:04X}")
        return "\n".join(lines) + "\n"

    def write_listing(self, filepath: str | Path) -> None:
        """Write the assembly listing file."""
        with open(filepath, "w") as f:
            f.write(self.get_listing())

    def write_symbols(self, filepath: str | Path) -> None:
        """Write the symbol table file."""
        with open(filepath, "w") as f:
            f.write(self.get_symbol_file())

    def _last_result(self) -> AssemblyResult:
        if self._result is None:
            raise RuntimeError("no program has been generated yet")
        return self._result

    # =========================================================================
    # Pass 1
    # =========================================================================

    def _pass1(
        self,
        instructions: list[ParsedInstruction],
        source_lines: list[str],
    ) -> tuple[list[Entry], dict[str, int], list[ListingRow]]:
        entries: list[Entry] = []
        symbols: dict[str, int] = {}
        rows: list[ListingRow] = []
        offset = 0

        for inst in instructions:
            text = _line_at(source_lines, inst.location.line) or _describe(inst)

            if isinstance(inst, LabelDecl):
                if inst.name in symbols:
                    logger.debug(f"Label '{inst.name}' redefined at {inst.location}")
                symbols[inst.name] = offset
                rows.append(ListingRow(offset, b"", inst.location.line, text))
                continue

            if isinstance(inst, LabelOp):
                entry: Entry = Placeholder(inst.opcode, inst.label, offset, inst.location)
                size = entry.size
            else:
                entry = self._encode(inst)
                size = len(entry)

            entries.append(entry)
            rows.append(ListingRow(offset, bytes(size), inst.location.line, text))
            offset += size

        entries.append(bytes([Opcode.EXIT]))
        rows.append(ListingRow(offset, bytes(1), 0, "exit (implicit)"))

        return entries, symbols, rows

    def _encode(self, inst: ParsedInstruction) -> bytes:
        """Encode an instruction that does not reference a label."""
        match inst:
            case NoOperand(opcode=opcode):
                return bytes([opcode])
            case RegOp(opcode=opcode, reg=reg):
                return bytes([opcode, reg])
            case RegRegOp(opcode=opcode, dst=dst, src=src):
                return bytes([opcode, dst, src])
            case SetImmediate(opcode=Opcode.SET_BYTE, reg=reg, value=value):
                return bytes([Opcode.SET_BYTE, reg, value])
            case SetImmediate(reg=reg, value=value):
                return bytes([Opcode.SET_SHORT, reg, (value >> 8) & 0xFF, value & 0xFF])
            case DebugPrint(reg=reg, mode=mode):
                return bytes([Opcode.DEBUG, reg, mode])
        raise TypeError(f"cannot encode {inst!r}")

    # =========================================================================
    # Pass 2
    # =========================================================================

    def _pass2(
        self,
        entries: list[Entry],
        symbols: dict[str, int],
        source_lines: list[str],
    ) -> bytes:
        code = bytearray()
        for entry in entries:
            if isinstance(entry, Placeholder):
                code.extend(self._resolve(entry, symbols, source_lines))
            else:
                code.extend(entry)
        return bytes(code)

    def _resolve(
        self,
        placeholder: Placeholder,
        symbols: dict[str, int],
        source_lines: list[str],
    ) -> bytes:
        target = symbols.get(placeholder.label)
        if target is None:
            raise UndefinedSymbolError(
                placeholder.label,
                location=placeholder.location,
                source_line=_line_at(source_lines, placeholder.location.line),
                similar_symbols=_find_similar_symbols(placeholder.label, symbols),
            )

        if placeholder.opcode == Opcode.CALL:
            return bytes([Opcode.CALL, (target >> 8) & 0xFF, target & 0xFF])

        distance = target - placeholder.offset
        if distance > 0:
            opcode = Opcode.JUMP_FW
            in_range = distance <= 0xFF
        else:
            opcode = Opcode.JUMP_BW
            in_range = distance >= -128

        if not in_range:
            if self._strict_branches:
                raise BranchRangeError(
                    placeholder.label,
                    distance,
                    location=placeholder.location,
                    source_line=_line_at(source_lines, placeholder.location.line),
                )
            logger.warning(
                f"{placeholder.location}: jump to '{placeholder.label}' "
                f"has distance {distance}, truncated to ${distance & 0xFF:02X}"
            )

        return bytes([opcode, distance & 0xFF])


# =============================================================================
# Helpers
# =============================================================================

def _split_lines(source: Optional[Union[bytes, str]]) -> list[str]:
    if source is None:
        return []
    if isinstance(source, bytes):
        source = source.decode("utf-8", errors="replace")
    return source.split("\n")


def _line_at(lines: list[str], line: int) -> Optional[str]:
    if 1 <= line <= len(lines):
        return lines[line - 1].rstrip("\r")
    return None


def _describe(inst: ParsedInstruction) -> str:
    """Short text for a listing row when no source is available."""
    if isinstance(inst, LabelDecl):
        return f"{inst.name}:"
    if isinstance(inst, DebugPrint):
        return "dbg"
    return INSTRUCTION_TABLE[inst.opcode].mnemonic


def _find_similar_symbols(name: str, symbols: dict[str, int]) -> list[str]:
    """
    Find labels with similar names for error hints.

    Uses simple edit distance heuristic.
    """
    name_lower = name.lower()
    similar = []

    for sym in sorted(symbols):
        sym_lower = sym.lower()
        if (
            sym_lower == name_lower or
            abs(len(sym) - len(name)) <= 1 and
            _edit_distance(name_lower, sym_lower) <= 2
        ):
            similar.append(sym)

    return similar[:3]


def _edit_distance(s1: str, s2: str) -> int:
    """Calculate Levenshtein edit distance between two strings."""
    if len(s1) < len(s2):
        s1, s2 = s2, s1

    distances = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1):
        new_distances = [i + 1]
        for j, c2 in enumerate(s2):
            if c1 == c2:
                new_distances.append(distances[j])
            else:
                new_distances.append(1 + min((
                    distances[j],
                    distances[j + 1],
                    new_distances[-1]
                )))
        distances = new_distances

    return distances[-1]
