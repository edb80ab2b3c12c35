"""
regvm Error Hierarchy
=====================

This module defines the exception hierarchy for the whole toolchain.
All exceptions inherit from RegVMError, allowing callers to catch every
toolchain error with a single except clause if desired.

Exception Hierarchy
-------------------
RegVMError (base)
├── AssemblerError (assembler-related)
│   ├── AssemblySyntaxError - syntax errors in source
│   ├── UndefinedSymbolError - jump/call to a label that is never declared
│   └── BranchRangeError - jump distance not representable in one byte
└── VMError (virtual machine)
    ├── ProgramLoadError - program image does not fit in memory
    └── VMFault - unrecoverable fault during execution
        ├── MemoryAccessError - address outside the flat memory
        ├── RegisterAccessError - register operand outside 0-15
        └── InvalidOpcodeError - byte is not an assigned opcode

Error messages for source-level errors follow this format:
    filename:line:column: error: description
        source_line_text
        ^ (pointer to error location)
    hint: suggestion for fixing (when available)

Faults carry the program counter of the instruction that faulted.
"""

from dataclasses import dataclass
from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class RegVMError(Exception):
    """
    Base exception for all regvm errors.

        try:
            image = assemble(source)
            run_program(image)
        except RegVMError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    Represents a location in source code for error reporting.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
    """
    filename: str
    line: int
    column: int

    def __str__(self) -> str:
        """Format as 'filename:line:column' for error messages."""
        return f"{self.filename}:{self.line}:{self.column}"


# =============================================================================
# Assembler Exceptions
# =============================================================================

class AssemblerError(RegVMError):
    """
    Base exception for all assembler-related errors.

    Attributes:
        message: The error description
        location: Where in the source the error occurred (optional)
        hint: A suggestion for fixing the error (optional)
        source_line: The actual source text at the error location (optional)
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        self.source_line = source_line
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """
        Format the error message with location, source context, and hint.

        Example output:
            loop.asm:7:5: error: undefined symbol 'lop'
                jmp lop
                    ^
            hint: did you mean 'loop'?
        """
        parts = []

        if self.location:
            parts.append(f"{self.location}: error: {self.message}")
        else:
            parts.append(f"error: {self.message}")

        if self.source_line is not None and self.location is not None:
            parts.append(f"    {self.source_line}")
            if self.location.column > 0:
                padding = " " * (4 + self.location.column - 1)
                parts.append(f"{padding}^")

        if self.hint:
            parts.append(f"hint: {self.hint}")

        return "\n".join(parts)


class AssemblySyntaxError(AssemblerError):
    """
    Syntax error in assembly source code.

    Raised by the parser on the first unexpected token. There is no
    error recovery: parsing stops at the first failure.

    Examples:
        - Unknown mnemonic
        - Unknown register name
        - Missing comma between operands
        - Immediate value that does not fit in 16 bits
    """
    pass


class UndefinedSymbolError(AssemblerError):
    """
    Reference to a label that is never declared.

    Raised during the resolution pass when a jump or call placeholder
    names a label missing from the symbol table. Assembly is aborted
    and no partial image is produced.
    """

    def __init__(
        self,
        symbol: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
        similar_symbols: Optional[list[str]] = None,
    ):
        self.symbol = symbol
        self.similar_symbols = similar_symbols or []

        if not hint and self.similar_symbols:
            suggestions = ", ".join(f"'{s}'" for s in self.similar_symbols[:3])
            hint = f"did you mean {suggestions}?"

        super().__init__(
            f"undefined label '{symbol}'",
            location=location,
            hint=hint,
            source_line=source_line,
        )


class BranchRangeError(AssemblerError):
    """
    Jump distance cannot be encoded in a single byte.

    Forward jumps reach 1 to 255 bytes, backward jumps 0 to -128 bytes.
    The code generator only raises this in strict mode; by default the
    distance is truncated to one byte and a warning is logged.
    """

    def __init__(
        self,
        target: str,
        offset: int,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.target = target
        self.offset = offset

        hint = (
            f"jump distance is {offset}, but range is -128 to +255; "
            f"consider a 'call' which uses an absolute address"
        )

        super().__init__(
            f"jump target '{target}' is out of range (distance: {offset})",
            location=location,
            hint=hint,
            source_line=source_line,
        )


# =============================================================================
# Virtual Machine Exceptions
# =============================================================================

class VMError(RegVMError):
    """Base exception for virtual machine errors."""
    pass


class ProgramLoadError(VMError):
    """
    Program image cannot be loaded.

    Raised when the image is larger than the machine memory.
    """

    def __init__(self, image_size: int, memory_size: int):
        self.image_size = image_size
        self.memory_size = memory_size
        super().__init__(
            f"program image is {image_size} bytes, "
            f"but memory is only {memory_size} bytes"
        )


class VMFault(VMError):
    """
    Unrecoverable execution fault.

    Execution stops immediately; the machine is left halted with the
    state it had when the fault occurred. Faults are never retried.

    Attributes:
        pc: Address of the opcode of the faulting instruction
    """

    def __init__(self, message: str, pc: Optional[int] = None):
        self.pc = pc
        if pc is not None:
            message = f"{message} (pc=${pc:04X})"
        super().__init__(message)


class MemoryAccessError(VMFault):
    """Memory read or write outside the flat address space."""

    def __init__(self, address: int, memory_size: int, pc: Optional[int] = None):
        self.address = address
        self.memory_size = memory_size
        super().__init__(
            f"memory access at ${address:04X} outside {memory_size}-byte memory",
            pc,
        )


class RegisterAccessError(VMFault):
    """Register operand byte does not name one of the 16 registers."""

    def __init__(self, register: int, pc: Optional[int] = None):
        self.register = register
        super().__init__(f"invalid register r{register}", pc)


class InvalidOpcodeError(VMFault):
    """Byte at the program counter is not an assigned opcode."""

    def __init__(self, opcode: int, pc: Optional[int] = None):
        self.opcode = opcode
        super().__init__(f"invalid opcode ${opcode:02X}", pc)
