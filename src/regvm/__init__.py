"""
regvm - Register Virtual Machine Toolchain
==========================================

This package provides a miniature instruction-set toolchain: an assembler
for a small register-machine assembly language, the virtual machine that
runs the resulting byte code, and a disassembler.

The machine has sixteen 16-bit registers (r0 hard-wired to zero, r14 the
return-address register, r15 the stack pointer), a condition flag set by
comparisons, and 1024 bytes of memory shared by the program and its stack.
Conditionals are built from skip markers (``then`` / ``else``) that run or
bypass exactly one following instruction.

Main Components
---------------
- **assembler**: lexer, parser and two-pass code generator (rvasm)
- **emulator**: the VM and its host wrapper (rvrun)
- **disassembler**: image to readable listing (rvdisasm)
- **cpu**: the shared instruction-set tables

Quick Start
-----------
    >>> from regvm import assemble, run_program
    >>> image = assemble("set a, 5\\nset b, 3\\nadd a, b\\ndbg a, 0\\n")
    >>> state = run_program(image)
    8

Or use the command-line tools:
    $ rvasm add.asm -o add.bin -l add.lst
    $ rvrun add.bin
    $ rvdisasm add.bin
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from regvm.assembler import Assembler, assemble, assemble_file
from regvm.emulator import Emulator, EmulatorConfig, VM, VMState, run_program
from regvm.disassembler import Disassembler, DisassembledInstruction, disassemble
from regvm.errors import (
    RegVMError,
    AssemblerError,
    AssemblySyntaxError,
    UndefinedSymbolError,
    BranchRangeError,
    VMError,
    ProgramLoadError,
    VMFault,
    MemoryAccessError,
    RegisterAccessError,
    InvalidOpcodeError,
    SourceLocation,
)

__all__ = [
    "__version__",
    # Assembler
    "Assembler",
    "assemble",
    "assemble_file",
    # Emulator
    "Emulator",
    "EmulatorConfig",
    "VM",
    "VMState",
    "run_program",
    # Disassembler
    "Disassembler",
    "DisassembledInstruction",
    "disassemble",
    # Errors
    "RegVMError",
    "AssemblerError",
    "AssemblySyntaxError",
    "UndefinedSymbolError",
    "BranchRangeError",
    "VMError",
    "ProgramLoadError",
    "VMFault",
    "MemoryAccessError",
    "RegisterAccessError",
    "InvalidOpcodeError",
    "SourceLocation",
]
