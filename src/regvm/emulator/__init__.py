"""
regvm Emulator Package
======================

The register virtual machine and its host wrapper.

Components:
    - Memory: flat, bounds-checked code/stack memory
    - VM: fetch-decode-execute interpreter
    - Emulator: owns a VM, loads images or source, traces execution

Usage:
    >>> from regvm.emulator import run_program
    >>> from regvm.assembler import assemble
    >>> state = run_program(assemble("set a, 5\\nset b, 3\\nadd a, b\\ndbg a, 0\\n"))
    8
"""

from .memory import Memory, MEMORY_SIZE
from .cpu import VM, VMState
from .emulator import Emulator, EmulatorConfig, run_program

__all__ = [
    "Memory",
    "MEMORY_SIZE",
    "VM",
    "VMState",
    "Emulator",
    "EmulatorConfig",
    "run_program",
]
