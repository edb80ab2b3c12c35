"""
regvm Disassembler Module
=========================

Turns program images (or any memory buffer) back into readable assembly.
Used by the ``rvdisasm`` tool and by the emulator's instruction trace.

Usage:
    from regvm.disassembler import Disassembler

    disasm = Disassembler()
    instructions = disasm.disassemble(image)
    print(disasm.format_listing(instructions))
"""

from .disassembler import Disassembler, DisassembledInstruction, disassemble

__all__ = [
    "Disassembler",
    "DisassembledInstruction",
    "disassemble",
]
