"""
regvm Command-Line Interface
============================

This package provides command-line tools for regvm:

- **rvasm**: assembler (source -> image, listing, symbols)
- **rvrun**: runs source or an image on the virtual machine
- **rvdisasm**: disassembler

Each tool is implemented as a Click-based CLI application with
comprehensive help and error reporting.
"""

__all__ = ["rvasm", "rvrun", "rvdisasm"]
