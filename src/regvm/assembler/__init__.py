"""
regvm Assembler
===============

Converts regvm assembly source into a flat program image for the VM.

Main Components
---------------
- **Assembler**: Main assembler class that orchestrates the assembly process
- **Lexer**: Tokenizes assembly source into tokens
- **Parser**: Parses tokens into instruction records
- **CodeGenerator**: Two-pass label resolution and encoding

Assembly Process
----------------
1. **Parsing (Lexer + Parser)**:
   - Tokenize source bytes into classified tokens
   - Parse tokens into instruction records, one per line

2. **Code Generation (CodeGenerator)** (two-pass):
   - Pass 1: Offset accounting, symbol collection, placeholders for jumps
     and calls
   - Pass 2: Resolve placeholders into relative jumps and absolute calls

Example Usage
-------------
>>> from regvm.assembler import assemble
>>> assemble("set a, 5\\ndbg a, 0\\n")
b'\\x06\\x01\\x05\\x19\\x01\\x00\\x01'
"""

from regvm.assembler.assembler import Assembler, assemble, assemble_file
from regvm.assembler.lexer import Lexer, Token, TokenType, read_all_tokens
from regvm.assembler.parser import (
    Parser,
    ParsedInstruction,
    LabelDecl,
    NoOperand,
    LabelOp,
    RegOp,
    RegRegOp,
    SetImmediate,
    DebugPrint,
    parse_source,
)
from regvm.assembler.codegen import (
    CodeGenerator,
    AssemblyResult,
    ListingRow,
    Placeholder,
)

__all__ = [
    # Main interface
    "Assembler",
    "assemble",
    "assemble_file",
    # Lexer
    "Lexer",
    "Token",
    "TokenType",
    "read_all_tokens",
    # Parser
    "Parser",
    "ParsedInstruction",
    "LabelDecl",
    "NoOperand",
    "LabelOp",
    "RegOp",
    "RegRegOp",
    "SetImmediate",
    "DebugPrint",
    "parse_source",
    # Code generation
    "CodeGenerator",
    "AssemblyResult",
    "ListingRow",
    "Placeholder",
]
