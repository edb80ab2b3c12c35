"""
regvm Assembler - Main Interface
================================

This module provides the main Assembler class, which is the primary interface
for assembling regvm source code. It coordinates the lexer, parser and code
generator to produce a flat program image.

Example Usage
-------------
>>> from regvm.assembler import Assembler
>>>
>>> asm = Assembler()
>>> image = asm.assemble('''
... start:
...     set a, 5
...     set b, 3
...     add a, b
...     dbg a, 0
... ''')
>>> asm.get_symbols()
{'start': 0}
>>> asm.write_binary("add.bin")

Command-Line Usage
------------------
The assembler can also be invoked from the command line:

    $ rvasm add.asm -o add.bin -l add.lst -s add.sym

Options:
    -o, --output FILE      Output binary image
    -l, --listing FILE     Generate listing file
    -s, --symbols FILE     Generate symbol file
    --strict-branches      Fail on jump distances that do not fit in a byte
    -v, --verbose          Verbose output
"""

import logging
from pathlib import Path
from typing import Optional

from regvm.assembler.lexer import Lexer
from regvm.assembler.parser import Parser
from regvm.assembler.codegen import AssemblyResult, CodeGenerator

logger = logging.getLogger(__name__)


class Assembler:
    """
    Main regvm assembler class.

    Attributes:
        verbose: If True, print progress messages
        strict_branches: If True, out-of-range jumps are errors
    """

    def __init__(self, verbose: bool = False, strict_branches: bool = False):
        """
        Initialize the assembler.

        Args:
            verbose: Enable verbose output
            strict_branches: Raise BranchRangeError for jump distances that
                             cannot be encoded instead of truncating them
        """
        self._verbose = verbose
        self._strict_branches = strict_branches
        self._codegen = CodeGenerator(strict_branches=strict_branches)
        self._source_file: Optional[Path] = None

    @property
    def verbose(self) -> bool:
        return self._verbose

    @property
    def strict_branches(self) -> bool:
        return self._strict_branches

    # =========================================================================
    # Assembly Methods
    # =========================================================================

    def assemble(self, source: bytes | str, filename: str = "<input>") -> bytes:
        """
        Assemble source code.

        The assembly pipeline is:
        1. Tokenize source (lexer)
        2. Parse tokens into instruction records (parser)
        3. Generate the image (code generator)

        Args:
            source: Assembly source code
            filename: Virtual filename for error messages

        Returns:
            The program image

        Raises:
            AssemblerError: If assembly fails
        """
        return self.assemble_result(source, filename).image

    def assemble_result(self, source: bytes | str, filename: str = "<input>") -> AssemblyResult:
        """Like ``assemble`` but returns the full AssemblyResult."""
        if self._verbose:
            print(f"Assembling {filename}...")

        lexer = Lexer(source, filename)
        tokens = list(lexer.tokenize())
        instructions = Parser(tokens, lexer.source, filename).parse()
        logger.debug(f"{filename}: {len(tokens)} tokens, {len(instructions)} instructions")

        if self._verbose:
            print(f"Parsed {len(instructions)} instructions")

        result = self._codegen.generate(instructions, lexer.source)

        if self._verbose:
            print(f"Generated {len(result.image)} bytes of code")

        return result

    def assemble_file(self, filepath: str | Path) -> bytes:
        """
        Assemble source code from a file.

        Args:
            filepath: Path to assembly source file

        Returns:
            The program image

        Raises:
            AssemblerError: If assembly fails
            FileNotFoundError: If source file not found
        """
        filepath = Path(filepath)
        self._source_file = filepath
        return self.assemble(filepath.read_bytes(), str(filepath))

    # =========================================================================
    # Output Methods
    # =========================================================================

    def get_code(self) -> bytes:
        """
        Get the generated program image.

        Returns:
            Program image as bytes
        """
        return self._codegen.get_code()

    def get_symbols(self) -> dict[str, int]:
        """
        Get the symbol table.

        Returns:
            Dictionary mapping label names to byte offsets
        """
        return self._codegen.get_symbols()

    def get_listing(self) -> str:
        """
        Get the assembly listing as a string.

        Returns:
            Assembly listing with addresses, code bytes, and source
        """
        return self._codegen.get_listing()

    def write_binary(self, filepath: str | Path) -> None:
        """
        Write the raw program image.

        Args:
            filepath: Output file path
        """
        code = self.get_code()
        Path(filepath).write_bytes(code)

        if self._verbose:
            print(f"Wrote {len(code)} bytes to {filepath}")

    def write_listing(self, filepath: str | Path) -> None:
        """
        Write assembly listing file.

        The listing file shows:
        - Addresses
        - Generated bytes
        - Source lines
        - Symbol table

        Args:
            filepath: Output file path
        """
        self._codegen.write_listing(filepath)

        if self._verbose:
            print(f"Wrote listing to {filepath}")

    def write_symbols(self, filepath: str | Path) -> None:
        """
        Write symbol table file.

        Args:
            filepath: Output file path
        """
        self._codegen.write_symbols(filepath)

        if self._verbose:
            print(f"Wrote symbols to {filepath}")


# =============================================================================
# Convenience Functions
# =============================================================================

def assemble(source: bytes | str, filename: str = "<input>") -> bytes:
    """
    Convenience function to assemble source code.

    Args:
        source: Assembly source code
        filename: Virtual filename for errors

    Returns:
        The program image

    Raises:
        AssemblerError: If assembly fails
    """
    return Assembler().assemble(source, filename)


def assemble_file(filepath: str | Path) -> bytes:
    """
    Convenience function to assemble a file.

    Args:
        filepath: Path to source file

    Returns:
        The program image

    Raises:
        AssemblerError: If assembly fails
    """
    return Assembler().assemble_file(filepath)
