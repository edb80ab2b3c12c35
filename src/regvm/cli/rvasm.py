"""
rvasm - regvm Assembler Command-Line Interface
==============================================

This module implements the command-line interface for the regvm assembler.

Usage Examples
--------------
Basic assembly:
    $ rvasm loop.asm

With output file:
    $ rvasm loop.asm -o loop.bin

Generate all output files:
    $ rvasm loop.asm -o loop.bin -l loop.lst -s loop.sym

Verbose mode:
    $ rvasm -v loop.asm
"""

import sys
from pathlib import Path
from typing import Optional

import click

from regvm import __version__
from regvm.assembler import Assembler
from regvm.cli.errors import ExitCode, handle_cli_exception, setup_logging


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output image file (default: input.bin)",
)
@click.option(
    "-l", "--listing",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Generate listing file",
)
@click.option(
    "-s", "--symbols",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Generate symbol file",
)
@click.option(
    "--strict-branches",
    is_flag=True,
    help="Fail instead of truncating jump distances outside -128..255",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="rvasm")
def main(
    input_file: Path,
    output: Optional[Path],
    listing: Optional[Path],
    symbols: Optional[Path],
    strict_branches: bool,
    verbose: bool,
) -> None:
    """
    Assemble regvm source code into a program image.

    INPUT_FILE is the assembly source file (.asm) to assemble.

    \b
    Examples:
        rvasm loop.asm              # Outputs loop.bin
        rvasm loop.asm -o out.bin   # Specify output file
        rvasm loop.asm -l loop.lst  # Also write a listing
    """
    setup_logging(verbose)

    output_file = output if output is not None else input_file.with_suffix(".bin")
    if output_file.resolve() == input_file.resolve():
        click.echo("Error: output file would overwrite the input file", err=True)
        sys.exit(ExitCode.INVALID_ARGS)

    asm = Assembler(verbose=verbose, strict_branches=strict_branches)

    try:
        asm.assemble_file(input_file)
        asm.write_binary(output_file)

        if listing:
            asm.write_listing(listing)

        if symbols:
            asm.write_symbols(symbols)

        if verbose:
            code = asm.get_code()
            sym_count = len(asm.get_symbols())
            click.echo(f"Assembly complete: {len(code)} bytes")
            click.echo(f"Defined {sym_count} labels")

    except Exception as e:
        handle_cli_exception(e, verbose=verbose, error_type="Assembly")


if __name__ == "__main__":
    main()
