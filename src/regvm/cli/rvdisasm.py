"""
rvdisasm - regvm Disassembler Command-Line Interface
====================================================

Usage Examples
--------------
Disassemble an image:
    $ rvdisasm loop.bin

Start at an address and limit the number of instructions:
    $ rvdisasm loop.bin --address 0x10 --count 20

Label jump targets using a symbol file written by rvasm -s:
    $ rvdisasm loop.bin --symbols loop.sym

Output to file:
    $ rvdisasm loop.bin -o loop.dis
"""

import sys
from pathlib import Path
from typing import Optional

import click

from regvm import __version__
from regvm.disassembler import Disassembler


def _parse_address(text: str) -> int:
    text = text.strip()
    if text.lower().startswith("0x"):
        return int(text, 16)
    if text.startswith("$"):
        return int(text[1:], 16)
    return int(text)


def read_symbol_file(path: Path) -> dict[int, str]:
    """
    Read a ``name $XXXX`` symbol file.

    Returns:
        Address to name mapping (first name wins per address)
    """
    table: dict[int, str] = {}
    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        parts = line.split()
        if len(parts) != 2:
            raise click.BadParameter(f"malformed symbol line: {line!r}", param_hint="--symbols")
        try:
            address = _parse_address(parts[1])
        except ValueError:
            raise click.BadParameter(f"malformed symbol line: {line!r}", param_hint="--symbols")
        table.setdefault(address, parts[0])
    return table


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
    help="Output file (default: stdout)",
)
@click.option(
    "-a", "--address",
    type=str,
    default="0",
    help="Address of the first instruction (hex with 0x/$ prefix or decimal). Default: 0",
)
@click.option(
    "-c", "--count",
    type=int,
    default=None,
    help="Maximum number of instructions to disassemble (default: all)",
)
@click.option(
    "-s", "--symbols",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Symbol file from rvasm -s, used to label jump and call targets",
)
@click.option(
    "--no-bytes",
    is_flag=True,
    help="Omit raw bytes from output (show only mnemonic and operands)",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="rvdisasm")
def main(
    input_file: Path,
    output: Optional[Path],
    address: str,
    count: Optional[int],
    symbols: Optional[Path],
    no_bytes: bool,
    verbose: bool,
) -> None:
    """
    Disassemble a regvm program image.

    INPUT_FILE is the image to disassemble.

    Examples:

        # Whole image
        rvdisasm loop.bin

        # First 20 instructions from $0010
        rvdisasm loop.bin --address 0x10 --count 20 -o listing.dis
    """
    try:
        start = _parse_address(address)
    except ValueError:
        click.echo(f"Error: Invalid address '{address}'", err=True)
        sys.exit(2)

    if not 0 <= start <= 0xFFFF:
        click.echo("Error: Address must be 0-65535 (0x0000-0xFFFF)", err=True)
        sys.exit(2)

    data = input_file.read_bytes()

    if len(data) == 0:
        click.echo(f"Error: {input_file} is empty", err=True)
        sys.exit(1)

    if start >= len(data):
        click.echo(f"Error: address ${start:04X} is beyond the end of {input_file.name}", err=True)
        sys.exit(2)

    try:
        disasm = Disassembler(read_symbol_file(symbols) if symbols else None)
    except click.BadParameter as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(2)

    if verbose:
        click.echo(f"Input file: {input_file} ({len(data)} bytes)", err=True)
        click.echo(f"Start address: ${start:04X}", err=True)

    instructions = disasm.disassemble(data, start=start, count=count)

    output_lines = [
        f"; Disassembly of {input_file.name}",
        f"; Size: {len(data)} bytes",
        "",
        disasm.format_listing(instructions, show_bytes=not no_bytes),
    ]
    result = "\n".join(output_lines) + "\n"

    if output:
        try:
            output.write_text(result, encoding='utf-8')
            if verbose:
                click.echo(f"Output written to: {output}", err=True)
        except IOError as e:
            click.echo(f"Error writing {output}: {e}", err=True)
            sys.exit(1)
    else:
        click.echo(result, nl=False)

    if verbose:
        click.echo(f"Instructions disassembled: {len(instructions)}", err=True)


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == "__main__":
    main()
