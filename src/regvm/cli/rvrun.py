"""
rvrun - regvm Program Runner
============================

Assembles (or loads) a program and runs it on the virtual machine. Output
from ``dbg`` instructions goes to stdout.

Usage Examples
--------------
Run assembly source directly:
    $ rvrun add.asm

Run an assembled image:
    $ rvrun add.bin
    $ rvrun --binary program.img

Dump machine state after exit:
    $ rvrun add.asm --dump

Trace every instruction (to stderr):
    $ rvrun add.asm --trace
"""

import sys
from pathlib import Path
from typing import Optional

import click

from regvm import __version__
from regvm.assembler import assemble
from regvm.emulator import MEMORY_SIZE, Emulator, EmulatorConfig
from regvm.cli.errors import ExitCode, handle_cli_exception, setup_logging


@click.command()
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-b", "--binary",
    is_flag=True,
    help="Treat INPUT_FILE as an assembled image (implied by a .bin suffix)",
)
@click.option(
    "-d", "--dump",
    is_flag=True,
    help="Print registers and memory after the program exits",
)
@click.option(
    "-t", "--trace",
    is_flag=True,
    help="Log every instruction before it executes",
)
@click.option(
    "-m", "--memory-size",
    type=click.IntRange(2, 0x10000),
    default=MEMORY_SIZE,
    show_default=True,
    help="Memory size in bytes",
)
@click.option(
    "-n", "--max-steps",
    type=click.IntRange(min=1),
    default=None,
    help="Stop after this many instructions",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="rvrun")
def main(
    input_file: Path,
    binary: bool,
    dump: bool,
    trace: bool,
    memory_size: int,
    max_steps: Optional[int],
    verbose: bool,
) -> None:
    """
    Run a regvm program.

    INPUT_FILE is assembly source, or an image with --binary / .bin suffix.

    \b
    Exit status:
        0  program reached exit
        1  assembly error, VM fault, or step limit reached
        2  invalid arguments
    """
    setup_logging(verbose or trace)

    try:
        data = input_file.read_bytes()
        if binary or input_file.suffix.lower() == ".bin":
            image = data
        else:
            image = assemble(data, str(input_file))

        if verbose:
            click.echo(f"Loaded {len(image)} bytes from {input_file}", err=True)

        emu = Emulator(EmulatorConfig(memory_size=memory_size, trace=trace))
        emu.load_image(image)
        state = emu.run(max_steps)

        if dump:
            click.echo(emu.dump_state())

        if verbose:
            click.echo(f"Executed {state.steps} instructions", err=True)

        if not state.halted:
            click.echo(f"Error: stopped after {state.steps} steps without reaching exit", err=True)
            sys.exit(ExitCode.BUILD_ERROR)

    except Exception as e:
        handle_cli_exception(e, verbose=verbose, error_type="Assembly")


if __name__ == "__main__":
    main()
