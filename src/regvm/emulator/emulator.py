"""
regvm Emulator - Host Wrapper
=============================

This module provides the `Emulator` class that owns a VM and its memory
and gives hosts a small, high-level API: load a program (as an image or as
source), run or step it, and inspect the machine afterwards.

Example usage:
    >>> from regvm.emulator import Emulator, EmulatorConfig
    >>> emu = Emulator(EmulatorConfig(trace=True))
    >>> emu.load_source("set a, 5\\nset b, 3\\nadd a, b\\ndbg a, 0\\n")
    >>> state = emu.run()
    8
    >>> emu.registers["a"]
    8

Tracing:
    With ``trace=True`` every instruction is logged at DEBUG level on the
    ``regvm.emulator.emulator`` logger, disassembled, before it executes.
"""

import logging
from dataclasses import dataclass
from typing import Optional, TextIO

from regvm.assembler import assemble
from regvm.cpu import REGISTER_NAMES
from regvm.disassembler import Disassembler
from regvm.emulator.cpu import VM, VMState
from regvm.emulator.memory import MEMORY_SIZE, Memory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmulatorConfig:
    """
    Configuration for emulator initialization.

    Attributes:
        memory_size: Size of the shared code/stack memory in bytes
        output: Stream for ``dbg`` output. None means sys.stdout.
        trace: Log every executed instruction at DEBUG level
        max_steps: Default instruction limit for ``run()`` (None = unlimited)

    Example:
        >>> config = EmulatorConfig(memory_size=4096, trace=True)
    """
    memory_size: int = MEMORY_SIZE
    output: Optional[TextIO] = None
    trace: bool = False
    max_steps: Optional[int] = None


class Emulator:
    """
    regvm emulator.

    Attributes:
        config: The EmulatorConfig used to initialize this instance
        vm: The VM instance (accessible for low-level control)
        memory: The machine memory

    Example:
        >>> emu = Emulator()
        >>> emu.load_image(image)
        >>> emu.run()
        >>> print(emu.dump_state())
    """

    def __init__(self, config: Optional[EmulatorConfig] = None):
        """
        Initialize the emulator with given configuration.

        Args:
            config: EmulatorConfig. If None, 1024 bytes of memory, output
                    to stdout, no tracing.
        """
        self.config = config or EmulatorConfig()
        self.memory = Memory(self.config.memory_size)
        self.vm = VM(self.memory, self.config.output)
        self._disassembler = Disassembler()

        if self.config.trace:
            self.vm.on_instruction = self._instruction_hook

    def _instruction_hook(self, pc: int, opcode: int) -> bool:
        """
        Internal hook called before each instruction when tracing.

        Returns:
            Always True (tracing never stops execution)
        """
        if pc >= self.memory.size:
            return True
        rows = self._disassembler.disassemble(self.memory.snapshot(), start=pc, count=1)
        logger.debug(f"{rows[0]}  flag={int(self.vm.state.flag)} sp=${self.vm.state.sp:04X}")
        return True

    # =========================================================================
    # Program Loading
    # =========================================================================

    def load_image(self, image: bytes) -> None:
        """
        Load a program image at address 0 and reset the machine.

        Memory outside the image is zeroed.

        Raises:
            ProgramLoadError: If the image is larger than memory
        """
        self.memory.clear()
        self.vm.load(image)
        logger.debug(f"Loaded {len(image)} bytes into {self.memory.size}-byte memory")

    def load_source(self, source: bytes | str, filename: str = "<input>") -> bytes:
        """
        Assemble source and load the resulting image.

        Returns:
            The assembled image

        Raises:
            AssemblerError: If assembly fails
            ProgramLoadError: If the image is larger than memory
        """
        image = assemble(source, filename)
        self.load_image(image)
        return image

    # =========================================================================
    # Execution Control
    # =========================================================================

    def reset(self) -> None:
        """Reset registers, pc and flag. Memory (and the program) is kept."""
        self.vm.reset()

    def step(self) -> bool:
        """
        Execute a single instruction.

        Returns:
            True if the machine can continue, False once halted
        """
        if self.config.trace and self.vm.state.pc < self.memory.size:
            self._instruction_hook(self.vm.state.pc, self.memory.read(self.vm.state.pc))
        return self.vm.step()

    def run(self, max_steps: Optional[int] = None) -> VMState:
        """
        Run until EXIT (or until ``max_steps`` instructions have run).

        Returns:
            The final machine state

        Raises:
            VMFault: If execution faults
        """
        limit = max_steps if max_steps is not None else self.config.max_steps
        state = self.vm.run(limit)
        logger.debug(
            f"Stopped after {state.steps} steps at pc=${state.pc:04X} "
            f"({'halted' if state.halted else 'step limit'})"
        )
        return state

    # =========================================================================
    # State Inspection
    # =========================================================================

    @property
    def state(self) -> VMState:
        return self.vm.state

    @property
    def registers(self) -> dict[str, int]:
        """Current register values keyed by canonical name."""
        return dict(zip(REGISTER_NAMES, self.vm.state.registers))

    @property
    def is_halted(self) -> bool:
        return self.vm.state.halted

    def dump_state(self) -> str:
        """Formatted pc, flag, registers and memory hex dump."""
        return self.vm.dump_state()

    def read_byte(self, address: int) -> int:
        return self.memory.read(address)

    def read_word(self, address: int) -> int:
        """Read a 16-bit word from memory (big-endian)."""
        return self.memory.read_word(address)

    def read_bytes(self, address: int, count: int) -> bytes:
        return bytes(self.memory.read(address + i) for i in range(count))

    def disassemble_at(self, address: int, count: int = 10) -> list[str]:
        """
        Disassemble instructions in memory.

        Args:
            address: Starting address
            count: Number of instructions to disassemble

        Returns:
            List of disassembly strings
        """
        rows = self._disassembler.disassemble(self.memory.snapshot(), start=address, count=count)
        return [str(row) for row in rows]

    def __repr__(self) -> str:
        return (
            f"Emulator(memory={self.memory.size}, "
            f"pc=${self.vm.state.pc:04X}, "
            f"steps={self.vm.state.steps})"
        )


def run_program(image: bytes, config: Optional[EmulatorConfig] = None) -> VMState:
    """
    Load and run a program image to completion.

    Args:
        image: Program image
        config: Emulator configuration (defaults if None)

    Returns:
        The terminal machine state

    Raises:
        ProgramLoadError: If the image does not fit in memory
        VMFault: If execution faults
    """
    emu = Emulator(config)
    emu.load_image(image)
    return emu.run()
