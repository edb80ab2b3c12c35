"""
regvm Virtual Machine
=====================

Fetch-decode-execute interpreter for regvm program images.

Machine model:
- 16 registers of 16 bits: r0 always reads zero (writes are discarded),
  r14 receives the return address on ``ret``, r15 is the stack pointer
- A flat memory shared by code and stack (see memory.py)
- A 16-bit program counter
- A condition flag, set by comparisons and read by the ``then``/``else``
  skip markers

Execution loop:
    1. Read the opcode byte at pc and decode it through the checked table
    2. Advance pc past the opcode
    3. Execute, consuming operand bytes as needed
    4. Repeat until EXIT or a fault

Arithmetic treats register values as signed 16-bit and wraps on overflow.
DIV truncates toward zero and MOD takes the dividend's sign; both leave
the destination unchanged when the divisor is zero.

Jumps are relative to the address of the jump opcode. A backward jump's
operand byte is reinterpreted as signed, so it reaches at most 128 bytes
back.

The stack grows downward from ``memory_size - 2``. PUSH, POP, CALL and
RET move it by 2 with no bound other than the memory array itself, so deep
recursion silently overwrites the program. Accesses outside the array
raise MemoryAccessError and stop the machine.
"""

import sys
from dataclasses import dataclass, field
from typing import Callable, Optional, TextIO

from regvm.errors import RegisterAccessError, VMFault
from regvm.cpu import (
    Opcode,
    REGISTER_COUNT,
    REGISTER_NAMES,
    RETURN_REGISTER,
    SP_REGISTER,
    ZERO_REGISTER,
    decode_opcode,
    format_debug_value,
    instruction_length,
    to_signed16,
    to_signed8,
)
from regvm.emulator.memory import Memory


@dataclass
class VMState:
    """
    Complete machine state apart from memory.

    All register values are stored unsigned (0-65535).

    Attributes:
        registers: The 16 registers, indexed by number
        pc: Program counter
        flag: Condition flag from the last comparison
        halted: True once EXIT ran or a fault occurred
        steps: Number of instructions executed
    """
    registers: list[int] = field(default_factory=lambda: [0] * REGISTER_COUNT)
    pc: int = 0
    flag: bool = False
    halted: bool = False
    steps: int = 0

    @property
    def sp(self) -> int:
        return self.registers[SP_REGISTER]

    def register(self, name_or_index: int | str) -> int:
        """Read a register by number or canonical name."""
        if isinstance(name_or_index, str):
            name_or_index = REGISTER_NAMES.index(name_or_index.lower())
        return self.registers[name_or_index]

    def signed(self, name_or_index: int | str) -> int:
        """Read a register reinterpreted as signed 16-bit."""
        return to_signed16(self.register(name_or_index))


class VM:
    """
    regvm virtual machine.

    Each instance owns its state and memory; instances share nothing.

    Instrumentation hook:
        on_instruction(pc, opcode) -> bool is called before every
        instruction; returning False stops ``run()`` before it executes.

    Example:
        >>> vm = VM()
        >>> vm.load(image)
        >>> state = vm.run()
        >>> print(f"a={state.register('a')} pc=${state.pc:04X}")
    """

    def __init__(self, memory: Optional[Memory] = None, output: Optional[TextIO] = None):
        """
        Initialize the machine.

        Args:
            memory: Memory to execute from (a fresh 1024-byte one if None)
            output: Stream for ``dbg`` output (sys.stdout if None)
        """
        self.memory = memory if memory is not None else Memory()
        self.output = output
        self.state = VMState()
        self.on_instruction: Optional[Callable[[int, int], bool]] = None
        self._op_pc = 0
        self.reset()

    # ========================================
    # Setup
    # ========================================

    def reset(self) -> None:
        """
        Reset registers and flags; memory is left untouched.

        pc goes to 0 and the stack pointer to ``memory.size - 2``.
        """
        self.state = VMState()
        self.state.registers[SP_REGISTER] = (self.memory.size - 2) & 0xFFFF

    def load(self, image: bytes) -> None:
        """Load a program image at address 0 and reset the machine."""
        self.memory.load(image)
        self.reset()

    # ========================================
    # Execution
    # ========================================

    def run(self, max_steps: Optional[int] = None) -> VMState:
        """
        Run until EXIT.

        Args:
            max_steps: Stop after this many instructions even if not halted

        Returns:
            The machine state

        Raises:
            VMFault: On an invalid opcode, register or memory access
        """
        executed = 0
        while not self.state.halted:
            if max_steps is not None and executed >= max_steps:
                break
            if self.on_instruction and self.state.pc < self.memory.size:
                opcode = self.memory.read(self.state.pc)
                if not self.on_instruction(self.state.pc, opcode):
                    break
            self.step()
            executed += 1
        return self.state

    def step(self) -> bool:
        """
        Execute exactly one instruction.

        Returns:
            True if the machine can continue, False once halted
        """
        if self.state.halted:
            return False

        try:
            self._op_pc = self.state.pc
            opcode = decode_opcode(self._fetch_byte(), self._op_pc)
            self._execute_instruction(opcode)
        except VMFault:
            self.state.halted = True
            raise

        self.state.steps += 1
        return not self.state.halted

    # ========================================
    # Register and Memory Access
    # ========================================

    def _check_register(self, reg: int) -> int:
        if not 0 <= reg < REGISTER_COUNT:
            raise RegisterAccessError(reg, self._op_pc)
        return reg

    def _read_reg(self, reg: int) -> int:
        return self.state.registers[self._check_register(reg)]

    def _write_reg(self, reg: int, value: int) -> None:
        """Write a register; writes to r0 are discarded."""
        if self._check_register(reg) == ZERO_REGISTER:
            return
        self.state.registers[reg] = value & 0xFFFF

    def _fetch_byte(self) -> int:
        """Fetch next byte at PC and increment PC."""
        value = self.memory.read(self.state.pc, self._op_pc)
        self.state.pc = (self.state.pc + 1) & 0xFFFF
        return value

    def _fetch_word(self) -> int:
        """Fetch next word at PC (big-endian) and increment PC by 2."""
        value = self.memory.read_word(self.state.pc, self._op_pc)
        self.state.pc = (self.state.pc + 2) & 0xFFFF
        return value

    def _push_word(self, value: int) -> None:
        sp = (self.state.registers[SP_REGISTER] - 2) & 0xFFFF
        self.state.registers[SP_REGISTER] = sp
        self.memory.write_word(sp, value, self._op_pc)

    def _pop_word(self) -> int:
        value = self.memory.read_word(self.state.registers[SP_REGISTER], self._op_pc)
        self.state.registers[SP_REGISTER] = (self.state.registers[SP_REGISTER] + 2) & 0xFFFF
        return value

    # ========================================
    # Instruction Dispatch
    # ========================================

    def _execute_instruction(self, opcode: Opcode) -> None:
        match opcode:
            case Opcode.NOP:
                pass

            case Opcode.EXIT:
                self.state.halted = True

            # ============================================
            # Control flow
            # ============================================

            case Opcode.JUMP_FW:
                distance = self._fetch_byte()
                self.state.pc = (self._op_pc + distance) & 0xFFFF

            case Opcode.JUMP_BW:
                distance = to_signed8(self._fetch_byte())
                self.state.pc = (self._op_pc + distance) & 0xFFFF

            case Opcode.THEN:
                if not self.state.flag:
                    self._skip_next()

            case Opcode.ELSE:
                if self.state.flag:
                    self._skip_next()

            case Opcode.CALL:
                target = self._fetch_word()
                self._push_word(self.state.pc)
                self.state.pc = target

            case Opcode.RETURN:
                address = self._pop_word()
                self.state.registers[RETURN_REGISTER] = address
                self.state.pc = address

            # ============================================
            # Data movement
            # ============================================

            case Opcode.SET_BYTE:
                reg = self._fetch_byte()
                self._write_reg(reg, self._fetch_byte())

            case Opcode.SET_SHORT:
                reg = self._fetch_byte()
                self._write_reg(reg, self._fetch_word())

            case Opcode.MOV:
                dst = self._fetch_byte()
                src = self._fetch_byte()
                self._write_reg(dst, self._read_reg(src))

            case Opcode.PUSH:
                reg = self._check_register(self._fetch_byte())
                sp = (self.state.registers[SP_REGISTER] - 2) & 0xFFFF
                self.state.registers[SP_REGISTER] = sp
                self.memory.write_word(sp, self._read_reg(reg), self._op_pc)

            case Opcode.POP:
                reg = self._check_register(self._fetch_byte())
                value = self.memory.read_word(self.state.registers[SP_REGISTER], self._op_pc)
                self._write_reg(reg, value)
                self.state.registers[SP_REGISTER] = (self.state.registers[SP_REGISTER] + 2) & 0xFFFF

            # ============================================
            # Arithmetic
            # ============================================

            case Opcode.ADD | Opcode.SUB | Opcode.MUL | Opcode.DIV | Opcode.MOD:
                dst = self._fetch_byte()
                src = self._fetch_byte()
                a = to_signed16(self._read_reg(dst))
                b = to_signed16(self._read_reg(src))
                result = self._arith(opcode, a, b)
                if result is not None:
                    self._write_reg(dst, result)

            case Opcode.NEG:
                reg = self._fetch_byte()
                self._write_reg(reg, -to_signed16(self._read_reg(reg)))

            # ============================================
            # Comparisons
            # ============================================

            case Opcode.GT | Opcode.LT | Opcode.GE | Opcode.LE | Opcode.EQ | Opcode.NE:
                left = self._read_reg(self._fetch_byte())
                right = self._read_reg(self._fetch_byte())
                self.state.flag = self._compare(opcode, left, right)

            # ============================================
            # Diagnostics
            # ============================================

            case Opcode.DEBUG:
                reg = self._fetch_byte()
                mode = self._fetch_byte()
                text = format_debug_value(self._read_reg(reg), mode)
                if text is None:
                    text = self.dump_state() + "\n"
                self._write_output(text)

    def _skip_next(self) -> None:
        """Advance pc over the instruction that follows a skip marker."""
        opcode = self.memory.read(self.state.pc, self._op_pc)
        length = instruction_length(opcode, self._op_pc)
        self.state.pc = (self.state.pc + length) & 0xFFFF

    @staticmethod
    def _arith(opcode: Opcode, a: int, b: int) -> Optional[int]:
        """Signed arithmetic; None means leave the destination unchanged."""
        if opcode == Opcode.ADD:
            return a + b
        if opcode == Opcode.SUB:
            return a - b
        if opcode == Opcode.MUL:
            return a * b
        if b == 0:
            return None
        quotient = abs(a) // abs(b)
        if (a < 0) != (b < 0):
            quotient = -quotient
        if opcode == Opcode.DIV:
            return quotient
        return a - quotient * b

    @staticmethod
    def _compare(opcode: Opcode, left: int, right: int) -> bool:
        if opcode == Opcode.EQ:
            return left == right
        if opcode == Opcode.NE:
            return left != right
        left = to_signed16(left)
        right = to_signed16(right)
        if opcode == Opcode.GT:
            return left > right
        if opcode == Opcode.LT:
            return left < right
        if opcode == Opcode.GE:
            return left >= right
        return left <= right

    # ========================================
    # Output
    # ========================================

    def _write_output(self, text: str) -> None:
        stream = self.output if self.output is not None else sys.stdout
        stream.write(text)

    def dump_state(self) -> str:
        """
        Format the full machine state: pc, flag, registers and memory.

        Returns:
            Multi-line text, without a trailing newline
        """
        state = self.state
        lines = [
            f"pc=${state.pc:04X} flag={int(state.flag)} steps={state.steps}",
        ]
        for row in range(0, REGISTER_COUNT, 4):
            lines.append("  ".join(
                f"{REGISTER_NAMES[i]:>3s}=${state.registers[i]:04X}"
                for i in range(row, row + 4)
            ))
        lines.append(self.memory.hex_dump())
        return "\n".join(lines)
