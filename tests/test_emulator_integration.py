"""
Tests for the regvm Emulator Wrapper
====================================

These tests verify the host-facing Emulator API: loading source and
images, running with limits, tracing, and state inspection.
"""

import io
import logging

import pytest

from regvm import Emulator, EmulatorConfig, assemble, run_program
from regvm.errors import AssemblySyntaxError, InvalidOpcodeError, ProgramLoadError


@pytest.fixture
def emu():
    """Emulator writing dbg output to a buffer."""
    return Emulator(EmulatorConfig(output=io.StringIO()))


class TestLoading:
    """Tests for load_source and load_image."""

    def test_load_source_returns_image(self, emu):
        image = emu.load_source("set a, 5")
        assert image == bytes([0x06, 0x01, 0x05, 0x01])
        assert emu.read_bytes(0, 4) == image

    def test_load_source_syntax_error(self, emu):
        with pytest.raises(AssemblySyntaxError):
            emu.load_source("frob")

    def test_load_clears_previous_program(self, emu):
        emu.load_source("set a, 1000\nset b, 1000")
        emu.load_image(bytes([0x01]))
        assert emu.read_bytes(0, 8) == bytes([0x01]) + bytes(7)

    def test_image_too_large(self, emu):
        with pytest.raises(ProgramLoadError):
            emu.load_image(bytes(1025))

    def test_image_fills_memory(self):
        emu = Emulator(EmulatorConfig(memory_size=4))
        emu.load_image(bytes([0, 0, 0, 1]))
        assert emu.run().halted


class TestExecution:
    """Tests for run, step and reset."""

    def test_run_add_program(self, emu):
        emu.load_source("set a, 5\nset b, 3\nadd a, b\ndbg a, 0\nexit")
        state = emu.run()
        assert state.halted
        assert emu.is_halted
        assert emu.config.output.getvalue() == "8\n"
        assert emu.registers["a"] == 8

    def test_step(self, emu):
        emu.load_source("set a, 1\nset b, 2")
        assert emu.step()
        assert emu.registers["a"] == 1
        assert emu.registers["b"] == 0
        assert emu.step()
        assert emu.registers["b"] == 2
        assert not emu.step()

    def test_reset_keeps_program(self, emu):
        emu.load_source("set a, 3\ndbg a, 0")
        emu.run()
        emu.reset()
        assert not emu.is_halted
        assert emu.state.pc == 0
        emu.run()
        assert emu.config.output.getvalue() == "3\n3\n"

    def test_config_max_steps(self):
        emu = Emulator(EmulatorConfig(max_steps=5))
        emu.load_source("top:\njmp top")
        state = emu.run()
        assert state.steps == 5
        assert not state.halted

    def test_explicit_max_steps_overrides_config(self):
        emu = Emulator(EmulatorConfig(max_steps=5))
        emu.load_source("top:\njmp top")
        assert emu.run(max_steps=2).steps == 2

    def test_fault_propagates(self, emu):
        emu.load_image(bytes([0xEE]))
        with pytest.raises(InvalidOpcodeError):
            emu.run()
        assert emu.is_halted


class TestInspection:
    """Tests for state inspection helpers."""

    def test_registers_by_name(self, emu):
        emu.load_source("set m, 13")
        emu.run()
        registers = emu.registers
        assert list(registers)[:3] == ["z", "a", "b"]
        assert registers["m"] == 13
        assert registers["sp"] == 1022

    def test_read_word(self, emu):
        emu.load_source("set a, 4660")
        assert emu.read_word(2) == 0x1234
        assert emu.read_byte(0) == 0x07

    def test_dump_state(self, emu):
        emu.load_source("set a, 5")
        emu.run()
        dump = emu.dump_state()
        assert dump.splitlines()[0] == "pc=$0004 flag=0 steps=2"
        assert "sp=$03FE" in dump

    def test_disassemble_at(self, emu):
        emu.load_source("set a, 5\nadd a, b")
        lines = emu.disassemble_at(0, count=2)
        assert len(lines) == 2
        assert "set a, 5" in lines[0]
        assert lines[1].startswith("$0003: 0A 01 02")

    def test_repr(self, emu):
        assert repr(emu) == "Emulator(memory=1024, pc=$0000, steps=0)"


class TestTrace:
    """Tests for instruction tracing."""

    def test_trace_logs_each_instruction(self, caplog):
        emu = Emulator(EmulatorConfig(output=io.StringIO(), trace=True))
        emu.load_source("set a, 5\nneg a")
        with caplog.at_level(logging.DEBUG, logger="regvm.emulator.emulator"):
            emu.run()
        messages = [r.getMessage() for r in caplog.records]
        traced = [m for m in messages if m.startswith("$")]
        assert len(traced) == 3
        assert "set a, 5" in traced[0]
        assert "neg a" in traced[1]
        assert "exit" in traced[2]

    def test_no_trace_by_default(self, caplog, emu):
        emu.load_source("nop")
        with caplog.at_level(logging.DEBUG, logger="regvm.emulator.emulator"):
            emu.run()
        assert not [r for r in caplog.records if r.getMessage().startswith("$")]


class TestRunProgram:
    """Tests for the run_program helper."""

    def test_run_program(self):
        out = io.StringIO()
        state = run_program(assemble("set a, 2\nmul a, a\ndbg a, 0"), EmulatorConfig(output=out))
        assert out.getvalue() == "4\n"
        assert state.register("a") == 4

    def test_run_program_too_large(self):
        with pytest.raises(ProgramLoadError):
            run_program(bytes(2000))

    def test_custom_memory_size(self):
        state = run_program(assemble("push a"), EmulatorConfig(memory_size=64, output=io.StringIO()))
        assert state.sp == 60
