"""
Tests for the regvm Assembler Interface
=======================================

These tests exercise the Assembler facade and the module-level helpers,
including file output and assemble-then-run scenarios.
"""

import pytest

from regvm import assemble, assemble_file, run_program
from regvm.assembler import Assembler
from regvm.errors import (
    AssemblerError,
    AssemblySyntaxError,
    BranchRangeError,
    RegVMError,
    UndefinedSymbolError,
)


ADD_PROGRAM = """\
; add two numbers
start:
    set a, 5
    set b, 3
    add a, b
    dbg a, 0
    exit
"""


# =============================================================================
# Assembler Class
# =============================================================================

class TestAssembler:
    """Tests for the Assembler facade."""

    def test_assemble_returns_image(self):
        asm = Assembler()
        image = asm.assemble(ADD_PROGRAM)
        assert image == bytes([
            0x06, 0x01, 0x05,
            0x06, 0x02, 0x03,
            0x0A, 0x01, 0x02,
            0x19, 0x01, 0x00,
            0x01,
            0x01,
        ])
        assert asm.get_code() == image

    def test_symbols(self):
        asm = Assembler()
        asm.assemble(ADD_PROGRAM)
        assert asm.get_symbols() == {"start": 0}

    def test_listing_includes_source(self):
        asm = Assembler()
        asm.assemble(ADD_PROGRAM)
        listing = asm.get_listing()
        assert "    add a, b" in listing
        assert "exit (implicit)" in listing

    def test_assemble_result(self):
        result = Assembler().assemble_result("top:\njmp top")
        assert result.image == bytes([0x03, 0x00, 0x01])
        assert result.symbols == {"top": 0}
        assert len(result.listing) == 3

    def test_properties(self):
        asm = Assembler(verbose=True, strict_branches=True)
        assert asm.verbose
        assert asm.strict_branches

    def test_verbose_progress(self, capsys):
        Assembler(verbose=True).assemble("nop", "prog.asm")
        out = capsys.readouterr().out
        assert "Assembling prog.asm..." in out
        assert "Parsed 1 instructions" in out
        assert "Generated 2 bytes of code" in out

    def test_strict_branches(self):
        source = "jmp far\n" + "nop\n" * 300 + "far:"
        Assembler().assemble(source)
        with pytest.raises(BranchRangeError):
            Assembler(strict_branches=True).assemble(source)

    def test_get_code_before_assembly(self):
        with pytest.raises(RuntimeError):
            Assembler().get_code()

    def test_reuse_after_error(self):
        asm = Assembler()
        with pytest.raises(AssemblySyntaxError):
            asm.assemble("frob")
        assert asm.assemble("nop") == bytes([0x00, 0x01])


# =============================================================================
# File Input and Output
# =============================================================================

class TestFiles:
    """Tests for assemble_file and the writers."""

    def test_assemble_file(self, tmp_path):
        source = tmp_path / "add.asm"
        source.write_text(ADD_PROGRAM)
        assert assemble_file(source) == assemble(ADD_PROGRAM)

    def test_error_names_file(self, tmp_path):
        source = tmp_path / "bad.asm"
        source.write_text("nop\njmp nowhere\n")
        with pytest.raises(UndefinedSymbolError) as exc_info:
            assemble_file(source)
        assert exc_info.value.location.filename == str(source)
        assert str(exc_info.value).startswith(f"{source}:2:1: error:")

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            assemble_file(tmp_path / "missing.asm")

    def test_write_outputs(self, tmp_path):
        asm = Assembler()
        asm.assemble(ADD_PROGRAM)
        asm.write_binary(tmp_path / "add.bin")
        asm.write_listing(tmp_path / "add.lst")
        asm.write_symbols(tmp_path / "add.sym")

        assert (tmp_path / "add.bin").read_bytes() == asm.get_code()
        assert (tmp_path / "add.lst").read_text() == asm.get_listing()
        assert "start $0000" in (tmp_path / "add.sym").read_text()


# =============================================================================
# Error Hierarchy
# =============================================================================

class TestErrors:
    """Assembler errors share one base class."""

    @pytest.mark.parametrize("source", ["frob", "jmp nowhere", "set a, 70000"])
    def test_catchable_as_base(self, source):
        with pytest.raises(AssemblerError):
            assemble(source)
        with pytest.raises(RegVMError):
            assemble(source)

    def test_no_partial_image_on_error(self):
        asm = Assembler()
        with pytest.raises(UndefinedSymbolError):
            asm.assemble("set a, 1\njmp nowhere")
        with pytest.raises(RuntimeError):
            asm.get_code()


# =============================================================================
# Assemble and Run
# =============================================================================

class TestAssembleAndRun:
    """End-to-end programs through assemble() and run_program()."""

    def test_add_prints_sum(self, capsys):
        state = run_program(assemble(ADD_PROGRAM))
        assert capsys.readouterr().out == "8\n"
        assert state.halted
        assert state.register("a") == 8

    def test_countdown_loop(self, capsys):
        source = """\
            set a, 3
            set b, 1
        loop:
            dbg a, 0
            sub a, b
            gt a, z
            then
            jmp loop
        """
        run_program(assemble(source))
        assert capsys.readouterr().out == "3\n2\n1\n"

    def test_factorial_subroutine(self, capsys):
        source = """\
            set a, 5
            call fact
            dbg b, 0
            exit
        fact:
            set b, 1
            set c, 1
        again:
            mul b, a
            sub a, c
            gt a, c
            then
            jmp again
            ret
        """
        run_program(assemble(source))
        assert capsys.readouterr().out == "120\n"
