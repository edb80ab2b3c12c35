"""
regvm Test Configuration
========================

Shared fixtures for the toolchain tests.

It provides:
- ``run_source``: assemble and run a program, capturing ``dbg`` output
- ``make_vm``: a fresh VM over a memory of a chosen size
"""

import io
from dataclasses import dataclass

import pytest

from regvm.assembler import assemble
from regvm.emulator import VM, Memory, VMState


# ═══════════════════════════════════════════════════════════════════════════════
# HELPER FIXTURES
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class RunResult:
    """Terminal state of a program run plus everything it printed."""
    vm: VM
    state: VMState
    output: str


@pytest.fixture
def make_vm():
    """
    Fixture: Factory for VMs with captured output.

    Usage:
        vm = make_vm(memory_size=16)
        vm.load(image)
    """
    def _make(memory_size: int = 1024) -> VM:
        return VM(Memory(memory_size), output=io.StringIO())
    return _make


@pytest.fixture
def run_source(make_vm):
    """
    Fixture: Assemble source, run it to exit and capture its output.

    Usage:
        result = run_source("set a, 5\\ndbg a, 0")
        assert result.output == "5\\n"
    """
    def _run(source: str, memory_size: int = 1024, max_steps: int = 100_000) -> RunResult:
        vm = make_vm(memory_size)
        vm.load(assemble(source))
        state = vm.run(max_steps)
        return RunResult(vm=vm, state=state, output=vm.output.getvalue())
    return _run
