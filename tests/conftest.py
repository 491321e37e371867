"""
hackvm Test Configuration
=========================

Shared fixtures for the translator, assembler and emulator tests.

The ``run_vm`` fixture is the workhorse of the execution tests: it
translates VM source, appends a ``(HALT)`` loop, assembles the result
and runs it on the emulator with the segment pointers preset to the
conventional test values (SP=256, LCL=300, ARG=400, THIS=3000,
THAT=3010).
"""

import io
from dataclasses import dataclass
from typing import Optional

import pytest

from hackvm.assembler import AssemblyResult, HackAssembler
from hackvm.emulator import Emulator
from hackvm.translator import CodeEmitter, TranslatorOptions, VMTranslator


HALT_LOOP = "(HALT)\n@HALT\n0;JMP\n"

DEFAULT_REGISTERS = {
    0: 256,     # SP
    1: 300,     # LCL
    2: 400,     # ARG
    3: 3000,    # THIS
    4: 3010,    # THAT
}


@dataclass
class VMRun:
    """Everything produced while running a VM program."""
    assembly: str
    program: AssemblyResult
    emulator: Emulator


def _execute(
    assembly: str,
    registers: Optional[dict[int, int]],
    stop_label: str,
    max_cycles: int,
) -> VMRun:
    program = HackAssembler().assemble(assembly)
    emu = Emulator()
    emu.load_program(program.words, program.labels)
    for address, value in {**DEFAULT_REGISTERS, **(registers or {})}.items():
        emu.poke(address, value)

    reached = emu.run_until_label(stop_label, max_cycles=max_cycles)
    assert reached, f"program did not reach {stop_label} within {max_cycles} cycles"
    return VMRun(assembly, program, emu)


# ═══════════════════════════════════════════════════════════════════════════════
# FIXTURES
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.fixture
def run_vm():
    """
    Fixture: run a single VM module to completion.

    Usage:
        result = run_vm("push constant 7\\npush constant 8\\nadd\\n")
        assert result.emulator.stack_top() == 15
    """
    def _run(
        source: str,
        module_name: str = "Main",
        registers: Optional[dict[int, int]] = None,
        max_cycles: int = 200_000,
    ) -> VMRun:
        translator = VMTranslator(TranslatorOptions(bootstrap=False, emit_comments=False))
        assembly = translator.translate_source(source, module_name).assembly
        return _execute(assembly + HALT_LOOP, registers, "HALT", max_cycles)

    return _run


@pytest.fixture
def run_modules():
    """
    Fixture: run several VM modules through one emitter.

    Modules are given as (name, source) pairs and translated in order.
    With bootstrap=True the program starts by calling Sys.init and runs
    until ``stop_label``; otherwise a ``(HALT)`` loop is appended.
    """
    def _run(
        modules: list[tuple[str, str]],
        bootstrap: bool = False,
        stop_label: str = "HALT",
        registers: Optional[dict[int, int]] = None,
        max_cycles: int = 500_000,
    ) -> VMRun:
        translator = VMTranslator(TranslatorOptions(emit_comments=False))
        sink = io.StringIO()
        with CodeEmitter(sink, emit_comments=False) as emitter:
            if bootstrap:
                emitter.write_init()
            for name, source in modules:
                translator.translate_module(source, name, emitter)

        assembly = sink.getvalue()
        if not bootstrap:
            assembly += HALT_LOOP
        return _execute(assembly, registers, stop_label, max_cycles)

    return _run
