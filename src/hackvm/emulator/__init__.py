"""
Hack Computer Emulator
======================

A minimal model of the Hack computer used to check translated programs:

- **HackCPU**: A, D and PC registers, the Hack ALU and jump logic
- **Ram / Rom**: 32K words of data memory, separate instruction memory
- **Emulator**: loads programs and runs them until a label, an address
  or the end of the program

Quick Start
-----------
    >>> from hackvm.assembler import HackAssembler
    >>> from hackvm.emulator import Emulator
    >>> program = HackAssembler().assemble("@7\\nD=A\\n@0\\nM=D\\n")
    >>> emu = Emulator()
    >>> emu.load_program(program.words, program.labels)
    >>> emu.run()
    4
    >>> emu.peek(0)
    7
"""

from .emulator import Emulator, EmulatorConfig
from .cpu import HackCPU, CPUState, alu
from .memory import Ram, Rom, to_signed

__all__ = [
    "Emulator",
    "EmulatorConfig",
    "HackCPU",
    "CPUState",
    "alu",
    "Ram",
    "Rom",
    "to_signed",
]
