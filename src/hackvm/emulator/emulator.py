"""
Hack Emulator - Main Orchestrator
=================================

The ``Emulator`` class ties the CPU, RAM and ROM together and offers a
small API for running translated programs and inspecting the VM state.

Example usage:
    >>> from hackvm.assembler import HackAssembler
    >>> from hackvm.emulator import Emulator
    >>> program = HackAssembler().assemble(asm_text)
    >>> emu = Emulator()
    >>> emu.load_program(program.words, program.labels)
    >>> emu.poke(0, 256)
    >>> emu.run_until_label("HALT", max_cycles=100_000)
    True
    >>> emu.stack_top()
    15
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from hackvm.emulator.cpu import HackCPU
from hackvm.emulator.memory import Ram, Rom
from hackvm.errors import EmulatorError


logger = logging.getLogger(__name__)

SP_ADDRESS = 0


@dataclass(frozen=True)
class EmulatorConfig:
    """
    Configuration for emulator initialization.

    Attributes:
        max_cycles: Default instruction budget for run methods
        ram_words: Size of data memory
    """
    max_cycles: int = 1_000_000
    ram_words: int = 0x8000


class Emulator:
    """
    Hack computer emulator.

    Attributes:
        config: The EmulatorConfig used to initialize this instance
        cpu: The HackCPU instance
        ram: Data memory
        rom: Instruction memory
        labels: Label table of the loaded program
    """

    def __init__(self, config: Optional[EmulatorConfig] = None):
        self.config = config or EmulatorConfig()
        self.ram = Ram(self.config.ram_words)
        self.rom = Rom()
        self.cpu = HackCPU(self.ram, self.rom)
        self.labels: dict[str, int] = {}
        self._total_cycles = 0

    # =========================================================================
    # Program Loading
    # =========================================================================

    def load_program(
        self,
        words: Iterable[int],
        labels: Optional[dict[str, int]] = None,
    ) -> None:
        """Load machine words into ROM and reset the CPU."""
        self.rom.load(words)
        self.labels = dict(labels or {})
        self.cpu.reset()
        self._total_cycles = 0
        logger.debug(f"Loaded {len(self.rom)} words")

    def reset(self) -> None:
        """Reset the CPU and clear RAM; the program stays loaded."""
        self.cpu.reset()
        self.ram.clear()
        self._total_cycles = 0

    @property
    def total_cycles(self) -> int:
        return self._total_cycles

    # =========================================================================
    # Execution
    # =========================================================================

    def step(self) -> bool:
        executed = self.cpu.step()
        if executed:
            self._total_cycles += 1
        return executed

    def run(self, max_cycles: Optional[int] = None) -> int:
        """
        Run until the program ends or the cycle budget is spent.

        Returns:
            Number of instructions executed
        """
        budget = self.config.max_cycles if max_cycles is None else max_cycles
        executed = 0
        while executed < budget and self.step():
            executed += 1
        return executed

    def run_until_pc(self, address: int, max_cycles: Optional[int] = None) -> bool:
        """
        Run until PC reaches an address.

        Returns:
            True if the address was reached, False if the program ended
            or the cycle budget ran out first
        """
        budget = self.config.max_cycles if max_cycles is None else max_cycles
        executed = 0
        while self.cpu.pc != address:
            if executed >= budget or not self.step():
                logger.debug(f"Stopped at PC={self.cpu.pc} after {executed} cycles")
                return False
            executed += 1
        return True

    def run_until_label(self, label: str, max_cycles: Optional[int] = None) -> bool:
        """Run until PC reaches a label of the loaded program."""
        if label not in self.labels:
            raise EmulatorError(f"unknown label: {label}")
        return self.run_until_pc(self.labels[label], max_cycles)

    # =========================================================================
    # Memory Inspection
    # =========================================================================

    def peek(self, address: int) -> int:
        return self.ram.read(address)

    def peek_signed(self, address: int) -> int:
        return self.ram.read_signed(address)

    def poke(self, address: int, value: int) -> None:
        self.ram.write(address, value)

    @property
    def sp(self) -> int:
        return self.ram.read(SP_ADDRESS)

    def stack_top(self) -> int:
        """Signed value on top of the VM stack."""
        return self.ram.read_signed(self.sp - 1)

    def stack(self, base: int = 256) -> list[int]:
        """Signed values from the stack base up to SP."""
        return [self.ram.read_signed(a) for a in range(base, self.sp)]
