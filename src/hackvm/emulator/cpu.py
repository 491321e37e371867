"""
Hack CPU Emulator
=================

Executes Hack machine words one at a time.

Registers:
- A: 16-bit address/data register
- D: 16-bit data register
- PC: program counter (ROM address)

Instruction decoding:
- bit 15 = 0: A-instruction, A = low 15 bits
- bit 15 = 1: C-instruction ``111a cccc ccdd djjj``

The ALU takes x = D and y = A (a=0) or RAM[A] (a=1) and applies the
control bits zx, nx, zy, ny, f, no in that order. The jump bits test the
ALU output; the jump target is the A register as it was before the
instruction's own writes.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from hackvm.emulator.memory import WORD_MASK, Ram, Rom, to_signed


@dataclass
class CPUState:
    """Register snapshot."""
    a: int = 0
    d: int = 0
    pc: int = 0


def alu(x: int, y: int, control: int) -> int:
    """
    Compute the Hack ALU function.

    Args:
        x: First input (D)
        y: Second input (A or M)
        control: Six control bits zx nx zy ny f no (zx is bit 5)

    Returns:
        16-bit unsigned result
    """
    if control & 0b100000:  # zx
        x = 0
    if control & 0b010000:  # nx
        x = ~x
    if control & 0b001000:  # zy
        y = 0
    if control & 0b000100:  # ny
        y = ~y
    out = (x + y) if control & 0b000010 else (x & y)  # f
    if control & 0b000001:  # no
        out = ~out
    return out & WORD_MASK


class HackCPU:
    """
    Hack CPU attached to data and instruction memory.

    Instrumentation hook:
        on_instruction(pc, word) -> bool: called before each instruction;
        return False to stop execution before it runs.

    Example:
        >>> cpu = HackCPU(ram, rom)
        >>> cpu.step()
        >>> print(cpu.a, cpu.d, cpu.pc)
    """

    def __init__(self, ram: Ram, rom: Rom):
        self.ram = ram
        self.rom = rom
        self.state = CPUState()
        self.on_instruction: Optional[Callable[[int, int], bool]] = None

    @property
    def a(self) -> int:
        return self.state.a

    @a.setter
    def a(self, value: int) -> None:
        self.state.a = value & WORD_MASK

    @property
    def d(self) -> int:
        return self.state.d

    @d.setter
    def d(self, value: int) -> None:
        self.state.d = value & WORD_MASK

    @property
    def pc(self) -> int:
        return self.state.pc

    @pc.setter
    def pc(self, value: int) -> None:
        self.state.pc = value & WORD_MASK

    def reset(self) -> None:
        self.state = CPUState()

    @property
    def halted(self) -> bool:
        """True when PC points past the end of the loaded program."""
        return self.rom.fetch(self.pc) is None

    def step(self) -> bool:
        """
        Execute one instruction.

        Returns:
            False if nothing was executed (PC past the program, or the
            instruction hook asked to stop), True otherwise
        """
        word = self.rom.fetch(self.pc)
        if word is None:
            return False
        if self.on_instruction is not None and not self.on_instruction(self.pc, word):
            return False

        if not word & 0x8000:
            self.a = word
            self.pc += 1
            return True

        a_bit = word & 0x1000
        control = (word >> 6) & 0b111111
        dest = (word >> 3) & 0b111
        jump = word & 0b111

        address = self.a
        y = self.ram.read(address) if a_bit else address
        out = alu(self.d, y, control)

        if dest & 0b001:
            self.ram.write(address, out)
        if dest & 0b010:
            self.d = out
        if dest & 0b100:
            self.a = out

        signed = to_signed(out)
        taken = (
            (jump & 0b100 and signed < 0)
            or (jump & 0b010 and signed == 0)
            or (jump & 0b001 and signed > 0)
        )
        self.pc = address if taken else self.pc + 1
        return True
