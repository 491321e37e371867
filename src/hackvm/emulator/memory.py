"""
Memory Subsystem for the Hack Emulator
======================================

Memory Map (16-bit words):
    0x0000-0x3FFF  RAM (SP, LCL, ARG, THIS, THAT, temp, statics, stack, heap)
    0x4000-0x5FFF  Screen memory map
    0x6000         Keyboard register
    ROM            Separate 32K instruction memory, read-only at runtime

All words are stored unsigned; ``read_signed`` gives the two's
complement view the VM's arithmetic uses.
"""

from array import array
from typing import Iterable

from hackvm.errors import EmulatorError


WORD_MASK = 0xFFFF
MEMORY_WORDS = 0x8000


def to_signed(value: int) -> int:
    """Interpret a 16-bit word as two's complement."""
    value &= WORD_MASK
    return value - 0x10000 if value & 0x8000 else value


class Ram:
    """
    Data memory: 32K words, 16 bits each.

    Attributes:
        size: Number of addressable words
    """

    def __init__(self, size: int = MEMORY_WORDS):
        self.size = size
        self._data = array("H", bytes(2 * size))

    def _check(self, address: int) -> None:
        if not 0 <= address < self.size:
            raise EmulatorError(f"RAM address out of range: {address}")

    def read(self, address: int) -> int:
        self._check(address)
        return self._data[address]

    def read_signed(self, address: int) -> int:
        return to_signed(self.read(address))

    def write(self, address: int, value: int) -> None:
        self._check(address)
        self._data[address] = value & WORD_MASK

    def clear(self) -> None:
        self._data = array("H", bytes(2 * self.size))

    def __getitem__(self, address: int) -> int:
        return self.read(address)

    def __setitem__(self, address: int, value: int) -> None:
        self.write(address, value)


class Rom:
    """
    Instruction memory: up to 32K program words.

    Addresses past the loaded program read as None so the CPU can tell
    the program ran off its end.
    """

    def __init__(self, size: int = MEMORY_WORDS):
        self.size = size
        self._words: list[int] = []

    def load(self, words: Iterable[int]) -> None:
        words = list(words)
        if len(words) > self.size:
            raise EmulatorError(
                f"program of {len(words)} words does not fit in {self.size}-word ROM"
            )
        for word in words:
            if not 0 <= word <= WORD_MASK:
                raise EmulatorError(f"invalid machine word: {word}")
        self._words = words

    def fetch(self, address: int) -> int | None:
        if 0 <= address < len(self._words):
            return self._words[address]
        return None

    def __len__(self) -> int:
        return len(self._words)
