"""
Hack Instruction Encoding Tables
================================

Bit patterns for the fields of Hack C-instructions and the assembler's
predefined symbols.

Instruction Formats
-------------------
A-instruction:  0vvv vvvv vvvv vvvv      load 15-bit value into A
C-instruction:  111a cccc ccdd djjj      dest = comp ; jump

The seven comp bits (a + c1..c6) select the ALU function. With a=0 the
ALU's y input is the A register, with a=1 it is M (RAM[A]). The six c
bits are the ALU control lines zx, nx, zy, ny, f, no.
"""

from typing import Final


# =============================================================================
# Instruction Layout
# =============================================================================

C_INSTRUCTION_PREFIX: Final = 0b111 << 13
A_VALUE_MAX: Final = 0x7FFF
WORD_MASK: Final = 0xFFFF

COMP_SHIFT: Final = 6
DEST_SHIFT: Final = 3


# =============================================================================
# comp (a c1 c2 c3 c4 c5 c6)
# =============================================================================

COMP_CODES: dict[str, int] = {
    # a=0
    "0":   0b0101010,
    "1":   0b0111111,
    "-1":  0b0111010,
    "D":   0b0001100,
    "A":   0b0110000,
    "!D":  0b0001101,
    "!A":  0b0110001,
    "-D":  0b0001111,
    "-A":  0b0110011,
    "D+1": 0b0011111,
    "A+1": 0b0110111,
    "D-1": 0b0001110,
    "A-1": 0b0110010,
    "D+A": 0b0000010,
    "D-A": 0b0010011,
    "A-D": 0b0000111,
    "D&A": 0b0000000,
    "D|A": 0b0010101,
    # a=1
    "M":   0b1110000,
    "!M":  0b1110001,
    "-M":  0b1110011,
    "M+1": 0b1110111,
    "M-1": 0b1110010,
    "D+M": 0b1000010,
    "D-M": 0b1010011,
    "M-D": 0b1000111,
    "D&M": 0b1000000,
    "D|M": 0b1010101,
}

# Commutative spellings accepted as aliases
COMP_ALIASES: dict[str, str] = {
    "A+D": "D+A",
    "M+D": "D+M",
    "A&D": "D&A",
    "M&D": "D&M",
    "A|D": "D|A",
    "M|D": "D|M",
    "1+D": "D+1",
    "1+A": "A+1",
    "1+M": "M+1",
}


# =============================================================================
# dest (d1=A d2=D d3=M)
# =============================================================================

DEST_BITS: dict[str, int] = {
    "A": 0b100,
    "D": 0b010,
    "M": 0b001,
}


# =============================================================================
# jump (j1=out<0 j2=out==0 j3=out>0)
# =============================================================================

JUMP_CODES: dict[str, int] = {
    "JGT": 0b001,
    "JEQ": 0b010,
    "JGE": 0b011,
    "JLT": 0b100,
    "JNE": 0b101,
    "JLE": 0b110,
    "JMP": 0b111,
}


# =============================================================================
# Predefined Symbols
# =============================================================================

SCREEN_BASE: Final = 0x4000
KEYBOARD_ADDRESS: Final = 0x6000

PREDEFINED_SYMBOLS: dict[str, int] = {
    "SP": 0,
    "LCL": 1,
    "ARG": 2,
    "THIS": 3,
    "THAT": 4,
    **{f"R{i}": i for i in range(16)},
    "SCREEN": SCREEN_BASE,
    "KBD": KEYBOARD_ADDRESS,
}

# First RAM address handed out to assembler variables
VARIABLE_BASE: Final = 16


def lookup_comp(mnemonic: str) -> int | None:
    """Return the 7-bit comp code for a mnemonic, or None if unknown."""
    mnemonic = COMP_ALIASES.get(mnemonic, mnemonic)
    return COMP_CODES.get(mnemonic)


def lookup_dest(mnemonic: str) -> int | None:
    """
    Return the 3-bit dest code, or None if the mnemonic is invalid.

    Registers may appear in any order (``AM`` and ``MA`` are the same)
    but each at most once.
    """
    if not mnemonic:
        return None
    bits = 0
    for register in mnemonic:
        bit = DEST_BITS.get(register)
        if bit is None or bits & bit:
            return None
        bits |= bit
    return bits
