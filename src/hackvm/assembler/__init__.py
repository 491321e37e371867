"""
Hack Assembler
==============

Two-pass assembler for the Hack machine language. It turns the output of
the VM translator into ROM words the emulator can execute.

Main Components
---------------
- **HackAssembler**: parses, binds labels and encodes instructions
- **AssemblyResult**: machine words plus label and variable tables
- **codes**: dest/comp/jump bit patterns and predefined symbols

Example Usage
-------------
>>> from hackvm.assembler import HackAssembler
>>> result = HackAssembler().assemble("@SP\\nM=M+1\\n")
>>> [f"{w:016b}" for w in result.words]
['0000000000000000', '1111110111001000']
"""

from hackvm.assembler.assembler import (
    AInstruction,
    AssemblyResult,
    CInstruction,
    HackAssembler,
    LabelDef,
    assemble,
    parse_source,
    to_hack_text,
)
from hackvm.assembler.codes import PREDEFINED_SYMBOLS, VARIABLE_BASE

__all__ = [
    "AInstruction",
    "AssemblyResult",
    "CInstruction",
    "HackAssembler",
    "LabelDef",
    "assemble",
    "parse_source",
    "to_hack_text",
    "PREDEFINED_SYMBOLS",
    "VARIABLE_BASE",
]
