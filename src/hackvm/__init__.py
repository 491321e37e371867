"""
hackvm - VM Translator Toolchain for the Hack Computer
======================================================

This package provides the back end of a two-stage compiler toolchain:
it translates programs written in the stack-based VM language into
assembly for the 16-bit Hack computer, and ships the assembler and
emulator needed to run the result.

Main Components
---------------
- **translator**: VM translator (vmtranslate)
    Reads .vm files and writes Hack assembly (.asm)

- **assembler**: Hack assembler (hackasm)
    Converts Hack assembly into machine words (.hack)

- **emulator**: Hack CPU emulator
    Executes machine words against 32K words of RAM

Quick Start
-----------
Translate a program:
    >>> from hackvm.translator import VMTranslator
    >>> result = VMTranslator().translate_to_file("FibonacciElement")
    >>> print(result.output_path)

Translate and run a snippet:
    >>> from hackvm import translate_vm, HackAssembler, Emulator
    >>> asm = translate_vm("push constant 7\\npush constant 8\\nadd\\n")
    >>> program = HackAssembler().assemble(asm)
    >>> emu = Emulator()
    >>> emu.load_program(program.words)
    >>> emu.poke(0, 256)
    >>> emu.run()
    >>> emu.stack_top()
    15

Or use the command-line tools:
    $ vmtranslate FibonacciElement/
    $ hackasm FibonacciElement/FibonacciElement.asm
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from hackvm.errors import (
    HackVMError,
    SourceLocation,
    TranslatorError,
    MalformedInstructionError,
    UnknownOperatorError,
    UnknownSegmentError,
    SegmentRangeError,
    UnboundModuleError,
    UnsupportedOperationError,
    TranslatorInputError,
    AssemblerError,
    AssemblySyntaxError,
    DuplicateSymbolError,
    EmulatorError,
)
from hackvm.translator import (
    ArithmeticOp,
    CodeEmitter,
    CommandType,
    Instruction,
    Segment,
    TranslationResult,
    TranslatorOptions,
    VMReader,
    VMTranslator,
    translate_vm,
)
from hackvm.assembler import AssemblyResult, HackAssembler
from hackvm.emulator import Emulator, EmulatorConfig

__all__ = [
    "__version__",
    # Exception hierarchy
    "HackVMError",
    "SourceLocation",
    "TranslatorError",
    "MalformedInstructionError",
    "UnknownOperatorError",
    "UnknownSegmentError",
    "SegmentRangeError",
    "UnboundModuleError",
    "UnsupportedOperationError",
    "TranslatorInputError",
    "AssemblerError",
    "AssemblySyntaxError",
    "DuplicateSymbolError",
    "EmulatorError",
    # Translator
    "ArithmeticOp",
    "CodeEmitter",
    "CommandType",
    "Instruction",
    "Segment",
    "TranslationResult",
    "TranslatorOptions",
    "VMReader",
    "VMTranslator",
    "translate_vm",
    # Assembler
    "AssemblyResult",
    "HackAssembler",
    # Emulator
    "Emulator",
    "EmulatorConfig",
]
