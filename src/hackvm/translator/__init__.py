"""
VM Translator
=============

Translates the stack-based VM language into Hack assembly.

Pipeline
--------
    .vm source → VMReader → Instruction → CodeEmitter → .asm

- **VMReader**: strips comments and blank lines, classifies each command
- **CodeEmitter**: writes the Hack code for one command at a time and
  keeps the label counters and the current module name
- **VMTranslator**: drives reader and emitter over files and directories

Usage
-----
>>> from hackvm.translator import translate_vm
>>> asm = translate_vm("push constant 1\\nneg\\n", emit_comments=False)
>>> asm.splitlines()[:2]
['@1', 'D=A']

>>> from hackvm.translator import VMTranslator
>>> result = VMTranslator().translate_to_file("FibonacciElement")
>>> result.modules
['Main', 'Sys']
"""

from hackvm.translator.commands import (
    ArithmeticOp,
    CommandType,
    Instruction,
    Segment,
)
from hackvm.translator.reader import VMReader, parse_line
from hackvm.translator.emitter import CodeEmitter
from hackvm.translator.translator import (
    TranslationResult,
    TranslatorOptions,
    VMTranslator,
    translate_vm,
)

__all__ = [
    # Vocabulary
    "ArithmeticOp",
    "CommandType",
    "Instruction",
    "Segment",
    # Reader
    "VMReader",
    "parse_line",
    # Emitter
    "CodeEmitter",
    # Driver
    "TranslationResult",
    "TranslatorOptions",
    "VMTranslator",
    "translate_vm",
]
