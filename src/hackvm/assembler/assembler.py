"""
Hack Assembler - Main Interface
===============================

Converts Hack assembly into 16-bit machine words.

Assembly Process
----------------
1. **Parsing**: strip comments and whitespace, classify each line as a
   label definition ``(NAME)``, an A-instruction ``@value`` or a
   C-instruction ``dest=comp;jump``
2. **Pass 1**: bind every label to the ROM address of the instruction
   that follows it
3. **Pass 2**: encode instructions; an ``@symbol`` that is neither
   predefined nor a label becomes a variable allocated from RAM[16] up

Example Usage
-------------
>>> from hackvm.assembler import HackAssembler
>>> result = HackAssembler().assemble('''
...     @2
...     D=A
...     @3
...     D=D+A
...     @0
...     M=D
... ''')
>>> len(result.words)
6
>>> print(to_hack_text(result.words[:1]))
0000000000000010
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from hackvm.assembler.codes import (
    A_VALUE_MAX,
    COMP_SHIFT,
    C_INSTRUCTION_PREFIX,
    DEST_SHIFT,
    JUMP_CODES,
    PREDEFINED_SYMBOLS,
    VARIABLE_BASE,
    lookup_comp,
    lookup_dest,
)
from hackvm.errors import AssemblySyntaxError, DuplicateSymbolError, SourceLocation


logger = logging.getLogger(__name__)

# Letters, digits, underscore, dot, dollar, colon; not starting with a digit
SYMBOL_PATTERN = re.compile(r"^[A-Za-z_.$:][A-Za-z0-9_.$:]*$")
DECIMAL_PATTERN = re.compile(r"^[0-9]+$")


# =============================================================================
# Statements
# =============================================================================

@dataclass(frozen=True)
class LabelDef:
    """A ``(NAME)`` pseudo-instruction."""
    name: str
    location: SourceLocation
    source_line: str


@dataclass(frozen=True)
class AInstruction:
    """``@value`` or ``@symbol``."""
    operand: str
    location: SourceLocation
    source_line: str

    @property
    def is_constant(self) -> bool:
        return DECIMAL_PATTERN.match(self.operand) is not None


@dataclass(frozen=True)
class CInstruction:
    """``dest=comp;jump`` with dest and jump optional."""
    dest: Optional[str]
    comp: str
    jump: Optional[str]
    location: SourceLocation
    source_line: str


Statement = Union[LabelDef, AInstruction, CInstruction]


@dataclass
class AssemblyResult:
    """
    Output of the assembler.

    Attributes:
        words: Machine words in ROM order
        labels: Label name -> ROM address
        variables: Variable name -> RAM address
        source_map: Source location of each word
    """
    words: list[int] = field(default_factory=list)
    labels: dict[str, int] = field(default_factory=dict)
    variables: dict[str, int] = field(default_factory=dict)
    source_map: list[SourceLocation] = field(default_factory=list)

    @property
    def symbols(self) -> dict[str, int]:
        """Labels and variables together."""
        return {**self.variables, **self.labels}

    def to_hack_text(self) -> str:
        return to_hack_text(self.words)


# =============================================================================
# Parsing
# =============================================================================

def parse_source(source: str, filename: str = "<input>") -> list[Statement]:
    """
    Parse Hack assembly into statements.

    Raises:
        AssemblySyntaxError: If a line is not a valid statement
    """
    statements: list[Statement] = []

    for line_number, raw in enumerate(source.splitlines(), start=1):
        text = raw.split("//", 1)[0].strip()
        if not text:
            continue

        column = len(raw) - len(raw.lstrip()) + 1
        location = SourceLocation(filename, line_number, column)
        statements.append(_parse_statement(text, location, raw))

    return statements


def _parse_statement(text: str, location: SourceLocation, raw: str) -> Statement:
    if text.startswith("("):
        if not text.endswith(")"):
            raise AssemblySyntaxError(
                "unterminated label definition",
                location=location,
                hint="label definitions have the form (NAME)",
                source_line=raw,
            )
        name = text[1:-1].strip()
        _check_symbol(name, location, raw)
        return LabelDef(name, location, raw)

    if text.startswith("@"):
        operand = text[1:].strip()
        if not operand:
            raise AssemblySyntaxError(
                "missing operand after '@'", location=location, source_line=raw
            )
        if DECIMAL_PATTERN.match(operand):
            if int(operand) > A_VALUE_MAX:
                raise AssemblySyntaxError(
                    f"constant {operand} does not fit in an A-instruction",
                    location=location,
                    hint=f"A-instruction constants range from 0 to {A_VALUE_MAX}",
                    source_line=raw,
                )
        else:
            _check_symbol(operand, location, raw)
        return AInstruction(operand, location, raw)

    text = "".join(text.split())
    dest: Optional[str] = None
    jump: Optional[str] = None
    comp = text
    if "=" in comp:
        dest, comp = comp.split("=", 1)
    if ";" in comp:
        comp, jump = comp.split(";", 1)

    if dest is not None and lookup_dest(dest) is None:
        raise AssemblySyntaxError(
            f"invalid destination '{dest}'",
            location=location,
            hint="destinations combine A, D and M",
            source_line=raw,
        )
    if lookup_comp(comp) is None:
        raise AssemblySyntaxError(
            f"invalid computation '{comp}'", location=location, source_line=raw
        )
    if jump is not None and jump not in JUMP_CODES:
        raise AssemblySyntaxError(
            f"invalid jump '{jump}'",
            location=location,
            hint="valid jumps: " + ", ".join(JUMP_CODES),
            source_line=raw,
        )

    return CInstruction(dest, comp, jump, location, raw)


def _check_symbol(name: str, location: SourceLocation, raw: str) -> None:
    if not SYMBOL_PATTERN.match(name):
        raise AssemblySyntaxError(
            f"invalid symbol '{name}'",
            location=location,
            hint="symbols use letters, digits, '_', '.', '$' and ':' and do not start with a digit",
            source_line=raw,
        )


# =============================================================================
# Assembler
# =============================================================================

class HackAssembler:
    """
    Two-pass Hack assembler.

    Example:
        asm = HackAssembler()
        result = asm.assemble_file("Prog.asm")
        Path("Prog.hack").write_text(result.to_hack_text())

    Attributes:
        variable_base: First RAM address for variables (default 16)
    """

    def __init__(self, variable_base: int = VARIABLE_BASE):
        self.variable_base = variable_base

    def assemble(self, source: str, filename: str = "<input>") -> AssemblyResult:
        """
        Assemble Hack source text.

        Raises:
            AssemblySyntaxError: On a malformed line
            DuplicateSymbolError: If a label is defined twice
        """
        statements = parse_source(source, filename)
        result = AssemblyResult()

        self._bind_labels(statements, result)
        self._encode(statements, result)

        logger.debug(
            f"Assembled {filename}: {len(result.words)} words, "
            f"{len(result.labels)} labels, {len(result.variables)} variables"
        )
        return result

    def assemble_file(self, path: Union[str, Path]) -> AssemblyResult:
        """Assemble a ``.asm`` file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Source file not found: {path}")
        return self.assemble(path.read_text(encoding="utf-8"), str(path))

    # =========================================================================
    # Pass 1: Labels
    # =========================================================================

    def _bind_labels(self, statements: list[Statement], result: AssemblyResult) -> None:
        definitions: dict[str, SourceLocation] = {}
        address = 0

        for statement in statements:
            if isinstance(statement, LabelDef):
                name = statement.name
                if name in result.labels or name in PREDEFINED_SYMBOLS:
                    raise DuplicateSymbolError(
                        name,
                        location=statement.location,
                        original_location=definitions.get(name),
                        source_line=statement.source_line,
                    )
                result.labels[name] = address
                definitions[name] = statement.location
            else:
                address += 1

    # =========================================================================
    # Pass 2: Encoding
    # =========================================================================

    def _encode(self, statements: list[Statement], result: AssemblyResult) -> None:
        next_variable = self.variable_base

        for statement in statements:
            if isinstance(statement, LabelDef):
                continue

            if isinstance(statement, AInstruction):
                if statement.is_constant:
                    value = int(statement.operand)
                elif statement.operand in PREDEFINED_SYMBOLS:
                    value = PREDEFINED_SYMBOLS[statement.operand]
                elif statement.operand in result.labels:
                    value = result.labels[statement.operand]
                else:
                    if statement.operand not in result.variables:
                        result.variables[statement.operand] = next_variable
                        next_variable += 1
                    value = result.variables[statement.operand]
                word = value & A_VALUE_MAX
            else:
                word = C_INSTRUCTION_PREFIX | (lookup_comp(statement.comp) << COMP_SHIFT)
                if statement.dest:
                    word |= lookup_dest(statement.dest) << DEST_SHIFT
                if statement.jump:
                    word |= JUMP_CODES[statement.jump]

            result.words.append(word)
            result.source_map.append(statement.location)


def to_hack_text(words: list[int]) -> str:
    """Render machine words as ``.hack`` text, one 16-bit binary line each."""
    return "".join(f"{word:016b}\n" for word in words)


def assemble(source: str, filename: str = "<input>") -> AssemblyResult:
    """Assemble Hack source text with default settings."""
    return HackAssembler().assemble(source, filename)
