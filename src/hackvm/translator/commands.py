"""
VM Command Vocabulary
=====================

Shared definitions for the VM translator: command kinds, arithmetic
operators, memory segments, the parsed Instruction record, and the Hack
machine constants the emitter must reproduce verbatim.

Command Kinds
-------------
| Keyword   | Kind        | arg1           | arg2        |
|-----------|-------------|----------------|-------------|
| add ...   | ARITHMETIC  | operator       | -           |
| push      | PUSH        | segment        | index       |
| pop       | POP         | segment        | index       |
| label     | LABEL       | label          | -           |
| goto      | GOTO        | label          | -           |
| if-goto   | IF_GOTO     | label          | -           |
| function  | FUNCTION    | function name  | num locals  |
| call      | CALL        | function name  | num args    |
| return    | RETURN      | -              | -           |

Memory Map
----------
| RAM address | Use                              |
|-------------|----------------------------------|
| 0           | SP   (stack pointer)             |
| 1           | LCL  (local segment base)        |
| 2           | ARG  (argument segment base)     |
| 3-4         | THIS, THAT (pointer segment)     |
| 5-12        | temp segment                     |
| 13-15       | scratch registers R13-R15        |
| 16-255      | static variables                 |
| 256-2047    | stack                            |
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

from hackvm.errors import SourceLocation


# =============================================================================
# Command Kinds
# =============================================================================

class CommandType(Enum):
    """Kinds of VM commands."""
    ARITHMETIC = auto()
    PUSH = auto()
    POP = auto()
    LABEL = auto()
    GOTO = auto()
    IF_GOTO = auto()
    FUNCTION = auto()
    RETURN = auto()
    CALL = auto()

    @property
    def arity(self) -> int:
        """Number of tokens a command of this kind takes, keyword included."""
        return _ARITY[self]

    @property
    def has_index(self) -> bool:
        """True if the command carries a numeric second argument."""
        return self.arity == 3


_ARITY = {
    CommandType.ARITHMETIC: 1,
    CommandType.RETURN: 1,
    CommandType.LABEL: 2,
    CommandType.GOTO: 2,
    CommandType.IF_GOTO: 2,
    CommandType.PUSH: 3,
    CommandType.POP: 3,
    CommandType.FUNCTION: 3,
    CommandType.CALL: 3,
}

# Keywords other than arithmetic operators
KEYWORDS: dict[str, CommandType] = {
    "push": CommandType.PUSH,
    "pop": CommandType.POP,
    "label": CommandType.LABEL,
    "goto": CommandType.GOTO,
    "if-goto": CommandType.IF_GOTO,
    "function": CommandType.FUNCTION,
    "call": CommandType.CALL,
    "return": CommandType.RETURN,
}


# =============================================================================
# Arithmetic Operators
# =============================================================================

class ArithmeticOp(Enum):
    """Arithmetic and logical operators of the VM language."""
    ADD = "add"
    SUB = "sub"
    NEG = "neg"
    EQ = "eq"
    GT = "gt"
    LT = "lt"
    AND = "and"
    OR = "or"
    NOT = "not"

    @property
    def is_unary(self) -> bool:
        return self in UNARY_OPS

    @property
    def is_comparison(self) -> bool:
        return self in COMPARISON_OPS


UNARY_OPS = frozenset({ArithmeticOp.NEG, ArithmeticOp.NOT})
COMPARISON_OPS = frozenset({ArithmeticOp.EQ, ArithmeticOp.GT, ArithmeticOp.LT})

ARITHMETIC_OPERATORS = frozenset(op.value for op in ArithmeticOp)


# =============================================================================
# Memory Segments
# =============================================================================

class Segment(Enum):
    """Logical memory segments addressable by push/pop."""
    CONSTANT = "constant"
    LOCAL = "local"
    ARGUMENT = "argument"
    THIS = "this"
    THAT = "that"
    POINTER = "pointer"
    TEMP = "temp"
    STATIC = "static"


SEGMENT_NAMES = tuple(seg.value for seg in Segment)

# Indirect segments: base register holds a pointer
INDIRECT_BASES: dict[Segment, str] = {
    Segment.LOCAL: "LCL",
    Segment.ARGUMENT: "ARG",
    Segment.THIS: "THIS",
    Segment.THAT: "THAT",
}

# Direct segments: index is an offset from a fixed RAM address
POINTER_BASE = 3
TEMP_BASE = 5
DIRECT_BASES: dict[Segment, int] = {
    Segment.POINTER: POINTER_BASE,
    Segment.TEMP: TEMP_BASE,
}

# Largest value an A-instruction can load
MAX_INDEX = 32767

# Highest valid index for fixed-size segments
SEGMENT_LIMITS: dict[Segment, int] = {
    Segment.POINTER: 1,
    Segment.TEMP: 7,
    Segment.CONSTANT: MAX_INDEX,
}


# =============================================================================
# Hack Machine Constants
# =============================================================================

STACK_BASE = 256

# Return address + LCL, ARG, THIS, THAT
FRAME_SIZE = 5

# Saved caller registers, in push order
SAVED_REGISTERS = ("LCL", "ARG", "THIS", "THAT")

ENTRY_FUNCTION = "Sys.init"

TRUE = -1
FALSE = 0


# =============================================================================
# Parsed Instruction
# =============================================================================

@dataclass(frozen=True)
class Instruction:
    """
    One parsed VM command.

    Attributes:
        kind: The command kind
        arg1: Operator, segment, label or function name (None for return)
        arg2: Index or count for push, pop, function and call
        location: Where the command appeared in its source file
        text: Normalized source text, used for comments and diagnostics
    """
    kind: CommandType
    arg1: Optional[str] = None
    arg2: Optional[int] = None
    location: Optional[SourceLocation] = None
    text: str = ""

    def __post_init__(self):
        if self.kind.has_index != (self.arg2 is not None):
            raise ValueError(
                f"{self.kind.name} {'requires' if self.kind.has_index else 'does not take'} "
                f"a numeric argument"
            )
        if (self.kind is CommandType.RETURN) != (self.arg1 is None):
            raise ValueError(f"{self.kind.name} has an invalid first argument")

    def __str__(self) -> str:
        if self.text:
            return self.text
        parts = [self.arg1 if self.kind is CommandType.ARITHMETIC else _keyword(self.kind)]
        if self.kind is not CommandType.ARITHMETIC and self.arg1 is not None:
            parts.append(self.arg1)
        if self.arg2 is not None:
            parts.append(str(self.arg2))
        return " ".join(parts)


def _keyword(kind: CommandType) -> str:
    for word, k in KEYWORDS.items():
        if k is kind:
            return word
    raise ValueError(f"no keyword for {kind.name}")
