"""
Hack Code Emitter for VM Commands
=================================

This module maps VM commands onto Hack assembly. Each public ``write_*``
method appends the instructions for one VM command to the output sink.

Code Generation Strategy
------------------------
The VM stack lives in RAM from address 256 upward; ``SP`` holds the
address of the next free slot. Values travel through the D register:

1. A push computes the value into D, then stores D at ``*SP`` and bumps SP
2. A pop decrements SP and loads ``*SP`` into D
3. Addresses that must survive a pop are parked in ``R13``

Comparisons jump on the sign of ``x - y`` computed in 16 bits, so operands
whose difference overflows (such as 20000 and -20000) compare incorrectly.

Register Usage
--------------
| Register | Usage                                         |
|----------|-----------------------------------------------|
| SP       | Stack pointer                                 |
| LCL      | Base of the current function's locals         |
| ARG      | Base of the current function's arguments      |
| THIS     | Base of the this segment (pointer 0)          |
| THAT     | Base of the that segment (pointer 1)          |
| R13      | Pop target address, frame base in return      |
| R14      | Return address in return                      |

Stack Frame Layout
------------------
After ``call f n`` the stack looks like:

    +----------------+ <- ARG (callee's argument 0)
    | argument 0..n-1|
    +----------------+
    | return address |
    | saved LCL      |
    | saved ARG      |
    | saved THIS     |
    | saved THAT     |
    +----------------+ <- LCL (callee's local 0)
    | local 0..k-1   |
    +----------------+ <- SP

Symbol Naming
-------------
- Static variables:        ``Module.index``
- Labels inside a module:  ``Module$label``
- Return addresses:        ``Module$ret.N`` (N from the call counter)
- Comparison branches:     ``IF_TRUE_N`` / ``END_COMP_N``
- Function entry points:   the function name, unqualified

Atomic Output
-------------
A command's lines are collected first and written to the sink only once
the whole command is known to be valid. A failing command writes nothing,
so the sink always holds a valid prefix of the translation.

Usage
-----
>>> import io
>>> from hackvm.translator.commands import CommandType
>>> from hackvm.translator.emitter import CodeEmitter
>>> out = io.StringIO()
>>> emitter = CodeEmitter(out, module_name="Main")
>>> emitter.write_push_pop(CommandType.PUSH, "constant", 7)
>>> out.getvalue().splitlines()
['@7', 'D=A', '@SP', 'A=M', 'M=D', '@SP', 'M=M+1']
"""

import difflib
import functools
import logging
from pathlib import Path, PurePath
from typing import Callable, Optional, TextIO, Union

from hackvm.errors import (
    SegmentRangeError,
    TranslatorError,
    UnboundModuleError,
    UnknownOperatorError,
    UnknownSegmentError,
    UnsupportedOperationError,
)
from hackvm.translator.commands import (
    ArithmeticOp,
    CommandType,
    DIRECT_BASES,
    ENTRY_FUNCTION,
    FRAME_SIZE,
    INDIRECT_BASES,
    Instruction,
    MAX_INDEX,
    SAVED_REGISTERS,
    SEGMENT_LIMITS,
    SEGMENT_NAMES,
    STACK_BASE,
    Segment,
)


logger = logging.getLogger(__name__)

# Jump mnemonic taken when the comparison x - y holds
_COMPARISON_JUMPS = {
    ArithmeticOp.EQ: "JEQ",
    ArithmeticOp.GT: "JGT",
    ArithmeticOp.LT: "JLT",
}

# Computation for binary operators with x in M and y in D
_BINARY_COMPUTATIONS = {
    ArithmeticOp.ADD: "D+M",
    ArithmeticOp.SUB: "M-D",
    ArithmeticOp.AND: "D&M",
    ArithmeticOp.OR: "D|M",
}

_UNARY_COMPUTATIONS = {
    ArithmeticOp.NEG: "-M",
    ArithmeticOp.NOT: "!M",
}

FRAME_REGISTER = "R13"
RETURN_REGISTER = "R14"
POP_ADDRESS_REGISTER = "R13"


def _atomic(method: Callable) -> Callable:
    """
    Run an emitter operation as one unit of output.

    Lines emitted while the outermost operation runs are held back and
    written to the sink when it returns. If it raises, the lines are
    dropped and the counters are rolled back.
    """
    @functools.wraps(method)
    def wrapper(self: "CodeEmitter", *args, **kwargs):
        if self._pending is not None:
            return method(self, *args, **kwargs)

        self._pending = []
        counters = (self.comparison_counter, self.call_counter)
        try:
            result = method(self, *args, **kwargs)
            lines = self._pending
        except BaseException:
            self.comparison_counter, self.call_counter = counters
            raise
        finally:
            self._pending = None

        self._commit(lines)
        return result

    return wrapper


class CodeEmitter:
    """
    Writes Hack assembly for VM commands to a text sink.

    One emitter serves one translation run: its counters keep growing
    across modules so every generated label is unique in the output.
    An emitter must not be shared between concurrent runs.

    Attributes:
        module_name: Current module context (None until set)
        comparison_counter: Next suffix for comparison branch labels
        call_counter: Next suffix for return-address labels
        emit_comments: Precede each command's code with a ``//`` comment
    """

    def __init__(
        self,
        sink: TextIO,
        module_name: Optional[str] = None,
        comparison_counter: int = 0,
        call_counter: int = 0,
        emit_comments: bool = True,
        owns_sink: bool = False,
    ):
        """
        Initialize the emitter.

        Args:
            sink: Writable text stream that receives the assembly
            module_name: Initial module context (optional)
            comparison_counter: Starting value for comparison labels
            call_counter: Starting value for return-address labels
            emit_comments: Write the VM command as a comment before its code
            owns_sink: Close the sink when the emitter is closed
        """
        self._sink = sink
        self._owns_sink = owns_sink
        self._pending: Optional[list[str]] = None
        self._closed = False

        self.module_name: Optional[str] = None
        if module_name is not None:
            self.set_module_name(module_name)

        self.comparison_counter = comparison_counter
        self.call_counter = call_counter
        self.emit_comments = emit_comments

        # Statistics
        self.lines_written = 0

    @classmethod
    def to_file(cls, path: Union[str, Path], **kwargs) -> "CodeEmitter":
        """Create an emitter writing to a new file it owns."""
        sink = open(path, "w", encoding="utf-8", newline="\n")
        return cls(sink, owns_sink=True, **kwargs)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def set_module_name(self, name: str) -> None:
        """
        Set the module context for static variables and labels.

        Accepts a bare module name or a file path; the directory and a
        ``.vm`` suffix are dropped, so ``progs/Main.vm`` becomes ``Main``.
        Output already written is unaffected.
        """
        module = PurePath(name).name
        if module.endswith(".vm"):
            module = module[: -len(".vm")]
        if not module:
            raise ValueError(f"invalid module name: {name!r}")
        logger.debug(f"Module context: {module}")
        self.module_name = module

    def close(self) -> None:
        """Flush the sink, closing it if this emitter owns it."""
        if self._closed:
            return
        self._closed = True
        self._sink.flush()
        if self._owns_sink:
            self._sink.close()

    def __enter__(self) -> "CodeEmitter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # =========================================================================
    # Output Helpers
    # =========================================================================

    def _emit(self, *lines: str) -> None:
        """Queue lines of assembly for the current command."""
        self._pending.extend(lines)

    def _commit(self, lines: list[str]) -> None:
        if self._closed:
            raise ValueError("emitter is closed")
        if lines:
            self._sink.write("\n".join(lines) + "\n")
            self.lines_written += len(lines)

    def _push_d(self) -> None:
        """*SP = D; SP++"""
        self._emit("@SP", "A=M", "M=D")
        self._increment_sp()

    def _pop_d(self) -> None:
        """SP--; D = *SP"""
        self._emit("@SP", "AM=M-1", "D=M")

    def _increment_sp(self) -> None:
        self._emit("@SP", "M=M+1")

    def _decrement_sp(self) -> None:
        self._emit("@SP", "M=M-1")

    def _a_to_sp(self) -> None:
        self._emit("@SP", "A=M")

    def _load_constant(self, value: int) -> None:
        self._emit(f"@{value}", "D=A")

    def _qualified(self, label: str) -> str:
        if self.module_name is None:
            return label
        return f"{self.module_name}${label}"

    def _static_symbol(self, index: int) -> str:
        if self.module_name is None:
            raise UnboundModuleError()
        return f"{self.module_name}.{index}"

    # =========================================================================
    # Comments and Dispatch
    # =========================================================================

    @_atomic
    def write_comment(self, text: str) -> None:
        """Write a ``//`` comment line."""
        self._emit(f"// {text}")

    @_atomic
    def write_instruction(self, instruction: Instruction) -> None:
        """
        Write the code for one parsed instruction.

        Errors raised for the instruction carry its source location.
        """
        try:
            if self.emit_comments:
                self.write_comment(str(instruction))
            handler = getattr(self, _DISPATCH[instruction.kind])
            handler(instruction)
        except TranslatorError as e:
            raise e.with_location(instruction.location, instruction.text or None)

    def _dispatch_arithmetic(self, instruction: Instruction) -> None:
        self.write_arithmetic(instruction.arg1)

    def _dispatch_push_pop(self, instruction: Instruction) -> None:
        self.write_push_pop(instruction.kind, instruction.arg1, instruction.arg2)

    def _dispatch_label(self, instruction: Instruction) -> None:
        self.write_label(instruction.arg1)

    def _dispatch_goto(self, instruction: Instruction) -> None:
        self.write_goto(instruction.arg1)

    def _dispatch_if_goto(self, instruction: Instruction) -> None:
        self.write_if(instruction.arg1)

    def _dispatch_function(self, instruction: Instruction) -> None:
        self.write_function(instruction.arg1, instruction.arg2)

    def _dispatch_call(self, instruction: Instruction) -> None:
        self.write_call(instruction.arg1, instruction.arg2)

    def _dispatch_return(self, instruction: Instruction) -> None:
        self.write_return()

    # =========================================================================
    # Arithmetic
    # =========================================================================

    @_atomic
    def write_arithmetic(self, operator: str) -> None:
        """
        Write an arithmetic, logical or comparison command.

        Unary operators rewrite the top of the stack in place. Binary
        operators pop y, combine it with x below it, and leave the result
        where x was. Comparisons leave -1 (true) or 0 (false).

        Raises:
            UnknownOperatorError: If the operator is not in the vocabulary
        """
        try:
            op = ArithmeticOp(operator)
        except ValueError:
            raise UnknownOperatorError(operator) from None

        if not op.is_unary:
            self._pop_d()               # D = y

        self._decrement_sp()
        self._a_to_sp()                 # M = x (or the single operand)

        if op.is_unary:
            self._emit(f"M={_UNARY_COMPUTATIONS[op]}")
        elif op.is_comparison:
            self._write_comparison(op)
        else:
            self._emit(f"M={_BINARY_COMPUTATIONS[op]}")

        self._increment_sp()

    def _write_comparison(self, op: ArithmeticOp) -> None:
        true_label = f"IF_TRUE_{self.comparison_counter}"
        end_label = f"END_COMP_{self.comparison_counter}"

        self._emit(
            "D=M-D",
            f"@{true_label}",
            f"D;{_COMPARISON_JUMPS[op]}",
        )
        # false: fall through
        self._a_to_sp()
        self._emit("M=0", f"@{end_label}", "0;JMP")
        # true
        self._emit(f"({true_label})")
        self._a_to_sp()
        self._emit("M=-1", f"({end_label})")

        self.comparison_counter += 1

    # =========================================================================
    # Push / Pop
    # =========================================================================

    @_atomic
    def write_push_pop(self, kind: CommandType, segment: str, index: int) -> None:
        """
        Write a push or pop command.

        Args:
            kind: CommandType.PUSH or CommandType.POP
            segment: Memory segment name
            index: Offset within the segment (the value itself for constant)

        Raises:
            UnknownSegmentError: If the segment is not in the vocabulary
            SegmentRangeError: If the index is outside a fixed-size segment
            UnboundModuleError: For static access without a module context
            UnsupportedOperationError: For pop into constant, or a kind
                other than push/pop
        """
        seg = _segment(segment)

        limit = SEGMENT_LIMITS.get(seg, MAX_INDEX)
        if not 0 <= index <= limit:
            raise SegmentRangeError(segment, index, limit)

        if kind is CommandType.PUSH:
            self._write_push(seg, index)
        elif kind is CommandType.POP:
            self._write_pop(seg, index)
        else:
            raise UnsupportedOperationError(
                f"{kind.name} is not a push or pop command"
            )

    def _write_push(self, seg: Segment, index: int) -> None:
        if seg is Segment.CONSTANT:
            self._load_constant(index)
        elif seg is Segment.STATIC:
            self._emit(f"@{self._static_symbol(index)}", "D=M")
        elif seg in INDIRECT_BASES:
            self._load_constant(index)
            self._emit(f"@{INDIRECT_BASES[seg]}", "A=D+M", "D=M")
        else:
            self._load_constant(index)
            self._emit(f"@{DIRECT_BASES[seg]}", "A=D+A", "D=M")

        self._push_d()

    def _write_pop(self, seg: Segment, index: int) -> None:
        if seg is Segment.CONSTANT:
            raise UnsupportedOperationError(
                "cannot pop into the constant segment",
                hint="constants are read-only; pop into temp to discard a value",
            )

        if seg is Segment.STATIC:
            symbol = self._static_symbol(index)
            self._pop_d()
            self._emit(f"@{symbol}", "M=D")
            return

        # R13 = segment base + index
        self._load_constant(index)
        if seg in INDIRECT_BASES:
            self._emit(f"@{INDIRECT_BASES[seg]}", "D=D+M")
        else:
            self._emit(f"@{DIRECT_BASES[seg]}", "D=D+A")
        self._emit(f"@{POP_ADDRESS_REGISTER}", "M=D")

        self._pop_d()
        self._emit(f"@{POP_ADDRESS_REGISTER}", "A=M", "M=D")

    # =========================================================================
    # Program Flow
    # =========================================================================

    @_atomic
    def write_label(self, label: str) -> None:
        """Define a jump target scoped to the current module."""
        self._emit(f"({self._qualified(label)})")

    @_atomic
    def write_goto(self, label: str) -> None:
        """Jump unconditionally to a label in the current module."""
        self._emit(f"@{self._qualified(label)}", "0;JMP")

    @_atomic
    def write_if(self, label: str) -> None:
        """Pop the top of the stack and jump if it is non-zero."""
        self._pop_d()
        self._emit(f"@{self._qualified(label)}", "D;JNE")

    # =========================================================================
    # Functions
    # =========================================================================

    @_atomic
    def write_function(self, name: str, num_locals: int) -> None:
        """
        Define a function entry point and zero its locals.

        Function names are global and are not qualified by the module.
        """
        self._emit(f"({name})")
        for _ in range(num_locals):
            self._emit("D=0")
            self._push_d()

    @_atomic
    def write_call(self, name: str, num_args: int) -> None:
        """
        Call a function.

        Saves the caller's frame, repositions ARG and LCL for the callee,
        jumps to it, and defines the label execution resumes at.
        """
        if self.module_name is None:
            return_address = f"ret.{self.call_counter}"
        else:
            return_address = f"{self.module_name}$ret.{self.call_counter}"
        self.call_counter += 1

        # push return-address
        self._emit(f"@{return_address}", "D=A")
        self._push_d()

        # push LCL, ARG, THIS, THAT
        for register in SAVED_REGISTERS:
            self._emit(f"@{register}", "D=M")
            self._push_d()

        # ARG = SP - num_args - 5
        self._emit(
            "@SP", "D=M",
            f"@{num_args + FRAME_SIZE}", "D=D-A",
            "@ARG", "M=D",
        )

        # LCL = SP
        self._emit("@SP", "D=M", "@LCL", "M=D")

        # goto f
        self._emit(f"@{name}", "0;JMP")

        self._emit(f"({return_address})")

    @_atomic
    def write_return(self) -> None:
        """
        Return from the current function.

        The frame base is copied to R13 before LCL is restored, and the
        return address to R14 before the return value overwrites ARG[0]
        (which is the return address slot when there are no arguments).
        """
        # FRAME = LCL
        self._emit("@LCL", "D=M", f"@{FRAME_REGISTER}", "M=D")

        # RET = *(FRAME - 5)
        self._emit(
            f"@{FRAME_SIZE}", "A=D-A", "D=M",
            f"@{RETURN_REGISTER}", "M=D",
        )

        # *ARG = pop()
        self._pop_d()
        self._emit("@ARG", "A=M", "M=D")

        # SP = ARG + 1
        self._emit("@ARG", "D=M+1", "@SP", "M=D")

        # THAT, THIS, ARG, LCL = *(FRAME - 1..4)
        for offset, register in enumerate(reversed(SAVED_REGISTERS), start=1):
            self._emit(
                f"@{FRAME_REGISTER}", "D=M",
                f"@{offset}", "A=D-A", "D=M",
                f"@{register}", "M=D",
            )

        # goto RET
        self._emit(f"@{RETURN_REGISTER}", "A=M", "0;JMP")

    # =========================================================================
    # Bootstrap
    # =========================================================================

    @_atomic
    def write_init(
        self,
        entry_function: str = ENTRY_FUNCTION,
        stack_base: int = STACK_BASE,
    ) -> None:
        """
        Write the bootstrap code: SP = 256, then call the entry function.

        Only used when several modules are combined into one program.
        """
        if self.emit_comments:
            self.write_comment(f"bootstrap: SP={stack_base}; call {entry_function} 0")
        self._load_constant(stack_base)
        self._emit("@SP", "M=D")
        self.write_call(entry_function, 0)


def _segment(name: str) -> Segment:
    try:
        return Segment(name)
    except ValueError:
        similar = difflib.get_close_matches(name, SEGMENT_NAMES, n=3)
        raise UnknownSegmentError(name, similar=similar) from None


# Handler for every command kind, checked complete at import time
_DISPATCH: dict[CommandType, str] = {
    CommandType.ARITHMETIC: "_dispatch_arithmetic",
    CommandType.PUSH: "_dispatch_push_pop",
    CommandType.POP: "_dispatch_push_pop",
    CommandType.LABEL: "_dispatch_label",
    CommandType.GOTO: "_dispatch_goto",
    CommandType.IF_GOTO: "_dispatch_if_goto",
    CommandType.FUNCTION: "_dispatch_function",
    CommandType.CALL: "_dispatch_call",
    CommandType.RETURN: "_dispatch_return",
}

_missing = set(CommandType) - set(_DISPATCH)
if _missing:
    raise RuntimeError(f"no emitter handler for {sorted(k.name for k in _missing)}")
