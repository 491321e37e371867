"""
Hack VM Toolchain Error Hierarchy
=================================

This module defines the exception hierarchy for the whole toolchain.
All exceptions inherit from HackVMError, allowing callers to catch every
toolchain error with a single except clause if desired.

Exception Hierarchy
-------------------
HackVMError (base)
├── TranslatorError (VM translator)
│   ├── MalformedInstructionError - unknown keyword, wrong argument count
│   ├── UnknownOperatorError - arithmetic operator outside the vocabulary
│   ├── UnknownSegmentError - memory segment outside the vocabulary
│   ├── SegmentRangeError - index outside a fixed-size segment
│   ├── UnboundModuleError - static access before a module name is set
│   ├── UnsupportedOperationError - e.g. pop into the constant segment
│   └── TranslatorInputError - nothing to translate
├── AssemblerError (Hack assembler)
│   ├── AssemblySyntaxError - malformed A- or C-instruction
│   └── DuplicateSymbolError - label defined twice
└── EmulatorError (Hack CPU emulator)

Error messages follow this format:
    filename:line:column: error: description
        source_line_text
        ^
    hint: suggestion for fixing (when available)
"""

from dataclasses import dataclass
from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class HackVMError(Exception):
    """
    Base exception for all toolchain errors.

        try:
            translator.translate_path("ProgramDir")
        except HackVMError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    A position in a source file, used for error reporting.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
    """
    filename: str
    line: int
    column: int = 1

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}:{self.column}"


class _LocatedError(HackVMError):
    """
    Shared formatting for errors that point at a source line.

    Attributes:
        message: The error description
        location: Where in the source the error occurred (optional)
        hint: A suggestion for fixing the error (optional)
        source_line: The actual source text at the error location (optional)
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        self.source_line = source_line
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """
        Format the error message with location, source context, and hint.

        Example output:
            Main.vm:12:1: error: unknown command 'pusj'
                pusj constant 7
                ^
            hint: did you mean 'push'?
        """
        parts = []

        if self.location:
            parts.append(f"{self.location}: error: {self.message}")
        else:
            parts.append(f"error: {self.message}")

        if self.source_line is not None and self.location is not None:
            parts.append(f"    {self.source_line}")
            if self.location.column > 0:
                padding = " " * (4 + self.location.column - 1)
                parts.append(f"{padding}^")

        if self.hint:
            parts.append(f"hint: {self.hint}")

        return "\n".join(parts)

    def with_location(
        self,
        location: Optional[SourceLocation],
        source_line: Optional[str] = None,
    ) -> "_LocatedError":
        """Attach a location to an error raised without one."""
        if self.location is None and location is not None:
            self.location = location
            self.source_line = source_line
            self.args = (self._format_message(),)
        return self

    def __str__(self) -> str:
        return self._format_message()


# =============================================================================
# Translator Exceptions
# =============================================================================

class TranslatorError(_LocatedError):
    """Base exception for all VM translator errors."""
    pass


class MalformedInstructionError(TranslatorError):
    """
    A VM command that cannot be parsed.

    Raised by the reader when the first token is not a known keyword or
    arithmetic operator, when the token count does not match the command
    kind, or when a numeric argument is not a non-negative integer.

    Examples:
        pusj constant 7      ; unknown keyword
        push constant        ; missing index
        return 0             ; unexpected argument
    """
    pass


class UnknownOperatorError(TranslatorError):
    """Arithmetic/logical operator outside the fixed vocabulary."""

    def __init__(
        self,
        operator: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.operator = operator
        super().__init__(
            f"unknown arithmetic operator '{operator}'",
            location=location,
            hint="valid operators: add, sub, neg, eq, gt, lt, and, or, not",
            source_line=source_line,
        )


class UnknownSegmentError(TranslatorError):
    """Memory segment outside the fixed vocabulary."""

    def __init__(
        self,
        segment: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
        similar: Optional[list[str]] = None,
    ):
        self.segment = segment
        self.similar = similar or []

        hint = None
        if self.similar:
            suggestions = ", ".join(f"'{s}'" for s in self.similar[:3])
            hint = f"did you mean {suggestions}?"

        super().__init__(
            f"unknown memory segment '{segment}'",
            location=location,
            hint=hint,
            source_line=source_line,
        )


class SegmentRangeError(TranslatorError):
    """
    Index outside the range of a fixed-size segment.

    The pointer segment has 2 cells, temp has 8, and constants must fit
    in a 15-bit A-instruction.
    """

    def __init__(
        self,
        segment: str,
        index: int,
        limit: int,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.segment = segment
        self.index = index
        self.limit = limit
        super().__init__(
            f"index {index} is out of range for segment '{segment}'",
            location=location,
            hint=f"'{segment}' accepts indices 0 to {limit}",
            source_line=source_line,
        )


class UnboundModuleError(TranslatorError):
    """
    Static segment access before any module name was set.

    Static variables are named after the module that owns them, so the
    emitter cannot name one until the driver sets the module context.
    """

    def __init__(
        self,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        super().__init__(
            "static segment accessed before a module name was set",
            location=location,
            hint="call set_module_name() before translating a module",
            source_line=source_line,
        )


class UnsupportedOperationError(TranslatorError):
    """
    Operation the target cannot perform.

    Example:
        pop constant 0       ; constants are not writable
    """
    pass


class TranslatorInputError(TranslatorError):
    """No VM sources could be found for translation."""
    pass


# =============================================================================
# Assembler Exceptions
# =============================================================================

class AssemblerError(_LocatedError):
    """Base exception for all Hack assembler errors."""
    pass


class AssemblySyntaxError(AssemblerError):
    """
    Syntax error in Hack assembly.

    Examples:
        - Unknown dest, comp or jump mnemonic
        - Empty label "()"
        - A-instruction constant larger than 32767
    """
    pass


class DuplicateSymbolError(AssemblerError):
    """Label defined more than once."""

    def __init__(
        self,
        symbol: str,
        location: Optional[SourceLocation] = None,
        original_location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.symbol = symbol
        self.original_location = original_location

        hint = None
        if original_location:
            hint = f"'{symbol}' was first defined at {original_location}"

        super().__init__(
            f"duplicate label '{symbol}'",
            location=location,
            hint=hint,
            source_line=source_line,
        )


# =============================================================================
# Emulator Exceptions
# =============================================================================

class EmulatorError(HackVMError):
    """
    Error while executing machine code.

    Raised for invalid program images (words wider than 16 bits, programs
    larger than ROM) and for addresses outside RAM.
    """
    pass
