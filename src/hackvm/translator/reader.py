"""
VM Command Reader
=================

Reads VM-language source one line at a time and yields structured
Instruction records for the emitter.

Line Handling
-------------
- Everything from the first ``//`` to the end of the line is a comment
- Leading and trailing whitespace is removed
- Lines that end up empty produce no instruction
- Remaining text is split on whitespace into tokens

The reader is lazy: for stream input nothing is read ahead of the
instruction being yielded, and the sequence cannot be restarted.

Example Usage
-------------
>>> from hackvm.translator.reader import VMReader
>>> reader = VMReader("push constant 7  // seven\\nadd\\n", "Main.vm")
>>> for instruction in reader:
...     print(instruction.kind.name, instruction.arg1, instruction.arg2)
PUSH constant 7
ARITHMETIC add None
"""

import difflib
import io
import logging
from typing import Iterator, Optional, TextIO, Union

from hackvm.errors import MalformedInstructionError, SourceLocation
from hackvm.translator.commands import (
    ARITHMETIC_OPERATORS,
    KEYWORDS,
    CommandType,
    Instruction,
)


logger = logging.getLogger(__name__)

COMMENT_MARKER = "//"

# Every word that may start a command
_ALL_WORDS = sorted(set(KEYWORDS) | ARITHMETIC_OPERATORS)


class VMReader:
    """
    Lazily parses VM source into Instruction records.

    Usage:
        reader = VMReader(open("Main.vm"), "Main.vm")
        for instruction in reader.read():
            emitter.write_instruction(instruction)

    Attributes:
        filename: Name used in source locations and error messages
    """

    def __init__(self, source: Union[str, TextIO], filename: str = "<input>"):
        """
        Args:
            source: VM source text, or a readable text stream
            filename: Name of the source (for error messages)
        """
        if isinstance(source, str):
            source = io.StringIO(source)
        self._stream = source
        self.filename = filename
        self._consumed = False

    def __iter__(self) -> Iterator[Instruction]:
        return self.read()

    def read(self) -> Iterator[Instruction]:
        """
        Yield the instructions of the source in order.

        Raises:
            MalformedInstructionError: On an unknown keyword, a wrong
                token count or an invalid numeric argument.
        """
        if self._consumed:
            return
        self._consumed = True

        for line_number, raw in enumerate(self._stream, start=1):
            location = SourceLocation(self.filename, line_number, _first_column(raw))
            instruction = parse_line(raw, location)
            if instruction is None:
                continue
            logger.debug(f"{location}: {instruction.kind.name} {instruction}")
            yield instruction


def parse_line(
    line: str,
    location: Optional[SourceLocation] = None,
) -> Optional[Instruction]:
    """
    Parse a single line of VM source.

    Args:
        line: Raw source line (may contain a comment or be blank)
        location: Position of the line, attached to the result and errors

    Returns:
        The parsed Instruction, or None for a blank or comment-only line

    Raises:
        MalformedInstructionError: If the line is not a valid command
    """
    code = line.split(COMMENT_MARKER, 1)[0].strip()
    if not code:
        return None

    tokens = code.split()
    word = tokens[0]
    source_line = line.rstrip("\r\n")

    if word in ARITHMETIC_OPERATORS:
        kind = CommandType.ARITHMETIC
    elif word in KEYWORDS:
        kind = KEYWORDS[word]
    else:
        close = difflib.get_close_matches(word, _ALL_WORDS, n=3)
        hint = None
        if close:
            hint = "did you mean " + ", ".join(f"'{w}'" for w in close) + "?"
        raise MalformedInstructionError(
            f"unknown command '{word}'",
            location=location,
            hint=hint,
            source_line=source_line,
        )

    if len(tokens) != kind.arity:
        expected = kind.arity - 1
        noun = "argument" if expected == 1 else "arguments"
        raise MalformedInstructionError(
            f"'{word}' takes {expected} {noun}, got {len(tokens) - 1}",
            location=location,
            source_line=source_line,
        )

    arg1: Optional[str] = None
    arg2: Optional[int] = None
    if kind is CommandType.ARITHMETIC:
        arg1 = word
    elif kind is not CommandType.RETURN:
        arg1 = tokens[1]
    if kind.has_index:
        arg2 = _parse_index(word, tokens[2], location, source_line)

    return Instruction(kind, arg1, arg2, location=location, text=" ".join(tokens))


def _parse_index(
    word: str,
    token: str,
    location: Optional[SourceLocation],
    source_line: str,
) -> int:
    if not (token.isascii() and token.isdigit()):
        raise MalformedInstructionError(
            f"'{word}' expects a non-negative integer, got '{token}'",
            location=location,
            source_line=source_line,
        )
    return int(token)


def _first_column(line: str) -> int:
    stripped = line.lstrip()
    if not stripped:
        return 1
    return len(line) - len(stripped) + 1
