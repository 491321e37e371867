"""
VM Translator Main Module
=========================

This module provides the translator driver. It feeds the commands of one
or more VM modules through a single CodeEmitter:

    .vm sources → VMReader → Instructions → CodeEmitter → Hack assembly

Usage
-----
Command line:
    $ vmtranslate Main.vm              # writes Main.asm
    $ vmtranslate FibonacciElement/    # writes FibonacciElement/FibonacciElement.asm

Programmatic:
    >>> from hackvm.translator import translate_vm
    >>> asm = translate_vm("push constant 7\\npush constant 8\\nadd\\n")

Module Ordering
---------------
A directory is translated as one program. Its ``.vm`` files are sorted
lexically by file name so the output does not depend on the order the
filesystem happens to list them in.

Bootstrap
---------
When several modules are combined (directory input, or more than one
file), the output starts with bootstrap code that sets SP to 256 and
calls ``Sys.init``. A single file is translated without it unless the
options ask for it.

Error Handling
--------------
Translation stops at the first error. Output is assembled in memory and
only written to disk once every module translated, so a failed run never
leaves a partial ``.asm`` file behind.
"""

import contextlib
import io
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional, TextIO, Union

from hackvm.errors import TranslatorInputError
from hackvm.translator.commands import ENTRY_FUNCTION, STACK_BASE
from hackvm.translator.emitter import CodeEmitter
from hackvm.translator.reader import VMReader


logger = logging.getLogger(__name__)

VM_SUFFIX = ".vm"
ASM_SUFFIX = ".asm"

_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})
_FALSE_STRINGS = frozenset({"0", "false", "no", "off"})


@dataclass
class TranslatorOptions:
    """
    Translator configuration options.

    Attributes:
        bootstrap: Emit bootstrap code. None means automatic: on when
                   several modules are combined, off for a single file.
        emit_comments: Precede each command's code with the VM command as
                       a ``//`` comment.
        entry_function: Function the bootstrap code calls.
        stack_base: Initial stack pointer set by the bootstrap code.
    """
    bootstrap: Optional[bool] = None
    emit_comments: bool = True
    entry_function: str = ENTRY_FUNCTION
    stack_base: int = STACK_BASE

    @classmethod
    def from_env(cls) -> "TranslatorOptions":
        """
        Create options from environment variables.

        Environment variables (all optional):
            HACKVM_BOOTSTRAP: "1"/"0" (or true/false, yes/no, on/off)
            HACKVM_COMMENTS: "1"/"0"
            HACKVM_ENTRY: Entry function for the bootstrap code

        Returns:
            TranslatorOptions with values from environment variables
        """
        options = cls()

        if (bootstrap := _env_flag("HACKVM_BOOTSTRAP")) is not None:
            options.bootstrap = bootstrap

        if (comments := _env_flag("HACKVM_COMMENTS")) is not None:
            options.emit_comments = comments

        if entry := os.environ.get("HACKVM_ENTRY"):
            options.entry_function = entry

        return options


def _env_flag(name: str) -> Optional[bool]:
    value = os.environ.get(name)
    if value is None:
        return None
    value = value.strip().lower()
    if value in _TRUE_STRINGS:
        return True
    if value in _FALSE_STRINGS:
        return False
    logger.warning(f"Ignoring {name}={value!r}: expected a boolean")
    return None


@dataclass
class TranslationResult:
    """
    Result of a translation run.

    Attributes:
        assembly: Generated Hack assembly text
        modules: Module names in the order they were translated
        instruction_count: Number of VM commands translated
        line_count: Number of assembly lines generated
        bootstrapped: True if bootstrap code was emitted
        output_path: Where the assembly was written, if it was
    """
    assembly: str = ""
    modules: list[str] = field(default_factory=list)
    instruction_count: int = 0
    line_count: int = 0
    bootstrapped: bool = False
    output_path: Optional[Path] = None


class VMTranslator:
    """
    Translates VM modules into one Hack assembly program.

    Example:
        translator = VMTranslator()
        result = translator.translate_to_file("ProgramDir")
        print(result.output_path)

    Attributes:
        options: Translator configuration options
    """

    def __init__(self, options: Optional[TranslatorOptions] = None):
        self.options = options or TranslatorOptions()

    # =========================================================================
    # Core Loop
    # =========================================================================

    def translate_module(
        self,
        source: Union[str, TextIO],
        module_name: str,
        emitter: CodeEmitter,
        filename: Optional[str] = None,
    ) -> int:
        """
        Translate one module's commands into an existing emitter.

        Args:
            source: VM source text or a readable text stream
            module_name: Module context for statics and labels
            emitter: Destination emitter, shared across modules
            filename: Name for error messages (defaults to module_name.vm)

        Returns:
            Number of VM commands translated
        """
        emitter.set_module_name(module_name)
        reader = VMReader(source, filename or f"{emitter.module_name}{VM_SUFFIX}")

        count = 0
        for instruction in reader:
            emitter.write_instruction(instruction)
            count += 1

        logger.info(f"Translated module {emitter.module_name}: {count} commands")
        return count

    def _run(
        self,
        units: Iterable[tuple[str, Union[str, TextIO], Optional[str]]],
        bootstrap: bool,
    ) -> TranslationResult:
        result = TranslationResult(bootstrapped=bootstrap)
        sink = io.StringIO()

        with CodeEmitter(sink, emit_comments=self.options.emit_comments) as emitter:
            if bootstrap:
                emitter.write_init(self.options.entry_function, self.options.stack_base)

            for module_name, source, filename in units:
                if self.options.emit_comments:
                    emitter.write_comment(f"=== {module_name}{VM_SUFFIX} ===")
                result.instruction_count += self.translate_module(
                    source, module_name, emitter, filename
                )
                result.modules.append(emitter.module_name)

            result.line_count = emitter.lines_written

        result.assembly = sink.getvalue()
        return result

    # =========================================================================
    # Sources
    # =========================================================================

    def translate_source(
        self,
        source: str,
        module_name: str = "Main",
        bootstrap: Optional[bool] = None,
    ) -> TranslationResult:
        """
        Translate VM source text held in memory.

        Args:
            source: VM source text
            module_name: Module context for statics and labels
            bootstrap: Override the bootstrap option for this call

        Returns:
            TranslationResult with the generated assembly
        """
        if bootstrap is None:
            bootstrap = bool(self.options.bootstrap)
        return self._run([(module_name, source, None)], bootstrap)

    def translate_files(
        self,
        paths: Iterable[Union[str, Path]],
        bootstrap: Optional[bool] = None,
    ) -> TranslationResult:
        """
        Translate VM files, in the given order, into one program.

        Args:
            paths: VM files to combine
            bootstrap: Override the bootstrap option for this call

        Raises:
            FileNotFoundError: If a file does not exist
            TranslatorInputError: If no files are given
            TranslatorError: On the first invalid command
        """
        files = [Path(p) for p in paths]
        if not files:
            raise TranslatorInputError("no VM files to translate")
        for path in files:
            if not path.is_file():
                raise FileNotFoundError(f"VM file not found: {path}")

        if bootstrap is None:
            bootstrap = self.options.bootstrap
        if bootstrap is None:
            bootstrap = len(files) > 1

        with contextlib.closing(self._open_units(files)) as units:
            return self._run(units, bootstrap)

    def _open_units(self, files: list[Path]):
        for path in files:
            logger.debug(f"Reading {path}")
            with path.open("r", encoding="utf-8") as stream:
                yield path.stem, stream, str(path)

    def translate_path(self, path: Union[str, Path]) -> TranslationResult:
        """
        Translate a single .vm file or every .vm file in a directory.

        Directory input is always treated as a multi-module program
        (bootstrap on unless the options turn it off).
        """
        path = Path(path)
        sources = self.discover_sources(path)

        bootstrap = self.options.bootstrap
        if bootstrap is None and path.is_dir():
            bootstrap = True

        return self.translate_files(sources, bootstrap)

    def translate_to_file(
        self,
        path: Union[str, Path],
        output: Optional[Union[str, Path]] = None,
    ) -> TranslationResult:
        """
        Translate a file or directory and write the assembly.

        The output file is written only after the whole translation
        succeeded.

        Args:
            path: A .vm file or a directory containing .vm files
            output: Output path (default: see default_output_path)

        Returns:
            TranslationResult with output_path set
        """
        path = Path(path)
        result = self.translate_path(path)

        out = Path(output) if output is not None else self.default_output_path(path)
        out.write_text(result.assembly, encoding="utf-8")
        result.output_path = out

        logger.info(f"Wrote {result.line_count} lines to {out}")
        return result

    # =========================================================================
    # Path Helpers
    # =========================================================================

    @staticmethod
    def discover_sources(path: Union[str, Path]) -> list[Path]:
        """
        List the VM files to translate for a path.

        Args:
            path: A .vm file or a directory

        Returns:
            The file itself, or the directory's .vm files sorted by name

        Raises:
            FileNotFoundError: If the path does not exist
            TranslatorInputError: If the file is not a .vm file, or the
                directory contains none
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"input not found: {path}")

        if path.is_dir():
            sources = sorted(
                (p for p in path.iterdir() if p.is_file() and p.suffix.lower() == VM_SUFFIX),
                key=lambda p: p.name,
            )
            if not sources:
                raise TranslatorInputError(
                    f"no {VM_SUFFIX} files found in directory: {path}"
                )
            return sources

        if path.suffix.lower() != VM_SUFFIX:
            raise TranslatorInputError(
                f"invalid file extension '{path.suffix}': expected {VM_SUFFIX}",
                hint="pass a .vm file or a directory containing .vm files",
            )
        return [path]

    @staticmethod
    def default_output_path(path: Union[str, Path]) -> Path:
        """
        Output file for an input path.

        ``Foo.vm`` → ``Foo.asm``; ``Dir/`` → ``Dir/Dir.asm``.
        """
        path = Path(path)
        if path.is_dir():
            return path / f"{path.resolve().name}{ASM_SUFFIX}"
        return path.with_suffix(ASM_SUFFIX)


def translate_vm(
    source: str,
    module_name: str = "Main",
    bootstrap: bool = False,
    emit_comments: bool = True,
) -> str:
    """
    Translate VM source text to Hack assembly.

    Args:
        source: VM source text
        module_name: Module context for statics and labels
        bootstrap: Prepend SP initialization and a call to Sys.init
        emit_comments: Include the VM commands as comments

    Returns:
        Hack assembly text

    Raises:
        TranslatorError: On the first invalid command
    """
    options = TranslatorOptions(bootstrap=bootstrap, emit_comments=emit_comments)
    return VMTranslator(options).translate_source(source, module_name).assembly
