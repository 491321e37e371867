"""
Code Emitter Tests
==================

Tests for the Hack assembly generated for each VM command: the exact
instruction sequences, label and symbol naming, counters, error
reporting and atomic output.

Behaviour of the generated code on the machine is covered by
test_vm_execution.py.
"""

import io

import pytest

from hackvm.errors import (
    SegmentRangeError,
    SourceLocation,
    TranslatorError,
    UnboundModuleError,
    UnknownOperatorError,
    UnknownSegmentError,
    UnsupportedOperationError,
)
from hackvm.translator.commands import ArithmeticOp, CommandType, Instruction
from hackvm.translator.emitter import CodeEmitter
from hackvm.translator.reader import parse_line


def make_emitter(module_name="Main", **kwargs):
    """Create an emitter writing to a StringIO, comments off by default."""
    kwargs.setdefault("emit_comments", False)
    sink = io.StringIO()
    return CodeEmitter(sink, module_name=module_name, **kwargs), sink


def lines_of(sink: io.StringIO) -> list[str]:
    return sink.getvalue().splitlines()


def labels_in(sink: io.StringIO) -> list[str]:
    """Label definitions ``(NAME)`` in the output, in order."""
    return [line[1:-1] for line in lines_of(sink) if line.startswith("(")]


# =============================================================================
# Arithmetic
# =============================================================================

class TestArithmetic:
    """Arithmetic, logical and comparison commands."""

    def test_add_sequence(self):
        emitter, sink = make_emitter()
        emitter.write_arithmetic("add")
        assert lines_of(sink) == [
            "@SP", "AM=M-1", "D=M",
            "@SP", "M=M-1",
            "@SP", "A=M",
            "M=D+M",
            "@SP", "M=M+1",
        ]

    @pytest.mark.parametrize("op,comp", [
        ("sub", "M=M-D"),
        ("and", "M=D&M"),
        ("or", "M=D|M"),
    ])
    def test_binary_computation(self, op, comp):
        emitter, sink = make_emitter()
        emitter.write_arithmetic(op)
        assert comp in lines_of(sink)

    @pytest.mark.parametrize("op,comp", [("neg", "M=-M"), ("not", "M=!M")])
    def test_unary_in_place(self, op, comp):
        emitter, sink = make_emitter()
        emitter.write_arithmetic(op)
        assert lines_of(sink) == ["@SP", "M=M-1", "@SP", "A=M", comp, "@SP", "M=M+1"]

    @pytest.mark.parametrize("op,jump", [("eq", "D;JEQ"), ("gt", "D;JGT"), ("lt", "D;JLT")])
    def test_comparison_jump(self, op, jump):
        emitter, sink = make_emitter()
        emitter.write_arithmetic(op)
        lines = lines_of(sink)
        assert "D=M-D" in lines
        assert jump in lines
        assert "M=0" in lines
        assert "M=-1" in lines

    def test_comparison_labels_unique(self):
        emitter, sink = make_emitter()
        for op in ("eq", "gt", "lt", "eq"):
            emitter.write_arithmetic(op)
        labels = labels_in(sink)
        assert labels == [
            "IF_TRUE_0", "END_COMP_0",
            "IF_TRUE_1", "END_COMP_1",
            "IF_TRUE_2", "END_COMP_2",
            "IF_TRUE_3", "END_COMP_3",
        ]
        assert emitter.comparison_counter == 4

    def test_comparison_counter_spans_modules(self):
        emitter, sink = make_emitter("Foo")
        emitter.write_arithmetic("eq")
        emitter.set_module_name("Bar")
        emitter.write_arithmetic("eq")
        assert labels_in(sink) == ["IF_TRUE_0", "END_COMP_0", "IF_TRUE_1", "END_COMP_1"]

    def test_counter_start_value(self):
        emitter, sink = make_emitter(comparison_counter=10)
        emitter.write_arithmetic("lt")
        assert labels_in(sink) == ["IF_TRUE_10", "END_COMP_10"]

    def test_non_comparison_does_not_use_counter(self):
        emitter, _ = make_emitter()
        for op in ("add", "sub", "neg", "and", "or", "not"):
            emitter.write_arithmetic(op)
        assert emitter.comparison_counter == 0

    @pytest.mark.parametrize("op", list(ArithmeticOp))
    def test_every_operator_emitted(self, op):
        emitter, sink = make_emitter()
        emitter.write_arithmetic(op.value)
        lines = lines_of(sink)
        assert lines[-2:] == ["@SP", "M=M+1"]
        if op.is_unary:
            assert lines[:2] == ["@SP", "M=M-1"]
            assert lines[-3].startswith("M=")
        elif op.is_comparison:
            assert "D=M-D" in lines
        else:
            assert lines[:3] == ["@SP", "AM=M-1", "D=M"]
            assert lines[-3].startswith("M=")

    def test_unknown_operator(self):
        emitter, sink = make_emitter()
        with pytest.raises(UnknownOperatorError) as exc_info:
            emitter.write_arithmetic("mul")
        assert exc_info.value.operator == "mul"
        assert sink.getvalue() == ""


# =============================================================================
# Push / Pop
# =============================================================================

class TestPushPop:
    """Segment access."""

    def test_push_constant(self):
        emitter, sink = make_emitter()
        emitter.write_push_pop(CommandType.PUSH, "constant", 17)
        assert lines_of(sink) == ["@17", "D=A", "@SP", "A=M", "M=D", "@SP", "M=M+1"]

    @pytest.mark.parametrize("segment,base", [
        ("local", "@LCL"), ("argument", "@ARG"), ("this", "@THIS"), ("that", "@THAT"),
    ])
    def test_push_indirect(self, segment, base):
        emitter, sink = make_emitter()
        emitter.write_push_pop(CommandType.PUSH, segment, 2)
        assert lines_of(sink)[:5] == ["@2", "D=A", base, "A=D+M", "D=M"]

    @pytest.mark.parametrize("segment,base", [("temp", "@5"), ("pointer", "@3")])
    def test_push_direct(self, segment, base):
        emitter, sink = make_emitter()
        emitter.write_push_pop(CommandType.PUSH, segment, 1)
        assert lines_of(sink)[:5] == ["@1", "D=A", base, "A=D+A", "D=M"]

    def test_pop_indirect_parks_address(self):
        emitter, sink = make_emitter()
        emitter.write_push_pop(CommandType.POP, "local", 3)
        assert lines_of(sink) == [
            "@3", "D=A", "@LCL", "D=D+M", "@R13", "M=D",
            "@SP", "AM=M-1", "D=M",
            "@R13", "A=M", "M=D",
        ]

    def test_pop_direct(self):
        emitter, sink = make_emitter()
        emitter.write_push_pop(CommandType.POP, "temp", 6)
        assert lines_of(sink)[:4] == ["@6", "D=A", "@5", "D=D+A"]

    def test_static_symbols_use_module(self):
        emitter, sink = make_emitter("Foo")
        emitter.write_push_pop(CommandType.PUSH, "static", 3)
        emitter.write_push_pop(CommandType.POP, "static", 4)
        lines = lines_of(sink)
        assert "@Foo.3" in lines
        assert "@Foo.4" in lines

    def test_static_symbols_follow_module_switch(self):
        emitter, sink = make_emitter("Foo")
        emitter.write_push_pop(CommandType.PUSH, "static", 0)
        emitter.set_module_name("Bar")
        emitter.write_push_pop(CommandType.PUSH, "static", 0)
        lines = lines_of(sink)
        assert "@Foo.0" in lines
        assert "@Bar.0" in lines

    def test_static_without_module(self):
        emitter, sink = make_emitter(module_name=None)
        with pytest.raises(UnboundModuleError):
            emitter.write_push_pop(CommandType.PUSH, "static", 0)
        assert sink.getvalue() == ""

    def test_pop_constant_rejected(self):
        emitter, sink = make_emitter()
        with pytest.raises(UnsupportedOperationError):
            emitter.write_push_pop(CommandType.POP, "constant", 0)
        assert sink.getvalue() == ""

    def test_non_stack_kind_rejected(self):
        emitter, _ = make_emitter()
        with pytest.raises(UnsupportedOperationError):
            emitter.write_push_pop(CommandType.LABEL, "local", 0)

    def test_unknown_segment_suggests(self):
        emitter, _ = make_emitter()
        with pytest.raises(UnknownSegmentError) as exc_info:
            emitter.write_push_pop(CommandType.PUSH, "locl", 0)
        assert exc_info.value.segment == "locl"
        assert "local" in exc_info.value.similar

    @pytest.mark.parametrize("segment,index", [
        ("pointer", 2), ("temp", 8), ("constant", 32768),
    ])
    def test_segment_range(self, segment, index):
        emitter, _ = make_emitter()
        with pytest.raises(SegmentRangeError) as exc_info:
            emitter.write_push_pop(CommandType.PUSH, segment, index)
        assert exc_info.value.index == index

    @pytest.mark.parametrize("segment,index", [
        ("pointer", 1), ("temp", 7), ("constant", 32767), ("local", 1000),
    ])
    def test_segment_range_upper_bound_accepted(self, segment, index):
        emitter, sink = make_emitter()
        emitter.write_push_pop(CommandType.PUSH, segment, index)
        assert sink.getvalue()


# =============================================================================
# Program Flow
# =============================================================================

class TestProgramFlow:
    """Labels, goto and if-goto."""

    def test_label_qualified(self):
        emitter, sink = make_emitter("Main")
        emitter.write_label("LOOP")
        assert lines_of(sink) == ["(Main$LOOP)"]

    def test_goto(self):
        emitter, sink = make_emitter("Main")
        emitter.write_goto("LOOP")
        assert lines_of(sink) == ["@Main$LOOP", "0;JMP"]

    def test_if_goto_pops(self):
        emitter, sink = make_emitter("Main")
        emitter.write_if("LOOP")
        assert lines_of(sink) == ["@SP", "AM=M-1", "D=M", "@Main$LOOP", "D;JNE"]

    def test_label_without_module_unqualified(self):
        emitter, sink = make_emitter(module_name=None)
        emitter.write_label("END")
        emitter.write_goto("END")
        assert lines_of(sink) == ["(END)", "@END", "0;JMP"]

    def test_same_label_different_modules(self):
        emitter, sink = make_emitter("Foo")
        emitter.write_label("LOOP")
        emitter.set_module_name("Bar")
        emitter.write_label("LOOP")
        assert labels_in(sink) == ["Foo$LOOP", "Bar$LOOP"]


# =============================================================================
# Functions
# =============================================================================

class TestFunctions:
    """function, call and return."""

    def test_function_zeroes_locals(self):
        emitter, sink = make_emitter()
        emitter.write_function("Main.f", 2)
        lines = lines_of(sink)
        assert lines[0] == "(Main.f)"
        assert lines.count("D=0") == 2
        assert lines.count("M=M+1") == 2

    def test_function_name_not_qualified(self):
        emitter, sink = make_emitter("Other")
        emitter.write_function("Main.f", 0)
        assert lines_of(sink) == ["(Main.f)"]

    def test_call_structure(self):
        emitter, sink = make_emitter("Main")
        emitter.write_call("Math.multiply", 2)
        lines = lines_of(sink)
        assert lines[0] == "@Main$ret.0"
        for register in ("@LCL", "@ARG", "@THIS", "@THAT"):
            assert register in lines
        # ARG = SP - 2 - 5
        assert "@7" in lines
        assert lines[-3:] == ["@Math.multiply", "0;JMP", "(Main$ret.0)"]

    def test_return_labels_unique(self):
        emitter, sink = make_emitter("Main")
        emitter.write_call("f", 0)
        emitter.write_call("f", 0)
        emitter.set_module_name("Sys")
        emitter.write_call("f", 0)
        assert labels_in(sink) == ["Main$ret.0", "Main$ret.1", "Sys$ret.2"]
        assert emitter.call_counter == 3

    def test_return_label_without_module(self):
        emitter, sink = make_emitter(module_name=None)
        emitter.write_call("Sys.init", 0)
        assert labels_in(sink) == ["ret.0"]

    def test_return_saves_address_before_overwrite(self):
        emitter, sink = make_emitter()
        emitter.write_return()
        lines = lines_of(sink)
        # return address is read into R14 before *ARG is written
        save = lines.index("@R14")
        write_arg = lines.index("@ARG")
        assert save < write_arg
        assert lines[-3:] == ["@R14", "A=M", "0;JMP"]

    def test_return_restores_in_order(self):
        emitter, sink = make_emitter()
        emitter.write_return()
        lines = lines_of(sink)
        restored = [
            line[1:] for line, nxt in zip(lines, lines[1:])
            if nxt == "M=D" and line in ("@THAT", "@THIS", "@ARG", "@LCL")
        ]
        assert restored == ["THAT", "THIS", "ARG", "LCL"]


# =============================================================================
# Bootstrap
# =============================================================================

class TestBootstrap:
    """write_init."""

    def test_init_sets_sp_and_calls_entry(self):
        emitter, sink = make_emitter(module_name=None)
        emitter.write_init()
        lines = lines_of(sink)
        assert lines[:4] == ["@256", "D=A", "@SP", "M=D"]
        assert "@Sys.init" in lines
        assert lines[-1] == "(ret.0)"

    def test_init_custom_entry(self):
        emitter, sink = make_emitter(module_name=None)
        emitter.write_init("Main.main", stack_base=300)
        lines = lines_of(sink)
        assert lines[0] == "@300"
        assert "@Main.main" in lines

    def test_init_comment(self):
        emitter, sink = make_emitter(module_name=None, emit_comments=True)
        emitter.write_init()
        assert lines_of(sink)[0].startswith("// bootstrap")


# =============================================================================
# Instruction Dispatch and Comments
# =============================================================================

class TestWriteInstruction:
    """Dispatch of parsed instructions."""

    def test_comment_precedes_code(self):
        emitter, sink = make_emitter(emit_comments=True)
        emitter.write_instruction(parse_line("push constant 7"))
        lines = lines_of(sink)
        assert lines[0] == "// push constant 7"
        assert lines[1] == "@7"

    def test_comments_disabled(self):
        emitter, sink = make_emitter(emit_comments=False)
        emitter.write_instruction(parse_line("push constant 7"))
        assert not any(line.startswith("//") for line in lines_of(sink))

    @pytest.mark.parametrize("line", [
        "add", "push local 0", "pop static 1", "label L", "goto L",
        "if-goto L", "function F 1", "call F 1", "return",
    ])
    def test_every_kind_dispatches(self, line):
        emitter, sink = make_emitter()
        emitter.write_instruction(parse_line(line))
        assert sink.getvalue()

    def test_error_gets_location(self):
        emitter, _ = make_emitter()
        location = SourceLocation("Main.vm", 3, 1)
        with pytest.raises(UnsupportedOperationError) as exc_info:
            emitter.write_instruction(parse_line("pop constant 0", location))
        assert exc_info.value.location == location
        assert str(exc_info.value).startswith("Main.vm:3:1: error:")

    def test_unbound_module_error_gets_location(self):
        emitter, _ = make_emitter(module_name=None)
        location = SourceLocation("X.vm", 9, 1)
        with pytest.raises(UnboundModuleError) as exc_info:
            emitter.write_instruction(parse_line("push static 0", location))
        assert exc_info.value.location == location

    def test_instruction_without_text(self):
        emitter, sink = make_emitter(emit_comments=True)
        emitter.write_instruction(Instruction(CommandType.CALL, "Main.f", 1))
        assert lines_of(sink)[0] == "// call Main.f 1"


# =============================================================================
# Atomic Output
# =============================================================================

class TestAtomicOutput:
    """A failed command leaves the sink and counters untouched."""

    def test_failed_command_writes_nothing(self):
        emitter, sink = make_emitter(emit_comments=True)
        emitter.write_instruction(parse_line("push constant 1"))
        before = sink.getvalue()
        written = emitter.lines_written

        with pytest.raises(TranslatorError):
            emitter.write_instruction(parse_line("pop constant 1"))

        assert sink.getvalue() == before
        assert emitter.lines_written == written

    def test_output_is_valid_prefix(self):
        emitter, sink = make_emitter()
        commands = ["push constant 1", "push constant 2", "eq", "pop pointer 5", "add"]
        with pytest.raises(SegmentRangeError):
            for line in commands:
                emitter.write_instruction(parse_line(line))

        reference, ref_sink = make_emitter()
        for line in commands[:3]:
            reference.write_instruction(parse_line(line))
        assert sink.getvalue() == ref_sink.getvalue()

    def test_counters_rolled_back(self, monkeypatch):
        emitter, sink = make_emitter()

        def failing_push_d():
            raise UnsupportedOperationError("sink failure")

        # Fail after the call counter was advanced
        monkeypatch.setattr(emitter, "_push_d", failing_push_d)
        with pytest.raises(UnsupportedOperationError):
            emitter.write_call("f", 0)

        assert emitter.call_counter == 0
        assert sink.getvalue() == ""

    def test_closed_emitter_rejects_writes(self):
        emitter, _ = make_emitter()
        emitter.close()
        with pytest.raises(ValueError):
            emitter.write_arithmetic("add")


# =============================================================================
# Module Context
# =============================================================================

class TestModuleName:
    """set_module_name normalization."""

    @pytest.mark.parametrize("name,expected", [
        ("Main", "Main"),
        ("Main.vm", "Main"),
        ("progs/Sys.vm", "Sys"),
        ("/abs/path/Foo.vm", "Foo"),
    ])
    def test_normalized(self, name, expected):
        emitter, _ = make_emitter(module_name=None)
        emitter.set_module_name(name)
        assert emitter.module_name == expected

    def test_empty_rejected(self):
        emitter, _ = make_emitter(module_name=None)
        with pytest.raises(ValueError):
            emitter.set_module_name(".vm")

    def test_to_file_owns_sink(self, tmp_path):
        path = tmp_path / "out.asm"
        with CodeEmitter.to_file(path, module_name="Main", emit_comments=False) as emitter:
            emitter.write_push_pop(CommandType.PUSH, "constant", 1)
        assert path.read_text().splitlines()[0] == "@1"
