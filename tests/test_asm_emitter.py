from dataclasses import dataclass
from typing import ClassVar

import pytest

from kaleido.emitters.asm_emitter import ANON_LABEL, AsmEmitter, lower
from kaleido.kaleido_ast import (
    Assignment,
    Binary,
    Call,
    ExternDecl,
    FunctionDecl,
    Literal,
    Prototype,
    Variable,
)


def test_emit_expr_literal() -> None:
    assert AsmEmitter().emit_expr(Literal(2.5)) == ["push 2.5"]


def test_emit_expr_variable() -> None:
    assert AsmEmitter().emit_expr(Variable("x")) == ["load x"]


def test_emit_expr_binary_follows_evaluation_order() -> None:
    node = Binary("ADD", Literal(2.0), Binary("MUL", Literal(3.0), Literal(4.0)))
    assert AsmEmitter().emit_expr(node) == [
        "push 2.0",
        "push 3.0",
        "push 4.0",
        "mul",
        "add",
    ]


def test_emit_expr_shift_opcode() -> None:
    node = Binary("SHIFT", Variable("a"), Literal(1.0))
    assert AsmEmitter().emit_expr(node)[-1] == "shl"


def test_emit_expr_call() -> None:
    node = Call("f", (Variable("x"), Literal(5.0)))
    assert AsmEmitter().emit_expr(node) == ["load x", "push 5.0", "call f/2"]


def test_emit_expr_assignment() -> None:
    node = Assignment("y", Literal(1.0))
    assert AsmEmitter().emit_expr(node) == ["push 1.0", "dup", "store y"]


def test_emit_extern() -> None:
    emitter = AsmEmitter()
    emitter.emit_extern(ExternDecl(Prototype("sin", ("x",))))
    assert emitter.get_output() == "extern sin/1"


def test_emit_function() -> None:
    emitter = AsmEmitter()
    emitter.emit_function(
        FunctionDecl(Prototype("test", ("x", "y")), Binary("SUB", Variable("x"), Variable("y")))
    )
    assert emitter.get_output() == "\n".join(
        [
            "func test(x, y):",
            "    load x",
            "    load y",
            "    sub",
            "    ret",
        ]
    )
    assert emitter.indent == 0


def test_emit_anonymous_function_label() -> None:
    emitter = AsmEmitter()
    emitter.emit_function(FunctionDecl.anonymous(Call("rand")))
    assert emitter.lines[0] == f"func {ANON_LABEL}():"
    assert emitter.lines[1] == "    call rand/0"


def test_emit_expr_unknown_kind_raises() -> None:
    @dataclass(frozen=True)
    class Conditional:
        kind: ClassVar[str] = "conditional"

    with pytest.raises(NotImplementedError, match="conditional"):
        AsmEmitter().emit_expr(Conditional())  # type: ignore[arg-type]


def test_lower_program_in_order() -> None:
    nodes = [
        ExternDecl(Prototype("sin", ("x",))),
        FunctionDecl.anonymous(Call("sin", (Literal(1.0),))),
    ]
    assert lower(nodes) == "\n".join(
        ["extern sin/1", "func __anon_expr():", "    push 1.0", "    call sin/1", "    ret"]
    )


def test_lower_nothing_is_empty() -> None:
    assert lower([]) == ""


def test_lower_rejects_non_toplevel_nodes() -> None:
    with pytest.raises(TypeError, match="Cannot lower Literal"):
        lower([Literal(1.0)])  # type: ignore[list-item]
