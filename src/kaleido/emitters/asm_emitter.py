"""
Renders Kaleido AST nodes as a stack-machine listing.

This module defines the `AsmEmitter` class, the placeholder backend of the
Kaleido front end. It does not produce runnable target code: the listing is a
readable picture of evaluation order, used by the REPL's "asm" stage and by the
CLI's `--assembly` flag.

Listing format:
    extern sin/1
    func test(x):
        load x
        push 1.0
        add
        ret

Instructions:
    - `push N`        numeric literal
    - `load NAME`     variable read
    - `dup`, `store NAME`   let-binding (the bound value stays on the stack)
    - `call NAME/N`   call with N arguments taken from the stack
    - `add sub mul div shl`   binary operators

Anonymous top-level expressions are listed under the label `__anon_expr`.
`lower()` lists a sequence of completed top-level nodes in program order.

Raises:
    - `NotImplementedError`: If an expression kind has no emitter method.
    - `TypeError`: If `lower()` is given something other than a top-level node.
"""

from collections.abc import Iterable

from kaleido.kaleido_ast import (
    Assignment,
    ASTNode,
    Binary,
    Call,
    Expression,
    ExternDecl,
    FunctionDecl,
    Literal,
    Prototype,
    Variable,
)

ANON_LABEL = "__anon_expr"

OPCODES: dict[str, str] = {
    "ADD": "add",
    "SUB": "sub",
    "MUL": "mul",
    "DIV": "div",
    "SHIFT": "shl",
}


class AsmEmitter:
    """Emits a stack-machine listing from Kaleido AST nodes.

    Attributes:
        lines (list[str]): Accumulated listing lines.
        indent (int): Current indentation level.
    """

    def __init__(self) -> None:
        self.lines: list[str] = []
        self.indent = 0

    def indent_str(self) -> str:
        return "    " * self.indent

    def get_output(self) -> str:
        return "\n".join(self.lines)

    def label(self, proto: Prototype) -> str:
        return proto.name if not proto.is_anonymous else ANON_LABEL

    def emit_extern(self, node: ExternDecl) -> None:
        proto = node.prototype
        self.lines.append(
            f"{self.indent_str()}extern {self.label(proto)}/{len(proto.params)}"
        )

    def emit_function(self, node: FunctionDecl) -> None:
        """
        Emits a function header, its body instructions, and a trailing `ret`.

        Parameters
        ----------
        node : FunctionDecl
            A named or anonymous function.
        """
        proto = node.prototype
        self.lines.append(
            f"{self.indent_str()}func {self.label(proto)}({', '.join(proto.params)}):"
        )
        self.indent += 1
        for instr in self.emit_expr(node.body):
            self.lines.append(f"{self.indent_str()}{instr}")
        self.lines.append(f"{self.indent_str()}ret")
        self.indent -= 1

    def emit_expr(self, node: Expression) -> list[str]:
        """
        Emits the instructions that leave the value of `node` on the stack.

        Raises
        ------
        NotImplementedError
            If there is no `emit_expr_<kind>` method for the node.
        """
        method = getattr(self, f"emit_expr_{node.kind}", None)
        if method is None:
            raise NotImplementedError(f"No listing for expression kind '{node.kind}'")
        instrs: list[str] = method(node)
        return instrs

    def emit_expr_literal(self, node: Literal) -> list[str]:
        return [f"push {node.value!r}"]

    def emit_expr_variable(self, node: Variable) -> list[str]:
        return [f"load {node.name}"]

    def emit_expr_assignment(self, node: Assignment) -> list[str]:
        return self.emit_expr(node.value) + ["dup", f"store {node.name}"]

    def emit_expr_call(self, node: Call) -> list[str]:
        instrs: list[str] = []
        for arg in node.args:
            instrs.extend(self.emit_expr(arg))
        instrs.append(f"call {node.callee}/{len(node.args)}")
        return instrs

    def emit_expr_binary(self, node: Binary) -> list[str]:
        return self.emit_expr(node.lhs) + self.emit_expr(node.rhs) + [OPCODES[node.op]]


def lower(nodes: Iterable[ASTNode]) -> str:
    """Lists completed top-level nodes in program order.

    Raises:
        TypeError: If an item is not an ExternDecl or FunctionDecl.
    """
    emitter = AsmEmitter()
    for node in nodes:
        if isinstance(node, ExternDecl):
            emitter.emit_extern(node)
        elif isinstance(node, FunctionDecl):
            emitter.emit_function(node)
        else:
            raise TypeError(f"Cannot lower {type(node).__name__}; expected a top-level node")
    return emitter.get_output()
