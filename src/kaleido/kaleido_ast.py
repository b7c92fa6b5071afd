"""
Defines the abstract syntax tree (AST) for the Kaleido language.

The grammar's node kinds are fixed, so the tree is modelled as two closed unions
of immutable dataclasses:

Expression:
    Literal(value)                 numeric literal
    Variable(name)                 variable reference
    Assignment(name, value)        `let name = value`
    Call(callee, args)             `callee(arg, ...)`
    Binary(op, lhs, rhs)           `lhs op rhs`, op is a canonical operator name

ASTNode:
    ExternDecl(prototype)          `extern name(params)`
    FunctionDecl(prototype, body)  `def name(params) body`

A bare top-level expression is a FunctionDecl whose prototype has an empty name
and no parameters, so every top-level unit has the same shape for the lowering
stage.

Every node carries a `kind` tag (used by emitters for `emit_<kind>` dispatch)
and a `to_dict()` method producing an `ASTDict` suitable for JSON output or
debugging.

Example:
    >>> FunctionDecl(Prototype("id", ("x",)), Variable("x")).to_dict()["kind"]
    'function'
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar, TypedDict, Union


class ASTDict(TypedDict, total=False):
    """
    Serialized shape of a Kaleido AST node.

    Fields:
        kind (str): The node kind (e.g. "literal", "call", "function").
        value (Any): Literal value, variable/callee name, or operator name.
        name (str): Prototype or assignment target name.
        params (list[str]): Prototype parameters.
        children (list[ASTDict]): Sub-expressions in source order.
    """

    kind: str
    value: Any
    name: str
    params: list[str]
    children: list["ASTDict"]


@dataclass(frozen=True)
class Literal:
    value: float
    kind: ClassVar[str] = "literal"

    def to_dict(self) -> ASTDict:
        return {"kind": self.kind, "value": self.value}


@dataclass(frozen=True)
class Variable:
    name: str
    kind: ClassVar[str] = "variable"

    def to_dict(self) -> ASTDict:
        return {"kind": self.kind, "value": self.name}


@dataclass(frozen=True)
class Assignment:
    name: str
    value: "Expression"
    kind: ClassVar[str] = "assignment"

    def to_dict(self) -> ASTDict:
        return {"kind": self.kind, "name": self.name, "children": [self.value.to_dict()]}


@dataclass(frozen=True)
class Call:
    callee: str
    args: tuple["Expression", ...] = field(default_factory=tuple)
    kind: ClassVar[str] = "call"

    def to_dict(self) -> ASTDict:
        return {
            "kind": self.kind,
            "value": self.callee,
            "children": [arg.to_dict() for arg in self.args],
        }


@dataclass(frozen=True)
class Binary:
    op: str
    lhs: "Expression"
    rhs: "Expression"
    kind: ClassVar[str] = "binary"

    def to_dict(self) -> ASTDict:
        return {
            "kind": self.kind,
            "value": self.op,
            "children": [self.lhs.to_dict(), self.rhs.to_dict()],
        }


Expression = Union[Literal, Variable, Assignment, Call, Binary]


@dataclass(frozen=True)
class Prototype:
    """A function signature: name plus ordered parameter names.

    Parameter names are kept exactly as written; duplicates are not rejected.
    """

    name: str
    params: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_anonymous(self) -> bool:
        return self.name == ""

    def to_dict(self) -> ASTDict:
        return {"kind": "prototype", "name": self.name, "params": list(self.params)}


@dataclass(frozen=True)
class ExternDecl:
    prototype: Prototype
    kind: ClassVar[str] = "extern"

    def to_dict(self) -> ASTDict:
        return {
            "kind": self.kind,
            "name": self.prototype.name,
            "params": list(self.prototype.params),
        }


@dataclass(frozen=True)
class FunctionDecl:
    prototype: Prototype
    body: Expression
    kind: ClassVar[str] = "function"

    @classmethod
    def anonymous(cls, body: Expression) -> "FunctionDecl":
        """Wraps a bare top-level expression as a zero-parameter unnamed function."""
        return cls(Prototype("", ()), body)

    def to_dict(self) -> ASTDict:
        return {
            "kind": self.kind,
            "name": self.prototype.name,
            "params": list(self.prototype.params),
            "children": [self.body.to_dict()],
        }


ASTNode = Union[ExternDecl, FunctionDecl]

__all__ = [
    "ASTDict",
    "ASTNode",
    "Assignment",
    "Binary",
    "Call",
    "Expression",
    "ExternDecl",
    "FunctionDecl",
    "Literal",
    "Prototype",
    "Variable",
]
