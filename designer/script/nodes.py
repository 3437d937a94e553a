"""
AST node types produced by the parser.
"""

from dataclasses import dataclass
from typing import Any, Optional, Tuple


class Node:
    pass


# ── Statements ──────────────────────────────────────────

@dataclass(frozen=True)
class Program(Node):
    body: Tuple[Node, ...]


@dataclass(frozen=True)
class VarDecl(Node):
    kind: str
    declarations: Tuple[Tuple[str, Optional[Node]], ...]


@dataclass(frozen=True)
class ExprStmt(Node):
    expr: Node


@dataclass(frozen=True)
class Return(Node):
    argument: Optional[Node]


@dataclass(frozen=True)
class If(Node):
    test: Node
    consequent: Node
    alternate: Optional[Node]


@dataclass(frozen=True)
class Block(Node):
    body: Tuple[Node, ...]


@dataclass(frozen=True)
class For(Node):
    init: Optional[Node]
    test: Optional[Node]
    update: Optional[Node]
    body: Node


@dataclass(frozen=True)
class ForOf(Node):
    kind: str
    name: str
    iterable: Node
    body: Node


@dataclass(frozen=True)
class While(Node):
    test: Node
    body: Node


@dataclass(frozen=True)
class Break(Node):
    pass


@dataclass(frozen=True)
class Continue(Node):
    pass


@dataclass(frozen=True)
class Empty(Node):
    pass


# ── Expressions ─────────────────────────────────────────

@dataclass(frozen=True)
class Literal(Node):
    value: Any


@dataclass(frozen=True)
class TemplateLit(Node):
    quasis: Tuple[str, ...]
    expressions: Tuple[Node, ...]


@dataclass(frozen=True)
class Ident(Node):
    name: str


@dataclass(frozen=True)
class Spread(Node):
    argument: Node


@dataclass(frozen=True)
class ArrayLit(Node):
    elements: Tuple[Node, ...]


@dataclass(frozen=True)
class ObjectLit(Node):
    # (key, value) pairs; key is a str, a Node for computed keys, or None for spread
    properties: Tuple[Tuple[Any, Node], ...]


@dataclass(frozen=True)
class Member(Node):
    obj: Node
    prop: str
    optional: bool = False


@dataclass(frozen=True)
class Index(Node):
    obj: Node
    index: Node
    optional: bool = False


@dataclass(frozen=True)
class Call(Node):
    callee: Node
    args: Tuple[Node, ...]
    optional: bool = False


@dataclass(frozen=True)
class New(Node):
    callee: Node
    args: Tuple[Node, ...]


@dataclass(frozen=True)
class Unary(Node):
    op: str
    argument: Node


@dataclass(frozen=True)
class Update(Node):
    op: str
    prefix: bool
    target: Node


@dataclass(frozen=True)
class Binary(Node):
    op: str
    left: Node
    right: Node


@dataclass(frozen=True)
class Logical(Node):
    op: str
    left: Node
    right: Node


@dataclass(frozen=True)
class Conditional(Node):
    test: Node
    consequent: Node
    alternate: Node


@dataclass(frozen=True)
class Assign(Node):
    op: str
    target: Node
    value: Node


@dataclass(frozen=True)
class Arrow(Node):
    params: Tuple[str, ...]
    body: Node
    expression: bool
