"""Quill AST node hierarchy - the tree shape the evaluator consumes.

Producing these nodes from source text is the job of a parser collaborator.
Every node carries optional source location metadata so that classified
errors can be attributed to the expression that caused them.
"""

from abc import ABC
from dataclasses import dataclass, field
from typing import Any, Tuple


@dataclass(frozen=True)
class QuillASTNode(ABC):
    """
    Abstract base class for all Quill AST nodes.

    Source location fields are keyword-only so node payloads can be given
    positionally.
    """
    line: int | None = field(default=None, kw_only=True)
    column: int | None = field(default=None, kw_only=True)
    source_file: str = field(default="", kw_only=True)


@dataclass(frozen=True)
class QuillLiteral(QuillASTNode):
    """A literal host value (number, string, boolean or None for `none`)."""
    value: Any


@dataclass(frozen=True)
class QuillIdentifier(QuillASTNode):
    """A name that requires environment lookup."""
    name: str


@dataclass(frozen=True)
class QuillArray(QuillASTNode):
    """An array literal; items may include QuillSpread entries."""
    items: Tuple[QuillASTNode, ...] = ()


@dataclass(frozen=True)
class QuillDict(QuillASTNode):
    """A dictionary literal built from QuillNamed pairs and QuillSpread entries."""
    items: Tuple[QuillASTNode, ...] = ()


@dataclass(frozen=True)
class QuillNamed(QuillASTNode):
    """
    A `name: value` pair.

    Used for named call arguments, dictionary entries, and named parameters
    (where `value` is the default expression).
    """
    name: QuillASTNode
    value: QuillASTNode


@dataclass(frozen=True)
class QuillSpread(QuillASTNode):
    """
    A `..target` entry.

    In a call it spreads a value into the arguments; in a parameter list it declares
    the argument sink (an anonymous sink has no target).
    """
    target: QuillASTNode | None = None


@dataclass(frozen=True)
class QuillUnary(QuillASTNode):
    """A prefix operation: `-`, `+` or `not`."""
    op: str
    operand: QuillASTNode


@dataclass(frozen=True)
class QuillBinary(QuillASTNode):
    """An infix operation on host values."""
    op: str
    left: QuillASTNode
    right: QuillASTNode


@dataclass(frozen=True)
class QuillFieldAccess(QuillASTNode):
    """`target.field` access on modules, dictionaries and argument collections."""
    target: QuillASTNode
    field_name: str


@dataclass(frozen=True)
class QuillBlock(QuillASTNode):
    """A code block; evaluated in its own scope."""
    body: Tuple[QuillASTNode, ...] = ()


@dataclass(frozen=True)
class QuillClosureLiteral(QuillASTNode):
    """`(params) => body`."""
    params: Tuple[QuillASTNode, ...]
    body: QuillASTNode
    name: str | None = None


@dataclass(frozen=True)
class QuillCall(QuillASTNode):
    """`callee(args)`; arguments may be plain expressions, QuillNamed or QuillSpread."""
    callee: QuillASTNode
    args: Tuple[QuillASTNode, ...] = ()


@dataclass(frozen=True)
class QuillLet(QuillASTNode):
    """`let name = init`; a missing initializer binds none."""
    name: QuillIdentifier
    init: QuillASTNode | None = None


@dataclass(frozen=True)
class QuillLetClosure(QuillASTNode):
    """`let name(params) = body` - closure shorthand that can refer to itself."""
    name: QuillIdentifier
    params: Tuple[QuillASTNode, ...]
    body: QuillASTNode


@dataclass(frozen=True)
class QuillAssign(QuillASTNode):
    """`target = value` or a compound update such as `target += value`."""
    target: QuillIdentifier
    value: QuillASTNode
    op: str = "="


@dataclass(frozen=True)
class QuillConditional(QuillASTNode):
    """`if condition { if_body } else { else_body }`."""
    condition: QuillASTNode
    if_body: QuillASTNode
    else_body: QuillASTNode | None = None


@dataclass(frozen=True)
class QuillWhile(QuillASTNode):
    """`while condition { body }`."""
    condition: QuillASTNode
    body: QuillASTNode


@dataclass(frozen=True)
class QuillFor(QuillASTNode):
    """
    `for pattern in iterable { body }`.

    The pattern is either a QuillIdentifier or a tuple of them for destructuring.
    """
    pattern: QuillIdentifier | Tuple[QuillIdentifier, ...]
    iterable: QuillASTNode
    body: QuillASTNode


@dataclass(frozen=True)
class QuillImportItem(QuillASTNode):
    """One `name` or `name as alias` entry of an import list."""
    name: str
    alias: str | None = None

    @property
    def local_name(self) -> str:
        """Name the imported value is bound under."""
        return self.alias if self.alias is not None else self.name


@dataclass(frozen=True)
class QuillImport(QuillASTNode):
    """
    `import source`, `import source: a, b as c` or `import source: *`.

    With no items the module itself is bound under its name.
    """
    source: QuillASTNode
    items: Tuple[QuillImportItem, ...] | None = None
    wildcard: bool = False


@dataclass(frozen=True)
class QuillBreak(QuillASTNode):
    """`break`."""


@dataclass(frozen=True)
class QuillContinue(QuillASTNode):
    """`continue`."""


@dataclass(frozen=True)
class QuillReturn(QuillASTNode):
    """`return value`; a missing value returns none."""
    value: QuillASTNode | None = None
