"""Shared fixtures and utilities for Quill tests."""

import dataclasses
from typing import Any, Dict, Sequence, Tuple

import pytest

from quill import Quill, QuillEnvironment, QuillEvaluator, QuillSourceModuleLoader
from quill.quill_ast import (
    QuillASTNode, QuillArray, QuillAssign, QuillBinary, QuillBlock, QuillBreak, QuillCall,
    QuillClosureLiteral, QuillConditional, QuillContinue, QuillDict, QuillFieldAccess, QuillFor,
    QuillIdentifier, QuillImport, QuillImportItem, QuillLet, QuillLetClosure, QuillLiteral, QuillNamed,
    QuillReturn, QuillSpread, QuillUnary, QuillWhile
)


@pytest.fixture
def quill():
    """Create a fresh Quill instance for each test."""
    return Quill()


@pytest.fixture
def quill_custom():
    """Factory for Quill instances with custom configuration."""
    def _create_quill(
        max_depth: int = 100,
        modules: Dict[str, Sequence[QuillASTNode]] | None = None,
        builtins: Dict[str, Any] | None = None
    ) -> Quill:
        loader = QuillSourceModuleLoader(modules) if modules is not None else None
        return Quill(max_depth=max_depth, module_loader=loader, builtins=builtins)
    return _create_quill


@pytest.fixture
def evaluator():
    """Create a fresh evaluator with the default builtins."""
    return QuillEvaluator()


@pytest.fixture
def env(evaluator):
    """Create a global environment holding the builtins."""
    return evaluator.create_global_environment()


class QuillASTBuilder:
    """Terse constructors for Quill AST nodes, standing in for a parser."""

    @staticmethod
    def at(node: QuillASTNode, line: int, column: int, source_file: str = "") -> QuillASTNode:
        """Return a copy of a node with a source location attached."""
        return dataclasses.replace(node, line=line, column=column, source_file=source_file)

    @staticmethod
    def lit(value: Any) -> QuillLiteral:
        return QuillLiteral(value)

    @staticmethod
    def ident(name: str) -> QuillIdentifier:
        return QuillIdentifier(name)

    @staticmethod
    def array(*items: QuillASTNode) -> QuillArray:
        return QuillArray(tuple(items))

    @staticmethod
    def dict_(*items: QuillASTNode) -> QuillDict:
        return QuillDict(tuple(items))

    @staticmethod
    def named(name: str, value: QuillASTNode) -> QuillNamed:
        return QuillNamed(QuillIdentifier(name), value)

    @staticmethod
    def spread(target: QuillASTNode | str | None = None) -> QuillSpread:
        if isinstance(target, str):
            target = QuillIdentifier(target)

        return QuillSpread(target)

    @staticmethod
    def unary(op: str, operand: QuillASTNode) -> QuillUnary:
        return QuillUnary(op, operand)

    @staticmethod
    def binary(op: str, left: QuillASTNode, right: QuillASTNode) -> QuillBinary:
        return QuillBinary(op, left, right)

    @staticmethod
    def field(target: QuillASTNode, field_name: str) -> QuillFieldAccess:
        return QuillFieldAccess(target, field_name)

    @staticmethod
    def block(*body: QuillASTNode) -> QuillBlock:
        return QuillBlock(tuple(body))

    @staticmethod
    def params(*names: str | QuillASTNode) -> Tuple[QuillASTNode, ...]:
        """Build a parameter list; plain strings become positional parameters."""
        return tuple(QuillIdentifier(n) if isinstance(n, str) else n for n in names)

    @staticmethod
    def closure(params: Sequence[str | QuillASTNode], body: QuillASTNode, name: str | None = None) -> QuillClosureLiteral:
        return QuillClosureLiteral(QuillASTBuilder.params(*params), body, name)

    @staticmethod
    def call(callee: QuillASTNode | str, *args: QuillASTNode) -> QuillCall:
        if isinstance(callee, str):
            callee = QuillIdentifier(callee)

        return QuillCall(callee, tuple(args))

    @staticmethod
    def let(name: str, init: QuillASTNode | None = None) -> QuillLet:
        return QuillLet(QuillIdentifier(name), init)

    @staticmethod
    def let_fn(name: str, params: Sequence[str | QuillASTNode], body: QuillASTNode) -> QuillLetClosure:
        return QuillLetClosure(QuillIdentifier(name), QuillASTBuilder.params(*params), body)

    @staticmethod
    def assign(name: str, value: QuillASTNode, op: str = "=") -> QuillAssign:
        return QuillAssign(QuillIdentifier(name), value, op)

    @staticmethod
    def if_(condition: QuillASTNode, if_body: QuillASTNode, else_body: QuillASTNode | None = None) -> QuillConditional:
        return QuillConditional(condition, if_body, else_body)

    @staticmethod
    def while_(condition: QuillASTNode, body: QuillASTNode) -> QuillWhile:
        return QuillWhile(condition, body)

    @staticmethod
    def for_(pattern: str | Sequence[str], iterable: QuillASTNode, body: QuillASTNode) -> QuillFor:
        if isinstance(pattern, str):
            return QuillFor(QuillIdentifier(pattern), iterable, body)

        return QuillFor(tuple(QuillIdentifier(n) for n in pattern), iterable, body)

    @staticmethod
    def import_(source: QuillASTNode | str, *items: str | Tuple[str, str], wildcard: bool = False) -> QuillImport:
        """Build an import; items are names or (name, alias) pairs."""
        if isinstance(source, str):
            source = QuillLiteral(source)

        import_items = tuple(
            QuillImportItem(item) if isinstance(item, str) else QuillImportItem(item[0], item[1])
            for item in items
        )
        return QuillImport(source, import_items or None, wildcard)

    @staticmethod
    def ret(value: QuillASTNode | None = None) -> QuillReturn:
        return QuillReturn(value)

    @staticmethod
    def brk() -> QuillBreak:
        return QuillBreak()

    @staticmethod
    def cont() -> QuillContinue:
        return QuillContinue()


@pytest.fixture
def ast():
    """Provide the AST builder."""
    return QuillASTBuilder


@pytest.fixture
def fresh_env():
    """Create an empty environment with no builtins."""
    return QuillEnvironment()
