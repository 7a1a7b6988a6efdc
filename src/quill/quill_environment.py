"""Environment management for Quill variable and function scoping."""

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List

from quill.quill_error import QuillError, QuillUnknownVariableError


@dataclass(eq=False)
class QuillCell:
    """
    Mutable storage cell holding the value of one binding.

    Scopes map names to cells rather than values, so reassigning a binding is
    visible through every scope chain (and therefore every closure) that holds
    the cell.
    """
    value: Any


@dataclass(frozen=True)
class QuillScope:
    """
    Immutable scope node for lexical scoping.

    Defining a name returns a new node, leaving existing nodes untouched.  A
    closure holding an older node therefore never sees bindings introduced after
    it was created, while still sharing the storage cells of those that existed.
    """
    bindings: Dict[str, QuillCell] = field(default_factory=dict)
    parent: 'QuillScope | None' = None
    name: str = "anonymous"

    def define(self, name: str, cell: QuillCell) -> 'QuillScope':
        """
        Return new scope with a binding added.

        Args:
            name: Variable name
            cell: Storage cell for the binding

        Returns:
            New scope with the binding added
        """
        new_bindings = {**self.bindings, name: cell}
        return QuillScope(new_bindings, self.parent, self.name)

    def find(self, name: str) -> QuillCell | None:
        """
        Find the cell of the nearest binding of a name.

        Args:
            name: Variable name to look up

        Returns:
            The cell, or None if no scope in the chain binds the name
        """
        scope: QuillScope | None = self
        while scope is not None:
            cell = scope.bindings.get(name)
            if cell is not None:
                return cell

            scope = scope.parent

        return None

    def get_available_bindings(self) -> List[str]:
        """Get all binding names visible from this scope, innermost first."""
        available: List[str] = []
        scope: QuillScope | None = self
        while scope is not None:
            available.extend(n for n in scope.bindings if n not in available)
            scope = scope.parent

        return available

    def __repr__(self) -> str:
        """String representation for debugging."""
        parent_info = f" (parent: {self.parent.name})" if self.parent else ""
        return f"QuillScope({self.name}: {list(self.bindings.keys())}{parent_info})"


class QuillEnvironment:
    """
    A chain of scopes with a movable innermost position.

    This is the mutable handle the evaluator works with.  Pushing a scope chains a
    fresh node on top of the current one; popping restores exactly the node that
    was current when the matching push happened.
    """

    def __init__(self, scope: QuillScope | None = None, name: str = "global") -> None:
        """
        Initialize environment.

        Args:
            scope: Innermost scope to start from; a new empty scope if None
            name: Name of the scope created when none is given
        """
        self._scope = scope if scope is not None else QuillScope(name=name)
        self._saved: List[QuillScope] = []

    @property
    def current_scope(self) -> QuillScope:
        """The innermost scope node."""
        return self._scope

    def lookup(self, name: str) -> Any:
        """
        Look up a variable, walking scopes from innermost to outermost.

        Args:
            name: Variable name to look up

        Returns:
            The bound value

        Raises:
            QuillUnknownVariableError: If no scope binds the name
        """
        cell = self._scope.find(name)
        if cell is None:
            raise QuillUnknownVariableError(name)

        return cell.value

    def contains(self, name: str) -> bool:
        """Check if a name is bound anywhere in the chain."""
        return self._scope.find(name) is not None

    def define(self, name: str, value: Any) -> QuillCell:
        """
        Create a new binding in the innermost scope.

        Any binding of the same name, in this scope or an outer one, is shadowed
        but its cell is left untouched.

        Args:
            name: Variable name
            value: Value to bind

        Returns:
            The cell of the new binding
        """
        cell = QuillCell(value)
        self._scope = self._scope.define(name, cell)
        return cell

    def assign(self, name: str, value: Any) -> None:
        """
        Reassign the nearest existing binding of a name.

        Args:
            name: Variable name
            value: New value

        Raises:
            QuillUnknownVariableError: If no scope binds the name
        """
        cell = self._scope.find(name)
        if cell is None:
            raise QuillUnknownVariableError(name)

        cell.value = value

    def push_scope(self, name: str = "block") -> None:
        """Enter a new innermost scope."""
        self._saved.append(self._scope)
        self._scope = QuillScope(parent=self._scope, name=name)

    def pop_scope(self) -> None:
        """
        Leave the innermost scope, discarding its bindings.

        Raises:
            QuillError: If there is no pushed scope to pop
        """
        if not self._saved:
            raise QuillError(context="Attempted to pop a scope that was never pushed")

        self._scope = self._saved.pop()

    @contextmanager
    def scope(self, name: str = "block") -> Iterator['QuillEnvironment']:
        """
        Context manager pairing push_scope with a guaranteed pop_scope.

        Args:
            name: Name of the scope (for debugging)
        """
        self.push_scope(name)
        try:
            yield self

        finally:
            self.pop_scope()

    def fork_for_capture(self) -> 'QuillEnvironment':
        """
        Return a new handle on the current chain for closure capture.

        No scopes or cells are copied; the new handle starts at the current
        innermost node.
        """
        return QuillEnvironment(self._scope)

    def depth(self) -> int:
        """Get the number of scopes pushed on this handle."""
        return len(self._saved)

    def local_names(self) -> List[str]:
        """Get the names bound in the innermost scope only."""
        return list(self._scope.bindings.keys())

    def available_names(self) -> List[str]:
        """Get all names visible from the innermost scope."""
        return self._scope.get_available_bindings()

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"QuillEnvironment({self._scope!r}, depth={len(self._saved)})"
