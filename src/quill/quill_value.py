"""Quill runtime values.

Host values (numbers, strings, lists, dicts) are used as-is and are opaque to
the evaluation core.  This module defines the values the core itself creates.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Tuple

from quill.quill_environment import QuillEnvironment, QuillScope
from quill.quill_error import QuillDuplicateNamedArgumentError, QuillInvalidOperationError


class QuillNoneType:
    """The absent value.  There is exactly one instance, NONE."""

    _instance: 'QuillNoneType | None' = None

    def __new__(cls) -> 'QuillNoneType':
        if cls._instance is None:
            cls._instance = super().__new__(cls)

        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "none"


NONE = QuillNoneType()


@dataclass(frozen=True)
class QuillArgument:
    """One evaluated argument, positional when it has no name."""
    value: Any
    name: str | None = None
    line: int | None = field(default=None, kw_only=True)
    column: int | None = field(default=None, kw_only=True)
    source_file: str = field(default="", kw_only=True)

    @property
    def is_named(self) -> bool:
        """Check if this is a named argument."""
        return self.name is not None


class QuillArguments:
    """
    An ordered collection of positional and named arguments.

    This is both what a call site hands to the argument binder and the aggregate
    value an argument sink is bound to.  Named argument names are unique.
    """

    def __init__(self, items: List[QuillArgument] | None = None) -> None:
        """
        Initialize arguments.

        Args:
            items: Arguments in call order

        Raises:
            QuillDuplicateNamedArgumentError: If a name occurs more than once
        """
        self.items: List[QuillArgument] = []
        for item in items or []:
            self.push(item)

    @classmethod
    def build(cls, positional: List[Any] | None = None, named: Dict[str, Any] | None = None) -> 'QuillArguments':
        """
        Build arguments from plain values.

        Args:
            positional: Positional values in order
            named: Named values

        Returns:
            New argument collection
        """
        items = [QuillArgument(value) for value in positional or []]
        items.extend(QuillArgument(value, name) for name, value in (named or {}).items())
        return cls(items)

    def push(self, item: QuillArgument) -> None:
        """
        Append an argument.

        Raises:
            QuillDuplicateNamedArgumentError: If a named argument of the same name exists
        """
        if item.name is not None and any(existing.name == item.name for existing in self.items):
            raise QuillDuplicateNamedArgumentError(
                item.name, line=item.line, column=item.column, source_file=item.source_file
            )

        self.items.append(item)

    @property
    def positional(self) -> Tuple[Any, ...]:
        """Positional values in order."""
        return tuple(item.value for item in self.items if item.name is None)

    @property
    def named(self) -> Dict[str, Any]:
        """Named values in call order."""
        return {item.name: item.value for item in self.items if item.name is not None}

    def positional_items(self) -> List[QuillArgument]:
        """Positional arguments with their source locations."""
        return [item for item in self.items if item.name is None]

    def named_items(self) -> List[QuillArgument]:
        """Named arguments with their source locations."""
        return [item for item in self.items if item.name is not None]

    def __iter__(self) -> Iterator[Any]:
        return iter(self.positional)

    def __len__(self) -> int:
        return len(self.items)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, QuillArguments):
            return NotImplemented

        return self.positional == other.positional and self.named == other.named

    def __repr__(self) -> str:
        parts = [repr(v) for v in self.positional]
        parts.extend(f"{k}: {v!r}" for k, v in self.named.items())
        return f"arguments({', '.join(parts)})"


@dataclass(frozen=True, eq=False)
class QuillClosure:
    """
    A user-defined function value.

    The captured environment is a shared handle on the scope chain that was
    current when the closure literal was evaluated; it keeps that whole chain
    alive for as long as the closure exists.
    """
    pattern: Any  # QuillParameterPattern, avoiding an import cycle with quill_pattern
    body: Any  # QuillASTNode
    environment: QuillEnvironment
    name: str | None = None

    def type_name(self) -> str:
        return "function"

    def __repr__(self) -> str:
        return f"<closure {self.name or 'anonymous'}>"


class QuillNativeFunction:
    """A function implemented by the host, receiving its arguments as QuillArguments."""

    def __init__(self, name: str, native_impl: Callable[[QuillArguments], Any]):
        """
        Initialize a native function.

        Args:
            name: Function name for display and error messages
            native_impl: Python callable that implements the function
        """
        self.name = name
        self.native_impl = native_impl

    def type_name(self) -> str:
        return "function"

    def __repr__(self) -> str:
        return f"<native {self.name}>"


class QuillModule:
    """An evaluated module; its exports are the bindings of its top-level scope."""

    def __init__(self, name: str, scope: QuillScope):
        self.name = name
        self.scope = scope

    def get(self, name: str) -> Any:
        """
        Get an exported value.

        Raises:
            KeyError: If the module does not export the name
        """
        cell = self.scope.bindings.get(name)
        if cell is None:
            raise KeyError(name)

        return cell.value

    def exports(self) -> List[str]:
        """Names exported by the module, in definition order."""
        return list(self.scope.bindings.keys())

    def type_name(self) -> str:
        return "module"

    def __repr__(self) -> str:
        return f"<module {self.name}>"


def type_name(value: Any) -> str:
    """Return the Quill type name of any value, for error messages."""
    if value is NONE or value is None:
        return "none"

    if isinstance(value, (QuillClosure, QuillNativeFunction, QuillModule)):
        return value.type_name()

    if isinstance(value, QuillArguments):
        return "arguments"

    if isinstance(value, bool):
        return "boolean"

    if isinstance(value, int):
        return "integer"

    if isinstance(value, float):
        return "float"

    if isinstance(value, str):
        return "string"

    if isinstance(value, (list, tuple)):
        return "array"

    if isinstance(value, dict):
        return "dictionary"

    return type(value).__name__


def spread_items(value: Any) -> List[QuillArgument]:
    """
    Expand a value spread into a call with `..value`.

    Args:
        value: Arguments, array, dictionary or none

    Returns:
        The arguments the value contributes

    Raises:
        QuillInvalidOperationError: If the value cannot be spread
    """
    if value is NONE or value is None:
        return []

    if isinstance(value, QuillArguments):
        return list(value.items)

    if isinstance(value, (list, tuple)):
        return [QuillArgument(v) for v in value]

    if isinstance(value, dict):
        return [QuillArgument(v, str(k)) for k, v in value.items()]

    raise QuillInvalidOperationError(f"cannot spread {type_name(value)}")
