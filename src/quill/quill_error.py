"""Exception classes for Quill with classified error kinds and source locations."""

from enum import Enum
from typing import Any, List


class QuillErrorKind(Enum):
    """Classification of every failure the evaluation core can produce."""
    UNKNOWN_VARIABLE = "unknown-variable"
    MISSING_ARGUMENT = "missing-argument"
    UNEXPECTED_ARGUMENT = "unexpected-argument"
    DUPLICATE_NAMED_ARGUMENT = "duplicate-named-argument"
    DUPLICATE_PARAMETER_NAME = "duplicate-parameter-name"
    MALFORMED_PARAMETER_PATTERN = "malformed-parameter-pattern"
    NOT_CALLABLE = "not-callable"
    INVALID_OPERATION = "invalid-operation"
    INVALID_CONTROL_FLOW = "invalid-control-flow"
    MAX_DEPTH_EXCEEDED = "max-depth-exceeded"
    MODULE_NOT_FOUND = "module-not-found"
    CIRCULAR_IMPORT = "circular-import"
    UNRESOLVED_IMPORT = "unresolved-import"


class QuillError(Exception):
    """
    Base exception for Quill errors.

    Errors only classify what went wrong and where.  Turning them into user-facing
    text with source excerpts is the job of QuillDiagnosticRenderer.
    """

    kind: QuillErrorKind = QuillErrorKind.INVALID_OPERATION

    def __init__(
        self,
        context: str | None = None,
        suggestion: str | None = None,
        line: int | None = None,
        column: int | None = None,
        source_file: str = ""
    ):
        """
        Initialize error.

        Args:
            context: Additional context information
            suggestion: Suggestion for fixing the error
            line: Line number (1-indexed)
            column: Column number (1-indexed)
            source_file: Name of the source the error was found in
        """
        self.context = context
        self.suggestion = suggestion
        self.line = line
        self.column = column
        self.source_file = source_file

        super().__init__(self.describe())

    def describe(self) -> str:
        """Return the short classified description of this error."""
        return self.kind.value.replace("-", " ")

    def has_location(self) -> bool:
        """Check if a source location has been attached."""
        return self.line is not None

    def with_location(self, node: Any) -> 'QuillError':
        """
        Attach the location of an AST node unless one is already present.

        The innermost attribution wins, so an error raised deep inside a call keeps
        the span of the expression that actually failed.

        Args:
            node: AST node (anything with line/column/source_file attributes)

        Returns:
            This error, for use in raise statements
        """
        if self.line is None and node is not None:
            self.line = getattr(node, 'line', None)
            self.column = getattr(node, 'column', None)
            self.source_file = getattr(node, 'source_file', "")

        return self


class QuillUnknownVariableError(QuillError):
    """A name was not found in any active scope."""

    kind = QuillErrorKind.UNKNOWN_VARIABLE

    def __init__(self, name: str, **kwargs: Any):
        self.name = name
        super().__init__(**kwargs)


class QuillMissingArgumentError(QuillError):
    """A required parameter received no value."""

    kind = QuillErrorKind.MISSING_ARGUMENT

    def __init__(self, parameter_name: str, **kwargs: Any):
        self.parameter_name = parameter_name
        super().__init__(**kwargs)

    def describe(self) -> str:
        return f"missing argument: {self.parameter_name}"


class QuillUnexpectedArgumentError(QuillError):
    """An argument could not be matched to any parameter and there is no sink."""

    kind = QuillErrorKind.UNEXPECTED_ARGUMENT

    def __init__(self, index: int, name: str | None = None, **kwargs: Any):
        self.index = index
        self.name = name
        super().__init__(**kwargs)


class QuillDuplicateNamedArgumentError(QuillError):
    """The same named argument was supplied twice at one call site."""

    kind = QuillErrorKind.DUPLICATE_NAMED_ARGUMENT

    def __init__(self, name: str, **kwargs: Any):
        self.name = name
        super().__init__(**kwargs)

    def describe(self) -> str:
        return f"duplicate argument: {self.name}"


class QuillDuplicateParameterNameError(QuillError):
    """A parameter pattern declares the same name twice."""

    kind = QuillErrorKind.DUPLICATE_PARAMETER_NAME

    def __init__(self, name: str, **kwargs: Any):
        self.name = name
        super().__init__(**kwargs)

    def describe(self) -> str:
        return f"duplicate parameter: {self.name}"


class QuillMalformedParameterPatternError(QuillError):
    """A parameter pattern contains something that is not a valid parameter."""

    kind = QuillErrorKind.MALFORMED_PARAMETER_PATTERN

    def __init__(self, expectation: str, **kwargs: Any):
        self.expectation = expectation
        super().__init__(**kwargs)

    def describe(self) -> str:
        return self.expectation


class QuillNotCallableError(QuillError):
    """A call expression tried to call something that is not a function."""

    kind = QuillErrorKind.NOT_CALLABLE

    def __init__(self, type_name: str, **kwargs: Any):
        self.type_name = type_name
        super().__init__(**kwargs)

    def describe(self) -> str:
        return f"expected function, found {self.type_name}"


class QuillInvalidOperationError(QuillError):
    """An operation on host values failed."""

    kind = QuillErrorKind.INVALID_OPERATION

    def __init__(self, detail: str, **kwargs: Any):
        self.detail = detail
        super().__init__(**kwargs)

    def describe(self) -> str:
        return self.detail


class QuillInvalidControlFlowError(QuillError):
    """A break, continue or return was used outside of its construct."""

    kind = QuillErrorKind.INVALID_CONTROL_FLOW

    def __init__(self, keyword: str, **kwargs: Any):
        self.keyword = keyword
        super().__init__(**kwargs)

    def describe(self) -> str:
        if self.keyword == "return":
            return "cannot return outside of function"

        return f"cannot {self.keyword} outside of loop"


class QuillMaxDepthExceededError(QuillError):
    """Closure calls nested deeper than the configured limit."""

    kind = QuillErrorKind.MAX_DEPTH_EXCEEDED

    def __init__(self, max_depth: int, **kwargs: Any):
        self.max_depth = max_depth
        super().__init__(**kwargs)

    def describe(self) -> str:
        return f"maximum function call depth exceeded (max depth: {self.max_depth})"


class QuillModuleNotFoundError(QuillError):
    """An import source could not be resolved to a module."""

    kind = QuillErrorKind.MODULE_NOT_FOUND

    def __init__(self, module_name: str, **kwargs: Any):
        self.module_name = module_name
        super().__init__(**kwargs)

    def describe(self) -> str:
        return f"module not found: {self.module_name}"


class QuillCircularImportError(QuillError):
    """Circular dependency detected in module imports."""

    kind = QuillErrorKind.CIRCULAR_IMPORT

    def __init__(self, import_chain: List[str], **kwargs: Any):
        self.import_chain = list(import_chain)
        kwargs.setdefault("context", f"Import chain: {' -> '.join(self.import_chain)}")
        kwargs.setdefault("suggestion", "Break the cycle by extracting shared code to a third module")
        super().__init__(**kwargs)

    def describe(self) -> str:
        return "cyclic import"


class QuillUnresolvedImportError(QuillError):
    """An imported name does not exist in the module it is imported from."""

    kind = QuillErrorKind.UNRESOLVED_IMPORT

    def __init__(self, name: str, module_name: str, **kwargs: Any):
        self.name = name
        self.module_name = module_name
        super().__init__(**kwargs)

    def describe(self) -> str:
        return f"unresolved import: {self.name}"
