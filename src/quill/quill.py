"""Main Quill class - configuration and entry points of the evaluation core."""

from typing import Any, Dict, Sequence

from quill.quill_ast import QuillASTNode
from quill.quill_builtins import QuillBuiltinFunctions
from quill.quill_diagnostic import QuillDiagnosticRenderer
from quill.quill_environment import QuillEnvironment
from quill.quill_error import QuillError, QuillNotCallableError
from quill.quill_evaluator import QuillEvaluator
from quill.quill_module_resolver import QuillModuleLoader, QuillModuleResolver
from quill.quill_value import QuillArguments, QuillClosure, QuillModule, QuillNativeFunction, type_name


class Quill:
    """
    Quill evaluation core.

    Evaluates programs given as AST statement sequences, with lexical scoping,
    closures and flexible argument binding.  Modules imported by programs are
    cached for the lifetime of the instance.
    """

    def __init__(
        self,
        max_depth: int = 100,
        module_loader: QuillModuleLoader | None = None,
        builtins: Dict[str, Any] | None = None
    ):
        """
        Initialize Quill.

        Args:
            max_depth: Maximum closure call depth
            module_loader: Loader for imported modules.  If None, imports will fail.
            builtins: Extra host values bound in every global environment, overriding
                default builtins of the same name
        """
        self.max_depth = max_depth

        global_bindings: Dict[str, Any] = {
            name: QuillNativeFunction(name, impl)
            for name, impl in QuillBuiltinFunctions().get_functions().items()
        }
        global_bindings.update(builtins or {})

        self.module_resolver = QuillModuleResolver(module_loader)
        self.evaluator = QuillEvaluator(max_depth, self.module_resolver, global_bindings)
        self.renderer = QuillDiagnosticRenderer()

    @property
    def module_cache(self) -> Dict[str, QuillModule]:
        """Modules evaluated so far, by name."""
        return self.module_resolver.module_cache

    def create_environment(self) -> QuillEnvironment:
        """Create a fresh global environment holding the builtins."""
        return self.evaluator.create_global_environment()

    def evaluate(self, program: Sequence[QuillASTNode]) -> Any:
        """
        Evaluate a program in a fresh global environment.

        Args:
            program: Top-level statements

        Returns:
            The value of the last statement

        Raises:
            QuillError: If evaluation fails
        """
        return self.evaluator.evaluate_block(program, self.create_environment())

    def evaluate_in(self, program: Sequence[QuillASTNode], environment: QuillEnvironment) -> Any:
        """
        Evaluate a program in a caller-provided environment.

        The program runs in a new scope on top of the environment, so its own
        bindings are discarded afterwards while assignments to existing bindings
        remain visible.

        Args:
            program: Top-level statements
            environment: Environment to evaluate in

        Returns:
            The value of the last statement

        Raises:
            QuillError: If evaluation fails
        """
        return self.evaluator.evaluate_block(program, environment)

    def call(self, func: Any, /, *positional: Any, **named: Any) -> Any:
        """
        Call a Quill function value from Python.

        Args:
            func: Closure or native function, typically a program result
            positional: Positional argument values
            named: Named argument values

        Returns:
            The call result

        Raises:
            QuillError: If the call fails
        """
        if isinstance(func, QuillClosure):
            return self.evaluator.call_closure(func, positional, named)

        if isinstance(func, QuillNativeFunction):
            return self.evaluator.call(func, QuillArguments.build(list(positional), named))

        raise QuillNotCallableError(type_name(func))

    def format_error(self, error: QuillError, source: str | None = None) -> str:
        """
        Render an error as a diagnostic.

        Args:
            error: The error to render
            source: Source text the error location refers to

        Returns:
            The formatted diagnostic
        """
        return self.renderer.render(error, source)
