"""Quill module resolution - turns import sources into evaluated modules.

Loading a module's program is delegated to a QuillModuleLoader.  The resolver
evaluates the program, caches the resulting module and detects circular imports.
"""

import logging
from typing import Callable, Dict, List, Protocol, Sequence

from quill.quill_ast import QuillASTNode
from quill.quill_environment import QuillScope
from quill.quill_error import QuillCircularImportError, QuillModuleNotFoundError
from quill.quill_value import QuillModule


ModuleEvaluator = Callable[[str, Sequence[QuillASTNode]], QuillScope]


class QuillModuleLoader(Protocol):
    """Interface for loading Quill module programs."""

    def load_module(self, module_name: str) -> Sequence[QuillASTNode]:
        """
        Load a module's program.

        Args:
            module_name: Name of module (e.g., "calendar", "lib/validation")

        Returns:
            The module's top-level statements

        Raises:
            QuillModuleNotFoundError: If the module does not exist
        """
        ...


class QuillSourceModuleLoader:
    """Module loader serving programs registered in memory."""

    def __init__(self, modules: Dict[str, Sequence[QuillASTNode]] | None = None) -> None:
        """
        Initialize loader.

        Args:
            modules: Mapping of module name to its top-level statements
        """
        self.modules: Dict[str, Sequence[QuillASTNode]] = dict(modules or {})

    def add_module(self, module_name: str, program: Sequence[QuillASTNode]) -> None:
        """Register (or replace) a module program."""
        self.modules[module_name] = program

    def load_module(self, module_name: str) -> Sequence[QuillASTNode]:
        if module_name not in self.modules:
            raise QuillModuleNotFoundError(
                module_name,
                context=f"Known modules: {', '.join(sorted(self.modules)) or '(none)'}",
                suggestion="Check the module name spelling"
            )

        return self.modules[module_name]


class QuillModuleResolver:
    """
    Resolves module names to evaluated modules.

    Each module is evaluated once; later imports reuse the cached module.
    """

    def __init__(self, module_loader: QuillModuleLoader | None = None) -> None:
        """
        Initialize module resolver.

        Args:
            module_loader: Optional module loader.  If None, imports will fail.
        """
        self.module_loader = module_loader
        self.module_cache: Dict[str, QuillModule] = {}
        self.loading_stack: List[str] = []
        self._logger = logging.getLogger("QuillModuleResolver")

    def resolve(self, module_name: str, evaluate_module: ModuleEvaluator) -> QuillModule:
        """
        Resolve a module, loading and evaluating it if it is not cached.

        Args:
            module_name: Name of the module to resolve
            evaluate_module: Callback evaluating a module program, returning its top-level scope

        Returns:
            The evaluated module

        Raises:
            QuillModuleNotFoundError: If the module cannot be loaded
            QuillCircularImportError: If the module is already being loaded
        """
        cached = self.module_cache.get(module_name)
        if cached is not None:
            return cached

        if self.module_loader is None:
            raise QuillModuleNotFoundError(
                module_name,
                context="No module loader configured",
                suggestion="A module loader must be provided to use import"
            )

        # Check for circular dependency before loading
        if module_name in self.loading_stack:
            raise QuillCircularImportError(self.loading_stack + [module_name])

        self.loading_stack.append(module_name)
        try:
            self._logger.debug("Loading module '%s'", module_name)
            program = self.module_loader.load_module(module_name)
            scope = evaluate_module(module_name, program)
            module = QuillModule(module_name, scope)
            self.module_cache[module_name] = module
            return module

        finally:
            # Always pop from stack, even if resolution fails
            self.loading_stack.pop()

    def invalidate(self, module_name: str | None = None) -> None:
        """
        Drop cached modules.

        Args:
            module_name: Module to drop, or None to clear the whole cache
        """
        if module_name is None:
            self.module_cache.clear()
            return

        self.module_cache.pop(module_name, None)
