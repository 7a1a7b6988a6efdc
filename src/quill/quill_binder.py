"""Argument binding: matching a call's arguments against a closure's parameter pattern."""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Tuple

from quill.quill_ast import QuillASTNode
from quill.quill_environment import QuillEnvironment
from quill.quill_error import QuillMissingArgumentError, QuillUnexpectedArgumentError
from quill.quill_pattern import QuillNamedSlot, QuillParameterPattern, QuillPositionalSlot, QuillSlot
from quill.quill_value import QuillArgument, QuillArguments


DefaultEvaluator = Callable[[QuillASTNode, QuillEnvironment], Any]


@dataclass
class QuillBindingPlan:
    """
    Where each parameter gets its value from, decided before anything is bound.

    Each slot is paired with the argument that fills it, or None when the slot
    falls back to its default expression.
    """
    assignments: List[Tuple[QuillSlot, QuillArgument | None]] = field(default_factory=list)
    sink_items: List[QuillArgument] = field(default_factory=list)


class QuillArgumentBinder:
    """
    Binds call arguments to parameters.

    This is the only place call-site argument errors originate.  Binding happens in
    two phases: plan() classifies every argument and reports the first error,
    then bind() creates the call scope and evaluates any needed defaults.
    """

    def __init__(self) -> None:
        self._logger = logging.getLogger("QuillArgumentBinder")

    def plan(self, pattern: QuillParameterPattern, arguments: QuillArguments) -> QuillBindingPlan:
        """
        Decide the source of every parameter's value.

        Args:
            pattern: The closure's parameter pattern
            arguments: The call's arguments

        Returns:
            The binding plan

        Raises:
            QuillUnexpectedArgumentError: If an argument matches nothing and there is no sink
            QuillMissingArgumentError: If a parameter without default receives no value
        """
        indexed = list(enumerate(arguments.items))
        positional = [(i, item) for i, item in indexed if item.name is None]
        named: Dict[str, Tuple[int, QuillArgument]] = {
            item.name: (i, item) for i, item in indexed if item.name is not None
        }

        binding_plan = QuillBindingPlan()
        consumed: set[int] = set()
        cursor = 0
        missing: str | None = None

        for slot in pattern.slots:
            match slot:
                case QuillPositionalSlot():
                    if cursor < len(positional):
                        index, item = positional[cursor]
                        cursor += 1
                        consumed.add(index)
                        binding_plan.assignments.append((slot, item))
                        continue

                    if missing is None:
                        missing = slot.name

                    binding_plan.assignments.append((slot, None))

                case QuillNamedSlot():
                    if slot.name in named:
                        index, item = named.pop(slot.name)
                        consumed.add(index)
                        binding_plan.assignments.append((slot, item))
                        continue

                    if cursor < len(positional):
                        index, item = positional[cursor]
                        cursor += 1
                        consumed.add(index)
                        binding_plan.assignments.append((slot, item))
                        continue

                    binding_plan.assignments.append((slot, None))

        leftover = [(i, item) for i, item in indexed if i not in consumed]
        if pattern.sink is None and leftover:
            # Excess positional arguments are reported before unknown named ones.
            first_positional = next(((i, item) for i, item in leftover if item.name is None), None)
            index, item = first_positional or leftover[0]
            raise self._unexpected(index, item)

        if missing is not None:
            raise QuillMissingArgumentError(missing)

        binding_plan.sink_items = [item for _, item in leftover]
        return binding_plan

    def bind(
        self,
        pattern: QuillParameterPattern,
        captured: QuillEnvironment,
        arguments: QuillArguments,
        evaluate_default: DefaultEvaluator,
        scope_name: str = "call"
    ) -> QuillEnvironment:
        """
        Build the local environment for a call.

        The returned environment is a fresh scope chained on top of the captured
        environment.  Default expressions are evaluated lazily, in declaration order,
        in that fresh scope, so they see the captured chain and the parameters bound
        before them but never the call site.  The caller must pop the returned
        environment's scope when the call ends.

        Args:
            pattern: The closure's parameter pattern
            captured: The closure's captured environment
            arguments: The call's arguments
            evaluate_default: Callback evaluating a default expression in an environment
            scope_name: Name of the call scope (for debugging)

        Returns:
            The call environment

        Raises:
            QuillUnexpectedArgumentError: If an argument matches nothing and there is no sink
            QuillMissingArgumentError: If a parameter without default receives no value
        """
        binding_plan = self.plan(pattern, arguments)

        call_env = captured.fork_for_capture()
        call_env.push_scope(scope_name)
        try:
            for slot, item in binding_plan.assignments:
                if item is not None:
                    call_env.define(slot.name, item.value)
                    continue

                assert isinstance(slot, QuillNamedSlot), "Unfilled positional slots are rejected by plan()"
                call_env.define(slot.name, evaluate_default(slot.default, call_env))

            if pattern.sink is not None and pattern.sink.name is not None:
                call_env.define(pattern.sink.name, QuillArguments(binding_plan.sink_items))

        except BaseException:
            call_env.pop_scope()
            raise

        self._logger.debug("Bound %s in scope '%s'", call_env.local_names(), scope_name)
        return call_env

    def _unexpected(self, index: int, item: QuillArgument) -> QuillUnexpectedArgumentError:
        return QuillUnexpectedArgumentError(
            index, item.name, line=item.line, column=item.column, source_file=item.source_file
        )
