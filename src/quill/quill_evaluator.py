"""Evaluator for Quill Abstract Syntax Trees."""

import difflib
import logging
import operator
import sys
from pathlib import PurePosixPath
from typing import Any, Callable, Dict, List, Sequence

from quill.quill_ast import (
    QuillASTNode, QuillArray, QuillAssign, QuillBinary, QuillBlock, QuillBreak, QuillCall,
    QuillClosureLiteral, QuillConditional, QuillContinue, QuillDict, QuillFieldAccess, QuillFor,
    QuillIdentifier, QuillImport, QuillLet, QuillLetClosure, QuillLiteral, QuillNamed, QuillReturn,
    QuillSpread, QuillUnary, QuillWhile
)
from quill.quill_binder import QuillArgumentBinder
from quill.quill_builtins import QuillBuiltinFunctions
from quill.quill_call_stack import QuillCallStack
from quill.quill_environment import QuillEnvironment, QuillScope
from quill.quill_error import (
    QuillError, QuillInvalidControlFlowError, QuillInvalidOperationError, QuillMaxDepthExceededError,
    QuillNotCallableError, QuillUnknownVariableError, QuillUnresolvedImportError
)
from quill.quill_module_resolver import QuillModuleResolver
from quill.quill_pattern import QuillParameterPattern
from quill.quill_value import (
    NONE, QuillArgument, QuillArguments, QuillClosure, QuillModule, QuillNativeFunction,
    spread_items, type_name
)


class _QuillControlSignal(Exception):
    """Non-error control flow unwinding through the evaluator."""

    keyword = ""

    def __init__(self, node: QuillASTNode):
        super().__init__(self.keyword)
        self.node = node


class _QuillBreakSignal(_QuillControlSignal):
    keyword = "break"


class _QuillContinueSignal(_QuillControlSignal):
    keyword = "continue"


class _QuillReturnSignal(_QuillControlSignal):
    keyword = "return"

    def __init__(self, node: QuillASTNode, value: Any):
        super().__init__(node)
        self.value = value


class QuillEvaluator:
    """
    Evaluates Quill ASTs against an environment.

    The evaluator owns scope entry and exit for blocks, loops and calls, and
    drives the argument binder whenever a closure is applied.
    """

    BINARY_OPERATORS: Dict[str, Callable[[Any, Any], Any]] = {
        '+': operator.add,
        '-': operator.sub,
        '*': operator.mul,
        '/': operator.truediv,
        '%': operator.mod,
        '==': operator.eq,
        '!=': operator.ne,
        '<': operator.lt,
        '<=': operator.le,
        '>': operator.gt,
        '>=': operator.ge,
        'in': lambda left, right: left in right,
        'not in': lambda left, right: left not in right,
    }

    UNARY_OPERATORS: Dict[str, Callable[[Any], Any]] = {
        '-': operator.neg,
        '+': operator.pos,
        'not': operator.not_,
    }

    # Compound assignment operators map onto their binary counterpart
    COMPOUND_OPERATORS = {'+=': '+', '-=': '-', '*=': '*', '/=': '/'}

    # Python frames allowed for each nested closure call, plus room for the host
    FRAMES_PER_CALL = 50
    RECURSION_HEADROOM = 1000

    def __init__(
        self,
        max_depth: int = 100,
        module_resolver: QuillModuleResolver | None = None,
        builtins: Dict[str, Any] | None = None
    ):
        """
        Initialize evaluator.

        Args:
            max_depth: Maximum closure call depth
            module_resolver: Resolver used for imports; imports fail if it has no loader
            builtins: Values bound in every global environment; the default builtins if None
        """
        self.max_depth = max_depth
        self.module_resolver = module_resolver if module_resolver is not None else QuillModuleResolver()
        self.call_stack = QuillCallStack()
        self.binder = QuillArgumentBinder()
        self._logger = logging.getLogger("QuillEvaluator")

        if builtins is None:
            builtins = {
                name: QuillNativeFunction(name, impl)
                for name, impl in QuillBuiltinFunctions().get_functions().items()
            }

        self.builtins = builtins

        self._handlers: Dict[type, Callable[[Any, QuillEnvironment], Any]] = {
            QuillLiteral: self._evaluate_literal,
            QuillIdentifier: self._evaluate_identifier,
            QuillArray: self._evaluate_array,
            QuillDict: self._evaluate_dict,
            QuillUnary: self._evaluate_unary,
            QuillBinary: self._evaluate_binary,
            QuillFieldAccess: self._evaluate_field_access,
            QuillBlock: self._evaluate_block_node,
            QuillClosureLiteral: self._evaluate_closure_literal,
            QuillCall: self._evaluate_call,
            QuillLet: self._evaluate_let,
            QuillLetClosure: self._evaluate_let_closure,
            QuillAssign: self._evaluate_assign,
            QuillConditional: self._evaluate_conditional,
            QuillWhile: self._evaluate_while,
            QuillFor: self._evaluate_for,
            QuillImport: self._evaluate_import,
            QuillBreak: self._evaluate_break,
            QuillContinue: self._evaluate_continue,
            QuillReturn: self._evaluate_return,
        }

    def create_global_environment(self) -> QuillEnvironment:
        """Create a global environment holding the builtins."""
        env = QuillEnvironment(name="global")
        for name, value in self.builtins.items():
            env.define(name, value)

        return env

    def evaluate_block(self, body: Sequence[QuillASTNode], env: QuillEnvironment) -> Any:
        """
        Evaluate a sequence of statements in a new scope of the given environment.

        Args:
            body: Statements to evaluate, in order
            env: Environment to evaluate in

        Returns:
            The value of the last statement, or none for an empty body

        Raises:
            QuillError: If evaluation fails
        """
        return self._run_top_level(lambda: self._evaluate_scoped(body, env, "block"))

    def evaluate(self, expr: QuillASTNode, env: QuillEnvironment) -> Any:
        """
        Evaluate a single expression in the given environment without a new scope.

        Args:
            expr: Expression to evaluate
            env: Environment to evaluate in

        Returns:
            Evaluation result

        Raises:
            QuillError: If evaluation fails
        """
        return self._run_top_level(lambda: self._evaluate_expression(expr, env))

    def make_closure(
        self,
        params: Sequence[QuillASTNode],
        body: QuillASTNode,
        env: QuillEnvironment,
        name: str | None = None
    ) -> QuillClosure:
        """
        Create a closure capturing the environment by shared reference.

        Args:
            params: Parameter AST nodes
            body: Body expression
            env: Environment current at the closure literal
            name: Name for display and call traces

        Returns:
            The closure

        Raises:
            QuillMalformedParameterPatternError: If a parameter is not valid
            QuillDuplicateParameterNameError: If a parameter name is repeated
        """
        pattern = QuillParameterPattern.from_ast(params)
        return QuillClosure(pattern, body, env.fork_for_capture(), name)

    def call_closure(
        self,
        closure: QuillClosure,
        positional_args: Sequence[Any] = (),
        named_args: Dict[str, Any] | None = None
    ) -> Any:
        """
        Call a closure from the host.

        Args:
            closure: Closure to call
            positional_args: Positional argument values
            named_args: Named argument values

        Returns:
            The closure's result

        Raises:
            QuillError: If binding or evaluation fails
        """
        arguments = QuillArguments.build(list(positional_args), named_args)
        return self._run_top_level(lambda: self.call(closure, arguments))

    def call(self, func: Any, arguments: QuillArguments, node: QuillASTNode | None = None) -> Any:
        """
        Call any callable Quill value.

        Args:
            func: Closure or native function
            arguments: Evaluated call arguments
            node: Call expression, for call traces

        Returns:
            The call result
        """
        if isinstance(func, QuillClosure):
            return self._call_closure(func, arguments, node)

        if isinstance(func, QuillNativeFunction):
            return self._call_native_function(func, arguments)

        raise QuillNotCallableError(type_name(func))

    def bind_let(self, env: QuillEnvironment, name: str, value: Any) -> None:
        """Bind a let-declared name in the innermost scope."""
        env.define(name, value)

    def bind_for(
        self,
        env: QuillEnvironment,
        pattern: QuillIdentifier | Sequence[QuillIdentifier],
        value: Any
    ) -> None:
        """
        Bind a loop pattern to one iteration's value in the innermost scope.

        Args:
            env: Environment whose innermost scope is the iteration scope
            pattern: A single identifier, or identifiers to destructure into
            value: The iteration value

        Raises:
            QuillInvalidOperationError: If the value cannot be destructured
        """
        if isinstance(pattern, QuillIdentifier):
            env.define(pattern.name, value)
            return

        if not isinstance(value, (list, tuple)) or len(value) != len(pattern):
            raise QuillInvalidOperationError(
                f"cannot destructure {type_name(value)} into {len(pattern)} names"
            )

        for identifier, item in zip(pattern, value):
            env.define(identifier.name, item)

    def bind_import(self, env: QuillEnvironment, name: str, value: Any) -> None:
        """Bind an imported value in the innermost scope."""
        env.define(name, value)

    def _run_top_level(self, action: Callable[[], Any]) -> Any:
        """
        Run an evaluation entry point, classifying control flow that escaped.

        The Python recursion limit is raised for the duration of the evaluation so
        that max_depth closure calls fit, and restored afterwards.
        """
        previous_limit = sys.getrecursionlimit()
        required_limit = self.max_depth * self.FRAMES_PER_CALL + self.RECURSION_HEADROOM
        if required_limit > previous_limit:
            sys.setrecursionlimit(required_limit)

        try:
            return action()

        except _QuillControlSignal as signal:
            raise QuillInvalidControlFlowError(signal.keyword).with_location(signal.node) from signal

        except RecursionError as e:
            raise QuillMaxDepthExceededError(
                self.max_depth,
                context="Python recursion limit reached",
                suggestion="Reduce nesting depth or lower max_depth"
            ) from e

        finally:
            if required_limit > previous_limit:
                sys.setrecursionlimit(previous_limit)

    def _evaluate_expression(self, expr: QuillASTNode, env: QuillEnvironment) -> Any:
        """Internal expression evaluation with type dispatch."""
        handler = self._handlers.get(type(expr))
        if handler is None:
            raise QuillInvalidOperationError(
                f"unsupported expression: {type(expr).__name__}"
            ).with_location(expr)

        try:
            return handler(expr, env)

        except QuillError as e:
            # Attribute the error to the innermost node that failed
            e.with_location(expr)
            raise

    def _evaluate_scoped(self, body: Sequence[QuillASTNode], env: QuillEnvironment, scope_name: str) -> Any:
        with env.scope(scope_name):
            return self._evaluate_statements(body, env)

    def _evaluate_statements(self, body: Sequence[QuillASTNode], env: QuillEnvironment) -> Any:
        result: Any = NONE
        for statement in body:
            result = self._evaluate_expression(statement, env)

        return result

    def _evaluate_literal(self, node: QuillLiteral, _env: QuillEnvironment) -> Any:
        return NONE if node.value is None else node.value

    def _evaluate_identifier(self, node: QuillIdentifier, env: QuillEnvironment) -> Any:
        try:
            return env.lookup(node.name)

        except QuillUnknownVariableError as e:
            similar = difflib.get_close_matches(node.name, env.available_names(), n=3, cutoff=0.6)
            if similar:
                e.suggestion = f"Did you mean: {', '.join(similar)}?"

            raise

    def _evaluate_array(self, node: QuillArray, env: QuillEnvironment) -> List[Any]:
        items: List[Any] = []
        for item in node.items:
            if not isinstance(item, QuillSpread):
                items.append(self._evaluate_expression(item, env))
                continue

            value = self._evaluate_spread_target(item, env)
            if isinstance(value, QuillArguments):
                value = value.positional

            if value is NONE:
                continue

            if not isinstance(value, (list, tuple)):
                raise QuillInvalidOperationError(f"cannot spread {type_name(value)} into array").with_location(item)

            items.extend(value)

        return items

    def _evaluate_dict(self, node: QuillDict, env: QuillEnvironment) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for item in node.items:
            if isinstance(item, QuillNamed):
                result[self._pair_key(item)] = self._evaluate_expression(item.value, env)
                continue

            if isinstance(item, QuillSpread):
                value = self._evaluate_spread_target(item, env)
                if isinstance(value, QuillArguments):
                    value = value.named

                if value is NONE:
                    continue

                if not isinstance(value, dict):
                    raise QuillInvalidOperationError(
                        f"cannot spread {type_name(value)} into dictionary"
                    ).with_location(item)

                result.update(value)
                continue

            raise QuillInvalidOperationError("expected named pair or spread").with_location(item)

        return result

    def _pair_key(self, pair: QuillNamed) -> str:
        """Get the key of a `name: value` pair."""
        if isinstance(pair.name, QuillIdentifier):
            return pair.name.name

        if isinstance(pair.name, QuillLiteral) and isinstance(pair.name.value, str):
            return pair.name.value

        raise QuillInvalidOperationError("expected identifier").with_location(pair.name)

    def _evaluate_spread_target(self, node: QuillSpread, env: QuillEnvironment) -> Any:
        if node.target is None:
            raise QuillInvalidOperationError("expected expression after spread").with_location(node)

        return self._evaluate_expression(node.target, env)

    def _evaluate_unary(self, node: QuillUnary, env: QuillEnvironment) -> Any:
        op = self.UNARY_OPERATORS.get(node.op)
        if op is None:
            raise QuillInvalidOperationError(f"unknown operator '{node.op}'")

        operand = self._evaluate_expression(node.operand, env)
        try:
            return op(operand)

        except Exception as e:
            raise QuillInvalidOperationError(f"cannot apply '{node.op}' to {type_name(operand)}") from e

    def _evaluate_binary(self, node: QuillBinary, env: QuillEnvironment) -> Any:
        # Logical operators short-circuit, so the right side may never be evaluated
        if node.op in ('and', 'or'):
            left = self._evaluate_expression(node.left, env)
            if node.op == 'and' and not left:
                return left

            if node.op == 'or' and left:
                return left

            return self._evaluate_expression(node.right, env)

        if node.op not in self.BINARY_OPERATORS:
            raise QuillInvalidOperationError(f"unknown operator '{node.op}'")

        left = self._evaluate_expression(node.left, env)
        right = self._evaluate_expression(node.right, env)
        return self._apply_binary(node.op, left, right)

    def _apply_binary(self, op: str, left: Any, right: Any) -> Any:
        try:
            return self.BINARY_OPERATORS[op](left, right)

        except Exception as e:
            raise QuillInvalidOperationError(
                f"cannot apply '{op}' to {type_name(left)} and {type_name(right)}",
                context=str(e)
            ) from e

    def _evaluate_field_access(self, node: QuillFieldAccess, env: QuillEnvironment) -> Any:
        target = self._evaluate_expression(node.target, env)
        field_name = node.field_name

        if isinstance(target, QuillModule):
            try:
                return target.get(field_name)

            except KeyError as e:
                raise QuillInvalidOperationError(
                    f"module {target.name} does not contain `{field_name}`"
                ) from e

        if isinstance(target, QuillArguments):
            if field_name == 'pos':
                return list(target.positional)

            if field_name == 'named':
                return target.named

        if isinstance(target, dict) and field_name in target:
            return target[field_name]

        raise QuillInvalidOperationError(f"{type_name(target)} does not contain field `{field_name}`")

    def _evaluate_block_node(self, node: QuillBlock, env: QuillEnvironment) -> Any:
        return self._evaluate_scoped(node.body, env, "block")

    def _evaluate_closure_literal(self, node: QuillClosureLiteral, env: QuillEnvironment) -> QuillClosure:
        return self.make_closure(node.params, node.body, env, node.name)

    def _evaluate_let(self, node: QuillLet, env: QuillEnvironment) -> Any:
        # The initializer sees the environment before the new binding exists
        value = NONE if node.init is None else self._evaluate_expression(node.init, env)
        self.bind_let(env, node.name.name, value)
        return NONE

    def _evaluate_let_closure(self, node: QuillLetClosure, env: QuillEnvironment) -> Any:
        pattern = QuillParameterPattern.from_ast(node.params)

        # Define the name first so the captured chain lets the closure call itself
        cell = env.define(node.name.name, NONE)
        cell.value = QuillClosure(pattern, node.body, env.fork_for_capture(), node.name.name)
        return NONE

    def _evaluate_assign(self, node: QuillAssign, env: QuillEnvironment) -> Any:
        name = node.target.name
        try:
            if node.op == '=':
                value = self._evaluate_expression(node.value, env)

            else:
                binary_op = self.COMPOUND_OPERATORS.get(node.op)
                if binary_op is None:
                    raise QuillInvalidOperationError(f"unknown assignment operator '{node.op}'")

                current = env.lookup(name)
                value = self._apply_binary(binary_op, current, self._evaluate_expression(node.value, env))

            env.assign(name, value)

        except QuillUnknownVariableError as e:
            e.with_location(node.target)
            raise

        return NONE

    def _evaluate_conditional(self, node: QuillConditional, env: QuillEnvironment) -> Any:
        if self._evaluate_expression(node.condition, env):
            return self._evaluate_expression(node.if_body, env)

        if node.else_body is not None:
            return self._evaluate_expression(node.else_body, env)

        return NONE

    def _evaluate_while(self, node: QuillWhile, env: QuillEnvironment) -> Any:
        while self._evaluate_expression(node.condition, env):
            try:
                with env.scope("while"):
                    self._evaluate_expression(node.body, env)

            except _QuillBreakSignal:
                break

            except _QuillContinueSignal:
                continue

        return NONE

    def _evaluate_for(self, node: QuillFor, env: QuillEnvironment) -> Any:
        iterable = self._evaluate_expression(node.iterable, env)
        for item in self._iterate(iterable):
            try:
                # Each iteration gets its own scope, so closures created in the
                # body capture a distinct binding of the loop variable
                with env.scope("for"):
                    self.bind_for(env, node.pattern, item)
                    self._evaluate_expression(node.body, env)

            except _QuillBreakSignal:
                break

            except _QuillContinueSignal:
                continue

        return NONE

    def _iterate(self, value: Any) -> List[Any]:
        if isinstance(value, dict):
            return [list(pair) for pair in value.items()]

        if isinstance(value, QuillArguments):
            return list(value.positional)

        if value is NONE or isinstance(value, (QuillClosure, QuillNativeFunction, QuillModule)):
            raise QuillInvalidOperationError(f"cannot loop over {type_name(value)}")

        try:
            return list(value)

        except TypeError as e:
            raise QuillInvalidOperationError(f"cannot loop over {type_name(value)}") from e

    def _evaluate_import(self, node: QuillImport, env: QuillEnvironment) -> Any:
        source = self._evaluate_expression(node.source, env)
        module = self._resolve_module(source)

        if node.wildcard:
            for name in module.exports():
                self.bind_import(env, name, module.get(name))

            return NONE

        if node.items is None:
            self.bind_import(env, PurePosixPath(module.name).stem, module)
            return NONE

        for item in node.items:
            try:
                value = module.get(item.name)

            except KeyError as e:
                raise QuillUnresolvedImportError(item.name, module.name).with_location(item) from e

            self.bind_import(env, item.local_name, value)

        return NONE

    def _resolve_module(self, source: Any) -> QuillModule:
        if isinstance(source, QuillModule):
            return source

        if not isinstance(source, str):
            raise QuillInvalidOperationError(f"expected path or module, found {type_name(source)}")

        self._logger.debug("Resolving import of '%s'", source)
        return self.module_resolver.resolve(source, self._evaluate_module)

    def _evaluate_module(self, module_name: str, program: Sequence[QuillASTNode]) -> QuillScope:
        """Evaluate a module program and return its top-level scope."""
        env = self.create_global_environment()
        with env.scope(f"module:{module_name}"):
            self._run_top_level(lambda: self._evaluate_statements(program, env))
            return env.current_scope

    def _evaluate_break(self, node: QuillBreak, _env: QuillEnvironment) -> Any:
        raise _QuillBreakSignal(node)

    def _evaluate_continue(self, node: QuillContinue, _env: QuillEnvironment) -> Any:
        raise _QuillContinueSignal(node)

    def _evaluate_return(self, node: QuillReturn, env: QuillEnvironment) -> Any:
        value = NONE if node.value is None else self._evaluate_expression(node.value, env)
        raise _QuillReturnSignal(node, value)

    def _evaluate_call(self, node: QuillCall, env: QuillEnvironment) -> Any:
        func = self._evaluate_expression(node.callee, env)
        arguments = self._evaluate_arguments(node.args, env)
        return self.call(func, arguments, node)

    def _evaluate_arguments(self, args: Sequence[QuillASTNode], env: QuillEnvironment) -> QuillArguments:
        """
        Evaluate call-site arguments in order.

        Raises:
            QuillDuplicateNamedArgumentError: If a named argument is given twice
        """
        arguments = QuillArguments()
        for arg in args:
            location = {'line': arg.line, 'column': arg.column, 'source_file': arg.source_file}

            if isinstance(arg, QuillNamed):
                name = self._pair_key(arg)
                arguments.push(QuillArgument(self._evaluate_expression(arg.value, env), name, **location))
                continue

            if isinstance(arg, QuillSpread):
                try:
                    spread = spread_items(self._evaluate_spread_target(arg, env))

                except QuillError as e:
                    e.with_location(arg)
                    raise

                for item in spread:
                    arguments.push(QuillArgument(item.value, item.name, **location))

                continue

            arguments.push(QuillArgument(self._evaluate_expression(arg, env), **location))

        return arguments

    def _call_closure(self, closure: QuillClosure, arguments: QuillArguments, node: QuillASTNode | None) -> Any:
        """
        Apply a closure: bind arguments in a fresh scope on the captured chain, then
        evaluate the body there.
        """
        name = closure.name or "<closure>"
        if self.call_stack.depth() >= self.max_depth:
            raise QuillMaxDepthExceededError(
                self.max_depth,
                context=f"Call stack:\n{self.call_stack.format_stack_trace()}",
                suggestion="Check for unbounded recursion or increase max_depth"
            )

        try:
            call_env = self.binder.bind(
                closure.pattern, closure.environment, arguments, self._evaluate_expression, f"{name}-call"
            )

        except _QuillControlSignal as signal:
            # A default expression is not a function body
            raise QuillInvalidControlFlowError(signal.keyword).with_location(signal.node) from signal

        self.call_stack.push(
            name,
            {n: call_env.lookup(n) for n in call_env.local_names()},
            getattr(node, 'line', None),
            getattr(node, 'column', None)
        )
        self._logger.debug("Calling %s with %d arguments", name, len(arguments))

        try:
            return self._evaluate_expression(closure.body, call_env)

        except _QuillReturnSignal as signal:
            return signal.value

        except (_QuillBreakSignal, _QuillContinueSignal) as signal:
            # Loop control never crosses a function boundary
            raise QuillInvalidControlFlowError(signal.keyword).with_location(signal.node) from signal

        finally:
            self.call_stack.pop()
            call_env.pop_scope()

    def _call_native_function(self, func: QuillNativeFunction, arguments: QuillArguments) -> Any:
        try:
            return func.native_impl(arguments)

        except QuillError:
            raise

        except Exception as e:
            raise QuillInvalidOperationError(
                f"error in native function '{func.name}'",
                context=str(e)
            ) from e
