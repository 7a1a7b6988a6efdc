"""Tests for evaluation of blocks, control flow and expressions."""

import pytest

from quill import (
    NONE, QuillInvalidControlFlowError, QuillInvalidOperationError, QuillNativeFunction,
    QuillUnknownVariableError
)


class TestBlocksAndScopes:
    """Test block evaluation and scope discipline."""

    def test_empty_program(self, quill):
        """Test that an empty program yields none."""
        assert quill.evaluate([]) is NONE

    def test_block_value_is_last_statement(self, quill, ast):
        """Test that a block evaluates to its last statement."""
        assert quill.evaluate([ast.lit(1), ast.lit(2)]) == 2

    def test_let_statement_value_is_none(self, quill, ast):
        """Test that let produces no value."""
        assert quill.evaluate([ast.let("x", ast.lit(1))]) is NONE

    def test_let_without_initializer(self, quill, ast):
        """Test that `let x` binds none."""
        assert quill.evaluate([ast.let("x"), ast.ident("x")]) is NONE

    def test_block_bindings_do_not_escape(self, quill, ast):
        """Test that names defined in a block are gone after it."""
        with pytest.raises(QuillUnknownVariableError):
            quill.evaluate([ast.block(ast.let("inner", ast.lit(1))), ast.ident("inner")])

    def test_use_before_let(self, quill, ast):
        """Test that a later let does not satisfy an earlier lookup."""
        with pytest.raises(QuillUnknownVariableError):
            quill.evaluate([ast.ident("later"), ast.let("later", ast.lit(1))])

    def test_scopes_balanced_after_error(self, evaluator, env, ast):
        """Test that an error deep in nested blocks leaves no pushed scope behind."""
        program = [ast.block(ast.let("a", ast.lit(1)), ast.block(ast.ident("nope")))]

        with pytest.raises(QuillUnknownVariableError):
            evaluator.evaluate_block(program, env)

        assert env.depth() == 0
        assert not env.contains("a")

    def test_call_stack_balanced_after_error(self, evaluator, env, ast):
        """Test that a failing call leaves the call stack empty."""
        closure = evaluator.make_closure(ast.params(), ast.ident("nope"), env)

        with pytest.raises(QuillUnknownVariableError):
            evaluator.call_closure(closure)

        assert evaluator.call_stack.depth() == 0

    def test_evaluate_in_keeps_assignments(self, quill, ast):
        """Test that evaluating in a caller environment keeps outer mutations only."""
        env = quill.create_environment()
        env.define("total", 1)

        quill.evaluate_in([ast.let("tmp", ast.lit(5)), ast.assign("total", ast.ident("tmp"), "+=")], env)

        assert env.lookup("total") == 6
        assert not env.contains("tmp")

    def test_unknown_variable_suggestion(self, quill, ast):
        """Test that close names are suggested for unknown variables."""
        with pytest.raises(QuillUnknownVariableError) as exc_info:
            quill.evaluate([ast.let("counter", ast.lit(1)), ast.ident("countr")])

        assert exc_info.value.suggestion == "Did you mean: counter?"

    def test_bind_helpers(self, evaluator, env, ast):
        """Test the binding entry points used by drivers."""
        evaluator.bind_let(env, "a", 1)
        evaluator.bind_import(env, "b", 2)
        evaluator.bind_for(env, (ast.ident("c"), ast.ident("d")), [3, 4])

        assert [env.lookup(n) for n in ("a", "b", "c", "d")] == [1, 2, 3, 4]


class TestAssignment:
    """Test assignment to existing bindings."""

    def test_assign(self, quill, ast):
        """Test plain assignment."""
        assert quill.evaluate([ast.let("x", ast.lit(1)), ast.assign("x", ast.lit(2)), ast.ident("x")]) == 2

    def test_compound_assign(self, quill, ast):
        """Test compound assignment operators."""
        result = quill.evaluate([
            ast.let("x", ast.lit(10)),
            ast.assign("x", ast.lit(5), "+="),
            ast.assign("x", ast.lit(3), "-="),
            ast.assign("x", ast.lit(2), "*="),
            ast.assign("x", ast.lit(4), "/="),
            ast.ident("x"),
        ])
        assert result == 6

    def test_assign_unknown_variable_located_at_target(self, quill, ast):
        """Test that assigning an unbound name reports the target."""
        node = ast.at(ast.assign("ghost", ast.lit(1)), 4, 2)
        with pytest.raises(QuillUnknownVariableError) as exc_info:
            quill.evaluate([node])

        assert exc_info.value.line == 4

    def test_assign_in_inner_block_updates_outer(self, quill, ast):
        """Test that assignment reaches through block scopes."""
        result = quill.evaluate([
            ast.let("x", ast.lit(1)),
            ast.block(ast.assign("x", ast.lit(7))),
            ast.ident("x"),
        ])
        assert result == 7


class TestConditionals:
    """Test conditionals."""

    def test_if_else(self, quill, ast):
        """Test both branches of a conditional."""
        assert quill.evaluate([ast.if_(ast.lit(True), ast.lit("yes"), ast.lit("no"))]) == "yes"
        assert quill.evaluate([ast.if_(ast.lit(False), ast.lit("yes"), ast.lit("no"))]) == "no"

    def test_if_without_else(self, quill, ast):
        """Test that a false conditional without else yields none."""
        assert quill.evaluate([ast.if_(ast.lit(False), ast.lit(1))]) is NONE

    def test_untaken_branch_not_evaluated(self, quill, ast):
        """Test that the untaken branch is never evaluated."""
        assert quill.evaluate([ast.if_(ast.lit(True), ast.lit(1), ast.ident("undefined"))]) == 1


class TestLoops:
    """Test while and for loops."""

    def test_while_loop(self, quill, ast):
        """Test a counting while loop."""
        result = quill.evaluate([
            ast.let("i", ast.lit(0)),
            ast.while_(ast.binary("<", ast.ident("i"), ast.lit(5)), ast.block(
                ast.assign("i", ast.lit(1), "+="),
            )),
            ast.ident("i"),
        ])
        assert result == 5

    def test_for_over_array(self, quill, ast):
        """Test summing an array."""
        result = quill.evaluate([
            ast.let("sum", ast.lit(0)),
            ast.for_("n", ast.array(ast.lit(1), ast.lit(2), ast.lit(3)), ast.block(
                ast.assign("sum", ast.ident("n"), "+="),
            )),
            ast.ident("sum"),
        ])
        assert result == 6

    def test_for_over_dict_destructures(self, quill, ast):
        """Test destructuring key/value pairs of a dictionary."""
        result = quill.evaluate([
            ast.let("keys", ast.array()),
            ast.let("total", ast.lit(0)),
            ast.for_(("k", "v"), ast.dict_(ast.named("a", ast.lit(1)), ast.named("b", ast.lit(2))), ast.block(
                ast.assign("keys", ast.array(ast.spread("keys"), ast.ident("k"))),
                ast.assign("total", ast.ident("v"), "+="),
            )),
            ast.array(ast.ident("keys"), ast.ident("total")),
        ])
        assert result == [["a", "b"], 3]

    def test_for_over_dict_single_variable(self, quill, ast):
        """Test that a single loop variable receives each pair as an array."""
        result = quill.evaluate([
            ast.let("pairs", ast.array()),
            ast.for_("pair", ast.dict_(ast.named("a", ast.lit(1))), ast.assign(
                "pairs", ast.array(ast.spread("pairs"), ast.ident("pair"))
            )),
            ast.ident("pairs"),
        ])
        assert result == [["a", 1]]

    def test_for_over_range(self, quill, ast):
        """Test iterating the range builtin."""
        result = quill.evaluate([
            ast.let("out", ast.array()),
            ast.for_("i", ast.call("range", ast.lit(3)), ast.assign("out", ast.array(ast.spread("out"), ast.ident("i")))),
            ast.ident("out"),
        ])
        assert result == [0, 1, 2]

    def test_loop_variable_does_not_escape(self, quill, ast):
        """Test that the loop variable is scoped to the iteration."""
        with pytest.raises(QuillUnknownVariableError):
            quill.evaluate([ast.for_("i", ast.array(ast.lit(1)), ast.block()), ast.ident("i")])

    def test_per_iteration_capture(self, quill, ast):
        """Test that closures created in a loop capture distinct bindings."""
        result = quill.evaluate([
            ast.let("fns", ast.array()),
            ast.for_("i", ast.array(ast.lit(1), ast.lit(2), ast.lit(3)), ast.assign(
                "fns", ast.array(ast.spread("fns"), ast.closure([], ast.ident("i")))
            )),
            ast.let("results", ast.array()),
            ast.for_("f", ast.ident("fns"), ast.assign(
                "results", ast.array(ast.spread("results"), ast.call(ast.ident("f")))
            )),
            ast.ident("results"),
        ])
        assert result == [1, 2, 3]

    def test_break_and_continue(self, quill, ast):
        """Test break and continue in a for loop."""
        result = quill.evaluate([
            ast.let("seen", ast.array()),
            ast.for_("i", ast.call("range", ast.lit(10)), ast.block(
                ast.if_(ast.binary("==", ast.binary("%", ast.ident("i"), ast.lit(2)), ast.lit(1)), ast.cont()),
                ast.if_(ast.binary(">", ast.ident("i"), ast.lit(6)), ast.brk()),
                ast.assign("seen", ast.array(ast.spread("seen"), ast.ident("i"))),
            )),
            ast.ident("seen"),
        ])
        assert result == [0, 2, 4, 6]

    def test_break_in_while(self, quill, ast):
        """Test breaking out of an otherwise endless while loop."""
        result = quill.evaluate([
            ast.let("i", ast.lit(0)),
            ast.while_(ast.lit(True), ast.block(
                ast.assign("i", ast.lit(1), "+="),
                ast.if_(ast.binary("==", ast.ident("i"), ast.lit(3)), ast.brk()),
            )),
            ast.ident("i"),
        ])
        assert result == 3

    def test_loop_over_non_iterable(self, quill, ast):
        """Test that looping over a number fails."""
        with pytest.raises(QuillInvalidOperationError, match="cannot loop over integer"):
            quill.evaluate([ast.for_("i", ast.lit(3), ast.block())])

    def test_destructure_mismatch(self, quill, ast):
        """Test that destructuring the wrong shape fails."""
        with pytest.raises(QuillInvalidOperationError, match="cannot destructure"):
            quill.evaluate([ast.for_(("a", "b"), ast.array(ast.lit(1)), ast.block())])


class TestControlFlow:
    """Test return, break and continue boundaries."""

    def test_early_return(self, quill, ast):
        """Test returning from the middle of a closure body."""
        result = quill.evaluate([
            ast.let_fn("f", ["x"], ast.block(
                ast.if_(ast.binary("<", ast.ident("x"), ast.lit(0)), ast.ret(ast.lit("negative"))),
                ast.lit("non-negative"),
            )),
            ast.array(ast.call("f", ast.lit(-1)), ast.call("f", ast.lit(1))),
        ])
        assert result == ["negative", "non-negative"]

    def test_return_from_loop_inside_closure(self, quill, ast):
        """Test that return exits the closure from within a loop."""
        result = quill.evaluate([
            ast.let_fn("find", ["items", "target"], ast.block(
                ast.for_("item", ast.ident("items"), ast.if_(
                    ast.binary("==", ast.ident("item"), ast.ident("target")), ast.ret(ast.lit(True))
                )),
                ast.lit(False),
            )),
            ast.call("find", ast.array(ast.lit(1), ast.lit(2)), ast.lit(2)),
        ])
        assert result is True

    def test_bare_return_yields_none(self, quill, ast):
        """Test that return without a value yields none."""
        assert quill.evaluate([ast.let_fn("f", [], ast.ret()), ast.call("f")]) is NONE

    def test_return_outside_function(self, quill, ast):
        """Test that return at top level is invalid."""
        node = ast.at(ast.ret(ast.lit(1)), 1, 1)
        with pytest.raises(QuillInvalidControlFlowError) as exc_info:
            quill.evaluate([node])

        assert str(exc_info.value) == "cannot return outside of function"
        assert exc_info.value.line == 1

    def test_break_outside_loop(self, quill, ast):
        """Test that break at top level is invalid."""
        with pytest.raises(QuillInvalidControlFlowError, match="cannot break outside of loop"):
            quill.evaluate([ast.brk()])

    def test_break_does_not_cross_closure(self, quill, ast):
        """Test that break inside a closure cannot end the caller's loop."""
        with pytest.raises(QuillInvalidControlFlowError, match="cannot continue outside of loop"):
            quill.evaluate([
                ast.let_fn("skip", [], ast.cont()),
                ast.for_("i", ast.array(ast.lit(1)), ast.call("skip")),
            ])

    def test_return_in_default_expression(self, evaluator, env, ast):
        """Test that return inside a default expression does not exit the caller."""
        program = [
            ast.let_fn("f", [ast.named("x", ast.at(ast.ret(ast.lit(5)), 1, 10))], ast.lit(1)),
            ast.let_fn("g", [], ast.block(ast.call("f"), ast.lit(2))),
            ast.call("g"),
        ]
        with pytest.raises(QuillInvalidControlFlowError) as exc_info:
            evaluator.evaluate_block(program, env)

        assert str(exc_info.value) == "cannot return outside of function"
        assert (exc_info.value.line, exc_info.value.column) == (1, 10)
        assert evaluator.call_stack.depth() == 0

    def test_break_in_default_expression(self, quill, ast):
        """Test that break inside a default expression cannot end the caller's loop."""
        with pytest.raises(QuillInvalidControlFlowError, match="cannot break outside of loop"):
            quill.evaluate([
                ast.let_fn("f", [ast.named("x", ast.brk())], ast.lit(1)),
                ast.for_("i", ast.array(ast.lit(1)), ast.call("f")),
            ])


class TestExpressions:
    """Test expression forms."""

    def test_arithmetic_and_comparison(self, quill, ast):
        """Test that operators delegate to host values."""
        assert quill.evaluate([ast.binary("+", ast.lit(2), ast.binary("*", ast.lit(3), ast.lit(4)))]) == 14
        assert quill.evaluate([ast.binary("<=", ast.lit(2), ast.lit(2))]) is True
        assert quill.evaluate([ast.binary("in", ast.lit(2), ast.array(ast.lit(1), ast.lit(2)))]) is True

    def test_unary(self, quill, ast):
        """Test unary operators."""
        assert quill.evaluate([ast.unary("-", ast.lit(5))]) == -5
        assert quill.evaluate([ast.unary("not", ast.lit(False))]) is True

    def test_short_circuit(self, quill, ast):
        """Test that and/or do not evaluate their right side needlessly."""
        assert quill.evaluate([ast.binary("and", ast.lit(False), ast.ident("undefined"))]) is False
        assert quill.evaluate([ast.binary("or", ast.lit(True), ast.ident("undefined"))]) is True
        assert quill.evaluate([ast.binary("and", ast.lit(True), ast.lit(7))]) == 7

    def test_invalid_operation(self, quill, ast):
        """Test that a failing host operation is classified."""
        with pytest.raises(QuillInvalidOperationError) as exc_info:
            quill.evaluate([ast.binary("+", ast.lit(1), ast.lit("a"))])

        assert str(exc_info.value) == "cannot apply '+' to integer and string"
        assert isinstance(exc_info.value.__cause__, TypeError)

    def test_division_by_zero(self, quill, ast):
        """Test that division by zero is an invalid operation."""
        with pytest.raises(QuillInvalidOperationError):
            quill.evaluate([ast.binary("/", ast.lit(1), ast.lit(0))])

    def test_array_and_dict_literals(self, quill, ast):
        """Test collection literals with spreads."""
        result = quill.evaluate([
            ast.let("base", ast.dict_(ast.named("a", ast.lit(1)))),
            ast.dict_(ast.spread("base"), ast.named("b", ast.array(ast.lit(1), ast.spread(ast.array(ast.lit(2)))))),
        ])
        assert result == {"a": 1, "b": [1, 2]}

    def test_field_access_on_dict(self, quill, ast):
        """Test reading a dictionary field."""
        result = quill.evaluate([ast.field(ast.dict_(ast.named("x", ast.lit(3))), "x")])
        assert result == 3

    def test_missing_field(self, quill, ast):
        """Test that a missing field fails."""
        with pytest.raises(QuillInvalidOperationError, match="does not contain field"):
            quill.evaluate([ast.field(ast.dict_(), "x")])

    def test_native_function_error_wrapped(self, quill_custom, ast):
        """Test that unexpected exceptions from native functions are classified."""
        def explode(_args):
            raise ValueError("kaboom")

        quill = quill_custom(builtins={"explode": QuillNativeFunction("explode", explode)})
        with pytest.raises(QuillInvalidOperationError) as exc_info:
            quill.evaluate([ast.call("explode")])

        assert exc_info.value.context == "kaboom"
        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_host_values_in_globals(self, quill_custom, ast):
        """Test that host values can be provided as globals."""
        quill = quill_custom(builtins={"answer": 42})
        assert quill.evaluate([ast.ident("answer")]) == 42
