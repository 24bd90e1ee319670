"""Tests for randtext.function module."""

import math

import pytest

from randtext import state
from randtext.errors import ArityError, EvaluationFailure
from randtext.function import (
    BUILTINS,
    CONCURRENT,
    SEQUENTIAL,
    Function,
    ResultPair,
    arity,
    function,
)
from randtext.generator import Generator


@pytest.fixture(autouse=True)
def rng_state():
    """Seed the RNG and restore its state after each test."""
    saved = state.RNG.getstate()
    state.seed(2024)
    yield
    state.RNG.setstate(saved)


@pytest.fixture
def ctx():
    return Generator().new_context()


class TestArity:
    """Tests for arity detection."""

    def test_positional(self):
        assert arity(lambda a, b: None) == (2, 2)

    def test_defaults(self):
        assert arity(lambda a, b=None: None) == (1, 2)

    def test_varargs(self):
        lo, hi = arity(lambda a, *rest: None)
        assert lo == 1
        assert hi == math.inf


class TestFunction:
    """Tests for the Function descriptor."""

    def test_arity_from_signature(self):
        f = Function("f", lambda a, b=None: ResultPair(a.value, a.context))
        assert (f.min_arity, f.max_arity) == (1, 2)
        assert f.mode == SEQUENTIAL

    def test_no_parameter_rejected(self):
        with pytest.raises(ValueError):
            Function("f", lambda: None)

    def test_bad_mode_rejected(self):
        with pytest.raises(ValueError, match="mode"):
            Function("f", lambda a: a, "parallel")

    def test_too_few_arguments(self, ctx):
        f = Function("f", lambda a, b: a)
        with pytest.raises(ArityError, match="too few arguments for function f"):
            f.call(ResultPair("x", ctx))

    def test_too_many_arguments(self, ctx):
        f = Function("f", lambda a: a)
        pair = ResultPair("x", ctx)
        with pytest.raises(ArityError, match=r"\(1 expected, 2 given\)"):
            f.call(pair, pair)

    def test_arity_error_is_evaluation_failure(self):
        assert issubclass(ArityError, EvaluationFailure)

    def test_result_must_be_pair(self, ctx):
        f = Function("f", lambda a: a.value)
        with pytest.raises(TypeError, match="ResultPair"):
            f.call(ResultPair("x", ctx))

    def test_decorator(self):
        @function("twice", CONCURRENT)
        def twice(a):
            return ResultPair(a.value * 2, a.context)

        assert isinstance(twice, Function)
        assert twice.name == "twice"
        assert twice.mode == CONCURRENT

    def test_equality_ignores_callable(self):
        assert Function("f", lambda a: a) == Function("f", lambda b: b)


class TestBuiltins:
    """Tests for the built-in functions."""

    def test_registry(self):
        assert set(BUILTINS) == {"s", "capitalize", "cat", "pick", "fail", "calc"}
        assert BUILTINS["pick"].mode == CONCURRENT

    def test_s(self, ctx):
        pair = ResultPair("text", ctx)
        assert BUILTINS["s"].call(pair) is pair

    def test_capitalize(self, ctx):
        out = BUILTINS["capitalize"].call(ResultPair("hello world", ctx))
        assert out.value == "Hello world"
        assert out.context is ctx

    def test_capitalize_empty(self, ctx):
        assert BUILTINS["capitalize"].call(ResultPair("", ctx)).value == ""

    def test_cat(self, ctx):
        other = Generator().new_context()
        out = BUILTINS["cat"].call(ResultPair("a", ctx), ResultPair("b", other), ResultPair("c", other))
        assert out.value == "abc"
        assert out.context is ctx

    def test_pick_returns_an_argument(self, ctx):
        pairs = [ResultPair(v, ctx) for v in "xyz"]
        seen = {BUILTINS["pick"].call(*pairs).value for _ in range(200)}
        assert seen == {"x", "y", "z"}

    def test_fail(self, ctx):
        with pytest.raises(EvaluationFailure, match="no way"):
            BUILTINS["fail"].call(ResultPair("no way", ctx))

    def test_fail_default_message(self, ctx):
        with pytest.raises(EvaluationFailure, match="explicit failure"):
            BUILTINS["fail"].call(ResultPair("", ctx))


class TestCalc:
    """Tests for the calc built-in."""

    def _calc(self, ctx, expr):
        return BUILTINS["calc"].call(ResultPair(expr, ctx)).value

    def test_arithmetic(self, ctx):
        assert self._calc(ctx, "1 + 2 * 3") == "7"

    def test_integral_float_printed_as_int(self, ctx):
        assert self._calc(ctx, "4 / 2") == "2"

    def test_float(self, ctx):
        assert self._calc(ctx, "7 / 2") == "3.5"

    def test_functions(self, ctx):
        assert self._calc(ctx, "max(3, 9) - abs(-1)") == "8"

    def test_variables_as_numbers(self, ctx):
        ctx.bind("n", "3")
        assert self._calc(ctx, "n * 2") == "6"

    def test_division_by_zero_fails(self, ctx):
        with pytest.raises(EvaluationFailure, match="calc"):
            self._calc(ctx, "1 / 0")

    def test_unknown_name_fails(self, ctx):
        with pytest.raises(EvaluationFailure):
            self._calc(ctx, "nope + 1")

    def test_dunder_access_fails(self, ctx):
        with pytest.raises(EvaluationFailure):
            self._calc(ctx, "().__class__")
