"""Tests for the monadic core: bind, map_, or_, labels and sequencing."""

from __future__ import annotations

from typing import Any

import pytest
from hypothesis import given
from hypothesis import strategies as st

from chompy import ParseFailedError, parse_only_str, run
from chompy.enums import ErrorKind
from chompy.syntax.cursor import Cursor, TokenBuffer
from chompy.syntax.parser import (
    Forward,
    Left,
    Parser,
    Right,
    any_token,
    bind,
    choice,
    either,
    fail,
    label,
    lazy,
    look_ahead,
    many,
    map_,
    matched_by,
    or_,
    seq,
    skip,
    succeed,
    then,
    token,
)
from chompy.syntax.result import Done, Error, Incomplete, ParseResult
from tests.strategies import LETTERS, texts


def outcome(result: ParseResult[Any, Any]) -> tuple[Any, ...]:
    """Comparable summary of a terminal result."""
    match result:
        case Done(value=value, cursor=cursor):
            return ("done", value, cursor.pos)
        case Error(error=error):
            return ("error", error.kind, error.position)
        case _:
            return ("incomplete",)


class CallCounter:
    """Parser wrapper recording how often it runs."""

    def __init__(self, parser: Parser[Any, Any]) -> None:
        self.parser = parser
        self.calls = 0

    def __call__(self, cursor: Cursor[Any]) -> ParseResult[Any, Any]:
        self.calls += 1
        return self.parser(cursor)


# ============================================================================
# SUCCEED / FAIL
# ============================================================================


class TestSucceedFail:
    """Test the constant parsers."""

    def test_succeed_consumes_nothing(self) -> None:
        """succeed returns its value at the same position."""
        result = run(succeed(42), "abc")

        assert outcome(result) == ("done", 42, 0)

    def test_fail(self) -> None:
        """fail is a FAILURE error with the given message."""
        with pytest.raises(ParseFailedError) as exc_info:
            parse_only_str(fail("boom"), "abc")

        assert exc_info.value.error.kind == ErrorKind.FAILURE
        assert exc_info.value.error.message == "boom"


# ============================================================================
# BIND / MAP
# ============================================================================


class TestBind:
    """Test sequencing through bind."""

    def test_value_feeds_next_parser(self) -> None:
        """The continuation sees the first value."""
        doubled = bind(any_token(), token)

        assert parse_only_str(doubled, "aa") == "a"

    def test_error_in_continuation(self) -> None:
        """The position of the first failure is kept."""
        result = run(bind(any_token(), token), "ab")

        assert outcome(result) == ("error", ErrorKind.TOKEN_MISMATCH, 1)

    def test_error_short_circuits(self) -> None:
        """A failing first parser never calls the continuation."""
        calls: list[str] = []

        def continuation(value: str) -> Parser[str, str]:
            calls.append(value)
            return succeed(value)

        run(bind(token("a"), continuation), "b")

        assert calls == []

    def test_method_form(self) -> None:
        """Parser.bind is bind."""
        assert parse_only_str(any_token().bind(token), "zz") == "z"

    def test_resumes_without_restarting(self) -> None:
        """A suspended bind resumes the pending step only."""
        first = CallCounter(token("a"))
        parser = bind(first, lambda _: token("b"))
        buffer = TokenBuffer("a")

        pending = parser(buffer.cursor())
        assert isinstance(pending, Incomplete)

        buffer.append("b")
        result = pending.resume(buffer.cursor())

        assert outcome(result) == ("done", "b", 2)
        assert first.calls == 1


class TestMap:
    """Test value transformation."""

    def test_map(self) -> None:
        """map_ transforms the value."""
        assert parse_only_str(map_(any_token(), str.upper), "q") == "Q"

    def test_map_method(self) -> None:
        """Parser.map is map_."""
        assert parse_only_str(any_token().map(ord), "a") == 97

    def test_map_leaves_error(self) -> None:
        """Errors pass through map_ unchanged."""
        result = run(map_(token("a"), str.upper), "b")

        assert outcome(result) == ("error", ErrorKind.TOKEN_MISMATCH, 0)


class TestMonadLaws:
    """Property tests for the bind laws."""

    @given(texts(), st.sampled_from(LETTERS))
    def test_left_identity(self, text: str, value: str) -> None:
        """bind(succeed(x), f) behaves like f(x)."""
        assert outcome(run(bind(succeed(value), token), text)) == outcome(run(token(value), text))

    @given(texts())
    def test_right_identity(self, text: str) -> None:
        """bind(p, succeed) behaves like p."""
        parser = any_token()

        assert outcome(run(bind(parser, succeed), text)) == outcome(run(parser, text))

    @given(texts())
    def test_associativity(self, text: str) -> None:
        """bind(bind(p, f), g) behaves like bind(p, x -> bind(f(x), g))."""
        p = any_token()

        def f(x: str) -> Parser[str, str]:
            return token(x)

        def g(y: str) -> Parser[str, list[str]]:
            return many(token(y))

        left = bind(bind(p, f), g)
        right = bind(p, lambda x: bind(f(x), g))

        assert outcome(run(left, text)) == outcome(run(right, text))


# ============================================================================
# ALTERNATION
# ============================================================================


class TestOr:
    """Test alternation with backtracking."""

    def test_first_wins(self) -> None:
        """The first successful alternative is used."""
        assert parse_only_str(token("a") | token("b"), "a") == "a"

    def test_second_after_error(self) -> None:
        """The second alternative runs from the original position."""
        parser = (token("a") >> token("x")) | (token("a") >> token("b"))

        assert parse_only_str(parser, "ab") == "b"

    def test_merged_expectations(self) -> None:
        """Failures at the same position merge their expected sets."""
        with pytest.raises(ParseFailedError) as exc_info:
            parse_only_str(token("a") | token("b"), "c")

        error = exc_info.value.error
        assert error.expected == ("'a'", "'b'")
        assert error.message == "Expected 'a' or 'b', found 'c'"

    def test_further_error_wins(self) -> None:
        """The alternative that got further reports the error."""
        result = run((token("a") >> token("b")) | token("c"), "ax")

        assert isinstance(result, Error)
        assert result.error.position == 1
        assert result.error.expected == ("'b'",)

    def test_further_error_on_latest_snapshot(self) -> None:
        """A winning first error is reported on the resumed snapshot."""

        def waits_then_fails(cursor: Cursor[str]) -> ParseResult[str, Any]:
            return cursor.suspend(lambda fresh: token("z")(cursor.rebase(fresh)))

        buffer = TokenBuffer("ax")
        pending = ((token("a") >> token("b")) | waits_then_fails)(buffer.cursor())
        assert isinstance(pending, Incomplete)

        buffer.append("y")
        result = pending.resume(buffer.cursor())

        assert isinstance(result, Error)
        assert result.error.position == 1
        assert result.error.expected == ("'b'",)
        assert result.cursor.generation == buffer.generation
        assert result.cursor.end == 3

    def test_never_discards_incomplete(self) -> None:
        """While the first alternative is undecided the second is not run."""
        second = CallCounter(token("b"))
        buffer = TokenBuffer("")

        result = or_(token("a"), second)(buffer.cursor())

        assert isinstance(result, Incomplete)
        assert second.calls == 0

        buffer.append("b")
        resumed = result.resume(buffer.cursor())

        assert outcome(resumed) == ("done", "b", 1)
        assert second.calls == 1

    def test_second_runs_from_original_position_after_resume(self) -> None:
        """A first alternative that fails after resuming is rewound."""
        buffer = TokenBuffer("a")
        parser = (token("a") >> token("x")) | (token("a") >> token("b"))

        pending = parser(buffer.cursor())
        assert isinstance(pending, Incomplete)

        buffer.append("b")
        result = pending.resume(buffer.cursor())

        assert outcome(result) == ("done", "b", 2)

    def test_resumed_more_than_once(self) -> None:
        """An alternation can suspend again after resuming."""
        buffer = TokenBuffer("")
        parser = (token("a") >> token("x")) | (token("a") >> token("b"))

        first = parser(buffer.cursor())
        assert isinstance(first, Incomplete)
        buffer.append("a")
        second = first.resume(buffer.cursor())
        assert isinstance(second, Incomplete)
        buffer.append("b")

        assert outcome(second.resume(buffer.cursor())) == ("done", "b", 2)

    def test_choice(self) -> None:
        """choice folds or_ over many alternatives."""
        parser = choice(token("a"), token("b"), token("c"))

        assert parse_only_str(parser, "c") == "c"

    def test_choice_requires_parsers(self) -> None:
        """An empty choice is a construction error."""
        with pytest.raises(ValueError, match="choice"):
            choice()

    def test_either(self) -> None:
        """either tags the branch that matched."""
        parser = either(token("a"), token("b"))

        assert parse_only_str(parser, "a") == Left("a")
        assert parse_only_str(parser, "b") == Right("b")


# ============================================================================
# LABELS
# ============================================================================


class TestLabel:
    """Test the error context stack."""

    def test_label_on_error(self) -> None:
        """A named parser pushes its label on failure."""
        with pytest.raises(ParseFailedError) as exc_info:
            parse_only_str(token("a").named("letter"), "b")

        assert exc_info.value.error.labels == ("letter",)

    def test_labels_innermost_first(self) -> None:
        """Nested labels are ordered innermost first."""
        parser = label(label(token("a"), "inner"), "outer")
        result = run(parser, "b")

        assert isinstance(result, Error)
        assert result.error.labels == ("inner", "outer")

    def test_label_does_not_change_success(self) -> None:
        """Labels are diagnostics only."""
        assert parse_only_str(label(token("a"), "x"), "a") == "a"

    def test_label_after_resume(self) -> None:
        """Labels are applied to errors produced after resumption."""
        buffer = TokenBuffer("")
        pending = label(token("a"), "letter")(buffer.cursor())
        assert isinstance(pending, Incomplete)

        buffer.append("b")
        result = pending.resume(buffer.cursor())

        assert isinstance(result, Error)
        assert result.error.labels == ("letter",)


# ============================================================================
# SEQUENCING
# ============================================================================


class TestSequencing:
    """Test seq, then, skip and their operators."""

    def test_seq(self) -> None:
        """seq collects every value."""
        assert parse_only_str(seq(token("a"), token("b"), token("c")), "abc") == ("a", "b", "c")

    def test_seq_empty(self) -> None:
        """An empty seq succeeds with ()."""
        assert parse_only_str(seq(), "x") == ()

    def test_plus_operator(self) -> None:
        """p + q is a pair."""
        assert parse_only_str(token("a") + token("b"), "ab") == ("a", "b")

    def test_then_and_skip(self) -> None:
        """then keeps the right value, skip keeps the left."""
        assert parse_only_str(then(token("a"), token("b")), "ab") == "b"
        assert parse_only_str(skip(token("a"), token("b")), "ab") == "a"
        assert parse_only_str(token("(") >> token("x") << token(")"), "(x)") == "x"

    def test_seq_streaming(self) -> None:
        """seq resumes at the pending element with earlier values kept."""
        buffer = TokenBuffer("a")
        pending = seq(token("a"), token("b"), token("c"))(buffer.cursor())
        assert isinstance(pending, Incomplete)

        buffer.append("bc")
        result = pending.resume(buffer.cursor())

        assert outcome(result) == ("done", ("a", "b", "c"), 3)

    def test_matched_by(self) -> None:
        """matched_by returns the consumed slice with the value."""
        assert parse_only_str(matched_by(many(token("a"))), "aab") == ("aa", ["a", "a"])

    def test_look_ahead(self) -> None:
        """look_ahead does not consume."""
        result = run(look_ahead(token("a")), "a")

        assert outcome(result) == ("done", "a", 0)

    def test_look_ahead_failure(self) -> None:
        """look_ahead still fails."""
        assert outcome(run(look_ahead(token("a")), "b"))[0] == "error"


# ============================================================================
# RECURSION
# ============================================================================


class TestRecursion:
    """Test Forward and lazy."""

    def test_forward(self) -> None:
        """A forward declaration supports nested grammars."""
        expr: Forward[str, str] = Forward("expr")
        expr.define(token("x") | (token("(") >> expr << token(")")))

        assert parse_only_str(expr, "((x))") == "x"

    def test_forward_undefined(self) -> None:
        """Running an undefined Forward is a programming error."""
        with pytest.raises(RuntimeError, match="expr"):
            parse_only_str(Forward("expr"), "x")

    def test_forward_defined_twice(self) -> None:
        """define may be called once."""
        expr: Forward[str, str] = Forward("expr")
        expr.define(token("x"))

        with pytest.raises(ValueError, match="already defined"):
            expr.define(token("y"))

    def test_lazy(self) -> None:
        """lazy builds the parser on first use, once."""
        built: list[int] = []

        def factory() -> Parser[str, str]:
            built.append(1)
            return token("z")

        parser = lazy(factory)

        assert parse_only_str(parser, "z") == "z"
        assert parse_only_str(parser, "z") == "z"
        assert built == [1]

    def test_parse_method(self) -> None:
        """Parser.parse runs over complete input."""
        assert token("a").parse("a") == "a"
