"""Monadic core: the Parser type and the composition rules.

A parser is a pure callable from a Cursor to a ParseResult. ``Parser`` wraps
such a callable with a diagnostic name and operator sugar:

    p | q       or_(p, q)         alternation with backtracking
    p >> q      then(p, q)        run both, keep q
    p << q      skip(p, q)        run both, keep p
    p + q       seq(p, q)         run both, keep (p, q)
    p.map(f)    map_(p, f)
    p.bind(f)   bind(p, f)
    p.named(s)  label(p, s)

Laws:
    - bind is associative; succeed is its left and right identity.
    - Error and Incomplete short-circuit bind and map_ unchanged; the
      position of the first failure is never rewritten.
    - Only or_ rewinds, and alternation never discards a pending
      Incomplete: while the first alternative is undecided the second one
      is not attempted.

Python 3.13+. Zero external dependencies.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from functools import reduce
from typing import Any

from chompy.diagnostics import ErrorTemplate
from chompy.syntax.cursor import Cursor, Mark
from chompy.syntax.result import Done, Error, Incomplete, ParseResult

__all__ = [
    "Forward",
    "Left",
    "Parser",
    "ParserFn",
    "Right",
    "Stack",
    "bind",
    "choice",
    "continue_with",
    "either",
    "fail",
    "label",
    "lazy",
    "look_ahead",
    "map_",
    "matched_by",
    "or_",
    "parser_name",
    "seq",
    "skip",
    "succeed",
    "then",
    "unwind",
]

type ParserFn[T, V] = Callable[[Cursor[T]], ParseResult[T, V]]


class Parser[T, V]:
    """A composable parser.

    Wraps a function ``Cursor -> ParseResult`` with a name used for
    debugging and error context. Parsers hold no mutable state, so one
    parser can be shared by any number of concurrent streams.

    Example:
        >>> ab = token("a") + token("b")
        >>> parse_only_str(ab, "ab")
        ('a', 'b')
        >>> parse_only_str(token("a") | token("b"), "b")
        'b'
    """

    __slots__ = ("_fn", "name")

    def __init__(self, fn: ParserFn[T, V], name: str | None = None) -> None:
        self._fn = fn
        self.name = name if name is not None else getattr(fn, "__name__", "parser")

    def __call__(self, cursor: Cursor[T]) -> ParseResult[T, V]:
        return self._fn(cursor)

    def __repr__(self) -> str:
        return f"<Parser {self.name}>"

    def named(self, name: str) -> Parser[T, V]:
        """Return a parser that pushes name onto the error context stack."""
        return label(self, name)

    def map[U](self, transform: Callable[[V], U]) -> Parser[T, U]:
        return map_(self, transform)

    def bind[U](self, continuation: Callable[[V], ParserFn[T, U]]) -> Parser[T, U]:
        return bind(self, continuation)

    def parse(self, data: Sequence[T]) -> V:
        """Parse complete input and return the value.

        Raises:
            ParseFailedError: If the parser fails
        """
        from chompy.runtime.driver import parse_only  # noqa: PLC0415 - circular

        return parse_only(self, data)

    def __or__[U](self, other: ParserFn[T, U]) -> Parser[T, V | U]:
        return or_(self, other)

    def __rshift__[U](self, other: ParserFn[T, U]) -> Parser[T, U]:
        return then(self, other)

    def __lshift__(self, other: ParserFn[T, Any]) -> Parser[T, V]:
        return skip(self, other)

    def __add__[U](self, other: ParserFn[T, U]) -> Parser[T, tuple[V, U]]:
        return seq(self, other)


class Forward[T, V](Parser[T, V]):
    """A parser declared before it is defined, for recursive grammars.

    Example:
        >>> expr = Forward("expr")
        >>> expr.define(token("x") | (token("(") >> expr << token(")")))
        >>> parse_only_str(expr, "((x))")
        'x'
    """

    __slots__ = ("_target",)

    def __init__(self, name: str = "forward") -> None:
        super().__init__(self._run, name)
        self._target: ParserFn[T, V] | None = None

    def define(self, parser: ParserFn[T, V]) -> None:
        """Bind the declaration to its definition. May be called once.

        Raises:
            ValueError: If the parser was already defined
        """
        if self._target is not None:
            msg = f"Forward parser '{self.name}' is already defined"
            raise ValueError(msg)
        self._target = parser

    def _run(self, cursor: Cursor[T]) -> ParseResult[T, V]:
        if self._target is None:
            msg = f"Forward parser '{self.name}' used before define()"
            raise RuntimeError(msg)
        return self._target(cursor)


# Persistent accumulator for looping combinators: (newest, rest) pairs.
# A suspended loop shares it with its continuation instead of copying.
type Stack = tuple[Any, Stack] | None


def unwind(stack: Stack) -> list[Any]:
    """Return the values pushed onto stack, oldest first."""
    values: list[Any] = []
    while stack is not None:
        value, stack = stack
        values.append(value)
    values.reverse()
    return values


def continue_with[T, V, U](
    result: ParseResult[T, V], step: Callable[[Done[T, V]], ParseResult[T, U]]
) -> ParseResult[T, U]:
    """Apply step to a Done result; pass Error through; defer on Incomplete.

    The building block for combinators that post-process a sub-parser:
    when the sub-parser is Incomplete, the returned Incomplete resumes it
    and then applies step.
    """
    match result:
        case Done():
            return step(result)
        case Incomplete():
            pending = result
            return pending.wrap(lambda fresh: continue_with(pending.resume(fresh), step))
        case _:
            return result


def succeed[T, V](value: V) -> Parser[T, V]:
    """Succeed with value without consuming input (monadic return)."""
    return Parser(lambda cursor: Done(value, cursor), f"succeed({value!r})")


def fail[T](message: str) -> Parser[T, Any]:
    """Fail with message without consuming input."""
    return Parser(
        lambda cursor: cursor.fail(ErrorTemplate.failure(message, cursor.pos)),
        f"fail({message!r})",
    )


def bind[T, V, U](
    parser: ParserFn[T, V], continuation: Callable[[V], ParserFn[T, U]]
) -> Parser[T, U]:
    """Sequence parser with a parser computed from its value.

    Runs parser; on Done feeds the value into continuation and runs the
    parser it returns on the advanced cursor. Error and Incomplete
    short-circuit. This is the sequencing primitive every multi-step
    grammar composes through.
    """

    def _bind(cursor: Cursor[T]) -> ParseResult[T, U]:
        return parser(cursor).then(continuation)

    return Parser(_bind, f"({parser_name(parser)} >>=)")


def map_[T, V, U](parser: ParserFn[T, V], transform: Callable[[V], U]) -> Parser[T, U]:
    """Apply transform to the value of a successful parse."""

    def _map(cursor: Cursor[T]) -> ParseResult[T, U]:
        return parser(cursor).map(transform)

    return Parser(_map, parser_name(parser))


def or_[T, V, U](first: ParserFn[T, V], second: ParserFn[T, U]) -> Parser[T, V | U]:
    """Alternation with backtracking.

    Runs first from a marked cursor. On Error the mark is restored and
    second runs from the original position. On Incomplete the Incomplete
    is propagated and second is NOT attempted: the engine cannot know
    whether more input would let first succeed. If first fails after a
    resumption, second runs from the original position on the resumed
    cursor.

    When both alternatives fail, the error that got further is reported;
    at equal positions the expectation sets are merged.
    """

    def _or(cursor: Cursor[T]) -> ParseResult[T, V | U]:
        mark = cursor.mark()
        return _alternative(first(cursor), cursor, mark, second)

    return Parser(_or, f"{parser_name(first)} | {parser_name(second)}")


def _alternative[T, V, U](
    result: ParseResult[T, V],
    cursor: Cursor[T],
    mark: Mark,
    second: ParserFn[T, U],
) -> ParseResult[T, V | U]:
    match result:
        case Incomplete():
            pending = result

            def resume(fresh: Cursor[T]) -> ParseResult[T, V | U]:
                # Marks do not survive resumption; re-mark on the new snapshot.
                rebased = cursor.rebase(fresh)
                return _alternative(pending.resume(fresh), rebased, rebased.mark(), second)

            return pending.wrap(resume)
        case Error():
            return _merge_failures(result, second(cursor.restore(mark)))
        case _:
            return result


def _merge_failures[T, U](failed: Error[T], result: ParseResult[T, U]) -> ParseResult[T, U]:
    match result:
        case Error():
            merged = failed.error.merge(result.error)
            if merged is not failed.error:
                return Error(merged, result.cursor)
            # second may have been resumed on a newer snapshot than first failed on.
            return Error(merged, failed.cursor.rebase(result.cursor))
        case Incomplete():
            pending = result
            return pending.wrap(lambda fresh: _merge_failures(failed, pending.resume(fresh)))
        case _:
            return result


def label[T, V](parser: ParserFn[T, V], name: str) -> Parser[T, V]:
    """Push name onto the error context stack when parser fails."""

    def _label(cursor: Cursor[T]) -> ParseResult[T, V]:
        return parser(cursor).labelled(name)

    return Parser(_label, name)


def seq[T](*parsers: ParserFn[T, Any]) -> Parser[T, tuple[Any, ...]]:
    """Run parsers in order and collect their values in a tuple."""

    def _seq(cursor: Cursor[T]) -> ParseResult[T, tuple[Any, ...]]:
        if not parsers:
            return Done((), cursor)
        return _seq_from(parsers, 1, None, parsers[0](cursor))

    return Parser(_seq, " + ".join(parser_name(p) for p in parsers) or "seq()")


def _seq_from[T](
    parsers: Sequence[ParserFn[T, Any]],
    index: int,
    values: Stack,
    result: ParseResult[T, Any],
) -> ParseResult[T, tuple[Any, ...]]:
    while True:
        match result:
            case Done(value=value, cursor=after):
                values = (value, values)
                if index == len(parsers):
                    return Done(tuple(unwind(values)), after)
                result = parsers[index](after)
                index += 1
            case Incomplete():
                pending, resumed_at, held = result, index, values
                return pending.wrap(
                    lambda fresh: _seq_from(parsers, resumed_at, held, pending.resume(fresh))
                )
            case _:
                return result


def then[T, U](first: ParserFn[T, Any], second: ParserFn[T, U]) -> Parser[T, U]:
    """Run first then second; keep the value of second."""

    def _then(cursor: Cursor[T]) -> ParseResult[T, U]:
        return first(cursor).then(lambda _: second)

    return Parser(_then, f"{parser_name(first)} >> {parser_name(second)}")


def skip[T, V](first: ParserFn[T, V], second: ParserFn[T, Any]) -> Parser[T, V]:
    """Run first then second; keep the value of first."""

    def _skip(cursor: Cursor[T]) -> ParseResult[T, V]:
        return first(cursor).then(lambda value: map_(second, lambda _: value))

    return Parser(_skip, f"{parser_name(first)} << {parser_name(second)}")


@dataclass(frozen=True, slots=True)
class Left[V]:
    """Value produced by the left branch of either()."""

    value: V


@dataclass(frozen=True, slots=True)
class Right[V]:
    """Value produced by the right branch of either()."""

    value: V


def either[T, V, U](left: ParserFn[T, V], right: ParserFn[T, U]) -> Parser[T, Left[V] | Right[U]]:
    """Like or_, but tag the value with the branch that matched."""
    return or_(map_(left, Left), map_(right, Right))


def choice[T](*parsers: ParserFn[T, Any]) -> Parser[T, Any]:
    """Try each parser in order; or_ folded over all alternatives.

    Raises:
        ValueError: If no parsers are given
    """
    if not parsers:
        msg = "choice() requires at least one parser"
        raise ValueError(msg)
    return reduce(or_, parsers[1:], _as_parser(parsers[0]))


def matched_by[T, V](parser: ParserFn[T, V]) -> Parser[T, tuple[Any, V]]:
    """Return the consumed tokens together with the parser's value."""

    def _matched(cursor: Cursor[T]) -> ParseResult[T, tuple[Any, V]]:
        start = cursor.pos
        return continue_with(
            parser(cursor),
            lambda done: Done(
                (done.cursor.buffer.slice(start, done.cursor.pos), done.value), done.cursor
            ),
        )

    return Parser(_matched, f"matched_by({parser_name(parser)})")


def look_ahead[T, V](parser: ParserFn[T, V]) -> Parser[T, V]:
    """Run parser without consuming input."""

    def _look_ahead(cursor: Cursor[T]) -> ParseResult[T, V]:
        return continue_with(
            parser(cursor), lambda done: Done(done.value, cursor.rebase(done.cursor))
        )

    return Parser(_look_ahead, f"look_ahead({parser_name(parser)})")


def lazy[T, V](factory: Callable[[], ParserFn[T, V]], name: str = "lazy") -> Parser[T, V]:
    """Build the parser on first use; for grammars that refer to themselves."""
    built: list[ParserFn[T, V]] = []

    def _lazy(cursor: Cursor[T]) -> ParseResult[T, V]:
        if not built:
            built.append(factory())
        return built[0](cursor)

    return Parser(_lazy, name)


def _as_parser[T, V](parser: ParserFn[T, V]) -> Parser[T, V]:
    return parser if isinstance(parser, Parser) else Parser(parser)


def parser_name(parser: ParserFn[Any, Any]) -> str:
    """Diagnostic name of a parser or plain parsing function."""
    return getattr(parser, "name", None) or getattr(parser, "__name__", "parser")
