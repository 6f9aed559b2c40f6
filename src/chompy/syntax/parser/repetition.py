"""Repetition and derived combinators.

All repetition is an explicit loop over an evolving cursor: a single
invocation over N tokens uses a constant number of stack frames, whatever N
is. When the repeated parser suspends, the loop returns an Incomplete whose
continuation resumes the pending iteration and then re-enters the loop with
the values collected so far.

Termination:
    A Done that consumed nothing ends the loop and its value is dropped.
    Without this guard a parser that can succeed on empty input (e.g.
    ``take_while``) would repeat forever.

Re-invocable continuations:
    A continuation may be resumed more than once (each time with a newer
    snapshot), so values are pushed onto a persistent Stack. Suspension
    shares it; it is unwound into a list once, when the loop finishes.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from typing import Any

from chompy.diagnostics import ErrorTemplate
from chompy.syntax.cursor import Cursor
from chompy.syntax.parser.core import (
    Parser,
    ParserFn,
    Stack,
    or_,
    parser_name,
    succeed,
    then,
    unwind,
)
from chompy.syntax.result import Done, Error, Incomplete, ParseError, ParseResult

__all__ = [
    "count",
    "many",
    "many1",
    "many_till",
    "option",
    "sep_by",
    "sep_by1",
    "skip_many",
    "skip_many1",
]


def _repeat[T](
    parser: ParserFn[T, Any],
    cursor: Cursor[T],
    values: Stack,
    result: ParseResult[T, Any],
) -> ParseResult[T, list[Any]]:
    """Loop body shared by many, many1, skip_many and sep_by.

    result is the outcome of running parser at cursor. The loop stops at the
    first Error, restoring the last good cursor.
    """
    while True:
        match result:
            case Done(value=value, cursor=after):
                if after.pos == cursor.pos:
                    return Done(unwind(values), after)
                values = (value, values)
                cursor = after
                result = parser(cursor)
            case Incomplete():
                pending, start, held = result, cursor, values
                return pending.wrap(
                    lambda fresh: _repeat(
                        parser, start.rebase(fresh), held, pending.resume(fresh)
                    )
                )
            case _:
                return Done(unwind(values), cursor)


def _at_least_one[T](
    result: ParseResult[T, Any],
    name: str,
    step: Callable[[Done[T, Any]], ParseResult[T, Any]],
) -> ParseResult[T, Any]:
    """Run step on the first Done; turn a first Error into EMPTY_REPETITION.

    The EMPTY_REPETITION error keeps the position, expectations and context
    labels of the inner error.
    """
    match result:
        case Done():
            return step(result)
        case Incomplete():
            pending = result
            return pending.wrap(lambda fresh: _at_least_one(pending.resume(fresh), name, step))
        case _:
            inner = result.error
            empty = ParseError.from_diagnostic(
                ErrorTemplate.empty_repetition(inner.expected or (name,), inner.position)
            )
            return Error(replace(empty, labels=inner.labels), result.cursor)


def many[T, V](parser: ParserFn[T, V]) -> Parser[T, list[V]]:
    """Zero or more repetitions of parser, collected in a list.

    Never fails: an Error from parser ends the repetition and the cursor is
    restored to just after the last success.

    Example:
        >>> parse_only_str(many(token("a")), "aaa")
        ['a', 'a', 'a']
    """

    def _many(cursor: Cursor[T]) -> ParseResult[T, list[V]]:
        return _repeat(parser, cursor, None, parser(cursor))

    return Parser(_many, f"many({parser_name(parser)})")


def many1[T, V](parser: ParserFn[T, V]) -> Parser[T, list[V]]:
    """One or more repetitions of parser.

    Fails with EMPTY_REPETITION when parser does not match even once.
    """
    name = parser_name(parser)

    def _many1(cursor: Cursor[T]) -> ParseResult[T, list[V]]:
        return _at_least_one(
            parser(cursor),
            name,
            lambda first: _repeat(parser, first.cursor, (first.value, None), parser(first.cursor)),
        )

    return Parser(_many1, f"many1({name})")


def skip_many[T](parser: ParserFn[T, Any]) -> Parser[T, None]:
    """Zero or more repetitions of parser; the values are discarded."""
    repeated = many(parser)

    def _skip_many(cursor: Cursor[T]) -> ParseResult[T, None]:
        return repeated(cursor).map(lambda _: None)

    return Parser(_skip_many, f"skip_many({parser_name(parser)})")


def skip_many1[T](parser: ParserFn[T, Any]) -> Parser[T, None]:
    """One or more repetitions of parser; the values are discarded."""
    repeated = many1(parser)

    def _skip_many1(cursor: Cursor[T]) -> ParseResult[T, None]:
        return repeated(cursor).map(lambda _: None)

    return Parser(_skip_many1, f"skip_many1({parser_name(parser)})")


def sep_by1[T, V](item: ParserFn[T, V], separator: ParserFn[T, Any]) -> Parser[T, list[V]]:
    """One or more items separated by separator.

    A separator that is not followed by an item is not consumed: the
    repetition backtracks to just before it and succeeds.

    Example:
        >>> parse_only_str(sep_by1(token("a"), token(",")) << token(","), "a,a,")
        ['a', 'a']
    """
    name = parser_name(item)
    following = then(separator, item)

    def _sep_by1(cursor: Cursor[T]) -> ParseResult[T, list[V]]:
        return _at_least_one(
            item(cursor),
            name,
            lambda first: _repeat(
                following, first.cursor, (first.value, None), following(first.cursor)
            ),
        )

    return Parser(_sep_by1, f"sep_by1({name}, {parser_name(separator)})")


def sep_by[T, V](item: ParserFn[T, V], separator: ParserFn[T, Any]) -> Parser[T, list[V]]:
    """Zero or more items separated by separator."""
    following = then(separator, item)

    def _sep_by(cursor: Cursor[T]) -> ParseResult[T, list[V]]:
        # The first item is optional: an Error before any item is Done([]).
        return _repeat_after_first(cursor, item(cursor), following)

    return Parser(_sep_by, f"sep_by({parser_name(item)}, {parser_name(separator)})")


def _repeat_after_first[T](
    cursor: Cursor[T],
    result: ParseResult[T, Any],
    following: ParserFn[T, Any],
) -> ParseResult[T, list[Any]]:
    match result:
        case Done(value=value, cursor=after):
            return _repeat(following, after, (value, None), following(after))
        case Incomplete():
            pending = result
            return pending.wrap(
                lambda fresh: _repeat_after_first(
                    cursor.rebase(fresh), pending.resume(fresh), following
                )
            )
        case _:
            return Done([], cursor)


def option[T, V, D](parser: ParserFn[T, V], default: D) -> Parser[T, V | D]:
    """Run parser; if it fails without suspending, succeed with default.

    Like or_, an Incomplete from parser is propagated, never replaced by the
    default.
    """
    return Parser(or_(parser, succeed(default)), f"option({parser_name(parser)})")


def count[T, V](n: int, parser: ParserFn[T, V]) -> Parser[T, list[V]]:
    """Exactly n repetitions of parser.

    Any Error is propagated unchanged.

    Raises:
        ValueError: If n is negative
    """
    if n < 0:
        msg = f"count() repetitions must be >= 0, got {n}"
        raise ValueError(msg)

    def _count_from(
        values: Stack, size: int, result: ParseResult[T, V]
    ) -> ParseResult[T, list[V]]:
        while True:
            match result:
                case Done(value=value, cursor=after):
                    values, size = (value, values), size + 1
                    if size == n:
                        return Done(unwind(values), after)
                    result = parser(after)
                case Incomplete():
                    pending, held, reached = result, values, size
                    return pending.wrap(
                        lambda fresh: _count_from(held, reached, pending.resume(fresh))
                    )
                case _:
                    return result

    def _count(cursor: Cursor[T]) -> ParseResult[T, list[V]]:
        if n == 0:
            return Done([], cursor)
        return _count_from(None, 0, parser(cursor))

    return Parser(_count, f"count({n}, {parser_name(parser)})")


def many_till[T, V](parser: ParserFn[T, V], end: ParserFn[T, Any]) -> Parser[T, list[V]]:
    """Repeat parser until end succeeds; the value of end is discarded.

    end is tried first on every iteration. When both end and parser fail
    the errors are merged. If parser succeeds without consuming input the
    repetition cannot progress and the error of end is returned.

    Example:
        >>> parse_only_str(many_till(any_token(), token(";")), "ab;")
        ['a', 'b']
    """

    def _till_from(
        cursor: Cursor[T],
        values: Stack,
        result: ParseResult[T, Any],
        end_error: ParseError | None,
    ) -> ParseResult[T, list[V]]:
        # end_error is None while result comes from end, and holds the
        # failure of end while result comes from parser.
        while True:
            match result:
                case Incomplete():
                    pending, start, held, failed = result, cursor, values, end_error
                    return pending.wrap(
                        lambda fresh: _till_from(
                            start.rebase(fresh), held, pending.resume(fresh), failed
                        )
                    )
                case Done(value=value, cursor=after):
                    if end_error is None:
                        return Done(unwind(values), after)
                    if after.pos == cursor.pos:
                        return Error(end_error, cursor)
                    values = (value, values)
                    cursor, end_error = after, None
                    result = end(cursor)
                case Error(error=error):
                    if end_error is not None:
                        return Error(end_error.merge(error), result.cursor)
                    end_error = error
                    result = parser(cursor)

    def _many_till(cursor: Cursor[T]) -> ParseResult[T, list[V]]:
        return _till_from(cursor, None, end(cursor), None)

    return Parser(_many_till, f"many_till({parser_name(parser)}, {parser_name(end)})")
