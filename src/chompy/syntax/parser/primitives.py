"""Primitive parsers: the atomic operations that read from a cursor.

Every primitive follows the same three-way contract:

    - a decision possible from the buffered tokens gives Done or Error
    - running out of buffered tokens before end of stream gives Incomplete,
      whose continuation picks up where the primitive stalled
    - running out of tokens at confirmed end of stream gives Error
      (UNEXPECTED_END_OF_INPUT), never Incomplete

Primitives fail without consuming input: an Error carries the cursor the
primitive was invoked on.

Token Types:
    bytes input yields int tokens, so ``token(ord("a"))`` (not ``token(b"a")``)
    matches a byte. str input yields one-character strings.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

from chompy.diagnostics import Diagnostic, ErrorTemplate
from chompy.syntax.cursor import Cursor
from chompy.syntax.parser.core import Parser, continue_with
from chompy.syntax.result import Done, ParseResult

__all__ = [
    "any_token",
    "end_of_input",
    "not_token",
    "peek",
    "peek_optional",
    "run_scanner",
    "satisfy",
    "satisfy_with",
    "scan",
    "skip_while",
    "string",
    "take",
    "take_remainder",
    "take_till",
    "take_while",
    "take_while1",
    "token",
]

type Predicate[T] = Callable[[T], bool]


def _describe_predicate(predicate: Callable[..., Any]) -> str:
    name = getattr(predicate, "__name__", "")
    if not name or name == "<lambda>":
        return "token satisfying predicate"
    return name


def _single[T](
    cursor: Cursor[T],
    accept: Predicate[T],
    expected: Callable[[Cursor[T]], tuple[str, ...]],
    reject: Callable[[tuple[str, ...], str, int], Diagnostic],
) -> ParseResult[T, T]:
    """Consume one token if accept holds; shared by the single-token parsers.

    expected is evaluated only on failure, so rendering costs nothing on
    the success path.
    """
    if cursor.pos < cursor.end:
        tok = cursor.buffer.token_at(cursor.pos)
        if accept(tok):
            return Done(tok, cursor.advance())
        return cursor.fail(reject(expected(cursor), cursor.buffer.describe(tok), cursor.pos))
    if cursor.eos:
        return cursor.fail(ErrorTemplate.unexpected_end_of_input(expected(cursor), cursor.pos))
    return cursor.suspend(lambda fresh: _single(cursor.rebase(fresh), accept, expected, reject))


# ============================================================================
# SINGLE TOKENS
# ============================================================================


def satisfy[T](predicate: Predicate[T], expected: str | None = None) -> Parser[T, T]:
    """Consume one token for which predicate holds.

    Args:
        predicate: Token test
        expected: Description used in error messages (defaults to the
            predicate's name)

    Returns:
        Parser yielding the token. Fails with PREDICATE_FAILED without
        advancing when the predicate rejects the token.

    Example:
        >>> parse_only_str(satisfy(str.isupper, "uppercase letter"), "Q")
        'Q'
    """
    labels = (expected or _describe_predicate(predicate),)

    def _satisfy(cursor: Cursor[T]) -> ParseResult[T, T]:
        return _single(cursor, predicate, lambda _: labels, ErrorTemplate.predicate_failed)

    return Parser(_satisfy, labels[0])


def satisfy_with[T, R](
    transform: Callable[[T], R], predicate: Callable[[R], bool], expected: str | None = None
) -> Parser[T, R]:
    """Consume one token whose transformed value satisfies predicate.

    The value is transform(token). transform must be pure: it is applied
    once to test the token and again to the accepted token.

    Example:
        >>> parse_only_str(satisfy_with(str.lower, lambda c: c == "q"), "Q")
        'q'
    """
    labels = (expected or _describe_predicate(predicate),)

    def _accept(tok: T) -> bool:
        return predicate(transform(tok))

    def _satisfy_with(cursor: Cursor[T]) -> ParseResult[T, R]:
        return _single(cursor, _accept, lambda _: labels, ErrorTemplate.predicate_failed).map(
            transform
        )

    return Parser(_satisfy_with, labels[0])


def token[T](expected: T) -> Parser[T, T]:
    """Consume one token equal to expected.

    Fails with TOKEN_MISMATCH naming the expected and actual tokens.
    """

    def _token(cursor: Cursor[T]) -> ParseResult[T, T]:
        return _single(
            cursor,
            lambda tok: tok == expected,
            lambda c: (c.buffer.describe(expected),),
            ErrorTemplate.token_mismatch,
        )

    return Parser(_token, f"token({expected!r})")


def any_token[T]() -> Parser[T, T]:
    """Consume any single token."""

    def _any_token(cursor: Cursor[T]) -> ParseResult[T, T]:
        return _single(
            cursor, lambda _: True, lambda _: ("any token",), ErrorTemplate.predicate_failed
        )

    return Parser(_any_token, "any_token")


def not_token[T](excluded: T) -> Parser[T, T]:
    """Consume one token that is not equal to excluded."""

    def _not_token(cursor: Cursor[T]) -> ParseResult[T, T]:
        return _single(
            cursor,
            lambda tok: tok != excluded,
            lambda c: (f"any token except {c.buffer.describe(excluded)}",),
            ErrorTemplate.predicate_failed,
        )

    return Parser(_not_token, f"not_token({excluded!r})")


def peek[T]() -> Parser[T, T]:
    """Return the next token without consuming it.

    At confirmed end of stream this is an UNEXPECTED_END_OF_INPUT error.
    """
    return Parser(lambda cursor: cursor.peek(), "peek")


def peek_optional[T]() -> Parser[T, T | None]:
    """Return the next token without consuming it, or None at end of stream."""

    def _peek_optional(cursor: Cursor[T]) -> ParseResult[T, T | None]:
        if cursor.pos < cursor.end:
            return Done(cursor.buffer.token_at(cursor.pos), cursor)
        if cursor.eos:
            return Done(None, cursor)
        return cursor.suspend(lambda fresh: _peek_optional(cursor.rebase(fresh)))

    return Parser(_peek_optional, "peek_optional")


# ============================================================================
# TOKEN RUNS
# ============================================================================


def take[T](n: int) -> Parser[T, Any]:
    """Consume exactly n tokens and return them as a slice.

    While fewer than n tokens are buffered the result is Incomplete with
    ``needed`` set to the shortfall.

    Raises:
        ValueError: If n is negative
    """
    if n < 0:
        msg = f"take() count must be >= 0, got {n}"
        raise ValueError(msg)

    def _take(cursor: Cursor[T]) -> ParseResult[T, Any]:
        if cursor.remaining >= n:
            return Done(cursor.slice_ahead(n), cursor.advance(n))
        if cursor.eos:
            return cursor.fail(ErrorTemplate.unexpected_end_of_input((f"{n} tokens",), cursor.end))
        return cursor.suspend(
            lambda fresh: _take(cursor.rebase(fresh)),
            needed=n - cursor.remaining,
            position=cursor.end,
        )

    return Parser(_take, f"take({n})")


def take_while[T](predicate: Predicate[T]) -> Parser[T, Any]:
    """Consume the maximal (possibly empty) run of tokens satisfying predicate."""
    return Parser(lambda cursor: cursor.consume_while(predicate), "take_while")


def take_while1[T](predicate: Predicate[T], expected: str | None = None) -> Parser[T, Any]:
    """Like take_while, but at least one token must match.

    Fails with PREDICATE_FAILED when the first token is rejected, or with
    UNEXPECTED_END_OF_INPUT when the stream ended before any token.
    """
    labels = (expected or _describe_predicate(predicate),)

    def _check(done: Done[T, Any]) -> ParseResult[T, Any]:
        if len(done.value) > 0:
            return done
        after = done.cursor
        if after.pos < after.end:
            actual = after.buffer.describe(after.buffer.token_at(after.pos))
            return after.fail(ErrorTemplate.predicate_failed(labels, actual, after.pos))
        return after.fail(ErrorTemplate.unexpected_end_of_input(labels, after.pos))

    def _take_while1(cursor: Cursor[T]) -> ParseResult[T, Any]:
        return continue_with(cursor.consume_while(predicate), _check)

    return Parser(_take_while1, labels[0])


def take_till[T](predicate: Predicate[T]) -> Parser[T, Any]:
    """Consume tokens up to, not including, the first one satisfying predicate.

    The terminating token must exist: reaching end of stream first is an
    UNEXPECTED_END_OF_INPUT error.
    """
    labels = (_describe_predicate(predicate),)

    def _check(done: Done[T, Any]) -> ParseResult[T, Any]:
        after = done.cursor
        if after.pos < after.end:
            return done
        return after.fail(ErrorTemplate.unexpected_end_of_input(labels, after.pos))

    def _take_till(cursor: Cursor[T]) -> ParseResult[T, Any]:
        return continue_with(cursor.consume_while(lambda tok: not predicate(tok)), _check)

    return Parser(_take_till, "take_till")


def skip_while[T](predicate: Predicate[T]) -> Parser[T, None]:
    """Skip the maximal run of tokens satisfying predicate."""

    def _skip_while(cursor: Cursor[T]) -> ParseResult[T, None]:
        return cursor.consume_while(predicate).map(lambda _: None)

    return Parser(_skip_while, "skip_while")


def string[T](expected: Sequence[T]) -> Parser[T, Any]:
    """Match an exact token sequence and return it as a slice.

    A mismatch is reported as TOKEN_MISMATCH at the start position. A
    partial match at the end of buffered data is Incomplete with ``needed``
    set to the missing count; matched tokens are not compared again on
    resumption.

    Example:
        >>> parse_only(string(b"GET"), b"GET")
        b'GET'
    """
    wanted = tuple(expected)
    length = len(wanted)

    def _mismatch(cursor: Cursor[T], upto: int) -> Diagnostic:
        buffer = cursor.buffer
        return ErrorTemplate.token_mismatch(
            (buffer.describe_tokens(expected),),
            buffer.describe_tokens(buffer.slice(cursor.pos, cursor.pos + upto)),
            cursor.pos,
        )

    def _match_from(cursor: Cursor[T], matched: int) -> ParseResult[T, Any]:
        available = min(length, cursor.remaining)
        buffer = cursor.buffer
        for i in range(matched, available):
            if buffer.token_at(cursor.pos + i) != wanted[i]:
                return cursor.fail(_mismatch(cursor, i + 1))
        if available == length:
            return Done(cursor.slice_ahead(length), cursor.advance(length))
        if cursor.eos:
            return cursor.fail(
                ErrorTemplate.unexpected_end_of_input(
                    (buffer.describe_tokens(expected),), cursor.end
                )
            )
        return cursor.suspend(
            lambda fresh: _match_from(cursor.rebase(fresh), available),
            needed=length - available,
            position=cursor.end,
        )

    def _string(cursor: Cursor[T]) -> ParseResult[T, Any]:
        return _match_from(cursor, 0)

    return Parser(_string, f"string({expected!r})")


def _scan_from[T, S](
    cursor: Cursor[T], scan_pos: int, current: S, step: Callable[[S, T], S | None]
) -> ParseResult[T, tuple[Any, S]]:
    """Run step from scan_pos; the value is (consumed slice, final state)."""
    buffer = cursor.buffer
    i = scan_pos
    while i < cursor.end:
        following = step(current, buffer.token_at(i))
        if following is None:
            break
        current = following
        i += 1
    else:
        if not cursor.eos:
            stalled, reached = i, current
            return cursor.suspend(
                lambda fresh: _scan_from(cursor.rebase(fresh), stalled, reached, step),
                position=stalled,
            )
    return Done((buffer.slice(cursor.pos, i), current), cursor.advance(i - cursor.pos))


def scan[T, S](state: S, step: Callable[[S, T], S | None]) -> Parser[T, Any]:
    """Consume tokens while step returns a new state.

    step(state, token) returns the next state, or None to stop before that
    token. The value is the consumed slice (possibly empty). Resumption
    continues from the stall point with the state reached so far.

    Example:
        >>> up_to_three = scan(0, lambda n, _: n + 1 if n < 3 else None)
        >>> parse_only_str(up_to_three, "abcdef")
        'abc'
    """

    def _scan(cursor: Cursor[T]) -> ParseResult[T, Any]:
        return _scan_from(cursor, cursor.pos, state, step).map(lambda found: found[0])

    return Parser(_scan, "scan")


def run_scanner[T, S](state: S, step: Callable[[S, T], S | None]) -> Parser[T, tuple[Any, S]]:
    """Like scan, but the value is the pair (consumed slice, final state).

    Example:
        >>> digits = run_scanner(0, lambda n, c: n * 10 + int(c) if c.isdigit() else None)
        >>> parse_only_str(digits, "42;")
        ('42', 42)
    """

    def _run_scanner(cursor: Cursor[T]) -> ParseResult[T, tuple[Any, S]]:
        return _scan_from(cursor, cursor.pos, state, step)

    return Parser(_run_scanner, "run_scanner")


# ============================================================================
# END OF STREAM
# ============================================================================


def end_of_input[T]() -> Parser[T, None]:
    """Succeed with None only at confirmed end of stream.

    Fails with TRAILING_INPUT if tokens remain. Incomplete while nothing is
    buffered and end of stream is unknown.
    """

    def _end_of_input(cursor: Cursor[T]) -> ParseResult[T, None]:
        if cursor.pos < cursor.end:
            actual = cursor.buffer.describe(cursor.buffer.token_at(cursor.pos))
            return cursor.fail(ErrorTemplate.trailing_input(actual, cursor.pos))
        if cursor.eos:
            return Done(None, cursor)
        return cursor.suspend(lambda fresh: _end_of_input(cursor.rebase(fresh)))

    return Parser(_end_of_input, "end_of_input")


def take_remainder[T]() -> Parser[T, Any]:
    """Consume everything up to confirmed end of stream.

    Incomplete until end of stream is asserted.
    """

    def _take_remainder(cursor: Cursor[T]) -> ParseResult[T, Any]:
        if cursor.eos:
            return Done(cursor.slice_to(cursor.end), cursor.advance(cursor.remaining))
        return cursor.suspend(
            lambda fresh: _take_remainder(cursor.rebase(fresh)), position=cursor.end
        )

    return Parser(_take_remainder, "take_remainder")
