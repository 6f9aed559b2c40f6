"""Top-level entry points that drive the retry protocol.

    run(parser, initial, more_data)     terminal Done or Error result
    parse_only(parser, data)            value, or ParseFailedError
    parse_only_str(parser, text)        same, for str input
    iter_parse(parser, more_data)       consecutive values from one stream

Token source interface:
    ``MoreData`` is a zero-argument callable returning the next chunk.
    Returning None or an empty chunk means no more data: end of stream is
    asserted and the parse is resolved. ``chunks(iterable)`` adapts any
    iterable of chunks (a file read in blocks, a list in tests).
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Sequence

from chompy.constants import MAX_BUFFER_SIZE
from chompy.diagnostics import ErrorTemplate, ParseFailedError
from chompy.enums import SessionState
from chompy.runtime.session import ParseSession
from chompy.syntax.parser.core import ParserFn, parser_name
from chompy.syntax.result import Done, Error, ParseError

__all__ = ["MoreData", "chunks", "iter_parse", "parse_only", "parse_only_str", "run"]

logger = logging.getLogger(__name__)

type MoreData[T] = Callable[[], Sequence[T] | None]


def chunks[T](iterable: Iterable[Sequence[T]]) -> MoreData[T]:
    """Adapt an iterable of chunks into a MoreData callback.

    Example:
        >>> more = chunks(["ab", "c"])
        >>> more(), more(), more()
        ('ab', 'c', None)
    """
    iterator = iter(iterable)
    return lambda: next(iterator, None)


def _drive[T, V](session: ParseSession[T, V], more_data: MoreData[T] | None) -> None:
    """Feed the session until it reaches a terminal state."""
    while session.state is SessionState.SUSPENDED:
        chunk = more_data() if more_data is not None else None
        if not chunk:
            logger.debug("No more data: asserting end of stream at position %d", session.position)
            session.finish()
        else:
            logger.debug("Received chunk of %d token(s)", len(chunk))
            session.feed(chunk)


def run[T, V](
    parser: ParserFn[T, V],
    initial: Sequence[T],
    more_data: MoreData[T] | None = None,
    *,
    max_buffer_size: int = MAX_BUFFER_SIZE,
) -> Done[T, V] | Error[T]:
    """Run parser over initial tokens, pulling more from more_data on demand.

    Without more_data, initial is the complete input.

    Returns:
        The terminal Done or Error result

    Raises:
        ProtocolViolationError: If the parser returns Incomplete after end
            of stream
    """
    session = ParseSession(
        parser, initial, eos=more_data is None, max_buffer_size=max_buffer_size
    )
    _drive(session, more_data)
    result = session.result
    if isinstance(result, Error):
        logger.info(
            "Parse failed: parser=%s %s", parser_name(parser), result.error.format_error()
        )
    return result  # type: ignore[return-value]


def parse_only[T, V](parser: ParserFn[T, V], data: Sequence[T]) -> V:
    """Parse complete input and return the value.

    Trailing input is not an error; combine with ``end_of_input()`` to
    require that all input is consumed.

    Raises:
        ParseFailedError: If the parser fails; ``error`` holds the ParseError

    Example:
        >>> from chompy.syntax.parser import many, token
        >>> parse_only(many(token(ord("a"))), b"aab")
        [97, 97]
    """
    return run(parser, data).unwrap()


def parse_only_str[V](parser: ParserFn[str, V], text: str) -> V:
    """Parse complete str input and return the value.

    Raises:
        TypeError: If text is not a str
        ParseFailedError: If the parser fails
    """
    if not isinstance(text, str):
        msg = f"parse_only_str() requires str input, got {type(text).__name__}"
        raise TypeError(msg)
    return parse_only(parser, text)


def iter_parse[T, V](
    parser: ParserFn[T, V],
    more_data: MoreData[T],
    initial: Sequence[T] = (),
    *,
    max_buffer_size: int = MAX_BUFFER_SIZE,
) -> Iterator[V]:
    """Parse consecutive records from one stream.

    Each record is parsed where the previous one ended. Iteration stops
    cleanly when the stream ends exactly at a record boundary. Tokens of
    finished records are discarded, so max_buffer_size bounds one record
    and its lookahead rather than the whole stream.

    Yields:
        One value per record

    Raises:
        ParseFailedError: On the first unrecovered error, or if a record
            parser succeeds without consuming input

    Example:
        >>> from chompy.syntax.parser import token
        >>> list(iter_parse(token("a"), chunks(["aa", "a"])))
        ['a', 'a', 'a']
    """
    session = ParseSession(parser, initial, max_buffer_size=max_buffer_size)
    start = 0
    while True:
        _drive(session, more_data)
        at_boundary = session.buffer.closed and start == len(session.buffer)
        match session.result:
            case Error() as failed:
                if at_boundary:
                    logger.debug("Stream ended at record boundary %d", start)
                    return
                logger.info("Record parse failed: %s", failed.error.format_error())
                failed.unwrap()
            case Done(value=value, cursor=after):
                if after.pos == start:
                    if at_boundary:
                        return
                    error = ParseError.from_diagnostic(ErrorTemplate.no_progress(start))
                    raise ParseFailedError(error.to_diagnostic(), error)
                yield value
                start = after.pos
                session.restart()
