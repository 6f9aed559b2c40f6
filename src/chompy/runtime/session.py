"""Incremental parse session: the retry protocol state machine.

A session owns one token buffer and drives one parser over it:

    RUNNING    the parser (or its continuation) is being invoked
    SUSPENDED  the last result was Incomplete; waiting for feed() or finish()
    DONE       terminal, the parser produced a value
    FAILED     terminal, the parser produced an unrecovered error

Transitions:
    RUNNING   -> DONE / FAILED / SUSPENDED   after each invocation
    SUSPENDED -> RUNNING                     feed() appended at least one token
    SUSPENDED -> DONE / FAILED               finish() asserted end of stream

Once end of stream is asserted a continuation must resolve to Done or
Error. An Incomplete at that point is a protocol violation: the session
moves to FAILED and raises ProtocolViolationError.

Thread Safety:
    NOT thread-safe. A session and its buffer belong to one stream; feed()
    and finish() must be serialized by the caller. Parsers themselves are
    stateless and can be shared by sessions on different threads.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from chompy.constants import MAX_BUFFER_SIZE
from chompy.diagnostics import (
    BufferClosedError,
    ErrorTemplate,
    ProtocolViolationError,
    SessionStateError,
)
from chompy.enums import SessionState
from chompy.syntax.cursor import Cursor, TokenBuffer
from chompy.syntax.parser.core import ParserFn, parser_name
from chompy.syntax.result import Done, Error, Incomplete, ParseError, ParseResult

__all__ = ["ParseSession"]

logger = logging.getLogger(__name__)


class ParseSession[T, V]:
    """Drives a parser over input that arrives in chunks.

    The parser is invoked immediately on the initial tokens. While the
    result is Incomplete the session is SUSPENDED; feed() appends a chunk
    and resumes the stored continuation, finish() asserts end of stream and
    resumes it one last time.

    Examples:
        >>> from chompy.syntax.parser import many1, token
        >>> session = ParseSession(many1(token("a")), "a")
        >>> session.state
        <SessionState.SUSPENDED: 'suspended'>
        >>> session.feed("a").is_incomplete
        True
        >>> session.finish().value
        ['a', 'a']
    """

    __slots__ = ("_buffer", "_parser", "_result", "_state")

    def __init__(
        self,
        parser: ParserFn[T, V],
        initial: Sequence[T] | None = None,
        *,
        eos: bool = False,
        max_buffer_size: int = MAX_BUFFER_SIZE,
    ) -> None:
        """Create a session and run the parser on the initial tokens.

        Args:
            parser: Parser to drive
            initial: Tokens available up front (may be empty)
            eos: True if initial is the complete input
            max_buffer_size: Maximum number of tokens the session buffers

        Raises:
            BufferLimitExceededError: If initial exceeds max_buffer_size
            ProtocolViolationError: If eos is True and the parser returns
                Incomplete
        """
        self._parser = parser
        self._buffer: TokenBuffer[T] = TokenBuffer(
            initial, closed=eos, max_size=max_buffer_size
        )
        self._state = SessionState.RUNNING
        logger.debug(
            "Session started: parser=%s buffered=%d eos=%s",
            parser_name(parser),
            len(self._buffer),
            eos,
        )
        self._settle(parser(self._buffer.cursor()))

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def buffer(self) -> TokenBuffer[T]:
        """The session's token buffer (read access; use feed() to append)."""
        return self._buffer

    @property
    def result(self) -> ParseResult[T, V]:
        """The latest parse result."""
        return self._result

    @property
    def value(self) -> V:
        """The parsed value.

        Raises:
            SessionStateError: If the session is not DONE
        """
        result = self.result
        if not isinstance(result, Done):
            raise SessionStateError(
                ErrorTemplate.session_state_invalid("read the value of", self._state)
            )
        return result.value

    @property
    def error(self) -> ParseError | None:
        """The unrecovered error if FAILED, else None."""
        result = self.result
        return result.error if isinstance(result, Error) else None

    @property
    def needed(self) -> int | None:
        """Minimum further tokens requested while SUSPENDED, else None."""
        result = self.result
        return result.needed if isinstance(result, Incomplete) else None

    @property
    def position(self) -> int:
        """Token offset reached: end of the value, the failure, or the stall."""
        return self.result.position

    def remainder(self) -> Any:
        """Tokens buffered after the parsed value.

        Raises:
            SessionStateError: If the session is not DONE
        """
        result = self.result
        if not isinstance(result, Done):
            raise SessionStateError(
                ErrorTemplate.session_state_invalid("take the remainder of", self._state)
            )
        return self._buffer.slice(result.cursor.pos, len(self._buffer))

    # ------------------------------------------------------------------
    # Retry protocol
    # ------------------------------------------------------------------

    def feed(self, chunk: Sequence[T]) -> ParseResult[T, V]:
        """Append a chunk and resume the suspended parse.

        An empty chunk is a no-op and leaves the session SUSPENDED.

        Returns:
            The new parse result

        Raises:
            BufferClosedError: If finish() was already called
            SessionStateError: If the session is DONE or FAILED
            BufferKindError: If chunk is incompatible with the buffered tokens
            BufferLimitExceededError: If the buffer would exceed its limit
        """
        if self._buffer.closed:
            raise BufferClosedError(ErrorTemplate.buffer_closed())
        pending = self._require_suspended("feed")
        appended = self._buffer.append(chunk)
        if appended == 0:
            return pending
        logger.debug(
            "Session fed %d token(s): buffered=%d generation=%d",
            appended,
            len(self._buffer),
            self._buffer.generation,
        )
        self._state = SessionState.RUNNING
        return self._settle(pending.resume(self._buffer.cursor()))

    def finish(self) -> ParseResult[T, V]:
        """Assert end of stream and resolve the parse.

        On a DONE or FAILED session whose buffer is still open, this only
        closes the buffer.

        Returns:
            The terminal Done or Error result

        Raises:
            SessionStateError: If called again after end of stream
            ProtocolViolationError: If the parser still returns Incomplete
        """
        if self._state.is_terminal:
            if self._buffer.closed:
                raise SessionStateError(
                    ErrorTemplate.session_state_invalid("finish", self._state)
                )
            self._buffer.close()
            logger.debug("Session closed after %s", self._state)
            return self.result
        pending = self._require_suspended("finish")
        self._buffer.close()
        logger.debug("Session end of stream: buffered=%d", len(self._buffer))
        self._state = SessionState.RUNNING
        return self._settle(pending.resume(self._buffer.cursor()))

    def restart(self) -> ParseResult[T, V]:
        """Run the parser again from where the last value ended.

        Used to parse consecutive records from one stream. Tokens before
        the restart position are discarded, so a long stream of records
        never holds more than the current record and its lookahead.
        Positions stay absolute and the end-of-stream flag is kept.

        Raises:
            SessionStateError: If the session is not DONE
        """
        result = self.result
        if not isinstance(result, Done):
            raise SessionStateError(ErrorTemplate.session_state_invalid("restart", self._state))
        start = result.cursor.pos
        dropped = self._buffer.discard(start)
        logger.debug("Session restarted at position %d: discarded=%d", start, dropped)
        self._state = SessionState.RUNNING
        return self._settle(self._parser(self._buffer.cursor(start)))

    def _require_suspended(self, operation: str) -> Incomplete[T, V]:
        result = self.result
        if self._state is not SessionState.SUSPENDED or not isinstance(result, Incomplete):
            raise SessionStateError(ErrorTemplate.session_state_invalid(operation, self._state))
        return result

    def _settle(self, result: ParseResult[T, V]) -> ParseResult[T, V]:
        """Record a parser result and move to the matching state."""
        match result:
            case Done():
                self._state = SessionState.DONE
            case Error():
                self._state = SessionState.FAILED
            case Incomplete() if self._buffer.closed:
                self._violation(result)
            case _:
                self._state = SessionState.SUSPENDED
        self._result = result
        logger.debug("Session %s at position %d", self._state, result.position)
        return result

    def _violation(self, pending: Incomplete[T, V]) -> None:
        diagnostic = ErrorTemplate.protocol_violation(pending.position)
        cursor: Cursor[T] = self._buffer.cursor(
            max(self._buffer.base, min(pending.position, len(self._buffer)))
        )
        self._state = SessionState.FAILED
        self._result = Error(ParseError.from_diagnostic(diagnostic), cursor)
        logger.error(
            "Protocol violation: parser %s returned Incomplete after end of stream",
            parser_name(self._parser),
        )
        raise ProtocolViolationError(diagnostic)
