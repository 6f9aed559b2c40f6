"""Error message templates.

Centralized error message templates for testable, consistent error messages.
Python 3.13+. Zero external dependencies.
"""

from .codes import Diagnostic, DiagnosticCode


def _join_expected(expected: tuple[str, ...]) -> str:
    """Render an expectation set as ``'a', 'b' or 'c'``."""
    if not expected:
        return "input"
    if len(expected) == 1:
        return expected[0]
    return ", ".join(expected[:-1]) + " or " + expected[-1]


class ErrorTemplate:
    """Centralized error message templates.

    All error messages are created here. NO f-strings in exception constructors!
    This solves EM101/EM102 violations while providing:
        - Testable error messages
        - Consistent formatting
        - Documentation of all error cases

    Token arguments are pre-rendered display strings (see
    ``TokenBuffer.describe``), so templates never depend on the token type.
    """

    # ------------------------------------------------------------------
    # Parse errors
    # ------------------------------------------------------------------

    @staticmethod
    def token_mismatch(expected: tuple[str, ...], actual: str, position: int) -> Diagnostic:
        """Expected token (or token sequence) not found.

        Args:
            expected: Rendered expected tokens
            actual: Rendered token found instead
            position: Token offset of the mismatch

        Returns:
            Diagnostic for TOKEN_MISMATCH
        """
        msg = f"Expected {_join_expected(expected)}, found {actual}"
        return Diagnostic(
            code=DiagnosticCode.TOKEN_MISMATCH,
            message=msg,
            position=position,
            expected=expected,
            received=actual,
        )

    @staticmethod
    def predicate_failed(expected: tuple[str, ...], actual: str, position: int) -> Diagnostic:
        """Predicate rejected a token.

        Args:
            expected: Labels describing what the predicate accepts (may be empty)
            actual: Rendered token that was rejected
            position: Token offset of the rejected token

        Returns:
            Diagnostic for PREDICATE_FAILED
        """
        if expected:
            msg = f"Expected {_join_expected(expected)}, found {actual}"
        else:
            msg = f"Unexpected {actual}"
        return Diagnostic(
            code=DiagnosticCode.PREDICATE_FAILED,
            message=msg,
            position=position,
            expected=expected or None,
            received=actual,
        )

    @staticmethod
    def unexpected_end_of_input(expected: tuple[str, ...], position: int) -> Diagnostic:
        """End of stream reached where more input was required.

        Args:
            expected: Rendered expectations at the position (may be empty)
            position: Token offset of the end of stream

        Returns:
            Diagnostic for UNEXPECTED_END_OF_INPUT
        """
        if expected:
            msg = f"Unexpected end of input, expected {_join_expected(expected)}"
        else:
            msg = "Unexpected end of input"
        return Diagnostic(
            code=DiagnosticCode.UNEXPECTED_END_OF_INPUT,
            message=msg,
            position=position,
            expected=expected or None,
            received="end of input",
            hint="The stream ended before the grammar was satisfied",
        )

    @staticmethod
    def empty_repetition(expected: tuple[str, ...], position: int) -> Diagnostic:
        """Repetition that requires one match matched zero times.

        Args:
            expected: Expectations of the repeated parser
            position: Token offset where the first repetition failed

        Returns:
            Diagnostic for EMPTY_REPETITION
        """
        msg = f"Expected at least one {_join_expected(expected)}"
        return Diagnostic(
            code=DiagnosticCode.EMPTY_REPETITION,
            message=msg,
            position=position,
            expected=expected or None,
        )

    @staticmethod
    def trailing_input(actual: str, position: int) -> Diagnostic:
        """Tokens remain where end of input was required.

        Args:
            actual: Rendered first unconsumed token
            position: Token offset of the first unconsumed token

        Returns:
            Diagnostic for TRAILING_INPUT
        """
        msg = f"Expected end of input, found {actual}"
        return Diagnostic(
            code=DiagnosticCode.TRAILING_INPUT,
            message=msg,
            position=position,
            expected=("end of input",),
            received=actual,
        )

    @staticmethod
    def failure(message: str, position: int) -> Diagnostic:
        """Explicit failure from a fail() parser.

        Args:
            message: User-supplied failure message
            position: Token offset of the failure

        Returns:
            Diagnostic for FAILURE
        """
        return Diagnostic(
            code=DiagnosticCode.FAILURE,
            message=message,
            position=position,
        )

    @staticmethod
    def no_progress(position: int) -> Diagnostic:
        """Record parser succeeded without consuming input.

        Args:
            position: Token offset of the record start

        Returns:
            Diagnostic for FAILURE
        """
        msg = f"Record parser consumed no input at position {position}"
        return Diagnostic(
            code=DiagnosticCode.FAILURE,
            message=msg,
            position=position,
            hint="A record parser must consume at least one token per record",
        )

    @staticmethod
    def protocol_violation(position: int) -> Diagnostic:
        """Continuation asked for more input after end of stream.

        Args:
            position: Token offset where the parser stalled

        Returns:
            Diagnostic for PROTOCOL_VIOLATION
        """
        msg = "Parser requested more input after end of stream was confirmed"
        return Diagnostic(
            code=DiagnosticCode.PROTOCOL_VIOLATION,
            message=msg,
            position=position,
            hint=(
                "A parser must resolve to Done or Error once is_end_of_stream() "
                "is true; check custom primitives that return Incomplete"
            ),
        )

    # ------------------------------------------------------------------
    # Usage errors
    # ------------------------------------------------------------------

    @staticmethod
    def cursor_out_of_bounds(position: int, count: int, end: int) -> Diagnostic:
        """Cursor advanced past the buffered tokens.

        Args:
            position: Current cursor position
            count: Requested advance
            end: Number of buffered tokens visible to the cursor

        Returns:
            Diagnostic for CURSOR_OUT_OF_BOUNDS
        """
        msg = (
            f"Cannot advance cursor by {count} at position {position}: "
            f"only {end - position} token(s) buffered"
        )
        return Diagnostic(
            code=DiagnosticCode.CURSOR_OUT_OF_BOUNDS,
            message=msg,
            position=position,
            hint="Check remaining before advancing, or use peek() to handle Incomplete",
        )

    @staticmethod
    def cursor_no_token(position: int) -> Diagnostic:
        """Current token read with nothing buffered.

        Args:
            position: Current cursor position

        Returns:
            Diagnostic for CURSOR_OUT_OF_BOUNDS
        """
        msg = f"No buffered token at position {position}"
        return Diagnostic(
            code=DiagnosticCode.CURSOR_OUT_OF_BOUNDS,
            message=msg,
            position=position,
            hint="Check at_end before reading current",
        )

    @staticmethod
    def cursor_foreign_buffer(position: int) -> Diagnostic:
        """Cursor rebased onto a cursor of another buffer or an older generation.

        Args:
            position: Position of the cursor being rebased

        Returns:
            Diagnostic for CURSOR_OUT_OF_BOUNDS
        """
        msg = f"Cannot rebase cursor at position {position} onto an unrelated cursor"
        return Diagnostic(
            code=DiagnosticCode.CURSOR_OUT_OF_BOUNDS,
            message=msg,
            position=position,
            hint="Resume continuations with a cursor of the same buffer",
        )

    @staticmethod
    def stale_mark(mark_generation: int, cursor_generation: int) -> Diagnostic:
        """Mark restored on a cursor of another generation.

        Args:
            mark_generation: Buffer generation the mark was taken on
            cursor_generation: Buffer generation of the restoring cursor

        Returns:
            Diagnostic for STALE_MARK
        """
        msg = (
            f"Mark from buffer generation {mark_generation} cannot be restored "
            f"on generation {cursor_generation}"
        )
        return Diagnostic(
            code=DiagnosticCode.STALE_MARK,
            message=msg,
            hint="Marks are invalidated by resumption; take a new mark after resuming",
        )

    @staticmethod
    def mark_foreign_buffer(position: int) -> Diagnostic:
        """Mark restored on a cursor of a different buffer.

        Args:
            position: Position recorded in the mark

        Returns:
            Diagnostic for STALE_MARK
        """
        msg = f"Mark at position {position} belongs to another buffer"
        return Diagnostic(
            code=DiagnosticCode.STALE_MARK,
            message=msg,
            position=position,
            hint="Restore marks only on cursors of the stream they were taken from",
        )

    @staticmethod
    def tokens_discarded(position: int, base: int) -> Diagnostic:
        """Buffer position read after its tokens were discarded.

        Args:
            position: Requested position
            base: Offset of the oldest token still held

        Returns:
            Diagnostic for CURSOR_OUT_OF_BOUNDS
        """
        msg = f"Tokens before position {base} were discarded; cannot read position {position}"
        return Diagnostic(
            code=DiagnosticCode.CURSOR_OUT_OF_BOUNDS,
            message=msg,
            position=position,
            hint="Consumed records are dropped by restart(); keep values, not cursors",
        )

    @staticmethod
    def buffer_closed() -> Diagnostic:
        """Tokens appended after end of stream.

        Returns:
            Diagnostic for BUFFER_CLOSED
        """
        return Diagnostic(
            code=DiagnosticCode.BUFFER_CLOSED,
            message="Cannot append to a buffer after end of stream",
            hint="Do not call feed() after finish()",
        )

    @staticmethod
    def buffer_limit_exceeded(size: int, limit: int) -> Diagnostic:
        """Buffer would grow past its limit.

        Args:
            size: Buffer size the append would produce
            limit: Configured maximum size

        Returns:
            Diagnostic for BUFFER_LIMIT_EXCEEDED
        """
        msg = f"Buffer size {size} exceeds limit {limit}"
        return Diagnostic(
            code=DiagnosticCode.BUFFER_LIMIT_EXCEEDED,
            message=msg,
            hint="Raise max_buffer_size or parse the stream as separate records",
        )

    @staticmethod
    def buffer_kind_mismatch(expected: str, actual: str) -> Diagnostic:
        """Chunk type incompatible with buffered tokens.

        Args:
            expected: Name of the buffer kind
            actual: Type name of the rejected chunk

        Returns:
            Diagnostic for BUFFER_KIND_MISMATCH
        """
        msg = f"Cannot append {actual} to a {expected} buffer"
        return Diagnostic(
            code=DiagnosticCode.BUFFER_KIND_MISMATCH,
            message=msg,
        )

    @staticmethod
    def session_state_invalid(operation: str, state: str) -> Diagnostic:
        """Session operation invalid in the current state.

        Args:
            operation: Name of the attempted operation
            state: Current session state

        Returns:
            Diagnostic for SESSION_STATE_INVALID
        """
        msg = f"Cannot {operation} a session in state '{state}'"
        return Diagnostic(
            code=DiagnosticCode.SESSION_STATE_INVALID,
            message=msg,
        )

    @staticmethod
    def incomplete_input(needed: int) -> Diagnostic:
        """Value requested from an Incomplete result.

        Args:
            needed: Minimum number of further tokens requested

        Returns:
            Diagnostic for INCOMPLETE_INPUT
        """
        msg = f"Parse is incomplete: at least {needed} more token(s) needed"
        return Diagnostic(
            code=DiagnosticCode.INCOMPLETE_INPUT,
            message=msg,
            hint="Feed more data to the session or assert end of stream",
        )
